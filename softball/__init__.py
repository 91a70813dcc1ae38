# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Softball live-game tracking -- event-sourced Game, TeamLineup and InningState aggregates."""

from softball.errors import DomainError
from softball.events import (
    HOME,
    OUT,
    AdvanceReason,
    AtBatResultType,
    Base,
    FieldPosition,
    GameEndingType,
    TeamSide,
    configure_event_metadata,
    event_from_record,
    event_metadata,
    event_to_record,
)
from softball.bases import BasesState
from softball.game import AggregateSnapshot, Game, GameScore, GameStatus
from softball.team_lineup import BattingSlot, PlayerInfo, SlotHistory, TeamLineup
from softball.inning_state import InningGameSituation, InningState, RunnerMovement

__all__ = [
    "HOME",
    "OUT",
    "AdvanceReason",
    "AggregateSnapshot",
    "AtBatResultType",
    "Base",
    "BasesState",
    "BattingSlot",
    "DomainError",
    "FieldPosition",
    "Game",
    "GameEndingType",
    "GameScore",
    "GameStatus",
    "InningGameSituation",
    "InningState",
    "PlayerInfo",
    "RunnerMovement",
    "SlotHistory",
    "TeamLineup",
    "TeamSide",
    "configure_event_metadata",
    "event_from_record",
    "event_metadata",
    "event_to_record",
]
