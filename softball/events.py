# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Domain events for the softball game tracker.

Every state change of the Game, TeamLineup and InningState aggregates is
captured as one of the immutable event models below. The set is closed:
``AnyDomainEvent`` is a pydantic discriminated union on the ``type`` tag, and
``event_from_record`` rebuilds an event from the plain dict produced by
``event_to_record``.

Event metadata (``event_id`` and ``timestamp``) comes from module-level
providers so tests can make event construction deterministic:

    with event_metadata(id_provider=lambda: "evt-1", clock=lambda: FIXED):
        GameStarted(game_id="g-1")

Payload validation errors are raised as ``DomainError``.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from softball.errors import DomainError, describe_validation_error

EVENT_SCHEMA_VERSION = 1

HOME = "HOME"
OUT = "OUT"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class AtBatResultType(str, Enum):
    SINGLE = "1B"
    DOUBLE = "2B"
    TRIPLE = "3B"
    HOME_RUN = "HR"
    WALK = "BB"
    ERROR = "E"
    FIELDERS_CHOICE = "FC"
    STRIKEOUT = "SO"
    GROUND_OUT = "GO"
    FLY_OUT = "FO"
    DOUBLE_PLAY = "DP"
    TRIPLE_PLAY = "TP"
    SACRIFICE_FLY = "SF"


class AdvanceReason(str, Enum):
    HIT = "HIT"
    WALK = "WALK"
    SACRIFICE = "SACRIFICE"
    ERROR = "ERROR"
    FIELDERS_CHOICE = "FIELDERS_CHOICE"
    STOLEN_BASE = "STOLEN_BASE"
    WILD_PITCH = "WILD_PITCH"
    BALK = "BALK"
    FORCE = "FORCE"


class FieldPosition(str, Enum):
    PITCHER = "P"
    CATCHER = "C"
    FIRST_BASE = "1B"
    SECOND_BASE = "2B"
    THIRD_BASE = "3B"
    SHORTSTOP = "SS"
    LEFT_FIELD = "LF"
    CENTER_FIELD = "CF"
    RIGHT_FIELD = "RF"
    SHORT_FIELDER = "SF"  # 10th fielder in slow-pitch
    EXTRA_PLAYER = "EP"  # bats only, holds no defensive position


class Base(str, Enum):
    FIRST = "FIRST"
    SECOND = "SECOND"
    THIRD = "THIRD"


class TeamSide(str, Enum):
    HOME = "HOME"
    AWAY = "AWAY"


class GameEndingType(str, Enum):
    REGULATION = "REGULATION"
    MERCY_RULE = "MERCY_RULE"
    FORFEIT = "FORFEIT"
    TIME_LIMIT = "TIME_LIMIT"


BASE_ORDER = {Base.FIRST: 1, Base.SECOND: 2, Base.THIRD: 3}


# ---------------------------------------------------------------------------
# Event metadata providers
# ---------------------------------------------------------------------------

def _default_event_id() -> str:
    return str(uuid.uuid4())


def _default_clock() -> datetime:
    return datetime.now(timezone.utc)


_id_provider: Callable[[], str] = _default_event_id
_clock: Callable[[], datetime] = _default_clock


def configure_event_metadata(
    id_provider: Callable[[], str] | None = None,
    clock: Callable[[], datetime] | None = None,
) -> None:
    """Replace the providers used for new events' ``event_id``/``timestamp``.

    Passing ``None`` restores the default (uuid4 / current UTC time).
    """
    global _id_provider, _clock
    _id_provider = id_provider or _default_event_id
    _clock = clock or _default_clock


@contextmanager
def event_metadata(
    id_provider: Callable[[], str] | None = None,
    clock: Callable[[], datetime] | None = None,
) -> Iterator[None]:
    """Temporarily swap the event metadata providers."""
    previous = (_id_provider, _clock)
    configure_event_metadata(id_provider, clock)
    try:
        yield
    finally:
        configure_event_metadata(*previous)


def current_timestamp() -> datetime:
    """Time from the configured clock, shared by events and snapshots."""
    return _clock()


# ---------------------------------------------------------------------------
# Field validators
# ---------------------------------------------------------------------------

def _non_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("Identifier cannot be empty or whitespace")
    return value


def _team_name(value: str) -> str:
    if not value.strip():
        raise ValueError("Team name cannot be empty or whitespace")
    if len(value) > 50:
        raise ValueError("Team name cannot exceed 50 characters")
    return value


def _player_name(value: str) -> str:
    if not value.strip():
        raise ValueError("Player name cannot be empty or whitespace")
    if len(value) > 100:
        raise ValueError("Player name cannot exceed 100 characters")
    return value


def _inning(value: int) -> int:
    if value < 1:
        raise ValueError("Inning must be 1 or greater")
    return value


def _batting_slot(value: int) -> int:
    if not 1 <= value <= 20:
        raise ValueError("Batting slot must be between 1 and 20")
    return value


def _score(value: int) -> int:
    if value < 0:
        raise ValueError("Score cannot be negative")
    return value


def _runs_added(value: int) -> int:
    if value <= 0:
        raise ValueError("Runs added must be greater than zero")
    return value


def _outs_before(value: int) -> int:
    if not 0 <= value <= 2:
        raise ValueError("Outs before at-bat must be between 0 and 2")
    return value


def _outs_after(value: int) -> int:
    if not 1 <= value <= 3:
        raise ValueError("Outs after an out must be between 1 and 3")
    return value


def _final_outs(value: int) -> int:
    if not 0 <= value <= 5:
        raise ValueError("Final outs must be between 0 and 5")
    return value


Identifier = Annotated[str, AfterValidator(_non_blank)]
TeamName = Annotated[str, AfterValidator(_team_name)]
PlayerName = Annotated[str, AfterValidator(_player_name)]
Inning = Annotated[StrictInt, AfterValidator(_inning)]
BattingSlotNumber = Annotated[StrictInt, AfterValidator(_batting_slot)]
Score = Annotated[StrictInt, AfterValidator(_score)]


# ---------------------------------------------------------------------------
# Base models
# ---------------------------------------------------------------------------

class FrozenRecord(BaseModel):
    """Immutable pydantic record whose validation failures are DomainErrors."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, /, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise DomainError(describe_validation_error(exc)) from exc


class ScoreSnapshot(FrozenRecord):
    """Home/away run totals carried inside score-bearing events."""
    home: Score
    away: Score


class DomainEvent(FrozenRecord):
    """Common envelope shared by every domain event."""
    event_id: str = Field(default_factory=lambda: _id_provider())
    timestamp: datetime = Field(default_factory=current_timestamp)
    version: Literal[1] = EVENT_SCHEMA_VERSION
    type: str
    game_id: Identifier


# ---------------------------------------------------------------------------
# Game events
# ---------------------------------------------------------------------------

class GameCreated(DomainEvent):
    type: Literal["GameCreated"] = "GameCreated"
    home_team_name: str
    away_team_name: str

    @model_validator(mode="after")
    def _check_team_names(self) -> GameCreated:
        if not self.home_team_name.strip():
            raise ValueError("Home team name cannot be empty or whitespace")
        if not self.away_team_name.strip():
            raise ValueError("Away team name cannot be empty or whitespace")
        if self.home_team_name.strip() == self.away_team_name.strip():
            raise ValueError("Home and away team names must be different")
        return self


class GameStarted(DomainEvent):
    type: Literal["GameStarted"] = "GameStarted"


class ScoreUpdated(DomainEvent):
    type: Literal["ScoreUpdated"] = "ScoreUpdated"
    scoring_team: TeamSide
    runs_added: Annotated[StrictInt, AfterValidator(_runs_added)]
    new_score: ScoreSnapshot


class InningAdvanced(DomainEvent):
    type: Literal["InningAdvanced"] = "InningAdvanced"
    new_inning: Inning
    is_top_half: StrictBool


class OutRecorded(DomainEvent):
    type: Literal["OutRecorded"] = "OutRecorded"
    inning: Inning
    is_top_half: StrictBool
    outs_after: Annotated[StrictInt, AfterValidator(_outs_after)]


class GameCompleted(DomainEvent):
    type: Literal["GameCompleted"] = "GameCompleted"
    ending_type: GameEndingType
    final_score: ScoreSnapshot
    final_inning: Inning


# ---------------------------------------------------------------------------
# TeamLineup events
# ---------------------------------------------------------------------------

class TeamLineupCreated(DomainEvent):
    type: Literal["TeamLineupCreated"] = "TeamLineupCreated"
    team_lineup_id: Identifier
    team_name: TeamName


class PlayerAddedToLineup(DomainEvent):
    type: Literal["PlayerAddedToLineup"] = "PlayerAddedToLineup"
    team_lineup_id: Identifier
    player_id: Identifier
    jersey_number: Identifier
    player_name: PlayerName
    batting_slot: BattingSlotNumber
    field_position: FieldPosition


class PlayerSubstitutedIntoGame(DomainEvent):
    type: Literal["PlayerSubstitutedIntoGame"] = "PlayerSubstitutedIntoGame"
    team_lineup_id: Identifier
    batting_slot: BattingSlotNumber
    outgoing_player_id: Identifier
    incoming_player_id: Identifier
    incoming_jersey_number: Identifier
    incoming_player_name: PlayerName
    field_position: FieldPosition
    inning: Inning
    is_reentry: StrictBool = False

    @model_validator(mode="after")
    def _check_players(self) -> PlayerSubstitutedIntoGame:
        if self.outgoing_player_id == self.incoming_player_id:
            raise ValueError("Outgoing and incoming players must be different")
        return self


class FieldPositionChanged(DomainEvent):
    type: Literal["FieldPositionChanged"] = "FieldPositionChanged"
    team_lineup_id: Identifier
    player_id: Identifier
    from_position: FieldPosition
    to_position: FieldPosition
    inning: Inning

    @model_validator(mode="after")
    def _check_positions(self) -> FieldPositionChanged:
        if self.from_position == self.to_position:
            raise ValueError("From and to positions must be different")
        return self


# ---------------------------------------------------------------------------
# InningState events
# ---------------------------------------------------------------------------

class InningStateCreated(DomainEvent):
    type: Literal["InningStateCreated"] = "InningStateCreated"
    inning_state_id: Identifier
    inning: Inning
    is_top_half: StrictBool


class AtBatCompleted(DomainEvent):
    type: Literal["AtBatCompleted"] = "AtBatCompleted"
    batter_id: Identifier
    batting_slot: BattingSlotNumber
    result: AtBatResultType
    inning: Inning
    outs_before: Annotated[StrictInt, AfterValidator(_outs_before)]


class RunnerAdvanced(DomainEvent):
    type: Literal["RunnerAdvanced"] = "RunnerAdvanced"
    runner_id: Identifier
    from_base: Optional[Base]
    to_base: Union[Base, Literal["HOME", "OUT"]]
    reason: AdvanceReason

    @model_validator(mode="after")
    def _check_advancement(self) -> RunnerAdvanced:
        if self.from_base is not None and self.from_base == self.to_base:
            raise ValueError("Runner cannot advance from and to the same base")
        if self.from_base is not None and isinstance(self.to_base, Base):
            if BASE_ORDER[self.from_base] > BASE_ORDER[self.to_base]:
                raise ValueError(
                    f"Runner cannot advance backward from {self.from_base.value} "
                    f"to {self.to_base.value}"
                )
        return self


class RunScored(DomainEvent):
    """A runner crossed home plate.

    ``new_score`` is left empty by InningState, which does not own the score;
    the layer that forwards the run to the Game aggregate may fill it in.
    """
    type: Literal["RunScored"] = "RunScored"
    scorer_id: Identifier
    batting_team: TeamSide
    rbi_credited_to: Optional[Identifier] = None
    new_score: Optional[ScoreSnapshot] = None


class CurrentBatterChanged(DomainEvent):
    type: Literal["CurrentBatterChanged"] = "CurrentBatterChanged"
    previous_batting_slot: BattingSlotNumber
    new_batting_slot: BattingSlotNumber
    inning: Inning
    is_top_half: StrictBool

    @model_validator(mode="after")
    def _check_slots(self) -> CurrentBatterChanged:
        if self.previous_batting_slot == self.new_batting_slot:
            raise ValueError(
                "Previous and new batting slots cannot be the same - no change occurred"
            )
        return self


class HalfInningEnded(DomainEvent):
    type: Literal["HalfInningEnded"] = "HalfInningEnded"
    inning: Inning
    was_top_half: StrictBool
    final_outs: Annotated[StrictInt, AfterValidator(_final_outs)]


# ---------------------------------------------------------------------------
# Closed set and record serialization
# ---------------------------------------------------------------------------

AnyDomainEvent = Annotated[
    Union[
        GameCreated,
        GameStarted,
        ScoreUpdated,
        InningAdvanced,
        OutRecorded,
        GameCompleted,
        TeamLineupCreated,
        PlayerAddedToLineup,
        PlayerSubstitutedIntoGame,
        FieldPositionChanged,
        InningStateCreated,
        AtBatCompleted,
        RunnerAdvanced,
        RunScored,
        CurrentBatterChanged,
        HalfInningEnded,
    ],
    Field(discriminator="type"),
]

EVENT_TYPES: dict[str, type[DomainEvent]] = {
    cls.__name__: cls
    for cls in (
        GameCreated,
        GameStarted,
        ScoreUpdated,
        InningAdvanced,
        OutRecorded,
        GameCompleted,
        TeamLineupCreated,
        PlayerAddedToLineup,
        PlayerSubstitutedIntoGame,
        FieldPositionChanged,
        InningStateCreated,
        AtBatCompleted,
        RunnerAdvanced,
        RunScored,
        CurrentBatterChanged,
        HalfInningEnded,
    )
}

_EVENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(AnyDomainEvent)


def event_to_record(event: DomainEvent) -> dict[str, Any]:
    """Serialize an event to a JSON-compatible dict."""
    return event.model_dump(mode="json")


def event_from_record(record: Mapping[str, Any]) -> DomainEvent:
    """Rebuild an event from a dict produced by ``event_to_record``."""
    if not isinstance(record, Mapping):
        raise DomainError("Event record must be a mapping")
    tag = record.get("type")
    if tag not in EVENT_TYPES:
        raise DomainError(f"Unknown event type: {tag}")
    try:
        return _EVENT_ADAPTER.validate_python(dict(record))
    except ValidationError as exc:
        raise DomainError(describe_validation_error(exc)) from exc
