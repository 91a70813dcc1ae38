# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Game aggregate: lifecycle, score, inning pointer and completion rules.

The Game owns the overall score, the game status (NOT_STARTED ->
IN_PROGRESS -> COMPLETED), which half-inning is being played and how many
outs there are. Every command validates against the current state, then
builds an event and applies it through the same ``_apply`` routine that
``from_events`` uses, so a replayed game is identical to the live one.

Completion checks are evaluated on demand, never persisted:
- mercy rule: 15+ run differential from the 5th inning, 10+ from the 7th
- regulation: 7 full innings
- walk-off: home team ahead in the bottom half of the 7th or later
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, StrictBool, StrictInt, model_validator

from softball.config import is_replay_tolerated
from softball.errors import DomainError
from softball.events import (
    DomainEvent,
    FrozenRecord,
    GameCompleted,
    GameCreated,
    GameEndingType,
    GameStarted,
    InningAdvanced,
    OutRecorded,
    ScoreSnapshot,
    ScoreUpdated,
    TeamSide,
    current_timestamp,
)

logger = logging.getLogger(__name__)

REGULATION_INNINGS = 7


class GameStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# ---------------------------------------------------------------------------
# Score value object
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GameScore:
    """Immutable home/away run totals."""
    home_runs: int = 0
    away_runs: int = 0

    def __post_init__(self) -> None:
        for label, runs in (("Home", self.home_runs), ("Away", self.away_runs)):
            if isinstance(runs, bool) or not isinstance(runs, int):
                raise DomainError(f"{label} score must be an integer")
            if runs < 0:
                raise DomainError(f"{label} score cannot be negative")

    @classmethod
    def zero(cls) -> GameScore:
        return cls()

    @classmethod
    def from_runs(cls, home_runs: int, away_runs: int) -> GameScore:
        return cls(home_runs=home_runs, away_runs=away_runs)

    def add_home_runs(self, runs: int) -> GameScore:
        return GameScore(self.home_runs + runs, self.away_runs)

    def add_away_runs(self, runs: int) -> GameScore:
        return GameScore(self.home_runs, self.away_runs + runs)

    def get_home_runs(self) -> int:
        return self.home_runs

    def get_away_runs(self) -> int:
        return self.away_runs

    def get_run_differential(self) -> int:
        """Home minus away."""
        return self.home_runs - self.away_runs

    def is_home_winning(self) -> bool:
        return self.home_runs > self.away_runs

    def is_away_winning(self) -> bool:
        return self.away_runs > self.home_runs

    def is_tied(self) -> bool:
        return self.home_runs == self.away_runs

    def to_snapshot(self) -> ScoreSnapshot:
        return ScoreSnapshot(home=self.home_runs, away=self.away_runs)

    def __str__(self) -> str:
        return f"{self.home_runs}-{self.away_runs}"


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

class AggregateSnapshot(FrozenRecord):
    """Precomputed projection of an aggregate at a given version."""
    aggregate_id: str
    aggregate_type: str
    version: StrictInt
    data: dict[str, Any]
    timestamp: datetime = Field(default_factory=current_timestamp)


class GameSnapshotData(FrozenRecord):
    id: str
    home_team_name: str
    away_team_name: str
    status: GameStatus
    home_runs: StrictInt
    away_runs: StrictInt
    current_inning: StrictInt
    is_top_half: StrictBool
    outs: StrictInt

    @model_validator(mode="after")
    def _check_consistency(self) -> GameSnapshotData:
        if not self.home_team_name.strip() or not self.away_team_name.strip():
            raise ValueError("Snapshot team names cannot be empty")
        if self.home_team_name.strip() == self.away_team_name.strip():
            raise ValueError("Snapshot team names must be different")
        if self.home_runs < 0 or self.away_runs < 0:
            raise ValueError("Snapshot scores cannot be negative")
        if self.current_inning < 1:
            raise ValueError("Snapshot current inning must be 1 or greater")
        if not 0 <= self.outs <= 2:
            raise ValueError("Snapshot outs must be between 0 and 2")
        return self


# ---------------------------------------------------------------------------
# Game aggregate
# ---------------------------------------------------------------------------

class Game:
    """Aggregate root for one softball game.

    Use ``Game.create_new`` for a new game and ``Game.from_events`` /
    ``Game.from_snapshot`` to rebuild one from persisted history. Commands
    mutate the instance in place and raise ``DomainError`` without touching
    state when a rule is violated.

    Example::

        game = Game.create_new("g-1", "Springfield Tigers", "Shelbyville Lions")
        game.start_game()
        game.add_home_runs(2)
        game.advance_inning()      # bottom of the 1st
        str(game.score)            # "2-0"
    """

    def __init__(
        self,
        game_id: str,
        home_team_name: str,
        away_team_name: str,
        status: GameStatus = GameStatus.NOT_STARTED,
        score: Optional[GameScore] = None,
        current_inning: int = 1,
        is_top_half: bool = True,
        outs: int = 0,
    ):
        self._id = game_id
        self._home_team_name = home_team_name
        self._away_team_name = away_team_name
        self._status = status
        self._score = score or GameScore.zero()
        self._current_inning = current_inning
        self._is_top_half = is_top_half
        self._outs = outs
        self._uncommitted_events: list[DomainEvent] = []
        self._version = 0

    # -- queries ----------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def home_team_name(self) -> str:
        return self._home_team_name

    @property
    def away_team_name(self) -> str:
        return self._away_team_name

    @property
    def status(self) -> GameStatus:
        return self._status

    @property
    def score(self) -> GameScore:
        return self._score

    @property
    def current_inning(self) -> int:
        return self._current_inning

    @property
    def is_top_half(self) -> bool:
        """True = top half (away team batting)."""
        return self._is_top_half

    @property
    def outs(self) -> int:
        return self._outs

    def is_mercy_rule_triggered(self) -> bool:
        run_diff = abs(self._score.get_run_differential())
        if self._current_inning >= 5 and run_diff >= 15:
            return True
        if self._current_inning >= 7 and run_diff >= 10:
            return True
        return False

    def is_regulation_complete(self) -> bool:
        """True past the 7th inning, or in the 7th while the top half is current.

        The bottom of the 7th on its own is not regulation-complete.
        """
        return self._current_inning > REGULATION_INNINGS or (
            self._current_inning == REGULATION_INNINGS and self._is_top_half
        )

    def is_walk_off_scenario(self) -> bool:
        return (
            not self._is_top_half
            and self._current_inning >= REGULATION_INNINGS
            and self._score.is_home_winning()
        )

    def get_uncommitted_events(self) -> list[DomainEvent]:
        return list(self._uncommitted_events)

    def mark_events_as_committed(self) -> None:
        self._uncommitted_events = []

    def get_version(self) -> int:
        """Total number of events ever applied; survives commits."""
        return self._version

    # -- commands ---------------------------------------------------------

    @classmethod
    def create_new(cls, game_id: str, home_team_name: str, away_team_name: str) -> Game:
        if not isinstance(game_id, str) or not game_id.strip():
            raise DomainError("Game ID cannot be null or empty")
        event = GameCreated(
            game_id=game_id,
            home_team_name=home_team_name,
            away_team_name=away_team_name,
        )
        game = cls(game_id, home_team_name, away_team_name)
        game._append(event)
        return game

    def start_game(self) -> None:
        if self._status != GameStatus.NOT_STARTED:
            raise DomainError("Cannot start game that is not in NOT_STARTED status")
        self._record(GameStarted(game_id=self._id))

    def complete_game(self, ending_type: GameEndingType | str) -> None:
        if self._status != GameStatus.IN_PROGRESS:
            raise DomainError("Cannot complete game that is not in progress")
        self._record(
            GameCompleted(
                game_id=self._id,
                ending_type=ending_type,
                final_score=self._score.to_snapshot(),
                final_inning=self._current_inning,
            )
        )

    def add_home_runs(self, runs: int) -> None:
        self._validate_game_in_progress("add runs")
        runs = self._validate_runs_to_add(runs)
        new_score = self._score.add_home_runs(runs)
        self._record(
            ScoreUpdated(
                game_id=self._id,
                scoring_team=TeamSide.HOME,
                runs_added=runs,
                new_score=new_score.to_snapshot(),
            )
        )

    def add_away_runs(self, runs: int) -> None:
        self._validate_game_in_progress("add runs")
        runs = self._validate_runs_to_add(runs)
        new_score = self._score.add_away_runs(runs)
        self._record(
            ScoreUpdated(
                game_id=self._id,
                scoring_team=TeamSide.AWAY,
                runs_added=runs,
                new_score=new_score.to_snapshot(),
            )
        )

    def advance_inning(self) -> None:
        """Top -> bottom of the same inning, bottom -> top of the next; outs reset."""
        self._validate_game_in_progress("advance inning")
        new_inning, new_top_half = self._next_half_inning()
        self._record(
            InningAdvanced(game_id=self._id, new_inning=new_inning, is_top_half=new_top_half)
        )

    def add_out(self) -> None:
        """Record one out; the third out advances the half-inning in the same command."""
        self._validate_game_in_progress("add out")
        new_inning, new_top_half = self._next_half_inning()
        outs_after = self._outs + 1
        self._record(
            OutRecorded(
                game_id=self._id,
                inning=self._current_inning,
                is_top_half=self._is_top_half,
                outs_after=outs_after,
            )
        )
        if outs_after >= 3:
            self._record(
                InningAdvanced(game_id=self._id, new_inning=new_inning, is_top_half=new_top_half)
            )

    # -- reconstruction ---------------------------------------------------

    @classmethod
    def from_events(cls, events: Iterable[DomainEvent]) -> Game:
        """Rebuild a game by replaying its full event stream in order.

        The first event must be GameCreated and every event must share its
        game id. Event types the Game does not handle raise DomainError
        unless they are on the configured replay allowlist.
        """
        events = list(events or [])
        if not events:
            raise DomainError("Cannot reconstruct game from empty event array")
        first = events[0]
        if not isinstance(first, GameCreated):
            raise DomainError("First event must be GameCreated")
        for event in events:
            if getattr(event, "game_id", None) != first.game_id:
                raise DomainError("All events must belong to the same game")

        game = cls(first.game_id, first.home_team_name, first.away_team_name)
        for event in events[1:]:
            game._apply(event)
        game._version = len(events)
        logger.debug("Rebuilt game %s from %d events", game.id, len(events))
        return game

    @classmethod
    def from_snapshot(
        cls,
        snapshot: AggregateSnapshot | Mapping[str, Any],
        subsequent_events: Optional[Iterable[DomainEvent]] = None,
    ) -> Game:
        """Restore a game from a snapshot, then replay the events recorded after it."""
        if snapshot is None:
            raise DomainError("Snapshot cannot be null or undefined")
        if isinstance(snapshot, Mapping):
            snapshot = AggregateSnapshot(**snapshot)
        if snapshot.aggregate_type != "Game":
            raise DomainError(
                f"Invalid aggregate type for Game snapshot: {snapshot.aggregate_type}"
            )
        if snapshot.version < 0:
            raise DomainError("Snapshot version must be a non-negative integer")
        data = GameSnapshotData(**snapshot.data)
        if data.id != snapshot.aggregate_id:
            raise DomainError("Snapshot aggregate ID does not match snapshot data ID")

        events = list(subsequent_events or [])
        for event in events:
            if getattr(event, "game_id", None) != data.id:
                raise DomainError("All subsequent events must belong to the same game")

        game = cls(
            data.id,
            data.home_team_name,
            data.away_team_name,
            status=data.status,
            score=GameScore(data.home_runs, data.away_runs),
            current_inning=data.current_inning,
            is_top_half=data.is_top_half,
            outs=data.outs,
        )
        for event in events:
            game._apply(event)
        game._version = snapshot.version + len(events)
        logger.debug(
            "Restored game %s from snapshot v%d plus %d events",
            game.id, snapshot.version, len(events),
        )
        return game

    def to_snapshot(self) -> AggregateSnapshot:
        """Project the current state into a snapshot at the current version."""
        data = GameSnapshotData(
            id=self._id,
            home_team_name=self._home_team_name,
            away_team_name=self._away_team_name,
            status=self._status,
            home_runs=self._score.get_home_runs(),
            away_runs=self._score.get_away_runs(),
            current_inning=self._current_inning,
            is_top_half=self._is_top_half,
            outs=self._outs,
        )
        return AggregateSnapshot(
            aggregate_id=self._id,
            aggregate_type="Game",
            version=self._version,
            data=data.model_dump(mode="json"),
        )

    # -- internals --------------------------------------------------------

    def _record(self, event: DomainEvent) -> None:
        self._apply(event)
        self._append(event)

    def _append(self, event: DomainEvent) -> None:
        self._uncommitted_events.append(event)
        self._version += 1

    def _apply(self, event: DomainEvent) -> None:
        match event:
            case GameStarted():
                self._status = GameStatus.IN_PROGRESS
                logger.info("Game %s started", self._id)
            case ScoreUpdated():
                self._score = GameScore(event.new_score.home, event.new_score.away)
            case InningAdvanced():
                self._current_inning = event.new_inning
                self._is_top_half = event.is_top_half
                self._outs = 0
            case OutRecorded():
                if event.outs_after >= 3:
                    # Third out closes the half-inning; the InningAdvanced that
                    # follows restates the same position.
                    self._current_inning, self._is_top_half = self._next_half_inning()
                    self._outs = 0
                else:
                    self._outs = event.outs_after
            case GameCompleted():
                self._status = GameStatus.COMPLETED
                self._score = GameScore(event.final_score.home, event.final_score.away)
                logger.info(
                    "Game %s completed (%s) at %s",
                    self._id, event.ending_type.value, self._score,
                )
            case _:
                event_type = getattr(event, "type", type(event).__name__)
                if is_replay_tolerated(event_type):
                    logger.debug("Skipping allowlisted event %s for game %s", event_type, self._id)
                    return
                raise DomainError(f"Unsupported event type for reconstruction: {event_type}")

    def _next_half_inning(self) -> tuple[int, bool]:
        if self._is_top_half:
            return self._current_inning, False
        return self._current_inning + 1, True

    def _validate_game_in_progress(self, operation: str) -> None:
        if self._status != GameStatus.IN_PROGRESS:
            raise DomainError(
                f"Cannot {operation} when game is not in progress "
                f"(current status: {self._status.value})"
            )

    @staticmethod
    def _validate_runs_to_add(runs: Any) -> int:
        if isinstance(runs, bool) or not isinstance(runs, (int, float)):
            raise DomainError("Runs must be a valid number")
        if isinstance(runs, float):
            if math.isnan(runs):
                raise DomainError("Runs must be a valid number")
            if math.isinf(runs):
                raise DomainError("Runs must be a finite number")
        if runs <= 0:
            raise DomainError("Runs to add must be greater than zero")
        if isinstance(runs, float) and not runs.is_integer():
            raise DomainError("Runs must be an integer")
        return int(runs)
