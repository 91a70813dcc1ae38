# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""InningState aggregate: bases, outs and batting order within a half-inning.

``record_at_bat`` turns a plate appearance into events:

    AtBatCompleted -> base movements (RunnerAdvanced / RunScored)
                   -> CurrentBatterChanged
                   -> HalfInningEnded [+ InningAdvanced] on the third out

Hits place only the batter. Runners already on base are moved by the caller
through ``advance_runners`` so that the scorer's actual call is recorded
rather than a guess. Walks are the exception: forced runners move
automatically.

Like TeamLineup, every command returns a new InningState.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

from softball.bases import BasesState
from softball.config import is_replay_tolerated
from softball.errors import DomainError
from softball.events import (
    HOME,
    OUT,
    AdvanceReason,
    AtBatCompleted,
    AtBatResultType,
    Base,
    CurrentBatterChanged,
    DomainEvent,
    HalfInningEnded,
    InningAdvanced,
    InningStateCreated,
    RunnerAdvanced,
    RunScored,
    TeamSide,
)

logger = logging.getLogger(__name__)

OUTS_PER_HALF_INNING = 3

# Outs charged by the at-bat itself; runner outs come from advance_runners.
OUTS_FOR_RESULT = {
    AtBatResultType.STRIKEOUT: 1,
    AtBatResultType.GROUND_OUT: 1,
    AtBatResultType.FLY_OUT: 1,
    AtBatResultType.SACRIFICE_FLY: 1,
    AtBatResultType.FIELDERS_CHOICE: 1,
    AtBatResultType.DOUBLE_PLAY: 2,
    AtBatResultType.TRIPLE_PLAY: 3,
}

HIT_DESTINATIONS = {
    AtBatResultType.SINGLE: Base.FIRST,
    AtBatResultType.DOUBLE: Base.SECOND,
    AtBatResultType.TRIPLE: Base.THIRD,
}

ADVANCE_REASON_FOR_RESULT = {
    AtBatResultType.SINGLE: AdvanceReason.HIT,
    AtBatResultType.DOUBLE: AdvanceReason.HIT,
    AtBatResultType.TRIPLE: AdvanceReason.HIT,
    AtBatResultType.HOME_RUN: AdvanceReason.HIT,
    AtBatResultType.WALK: AdvanceReason.WALK,
    AtBatResultType.ERROR: AdvanceReason.ERROR,
    AtBatResultType.FIELDERS_CHOICE: AdvanceReason.FIELDERS_CHOICE,
    AtBatResultType.SACRIFICE_FLY: AdvanceReason.SACRIFICE,
}


@dataclass(frozen=True)
class RunnerMovement:
    """One runner's move: ``from_base=None`` puts the batter (or a new runner) on base."""
    runner_id: str
    from_base: Optional[Base]
    to_base: Base | str  # a Base, HOME or OUT


@dataclass(frozen=True)
class InningGameSituation:
    inning: int
    is_top_half: bool
    outs: int
    current_batting_slot: int
    bases_state: BasesState
    runners_in_scoring_position: tuple[str, ...]


def _next_batting_slot(current_slot: int) -> int:
    # Slots 1-9 cycle as a standard lineup, anything above as an extended one.
    max_slot = 9 if current_slot <= 9 else 20
    return 1 if current_slot >= max_slot else current_slot + 1


def _coerce_result(result: AtBatResultType | str) -> AtBatResultType:
    try:
        return AtBatResultType(result)
    except ValueError:
        raise DomainError(f"Invalid at-bat result: {result}") from None


def _coerce_origin(from_base: Optional[Base | str]) -> Optional[Base]:
    if from_base is None:
        return None
    try:
        return Base(from_base)
    except ValueError:
        raise DomainError(f"Invalid runner origin: {from_base}") from None


def _coerce_destination(to_base: Base | str) -> Base | str:
    if to_base in (HOME, OUT):
        return str(to_base)
    try:
        return Base(to_base)
    except ValueError:
        raise DomainError(f"Invalid runner destination: {to_base}") from None


class InningState:
    """Play-by-play state of the half-inning currently being played."""

    def __init__(self, inning_state_id: str, game_id: str):
        self._id = inning_state_id
        self._game_id = game_id
        self._inning = 1
        self._is_top_half = True
        self._outs = 0
        self._current_batting_slot = 1
        self._bases = BasesState.empty()
        self._uncommitted_events: list[DomainEvent] = []
        self._version = 0

    @property
    def id(self) -> str:
        return self._id

    @property
    def game_id(self) -> str:
        return self._game_id

    @property
    def inning(self) -> int:
        return self._inning

    @property
    def is_top_half(self) -> bool:
        return self._is_top_half

    @property
    def outs(self) -> int:
        return self._outs

    @property
    def current_batting_slot(self) -> int:
        return self._current_batting_slot

    @property
    def bases_state(self) -> BasesState:
        return self._bases

    # -- commands ---------------------------------------------------------

    @classmethod
    def create_new(cls, inning_state_id: str, game_id: str) -> InningState:
        for value, label in ((inning_state_id, "InningStateId"), (game_id, "GameId")):
            if not isinstance(value, str) or not value.strip():
                raise DomainError(f"{label} cannot be null or empty")
        state = cls(inning_state_id, game_id)
        state._append(
            InningStateCreated(
                game_id=game_id, inning_state_id=inning_state_id, inning=1, is_top_half=True
            )
        )
        return state

    def record_at_bat(
        self,
        batter_id: str,
        batting_slot: int,
        result: AtBatResultType | str,
        inning: int,
    ) -> InningState:
        """Record the current batter's plate appearance.

        The batter must bat in the current slot. The batting order then moves
        to the next slot, and a third out ends the half-inning.

        A hit places the batter without moving anyone: a runner already on
        the batter's destination base is replaced with no event recorded.
        Clear that base with ``advance_runners`` before recording the hit.
        """
        if not isinstance(batter_id, str) or not batter_id.strip():
            raise DomainError("BatterId cannot be null or empty")
        if isinstance(batting_slot, bool) or not isinstance(batting_slot, int) or not 1 <= batting_slot <= 20:
            raise DomainError("Batting slot must be an integer between 1 and 20")
        if batting_slot != self._current_batting_slot:
            raise DomainError(
                f"Batting slot {batting_slot} does not match current batter slot "
                f"{self._current_batting_slot}"
            )
        result = _coerce_result(result)
        if isinstance(inning, bool) or not isinstance(inning, int) or inning < 1:
            raise DomainError("Inning must be an integer of 1 or greater")

        state = self._copy()
        state._record(
            AtBatCompleted(
                game_id=self._game_id,
                batter_id=batter_id,
                batting_slot=batting_slot,
                result=result,
                inning=inning,
                outs_before=self._outs,
            )
        )
        state._record_batter_outcome(batter_id, result)
        next_slot = _next_batting_slot(batting_slot)
        state._record(
            CurrentBatterChanged(
                game_id=self._game_id,
                previous_batting_slot=batting_slot,
                new_batting_slot=next_slot,
                inning=state._inning,
                is_top_half=state._is_top_half,
            )
        )
        if state._outs >= OUTS_PER_HALF_INNING:
            state._record_half_inning_end()
        return state

    def advance_runners(
        self, result: AtBatResultType | str, movements: Sequence[RunnerMovement]
    ) -> InningState:
        """Apply explicit runner movements in order.

        Movements are applied one at a time, so a runner can move into a base
        vacated by an earlier movement in the same call.
        """
        reason = ADVANCE_REASON_FOR_RESULT.get(_coerce_result(result), AdvanceReason.HIT)

        state = self._copy()
        for movement in movements:
            if state._outs >= OUTS_PER_HALF_INNING:
                raise DomainError("Cannot move runners after the third out")
            state._record_movement(movement, reason)
        if state._outs >= OUTS_PER_HALF_INNING:
            state._record_half_inning_end()
        return state

    def end_half_inning(self) -> InningState:
        """Close the current half-inning: outs 0, leadoff slot, empty bases."""
        state = self._copy()
        state._record_half_inning_end()
        return state

    # -- queries ----------------------------------------------------------

    def get_current_situation(self) -> InningGameSituation:
        return InningGameSituation(
            inning=self._inning,
            is_top_half=self._is_top_half,
            outs=self._outs,
            current_batting_slot=self._current_batting_slot,
            bases_state=self._bases,
            runners_in_scoring_position=tuple(self._bases.get_runners_in_scoring_position()),
        )

    def get_uncommitted_events(self) -> list[DomainEvent]:
        return list(self._uncommitted_events)

    def mark_events_as_committed(self) -> None:
        self._uncommitted_events = []

    def get_version(self) -> int:
        return self._version

    # -- reconstruction ---------------------------------------------------

    @classmethod
    def from_events(cls, events: Iterable[DomainEvent]) -> InningState:
        events = list(events or [])
        if not events:
            raise DomainError("Cannot reconstruct inning state from empty event array")
        first = events[0]
        if not isinstance(first, InningStateCreated):
            raise DomainError("First event must be InningStateCreated")
        for event in events:
            if getattr(event, "game_id", None) != first.game_id:
                raise DomainError("All events must belong to the same game")

        state = cls(first.inning_state_id, first.game_id)
        state._inning = first.inning
        state._is_top_half = first.is_top_half
        for event in events[1:]:
            state._apply(event)
        state._version = len(events)
        logger.debug("Rebuilt inning state %s from %d events", state.id, len(events))
        return state

    # -- event producers --------------------------------------------------

    def _record_batter_outcome(self, batter_id: str, result: AtBatResultType) -> None:
        if result in HIT_DESTINATIONS:
            self._record_advance(batter_id, None, HIT_DESTINATIONS[result], AdvanceReason.HIT)
        elif result == AtBatResultType.HOME_RUN:
            for base in self._bases.get_occupied_bases():
                runner = self._bases.get_runner(base)
                self._record_advance(runner, base, HOME, AdvanceReason.HIT)
                self._record_run(runner, rbi_credited_to=batter_id)
            self._record_advance(batter_id, None, HOME, AdvanceReason.HIT)
            self._record_run(batter_id, rbi_credited_to=batter_id)
        elif result == AtBatResultType.WALK:
            self._record_walk(batter_id)
        elif result == AtBatResultType.SACRIFICE_FLY:
            runner = self._bases.third
            if runner is not None:
                self._record_advance(runner, Base.THIRD, HOME, AdvanceReason.SACRIFICE)
                self._record_run(runner, rbi_credited_to=batter_id)
        elif result == AtBatResultType.ERROR:
            self._record_advance(batter_id, None, Base.FIRST, AdvanceReason.HIT)
        elif result == AtBatResultType.FIELDERS_CHOICE:
            self._record_advance(batter_id, None, Base.FIRST, AdvanceReason.FIELDERS_CHOICE)
        # Strikeouts, ground/fly outs and double/triple plays have no base
        # movement beyond what AtBatCompleted applies.

    def _record_walk(self, batter_id: str) -> None:
        bases = self._bases
        if bases.first and bases.second and bases.third:
            self._record_advance(bases.third, Base.THIRD, HOME, AdvanceReason.FORCE)
            self._record_run(bases.third, rbi_credited_to=batter_id)
        if bases.first and bases.second:
            self._record_advance(bases.second, Base.SECOND, Base.THIRD, AdvanceReason.FORCE)
        if bases.first:
            self._record_advance(bases.first, Base.FIRST, Base.SECOND, AdvanceReason.FORCE)
        self._record_advance(batter_id, None, Base.FIRST, AdvanceReason.WALK)

    def _record_movement(self, movement: RunnerMovement, reason: AdvanceReason) -> None:
        runner_id = movement.runner_id
        if not isinstance(runner_id, str) or not runner_id.strip():
            raise DomainError("Runner ID cannot be null or empty")
        from_base = _coerce_origin(movement.from_base)
        to_base = _coerce_destination(movement.to_base)

        if from_base is not None and self._bases.get_runner(from_base) != runner_id:
            raise DomainError(f"Runner {runner_id} is not on {from_base.value}")
        if from_base is None:
            current_base = self._bases.find_base_of(runner_id)
            if current_base is not None:
                raise DomainError(f"Runner {runner_id} is already on {current_base.value}")
        if isinstance(to_base, Base) and self._bases.get_runner(to_base) is not None:
            raise DomainError(f"Base {to_base.value} is already occupied")

        self._record_advance(runner_id, from_base, to_base, reason)
        if to_base == HOME:
            self._record_run(runner_id, rbi_credited_to=None)

    def _record_advance(
        self,
        runner_id: str,
        from_base: Optional[Base],
        to_base: Base | str,
        reason: AdvanceReason,
    ) -> None:
        self._record(
            RunnerAdvanced(
                game_id=self._game_id,
                runner_id=runner_id,
                from_base=from_base,
                to_base=to_base,
                reason=reason,
            )
        )

    def _record_run(self, scorer_id: str, rbi_credited_to: Optional[str]) -> None:
        self._record(
            RunScored(
                game_id=self._game_id,
                scorer_id=scorer_id,
                batting_team=TeamSide.AWAY if self._is_top_half else TeamSide.HOME,
                rbi_credited_to=rbi_credited_to,
            )
        )

    def _record_half_inning_end(self) -> None:
        was_top_half = self._is_top_half
        self._record(
            HalfInningEnded(
                game_id=self._game_id,
                inning=self._inning,
                was_top_half=was_top_half,
                final_outs=self._outs,
            )
        )
        if not was_top_half:
            self._record(
                InningAdvanced(game_id=self._game_id, new_inning=self._inning, is_top_half=True)
            )

    # -- internals --------------------------------------------------------

    def _copy(self) -> InningState:
        clone = copy.copy(self)
        clone._uncommitted_events = list(self._uncommitted_events)
        return clone

    def _record(self, event: DomainEvent) -> None:
        self._apply(event)
        self._uncommitted_events.append(event)
        self._version += 1

    def _append(self, event: DomainEvent) -> None:
        self._uncommitted_events.append(event)
        self._version += 1

    def _apply(self, event: DomainEvent) -> None:
        match event:
            case AtBatCompleted():
                self._outs = event.outs_before + OUTS_FOR_RESULT.get(event.result, 0)
                if event.result in (AtBatResultType.DOUBLE_PLAY, AtBatResultType.TRIPLE_PLAY):
                    self._bases = self._bases.with_bases_cleared()
                elif event.result == AtBatResultType.FIELDERS_CHOICE:
                    # The runner forced at second is the one retired.
                    self._bases = self._bases.with_runner_removed(Base.FIRST)
            case RunnerAdvanced():
                self._apply_runner_advanced(event)
            case RunScored():
                pass
            case CurrentBatterChanged():
                self._current_batting_slot = event.new_batting_slot
            case HalfInningEnded():
                self._outs = 0
                self._current_batting_slot = 1
                self._bases = BasesState.empty()
                if event.was_top_half:
                    self._is_top_half = False
                else:
                    self._inning = event.inning + 1
                    self._is_top_half = True
                logger.info(
                    "Half-inning ended: %s of inning %d with %d outs",
                    "top" if event.was_top_half else "bottom", event.inning, event.final_outs,
                )
            case InningAdvanced():
                self._inning = event.new_inning
                self._is_top_half = event.is_top_half
            case _:
                event_type = getattr(event, "type", type(event).__name__)
                if is_replay_tolerated(event_type):
                    logger.debug("Skipping allowlisted event %s for inning state %s", event_type, self._id)
                    return
                raise DomainError(f"Unsupported event type for reconstruction: {event_type}")

    def _apply_runner_advanced(self, event: RunnerAdvanced) -> None:
        if event.to_base == OUT:
            if event.from_base is not None:
                self._bases = self._bases.with_runner_removed(event.from_base)
            self._outs += 1
        elif event.to_base == HOME:
            if event.from_base is not None:
                self._bases = self._bases.with_runner_removed(event.from_base)
        elif event.from_base is not None:
            self._bases = self._bases.with_runner_advanced(event.from_base, event.to_base)
        else:
            self._bases = self._bases.with_runner_on(event.to_base, event.runner_id)
