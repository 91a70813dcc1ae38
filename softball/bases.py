# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Base occupancy value object used by the InningState aggregate."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from softball.events import HOME, Base

_FIELD_FOR_BASE = {Base.FIRST: "first", Base.SECOND: "second", Base.THIRD: "third"}


@dataclass(frozen=True)
class BasesState:
    """Which player, if any, occupies each base.

    Immutable: every ``with_*`` method returns a new instance.
    """
    first: Optional[str] = None
    second: Optional[str] = None
    third: Optional[str] = None

    @classmethod
    def empty(cls) -> BasesState:
        return cls()

    def get_runner(self, base: Base) -> Optional[str]:
        return getattr(self, _FIELD_FOR_BASE[Base(base)])

    def with_runner_on(self, base: Base, player_id: str) -> BasesState:
        return replace(self, **{_FIELD_FOR_BASE[Base(base)]: player_id})

    def with_runner_removed(self, base: Base) -> BasesState:
        return replace(self, **{_FIELD_FOR_BASE[Base(base)]: None})

    def with_runner_advanced(self, from_base: Base, to_base: Base | str) -> BasesState:
        """Move the runner on ``from_base`` to ``to_base`` (or off the field).

        Moving to HOME removes the runner. An empty ``from_base`` leaves the
        state unchanged.
        """
        runner = self.get_runner(from_base)
        if runner is None:
            return self
        moved = self.with_runner_removed(from_base)
        if to_base == HOME:
            return moved
        return moved.with_runner_on(Base(to_base), runner)

    def with_bases_cleared(self) -> BasesState:
        return BasesState.empty()

    def get_occupied_bases(self) -> list[Base]:
        return [base for base in (Base.FIRST, Base.SECOND, Base.THIRD) if self.get_runner(base)]

    def get_runners_in_scoring_position(self) -> list[str]:
        return [r for r in (self.second, self.third) if r is not None]

    def find_base_of(self, player_id: str) -> Optional[Base]:
        for base in self.get_occupied_bases():
            if self.get_runner(base) == player_id:
                return base
        return None

    def is_force_at(self, base: Base) -> bool:
        """True if a runner on ``base`` would be forced by a batter reaching first."""
        base = Base(base)
        if base == Base.FIRST:
            return self.first is not None
        if base == Base.SECOND:
            return self.first is not None and self.second is not None
        return self.first is not None and self.second is not None and self.third is not None

    def is_empty(self) -> bool:
        return not self.get_occupied_bases()

    def bases_string(self) -> str:
        """Return base state string like '110' for runners on 1st and 2nd."""
        return "".join("1" if self.get_runner(b) else "0" for b in (Base.FIRST, Base.SECOND, Base.THIRD))
