# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""TeamLineup aggregate: batting order, defensive positions and substitutions.

Softball substitution rules enforced here:
- batting slots 1-20, one current player per slot
- jersey numbers and field positions unique within the team
  (EXTRA_PLAYER bats only and never holds a field position)
- an original starter who has been substituted out may re-enter once;
  substitutes never re-enter

Commands never mutate the receiver. Each one validates, then applies its
event to a copy and returns that copy.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Optional

from softball.config import is_replay_tolerated
from softball.errors import DomainError
from softball.events import (
    DomainEvent,
    FieldPosition,
    FieldPositionChanged,
    PlayerAddedToLineup,
    PlayerSubstitutedIntoGame,
    TeamLineupCreated,
)

logger = logging.getLogger(__name__)

MAX_BATTING_SLOT = 20
MAX_TEAM_NAME_LENGTH = 50
MAX_PLAYER_NAME_LENGTH = 100


# ---------------------------------------------------------------------------
# Batting slot value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SlotHistory:
    """One player's stint in a batting slot."""
    player_id: str
    entered_inning: int
    exited_inning: Optional[int] = None
    was_starter: bool = False
    is_reentry: bool = False

    def __post_init__(self) -> None:
        if self.entered_inning < 1:
            raise DomainError("Entered inning must be at least 1")
        if self.exited_inning is not None and self.exited_inning <= self.entered_inning:
            raise DomainError("Exited inning must be greater than entered inning")

    def is_currently_active(self) -> bool:
        return self.exited_inning is None

    def get_innings_played(self, current_inning: Optional[int] = None) -> int:
        """Innings in the slot: exit is exclusive, the current inning inclusive."""
        if self.exited_inning is not None:
            return self.exited_inning - self.entered_inning
        if current_inning is None:
            raise DomainError("Current inning must be provided for active players")
        return current_inning - self.entered_inning + 1


@dataclass(frozen=True)
class BattingSlot:
    """A batting order position with its current occupant and full history."""
    position: int
    current_player: str
    history: tuple[SlotHistory, ...]

    def __post_init__(self) -> None:
        if not 1 <= self.position <= MAX_BATTING_SLOT:
            raise DomainError("Batting position must be between 1 and 20")
        if not self.history:
            raise DomainError("Batting slot must have at least one history entry")
        if self._active_entry() is None:
            raise DomainError(
                "Current player must have an active history entry (no exit inning)"
            )

    @classmethod
    def create_with_starter(cls, position: int, starter_id: str) -> BattingSlot:
        starter = SlotHistory(starter_id, entered_inning=1, was_starter=True)
        return cls(position, starter_id, (starter,))

    def substitute_player(self, new_player_id: str, in_inning: int, is_reentry: bool) -> BattingSlot:
        current = self._active_entry()
        if in_inning <= current.entered_inning:
            raise DomainError("Cannot substitute in the same inning the current player entered")
        history = tuple(
            replace(entry, exited_inning=in_inning) if entry is current else entry
            for entry in self.history
        )
        incoming = SlotHistory(new_player_id, entered_inning=in_inning, is_reentry=is_reentry)
        return BattingSlot(self.position, new_player_id, history + (incoming,))

    def get_current_player(self) -> str:
        return self.current_player

    def get_history(self) -> list[SlotHistory]:
        return list(self.history)

    def was_player_starter(self, player_id: str) -> bool:
        return any(h.player_id == player_id and h.was_starter for h in self.history)

    def has_player_played(self, player_id: str) -> bool:
        return any(h.player_id == player_id for h in self.history)

    def get_player_history(self, player_id: str) -> list[SlotHistory]:
        return [h for h in self.history if h.player_id == player_id]

    def get_total_innings_played(self, player_id: str, current_inning: int) -> int:
        return sum(h.get_innings_played(current_inning) for h in self.get_player_history(player_id))

    def _active_entry(self) -> Optional[SlotHistory]:
        for entry in self.history:
            if entry.player_id == self.current_player and entry.is_currently_active():
                return entry
        return None


@dataclass(frozen=True)
class PlayerInfo:
    player_id: str
    jersey_number: str
    player_name: str
    current_position: Optional[FieldPosition]
    is_starter: bool
    has_been_substituted: bool
    has_used_reentry: bool
    current_batting_slot: Optional[int]


@dataclass(frozen=True)
class _Participation:
    player_id: str
    jersey_number: str
    player_name: str
    is_starter: bool
    current_position: Optional[FieldPosition] = None
    has_been_substituted: bool = False
    has_used_reentry: bool = False
    current_batting_slot: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.current_batting_slot is not None


def _defensive(position: FieldPosition) -> Optional[FieldPosition]:
    """EXTRA_PLAYER bats only, so it maps to no defensive position."""
    return None if position == FieldPosition.EXTRA_PLAYER else position


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _validate_identifier(value: object, label: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise DomainError(f"{label} cannot be null or empty")


def _validate_batting_slot(batting_slot: object) -> None:
    if isinstance(batting_slot, bool) or not isinstance(batting_slot, int):
        raise DomainError("Batting slot must be an integer")
    if not 1 <= batting_slot <= MAX_BATTING_SLOT:
        raise DomainError("Batting slot must be between 1 and 20")


def _validate_player_name(player_name: object) -> None:
    if not isinstance(player_name, str) or not player_name.strip():
        raise DomainError("Player name cannot be empty or whitespace")
    if len(player_name) > MAX_PLAYER_NAME_LENGTH:
        raise DomainError("Player name cannot exceed 100 characters")


def _validate_inning(inning: object) -> None:
    if isinstance(inning, bool) or not isinstance(inning, int):
        raise DomainError("Inning must be an integer")
    if inning < 1:
        raise DomainError("Inning must be 1 or greater")


def _field_position(position: FieldPosition | str) -> FieldPosition:
    try:
        return FieldPosition(position)
    except ValueError:
        raise DomainError(f"Invalid field position: {position!r}") from None


# ---------------------------------------------------------------------------
# TeamLineup aggregate
# ---------------------------------------------------------------------------

class TeamLineup:
    """One team's lineup for one game.

    Build with ``TeamLineup.create_new`` and chain commands, keeping the
    returned instance each time::

        lineup = TeamLineup.create_new("lineup-1", "game-1", "Tigers")
        lineup = lineup.add_player("p1", "12", "Ann Smith", 1, FieldPosition.PITCHER)
    """

    REQUIRED_POSITIONS = (
        FieldPosition.PITCHER,
        FieldPosition.CATCHER,
        FieldPosition.FIRST_BASE,
        FieldPosition.SECOND_BASE,
        FieldPosition.THIRD_BASE,
        FieldPosition.SHORTSTOP,
        FieldPosition.LEFT_FIELD,
        FieldPosition.CENTER_FIELD,
        FieldPosition.RIGHT_FIELD,
    )

    def __init__(self, team_lineup_id: str, game_id: str, team_name: str):
        self._id = team_lineup_id
        self._game_id = game_id
        self._team_name = team_name
        self._batting_slots: dict[int, BattingSlot] = {}
        self._field_positions: dict[FieldPosition, str] = {}
        self._players: dict[str, _Participation] = {}
        self._jersey_assignments: dict[str, str] = {}
        self._uncommitted_events: list[DomainEvent] = []
        self._version = 0

    @property
    def id(self) -> str:
        return self._id

    @property
    def game_id(self) -> str:
        return self._game_id

    @property
    def team_name(self) -> str:
        return self._team_name

    # -- commands ---------------------------------------------------------

    @classmethod
    def create_new(cls, team_lineup_id: str, game_id: str, team_name: str) -> TeamLineup:
        _validate_identifier(team_lineup_id, "TeamLineupId")
        _validate_identifier(game_id, "GameId")
        if not isinstance(team_name, str) or not team_name.strip():
            raise DomainError("Team name cannot be empty or whitespace")
        if len(team_name) > MAX_TEAM_NAME_LENGTH:
            raise DomainError("Team name cannot exceed 50 characters")

        lineup = cls(team_lineup_id, game_id, team_name)
        lineup._append(
            TeamLineupCreated(game_id=game_id, team_lineup_id=team_lineup_id, team_name=team_name)
        )
        return lineup

    def add_player(
        self,
        player_id: str,
        jersey_number: str,
        player_name: str,
        batting_slot: int,
        field_position: FieldPosition | str,
    ) -> TeamLineup:
        """Add a starter to an empty batting slot."""
        _validate_identifier(player_id, "PlayerId")
        _validate_identifier(jersey_number, "Jersey number")
        _validate_batting_slot(batting_slot)
        _validate_player_name(player_name)
        field_position = _field_position(field_position)

        self._check_can_add(player_id, jersey_number, batting_slot, field_position)

        return self._with_event(
            PlayerAddedToLineup(
                game_id=self._game_id,
                team_lineup_id=self._id,
                player_id=player_id,
                jersey_number=jersey_number,
                player_name=player_name,
                batting_slot=batting_slot,
                field_position=field_position,
            )
        )

    def substitute_player(
        self,
        batting_slot: int,
        outgoing_player_id: str,
        incoming_player_id: str,
        incoming_jersey_number: str,
        incoming_player_name: str,
        field_position: FieldPosition | str,
        inning: int,
        is_reentry: bool = False,
    ) -> TeamLineup:
        """Replace the player in ``batting_slot``.

        Set ``is_reentry`` when an original starter returns to the game; each
        starter gets exactly one re-entry.
        """
        _validate_batting_slot(batting_slot)
        _validate_player_name(incoming_player_name)
        _validate_inning(inning)
        _validate_identifier(incoming_player_id, "PlayerId")
        _validate_identifier(incoming_jersey_number, "Jersey number")
        field_position = _field_position(field_position)

        self._check_can_substitute(
            batting_slot,
            outgoing_player_id,
            incoming_player_id,
            incoming_jersey_number,
            field_position,
            inning,
            is_reentry,
        )

        return self._with_event(
            PlayerSubstitutedIntoGame(
                game_id=self._game_id,
                team_lineup_id=self._id,
                batting_slot=batting_slot,
                outgoing_player_id=outgoing_player_id,
                incoming_player_id=incoming_player_id,
                incoming_jersey_number=incoming_jersey_number,
                incoming_player_name=incoming_player_name,
                field_position=field_position,
                inning=inning,
                is_reentry=is_reentry,
            )
        )

    def change_position(
        self, player_id: str, new_position: FieldPosition | str, inning: int
    ) -> TeamLineup:
        """Move an active player to another defensive position (or to EP)."""
        _validate_inning(inning)
        new_position = _field_position(new_position)

        current = self._check_can_change_position(player_id, new_position)

        return self._with_event(
            FieldPositionChanged(
                game_id=self._game_id,
                team_lineup_id=self._id,
                player_id=player_id,
                from_position=current,
                to_position=new_position,
                inning=inning,
            )
        )

    # -- rule checks ------------------------------------------------------
    # Run by both commands and replay.

    def _check_can_add(
        self,
        player_id: str,
        jersey_number: str,
        batting_slot: int,
        field_position: FieldPosition,
    ) -> None:
        if batting_slot in self._batting_slots:
            raise DomainError(f"Batting slot {batting_slot} is already occupied")
        if jersey_number in self._jersey_assignments:
            raise DomainError(f"Jersey number {jersey_number} is already assigned")
        if player_id in self._players:
            raise DomainError("Player is already in the lineup")
        if _defensive(field_position) and field_position in self._field_positions:
            raise DomainError(f"Field position {field_position.value} is already assigned")

    def _check_can_substitute(
        self,
        batting_slot: int,
        outgoing_player_id: str,
        incoming_player_id: str,
        incoming_jersey_number: str,
        field_position: FieldPosition,
        inning: int,
        is_reentry: bool,
    ) -> None:
        slot = self._batting_slots.get(batting_slot)
        if slot is None:
            raise DomainError(f"Batting slot {batting_slot} is not occupied")
        if slot.get_current_player() != outgoing_player_id:
            raise DomainError(f"Player {outgoing_player_id} is not in batting slot {batting_slot}")

        incoming = self._players.get(incoming_player_id)
        if incoming is not None and incoming.is_active:
            raise DomainError("Incoming player is already in the lineup")

        jersey_holder = self._jersey_assignments.get(incoming_jersey_number)
        if jersey_holder is not None and jersey_holder != incoming_player_id:
            raise DomainError(f"Jersey number {incoming_jersey_number} is already assigned")

        if _defensive(field_position):
            position_holder = self._field_positions.get(field_position)
            if position_holder is not None and position_holder not in (
                incoming_player_id,
                outgoing_player_id,
            ):
                raise DomainError(f"Field position {field_position.value} is already occupied")

        if is_reentry:
            if incoming is None:
                raise DomainError("Cannot mark substitution as re-entry for player not in team history")
            if not incoming.is_starter:
                raise DomainError("Only original starters are eligible for re-entry")
            if incoming.has_used_reentry:
                raise DomainError("Player has already used their re-entry privilege")
            if not incoming.has_been_substituted:
                raise DomainError("Player must have been previously substituted to re-enter")
        elif incoming is not None and incoming.has_been_substituted:
            if not incoming.is_starter:
                raise DomainError("Non-starter players cannot re-enter the game")
            raise DomainError("Returning starters must be substituted as a re-entry")

        # Slot history rejects an inning not after the outgoing player's entry.
        slot.substitute_player(incoming_player_id, inning, is_reentry)

    def _check_can_change_position(
        self, player_id: str, new_position: FieldPosition
    ) -> FieldPosition:
        """Return the player's current position (EP when none)."""
        player = self._players.get(player_id)
        if player is None or not player.is_active:
            raise DomainError("Player is not currently in the lineup")
        current = player.current_position or FieldPosition.EXTRA_PLAYER
        if current == new_position:
            raise DomainError("Player is already in the specified position")
        if _defensive(new_position) and new_position in self._field_positions:
            raise DomainError(f"Field position {new_position.value} is already occupied")
        return current

    # -- queries ----------------------------------------------------------

    def get_active_lineup(self) -> list[BattingSlot]:
        return [self._batting_slots[n] for n in sorted(self._batting_slots)]

    def get_fielding_positions(self) -> dict[FieldPosition, str]:
        return dict(self._field_positions)

    def get_player_info(self, player_id: str) -> Optional[PlayerInfo]:
        player = self._players.get(player_id)
        if player is None:
            return None
        return PlayerInfo(
            player_id=player.player_id,
            jersey_number=player.jersey_number,
            player_name=player.player_name,
            current_position=player.current_position,
            is_starter=player.is_starter,
            has_been_substituted=player.has_been_substituted,
            has_used_reentry=player.has_used_reentry,
            current_batting_slot=player.current_batting_slot,
        )

    def is_player_eligible_for_reentry(self, player_id: str) -> bool:
        player = self._players.get(player_id)
        if player is None:
            return False
        return (
            player.is_starter
            and player.has_been_substituted
            and not player.has_used_reentry
            and not player.is_active
        )

    def is_lineup_valid(self) -> bool:
        """All nine required defensive positions filled and someone batting."""
        positions_covered = all(p in self._field_positions for p in self.REQUIRED_POSITIONS)
        return positions_covered and bool(self._batting_slots)

    def get_uncommitted_events(self) -> list[DomainEvent]:
        return list(self._uncommitted_events)

    def mark_events_as_committed(self) -> None:
        self._uncommitted_events = []

    def get_version(self) -> int:
        return self._version

    # -- reconstruction ---------------------------------------------------

    @classmethod
    def from_events(cls, events: Iterable[DomainEvent]) -> TeamLineup:
        events = list(events or [])
        if not events:
            raise DomainError("Cannot reconstruct team lineup from empty event array")
        first = events[0]
        if not isinstance(first, TeamLineupCreated):
            raise DomainError("First event must be TeamLineupCreated")
        for event in events:
            if getattr(event, "game_id", None) != first.game_id:
                raise DomainError("All events must belong to the same game")
            if getattr(event, "team_lineup_id", first.team_lineup_id) != first.team_lineup_id:
                raise DomainError("All events must belong to the same team lineup")

        lineup = cls(first.team_lineup_id, first.game_id, first.team_name)
        for event in events[1:]:
            lineup._apply(event)
        lineup._version = len(events)
        logger.debug("Rebuilt team lineup %s from %d events", lineup.id, len(events))
        return lineup

    # -- internals --------------------------------------------------------

    def _with_event(self, event: DomainEvent) -> TeamLineup:
        lineup = self._copy()
        lineup._apply(event)
        lineup._append(event)
        return lineup

    def _copy(self) -> TeamLineup:
        clone = copy.copy(self)
        clone._batting_slots = dict(self._batting_slots)
        clone._field_positions = dict(self._field_positions)
        clone._players = dict(self._players)
        clone._jersey_assignments = dict(self._jersey_assignments)
        clone._uncommitted_events = list(self._uncommitted_events)
        return clone

    def _append(self, event: DomainEvent) -> None:
        self._uncommitted_events.append(event)
        self._version += 1

    def _apply(self, event: DomainEvent) -> None:
        match event:
            case PlayerAddedToLineup():
                self._apply_player_added(event)
            case PlayerSubstitutedIntoGame():
                self._apply_substitution(event)
            case FieldPositionChanged():
                self._apply_position_change(event)
            case _:
                event_type = getattr(event, "type", type(event).__name__)
                if is_replay_tolerated(event_type):
                    logger.debug("Skipping allowlisted event %s for lineup %s", event_type, self._id)
                    return
                raise DomainError(f"Unsupported event type for reconstruction: {event_type}")

    def _apply_player_added(self, event: PlayerAddedToLineup) -> None:
        self._check_can_add(
            event.player_id, event.jersey_number, event.batting_slot, event.field_position
        )
        position = _defensive(event.field_position)
        self._batting_slots[event.batting_slot] = BattingSlot.create_with_starter(
            event.batting_slot, event.player_id
        )
        if position:
            self._field_positions[position] = event.player_id
        self._players[event.player_id] = _Participation(
            player_id=event.player_id,
            jersey_number=event.jersey_number,
            player_name=event.player_name,
            is_starter=True,
            current_position=position,
            current_batting_slot=event.batting_slot,
        )
        self._jersey_assignments[event.jersey_number] = event.player_id

    def _apply_substitution(self, event: PlayerSubstitutedIntoGame) -> None:
        self._check_can_substitute(
            event.batting_slot,
            event.outgoing_player_id,
            event.incoming_player_id,
            event.incoming_jersey_number,
            event.field_position,
            event.inning,
            event.is_reentry,
        )
        slot = self._batting_slots[event.batting_slot]
        self._batting_slots[event.batting_slot] = slot.substitute_player(
            event.incoming_player_id, event.inning, event.is_reentry
        )

        outgoing = self._players[event.outgoing_player_id]
        if outgoing.current_position:
            self._field_positions.pop(outgoing.current_position, None)
        self._players[event.outgoing_player_id] = replace(
            outgoing,
            current_position=None,
            has_been_substituted=True,
            current_batting_slot=None,
        )

        position = _defensive(event.field_position)
        if position:
            self._field_positions[position] = event.incoming_player_id

        incoming = self._players.get(event.incoming_player_id)
        if incoming is None:
            incoming = _Participation(
                player_id=event.incoming_player_id,
                jersey_number=event.incoming_jersey_number,
                player_name=event.incoming_player_name,
                is_starter=False,
            )
        self._players[event.incoming_player_id] = replace(
            incoming,
            current_position=position,
            has_used_reentry=incoming.has_used_reentry or event.is_reentry,
            current_batting_slot=event.batting_slot,
        )
        self._jersey_assignments[event.incoming_jersey_number] = event.incoming_player_id

        if event.is_reentry:
            logger.info(
                "Player %s re-entered %s in slot %d (inning %d)",
                event.incoming_player_id, self._team_name, event.batting_slot, event.inning,
            )

    def _apply_position_change(self, event: FieldPositionChanged) -> None:
        self._check_can_change_position(event.player_id, event.to_position)
        player = self._players[event.player_id]
        if player.current_position:
            self._field_positions.pop(player.current_position, None)
        position = _defensive(event.to_position)
        if position:
            self._field_positions[position] = event.player_id
        self._players[event.player_id] = replace(player, current_position=position)
