# /// script
# requires-python = ">=3.12"
# dependencies = ["pytest>=7.0", "pydantic>=2.0"]
# ///
"""Tests for the TeamLineup aggregate.

Validates:
  1. Lineup creation and adding starters (slot, jersey, player, position rules)
  2. Substitutions, slot history and field-position hand-off
  3. Starter re-entry rules (once, only after being substituted, starters only)
  4. Position changes, including moves to and from EXTRA_PLAYER
  5. Copy-on-write: commands never change the receiver
  6. from_events replay
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from softball.config import REPLAY_ALLOWLIST_ENV
from softball.errors import DomainError
from softball.events import (
    FieldPosition,
    FieldPositionChanged,
    GameStarted,
    PlayerAddedToLineup,
    PlayerSubstitutedIntoGame,
    TeamLineupCreated,
)
from softball.team_lineup import BattingSlot, PlayerInfo, SlotHistory, TeamLineup


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

STARTING_POSITIONS = [
    FieldPosition.PITCHER,
    FieldPosition.CATCHER,
    FieldPosition.FIRST_BASE,
    FieldPosition.SECOND_BASE,
    FieldPosition.THIRD_BASE,
    FieldPosition.SHORTSTOP,
    FieldPosition.LEFT_FIELD,
    FieldPosition.CENTER_FIELD,
    FieldPosition.RIGHT_FIELD,
]


def make_lineup(lineup_id="lineup-1", game_id="game-1", team_name="Springfield Tigers"):
    return TeamLineup.create_new(lineup_id, game_id, team_name)


def make_full_lineup():
    """Nine starters p1..p9 wearing jerseys 1..9, one per required position."""
    lineup = make_lineup()
    for slot, position in enumerate(STARTING_POSITIONS, start=1):
        lineup = lineup.add_player(f"p{slot}", str(slot), f"Player {slot}", slot, position)
    return lineup


def substitute(lineup, slot, outgoing, incoming, inning, position=None, jersey=None, is_reentry=False):
    return lineup.substitute_player(
        slot,
        outgoing,
        incoming,
        jersey or incoming.replace("p", "") + "0",
        f"Name {incoming}",
        position or FieldPosition.EXTRA_PLAYER,
        inning,
        is_reentry,
    )


def observable(lineup, player_ids):
    return (
        lineup.id,
        lineup.game_id,
        lineup.team_name,
        lineup.get_active_lineup(),
        lineup.get_fielding_positions(),
        {pid: lineup.get_player_info(pid) for pid in player_ids},
        lineup.get_version(),
    )


# ---------------------------------------------------------------------------
# Slot value objects
# ---------------------------------------------------------------------------

class TestBattingSlot:
    def test_create_with_starter(self):
        slot = BattingSlot.create_with_starter(4, "p4")
        assert slot.get_current_player() == "p4"
        assert slot.get_history() == [SlotHistory("p4", 1, None, True, False)]
        assert slot.was_player_starter("p4")

    def test_substitution_closes_previous_stint(self):
        slot = BattingSlot.create_with_starter(4, "p4").substitute_player("p10", 3, False)
        first, second = slot.get_history()
        assert first.exited_inning == 3
        assert second == SlotHistory("p10", 3, None, False, False)
        assert slot.has_player_played("p4")
        assert not slot.was_player_starter("p10")

    def test_same_inning_substitution_rejected(self):
        slot = BattingSlot.create_with_starter(4, "p4").substitute_player("p10", 3, False)
        with pytest.raises(DomainError, match="same inning"):
            slot.substitute_player("p11", 3, False)

    def test_innings_played(self):
        slot = (
            BattingSlot.create_with_starter(1, "p1")
            .substitute_player("p10", 3, False)
            .substitute_player("p1", 6, True)
        )
        assert slot.get_total_innings_played("p1", current_inning=7) == 2 + 2
        assert slot.get_total_innings_played("p10", current_inning=7) == 3
        assert slot.get_total_innings_played("nobody", current_inning=7) == 0

    def test_slot_range(self):
        with pytest.raises(DomainError, match="between 1 and 20"):
            BattingSlot.create_with_starter(21, "p1")

    def test_exit_must_follow_entry(self):
        with pytest.raises(DomainError, match="Exited inning must be greater"):
            SlotHistory("p1", 4, 4)


# ---------------------------------------------------------------------------
# Creation and adding starters
# ---------------------------------------------------------------------------

class TestCreateNew:
    def test_initial_state(self):
        lineup = make_lineup()
        assert lineup.get_active_lineup() == []
        assert lineup.get_fielding_positions() == {}
        assert lineup.get_version() == 1
        event = lineup.get_uncommitted_events()[0]
        assert isinstance(event, TeamLineupCreated)
        assert (event.team_lineup_id, event.game_id, event.team_name) == (
            "lineup-1",
            "game-1",
            "Springfield Tigers",
        )

    @pytest.mark.parametrize("name", ["", "   "])
    def test_rejects_blank_team_name(self, name):
        with pytest.raises(DomainError, match="Team name cannot be empty or whitespace"):
            make_lineup(team_name=name)

    def test_rejects_long_team_name(self):
        with pytest.raises(DomainError, match="Team name cannot exceed 50 characters"):
            make_lineup(team_name="T" * 51)

    def test_accepts_fifty_character_name(self):
        assert make_lineup(team_name="T" * 50).team_name == "T" * 50

    def test_rejects_missing_ids(self):
        with pytest.raises(DomainError, match="TeamLineupId"):
            make_lineup(lineup_id="")
        with pytest.raises(DomainError, match="GameId"):
            make_lineup(game_id=None)


class TestAddPlayer:
    def test_adds_starter(self):
        lineup = make_lineup().add_player("p1", "12", "Ann Smith", 1, FieldPosition.PITCHER)
        assert lineup.get_fielding_positions() == {FieldPosition.PITCHER: "p1"}
        assert lineup.get_active_lineup()[0].get_current_player() == "p1"
        info = lineup.get_player_info("p1")
        assert info == PlayerInfo(
            player_id="p1",
            jersey_number="12",
            player_name="Ann Smith",
            current_position=FieldPosition.PITCHER,
            is_starter=True,
            has_been_substituted=False,
            has_used_reentry=False,
            current_batting_slot=1,
        )

    def test_emits_player_added(self):
        lineup = make_lineup().add_player("p1", "12", "Ann Smith", 1, "SS")
        event = lineup.get_uncommitted_events()[-1]
        assert isinstance(event, PlayerAddedToLineup)
        assert event.field_position == FieldPosition.SHORTSTOP
        assert lineup.get_version() == 2

    def test_receiver_unchanged(self):
        original = make_lineup()
        original.add_player("p1", "12", "Ann Smith", 1, FieldPosition.PITCHER)
        assert original.get_active_lineup() == []
        assert len(original.get_uncommitted_events()) == 1
        assert original.get_version() == 1

    def test_active_lineup_sorted_by_slot(self):
        lineup = (
            make_lineup()
            .add_player("p3", "3", "Third", 3, FieldPosition.CATCHER)
            .add_player("p1", "1", "First", 1, FieldPosition.PITCHER)
            .add_player("p12", "12", "Twelfth", 12, FieldPosition.EXTRA_PLAYER)
        )
        assert [s.position for s in lineup.get_active_lineup()] == [1, 3, 12]

    def test_rejects_occupied_slot(self):
        lineup = make_lineup().add_player("p1", "1", "First", 1, FieldPosition.PITCHER)
        with pytest.raises(DomainError, match="Batting slot 1 is already occupied"):
            lineup.add_player("p2", "2", "Second", 1, FieldPosition.CATCHER)

    def test_rejects_duplicate_jersey(self):
        lineup = make_lineup().add_player("p1", "7", "First", 1, FieldPosition.PITCHER)
        with pytest.raises(DomainError, match="Jersey number 7 is already assigned"):
            lineup.add_player("p2", "7", "Second", 2, FieldPosition.CATCHER)

    def test_rejects_duplicate_player(self):
        lineup = make_lineup().add_player("p1", "1", "First", 1, FieldPosition.PITCHER)
        with pytest.raises(DomainError, match="Player is already in the lineup"):
            lineup.add_player("p1", "2", "First Again", 2, FieldPosition.CATCHER)

    def test_rejects_taken_position(self):
        lineup = make_lineup().add_player("p1", "1", "First", 1, FieldPosition.PITCHER)
        with pytest.raises(DomainError, match="Field position P is already assigned"):
            lineup.add_player("p2", "2", "Second", 2, FieldPosition.PITCHER)

    def test_extra_players_share_ep(self):
        lineup = (
            make_lineup()
            .add_player("p1", "1", "First", 1, FieldPosition.EXTRA_PLAYER)
            .add_player("p2", "2", "Second", 2, FieldPosition.EXTRA_PLAYER)
        )
        assert lineup.get_fielding_positions() == {}
        assert lineup.get_player_info("p2").current_position is None

    @pytest.mark.parametrize("slot", [0, 21, True, 1.0])
    def test_rejects_invalid_slot(self, slot):
        with pytest.raises(DomainError, match="Batting slot must be"):
            make_lineup().add_player("p1", "1", "First", slot, FieldPosition.PITCHER)

    def test_rejects_blank_player_name(self):
        with pytest.raises(DomainError, match="Player name cannot be empty"):
            make_lineup().add_player("p1", "1", "  ", 1, FieldPosition.PITCHER)

    def test_rejects_long_player_name(self):
        with pytest.raises(DomainError, match="cannot exceed 100 characters"):
            make_lineup().add_player("p1", "1", "x" * 101, 1, FieldPosition.PITCHER)

    def test_rejects_unknown_position(self):
        with pytest.raises(DomainError, match="Invalid field position"):
            make_lineup().add_player("p1", "1", "First", 1, "DH")


class TestLineupValidity:
    def test_full_lineup_is_valid(self):
        assert make_full_lineup().is_lineup_valid()

    def test_empty_lineup_is_invalid(self):
        assert not make_lineup().is_lineup_valid()

    def test_missing_position_is_invalid(self):
        lineup = make_lineup()
        for slot, position in enumerate(STARTING_POSITIONS[:-1], start=1):
            lineup = lineup.add_player(f"p{slot}", str(slot), f"Player {slot}", slot, position)
        lineup = lineup.add_player("p9", "9", "Player 9", 9, FieldPosition.SHORT_FIELDER)
        assert not lineup.is_lineup_valid()


# ---------------------------------------------------------------------------
# Substitutions
# ---------------------------------------------------------------------------

class TestSubstitution:
    def test_incoming_takes_slot_and_position(self):
        lineup = make_full_lineup()
        lineup = substitute(lineup, 1, "p1", "p10", 3, position=FieldPosition.PITCHER)
        assert lineup.get_fielding_positions()[FieldPosition.PITCHER] == "p10"
        slot = lineup.get_active_lineup()[0]
        assert slot.get_current_player() == "p10"
        assert [h.player_id for h in slot.get_history()] == ["p1", "p10"]

    def test_outgoing_player_benched(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3, position=FieldPosition.PITCHER)
        info = lineup.get_player_info("p1")
        assert info.current_position is None
        assert info.current_batting_slot is None
        assert info.has_been_substituted
        assert lineup.is_player_eligible_for_reentry("p1")

    def test_substitute_is_not_starter(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3)
        info = lineup.get_player_info("p10")
        assert not info.is_starter
        assert info.jersey_number == "100"
        assert not lineup.is_player_eligible_for_reentry("p10")

    def test_outgoing_position_released_when_incoming_is_ep(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3)
        assert FieldPosition.PITCHER not in lineup.get_fielding_positions()
        assert not lineup.is_lineup_valid()

    def test_emits_substitution_event(self):
        lineup = substitute(make_full_lineup(), 2, "p2", "p10", 4, position=FieldPosition.CATCHER)
        event = lineup.get_uncommitted_events()[-1]
        assert isinstance(event, PlayerSubstitutedIntoGame)
        assert (event.batting_slot, event.outgoing_player_id, event.incoming_player_id) == (2, "p2", "p10")
        assert event.incoming_jersey_number == "100"
        assert event.inning == 4
        assert not event.is_reentry

    def test_rejects_empty_slot(self):
        with pytest.raises(DomainError, match="Batting slot 10 is not occupied"):
            substitute(make_full_lineup(), 10, "p1", "p10", 3)

    def test_rejects_wrong_outgoing_player(self):
        with pytest.raises(DomainError, match="Player p2 is not in batting slot 1"):
            substitute(make_full_lineup(), 1, "p2", "p10", 3)

    def test_rejects_active_incoming_player(self):
        with pytest.raises(DomainError, match="Incoming player is already in the lineup"):
            substitute(make_full_lineup(), 1, "p1", "p2", 3, jersey="2")

    def test_rejects_jersey_of_another_player(self):
        with pytest.raises(DomainError, match="Jersey number 5 is already assigned"):
            substitute(make_full_lineup(), 1, "p1", "p10", 3, jersey="5")

    def test_rejects_position_held_by_third_player(self):
        with pytest.raises(DomainError, match="Field position C is already occupied"):
            substitute(make_full_lineup(), 1, "p1", "p10", 3, position=FieldPosition.CATCHER)

    def test_rejects_substitution_in_entry_inning(self):
        with pytest.raises(DomainError, match="same inning"):
            substitute(make_full_lineup(), 1, "p1", "p10", 1)

    def test_rejects_invalid_inning(self):
        with pytest.raises(DomainError, match="Inning must be 1 or greater"):
            substitute(make_full_lineup(), 1, "p1", "p10", 0)

    def test_receiver_unchanged_on_failure(self):
        lineup = make_full_lineup()
        before = observable(lineup, ["p1", "p10"])
        with pytest.raises(DomainError):
            substitute(lineup, 1, "p1", "p10", 3, position=FieldPosition.CATCHER)
        assert observable(lineup, ["p1", "p10"]) == before


class TestReentry:
    def test_starter_reenters_once(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p2x", 3, position=FieldPosition.PITCHER)
        lineup = lineup.substitute_player(
            1, "p2x", "p1", "1", "Player 1", FieldPosition.PITCHER, 7, is_reentry=True
        )
        assert not lineup.is_player_eligible_for_reentry("p1")
        assert lineup.get_player_info("p1").has_used_reentry
        positions = lineup.get_fielding_positions()
        assert positions[FieldPosition.PITCHER] == "p1"
        assert "p2x" not in positions.values()
        assert lineup.get_player_info("p2x").current_batting_slot is None

    def test_reentry_to_new_position(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3, position=FieldPosition.PITCHER)
        lineup = lineup.change_position("p9", FieldPosition.EXTRA_PLAYER, 5)
        lineup = lineup.substitute_player(
            1, "p10", "p1", "1", "Player 1", FieldPosition.RIGHT_FIELD, 7, is_reentry=True
        )
        positions = lineup.get_fielding_positions()
        assert positions[FieldPosition.RIGHT_FIELD] == "p1"
        assert FieldPosition.PITCHER not in positions
        assert "p10" not in positions.values()

    def test_reentry_slot_history_flagged(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3)
        lineup = lineup.substitute_player(
            1, "p10", "p1", "1", "Player 1", FieldPosition.PITCHER, 7, is_reentry=True
        )
        history = lineup.get_active_lineup()[0].get_history()
        assert [(h.player_id, h.is_reentry) for h in history] == [
            ("p1", False),
            ("p10", False),
            ("p1", True),
        ]

    def test_second_reentry_rejected(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3)
        lineup = lineup.substitute_player(
            1, "p10", "p1", "1", "Player 1", FieldPosition.PITCHER, 5, is_reentry=True
        )
        lineup = substitute(lineup, 1, "p1", "p11", 6)
        with pytest.raises(DomainError, match="already used their re-entry privilege"):
            lineup.substitute_player(
                1, "p11", "p1", "1", "Player 1", FieldPosition.PITCHER, 7, is_reentry=True
            )

    def test_reentry_requires_known_player(self):
        with pytest.raises(DomainError, match="not in team history"):
            substitute(make_full_lineup(), 1, "p1", "p10", 3, is_reentry=True)

    def test_substitute_cannot_reenter_with_flag(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3)
        lineup = substitute(lineup, 1, "p10", "p11", 4)
        with pytest.raises(DomainError, match="Only original starters are eligible"):
            substitute(lineup, 1, "p11", "p10", 5, is_reentry=True)

    def test_substitute_cannot_return_without_flag(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3)
        lineup = substitute(lineup, 1, "p10", "p11", 4)
        with pytest.raises(DomainError, match="Non-starter players cannot re-enter"):
            substitute(lineup, 1, "p11", "p10", 5)

    def test_returning_starter_must_use_reentry(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3)
        with pytest.raises(DomainError, match="must be substituted as a re-entry"):
            lineup.substitute_player(1, "p10", "p1", "1", "Player 1", FieldPosition.PITCHER, 5)

    def test_eligibility_requires_substitution(self):
        lineup = make_full_lineup()
        assert not lineup.is_player_eligible_for_reentry("p1")
        assert not lineup.is_player_eligible_for_reentry("unknown")

    def test_eligibility_implies_starter_substituted_unused(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3)
        lineup = substitute(lineup, 2, "p2", "p11", 4)
        lineup = lineup.substitute_player(
            1, "p10", "p1", "1", "Player 1", FieldPosition.PITCHER, 6, is_reentry=True
        )
        for player_id in ["p1", "p2", "p3", "p10", "p11"]:
            if lineup.is_player_eligible_for_reentry(player_id):
                info = lineup.get_player_info(player_id)
                assert info.is_starter
                assert info.has_been_substituted
                assert not info.has_used_reentry
        assert lineup.is_player_eligible_for_reentry("p2")


# ---------------------------------------------------------------------------
# Position changes
# ---------------------------------------------------------------------------

class TestChangePosition:
    def test_swap_requires_vacancy(self):
        lineup = make_full_lineup()
        with pytest.raises(DomainError, match="Field position C is already occupied"):
            lineup.change_position("p1", FieldPosition.CATCHER, 4)

    def test_move_to_open_position(self):
        lineup = make_full_lineup().change_position("p7", FieldPosition.SHORT_FIELDER, 4)
        positions = lineup.get_fielding_positions()
        assert positions[FieldPosition.SHORT_FIELDER] == "p7"
        assert FieldPosition.LEFT_FIELD not in positions
        event = lineup.get_uncommitted_events()[-1]
        assert isinstance(event, FieldPositionChanged)
        assert (event.from_position, event.to_position, event.inning) == (
            FieldPosition.LEFT_FIELD,
            FieldPosition.SHORT_FIELDER,
            4,
        )

    def test_move_to_extra_player_leaves_defense(self):
        lineup = make_full_lineup().change_position("p1", FieldPosition.EXTRA_PLAYER, 2)
        assert FieldPosition.PITCHER not in lineup.get_fielding_positions()
        assert lineup.get_player_info("p1").current_position is None

    def test_move_from_extra_player_records_ep(self):
        lineup = make_lineup().add_player("p1", "1", "First", 1, FieldPosition.EXTRA_PLAYER)
        lineup = lineup.change_position("p1", FieldPosition.PITCHER, 2)
        event = lineup.get_uncommitted_events()[-1]
        assert event.from_position == FieldPosition.EXTRA_PLAYER
        assert lineup.get_fielding_positions() == {FieldPosition.PITCHER: "p1"}

    def test_rejects_same_position(self):
        with pytest.raises(DomainError, match="already in the specified position"):
            make_full_lineup().change_position("p1", FieldPosition.PITCHER, 2)

    def test_rejects_extra_player_staying_ep(self):
        lineup = make_lineup().add_player("p1", "1", "First", 1, FieldPosition.EXTRA_PLAYER)
        with pytest.raises(DomainError, match="already in the specified position"):
            lineup.change_position("p1", FieldPosition.EXTRA_PLAYER, 2)

    def test_rejects_benched_player(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3)
        with pytest.raises(DomainError, match="Player is not currently in the lineup"):
            lineup.change_position("p1", FieldPosition.SHORT_FIELDER, 4)

    def test_rejects_unknown_player(self):
        with pytest.raises(DomainError, match="Player is not currently in the lineup"):
            make_full_lineup().change_position("ghost", FieldPosition.SHORT_FIELDER, 4)


# ---------------------------------------------------------------------------
# Reconstruction
# ---------------------------------------------------------------------------

PLAYER_IDS = [f"p{n}" for n in range(1, 12)]


def play_sample_lineup():
    lineup = make_full_lineup()
    lineup = lineup.add_player("p10", "10", "Player 10", 10, FieldPosition.EXTRA_PLAYER)
    lineup = substitute(lineup, 1, "p1", "p11", 3, position=FieldPosition.PITCHER)
    lineup = lineup.change_position("p9", FieldPosition.SHORT_FIELDER, 4)
    lineup = lineup.substitute_player(
        1, "p11", "p1", "1", "Player 1", FieldPosition.RIGHT_FIELD, 6, is_reentry=True
    )
    return lineup


class TestFromEvents:
    def test_replay_matches_live_state(self):
        lineup = play_sample_lineup()
        rebuilt = TeamLineup.from_events(lineup.get_uncommitted_events())
        assert observable(rebuilt, PLAYER_IDS) == observable(lineup, PLAYER_IDS)
        assert rebuilt.get_uncommitted_events() == []

    def test_replay_is_idempotent(self):
        events = play_sample_lineup().get_uncommitted_events()
        first = TeamLineup.from_events(events)
        second = TeamLineup.from_events(events)
        assert observable(first, PLAYER_IDS) == observable(second, PLAYER_IDS)

    def test_version_equals_event_count(self):
        events = play_sample_lineup().get_uncommitted_events()
        assert TeamLineup.from_events(events).get_version() == len(events)

    def test_rebuilt_lineup_enforces_reentry(self):
        rebuilt = TeamLineup.from_events(play_sample_lineup().get_uncommitted_events())
        rebuilt = substitute(rebuilt, 1, "p1", "p12", 7)
        assert not rebuilt.is_player_eligible_for_reentry("p1")

    def test_rejects_empty(self):
        with pytest.raises(DomainError, match="empty event array"):
            TeamLineup.from_events([])

    def test_first_event_must_be_created(self):
        events = make_full_lineup().get_uncommitted_events()[1:]
        with pytest.raises(DomainError, match="First event must be TeamLineupCreated"):
            TeamLineup.from_events(events)

    def test_rejects_other_lineup(self):
        events = make_lineup().get_uncommitted_events()
        other = make_lineup(lineup_id="lineup-2").add_player("p1", "1", "First", 1, "P")
        with pytest.raises(DomainError, match="same team lineup"):
            TeamLineup.from_events(events + other.get_uncommitted_events()[1:])

    def test_rejects_other_game(self):
        events = make_lineup().get_uncommitted_events() + [GameStarted(game_id="game-2")]
        with pytest.raises(DomainError, match="same game"):
            TeamLineup.from_events(events)

    def test_rejects_unhandled_event(self, monkeypatch):
        monkeypatch.delenv(REPLAY_ALLOWLIST_ENV, raising=False)
        events = make_lineup().get_uncommitted_events() + [GameStarted(game_id="game-1")]
        with pytest.raises(DomainError, match="Unsupported event type for reconstruction: GameStarted"):
            TeamLineup.from_events(events)

    def test_allowlisted_event_is_skipped(self, monkeypatch):
        monkeypatch.setenv(REPLAY_ALLOWLIST_ENV, "GameStarted")
        events = make_full_lineup().get_uncommitted_events() + [GameStarted(game_id="game-1")]
        rebuilt = TeamLineup.from_events(events)
        assert rebuilt.is_lineup_valid()
        assert rebuilt.get_version() == len(events)

    def test_rejects_substitution_into_empty_slot(self):
        events = make_lineup().get_uncommitted_events() + [
            PlayerSubstitutedIntoGame(
                game_id="game-1",
                team_lineup_id="lineup-1",
                batting_slot=3,
                outgoing_player_id="p3",
                incoming_player_id="p10",
                incoming_jersey_number="10",
                incoming_player_name="Sub",
                field_position=FieldPosition.EXTRA_PLAYER,
                inning=2,
            )
        ]
        with pytest.raises(DomainError, match="Batting slot 3 is not occupied"):
            TeamLineup.from_events(events)

    def test_rejects_position_change_for_unknown_player(self):
        events = make_full_lineup().get_uncommitted_events() + [
            FieldPositionChanged(
                game_id="game-1",
                team_lineup_id="lineup-1",
                player_id="zz",
                from_position=FieldPosition.EXTRA_PLAYER,
                to_position=FieldPosition.SHORT_FIELDER,
                inning=3,
            )
        ]
        with pytest.raises(DomainError, match="Player is not currently in the lineup"):
            TeamLineup.from_events(events)

    def test_rejects_duplicate_batting_slot_in_log(self):
        events = make_lineup().add_player("a", "1", "First", 1, "P").get_uncommitted_events()
        events.append(
            PlayerAddedToLineup(
                game_id="game-1",
                team_lineup_id="lineup-1",
                player_id="b",
                jersey_number="2",
                player_name="Second",
                batting_slot=1,
                field_position=FieldPosition.CATCHER,
            )
        )
        with pytest.raises(DomainError, match="Batting slot 1 is already occupied"):
            TeamLineup.from_events(events)

    def test_rejects_duplicate_jersey_in_log(self):
        events = make_lineup().add_player("a", "1", "First", 1, "P").get_uncommitted_events()
        events.append(
            PlayerAddedToLineup(
                game_id="game-1",
                team_lineup_id="lineup-1",
                player_id="b",
                jersey_number="1",
                player_name="Second",
                batting_slot=2,
                field_position=FieldPosition.CATCHER,
            )
        )
        with pytest.raises(DomainError, match="Jersey number 1 is already assigned"):
            TeamLineup.from_events(events)

    def test_rejects_second_reentry_in_log(self):
        lineup = substitute(make_full_lineup(), 1, "p1", "p10", 3, position=FieldPosition.PITCHER)
        lineup = substitute(lineup, 1, "p10", "p1", 5, position=FieldPosition.PITCHER, jersey="1", is_reentry=True)
        lineup = substitute(lineup, 1, "p1", "p11", 6, position=FieldPosition.PITCHER)
        events = lineup.get_uncommitted_events() + [
            PlayerSubstitutedIntoGame(
                game_id="game-1",
                team_lineup_id="lineup-1",
                batting_slot=1,
                outgoing_player_id="p11",
                incoming_player_id="p1",
                incoming_jersey_number="1",
                incoming_player_name="Player 1",
                field_position=FieldPosition.PITCHER,
                inning=7,
                is_reentry=True,
            )
        ]
        with pytest.raises(DomainError, match="already used their re-entry"):
            TeamLineup.from_events(events)
