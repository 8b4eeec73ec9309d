from enum import Enum

import pytest

from estate_ledger.domain.assets import ASSET_TRANSITIONS
from estate_ledger.domain.debts import DEBT_TRANSITIONS
from estate_ledger.domain.dependants import DEPENDANT_TRANSITIONS
from estate_ledger.domain.estate import ESTATE_TRANSITIONS, TAX_TRANSITIONS
from estate_ledger.domain.gifts import GIFT_TRANSITIONS
from estate_ledger.domain.liquidation import LIQUIDATION_TRANSITIONS, LiquidationStatus
from estate_ledger.domain.transitions import build_table
from estate_ledger.exceptions import IllegalStateError, InvalidTransitionError


class Door(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    LOCKED = "locked"
    REMOVED = "removed"


@pytest.fixture
def door_table():
    return build_table(
        "Door",
        [
            (Door.OPEN, "close", Door.CLOSED),
            (Door.CLOSED, "open", Door.OPEN),
            (Door.CLOSED, "lock", Door.LOCKED),
            (Door.LOCKED, "unlock", Door.CLOSED),
            (Door.CLOSED, "remove", Door.REMOVED),
        ],
        terminal_states=(Door.REMOVED,),
    )


class TestTransitionTable:
    def test_next_state_follows_table(self, door_table):
        assert door_table.next_state(Door.OPEN, "close", "door-1") == Door.CLOSED

    def test_unknown_pair_raises_with_context(self, door_table):
        with pytest.raises(InvalidTransitionError) as exc_info:
            door_table.next_state(Door.OPEN, "lock", "door-1")

        error = exc_info.value
        assert isinstance(error, IllegalStateError)
        assert error.current_state == "open"
        assert error.requested == "lock"
        assert error.context["machine"] == "Door"
        assert error.context["subject_id"] == "door-1"

    def test_require_raises_without_returning(self, door_table):
        door_table.require(Door.CLOSED, "lock", "door-1")

        with pytest.raises(InvalidTransitionError):
            door_table.require(Door.LOCKED, "open", "door-1")

    def test_allows(self, door_table):
        assert door_table.allows(Door.CLOSED, "lock")
        assert not door_table.allows(Door.OPEN, "lock")

    def test_actions_and_successors(self, door_table):
        assert door_table.actions_from(Door.CLOSED) == {"open", "lock", "remove"}
        assert door_table.successors(Door.CLOSED) == {Door.OPEN, Door.LOCKED, Door.REMOVED}

    def test_reachable_from(self, door_table):
        assert door_table.reachable_from(Door.LOCKED) == set(Door)
        assert door_table.reachable_from(Door.REMOVED) == {Door.REMOVED}

    def test_is_terminal(self, door_table):
        assert door_table.is_terminal(Door.REMOVED)
        assert not door_table.is_terminal(Door.CLOSED)


ALL_TABLES = [
    ESTATE_TRANSITIONS,
    TAX_TRANSITIONS,
    DEBT_TRANSITIONS,
    ASSET_TRANSITIONS,
    LIQUIDATION_TRANSITIONS,
    GIFT_TRANSITIONS,
    DEPENDANT_TRANSITIONS,
]


class TestDomainTables:
    @pytest.mark.parametrize("table", ALL_TABLES, ids=lambda t: t.machine)
    def test_terminal_states_have_no_exits(self, table):
        for state in table.terminal_states:
            assert table.actions_from(state) == set()

    @pytest.mark.parametrize(
        "status",
        [status for status in LiquidationStatus],
        ids=lambda s: s.value,
    )
    def test_every_liquidation_state_can_finish(self, status):
        reachable = LIQUIDATION_TRANSITIONS.reachable_from(status)

        assert reachable & LIQUIDATION_TRANSITIONS.terminal_states

    def test_liquidation_terminal_states_are_closed_and_cancelled(self):
        assert LIQUIDATION_TRANSITIONS.terminal_states == {
            LiquidationStatus.CLOSED,
            LiquidationStatus.CANCELLED,
        }

    def test_everything_reachable_from_draft_is_in_the_enum(self):
        reachable = LIQUIDATION_TRANSITIONS.reachable_from(LiquidationStatus.DRAFT)

        assert reachable == set(LiquidationStatus)
