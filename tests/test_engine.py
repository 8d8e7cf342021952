"""Tests for allot.engine.BudgetEngine."""

import itertools
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from allot.domain.events import BudgetEvent, ErrorKind, PersistError
from allot.domain.models import (
    AllocationPolicy,
    BudgetState,
    ExpenseId,
    FixedExpense,
    IncomeKind,
    to_money,
)
from allot.engine import BudgetEngine
from allot.store.state_store import InMemoryStateStore, SqliteStateStore

TODAY = date(2025, 10, 17)


def make_engine(
    store: InMemoryStateStore | None = None,
    policy: AllocationPolicy = AllocationPolicy.RECOMPUTE,
    today: date = TODAY,
) -> BudgetEngine:
    counter = itertools.count(1)
    return BudgetEngine(
        store if store is not None else InMemoryStateStore(),
        policy=policy,
        clock=lambda: today,
        id_factory=lambda: f"id{next(counter)}",
    )


class TestInitialization:
    """Tests for engine start-up."""

    def test_starts_from_zeroed_state(self) -> None:
        """Should use an empty budget when nothing is stored."""
        engine = make_engine()

        assert engine.state == BudgetState()
        assert engine.summary().balance == Decimal("0.00")

    def test_loads_stored_snapshot(self) -> None:
        """Should start from the stored snapshot."""
        stored = BudgetState(balance=to_money("42"))
        engine = make_engine(InMemoryStateStore(initial=stored))

        assert engine.state is stored

    def test_sqlite_round_trip_between_engines(self, tmp_path: Path) -> None:
        """Should pick up where a previous engine left off."""
        first = BudgetEngine(SqliteStateStore(tmp_path / "allot.db"), clock=lambda: TODAY)
        first.add_income("3000")
        first.add_category("Savings", 60)
        first.add_category("Food", 40)

        second = BudgetEngine(SqliteStateStore(tmp_path / "allot.db"), clock=lambda: TODAY)

        assert second.state == first.state


class TestScenarios:
    """End-to-end command sequences."""

    def test_rent_income_and_overspend_income_based(self) -> None:
        """Should allocate 1000 each and reject a 1200 spend."""
        engine = make_engine(policy=AllocationPolicy.INCREMENTAL_SUPPLEMENTAL)

        engine.add_fixed_expense("Rent", "1000", TODAY)
        engine.add_income("3000")
        assert engine.summary().available_for_allocation == Decimal("2000.00")

        savings = engine.add_category("Savings", 50).state.categories[0]
        engine.add_category("Food", 50)

        assert [c.allocated_amount for c in engine.state.categories] == [Decimal("1000.00"), Decimal("1000.00")]
        assert [c.remaining_amount for c in engine.state.categories] == [Decimal("1000.00"), Decimal("1000.00")]

        result = engine.record_category_spend(savings.id, "1200")

        assert not result.ok
        assert result.event is BudgetEvent.INVALID_SPEND
        assert result.error is not None
        assert result.error.kind is ErrorKind.INSUFFICIENT_REMAINING
        assert engine.state.find_category(savings.id).remaining_amount == Decimal("1000.00")

    def test_rent_due_today_with_default_policy(self) -> None:
        """Should charge rent once and leave 2000 to allocate."""
        engine = BudgetEngine(InMemoryStateStore(), clock=lambda: TODAY)

        engine.add_fixed_expense("Rent", "1000", TODAY)
        engine.add_income("3000")

        assert engine.state.balance == Decimal("2000.00")
        assert engine.summary().available_for_allocation == Decimal("2000.00")

        engine.add_category("Savings", 50)
        engine.add_category("Food", 50)
        savings = engine.state.categories[0]

        assert [c.allocated_amount for c in engine.state.categories] == [Decimal("1000.00"), Decimal("1000.00")]
        assert [c.remaining_amount for c in engine.state.categories] == [Decimal("1000.00"), Decimal("1000.00")]

        result = engine.record_category_spend(savings.id, "1200")

        assert result.event is BudgetEvent.INVALID_SPEND
        assert result.error is not None
        assert result.error.kind is ErrorKind.INSUFFICIENT_REMAINING
        assert engine.state.find_category(savings.id).remaining_amount == Decimal("1000.00")

    def test_rent_next_cycle_charged_once(self) -> None:
        """Should charge the following month without reserving the rent twice."""
        store = InMemoryStateStore()
        BudgetEngine(store, clock=lambda: TODAY).add_fixed_expense("Rent", "1000", TODAY)
        engine = BudgetEngine(store, clock=lambda: date(2025, 11, 17))

        engine.add_income("3000")

        assert engine.state.balance == Decimal("1000.00")
        assert engine.summary().available_for_allocation == Decimal("1000.00")

    def test_rent_income_and_overspend_balance_based(self) -> None:
        """Should give the same split when rent is not yet due."""
        engine = make_engine()

        engine.add_fixed_expense("Rent", "1000", date(2025, 11, 1))
        engine.add_income("3000")
        assert engine.summary().available_for_allocation == Decimal("2000.00")

        engine.add_category("Savings", 50)
        engine.add_category("Food", 50)
        savings = engine.state.categories[0]

        assert savings.allocated_amount == Decimal("1000.00")
        assert engine.state.categories[1].allocated_amount == Decimal("1000.00")

        result = engine.record_category_spend(savings.id, "1200")

        assert result.error is not None
        assert result.error.kind is ErrorKind.INSUFFICIENT_REMAINING
        assert engine.state.balance == Decimal("3000.00")

    def test_thirds_split(self) -> None:
        """Should allocate 33/33/34 of 100.00 exactly."""
        engine = make_engine()
        engine.add_income("100")
        for name, percentage in [("A", 33), ("B", 33), ("C", 34)]:
            engine.add_category(name, percentage)

        allocations = [c.allocated_amount for c in engine.state.categories]

        assert allocations == [Decimal("33.00"), Decimal("33.00"), Decimal("34.00")]
        assert sum(allocations) == Decimal("100.00")

    def test_tiny_income_keeps_allocations_non_negative(self) -> None:
        """Should never leave a category with a negative allocation."""
        engine = make_engine()
        for name in ["A", "B", "C", "D"]:
            engine.add_category(name, 25)

        engine.add_income("0.02")

        assert all(c.allocated_amount >= 0 for c in engine.state.categories)
        assert all(c.remaining_amount >= 0 for c in engine.state.categories)
        assert engine.state.total_allocated == Decimal("0.02")


class TestRollForward:
    """Tests for fixed expense rollforward through the engine."""

    def test_refresh_charges_elapsed_cycles(self) -> None:
        """Should charge three cycles and advance three months."""
        stored = BudgetState(
            balance=to_money("5000"),
            fixed_expenses=(FixedExpense(ExpenseId("rent"), "Rent", to_money("1000"), date(2025, 7, 20)),),
        )
        store = InMemoryStateStore(initial=stored)
        engine = make_engine(store)

        result = engine.refresh()

        assert result.changed
        assert result.event is BudgetEvent.EXPENSES_ROLLED_FORWARD
        assert engine.state.balance == Decimal("2000.00")
        assert engine.state.fixed_expenses[0].next_due_date == date(2025, 10, 20)
        assert store.save_count == 1

    def test_refresh_without_due_expenses_does_not_persist(self) -> None:
        """Should not save or emit when nothing is due."""
        store = InMemoryStateStore()
        engine = make_engine(store)
        events: list[BudgetEvent] = []
        engine.subscribe_events(events.append)

        result = engine.refresh()

        assert not result.changed
        assert result.event is None
        assert events == []
        assert store.save_count == 0

    def test_commands_roll_forward_first(self) -> None:
        """Should charge due expenses before applying income."""
        stored = BudgetState(
            fixed_expenses=(FixedExpense(ExpenseId("rent"), "Rent", to_money("1000"), date(2025, 10, 1)),),
        )
        engine = make_engine(InMemoryStateStore(initial=stored))

        engine.add_income("3000")

        assert engine.state.balance == Decimal("2000.00")
        assert engine.state.fixed_expenses[0].next_due_date == date(2025, 11, 1)

    def test_adding_due_expense_charges_immediately(self) -> None:
        """Should charge an expense added with a past due date without reserving it again."""
        engine = make_engine()
        engine.add_income("3000")
        engine.add_category("Everything", 100)

        engine.add_fixed_expense("Rent", "1000", date(2025, 10, 1))

        assert engine.state.balance == Decimal("2000.00")
        assert engine.state.fixed_expenses[0].next_due_date == date(2025, 11, 1)
        assert engine.state.categories[0].allocated_amount == Decimal("2000.00")

    def test_income_based_policy_never_rolls_forward(self) -> None:
        """Should leave due dates alone under the incremental policy."""
        stored = BudgetState(
            fixed_expenses=(FixedExpense(ExpenseId("rent"), "Rent", to_money("1000"), date(2025, 1, 1)),),
        )
        engine = make_engine(InMemoryStateStore(initial=stored), policy=AllocationPolicy.INCREMENTAL_SUPPLEMENTAL)

        result = engine.refresh()

        assert not result.changed
        assert engine.state.fixed_expenses[0].next_due_date == date(2025, 1, 1)


class TestCommands:
    """Tests for individual commands and their events."""

    def test_add_category_over_100_fails_without_change(self) -> None:
        """Should emit INVALID_CATEGORY_PERCENTAGE and keep state."""
        store = InMemoryStateStore()
        engine = make_engine(store)
        engine.add_category("Rent", 80)
        before = engine.state
        saves = store.save_count

        result = engine.add_category("Fun", 21)

        assert result.event is BudgetEvent.INVALID_CATEGORY_PERCENTAGE
        assert result.error is not None
        assert result.error.kind is ErrorKind.PERCENTAGE_EXCEEDED
        assert engine.state is before
        assert store.save_count == saves

    def test_update_category_percentage(self) -> None:
        """Should emit CATEGORY_UPDATED and rebalance."""
        engine = make_engine()
        engine.add_income("100")
        first = engine.add_category("A", 50).state.categories[0]
        engine.add_category("B", 50)

        result = engine.update_category_percentage(first.id, 25)

        assert result.ok
        assert result.event is BudgetEvent.CATEGORY_UPDATED
        assert engine.state.categories[0].allocated_amount == Decimal("33.33")

    def test_remove_category(self) -> None:
        """Should emit CATEGORY_REMOVED and give the share back."""
        engine = make_engine()
        engine.add_income("100")
        first = engine.add_category("A", 50).state.categories[0]
        engine.add_category("B", 50)

        result = engine.remove_category(first.id)

        assert result.event is BudgetEvent.CATEGORY_REMOVED
        assert [c.allocated_amount for c in engine.state.categories] == [Decimal("100.00")]

    def test_missing_id_is_silent_noop(self) -> None:
        """Should emit the success event but not persist."""
        store = InMemoryStateStore()
        engine = make_engine(store)

        results = [
            engine.update_fixed_expense_due_date("missing", date(2026, 1, 1)),
            engine.remove_fixed_expense("missing"),
            engine.update_category_percentage("missing", 10),
            engine.remove_category("missing"),
        ]

        assert [r.event for r in results] == [
            BudgetEvent.FIXED_EXPENSE_UPDATED,
            BudgetEvent.FIXED_EXPENSE_REMOVED,
            BudgetEvent.CATEGORY_UPDATED,
            BudgetEvent.CATEGORY_REMOVED,
        ]
        assert all(r.ok and not r.changed for r in results)
        assert store.save_count == 0

    def test_update_fixed_expense_fields(self) -> None:
        """Should update name and amount and rebalance."""
        engine = make_engine()
        engine.add_income("1000")
        engine.add_category("All", 100)
        expense = engine.add_fixed_expense("Rent", "400", date(2025, 11, 1)).state.fixed_expenses[0]

        result = engine.update_fixed_expense(expense.id, name="Mortgage", amount="500")

        assert result.event is BudgetEvent.FIXED_EXPENSE_UPDATED
        assert engine.state.fixed_expenses[0].name == "Mortgage"
        assert engine.state.categories[0].allocated_amount == Decimal("500.00")

    def test_invalid_income(self) -> None:
        """Should emit INVALID_INPUT for a zero amount."""
        engine = make_engine()

        result = engine.add_income("0")

        assert result.event is BudgetEvent.INVALID_INPUT
        assert result.error is not None
        assert result.error.kind is ErrorKind.INVALID_INPUT

    def test_float_amounts_rejected(self) -> None:
        """Should refuse binary floats for money."""
        engine = make_engine()

        with pytest.raises(TypeError):
            engine.add_income(10.5)  # type: ignore[arg-type]

    def test_spend_reduces_balance_and_remaining(self) -> None:
        """Should emit SPEND_RECORDED and update both figures."""
        engine = make_engine()
        engine.add_income("500")
        food = engine.add_category("Food", 100).state.categories[0]

        result = engine.record_category_spend(food.id, "120.25")

        assert result.event is BudgetEvent.SPEND_RECORDED
        assert engine.state.balance == Decimal("379.75")
        assert engine.state.categories[0].remaining_amount == Decimal("379.75")
        assert engine.summary().total_spent == Decimal("120.25")

    def test_spend_unknown_category(self) -> None:
        """Should emit INVALID_SPEND with NOT_FOUND."""
        engine = make_engine()
        engine.add_income("500")
        before = engine.state

        result = engine.record_category_spend("missing", "1")

        assert result.event is BudgetEvent.INVALID_SPEND
        assert result.error is not None
        assert result.error.kind is ErrorKind.NOT_FOUND
        assert engine.state is before

    def test_supplemental_income_preserves_spend(self) -> None:
        """Should add on top of allocations under the incremental policy."""
        engine = make_engine(policy=AllocationPolicy.INCREMENTAL_SUPPLEMENTAL)
        engine.add_income("1000")
        food = engine.add_category("Food", 100).state.categories[0]
        engine.record_category_spend(food.id, "300")

        engine.add_income("200", IncomeKind.SUPPLEMENTAL)

        category = engine.state.categories[0]
        assert category.allocated_amount == Decimal("1200.00")
        assert category.remaining_amount == Decimal("900.00")
        assert engine.state.last_income_kind is IncomeKind.SUPPLEMENTAL


class TestPersistence:
    """Tests for write-through persistence."""

    def test_every_change_is_saved(self) -> None:
        """Should save once per state-changing command."""
        store = InMemoryStateStore()
        engine = make_engine(store)

        engine.add_income("100")
        engine.add_category("A", 10)

        assert store.save_count == 2
        assert store.saved == engine.state

    def test_persist_failure_raises_and_keeps_state(self) -> None:
        """Should raise PersistError and not report success."""
        store = InMemoryStateStore()
        engine = make_engine(store)
        engine.add_income("100")
        before = engine.state
        events: list[BudgetEvent] = []
        engine.subscribe_events(events.append)

        store.fail_on_save = True
        with pytest.raises(PersistError):
            engine.add_category("A", 10)

        assert engine.state is before
        assert events == []


class TestSubscriptions:
    """Tests for state and event subscriptions."""

    def test_state_and_events_delivered_once_per_command(self) -> None:
        """Should deliver one snapshot and one event per command."""
        engine = make_engine()
        states: list[BudgetState] = []
        events: list[BudgetEvent] = []
        engine.subscribe_state(states.append)
        engine.subscribe_events(events.append)

        engine.add_income("100")
        engine.add_category("A", 120)

        assert events == [BudgetEvent.INCOME_RECORDED, BudgetEvent.INVALID_CATEGORY_PERCENTAGE]
        assert states == [engine.state]

    def test_unsubscribe(self) -> None:
        """Should stop delivery and tolerate a second unsubscribe."""
        engine = make_engine()
        events: list[BudgetEvent] = []
        unsubscribe = engine.subscribe_events(events.append)

        engine.add_income("1")
        unsubscribe()
        unsubscribe()
        engine.add_income("1")

        assert events == [BudgetEvent.INCOME_RECORDED]

    def test_late_subscriber_gets_no_replay(self) -> None:
        """Should not replay earlier events."""
        engine = make_engine()
        engine.add_income("1")
        events: list[BudgetEvent] = []

        engine.subscribe_events(events.append)

        assert events == []

    def test_failing_subscriber_does_not_undo_command(self) -> None:
        """Should log subscriber errors and keep the new state."""
        engine = make_engine()

        def boom(_event: BudgetEvent) -> None:
            raise RuntimeError("subscriber broke")

        engine.subscribe_events(boom)

        result = engine.add_income("10")

        assert result.ok
        assert engine.state.balance == Decimal("10.00")
