"""Budget engine: the imperative shell around the pure budget core.

The engine owns the current snapshot and runs one command at a time:
roll forward due expenses, apply the pure transition, persist the new
snapshot, then publish it. Readers only ever see a whole snapshot because
the current state is a single reference to an immutable value.
"""

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from allot.domain import budget
from allot.domain.budget import BudgetSummary, Transition, compute_budget_summary
from allot.domain.events import BudgetError, BudgetEvent, PersistError
from allot.domain.models import (
    AllocationPolicy,
    BudgetState,
    CategoryId,
    ExpenseId,
    IncomeKind,
    to_money,
)
from allot.store.state_store import StateStore

logger = logging.getLogger(__name__)

StateCallback = Callable[[BudgetState], None]
EventCallback = Callable[[BudgetEvent], None]


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one engine command."""

    event: BudgetEvent | None
    state: BudgetState
    error: BudgetError | None = None
    changed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def _new_id() -> str:
    return str(uuid.uuid4())


class BudgetEngine:
    """Single-writer state machine over a BudgetState snapshot.

    Args:
        store: Storage collaborator used to load the initial snapshot and
            to persist every change.
        policy: Allocation policy (balance-based recompute by default).
        clock: Returns "today"; injectable for tests.
        id_factory: Generates ids for new expenses and categories.
    """

    def __init__(
        self,
        store: StateStore,
        policy: AllocationPolicy = AllocationPolicy.RECOMPUTE,
        clock: Callable[[], date] = date.today,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._store = store
        self.policy = policy
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.RLock()
        self._state_subscribers: list[StateCallback] = []
        self._event_subscribers: list[EventCallback] = []

        loaded = store.load()
        if loaded is None:
            logger.debug("No stored budget found, starting from an empty budget")
            loaded = BudgetState()
        self._state = loaded

    @property
    def state(self) -> BudgetState:
        return self._state

    def summary(self) -> BudgetSummary:
        return compute_budget_summary(self._state)

    def subscribe_state(self, callback: StateCallback) -> Callable[[], None]:
        """Register a callback for every new snapshot.

        Returns:
            Callable that removes the subscription (safe to call twice).
        """
        return self._subscribe(self._state_subscribers, callback)

    def subscribe_events(self, callback: EventCallback) -> Callable[[], None]:
        """Register a callback for command outcome events.

        Events are delivered once, as each command completes; late
        subscribers do not receive earlier events.

        Returns:
            Callable that removes the subscription (safe to call twice).
        """
        return self._subscribe(self._event_subscribers, callback)

    def _subscribe(self, subscribers: list, callback: Callable) -> Callable[[], None]:
        with self._lock:
            subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in subscribers:
                    subscribers.remove(callback)

        return unsubscribe

    # Commands

    def refresh(self) -> CommandResult:
        """Charge fixed expenses that fell due since the last command."""
        with self._lock:
            current = self._state
            rolled = self._roll_forward(current)
            if rolled is current:
                return CommandResult(event=None, state=current)

            self._commit(rolled)
            return self._finish(BudgetEvent.EXPENSES_ROLLED_FORWARD, rolled, changed=True)

    def add_income(self, amount: Decimal | int | str, kind: IncomeKind = IncomeKind.PAYCHECK) -> CommandResult:
        money = to_money(amount)
        return self._execute(
            "add_income",
            lambda state: budget.apply_income(state, money, kind, self.policy),
            BudgetEvent.INCOME_RECORDED,
            BudgetEvent.INVALID_INPUT,
        )

    def add_fixed_expense(self, name: str, amount: Decimal | int | str, due_date: date) -> CommandResult:
        money = to_money(amount)
        expense_id = ExpenseId(self._id_factory())
        return self._execute(
            "add_fixed_expense",
            lambda state: budget.add_fixed_expense(state, expense_id, name, money, due_date, self.policy),
            BudgetEvent.FIXED_EXPENSE_ADDED,
            BudgetEvent.INVALID_INPUT,
        )

    def update_fixed_expense(
        self,
        expense_id: str,
        name: str | None = None,
        amount: Decimal | int | str | None = None,
        due_date: date | None = None,
    ) -> CommandResult:
        money = to_money(amount) if amount is not None else None
        return self._execute(
            "update_fixed_expense",
            lambda state: budget.update_fixed_expense(
                state, expense_id, self.policy, name=name, amount=money, due_date=due_date
            ),
            BudgetEvent.FIXED_EXPENSE_UPDATED,
            BudgetEvent.INVALID_INPUT,
        )

    def update_fixed_expense_due_date(self, expense_id: str, due_date: date) -> CommandResult:
        return self._execute(
            "update_fixed_expense_due_date",
            lambda state: budget.update_fixed_expense_due_date(state, expense_id, due_date, self.policy),
            BudgetEvent.FIXED_EXPENSE_UPDATED,
            BudgetEvent.INVALID_INPUT,
        )

    def remove_fixed_expense(self, expense_id: str) -> CommandResult:
        return self._execute(
            "remove_fixed_expense",
            lambda state: budget.remove_fixed_expense(state, expense_id, self.policy),
            BudgetEvent.FIXED_EXPENSE_REMOVED,
            BudgetEvent.INVALID_INPUT,
        )

    def add_category(self, name: str, percentage: int) -> CommandResult:
        category_id = CategoryId(self._id_factory())
        return self._execute(
            "add_category",
            lambda state: budget.add_category(state, category_id, name, percentage),
            BudgetEvent.CATEGORY_ADDED,
            BudgetEvent.INVALID_CATEGORY_PERCENTAGE,
        )

    def update_category_percentage(self, category_id: str, percentage: int) -> CommandResult:
        return self._execute(
            "update_category_percentage",
            lambda state: budget.update_category_percentage(state, category_id, percentage),
            BudgetEvent.CATEGORY_UPDATED,
            BudgetEvent.INVALID_CATEGORY_PERCENTAGE,
        )

    def remove_category(self, category_id: str) -> CommandResult:
        return self._execute(
            "remove_category",
            lambda state: budget.remove_category(state, category_id),
            BudgetEvent.CATEGORY_REMOVED,
            BudgetEvent.INVALID_INPUT,
        )

    def record_category_spend(self, category_id: str, amount: Decimal | int | str) -> CommandResult:
        money = to_money(amount)
        return self._execute(
            "record_category_spend",
            lambda state: budget.record_spend(state, category_id, money, self.policy),
            BudgetEvent.SPEND_RECORDED,
            BudgetEvent.INVALID_SPEND,
        )

    # Internals

    def _roll_forward(self, state: BudgetState) -> BudgetState:
        if not self.policy.balance_based:
            return state

        rolled = budget.roll_forward_due_expenses(state, self._clock())
        if rolled is not state:
            charged = state.balance - rolled.balance
            logger.info("Charged %s in fixed expenses that fell due", charged)
        return rolled

    def _execute(
        self,
        name: str,
        transition: Callable[[BudgetState], Transition],
        success_event: BudgetEvent,
        failure_event: BudgetEvent,
    ) -> CommandResult:
        with self._lock:
            logger.debug("Running %s", name)
            current = self._state
            base = self._roll_forward(current)

            updated, error = transition(base)
            if error:
                logger.info("Rejected %s: %s", name, error.message)
                return self._finish(failure_event, current, error=error)

            # An expense added or moved into the past is charged right away
            rolled = self._roll_forward(updated)
            if rolled is not updated:
                updated = budget.rebalance(rolled)

            changed = updated is not current
            if changed:
                self._commit(updated)
            return self._finish(success_event, updated, changed=changed)

    def _commit(self, state: BudgetState) -> None:
        try:
            self._store.save(state)
        except Exception as e:
            logger.error("Failed to persist budget snapshot: %s", e)
            raise PersistError(f"Could not save budget: {e}") from e

        self._state = state
        for callback in list(self._state_subscribers):
            try:
                callback(state)
            except Exception:
                logger.exception("State subscriber failed")

    def _finish(
        self,
        event: BudgetEvent,
        state: BudgetState,
        error: BudgetError | None = None,
        changed: bool = False,
    ) -> CommandResult:
        for callback in list(self._event_subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed")
        return CommandResult(event=event, state=state, error=error, changed=changed)
