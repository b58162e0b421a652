"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .events import EventBus
from .infra.database import create_db_engine, create_session_factory, init_database
from .infra.store import SQLModelStore
from .services import (
    DebtReconciliationListener,
    DebtService,
    HabitRuleEvaluator,
    HabitService,
    LedgerService,
    ProcessorState,
    RecurringService,
    ScheduleProcessor,
    TaskAutoCompletionListener,
    TaskService,
)


@dataclass
class AppContext:
    """Everything a host needs: storage, the bus, services and listeners."""

    config: BaseConfig
    engine: Engine
    store: SQLModelStore
    bus: EventBus

    ledger: LedgerService
    recurring: RecurringService
    processor: ScheduleProcessor
    debts: DebtService
    habits: HabitService
    tasks: TaskService

    debt_sync: DebtReconciliationListener
    habit_rules: HabitRuleEvaluator
    task_completion: TaskAutoCompletionListener

    def dispose(self) -> None:
        self.bus.clear()
        self.engine.dispose()


def create_app_context(
    config: Optional[BaseConfig] = None,
    *,
    clock: Callable[[], date] = date.today,
    processor_state: Optional[ProcessorState] = None,
) -> AppContext:
    """Create the engine and schema, then wire services and register listeners.

    Listeners subscribe in a fixed order (debts, habits, tasks) so a single
    ledger event updates the debt before tasks react to its status change.
    """
    if config is None:
        config = BaseConfig()

    engine = create_db_engine(config)
    init_database(engine)
    store = SQLModelStore(create_session_factory(engine))
    bus = EventBus()

    ledger = LedgerService(store, bus, default_currency=config.DEFAULT_CURRENCY)
    debt_sync = DebtReconciliationListener(store, bus, ledger)
    habit_rules = HabitRuleEvaluator(store, bus)
    task_completion = TaskAutoCompletionListener(store, bus)
    for listener in (debt_sync, habit_rules, task_completion):
        listener.register()

    return AppContext(
        config=config,
        engine=engine,
        store=store,
        bus=bus,
        ledger=ledger,
        recurring=RecurringService(store, ledger, clock=clock),
        processor=ScheduleProcessor(store, ledger, state=processor_state, clock=clock),
        debts=DebtService(store, bus, default_currency=config.DEFAULT_CURRENCY),
        habits=HabitService(store),
        tasks=TaskService(store),
        debt_sync=debt_sync,
        habit_rules=habit_rules,
        task_completion=task_completion,
    )
