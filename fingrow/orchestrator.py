"""
Main Orchestrator for FinGrow

This module ties together all the components:
1. Storage backend + collection store
2. Controllers for every collection, budgets and preferences
3. The AI advisor and investment search agents
4. The composite views the pages render (dashboard, expense tracker)

DESIGN DECISION: The orchestrator owns no state of its own. Every view is
recomputed from the store on each call, so a page never shows a stale
aggregate after a mutation.

This is the "glue" the Streamlit app talks to. Pages call controllers for
changes and the view methods here for everything they display.
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict

from fingrow.agents import AdvisorAgent, ChatMessage, InvestmentSearchAgent
from fingrow.audit import AuditLogger, configure_logging
from fingrow.config import Settings, get_settings
from fingrow.ledger import aggregator
from fingrow.ledger.controllers import (
    AssetController,
    BudgetController,
    LiabilityController,
    PreferencesController,
    RecordController,
    TransactionController,
)
from fingrow.models.ledger import (
    CategoryTotal,
    DailyTotal,
    DateRange,
    ExpenseSummary,
    LedgerTotals,
    MonthlyBucket,
    NetWorthSummary,
    Transaction,
)
from fingrow.services.storage import (
    CollectionStore,
    GoogleSheetsBackend,
    GoogleSheetsClient,
    InMemoryBackend,
    LocalFileBackend,
    StorageBackend,
)


logger = structlog.get_logger(__name__)


class DashboardView(BaseModel):
    """Everything on the dashboard page."""
    model_config = ConfigDict(frozen=True)

    currency: str
    totals: LedgerTotals
    average_daily_spend: Decimal
    monthly: list[MonthlyBucket]
    spending_by_category: list[CategoryTotal]
    recent: list[Transaction]


class ExpenseTrackerView(BaseModel):
    """The expense tracker page for one date window."""
    model_config = ConfigDict(frozen=True)

    currency: str
    date_range: DateRange
    expenses: list[Transaction]
    summary: ExpenseSummary
    daily: list[DailyTotal]
    by_category: list[CategoryTotal]


class FinGrowApp:
    """
    One session's worth of components.

    Usage:
        app = create_app_components()
        app.transactions.add(draft)
        view = app.dashboard()
    """

    def __init__(
        self,
        store: CollectionStore,
        settings: Settings,
        audit: AuditLogger,
        clock: Callable[[], datetime] = datetime.now,
        advisor: Optional[AdvisorAgent] = None,
        investment_search: Optional[InvestmentSearchAgent] = None,
    ):
        app_settings = settings.app

        self.store = store
        self.audit = audit
        self._clock = clock
        self._recent_limit = app_settings.recent_transactions_limit

        self.transactions = TransactionController(store, audit, clock)
        self.records = RecordController(store, audit, clock)
        self.assets = AssetController(store, audit, clock)
        self.liabilities = LiabilityController(store, audit, clock)
        self.preferences = PreferencesController(
            store,
            default_currency=app_settings.default_currency,
            default_financial_goal=app_settings.default_financial_goal,
            audit=audit,
        )
        self.budgets = BudgetController(
            store,
            self.transactions,
            self.preferences,
            default_limit=app_settings.default_budget_limit,
            audit=audit,
            clock=clock,
        )

        if advisor is None or investment_search is None:
            gemini = settings.gemini
            advisor = advisor or AdvisorAgent(
                gemini, audit, context_limit=app_settings.advisor_context_limit
            )
            investment_search = investment_search or InvestmentSearchAgent(gemini, audit)
        self.advisor = advisor
        self.investment_search = investment_search

    def now(self) -> datetime:
        return self._clock()

    def dashboard(self, as_of: Optional[datetime] = None) -> DashboardView:
        as_of = as_of or self._clock()
        transactions = self.transactions.list_items()
        return DashboardView(
            currency=self.preferences.currency,
            totals=aggregator.totals(transactions),
            average_daily_spend=aggregator.average_daily_spend(transactions, as_of),
            monthly=aggregator.monthly_series(transactions),
            spending_by_category=aggregator.category_breakdown(transactions),
            recent=aggregator.recent(transactions, self._recent_limit),
        )

    def expense_tracker(
        self,
        date_range: Union[DateRange, str] = DateRange.THIS_MONTH,
        as_of: Optional[datetime] = None,
    ) -> ExpenseTrackerView:
        as_of = as_of or self._clock()
        expenses = aggregator.window_filter(
            aggregator.expenses_only(self.transactions.list_items()), date_range, as_of
        )
        return ExpenseTrackerView(
            currency=self.preferences.currency,
            date_range=DateRange(date_range),
            expenses=expenses,
            summary=aggregator.expense_summary(expenses),
            daily=aggregator.daily_series(expenses),
            by_category=aggregator.category_breakdown(expenses),
        )

    def net_worth(self) -> NetWorthSummary:
        return aggregator.net_worth(self.assets.list_items(), self.liabilities.list_items())

    async def ask_advisor(
        self,
        question: str,
        on_chunk: Optional[Callable[[str], None]] = None,
    ) -> Optional[ChatMessage]:
        return await self.advisor.ask(question, self.transactions.list_items(), on_chunk)


def create_backend(settings: Settings) -> StorageBackend:
    """
    Build the configured storage backend.

    Google Sheets falls back to local files if it cannot be reached, so the
    app stays usable offline.
    """
    storage = settings.storage

    if storage.backend == "memory":
        return InMemoryBackend()

    if storage.backend == "google_sheets":
        try:
            client = GoogleSheetsClient(settings.google_sheets)
            client.get_store_sheet()
            return GoogleSheetsBackend(client)
        except Exception as e:
            # Storage not configured - continue with local files
            logger.warning(
                "google_sheets_unavailable",
                error=str(e),
                fallback=str(storage.data_dir),
            )

    return LocalFileBackend(storage.data_dir)


def create_app_components(
    settings: Optional[Settings] = None,
    backend: Optional[StorageBackend] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> FinGrowApp:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use. Defaults to the cached global settings.
        backend: Storage backend override (tests pass InMemoryBackend).
        clock: Source of "now" for record timestamps and date windows.
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    audit = AuditLogger()
    backend = backend or create_backend(settings)
    logger.info("app_components_created", backend=backend.name)

    return FinGrowApp(
        store=CollectionStore(backend, audit),
        settings=settings,
        audit=audit,
        clock=clock,
    )
