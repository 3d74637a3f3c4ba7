"""
Main Orchestrator for SmartSpend

This module ties together all the components and defines the
end-to-end flows for:
1. AI-assisted entry (free text → draft → user review → add_expense)
2. Insights (current workspace expenses → short advice)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is recorded without the user submitting the draft
- Agents only ever see read-side views, never the store
- Every fallback is audited
"""

from typing import Optional
from uuid import UUID

import structlog

from smartspend.agents import (
    UNAVAILABLE_ADVICE,
    ExpenseExtractionAgent,
    ExtractedExpense,
    InsightsAgent,
    merge_extraction,
)
from smartspend.audit import AuditLogger, create_correlation_id
from smartspend.config import get_settings
from smartspend.models.ledger import Category, ExpenseDraft
from smartspend.models.outcome import TransitionOutcome
from smartspend.queries import LedgerQueryEngine
from smartspend.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
    InMemoryStateStorage,
    LocalFileStateStorage,
    StateStorageInterface,
)
from smartspend.state import StateStore

logger = structlog.get_logger("smartspend.orchestrator")

GEMINI_SERVICE = "gemini"


class ExpenseEntryFlow:
    """
    Orchestrates AI-assisted expense entry.

    Flow:
    1. Suggest → Agent reads free text, result merged into the draft
    2. Review → User edits the draft (PAUSE)
    3. Submit → Draft becomes an add_expense transition

    A missing or failing agent leaves the draft usable: category Other,
    the typed text as description, the typed amount kept.
    """

    def __init__(
        self,
        store: StateStore,
        extraction_agent: Optional[ExpenseExtractionAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._agent = extraction_agent
        self._audit_logger = audit_logger

    async def suggest_draft(
        self,
        free_text: str,
        draft: Optional[ExpenseDraft] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ExpenseDraft, ExtractedExpense]:
        """
        Fill a draft from free text.

        Returns:
            (merged_draft, extraction)
        """
        correlation_id = correlation_id or create_correlation_id()
        draft = draft or ExpenseDraft()

        if self._agent is None:
            extraction = ExtractedExpense(
                category=Category.OTHER,
                description=free_text,
                used_fallback=True,
                error_message="Text generation is not configured",
            )
        else:
            extraction = await self._agent.extract_expense(free_text)

        if extraction.used_fallback and self._audit_logger:
            self._audit_logger.log_external_service_error(
                service=GEMINI_SERVICE,
                error_message=extraction.error_message or "Extraction fell back",
                correlation_id=correlation_id,
            )

        return merge_extraction(draft, extraction), extraction

    def submit(
        self,
        draft: ExpenseDraft,
        workspace_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransitionOutcome:
        """Record the reviewed draft for the active user."""
        return self._store.add_expense(
            description=draft.description,
            amount=draft.amount,
            category=draft.category,
            date=draft.date,
            workspace_id=workspace_id,
            correlation_id=correlation_id,
        )


class InsightsFlow:
    """Advice for one workspace, computed from its current expenses."""

    def __init__(
        self,
        query_engine: LedgerQueryEngine,
        insights_agent: Optional[InsightsAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._queries = query_engine
        self._agent = insights_agent
        self._audit_logger = audit_logger

    async def advice(
        self,
        workspace_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        correlation_id = correlation_id or create_correlation_id()
        summary = self._queries.budget_summary(workspace_id)
        if summary is None:
            return UNAVAILABLE_ADVICE

        if self._agent is None:
            error_message = "Text generation is not configured"
            text = UNAVAILABLE_ADVICE
        else:
            expenses = self._queries.workspace_expenses(summary.workspace_id)
            text = await self._agent.financial_advice(expenses, summary.budget_limit)
            error_message = self._agent.last_error

        if error_message and self._audit_logger:
            self._audit_logger.log_external_service_error(
                service=GEMINI_SERVICE,
                error_message=error_message,
                correlation_id=correlation_id,
            )
        return text


def create_state_storage(
    backend: Optional[str] = None,
    sheets_client: Optional[GoogleSheetsClient] = None,
) -> StateStorageInterface:
    """Build the configured snapshot backend."""
    storage_settings = get_settings().storage
    backend = backend or storage_settings.backend

    if backend == "memory":
        return InMemoryStateStorage()
    if backend == "google_sheets":
        return GoogleSheetsStateStorage(sheets_client or GoogleSheetsClient())
    return LocalFileStateStorage(storage_settings.state_file_path)


def create_app_components(
    use_ai: bool = True,
) -> tuple[StateStore, LedgerQueryEngine, ExpenseEntryFlow, InsightsFlow]:
    """
    Factory function to create all application components.

    Args:
        use_ai: Whether to build the Gemini agents.
                Set to False to run without an API key.

    Returns:
        (store, query_engine, entry_flow, insights_flow)
    """
    backend = get_settings().storage.backend
    sheets_client = None
    audit_logger = AuditLogger()  # Local-only logging

    if backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
            storage = create_state_storage(backend, sheets_client)
        except Exception as e:
            # Sheets not configured - continue with the local file
            logger.warning("sheets_storage_unavailable", error=str(e))
            storage = create_state_storage("file")
    else:
        storage = create_state_storage(backend)

    store = StateStore(storage, audit_logger=audit_logger)
    query_engine = LedgerQueryEngine(store)

    extraction_agent = None
    insights_agent = None
    if use_ai:
        try:
            extraction_agent = ExpenseExtractionAgent()
            insights_agent = InsightsAgent()
        except Exception as e:
            logger.warning("text_generation_unavailable", error=str(e))
            extraction_agent = None
            insights_agent = None

    entry_flow = ExpenseEntryFlow(
        store,
        extraction_agent=extraction_agent,
        audit_logger=audit_logger,
    )
    insights_flow = InsightsFlow(
        query_engine,
        insights_agent=insights_agent,
        audit_logger=audit_logger,
    )

    return store, query_engine, entry_flow, insights_flow
