"""
AI Agents for FinGrow

Two Gemini-backed helpers:

1. ADVISOR AGENT ("Finley"):
   - CAN: Answer questions about the user's recent transactions
   - CAN: Stream its reply as it is generated
   - CANNOT: Change the ledger (it only ever sees a JSON snapshot)

2. INVESTMENT SEARCH AGENT:
   - CAN: Answer a free-text investment question with Google Search grounding
   - CAN: Cite the web sources the answer was grounded on
   - CANNOT: Give personalised financial advice (the UI shows a disclaimer)

DESIGN DECISION: AI failures are never fatal. A missing API key or a
transport error becomes an inline message and an audit event; the ledger is
unaffected.

Concurrency:
- Each advisor request owns a reply slot keyed by its correlation id, so
  a late reply can only ever fill its own slot
- Investment search keeps one result; only the newest request may set it
"""

import json
from collections.abc import Callable, Sequence
from typing import Any, Literal, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from fingrow.audit.logger import AuditLogger, create_correlation_id
from fingrow.config import GeminiSettings, get_settings
from fingrow.models.audit import AuditEventBuilder, AuditEventType
from fingrow.models.ledger import Transaction


ADVISOR_SYSTEM_INSTRUCTION = (
    "You are 'Finley', a friendly and insightful AI financial advisor for the "
    "TSF-FinGrow app. Your goal is to provide clear, actionable, and encouraging "
    "financial advice based on the user's transaction data. Analyze their "
    "spending, identify trends, and help them understand their financial habits "
    "to make smarter decisions. Be positive, empathetic, and avoid judgmental "
    "language. Your tone should be supportive, like a knowledgeable friend. Do "
    "not provide professional, legally-binding financial advice, but rather "
    "educational guidance and suggestions. When asked, analyze the provided "
    "JSON data of transactions to answer user questions."
)

ADVISOR_GREETING = (
    "Hello! I am Finley, your personal AI financial advisor. "
    "How can I help you understand your finances today?"
)
ADVISOR_UNAVAILABLE = (
    "The AI Advisor feature is currently unavailable. "
    "Please make sure the API key is configured correctly."
)
ADVISOR_ERROR = "Sorry, I encountered an error. Please try again."
NO_TRANSACTIONS_CONTEXT = "The user has not added any transactions yet."

SEARCH_UNAVAILABLE = "API Key not configured. This feature is unavailable."
SEARCH_ERROR = "Sorry, I couldn't fetch the information. Please try again later."
SEARCH_TOOL = "google_search_retrieval"

EXAMPLE_INVESTMENT_QUERIES = [
    "What are some popular investment platforms in Nigeria?",
    "Explain ETFs for beginners.",
    "What are the current trends in sustainable investing?",
    "Risks and rewards of cryptocurrency.",
]

INVESTMENT_DISCLAIMER = (
    "Disclaimer: This AI-generated information is for educational purposes only "
    "and is not financial advice. Always conduct your own research or consult "
    "with a qualified professional."
)

logger = structlog.get_logger(__name__)


class ChatMessage(BaseModel):
    """One bubble in the advisor conversation."""

    id: str
    role: Literal["user", "model"]
    text: str = ""
    pending: bool = Field(
        default=False,
        description="True while the reply is still streaming"
    )


class GroundingSource(BaseModel):
    """A web page an investment answer was grounded on."""

    uri: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)


class InvestmentSearchResult(BaseModel):
    """Answer to one investment question."""

    query: str
    text: str
    sources: list[GroundingSource] = Field(default_factory=list)
    is_error: bool = False


def build_transactions_context(
    transactions: Sequence[Transaction],
    limit: int = 50,
) -> str:
    """
    Context block sent ahead of every advisor question.

    Only the `limit` most recent transactions are included.
    """
    if not transactions:
        return NO_TRANSACTIONS_CONTEXT

    recent = [t.model_dump(mode="json") for t in transactions[:limit]]
    return (
        "Here is a summary of the user's recent transactions in JSON format: "
        f"{json.dumps(recent)}"
    )


def build_advisor_prompt(context: str, question: str) -> str:
    return f"{context}\n\nUser question: {question}"


def extract_sources(response: Any) -> list[GroundingSource]:
    """
    Web sources from a grounded Gemini response.

    Deduplicated by uri. When a uri repeats, the last title wins but the
    first position is kept. Chunks without a uri or a title are skipped.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []

    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    by_uri: dict[str, str] = {}
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None)
        title = getattr(web, "title", None)
        if uri and title:
            by_uri[uri] = title

    return [GroundingSource(uri=uri, title=title) for uri, title in by_uri.items()]


class _GeminiAgent:
    """Shared Gemini setup. `model` may be injected (tests)."""

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        audit: Optional[AuditLogger] = None,
        model: Any = None,
    ):
        self._settings = settings or get_settings().gemini
        self._audit = audit or AuditLogger()
        self._model = model
        if self._model is None and self._settings.is_configured:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
            **self._model_kwargs(),
        )

    def _model_kwargs(self) -> dict:
        return {}

    @property
    def is_available(self) -> bool:
        return self._model is not None


class AdvisorAgent(_GeminiAgent):
    """
    Chat with Finley about the user's transactions.

    The conversation is kept here; the UI renders `messages`.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        audit: Optional[AuditLogger] = None,
        model: Any = None,
        context_limit: int = 50,
    ):
        super().__init__(settings=settings, audit=audit, model=model)
        self._context_limit = context_limit
        self._chat = None
        self._messages: list[ChatMessage] = []
        self.reset()

    def _model_kwargs(self) -> dict:
        return {"system_instruction": ADVISOR_SYSTEM_INSTRUCTION}

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def reset(self) -> None:
        """Start a fresh conversation."""
        self._chat = self._model.start_chat(history=[]) if self.is_available else None
        opening = ADVISOR_GREETING if self.is_available else ADVISOR_UNAVAILABLE
        self._messages = [ChatMessage(id="init", role="model", text=opening)]

    def _update_slot(self, slot_id: str, **changes) -> Optional[ChatMessage]:
        """Apply changes to a reply slot. None if a reset has removed it."""
        for idx, message in enumerate(self._messages):
            if message.id == slot_id:
                self._messages[idx] = message.model_copy(update=changes)
                return self._messages[idx]
        return None

    def _slot_text(self, slot_id: str) -> Optional[str]:
        return next((m.text for m in self._messages if m.id == slot_id), None)

    async def ask(
        self,
        question: str,
        transactions: Sequence[Transaction],
        on_chunk: Optional[Callable[[str], None]] = None,
    ) -> Optional[ChatMessage]:
        """
        Send a question and stream the reply into its own slot.

        Args:
            question: The user's question. Blank questions are ignored.
            transactions: Newest-first transactions used as context
            on_chunk: Called with the reply so far after every chunk

        Returns:
            The finished reply message, or None if the question was blank
            or the conversation was reset before the reply finished
        """
        if not question or not question.strip():
            return None

        correlation_id = create_correlation_id()
        slot_id = str(correlation_id)
        self._messages.append(ChatMessage(id=f"{slot_id}-user", role="user", text=question))

        if not self.is_available:
            self._audit.log(AuditEventBuilder.ai_unavailable("advisor"))
            self._messages.append(ChatMessage(id=slot_id, role="model", text=ADVISOR_UNAVAILABLE))
            return self._messages[-1]

        self._messages.append(ChatMessage(id=slot_id, role="model", pending=True))

        context_size = min(len(transactions), self._context_limit)
        prompt = build_advisor_prompt(
            build_transactions_context(transactions, self._context_limit),
            question,
        )

        try:
            response = await self._chat.send_message_async(prompt, stream=True)
            async for chunk in response:
                current = self._slot_text(slot_id)
                if current is None:
                    logger.info("advisor_reply_dropped", correlation_id=slot_id)
                    return None
                text = current + (chunk.text or "")
                self._update_slot(slot_id, text=text)
                if on_chunk:
                    on_chunk(text)
        except Exception as e:
            logger.error("advisor_reply_failed", correlation_id=slot_id, error=str(e))
            self._audit.log(
                AuditEventBuilder.external_service_error(
                    AuditEventType.ADVISOR_REPLY_FAILED, "gemini", str(e), correlation_id
                )
            )
            return self._update_slot(slot_id, text=ADVISOR_ERROR, pending=False)

        reply = self._update_slot(slot_id, pending=False)
        if reply is None:
            logger.info("advisor_reply_dropped", correlation_id=slot_id)
            return None
        self._audit.log(
            AuditEventBuilder.advisor_reply_completed(correlation_id, context_size, len(reply.text))
        )
        return reply


class InvestmentSearchAgent(_GeminiAgent):
    """
    Grounded web search for investment questions.

    Only the newest request may publish its result: a response that comes
    back after a later request was started is dropped.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        audit: Optional[AuditLogger] = None,
        model: Any = None,
    ):
        super().__init__(settings=settings, audit=audit, model=model)
        self._sequence = 0
        self._result: Optional[InvestmentSearchResult] = None

    @property
    def result(self) -> Optional[InvestmentSearchResult]:
        return self._result

    async def search(self, query: str) -> Optional[InvestmentSearchResult]:
        """
        Ask an investment question.

        Returns the published result, or None if the query was blank or the
        request was superseded by a newer one.
        """
        if not query or not query.strip():
            return None

        self._sequence += 1
        sequence = self._sequence
        correlation_id = create_correlation_id()

        if not self.is_available:
            self._audit.log(AuditEventBuilder.ai_unavailable("investment_search"))
            result = InvestmentSearchResult(query=query, text=SEARCH_UNAVAILABLE, is_error=True)
        else:
            try:
                response = await self._model.generate_content_async(query, tools=SEARCH_TOOL)
                result = InvestmentSearchResult(
                    query=query,
                    text=response.text,
                    sources=extract_sources(response),
                )
            except Exception as e:
                logger.error("investment_search_failed", correlation_id=str(correlation_id), error=str(e))
                self._audit.log(
                    AuditEventBuilder.external_service_error(
                        AuditEventType.INVESTMENT_SEARCH_FAILED, "gemini", str(e), correlation_id
                    )
                )
                result = InvestmentSearchResult(query=query, text=SEARCH_ERROR, is_error=True)

        if sequence != self._sequence:
            self._audit.log(
                AuditEventBuilder.investment_search_superseded(
                    correlation_id, sequence, self._sequence
                )
            )
            return None

        self._result = result
        if not result.is_error:
            self._audit.log(
                AuditEventBuilder.investment_search_completed(
                    correlation_id, query, len(result.sources)
                )
            )
        return result
