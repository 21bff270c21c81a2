"""AI Agents package."""

from fingrow.agents.ai_agents import (
    ADVISOR_GREETING,
    EXAMPLE_INVESTMENT_QUERIES,
    INVESTMENT_DISCLAIMER,
    AdvisorAgent,
    ChatMessage,
    GroundingSource,
    InvestmentSearchAgent,
    InvestmentSearchResult,
    build_transactions_context,
    extract_sources,
)

__all__ = [
    "ADVISOR_GREETING",
    "EXAMPLE_INVESTMENT_QUERIES",
    "INVESTMENT_DISCLAIMER",
    "AdvisorAgent",
    "ChatMessage",
    "GroundingSource",
    "InvestmentSearchAgent",
    "InvestmentSearchResult",
    "build_transactions_context",
    "extract_sources",
]
