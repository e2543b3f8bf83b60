"""Keyword classifier mapping a free-text query to an agent type."""

from ..models import AgentType

SALES_KEYWORDS = (
    "lead", "client", "company", "organization", "deal", "pipeline",
    "contact", "revenue", "prospect", "sales", "crm", "folk",
)

TALENT_KEYWORDS = (
    "crew", "talent", "director", "producer", "dp", "casting",
    "hire", "skill", "cinematographer", "editor", "writer",
)

BIDDING_KEYWORDS = (
    "bid", "cost", "rate", "budget", "estimate", "vendor",
    "financial", "breakdown", "price", "fee", "invoice", "line item",
)

KEYWORDS: dict[AgentType, tuple[str, ...]] = {
    AgentType.SALES: SALES_KEYWORDS,
    AgentType.TALENT: TALENT_KEYWORDS,
    AgentType.BIDDING: BIDDING_KEYWORDS,
}


def score_query(text: str) -> dict[AgentType, int]:
    """Count how many keywords of each set occur in the text.

    Matching is case-insensitive substring search, so "rates" matches "rate"
    and "dp" matches inside longer words. Each keyword counts at most once.
    """
    lower = text.lower()
    return {
        agent_type: sum(1 for keyword in keywords if keyword in lower)
        for agent_type, keywords in KEYWORDS.items()
    }


def classify_query(text: str) -> AgentType:
    """
    Pick the agent type for a query.

    Bidding wins only with a strictly higher score than both other sets;
    otherwise talent wins if it beats sales, and everything else, including
    a query with no keywords at all, goes to sales.
    """
    scores = score_query(text)
    sales = scores[AgentType.SALES]
    talent = scores[AgentType.TALENT]
    bidding = scores[AgentType.BIDDING]

    if bidding > sales and bidding > talent:
        return AgentType.BIDDING
    if talent > sales:
        return AgentType.TALENT
    return AgentType.SALES
