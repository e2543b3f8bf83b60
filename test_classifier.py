"""Tests for keyword classification of queries."""

from switchboard.agents.classifier import classify_query, score_query
from switchboard.models import AgentType


def test_score_counts_each_keyword_once():
    scores = score_query("Budget, budget and more BUDGET for the bid")
    assert scores[AgentType.BIDDING] == 2  # "budget" and "bid"
    assert scores[AgentType.SALES] == 0
    assert scores[AgentType.TALENT] == 0


def test_substring_matching():
    # "rates" contains "rate"; "editorial" contains "editor"
    scores = score_query("What are the day rates for editorial work?")
    assert scores[AgentType.BIDDING] == 1
    assert scores[AgentType.TALENT] == 1


def test_bidding_query():
    assert classify_query("What's the budget breakdown for the Nike bid?") == AgentType.BIDDING


def test_budget_and_rate_is_bidding():
    assert classify_query("What budget and rate should we expect?") == AgentType.BIDDING


def test_dp_rate_on_bid_is_bidding():
    # bidding 2 ("rate", "bid") beats talent 1 ("dp")
    assert classify_query("What is the rate for the DP on bid X?") == AgentType.BIDDING


def test_talent_query():
    assert classify_query("Find a cinematographer with commercial experience") == AgentType.TALENT


def test_sales_query():
    assert classify_query("Which company is the lead on this deal?") == AgentType.SALES


def test_no_keywords_defaults_to_sales():
    assert classify_query("hello there") == AgentType.SALES
    assert classify_query("") == AgentType.SALES


def test_bidding_needs_strict_majority():
    # bidding 1, talent 1: bidding does not win a tie, talent beats sales
    assert classify_query("crew cost") == AgentType.TALENT
    # bidding 1, sales 1: sales wins the tie
    assert classify_query("client budget") == AgentType.SALES


def test_talent_sales_tie_goes_to_sales():
    assert classify_query("director at the client") == AgentType.SALES


def test_case_insensitive():
    assert classify_query("DIRECTOR AND CREW") == AgentType.TALENT


def main():
    """Run all tests."""
    for name, func in list(globals().items()):
        if name.startswith("test_") and callable(func):
            func()
            print(f"[PASS] {name}")


if __name__ == "__main__":
    main()
