"""
Unit tests for conversation history compression.
"""
from permaculture_planner.services.context_manager import (
    estimate_tokens,
    manage_conversation_context,
    summarize_old_messages,
)


def exchange(question, answer):
    return [{"role": "user", "content": question}, {"role": "assistant", "content": answer}]


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_short_history_is_left_alone():
    history = exchange("Where should my pond go?", "Low in the landscape.")
    result = manage_conversation_context(history)

    assert result["was_compressed"] is False
    assert result["managed_history"] == history
    assert result["stats"]["original_messages"] == 2


def test_long_history_keeps_recent_pairs_and_summarizes_the_rest():
    padding = "x" * 4000
    history = []
    for topic in ("swales", "ponds", "guilds", "chickens", "compost"):
        history += exchange(f"Tell me about {topic}. {padding}", f"Answer about {topic}. {padding}")

    result = manage_conversation_context(history)
    managed = result["managed_history"]

    assert result["was_compressed"] is True
    assert len(managed) == 6
    assert managed[0]["role"] == "user"
    assert managed[0]["content"].startswith("[Context from earlier in this conversation]")
    assert "1. Tell me about swales" in managed[0]["content"]
    assert "2. Tell me about ponds" in managed[0]["content"]
    assert managed[0]["content"].endswith(f"Tell me about guilds. {padding}")
    assert managed[1] == history[5]
    # the caller's history is not mutated
    assert history[4]["content"] == f"Tell me about guilds. {padding}"
    assert result["stats"]["final_tokens"] < result["stats"]["original_tokens"]


def test_summarize_old_messages():
    assert summarize_old_messages([]) == ""
    summary = summarize_old_messages(exchange("How deep is a swale? Asking for my hillside.", "About a foot."))
    assert "1. How deep is a swale" in summary
    assert "About a foot" not in summary
