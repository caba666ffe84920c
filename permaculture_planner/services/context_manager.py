"""
Conversation history management for the AI assistant.

Keeps the most recent exchanges verbatim and folds older user questions into
a short summary so the history stays inside a rough token budget
(1 token ~ 4 characters).
"""
import math
import re
from typing import Any, Dict, List

RECENT_PAIRS_TO_KEEP = 3
MAX_HISTORY_TOKENS = 6000
CHARS_PER_TOKEN = 4

_SENTENCE_END = re.compile(r"[.!?]")


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_total_tokens(messages: List[Dict[str, str]]) -> int:
    return sum(estimate_tokens(message["content"]) for message in messages)


def summarize_old_messages(messages: List[Dict[str, str]]) -> str:
    """Numbered list of the first sentence of each older user question."""
    if not messages:
        return ""

    topics = []
    for message in messages[::2]:
        if message["role"] != "user":
            continue
        topic = _SENTENCE_END.split(message["content"], maxsplit=1)[0][:100].strip()
        if topic:
            topics.append(topic)

    numbered = "\n".join(f"{i}. {topic}" for i, topic in enumerate(topics, start=1))
    return (
        "**Earlier in this conversation:**\n"
        f"{numbered}\n\n"
        "The conversation above covered these topics. Let me help you with your current question."
    )


def _result(managed: List[Dict[str, str]], compressed: bool, original: List[Dict[str, str]], original_tokens: int) -> Dict[str, Any]:
    return {
        "managed_history": managed,
        "was_compressed": compressed,
        "stats": {
            "original_messages": len(original),
            "original_tokens": original_tokens,
            "final_messages": len(managed),
            "final_tokens": estimate_total_tokens(managed) if compressed else original_tokens,
        },
    }


def manage_conversation_context(history: List[Dict[str, str]]) -> Dict[str, Any]:
    """Fit ``history`` (alternating user/assistant dicts) into the token budget."""
    original_tokens = estimate_total_tokens(history)
    keep = RECENT_PAIRS_TO_KEEP * 2

    if original_tokens <= MAX_HISTORY_TOKENS or len(history) <= keep:
        return _result(list(history), False, history, original_tokens)

    old_messages = history[:-keep]
    recent = [dict(message) for message in history[-keep:]]
    summary = summarize_old_messages(old_messages)

    # Summary goes on the first user turn of the recent window
    for message in recent:
        if message["role"] == "user":
            message["content"] = (
                "[Context from earlier in this conversation]\n\n"
                f"{summary}\n\n---\n\n{message['content']}"
            )
            break

    return _result(recent, True, history, original_tokens)
