from datetime import datetime

from supportchat.database.models import Message, Sender
from supportchat.services.prompt import STORE_KNOWLEDGE, build_prompt, truncate_question


def make_history(n):
    return [
        Message(
            id=f"m{i}",
            conversation_id="c1",
            sender=Sender.USER if i % 2 == 0 else Sender.AI,
            text=f"turn {i}",
            created_at=datetime(2024, 1, 1, 12, 0, i),
        )
        for i in range(n)
    ]


def test_prompt_sections_in_order():
    prompt = build_prompt(make_history(2), "What's your return policy?")

    knowledge_at = prompt.index(STORE_KNOWLEDGE)
    history_at = prompt.index("CONVERSATION HISTORY:")
    question_at = prompt.index('CURRENT CUSTOMER QUESTION: "What\'s your return policy?"')
    assert knowledge_at == 0
    assert knowledge_at < history_at < question_at
    assert prompt.endswith("Provide a helpful response based ONLY on the store knowledge above.")


def test_speaker_labels():
    prompt = build_prompt(make_history(2), "hi")
    assert "Customer: turn 0" in prompt
    assert "Support Agent: turn 1" in prompt


def test_transcript_shows_only_last_five():
    prompt = build_prompt(make_history(10), "hi")
    for i in range(5):
        assert f"turn {i}\n" not in prompt
    for i in range(5, 10):
        assert f"turn {i}\n" in prompt


def test_no_history_block_without_history():
    prompt = build_prompt([], "hi")
    assert "CONVERSATION HISTORY" not in prompt
    assert prompt.startswith(STORE_KNOWLEDGE + "\n\nCURRENT CUSTOMER QUESTION")


def test_long_question_is_truncated():
    question = "a" * 2500
    truncated = truncate_question(question)
    assert truncated == "a" * 2000 + "..."

    prompt = build_prompt([], question)
    assert f'"{"a" * 2000}..."' in prompt
    assert "a" * 2001 not in prompt


def test_short_question_untouched():
    assert truncate_question("a" * 2000) == "a" * 2000
