import threading
import time

import pytest

from relay.core.commands import (
    CHAT,
    CLEARED_REPLY,
    FAILURE_REPLY,
    HELP_TEXT,
    PROMPT_SET_REPLY,
    CommandRouter,
    format_conversation,
)
from relay.core.types import SamplingOptions, Turn
from relay.providers.ollama import InferenceError
from relay.runtime_state import SessionStore

from conftest import DEFAULT_PROMPT, FakeOllama

ME = "@me:example.org"


@pytest.mark.parametrize(
    "body, expected",
    [
        ("/clear", "clear"),
        ("/clearfoo", "clear"),
        ("/setprompt be terse", "setprompt"),
        ("/setprompt", "setprompt"),
        ("/viewprompt", "viewprompt"),
        ("/viewconversation", "viewconversation"),
        ("/help", "help"),
        ("/HELP", CHAT),
        ("hello /help", CHAT),
        ("What is 2+2?", CHAT),
    ],
)
def test_classify_literal_prefixes(router, body, expected):
    assert router.classify(body) == expected


@pytest.mark.parametrize(
    "body, expected",
    [
        ("/clear", "clear"),
        ("/clear now", "clear"),
        ("/clearfoo", CHAT),
        ("/setprompt\tbe terse", "setprompt"),
        ("/helpme", CHAT),
    ],
)
def test_classify_strict_tokens(store, llm, body, expected):
    strict = CommandRouter(store=store, client=llm, strict_commands=True)
    assert strict.classify(body) == expected


def test_clear_then_view_is_empty(router, store):
    router.handle(ME, "one")
    router.handle(ME, "two")

    assert router.handle(ME, "/clear") == CLEARED_REPLY
    assert router.handle(ME, "/viewconversation") == format_conversation([])
    assert store.get(ME).history == []


def test_setprompt_then_viewprompt_roundtrip(router):
    assert router.handle(ME, "/setprompt   be terse  ") == PROMPT_SET_REPLY
    assert router.handle(ME, "/viewprompt") == "be terse"


def test_bare_setprompt_sets_empty_prompt(router):
    assert router.handle(ME, "/setprompt") == PROMPT_SET_REPLY
    assert router.handle(ME, "/viewprompt") == ""


def test_viewprompt_shows_default_for_new_session(router):
    assert router.handle(ME, "/viewprompt") == DEFAULT_PROMPT


def test_help_lists_commands_and_leaves_state_alone(router, store, llm):
    reply = router.handle(ME, "/help")

    assert reply == HELP_TEXT
    for command in ("/clear", "/setprompt", "/viewprompt", "/viewconversation", "/help"):
        assert command in reply
    session = store.get(ME)
    assert session.history == []
    assert session.system_prompt == DEFAULT_PROMPT
    assert llm.calls == []


def test_commands_never_reach_the_model(router, llm):
    for body in ("/clear", "/setprompt x", "/viewprompt", "/viewconversation", "/help"):
        router.handle(ME, body)

    assert llm.calls == []


def test_successful_exchange_appends_user_then_assistant(store):
    llm = FakeOllama(replies=["4"])
    router = CommandRouter(store=store, client=llm)

    reply = router.handle(ME, "What is 2+2?")

    assert reply == "4"
    assert store.get(ME).history[-2:] == [
        Turn(role="user", content="What is 2+2?"),
        Turn(role="assistant", content="4"),
    ]


def test_failed_exchange_keeps_only_user_turn(store, failing_llm):
    router = CommandRouter(store=store, client=failing_llm)

    reply = router.handle(ME, "hello?")

    assert reply == FAILURE_REPLY
    assert store.get(ME).history == [Turn(role="user", content="hello?")]


def test_chat_sends_history_and_prompt_not_stored_system_turn(store, llm):
    router = CommandRouter(store=store, client=llm, sampling=SamplingOptions(temperature=0.2))
    router.handle(ME, "/setprompt be terse")

    router.handle(ME, "hi")

    call = llm.calls[-1]
    assert call["system_prompt"] == "be terse"
    assert call["history"] == [Turn(role="user", content="hi")]
    assert call["options"] == SamplingOptions(temperature=0.2)
    assert all(turn.role != "system" for turn in store.get(ME).history)


def test_view_conversation_formats_turns_in_order(store):
    router = CommandRouter(store=store, client=FakeOllama(replies=["hello", "fine"]))
    router.handle(ME, "hi")
    router.handle(ME, "how are you")

    assert router.handle(ME, "/viewconversation") == (
        "Conversation:\n"
        "[user] hi\n"
        "[assistant] hello\n"
        "[user] how are you\n"
        "[assistant] fine"
    )


def test_users_do_not_share_state(router, store):
    router.handle("@alice:example.org", "/setprompt pirate")
    router.handle("@bob:example.org", "hi")

    assert store.get("@alice:example.org").history == []
    assert store.get("@bob:example.org").system_prompt == DEFAULT_PROMPT


def test_history_cap_is_applied_on_chat():
    store = SessionStore(default_prompt="", max_history_turns=2)
    router = CommandRouter(store=store, client=FakeOllama(replies=["a", "b"]))

    router.handle(ME, "one")
    router.handle(ME, "two")

    assert store.get(ME).history == [
        Turn(role="user", content="two"),
        Turn(role="assistant", content="b"),
    ]


class SlowEcho:
    """Echoes the last user turn after a short delay to widen race windows."""

    def query(self, history, system_prompt, options=None):
        time.sleep(0.01)
        return f"re: {history[-1].content}"


def test_concurrent_exchanges_for_same_user_never_interleave(store):
    router = CommandRouter(store=store, client=SlowEcho())
    bodies = [f"msg {n}" for n in range(10)]

    threads = [threading.Thread(target=router.handle, args=(ME, b)) for b in bodies]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    history = store.get(ME).history
    assert len(history) == 2 * len(bodies)
    for user_turn, assistant_turn in zip(history[::2], history[1::2]):
        assert user_turn.role == "user"
        assert assistant_turn == Turn(role="assistant", content=f"re: {user_turn.content}")


def test_inference_error_does_not_escape(store):
    router = CommandRouter(store=store, client=FakeOllama(replies=[InferenceError("HTTP 500")]))

    assert router.handle(ME, "boom") == FAILURE_REPLY
    # The next turn still works and keeps the unanswered message before it.
    assert router.handle(ME, "again") == "ok"
    assert [t.role for t in store.get(ME).history] == ["user", "user", "assistant"]
