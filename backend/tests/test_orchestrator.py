import pytest

from conversations.domain import ChatConversation, ChatFolder, ChatMessage
from conversations.orchestrator import (
    APOLOGY_TEXT,
    ChatOrchestrator,
    cancel_send,
    derive_title,
    register_send,
)
from conversations.prompts import DEFAULT_SYSTEM_PROMPT
from conversations.store import LocalConversationStore
from documents.azure_client import CompletionError
from tests.fakes import BrokenStore, FakeChat, FakeSearch, MemoryStore, make_result


@pytest.fixture
def store():
    return MemoryStore()


def new_conversation(**kwargs):
    kwargs.setdefault("user_id", "user_1")
    return ChatConversation(**kwargs)


class TestSendMessage:
    def test_plain_send(self, store):
        chat = FakeChat(reply="Hi there")
        conv = new_conversation()
        exchange = ChatOrchestrator(store, chat).send_message(conv, "Hello")

        assert exchange.assistant_message.content == "Hi there"
        assert exchange.assistant_message.model == "O3 Mini"
        assert exchange.persisted
        assert not exchange.used_context
        assert [m.role for m in store.get_messages(conv.id)] == ["user", "assistant"]

        sent = chat.calls[0]["messages"]
        assert sent[0] == {"role": "system", "content": DEFAULT_SYSTEM_PROMPT}
        assert sent[1] == {"role": "user", "content": "Hello"}
        assert chat.calls[0]["model"].id == "o3-mini"

    def test_history_is_sent_in_order(self, store):
        chat = FakeChat()
        conv = new_conversation(messages=[
            ChatMessage(role="user", content="first"),
            ChatMessage(role="assistant", content="answer"),
        ])
        ChatOrchestrator(store, chat).send_message(conv, "second")
        assert [m["content"] for m in chat.calls[0]["messages"][1:]] == ["first", "answer", "second"]

    def test_unknown_model_falls_back_to_first(self, store):
        chat = FakeChat()
        ChatOrchestrator(store, chat).send_message(new_conversation(), "hi", model="does-not-exist")
        assert chat.calls[0]["model"].id == "o3-mini"

    def test_named_model_is_used(self, store):
        chat = FakeChat()
        exchange = ChatOrchestrator(store, chat).send_message(new_conversation(), "hi", model="o4-mini")
        assert chat.calls[0]["model"].deployment == "o4-mini"
        assert exchange.assistant_message.model == "O4 Mini"


class TestKnowledgeContext:
    def test_results_are_injected(self, store):
        chat = FakeChat()
        search = FakeSearch([make_result()])
        exchange = ChatOrchestrator(store, chat, search=search).send_message(
            new_conversation(), "What is the leave policy?", rag_mode=True)

        assert exchange.used_context
        assert search.calls == [{"query": "What is the leave policy?", "top_k": 5, "category": None}]
        last = chat.calls[0]["messages"][-1]["content"]
        assert "[Document 1: handbook.pdf (Score: 87.3%)]" in last
        assert last.endswith("USER QUESTION:\nWhat is the leave policy?")
        # the stored user message keeps the original text
        assert exchange.user_message.content == "What is the leave policy?"

    def test_complex_question_fetches_more(self, store):
        search = FakeSearch([make_result()])
        ChatOrchestrator(store, FakeChat(), search=search).send_message(
            new_conversation(), "Explain and compare the safety and security training programs", rag_mode=True)
        assert search.calls[0]["top_k"] == 15

    def test_no_results_matches_plain_send(self):
        plain_chat, rag_chat = FakeChat(), FakeChat()
        ChatOrchestrator(MemoryStore(), plain_chat).send_message(new_conversation(), "hello")
        ChatOrchestrator(MemoryStore(), rag_chat, search=FakeSearch([])).send_message(
            new_conversation(), "hello", rag_mode=True)
        assert rag_chat.calls[0]["messages"] == plain_chat.calls[0]["messages"]

    def test_search_failure_still_answers(self, store):
        chat = FakeChat(reply="general answer")
        search = FakeSearch(error=RuntimeError("index down"))
        exchange = ChatOrchestrator(store, chat, search=search).send_message(
            new_conversation(), "hello", rag_mode=True)
        assert exchange.assistant_message.content == "general answer"
        assert not exchange.used_context

    def test_search_skipped_without_rag_mode(self, store):
        search = FakeSearch([make_result()])
        ChatOrchestrator(store, FakeChat(), search=search).send_message(new_conversation(), "hello")
        assert search.calls == []


class TestFailures:
    def test_completion_failure_becomes_apology(self, store):
        chat = FakeChat(error=CompletionError("Azure OpenAI API error (500): boom"))
        conv = new_conversation()
        exchange = ChatOrchestrator(store, chat).send_message(conv, "Hello there")

        assert exchange.assistant_message.content == APOLOGY_TEXT
        assert [m.content for m in store.get_messages(conv.id)] == ["Hello there", APOLOGY_TEXT]
        # no title from a failed exchange
        assert conv.title == "New Chat"

    def test_superseded_send_returns_none(self, store):
        conv = new_conversation()
        chat = FakeChat(on_call=lambda: register_send(conv.id))
        try:
            assert ChatOrchestrator(store, chat).send_message(conv, "Hello") is None
        finally:
            cancel_send(conv.id)
        # the user message was saved before the model was called
        assert [m.role for m in store.get_messages(conv.id)] == ["user"]

    def test_cancel_send_without_send_in_flight(self):
        assert cancel_send("no-such-conversation") is False

    def test_database_failure_uses_fallback_store(self, tmp_path):
        local = LocalConversationStore(tmp_path / "local")
        conv = new_conversation()
        exchange = ChatOrchestrator(BrokenStore(), FakeChat(reply="ok"), fallback_store=local).send_message(
            conv, "Hello")

        assert exchange.assistant_message.content == "ok"
        assert not exchange.persisted
        saved = local.get_conversation(conv.id)
        assert [m.role for m in saved.messages] == ["user", "assistant"]
        assert saved.title == "Hello"


class TestTitlesAndFolders:
    def test_title_from_first_message(self, store):
        conv = new_conversation()
        content = "Please help me understand the quarterly travel reimbursement rules"
        ChatOrchestrator(store, FakeChat()).send_message(conv, content)
        assert conv.title == content[:47] + "..."
        assert len(conv.title) == 50

    def test_existing_title_is_kept(self, store):
        conv = new_conversation(title="Travel")
        ChatOrchestrator(store, FakeChat()).send_message(conv, "hello")
        assert conv.title == "Travel"

    def test_title_only_on_first_exchange(self, store):
        conv = new_conversation(messages=[ChatMessage(role="user", content="earlier")])
        ChatOrchestrator(store, FakeChat()).send_message(conv, "hello")
        assert conv.title == "New Chat"

    def test_derive_title_short_text(self):
        assert derive_title("  Hello  ") == "Hello"

    def test_folder_prompt_overrides_system_prompt(self):
        folder = ChatFolder(id="f1", user_id="user_1", name="Legal", system_prompt="You are a lawyer.")
        chat = FakeChat()
        ChatOrchestrator(MemoryStore(folders=[folder]), chat).send_message(
            new_conversation(folder_id="f1"), "hi")
        assert chat.calls[0]["messages"][0]["content"] == "You are a lawyer."

    def test_folder_without_prompt_keeps_default(self):
        folder = ChatFolder(id="f1", user_id="user_1", name="Misc")
        chat = FakeChat()
        ChatOrchestrator(MemoryStore(folders=[folder]), chat, system_prompt="SYS").send_message(
            new_conversation(folder_id="f1"), "hi")
        assert chat.calls[0]["messages"][0]["content"] == "SYS"


class TestVisualization:
    def test_chart_spec_attached_when_requested(self, store):
        exchange = ChatOrchestrator(store, FakeChat(), visualizations=True).send_message(
            new_conversation(), "show me a line chart of sales")
        artifact = exchange.assistant_message.artifact
        assert artifact["chart_type"] == "line"
        assert artifact["x_key"] == "month"

    def test_no_chart_when_disabled(self, store):
        exchange = ChatOrchestrator(store, FakeChat()).send_message(
            new_conversation(), "show me a line chart of sales")
        assert exchange.assistant_message.artifact is None
