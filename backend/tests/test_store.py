import json

import pytest
from django.utils import timezone

from conversations.domain import Attachment, ChatConversation, ChatFolder, ChatMessage
from conversations.models import Conversation, FileAttachment, Message
from conversations.orchestrator import ChatOrchestrator
from conversations.store import DatabaseConversationStore, LocalConversationStore, sync_local_to_database
from folders.models import Folder
from tests.fakes import FakeChat


@pytest.fixture
def local(tmp_path):
    return LocalConversationStore(tmp_path / "local")


class TestLocalStore:
    def test_round_trip(self, local):
        conv = ChatConversation(user_id="user_1", title="Trip")
        local.ensure_conversation(conv)
        local.add_message(conv.id, ChatMessage(role="user", content="hello"))
        local.add_message(conv.id, ChatMessage(role="assistant", content="hi", model="O3 Mini"))

        loaded = local.get_conversation(conv.id)
        assert loaded.title == "Trip"
        assert [(m.role, m.content) for m in loaded.messages] == [("user", "hello"), ("assistant", "hi")]
        assert local.user_ids() == ["user_1"]

    def test_file_layout(self, local):
        conv = ChatConversation(user_id="user_1")
        local.ensure_conversation(conv)
        path = local._path("user_1")
        payload = json.loads(path.read_text())
        assert payload["version"] == "1.0"
        assert payload["userId"] == "user_1"
        assert payload["conversations"][0]["id"] == conv.id
        assert path.with_suffix(".json.bak").exists()

    def test_backup_used_when_main_file_is_corrupt(self, local):
        conv = ChatConversation(user_id="user_1")
        local.ensure_conversation(conv)
        local._path("user_1").write_text("{not json")
        assert local.get_conversation(conv.id) is not None

    def test_missing_user_loads_nothing(self, local):
        assert local.load("undefined") == ([], [])

    def test_add_message_to_unknown_conversation(self, local):
        with pytest.raises(KeyError):
            local.add_message("nope", ChatMessage(role="user", content="x"))

    def test_update_title_and_folder_lookup(self, local):
        conv = ChatConversation(user_id="user_1")
        local.ensure_conversation(conv)
        convs, _ = local.load("user_1")
        local.save("user_1", convs, [ChatFolder(id="f1", user_id="user_1", name="Legal", system_prompt="P")])
        local.update_title(conv.id, "Renamed")

        assert local.get_conversation(conv.id).title == "Renamed"
        assert local.get_folder("f1").system_prompt == "P"

    def test_ids_that_sanitise_alike_get_separate_files(self, local):
        first = ChatConversation(user_id="a.b")
        second = ChatConversation(user_id="a_b")
        local.ensure_conversation(first)
        local.ensure_conversation(second)

        assert local._path("a.b") != local._path("a_b")
        assert sorted(local.user_ids()) == ["a.b", "a_b"]
        assert [c.id for c in local.load("a.b")[0]] == [first.id]
        assert [c.id for c in local.load("a_b")[0]] == [second.id]

    def test_clear(self, local):
        conv = ChatConversation(user_id="user_1")
        local.ensure_conversation(conv)
        local.clear("user_1")
        assert local.get_conversation(conv.id) is None


@pytest.mark.django_db
class TestDatabaseStore:
    def test_ensure_keeps_client_id(self):
        store = DatabaseConversationStore()
        conv = ChatConversation(user_id="user_1")
        store.ensure_conversation(conv)
        store.ensure_conversation(conv)
        assert Conversation.objects.filter(id=conv.id).count() == 1

    def test_unknown_folder_is_dropped(self):
        store = DatabaseConversationStore()
        conv = ChatConversation(user_id="user_1", folder_id="6f0f0c7e-3c37-4c57-9d1b-1b2d1b9a0a11")
        store.ensure_conversation(conv)
        assert Conversation.objects.get(id=conv.id).folder_id is None
        assert conv.folder_id is None

    def test_timestamps_strictly_increase(self):
        store = DatabaseConversationStore()
        conv = store.ensure_conversation(ChatConversation(user_id="user_1"))
        now = timezone.now()
        for text in ("one", "two", "three"):
            store.add_message(conv.id, ChatMessage(role="user", content=text, timestamp=now))

        messages = store.get_messages(conv.id)
        assert [m.content for m in messages] == ["one", "two", "three"]
        stamps = [m.timestamp for m in messages]
        assert stamps[0] < stamps[1] < stamps[2]

    def test_attachments_are_stored(self):
        store = DatabaseConversationStore()
        conv = store.ensure_conversation(ChatConversation(user_id="user_1"))
        att = Attachment(name="notes.txt", type="text/plain", size=5, parsed_content={"text": "hello"})
        saved = store.add_message(conv.id, ChatMessage(role="user", content="see file", attachments=[att]))

        assert saved.attachments[0].name == "notes.txt"
        assert FileAttachment.objects.get(id=att.id).parsed_content == {"text": "hello"}

    def test_add_message_to_missing_conversation(self):
        with pytest.raises(Conversation.DoesNotExist):
            DatabaseConversationStore().add_message(
                "6f0f0c7e-3c37-4c57-9d1b-1b2d1b9a0a11", ChatMessage(role="user", content="x"))

    def test_get_folder(self):
        folder = Folder.objects.create(user_id="user_1", name="Legal", system_prompt="Be precise.")
        found = DatabaseConversationStore().get_folder(str(folder.id))
        assert found.system_prompt == "Be precise."
        assert DatabaseConversationStore().get_folder("not-a-uuid") is None


@pytest.mark.django_db
class TestSync:
    def test_local_conversations_are_pushed(self, local):
        conv = ChatConversation(user_id="user_1", title="Offline")
        local.ensure_conversation(conv)
        local.add_message(conv.id, ChatMessage(role="user", content="q"))
        local.add_message(conv.id, ChatMessage(role="assistant", content="a"))

        result = sync_local_to_database(local, DatabaseConversationStore())

        assert result == {"synced": 1, "failed": 0}
        row = Conversation.objects.get(id=conv.id)
        assert row.title == "Offline"
        assert list(Message.objects.filter(conversation=row).values_list("content", flat=True)) == ["q", "a"]
        # the local copy is dropped once everything is in the database
        assert local.user_ids() == []

    def test_messages_sent_during_an_outage_reach_the_database(self, local):
        class FlakyStore(DatabaseConversationStore):
            down = False

            def ensure_conversation(self, conversation):
                if self.down:
                    raise ConnectionError("database unreachable")
                return super().ensure_conversation(conversation)

        database = FlakyStore()
        orchestrator = ChatOrchestrator(database, FakeChat(reply="ok"), fallback_store=local)
        conv = ChatConversation(user_id="user_1")
        orchestrator.send_message(conv, "first")

        database.down = True
        exchange = orchestrator.send_message(conv, "during outage")
        assert not exchange.persisted

        database.down = False
        result = sync_local_to_database(local, database)

        assert result == {"synced": 1, "failed": 0}
        contents = [m.content for m in database.get_messages(conv.id)]
        assert contents == ["first", "ok", "during outage", "ok"]
        assert local.user_ids() == []

    def test_reply_stored_while_question_fell_back(self, local):
        database = DatabaseConversationStore()
        conv = ChatConversation(user_id="user_1")
        question = ChatMessage(role="user", content="q")
        reply = ChatMessage(role="assistant", content="a")
        database.ensure_conversation(conv)
        database.add_message(conv.id, reply)
        local.ensure_conversation(conv)
        local.add_message(conv.id, question)

        assert sync_local_to_database(local, database) == {"synced": 1, "failed": 0}
        assert {m.id for m in database.get_messages(conv.id)} == {question.id, reply.id}

    def test_stored_messages_are_not_duplicated(self, local):
        database = DatabaseConversationStore()
        conv = ChatConversation(user_id="user_1")
        message = ChatMessage(role="user", content="q")
        database.ensure_conversation(conv)
        database.add_message(conv.id, message)
        local.ensure_conversation(conv)
        local.add_message(conv.id, message)

        assert sync_local_to_database(local, database) == {"synced": 0, "failed": 0}
        assert Message.objects.count() == 1
        assert local.user_ids() == []

    def test_local_file_kept_when_a_message_fails(self, local, monkeypatch):
        database = DatabaseConversationStore()
        conv = ChatConversation(user_id="user_1")
        database.ensure_conversation(conv)
        local.ensure_conversation(conv)
        local.add_message(conv.id, ChatMessage(role="user", content="q"))

        def fail(conversation_id, message):
            raise ConnectionError("database unreachable")

        monkeypatch.setattr(database, "add_message", fail)

        assert sync_local_to_database(local, database) == {"synced": 0, "failed": 1}
        assert local.user_ids() == ["user_1"]
