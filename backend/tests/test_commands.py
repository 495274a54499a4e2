from io import StringIO

import pytest
from django.core.management import call_command, get_commands, load_command_class

from conversations.domain import ChatConversation, ChatMessage
from conversations.models import Message
from conversations.store import LocalConversationStore


def test_runserver_address_from_environment(monkeypatch):
    monkeypatch.setenv("CHATBRAIN_HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "8123")

    assert get_commands()["runserver"] == "chatbrain"
    command = load_command_class("chatbrain", "runserver")
    assert command.default_addr == "127.0.0.1"
    assert command.default_port == "8123"


def test_runserver_default_address(monkeypatch):
    monkeypatch.delenv("CHATBRAIN_HOST", raising=False)
    monkeypatch.delenv("PORT", raising=False)

    command = load_command_class("chatbrain", "runserver")
    assert (command.default_addr, command.default_port) == ("0.0.0.0", "3002")


@pytest.mark.django_db
def test_sync_local_store(tmp_path):
    local = LocalConversationStore(tmp_path / "local")
    conv = ChatConversation(user_id="user_1")
    local.ensure_conversation(conv)
    local.add_message(conv.id, ChatMessage(role="user", content="offline question"))

    out = StringIO()
    call_command("sync_local_store", "--data-dir", str(tmp_path / "local"), stdout=out)

    assert "Synced 1 conversations, 0 failed" in out.getvalue()
    assert Message.objects.get().content == "offline question"
