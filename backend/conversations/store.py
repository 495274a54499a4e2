# backend/conversations/store.py
"""
Conversation persistence.

DatabaseConversationStore writes through the Django ORM (SQLite locally,
Postgres/Supabase in deployment). LocalConversationStore keeps one JSON file
per user under DATA_DIR and is where the chat flow writes when the database
is unavailable; `manage.py sync_local_store` pushes it back once it is.
"""
import hashlib
import json
import logging
import os
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from pathlib import Path

from django.conf import settings
from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from chatbrain.utils import is_missing_id, parse_uuid
from folders.models import Folder
from .domain import Attachment, ChatConversation, ChatFolder, ChatMessage
from .models import DEFAULT_TITLE, Conversation, FileAttachment, Message

logger = logging.getLogger(__name__)

STORAGE_VERSION = "1.0"


class ConversationStore(ABC):
    """What the chat flow needs from a conversation backend."""

    @abstractmethod
    def get_conversation(self, conversation_id) -> ChatConversation | None:
        ...

    @abstractmethod
    def ensure_conversation(self, conversation: ChatConversation) -> ChatConversation:
        """Create the conversation under its own id unless it already exists."""
        ...

    @abstractmethod
    def add_message(self, conversation_id, message: ChatMessage) -> ChatMessage:
        ...

    @abstractmethod
    def get_messages(self, conversation_id) -> list[ChatMessage]:
        ...

    @abstractmethod
    def update_title(self, conversation_id, title: str) -> None:
        ...

    @abstractmethod
    def get_folder(self, folder_id) -> ChatFolder | None:
        ...


# ---------------------------------------------------------
# Database (primary)
# ---------------------------------------------------------

def attachment_from_row(row: FileAttachment) -> Attachment:
    return Attachment(
        id=str(row.id),
        name=row.name,
        type=row.type,
        size=row.size,
        content=row.content,
        parsed_content=row.parsed_content,
    )


def message_from_row(row: Message) -> ChatMessage:
    return ChatMessage(
        id=str(row.id),
        role=row.role,
        content=row.content,
        timestamp=row.timestamp,
        model=row.model,
        attachments=[attachment_from_row(a) for a in row.attachments.all()],
        artifact=row.artifact,
    )


def folder_from_row(row: Folder) -> ChatFolder:
    return ChatFolder(
        id=str(row.id),
        user_id=row.user_id,
        name=row.name,
        system_prompt=row.system_prompt,
        color=row.color,
    )


class DatabaseConversationStore(ConversationStore):

    def get_conversation(self, conversation_id) -> ChatConversation | None:
        conv_uuid = parse_uuid(conversation_id)
        if conv_uuid is None:
            return None
        row = Conversation.objects.filter(id=conv_uuid).first()
        if row is None:
            return None
        return ChatConversation(
            id=str(row.id),
            user_id=row.user_id,
            title=row.title,
            folder_id=str(row.folder_id) if row.folder_id else None,
            messages=self.get_messages(row.id),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @transaction.atomic
    def ensure_conversation(self, conversation: ChatConversation) -> ChatConversation:
        conv_uuid = parse_uuid(conversation.id)
        if conv_uuid is not None and Conversation.objects.filter(id=conv_uuid).exists():
            return conversation

        folder_uuid = parse_uuid(conversation.folder_id)
        if folder_uuid is not None and not Folder.objects.filter(id=folder_uuid).exists():
            logger.warning("Folder %s not found, storing conversation %s without folder",
                           conversation.folder_id, conversation.id)
            folder_uuid = None

        kwargs = {
            "user_id": conversation.user_id,
            "title": conversation.title or DEFAULT_TITLE,
            "folder_id": folder_uuid,
        }
        if conv_uuid is not None:
            kwargs["id"] = conv_uuid
        row = Conversation.objects.create(**kwargs)
        conversation.id = str(row.id)
        conversation.folder_id = str(folder_uuid) if folder_uuid else None
        logger.info("Created conversation %s for user %s", row.id, row.user_id)
        return conversation

    @transaction.atomic
    def add_message(self, conversation_id, message: ChatMessage) -> ChatMessage:
        conv_uuid = parse_uuid(conversation_id)
        conversation = Conversation.objects.select_for_update().get(id=conv_uuid)

        # listing is by timestamp, keep it strictly increasing per conversation
        timestamp = message.timestamp or timezone.now()
        last = conversation.messages.aggregate(last=Max("timestamp"))["last"]
        if last is not None and timestamp <= last:
            timestamp = last + timedelta(microseconds=1)

        kwargs = {
            "conversation": conversation,
            "role": message.role,
            "content": message.content,
            "model": message.model,
            "timestamp": timestamp,
            "artifact": message.artifact,
        }
        msg_uuid = parse_uuid(message.id)
        if msg_uuid is not None and not Message.objects.filter(id=msg_uuid).exists():
            kwargs["id"] = msg_uuid
        row = Message.objects.create(**kwargs)

        for att in message.attachments:
            att_kwargs = {
                "message": row,
                "name": att.name,
                "type": att.type,
                "size": att.size,
                "content": att.content,
                "parsed_content": att.parsed_content,
            }
            att_uuid = parse_uuid(att.id)
            if att_uuid is not None and not FileAttachment.objects.filter(id=att_uuid).exists():
                att_kwargs["id"] = att_uuid
            FileAttachment.objects.create(**att_kwargs)

        Conversation.objects.filter(id=conversation.id).update(updated_at=timezone.now())
        return message_from_row(Message.objects.prefetch_related("attachments").get(id=row.id))

    def get_messages(self, conversation_id) -> list[ChatMessage]:
        conv_uuid = parse_uuid(conversation_id)
        if conv_uuid is None:
            return []
        rows = (
            Message.objects.filter(conversation_id=conv_uuid)
            .prefetch_related("attachments")
            .order_by("timestamp")
        )
        return [message_from_row(r) for r in rows]

    def update_title(self, conversation_id, title: str) -> None:
        conv_uuid = parse_uuid(conversation_id)
        if conv_uuid is None:
            return
        Conversation.objects.filter(id=conv_uuid).update(title=title, updated_at=timezone.now())

    def get_folder(self, folder_id) -> ChatFolder | None:
        folder_uuid = parse_uuid(folder_id)
        if folder_uuid is None:
            return None
        row = Folder.objects.filter(id=folder_uuid).first()
        return folder_from_row(row) if row else None


# ---------------------------------------------------------
# Local JSON files (fallback)
# ---------------------------------------------------------

class LocalConversationStore(ConversationStore):
    """
    One JSON document per user:
        {"version": "1.0", "lastSync": <ms>, "conversations": [...], "folders": [...]}
    A `.bak` copy is written next to it and read when the main file is
    missing or unreadable.
    """

    def __init__(self, data_dir: Path | str | None = None):
        self.data_dir = Path(data_dir or Path(settings.DATA_DIR) / "local")

    def _path(self, user_id: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in str(user_id))[:64]
        # the digest keeps ids that sanitise alike in separate files
        digest = hashlib.sha256(str(user_id).encode("utf-8")).hexdigest()[:12]
        return self.data_dir / f"conversations_{safe}_{digest}_v{STORAGE_VERSION}.json"

    def user_ids(self) -> list[str]:
        if not self.data_dir.exists():
            return []
        ids = []
        for path in sorted(self.data_dir.glob(f"conversations_*_v{STORAGE_VERSION}.json")):
            data = self._read(path)
            if data and data.get("userId"):
                ids.append(data["userId"])
        return ids

    def _read(self, path: Path) -> dict | None:
        for candidate in (path, path.with_suffix(".json.bak")):
            if not candidate.exists():
                continue
            try:
                with open(candidate, "r", encoding="utf-8") as f:
                    return json.load(f)
            except (OSError, ValueError):
                logger.exception("Unreadable local store file %s", candidate)
        return None

    def load(self, user_id: str) -> tuple[list[ChatConversation], list[ChatFolder]]:
        if is_missing_id(user_id):
            return [], []
        data = self._read(self._path(user_id)) or {}
        conversations = [ChatConversation.from_dict(c) for c in data.get("conversations") or []]
        folders = [ChatFolder.from_dict(f) for f in data.get("folders") or []]
        return conversations, folders

    def save(self, user_id: str, conversations: list[ChatConversation], folders: list[ChatFolder] | None = None):
        if folders is None:
            _, folders = self.load(user_id)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        payload = {
            "version": STORAGE_VERSION,
            "userId": user_id,
            "lastSync": int(time.time() * 1000),
            "conversations": [c.to_dict() for c in conversations],
            "folders": [f.to_dict() for f in folders],
        }
        path = self._path(user_id)
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp, path)
        with open(path.with_suffix(".json.bak"), "w", encoding="utf-8") as f:
            json.dump(payload, f)

    def clear(self, user_id: str) -> None:
        path = self._path(user_id)
        for candidate in (path, path.with_suffix(".json.bak")):
            if candidate.exists():
                candidate.unlink()

    def _locate(self, conversation_id) -> tuple[str, list[ChatConversation], ChatConversation] | None:
        for user_id in self.user_ids():
            conversations, _ = self.load(user_id)
            for conv in conversations:
                if conv.id == str(conversation_id):
                    return user_id, conversations, conv
        return None

    def get_conversation(self, conversation_id) -> ChatConversation | None:
        found = self._locate(conversation_id)
        return found[2] if found else None

    def ensure_conversation(self, conversation: ChatConversation) -> ChatConversation:
        if self._locate(conversation.id):
            return conversation
        conversations, folders = self.load(conversation.user_id)
        stored = ChatConversation(
            id=conversation.id,
            user_id=conversation.user_id,
            title=conversation.title,
            folder_id=conversation.folder_id,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )
        self.save(conversation.user_id, [stored] + conversations, folders)
        return conversation

    def add_message(self, conversation_id, message: ChatMessage) -> ChatMessage:
        found = self._locate(conversation_id)
        if found is None:
            raise KeyError(f"conversation {conversation_id} not in local store")
        user_id, conversations, conv = found
        conv.messages.append(message)
        conv.updated_at = timezone.now()
        self.save(user_id, conversations)
        return message

    def get_messages(self, conversation_id) -> list[ChatMessage]:
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return []
        return sorted(conv.messages, key=lambda m: m.timestamp)

    def update_title(self, conversation_id, title: str) -> None:
        found = self._locate(conversation_id)
        if found is None:
            return
        user_id, conversations, conv = found
        conv.title = title
        conv.updated_at = timezone.now()
        self.save(user_id, conversations)

    def get_folder(self, folder_id) -> ChatFolder | None:
        for user_id in self.user_ids():
            _, folders = self.load(user_id)
            for folder in folders:
                if folder.id == str(folder_id):
                    return folder
        return None


def sync_local_to_database(local: LocalConversationStore, database: DatabaseConversationStore) -> dict:
    """
    Push locally stored conversations and messages into the database.

    Conversations the database lacks are created under their own id; for the
    ones it has, each local message whose id is not stored yet is added. A
    user's local file is dropped only once all of its messages are stored.
    """
    synced, failed = 0, 0
    for user_id in local.user_ids():
        conversations, _ = local.load(user_id)
        user_failed = False
        for conv in conversations:
            try:
                messages = sorted(conv.messages, key=lambda m: m.timestamp)
                existing = database.get_conversation(conv.id)
                stored_ids = {m.id for m in existing.messages} if existing is not None else set()
                missing = [m for m in messages if m.id not in stored_ids]
                if existing is not None and not missing:
                    continue

                if existing is None:
                    conv.messages = []
                    database.ensure_conversation(conv)
                for message in missing:
                    database.add_message(conv.id, message)
                synced += 1
                logger.info("Synced conversation %s to database (%d messages)", conv.id, len(missing))
            except Exception:
                user_failed = True
                failed += 1
                logger.exception("Failed to sync conversation %s", conv.id)
        if not user_failed:
            local.clear(user_id)
    return {"synced": synced, "failed": failed}
