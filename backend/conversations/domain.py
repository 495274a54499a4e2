# backend/conversations/domain.py
"""
Plain in-process records for conversations.

The chat flow works on these instead of ORM rows so the same code runs
against the database store and the JSON fallback store.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .models import DEFAULT_TITLE


def _new_id() -> str:
    return str(uuid.uuid4())


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_ts(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        parsed = parse_datetime(str(value))
        if parsed is not None:
            if timezone.is_naive(parsed):
                parsed = timezone.make_aware(parsed, dt_timezone.utc)
            return parsed
    return timezone.now()


@dataclass
class Attachment:
    name: str
    type: str
    size: int = 0
    content: str = ""
    parsed_content: dict | None = None
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "size": self.size,
            "content": self.content,
            "parsedContent": self.parsed_content,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Attachment":
        return cls(
            id=str(data.get("id") or _new_id()),
            name=data.get("name") or "file",
            type=data.get("type") or "application/octet-stream",
            size=int(data.get("size") or 0),
            content=data.get("content") or "",
            parsed_content=data.get("parsedContent") or data.get("parsed_content"),
        )


@dataclass
class ChatMessage:
    role: str
    content: str
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=timezone.now)
    model: str | None = None
    attachments: list[Attachment] = field(default_factory=list)
    artifact: dict | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": _iso(self.timestamp),
            "model": self.model,
            "attachments": [a.to_dict() for a in self.attachments],
            "artifact": self.artifact,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChatMessage":
        return cls(
            id=str(data.get("id") or _new_id()),
            role=data["role"],
            content=data.get("content") or "",
            timestamp=_parse_ts(data.get("timestamp")),
            model=data.get("model"),
            attachments=[Attachment.from_dict(a) for a in data.get("attachments") or []],
            artifact=data.get("artifact"),
        )


@dataclass
class ChatFolder:
    id: str
    user_id: str
    name: str
    system_prompt: str | None = None
    color: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "systemPrompt": self.system_prompt,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChatFolder":
        return cls(
            id=str(data["id"]),
            user_id=data.get("userId") or "",
            name=data.get("name") or "",
            system_prompt=data.get("systemPrompt"),
            color=data.get("color"),
        )


@dataclass
class ChatConversation:
    user_id: str
    title: str = DEFAULT_TITLE
    folder_id: str | None = None
    messages: list[ChatMessage] = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=timezone.now)
    updated_at: datetime = field(default_factory=timezone.now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "folderId": self.folder_id,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChatConversation":
        return cls(
            id=str(data["id"]),
            user_id=data.get("userId") or "",
            title=data.get("title") or DEFAULT_TITLE,
            folder_id=data.get("folderId"),
            messages=[ChatMessage.from_dict(m) for m in data.get("messages") or []],
            created_at=_parse_ts(data.get("createdAt")),
            updated_at=_parse_ts(data.get("updatedAt")),
        )
