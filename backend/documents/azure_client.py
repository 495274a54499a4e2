# backend/documents/azure_client.py
import logging
import threading
import time
from dataclasses import dataclass

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_TEXT = (
    "I apologize, but I was unable to generate a response. This might be due to the file "
    "size or format. Could you try with a smaller file or rephrase your question?"
)

EMBED_TIMEOUT = 30
CHAT_TIMEOUT = 60


class EmbeddingError(Exception):
    pass


class CompletionError(Exception):
    pass


class RequestCancelled(Exception):
    """The send was superseded or cancelled before a reply was produced."""


class CancelToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise RequestCancelled()


@dataclass(frozen=True)
class ChatModel:
    id: str
    name: str
    deployment: str
    description: str = ""
    max_tokens: int = 4000

    @classmethod
    def from_setting(cls, entry: dict) -> "ChatModel":
        return cls(
            id=entry["id"],
            name=entry.get("name") or entry["id"],
            deployment=entry.get("deployment") or entry["id"],
            description=entry.get("description", ""),
            max_tokens=int(entry.get("max_tokens") or 4000),
        )


def configured_models() -> list[ChatModel]:
    return [ChatModel.from_setting(m) for m in settings.CHAT_MODELS]


def resolve_model(model_id: str | None = None) -> ChatModel:
    models = configured_models()
    wanted = model_id or settings.DEFAULT_CHAT_MODEL
    for m in models:
        if m.id == wanted or m.name == wanted:
            return m
    logger.warning("Unknown chat model %r, using %s", wanted, models[0].id)
    return models[0]


class _AzureBase:
    def __init__(self, endpoint: str | None = None, api_key: str | None = None,
                 api_version: str | None = None, session=None):
        self.endpoint = (endpoint if endpoint is not None else settings.AZURE_OPENAI_ENDPOINT).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.AZURE_OPENAI_API_KEY
        self.api_version = api_version or settings.AZURE_OPENAI_API_VERSION
        self.session = session or requests.Session()

    def _url(self, deployment: str, operation: str) -> str:
        return (
            f"{self.endpoint}/openai/deployments/{deployment}/{operation}"
            f"?api-version={self.api_version}"
        )

    def _headers(self) -> dict:
        return {"Content-Type": "application/json", "api-key": self.api_key}


class AzureEmbeddingClient(_AzureBase):
    """
    Text embeddings from an Azure OpenAI deployment. Only HTTP 429 is
    retried: max_attempts calls in total, sleeping base_delay * 2**n between.
    """

    def __init__(self, deployment: str | None = None, dimensions: int | None = None,
                 max_chars: int | None = None, max_attempts: int = 3, base_delay: float = 2.0,
                 sleep=time.sleep, **kwargs):
        super().__init__(**kwargs)
        self.deployment = deployment or settings.AZURE_OPENAI_EMBEDDING_DEPLOYMENT
        self.dimensions = dimensions or settings.EMBED_DIM
        self.max_chars = max_chars or settings.EMBED_MAX_CHARS
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sleep = sleep

    def embed(self, text: str) -> list[float]:
        if not self.api_key or not self.endpoint:
            raise EmbeddingError("Azure OpenAI configuration is missing")

        body = {"input": (text or "")[: self.max_chars], "dimensions": self.dimensions}
        url = self._url(self.deployment, "embeddings")

        for attempt in range(self.max_attempts):
            try:
                resp = self.session.post(url, json=body, headers=self._headers(), timeout=EMBED_TIMEOUT)
            except requests.RequestException as exc:
                raise EmbeddingError(f"embedding request failed: {exc}") from exc

            if resp.status_code == 429 and attempt < self.max_attempts - 1:
                delay = self.base_delay * (2 ** attempt)
                logger.warning("Embedding rate limited, retrying in %.1fs (attempt %d/%d)",
                               delay, attempt + 1, self.max_attempts)
                self.sleep(delay)
                continue

            if resp.status_code != 200:
                logger.error("Embedding error %s: %s", resp.status_code, resp.text)
                raise EmbeddingError(f"embedding error {resp.status_code}: {resp.text}")

            data = resp.json()
            try:
                return list(data["data"][0]["embedding"])
            except (KeyError, IndexError, TypeError) as exc:
                raise EmbeddingError(f"unexpected embedding response shape: {data}") from exc

        raise EmbeddingError("embedding retries exhausted")


class AzureChatClient(_AzureBase):
    """Non-streaming chat completions against an Azure OpenAI deployment."""

    def complete(self, messages: list[dict], model: ChatModel, cancel: CancelToken | None = None) -> str:
        if not self.api_key or not self.endpoint:
            raise CompletionError("Azure OpenAI configuration is missing")
        if cancel is not None:
            cancel.raise_if_cancelled()

        body = {
            "messages": messages,
            "max_completion_tokens": model.max_tokens or 4000,
            "stream": False,
        }
        try:
            resp = self.session.post(
                self._url(model.deployment, "chat/completions"),
                json=body,
                headers=self._headers(),
                timeout=CHAT_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise CompletionError(f"Failed to connect to Azure OpenAI service: {exc}") from exc

        if cancel is not None:
            cancel.raise_if_cancelled()

        if resp.status_code != 200:
            try:
                message = resp.json().get("error", {}).get("message") or resp.text
            except ValueError:
                message = resp.text
            logger.error("Azure OpenAI error %s: %s", resp.status_code, message)
            raise CompletionError(f"Azure OpenAI API error ({resp.status_code}): {message}")

        data = resp.json()
        try:
            text = data["choices"][0]["message"].get("content")
        except (KeyError, IndexError, TypeError) as exc:
            raise CompletionError(f"unexpected completion response shape: {data}") from exc

        if not text or not text.strip():
            logger.warning("Azure OpenAI returned an empty response for %s", model.deployment)
            return EMPTY_RESPONSE_TEXT
        return text
