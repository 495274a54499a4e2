import pytest

from documents.azure_client import (
    EMPTY_RESPONSE_TEXT,
    AzureChatClient,
    AzureEmbeddingClient,
    CancelToken,
    CompletionError,
    EmbeddingError,
    RequestCancelled,
    resolve_model,
)
from tests.fakes import FakeResponse, FakeSession

ENDPOINT = "https://example.openai.azure.com/"
EMBEDDING_OK = FakeResponse(200, {"data": [{"embedding": [0.5, 0.25]}]})


def embedding_client(responses, sleeps=None, **kwargs):
    session = FakeSession(responses)
    client = AzureEmbeddingClient(
        endpoint=ENDPOINT,
        api_key="secret",
        api_version="2024-12-01-preview",
        deployment="text-embedding-3-small",
        dimensions=512,
        session=session,
        sleep=(sleeps.append if sleeps is not None else lambda s: None),
        **kwargs,
    )
    return client, session


def chat_client(responses):
    session = FakeSession(responses)
    client = AzureChatClient(endpoint=ENDPOINT, api_key="secret", api_version="2024-12-01-preview",
                             session=session)
    return client, session


class TestEmbedding:
    def test_request_shape(self):
        client, session = embedding_client([EMBEDDING_OK], max_chars=5)
        assert client.embed("hello world") == [0.5, 0.25]

        call = session.calls[0]
        assert call["url"] == (
            "https://example.openai.azure.com/openai/deployments/text-embedding-3-small/embeddings"
            "?api-version=2024-12-01-preview"
        )
        assert call["json"] == {"input": "hello", "dimensions": 512}
        assert call["headers"]["api-key"] == "secret"

    def test_rate_limit_is_retried_with_backoff(self):
        sleeps = []
        client, session = embedding_client(
            [FakeResponse(429, text="slow down"), FakeResponse(429, text="slow down"), EMBEDDING_OK], sleeps)
        assert client.embed("hi") == [0.5, 0.25]
        assert sleeps == [2.0, 4.0]
        assert len(session.calls) == 3

    def test_rate_limit_exhausted(self):
        sleeps = []
        client, _ = embedding_client([FakeResponse(429, text="slow down")] * 3, sleeps)
        with pytest.raises(EmbeddingError):
            client.embed("hi")
        assert sleeps == [2.0, 4.0]

    def test_other_errors_are_not_retried(self):
        sleeps = []
        client, session = embedding_client([FakeResponse(400, text="bad input")], sleeps)
        with pytest.raises(EmbeddingError, match="400"):
            client.embed("hi")
        assert sleeps == []
        assert len(session.calls) == 1

    def test_missing_configuration(self):
        client = AzureEmbeddingClient(endpoint="", api_key="", session=FakeSession([]))
        with pytest.raises(EmbeddingError, match="configuration"):
            client.embed("hi")


class TestCompletion:
    def test_reply_text(self):
        client, session = chat_client([FakeResponse(200, {"choices": [{"message": {"content": "Hello!"}}]})])
        model = resolve_model("o4-mini")
        messages = [{"role": "user", "content": "hi"}]

        assert client.complete(messages, model) == "Hello!"
        call = session.calls[0]
        assert call["url"].endswith("/openai/deployments/o4-mini/chat/completions?api-version=2024-12-01-preview")
        assert call["json"] == {"messages": messages, "max_completion_tokens": 8000, "stream": False}

    def test_empty_reply(self):
        client, _ = chat_client([FakeResponse(200, {"choices": [{"message": {"content": "  "}}]})])
        assert client.complete([], resolve_model()) == EMPTY_RESPONSE_TEXT

    def test_service_error(self):
        client, _ = chat_client([FakeResponse(500, {"error": {"message": "model overloaded"}})])
        with pytest.raises(CompletionError, match="model overloaded"):
            client.complete([], resolve_model())

    def test_cancelled_before_request(self):
        client, session = chat_client([])
        token = CancelToken()
        token.cancel()
        with pytest.raises(RequestCancelled):
            client.complete([], resolve_model(), cancel=token)
        assert session.calls == []


def test_resolve_model_by_name():
    assert resolve_model("GPT OSS 120B").id == "gpt-oss-120b"
