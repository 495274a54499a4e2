# backend/conversations/orchestrator.py
"""
Send-message flow.

    user message -> persist -> (optional) knowledge search -> compose prompt
    -> chat completion -> persist reply -> derive title

Remote failures degrade instead of failing the send: a store failure moves
writes to the fallback store, a search failure drops the retrieved context.
Only a failed completion turns into the apology reply.
"""
import logging
import threading
from dataclasses import dataclass

from django.conf import settings

from documents.azure_client import CancelToken, RequestCancelled, resolve_model
from .domain import Attachment, ChatConversation, ChatMessage
from .models import DEFAULT_TITLE
from .prompts import (
    COMPLEX_TOP_K,
    DEFAULT_SYSTEM_PROMPT,
    SIMPLE_TOP_K,
    build_context_block,
    compose_messages,
    is_question_complex,
)
from .visualization import create_chart_spec

logger = logging.getLogger(__name__)

APOLOGY_TEXT = "Sorry, I encountered an error processing your request. Please try again."
TITLE_LIMIT = 50

_tokens: dict[str, CancelToken] = {}
_tokens_lock = threading.Lock()


def register_send(conversation_id: str) -> CancelToken:
    """Start a send for a conversation, cancelling the one still in flight."""
    token = CancelToken()
    with _tokens_lock:
        previous = _tokens.get(conversation_id)
        if previous is not None:
            previous.cancel()
        _tokens[conversation_id] = token
    return token


def cancel_send(conversation_id: str) -> bool:
    with _tokens_lock:
        token = _tokens.pop(conversation_id, None)
    if token is None:
        return False
    token.cancel()
    return True


def _release(conversation_id: str, token: CancelToken) -> None:
    with _tokens_lock:
        if _tokens.get(conversation_id) is token:
            del _tokens[conversation_id]


def derive_title(content: str) -> str:
    content = content.strip()
    if len(content) > TITLE_LIMIT:
        return content[:TITLE_LIMIT - 3] + "..."
    return content


@dataclass
class ChatExchange:
    conversation: ChatConversation
    user_message: ChatMessage
    assistant_message: ChatMessage
    used_context: bool = False
    persisted: bool = True


class ChatOrchestrator:

    def __init__(self, store, chat_client, search=None, fallback_store=None,
                 system_prompt: str | None = None, visualizations: bool | None = None):
        self.store = store
        self.chat_client = chat_client
        self.search = search
        self.fallback_store = fallback_store
        self.system_prompt = system_prompt or settings.CHAT_SYSTEM_PROMPT or DEFAULT_SYSTEM_PROMPT
        self.visualizations = settings.CHAT_VISUALIZATIONS if visualizations is None else visualizations

    # -------------------------
    # persistence with fallback
    # -------------------------
    def _persist(self, conversation: ChatConversation, message: ChatMessage) -> bool:
        try:
            self.store.ensure_conversation(conversation)
            self.store.add_message(conversation.id, message)
            return True
        except Exception:
            logger.exception("Failed to save %s message for conversation %s", message.role, conversation.id)

        if self.fallback_store is not None:
            try:
                self.fallback_store.ensure_conversation(conversation)
                self.fallback_store.add_message(conversation.id, message)
            except Exception:
                logger.exception("Fallback store also failed for conversation %s", conversation.id)
        return False

    def _update_title(self, conversation: ChatConversation, title: str) -> None:
        for store in (self.store, self.fallback_store):
            if store is None:
                continue
            try:
                store.update_title(conversation.id, title)
                return
            except Exception:
                logger.exception("Failed to update title of conversation %s", conversation.id)

    def _folder_prompt(self, conversation: ChatConversation) -> str | None:
        if not conversation.folder_id:
            return None
        for store in (self.store, self.fallback_store):
            if store is None:
                continue
            try:
                folder = store.get_folder(conversation.folder_id)
            except Exception:
                logger.exception("Failed to load folder %s", conversation.folder_id)
                continue
            if folder is not None:
                if folder.system_prompt and folder.system_prompt.strip():
                    logger.info("Using system prompt from folder %s", folder.name)
                    return folder.system_prompt
                return None
        return None

    # -------------------------
    # completion
    # -------------------------
    def _retrieve_context(self, content: str):
        """Returns (context, complex_question); context is None when nothing usable was found."""
        complex_question = is_question_complex(content)
        if self.search is None:
            return None, complex_question
        top_k = COMPLEX_TOP_K if complex_question else SIMPLE_TOP_K
        logger.info("Knowledge search: %s question, fetching %d documents",
                    "complex" if complex_question else "simple", top_k)
        try:
            results = self.search.search(content, top_k=top_k)
        except Exception:
            logger.exception("Error querying knowledge base, answering without it")
            return None, complex_question
        if not results:
            logger.info("No relevant documents found, answering without knowledge base")
            return None, complex_question
        return build_context_block(results), complex_question

    def send_message(self, conversation: ChatConversation, content: str,
                     attachments: list[Attachment] | None = None, model: str | None = None,
                     rag_mode: bool = False, visualize: bool | None = None) -> ChatExchange | None:
        token = register_send(conversation.id)
        chat_model = resolve_model(model)
        prior_messages = list(conversation.messages)
        had_messages = bool(prior_messages)

        user_message = ChatMessage(role="user", content=content, attachments=list(attachments or []))
        persisted = self._persist(conversation, user_message)

        used_context = False
        failed = False
        try:
            folder_prompt = self._folder_prompt(conversation)
            history = prior_messages + [user_message]

            context, complex_question = (None, False)
            if rag_mode:
                context, complex_question = self._retrieve_context(content)
                used_context = context is not None

            outbound = compose_messages(
                history,
                self.system_prompt,
                folder_prompt=folder_prompt,
                context=context,
                attachments=attachments,
                complex_question=complex_question,
            )
            reply = self.chat_client.complete(outbound, chat_model, cancel=token)
            assistant_message = ChatMessage(role="assistant", content=reply, model=chat_model.name)

            if self.visualizations if visualize is None else visualize:
                assistant_message.artifact = create_chart_spec(content)
        except RequestCancelled:
            logger.info("Send cancelled for conversation %s", conversation.id)
            return None
        except Exception:
            logger.exception("Error sending message in conversation %s", conversation.id)
            failed = True
            assistant_message = ChatMessage(role="assistant", content=APOLOGY_TEXT, model=chat_model.name)
        finally:
            _release(conversation.id, token)

        persisted = self._persist(conversation, assistant_message) and persisted

        if not failed and conversation.title == DEFAULT_TITLE and not had_messages:
            conversation.title = derive_title(content)
            self._update_title(conversation, conversation.title)

        conversation.messages = prior_messages + [user_message, assistant_message]
        return ChatExchange(
            conversation=conversation,
            user_message=user_message,
            assistant_message=assistant_message,
            used_context=used_context,
            persisted=persisted,
        )


def build_orchestrator(**overrides) -> ChatOrchestrator:
    """Wire the orchestrator with the configured store, clients and index."""
    from documents.azure_client import AzureChatClient
    from documents.search import KnowledgeSearch
    from .store import DatabaseConversationStore, LocalConversationStore

    kwargs = {
        "store": DatabaseConversationStore(),
        "fallback_store": LocalConversationStore(),
        "chat_client": AzureChatClient(),
        "search": KnowledgeSearch(),
    }
    kwargs.update(overrides)
    return ChatOrchestrator(**kwargs)
