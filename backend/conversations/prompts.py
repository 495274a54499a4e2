# backend/conversations/prompts.py
import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Your role is to answer questions, help people "
    "find and understand organisational documents, and assist with knowledge-based "
    "inquiries. Always format your responses using markdown syntax.\n\n"
    "When formatting text:\n"
    "- Use **bold** for emphasis and important points\n"
    "- Use *italics* for technical terms and subtle emphasis\n"
    "- Use `code` for technical terms, commands, or specific values\n"
    "- Use [links](url) for references and external resources\n"
    "- Use > for quotes or important callouts\n"
    "- Use bullet points for lists\n"
    "- Use numbered lists for sequential steps\n"
    "- Use headings for clear section organization\n\n"
    "When Knowledge Search is enabled you will be given excerpts from the document "
    "repository; prefer them over general knowledge and say which documents you used."
)

COMPLEX_KEYWORDS = re.compile(
    r"\b(explain|describe|compare|analyze|detail|comprehensive|step-by-step|how does|"
    r"what are all|list all|tell me about|summarize|overview)\b",
    re.IGNORECASE,
)
CONJUNCTIONS = re.compile(r"\b(and|or|also|additionally|furthermore|moreover)\b", re.IGNORECASE)

SIMPLE_TOP_K = 5
COMPLEX_TOP_K = 15

MAX_ATTACHMENT_CHARS = 100000

COMPREHENSIVE_GUIDANCE = (
    "Provide a COMPREHENSIVE and DETAILED answer using the provided documents. Include:\n"
    "- Specific details, examples, and data from the documents\n"
    "- Multiple perspectives if available\n"
    "- Step-by-step explanations where applicable\n"
    "- Cite which documents you're referencing\n"
    "- Use tables, lists, and formatting to organize information clearly\n\n"
    "If the question has multiple parts, address each part thoroughly."
)
CONCISE_GUIDANCE = (
    "Provide a CLEAR and CONCISE answer using the provided documents. "
    "Be direct and to the point while still being helpful."
)


def is_question_complex(question: str) -> bool:
    """
    A question is complex when any of these holds:
      * more than 15 words
      * more than one '?'
      * one of COMPLEX_KEYWORDS appears
      * more than one conjunction appears
    """
    words = len(question.split())
    many_questions = question.count("?") > 1
    keywords = COMPLEX_KEYWORDS.search(question) is not None
    clauses = len(CONJUNCTIONS.findall(question)) > 1

    complex_question = words > 15 or many_questions or keywords or clauses
    logger.debug("Question analysis: %d words, multiple=%s, keywords=%s, clauses=%s",
                 words, many_questions, keywords, clauses)
    return complex_question


def documents_to_fetch(question: str) -> int:
    return COMPLEX_TOP_K if is_question_complex(question) else SIMPLE_TOP_K


def build_context_block(results) -> str:
    """Format search results (SearchResult objects) into one context string."""
    parts = []
    for idx, r in enumerate(results, start=1):
        lines = [f"[Document {idx}: {r.file_name} (Score: {r.score * 100:.1f}%)]"]
        if r.category:
            lines.append(f"Category: {r.category}")
        if r.total_chunks > 1:
            lines.append(f"[Chunk {r.chunk_index + 1} of {r.total_chunks}]")
        lines.append(r.text_preview)
        parts.append("\n".join(lines))
    return "\n\n---\n\n".join(parts)


def build_augmented_question(question: str, context: str, complex_question: bool = False) -> str:
    guidance = COMPREHENSIVE_GUIDANCE if complex_question else CONCISE_GUIDANCE
    return (
        f"You are answering a question using the organisation's knowledge base. {guidance}\n\n"
        "IMPORTANT: Base your answer primarily on the provided context. If the context doesn't "
        "fully answer the question, supplement with your general knowledge but clearly indicate "
        "what's from the documents vs. general knowledge.\n\n"
        f"CONTEXT FROM KNOWLEDGE BASE:\n{context}\n\n"
        f"USER QUESTION:\n{question}"
    )


def format_attachments(content: str, attachments) -> str:
    """Append the text of each attachment to a user message."""
    for att in attachments or []:
        parsed = att.parsed_content
        if parsed and parsed.get("text") is not None:
            text = parsed.get("text") or ""
            metadata = parsed.get("metadata") or {}
            content += f"\n\n--- File: {att.name} ({metadata.get('fileType', att.type)}) ---"
            if metadata.get("wordCount", 0) > 0:
                content += f"\nWord count: {metadata['wordCount']}"
            if metadata.get("pages"):
                content += f"\nPages: {metadata['pages']}"

            if len(text) > MAX_ATTACHMENT_CHARS:
                logger.warning("Attachment %s truncated from %d to %d characters",
                               att.name, len(text), MAX_ATTACHMENT_CHARS)
                text = (
                    text[:MAX_ATTACHMENT_CHARS]
                    + f"\n\n[... Content truncated. Original file had {len(parsed['text'])} characters, "
                    f"showing first {MAX_ATTACHMENT_CHARS}]"
                )
            content += f"\nContent:\n{text}"

            if (att.type or "").startswith("image/"):
                content += "\n[Image data available for analysis]"
        else:
            content += f"\n\n--- File: {att.name} ---"
            content += f"\nType: {att.type}"
            content += f"\nSize: {round((att.size or 0) / 1024)}KB"
            content += "\n[File content could not be extracted for analysis]"
    return content


def compose_messages(history, system_prompt: str, folder_prompt: str | None = None,
                     context: str | None = None, attachments=None,
                     complex_question: bool = False) -> list[dict]:
    """
    Build the outbound chat payload: [system, *history].

    history is a list of ChatMessage; the last entry is the question being
    asked. A non-empty folder_prompt replaces system_prompt. When context is
    given the last user message is replaced by the augmented question, and
    attachments are appended to the last user message either way.
    """
    messages = [{"role": m.role, "content": m.content} for m in history]

    last = messages[-1] if messages else None
    if last is not None and last["role"] == "user":
        if context:
            last["content"] = build_augmented_question(last["content"], context, complex_question)
        if attachments:
            last["content"] = format_attachments(last["content"], attachments)

    system = folder_prompt if folder_prompt and folder_prompt.strip() else system_prompt
    return [{"role": "system", "content": system}] + messages
