"""
Pull request thread filtering.

Drops comments posted by services and automation (votes, policy updates,
push notices) and keeps only threads that remain a real exchange between
at least two people.
"""
import re
from typing import Iterable, List, Optional

from .constants import (
    SYSTEM_IDENTITY_MARKERS,
    NOISE_EXACT_PHRASES,
    NOISE_SUBSTRINGS,
    REF_UPDATE_PREFIX,
    REF_UPDATE_MARKER,
    MIN_THREAD_COMMENTS,
    MIN_THREAD_AUTHORS,
)
from .models import ConversationThread, ThreadComment, format_date


VOTE_PATTERN = re.compile(r'\b(voted|vote of)\b')


def _author_name(comment) -> Optional[str]:
    author = comment.author
    return author.display_name if author else None


def is_noise_comment(comment) -> bool:
    """
    Tell whether a PR comment is system or bot noise.

    Args:
        comment: SDK thread Comment (author.display_name, content)

    Returns:
        True for missing or blank comments, service identities and
        well-known automation messages
    """
    if comment is None:
        return True

    author = (_author_name(comment) or "").lower()
    content = comment.content or ""

    if not content.strip():
        return True

    if any(marker in author for marker in SYSTEM_IDENTITY_MARKERS):
        return True

    lowered = content.strip().lower()

    if lowered in NOISE_EXACT_PHRASES:
        return True

    if VOTE_PATTERN.search(lowered):
        return True

    if any(phrase in lowered for phrase in NOISE_SUBSTRINGS):
        return True

    if lowered.startswith(REF_UPDATE_PREFIX) and REF_UPDATE_MARKER in lowered:
        return True

    return False


def filter_thread(thread) -> Optional[ConversationThread]:
    """
    Filter one thread.

    Returns:
        The thread with noise removed, or None when fewer than two comments
        remain or they come from fewer than two distinct named authors
    """
    if not thread or not thread.comments:
        return None

    comments = [
        ThreadComment(
            author=_author_name(c),
            content=c.content,
            date=format_date(c.published_date)
        )
        for c in thread.comments
        if not is_noise_comment(c)
    ]

    if len(comments) < MIN_THREAD_COMMENTS:
        return None

    authors = {c.author.strip().lower() for c in comments if c.author and c.author.strip()}
    if len(authors) < MIN_THREAD_AUTHORS:
        return None

    context = thread.thread_context
    return ConversationThread(
        thread_id=thread.id,
        file_path=context.file_path if context else None,
        comments=comments
    )


def build_conversation_threads(threads: Optional[Iterable]) -> List[ConversationThread]:
    """Keep the genuine back-and-forth threads of a pull request, in order."""
    if not threads:
        return []

    result = []
    for thread in threads:
        conversation = filter_thread(thread)
        if conversation is not None:
            result.append(conversation)
    return result
