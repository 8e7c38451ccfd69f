"""Group flat review comments into conversation threads and infer resolution.

A thread is every comment on the same (file, line), whoever wrote it. Its
verdict comes from the most recent comment only: the thread is resolved when
that comment's server flag says it is not unresolved, or when its message is
one of the resolution phrases (``Done`` by default, compared trimmed and
case-insensitively). Every member is re-tagged with the thread verdict.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from gerry_core.models import Comment, Thread

DEFAULT_RESOLUTION_PHRASES = ("Done",)


def is_resolution_message(message: str, phrases: Iterable[str] = DEFAULT_RESOLUTION_PHRASES) -> bool:
    text = message.strip().casefold()
    return any(text == phrase.strip().casefold() for phrase in phrases)


def resolve_threads(
    comments: Iterable[Comment],
    resolution_phrases: Iterable[str] = DEFAULT_RESOLUTION_PHRASES,
) -> list[Thread]:
    phrases = (resolution_phrases,) if isinstance(resolution_phrases, str) else tuple(resolution_phrases)

    groups: dict[tuple[str, int], list[Comment]] = {}
    for comment in comments:
        groups.setdefault((comment.file, comment.line), []).append(comment)

    threads: list[Thread] = []
    for (file, line), members in groups.items():
        # sorted() is stable, so equal timestamps keep their input order.
        ordered = sorted(members, key=lambda c: c.updated)
        last = ordered[-1]
        resolved = not last.unresolved or is_resolution_message(last.message, phrases)
        tagged = [replace(c, unresolved=not resolved) for c in ordered]
        threads.append(Thread(file=file, line=line, comments=tagged, resolved=resolved))

    return sort_threads(threads)


def sort_threads(threads: Iterable[Thread]) -> list[Thread]:
    return sorted(threads, key=lambda t: (t.file, t.line))


def filter_threads(threads: Iterable[Thread], show_all: bool = False) -> list[Thread]:
    """Drop resolved threads unless ``show_all``; result is ordered by file, then line."""
    kept = threads if show_all else (t for t in threads if not t.resolved)
    return sort_threads(kept)


def count_unresolved(threads: Iterable[Thread]) -> int:
    return sum(1 for t in threads if not t.resolved)
