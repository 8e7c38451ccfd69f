"""Paginated fetch of merged changes for historical analysis.

REST only: ``start`` offsets and the ``_more_changes`` marker have no
reliable equivalent over ``gerrit query`` on SSH.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable

from gerry_core.gerrit.rest import RestClient
from gerry_core.models import Change
from gerry_core.normalize import change_from_rest

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 500
DEFAULT_MAX_TOTAL = 10000


class StopReason(enum.Enum):
    EXHAUSTED = "exhausted"  # an empty page
    SHORT_PAGE = "short_page"
    NO_MORE_CHANGES = "no_more_changes"  # last record lacks _more_changes
    SAFETY_CAP = "safety_cap"
    INTERRUPTED = "interrupted"


@dataclass
class BulkResult:
    changes: list[Change] = field(default_factory=list)
    stop_reason: StopReason = StopReason.EXHAUSTED
    pages: int = 0

    @property
    def complete(self) -> bool:
        """False when the fetch stopped before the server ran out of results."""
        return self.stop_reason not in (StopReason.SAFETY_CAP, StopReason.INTERRUPTED)

    def __len__(self) -> int:
        return len(self.changes)


def build_merged_query(start_date: str, end_date: str, project: str | None = None) -> str:
    parts = ["status:merged", f"after:{start_date}", f"before:{end_date}"]
    if project:
        parts.append(f"project:{project}")
    return " ".join(parts)


def fetch_all(
    rest: RestClient,
    start_date: str,
    end_date: str,
    project: str | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_total: int = DEFAULT_MAX_TOTAL,
    should_stop: Callable[[], bool] | None = None,
    on_page: Callable[[int], None] | None = None,
) -> BulkResult:
    """Fetch every merged change in ``[start_date, end_date]``, up to ``max_total``.

    Stops on an empty page, a short page, a last record without
    ``_more_changes``, the ``max_total`` cap, or an interrupt. The cap is
    checked before each request and the request is clipped to the remaining
    budget, so the result never exceeds ``max_total``. An interrupt
    (``should_stop()`` returning True, or Ctrl-C during a page) keeps
    every change fetched so far. Transport errors propagate.
    """
    if page_size < 1:
        raise ValueError("page_size must be positive")

    query = build_merged_query(start_date, end_date, project)
    logger.debug("Bulk query: %s", query)

    result = BulkResult()
    while True:
        remaining = max_total - len(result.changes)
        if remaining <= 0:
            logger.info("Stopped at the safety limit of %d changes; more may exist.", max_total)
            result.stop_reason = StopReason.SAFETY_CAP
            break
        if should_stop is not None and should_stop():
            result.stop_reason = StopReason.INTERRUPTED
            break

        requested = min(page_size, remaining)
        offset = len(result.changes)
        logger.debug("Fetching page at offset %d (n=%d)", offset, requested)
        try:
            page = rest.query_changes(query, requested, start=offset)
            result.pages += 1
            if not page:
                result.stop_reason = StopReason.EXHAUSTED
                break

            overflow = len(page) > remaining
            changes = [change_from_rest(record) for record in page[:remaining]]
            result.changes.extend(changes)
            if on_page is not None:
                on_page(len(result.changes))
        except KeyboardInterrupt:
            logger.warning("Interrupted; keeping %d changes fetched so far.", len(result.changes))
            result.stop_reason = StopReason.INTERRUPTED
            break

        if overflow:
            logger.info("Stopped at the safety limit of %d changes; more may exist.", max_total)
            result.stop_reason = StopReason.SAFETY_CAP
            break
        if len(page) < requested:
            logger.debug("Short page (%d < %d); no more results", len(page), requested)
            result.stop_reason = StopReason.SHORT_PAGE
            break
        if page[-1].get("_more_changes") is not True:
            result.stop_reason = StopReason.NO_MORE_CHANGES
            break

    logger.debug("Bulk fetch finished: %d changes, %d pages, %s", len(result), result.pages, result.stop_reason.value)
    return result
