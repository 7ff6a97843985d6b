"""
Relevance Filter (language-model precision pass).

One structured chat completion decides which saying and verse candidates
are bona-fide recitable supplications for the caller's intent. The filter
fails open: any call failure, timeout, unparseable or empty response yields
the original candidate ids unchanged.

Endpoint (via ChatClient): POST /v1/chat/completions, JSON object mode
Response: {"hadith_ids": [...], "quran_ids": [...]}

Pattern: Tool Proxy with fail-open fallback
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Final

from dua_search.clients.chat import ChatClientProtocol
from dua_search.core.logging import get_logger
from dua_search.models.records import SourceRecord

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

MAX_CONTENT_SNIPPET: Final[int] = 220
SNIPPET_ELLIPSIS: Final[str] = "..."
DEFAULT_TIMEOUT: Final[float] = 15.0

# Response field names
FIELD_SAYING_IDS: Final[str] = "hadith_ids"
FIELD_VERSE_IDS: Final[str] = "quran_ids"

SYSTEM_PROMPT: Final[str] = """You are a precision filter for a du'a (Islamic supplication) search tool. Given a user's intention and a list of hadiths and Quran verses from vector search, you must return ONLY the ids of items that are genuine, relevant supplications the user could recite for that intent.

Include an item ONLY if:
- It is an actual du'a or supplication (something to pray/recite), OR a verse/hadith that is commonly used as a du'a for this topic.
- It clearly matches the user's intent (e.g. marriage = du'as for spouse/marriage, not rulings about divorce or widow remarriage).

Exclude an item if:
- It is a fiqh ruling, legal ruling, or narrative that only mentions the keyword tangentially.
- It is not something one would recite as a du'a for this intention.

Respond with valid JSON only, no other text:
{"hadith_ids": ["id1", "id2", ...], "quran_ids": ["id3", ...]}
Use the exact ids from the lists. Return empty arrays if none are relevant. Preserve order by relevance (most relevant first)."""

USER_PROMPT_TEMPLATE: Final[str] = """User's du'a intention: "{query}"

Hadiths (return only ids of items that are relevant supplications for this intent):
{sayings}

Quran verses (return only ids of items that are relevant supplications for this intent):
{verses}

Respond with JSON: {{"hadith_ids": [...], "quran_ids": [...]}}"""


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class RelevanceSelection:
    """Ordered ids selected per category, most relevant first.

    Attributes:
        saying_ids: Selected saying ids
        verse_ids: Selected verse ids
        filtered: False when the stage was skipped or failed open
    """

    saying_ids: tuple[str, ...]
    verse_ids: tuple[str, ...]
    filtered: bool = False


# =============================================================================
# Prompt Construction
# =============================================================================


def snippet(text: str) -> str:
    """Trim and truncate content to MAX_CONTENT_SNIPPET characters."""
    trimmed = (text or "").strip()
    if len(trimmed) <= MAX_CONTENT_SNIPPET:
        return trimmed
    return trimmed[:MAX_CONTENT_SNIPPET] + SNIPPET_ELLIPSIS


def format_candidates(records: Sequence[SourceRecord]) -> str:
    """Numbered listing of id, content snippet and citation."""
    lines = []
    for i, record in enumerate(records, start=1):
        citation = record.citation.label if record.citation else ""
        lines.append(
            f"{i}. id: {record.id}\n"
            f"   content: {snippet(record.content)}\n"
            f"   reference: {citation}"
        )
    return "\n\n".join(lines)


def build_user_prompt(
    query: str,
    sayings: Sequence[SourceRecord],
    verses: Sequence[SourceRecord],
) -> str:
    return USER_PROMPT_TEMPLATE.format(
        query=query.strip(),
        sayings=format_candidates(sayings),
        verses=format_candidates(verses),
    )


def _string_ids(value: Any) -> tuple[str, ...] | None:
    if not isinstance(value, list):
        return None
    return tuple(v for v in value if isinstance(v, str))


# =============================================================================
# Main Implementation
# =============================================================================


class RelevanceFilter:
    """Language-model pass selecting genuine supplications.

    Usage:
        relevance = RelevanceFilter(chat_client=ChatClient(api_key=...))
        selection = await relevance.select_relevant(query, sayings, verses)
        sayings, verses = apply_selection(sayings, verses, selection)
    """

    def __init__(
        self,
        chat_client: ChatClientProtocol | None,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the filter.

        Args:
            chat_client: Chat completion client; None disables the stage
            timeout: Bound on the chat call in seconds
        """
        self._chat_client = chat_client
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return self._chat_client is not None

    async def select_relevant(
        self,
        query: str,
        sayings: Sequence[SourceRecord],
        verses: Sequence[SourceRecord],
        skip: bool = False,
    ) -> RelevanceSelection:
        """Select relevant saying and verse ids.

        Args:
            query: The caller's raw query
            sayings: Saying candidates
            verses: Verse candidates
            skip: Bypass the model call

        Returns:
            Model-selected ids, or the original ids (filtered=False) when
            skipped, disabled, or on any failure
        """
        unfiltered = RelevanceSelection(
            saying_ids=tuple(r.id for r in sayings if r.id),
            verse_ids=tuple(r.id for r in verses if r.id),
        )
        if skip or self._chat_client is None or not (sayings or verses):
            return unfiltered

        user_prompt = build_user_prompt(query, sayings, verses)
        try:
            raw = await asyncio.wait_for(
                self._chat_client.complete(SYSTEM_PROMPT, user_prompt),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "relevance_filter_failed", reason="timeout", timeout=self.timeout
            )
            return unfiltered
        except Exception as e:
            # Any chat failure leaves the candidates unfiltered.
            logger.warning(
                "relevance_filter_failed", reason=str(e), error_type=type(e).__name__
            )
            return unfiltered

        selection = self._parse_response(raw, unfiltered)
        if selection is None:
            return unfiltered

        logger.info(
            "relevance_filter_complete",
            sayings_in=len(sayings),
            sayings_selected=len(selection.saying_ids),
            verses_in=len(verses),
            verses_selected=len(selection.verse_ids),
        )
        return selection

    @staticmethod
    def _parse_response(
        raw: str, unfiltered: RelevanceSelection
    ) -> RelevanceSelection | None:
        """Parse the model's JSON object; None signals fail-open."""
        text = (raw or "").strip()
        if not text:
            logger.warning("relevance_filter_failed", reason="empty response")
            return None
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("relevance_filter_failed", reason=f"invalid JSON: {e}")
            return None
        if not isinstance(parsed, dict):
            logger.warning("relevance_filter_failed", reason="response is not an object")
            return None

        # A missing or non-list key keeps that category's original ids.
        saying_ids = _string_ids(parsed.get(FIELD_SAYING_IDS))
        verse_ids = _string_ids(parsed.get(FIELD_VERSE_IDS))
        if saying_ids is None:
            saying_ids = unfiltered.saying_ids
        if verse_ids is None:
            verse_ids = unfiltered.verse_ids

        if not saying_ids and not verse_ids:
            logger.warning("relevance_filter_failed", reason="no ids selected")
            return None
        return RelevanceSelection(
            saying_ids=saying_ids, verse_ids=verse_ids, filtered=True
        )


def _materialize(
    records: Sequence[SourceRecord], ids: Sequence[str]
) -> list[SourceRecord]:
    by_id = {r.id: r for r in records}
    selected: list[SourceRecord] = []
    seen: set[str] = set()
    for record_id in ids:
        record = by_id.get(record_id)
        if record is not None and record_id not in seen:
            seen.add(record_id)
            selected.append(record)
    # Keep the pre-filter list rather than emptying the category.
    return selected or list(records)


def apply_selection(
    sayings: Sequence[SourceRecord],
    verses: Sequence[SourceRecord],
    selection: RelevanceSelection,
) -> tuple[list[SourceRecord], list[SourceRecord]]:
    """Re-materialize records by id in selection order.

    Ids absent from the candidates are dropped. A category whose selection
    resolves to nothing keeps its pre-filter list.
    """
    return (
        _materialize(sayings, selection.saying_ids),
        _materialize(verses, selection.verse_ids),
    )
