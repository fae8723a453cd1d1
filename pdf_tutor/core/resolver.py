"""Resolve highlight commands against a page's positioned text fragments.

Model-quoted phrases rarely match the rendered text exactly (hyphenation,
collapsed whitespace, paraphrase), so matching falls back through three
tiers, each tried only when the previous one found nothing:

1. ``exact``  - fragment contains the whole phrase (case-insensitive)
2. ``prefix`` - fragment contains the first 8 characters of the phrase
3. ``word``   - fragment contains any word of the phrase longer than 2 chars
"""

import logging
import uuid
from typing import List, Optional, Sequence, Tuple

from pdf_tutor.core.bbox import inflate_to_minimum, to_page_local
from pdf_tutor.core.types import (
    AreaDirective,
    Directive,
    Highlight,
    HighlightDirective,
    PageOrigin,
    PageTextFragment,
)

logger = logging.getLogger(__name__)

DEFAULT_HIGHLIGHT_COLOR = "#fdfbd4"
PREFIX_LENGTH = 8
MIN_PREFIX_PHRASE = 3   # phrase must be longer than this for the prefix tier
MIN_WORD_LENGTH = 2     # words must be longer than this for the word tier

ORIGIN_ZERO: PageOrigin = {"left": 0.0, "top": 0.0}


def _new_highlight_id() -> str:
    return f"ai-{uuid.uuid4().hex[:12]}"


def find_matches(phrase: str,
                 fragments: Sequence[PageTextFragment]) -> Tuple[List[PageTextFragment], Optional[str]]:
    """Return (matched fragments, tier name). Tier is None when nothing matched."""
    search = phrase.strip().lower()
    if not search:
        return [], None
    texts = [(f, (f.get("content") or "").lower()) for f in fragments]

    matched = [f for f, t in texts if search in t]
    if matched:
        return matched, "exact"

    if len(search) > MIN_PREFIX_PHRASE:
        prefix = search[:min(len(search), PREFIX_LENGTH)]
        matched = [f for f, t in texts if prefix in t]
        if matched:
            return matched, "prefix"

    if " " in search:
        words = [w for w in search.split() if len(w) > MIN_WORD_LENGTH]
        seen = set()
        matched = []
        for word in words:
            for f, t in texts:
                if id(f) not in seen and word in t:
                    seen.add(id(f))
                    matched.append(f)
        if matched:
            return matched, "word"

    return [], None


def resolve(directive: Directive,
            page_fragments: Sequence[PageTextFragment],
            page_origin: PageOrigin = ORIGIN_ZERO,
            default_color: str = DEFAULT_HIGHLIGHT_COLOR) -> List[Highlight]:
    """Produce highlights for a highlight or area directive.

    Other directive kinds, or a phrase found nowhere on the page, yield an
    empty list. An empty fragment list usually means the page is not laid
    out yet; callers may resolve again later.

    Area coordinates are taken in the same space as `page_origin` and are
    translated but never inflated. Model-written areas are already
    page-local, so the viewer resolves them against a zero origin.
    """
    if isinstance(directive, AreaDirective):
        c = directive.coordinates
        box = to_page_local({"left": c.x, "top": c.y, "width": c.width, "height": c.height}, page_origin)
        return [Highlight(
            id=_new_highlight_id(),
            page_number=directive.page,
            source_text=None,
            color=directive.color or default_color,
            comment=directive.comment or "",
            bounding_box=box,
        )]

    if not isinstance(directive, HighlightDirective):
        return []

    matched, tier = find_matches(directive.text, page_fragments)
    if not matched:
        logger.info(
            f"No text found for {directive.text!r} on page {directive.page} "
            f"({len(page_fragments)} fragments searched)"
        )
        return []

    logger.debug(f"Matched {len(matched)} fragment(s) for {directive.text!r} via {tier} tier")
    return [
        Highlight(
            id=_new_highlight_id(),
            page_number=directive.page,
            source_text=f.get("content"),
            color=directive.color or default_color,
            comment=directive.comment or "",
            bounding_box=inflate_to_minimum(to_page_local(f["bounding_box"], page_origin)),
        )
        for f in matched
    ]
