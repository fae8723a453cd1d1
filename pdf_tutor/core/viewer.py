"""Replay directives against viewer state.

The viewer owns the current page and the highlight overlay. Page layouts
come from a *fragment source*: a callable taking a 1-based page number and
returning ``PageLayout`` once the page's text layer is ready, or ``None``
while it is still being laid out. Highlight commands for pages that are not
ready are parked in ``pending`` and re-resolved by ``retry_pending``.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from pdf_tutor.core.resolver import DEFAULT_HIGHLIGHT_COLOR, ORIGIN_ZERO, resolve
from pdf_tutor.core.types import (
    AreaDirective,
    ClearDirective,
    Directive,
    Highlight,
    HighlightDirective,
    NavigateDirective,
    PageOrigin,
    PageTextFragment,
)

logger = logging.getLogger(__name__)


@dataclass
class PageLayout:
    fragments: Sequence[PageTextFragment]
    origin: PageOrigin = field(default_factory=lambda: dict(ORIGIN_ZERO))


FragmentSource = Callable[[int], Optional[PageLayout]]


class AnnotationViewer:
    def __init__(self, page_count: int, current_page: int = 1,
                 default_color: str = DEFAULT_HIGHLIGHT_COLOR):
        self.page_count = max(int(page_count), 1)
        self.current_page = min(max(int(current_page), 1), self.page_count)
        self.default_color = default_color
        self.highlights: List[Highlight] = []
        self.pending: List[Directive] = []
        self.unresolved: List[HighlightDirective] = []

    def navigate(self, page: int) -> bool:
        if 1 <= page <= self.page_count:
            self.current_page = page
            return True
        logger.warning(f"Ignoring navigation to page {page} (document has {self.page_count} pages)")
        return False

    def clear(self) -> None:
        self.highlights = []
        self.pending = []
        self.unresolved = []

    def _resolve_one(self, directive: Directive, source: FragmentSource) -> bool:
        """Resolve against the page layout; False if the layout is not ready."""
        if directive.page > self.page_count:
            logger.warning(f"Annotation for page {directive.page} is beyond the last page ({self.page_count})")
            return True
        # Area coordinates are page-local already; they never need the layout.
        layout = None if isinstance(directive, AreaDirective) else source(directive.page)
        if layout is None and isinstance(directive, HighlightDirective):
            return False
        if layout is None:
            layout = PageLayout(fragments=[])
        created = resolve(directive, layout.fragments, layout.origin, self.default_color)
        if not created and isinstance(directive, HighlightDirective):
            self.unresolved.append(directive)
        self.highlights.extend(created)
        return True

    def apply(self, directives: Sequence[Directive], source: FragmentSource) -> List[Highlight]:
        """Apply directives in order; return the highlights created by this call."""
        before = len(self.highlights)
        for directive in directives:
            if isinstance(directive, ClearDirective):
                self.clear()
                before = 0
            elif isinstance(directive, NavigateDirective):
                self.navigate(directive.page)
            elif isinstance(directive, (HighlightDirective, AreaDirective)):
                if not self._resolve_one(directive, source):
                    logger.debug(f"Page {directive.page} not laid out yet; deferring highlight")
                    self.pending.append(directive)
            else:
                raise TypeError(f"Unsupported directive: {directive!r}")
        return self.highlights[before:]

    def retry_pending(self, source: FragmentSource) -> List[Highlight]:
        """Re-resolve deferred highlights; still-unready ones stay pending."""
        waiting, self.pending = self.pending, []
        before = len(self.highlights)
        for directive in waiting:
            if not self._resolve_one(directive, source):
                self.pending.append(directive)
        return self.highlights[before:]
