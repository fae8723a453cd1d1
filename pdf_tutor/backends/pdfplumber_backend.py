from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import pdfplumber

from pdf_tutor.core.bbox import group_words_into_lines, words_to_fragments
from pdf_tutor.core.pages import parse_page_range
from pdf_tutor.core.viewer import PageLayout

logger = logging.getLogger(__name__)


def page_layout(pl_page, granularity: str = "line", line_tolerance: float = 3.0) -> PageLayout:
    """Text fragments of an open pdfplumber page, playing the part of a
    rendered text layer. Coordinates are PDF points, origin top-left."""
    words = pl_page.extract_words() or []
    if granularity == "word":
        fragments = words_to_fragments(words)
    elif granularity == "line":
        fragments = group_words_into_lines(words, line_tolerance)
    else:
        raise ValueError(f"Unknown fragment granularity: {granularity}")
    x0, top = float(pl_page.bbox[0]), float(pl_page.bbox[1])
    return PageLayout(fragments=fragments, origin={"left": x0, "top": top})


def page_fragments(
    pdf_path: Path,
    page_number: int,
    granularity: str = "line",
    line_tolerance: float = 3.0,
) -> Dict[str, Any]:
    try:
        with pdfplumber.open(pdf_path) as pdf:
            total = len(pdf.pages)
            if not 1 <= page_number <= total:
                raise ValueError(f"Page {page_number} out of range (1-{total})")
            pl_page = pdf.pages[page_number - 1]
            layout = page_layout(pl_page, granularity, line_tolerance)
            return {
                "page_number": page_number,
                "total_pages": total,
                "granularity": granularity,
                "origin": layout.origin,
                "width": float(pl_page.width),
                "height": float(pl_page.height),
                "fragments": list(layout.fragments),
            }
    except ValueError:
        raise
    except Exception as e:
        logger.error(f"pdfplumber fragment extraction failed for {pdf_path}: {e}")
        raise


def read_pages(pdf_path: Path, page_range: Optional[str] = None) -> Dict[str, Any]:
    """Page texts and basic metadata for the selected pages."""
    try:
        with pdfplumber.open(pdf_path) as pdf:
            total = len(pdf.pages)
            pages: List[Dict[str, Any]] = []
            for i in parse_page_range(total, page_range):
                text = (pdf.pages[i].extract_text() or "").strip()
                pages.append({"page_number": i + 1, "text": text, "char_count": len(text)})
            md = pdf.metadata or {}
            return {
                "file_name": pdf_path.name,
                "total_pages": total,
                "page_range": page_range or "all",
                "extracted_pages": pages,
                "metadata": {
                    "title": str(md.get("Title", "")),
                    "author": str(md.get("Author", "")),
                    "subject": str(md.get("Subject", "")),
                    "creator": str(md.get("Creator", "")),
                    "producer": str(md.get("Producer", "")),
                    "creation_date": str(md.get("CreationDate", "")),
                },
            }
    except ValueError:
        raise
    except Exception as e:
        logger.error(f"Text extraction failed for {pdf_path}: {e}")
        raise


class PdfLayoutSource:
    """Fragment source over an open pdfplumber document for AnnotationViewer.

    pdfplumber lays pages out synchronously, so a page is always ready;
    layouts are cached per page.
    """

    def __init__(self, pdf, granularity: str = "line", line_tolerance: float = 3.0):
        self.pdf = pdf
        self.granularity = granularity
        self.line_tolerance = line_tolerance
        self._cache: Dict[int, PageLayout] = {}

    @property
    def page_count(self) -> int:
        return len(self.pdf.pages)

    def __call__(self, page_number: int) -> Optional[PageLayout]:
        if not 1 <= page_number <= self.page_count:
            return PageLayout(fragments=[])
        if page_number not in self._cache:
            pl_page = self.pdf.pages[page_number - 1]
            self._cache[page_number] = page_layout(pl_page, self.granularity, self.line_tolerance)
        return self._cache[page_number]
