from pathlib import Path
from typing import Dict, List, Sequence, Tuple
import logging
import PyPDF2
from PyPDF2.generic import (
    ArrayObject,
    DictionaryObject,
    FloatObject,
    NameObject,
    TextStringObject,
)

from pdf_tutor.core.bbox import plumber_to_pdf_y
from pdf_tutor.core.types import Highlight

logger = logging.getLogger(__name__)

ANNOTATION_AUTHOR = "AI Tutor"

NAMED_COLORS: Dict[str, Tuple[float, float, float]] = {
    "yellow": (1.0, 1.0, 0.0),
    "green": (0.0, 1.0, 0.0),
    "blue": (0.0, 0.6, 1.0),
    "red": (1.0, 0.0, 0.0),
    "pink": (1.0, 0.75, 0.8),
    "orange": (1.0, 0.65, 0.0),
    "purple": (0.6, 0.3, 0.9),
}


def color_to_rgb(color: str) -> Tuple[float, float, float]:
    """Named or #rgb/#rrggbb colour as PDF RGB components; yellow if unknown."""
    value = (color or "").strip().lower()
    if value in NAMED_COLORS:
        return NAMED_COLORS[value]
    hex_part = value.lstrip("#")
    if len(hex_part) == 3:
        hex_part = "".join(ch * 2 for ch in hex_part)
    if len(hex_part) == 6:
        try:
            r, g, b = (int(hex_part[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
            return r, g, b
        except ValueError:
            pass
    logger.debug(f"Unknown highlight colour {color!r}; using yellow")
    return NAMED_COLORS["yellow"]


def _highlight_annotation(h: Highlight, page) -> DictionaryObject:
    box = h.bounding_box
    page_left = float(page.mediabox.left)
    page_bottom = float(page.mediabox.bottom)
    page_height = float(page.mediabox.height)

    x0 = page_left + float(box["left"])
    x1 = x0 + float(box["width"])
    y1 = page_bottom + plumber_to_pdf_y(page_height, box["top"])
    y0 = y1 - float(box["height"])

    annot = DictionaryObject()
    annot.update({
        NameObject("/Type"): NameObject("/Annot"),
        NameObject("/Subtype"): NameObject("/Highlight"),
        NameObject("/Rect"): ArrayObject([FloatObject(v) for v in (x0, y0, x1, y1)]),
        NameObject("/QuadPoints"): ArrayObject(
            [FloatObject(v) for v in (x0, y1, x1, y1, x0, y0, x1, y0)]
        ),
        NameObject("/C"): ArrayObject([FloatObject(c) for c in color_to_rgb(h.color)]),
        NameObject("/T"): TextStringObject(ANNOTATION_AUTHOR),
        NameObject("/Contents"): TextStringObject(h.comment or h.source_text or ""),
        NameObject("/NM"): TextStringObject(h.id),
    })
    return annot


def write_highlight_annotations(pdf_path: Path, highlights: Sequence[Highlight], out_path: Path) -> int:
    """Copy `pdf_path` to `out_path` adding one /Highlight annotation per highlight.
    Returns the number of annotations written."""
    written = 0
    try:
        reader = PyPDF2.PdfReader(str(pdf_path))
        writer = PyPDF2.PdfWriter()
        for page in reader.pages:
            writer.add_page(page)

        total = len(writer.pages)
        for h in highlights:
            if not 1 <= h.page_number <= total:
                logger.warning(f"Skipping highlight {h.id}: page {h.page_number} out of range (1-{total})")
                continue
            annot = _highlight_annotation(h, writer.pages[h.page_number - 1])
            writer.add_annotation(page_number=h.page_number - 1, annotation=annot)
            written += 1

        with open(out_path, "wb") as f:
            writer.write(f)
    except Exception as e:
        logger.error(f"PyPDF2 highlight export failed for {pdf_path}: {e}")
        raise
    return written


def read_highlight_annotations(pdf_path: Path) -> List[Dict]:
    """Highlight annotations already present in a PDF (page, author, contents, rect)."""
    items: List[Dict] = []
    try:
        with open(pdf_path, "rb") as f:
            reader = PyPDF2.PdfReader(f)
            for page_index, page in enumerate(reader.pages):
                if "/Annots" not in page:
                    continue
                for annot in page["/Annots"]:
                    obj = annot.get_object()
                    if str(obj.get("/Subtype", "")).lstrip("/").lower() != "highlight":
                        continue
                    rect = obj.get("/Rect", [])
                    items.append({
                        "page": page_index + 1,
                        "author": str(obj.get("/T", "") or ""),
                        "content": str(obj.get("/Contents", "") or ""),
                        "position": [float(p) for p in rect] if rect else [],
                    })
    except Exception as e:
        logger.error(f"PyPDF2 extraction failed for {pdf_path}: {e}")
        raise
    return items
