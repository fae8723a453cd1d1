from typing import Dict, List, Sequence

from pdf_tutor.core.types import Box, PageOrigin, PageTextFragment

MIN_HIGHLIGHT_WIDTH = 20.0
MIN_HIGHLIGHT_HEIGHT = 16.0


# --- Coordinate helpers ---

def plumber_to_pdf_y(page_height: float, y_plumber: float) -> float:
    """Convert pdfplumber Y (origin top-left, y down) to PDF user-space Y
    (origin bottom-left, y up)."""
    return float(page_height) - float(y_plumber)


def to_page_local(box: Box, origin: PageOrigin) -> Box:
    return {
        "left": float(box["left"]) - float(origin["left"]),
        "top": float(box["top"]) - float(origin["top"]),
        "width": float(box["width"]),
        "height": float(box["height"]),
    }


def inflate_to_minimum(box: Box,
                       min_width: float = MIN_HIGHLIGHT_WIDTH,
                       min_height: float = MIN_HIGHLIGHT_HEIGHT) -> Box:
    """Grow a box in place of a degenerate one so the overlay stays visible.
    The top-left corner is kept."""
    return {
        "left": box["left"],
        "top": box["top"],
        "width": max(float(box["width"]), min_width),
        "height": max(float(box["height"]), min_height),
    }


def union_boxes(boxes: Sequence[Box]) -> Box:
    left = min(b["left"] for b in boxes)
    top = min(b["top"] for b in boxes)
    right = max(b["left"] + b["width"] for b in boxes)
    bottom = max(b["top"] + b["height"] for b in boxes)
    return {"left": left, "top": top, "width": right - left, "height": bottom - top}


# --- pdfplumber words -> fragments ---

def word_box(w: Dict) -> Box:
    return {
        "left": float(w["x0"]),
        "top": float(w["top"]),
        "width": float(w["x1"]) - float(w["x0"]),
        "height": float(w["bottom"]) - float(w["top"]),
    }


def words_to_fragments(words: List[Dict]) -> List[PageTextFragment]:
    return [{"content": w["text"], "bounding_box": word_box(w)} for w in words if w.get("text")]


def group_words_into_lines(words: List[Dict], line_tol: float = 3.0) -> List[PageTextFragment]:
    """Group words sharing a baseline (same top within `line_tol`) into one
    fragment per line, like a text-layer span."""
    if not words:
        return []
    ordered = sorted(words, key=lambda w: (w["top"], w["x0"]))
    lines: List[List[Dict]] = []
    for w in ordered:
        if lines and abs(w["top"] - lines[-1][-1]["top"]) <= line_tol:
            lines[-1].append(w)
        else:
            lines.append([w])

    fragments: List[PageTextFragment] = []
    for line in lines:
        line.sort(key=lambda w: w["x0"])
        content = " ".join(w["text"] for w in line).strip()
        if not content:
            continue
        fragments.append({
            "content": content,
            "bounding_box": union_boxes([word_box(w) for w in line]),
        })
    return fragments
