"""Annotation commands embedded in tutor responses.

The model writes commands as fenced blocks labelled ``annotation`` whose body
is one JSON object, e.g.::

    ```annotation
    {"action": "highlight", "text": "mitochondria", "page": 3}
    ```

`extract` strips every such block from the response, tidies the remaining
Markdown and returns the valid commands in the order they appeared.
"""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pdf_tutor.core.pages import coerce_page_number
from pdf_tutor.core.types import (
    AreaDirective,
    ClearDirective,
    Coordinates,
    Directive,
    HighlightDirective,
    NavigateDirective,
)

logger = logging.getLogger(__name__)

COMMAND_BLOCK_RE = re.compile(r"```annotation\s*(.*?)\s*```", re.DOTALL)

CONTROL_KINDS = ("navigate", "clear")


@dataclass
class ExtractionResult:
    clean_text: str
    directives: List[Directive] = field(default_factory=list)


# --- Markdown clean-up ---

_MARKDOWN_FENCE_RE = re.compile(r"```markdown\s*")
_TRAILING_FENCE_RE = re.compile(r"```\s*$")
_HEADING_RE = re.compile(r"^(#{1,6})[ \t]*(.+)$", re.MULTILINE)
_LIST_ITEM_RE = re.compile(r"\n(-|\*|\+|\d+\.)\s")
_EXTRA_NEWLINES_RE = re.compile(r"\n{3,}")
_BLOCKQUOTE_RE = re.compile(r"^>[ \t]*", re.MULTILINE)


def normalize_markdown(text: str) -> str:
    """Cosmetic pass over model output; never changes which commands exist."""
    text = _MARKDOWN_FENCE_RE.sub("", text)
    text = _TRAILING_FENCE_RE.sub("", text)
    text = text.strip()
    text = _HEADING_RE.sub(r"\1 \2", text)
    text = _LIST_ITEM_RE.sub(r"\n\n\1 ", text)
    text = _EXTRA_NEWLINES_RE.sub("\n\n", text)
    text = _BLOCKQUOTE_RE.sub("> ", text)
    return text


# --- Classification ---

def _optional_str(record: Dict[str, Any], key: str) -> Optional[str]:
    value = record.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        logger.warning(f"Ignoring non-string '{key}' in annotation command: {value!r}")
        return None
    return value


def _is_number(value: Any) -> bool:
    """Finite JSON number; NaN, Infinity and ints too large for a float fail."""
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _classify_highlight(record: Dict[str, Any]) -> Optional[Directive]:
    page = coerce_page_number(record.get("page"))
    text = record.get("text")
    if page is None or not isinstance(text, str) or not text.strip():
        return None
    return HighlightDirective(
        text=text,
        page=page,
        comment=_optional_str(record, "comment"),
        color=_optional_str(record, "color"),
    )


def _classify_area(record: Dict[str, Any]) -> Optional[Directive]:
    page = coerce_page_number(record.get("page"))
    coords = record.get("coordinates")
    if page is None or not isinstance(coords, dict):
        return None
    values = [coords.get(k) for k in ("x", "y", "width", "height")]
    if not all(_is_number(v) for v in values):
        return None
    return AreaDirective(
        page=page,
        coordinates=Coordinates(*(float(v) for v in values)),
        comment=_optional_str(record, "comment"),
        color=_optional_str(record, "color"),
    )


def _classify_navigate(record: Dict[str, Any]) -> Optional[Directive]:
    page = coerce_page_number(record.get("page"))
    return NavigateDirective(page=page) if page is not None else None


def _classify_clear(record: Dict[str, Any]) -> Optional[Directive]:
    return ClearDirective()


_CLASSIFIERS = {
    "highlight": _classify_highlight,
    "area": _classify_area,
    "navigate": _classify_navigate,
    "clear": _classify_clear,
}


def classify(record: Any) -> Optional[Directive]:
    """Turn one parsed command record into a directive, or None if invalid."""
    if not isinstance(record, dict):
        logger.warning(f"Annotation command is not an object: {record!r}")
        return None
    action = record.get("action")
    classifier = _CLASSIFIERS.get(action) if isinstance(action, str) else None
    if classifier is None:
        logger.warning(f"Unknown annotation action {action!r}; command ignored")
        return None
    directive = classifier(record)
    if directive is None:
        logger.warning(f"Invalid '{action}' annotation command dropped: {record!r}")
    return directive


# --- Extraction ---

def extract(response_text: str) -> ExtractionResult:
    """Split a model response into display text and ordered directives."""
    text = response_text if isinstance(response_text, str) else ""
    directives: List[Directive] = []

    for match in COMMAND_BLOCK_RE.finditer(text):
        body = match.group(1)
        try:
            record = json.loads(body)
        except (ValueError, RecursionError) as e:
            logger.warning(f"Failed to parse annotation command: {e}")
            continue
        directive = classify(record)
        if directive is not None:
            directives.append(directive)

    clean_text = normalize_markdown(COMMAND_BLOCK_RE.sub("", text))
    logger.debug(f"Extracted {len(directives)} annotation command(s)")
    return ExtractionResult(clean_text=clean_text, directives=directives)


def format_command_block(directive: Directive) -> str:
    body = json.dumps(directive.to_record(), indent=2, ensure_ascii=False)
    return f"```annotation\n{body}\n```"


def split_controls(directives: Iterable[Directive]) -> Tuple[List[Directive], List[Directive]]:
    """Partition into (highlight/area annotations, navigate/clear controls)."""
    annotations: List[Directive] = []
    controls: List[Directive] = []
    for d in directives:
        (controls if d.kind in CONTROL_KINDS else annotations).append(d)
    return annotations, controls


# --- Persistence format: a JSON array of wire records ---

def directives_to_json(directives: Iterable[Directive]) -> str:
    return json.dumps([d.to_record() for d in directives], ensure_ascii=False)


def directives_from_json(payload: str) -> List[Directive]:
    """Load stored directives; entries that no longer validate are dropped."""
    try:
        records = json.loads(payload) if payload else []
    except (ValueError, RecursionError) as e:
        logger.warning(f"Stored annotation commands are not valid JSON: {e}")
        return []
    if not isinstance(records, list):
        records = [records]
    loaded = [classify(r) for r in records]
    return [d for d in loaded if d is not None]
