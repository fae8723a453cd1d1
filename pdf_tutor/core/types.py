from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional, TypedDict, Union


class Box(TypedDict):
    left: float
    top: float
    width: float
    height: float


class PageOrigin(TypedDict):
    left: float
    top: float


class PageTextFragment(TypedDict):
    content: str
    bounding_box: Box   # rendering-surface coordinates, not page-local


# --- Directives (one dataclass per action) ---

@dataclass(frozen=True)
class Coordinates:
    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


def _with_optional(record: Dict[str, Any], **optional: Optional[str]) -> Dict[str, Any]:
    for key, value in optional.items():
        if value is not None:
            record[key] = value
    return record


@dataclass(frozen=True)
class HighlightDirective:
    kind: ClassVar[str] = "highlight"

    text: str
    page: int
    comment: Optional[str] = None
    color: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        record = {"action": self.kind, "text": self.text, "page": self.page}
        return _with_optional(record, comment=self.comment, color=self.color)


@dataclass(frozen=True)
class AreaDirective:
    kind: ClassVar[str] = "area"

    page: int
    coordinates: Coordinates
    comment: Optional[str] = None
    color: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        record = {"action": self.kind, "page": self.page, "coordinates": self.coordinates.to_dict()}
        return _with_optional(record, comment=self.comment, color=self.color)


@dataclass(frozen=True)
class NavigateDirective:
    kind: ClassVar[str] = "navigate"

    page: int

    def to_record(self) -> Dict[str, Any]:
        return {"action": self.kind, "page": self.page}


@dataclass(frozen=True)
class ClearDirective:
    kind: ClassVar[str] = "clear"

    def to_record(self) -> Dict[str, Any]:
        return {"action": self.kind}


Directive = Union[HighlightDirective, AreaDirective, NavigateDirective, ClearDirective]


# --- Resolved output ---

@dataclass
class Highlight:
    id: str
    page_number: int
    source_text: Optional[str]   # matched fragment content; None for area highlights
    color: str
    comment: str
    bounding_box: Box            # page-local

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "page_number": self.page_number,
            "source_text": self.source_text,
            "color": self.color,
            "comment": self.comment,
            "bounding_box": dict(self.bounding_box),
        }
