"""Highlight geometry: persisted scaled positions and on-screen viewport rects.

A scaled rectangle stores its corners together with the reference page
dimensions they were measured against, so ``x1 / width`` is a
resolution-independent ratio. Viewport rectangles are pixels for the page
as currently rendered (zoom and scroll offset applied) and are never
persisted; converting back always goes through ``viewport_to_scaled``.

Every function here is a pure function of its arguments.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

_CANONICAL_KEYS = ("x1", "y1", "x2", "y2", "width", "height")


@dataclass(frozen=True)
class Rect:
    """Canonical scaled rectangle."""
    x1: float
    y1: float
    x2: float
    y2: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, float]:
        return {key: getattr(self, key) for key in _CANONICAL_KEYS}


@dataclass(frozen=True)
class ScaledPosition:
    """Durable highlight position."""
    bounding_rect: Rect
    rects: List[Rect] = field(default_factory=list)
    page_number: int = 1

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScaledPosition":
        """Build a position from its stored shape, normalising every rect.

        Raises:
            ValueError: If the bounding rect is missing or in neither shape
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"position must be a mapping, got {type(data).__name__}")
        raw_bounding = data.get("boundingRect", data.get("bounding_rect"))
        if raw_bounding is None:
            raise ValueError("position has no boundingRect")
        raw_rects = data.get("rects") or []
        page = data.get("pageNumber", data.get("page_number"))
        if page is None and isinstance(raw_bounding, Mapping):
            page = raw_bounding.get("pageNumber")
        try:
            page_number = int(page) if page is not None else 1
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid page number {page!r}") from e
        if not isinstance(raw_rects, (list, tuple)):
            raise ValueError("position rects must be a list")
        return cls(
            bounding_rect=normalize_rect(raw_bounding),
            rects=[normalize_rect(r) for r in raw_rects],
            page_number=page_number,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "boundingRect": self.bounding_rect.to_dict(),
            "rects": [r.to_dict() for r in self.rects],
            "pageNumber": self.page_number,
        }

    @property
    def reference(self) -> Tuple[float, float]:
        """The frame the bounding rect is expressed in."""
        return (self.bounding_rect.width, self.bounding_rect.height)


@dataclass(frozen=True)
class ViewportRect:
    """On-screen pixel rectangle for a mounted overlay."""
    x1: float
    y1: float
    x2: float
    y2: float
    width: float
    height: float
    page_number: int = 1

    @classmethod
    def from_corners(cls, x1: float, y1: float, x2: float, y2: float,
                     page_number: int = 1) -> "ViewportRect":
        return cls(x1, y1, x2, y2, x2 - x1, y2 - y1, page_number)


@dataclass(frozen=True)
class ViewportPosition:
    bounding_rect: ViewportRect
    rects: List[ViewportRect] = field(default_factory=list)
    page_number: int = 1


@dataclass(frozen=True)
class ScaleContext:
    """How one page is currently drawn.

    Attributes:
        page_width: Unscaled page width
        page_height: Unscaled page height
        scale: Current render scale (zoom)
        offset_x: Horizontal offset of the page inside the scrolled viewer
        offset_y: Vertical offset of the page inside the scrolled viewer
    """
    page_width: float
    page_height: float
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def __post_init__(self):
        if self.page_width <= 0 or self.page_height <= 0:
            raise ValueError("page dimensions must be positive")
        if self.scale <= 0:
            raise ValueError("scale must be positive")

    @property
    def viewport_width(self) -> float:
        return self.page_width * self.scale

    @property
    def viewport_height(self) -> float:
        return self.page_height * self.scale


def normalize_rect(raw: Union[Rect, Mapping[str, Any]]) -> Rect:
    """Bring a stored rectangle into canonical ``x1/y1/x2/y2/width/height`` form.

    Legacy rows use ``left/top/width/height``; they are detected by the
    presence of ``left`` and ``width``.

    Raises:
        ValueError: If the rectangle is in neither shape
    """
    if isinstance(raw, Rect):
        return raw
    if not isinstance(raw, Mapping):
        raise ValueError(f"rect must be a mapping, got {type(raw).__name__}")

    try:
        if raw.get("left") is not None and raw.get("width") is not None:
            left = float(raw["left"])
            top = float(raw["top"])
            width = float(raw["width"])
            height = float(raw["height"])
            return Rect(left, top, left + width, top + height, width, height)

        if raw.get("x1") is not None and raw.get("x2") is not None:
            return Rect(*(float(raw[key]) for key in _CANONICAL_KEYS))
    except (KeyError, TypeError) as e:
        raise ValueError(f"incomplete rect: {e}") from e

    raise ValueError(f"unrecognised rect shape: {sorted(raw)}")


def rect_to_viewport(rect: Rect, context: ScaleContext, page_number: int = 1) -> ViewportRect:
    """Project a scaled rect onto the page as currently rendered."""
    if rect.width == 0 or rect.height == 0:
        raise ValueError("scaled rect has a degenerate reference frame")
    sx = context.viewport_width / rect.width
    sy = context.viewport_height / rect.height
    return ViewportRect.from_corners(
        rect.x1 * sx + context.offset_x,
        rect.y1 * sy + context.offset_y,
        rect.x2 * sx + context.offset_x,
        rect.y2 * sy + context.offset_y,
        page_number,
    )


def rect_to_scaled(rect: ViewportRect, context: ScaleContext,
                   reference: Optional[Tuple[float, float]] = None) -> Rect:
    """Inverse of ``rect_to_viewport``.

    ``reference`` is the ``(width, height)`` frame to express the result in;
    it defaults to the unscaled page dimensions.
    """
    ref_width, ref_height = reference or (context.page_width, context.page_height)
    if ref_width == 0 or ref_height == 0:
        raise ValueError("reference frame is degenerate")
    sx = ref_width / context.viewport_width
    sy = ref_height / context.viewport_height
    return Rect(
        (rect.x1 - context.offset_x) * sx,
        (rect.y1 - context.offset_y) * sy,
        (rect.x2 - context.offset_x) * sx,
        (rect.y2 - context.offset_y) * sy,
        ref_width,
        ref_height,
    )


def scaled_to_viewport(position: ScaledPosition, context: ScaleContext) -> ViewportPosition:
    """Convert a stored position for on-screen overlay rendering."""
    page = position.page_number
    return ViewportPosition(
        bounding_rect=rect_to_viewport(position.bounding_rect, context, page),
        rects=[rect_to_viewport(r, context, page) for r in position.rects],
        page_number=page,
    )


def viewport_to_scaled(position: ViewportPosition, context: ScaleContext,
                       reference: Optional[Tuple[float, float]] = None) -> ScaledPosition:
    """Convert an on-screen position back into its persistable form."""
    return ScaledPosition(
        bounding_rect=rect_to_scaled(position.bounding_rect, context, reference),
        rects=[rect_to_scaled(r, context, reference) for r in position.rects],
        page_number=position.page_number,
    )
