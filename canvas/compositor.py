"""
Layer Compositor

Owns the raster layers of an open form, bottom to top:
- base: the form image plus any images placed into blank areas
- drawing: transparent annotation layer (strokes, erasures, text)
- preview: uncommitted text being typed
- highlight: detected blank areas (display only)
- hover: the blank area under the pointer (display only)

Only base and drawing take part in ``flatten()``. Drawing layer changes
are committed to a HistoryManager after every discrete action.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFont

from core.constants import FitMode, HIGHLIGHT_FILL, HOVER_FILL, TRANSPARENT, Tool
from core.exceptions import ContextUnavailable, DecodeFailure
from core.models import BlankArea, BrushSettings, PlacementTransform
from imaging.fit import fit, render_placement
from utils.bbox_utils import clip_area, draw_area_overlay, find_area_at
from utils.image_utils import create_empty_layer
from .history import HistoryEntry, HistoryManager

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
Color = Union[str, Sequence[int]]


def to_rgba(color: Color) -> Tuple[int, int, int, int]:
    """Parse '#RRGGBB', CSS names or RGB(A) tuples to an RGBA tuple."""
    if isinstance(color, str):
        return ImageColor.getcolor(color, 'RGBA')
    values = tuple(int(c) for c in color)
    if len(values) == 3:
        return values + (255,)
    if len(values) == 4:
        return values
    raise ValueError(f"Invalid colour: {color!r}")


@dataclass
class _Stroke:
    """Freehand stroke in progress."""
    tool: Tool
    color: Tuple[int, int, int, int]
    width: int
    last_point: Point
    segments: int = 0


@dataclass
class _TextPreview:
    """Uncommitted text session."""
    text: str
    position: Point
    size: int
    color: Tuple[int, int, int, int]


class LayerCompositor:
    """Layered canvas with undo/redo for the drawing layer."""

    def __init__(
        self,
        base: Image.Image,
        drawing: Optional[Image.Image] = None,
        brush: Optional[BrushSettings] = None,
        history_limit: Optional[int] = None
    ):
        """
        Initialize the compositor.

        Args:
            base: Form image; defines the coordinate space
            drawing: Stored drawing layer (transparent layer when None)
            brush: Active tool colours and sizes
            history_limit: Maximum undo depth (None for unlimited)

        Raises:
            ContextUnavailable: The base raster has no pixels
        """
        if base is None or base.width == 0 or base.height == 0:
            raise ContextUnavailable("Base raster has no drawable surface")

        self.base = base.convert('RGBA') if base.mode != 'RGBA' else base.copy()
        self.size = self.base.size
        self.brush = brush or BrushSettings()

        self.drawing = self._fit_layer(drawing)
        self.preview = create_empty_layer(self.size)
        self.highlight = create_empty_layer(self.size)
        self.hover = create_empty_layer(self.size)
        self.highlight_visible = False
        self.hovered_area: Optional[BlankArea] = None

        self.history = HistoryManager(HistoryEntry.from_image(self.drawing), limit=history_limit)

        self._stroke: Optional[_Stroke] = None
        self._text: Optional[_TextPreview] = None
        self._text_anchor: Optional[Point] = None
        self._fonts: Dict[int, ImageFont.ImageFont] = {}

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

    def _fit_layer(self, layer: Optional[Image.Image]) -> Image.Image:
        """Return a layer with exactly the base size, anchored at the origin."""
        if layer is None:
            return create_empty_layer(self.size)
        if layer.mode != 'RGBA':
            layer = layer.convert('RGBA')
        if layer.size == self.size:
            return layer.copy()

        logger.warning("Drawing layer size %s differs from base %s, clipping", layer.size, self.size)
        fitted = create_empty_layer(self.size)
        fitted.paste(layer.crop((0, 0) + self.size), (0, 0))
        return fitted

    # ------------------------------------------------------------------
    # Strokes
    # ------------------------------------------------------------------

    @property
    def is_stroking(self) -> bool:
        return self._stroke is not None

    def begin_stroke(
        self,
        tool: Union[Tool, str],
        point: Point,
        color: Optional[Color] = None,
        width: Optional[int] = None
    ) -> Optional[HistoryEntry]:
        """
        Start a freehand action with the given tool.

        DRAW and ERASER open a stroke; TEXT records the anchor for the
        next text preview. A stroke still open is finished and committed
        first, so painted segments always end up in history.

        Returns:
            The snapshot committed for an interrupted stroke, or None
        """
        tool = Tool(tool)
        flushed = self.end_stroke()

        if tool is Tool.TEXT:
            self._text_anchor = (float(point[0]), float(point[1]))
            return flushed

        if tool is Tool.DRAW:
            stroke_color = to_rgba(color or self.brush.brush_color)
            stroke_width = width or self.brush.brush_size
        else:
            stroke_color = (0, 0, 0, 255)
            stroke_width = width or self.brush.eraser_size

        self._stroke = _Stroke(
            tool=tool,
            color=stroke_color,
            width=max(1, int(stroke_width)),
            last_point=(float(point[0]), float(point[1]))
        )
        return flushed

    def extend_stroke(self, point: Point) -> None:
        """Apply the segment from the previous point to ``point``."""
        stroke = self._stroke
        if stroke is None:
            return

        end = (float(point[0]), float(point[1]))
        box = self._segment_box(stroke.last_point, end, stroke.width)
        if box is not None:
            if stroke.tool is Tool.DRAW:
                self._paint_segment(stroke, end, box)
            else:
                self._erase_segment(stroke, end, box)

        stroke.last_point = end
        stroke.segments += 1

    def end_stroke(self) -> Optional[HistoryEntry]:
        """
        Finish the current stroke and commit the drawing layer.

        Returns:
            The committed snapshot, or None when no stroke was open
        """
        if self._stroke is None:
            return None

        stroke = self._stroke
        self._stroke = None
        logger.debug("Stroke finished: tool=%s segments=%d", stroke.tool.value, stroke.segments)
        return self._commit()

    def _segment_box(self, start: Point, end: Point, width: int) -> Optional[Tuple[int, int, int, int]]:
        """Pixel box touched by a segment, clipped to the raster."""
        pad = width / 2 + 1
        x1 = max(0, int(min(start[0], end[0]) - pad))
        y1 = max(0, int(min(start[1], end[1]) - pad))
        x2 = min(self.width, int(max(start[0], end[0]) + pad) + 1)
        y2 = min(self.height, int(max(start[1], end[1]) + pad) + 1)
        if x2 <= x1 or y2 <= y1:
            return None
        return (x1, y1, x2, y2)

    @staticmethod
    def _draw_round_segment(draw: ImageDraw.ImageDraw, start: Point, end: Point, width: int, fill) -> None:
        """Line with round caps, in local coordinates."""
        draw.line([start, end], fill=fill, width=width)
        radius = width / 2
        for x, y in (start, end):
            draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=fill)

    def _paint_segment(self, stroke: _Stroke, end: Point, box: Tuple[int, int, int, int]) -> None:
        """Source-over blend of a brush segment onto the drawing layer."""
        ox, oy = box[0], box[1]
        patch = Image.new('RGBA', (box[2] - ox, box[3] - oy), TRANSPARENT)
        self._draw_round_segment(
            ImageDraw.Draw(patch),
            (stroke.last_point[0] - ox, stroke.last_point[1] - oy),
            (end[0] - ox, end[1] - oy),
            stroke.width,
            stroke.color
        )
        self.drawing.alpha_composite(patch, dest=(ox, oy))

    def _erase_segment(self, stroke: _Stroke, end: Point, box: Tuple[int, int, int, int]) -> None:
        """Destination-out blend: erased pixels become transparent."""
        ox, oy = box[0], box[1]
        mask = Image.new('L', (box[2] - ox, box[3] - oy), 0)
        self._draw_round_segment(
            ImageDraw.Draw(mask),
            (stroke.last_point[0] - ox, stroke.last_point[1] - oy),
            (end[0] - ox, end[1] - oy),
            stroke.width,
            255
        )

        region = np.array(self.drawing.crop(box))
        coverage = np.asarray(mask, dtype=np.float32) / 255.0
        region[..., 3] = np.round(region[..., 3] * (1.0 - coverage)).astype(np.uint8)
        self.drawing.paste(Image.fromarray(region, 'RGBA'), (ox, oy))

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def _font(self, size: int) -> ImageFont.ImageFont:
        if size not in self._fonts:
            try:
                self._fonts[size] = ImageFont.truetype(self.brush.font_path or "DejaVuSans.ttf", size)
            except OSError:
                self._fonts[size] = ImageFont.load_default(size=size)
        return self._fonts[size]

    @property
    def text_anchor(self) -> Optional[Point]:
        return self._text_anchor

    @property
    def has_text_preview(self) -> bool:
        return self._text is not None

    def _render_text(self, layer: Image.Image, preview: _TextPreview) -> None:
        font = self._font(preview.size)
        draw = ImageDraw.Draw(layer)
        if isinstance(font, ImageFont.FreeTypeFont):
            # Anchor on the alphabetic baseline
            draw.text(preview.position, preview.text, font=font, fill=preview.color, anchor='ls')
        else:
            draw.text(preview.position, preview.text, font=font, fill=preview.color)

    def preview_text(
        self,
        text: str,
        position: Optional[Point] = None,
        size: Optional[int] = None,
        color: Optional[Color] = None
    ) -> Image.Image:
        """
        Render uncommitted text into the preview overlay.

        Called on every keystroke or style change; the drawing layer is
        never touched.

        Returns:
            The preview overlay
        """
        if position is None:
            position = self._text_anchor
        if position is None:
            raise ValueError("No text position; begin a TEXT action or pass a position")

        self._text_anchor = (float(position[0]), float(position[1]))
        self.preview = create_empty_layer(self.size)

        if not text:
            self._text = None
            return self.preview

        self._text = _TextPreview(
            text=text,
            position=self._text_anchor,
            size=int(size or self.brush.text_size),
            color=to_rgba(color or self.brush.text_color)
        )
        self._render_text(self.preview, self._text)
        return self.preview

    def cancel_text(self) -> None:
        """Discard the text preview."""
        self._text = None
        self.preview = create_empty_layer(self.size)

    def commit_text(self) -> Optional[HistoryEntry]:
        """Move the previewed text onto the drawing layer and commit."""
        if self._text is None:
            return None

        self.drawing.alpha_composite(self.preview)
        self.cancel_text()
        return self._commit()

    def place_text(self, position: Point, text: str, size: Optional[int] = None,
                   color: Optional[Color] = None) -> Optional[HistoryEntry]:
        """Rasterize text onto the drawing layer and commit."""
        self.preview_text(text, position=position, size=size, color=color)
        return self.commit_text()

    # ------------------------------------------------------------------
    # Image placement
    # ------------------------------------------------------------------

    def place_image(
        self,
        dest_rect: BlankArea,
        source: Image.Image,
        fit_mode: Union[FitMode, str] = FitMode.CROP_FILL
    ) -> Optional[PlacementTransform]:
        """
        Draw an external image into a rectangle of the base layer.

        The rectangle is cleared first so repeated placements do not stack.
        The base is swapped only after the new one is fully built. Not
        recorded in history.

        Returns:
            The transform used, or None when the rectangle lies outside the raster
        """
        area = clip_area(dest_rect, self.width, self.height)
        if area is None:
            logger.debug("Placement rectangle %s outside raster, ignored", dest_rect)
            return None
        if source.width == 0 or source.height == 0:
            raise DecodeFailure("Source image has no pixels")

        transform = fit(source.width, source.height, area, fit_mode)
        patch = render_placement(source, transform)

        base = self.base.copy()
        base.paste(TRANSPARENT, area.as_box())
        base.alpha_composite(patch, dest=(transform.dest_rect.x, transform.dest_rect.y))
        self.base = base

        logger.debug("Placed %dx%d image into %s (%s)", source.width, source.height,
                     transform.dest_rect, FitMode(fit_mode).value)
        return transform

    # ------------------------------------------------------------------
    # Overlays
    # ------------------------------------------------------------------

    def highlight_regions(self, areas: Iterable[BlankArea], visible: bool = True) -> None:
        """Show or hide blank areas as a semi-transparent overlay."""
        self.highlight_visible = visible
        if visible:
            self.highlight = draw_area_overlay(self.size, areas, HIGHLIGHT_FILL)
        else:
            self.highlight = create_empty_layer(self.size)

    def hover_region(self, area: Optional[BlankArea]) -> None:
        """Mark one area as hovered (None clears)."""
        if area == self.hovered_area:
            return
        self.hovered_area = area
        if area is None:
            self.hover = create_empty_layer(self.size)
        else:
            self.hover = draw_area_overlay(self.size, [area], HOVER_FILL)

    def hover_at(self, x: float, y: float, areas: Iterable[BlankArea]) -> Optional[BlankArea]:
        """Hover the area under a point, if any."""
        area = find_area_at(areas, x, y)
        self.hover_region(area)
        return area

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def flatten(self) -> Image.Image:
        """Base with the drawing layer on top; overlays excluded."""
        output = self.base.copy()
        output.alpha_composite(self.drawing)
        return output

    def render_view(self) -> Image.Image:
        """Everything the user sees, including display-only overlays."""
        view = self.flatten()
        if self._text is not None:
            view.alpha_composite(self.preview)
        if self.highlight_visible:
            view.alpha_composite(self.highlight)
        if self.hovered_area is not None:
            view.alpha_composite(self.hover)
        return view

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _commit(self) -> HistoryEntry:
        entry = HistoryEntry.from_image(self.drawing)
        self.history.commit(entry)
        return entry

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def undo(self) -> Optional[HistoryEntry]:
        """Restore the previous drawing snapshot."""
        entry = self.history.undo()
        if entry is not None:
            self.drawing = self._fit_layer(entry.to_image())
        return entry

    def redo(self) -> Optional[HistoryEntry]:
        """Restore the most recently undone drawing snapshot."""
        entry = self.history.redo()
        if entry is not None:
            self.drawing = self._fit_layer(entry.to_image())
        return entry

    def load_drawing(self, layer: Optional[Image.Image]) -> None:
        """Replace the drawing layer and restart history from it."""
        self._stroke = None
        self.cancel_text()
        self.drawing = self._fit_layer(layer)
        self.history.clear(HistoryEntry.from_image(self.drawing))

    def __repr__(self):
        return f"<LayerCompositor(size={self.size}, history={self.history!r})>"
