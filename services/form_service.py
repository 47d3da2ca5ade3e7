"""
Form Service - Orchestrates detection, editing and persistence of forms.

Image decoding, detection and database writes run in worker threads via
asyncio.to_thread; compositor and history state is only ever touched on
the event loop thread.
"""
import asyncio
import base64
import logging
from typing import List, Optional, Union

from config.settings import Settings, settings as default_settings
from core.constants import DOWNLOAD_NAME_TEMPLATE, FitMode, Tool
from core.exceptions import FormNotFound
from core.models import BlankArea, BrushSettings, DetectionConfig, FormSummary, PlacementTransform
from canvas.compositor import Color, LayerCompositor, Point
from canvas.history import HistoryEntry
from data.database import DatabaseManager
from data.db_models import FormDocument
from data.repositories import FormRepository
from imaging.detector import detect, detect_blank_areas
from utils.bbox_utils import areas_to_dicts, find_area_at
from utils.image_utils import ImageSource, decode_image, encode_png, image_to_base64

logger = logging.getLogger(__name__)


def _summary(form: FormDocument) -> FormSummary:
    return FormSummary(
        id=form.id,
        timestamp=form.timestamp,
        size=form.size or 0,
        area_count=len(form.blank_areas or [])
    )


class FormService:
    """Service for creating, listing and opening stored forms."""

    def __init__(self, db_manager: DatabaseManager, app_settings: Optional[Settings] = None):
        """
        Initialize form service.

        Args:
            db_manager: Storage handle used for every read and write
            app_settings: Settings (module defaults when None)
        """
        self.db = db_manager
        self.settings = app_settings or default_settings

    def detection_config(self, tolerance: Optional[bool] = None) -> DetectionConfig:
        """Detector thresholds from settings."""
        return DetectionConfig.from_settings(self.settings, tolerance)

    async def detect_blank_areas(self, image: ImageSource, tolerance: Optional[bool] = None) -> List[BlankArea]:
        """Decode an image and detect its blank areas."""
        config = self.detection_config(tolerance)
        return await detect_blank_areas(image, tolerance=config.tolerance, config=config)

    # ------------------------------------------------------------------
    # Synchronous storage helpers (run in worker threads)
    # ------------------------------------------------------------------

    def _insert_form(self, base_image: str, blank_areas: List[dict], size: int) -> FormSummary:
        with self.db.session() as session:
            form = FormRepository(session).create(
                base_image=base_image,
                blank_areas=blank_areas,
                size=size
            )
            return _summary(form)

    def _fetch_form(self, form_id: str) -> FormDocument:
        with self.db.session() as session:
            form = FormRepository(session).get_by_id(form_id)
            if form is None:
                raise FormNotFound(f"Form not found: {form_id}")
            return form

    def _update_form(self, form_id: str, fields: dict) -> FormSummary:
        with self.db.session() as session:
            form = FormRepository(session).update(form_id, **fields)
            if form is None:
                raise FormNotFound(f"Form not found: {form_id}")
            return _summary(form)

    def _list_forms(self, limit: int, offset: int) -> List[FormSummary]:
        with self.db.session() as session:
            return [_summary(form) for form in FormRepository(session).list_all(limit, offset)]

    def _delete_form(self, form_id: str) -> bool:
        with self.db.session() as session:
            return FormRepository(session).delete(form_id)

    # ------------------------------------------------------------------
    # Form library
    # ------------------------------------------------------------------

    async def create_form(self, image: ImageSource, tolerance: Optional[bool] = None) -> FormSummary:
        """
        Store a new form and detect its blank areas.

        Args:
            image: Form image in any supported encoding
            tolerance: Detector tolerance (settings default when None)

        Returns:
            Summary of the stored form

        Raises:
            DecodeFailure: The image cannot be decoded; nothing is stored
        """
        raster = await asyncio.to_thread(decode_image, image, self.settings.max_image_size)
        areas = await asyncio.to_thread(detect, raster, self.detection_config(tolerance))
        png = await asyncio.to_thread(encode_png, raster)

        summary = await asyncio.to_thread(
            self._insert_form,
            base64.b64encode(png).decode(),
            areas_to_dicts(areas),
            len(png)
        )
        logger.info("Created form %s (%dx%d, %d blank areas)",
                    summary.id, raster.width, raster.height, len(areas))
        return summary

    async def get_form(self, form_id: str) -> FormDocument:
        """Load a stored form record."""
        return await asyncio.to_thread(self._fetch_form, form_id)

    async def update_form(self, form_id: str, **fields) -> FormSummary:
        """Write fields of a stored form; awaited before reporting success."""
        return await asyncio.to_thread(self._update_form, form_id, fields)

    async def list_forms(self, limit: int = 50, offset: int = 0) -> List[FormSummary]:
        """List stored forms, newest first."""
        return await asyncio.to_thread(self._list_forms, limit, offset)

    async def delete_form(self, form_id: str) -> bool:
        """Delete a stored form."""
        deleted = await asyncio.to_thread(self._delete_form, form_id)
        if deleted:
            logger.info("Deleted form %s", form_id)
        return deleted

    async def open_form(self, form_id: str) -> "FormSession":
        """
        Open a stored form for editing.

        Creates an empty drawing layer when none is stored and detects
        blank areas when the record has none yet.

        Raises:
            FormNotFound: No form with this id
            DecodeFailure: A stored image cannot be decoded
        """
        form = await self.get_form(form_id)
        base = await asyncio.to_thread(decode_image, form.base_image)
        drawing = None
        if form.drawing_layer:
            drawing = await asyncio.to_thread(decode_image, form.drawing_layer)

        areas = form.get_blank_areas()
        if not areas:
            areas = await asyncio.to_thread(detect, base, self.detection_config())
            await self.update_form(form.id, blank_areas=areas_to_dicts(areas))
            logger.info("Detected %d blank areas for form %s", len(areas), form.id)

        return FormSession(self, form.id, base, drawing, areas)


class FormSession:
    """An open form: compositor, blank areas and write-back to storage."""

    def __init__(
        self,
        service: FormService,
        form_id: str,
        base,
        drawing,
        blank_areas: List[BlankArea]
    ):
        self.service = service
        self.form_id = form_id
        self.blank_areas = list(blank_areas)
        self.compositor = LayerCompositor(
            base,
            drawing,
            brush=BrushSettings.from_settings(service.settings),
            history_limit=service.settings.history_limit or None
        )
        self.current_tool = Tool.DRAW
        self.show_blank_areas = False
        self._placement_generation = 0
        # Serializes store writes so the last snapshot taken is the last written
        self._write_lock = asyncio.Lock()

    @property
    def download_name(self) -> str:
        return DOWNLOAD_NAME_TEMPLATE.format(form_id=self.form_id)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _persist_drawing(self) -> FormSummary:
        """Write the active drawing snapshot and the composited output."""
        async with self._write_lock:
            entry = self.compositor.history.current
            flat = self.compositor.flatten()
            composited = await asyncio.to_thread(encode_png, flat)
            return await self.service.update_form(
                self.form_id,
                drawing_layer=base64.b64encode(entry.data).decode(),
                composited_image=base64.b64encode(composited).decode(),
                size=len(composited)
            )

    async def _persist_placement(self) -> None:
        """Write the modified base and the composited output."""
        async with self._write_lock:
            base = self.compositor.base.copy()
            flat = self.compositor.flatten()
            base_b64 = await asyncio.to_thread(image_to_base64, base)
            composited = await asyncio.to_thread(encode_png, flat)
            await self.service.update_form(
                self.form_id,
                base_image=base_b64,
                composited_image=base64.b64encode(composited).decode(),
                size=len(composited)
            )

    async def save(self) -> int:
        """
        Flatten and store the complete form.

        Returns:
            Size in bytes of the stored composited PNG
        """
        summary = await self._persist_drawing()
        logger.info("Saved form %s (%d bytes)", self.form_id, summary.size)
        return summary.size

    def export_png(self) -> bytes:
        """Flattened form as PNG bytes, ready for download."""
        return encode_png(self.compositor.flatten())

    # ------------------------------------------------------------------
    # Tools and drawing
    # ------------------------------------------------------------------

    async def select_tool(self, tool: Union[Tool, str]) -> Optional[HistoryEntry]:
        """
        Switch tool.

        An open text preview is discarded; an open stroke is finished and
        stored.
        """
        if self.compositor.has_text_preview:
            self.compositor.cancel_text()
        self.current_tool = Tool(tool)
        return await self.end_stroke()

    async def begin_stroke(self, point: Point, tool: Optional[Union[Tool, str]] = None,
                           color: Optional[Color] = None, width: Optional[int] = None) -> Optional[HistoryEntry]:
        """Start a stroke; returns the snapshot stored for an interrupted one."""
        flushed = None
        if tool is not None:
            flushed = await self.select_tool(tool)
        entry = self.compositor.begin_stroke(self.current_tool, point, color=color, width=width)
        if entry is not None:
            await self._persist_drawing()
        return flushed or entry

    def extend_stroke(self, point: Point) -> None:
        self.compositor.extend_stroke(point)

    async def end_stroke(self) -> Optional[HistoryEntry]:
        """Commit the stroke and store the new drawing layer."""
        entry = self.compositor.end_stroke()
        if entry is not None:
            await self._persist_drawing()
        return entry

    def preview_text(self, text: str, size: Optional[int] = None, color: Optional[Color] = None):
        return self.compositor.preview_text(text, size=size, color=color)

    def cancel_text(self) -> None:
        self.compositor.cancel_text()

    async def add_text(self) -> Optional[HistoryEntry]:
        """Commit the previewed text."""
        entry = self.compositor.commit_text()
        if entry is not None:
            await self._persist_drawing()
        return entry

    async def place_text(self, position: Point, text: str, size: Optional[int] = None,
                         color: Optional[Color] = None) -> Optional[HistoryEntry]:
        entry = self.compositor.place_text(position, text, size=size, color=color)
        if entry is not None:
            await self._persist_drawing()
        return entry

    async def undo(self) -> Optional[HistoryEntry]:
        entry = self.compositor.undo()
        if entry is not None:
            await self._persist_drawing()
        return entry

    async def redo(self) -> Optional[HistoryEntry]:
        entry = self.compositor.redo()
        if entry is not None:
            await self._persist_drawing()
        return entry

    # ------------------------------------------------------------------
    # Blank areas
    # ------------------------------------------------------------------

    def area_at(self, x: float, y: float) -> Optional[BlankArea]:
        return find_area_at(self.blank_areas, x, y)

    def hover(self, x: Optional[float], y: Optional[float]) -> Optional[BlankArea]:
        """Update the hover overlay for a pointer position (None clears)."""
        if x is None or y is None:
            self.compositor.hover_region(None)
            return None
        return self.compositor.hover_at(x, y, self.blank_areas)

    def toggle_blank_areas(self, visible: Optional[bool] = None) -> bool:
        """Show, hide or flip the blank area highlight."""
        self.show_blank_areas = (not self.show_blank_areas) if visible is None else visible
        self.compositor.highlight_regions(self.blank_areas, self.show_blank_areas)
        return self.show_blank_areas

    async def redetect(self, tolerance: Optional[bool] = None) -> List[BlankArea]:
        """Run detection again on the current base and store the result."""
        base = self.compositor.base.copy()
        areas = await asyncio.to_thread(detect, base, self.service.detection_config(tolerance))
        await self.service.update_form(self.form_id, blank_areas=areas_to_dicts(areas))
        self.blank_areas = areas
        if self.show_blank_areas:
            self.compositor.highlight_regions(areas, True)
        return areas

    async def place_image(
        self,
        area: BlankArea,
        image: ImageSource,
        fit_mode: Optional[Union[FitMode, str]] = None
    ) -> Optional[PlacementTransform]:
        """
        Decode an image and draw it into a blank area of the base.

        A request superseded by a newer one while decoding is dropped
        without touching any state.

        Returns:
            The transform used, or None when superseded or out of bounds

        Raises:
            DecodeFailure: The image cannot be decoded; the form is unchanged
        """
        self._placement_generation += 1
        generation = self._placement_generation
        mode = FitMode(fit_mode or self.service.settings.default_fit_mode)

        source = await asyncio.to_thread(decode_image, image)

        if generation != self._placement_generation:
            logger.warning("Discarding superseded placement into %s", area)
            return None

        transform = self.compositor.place_image(area, source, mode)
        if transform is not None:
            await self._persist_placement()
        return transform

    async def place_image_at(
        self,
        x: float,
        y: float,
        image: ImageSource,
        fit_mode: Optional[Union[FitMode, str]] = None
    ) -> Optional[PlacementTransform]:
        """Drop an image at a point; ignored unless the point is in a blank area."""
        area = self.area_at(x, y)
        self.compositor.hover_region(None)
        if area is None:
            return None
        return await self.place_image(area, image, fit_mode)
