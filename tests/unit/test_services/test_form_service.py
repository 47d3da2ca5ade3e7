"""
Unit tests for services.form_service module.
"""
import asyncio
import base64

import pytest
from PIL import Image
from core.constants import Tool
from core.exceptions import DecodeFailure, FormNotFound
from core.models import BlankArea
from data.repositories import FormRepository
from services.form_service import FormService
from utils.image_utils import decode_image, image_to_base64

RED = (255, 0, 0, 255)
FORM_AREA = BlankArea(1, 1, 198, 198)


@pytest.fixture
def service(db_manager, test_settings):
    return FormService(db_manager, test_settings)


@pytest.fixture
def form_id(service, sample_image_path):
    return asyncio.run(service.create_form(sample_image_path)).id


def _open(service, form_id):
    return asyncio.run(service.open_form(form_id))


class TestFormLibrary:
    """Tests for creating, listing and deleting forms."""

    def test_create_form(self, service, sample_image_path):
        summary = asyncio.run(service.create_form(sample_image_path))

        assert summary.id
        assert summary.area_count == 1
        assert summary.size > 0

        form = asyncio.run(service.get_form(summary.id))
        assert form.get_blank_areas() == [FORM_AREA]
        assert decode_image(form.base_image).size == (200, 200)

    def test_create_form_with_tolerance(self, service, sample_png_bytes):
        summary = asyncio.run(service.create_form(sample_png_bytes, tolerance=True))

        form = asyncio.run(service.get_form(summary.id))
        assert form.get_blank_areas() == [BlankArea(0, 0, 200, 200)]

    def test_create_form_decode_failure(self, service):
        with pytest.raises(DecodeFailure):
            asyncio.run(service.create_form(b"not an image"))

        assert asyncio.run(service.list_forms()) == []

    def test_list_forms(self, service, form_id):
        forms = asyncio.run(service.list_forms())

        assert [f.id for f in forms] == [form_id]
        assert forms[0].area_count == 1

    def test_delete_form(self, service, form_id):
        assert asyncio.run(service.delete_form(form_id)) is True

        with pytest.raises(FormNotFound):
            asyncio.run(service.get_form(form_id))
        assert asyncio.run(service.delete_form(form_id)) is False

    def test_update_missing(self, service):
        with pytest.raises(FormNotFound):
            asyncio.run(service.update_form("missing", size=1))

    def test_detect_without_storing(self, service, sample_png_bytes):
        areas = asyncio.run(service.detect_blank_areas(sample_png_bytes))

        assert areas == [FORM_AREA]
        assert asyncio.run(service.list_forms()) == []


class TestOpenForm:
    """Tests for opening stored forms."""

    def test_open(self, service, form_id):
        session = _open(service, form_id)

        assert session.blank_areas == [FORM_AREA]
        assert session.compositor.size == (200, 200)
        assert session.compositor.drawing.getbbox() is None
        assert session.download_name == f"form-{form_id}.png"

    def test_open_missing(self, service):
        with pytest.raises(FormNotFound):
            _open(service, "missing")

    def test_open_detects_missing_areas(self, service, db_manager, bordered_form_image):
        with db_manager.session() as db_session:
            form = FormRepository(db_session).create(base_image=image_to_base64(bordered_form_image))
            stored_id = form.id

        session = _open(service, stored_id)

        assert session.blank_areas == [FORM_AREA]
        stored = asyncio.run(service.get_form(stored_id))
        assert stored.get_blank_areas() == [FORM_AREA]


class TestDrawingPersistence:
    """Tests that drawing actions are written back to storage."""

    def _draw(self, session, y):
        asyncio.run(session.begin_stroke((10, y), tool=Tool.DRAW))
        session.extend_stroke((190, y))
        return asyncio.run(session.end_stroke())

    def test_stroke_persisted(self, service, form_id):
        session = _open(service, form_id)

        entry = self._draw(session, 100)

        assert entry is not None
        reopened = _open(service, form_id)
        assert reopened.compositor.drawing.getpixel((100, 100)) == RED
        form = asyncio.run(service.get_form(form_id))
        assert decode_image(form.composited_image).getpixel((100, 100)) == RED
        assert form.size == len(base64.b64decode(form.composited_image))

    def test_undo_redo_persisted(self, service, form_id):
        session = _open(service, form_id)
        self._draw(session, 50)
        self._draw(session, 150)

        asyncio.run(session.undo())
        reopened = _open(service, form_id)
        assert reopened.compositor.drawing.getpixel((100, 50)) == RED
        assert reopened.compositor.drawing.getpixel((100, 150))[3] == 0

        asyncio.run(session.redo())
        reopened = _open(service, form_id)
        assert reopened.compositor.drawing.getpixel((100, 150)) == RED

    def test_undo_at_bottom(self, service, form_id):
        session = _open(service, form_id)

        assert asyncio.run(session.undo()) is None

    def test_erase_persisted(self, service, form_id):
        session = _open(service, form_id)
        self._draw(session, 100)

        asyncio.run(session.begin_stroke((0, 100), tool="eraser"))
        session.extend_stroke((200, 100))
        asyncio.run(session.end_stroke())

        assert _open(service, form_id).compositor.drawing.getpixel((100, 100))[3] == 0

    def test_text_persisted(self, service, form_id):
        session = _open(service, form_id)

        asyncio.run(session.place_text((20, 100), "Name"))

        assert _open(service, form_id).compositor.drawing.getbbox() is not None

    def test_preview_then_add_text(self, service, form_id):
        session = _open(service, form_id)
        asyncio.run(session.begin_stroke((20, 100), tool=Tool.TEXT))
        session.preview_text("Name")

        assert _open(service, form_id).compositor.drawing.getbbox() is None

        asyncio.run(session.add_text())
        assert _open(service, form_id).compositor.drawing.getbbox() is not None

    def test_select_tool_discards_preview(self, service, form_id):
        session = _open(service, form_id)
        asyncio.run(session.begin_stroke((20, 100), tool=Tool.TEXT))
        session.preview_text("Name")

        asyncio.run(session.select_tool(Tool.DRAW))

        assert not session.compositor.has_text_preview
        assert session.current_tool is Tool.DRAW

    def test_switching_tool_mid_stroke_stores_stroke(self, service, form_id):
        """Test an unfinished stroke is committed and written on tool change."""
        session = _open(service, form_id)
        asyncio.run(session.begin_stroke((10, 100), tool=Tool.DRAW))
        session.extend_stroke((190, 100))

        entry = asyncio.run(session.begin_stroke((20, 50), tool=Tool.TEXT))

        assert entry is not None
        assert session.compositor.can_undo
        reopened = _open(service, form_id)
        assert reopened.compositor.drawing.getpixel((100, 100)) == RED

    def test_select_tool_mid_stroke_stores_stroke(self, service, form_id):
        session = _open(service, form_id)
        asyncio.run(session.begin_stroke((10, 100), tool=Tool.DRAW))
        session.extend_stroke((190, 100))

        assert asyncio.run(session.select_tool(Tool.ERASER)) is not None
        assert _open(service, form_id).compositor.drawing.getpixel((100, 100)) == RED

    def test_save_and_export(self, service, form_id):
        session = _open(service, form_id)
        self._draw(session, 100)

        size = asyncio.run(session.save())
        png = session.export_png()

        assert size > 0
        exported = decode_image(png)
        assert exported.size == (200, 200)
        assert exported.getpixel((100, 100)) == RED


class TestImagePlacement:
    """Tests for placing images into blank areas."""

    def test_place_persists_base(self, service, form_id, wide_photo):
        session = _open(service, form_id)

        transform = asyncio.run(session.place_image(FORM_AREA, wide_photo, "crop-fill"))

        assert transform.dest_rect == FORM_AREA
        assert len(session.compositor.history) == 1
        reopened = _open(service, form_id)
        r, g, b, a = reopened.compositor.base.getpixel((100, 100))
        assert r <= 1 and abs(g - 128) <= 1

    def test_place_image_at_point(self, service, form_id, wide_photo):
        session = _open(service, form_id)

        assert asyncio.run(session.place_image_at(100, 100, wide_photo)) is not None

    def test_place_image_at_point_outside_area(self, service, form_id, wide_photo):
        session = _open(service, form_id)

        assert asyncio.run(session.place_image_at(0, 0, wide_photo)) is None

    def test_decode_failure_leaves_form_unchanged(self, service, form_id):
        session = _open(service, form_id)
        before = session.compositor.base.tobytes()

        with pytest.raises(DecodeFailure):
            asyncio.run(session.place_image(FORM_AREA, b"garbage"))

        assert session.compositor.base.tobytes() == before
        assert _open(service, form_id).compositor.base.tobytes() == before

    def test_superseded_placement_discarded(self, service, form_id):
        """Test only the latest of two overlapping placements is applied."""
        session = _open(service, form_id)
        red = Image.new('RGB', (50, 50), (255, 0, 0))
        blue = Image.new('RGB', (50, 50), (0, 0, 255))

        async def place_both():
            return await asyncio.gather(
                session.place_image(FORM_AREA, red),
                session.place_image(FORM_AREA, blue)
            )

        first, second = asyncio.run(place_both())

        assert first is None
        assert second is not None
        r, g, b, a = session.compositor.base.getpixel((100, 100))
        assert r <= 1 and b >= 254

    def test_interleaved_writes_store_latest_composite(self, service, form_id, wide_photo):
        """Test a stroke and a placement in flight together leave the newest output stored."""
        session = _open(service, form_id)
        asyncio.run(session.begin_stroke((10, 100), tool=Tool.DRAW))
        session.extend_stroke((190, 100))

        async def stroke_and_place():
            await asyncio.gather(
                session.end_stroke(),
                session.place_image(FORM_AREA, wide_photo)
            )

        asyncio.run(stroke_and_place())

        form = asyncio.run(service.get_form(form_id))
        stored = decode_image(form.composited_image)
        assert stored.tobytes() == session.compositor.flatten().tobytes()
        assert stored.getpixel((100, 100)) == RED
        assert stored.getpixel((100, 50))[1] > 100


class TestBlankAreaInteraction:
    """Tests for hover, highlight and re-detection."""

    def test_area_at_and_hover(self, service, form_id):
        session = _open(service, form_id)

        assert session.area_at(100, 100) == FORM_AREA
        assert session.hover(100, 100) == FORM_AREA
        assert session.compositor.hovered_area == FORM_AREA

        session.hover(None, None)
        assert session.compositor.hovered_area is None

    def test_toggle_blank_areas(self, service, form_id):
        session = _open(service, form_id)

        assert session.toggle_blank_areas() is True
        assert session.compositor.highlight_visible
        assert session.toggle_blank_areas() is False
        assert session.toggle_blank_areas(visible=True) is True

    def test_redetect(self, service, form_id):
        session = _open(service, form_id)

        areas = asyncio.run(session.redetect(tolerance=True))

        assert areas == [BlankArea(0, 0, 200, 200)]
        assert session.blank_areas == areas
        stored = asyncio.run(service.get_form(form_id))
        assert stored.get_blank_areas() == areas
