"""Tests for slide export: file naming, offscreen rendering and ZIP archives."""
from __future__ import annotations

import datetime as dt
import io
import zipfile

import pytest
from PIL import Image

from export import SlideExporter, default_base_name, render_snapshot
from utils import slide_file_name


class TestNaming:
    def test_slide_file_name_is_one_based(self):
        assert slide_file_name("deck", 0, "png") == "deck_001.png"
        assert slide_file_name("deck", 41, "jpg") == "deck_042.jpg"

    def test_default_base_name(self):
        assert default_base_name("SlideKit", 3, dt.date(2024, 5, 7)) == "SlideKit_20240507_3"


class TestRendering:
    def test_png_at_canvas_size(self, settings):
        data = render_snapshot("", settings, fmt="png")
        with Image.open(io.BytesIO(data)) as im:
            assert im.format == "PNG"
            assert im.size == (1600, 900)

    def test_jpeg(self, settings):
        data = render_snapshot("", settings, fmt="jpeg", multiplier=0.5)
        with Image.open(io.BytesIO(data)) as im:
            assert im.format == "JPEG"
            assert im.size == (800, 450)

    def test_unknown_format(self, settings):
        with pytest.raises(ValueError):
            render_snapshot("", settings, fmt="gif")

    def test_live_scene_untouched(self, session):
        obj = session.factory.create_text()
        session.export_all(io.BytesIO())
        assert session.surface.list_objects() == [obj]
        assert session.surface.get_active_selection().ids == (obj.id,)


class TestExportFiles:
    def test_current_slide(self, session, tmp_path):
        session.factory.create_text()
        path = session.export_current(tmp_path, base_name="talk")
        assert path.name == "talk_001.png"
        assert path.read_bytes().startswith(b"\x89PNG")

    def test_all_slides_zip(self, session, tmp_path):
        session.factory.create_text()
        session.add_slide()
        session.add_slide()
        zip_path = tmp_path / "deck.zip"

        names = session.export_all(zip_path, base_name="talk")

        assert names == ["talk_001.png", "talk_002.png", "talk_003.png"]
        with zipfile.ZipFile(zip_path) as zf:
            assert zf.namelist() == names

    def test_jpeg_extension(self, settings, session, tmp_path):
        settings.export.format = "jpeg"
        exporter = SlideExporter(settings)
        path = exporter.export_slide(session.slides[0], 0, tmp_path, "x")
        assert path.name == "x_001.jpg"

    def test_default_zip_names(self, session, tmp_path):
        names = session.export_all(tmp_path / "deck.zip")
        today = dt.date.today().strftime("%Y%m%d")
        assert names == [f"SlideKit_{today}_1_001.png"]
