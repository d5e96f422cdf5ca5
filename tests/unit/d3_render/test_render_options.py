"""
Tests for render options and the paginator
"""
import pytest
from reportlab.lib.pagesizes import A4

from core.exceptions import RenderError
from d3_render import Paginator, RenderOptions, create_backend
from d3_render.backends import HTMLBackend, PDFBackend
from d3_render.backends.base import parse_width

pytestmark = [pytest.mark.unit]


class TestRenderOptions:
    def test_printable_area(self):
        options = RenderOptions(page_size="LETTER", margin_left=72, margin_right=72, margin_top=36, margin_bottom=36)
        assert options.page_dimensions() == pytest.approx((612, 792))
        assert options.printable_width == pytest.approx(468)
        assert options.printable_height == pytest.approx(720)

    def test_landscape_swaps_dimensions(self):
        width, height = RenderOptions(page_size="A4", landscape=True).page_dimensions()
        assert width > height

    def test_defaults_from_settings(self):
        options = RenderOptions.defaults(landscape=True)
        assert options.output_format == "pdf"
        assert options.page_size == "A4"
        assert options.landscape is True

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(RenderError):
            RenderOptions.from_dict({"output_format": "pdf", "colour": "blue"})

    def test_round_trip(self):
        options = RenderOptions(output_format="html", title="Monthly")
        assert RenderOptions.from_dict(options.to_dict()) == options

    @pytest.mark.parametrize(
        "overrides",
        [
            {"output_format": "xlsx"},
            {"page_size": "A0"},
            {"margin_top": -1},
            {"font_size": 12, "line_height": 10},
            {"margin_left": 400, "margin_right": 400},
        ],
    )
    def test_invalid(self, overrides):
        with pytest.raises(RenderError):
            RenderOptions(**overrides).validate()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"font_size": "big"},
            {"line_height": None},
            {"margin_left": True},
            {"landscape": "yes"},
            {"output_format": 1},
            {"title": 42},
        ],
    )
    def test_wrong_types(self, overrides):
        with pytest.raises(RenderError) as exc_info:
            RenderOptions(**overrides).validate()
        assert exc_info.value.details["option"] == next(iter(overrides))

    def test_repeated_header_needs_two_lines(self):
        short_page = {"margin_top": 36, "margin_bottom": A4[1] - 36 - 21}
        with pytest.raises(RenderError):
            RenderOptions(**short_page).validate()
        RenderOptions(repeat_table_header=False, **short_page).validate()

    def test_create_backend(self):
        assert isinstance(create_backend(RenderOptions(output_format="pdf"), None), PDFBackend)
        assert isinstance(create_backend(RenderOptions(output_format="HTML"), None), HTMLBackend)


class TestParseWidth:
    def test_percentage(self):
        assert parse_width("50%", 400) == pytest.approx(200)

    def test_points_clamped(self):
        assert parse_width("300", 400) == pytest.approx(300)
        assert parse_width("900pt", 400) == pytest.approx(400)

    def test_invalid(self):
        with pytest.raises(RenderError):
            parse_width("wide", 400)


class TestPaginator:
    def test_places_until_full(self):
        paginator = Paginator(100)
        paginator.start_page()
        assert paginator.place(40) == 0
        assert paginator.place(40) == 40
        assert paginator.remaining == pytest.approx(20)
        assert paginator.needs_break(30)
        assert not paginator.needs_break(20)

    def test_empty_page_never_breaks(self):
        paginator = Paginator(10)
        paginator.start_page()
        assert not paginator.needs_break(50)

    def test_new_page_resets_cursor(self):
        paginator = Paginator(100)
        paginator.start_page()
        paginator.place(90)
        assert paginator.start_page() == 2
        assert paginator.cursor == 0
        assert paginator.blocks_on_page == 0

    def test_skip_is_clamped(self):
        paginator = Paginator(100)
        paginator.start_page()
        paginator.place(95)
        paginator.skip(20)
        assert paginator.cursor == 100
        assert paginator.remaining == 0
