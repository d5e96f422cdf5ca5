"""
Render test fixtures
"""
import pytest

from d3_render.backends.base import RenderBackend


class RecordingBackend(RenderBackend):
    """Backend that records layout events instead of drawing"""

    format_name = "recording"

    def __init__(self, sink, options):
        super().__init__(sink, options)
        self.events = []

    def begin_document(self, title):
        self.events.append(("begin_document", title))

    def begin_page(self, page_number):
        self.events.append(("begin_page", page_number))

    def draw_text(self, line, top):
        self.events.append(("text", line, top))

    def draw_table_row(self, table, cells, top, header=False):
        self.events.append(("header" if header else "row", table.name, list(cells), top))

    def end_page(self, page_number):
        self.events.append(("end_page", page_number))

    def end_document(self):
        self.events.append(("end_document",))

    def of_kind(self, kind):
        return [event for event in self.events if event[0] == kind]

    def pages(self):
        """Events grouped per page"""
        pages, current = [], None
        for event in self.events:
            if event[0] == "begin_page":
                current = []
            elif event[0] == "end_page":
                pages.append(current)
                current = None
            elif current is not None:
                current.append(event)
        return pages


@pytest.fixture
def recording_backend_factory():
    def factory(options):
        return RecordingBackend(None, options)

    return factory
