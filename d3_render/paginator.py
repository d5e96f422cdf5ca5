"""
D3 Paginator

Tracks the vertical cursor inside the printable area of the current page.
Offsets are measured downwards from the top of the printable area.
"""


class Paginator:
    def __init__(self, printable_height: float):
        self.printable_height = printable_height
        self.page_number = 0
        self.cursor = 0.0
        self.blocks_on_page = 0

    @property
    def remaining(self) -> float:
        return self.printable_height - self.cursor

    def start_page(self) -> int:
        self.page_number += 1
        self.cursor = 0.0
        self.blocks_on_page = 0
        return self.page_number

    def needs_break(self, height: float) -> bool:
        """A block that does not fit forces a break unless the page is still empty"""
        return self.blocks_on_page > 0 and height > self.remaining

    def place(self, height: float) -> float:
        """Reserve ``height`` on the current page and return its top offset"""
        top = self.cursor
        self.cursor += height
        self.blocks_on_page += 1
        return top

    def skip(self, height: float) -> None:
        """Blank space; clamped at the page bottom, never breaks"""
        self.cursor = min(self.cursor + height, self.printable_height)
