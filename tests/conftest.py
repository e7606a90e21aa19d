"""Shared test fixtures for pdfraster."""

import threading
import time

import fitz
import pytest

from pdfraster.errors import DocumentUnreadableError

# ── Helpers ────────────────────────────────────────────────────────────


class FakeRenderer:
    """In-memory PageRenderer that records every call.

    ``render`` returns ``b"<format>:<page_index>:<resolution>"`` so tests can
    see exactly which snapshot a render used.
    """

    def __init__(self, pages=3, fail_on=None, delays=None, unreadable=False):
        self.pages = pages
        self.fail_on = fail_on  # 0-based page index that raises
        self.delays = delays or {}  # 0-based page index -> seconds
        self.unreadable = unreadable
        self.count_calls = 0
        self.render_calls = []
        self._lock = threading.Lock()

    def count_pages(self, data):
        with self._lock:
            self.count_calls += 1
        if self.unreadable:
            raise DocumentUnreadableError("not a pdf")
        return self.pages

    def render(self, data, page_index, options):
        with self._lock:
            self.render_calls.append((page_index, options))
        if page_index in self.delays:
            time.sleep(self.delays[page_index])
        if page_index == self.fail_on:
            raise RuntimeError(f"boom on {page_index}")
        return f"{options.output_format}:{page_index}:{options.resolution}".encode()

    @property
    def rendered_indices(self):
        return sorted(i for i, _ in self.render_calls)


def make_pdf_bytes(pages=3, width=200, height=100):
    """Build a small text-only PDF in memory with PyMuPDF."""
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((20, 50), f"Page {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


@pytest.fixture
def pdf_bytes():
    return make_pdf_bytes()


@pytest.fixture
def pdf_file(tmp_path, pdf_bytes):
    path = tmp_path / "sample.pdf"
    path.write_bytes(pdf_bytes)
    return path
