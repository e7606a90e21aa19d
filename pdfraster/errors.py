from __future__ import annotations


class PdfRasterError(Exception):
    """Base class for every error raised by pdfraster."""


class InvalidSourceError(PdfRasterError):
    """The document resource is missing or invalid."""


class ResourceFetchError(PdfRasterError):
    """A remote document could not be retrieved."""


class InvalidConfigError(PdfRasterError, ValueError):
    """A raster setting is out of range."""


class UnsupportedFormatError(InvalidConfigError):
    pass


class InvalidPolicyError(InvalidConfigError):
    pass


class PageOutOfRangeError(PdfRasterError, IndexError):
    def __init__(self, page: int, number_of_pages: int):
        super().__init__(f"Page {page} does not exist (document has {number_of_pages} pages)")
        self.page = page
        self.number_of_pages = number_of_pages


class DocumentUnreadableError(PdfRasterError):
    """The document bytes cannot be parsed by the renderer."""


class RenderFailureError(PdfRasterError):
    """The renderer failed while producing a page."""


class RenderTimeoutError(RenderFailureError):
    pass


class IOWriteError(PdfRasterError, OSError):
    """Writing a rendered image to its destination failed."""
