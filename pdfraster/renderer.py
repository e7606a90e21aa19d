from __future__ import annotations

import io
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Protocol

import fitz  # PyMuPDF
from PIL import Image

from .config import Colorspace, LayerMergePolicy, RasterConfig
from .errors import DocumentUnreadableError, RenderFailureError

log = logging.getLogger(__name__)

# PyMuPDF is not thread-safe; every call into it goes through this lock.
_FITZ_LOCK = threading.Lock()

_FITZ_COLORSPACES = {
    Colorspace.RGB: fitz.csRGB,
    Colorspace.GRAY: fitz.csGRAY,
    Colorspace.CMYK: fitz.csCMYK,
}

# (keep alpha channel, draw annotations)
_LAYER_FLAGS = {
    LayerMergePolicy.FLATTEN: (False, True),
    LayerMergePolicy.MERGE: (True, True),
    LayerMergePolicy.BASE: (False, False),
    None: (True, False),
}

_PIL_FORMATS = {"jpg": "JPEG", "jpeg": "JPEG", "png": "PNG"}


@dataclass(frozen=True)
class RenderOptions:
    """Everything one page render needs, fixed before the page is decoded."""
    resolution: int
    output_format: str
    colorspace: Optional[Colorspace] = None
    compression_quality: Optional[int] = None
    layer_merge: Optional[LayerMergePolicy] = LayerMergePolicy.FLATTEN

    @classmethod
    def from_config(cls, cfg: RasterConfig, output_format: str) -> "RenderOptions":
        return cls(
            resolution=cfg.resolution,
            output_format=output_format,
            colorspace=cfg.colorspace,
            compression_quality=cfg.compression_quality,
            layer_merge=cfg.layer_merge,
        )


class PageRenderer(Protocol):
    """
    Black-box rendering capability.

    count_pages must raise DocumentUnreadableError for bytes it cannot parse.
    render receives a 0-based page index and returns encoded image bytes.
    """

    def count_pages(self, data: bytes) -> int: ...

    def render(self, data: bytes, page_index: int, options: RenderOptions) -> bytes: ...


def _open(data: bytes) -> fitz.Document:
    try:
        return fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise DocumentUnreadableError(f"Cannot open document: {exc}") from exc


def _pixmap_to_image(pix: fitz.Pixmap) -> Image.Image:
    if pix.colorspace is not None and pix.colorspace.n == 4:
        mode = "CMYK"
    elif pix.colorspace is not None and pix.colorspace.n == 1:
        mode = "LA" if pix.alpha else "L"
    else:
        mode = "RGBA" if pix.alpha else "RGB"
    return Image.frombytes(mode, (pix.width, pix.height), pix.samples)


def _flatten_alpha(img: Image.Image) -> Image.Image:
    if img.mode not in ("RGBA", "LA"):
        return img
    base_mode = img.mode[:-1]
    bg = Image.new(base_mode, img.size, "white")
    bg.paste(img.convert(base_mode), mask=img.getchannel("A"))
    return bg


def encode_image(img: Image.Image, output_format: str, quality: Optional[int] = None) -> bytes:
    """
    Encode a PIL image as jpg/jpeg/png bytes.

    For JPEG, quality is passed straight through. For PNG it selects the zlib
    level (quality // 10, capped at 9), the same reading ImageMagick gives it.
    """
    pil_format = _PIL_FORMATS[output_format]
    save_kwargs = {}
    if pil_format == "JPEG":
        img = _flatten_alpha(img)
        if quality is not None:
            save_kwargs["quality"] = quality
    else:
        if img.mode == "CMYK":
            raise RenderFailureError("PNG cannot store CMYK; use jpg or another colorspace")
        if quality is not None:
            save_kwargs["compress_level"] = min(9, quality // 10)

    buf = io.BytesIO()
    img.save(buf, format=pil_format, **save_kwargs)
    return buf.getvalue()


class PyMuPdfRenderer:
    """
    Renders PDF pages with PyMuPDF and encodes them with Pillow.

    Each call opens its own document handle, so no renderer state survives
    between calls.
    """

    def count_pages(self, data: bytes) -> int:
        with _FITZ_LOCK:
            doc = _open(data)
            try:
                if doc.needs_pass:
                    raise DocumentUnreadableError("Document is password-protected or encrypted")
                return len(doc)
            finally:
                doc.close()

    def render(self, data: bytes, page_index: int, options: RenderOptions) -> bytes:
        keep_alpha, annots = _LAYER_FLAGS[options.layer_merge]
        cs = _FITZ_COLORSPACES[options.colorspace or Colorspace.RGB]
        if cs.n == 4:
            keep_alpha = False

        zoom = options.resolution / 72.0
        mat = fitz.Matrix(zoom, zoom)

        with _FITZ_LOCK:
            doc = _open(data)
            try:
                page = doc[page_index]
                pix = page.get_pixmap(matrix=mat, colorspace=cs, alpha=keep_alpha, annots=annots)
                img = _pixmap_to_image(pix)
            except DocumentUnreadableError:
                raise
            except Exception as exc:
                raise RenderFailureError(f"Cannot render page index {page_index}: {exc}") from exc
            finally:
                doc.close()

        log.debug(
            "Rendered page index %d at %d dpi -> %dx%d %s",
            page_index, options.resolution, img.width, img.height, img.mode,
        )
        try:
            return encode_image(img, options.output_format, options.compression_quality)
        except RenderFailureError:
            raise
        except Exception as exc:
            raise RenderFailureError(f"Cannot encode page index {page_index}: {exc}") from exc
