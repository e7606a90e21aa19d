from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout, as_completed
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Union

from .config import Colorspace, LayerMergePolicy, RasterConfig
from .errors import (
    DocumentUnreadableError,
    InvalidConfigError,
    InvalidPolicyError,
    InvalidSourceError,
    IOWriteError,
    PageOutOfRangeError,
    PdfRasterError,
    RenderFailureError,
    RenderTimeoutError,
    UnsupportedFormatError,
)
from .formats import is_valid_output_format, resolve_output_format
from .manifest import PageRecord, RenderManifest
from .progress import ConsoleProgress
from .renderer import PageRenderer, PyMuPdfRenderer, RenderOptions
from .resources import DocumentResource, resource_from
from .utils import ensure_dir

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class RenderedImage:
    page: int
    format: str
    data: bytes
    resolution: int

    def save(self, path: PathLike) -> Path:
        path = Path(path)
        try:
            path.write_bytes(self.data)
        except OSError as exc:
            raise IOWriteError(f"Cannot write page {self.page} to {path}: {exc}") from exc
        return path


class RasterizationSession:
    """
    Orchestrates page rendering for one document:
      - configuration (immutable RasterConfig, swapped on every setter)
      - page count (probed once, memoized)
      - single-page renders, save-to-path, whole-document batches

    Each render takes one snapshot of the configuration at entry, so a setter
    called while a render is in flight never changes that render's settings.
    """

    def __init__(
        self,
        resource: DocumentResource,
        renderer: Optional[PageRenderer] = None,
        config: Optional[RasterConfig] = None,
    ):
        if not resource.is_valid():
            raise InvalidSourceError(f"Invalid document resource provided: {resource!r}")

        self.resource = resource
        self.renderer: PageRenderer = renderer if renderer is not None else PyMuPdfRenderer()
        self._config = config if config is not None else RasterConfig()
        self._number_of_pages: Optional[int] = None
        self._probe_lock = threading.Lock()

    @classmethod
    def open(cls, source: Union[PathLike, bytes], **kwargs) -> "RasterizationSession":
        """Build a session from a path, URL, or in-memory PDF bytes."""
        return cls(resource_from(source), **kwargs)

    # ---------------------
    # Configuration
    # ---------------------

    @property
    def config(self) -> RasterConfig:
        return self._config

    def _update(self, **changes) -> "RasterizationSession":
        self._config = replace(self._config, **changes)
        return self

    def set_resolution(self, resolution: int) -> "RasterizationSession":
        return self._update(resolution=resolution)

    def set_output_format(self, output_format: str) -> "RasterizationSession":
        if not is_valid_output_format(output_format):
            raise UnsupportedFormatError(f"Format {output_format} is not supported")
        return self._update(output_format=output_format)

    def get_output_format(self) -> str:
        return self._config.output_format

    def set_layer_merge_policy(
        self, policy: Union[LayerMergePolicy, int, str, None]
    ) -> "RasterizationSession":
        """Accepts a LayerMergePolicy, its integer value, or None / "none" to skip merging."""
        if policy is None or (isinstance(policy, str) and policy.lower() == "none"):
            return self._update(layer_merge=None)
        if isinstance(policy, int) and not isinstance(policy, bool):
            try:
                return self._update(layer_merge=LayerMergePolicy(policy))
            except ValueError:
                pass
        raise InvalidPolicyError(f"Layer merge policy must be a LayerMergePolicy value or 'none', got {policy!r}")

    def set_colorspace(self, colorspace: Union[Colorspace, str, None]) -> "RasterizationSession":
        if colorspace is None or isinstance(colorspace, Colorspace):
            return self._update(colorspace=colorspace)
        try:
            return self._update(colorspace=Colorspace(str(colorspace).lower()))
        except ValueError:
            raise InvalidConfigError(f"Unknown colorspace {colorspace!r}") from None

    def set_compression_quality(self, quality: Optional[int]) -> "RasterizationSession":
        return self._update(compression_quality=quality)

    # ---------------------
    # Document
    # ---------------------

    def _document_bytes(self) -> bytes:
        data = self.resource.get_data()
        if data is None:
            raise DocumentUnreadableError(f"No data available from {self.resource!r}")
        return data

    def get_number_of_pages(self) -> int:
        if self._number_of_pages is None:
            with self._probe_lock:
                if self._number_of_pages is None:
                    data = self._document_bytes()
                    try:
                        n = int(self.renderer.count_pages(data))
                    except PdfRasterError:
                        raise
                    except Exception as exc:
                        raise DocumentUnreadableError(f"Cannot read {self.resource!r}: {exc}") from exc
                    log.info("Probed %r: %d pages", self.resource, n)
                    self._number_of_pages = n
        return self._number_of_pages

    # ---------------------
    # Rendering
    # ---------------------

    def _invoke_renderer(
        self, data: bytes, page_index: int, options: RenderOptions, timeout: Optional[float]
    ) -> bytes:
        try:
            if timeout is None:
                return self.renderer.render(data, page_index, options)
            # a timed-out render keeps running in its worker thread; only the wait is bounded
            pool = ThreadPoolExecutor(max_workers=1)
            try:
                return pool.submit(self.renderer.render, data, page_index, options).result(timeout=timeout)
            finally:
                pool.shutdown(wait=False)
        except FuturesTimeout as exc:
            raise RenderTimeoutError(f"Page {page_index + 1} did not render within {timeout}s") from exc
        except PdfRasterError:
            raise
        except Exception as exc:
            raise RenderFailureError(f"Renderer failed on page {page_index + 1}: {exc}") from exc

    def _render(
        self, cfg: RasterConfig, page: int, output_path: Optional[PathLike], timeout: Optional[float]
    ) -> RenderedImage:
        n = self.get_number_of_pages()
        if isinstance(page, bool) or not isinstance(page, int) or not 1 <= page <= n:
            raise PageOutOfRangeError(page, n)

        fmt = resolve_output_format(output_path, cfg.output_format)
        options = RenderOptions.from_config(cfg, fmt)
        encoded = self._invoke_renderer(self._document_bytes(), page - 1, options, timeout)
        if not encoded:
            raise RenderFailureError(f"Renderer returned no image data for page {page}")

        log.debug("Page %d rendered: %d bytes %s @ %d dpi", page, len(encoded), fmt, cfg.resolution)
        return RenderedImage(page=page, format=fmt, data=bytes(encoded), resolution=cfg.resolution)

    def render_page(
        self, page: int, output_path: Optional[PathLike] = None, *, timeout: Optional[float] = None
    ) -> RenderedImage:
        """
        Render one page (1-based) and return the encoded image.

        output_path only feeds format resolution when no format is configured;
        nothing is written. timeout bounds the wait in seconds.
        """
        return self._render(self._config, page, output_path, timeout)

    def save_page(self, page: int, path: PathLike, *, timeout: Optional[float] = None) -> Path:
        """Render a page and write it; a directory target gets "{page}.{format}" inside it."""
        cfg = self._config
        path = Path(path)
        if path.is_dir():
            path = path / f"{page}.{resolve_output_format(None, cfg.output_format)}"
        image = self._render(cfg, page, path, timeout)
        return image.save(path)

    def render_all_pages(
        self,
        directory: PathLike,
        prefix: str = "",
        *,
        workers: int = 1,
        skip_existing: bool = False,
        timeout: Optional[float] = None,
        progress: Optional[ConsoleProgress] = None,
        manifest_name: Optional[str] = None,
    ) -> list[Path]:
        """
        Render pages 1..N to "{directory}/{prefix}{page}.{format}".

        Returns the paths in page order, whatever order workers finish in.
        The first failure aborts the batch and is raised; pages written before
        it stay on disk. With skip_existing, non-empty files already at a
        destination are kept, which lets an aborted batch be resumed.
        """
        cfg = self._config
        n = self.get_number_of_pages()
        if n == 0:
            log.info("%r has no pages, nothing to render", self.resource)
            return []

        out_dir = Path(directory)
        try:
            ensure_dir(out_dir)
        except OSError as exc:
            raise IOWriteError(f"Cannot create output directory {out_dir}: {exc}") from exc
        fmt = resolve_output_format(None, cfg.output_format)
        destinations = [out_dir / f"{prefix}{page}.{fmt}" for page in range(1, n + 1)]
        records: list[Optional[PageRecord]] = [None] * n

        def work(page: int) -> PageRecord:
            dest = destinations[page - 1]
            if skip_existing and dest.is_file() and dest.stat().st_size > 0:
                record = PageRecord(page=page, file=str(dest), format=fmt, size=dest.stat().st_size, skipped=True)
            else:
                image = self._render(cfg, page, dest, timeout)
                image.save(dest)
                record = PageRecord(page=page, file=str(dest), format=fmt, size=len(image.data))
            if progress:
                progress.page_done(page, str(dest), skipped=record.skipped)
            return record

        log.info("Rendering %d pages of %r to %s (workers=%d)", n, self.resource, out_dir, workers)
        if progress:
            progress.run_start(n, cfg.resolution, fmt)

        try:
            if workers <= 1:
                for page in range(1, n + 1):
                    records[page - 1] = work(page)
            else:
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    futures = {pool.submit(work, page): page for page in range(1, n + 1)}
                    try:
                        for fut in as_completed(futures):
                            records[futures[fut] - 1] = fut.result()
                    except BaseException:
                        for fut in futures:
                            fut.cancel()
                        raise
        except Exception as exc:
            if progress:
                progress.run_fail(str(exc))
            raise

        if manifest_name:
            manifest = RenderManifest(
                source=repr(self.resource),
                output_dir=str(out_dir),
                number_of_pages=n,
                config=cfg.to_dict(),
                pages=records,
            )
            try:
                manifest.save(out_dir / manifest_name)
            except OSError as exc:
                raise IOWriteError(f"Cannot write manifest to {out_dir / manifest_name}: {exc}") from exc

        if progress:
            progress.run_done()
        log.info("Rendered %d pages to %s", n, out_dir)
        return destinations
