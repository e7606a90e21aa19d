from __future__ import annotations

import threading
import time
from typing import Optional


def _fmt_seconds(s: float) -> str:
    s = max(0.0, float(s))
    m, sec = divmod(int(s), 60)
    h, m = divmod(m, 60)
    if h > 0:
        return f"{h:d}h {m:02d}m {sec:02d}s"
    if m > 0:
        return f"{m:d}m {sec:02d}s"
    return f"{sec:d}s"


def _ts() -> str:
    # local time stamp for console readability
    return time.strftime("%Y-%m-%d %H:%M:%S")


class ConsoleProgress:
    """
    Console progress reporter for RasterizationSession.render_all_pages.

    Usage:
      prog = ConsoleProgress(label="report.pdf")
      session.render_all_pages(out_dir, progress=prog)

    The session calls run_start / page_done / run_done (or run_fail).
    page_done may be called from worker threads and in any page order.
    """

    def __init__(self, label: Optional[str] = None):
        self.label = label or "Document"
        self.total_pages = 0
        self.completed = 0
        self.skipped = 0
        self.run_start_time: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def elapsed(self) -> float:
        if self.run_start_time is None:
            return 0.0
        return time.time() - self.run_start_time

    def run_start(self, total_pages: int, resolution: int, output_format: str) -> None:
        self.total_pages = int(total_pages)
        self.completed = 0
        self.skipped = 0
        self.run_start_time = time.time()
        print(
            f"[{_ts()}] [{self.label}] Render start | Pages: {self.total_pages} | "
            f"dpi={resolution} | format={output_format}"
        )

    def page_done(self, page: int, path: str, skipped: bool = False) -> None:
        with self._lock:
            self.completed += 1
            if skipped:
                self.skipped += 1
            completed = self.completed
        remaining = max(0, self.total_pages - completed)
        avg = self.elapsed / completed if completed else 0.0
        state = "kept (exists)" if skipped else "rendered"
        print(
            f"[{_ts()}] [{self.label}] Page {page} {state} -> {path} | "
            f"Done: {completed}/{self.total_pages} | ETA: {_fmt_seconds(avg * remaining)}"
        )

    def run_done(self) -> float:
        elapsed = self.elapsed
        print(
            f"[{_ts()}] [{self.label}] ✅ Render complete | Pages: {self.completed} "
            f"(kept {self.skipped}) | Time: {_fmt_seconds(elapsed)}"
        )
        return elapsed

    def run_fail(self, err: str) -> None:
        print(
            f"[{_ts()}] [{self.label}] ❌ Render failed after {self.completed}/{self.total_pages} pages | Error: {err}"
        )
