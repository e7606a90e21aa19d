from __future__ import annotations
import json
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any

@dataclass
class PageRecord:
    page: int
    file: str
    format: str
    size: int                # bytes on disk
    skipped: bool = False    # True when an existing file was kept (resume)

@dataclass
class RenderManifest:
    source: str
    output_dir: str
    number_of_pages: int
    config: dict[str, Any]
    pages: list[PageRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def save(self, path: Path) -> None:
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> "RenderManifest":
        raw = json.loads(path.read_text(encoding="utf-8"))
        pages = [PageRecord(**p) for p in raw.pop("pages", [])]
        return cls(pages=pages, **raw)
