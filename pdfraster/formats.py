from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .config import VALID_OUTPUT_FORMATS

log = logging.getLogger(__name__)

FALLBACK_FORMAT = "jpg"


def is_valid_output_format(fmt: str) -> bool:
    return fmt in VALID_OUTPUT_FORMATS


def resolve_output_format(requested_path: Union[str, Path, None], configured_format: Optional[str]) -> str:
    """
    Decide the encoding for an output.

    A configured format always wins; otherwise the extension of
    requested_path is used. Anything unrecognized becomes "jpg" rather than
    an error, matching the legacy tool which never refused a write because of
    an odd extension.
    """
    if configured_format:
        fmt = configured_format
    else:
        fmt = Path(str(requested_path)).suffix.lstrip(".") if requested_path else ""

    fmt = fmt.lower()

    if not is_valid_output_format(fmt):
        log.warning("Unrecognized output format %r for %s, using %s", fmt, requested_path, FALLBACK_FORMAT)
        fmt = FALLBACK_FORMAT
    return fmt
