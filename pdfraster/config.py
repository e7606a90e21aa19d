from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, IntEnum

from .errors import InvalidConfigError, InvalidPolicyError, UnsupportedFormatError

DEFAULT_RESOLUTION = 144
VALID_OUTPUT_FORMATS = ("jpg", "jpeg", "png")


class LayerMergePolicy(IntEnum):
    """
    How layered page content is composited before encoding.

      FLATTEN: page + annotations onto an opaque white background
      MERGE:   page + annotations, transparency kept where the format allows
      BASE:    page content only (annotations dropped), opaque background
    """
    FLATTEN = 1
    MERGE = 2
    BASE = 3


class Colorspace(str, Enum):
    RGB = "rgb"
    GRAY = "gray"
    CMYK = "cmyk"


@dataclass(frozen=True)
class RasterConfig:
    resolution: int = DEFAULT_RESOLUTION

    # "" means: derive the format from the output path
    output_format: str = "jpg"

    # None skips layer merging entirely
    layer_merge: LayerMergePolicy | None = LayerMergePolicy.FLATTEN
    colorspace: Colorspace | None = None
    compression_quality: int | None = None   # 0-100

    def __post_init__(self) -> None:
        if isinstance(self.resolution, bool) or not isinstance(self.resolution, int) or self.resolution <= 0:
            raise InvalidConfigError(f"Resolution must be a positive integer, got {self.resolution!r}")
        if self.output_format != "" and self.output_format not in VALID_OUTPUT_FORMATS:
            raise UnsupportedFormatError(f"Format {self.output_format} is not supported")
        if self.layer_merge is not None and not isinstance(self.layer_merge, LayerMergePolicy):
            raise InvalidPolicyError("Layer merge policy must be a LayerMergePolicy or None")
        if self.colorspace is not None and not isinstance(self.colorspace, Colorspace):
            raise InvalidConfigError(f"Unknown colorspace {self.colorspace!r}")
        q = self.compression_quality
        if q is not None and (isinstance(q, bool) or not isinstance(q, int) or not 0 <= q <= 100):
            raise InvalidConfigError(f"Compression quality must be an integer in 0..100, got {q!r}")

    def to_dict(self) -> dict:
        return {
            "resolution": self.resolution,
            "output_format": self.output_format,
            "layer_merge": self.layer_merge.name.lower() if self.layer_merge is not None else "none",
            "colorspace": self.colorspace.value if self.colorspace is not None else None,
            "compression_quality": self.compression_quality,
        }
