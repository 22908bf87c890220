"""
Crop Geometry - centered crop windows for aspect-ratio conversion.

Converts e.g. landscape 16:9 footage to vertical 9:16 by keeping the
full height and cutting the sides (or keeping the full width and
cutting top/bottom for sources that are too tall).

Usage:
    from clip_sequencer.crop_geometry import compute_crop

    window = compute_crop(1920, 1080, 9 / 16)
    window.to_filter()  # "crop=608:1080:656:0"
"""

import math
from dataclasses import dataclass, asdict
from typing import Dict


def _round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; 607.5 must become 608
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class CropWindow:
    """A crop rectangle inside a source frame."""
    width: int
    height: int
    x_offset: int
    y_offset: int
    source_width: int
    source_height: int

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def to_filter(self) -> str:
        """Render as an ffmpeg crop filter expression."""
        return f"crop={self.width}:{self.height}:{self.x_offset}:{self.y_offset}"

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def compute_crop(source_width: int, source_height: int, target_aspect: float) -> CropWindow:
    """
    Compute the centered crop window for a target width/height ratio.

    Sources wider than the target keep their full height; all others keep
    their full width. The window always fits inside the source.

    Raises:
        ValueError: non-positive dimensions or aspect ratio.
    """
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Source dimensions must be positive, got {source_width}x{source_height}")
    if target_aspect <= 0:
        raise ValueError(f"Target aspect ratio must be positive, got {target_aspect}")

    if source_width / source_height > target_aspect:
        # Too wide: crop horizontally
        height = source_height
        width = min(source_width, max(1, _round_half_up(height * target_aspect)))
        x_offset = _round_half_up((source_width - width) / 2)
        y_offset = 0
    else:
        # Too tall (or exact): crop vertically
        width = source_width
        height = min(source_height, max(1, _round_half_up(width / target_aspect)))
        x_offset = 0
        y_offset = _round_half_up((source_height - height) / 2)

    return CropWindow(
        width=width,
        height=height,
        x_offset=x_offset,
        y_offset=y_offset,
        source_width=source_width,
        source_height=source_height,
    )
