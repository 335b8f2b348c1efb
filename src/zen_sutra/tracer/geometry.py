"""Drawing-surface geometry and the glyph placement rule.

Every raster in a session (grid, ghost glyph, reference glyph, user ink)
is built from one ``SurfaceSize`` and one ``GlyphPlacement``. Sharing the
placement is what makes the overlap score meaningful: the reference and the
guide the user traces over are centered and scaled identically.

Coordinate frames:
    - Logical: pointer coordinates relative to the surface origin
    - Raster: logical × pixel_ratio, integer (H, W) array indices

Placement rule:
    box_px  = min(W, H) × box_fraction         (raster px)
    font_px = box_px × glyph_fraction
    center  = (W / 2, H / 2), glyph anchored middle-middle
"""

from dataclasses import dataclass
from typing import Tuple

Point = Tuple[float, float]


@dataclass(frozen=True)
class SurfaceSize:
    """Drawing surface in logical pixels plus device pixel ratio."""

    width: float
    height: float
    pixel_ratio: float = 1.0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Surface dimensions must be positive, got {self.width}×{self.height}"
            )
        if self.pixel_ratio <= 0:
            raise ValueError(f"pixel_ratio must be positive, got {self.pixel_ratio}")

    @property
    def raster_width(self) -> int:
        return max(1, int(round(self.width * self.pixel_ratio)))

    @property
    def raster_height(self) -> int:
        return max(1, int(round(self.height * self.pixel_ratio)))

    @property
    def raster_shape(self) -> Tuple[int, int]:
        """(H, W) of every raster built for this surface."""
        return (self.raster_height, self.raster_width)

    def to_raster(self, point: Point) -> Point:
        """Scale a logical point into raster pixel space."""
        return (point[0] * self.pixel_ratio, point[1] * self.pixel_ratio)


@dataclass(frozen=True)
class GlyphPlacement:
    """Where and how large the glyph sits, in raster pixels."""

    box_left: float
    box_top: float
    box_size: float
    center_x: float
    center_y: float
    font_px: int

    @property
    def box(self) -> Tuple[float, float, float, float]:
        """(x0, y0, x1, y1) of the glyph box."""
        return (
            self.box_left,
            self.box_top,
            self.box_left + self.box_size,
            self.box_top + self.box_size,
        )


def glyph_placement(
    surface: SurfaceSize,
    box_fraction: float = 0.75,
    glyph_fraction: float = 0.8,
) -> GlyphPlacement:
    """Compute the shared centering and scale rule for a surface.

    Parameters
    ----------
    surface : SurfaceSize
        Drawing surface
    box_fraction : float
        Glyph box side as a fraction of the shorter surface side
    glyph_fraction : float
        Font size as a fraction of the glyph box side

    Returns
    -------
    GlyphPlacement
        Placement in raster pixels; deterministic for equal inputs
    """
    w = surface.raster_width
    h = surface.raster_height
    box_size = min(w, h) * box_fraction
    return GlyphPlacement(
        box_left=(w - box_size) / 2.0,
        box_top=(h - box_size) / 2.0,
        box_size=box_size,
        center_x=w / 2.0,
        center_y=h / 2.0,
        font_px=max(1, int(round(box_size * glyph_fraction))),
    )
