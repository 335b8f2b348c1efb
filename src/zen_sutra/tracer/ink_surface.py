"""Ink surface: freehand strokes captured into an RGBA raster.

A stroke is the polyline from ``begin_stroke`` through every
``extend_stroke`` to ``end_stroke``. Each extension rasterizes one segment
with OpenCV at a fixed width and color; OpenCV thick lines have round caps,
and consecutive segments sharing an endpoint give round joins.

The surface owns only the user-ink layer. Guide and grid live in separate
layers (see glyph_renderer) and are composited for display, so scoring can
read this raster alone.

Points arrive in logical, surface-local coordinates; the host subtracts the
surface origin from device coordinates before calling in. They are scaled
by ``pixel_ratio`` into raster pixels here.
"""

import logging
from typing import List, Optional, Tuple

import cv2
import numpy as np

from ..utils.validators import InkConfig
from .geometry import Point, SurfaceSize

logger = logging.getLogger(__name__)

Stroke = Tuple[Point, ...]


class InkSurface:
    """In-memory drawing layer for the character being traced.

    Attributes
    ----------
    surface : SurfaceSize
        Current surface; the raster is (H, W, 4) uint8 for it
    pixels : np.ndarray
        User ink, transparent where nothing was drawn
    strokes : list[Stroke]
        Completed strokes in logical coordinates, arrival order
    """

    def __init__(self, surface: SurfaceSize, cfg: Optional[InkConfig] = None):
        self.cfg = cfg or InkConfig()
        self.surface = surface
        self.pixels = self._blank()
        self.strokes: List[Stroke] = []
        self._active: Optional[List[Point]] = None

    def _blank(self) -> np.ndarray:
        h, w = self.surface.raster_shape
        return np.zeros((h, w, 4), dtype=np.uint8)

    @property
    def is_drawing(self) -> bool:
        return self._active is not None

    @property
    def is_blank(self) -> bool:
        return not self.pixels[..., 3].any()

    @property
    def line_thickness(self) -> int:
        return max(1, int(round(self.cfg.width_px * self.surface.pixel_ratio)))

    def _to_px(self, point: Point) -> Tuple[int, int]:
        x, y = self.surface.to_raster(point)
        return (int(round(x)), int(round(y)))

    def begin_stroke(self, point: Point) -> None:
        """Start a new stroke at point; nothing is drawn until it extends.

        Raises
        ------
        RuntimeError
            If a stroke is already open
        """
        if self._active is not None:
            raise RuntimeError("begin_stroke() while a stroke is open; call end_stroke() first")
        self._active = [(float(point[0]), float(point[1]))]

    def extend_stroke(self, point: Point) -> bool:
        """Draw a segment from the last point to point.

        Returns False (and draws nothing) when no stroke is open, which is
        how stray move events between strokes are ignored.
        """
        if self._active is None:
            return False
        point = (float(point[0]), float(point[1]))
        line_type = cv2.LINE_AA if self.cfg.antialias else cv2.LINE_8
        cv2.line(
            self.pixels,
            self._to_px(self._active[-1]),
            self._to_px(point),
            color=(*self.cfg.color, 255),
            thickness=self.line_thickness,
            lineType=line_type,
        )
        self._active.append(point)
        return True

    def end_stroke(self) -> Optional[Stroke]:
        """Close the open stroke.

        Returns
        -------
        Stroke or None
            The completed stroke, or None when no stroke was open
        """
        if self._active is None:
            return None
        stroke = tuple(self._active)
        self._active = None
        self.strokes.append(stroke)
        return stroke

    def clear(self) -> None:
        """Discard all ink and any open stroke."""
        self.pixels = self._blank()
        self.strokes = []
        self._active = None

    def resize(self, surface: SurfaceSize) -> None:
        """Switch to a new surface; ink drawn at the old geometry is discarded."""
        self.surface = surface
        self.clear()
        logger.debug(f"Ink surface resized to {surface.raster_shape}")
