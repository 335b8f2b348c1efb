"""Glyph renderer: guide layers for display and the reference for scoring.

Renders the target character with Pillow into independent RGBA layers:

    grid       faint "tian zi ge" box, diagonals and midlines (#e5e5e5)
    ghost      the glyph in black at low opacity, antialiased
    guide      grid + ghost composited (what the user sees under the ink)
    reference  the glyph in solid black, no antialiasing, never displayed

Only the reference is scored. It is rendered with fontmode "1" so every
pixel is either fully opaque glyph or fully transparent background; the
ghost's low alpha and the grid's high red channel keep both out of the
scorer's user-ink class even when layers are composited.

All layers come from ``glyph_placement()`` for the same ``SurfaceSize``,
so guide and reference share center and scale by construction. Rendering
is pure and deterministic for a given (char, surface).

Usage:
    renderer = GlyphRenderer(cfg.guide)
    guide = renderer.render_guide("观", surface)
    reference = renderer.render_reference("观", surface)
    assert guide.placement == reference.placement
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from ..utils.validators import GuideConfig
from .geometry import GlyphPlacement, SurfaceSize, glyph_placement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedLayer:
    """RGBA uint8 raster (H, W, 4) plus the placement it was drawn with."""

    char: str
    pixels: np.ndarray
    placement: GlyphPlacement


def blank_layer(surface: SurfaceSize) -> np.ndarray:
    """Fully transparent RGBA raster for a surface."""
    h, w = surface.raster_shape
    return np.zeros((h, w, 4), dtype=np.uint8)


def composite(*layers: np.ndarray) -> np.ndarray:
    """Alpha-composite RGBA rasters bottom to top (source-over)."""
    if not layers:
        raise ValueError("composite() needs at least one layer")
    out = Image.fromarray(np.ascontiguousarray(layers[0]))
    for layer in layers[1:]:
        if layer.shape != layers[0].shape:
            raise ValueError(f"Layer shape {layer.shape} != {layers[0].shape}")
        out = Image.alpha_composite(out, Image.fromarray(np.ascontiguousarray(layer)))
    return np.asarray(out, dtype=np.uint8).copy()


class GlyphRenderer:
    """Renders guide and reference layers for single characters.

    Attributes
    ----------
    cfg : GuideConfig
        Placement fractions, ghost opacity, grid style, font path
    """

    def __init__(self, cfg: Optional[GuideConfig] = None):
        self.cfg = cfg or GuideConfig()
        self._fonts: Dict[int, ImageFont.FreeTypeFont] = {}
        if self.cfg.font_path is None:
            logger.info("No font_path configured; using Pillow's bundled font (Latin only)")

    def placement(self, surface: SurfaceSize) -> GlyphPlacement:
        return glyph_placement(surface, self.cfg.box_fraction, self.cfg.glyph_fraction)

    def font(self, size_px: int) -> ImageFont.FreeTypeFont:
        """Load (and cache) the configured font at a pixel size."""
        font = self._fonts.get(size_px)
        if font is None:
            if self.cfg.font_path:
                font = ImageFont.truetype(self.cfg.font_path, size_px)
            else:
                font = ImageFont.load_default(size=size_px)
            self._fonts[size_px] = font
        return font

    def _draw_glyph(
        self,
        char: str,
        surface: SurfaceSize,
        fill: Tuple[int, int, int, int],
        antialias: bool,
    ) -> RenderedLayer:
        placement = self.placement(surface)
        h, w = surface.raster_shape
        img = Image.new("RGBA", (w, h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        if not antialias:
            draw.fontmode = "1"
        draw.text(
            (placement.center_x, placement.center_y),
            char,
            font=self.font(placement.font_px),
            fill=fill,
            anchor="mm",
        )
        return RenderedLayer(char, np.asarray(img, dtype=np.uint8).copy(), placement)

    def render_grid(self, surface: SurfaceSize) -> np.ndarray:
        """Box, both diagonals and both midlines around the glyph box."""
        placement = self.placement(surface)
        h, w = surface.raster_shape
        img = Image.new("RGBA", (w, h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)

        color = (*self.cfg.grid_color, 255)
        width = max(1, int(round(self.cfg.grid_width_px * surface.pixel_ratio)))
        x0, y0, x1, y1 = placement.box
        mx = (x0 + x1) / 2.0
        my = (y0 + y1) / 2.0

        draw.rectangle((x0, y0, x1, y1), outline=color, width=width)
        draw.line([(x0, y0), (x1, y1)], fill=color, width=width)
        draw.line([(x1, y0), (x0, y1)], fill=color, width=width)
        draw.line([(x0, my), (x1, my)], fill=color, width=width)
        draw.line([(mx, y0), (mx, y1)], fill=color, width=width)
        return np.asarray(img, dtype=np.uint8).copy()

    def render_ghost(self, char: str, surface: SurfaceSize) -> RenderedLayer:
        """Low-opacity antialiased glyph, the tracing hint."""
        alpha = int(round(self.cfg.ghost_alpha * 255))
        return self._draw_glyph(char, surface, (0, 0, 0, alpha), antialias=True)

    def render_guide(self, char: str, surface: SurfaceSize) -> RenderedLayer:
        """Visible guide layer: grid with the ghost glyph on top."""
        ghost = self.render_ghost(char, surface)
        pixels = composite(self.render_grid(surface), ghost.pixels)
        return RenderedLayer(char, pixels, ghost.placement)

    def render_reference(self, char: str, surface: SurfaceSize) -> RenderedLayer:
        """Opaque, non-antialiased glyph used only for scoring."""
        layer = self._draw_glyph(char, surface, (0, 0, 0, 255), antialias=False)
        if not layer.pixels[..., 3].any():
            logger.warning(
                f"Reference for {char!r} has no ink at {surface.raster_shape}; "
                f"the configured font may lack this glyph"
            )
        return layer


def compose_display(
    guide: np.ndarray,
    ink: np.ndarray,
    background: Optional[Tuple[int, int, int]] = None,
) -> np.ndarray:
    """Display raster: optional opaque background, guide, then user ink."""
    layers = [guide, ink]
    if background is not None:
        bg = np.empty_like(guide)
        bg[..., :3] = background
        bg[..., 3] = 255
        layers.insert(0, bg)
    return composite(*layers)
