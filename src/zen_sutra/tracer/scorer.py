"""Overlap scorer: fraction of reference-glyph pixels covered by user ink.

Pixel classes (RGBA uint8):
    - Reference ink: alpha > reference_alpha_min (128). The reference is
      rendered without antialiasing, so it is 0 or 255 everywhere.
    - User ink: alpha > ink_alpha_min (180) AND red < ink_red_max (80).
      The opacity test rejects the ghost glyph (alpha ≈ 38); the darkness
      test rejects grid lines (red ≈ 229), composited or not.

Score:
    coverage = |reference ∧ ink| / |reference|, and 0.0 for an empty reference

Every pixel is classified (no sampling), so threshold comparisons are
reproducible bit for bit. Pure functions; inputs are never modified.
"""

from dataclasses import dataclass

import numpy as np

REFERENCE_ALPHA_MIN = 128
INK_ALPHA_MIN = 180
INK_RED_MAX = 80


@dataclass(frozen=True)
class Coverage:
    """Pixel counts behind a coverage ratio."""

    overlap: int
    reference: int

    @property
    def ratio(self) -> float:
        if self.reference == 0:
            return 0.0
        return self.overlap / self.reference


def reference_mask(
    reference: np.ndarray,
    alpha_min: int = REFERENCE_ALPHA_MIN
) -> np.ndarray:
    """Boolean (H, W) mask of reference-glyph pixels."""
    return reference[..., 3] > alpha_min


def ink_mask(
    ink: np.ndarray,
    alpha_min: int = INK_ALPHA_MIN,
    red_max: int = INK_RED_MAX
) -> np.ndarray:
    """Boolean (H, W) mask of pixels that are opaque and dark enough to be ink."""
    return (ink[..., 3] > alpha_min) & (ink[..., 0] < red_max)


def coverage(
    ink: np.ndarray,
    reference: np.ndarray,
    *,
    reference_alpha_min: int = REFERENCE_ALPHA_MIN,
    ink_alpha_min: int = INK_ALPHA_MIN,
    ink_red_max: int = INK_RED_MAX,
) -> Coverage:
    """Count reference pixels and the ones covered by ink.

    Parameters
    ----------
    ink : np.ndarray
        (H, W, 4) uint8 user-ink layer (or a display composite)
    reference : np.ndarray
        (H, W, 4) uint8 reference layer

    Raises
    ------
    ValueError
        If the rasters differ in shape or are not RGBA
    """
    if ink.shape != reference.shape:
        raise ValueError(
            f"Ink raster {ink.shape} and reference raster {reference.shape} differ; "
            f"both must be built from the same SurfaceSize"
        )
    if ink.ndim != 3 or ink.shape[2] != 4:
        raise ValueError(f"Expected (H, W, 4) RGBA rasters, got {ink.shape}")

    ref = reference_mask(reference, reference_alpha_min)
    n_ref = int(np.count_nonzero(ref))
    if n_ref == 0:
        return Coverage(overlap=0, reference=0)
    covered = ref & ink_mask(ink, ink_alpha_min, ink_red_max)
    return Coverage(overlap=int(np.count_nonzero(covered)), reference=n_ref)


def score_overlap(ink: np.ndarray, reference: np.ndarray, **limits: int) -> float:
    """Coverage ratio in [0, 1]; see ``coverage()`` for parameters."""
    return coverage(ink, reference, **limits).ratio
