"""Zen Sutra: handwriting-tracing validator for sutra copying.

The user traces one character of a fixed text at a time over a faint guide.
Ink coverage of an off-screen reference glyph decides when the character is
accepted, credit is awarded and the session advances.

Architecture layers (strict one-way dependency):
    cli → tracer/ → utils/

Key invariants:
    - Guide, reference and ink rasters are always built from one SurfaceSize
    - Logical (pointer) coordinates scale by pixel_ratio into raster pixels
    - Rasters are RGBA uint8 (H, W, 4), top-left origin, +Y down
    - YAML-only configs
"""

__version__ = "1.0.0"
