"""Handwriting-tracing validator.

Modules, leaves first:
    - geometry: SurfaceSize and the shared glyph placement rule
    - glyph_renderer: grid, ghost, guide and reference layers (Pillow)
    - ink_surface: user strokes rasterized with OpenCV
    - scorer: per-pixel coverage of the reference by ink
    - scheduler: cancellable one-shot callbacks
    - progress: cursor persistence and XP ledger over a key-value store
    - session: the drawing → evaluation → feedback → advance state machine
"""

from .corpus import Corpus
from .geometry import GlyphPlacement, SurfaceSize, glyph_placement
from .glyph_renderer import GlyphRenderer, RenderedLayer, compose_display
from .ink_surface import InkSurface
from .progress import InMemoryStore, KeyValueStore, ProgressStore, YamlFileStore
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from .scorer import Coverage, coverage, score_overlap
from .session import Feedback, SessionState, TracingSession

__all__ = [
    'AsyncioScheduler',
    'Corpus',
    'Coverage',
    'Feedback',
    'GlyphPlacement',
    'GlyphRenderer',
    'InMemoryStore',
    'InkSurface',
    'KeyValueStore',
    'ManualScheduler',
    'ProgressStore',
    'RenderedLayer',
    'Scheduler',
    'SessionState',
    'SurfaceSize',
    'TracingSession',
    'YamlFileStore',
    'compose_display',
    'coverage',
    'glyph_placement',
    'score_overlap',
]
