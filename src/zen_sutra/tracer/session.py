"""Tracing session: the state machine that accepts characters and advances.

States:
    DRAWING     initial; the user adds strokes
    EVALUATING  synchronous scoring, never observable between events
    SUCCESS     character accepted; credit awarded, advance scheduled
    RETRY       explicit validation failed; cleared by the next stroke

Transitions:
    end_stroke   score ≥ thresholds.auto → SUCCESS, otherwise back to
                 DRAWING without feedback
    validate     (no-op in SUCCESS) score ≥ thresholds.manual → SUCCESS,
                 otherwise RETRY
    begin_stroke SUCCESS or RETRY → DRAWING; feedback back to none, a
                 pending advance stays scheduled
    clear        any → DRAWING; ink wiped, pending advance cancelled
    advance due  cursor + 1 unless at the last character
    skip         cursor + 1 clamped to the last index, no credit

Entering SUCCESS awards credit once per character and schedules the
deferred advance through the injected Scheduler, unless one is already
pending. The handle is kept in ``advance_handle`` and is cancelled on every
clear or cursor change; the advance runs only while its handle is still
held, so a stale callback can never move the cursor of a different
character.

Every cursor change persists the index, re-renders guide and reference for
the new character and clears the ink. Guide, reference and ink are always
rebuilt from the same SurfaceSize, so the scorer only ever sees rasters of
equal shape and placement.

Usage:
    session = TracingSession(cfg, ProgressStore(store), scheduler,
                             SurfaceSize(360, 360, pixel_ratio=2.0))
    session.begin_stroke((120, 80))
    session.extend_stroke((240, 80))
    score = session.end_stroke()
"""

import logging
from enum import Enum
from functools import partial
from typing import Any, Callable, Optional, Tuple

import numpy as np

from ..utils.validators import TracerConfigV1
from .corpus import Corpus
from .geometry import Point, SurfaceSize
from .glyph_renderer import GlyphRenderer, RenderedLayer, compose_display
from .ink_surface import InkSurface
from .progress import ProgressStore
from .scheduler import Scheduler
from .scorer import score_overlap

logger = logging.getLogger(__name__)

Scorer = Callable[[np.ndarray, np.ndarray], float]


class SessionState(str, Enum):
    DRAWING = "drawing"
    EVALUATING = "evaluating"
    SUCCESS = "success"
    RETRY = "retry"


class Feedback(str, Enum):
    """What the user is shown."""

    NONE = "none"
    SUCCESS = "success"
    RETRY = "retry"


class TracingSession:
    """Drives one user through the corpus, one traced character at a time.

    Parameters
    ----------
    cfg : TracerConfigV1
        Corpus, thresholds, delays, layer styles
    progress : ProgressStore
        Cursor persistence and XP ledger
    scheduler : Scheduler
        Source of cancellable one-shot callbacks
    surface : SurfaceSize
        Initial drawing surface
    renderer : GlyphRenderer, optional
        Defaults to one built from ``cfg.guide``
    scorer : callable, optional
        ``(ink, reference) -> ratio``; defaults to ``score_overlap`` with
        ``cfg.scoring`` limits
    """

    def __init__(
        self,
        cfg: TracerConfigV1,
        progress: ProgressStore,
        scheduler: Scheduler,
        surface: SurfaceSize,
        *,
        renderer: Optional[GlyphRenderer] = None,
        scorer: Optional[Scorer] = None,
    ):
        self.cfg = cfg
        self.corpus = Corpus(cfg.corpus)
        self.progress = progress
        self.scheduler = scheduler
        self.renderer = renderer or GlyphRenderer(cfg.guide)
        self.scorer = scorer or partial(score_overlap, **cfg.scoring.model_dump())
        self.surface = surface

        self.index = progress.load_index(len(self.corpus))
        self.state = SessionState.DRAWING
        self.advance_handle: Optional[Any] = None
        self.last_score: Optional[float] = None
        self._credited_index: Optional[int] = None

        self.ink = InkSurface(surface, cfg.ink)
        self.guide: RenderedLayer
        self.reference: RenderedLayer
        self._render_layers()

        logger.info(
            f"Session started at {self.progress_label} {self.current_char!r} "
            f"(auto={cfg.thresholds.auto}, manual={cfg.thresholds.manual})"
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def current_char(self) -> str:
        return self.corpus[self.index]

    @property
    def is_last(self) -> bool:
        return self.index == self.corpus.last_index

    @property
    def progress_label(self) -> str:
        """Header counter, 1-based: "3 / 60"."""
        return f"{self.index + 1} / {len(self.corpus)}"

    @property
    def feedback(self) -> Feedback:
        if self.state is SessionState.SUCCESS:
            return Feedback.SUCCESS
        if self.state is SessionState.RETRY:
            return Feedback.RETRY
        return Feedback.NONE

    @property
    def feedback_text(self) -> Optional[str]:
        if self.state is SessionState.SUCCESS:
            return self.cfg.feedback.success_badge
        if self.state is SessionState.RETRY:
            return self.cfg.feedback.retry_message
        return None

    @property
    def has_pending_advance(self) -> bool:
        return self.advance_handle is not None

    def compose_display(self, background: Optional[Tuple[int, int, int]] = None) -> np.ndarray:
        """Grid, ghost glyph and ink composited for display."""
        return compose_display(self.guide.pixels, self.ink.pixels, background)

    # ------------------------------------------------------------------
    # Pointer input
    # ------------------------------------------------------------------

    def begin_stroke(self, point: Point) -> None:
        """Start a stroke; an open one is ended (and evaluated) first.

        Feedback returns to none. An advance scheduled by an earlier
        acceptance is left pending.
        """
        if self.ink.is_drawing:
            self.end_stroke()
        self.state = SessionState.DRAWING
        self.ink.begin_stroke(point)

    def extend_stroke(self, point: Point) -> bool:
        return self.ink.extend_stroke(point)

    def end_stroke(self) -> Optional[float]:
        """Close the open stroke and run the automatic check.

        Returns
        -------
        float or None
            The score, or None when no stroke was open
        """
        if self.ink.end_stroke() is None:
            return None

        score = self._evaluate()
        if score >= self.cfg.thresholds.auto:
            self._enter_success("auto", score)
        else:
            self.state = SessionState.DRAWING
        return score

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def validate(self) -> Feedback:
        """Explicit "I'm done, please check" with the looser threshold."""
        if self.ink.is_drawing:
            self.end_stroke()
        if self.state is SessionState.SUCCESS:
            return self.feedback

        score = self._evaluate()
        if score >= self.cfg.thresholds.manual:
            self._enter_success("manual", score)
        else:
            self.state = SessionState.RETRY
            logger.info(
                f"{self.progress_label} {self.current_char!r} needs more ink "
                f"(score={score:.3f} < {self.cfg.thresholds.manual})"
            )
        return self.feedback

    def clear(self) -> None:
        """Wipe the ink; cancels a pending advance, keeps the cursor."""
        self._cancel_advance()
        self.ink.clear()
        self.state = SessionState.DRAWING
        self.last_score = None

    def skip(self) -> bool:
        """Move to the next character without credit; False at the last one."""
        target = self.corpus.clamp(self.index + 1)
        if target == self.index:
            logger.debug("Skip ignored at the last character")
            return False
        self._set_index(target, reason="skip")
        return True

    def resize(self, width: float, height: float, pixel_ratio: float = 1.0) -> None:
        """Rebuild all layers for a new surface; ink drawn so far is dropped."""
        surface = SurfaceSize(width, height, pixel_ratio)
        if surface == self.surface:
            return
        self.surface = surface
        self.ink.resize(surface)
        self._render_layers()
        logger.debug(f"Resized to {width}×{height} @{pixel_ratio}x → {surface.raster_shape}")

    def close(self) -> None:
        """Cancel the pending advance (host teardown)."""
        self._cancel_advance()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _evaluate(self) -> float:
        if self.state is SessionState.EVALUATING:
            raise RuntimeError("Evaluation already in progress")
        previous = self.state
        self.state = SessionState.EVALUATING
        try:
            score = float(self.scorer(self.ink.pixels, self.reference.pixels))
        except Exception:
            self.state = previous
            raise
        self.last_score = score
        logger.debug(f"{self.progress_label} {self.current_char!r} score={score:.4f}")
        return score

    def _enter_success(self, trigger: str, score: float) -> None:
        self.state = SessionState.SUCCESS
        if self._credited_index != self.index:
            self._credited_index = self.index
            self.progress.award_xp(self.cfg.progress.xp_per_character)
        if self.advance_handle is None:
            self.advance_handle = self.scheduler.call_later(
                self.cfg.advance_delay_ms, self._on_advance_due
            )
        logger.info(
            f"{self.progress_label} {self.current_char!r} accepted "
            f"({trigger}, score={score:.3f})"
        )

    def _on_advance_due(self) -> None:
        if self.advance_handle is None:
            return
        self.advance_handle = None
        if self.is_last:
            logger.info(f"Final character {self.current_char!r} complete")
            return
        self._set_index(self.index + 1, reason="advance")

    def _cancel_advance(self) -> None:
        handle = self.advance_handle
        self.advance_handle = None
        if handle is not None:
            self.scheduler.cancel(handle)

    def _set_index(self, index: int, *, reason: str) -> None:
        self._cancel_advance()
        self.index = index
        self.progress.save_index(index)
        self.ink.clear()
        self.state = SessionState.DRAWING
        self.last_score = None
        self._render_layers()
        logger.info(f"Moved to {self.progress_label} {self.current_char!r} ({reason})")

    def _render_layers(self) -> None:
        self.guide = self.renderer.render_guide(self.current_char, self.surface)
        self.reference = self.renderer.render_reference(self.current_char, self.surface)
