"""Shared fixtures for tracer tests.

Fixtures:
    - surface: 200×200 logical px at pixel_ratio 1
    - exact_cfg: corpus "AB", 1-px aliased ink so drawn pixels are exact
    - store / scheduler: in-memory store and virtual clock
    - make_session: session factory over the fixtures above
    - trace_fraction: draws 1-px horizontal strokes over the first
      ``fraction`` of the reference pixels (row-major) and returns the
      exact fraction covered
"""

import logging
import sys

import numpy as np
import pytest

from zen_sutra.tracer import (
    InMemoryStore,
    ManualScheduler,
    ProgressStore,
    SurfaceSize,
    TracingSession,
)
from zen_sutra.utils import logging_config
from zen_sutra.utils.validators import InkConfig, TracerConfigV1


@pytest.fixture
def surface():
    return SurfaceSize(200, 200)


@pytest.fixture
def exact_cfg():
    """Corpus "AB" with thresholds 0.25 / 0.12 and exact 1-px ink."""
    return TracerConfigV1(
        corpus="AB",
        ink=InkConfig(width_px=1.0, antialias=False),
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def make_session(exact_cfg, store, scheduler, surface):
    def _make(cfg=None, progress_store=None, **kwargs):
        return TracingSession(
            cfg or exact_cfg,
            ProgressStore(progress_store if progress_store is not None else store),
            scheduler,
            kwargs.pop("surface", surface),
            **kwargs,
        )
    return _make


def _reference_runs(session, fraction):
    ref = session.reference.pixels[..., 3] > 128
    ys, xs = np.nonzero(ref)
    total = len(xs)
    target = int(np.ceil(fraction * total))
    ys, xs = ys[:target], xs[:target]
    if target == 0:
        return [], 0, total
    breaks = np.nonzero((np.diff(ys) != 0) | (np.diff(xs) != 1))[0] + 1
    starts = np.concatenate(([0], breaks))
    ends = np.concatenate((breaks, [target])) - 1
    runs = [
        ((float(xs[s]), float(ys[s])), (float(xs[e]), float(ys[e])))
        for s, e in zip(starts, ends)
    ]
    return runs, target, total


@pytest.fixture
def trace_fraction():
    def _trace(session, fraction):
        runs, covered, total = _reference_runs(session, fraction)
        for start, end in runs:
            session.begin_stroke(start)
            session.extend_stroke(end)
            session.end_stroke()
        return covered / total
    return _trace


@pytest.fixture
def reference_runs():
    return _reference_runs


@pytest.fixture
def reset_logging():
    """Remove handlers and the excepthook installed by the CLI after the test."""
    previous_hook = sys.excepthook
    yield
    sys.excepthook = previous_hook
    logging_config.setup_logging(log_level="WARNING", to_stderr=False, capture_warnings=False)
    logging_config.pop_context()
    logging.captureWarnings(False)
