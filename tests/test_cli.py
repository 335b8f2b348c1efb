"""Test the command-line entry point.

Tests for zen_sutra.cli:
    - render writes guide/reference/display PNGs of the surface size
    - replay drives a session through a recorded log and persists progress
    - status reads the stored cursor
    - main() maps missing/invalid inputs to exit code 2
    - main() logs uncaught exceptions through the installed excepthook

Run:
    pytest tests/test_cli.py -v
"""

import logging
import sys

import numpy as np
import pytest
from PIL import Image

from zen_sutra import cli
from zen_sutra.tracer.progress import YamlFileStore


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "tracer.yaml"
    path.write_text(
        "schema: sutra_tracer.v1\n"
        "title: Test\n"
        "corpus: AB\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def log_path(tmp_path):
    path = tmp_path / "session.yaml"
    path.write_text(
        "schema: stroke_log.v1\n"
        "surface: {width: 200, height: 200}\n"
        "actions:\n"
        "  - {action: stroke, points: [[2, 2], [8, 2]]}\n"
        "  - {action: validate}\n"
        "  - {action: skip}\n"
        "  - {action: wait, ms: 1500}\n",
        encoding="utf-8",
    )
    return path


# ============================================================================
# RENDER
# ============================================================================

def test_render_writes_layers(tmp_path, config_path):
    out = tmp_path / "out"
    paths = cli.render_main("A", str(out), width=120, height=80, config_path=str(config_path))

    assert set(paths) == {"guide", "reference", "display"}
    for path in paths.values():
        with Image.open(path) as img:
            assert img.size == (120, 80)
            assert img.mode == "RGBA"

    with Image.open(paths["reference"]) as ref:
        assert np.asarray(ref)[..., 3].any()
    with Image.open(paths["display"]) as display:
        assert (np.asarray(display)[..., 3] == 255).all()


def test_render_pixel_ratio(tmp_path):
    paths = cli.render_main("A", str(tmp_path), width=50, height=50, pixel_ratio=2.0)
    with Image.open(paths["guide"]) as img:
        assert img.size == (100, 100)


def test_render_rejects_multiple_chars(tmp_path):
    with pytest.raises(ValueError, match="single character"):
        cli.render_main("AB", str(tmp_path))


# ============================================================================
# REPLAY & STATUS
# ============================================================================

def test_replay_persists_progress(tmp_path, config_path, log_path, capsys):
    store_path = tmp_path / "progress.yaml"

    result = cli.replay_main(str(log_path), store_path=str(store_path), config_path=str(config_path))

    assert len(result["events"]) == 4
    assert "validate score=0.000 -> retry @ 1 / 2 A" in result["events"][1]
    assert result["events"][2].endswith("-> none @ 2 / 2 B")
    assert result["index"] == 1
    assert result["feedback"] == "none"
    assert YamlFileStore(store_path).get("zen_sutra_index") == 1
    assert YamlFileStore(store_path).get("zen_profile") is None
    assert "[3] wait t=1500ms" in capsys.readouterr().out


def test_status_reads_store(tmp_path, config_path, capsys):
    store_path = tmp_path / "progress.yaml"
    store_path.write_text("zen_sutra_index: '1'\n", encoding="utf-8")

    result = cli.status_main(store_path=str(store_path), config_path=str(config_path))

    assert result == {"index": 1, "label": "2 / 2", "char": "B"}
    assert "Test  2 / 2  B" in capsys.readouterr().out


def test_status_without_store_starts_at_first():
    result = cli.status_main()
    assert result["index"] == 0
    assert result["char"] == "观"


# ============================================================================
# MAIN
# ============================================================================

def test_main_replay(tmp_path, config_path, log_path, reset_logging, capsys):
    store_path = tmp_path / "progress.yaml"
    code = cli.main([
        "--config", str(config_path),
        "--log-level", "WARNING",
        "replay", str(log_path),
        "--store", str(store_path),
    ])
    assert code == 0
    assert "Finished at index 1" in capsys.readouterr().out


def test_main_installs_excepthook(config_path, reset_logging, caplog):
    before = sys.excepthook
    assert cli.main(["--config", str(config_path), "status"]) == 0
    assert sys.excepthook is not before

    with caplog.at_level(logging.CRITICAL):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            sys.excepthook(*sys.exc_info())
    assert "Uncaught exception" in caplog.text


def test_main_missing_config_returns_2(tmp_path, reset_logging):
    code = cli.main([
        "--config", str(tmp_path / "missing.yaml"),
        "status",
    ])
    assert code == 2


def test_main_invalid_log_returns_2(tmp_path, config_path, reset_logging):
    bad = tmp_path / "bad.yaml"
    bad.write_text("schema: stroke_log.v1\n", encoding="utf-8")
    assert cli.main(["--config", str(config_path), "replay", str(bad)]) == 2


def test_main_requires_command(reset_logging):
    with pytest.raises(SystemExit):
        cli.main([])
