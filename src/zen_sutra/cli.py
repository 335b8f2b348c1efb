"""Command-line entry point: render layers, replay stroke logs, show progress.

Commands:
    render   Write guide.png, reference.png and display.png for one glyph
    replay   Feed a recorded stroke log (stroke_log.v1) through a session on
             a virtual clock and print every transition
    status   Print the title, progress counter and current glyph

Each command is also callable (render_main, replay_main, status_main) and
returns a dict, so hosts and tests can drive it without argv parsing.

CLI:
    zen-sutra render --char 观 --width 360 --height 360 --out out/
    zen-sutra --config configs/sutra_tracer.v1.yaml replay session.yaml \\
              --store progress.yaml
    zen-sutra status --store progress.yaml
"""

import argparse
import logging
from typing import Any, Dict, List, Optional

from .tracer.geometry import SurfaceSize
from .tracer.glyph_renderer import GlyphRenderer, compose_display
from .tracer.ink_surface import InkSurface
from .tracer.progress import InMemoryStore, KeyValueStore, ProgressStore, YamlFileStore
from .tracer.scheduler import ManualScheduler
from .tracer.session import TracingSession
from .utils import fs, validators
from .utils.logging_config import install_excepthook, setup_logging

logger = logging.getLogger(__name__)

DISPLAY_BACKGROUND = (249, 247, 242)


def _open_store(store_path: Optional[str]) -> KeyValueStore:
    if store_path is None:
        return InMemoryStore()
    return YamlFileStore(store_path)


def render_main(
    char: str,
    output_dir: str,
    width: float = 360.0,
    height: float = 360.0,
    pixel_ratio: float = 1.0,
    config_path: Optional[str] = None,
) -> Dict[str, str]:
    """Render the layers of one glyph to PNG files.

    Returns
    -------
    dict
        {"guide": path, "reference": path, "display": path}
    """
    if len(char) != 1:
        raise ValueError(f"Expected a single character, got {char!r}")
    cfg = validators.load_tracer_config(config_path)
    surface = SurfaceSize(width, height, pixel_ratio)
    renderer = GlyphRenderer(cfg.guide)

    guide = renderer.render_guide(char, surface)
    reference = renderer.render_reference(char, surface)
    blank_ink = InkSurface(surface, cfg.ink).pixels
    display = compose_display(guide.pixels, blank_ink, DISPLAY_BACKGROUND)

    out = fs.ensure_dir(output_dir)
    paths = {
        'guide': out / "guide.png",
        'reference': out / "reference.png",
        'display': out / "display.png",
    }
    fs.atomic_save_image(guide.pixels, paths['guide'])
    fs.atomic_save_image(reference.pixels, paths['reference'])
    fs.atomic_save_image(display, paths['display'])
    logger.info(f"Rendered {char!r} at {surface.raster_shape} into {out}")
    return {k: str(v) for k, v in paths.items()}


def replay_main(
    log_path: str,
    store_path: Optional[str] = None,
    config_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Replay a stroke log through a fresh session.

    Returns
    -------
    dict
        {"events": [str, ...], "index": int, "feedback": str}
    """
    cfg = validators.load_tracer_config(config_path)
    log = validators.load_stroke_log(log_path)
    scheduler = ManualScheduler()
    session = TracingSession(
        cfg,
        ProgressStore(_open_store(store_path), cfg.progress),
        scheduler,
        SurfaceSize(log.surface.width, log.surface.height, log.surface.pixel_ratio),
    )

    events: List[str] = []
    for n, step in enumerate(log.actions):
        detail = ""
        if step.action == "stroke":
            session.begin_stroke(step.points[0])
            for point in step.points[1:]:
                session.extend_stroke(point)
            score = session.end_stroke()
            if score is not None:
                detail = f" score={score:.3f}"
        elif step.action == "validate":
            session.validate()
            if session.last_score is not None:
                detail = f" score={session.last_score:.3f}"
        elif step.action == "clear":
            session.clear()
        elif step.action == "skip":
            session.skip()
        elif step.action == "wait":
            scheduler.advance(step.ms)
            detail = f" t={scheduler.now_ms}ms"

        event = (
            f"[{n}] {step.action}{detail} -> {session.feedback.value} "
            f"@ {session.progress_label} {session.current_char}"
        )
        events.append(event)
        print(event)

    session.close()
    return {
        'events': events,
        'index': session.index,
        'feedback': session.feedback.value,
    }


def status_main(
    store_path: Optional[str] = None,
    config_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Print title, progress counter and current glyph from the store."""
    cfg = validators.load_tracer_config(config_path)
    progress = ProgressStore(_open_store(store_path), cfg.progress)
    index = progress.load_index(len(cfg.corpus))
    label = f"{index + 1} / {len(cfg.corpus)}"
    print(f"{cfg.title}  {label}  {cfg.corpus[index]}")
    return {'index': index, 'label': label, 'char': cfg.corpus[index]}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zen-sutra",
        description="Trace sutra characters and score ink coverage",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to sutra_tracer.v1 YAML config (default: built-in)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional log file",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Write guide/reference/display PNGs")
    render.add_argument("--char", type=str, required=True, help="Glyph to render")
    render.add_argument("--width", type=float, default=360.0, help="Surface width (logical px)")
    render.add_argument("--height", type=float, default=360.0, help="Surface height (logical px)")
    render.add_argument("--pixel-ratio", type=float, default=1.0, help="Device pixel ratio")
    render.add_argument("--out", type=str, required=True, help="Output directory")

    replay = sub.add_parser("replay", help="Replay a stroke_log.v1 file")
    replay.add_argument("log", type=str, help="Stroke log YAML")
    replay.add_argument("--store", type=str, default=None, help="YAML progress store")

    status = sub.add_parser("status", help="Show stored progress")
    status.add_argument("--store", type=str, default=None, help="YAML progress store")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(
        log_level=args.log_level,
        log_file=args.log_file,
        quiet_libs=["PIL"],
        context={"app": "sutra"},
    )
    install_excepthook()

    try:
        if args.command == "render":
            result = render_main(
                char=args.char,
                output_dir=args.out,
                width=args.width,
                height=args.height,
                pixel_ratio=args.pixel_ratio,
                config_path=args.config,
            )
            for name, path in result.items():
                print(f"{name}: {path}")
        elif args.command == "replay":
            result = replay_main(args.log, store_path=args.store, config_path=args.config)
            print(f"Finished at index {result['index']} ({result['feedback']})")
        elif args.command == "status":
            status_main(store_path=args.store, config_path=args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
