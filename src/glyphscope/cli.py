"""
CLI entry points.

Usage:
    glyphscope [options]                 live window
    glyphscope-export -o out.gif [options]
    python -m glyphscope [options]
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from glyphscope.config import AnimatorConfig, read_json
from glyphscope.core.mapper import CHARACTER_SETS, THEMES
from glyphscope.engines.backgrounds import BackgroundEffect
from glyphscope.engines.rotation import AnimationStyle
from glyphscope.engines.shapes import Shape
from glyphscope.engines.transitions import TransitionEffect
from glyphscope.io.export import QUALITY_PRESETS


def _progress_bar(label: str, width: int = 30):
    """Return a ``(current, total)`` callback that draws a labelled bar with an ETA."""
    started = time.monotonic()
    last_step = -1

    def report(current: int, total: int):
        nonlocal last_step
        total = max(total, 1)
        done = min(current / total, 1.0)
        spent = time.monotonic() - started
        eta = spent / done - spent if done > 0 else 0.0
        status = f"{label} {done * 100:3.0f}% ({current}/{total} frames, {eta:4.1f}s left)"
        if sys.stdout.isatty():
            head = ">" if done < 1.0 else "="
            filled = int(width * done)
            bar = ("=" * filled + head)[:width].ljust(width)
            end = "\n" if current >= total else ""
            sys.stdout.write(f"\r[{bar}] {status}{end}")
            sys.stdout.flush()
            return
        # Plain logs get one line per tenth
        step = int(done * 10)
        if step != last_step:
            last_step = step
            print(status, flush=True)

    return report


def _add_common_args(parser: argparse.ArgumentParser):
    # Subject
    subject = parser.add_mutually_exclusive_group()
    subject.add_argument("--emoji", type=str, default=None, help="Emoji to animate (default: 😀)")
    subject.add_argument(
        "--shape", type=str, default=None,
        choices=[s.value for s in Shape],
        help="Procedural shape to animate",
    )
    subject.add_argument("--image", type=Path, default=None, help="Image file to animate")
    subject.add_argument("--camera", action="store_true", help="Animate the live camera feed")
    parser.add_argument("--camera-device", type=int, default=None, help="Camera index (default: 0)")

    # Look
    parser.add_argument(
        "-b", "--background", type=str, default=None,
        choices=[e.value for e in BackgroundEffect],
        help="Background effect (default: matrix)",
    )
    parser.add_argument(
        "-t", "--transition", type=str, default=None,
        choices=[e.value for e in TransitionEffect],
        help="Transition effect (default: morph)",
    )
    parser.add_argument(
        "-a", "--animation", type=str, default=None,
        choices=[s.value for s in AnimationStyle],
        help="Animation style (default: float)",
    )
    parser.add_argument(
        "--theme", type=str, default=None, choices=list(THEMES),
        help="Color theme (default: dark)",
    )
    parser.add_argument(
        "-c", "--characters", type=str, default=None, choices=list(CHARACTER_SETS),
        help="Character style (default: detailed)",
    )
    parser.add_argument("--speed", type=float, default=None, help="Rotation speed 0.5-3.0 (default: 1.0)")

    # Surface
    parser.add_argument("--width", type=int, default=None, help="Surface width in pixels")
    parser.add_argument("--height", type=int, default=None, help="Surface height in pixels")
    parser.add_argument("-f", "--fps", type=int, default=None, help="Frames per second")

    parser.add_argument("--font", type=str, default=None, help="Emoji font file")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for background effects")
    parser.add_argument(
        "--config", type=Path, default=None,
        help="JSON config file (its options override the flags)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress details")


def _build_config(args, **extra) -> AnimatorConfig:
    overrides = {
        "emoji": args.emoji,
        "shape": args.shape,
        "image_path": str(args.image) if args.image is not None else None,
        "camera": True if args.camera else None,
        "camera_device": args.camera_device,
        "background_effect": args.background,
        "transition_effect": args.transition,
        "animation_style": args.animation,
        "theme": args.theme,
        "character_style": args.characters,
        "speed": args.speed,
        "width": args.width,
        "height": args.height,
        "fps": args.fps,
        "font_path": args.font,
        "seed": args.seed,
    }
    overrides.update(extra)
    config = AnimatorConfig().merged(overrides)
    if args.config is not None:
        config = config.merged(read_json(args.config))
    return config


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str):
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="glyphscope",
        description="Animated 3D ASCII art of emoji, shapes, images and the camera",
    )
    _add_common_args(parser)
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.image is not None and not args.image.exists():
        _fail(f"Image file not found: {args.image}")

    # Imported late so --help works without a display.
    from glyphscope.compositor import Compositor
    from glyphscope.display import LiveWindow

    try:
        config = _build_config(args)
        compositor = Compositor(config)
    except (ValueError, OSError) as e:
        _fail(str(e))

    if config.camera and not compositor.camera_active:
        print("Warning: camera unavailable, showing the emoji instead", file=sys.stderr)

    LiveWindow(compositor, fps=config.fps).run()


def export_main(argv=None):
    parser = argparse.ArgumentParser(
        prog="glyphscope-export",
        description="Render a glyphscope animation to GIF or MP4",
    )
    parser.add_argument(
        "-o", "--output", type=Path, required=True,
        help="Output path (.gif or .mp4)",
    )
    parser.add_argument(
        "-d", "--duration", type=float, default=5.0,
        help="Animation length in seconds (default: 5)",
    )
    parser.add_argument(
        "-q", "--quality", type=str, default="high",
        choices=list(QUALITY_PRESETS),
        help="MP4 encoding quality (default: high)",
    )
    _add_common_args(parser)
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    suffix = args.output.suffix.lower()
    if suffix not in (".gif", ".mp4"):
        _fail(f"Output must end in .gif or .mp4, got {args.output}")
    if args.duration <= 0:
        _fail(f"Duration must be positive, got {args.duration}")
    if args.image is not None and not args.image.exists():
        _fail(f"Image file not found: {args.image}")

    from glyphscope.compositor import Compositor
    from glyphscope.display import Rasterizer
    from glyphscope.io.export import encode_video, export_gif, sample_frames

    fps_default = 15 if suffix == ".gif" else 30
    try:
        config = _build_config(args, fps=args.fps or fps_default)
        compositor = Compositor(config)
    except (ValueError, OSError) as e:
        _fail(str(e))

    rasterizer = Rasterizer()
    width, height = rasterizer.image_size(compositor.cols, compositor.rows)
    total_frames = max(1, round(config.fps * args.duration))

    print(f"Rendering {total_frames} frames at {width}x{height} @ {config.fps}fps")
    print(f"  Grid: {compositor.cols}x{compositor.rows}, Subject: {compositor.subject.value}")
    t0 = time.time()

    try:
        if suffix == ".gif":
            frames = list(sample_frames(
                compositor, rasterizer, config.fps, args.duration,
                progress_callback=_progress_bar("Rendering"),
            ))
            export_gif(frames, args.output, config.fps)
        else:
            encode_video(
                frame_iterator=sample_frames(compositor, rasterizer, config.fps, args.duration),
                output_path=args.output,
                width=width,
                height=height,
                fps=config.fps,
                quality=args.quality,
                total_frames=total_frames,
                progress_callback=_progress_bar("Encoding"),
            )
    except (RuntimeError, OSError) as e:
        _fail(str(e))
    finally:
        compositor.close()

    elapsed = time.time() - t0
    file_size_mb = args.output.stat().st_size / 1024 / 1024
    print(f"\nDone! {file_size_mb:.1f} MB")
    print(f"  Render+encode took {elapsed:.1f}s ({total_frames / max(elapsed, 0.01):.1f} fps)")
    print(f"  Output: {args.output}")


if __name__ == "__main__":
    main()
