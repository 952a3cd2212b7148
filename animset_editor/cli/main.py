from __future__ import annotations
import argparse
import sys
from pathlib import Path
from .commands import (
    info as cmd_info,
    set_ref as cmd_set_ref,
    clear_ref as cmd_clear_ref,
    set_values as cmd_set_values,
    set_textures as cmd_set_textures,
    export_frames as cmd_export_frames,
)
from ..core.config import load_config
from ..core.errors import AnimError
from ..core.logger import configure_logging, get_logger

log = get_logger(__name__)

VARIANT_CHOICES = ["sd", "hd", "hd2"]


def entrypoint():
    main()


def _add_path(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "path",
        type=str,
        help="Any file of an anim tree (SD/mainSD.anim, anim/main_NNN.anim) or a single .anim file",
    )


def _add_dry_run(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Report the pending edit without writing any files",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Anim sprite asset editor")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Editor config JSON (defaults to $ANIMSET_EDITOR_CONFIG or built-in defaults)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    i = sub.add_parser("info", help="List sprites and what each variant holds")
    _add_path(i)
    i.add_argument("--sprite", type=int, default=None, help="Only describe this sprite")

    r = sub.add_parser("set-ref", help="Make an SD sprite reference another sprite")
    _add_path(r)
    r.add_argument("sprite", type=int)
    r.add_argument("target", type=int, help="Sprite whose SD data is used")
    _add_dry_run(r)

    c = sub.add_parser("clear-ref", help="Make an SD sprite own its data again")
    _add_path(c)
    c.add_argument("sprite", type=int)
    _add_dry_run(c)

    v = sub.add_parser("set-values", help="Change width/height/unknown of a sprite")
    _add_path(v)
    v.add_argument("sprite", type=int)
    v.add_argument("--variant", choices=VARIANT_CHOICES, default="sd")
    v.add_argument("--width", type=int, default=None)
    v.add_argument("--height", type=int, default=None)
    v.add_argument("--unknown", type=lambda s: int(s, 0), default=None, help="16-bit unknown field")
    _add_dry_run(v)

    t = sub.add_parser("set-textures", help="Replace frames and textures from a manifest")
    _add_path(t)
    t.add_argument("sprite", type=int)
    t.add_argument("--variant", choices=VARIANT_CHOICES, default="sd")
    t.add_argument(
        "--manifest",
        type=str,
        required=True,
        help="JSON with 'frames' and per-layer 'textures' ({file, width, height} or null)",
    )
    _add_dry_run(t)

    e = sub.add_parser("export-frames", help="Export frames of a sprite as PNG files")
    _add_path(e)
    e.add_argument("sprite", type=int)
    e.add_argument("--variant", choices=VARIANT_CHOICES, default="sd")
    e.add_argument("--out", type=str, required=True, help="Output directory")
    return parser


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(Path(args.config) if args.config else None)
    configure_logging(config.log_level)
    args.editor_config = config

    commands = {
        "info": cmd_info,
        "set-ref": cmd_set_ref,
        "clear-ref": cmd_clear_ref,
        "set-values": cmd_set_values,
        "set-textures": cmd_set_textures,
        "export-frames": cmd_export_frames,
    }
    try:
        commands[args.command].run(args)
    except (AnimError, OSError) as e:
        log.error(f"{args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
