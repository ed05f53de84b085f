"""Command line entry point for cliip-show."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from cliip_show.app import run_resident
from cliip_show.config_store import (
    CONFIG_KEY_NAMES,
    CONFIG_PATH_ENV,
    ConfigKey,
    SavedConfig,
    config_file_path,
    effective_settings,
    load_config_file,
    parse_config_key,
    resolve_display_settings,
    save_config_file,
    set_config_value,
)
from cliip_show.errors import CliipShowError, ConfigError, InvalidConfiguration
from cliip_show.fonts import ensure_gui_application
from cliip_show.image_diff import diff
from cliip_show.logging_utils import configure_cli_logging
from cliip_show.png_codec import read_png, write_png
from cliip_show.rasterizer import render
from cliip_show.settings import (
    MAX_HUD_DURATION_SECS,
    MAX_HUD_SCALE,
    MAX_MAX_CHARS_PER_LINE,
    MAX_MAX_LINES,
    MAX_POLL_INTERVAL_SECS,
    MIN_HUD_DURATION_SECS,
    MIN_HUD_SCALE,
    MIN_MAX_CHARS_PER_LINE,
    MIN_MAX_LINES,
    MIN_POLL_INTERVAL_SECS,
    DisplaySettings,
    HudBackgroundColor,
    HudPosition,
)
from cliip_show.text_layout import layout
from cliip_show.version import __version__

_LOGGER = logging.getLogger("CliipShow.Launcher")

DEFAULT_RENDER_TEXT = "Clipboard text"
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

_CONFIG_USAGE = "Usage: cliip-show --config <path|show|init|set>"
_INIT_USAGE = "Usage: cliip-show --config init [--force]"
_SET_USAGE = "Usage: cliip-show --config set <key> <value>"


def _help_epilog() -> str:
    defaults = DisplaySettings()
    positions = "|".join(HudPosition.names())
    colors = "|".join(HudBackgroundColor.names())
    key_rows = [
        ("poll_interval_secs", defaults.poll_interval_secs, f"{MIN_POLL_INTERVAL_SECS} - {MAX_POLL_INTERVAL_SECS}"),
        ("hud_duration_secs", defaults.hud_duration_secs, f"{MIN_HUD_DURATION_SECS} - {MAX_HUD_DURATION_SECS}"),
        ("max_chars_per_line", defaults.max_chars_per_line, f"{MIN_MAX_CHARS_PER_LINE} - {MAX_MAX_CHARS_PER_LINE}"),
        ("max_lines", defaults.max_lines, f"{MIN_MAX_LINES} - {MAX_MAX_LINES}"),
        ("hud_position", defaults.hud_position.value, positions),
        ("hud_scale", defaults.hud_scale, f"{MIN_HUD_SCALE} - {MAX_HUD_SCALE}"),
        ("hud_background_color", defaults.hud_background_color.value, colors),
    ]
    lines = [
        "Config commands (persistent settings):",
        "  cliip-show --config path",
        "  cliip-show --config show",
        "  cliip-show --config init [--force]",
        "  cliip-show --config set hud_duration_secs 2.5",
        "  cliip-show --config set hud_background_color blue",
        "",
        "Config keys:",
    ]
    lines.extend(f"  {name:<20} default={default} ({allowed})" for name, default, allowed in key_rows)
    lines.extend(
        [
            "",
            "Persistent config file:",
            f"  {config_file_path()}",
            f"  override path via: {CONFIG_PATH_ENV}",
            "",
            "Display settings via env vars (override file):",
        ]
    )
    lines.extend(f"  {ConfigKey(name).env_var}" for name, _default, _allowed in key_rows)
    lines.extend(
        [
            "",
            "Clipboard detection:",
            "  The HUD appears when the clipboard text changes. Copying the same text",
            "  again does not show it a second time.",
        ]
    )
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cliip-show",
        description="Clipboard HUD resident app. Without options the HUD runs until interrupted.",
        epilog=_help_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    modes = parser.add_mutually_exclusive_group()
    modes.add_argument("-V", "-v", "--version", action="store_true", help="Print version and exit")
    modes.add_argument(
        "--render-hud-png",
        action="store_true",
        help="Render a HUD snapshot PNG (--text, --output) and exit",
    )
    modes.add_argument(
        "--diff-png",
        action="store_true",
        help="Generate a visual diff PNG (--baseline, --current, --output) and exit",
    )
    modes.add_argument(
        "--config",
        nargs="+",
        metavar="COMMAND",
        help="Manage the persistent settings file: path | show | init [--force] | set <key> <value>",
    )
    parser.add_argument("--text", help=f"Text to render (default: {DEFAULT_RENDER_TEXT!r})")
    parser.add_argument("--output", help="PNG file to write")
    parser.add_argument("--baseline", help="Baseline PNG for --diff-png")
    parser.add_argument("--current", help="Current PNG for --diff-png")
    parser.add_argument("--force", action="store_true", help="Allow --config init to overwrite an existing file")
    return parser


def _validate_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.text is not None and not args.render_hud_png:
        parser.error("--text is only valid with --render-hud-png")
    if (args.baseline is not None or args.current is not None) and not args.diff_png:
        parser.error("--baseline/--current are only valid with --diff-png")
    if args.output is not None and not (args.render_hud_png or args.diff_png):
        parser.error("--output is only valid with --render-hud-png or --diff-png")
    if args.force and not (args.config and args.config[0] == "init"):
        parser.error("--force is only valid with --config init")
    if args.render_hud_png and not args.output:
        parser.error("--output is required for --render-hud-png")
    if args.diff_png:
        for name in ("baseline", "current", "output"):
            if not getattr(args, name):
                parser.error(f"--{name} is required for --diff-png")


def _prepare_qt() -> None:
    """One-shot image modes never open windows; keep Qt off the display."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    ensure_gui_application()


def render_hud_png(text: str, output: Path) -> int:
    try:
        _prepare_qt()
        settings = resolve_display_settings()
        image = render(layout(text, settings.layout_limits()), settings.style())
        write_png(image, output)
    except CliipShowError as exc:
        print(exc, file=sys.stderr)
        return EXIT_FAILURE
    _LOGGER.debug("Rendered HUD snapshot %dx%d to %s", image.width, image.height, output)
    return EXIT_OK


def diff_png(baseline_path: Path, current_path: Path, output: Path) -> int:
    try:
        _prepare_qt()
        baseline = read_png(baseline_path, label="baseline")
        current = read_png(current_path, label="current")
        report = diff(baseline, current, highlight=True)
        if not report.identical and report.highlight is not None:
            write_png(report.highlight, output)
    except CliipShowError as exc:
        print(exc, file=sys.stderr)
        return EXIT_FAILURE
    print(report.summary())
    return EXIT_OK


def _print_lines(lines: list[str]) -> None:
    for line in lines:
        print(line)


def run_config_command(command: list[str], *, force: bool = False) -> int:
    action, rest = command[0], command[1:]
    path = config_file_path()

    if action == "path":
        if rest:
            print("Usage: cliip-show --config path", file=sys.stderr)
            return EXIT_USAGE
        print(path)
        return EXIT_OK

    if action == "show":
        if rest:
            print("Usage: cliip-show --config show", file=sys.stderr)
            return EXIT_USAGE
        try:
            saved, exists = load_config_file(path)
        except ConfigError as exc:
            print(exc, file=sys.stderr)
            return EXIT_FAILURE
        print(f"config_path = {path}")
        if exists:
            print("config_file = exists")
            print("[saved]")
            _print_lines(saved.describe())
        else:
            print("config_file = not_found")
        print("[effective]")
        _print_lines(effective_settings(saved).describe())
        return EXIT_OK

    if action == "init":
        if rest:
            print(_INIT_USAGE, file=sys.stderr)
            return EXIT_USAGE
        if path.exists() and not force:
            print(f"config file already exists: {path} (use --force to overwrite)", file=sys.stderr)
            return EXIT_USAGE
        try:
            save_config_file(path, SavedConfig.from_settings(DisplaySettings()))
        except ConfigError as exc:
            print(exc, file=sys.stderr)
            return EXIT_FAILURE
        print(f"initialized config: {path}")
        return EXIT_OK

    if action == "set":
        if len(rest) != 2:
            print(_SET_USAGE, file=sys.stderr)
            if not rest:
                print(f"Available keys: {', '.join(CONFIG_KEY_NAMES)}", file=sys.stderr)
            return EXIT_USAGE
        key_raw, value_raw = rest
        key = parse_config_key(key_raw)
        if key is None:
            print(f"Unknown key: {key_raw}. Available keys: {', '.join(CONFIG_KEY_NAMES)}", file=sys.stderr)
            return EXIT_USAGE
        try:
            saved, _exists = load_config_file(path)
        except ConfigError as exc:
            print(exc, file=sys.stderr)
            return EXIT_FAILURE
        try:
            warning = set_config_value(saved, key, value_raw)
        except InvalidConfiguration as exc:
            print(exc, file=sys.stderr)
            return EXIT_USAGE
        try:
            save_config_file(path, saved)
        except ConfigError as exc:
            print(exc, file=sys.stderr)
            return EXIT_FAILURE
        if warning:
            print(f"warning: {warning}", file=sys.stderr)
        print(f"updated config: {path}")
        print("[effective]")
        _print_lines(effective_settings(saved).describe())
        return EXIT_OK

    print(f"Unknown --config command: {action}", file=sys.stderr)
    print(_CONFIG_USAGE, file=sys.stderr)
    return EXIT_USAGE


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        _validate_args(parser, args)
    except SystemExit as exc:
        # argparse exits 0 for --help and 2 for usage errors.
        return int(exc.code or 0)

    if args.version:
        print(__version__)
        return EXIT_OK

    if args.config or args.render_hud_png or args.diff_png:
        configure_cli_logging()
    if args.config:
        return run_config_command(args.config, force=args.force)
    if args.render_hud_png:
        text = DEFAULT_RENDER_TEXT if args.text is None else args.text
        return render_hud_png(text, Path(args.output))
    if args.diff_png:
        return diff_png(Path(args.baseline), Path(args.current), Path(args.output))

    return run_resident()


if __name__ == "__main__":
    sys.exit(main())
