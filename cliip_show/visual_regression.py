"""Render fixed HUD cases and compare them with checked-in baseline PNGs.

Usage: python -m cliip_show.visual_regression [--update] [--baseline-dir DIR]
       [--artifact-dir DIR] [--max-diff-permille N]

Cases are rendered with the built-in default settings, so a user's config
file or environment never changes the images being compared.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from cliip_show.errors import CliipShowError
from cliip_show.fonts import ensure_gui_application
from cliip_show.image_diff import diff
from cliip_show.logging_utils import configure_cli_logging
from cliip_show.pixel_image import PixelImage
from cliip_show.png_codec import encode_png, read_png, write_png
from cliip_show.rasterizer import render
from cliip_show.settings import DisplaySettings
from cliip_show.text_layout import layout

_LOGGER = logging.getLogger("CliipShow.VisualRegression")

DEFAULT_BASELINE_DIR = Path("tests") / "visual" / "baseline"
DEFAULT_ARTIFACT_DIR = Path("tests") / "visual" / "artifacts"


@dataclass(frozen=True)
class VisualCase:
    case_id: str
    text: str


VISUAL_CASES: tuple[VisualCase, ...] = (
    VisualCase("ascii_short", "hello clipboard"),
    VisualCase("ascii_long", "a" * 88),
    VisualCase("wide_text", "日本語のコピー内容です"),
    VisualCase("multiline", "line1\nline2\nline3"),
)


@dataclass(frozen=True)
class CaseOutcome:
    case_id: str
    status: str
    current_path: Path
    baseline_path: Path
    diff_path: Optional[Path] = None
    diff_pixels: int = 0
    total_pixels: int = 0
    detail: str = ""

    @property
    def passed(self) -> bool:
        return self.status in {"ok", "updated", "within_tolerance"}


def render_case(case: VisualCase, settings: DisplaySettings) -> PixelImage:
    return render(layout(case.text, settings.layout_limits()), settings.style())


def _clear_artifacts(artifact_dir: Path) -> None:
    for stale in artifact_dir.glob("*.png"):
        stale.unlink()


def check_case(
    case: VisualCase,
    baseline_dir: Path,
    artifact_dir: Path,
    *,
    update: bool,
    max_diff_permille: int,
    settings: DisplaySettings,
    render_fn: Callable[[VisualCase, DisplaySettings], PixelImage] = render_case,
) -> CaseOutcome:
    current_path = artifact_dir / f"{case.case_id}.current.png"
    baseline_path = baseline_dir / f"{case.case_id}.png"
    diff_path = artifact_dir / f"{case.case_id}.diff.png"

    image = render_fn(case, settings)
    payload = encode_png(image)
    current_path.write_bytes(payload)

    if update:
        baseline_path.write_bytes(payload)
        diff_path.unlink(missing_ok=True)
        return CaseOutcome(case.case_id, "updated", current_path, baseline_path)

    if not baseline_path.exists():
        return CaseOutcome(case.case_id, "missing", current_path, baseline_path, detail="missing baseline")

    if baseline_path.read_bytes() == payload:
        diff_path.unlink(missing_ok=True)
        return CaseOutcome(
            case.case_id, "ok", current_path, baseline_path, total_pixels=image.pixel_count
        )

    try:
        baseline = read_png(baseline_path, label="baseline")
        report = diff(baseline, image, highlight=True)
    except CliipShowError as exc:
        return CaseOutcome(case.case_id, "error", current_path, baseline_path, detail=str(exc))

    written_diff: Optional[Path] = None
    if not report.identical and report.highlight is not None:
        written_diff = write_png(report.highlight, diff_path)
    status = "within_tolerance" if report.within_tolerance(max_diff_permille) else "mismatch"
    return CaseOutcome(
        case.case_id,
        status,
        current_path,
        baseline_path,
        diff_path=written_diff,
        diff_pixels=report.diff_pixel_count,
        total_pixels=report.total_pixel_count,
    )


def run_visual_regression(
    baseline_dir: Path = DEFAULT_BASELINE_DIR,
    artifact_dir: Path = DEFAULT_ARTIFACT_DIR,
    *,
    update: bool = False,
    max_diff_permille: int = 0,
    cases: Sequence[VisualCase] = VISUAL_CASES,
    settings: Optional[DisplaySettings] = None,
    render_fn: Callable[[VisualCase, DisplaySettings], PixelImage] = render_case,
) -> list[CaseOutcome]:
    baseline_dir.mkdir(parents=True, exist_ok=True)
    artifact_dir.mkdir(parents=True, exist_ok=True)
    _clear_artifacts(artifact_dir)
    resolved = settings or DisplaySettings()
    outcomes = []
    for case in cases:
        outcome = check_case(
            case,
            baseline_dir,
            artifact_dir,
            update=update,
            max_diff_permille=max_diff_permille,
            settings=resolved,
            render_fn=render_fn,
        )
        _LOGGER.debug("Visual case %s: %s (%d/%d)", case.case_id, outcome.status, outcome.diff_pixels, outcome.total_pixels)
        outcomes.append(outcome)
    return outcomes


def _report(outcome: CaseOutcome) -> None:
    if outcome.status == "updated":
        print(f"updated: {outcome.baseline_path}")
    elif outcome.status == "ok":
        print(f"ok: {outcome.case_id}")
    elif outcome.status == "within_tolerance":
        print(
            f"ok: {outcome.case_id} (diff_pixels={outcome.diff_pixels} total_pixels={outcome.total_pixels})"
        )
    elif outcome.status == "missing":
        print(
            f"missing baseline: {outcome.baseline_path} (run with --update once)",
            file=sys.stderr,
        )
    else:
        print(f"ng: {outcome.case_id}", file=sys.stderr)
        print(f"  baseline: {outcome.baseline_path}", file=sys.stderr)
        print(f"  current : {outcome.current_path}", file=sys.stderr)
        if outcome.detail:
            print(f"  error   : {outcome.detail}", file=sys.stderr)
        else:
            print(
                f"  diff    : {outcome.diff_path} (diff_pixels={outcome.diff_pixels} total_pixels={outcome.total_pixels})",
                file=sys.stderr,
            )


def _permille(raw: str) -> int:
    value = int(raw)
    if not 0 <= value <= 1000:
        raise argparse.ArgumentTypeError("must be between 0 and 1000")
    return value


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="python -m cliip_show.visual_regression",
        description="Compare rendered HUD cases against baseline PNGs.",
    )
    parser.add_argument("--update", action="store_true", help="Rewrite the baselines from the current render")
    parser.add_argument("--baseline-dir", type=Path, default=DEFAULT_BASELINE_DIR)
    parser.add_argument("--artifact-dir", type=Path, default=DEFAULT_ARTIFACT_DIR)
    parser.add_argument(
        "--max-diff-permille",
        type=_permille,
        default=0,
        help="Differing pixels allowed per thousand before a case fails (default: 0)",
    )
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return int(exc.code or 0)

    configure_cli_logging()
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    ensure_gui_application()
    try:
        outcomes = run_visual_regression(
            args.baseline_dir,
            args.artifact_dir,
            update=args.update,
            max_diff_permille=args.max_diff_permille,
        )
    except (CliipShowError, OSError) as exc:
        print(exc, file=sys.stderr)
        return 1

    for outcome in outcomes:
        _report(outcome)
    if all(outcome.passed for outcome in outcomes):
        if not args.update:
            print("visual regression passed")
        return 0
    return 1


if __name__ == "__main__":
    sys.exit(main())
