import pytest

from cliip_show import visual_regression
from cliip_show.fonts import ensure_gui_application
from cliip_show.pixel_image import PixelImage
from cliip_show.png_codec import read_png, write_png
from cliip_show.visual_regression import VisualCase, run_visual_regression

CASES = (VisualCase("flat", "x"),)


@pytest.fixture(autouse=True)
def gui_app():
    return ensure_gui_application()


def _solid_renderer(rgba):
    def render_fn(case, settings):
        return PixelImage.solid(10, 10, rgba)

    return render_fn


def test_update_then_compare_passes(tmp_path, capsys):
    baseline_dir = tmp_path / "baseline"
    artifact_dir = tmp_path / "artifacts"
    argv = ["--baseline-dir", str(baseline_dir), "--artifact-dir", str(artifact_dir)]

    assert visual_regression.main(["--update", *argv]) == 0
    out = capsys.readouterr().out
    assert out.count("updated: ") == len(visual_regression.VISUAL_CASES)
    assert (baseline_dir / "wide_text.png").exists()

    assert visual_regression.main(argv) == 0
    out = capsys.readouterr().out.splitlines()
    assert "ok: ascii_short" in out
    assert out[-1] == "visual regression passed"
    assert (artifact_dir / "multiline.current.png").exists()


def test_missing_baseline_fails(tmp_path, capsys):
    argv = ["--baseline-dir", str(tmp_path / "empty"), "--artifact-dir", str(tmp_path / "artifacts")]
    assert visual_regression.main(argv) == 1
    assert "missing baseline:" in capsys.readouterr().err


def test_mismatch_writes_diff_artifact(tmp_path):
    baseline_dir = tmp_path / "baseline"
    artifact_dir = tmp_path / "artifacts"
    run_visual_regression(
        baseline_dir, artifact_dir, update=True, cases=CASES, render_fn=_solid_renderer((0, 0, 0, 255))
    )
    changed = PixelImage.solid(10, 10, (0, 0, 0, 255)).with_pixel(3, 4, (255, 255, 255, 255))

    (outcome,) = run_visual_regression(
        baseline_dir, artifact_dir, cases=CASES, render_fn=lambda case, settings: changed
    )
    assert outcome.status == "mismatch"
    assert not outcome.passed
    assert outcome.diff_pixels == 1
    assert outcome.total_pixels == 100
    assert outcome.diff_path == artifact_dir / "flat.diff.png"
    assert read_png(outcome.diff_path).pixel(3, 4) == (255, 0, 0, 255)


def test_permille_tolerance_accepts_small_diff(tmp_path):
    baseline_dir = tmp_path / "baseline"
    artifact_dir = tmp_path / "artifacts"
    run_visual_regression(
        baseline_dir, artifact_dir, update=True, cases=CASES, render_fn=_solid_renderer((0, 0, 0, 255))
    )
    changed = PixelImage.solid(10, 10, (0, 0, 0, 255)).with_pixel(0, 0, (1, 1, 1, 255))

    (outcome,) = run_visual_regression(
        baseline_dir, artifact_dir, max_diff_permille=10, cases=CASES, render_fn=lambda case, settings: changed
    )
    assert outcome.status == "within_tolerance"
    assert outcome.passed


def test_size_change_is_reported_as_error(tmp_path):
    baseline_dir = tmp_path / "baseline"
    baseline_dir.mkdir()
    write_png(PixelImage.solid(4, 4, (0, 0, 0, 255)), baseline_dir / "flat.png")

    (outcome,) = run_visual_regression(
        baseline_dir, tmp_path / "artifacts", cases=CASES, render_fn=_solid_renderer((0, 0, 0, 255))
    )
    assert outcome.status == "error"
    assert "image size mismatch" in outcome.detail


def test_permille_argument_is_validated(capsys):
    assert visual_regression.main(["--max-diff-permille", "1001"]) == 2
    assert "must be between 0 and 1000" in capsys.readouterr().err
