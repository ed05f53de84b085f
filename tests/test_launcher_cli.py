import pytest

from cliip_show import launcher
from cliip_show.config_store import load_config_file
from cliip_show.fonts import ensure_gui_application
from cliip_show.pixel_image import PixelImage
from cliip_show.png_codec import read_png, write_png
from cliip_show.settings import HudBackgroundColor
from cliip_show.version import __version__


@pytest.fixture
def gui_app():
    return ensure_gui_application()


@pytest.mark.parametrize("flag", ["-V", "-v", "--version"])
def test_version_flags(flag, capsys):
    assert launcher.main([flag]) == 0
    assert capsys.readouterr().out.strip() == __version__


def test_help_lists_config_keys(capsys):
    assert launcher.main(["--help"]) == 0
    out = capsys.readouterr().out
    assert "--render-hud-png" in out
    assert "CLIIP_SHOW_HUD_BACKGROUND_COLOR" in out
    assert "Copying the same text\n  again does not show it a second time." in out


@pytest.mark.parametrize(
    "argv",
    [
        ["--text", "orphan"],
        ["--render-hud-png"],
        ["--diff-png", "--baseline", "a.png", "--output", "c.png"],
        ["--version", "--render-hud-png"],
        ["--config", "show", "--force"],
        ["--bogus"],
    ],
)
def test_usage_errors_exit_two(argv, capsys):
    assert launcher.main(argv) == 2
    assert capsys.readouterr().err


def test_config_path_prints_resolved_path(isolated_config, capsys):
    assert launcher.main(["--config", "path"]) == 0
    assert capsys.readouterr().out.strip() == str(isolated_config)


def test_config_show_without_file(isolated_config, capsys):
    assert launcher.main(["--config", "show"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == f"config_path = {isolated_config}"
    assert lines[1] == "config_file = not_found"
    assert lines[2] == "[effective]"
    assert "hud_position = center" in lines


def test_config_init_and_force(isolated_config, capsys):
    assert launcher.main(["--config", "init"]) == 0
    assert capsys.readouterr().out.strip() == f"initialized config: {isolated_config}"
    assert isolated_config.exists()

    assert launcher.main(["--config", "init"]) == 2
    assert capsys.readouterr().err.strip() == (
        f"config file already exists: {isolated_config} (use --force to overwrite)"
    )

    assert launcher.main(["--config", "init", "--force"]) == 0
    capsys.readouterr()

    assert launcher.main(["--config", "show"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert "config_file = exists" in out
    assert out.index("[saved]") < out.index("[effective]")


def test_config_set_persists_value(isolated_config, capsys):
    assert launcher.main(["--config", "set", "hud-background-color", "blue"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == f"updated config: {isolated_config}"
    assert out[1] == "[effective]"
    assert "hud_background_color = blue" in out

    saved, exists = load_config_file(isolated_config)
    assert exists
    assert saved.hud_background_color is HudBackgroundColor.BLUE
    assert saved.max_lines is None


def test_config_set_warns_when_clamped(isolated_config, capsys):
    assert launcher.main(["--config", "set", "poll_interval_secs", "0.01"]) == 0
    captured = capsys.readouterr()
    assert "warning: poll_interval_secs was clamped from 0.01 to 0.05 (allowed range: 0.05..=5.0)" in captured.err
    assert "poll_interval_secs = 0.05" in captured.out.splitlines()


def test_env_override_applies_to_effective_settings(monkeypatch, capsys):
    monkeypatch.setenv("CLIIP_SHOW_MAX_LINES", "3")
    assert launcher.main(["--config", "show"]) == 0
    assert "max_lines = 3" in capsys.readouterr().out.splitlines()


@pytest.mark.parametrize(
    ("argv", "message"),
    [
        (["--config", "set", "colour", "blue"], "Unknown key: colour. Available keys: poll_interval_secs"),
        (["--config", "set", "hud_position", "left"], "invalid hud_position value: left"),
        (["--config", "set", "max_lines"], "Usage: cliip-show --config set <key> <value>"),
        (["--config", "frobnicate"], "Unknown --config command: frobnicate"),
        (["--config", "path", "extra"], "Usage: cliip-show --config path"),
    ],
)
def test_config_command_errors(argv, message, isolated_config, capsys):
    assert launcher.main(argv) == 2
    assert message in capsys.readouterr().err
    assert not isolated_config.exists()


def test_render_hud_png_writes_image(tmp_path, capsys):
    output = tmp_path / "out" / "hud.png"
    assert launcher.main(["--render-hud-png", "--text", "hello clipboard", "--output", str(output)]) == 0
    image = read_png(output)
    assert image.width >= 200
    assert image.height >= 52


def test_render_hud_png_uses_default_text(tmp_path):
    output = tmp_path / "default.png"
    assert launcher.main(["--render-hud-png", "--output", str(output)]) == 0
    assert output.exists()


def test_render_hud_png_reports_write_failure(tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    assert launcher.main(["--render-hud-png", "--output", str(blocker / "hud.png")]) == 1
    assert capsys.readouterr().err


def test_diff_png_identical_images(tmp_path, gui_app, capsys):
    image = PixelImage.solid(4, 3, (10, 20, 30, 255))
    baseline = write_png(image, tmp_path / "baseline.png")
    current = write_png(image, tmp_path / "current.png")
    output = tmp_path / "diff.png"
    argv = ["--diff-png", "--baseline", str(baseline), "--current", str(current), "--output", str(output)]
    assert launcher.main(argv) == 0
    assert capsys.readouterr().out.strip() == "diff_pixels=0 total_pixels=12"
    assert not output.exists()


def test_diff_png_writes_highlight(tmp_path, gui_app, capsys):
    image = PixelImage.solid(4, 3, (10, 20, 30, 255))
    baseline = write_png(image, tmp_path / "baseline.png")
    current = write_png(image.with_pixel(1, 2, (200, 200, 200, 255)), tmp_path / "current.png")
    output = tmp_path / "diff.png"
    argv = ["--diff-png", "--baseline", str(baseline), "--current", str(current), "--output", str(output)]
    assert launcher.main(argv) == 0
    assert "diff_pixels=1 total_pixels=12" in capsys.readouterr().out
    highlight = read_png(output)
    assert highlight.pixel(1, 2) == (255, 0, 0, 255)
    assert highlight.pixel(0, 0) == (10, 20, 30, 255)


def test_diff_png_size_mismatch_fails(tmp_path, gui_app, capsys):
    baseline = write_png(PixelImage.solid(4, 3, (0, 0, 0, 255)), tmp_path / "baseline.png")
    current = write_png(PixelImage.solid(5, 3, (0, 0, 0, 255)), tmp_path / "current.png")
    output = tmp_path / "diff.png"
    argv = ["--diff-png", "--baseline", str(baseline), "--current", str(current), "--output", str(output)]
    assert launcher.main(argv) == 1
    assert "image size mismatch: baseline=4x3, current=5x3" in capsys.readouterr().err
    assert not output.exists()


def test_diff_png_missing_input_fails(tmp_path, capsys):
    argv = [
        "--diff-png",
        "--baseline",
        str(tmp_path / "missing.png"),
        "--current",
        str(tmp_path / "also-missing.png"),
        "--output",
        str(tmp_path / "diff.png"),
    ]
    assert launcher.main(argv) == 1
    assert "failed to load baseline PNG" in capsys.readouterr().err
