"""Config file location, TOML load/save and environment overrides.

Precedence is environment > config file > built-in defaults. The file holds a
single ``[display]`` table; keys that are absent keep the lower-precedence value.
"""
from __future__ import annotations

import logging
import math
import os
import sys
import tomllib
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from cliip_show.errors import ConfigError, InvalidConfiguration
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
    clamp_float,
    clamp_int,
    format_number,
)

_LOGGER = logging.getLogger("CliipShow.Config")

CONFIG_PATH_ENV = "CLIIP_SHOW_CONFIG_PATH"
ENV_PREFIX = "CLIIP_SHOW_"
APP_DIR_NAME = "cliip-show"
CONFIG_FILENAME = "config.toml"
DISPLAY_TABLE = "display"


class ConfigKey(str, Enum):
    POLL_INTERVAL_SECS = "poll_interval_secs"
    HUD_DURATION_SECS = "hud_duration_secs"
    MAX_CHARS_PER_LINE = "max_chars_per_line"
    MAX_LINES = "max_lines"
    HUD_POSITION = "hud_position"
    HUD_SCALE = "hud_scale"
    HUD_BACKGROUND_COLOR = "hud_background_color"

    @property
    def env_var(self) -> str:
        return ENV_PREFIX + self.value.upper()


CONFIG_KEY_NAMES = tuple(key.value for key in ConfigKey)

_FLOAT_RANGES: dict[ConfigKey, tuple[float, float]] = {
    ConfigKey.POLL_INTERVAL_SECS: (MIN_POLL_INTERVAL_SECS, MAX_POLL_INTERVAL_SECS),
    ConfigKey.HUD_DURATION_SECS: (MIN_HUD_DURATION_SECS, MAX_HUD_DURATION_SECS),
    ConfigKey.HUD_SCALE: (MIN_HUD_SCALE, MAX_HUD_SCALE),
}
_INT_RANGES: dict[ConfigKey, tuple[int, int]] = {
    ConfigKey.MAX_CHARS_PER_LINE: (MIN_MAX_CHARS_PER_LINE, MAX_MAX_CHARS_PER_LINE),
    ConfigKey.MAX_LINES: (MIN_MAX_LINES, MAX_MAX_LINES),
}
_ENUM_TYPES: dict[ConfigKey, Any] = {
    ConfigKey.HUD_POSITION: HudPosition,
    ConfigKey.HUD_BACKGROUND_COLOR: HudBackgroundColor,
}


def parse_config_key(raw: str) -> Optional[ConfigKey]:
    """Match a key name written with `_` or `-` separators."""
    token = raw.strip().replace("-", "_")
    for key in ConfigKey:
        if key.value == token:
            return key
    return None


@dataclass
class SavedConfig:
    """Values present in the config file; ``None`` means the key is absent."""

    poll_interval_secs: Optional[float] = None
    hud_duration_secs: Optional[float] = None
    max_chars_per_line: Optional[int] = None
    max_lines: Optional[int] = None
    hud_position: Optional[HudPosition] = None
    hud_scale: Optional[float] = None
    hud_background_color: Optional[HudBackgroundColor] = None

    @classmethod
    def from_settings(cls, settings: DisplaySettings) -> "SavedConfig":
        return cls(**{f.name: getattr(settings, f.name) for f in fields(cls)})

    def items(self) -> list[tuple[ConfigKey, Any]]:
        """Present keys in config-key order."""
        present = []
        for key in ConfigKey:
            value = getattr(self, key.value)
            if value is not None:
                present.append((key, value))
        return present

    def describe(self) -> list[str]:
        return [f"{key.value} = {_display_value(value)}" for key, value in self.items()]


def _display_value(value: Any) -> str:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def config_file_path(
    env: Optional[Mapping[str, str]] = None,
    *,
    platform: Optional[str] = None,
    home: Optional[Path] = None,
) -> Path:
    """Resolve the config file location.

    ``CLIIP_SHOW_CONFIG_PATH`` wins when non-blank. Otherwise the per-user
    configuration directory of the platform is used.
    """
    environ = os.environ if env is None else env
    override = (environ.get(CONFIG_PATH_ENV) or "").strip()
    if override:
        return Path(override).expanduser()

    platform_name = sys.platform if platform is None else platform
    home_dir = Path.home() if home is None else home
    if platform_name == "darwin":
        base = home_dir / "Library" / "Application Support"
    elif platform_name.startswith("win"):
        appdata = (environ.get("APPDATA") or "").strip()
        base = Path(appdata) if appdata else home_dir / "AppData" / "Roaming"
    else:
        xdg = (environ.get("XDG_CONFIG_HOME") or "").strip()
        base = Path(xdg) if xdg else home_dir / ".config"
    return base / APP_DIR_NAME / CONFIG_FILENAME


def _coerce_file_value(key: ConfigKey, value: Any, path: Path) -> Any:
    if key in _FLOAT_RANGES:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"failed to parse config file {path}: {key.value} must be a number, got {value!r}")
        return float(value)
    if key in _INT_RANGES:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(
                f"failed to parse config file {path}: {key.value} must be a non-negative integer, got {value!r}"
            )
        return value
    enum_type = _ENUM_TYPES[key]
    parsed = enum_type.parse(value) if isinstance(value, str) else None
    if parsed is None:
        raise ConfigError(
            f"failed to parse config file {path}: invalid {key.value} value {value!r} "
            f"(allowed: {', '.join(enum_type.names())})"
        )
    return parsed


def parse_config_document(document: Mapping[str, Any], path: Path) -> SavedConfig:
    table = document.get(DISPLAY_TABLE, {})
    if not isinstance(table, dict):
        raise ConfigError(f"failed to parse config file {path}: [{DISPLAY_TABLE}] must be a table")
    saved = SavedConfig()
    for name, value in table.items():
        key = parse_config_key(name)
        if key is None or key.value != name:
            _LOGGER.debug("Ignoring unknown config key %s in %s", name, path)
            continue
        setattr(saved, key.value, _coerce_file_value(key, value, path))
    return saved


def load_config_file(path: Path) -> tuple[SavedConfig, bool]:
    """Read ``path``; returns the saved values and whether the file exists.

    Raises ConfigError when the file exists but cannot be read or parsed.
    """
    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except FileNotFoundError:
        return SavedConfig(), False
    except OSError as exc:
        raise ConfigError(f"failed to read config file {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"failed to parse config file {path}: {exc}") from exc
    return parse_config_document(document, path), True


def _format_toml_value(value: Any) -> str:
    if isinstance(value, Enum):
        return f'"{value.value}"'
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def render_config_toml(saved: SavedConfig) -> str:
    lines = [f"[{DISPLAY_TABLE}]"]
    for key, value in saved.items():
        lines.append(f"{key.value} = {_format_toml_value(value)}")
    return "\n".join(lines) + "\n"


def save_config_file(path: Path, saved: SavedConfig) -> None:
    content = render_config_toml(saved)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to write config file {path}: {exc}") from exc
    _LOGGER.info("Configuration saved to %s", path)


def apply_config_file(base: DisplaySettings, saved: SavedConfig) -> DisplaySettings:
    """Overlay file values on ``base``, clamping numbers into range."""
    updates: dict[str, Any] = {}
    for key, value in saved.items():
        if key in _FLOAT_RANGES:
            minimum, maximum = _FLOAT_RANGES[key]
            updates[key.value] = clamp_float(value, getattr(base, key.value), minimum, maximum)
        elif key in _INT_RANGES:
            minimum, maximum = _INT_RANGES[key]
            updates[key.value] = clamp_int(value, minimum, maximum)
        else:
            updates[key.value] = value
    return replace(base, **updates)


def apply_env_overrides(base: DisplaySettings, env: Optional[Mapping[str, str]] = None) -> DisplaySettings:
    """Overlay ``CLIIP_SHOW_*`` variables; unparsable values keep the previous value."""
    environ = os.environ if env is None else env
    updates: dict[str, Any] = {}
    for key in ConfigKey:
        raw = environ.get(key.env_var)
        if raw is None:
            continue
        raw = raw.strip()
        current = getattr(base, key.value)
        if key in _FLOAT_RANGES:
            minimum, maximum = _FLOAT_RANGES[key]
            try:
                parsed = float(raw)
            except ValueError:
                _LOGGER.warning("Ignoring %s=%r: not a number", key.env_var, raw)
                continue
            updates[key.value] = clamp_float(parsed, current, minimum, maximum)
        elif key in _INT_RANGES:
            minimum, maximum = _INT_RANGES[key]
            try:
                parsed_int = int(raw)
            except ValueError:
                parsed_int = -1
            if parsed_int < 0:
                _LOGGER.warning("Ignoring %s=%r: not a non-negative integer", key.env_var, raw)
                continue
            updates[key.value] = clamp_int(parsed_int, minimum, maximum)
        else:
            option = _ENUM_TYPES[key].parse(raw)
            if option is None:
                _LOGGER.warning("Ignoring %s=%r: unknown option", key.env_var, raw)
                continue
            updates[key.value] = option
    if updates:
        _LOGGER.debug("Applied env overrides: %s", ", ".join(sorted(updates)))
    return replace(base, **updates)


def effective_settings(saved: SavedConfig, env: Optional[Mapping[str, str]] = None) -> DisplaySettings:
    return apply_env_overrides(apply_config_file(DisplaySettings(), saved), env)


def resolve_display_settings(
    env: Optional[Mapping[str, str]] = None,
    *,
    path: Optional[Path] = None,
) -> DisplaySettings:
    """Defaults, then the config file, then the environment.

    A config file that cannot be read or parsed is reported and skipped.
    """
    saved = SavedConfig()
    config_path = path if path is not None else config_file_path(env)
    try:
        saved, exists = load_config_file(config_path)
    except ConfigError as exc:
        _LOGGER.warning("%s; using defaults", exc)
    else:
        if exists:
            _LOGGER.debug("Loaded config from %s", config_path)
    return effective_settings(saved, env)


def _range_text(minimum: Union[int, float], maximum: Union[int, float]) -> str:
    return f"{_display_value(minimum)}..={_display_value(maximum)}"


def set_config_value(saved: SavedConfig, key: ConfigKey, raw_value: str) -> Optional[str]:
    """Validate ``raw_value`` and store it on ``saved``.

    Returns a warning when the value was clamped into range. Raises
    InvalidConfiguration for values that cannot be parsed.
    """
    raw = raw_value.strip()
    if key in _FLOAT_RANGES:
        minimum, maximum = _FLOAT_RANGES[key]
        try:
            parsed = float(raw)
        except ValueError:
            raise InvalidConfiguration(f"invalid float value for {key.value}: {raw}") from None
        if not math.isfinite(parsed):
            raise InvalidConfiguration(f"invalid finite float value for {key.value}: {raw}")
        clamped = min(max(parsed, minimum), maximum)
        setattr(saved, key.value, clamped)
        if clamped != parsed:
            return (
                f"{key.value} was clamped from {format_number(parsed)} to {format_number(clamped)} "
                f"(allowed range: {_range_text(minimum, maximum)})"
            )
        return None

    if key in _INT_RANGES:
        minimum_int, maximum_int = _INT_RANGES[key]
        try:
            parsed_int = int(raw)
        except ValueError:
            parsed_int = -1
        if parsed_int < 0:
            raise InvalidConfiguration(f"invalid integer value for {key.value}: {raw}")
        clamped_int = clamp_int(parsed_int, minimum_int, maximum_int)
        setattr(saved, key.value, clamped_int)
        if clamped_int != parsed_int:
            return (
                f"{key.value} was clamped from {parsed_int} to {clamped_int} "
                f"(allowed range: {_range_text(minimum_int, maximum_int)})"
            )
        return None

    enum_type = _ENUM_TYPES[key]
    option = enum_type.parse(raw)
    if option is None:
        raise InvalidConfiguration(
            f"invalid {key.value} value: {raw} (allowed: {', '.join(enum_type.names())})"
        )
    setattr(saved, key.value, option)
    return None
