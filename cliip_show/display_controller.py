"""Timed show/hide state machine for the clipboard HUD.

The controller is Qt-free: the clock, the single-shot timer and the overlay
surface are injected so the same logic runs under QTimer in the app and under
plain stubs in tests.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from cliip_show.clipboard_watcher import ClipboardSnapshot
from cliip_show.pixel_image import PixelImage
from cliip_show.rasterizer import render
from cliip_show.settings import DisplaySettings, StyleConfig
from cliip_show.text_layout import LayoutLimits, LayoutResult, layout

_LOGGER = logging.getLogger("CliipShow.Display")

LayoutFn = Callable[[str, LayoutLimits], LayoutResult]
RenderFn = Callable[[LayoutResult, StyleConfig], PixelImage]


class DisplayState(str, Enum):
    IDLE = "idle"
    SHOWING = "showing"


@dataclass(frozen=True)
class DisplaySession:
    snapshot: ClipboardSnapshot
    layout: LayoutResult
    image: PixelImage
    deadline: float


class DisplayController:
    """Shows one HUD session at a time; a newer change always replaces it."""

    def __init__(
        self,
        settings: DisplaySettings,
        *,
        present: Callable[[PixelImage, StyleConfig], None],
        hide: Callable[[], None],
        clock: Callable[[], float] = time.monotonic,
        layout_fn: LayoutFn = layout,
        render_fn: RenderFn = render,
        on_state_change: Optional[Callable[[DisplayState, DisplayState], None]] = None,
    ) -> None:
        self._settings = settings
        self._present = present
        self._hide = hide
        self._clock = clock
        self._layout_fn = layout_fn
        self._render_fn = render_fn
        self._on_state_change = on_state_change
        self._arm_timer: Optional[Callable[[float], None]] = None
        self._cancel_timer: Optional[Callable[[], None]] = None
        self._state = DisplayState.IDLE
        self._session: Optional[DisplaySession] = None
        self._last_token: Optional[str] = None

    @property
    def state(self) -> DisplayState:
        return self._state

    @property
    def session(self) -> Optional[DisplaySession]:
        return self._session

    @property
    def settings(self) -> DisplaySettings:
        return self._settings

    def configure_timer_hooks(
        self,
        *,
        arm_timer: Callable[[float], None],
        cancel_timer: Callable[[], None],
    ) -> None:
        self._arm_timer = arm_timer
        self._cancel_timer = cancel_timer

    def update_settings(self, settings: DisplaySettings) -> None:
        """Replace the settings; the running session keeps its deadline."""
        self._settings = settings

    def handle_change(self, snapshot: ClipboardSnapshot) -> bool:
        """Process a clipboard change event. Returns True when a session was shown."""
        current = self._session
        if snapshot.token == self._last_token or (current is not None and current.snapshot.token == snapshot.token):
            _LOGGER.debug("Ignoring repeated clipboard token %s", snapshot.token[:12])
            return False
        self._last_token = snapshot.token

        result = self._layout_fn(snapshot.text, self._settings.layout_limits())
        if result.is_empty:
            _LOGGER.debug("Ignoring clipboard change with empty text (generation=%d)", snapshot.generation)
            return False

        style = self._settings.style()
        image = self._render_fn(result, style)
        deadline = self._clock() + self._settings.hud_duration_secs
        self._cancel()
        self._session = DisplaySession(snapshot=snapshot, layout=result, image=image, deadline=deadline)
        self._present(image, style)
        self._set_state(DisplayState.SHOWING)
        self._arm(self._settings.hud_duration_secs)
        _LOGGER.debug(
            "Showing HUD: generation=%d chars=%d lines=%d truncated=%s size=%dx%d",
            snapshot.generation,
            len(snapshot.text),
            len(result.lines),
            result.truncated,
            image.width,
            image.height,
        )
        return True

    def tick(self, now: Optional[float] = None) -> bool:
        """Hide the session once its deadline has passed. Returns True when hidden.

        A timer that fired before the deadline is re-armed for the remainder.
        """
        session = self._session
        if self._state is not DisplayState.SHOWING or session is None:
            return False
        current_time = self._clock() if now is None else now
        remaining = session.deadline - current_time
        if remaining > 0:
            self._arm(remaining)
            return False
        self._end_session("expired")
        return True

    def dismiss(self) -> None:
        """Hide immediately and drop the pending timer."""
        self._cancel()
        if self._state is DisplayState.SHOWING:
            self._end_session("dismissed")

    def _end_session(self, reason: str) -> None:
        session = self._session
        self._session = None
        self._hide()
        self._set_state(DisplayState.IDLE)
        if session is not None:
            _LOGGER.debug("Hid HUD (%s): generation=%d", reason, session.snapshot.generation)

    def _set_state(self, state: DisplayState) -> None:
        previous = self._state
        self._state = state
        if self._on_state_change is not None and previous is not state:
            self._on_state_change(previous, state)

    def _arm(self, seconds: float) -> None:
        if self._arm_timer is not None:
            self._arm_timer(seconds)

    def _cancel(self) -> None:
        if self._cancel_timer is not None:
            self._cancel_timer()
