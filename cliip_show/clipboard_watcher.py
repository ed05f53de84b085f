"""Polling clipboard change detection."""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Callable, Optional

_LOGGER = logging.getLogger("CliipShow.Clipboard")


def content_token(text: str) -> str:
    """Stable change-detection token for clipboard text."""
    return hashlib.sha1(text.encode("utf-8", "surrogatepass")).hexdigest()


@dataclass(frozen=True)
class ClipboardSnapshot:
    text: str
    token: str
    generation: int

    @classmethod
    def capture(cls, text: str, generation: int) -> "ClipboardSnapshot":
        return cls(text=text, token=content_token(text), generation=generation)


class ClipboardWatcher:
    """Compares successive clipboard reads and reports changed text.

    ``read_text`` returns the current plain text, or ``None`` when the clipboard
    holds no text. The first successful read only records a baseline, so text
    that was already on the clipboard at startup is never shown.
    """

    def __init__(
        self,
        read_text: Callable[[], Optional[str]],
        *,
        on_change: Optional[Callable[[ClipboardSnapshot], None]] = None,
    ) -> None:
        self._read_text = read_text
        self._on_change = on_change
        self._last_token: Optional[str] = None
        self._has_baseline = False
        self._generation = 0
        self._failures = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def has_baseline(self) -> bool:
        return self._has_baseline

    def poll(self) -> Optional[ClipboardSnapshot]:
        """Read the clipboard once; return a snapshot only when the text changed."""
        try:
            text = self._read_text()
        except Exception as exc:
            self._failures += 1
            # Only the first failure of a streak is a warning; the rest would flood the log.
            if self._failures == 1:
                _LOGGER.warning("Clipboard read failed; retrying on next poll: %s", exc)
            else:
                _LOGGER.debug("Clipboard read failed again (%d in a row): %s", self._failures, exc)
            return None
        if self._failures:
            _LOGGER.debug("Clipboard read recovered after %d failure(s)", self._failures)
            self._failures = 0

        if text is None:
            text = ""
        token = content_token(text)
        if not self._has_baseline:
            self._has_baseline = True
            self._last_token = token
            _LOGGER.debug("Clipboard baseline recorded (%d chars)", len(text))
            return None
        if token == self._last_token:
            return None

        self._last_token = token
        self._generation += 1
        snapshot = ClipboardSnapshot(text=text, token=token, generation=self._generation)
        if self._on_change is not None:
            self._on_change(snapshot)
        return snapshot
