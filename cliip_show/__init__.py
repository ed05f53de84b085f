"""Clipboard HUD: shows copied text briefly in an on-screen overlay."""

from cliip_show.version import __version__

__all__ = ["__version__"]
