"""Single source of the cliip-show version string."""

__version__ = "0.4.0"
