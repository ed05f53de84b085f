import logging
import os

import pytest

# CLI image modes must never open a window during test runs.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from cliip_show import logging_utils  # noqa: E402
from cliip_show.config_store import CONFIG_PATH_ENV, ConfigKey  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point every CLI run at a throwaway config file with no env overrides."""
    path = tmp_path / "config" / "config.toml"
    monkeypatch.setenv(CONFIG_PATH_ENV, str(path))
    for key in ConfigKey:
        monkeypatch.delenv(key.env_var, raising=False)
    monkeypatch.delenv("CLIIP_SHOW_DEBUG", raising=False)
    monkeypatch.delenv("CLIIP_SHOW_PROPAGATE_LOGS", raising=False)
    return path


@pytest.fixture(autouse=True)
def _reset_cliip_logging():
    yield
    logger = logging.getLogger(logging_utils.ROOT_LOGGER_NAME)
    for handler in list(logging_utils._INSTALLED_HANDLERS):
        logger.removeHandler(handler)
        handler.close()
    logging_utils._INSTALLED_HANDLERS.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
