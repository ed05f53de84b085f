import logging
import os

import pytest

# Force Qt to run headless for CI/CLI test runs; must happen before any QApplication exists.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication  # noqa: E402

from cliip_show import logging_utils  # noqa: E402


@pytest.fixture(scope="session")
def qt_app():
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


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
