from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

APP_LOGGER = "task_api"

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# PUBLIC_INTERFACE
def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Configure the application logger with:
    - Console handler on stderr
    - Optional file handler (UTF-8) when log_file is given

    Only the 'task_api' logger is touched; records still propagate to the root
    logger so test capture and host process configuration keep working.
    Calling this again replaces the handlers installed by a previous call.
    """
    logger = logging.getLogger(APP_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_task_api_handler", False):
            logger.removeHandler(handler)
            handler.close()

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(fmt)
    console._task_api_handler = True  # type: ignore[attr-defined]
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(path), encoding="utf-8")
        file_handler.setFormatter(fmt)
        file_handler._task_api_handler = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    return logger
