# logger_setup.py
"""
Logging setup for the Titanic Survival Pipeline.

Library modules use ``logging.getLogger(__name__)`` without handlers; entry
points (the Streamlit app) call ``setup_logger`` once so records from every
module reach the console.
"""
import logging
import sys
from typing import Optional


def setup_logger(level: int = logging.INFO, format_string: Optional[str] = None) -> logging.Logger:
    """
    Attaches a stdout handler to the root logger.

    Args:
        level (int): Logging level for the handler and the root logger.
        format_string (str): Custom format string (default: timestamp + level + message).

    Returns:
        The configured root logger.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    # Streamlit reruns the script on every interaction; avoid stacking handlers
    for handler in list(logger.handlers):
        if getattr(handler, "_titanic_pipeline", False):
            logger.removeHandler(handler)

    if format_string is None:
        format_string = "[%(asctime)s] %(levelname)s - %(message)s"

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S"))
    console_handler._titanic_pipeline = True
    logger.addHandler(console_handler)

    return logger
