import logging
import sys

def setup_logging():
    """
    Configure the application logger. Modules log through children of it,
    e.g. ``logging.getLogger("checkme.chat")``.
    """
    logger = logging.getLogger("checkme")
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(handler)

    return logger

logger = setup_logging()

def get_logger(name: str) -> logging.Logger:
    return logger.getChild(name)
