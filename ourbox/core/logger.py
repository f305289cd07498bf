import logging
from ourbox.core.config import LOG_LEVEL

def get_logger(name: str):
    logging.basicConfig(level=LOG_LEVEL)
    logger = logging.getLogger(name)
    return logger

# Example usage: logger = get_logger(__name__)
