"""
Logging configuration.
"""
import logging
import sys

# Create logger
logger = logging.getLogger("fabricwall")
logger.setLevel(logging.INFO)

# Console handler (stderr keeps stdout free for check lines and rendered SQL)
console_handler = logging.StreamHandler(sys.stderr)
console_handler.setLevel(logging.INFO)

# Formatter
formatter = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
console_handler.setFormatter(formatter)

# Add handler
if not logger.handlers:
    logger.addHandler(console_handler)


def set_verbose(verbose: bool) -> None:
    """Switch the toolkit logger between INFO and DEBUG."""
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    console_handler.setLevel(level)
