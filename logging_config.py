"""
Logging setup shared by the CLI and scripts.
"""
import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)-8s - [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once. Level comes from the argument, then $CONTRIB_LOG_LEVEL, then WARNING."""
    level_name = (level or os.getenv('CONTRIB_LOG_LEVEL') or 'WARNING').upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )
