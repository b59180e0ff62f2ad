"""Logging setup shared by the ledger API and its services."""

import logging


def configure_logging() -> None:
    """Send every `practice_ledger.*` logger to one stream handler at INFO.

    Safe to call more than once; later calls keep the existing handler.
    """
    logger = logging.getLogger("practice_ledger")
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
