"""Logging setup shared by the API and the indexer CLI."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level.upper())

    # Google SDKs are chatty at INFO
    for noisy in ("google", "urllib3", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
