from __future__ import annotations

import logging

PACKAGE_LOGGER = "oidc_verifier"
HANDLER_NAME = "oidc_verifier.stderr"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO", *, stream_handler: bool = False) -> logging.Logger:
    """
    Set the level of the ``oidc_verifier`` logger tree and return its root.

    Notes:
    - A host application normally owns handlers; records propagate to it.
    - ``stream_handler=True`` (``OIDC_LOG_TO_STDERR=1``) attaches one stderr
      handler for standalone use. Calling again does not add a second one.
    - Unknown level names raise ValueError instead of being ignored.
    """

    resolved = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(resolved)
    package_logger.propagate = True

    if stream_handler and not any(h.get_name() == HANDLER_NAME for h in package_logger.handlers):
        handler = logging.StreamHandler()
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
    return package_logger
