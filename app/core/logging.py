from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=_FORMAT)
    # SQL echo is controlled separately; keep the engine quiet at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
