from __future__ import annotations

"""Service base class carrying run configuration and a logger."""

import logging

from vianomaly.core.config import ConfigManager
from vianomaly.core.logger import Logger


class BaseService:
    """Base class for service helpers."""

    def __init__(
        self,
        config: ConfigManager | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config or ConfigManager()
        self.logger = logger or Logger.get_logger(type(self).__module__)
