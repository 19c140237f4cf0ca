"""
Base service - shared logger and settings wiring for every service.
"""
from typing import Optional

from record_validator.core.config import Settings, get_settings
from record_validator.core.logging import get_logger


class BaseService:
    """
    Base class for services.

    Features:
    - Logger named after the concrete service module
    - Settings access, injectable for tests
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.logger = get_logger(self.__class__.__module__)
        self.settings = settings or get_settings()

    def __repr__(self):
        return f"<{self.__class__.__name__} environment={self.settings.environment}>"
