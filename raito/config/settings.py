"""
Raito Client Configuration Settings

Default connection parameters for the Raito client. Every value can be
overridden through the environment; options passed to the client take
precedence over these defaults.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Client configuration settings."""

    # Network settings
    HOST: str = os.environ.get("RAITO_HOST", "localhost")
    PORT: int = int(os.environ.get("RAITO_PORT", "9180"))
    SCHEME: str = "ws"

    # Timeouts in seconds (0 disables the deadline)
    CONNECT_TIMEOUT: float = float(os.environ.get("RAITO_CONNECT_TIMEOUT", "10"))
    REQUEST_TIMEOUT: float = float(os.environ.get("RAITO_REQUEST_TIMEOUT", "10"))

    # Logging settings
    DEBUG: bool = os.environ.get("RAITO_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("RAITO_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
