"""
Environment-driven settings.
"""

import os
from pathlib import Path
from typing import Optional

import botocore.config
from pydantic import BaseModel


DEFAULT_REGION = "us-east-1"


class Settings(BaseModel):
    home: str = ".rekon"
    region: str = DEFAULT_REGION
    profile: Optional[str] = None
    log_level: str = "WARNING"
    connect_timeout: int = 5
    read_timeout: int = 30
    max_attempts: int = 5

    @property
    def home_path(self) -> Path:
        return Path(self.home).resolve()


def load_settings(**overrides) -> Settings:
    """
    Build settings from the environment.

    Args:
        **overrides: Values that win over the environment (None is ignored)

    Returns:
        Settings: Resolved settings
    """
    values = {
        "home": os.environ.get("REKON_HOME", ".rekon"),
        "region": os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or DEFAULT_REGION,
        "profile": os.environ.get("AWS_PROFILE"),
        "log_level": os.environ.get("REKON_LOG_LEVEL", "WARNING").upper(),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)


def boto_config(settings: Settings) -> botocore.config.Config:
    """Client config shared by every boto3 client we build."""
    return botocore.config.Config(
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
        retries={"total_max_attempts": settings.max_attempts, "mode": "standard"},
    )
