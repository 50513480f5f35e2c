"""
Runtime configuration for Shekho.

Settings come from environment variables, optionally loaded from a .env
file in the working directory:

  SHEKHO_PROGRESS_DB     progress database path (default: ~/.shekho/progress.db)
  SHEKHO_ASSETS_DIR      directory holding scenario images (default: shekho/data/images)
  SHEKHO_REACHABILITY    first_only | first_two | sequential | open
  SHEKHO_TTS_BACKEND     google | http
  SHEKHO_TTS_ENDPOINT    URL of the /api/tts endpoint (http backend)
  SHEKHO_TTS_TIMEOUT     request timeout in seconds (http backend)
  SHEKHO_LOG_LEVEL       DEBUG | INFO | WARNING | ERROR
"""

import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from shekho.classroom.loader import DEFAULT_ASSETS_DIR
from shekho.classroom.progress import DEFAULT_PROGRESS_DB
from shekho.classroom.reachability import DEFAULT_POLICY, POLICIES


ENV_PREFIX = "SHEKHO_"


class Settings(BaseModel):
    progress_db: Path = DEFAULT_PROGRESS_DB
    assets_dir: Path = DEFAULT_ASSETS_DIR
    reachability: str = DEFAULT_POLICY
    tts_backend: Literal["google", "http"] = "google"
    tts_endpoint: str = "http://localhost:8080/api/tts"
    tts_timeout: float = Field(30.0, gt=0)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("reachability")
    @classmethod
    def _known_policy(cls, value: str) -> str:
        if value not in POLICIES:
            raise ValueError(f"expected one of {sorted(POLICIES)}")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value):
        return value.upper() if isinstance(value, str) else value


def load_settings(env: Optional[dict[str, str]] = None, dotenv: bool = True) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env: Mapping to read instead of os.environ
        dotenv: Load a .env file into os.environ first

    Raises:
        pydantic.ValidationError: If a variable has an invalid value
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = dict(os.environ)

    values = {
        name[len(ENV_PREFIX):].lower(): value
        for name, value in env.items()
        if name.startswith(ENV_PREFIX) and value != ""
    }
    return Settings(**{k: v for k, v in values.items() if k in Settings.model_fields})
