"""Process-level settings resolved once at entry and passed to components."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

from model_conductor import constants

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class Settings(BaseModel):
    """Everything components would otherwise read from the environment."""

    model_config = ConfigDict(frozen=True)

    base_url: str = constants.DEFAULT_BASE_URL
    non_interactive: bool = False
    primary_model: Optional[str] = None
    preferred_model: Optional[str] = None
    patterns_file: Optional[Path] = None
    config_path: Path = Path(constants.ROLE_CONFIG_FILENAME)
    marker_path: Path = Path(constants.MARKER_FILENAME)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> "Settings":
        env = os.environ if environ is None else environ
        workdir = Path.cwd() if cwd is None else cwd

        patterns_file: Optional[Path] = None
        if _blank_to_none(env.get(constants.PATTERNS_ENV_VAR)):
            patterns_file = Path(env[constants.PATTERNS_ENV_VAR].strip()).expanduser()
        elif constants.PATTERNS_FILE.is_file():
            patterns_file = constants.PATTERNS_FILE

        base_url = _blank_to_none(env.get(constants.BASE_URL_ENV_VAR)) or constants.DEFAULT_BASE_URL

        return cls(
            base_url=base_url.rstrip("/"),
            non_interactive=_flag(env.get(constants.NON_INTERACTIVE_ENV_VAR)),
            primary_model=_blank_to_none(env.get(constants.PRIMARY_MODEL_ENV_VAR)),
            preferred_model=_blank_to_none(env.get(constants.PREFERRED_MODEL_ENV_VAR)),
            patterns_file=patterns_file,
            config_path=workdir / constants.ROLE_CONFIG_FILENAME,
            marker_path=workdir / constants.MARKER_FILENAME,
        )
