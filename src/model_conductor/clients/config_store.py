"""Persistence for the role configuration and the primary-model marker."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from model_conductor.models.role_config import RoleConfiguration
from model_conductor.utils.pathing import atomic_write_text

LOG = logging.getLogger(__name__)


def load_fast_path(path: Path) -> Optional[RoleConfiguration]:
    """Return the persisted configuration if it is complete, else None.

    Absent, unreadable, malformed and partial records all fall through to a
    fresh selection; nothing is merged.
    """
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return RoleConfiguration.model_validate(data)
    except (OSError, ValueError, ValidationError) as exc:
        LOG.info("Ignoring persisted role configuration at %s: %s", path, exc)
        return None


def save(path: Path, config: RoleConfiguration) -> None:
    payload = config.model_dump(by_alias=True)
    atomic_write_text(path, json.dumps(payload, indent=2) + "\n")
    LOG.info("Saved role configuration to %s", path)


def write_marker(path: Path, model_id: str) -> None:
    """Write the bare primary identifier for shell consumers."""
    atomic_write_text(path, model_id)


def read_marker(path: Path) -> Optional[str]:
    try:
        value = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return value or None
