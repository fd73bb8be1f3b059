"""Readers for the expert roster document and the worker launch manifest.

The roster reader understands exactly one flat schema::

    experts:
      - name: "coder"
        source: "filesystem"
        description: "Writes code"
    orchestrator:
      strategy: "router"
      default_expert: "coder"

It is not a YAML parser. If the document grows nesting, switch the roster to
a structured format instead of extending this reader.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from model_conductor.models.roster import LaunchSpec, OrchestratorSettings, Roster, RosterEntry

LOG = logging.getLogger(__name__)

_EXPERT_FIELDS = ("source", "description")


class RosterError(RuntimeError):
    """Raised when the roster or manifest document cannot be used."""


def _unquote(value: str, lineno: int) -> str:
    if value[:1] in ("'", '"'):
        quote = value[0]
        if len(value) < 2 or not value.endswith(quote):
            raise RosterError(f"Line {lineno}: unterminated quoted value {value!r}.")
        return value[1:-1]
    # Unquoted values may carry a trailing comment.
    return value.split(" #", 1)[0].strip()


def _split_pair(text: str, lineno: int) -> Optional[Tuple[str, str]]:
    if ":" not in text:
        return None
    key, _, value = text.partition(":")
    return key.strip(), _unquote(value.strip(), lineno)


def _finish_expert(current: Optional[Dict[str, str]], lineno: int) -> Optional[RosterEntry]:
    if current is None:
        return None
    missing = [field for field in _EXPERT_FIELDS if field not in current]
    if missing:
        raise RosterError(
            f"Expert '{current['name']}' ending before line {lineno} is missing: {', '.join(missing)}."
        )
    return RosterEntry(**current)


def parse_roster(text: str) -> Roster:
    experts: List[RosterEntry] = []
    orchestrator: Dict[str, str] = {}
    section: Optional[str] = None
    seen_experts = False
    current: Optional[Dict[str, str]] = None

    lines = text.splitlines()
    for lineno, raw in enumerate(lines, start=1):
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            continue

        if not raw[:1].isspace() and not stripped.startswith("-"):
            entry = _finish_expert(current, lineno)
            if entry:
                experts.append(entry)
            current = None
            key, _, rest = stripped.partition(":")
            section = key.strip() if not rest.strip() else None
            seen_experts = seen_experts or section == "experts"
            continue

        if section == "experts":
            if stripped.startswith("-"):
                entry = _finish_expert(current, lineno)
                if entry:
                    experts.append(entry)
                pair = _split_pair(stripped[1:].strip(), lineno)
                if pair is None or pair[0] != "name":
                    raise RosterError(f"Line {lineno}: expert items must start with 'name:'.")
                current = {"name": pair[1]}
                continue

            pair = _split_pair(stripped, lineno)
            if pair is None or pair[0] not in _EXPERT_FIELDS:
                continue
            if current is None:
                raise RosterError(f"Line {lineno}: '{pair[0]}' appears before any expert name.")
            current[pair[0]] = pair[1]

        elif section == "orchestrator":
            pair = _split_pair(stripped, lineno)
            if pair is not None:
                orchestrator[pair[0]] = pair[1]

    entry = _finish_expert(current, len(lines) + 1)
    if entry:
        experts.append(entry)

    if not seen_experts:
        raise RosterError("Roster document has no 'experts:' section.")

    return Roster(experts=experts, orchestrator=OrchestratorSettings(**orchestrator))


def load_roster(path: Path) -> Roster:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise RosterError(f"Unable to read roster {path}: {exc}") from exc
    roster = parse_roster(text)
    LOG.info("Loaded %d experts from %s", len(roster.experts), path)
    return roster


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "entry"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def load_manifest(path: Path) -> Tuple[Dict[str, LaunchSpec], Dict[str, str]]:
    """Return valid launch specs and per-entry errors for invalid ones."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise RosterError(f"Unable to read worker manifest {path}: {exc}") from exc

    servers = data.get("mcpServers") if isinstance(data, dict) else None
    if not isinstance(servers, dict):
        raise RosterError(f"Worker manifest {path} has no 'mcpServers' object.")

    specs: Dict[str, LaunchSpec] = {}
    errors: Dict[str, str] = {}
    for name, entry in servers.items():
        try:
            specs[name] = LaunchSpec.model_validate(entry)
        except ValidationError as exc:
            errors[name] = _describe(exc)
            LOG.warning("Skipping worker '%s' in %s: %s", name, path, errors[name])
    return specs, errors
