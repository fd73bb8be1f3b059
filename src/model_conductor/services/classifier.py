"""Name-pattern heuristics mapping catalog entries to roles."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from model_conductor.models.catalog import Catalog, model_ids
from model_conductor.models.enums import Role

LOG = logging.getLogger(__name__)

PatternTable = Mapping[Role, Tuple[str, ...]]

# Most preferred first. Exact known models come before generic size tokens.
DEFAULT_ROLE_PATTERNS: Dict[Role, Tuple[str, ...]] = {
    Role.PLANNER: (
        r"gpt-oss-120b",
        r"120b",
        r"70b",
        r"llama-?3-?70b",
        r"gpt-4",
        r"opus",
        r"claude-3-opus",
        r"large",
        r"command-r-plus",
    ),
    Role.PRIMARY: (
        r"gpt-oss-20b",
        r"gemma-3-12b",
        r"mistral-small",
        r"mixtral-8x7b",
        r"24b",
        r"20b",
        r"12b",
        r"8b",
        r"7b",
        r"medium",
    ),
    Role.CODER: (
        r"overthinking-rustacean",
        r"behemoth",
        r"devstral",
        r"deepseek-coder",
        r"codestral",
        r"code",
        r"qwen-coder",
        r"rust",
    ),
    Role.EMBEDDING: (
        r"nomic-embed",
        r"text-embedding",
        r"bert",
        r"bge",
    ),
}


class PatternTableError(RuntimeError):
    """Raised when a pattern override file cannot be used."""


def _validate_patterns(role: Role, patterns: object) -> Tuple[str, ...]:
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        raise PatternTableError(f"Patterns for role '{role.value}' must be a list of strings.")
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise PatternTableError(
                f"Invalid pattern {pattern!r} for role '{role.value}': {exc}"
            ) from exc
    return tuple(patterns)


def load_pattern_table(path: Optional[Path] = None) -> Dict[Role, Tuple[str, ...]]:
    """Return the default table with any per-role lists from ``path`` replacing them."""
    table = dict(DEFAULT_ROLE_PATTERNS)
    if path is None:
        return table

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise PatternTableError(f"Unable to read role patterns from {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise PatternTableError(f"Role pattern file {path} must contain a JSON object.")

    for key, patterns in data.items():
        try:
            role = Role(key)
        except ValueError as exc:
            raise PatternTableError(f"Unknown role '{key}' in {path}.") from exc
        table[role] = _validate_patterns(role, patterns)

    LOG.debug("Loaded role pattern overrides for %s from %s", sorted(data), path)
    return table


def _first_match(ids: Sequence[str], patterns: Iterable[str]) -> Optional[str]:
    for pattern in patterns:
        compiled = re.compile(pattern, re.IGNORECASE)
        for model_id in ids:
            if compiled.search(model_id):
                return model_id
    return None


def classify(catalog: Catalog, role: Role, table: Optional[PatternTable] = None) -> Optional[str]:
    """Best-guess model identifier for ``role``, or None.

    Patterns are tried in priority order; for each pattern the catalog is
    scanned in its given order.
    """
    patterns = (table or DEFAULT_ROLE_PATTERNS).get(Role(role), ())
    return _first_match(model_ids(catalog), patterns)


def resolve_default(
    catalog: Catalog,
    role: Role,
    *,
    table: Optional[PatternTable] = None,
    preferred: Optional[str] = None,
    planner: Optional[str] = None,
) -> Optional[str]:
    """Seed value for the selector.

    Heuristic match, then the global preference if it is loaded, then the
    planner's pick for primary/coder, then the first catalog entry.
    """
    guess = classify(catalog, role, table)
    if guess:
        return guess

    ids = model_ids(catalog)
    if preferred and preferred in ids:
        return preferred

    if Role(role) in (Role.PRIMARY, Role.CODER) and planner:
        return planner

    return ids[0] if ids else None
