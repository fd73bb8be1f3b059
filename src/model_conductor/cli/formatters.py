from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence

from model_conductor.models.enums import Role


def table(headers: Sequence[str], rows: List[List[str]], max_widths: Optional[Dict[int, int]] = None) -> str:
    """Format rows as a left-aligned ASCII table."""
    if not rows:
        return "No data"

    widths = [len(header) for header in headers]
    for row in rows:
        for index, cell in enumerate(row[: len(widths)]):
            widths[index] = max(widths[index], len(str(cell)))
    for index, limit in (max_widths or {}).items():
        if index < len(widths):
            widths[index] = min(widths[index], limit)

    def line(cells: Sequence[str]) -> str:
        return "  ".join(str(cell)[: widths[i]].ljust(widths[i]) for i, cell in enumerate(cells)).rstrip()

    return "\n".join([line(headers), line(["-" * w for w in widths])] + [line(row) for row in rows])


def role_rows(assignments: Mapping[Role, Optional[str]]) -> List[List[str]]:
    return [[role.value, assignments.get(role) or "-"] for role in Role.selection_order()]
