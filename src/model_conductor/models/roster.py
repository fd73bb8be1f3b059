"""Roster and worker launch representations."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RosterEntry(BaseModel):
    name: str
    source: str
    description: str


class OrchestratorSettings(BaseModel):
    """Flat ``orchestrator:`` block; unknown keys are kept as extras."""

    model_config = ConfigDict(extra="allow")

    strategy: Optional[str] = None
    default_expert: Optional[str] = None


class Roster(BaseModel):
    experts: List[RosterEntry] = Field(default_factory=list)
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)


class LaunchSpec(BaseModel):
    """One ``mcpServers`` entry from the worker launch manifest."""

    model_config = ConfigDict(strict=True)

    command: str = Field(min_length=1)
    args: List[str]
    env: Dict[str, str] = Field(default_factory=dict)


class WorkerLaunch(BaseModel):
    name: str
    description: str
    command: str
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_entry(cls, entry: RosterEntry, spec: LaunchSpec) -> "WorkerLaunch":
        return cls(
            name=entry.name,
            description=entry.description,
            command=spec.command,
            args=list(spec.args),
            env=dict(spec.env),
        )


class SpawnReport(BaseModel):
    started: Dict[str, int] = Field(default_factory=dict)
    failed: Dict[str, str] = Field(default_factory=dict)
