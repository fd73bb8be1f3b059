"""Persisted four-role model assignment."""

from __future__ import annotations

from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from model_conductor.models.enums import Role


class RoleConfiguration(BaseModel):
    """Complete role → model mapping. Partial records never validate."""

    model_config = ConfigDict(frozen=True)

    primary_model: str = Field(alias="primaryModel")
    planner_model: str = Field(alias="plannerModel")
    coder_model: str = Field(alias="coderModel")
    embedding_model: str = Field(alias="embeddingModel")

    @field_validator("primary_model", "planner_model", "coder_model", "embedding_model")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("model identifier must not be blank")
        return value

    def for_role(self, role: Role) -> str:
        return getattr(self, f"{Role(role).value}_model")

    def as_role_mapping(self) -> dict[Role, str]:
        return {role: self.for_role(role) for role in Role.selection_order()}

    @classmethod
    def from_selection(cls, selection: Mapping[Role, str]) -> "RoleConfiguration":
        return cls.model_validate(
            {f"{Role(role).value}Model": model_id for role, model_id in selection.items()}
        )
