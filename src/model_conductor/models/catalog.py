"""Pydantic models for the inference server's model listing."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Model(BaseModel):
    """A single loaded model as reported by the server."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    object: Optional[str] = None
    owned_by: Optional[str] = None


class ModelListResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    data: List[Model]
    object: Optional[str] = None


Catalog = List[Model]


def model_ids(catalog: Catalog) -> List[str]:
    return [model.id for model in catalog]
