from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from filterchain.domain.entities.applied_filter import AppliedFilter, FilterSpec


class FilterRequest(BaseModel):
    """Request model for applying or previewing a filter."""
    image_path: str = Field(..., description="Storage path of the image", examples=["/uploads/3f2a9c.jpg"])
    filter_name: str = Field(..., description="Registered filter name", examples=["brightness"])
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Raw filter parameters; values are typed server side (float, then int, then string)",
        examples=[{"level": "1.2"}],
    )


class ResetRequest(BaseModel):
    image_path: str = Field(..., description="Any original or derived image path")


class AIGenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="Text description of the image to create")


class AIEditRequest(BaseModel):
    image_path: str = Field(..., description="Image to edit")
    command: str = Field(..., min_length=1, description="Editing instruction", examples=["make it snowy"])


class AppliedFilterItem(BaseModel):
    filter_name: str = Field(..., description="Name of the applied filter")
    parameters: dict[str, Any] = Field(default_factory=dict, description="Typed parameters")

    @classmethod
    def from_entity(cls, applied: AppliedFilter) -> AppliedFilterItem:
        return cls(filter_name=applied.filter_name, parameters=dict(applied.parameters))


class FilterInfo(BaseModel):
    name: str
    description: str

    @classmethod
    def from_entity(cls, spec: FilterSpec) -> FilterInfo:
        return cls(name=spec.name, description=spec.description)


class UploadResponse(BaseModel):
    path: str = Field(..., description="Storage path of the uploaded image")
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class ApplyFilterResponse(BaseModel):
    path: str = Field(..., description="Path of the derived image")
    original_path: str = Field(..., description="Root image the chain is replayed on")
    applied_filters: list[AppliedFilterItem] = Field(..., description="Full chain, in order")


class PathResponse(BaseModel):
    path: str
