"""
API Data Models

Pydantic models validating the repair request once at the entry point and
shaping the success / failure payloads returned to the caller.
"""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional

from lofterfix.errors import FailureKind
from lofterfix.models.repair_models import RepairOptions, RepairTask


class RepairTaskIn(BaseModel):
    target_path: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("target_path", "wm"),
        description="Path of the watermarked image",
    )
    reference_path: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("reference_path", "clean"),
        description="Path of the clean reference image",
    )

    @field_validator("target_path", "reference_path")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("path must not be blank")
        return value

    def to_task(self) -> RepairTask:
        return RepairTask(target_path=self.target_path, reference_path=self.reference_path)


class RepairRequest(BaseModel):
    tasks: List[RepairTaskIn] = Field(default_factory=list)
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    padding: Optional[float] = Field(None, ge=0.0, allow_inf_nan=False)

    def to_tasks(self) -> List[RepairTask]:
        return [t.to_task() for t in self.tasks]

    def to_options(self, default_confidence: float = 0.5, default_padding: float = 0.2) -> RepairOptions:
        return RepairOptions(
            confidence=default_confidence if self.confidence is None else self.confidence,
            padding=default_padding if self.padding is None else self.padding,
        )


class RepairResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    count: int
    first_path: Optional[str] = Field(None, serialization_alias="firstPath", validation_alias="firstPath")


class RepairFailure(BaseModel):
    kind: FailureKind
    message: str
