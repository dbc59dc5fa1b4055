"""
Wire schemas for the certification function.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .enums import Lane


class CertificationRequest(BaseModel):
    """Body posted to the certification function."""

    model_config = ConfigDict(extra="forbid")

    entry_id: str = Field(..., description="Logical record to certify")
    is_test: bool = Field(..., description="Lane the certified copy is written to")
    force: bool = Field(
        False, description="Overwrite an existing promoted artifact instead of reusing it"
    )


class CertificationResponse(BaseModel):
    """Reply from the certification function."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    ok: bool
    verified_artifact_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            "verified_artifact_id", "verified_document_id", "verifiedArtifactId"
        ),
    )
    reused: bool = False
    error: Optional[str] = None
    details: Optional[Any] = None
    request_id: Optional[str] = None


class PromotionResult(BaseModel):
    """Outcome of a successful promotion."""

    model_config = ConfigDict(frozen=True)

    record_id: str
    lane: Lane
    verified_artifact_id: str
    reused: bool = False
    forced: bool = False
