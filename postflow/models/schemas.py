"""Pydantic schemas for API and workflow payloads."""
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ----- Extraction -----
class MediaRef(BaseModel):
    """Candidate or selected media. Only url is required; the rest is filled in by validation."""

    url: str
    alt: str | None = None
    source: str = Field(default="extracted", description="extracted | search")
    mime_type: str | None = None
    width: int | None = None
    height: int | None = None
    size_bytes: int | None = None


class ContentRecord(BaseModel):
    """One extracted source, in input order."""

    source_id: str = Field(description="Normalized link, used as the dedup identifier")
    link: str
    kind: str
    text: str
    media: list[MediaRef] = Field(default_factory=list)


# ----- Invocation -----
class ConfigOverrides(BaseModel):
    """Per-instance options. Read-only once the instance starts."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    skip_dedup: bool = Field(default=False, alias="skipDedup")
    skip_relevance_check: bool = Field(default=False, alias="skipRelevanceCheck")
    text_only: bool = Field(default=False, alias="textOnly")
    target_account: str | None = Field(default=None, alias="targetAccount")
    schedule_time: datetime | None = Field(default=None, alias="scheduleTime")


class StartWorkflowRequest(BaseModel):
    """Request body for POST /workflows."""

    model_config = ConfigDict(populate_by_name=True)

    links: list[str] = Field(min_length=1)
    config_overrides: ConfigOverrides = Field(default_factory=ConfigOverrides, alias="configOverrides")


class StartWorkflowResponse(BaseModel):
    instance_id: str
    status: str


# ----- Human decision -----
class DecisionAction(str, Enum):
    APPROVE = "approve"
    EDIT = "edit"
    REJECT = "reject"


class EditedFields(BaseModel):
    """Optional fields supplied with a decision."""

    post_text: str | None = Field(default=None, description="Replacement post text (re-validated, not regenerated)")
    schedule_time: datetime | None = None
    remove_asset: bool = False
    regenerate: bool = Field(default=False, description="Discard the draft and generate a new one")
    feedback: str | None = Field(default=None, description="Instructions for regeneration")


class Decision(BaseModel):
    """Request body for POST /workflows/{id}/resume."""

    model_config = ConfigDict(populate_by_name=True)

    action: DecisionAction
    edited_fields: EditedFields | None = Field(default=None, alias="editedFields")


# ----- Commit -----
class PostContent(BaseModel):
    """What gets published: final text and at most one asset."""

    text: str
    media: MediaRef | None = None


class PlatformResult(BaseModel):
    """Outcome of publishing to one platform."""

    platform: str
    success: bool
    status: str = Field(description="published | scheduled | failed | skipped")
    detail: str = ""
    external_id: str | None = None
    scheduled_at: datetime | None = None
    media_dropped: bool = False


# ----- Inspection -----
class InstanceOut(BaseModel):
    """Workflow instance as exposed over HTTP."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    status: str
    stage: str
    suspended: bool
    flags: list[str]
    error: str | None
    cancel_requested: bool
    state: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None
