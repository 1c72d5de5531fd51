"""Request/response schemas for the obligations HTTP API."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# PUBLIC_INTERFACE
class CaptureRequest(BaseModel):
    """Free text to turn into an obligation, plus an optional clarification answer."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"text": "Call the dentist to book a cleaning", "followup": "tomorrow 9am"}
        }
    )

    text: str = Field(default="", description="The obligation as the user phrased it")
    followup: Optional[str] = Field(
        default=None, description="Answer to a previous 'When is this due?' prompt"
    )


# PUBLIC_INTERFACE
class UpdateRequest(BaseModel):
    """Partial update. Only keys present in the body are applied; due_at=null clears the date."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"due_at": "2026-10-20T09:00:00+03:00", "estimated_duration": 30}}
    )

    title: Optional[str] = Field(default=None, description="New title")
    due_at: Optional[str] = Field(
        default=None,
        description="ISO-8601 timestamp; an offset is expected, naive values use the server zone",
    )
    estimated_duration: Optional[int] = Field(default=None, description="Minutes, positive")
    urgency: Optional[str] = Field(default=None, description="'immediate' or 'normal'")


# PUBLIC_INTERFACE
class ObligationOut(BaseModel):
    """Serialized obligation. Timestamps always carry an explicit UTC offset."""

    id: str
    title: str
    due_at: Optional[str] = None
    estimated_duration: Optional[int] = None
    urgency: Optional[str] = None
    task_type: Optional[str] = None
    status: str
    created_at: str


# PUBLIC_INTERFACE
class ClarificationOut(BaseModel):
    """Returned instead of an obligation when the extractor could not find a date."""

    needs_clarification: bool = True
    result: dict = Field(..., description="The low-confidence extraction result")


# PUBLIC_INTERFACE
class HorizonsOut(BaseModel):
    """Obligations grouped by display horizon, each list sorted by due time."""

    missed: List[ObligationOut] = Field(default_factory=list)
    now: List[ObligationOut] = Field(default_factory=list)
    today: List[ObligationOut] = Field(default_factory=list)
    this_week: List[ObligationOut] = Field(default_factory=list)
    later: List[ObligationOut] = Field(default_factory=list)


# PUBLIC_INTERFACE
class CountOut(BaseModel):
    success: bool = True
    count: int


# PUBLIC_INTERFACE
class SuccessOut(BaseModel):
    success: bool = True
