"""Pydantic schemas for turning free-text notes into opportunity fields."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ExtractedOpportunity(BaseModel):
    companyName: Optional[str] = None
    website: Optional[str] = None
    contactPerson: Optional[str] = None
    contactPhone: Optional[str] = None
    contactWechat: Optional[str] = None
    contactDepartment: Optional[str] = None
    contactPosition: Optional[str] = None
    companySize: Optional[str] = None
    region: Optional[str] = None
    industry: Optional[str] = None
    status: Optional[str] = Field(
        default=None,
        description="One of: new, qualified, proposition, negotiation, closed_won, closed_lost.",
    )
    priority: Optional[str] = Field(default=None, description="One of: high, medium, low.")
    expectedAmount: Optional[str] = Field(default=None, description="Plain number, no currency.")
    expectedCloseDate: Optional[str] = None
    description: Optional[str] = None
    source: Optional[str] = None
    nextFollowUpAt: Optional[str] = None
    nextFollowUpNote: Optional[str] = None


class ExtractedFollowUp(BaseModel):
    type: Optional[str] = None
    content: Optional[str] = None
    result: Optional[str] = None
    nextPlan: Optional[str] = None


class OpportunityExtraction(BaseModel):
    """Everything the model could recover from the user's notes."""

    opportunity: Optional[ExtractedOpportunity] = None
    followUp: Optional[ExtractedFollowUp] = None
    confidence: float = Field(default=0.6, ge=0, le=1)
    summary: Optional[str] = None


class AssistRequest(BaseModel):
    input: str = Field(min_length=10)
    autoCreate: bool = False
