"""Pydantic schemas for the insight plan extracted from a natural-language question."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

INTENTS = ("count_opportunities", "sum_expected_amount", "status_breakdown")


class Timeframe(BaseModel):
    """Time window applied to the opportunity creation date."""

    scope: Literal["all_time", "last_days", "between"] = Field(
        description="'all_time' (no window), 'last_days' (rolling window) or 'between' (explicit dates)."
    )
    lastDays: Optional[int] = Field(
        default=None, description="Number of days back from now when scope is 'last_days'."
    )
    startDate: Optional[str] = Field(
        default=None, description="Inclusive start date (YYYY-MM-DD) when scope is 'between'."
    )
    endDate: Optional[str] = Field(
        default=None, description="Inclusive end date (YYYY-MM-DD) when scope is 'between'."
    )


class PlanFilters(BaseModel):
    status: Optional[List[str]] = Field(
        default=None,
        description=(
            "Opportunity statuses to keep, from: new, qualified, proposition, "
            "negotiation, closed_won, closed_lost."
        ),
    )
    timeframe: Optional[Timeframe] = None


class InsightPlan(BaseModel):
    """Structured representation of the analysis the user is asking for."""

    intent: Literal["count_opportunities", "sum_expected_amount", "status_breakdown"] = Field(
        description="The single aggregate to compute."
    )
    filters: Optional[PlanFilters] = None
    rationale: Optional[str] = Field(
        default=None, description="Short explanation of why this intent was chosen."
    )

    def filters_dict(self) -> dict:
        """Filters as echoed back to the caller, without unset fields."""
        if self.filters is None:
            return {}
        return self.filters.model_dump(exclude_none=True)
