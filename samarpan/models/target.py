"""
Target model and schemas for time-boxed fundraising goals
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, Literal, List
from datetime import datetime


TargetStatus = Literal["PENDING", "IN_PROGRESS", "COMPLETED"]

ACTIVE_TARGET_STATUSES = ["PENDING", "IN_PROGRESS"]


class TargetBase(BaseModel):
    assigned_to: str
    target_amount: float = Field(..., ge=0, le=100000000)
    start_date: datetime
    end_date: datetime
    level: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def validate_window(self):
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class Target(TargetBase):
    personal_collection: float = Field(default=0, ge=0)
    team_collection: float = Field(default=0, ge=0)
    total_collection: float = Field(default=0, ge=0)
    remaining_amount: float = 0
    progress_percentage: float = 0
    status: TargetStatus = "PENDING"


class TargetResponse(Target):
    id: str = Field(alias="_id")

    model_config = {"populate_by_name": True}


class CollectionCorrection(BaseModel):
    personal_delta: float = 0
    team_delta: float = 0
    reason: Optional[str] = Field(None, max_length=500)


class TargetProgress(BaseModel):
    has_active_target: bool
    target_id: Optional[str] = None
    target_amount: float = 0
    personal_collection: float = 0
    team_collection: float = 0
    collected: float = 0
    remaining: float = 0
    percentage: float = 0
    status: str = "NO_TARGET"
    days_remaining: Optional[int] = None
    is_overdue: bool = False


class PropagationReport(BaseModel):
    """Outcome of one upward propagation walk."""
    updated: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: List[dict] = Field(default_factory=list)
