"""
Commission Log model – one ledger row per (donation, beneficiary) plus the
in-memory distribution shapes produced by the commission engine.
"""
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, Literal, List
from datetime import datetime


CommissionStatus = Literal["PENDING", "PAID", "CANCELLED"]


class CommissionDistribution(BaseModel):
    """A single computed commission line."""
    user_id: str
    user_name: str
    user_role: str
    hierarchy_level: str
    commission_amount: Decimal
    commission_percentage: Decimal


class CommissionSummary(BaseModel):
    personal_commission: Decimal = Decimal("0.00")
    hierarchy_commissions: Decimal = Decimal("0.00")
    levels_involved: int = 0


class CommissionResult(BaseModel):
    distributions: List[CommissionDistribution] = Field(default_factory=list)
    total_commission: Decimal
    organization_fund: Decimal
    summary: CommissionSummary


class CommissionLog(BaseModel):
    donation_id: str
    user_id: str
    user_name: str
    user_role: str
    hierarchy_level: str

    commission_amount: float = Field(..., ge=0)
    commission_percentage: float = Field(..., ge=0, le=100)

    status: CommissionStatus = "PENDING"
    paid_at: Optional[datetime] = None
    transaction_id: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class CommissionLogResponse(CommissionLog):
    id: str = Field(alias="_id")

    model_config = {"populate_by_name": True}


class PayoutRequest(BaseModel):
    transaction_id: str = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1)


class CancelRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


class UserCommissionSummary(BaseModel):
    total_earned: float = 0.0
    pending: float = 0.0
    paid: float = 0.0
    count: int = 0
    cancelled: float = 0.0
    cancelled_count: int = 0
    recent_commissions: List[dict] = Field(default_factory=list)


class OrganizationCommissionSummary(BaseModel):
    total_distributed: float = 0.0
    total_pending: float = 0.0
    total_paid: float = 0.0
    total_cancelled: float = 0.0
    commission_count: int = 0
    unique_recipients: int = 0
