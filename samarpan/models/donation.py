"""
Donation model - only the fields the commission / target pipeline reads or writes
"""
from pydantic import BaseModel, Field
from typing import Optional, Literal, List, Dict, Any
from datetime import datetime

from samarpan.config.settings import settings


PaymentStatus = Literal["PENDING", "SUCCESS", "FAILED"]


class Donation(BaseModel):
    amount: float = Field(..., gt=0)
    currency: str = settings.DEFAULT_CURRENCY
    donor_name: Optional[str] = "Anonymous Donor"
    attributed_to_user_id: Optional[str] = None
    referral_code_id: Optional[str] = None
    payment_status: PaymentStatus = "PENDING"

    # Downstream linkage, written once the donation is processed
    processed: bool = False
    processed_at: Optional[datetime] = None
    distributed: bool = False
    distributed_at: Optional[datetime] = None
    total_commission_distributed: Optional[float] = None
    organization_fund_amount: Optional[float] = None
    targets_propagated: bool = False
    processing_errors: List[Dict[str, Any]] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=datetime.utcnow)


class DonationResponse(Donation):
    id: str = Field(alias="_id")

    model_config = {"populate_by_name": True}
