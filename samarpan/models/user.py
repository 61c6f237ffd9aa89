"""
User / coordinator model and the ordered role hierarchy
"""
from enum import Enum
from pydantic import BaseModel, Field, EmailStr
from typing import Optional
from datetime import datetime


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    CENTRAL_PRESIDENT = "CENTRAL_PRESIDENT"
    STATE_PRESIDENT = "STATE_PRESIDENT"
    STATE_COORDINATOR = "STATE_COORDINATOR"
    ZONE_COORDINATOR = "ZONE_COORDINATOR"
    DISTRICT_PRESIDENT = "DISTRICT_PRESIDENT"
    DISTRICT_COORDINATOR = "DISTRICT_COORDINATOR"
    BLOCK_COORDINATOR = "BLOCK_COORDINATOR"
    NODAL_OFFICER = "NODAL_OFFICER"
    PRERAK = "PRERAK"
    PRERNA_SAKHI = "PRERNA_SAKHI"
    VOLUNTEER = "VOLUNTEER"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"


# Lower rank outranks higher rank
ROLE_RANK = {
    UserRole.ADMIN: 0,
    UserRole.CENTRAL_PRESIDENT: 1,
    UserRole.STATE_PRESIDENT: 2,
    UserRole.STATE_COORDINATOR: 3,
    UserRole.ZONE_COORDINATOR: 4,
    UserRole.DISTRICT_PRESIDENT: 5,
    UserRole.DISTRICT_COORDINATOR: 6,
    UserRole.BLOCK_COORDINATOR: 7,
    UserRole.NODAL_OFFICER: 8,
    UserRole.PRERAK: 9,
    UserRole.PRERNA_SAKHI: 10,
    UserRole.VOLUNTEER: 11,
}

HIERARCHY_LEVEL_LABELS = {
    UserRole.ADMIN: "National",
    UserRole.CENTRAL_PRESIDENT: "National",
    UserRole.STATE_PRESIDENT: "State",
    UserRole.STATE_COORDINATOR: "State Coordinator",
    UserRole.ZONE_COORDINATOR: "Zone",
    UserRole.DISTRICT_PRESIDENT: "District President",
    UserRole.DISTRICT_COORDINATOR: "District Coordinator",
    UserRole.BLOCK_COORDINATOR: "Block",
    UserRole.NODAL_OFFICER: "Nodal",
    UserRole.PRERAK: "Prerak",
    UserRole.PRERNA_SAKHI: "Prerna Sakhi",
    UserRole.VOLUNTEER: "Volunteer",
}


def role_rank(role: Optional[str]) -> int:
    """Rank of a stored role string; unknown roles rank below volunteers."""
    try:
        return ROLE_RANK[UserRole(role)]
    except ValueError:
        return len(ROLE_RANK)


def hierarchy_level(role: Optional[str]) -> str:
    try:
        return HIERARCHY_LEVEL_LABELS[UserRole(role)]
    except ValueError:
        return role or "Unknown"


class UserBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = None
    role: UserRole = UserRole.VOLUNTEER
    status: UserStatus = UserStatus.ACTIVE
    parent_coordinator_id: Optional[str] = None

    # Geography, checked on parent reassignment
    state: Optional[str] = None
    zone: Optional[str] = None
    district: Optional[str] = None
    block: Optional[str] = None


class UserResponse(UserBase):
    id: str = Field(alias="_id")
    total_donations_referred: int = 0
    total_amount_referred: float = 0.0
    commission_wallet: float = 0.0
    created_at: Optional[datetime] = None

    model_config = {"populate_by_name": True}


class ParentAssignment(BaseModel):
    parent_id: Optional[str] = None
