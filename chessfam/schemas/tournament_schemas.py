from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field, model_validator

MAX_EARLY_BIRD_TIERS = 3

Percent = Annotated[Decimal, Field(ge=0, le=100)]


class TournamentStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class EarlyBirdTier(BaseModel):
    deadline: date
    discount: Decimal = Field(ge=0)
    discount_type: DiscountType
    label: str = "Early Bird"

    class Config:
        use_enum_values = True

    @model_validator(mode="after")
    def percentage_within_bounds(self):
        if self.discount_type == DiscountType.PERCENTAGE and self.discount > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class PricingConfig(BaseModel):
    """
    Everything that determines what a registrant pays for a tournament.

    Built straight from a Tournament row (``PricingConfig.model_validate(tournament)``),
    so unset discount columns arrive as ``None`` and mean "no discount".
    """
    entry_fee: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = "USD"
    premium_discount_eligible: bool = False
    early_bird_pricing: List[EarlyBirdTier] = Field(default_factory=list, max_length=MAX_EARLY_BIRD_TIERS)
    junior_discount: Optional[Percent] = None
    senior_discount: Optional[Percent] = None
    women_discount: Optional[Percent] = None
    junior_age_max: int = 18
    senior_age_min: int = 65
    gm_wgm_discount: Optional[Percent] = None
    im_wim_discount: Optional[Percent] = None
    fm_wfm_discount: Optional[Percent] = None

    class Config:
        from_attributes = True

    @model_validator(mode="before")
    @classmethod
    def drop_unset_columns(cls, data):
        # Unset columns fall back to the field defaults
        if not isinstance(data, dict):
            data = {key: getattr(data, key, None) for key in cls.model_fields}
        return {key: value for key, value in data.items() if value is not None}


class TournamentBase(BaseModel):
    name: str = Field(min_length=3, max_length=200)
    description: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    registration_deadline: Optional[datetime] = None
    max_participants: Optional[int] = Field(default=None, ge=1)
    rating_min: Optional[int] = Field(default=None, ge=0)
    rating_max: Optional[int] = Field(default=None, ge=0)

    entry_fee: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = Field(default="USD", pattern=r"^[A-Z]{3}$")
    premium_discount_eligible: bool = False
    early_bird_pricing: List[EarlyBirdTier] = Field(default_factory=list, max_length=MAX_EARLY_BIRD_TIERS)
    junior_discount: Optional[Percent] = None
    senior_discount: Optional[Percent] = None
    women_discount: Optional[Percent] = None
    junior_age_max: int = Field(default=18, ge=0)
    senior_age_min: int = Field(default=65, ge=0)
    gm_wgm_discount: Optional[Percent] = None
    im_wim_discount: Optional[Percent] = None
    fm_wfm_discount: Optional[Percent] = None

    parent_tournament_id: Optional[int] = None
    is_series_parent: bool = False
    is_festival_parent: bool = False
    image: Optional[str] = None
    images: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_ranges(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must be after start date")
        if self.rating_min is not None and self.rating_max is not None and self.rating_min > self.rating_max:
            raise ValueError("Minimum rating cannot exceed maximum rating")
        return self


class TournamentCreate(TournamentBase):
    pass


class TournamentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    registration_deadline: Optional[datetime] = None
    max_participants: Optional[int] = Field(default=None, ge=1)
    rating_min: Optional[int] = Field(default=None, ge=0)
    rating_max: Optional[int] = Field(default=None, ge=0)
    entry_fee: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, pattern=r"^[A-Z]{3}$")
    premium_discount_eligible: Optional[bool] = None
    early_bird_pricing: Optional[List[EarlyBirdTier]] = Field(default=None, max_length=MAX_EARLY_BIRD_TIERS)
    junior_discount: Optional[Percent] = None
    senior_discount: Optional[Percent] = None
    women_discount: Optional[Percent] = None
    junior_age_max: Optional[int] = Field(default=None, ge=0)
    senior_age_min: Optional[int] = Field(default=None, ge=0)
    gm_wgm_discount: Optional[Percent] = None
    im_wim_discount: Optional[Percent] = None
    fm_wfm_discount: Optional[Percent] = None
    status: Optional[TournamentStatus] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None


class ApprovalUpdate(BaseModel):
    approval_status: ApprovalStatus


class TournamentRead(TournamentBase):
    id: int
    organizer_id: Optional[int] = None
    status: str
    approval_status: str
    current_participants: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
