"""
Account Models - subscription, credits, notifications and preferences.

These rows are read far more often than they are written. The credit
counters are advisory on the client: the deduct-credits function on the
backend holds the authoritative balance.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class PlanType(str, Enum):
    """Subscription tiers."""
    FREE = "free"
    PRO = "pro"


class PaymentStatus(str, Enum):
    """Billing state reported by the hosted checkout webhook."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class Subscription(BaseModel):
    """One row of subscriptions."""

    id: UUID = Field(default_factory=uuid4)
    user_id: Optional[UUID] = None
    plan_type: PlanType = PlanType.FREE
    payment_status: PaymentStatus = PaymentStatus.ACTIVE
    start_date: date = Field(default_factory=date.today)
    end_date: Optional[date] = None


class CreditBalance(BaseModel):
    """
    One row of credits.

    available_credits is the monthly allowance, used_credits what has
    been spent since reset_date was last moved forward.
    """

    user_id: Optional[UUID] = None
    available_credits: int = Field(default=100, ge=0)
    used_credits: int = Field(default=0, ge=0)
    reset_date: Optional[date] = None


class Notification(BaseModel):
    """An in-app notification."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., max_length=2000)
    type: NotificationType = NotificationType.INFO
    read: bool = False
    link: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class NotificationPreferences(BaseModel):
    email: bool = True
    in_app: bool = True
    document_renewals: bool = True
    low_credits: bool = True


class PrivacyPreferences(BaseModel):
    share_anonymous_analytics: bool = False
    show_balances_on_dashboard: bool = True


class UserSettings(BaseModel):
    """One row of settings: display preferences per user."""

    user_id: Optional[UUID] = None
    currency: str = Field(default="USD", min_length=3, max_length=3)
    language: str = Field(default="en", min_length=2, max_length=5)
    theme: Theme = Theme.SYSTEM
    notifications: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )
    privacy: PrivacyPreferences = Field(default_factory=PrivacyPreferences)
