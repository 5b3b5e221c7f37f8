"""Pydantic v2 schemas for report facts and report outputs."""

import math
from datetime import date, datetime
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

# Type variable for generic pagination
T = TypeVar('T')


class AppointmentStatus(str, Enum):
    """Appointment status values as stored by the platform."""
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TransactionType(str, Enum):
    """Wallet transaction types."""
    TOPUP = "topup"
    PAYMENT = "payment"
    REFUND = "refund"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(str, Enum):
    """Wallet transaction statuses."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class WalletOwner(str, Enum):
    """Kind of account a wallet belongs to."""
    PATIENT = "patient"
    PROVIDER = "provider"


class RevenueType(str, Enum):
    """Platform revenue log categories."""
    APPOINTMENT_COMMISSION = "appointment_commission"
    CANCELLATION_FEE = "cancellation_fee"


class PayoutStatus(str, Enum):
    """Provider payout status as shown to admins."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Stored withdrawal status for each displayed payout status
STORED_PAYOUT_STATUS = {
    PayoutStatus.PENDING: "Pending",
    PayoutStatus.PROCESSING: "Processing",
    PayoutStatus.COMPLETED: "Paid",
    PayoutStatus.FAILED: "Failed",
}


# Base schemas
class FactSchema(BaseModel):
    """Immutable value produced from fetched records."""
    model_config = ConfigDict(frozen=True, from_attributes=True)


# Facts
class AppointmentFact(FactSchema):
    """Appointment as consumed by reports."""
    id: str
    provider_id: str
    patient_id: str
    service_type: str
    status: str
    scheduled_date: date
    total_cost: Optional[float] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == AppointmentStatus.COMPLETED.value


class TransactionFact(FactSchema):
    """Wallet transaction."""
    id: str
    type: str
    amount: float
    status: str


class WalletBalance(FactSchema):
    """Balance of one wallet."""
    owner_kind: WalletOwner
    balance: float


class PayoutFact(FactSchema):
    """Provider payout request."""
    id: str
    amount: float
    status: str


class ReviewFact(FactSchema):
    """Single provider rating."""
    provider_id: str
    provider_name: Optional[str] = None
    rating: float = Field(..., ge=1, le=5)


# Report building blocks
class ServiceDistributionEntry(FactSchema):
    """Share of completed appointments for one service type."""
    service_type: str
    count: int
    percentage: int


class RankedEntry(FactSchema):
    """One group of a top-N ranking."""
    key: str
    label: str
    metric_value: float
    secondary_value: float


class LocationStat(FactSchema):
    """Completed appointments and gross revenue for one patient region."""
    location: str
    appointment_count: int
    revenue: float

    @classmethod
    def from_ranked(cls, entry: RankedEntry) -> "LocationStat":
        return cls(
            location=entry.key,
            appointment_count=int(entry.metric_value),
            revenue=entry.secondary_value,
        )


class ProviderEarningsStat(FactSchema):
    """Gross completed-appointment earnings of one provider."""
    provider_id: str
    provider_name: str
    total_earnings: float
    appointment_count: int
    average_earnings: int

    @classmethod
    def from_ranked(cls, entry: RankedEntry) -> "ProviderEarningsStat":
        count = int(entry.secondary_value)
        # half-up, not banker's rounding
        average = math.floor(entry.metric_value / count + 0.5) if count > 0 else 0
        return cls(
            provider_id=entry.key,
            provider_name=entry.label,
            total_earnings=entry.metric_value,
            appointment_count=count,
            average_earnings=average,
        )


class ProviderRatingStat(FactSchema):
    """Mean review rating of one provider."""
    provider_id: str
    provider_name: str
    average_rating: float
    total_reviews: int

    @classmethod
    def from_ranked(cls, entry: RankedEntry) -> "ProviderRatingStat":
        return cls(
            provider_id=entry.key,
            provider_name=entry.label,
            average_rating=entry.metric_value,
            total_reviews=int(entry.secondary_value),
        )


class TrendPoint(FactSchema):
    """Completed appointments and commission revenue for one period."""
    period_key: date
    count: int
    revenue: float


class TrendSeries(FactSchema):
    """Daily, weekly and monthly series built from the same facts."""
    daily: List[TrendPoint] = Field(default_factory=list)
    weekly: List[TrendPoint] = Field(default_factory=list)
    monthly: List[TrendPoint] = Field(default_factory=list)


# Reports
class DashboardSnapshot(FactSchema):
    """Headline figures for the admin dashboard."""
    total_users: int
    active_patients: int
    verified_providers: int
    pending_providers: int
    pending_patients: int
    today_appointments: int
    today_revenue: float
    this_month_revenue: float


class FinancialRollup(FactSchema):
    """Platform-wide money figures."""
    patient_wallet_balance: float
    provider_wallet_balance: float
    platform_revenue: float
    platform_commissions: float
    platform_cancellation_fees: float
    pending_payouts: float
    total_topup_revenue: float


class AnalyticsReport(FactSchema):
    """Composite analytics screen payload."""
    appointments_by_service: List[ServiceDistributionEntry] = Field(default_factory=list)
    top_locations: List[LocationStat] = Field(default_factory=list)
    top_earning_providers: List[ProviderEarningsStat] = Field(default_factory=list)
    top_providers_by_rating: List[ProviderRatingStat] = Field(default_factory=list)
    appointment_trends: TrendSeries = Field(default_factory=TrendSeries)


class RevenueLogEntry(FactSchema):
    """Platform revenue log row."""
    id: str
    revenue_type: str
    amount: float
    related_appointment_id: str = ""
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class TransactionRecord(FactSchema):
    """Wallet transaction row for the admin transaction list."""
    id: str
    type: str
    amount: float
    status: str
    description: Optional[str] = None
    reference: Optional[str] = None
    payment_method: Optional[str] = None
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    provider_id: Optional[str] = None
    provider_name: Optional[str] = None
    created_at: Optional[datetime] = None


class ProviderPayoutRecord(FactSchema):
    """Provider withdrawal request for the admin payout list."""
    id: str
    provider_id: str
    provider_name: str
    amount: float
    status: PayoutStatus
    reference: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class Page(BaseModel, Generic[T]):
    """Page of results with the exact total."""
    model_config = ConfigDict(frozen=True)

    items: List[T]
    total: int
    page: int
    page_size: int
