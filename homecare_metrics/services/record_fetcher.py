"""Typed reads of the record collections used by reports."""

import asyncio
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from homecare_metrics.core.logging import get_logger
from homecare_metrics.db.schemas import (
    AppointmentFact,
    AppointmentStatus,
    STORED_PAYOUT_STATUS,
    PayoutFact,
    PayoutStatus,
    ProviderPayoutRecord,
    ReviewFact,
    RevenueLogEntry,
    TransactionFact,
    TransactionRecord,
    WalletBalance,
    WalletOwner,
)
from homecare_metrics.db.store import RecordQuery, RecordStore
from homecare_metrics.services.trends import calendar_date

logger = get_logger(__name__)

WALLET_COLLECTIONS = {
    WalletOwner.PATIENT: "patient_wallet",
    WalletOwner.PROVIDER: "provider_wallets",
}

UNKNOWN_PROVIDER = "Unknown"


def parse_amount(value: Any) -> float:
    """Numeric value of a stored amount; anything unparseable counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return 0.0
        return number if math.isfinite(number) else 0.0
    return 0.0


def payout_status(stored: Optional[str]) -> PayoutStatus:
    """Displayed status of a stored withdrawal status; unrecognised values show as pending."""
    for status, stored_value in STORED_PAYOUT_STATUS.items():
        if stored and stored.lower() == stored_value.lower():
            return status
    return PayoutStatus.PENDING


def _optional_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class RecordFetcher:
    """Issues store reads and converts rows into report facts."""

    def __init__(self, store: RecordStore):
        self.store = store

    # Counts

    async def count(self, collection: str, **equals: Any) -> int:
        return await self.store.count(RecordQuery(collection).where(**equals))

    async def count_in(self, collection: str, column: str, values: Iterable[Any]) -> int:
        return await self.store.count(RecordQuery(collection).where_in(column, values))

    async def count_appointments_on(self, day: date) -> int:
        """Appointments scheduled for ``day``, any status."""
        return await self.count("appointments", scheduled_date=day)

    # Appointments

    async def fetch_completed_appointments(
        self,
        updated_since: Optional[datetime] = None,
    ) -> List[AppointmentFact]:
        """Completed appointments, oldest first; optionally only those updated since a moment."""
        query = (
            RecordQuery("appointments")
            .where(status=AppointmentStatus.COMPLETED.value)
            .order("created_at")
        )
        if updated_since is not None:
            query = query.gte("updated_at", updated_since)

        page = await self.store.fetch(query)
        return [self._appointment(row) for row in page.rows]

    async def fetch_patient_ids_since(self, created_since: datetime) -> Set[str]:
        """Distinct patients with an appointment created at or after ``created_since``."""
        page = await self.store.fetch(
            RecordQuery("appointments").select("patient_id").gte("created_at", created_since)
        )
        return {row["patient_id"] for row in page.rows if row.get("patient_id")}

    async def fetch_patient_regions(self, patient_ids: Iterable[str]) -> Dict[str, str]:
        """Registered region of each patient; the earliest address with a region wins."""
        ids = sorted(set(patient_ids))
        if not ids:
            return {}
        page = await self.store.fetch(
            RecordQuery("patient_addresses")
            .select("patient_id", "state")
            .where_in("patient_id", ids)
            .order("created_at")
        )
        regions: Dict[str, str] = {}
        for row in page.rows:
            if row.get("state"):
                regions.setdefault(row["patient_id"], row["state"])
        return regions

    async def fetch_names(self, collection: str, ids: Iterable[Optional[str]]) -> Dict[str, Optional[str]]:
        """Display name per id for patients or providers; ids absent from the store are omitted."""
        wanted = sorted({i for i in ids if i})
        if not wanted:
            return {}
        page = await self.store.fetch(
            RecordQuery(collection).select("id", "name").where_in("id", wanted)
        )
        return {row["id"]: row.get("name") for row in page.rows}

    async def fetch_provider_names(self, provider_ids: Iterable[str]) -> Dict[str, str]:
        names = await self.fetch_names("providers", provider_ids)
        return {provider_id: name or UNKNOWN_PROVIDER for provider_id, name in names.items()}

    # Money

    async def fetch_wallet_balances(self, owner: WalletOwner) -> List[WalletBalance]:
        page = await self.store.fetch(
            RecordQuery(WALLET_COLLECTIONS[owner]).select("balance")
        )
        return [
            WalletBalance(owner_kind=owner, balance=parse_amount(row.get("balance")))
            for row in page.rows
        ]

    async def fetch_payouts(self, status: str) -> List[PayoutFact]:
        page = await self.store.fetch(
            RecordQuery("provider_withdrawals").select("id", "amount", "status").where(status=status)
        )
        return [
            PayoutFact(id=str(row["id"]), amount=parse_amount(row.get("amount")), status=row["status"])
            for row in page.rows
        ]

    async def fetch_transactions(self, transaction_type: str, status: str) -> List[TransactionFact]:
        page = await self.store.fetch(
            RecordQuery("transactions")
            .select("id", "type", "amount", "status")
            .where(type=transaction_type, status=status)
        )
        return [
            TransactionFact(
                id=str(row["id"]),
                type=row["type"],
                amount=parse_amount(row.get("amount")),
                status=row["status"],
            )
            for row in page.rows
        ]

    async def fetch_revenue_logs(
        self,
        page: int,
        page_size: int,
        revenue_type: Optional[str] = None,
    ) -> Tuple[List[RevenueLogEntry], int]:
        """One page of revenue logs, newest first, and the exact number of matching logs."""
        query = RecordQuery("platform_revenue_logs").order("created_at", descending=True)
        if revenue_type:
            query = query.where(revenue_type=revenue_type)

        result = await self.store.fetch(query.paginate(page, page_size).with_count())
        entries = [
            RevenueLogEntry(
                id=str(row["id"]),
                revenue_type=row["revenue_type"],
                amount=parse_amount(row.get("amount")),
                related_appointment_id=row.get("related_appointment_id") or "",
                description=row.get("description"),
                created_at=_optional_datetime(row.get("created_at")),
            )
            for row in result.rows
        ]
        return entries, result.total or 0

    async def fetch_revenue_totals(self) -> Dict[str, float]:
        """All-time revenue log amount per revenue type."""
        page = await self.store.fetch(
            RecordQuery("platform_revenue_logs").select("amount", "revenue_type")
        )
        totals: Dict[str, float] = {}
        for row in page.rows:
            revenue_type = row.get("revenue_type")
            totals[revenue_type] = totals.get(revenue_type, 0.0) + parse_amount(row.get("amount"))
        return totals

    async def fetch_transaction_page(
        self,
        page: int,
        page_size: int,
        transaction_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[TransactionRecord], int]:
        """One page of wallet transactions, newest first, labelled with patient and provider names."""
        query = RecordQuery("transactions").order("created_at", descending=True)
        if transaction_type:
            query = query.where(type=transaction_type)
        if status:
            query = query.where(status=status)

        result = await self.store.fetch(query.paginate(page, page_size).with_count())
        patient_names, provider_names = await asyncio.gather(
            self.fetch_names("patients", (row.get("patient_id") for row in result.rows)),
            self.fetch_names("providers", (row.get("provider_id") for row in result.rows)),
        )

        records = [
            TransactionRecord(
                id=str(row["id"]),
                type=row["type"],
                amount=parse_amount(row.get("amount")),
                status=row["status"],
                description=row.get("description"),
                reference=row.get("reference"),
                payment_method=row.get("payment_method"),
                patient_id=row.get("patient_id"),
                patient_name=patient_names.get(row.get("patient_id")),
                provider_id=row.get("provider_id"),
                provider_name=provider_names.get(row.get("provider_id")),
                created_at=_optional_datetime(row.get("created_at")),
            )
            for row in result.rows
        ]
        return records, result.total or 0

    async def fetch_payout_page(
        self,
        page: int,
        page_size: int,
        stored_status: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> Tuple[List[ProviderPayoutRecord], int]:
        """One page of provider withdrawals, newest request first."""
        query = RecordQuery("provider_withdrawals").order("requested_at", descending=True)
        if stored_status:
            query = query.where(status=stored_status)
        if provider_id:
            query = query.where(provider_id=provider_id)

        result = await self.store.fetch(query.paginate(page, page_size).with_count())
        names = await self.fetch_provider_names(row["provider_id"] for row in result.rows)

        records = [
            ProviderPayoutRecord(
                id=str(row["id"]),
                provider_id=str(row["provider_id"]),
                provider_name=names.get(row["provider_id"], UNKNOWN_PROVIDER),
                amount=parse_amount(row.get("amount")),
                status=payout_status(row.get("status")),
                reference=row.get("admin_note"),
                created_at=_optional_datetime(row.get("requested_at")),
                completed_at=_optional_datetime(row.get("processed_at")),
            )
            for row in result.rows
        ]
        return records, result.total or 0

    # Reviews

    async def fetch_reviews(self) -> List[ReviewFact]:
        """All reviews, labelled with their provider's name."""
        page = await self.store.fetch(RecordQuery("reviews").select("provider_id", "rating"))
        rows = [row for row in page.rows if row.get("rating")]
        names = await self.fetch_provider_names(row["provider_id"] for row in rows)
        return [
            ReviewFact(
                provider_id=row["provider_id"],
                provider_name=names.get(row["provider_id"], UNKNOWN_PROVIDER),
                rating=float(row["rating"]),
            )
            for row in rows
        ]

    def _appointment(self, row: Dict[str, Any]) -> AppointmentFact:
        total_cost = row.get("total_cost")
        return AppointmentFact(
            id=str(row["id"]),
            provider_id=str(row["provider_id"]),
            patient_id=str(row["patient_id"]),
            service_type=row["service_type"],
            status=row["status"],
            scheduled_date=calendar_date(row["scheduled_date"]),
            total_cost=None if total_cost is None else parse_amount(total_cost),
            completed_at=_optional_datetime(row.get("completed_at")),
            created_at=_optional_datetime(row.get("created_at")),
            updated_at=_optional_datetime(row.get("updated_at")),
        )
