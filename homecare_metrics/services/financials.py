"""Financial rollup and the revenue, transaction and payout listings."""

import asyncio
import time
from enum import Enum
from typing import Optional, Type

from homecare_metrics.core.config import settings
from homecare_metrics.core.exceptions import ValidationException
from homecare_metrics.core.logging import get_logger
from homecare_metrics.db.schemas import (
    STORED_PAYOUT_STATUS,
    FinancialRollup,
    Page,
    PayoutStatus,
    ProviderPayoutRecord,
    RevenueLogEntry,
    RevenueType,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
    WalletOwner,
)
from homecare_metrics.observability.metrics import REPORT_DURATION, REPORT_FAILURES
from homecare_metrics.services.record_fetcher import RecordFetcher
from homecare_metrics.services.revenue import total_commission

logger = get_logger(__name__)


class FinancialMetricsService:
    """Platform money figures. All-or-nothing: one failed read fails the rollup."""

    def __init__(self, fetcher: RecordFetcher):
        self.fetcher = fetcher

    async def get_rollup(self) -> FinancialRollup:
        """Sum wallets, platform revenue, pending payouts and completed top-ups (all-time)."""
        start_time = time.time()
        try:
            patient_wallets, provider_wallets, completed, revenue_totals, payouts, topups = await asyncio.gather(
                self.fetcher.fetch_wallet_balances(WalletOwner.PATIENT),
                self.fetcher.fetch_wallet_balances(WalletOwner.PROVIDER),
                self.fetcher.fetch_completed_appointments(),
                self.fetcher.fetch_revenue_totals(),
                self.fetcher.fetch_payouts(settings.pending_payout_status),
                self.fetcher.fetch_transactions(
                    transaction_type=TransactionType.TOPUP.value,
                    status=TransactionStatus.COMPLETED.value,
                ),
            )
        except Exception as e:
            REPORT_FAILURES.labels(report="financial").inc()
            logger.error("Failed to build financial rollup", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            REPORT_DURATION.labels(report="financial").observe(time.time() - start_time)

        rollup = FinancialRollup(
            patient_wallet_balance=sum((w.balance for w in patient_wallets), 0.0),
            provider_wallet_balance=sum((w.balance for w in provider_wallets), 0.0),
            platform_revenue=total_commission(apt.total_cost for apt in completed),
            platform_commissions=revenue_totals.get(RevenueType.APPOINTMENT_COMMISSION.value, 0.0),
            platform_cancellation_fees=revenue_totals.get(RevenueType.CANCELLATION_FEE.value, 0.0),
            pending_payouts=sum((p.amount for p in payouts), 0.0),
            total_topup_revenue=sum((t.amount for t in topups), 0.0),
        )

        logger.info(
            "Generated financial rollup",
            platform_revenue=rollup.platform_revenue,
            pending_payouts=rollup.pending_payouts
        )
        return rollup

    async def list_revenue_logs(
        self,
        page: int = 1,
        page_size: int = 20,
        revenue_type: Optional[str] = None,
    ) -> Page[RevenueLogEntry]:
        """
        Page through platform revenue logs, newest first.

        Args:
            page: 1-based page number
            page_size: Logs per page
            revenue_type: Restrict to one RevenueType; None or "all" for every type
        """
        _check_page(page, page_size)
        revenue_type = _choice(revenue_type, RevenueType, "revenue_type")

        entries, total = await self.fetcher.fetch_revenue_logs(page, page_size, revenue_type)
        return Page[RevenueLogEntry](items=entries, total=total, page=page, page_size=page_size)

    async def list_transactions(
        self,
        page: int = 1,
        page_size: int = 20,
        transaction_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Page[TransactionRecord]:
        """
        Page through wallet transactions, newest first.

        Args:
            page: 1-based page number
            page_size: Transactions per page
            transaction_type: Restrict to one TransactionType; None or "all" for every type
            status: Restrict to one TransactionStatus; None or "all" for every status
        """
        _check_page(page, page_size)
        transaction_type = _choice(transaction_type, TransactionType, "type")
        status = _choice(status, TransactionStatus, "status")

        records, total = await self.fetcher.fetch_transaction_page(page, page_size, transaction_type, status)
        return Page[TransactionRecord](items=records, total=total, page=page, page_size=page_size)

    async def list_payouts(
        self,
        page: int = 1,
        page_size: int = 20,
        status: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> Page[ProviderPayoutRecord]:
        """Page through provider withdrawal requests, newest first, by displayed status and provider."""
        _check_page(page, page_size)
        status = _choice(status, PayoutStatus, "status")
        stored_status = STORED_PAYOUT_STATUS[PayoutStatus(status)] if status else None

        records, total = await self.fetcher.fetch_payout_page(page, page_size, stored_status, provider_id)
        return Page[ProviderPayoutRecord](items=records, total=total, page=page, page_size=page_size)


def _check_page(page: int, page_size: int) -> None:
    if page < 1:
        raise ValidationException("Page must be at least 1", field="page")
    if page_size < 1:
        raise ValidationException("Page size must be at least 1", field="page_size")


def _choice(value: Optional[str], allowed: Type[Enum], field: str) -> Optional[str]:
    """Validated filter value; None and "all" mean no filter."""
    if value is None or value == "all":
        return None
    if value not in {member.value for member in allowed}:
        raise ValidationException(f"Unknown {field}: {value}", field=field)
    return value
