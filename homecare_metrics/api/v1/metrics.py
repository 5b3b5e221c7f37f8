"""Admin reporting API routes for dashboard, financial and analytics screens."""

from fastapi import APIRouter, Depends, Query

from homecare_metrics.api.deps import get_fetcher
from homecare_metrics.db.schemas import (
    AnalyticsReport,
    DashboardSnapshot,
    FinancialRollup,
    Page,
    ProviderPayoutRecord,
    RevenueLogEntry,
    TransactionRecord,
)
from homecare_metrics.services.analytics import AnalyticsService
from homecare_metrics.services.dashboard import DashboardMetricsService
from homecare_metrics.services.financials import FinancialMetricsService
from homecare_metrics.services.record_fetcher import RecordFetcher

router = APIRouter()


@router.get(
    "/metrics/dashboard",
    response_model=DashboardSnapshot,
    summary="Dashboard snapshot",
    description="Headline user, provider and appointment counts with today's and this month's revenue."
)
async def get_dashboard_metrics(
    fetcher: RecordFetcher = Depends(get_fetcher)
) -> DashboardSnapshot:
    """Return the dashboard snapshot; fails as a whole if any read fails."""
    return await DashboardMetricsService(fetcher).get_snapshot()


@router.get(
    "/metrics/financial",
    response_model=FinancialRollup,
    summary="Financial rollup",
    description="Wallet balances, platform revenue, pending payouts and top-up revenue."
)
async def get_financial_metrics(
    fetcher: RecordFetcher = Depends(get_fetcher)
) -> FinancialRollup:
    """Return the financial rollup; fails as a whole if any read fails."""
    return await FinancialMetricsService(fetcher).get_rollup()


@router.get(
    "/metrics/analytics",
    response_model=AnalyticsReport,
    summary="Analytics report",
    description="Service distribution, top locations and providers, and appointment trends. "
                "Sections that fail to load are returned empty."
)
async def get_analytics_metrics(
    limit: int = Query(10, ge=1, le=100, description="Entries per ranking"),
    fetcher: RecordFetcher = Depends(get_fetcher)
) -> AnalyticsReport:
    """Return the analytics report."""
    return await AnalyticsService(fetcher).get_report(limit=limit)


@router.get(
    "/revenue-logs",
    response_model=Page[RevenueLogEntry],
    summary="List platform revenue logs",
    description="Platform revenue logs, newest first, optionally filtered by revenue type."
)
async def list_revenue_logs(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Page size"),
    revenue_type: str | None = Query(
        None,
        description="appointment_commission, cancellation_fee or all"
    ),
    fetcher: RecordFetcher = Depends(get_fetcher)
) -> Page[RevenueLogEntry]:
    """List platform revenue logs."""
    return await FinancialMetricsService(fetcher).list_revenue_logs(
        page=page,
        page_size=page_size,
        revenue_type=revenue_type
    )


@router.get(
    "/transactions",
    response_model=Page[TransactionRecord],
    summary="List wallet transactions",
    description="Wallet transactions, newest first, optionally filtered by type and status."
)
async def list_transactions(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Page size"),
    type: str | None = Query(None, description="topup, payment, refund, withdrawal or all"),
    status: str | None = Query(None, description="completed, pending, failed or all"),
    fetcher: RecordFetcher = Depends(get_fetcher)
) -> Page[TransactionRecord]:
    """List wallet transactions."""
    return await FinancialMetricsService(fetcher).list_transactions(
        page=page,
        page_size=page_size,
        transaction_type=type,
        status=status
    )


@router.get(
    "/payouts",
    response_model=Page[ProviderPayoutRecord],
    summary="List provider payouts",
    description="Provider withdrawal requests, newest first, optionally filtered by status and provider."
)
async def list_payouts(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Page size"),
    status: str | None = Query(None, description="pending, processing, completed, failed or all"),
    provider_id: str | None = Query(None, description="Provider ID"),
    fetcher: RecordFetcher = Depends(get_fetcher)
) -> Page[ProviderPayoutRecord]:
    """List provider payouts."""
    return await FinancialMetricsService(fetcher).list_payouts(
        page=page,
        page_size=page_size,
        status=status,
        provider_id=provider_id
    )
