"""Dashboard snapshot: headline counts and recent revenue."""

import asyncio
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from homecare_metrics.core.config import settings
from homecare_metrics.core.logging import get_logger
from homecare_metrics.db.schemas import DashboardSnapshot
from homecare_metrics.observability.metrics import REPORT_DURATION, REPORT_FAILURES
from homecare_metrics.services.record_fetcher import RecordFetcher
from homecare_metrics.services.revenue import total_commission

logger = get_logger(__name__)


def local_now() -> datetime:
    """Current time in the host's local timezone."""
    return datetime.now().astimezone()


class DashboardMetricsService:
    """Builds the admin dashboard snapshot; any failed fetch fails the whole snapshot."""

    def __init__(self, fetcher: RecordFetcher, clock: Optional[Callable[[], datetime]] = None):
        self.fetcher = fetcher
        self.clock = clock or local_now

    async def get_snapshot(self) -> DashboardSnapshot:
        """
        Compute the dashboard snapshot for the current moment.

        Returns:
            DashboardSnapshot

        Raises:
            SourceFetchError: If any underlying read fails
        """
        now = self.clock()
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        month_start = midnight.replace(day=1)
        active_since = now - timedelta(days=settings.active_patient_window_days)

        start_time = time.time()
        try:
            (
                total_patients,
                total_providers,
                active_patient_ids,
                verified_providers,
                pending_providers,
                pending_patients,
                today_appointments,
                completed_today,
                completed_this_month,
            ) = await asyncio.gather(
                self.fetcher.count("patients"),
                self.fetcher.count("providers"),
                self.fetcher.fetch_patient_ids_since(active_since),
                self.fetcher.count("providers", is_verified=True),
                self.fetcher.count_in("providers", "account_status", settings.pending_provider_statuses),
                self.fetcher.count("patients", verification_status=settings.pending_patient_status),
                self.fetcher.count_appointments_on(now.date()),
                self.fetcher.fetch_completed_appointments(updated_since=midnight),
                self.fetcher.fetch_completed_appointments(updated_since=month_start),
            )
        except Exception as e:
            REPORT_FAILURES.labels(report="dashboard").inc()
            logger.error("Failed to build dashboard snapshot", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            REPORT_DURATION.labels(report="dashboard").observe(time.time() - start_time)

        snapshot = DashboardSnapshot(
            total_users=total_patients + total_providers,
            active_patients=len(active_patient_ids),
            verified_providers=verified_providers,
            pending_providers=pending_providers,
            pending_patients=pending_patients,
            today_appointments=today_appointments,
            today_revenue=total_commission(apt.total_cost for apt in completed_today),
            this_month_revenue=total_commission(apt.total_cost for apt in completed_this_month),
        )

        logger.info("Generated dashboard snapshot", total_users=snapshot.total_users)
        return snapshot
