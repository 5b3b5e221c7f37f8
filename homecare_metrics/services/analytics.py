"""Analytics report: service mix, top locations and providers, and appointment trends."""

import asyncio
import time
from typing import Any, Dict, List, Optional

from homecare_metrics.core.config import settings
from homecare_metrics.core.logging import get_logger
from homecare_metrics.core.outcome import Outcome
from homecare_metrics.db.schemas import (
    AnalyticsReport,
    LocationStat,
    ProviderEarningsStat,
    ProviderRatingStat,
    ServiceDistributionEntry,
    TrendSeries,
)
from homecare_metrics.observability.metrics import ANALYTICS_BRANCH_FAILURES, REPORT_DURATION
from homecare_metrics.services.distribution import normalize_distribution
from homecare_metrics.services.rankings import RankingRow, rank, rank_by_mean
from homecare_metrics.services.record_fetcher import UNKNOWN_PROVIDER, RecordFetcher
from homecare_metrics.services.revenue import calculate_commission
from homecare_metrics.services.trends import TrendSample, bucket_trends

logger = get_logger(__name__)


def _top_n(limit: Optional[int]) -> int:
    """Ranking size; None means the configured default, 0 means no entries."""
    return settings.analytics_top_n if limit is None else limit


class AnalyticsService:
    """
    Composes the analytics report from five independent sections.

    Sections are fetched concurrently. A section whose fetch fails is
    logged and replaced by its empty value; the report itself is always
    returned.
    """

    def __init__(self, fetcher: RecordFetcher):
        self.fetcher = fetcher

    async def get_appointments_by_service(self) -> List[ServiceDistributionEntry]:
        """Share of completed appointments per service type, in first-seen order."""
        appointments = await self.fetcher.fetch_completed_appointments()
        counts: Dict[str, int] = {}
        for apt in appointments:
            counts[apt.service_type] = counts.get(apt.service_type, 0) + 1
        return normalize_distribution(counts)

    async def get_top_locations(self, limit: Optional[int] = None) -> List[LocationStat]:
        """Patient regions ranked by completed appointments; revenue is the gross cost."""
        appointments = await self.fetcher.fetch_completed_appointments()
        regions = await self.fetcher.fetch_patient_regions(apt.patient_id for apt in appointments)

        rows = []
        for apt in appointments:
            region = regions.get(apt.patient_id)
            rows.append(RankingRow(
                group_key=region or "",
                group_label=region or "",
                metric_increment=1,
                secondary_increment=apt.total_cost or 0.0,
                eligible=region is not None,
            ))
        return [LocationStat.from_ranked(entry) for entry in rank(rows, _top_n(limit))]

    async def get_top_earning_providers(self, limit: Optional[int] = None) -> List[ProviderEarningsStat]:
        """Providers ranked by gross completed-appointment cost."""
        appointments = await self.fetcher.fetch_completed_appointments()
        names = await self.fetcher.fetch_provider_names(apt.provider_id for apt in appointments)

        rows = [
            RankingRow(
                group_key=apt.provider_id,
                group_label=names.get(apt.provider_id, UNKNOWN_PROVIDER),
                metric_increment=apt.total_cost or 0.0,
            )
            for apt in appointments
        ]
        return [
            ProviderEarningsStat.from_ranked(entry)
            for entry in rank(rows, _top_n(limit))
        ]

    async def get_top_providers_by_rating(self, limit: Optional[int] = None) -> List[ProviderRatingStat]:
        """Providers ranked by mean review rating."""
        reviews = await self.fetcher.fetch_reviews()
        rows = [
            RankingRow(
                group_key=review.provider_id,
                group_label=review.provider_name or UNKNOWN_PROVIDER,
                metric_increment=review.rating,
            )
            for review in reviews
        ]
        return [
            ProviderRatingStat.from_ranked(entry)
            for entry in rank_by_mean(rows, _top_n(limit))
        ]

    async def get_appointment_trends(self) -> TrendSeries:
        """Completed appointments and commission revenue by day, week and month."""
        appointments = await self.fetcher.fetch_completed_appointments()
        return bucket_trends(
            TrendSample(occurred_on=apt.scheduled_date, revenue=calculate_commission(apt.total_cost))
            for apt in appointments
        )

    async def get_report(self, limit: Optional[int] = None) -> AnalyticsReport:
        """Build every section concurrently, substituting empty values for failed ones."""
        sections: Dict[str, Any] = {
            "appointments_by_service": (self.get_appointments_by_service(), []),
            "top_locations": (self.get_top_locations(limit), []),
            "top_earning_providers": (self.get_top_earning_providers(limit), []),
            "top_providers_by_rating": (self.get_top_providers_by_rating(limit), []),
            "appointment_trends": (self.get_appointment_trends(), TrendSeries()),
        }

        start_time = time.time()
        outcomes = await asyncio.gather(
            *(Outcome.settle(work) for work, _ in sections.values())
        )
        REPORT_DURATION.labels(report="analytics").observe(time.time() - start_time)

        values = {}
        for (name, (_, empty)), outcome in zip(sections.items(), outcomes):
            if not outcome.ok:
                ANALYTICS_BRANCH_FAILURES.labels(branch=name).inc()
                logger.warning(
                    "Analytics section failed, returning empty result",
                    branch=name,
                    error=str(outcome.error),
                    error_type=type(outcome.error).__name__
                )
            values[name] = outcome.unwrap_or(empty)

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        logger.info("Generated analytics report", failed_sections=failed)
        return AnalyticsReport(**values)
