"""Unit tests for the analytics report."""

from datetime import date

import pytest

from homecare_metrics.core.config import settings
from homecare_metrics.db.schemas import TrendSeries
from homecare_metrics.services.analytics import AnalyticsService
from homecare_metrics.services.record_fetcher import RecordFetcher
from tests.utils.fake_store import InMemoryRecordStore
from tests.utils.test_data import TestDataFactory


@pytest.mark.unit
@pytest.mark.analytics
class TestAnalyticsService:
    """Test cases for AnalyticsService."""

    async def test_appointments_by_service(self, analytics_service):
        """Completed appointments only, in first-seen order."""
        result = await analytics_service.get_appointments_by_service()

        assert [(e.service_type, e.count, e.percentage) for e in result] == [
            ("DoctorVisit", 2, 66),
            ("NurseCare", 1, 34),
        ]

    async def test_top_locations(self, analytics_service):
        """Regions ranked by completed appointments with gross revenue."""
        result = await analytics_service.get_top_locations()

        assert [(s.location, s.appointment_count) for s in result] == [("Lagos", 2), ("Abuja", 1)]
        assert result[0].revenue == pytest.approx(31000.5)

    async def test_top_earning_providers(self, analytics_service):
        """Providers ranked by gross cost with rounded averages."""
        result = await analytics_service.get_top_earning_providers(limit=2)

        assert [(s.provider_id, s.provider_name, s.total_earnings) for s in result] == [
            ("prov-b", "Bob Carer", 50000),
            ("prov-a", "Alice Nurse", pytest.approx(31000.5)),
        ]
        assert result[1].appointment_count == 2
        assert result[1].average_earnings == 15500

    async def test_top_providers_by_rating(self, analytics_service):
        """Providers ranked by mean rating."""
        result = await analytics_service.get_top_providers_by_rating()

        assert [(s.provider_id, s.average_rating, s.total_reviews) for s in result] == [
            ("prov-b", 5.0, 1),
            ("prov-a", 4.5, 2),
        ]

    async def test_appointment_trends(self, analytics_service):
        """Trend revenue is the platform commission."""
        trends = await analytics_service.get_appointment_trends()

        assert [(p.period_key, p.count) for p in trends.weekly] == [
            (date(2024, 2, 25), 1),
            (date(2024, 3, 10), 2),
        ]
        assert trends.weekly[1].revenue == pytest.approx(16000)
        assert [p.period_key for p in trends.monthly] == [date(2024, 2, 1), date(2024, 3, 1)]
        assert trends.daily[0].revenue == pytest.approx(200.1)

    async def test_report_with_all_sections(self, analytics_service):
        """A healthy store fills every section."""
        report = await analytics_service.get_report()

        assert report.appointments_by_service
        assert report.top_locations
        assert report.top_earning_providers
        assert report.top_providers_by_rating
        assert report.appointment_trends.daily

    async def test_location_failure_is_isolated(self, seeded_store, analytics_service):
        """A failed location read empties only the locations section."""
        seeded_store.fail("patient_addresses")

        report = await analytics_service.get_report()

        assert report.top_locations == []
        assert len(report.appointments_by_service) == 2
        assert len(report.top_earning_providers) == 2
        assert len(report.top_providers_by_rating) == 2
        assert len(report.appointment_trends.daily) == 3

    async def test_review_failure_is_isolated(self, seeded_store, analytics_service):
        """A failed review read empties only the rating section."""
        seeded_store.fail("reviews")

        report = await analytics_service.get_report()

        assert report.top_providers_by_rating == []
        assert report.top_locations

    async def test_every_section_failing_still_returns_report(self, seeded_store, analytics_service):
        """The report is returned even if every section fails."""
        seeded_store.fail("appointments")
        seeded_store.fail("reviews")

        report = await analytics_service.get_report()

        assert report.appointments_by_service == []
        assert report.top_locations == []
        assert report.top_earning_providers == []
        assert report.top_providers_by_rating == []
        assert report.appointment_trends == TrendSeries()

    async def test_limit_bounds_rankings(self, analytics_service):
        """The limit applies to every ranking."""
        report = await analytics_service.get_report(limit=1)

        assert len(report.top_locations) == 1
        assert len(report.top_earning_providers) == 1
        assert len(report.top_providers_by_rating) == 1

    async def test_zero_limit_gives_empty_rankings(self, analytics_service):
        """A limit of 0 means no entries, not the default."""
        report = await analytics_service.get_report(limit=0)

        assert report.top_locations == []
        assert report.top_earning_providers == []
        assert report.top_providers_by_rating == []
        assert report.appointments_by_service

    async def test_no_limit_uses_configured_default(self, seeded_store, analytics_service):
        """Without a limit the configured ranking size applies."""
        for i in range(12):
            seeded_store.add("providers", TestDataFactory.create_provider(f"extra-{i}", f"Extra {i}"))
            seeded_store.add("reviews", TestDataFactory.create_review(f"extra-{i}", 3))

        result = await analytics_service.get_top_providers_by_rating()

        assert len(result) == settings.analytics_top_n

    async def test_fractional_ratings_are_kept(self):
        """Fractional ratings count at full value in the mean."""
        store = InMemoryRecordStore({
            "providers": [TestDataFactory.create_provider("prov-x", "Xena Nurse")],
            "reviews": [
                TestDataFactory.create_review("prov-x", 4.5),
                TestDataFactory.create_review("prov-x", 5),
            ],
        })

        result = await AnalyticsService(RecordFetcher(store)).get_top_providers_by_rating()

        assert result[0].average_rating == pytest.approx(4.75)
        assert result[0].total_reviews == 2

    async def test_out_of_range_rating_empties_rating_section(self):
        """A rating outside 1..5 is rejected and only the rating section is emptied."""
        store = InMemoryRecordStore({
            "providers": [TestDataFactory.create_provider("prov-x", "Xena Nurse")],
            "reviews": [TestDataFactory.create_review("prov-x", 7)],
        })

        report = await AnalyticsService(RecordFetcher(store)).get_report()

        assert report.top_providers_by_rating == []
