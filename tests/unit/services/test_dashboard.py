"""Unit tests for the dashboard snapshot."""

import pytest

from homecare_metrics.core.exceptions import SourceFetchError


@pytest.mark.unit
class TestDashboardMetricsService:
    """Test cases for DashboardMetricsService."""

    async def test_snapshot(self, dashboard_service):
        """Counts and revenue figures for the sample platform."""
        snapshot = await dashboard_service.get_snapshot()

        assert snapshot.total_users == 6
        assert snapshot.active_patients == 1
        assert snapshot.verified_providers == 2
        assert snapshot.pending_providers == 1
        assert snapshot.pending_patients == 1
        assert snapshot.today_appointments == 2
        assert snapshot.today_revenue == pytest.approx(10000)
        assert snapshot.this_month_revenue == pytest.approx(10000)

    async def test_month_revenue_includes_earlier_days(self, seeded_store, dashboard_service):
        """Completed appointments updated earlier this month count for the month, not today."""
        from datetime import timedelta
        from tests.utils.test_data import FIXED_NOW, TestDataFactory

        seeded_store.add("appointments", TestDataFactory.create_appointment(
            total_cost=5000,
            created_at=FIXED_NOW - timedelta(days=40),
            updated_at=FIXED_NOW - timedelta(days=5),
        ))

        snapshot = await dashboard_service.get_snapshot()

        assert snapshot.today_revenue == pytest.approx(10000)
        assert snapshot.this_month_revenue == pytest.approx(11000)

    @pytest.mark.parametrize("collection", ["patients", "providers", "appointments"])
    async def test_any_failed_fetch_fails_snapshot(self, seeded_store, dashboard_service, collection):
        """No partial snapshot is returned when a read fails."""
        seeded_store.fail(collection)

        with pytest.raises(SourceFetchError):
            await dashboard_service.get_snapshot()
