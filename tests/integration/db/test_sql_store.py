"""Integration tests for the SQLAlchemy record store on SQLite."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from homecare_metrics.core.exceptions import SourceFetchError
from homecare_metrics.db.base import create_engine_from_url
from homecare_metrics.db.models import (
    Appointment,
    Base,
    Patient,
    PlatformRevenueLog,
    Provider,
    ProviderWithdrawal,
    Transaction,
)
from homecare_metrics.db.store import RecordQuery, SQLRecordStore
from homecare_metrics.services.analytics import AnalyticsService
from homecare_metrics.services.financials import FinancialMetricsService
from homecare_metrics.services.record_fetcher import RecordFetcher


@pytest.fixture
async def sql_store(tmp_path):
    """SQLRecordStore over a temporary SQLite database with a few rows."""
    engine = create_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        session.add_all([
            Patient(id="pat-1", name="Ada", verification_status="pending"),
            Patient(id="pat-2", name="Bayo", verification_status="verified"),
            Provider(id="prov-1", name="Alice Nurse", is_verified=True, account_status="active"),
            Provider(id="prov-2", name="Bob Carer", is_verified=False, account_status="pending_approval"),
        ])
        await session.flush()
        session.add_all([
            Appointment(
                id=f"apt-{i}",
                patient_id="pat-1",
                provider_id="prov-1" if i % 2 else "prov-2",
                service_type="NurseCare" if i % 3 else "DoctorVisit",
                status="Completed" if i < 4 else "Cancelled",
                scheduled_date=date(2024, 3, 10 + i),
                total_cost=Decimal("1000.00") * (i + 1),
                created_at=datetime(2024, 3, 1, 8, i),
                updated_at=datetime(2024, 3, 1, 8, i),
            )
            for i in range(5)
        ])
        session.add_all([
            PlatformRevenueLog(
                id=f"log-{i}",
                revenue_type="cancellation_fee" if i == 0 else "appointment_commission",
                amount=Decimal("10.00") * (i + 1),
                created_at=datetime(2024, 3, 1, 9, i),
            )
            for i in range(3)
        ])
        session.add_all([
            Transaction(id="tx-1", patient_id="pat-1", type="topup", amount=Decimal("500.00"),
                        status="completed", created_at=datetime(2024, 3, 2, 10)),
            Transaction(id="tx-2", patient_id="pat-2", provider_id="prov-1", type="payment",
                        amount=Decimal("900.00"), status="completed", created_at=datetime(2024, 3, 3, 10)),
            ProviderWithdrawal(id="wd-1", provider_id="prov-1", amount=Decimal("300.00"), status="Pending",
                               requested_at=datetime(2024, 3, 4, 10)),
            ProviderWithdrawal(id="wd-2", provider_id="prov-2", amount=Decimal("50.00"), status="Paid",
                               requested_at=datetime(2024, 3, 5, 10), processed_at=datetime(2024, 3, 6, 10)),
        ])
        await session.commit()

    yield SQLRecordStore(session_factory)
    await engine.dispose()


@pytest.mark.integration
class TestSQLRecordStore:
    """Test cases for SQLRecordStore."""

    async def test_equality_and_count(self, sql_store):
        page = await sql_store.fetch(RecordQuery("appointments").where(status="Completed").with_count())

        assert page.total == 4
        assert len(page.rows) == 4

    async def test_count_only(self, sql_store):
        assert await sql_store.count(RecordQuery("providers").where_in("account_status", ["pending_approval"])) == 1
        assert await sql_store.count(RecordQuery("patients")) == 2

    async def test_range_order_and_pagination(self, sql_store):
        query = (
            RecordQuery("appointments")
            .select("id", "scheduled_date")
            .gte("scheduled_date", date(2024, 3, 11))
            .lte("scheduled_date", date(2024, 3, 13))
            .order("scheduled_date", descending=True)
            .paginate(page=1, page_size=2)
            .with_count()
        )

        page = await sql_store.fetch(query)

        assert page.total == 3
        assert [row["id"] for row in page.rows] == ["apt-3", "apt-2"]
        assert set(page.rows[0]) == {"id", "scheduled_date"}

    async def test_unknown_collection(self, sql_store):
        with pytest.raises(SourceFetchError):
            await sql_store.fetch(RecordQuery("support_tickets"))

    async def test_unknown_column(self, sql_store):
        with pytest.raises(SourceFetchError):
            await sql_store.fetch(RecordQuery("appointments").where(colour="blue"))

    async def test_revenue_logs_through_fetcher(self, sql_store):
        entries, total = await RecordFetcher(sql_store).fetch_revenue_logs(1, 10, "appointment_commission")

        assert total == 2
        assert [entry.id for entry in entries] == ["log-2", "log-1"]
        assert entries[0].amount == pytest.approx(30)

    async def test_analytics_report_end_to_end(self, sql_store):
        """Analytics over real SQL rows; patients have no address so locations are empty."""
        report = await AnalyticsService(RecordFetcher(sql_store)).get_report()

        assert sum(entry.count for entry in report.appointments_by_service) == 4
        assert report.top_locations == []
        assert [s.provider_name for s in report.top_earning_providers] == ["Alice Nurse", "Bob Carer"]
        assert report.top_earning_providers[0].total_earnings == pytest.approx(2000 + 4000)
        assert [p.count for p in report.appointment_trends.daily] == [1, 1, 1, 1]

    async def test_transaction_listing_through_service(self, sql_store):
        page = await FinancialMetricsService(RecordFetcher(sql_store)).list_transactions(status="completed")

        assert page.total == 2
        assert [t.id for t in page.items] == ["tx-2", "tx-1"]
        assert (page.items[0].patient_name, page.items[0].provider_name) == ("Bayo", "Alice Nurse")

    async def test_payout_listing_through_service(self, sql_store):
        page = await FinancialMetricsService(RecordFetcher(sql_store)).list_payouts(status="completed")

        assert page.total == 1
        assert page.items[0].id == "wd-2"
        assert page.items[0].provider_name == "Bob Carer"
        assert page.items[0].completed_at is not None

    async def test_rollup_splits_revenue_logs(self, sql_store):
        rollup = await FinancialMetricsService(RecordFetcher(sql_store)).get_rollup()

        assert rollup.platform_commissions == pytest.approx(20 + 30)
        assert rollup.platform_cancellation_fees == pytest.approx(10)
        assert rollup.pending_payouts == pytest.approx(300)
        assert rollup.total_topup_revenue == pytest.approx(500)
