"""Shared FastAPI dependencies."""

from fastapi import Depends

from homecare_metrics.db.base import SessionLocal
from homecare_metrics.db.store import RecordStore, SQLRecordStore
from homecare_metrics.services.record_fetcher import RecordFetcher


def get_record_store() -> RecordStore:
    """Record store dependency."""
    return SQLRecordStore(SessionLocal)


def get_fetcher(store: RecordStore = Depends(get_record_store)) -> RecordFetcher:
    """Record fetcher bound to the request's record store."""
    return RecordFetcher(store)
