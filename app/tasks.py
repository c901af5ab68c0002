"""Celery background tasks for the earnings ledger."""

import asyncio
import logging

from celery import shared_task

from app.database import close_db, get_db_context
from app.repositories.sqlalchemy import SqlAlchemyUnitOfWork
from app.services.earnings_service import EarningsLedger

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


# ==================== LEDGER TASKS ====================


@shared_task(bind=True, max_retries=3)
def promote_pending_earnings(self):
    """Make pending earnings available once their available date has passed.

    Idempotent; records promoted by an earlier run are untouched.
    """
    try:
        promoted = run_async(_promote_pending_earnings())
        return {"status": "success", "promoted": promoted}
    except Exception as exc:
        logger.error(f"Earnings sweep failed: {exc}")
        raise self.retry(exc=exc, countdown=300)


async def _promote_pending_earnings() -> int:
    try:
        async with get_db_context() as db:
            return await EarningsLedger().promote_pending_by_date(SqlAlchemyUnitOfWork(db))
    finally:
        # Pooled connections belong to this run's event loop
        await close_db()
