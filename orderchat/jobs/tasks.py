"""Background job tasks"""

import asyncio
from typing import Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload
import structlog

from orderchat.config import settings
from orderchat.conversation.store import ConversationStore
from orderchat.database import SessionLocal, engine
from orderchat.jobs.celery_app import celery_app
from orderchat.models.tenant import Tenant

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async functions in sync context"""
    async def _run():
        try:
            return await coro
        finally:
            # Pooled connections are bound to this event loop
            await engine.dispose()

    return asyncio.run(_run())


async def sweep_stale_conversations(session_factory: async_sessionmaker = SessionLocal) -> Dict[str, int]:
    """Abandon idle conversations of every active restaurant, each with its own threshold"""
    store = ConversationStore(session_factory)

    async with session_factory() as db:
        result = await db.execute(
            select(Tenant)
            .where(Tenant.is_active == True)
            .options(selectinload(Tenant.settings))
        )
        tenants = result.scalars().all()

    expired = {}
    for tenant in tenants:
        threshold = settings.max_conversation_seconds
        if tenant.settings and tenant.settings.max_conversation_seconds:
            threshold = tenant.settings.max_conversation_seconds

        count = await store.expire_stale(threshold, restaurant_id=tenant.id)
        if count:
            expired[str(tenant.id)] = count

    return expired


@celery_app.task(name="expire_stale_conversations")
def expire_stale_conversations():
    """Periodic sweep of conversations left without interaction"""
    logger.info("Expiring stale conversations")

    expired = run_async(sweep_stale_conversations())
    total = sum(expired.values())

    logger.info("Stale conversations expired", total=total, restaurants=len(expired))
    return total
