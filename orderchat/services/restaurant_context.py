"""Restaurant profile, catalog and rules loaded for a conversation turn"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from orderchat.config import settings
from orderchat.errors import NotFoundError
from orderchat.models.menu import MenuItem
from orderchat.models.tenant import BusinessRule, Tenant
from orderchat.schemas.restaurant import BusinessRuleContext, CatalogItem, RestaurantContext

logger = structlog.get_logger()


async def load_restaurant_context(db: AsyncSession, tenant_id: UUID) -> RestaurantContext:
    """Build the read-only RestaurantContext for an active tenant"""
    result = await db.execute(
        select(Tenant)
        .where(Tenant.id == tenant_id, Tenant.is_active == True)
        .options(selectinload(Tenant.settings))
    )
    tenant = result.scalar_one_or_none()

    if not tenant:
        raise NotFoundError("Restaurant", str(tenant_id))

    menu_result = await db.execute(
        select(MenuItem)
        .where(
            MenuItem.tenant_id == tenant_id,
            MenuItem.is_active == True,
            MenuItem.is_available == True,
        )
        .order_by(MenuItem.category, MenuItem.sort_order, MenuItem.name)
    )
    catalog = [
        CatalogItem(
            id=item.id,
            name=item.name,
            price_cents=item.price_cents,
            description=item.description,
            category=item.category,
        )
        for item in menu_result.scalars().all()
    ]

    rules_result = await db.execute(
        select(BusinessRule)
        .where(BusinessRule.tenant_id == tenant_id, BusinessRule.is_active == True)
        .order_by(BusinessRule.created_at)
    )
    rules = [
        BusinessRuleContext(
            rule_name=rule.rule_name,
            ai_message_template=rule.ai_message_template,
            rule_config=rule.rule_config or {},
        )
        for rule in rules_result.scalars().all()
    ]

    settings_obj = tenant.settings

    context = RestaurantContext(
        id=tenant.id,
        name=tenant.name,
        llm_provider=tenant.llm_provider,
        llm_model=tenant.llm_model,
        catalog=catalog,
        business_rules=rules,
    )

    if settings_obj:
        context.opens_at = settings_obj.opens_at
        context.closes_at = settings_obj.closes_at
        context.delivery_fee_cents = settings_obj.delivery_fee_cents or 0
        context.minimum_order_cents = settings_obj.minimum_order_cents or 0
        context.delivery_time_min = settings_obj.delivery_time_min or context.delivery_time_min
        context.delivery_time_max = settings_obj.delivery_time_max or context.delivery_time_max
        context.max_conversation_seconds = (
            settings_obj.max_conversation_seconds or settings.max_conversation_seconds
        )
        context.welcome_message = settings_obj.welcome_message
        context.error_message = settings_obj.error_message

    logger.debug(
        "Restaurant context loaded",
        tenant_id=str(tenant_id),
        catalog_size=len(catalog),
        rule_count=len(rules),
    )
    return context
