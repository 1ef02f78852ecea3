"""Test configuration and fixtures"""

import asyncio
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from uuid import uuid4

from orderchat.main import app
from orderchat.database import Base, get_db
from orderchat.api.conversations import get_finalizer, get_lifecycle
from orderchat.conversation.lifecycle import LifecycleManager
from orderchat.conversation.store import ConversationStore
from orderchat.llm.gateway import CompletionGateway
from orderchat.llm.providers.base import BaseLLMProvider
from orderchat.models.tenant import Tenant, RestaurantSettings, BusinessRule
from orderchat.models.menu import MenuItem
from orderchat.schemas.llm import CompletionResult, UsageStats
from orderchat.services.order_finalizer import OrderFinalizer
from orderchat.services.restaurant_context import load_restaurant_context


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite://"


class ScriptedProvider(BaseLLMProvider):
    """Completion provider returning queued replies"""

    name = "stub"

    def __init__(self):
        super().__init__("stub-model")
        self.replies = []
        self.calls = []
        self.delay = 0
        self.error = None

    async def generate(self, system_prompt, messages, temperature=0.7, max_tokens=500):
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error

        text = self.replies.pop(0) if self.replies else "¡Claro! ¿Algo más?"
        return CompletionResult(
            text=text,
            model=self.model,
            provider=self.name,
            usage=UsageStats(input_tokens=120, output_tokens=30),
        )


@pytest.fixture
async def engine():
    """Create test database"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def test_tenant(test_db):
    """Create a test restaurant"""
    tenant = Tenant(
        id=uuid4(),
        name="Alitas de Prueba",
        timezone="America/Mexico_City",
        llm_provider="stub",
        llm_model="stub-model",
    )
    test_db.add(tenant)
    await test_db.flush()

    settings = RestaurantSettings(
        tenant_id=tenant.id,
        address="Av. Juárez 120",
        opens_at="13:00",
        closes_at="23:00",
        delivery_fee_cents=3000,
        minimum_order_cents=0,
        delivery_time_min=30,
        delivery_time_max=45,
        max_conversation_seconds=1800,
        welcome_message="¡Hola! Bienvenido a Alitas de Prueba 🍗",
        error_message="Tuvimos un problema, intenta de nuevo por favor.",
    )
    test_db.add(settings)
    await test_db.commit()

    return tenant


@pytest.fixture
async def test_menu_items(test_db, test_tenant):
    """Create test catalog and business rules"""
    items = [
        MenuItem(
            tenant_id=test_tenant.id,
            name="Alitas BBQ",
            description="10 piezas con salsa BBQ",
            price_cents=13900,
            category="Alitas",
        ),
        MenuItem(
            tenant_id=test_tenant.id,
            name="Hamburguesa Clásica",
            description="Res, queso y lechuga",
            price_cents=11900,
            category="Hamburguesas",
        ),
        MenuItem(
            tenant_id=test_tenant.id,
            name="Refresco",
            description="600 ml",
            price_cents=3500,
            category="Bebidas",
        ),
    ]

    for item in items:
        test_db.add(item)

    test_db.add(
        BusinessRule(
            tenant_id=test_tenant.id,
            rule_name="Límite de salsas",
            rule_type="sauce_limit",
            rule_config={"max_sauces_per_order": 2},
            ai_message_template="Cada orden de alitas incluye hasta 2 salsas.",
        )
    )

    await test_db.commit()
    return items


@pytest.fixture
async def restaurant(session_factory, test_tenant, test_menu_items):
    """RestaurantContext loaded the way the API loads it"""
    async with session_factory() as db:
        return await load_restaurant_context(db, test_tenant.id)


@pytest.fixture
def store(session_factory):
    return ConversationStore(session_factory)


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def gateway(provider):
    return CompletionGateway(providers={"stub": lambda model: provider}, timeout_seconds=2)


@pytest.fixture
def lifecycle(store, gateway):
    return LifecycleManager(store=store, gateway=gateway)


@pytest.fixture
def finalizer(session_factory, store):
    return OrderFinalizer(session_factory, store)


@pytest.fixture
async def client(session_factory, lifecycle, finalizer):
    """Create test client with overridden database and engine"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle
    app.dependency_overrides[get_finalizer] = lambda: finalizer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
