#!/usr/bin/env python3
"""
Seed script to create a demo restaurant with catalog and business rules
"""

import asyncio
import uuid

DEMO_RESTAURANT = "Alitas El Güero"


async def seed_demo_data():
    """Seed demo data for development"""
    from sqlalchemy import select

    from orderchat.database import SessionLocal, engine, Base
    from orderchat.models.tenant import Tenant, RestaurantSettings, BusinessRule
    from orderchat.models.menu import MenuItem

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        # Check if demo tenant already exists
        result = await db.execute(
            select(Tenant).where(Tenant.name == DEMO_RESTAURANT)
        )
        existing = result.scalar_one_or_none()

        if existing:
            print("Demo data already exists. Skipping...")
            return

        print("Creating demo restaurant...")

        tenant = Tenant(
            id=uuid.uuid4(),
            name=DEMO_RESTAURANT,
            timezone="America/Mexico_City",
            llm_provider="anthropic",
            llm_model="claude-3-5-sonnet-20241022",
        )
        db.add(tenant)
        await db.flush()

        print(f"Created restaurant: {tenant.name} (ID: {tenant.id})")

        settings = RestaurantSettings(
            tenant_id=tenant.id,
            address="Av. Juárez 120, Centro",
            phone="+525512345678",
            opens_at="13:00",
            closes_at="23:00",
            delivery_fee_cents=3000,
            minimum_order_cents=15000,
            delivery_time_min=30,
            delivery_time_max=45,
            max_conversation_seconds=1800,
            welcome_message=(
                "¡Hola! 👋 Bienvenido a Alitas El Güero. "
                "¿Se te antojan unas alitas o una hamburguesa?"
            ),
            error_message="Lo siento, tuvimos un problema. ¿Podrías repetir tu mensaje?",
        )
        db.add(settings)

        rules = [
            {
                "rule_name": "Límite de salsas",
                "rule_type": "sauce_limit",
                "rule_config": {"max_sauces_per_order": 2},
                "ai_message_template": "Cada orden de alitas incluye hasta 2 salsas.",
            },
            {
                "rule_name": "Aderezo extra",
                "rule_type": "extra_cost",
                "rule_config": {"item": "aderezo", "extra_cost_cents": 1500},
                "ai_message_template": "El aderezo extra cuesta $15.",
            },
        ]
        for rule_data in rules:
            db.add(BusinessRule(tenant_id=tenant.id, **rule_data))

        menu_items = [
            # Alitas
            {"name": "Alitas BBQ", "description": "10 piezas con salsa BBQ", "price_cents": 13900, "category": "Alitas"},
            {"name": "Alitas Búfalo", "description": "10 piezas con salsa búfalo", "price_cents": 13900, "category": "Alitas"},
            {"name": "Alitas Mango Habanero", "description": "10 piezas, picor alto", "price_cents": 14900, "category": "Alitas"},
            {"name": "Boneless", "description": "300 g con la salsa de tu elección", "price_cents": 12900, "category": "Alitas"},

            # Hamburguesas
            {"name": "Hamburguesa Clásica", "description": "Res, queso americano, lechuga y jitomate", "price_cents": 11900, "category": "Hamburguesas"},
            {"name": "Hamburguesa Doble", "description": "Doble carne y doble queso", "price_cents": 15900, "category": "Hamburguesas"},
            {"name": "Hotdog Jumbo", "description": "Con tocino y cebolla asada", "price_cents": 7900, "category": "Hamburguesas"},

            # Complementos
            {"name": "Papas a la Francesa", "description": None, "price_cents": 5500, "category": "Complementos"},
            {"name": "Aros de Cebolla", "description": None, "price_cents": 6500, "category": "Complementos"},

            # Bebidas
            {"name": "Refresco", "description": "600 ml", "price_cents": 3500, "category": "Bebidas"},
            {"name": "Limonada", "description": "1 litro", "price_cents": 4500, "category": "Bebidas"},
        ]

        for index, item_data in enumerate(menu_items):
            db.add(MenuItem(tenant_id=tenant.id, sort_order=index, **item_data))

        await db.commit()

        print(f"""
Demo data created successfully!

Restaurant: {DEMO_RESTAURANT}
  ID: {tenant.id}

Menu: {len(menu_items)} items created
Business rules: {len(rules)} created

Send a message with:
  curl -X POST http://localhost:8000/tenants/{tenant.id}/conversations/turn \\
    -H 'Content-Type: application/json' \\
    -d '{{"customer_phone": "+525598765432", "text": "Hola, quiero 2 alitas bbq"}}'
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
