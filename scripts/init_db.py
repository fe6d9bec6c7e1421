"""
Initialize database tables and seed organization defaults.

Usage:
    python scripts/init_db.py
"""
import asyncio

from yardgate.database import engine, Base, get_db_session
from yardgate.services.settings_service import SettingsService

# Import all models to register them with Base
from yardgate import models  # noqa: F401


async def init():
    """Create all tables and the safety-equipment inventory row."""
    print("Creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_db_session() as session:
        service = SettingsService(session)
        inventory = await service.get_inventory()
        yard = await service.get_yard_settings()

    print("Database tables created successfully!")
    print(f"  Docks: {', '.join(dock.name for dock in yard.docks)}")
    print(f"  Weight threshold: {yard.weight_threshold_percentage}%")
    print(f"  Wheel chokes: {inventory.wheel_choke_count}, safety shoes: {inventory.safety_shoe_count}")


if __name__ == "__main__":
    asyncio.run(init())
