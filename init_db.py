"""Initialize database tables and seed the general cost types"""
import asyncio
from bidflow.database import engine, Base, AsyncSessionLocal
from bidflow.main import seed_cost_types
from bidflow.models import *  # noqa: F401,F403 - Import all models to register them


async def init():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Database tables created successfully.")

    async with AsyncSessionLocal() as session:
        added = await seed_cost_types(session)
    print(f"Seeded {added} general cost types.")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init())
