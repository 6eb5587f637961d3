# storefront/seed_db.py
# Usage: python -m storefront.seed_db
import asyncio, json
from pathlib import Path
from dotenv import load_dotenv
load_dotenv()

from storefront.config import clean_env
from storefront.db import engine, AsyncSessionLocal, Base
from storefront.logger import logger
from storefront import crud

DATA_DIR = Path(__file__).resolve().parent / "data"
PRODUCTS_FILE = DATA_DIR / "products.json"

ADMIN_EMAIL = clean_env("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = clean_env("ADMIN_PASSWORD", "12345678")


async def seed(products_file: Path = PRODUCTS_FILE):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    with open(products_file, "r", encoding="utf-8") as f:
        data = json.load(f)
    by_id = {str(p["id"]): p for p in data.get("products", [])}

    async with AsyncSessionLocal() as session:
        for p in by_id.values():
            await crud.upsert_product(session, p)
        for pid in data.get("featured_products", []):
            if str(pid) in by_id:
                await crud.upsert_product(session, by_id[str(pid)], featured=True)

        admin = await crud.get_user_by_email(session, ADMIN_EMAIL)
        if not admin:
            await crud.create_user(session, "Admin User", ADMIN_EMAIL, ADMIN_PASSWORD, role="admin")
            logger.info(f"[SEED] created admin {ADMIN_EMAIL}")
        elif admin.role != "admin":
            logger.warning(f"[SEED] {ADMIN_EMAIL} exists with role {admin.role}; left unchanged")

    logger.info(f"[SEED] seeded {len(by_id)} products")

if __name__ == "__main__":
    asyncio.run(seed())
