import asyncio
import os
import sys

# Aggiungi backend/ alla PYTHONPATH per importare koruku.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from koruku.core.config import settings
from koruku.core.database import close_db, reset_schema


async def reset():
    print(f"Database {settings.app_env}: ricreazione tabelle...")
    try:
        tables = await reset_schema()
    finally:
        await close_db()
    print(f"Tabelle create: {', '.join(tables)}")
    print(
        f"Numerazione ripartirà da {settings.invoice_prefix}-YYYY-001 "
        f"e {settings.quotation_prefix}-YYYY-001"
    )


if __name__ == "__main__":
    if settings.is_production:
        sys.exit("Reset non consentito in produzione")
    asyncio.run(reset())
