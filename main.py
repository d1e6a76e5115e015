"""Verify MongoDB connectivity, create indexes, and report the last import."""

import asyncio

from cultural_events.db import close_db, get_client, get_db, init_db
from cultural_events.reconcile import last_imported_at


async def main() -> None:
    client = get_client()
    db = get_db()

    # Ping to verify connection
    result = await client.admin.command("ping")
    print(f"MongoDB ping: {result}")

    await init_db()
    print("Indexes created.")

    venues = await db.venues.count_documents({})
    events = await db.events.count_documents({})
    print(f"Collections in '{db.name}': {venues} venues, {events} events")

    last = await last_imported_at(db)
    print(f"Last import: {last.isoformat() if last else 'never'}")

    await close_db()
    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
