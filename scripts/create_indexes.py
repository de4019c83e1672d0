import asyncio

from foodshare.core.db import ensure_indexes, get_db


async def main():
    await ensure_indexes(get_db())
    print("Indexes ensured on", get_db().name)

if __name__ == "__main__":
    asyncio.run(main())
