#!/usr/bin/env python3
"""Initialize database tables and the root account."""

import asyncio
import sys

from loguru import logger

from fingrow.config.database import async_engine, async_session_maker, create_tables
from fingrow.config.settings import settings
from fingrow.repositories.user_repository import UserRepository
from fingrow.services.user_service import UserService

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database(root_username: str = "fingrow") -> None:
    """Create all tables and the root account NIC users attach to."""
    logger.info("Creating tables (checkfirst=True)...")
    await create_tables(async_engine)

    async with async_session_maker() as session:
        root = await UserRepository(session).get_root()
        if root:
            logger.info(f"Root account already exists: {root.username} ({root.invite_code})")
        else:
            root = await UserService(session).create_root(root_username)
            logger.info(
                f"Root account created: {root.username} "
                f"(invite code {settings.root_invite_code})"
            )

    await async_engine.dispose()
    logger.success("Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_database(*sys.argv[1:2]))
