"""
Admin Bootstrap Script

Creates an admin account directly in the configured document store.
The HTTP admin-creation endpoint itself requires an admin, so the first
one has to come from here.
Run from project root: python scripts/create_admin.py --name ... --email ... --phone ... --password ...
"""

import argparse
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from menu_api.core.config import require_settings, setup_logging
from menu_api.core.exceptions import AppError
from menu_api.core.security import get_token_service
from menu_api.services.accounts import AccountService
from menu_api.services.storage import get_document_store

logger = logging.getLogger("menu_api.scripts.create_admin")


async def create_admin(name: str, email: str, phone_number: str, password: str) -> bool:
    store = get_document_store()
    await store.initialize()
    try:
        accounts = AccountService(store.users, get_token_service())
        result = await accounts.create_admin(name, email, phone_number, password)
    except AppError as e:
        logger.error(f"❌ {e.message}")
        for detail in e.errors or []:
            logger.error(f"   {detail}")
        return False
    finally:
        await store.close()

    logger.info(f"✅ Admin created: {result.user['email']} ({result.user['id']})")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--phone", required=True, help="Phone number, e.g. +2348012345678")
    parser.add_argument("--password", required=True)
    args = parser.parse_args()

    require_settings()
    setup_logging()

    if not asyncio.run(create_admin(args.name, args.email, args.phone, args.password)):
        sys.exit(1)
