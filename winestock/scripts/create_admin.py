#!/usr/bin/env python3
"""
Create (or re-password) an administrator account.

Creates the schema first if it does not exist yet.

Usage:
    winestock-create-admin admin s3cret                     # create admin
    winestock-create-admin admin n3wpass --update-password  # reset existing user
"""

import argparse
import asyncio
import sys

from sqlalchemy import select

from winestock.core.config import get_settings
from winestock.core.security import hash_password
from winestock.db.database import Base, SessionLocal, engine
from winestock.models import history, wine  # noqa: F401  (register tables)
from winestock.models.user import User

settings = get_settings()


async def create_admin(username: str, password: str, update_password: bool = False) -> int:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        async with SessionLocal() as db:
            result = await db.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()

            if user is not None:
                if not update_password:
                    print(f"User '{username}' already exists; pass --update-password to reset it",
                          file=sys.stderr)
                    return 1
                user.hashed_password = hash_password(password)
                user.is_admin = True
                await db.commit()
                print(f"Password updated for '{username}'")
                return 0

            db.add(User(username=username, hashed_password=hash_password(password), is_admin=True))
            await db.commit()
            print(f"Administrator '{username}' created")
            return 0
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a wine-stock administrator account")
    parser.add_argument("username")
    parser.add_argument("password")
    parser.add_argument("--update-password", action="store_true",
                        help="Reset the password if the user already exists")
    args = parser.parse_args(argv)

    if len(args.username) < 3:
        print("ERROR: username must be at least 3 characters", file=sys.stderr)
        return 1
    if len(args.password) < settings.MIN_PASSWORD_LENGTH:
        print(f"ERROR: password must be at least {settings.MIN_PASSWORD_LENGTH} characters",
              file=sys.stderr)
        return 1

    try:
        return asyncio.run(create_admin(args.username, args.password, args.update_password))
    except Exception as exc:
        print(f"ERROR: operation failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
