#!/usr/bin/env python3
from __future__ import annotations

import asyncio
from getpass import getpass

from taskboard.auth.users import DuplicateEmail, create_user
from taskboard.config import Settings
from taskboard.core.validation import validate_registration
from taskboard.infra.db import create_engine, init_database


async def _create(settings: Settings, **fields) -> str:
    engine = create_engine(settings.database_url)
    try:
        await init_database(engine)
        user = await create_user(engine, **fields)
        return user.id
    finally:
        await engine.dispose()


def main() -> None:
    settings = Settings.from_env()

    first_name = input("First name: ").strip()
    last_name = input("Last name: ").strip()
    email = input("Email: ").strip()

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    errors = validate_registration(first_name, last_name, email, pw1)
    if errors:
        for f, msgs in errors.items():
            for m in msgs:
                print(f"{f.value}: {m}")
        raise SystemExit(1)

    try:
        user_id = asyncio.run(
            _create(settings, first_name=first_name, last_name=last_name, email=email, password=pw1)
        )
    except DuplicateEmail:
        raise SystemExit("Email already in use")
    print(f"OK -> {user_id} ({settings.database_url})")


if __name__ == "__main__":
    main()
