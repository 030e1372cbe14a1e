#!/usr/bin/env python3
"""
Create an admin user, or promote an existing account to admin.
Run from backend/: python -m scripts.create_admin admin@example.com 'Secret123' --first-name Ada --last-name Admin
"""
import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


async def main(args: argparse.Namespace):
    from app.database import async_session, init_db
    from app.models import User
    from app.services.auth_service import hash_password, password_problems
    from sqlalchemy import select

    problems = password_problems(args.password)
    if problems:
        print("Error: " + "; ".join(problems))
        sys.exit(1)

    await init_db()
    email = args.email.lower()
    async with async_session() as db:
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user:
            user.role = "admin"
            user.is_active = True
            await db.commit()
            print(f"Promoted existing user to admin: {email}")
            return

        admin = User(
            email=email,
            password_hash=hash_password(args.password),
            first_name=args.first_name,
            last_name=args.last_name,
            role="admin",
            subscription_tier="enterprise",
            is_active=True,
        )
        db.add(admin)
        await db.commit()
        print(f"Created admin user: {admin.email}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--first-name", default="Admin")
    parser.add_argument("--last-name", default="User")
    asyncio.run(main(parser.parse_args()))
