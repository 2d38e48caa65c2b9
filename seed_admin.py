"""
Create the initial administrator account.

    python seed_admin.py --email admin@microfin.in --password admin123
"""
import argparse
import asyncio
import logging

from microfin.core.config import settings
from microfin.core.database import Base, AsyncSessionLocal, async_engine
from microfin.core.logging import setup_logging
from microfin.modules.users.models import UserRole
from microfin.modules.users.services import UserService

logger = logging.getLogger("microfin.seed")


async def create_admin_user(name: str, email: str, password: str, phone: str) -> None:
    """Create an admin user unless one with this email exists"""
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        if await UserService.get_user_by_email(session, email):
            logger.info(f"Admin user {email} already exists")
            return

        user = await UserService.create_user(
            session,
            name=name,
            email=email,
            password=password,
            role=UserRole.ADMIN,
            phone=phone
        )
        await session.commit()
        logger.info(f"Created admin user {user.id} ({user.email})")

    await async_engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description=f"Seed the {settings.APP_NAME} administrator")
    parser.add_argument("--name", default="Administrator")
    parser.add_argument("--email", default="admin@microfin.in")
    parser.add_argument("--password", default="admin123")
    parser.add_argument("--phone", default="9999999999")
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    asyncio.run(create_admin_user(args.name, args.email, args.password, args.phone))


if __name__ == "__main__":
    main()
