"""
Grant the super_admin global role to an existing user.

Usage: python -m app.scripts.promote_admin user@example.com
"""

import argparse
import asyncio
import sys

import structlog

from app.core.config import get_settings
from app.core.database import get_session_context
from app.core.errors import ServiceError
from app.core.logging import configure_logging
from app.services.users import UserService

log = structlog.get_logger()


async def promote(email: str) -> bool:
    try:
        async with get_session_context() as session:
            user = await UserService(session).promote_to_super_admin(email)
    except ServiceError:
        log.error("promote_admin.user_not_found", email=email)
        return False
    print(f"{user.email} is now a super admin.")
    return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Promote a user to super admin.")
    parser.add_argument("email", help="Email address of an existing user")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level, "console")
    return 0 if asyncio.run(promote(args.email)) else 1


if __name__ == "__main__":
    sys.exit(main())
