"""Seed a development database with a user, a team, workspaces and public templates.

Usage:
    python -m app.scripts.seed_dev_data

Requires NIKODE_DATABASE_URL (or defaults to localhost). Safe to run twice.
"""

import asyncio

import structlog
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session_context
from app.core.logging import configure_logging
from app.models.template import PublicTemplate
from app.services.collections import CollectionService
from app.services.teams import TeamService
from app.services.templates import TemplateService
from app.services.users import OAuthUserInfo, UserService
from app.services.workspaces import WorkspaceService

log = structlog.get_logger()

DEV_USER = OAuthUserInfo(
    provider="github",
    provider_id="dev-0001",
    email="alice@nikode.dev",
    name="Alice",
)

TEMPLATES = [
    {
        "name": "JSONPlaceholder",
        "description": "Fake REST API for prototyping.",
        "category": "samples",
        "data": {
            "baseUrl": "https://jsonplaceholder.typicode.com",
            "requests": [
                {"name": "List posts", "method": "GET", "url": "{{baseUrl}}/posts"},
                {"name": "Get post", "method": "GET", "url": "{{baseUrl}}/posts/1"},
            ],
        },
    },
    {
        "name": "GitHub REST",
        "description": "Common GitHub REST v3 calls.",
        "category": "developer-tools",
        "data": {
            "baseUrl": "https://api.github.com",
            "requests": [
                {"name": "Current user", "method": "GET", "url": "{{baseUrl}}/user"},
                {"name": "List repos", "method": "GET", "url": "{{baseUrl}}/user/repos"},
            ],
        },
    },
    {
        "name": "Petstore",
        "description": "The OpenAPI sample pet store.",
        "category": "samples",
        "data": {
            "baseUrl": "https://petstore3.swagger.io/api/v3",
            "requests": [
                {"name": "Find by status", "method": "GET", "url": "{{baseUrl}}/pet/findByStatus?status=available"},
            ],
        },
    },
]


async def seed_templates(session) -> int:
    existing = set((await session.execute(select(PublicTemplate.name))).scalars().all())
    templates = TemplateService(session)
    created = 0
    for template in TEMPLATES:
        if template["name"] in existing:
            continue
        await templates.create(
            template["name"],
            template["data"],
            description=template["description"],
            category=template["category"],
        )
        created += 1
    return created


async def seed():
    async with get_session_context() as session:
        user = await UserService(session).find_or_create_from_oauth(DEV_USER)

        workspaces = WorkspaceService(session)
        if not await workspaces.list_for_user(user.id):
            personal = await workspaces.create("Alice's workspace", user.id)
            team = await TeamService(session).create("Platform", user.id)
            await workspaces.create("Platform shared", user.id, team_id=team.id)
            await CollectionService(session).create(
                personal.id, "Scratch", {"requests": []}, user.id
            )

        created = await seed_templates(session)

    log.info("seed.done", user=DEV_USER.email, templates_created=created)


if __name__ == "__main__":
    settings = get_settings()
    configure_logging(settings.log_level, "console")
    asyncio.run(seed())
