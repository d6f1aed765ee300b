"""
Tests for the public template catalog.
"""

from __future__ import annotations

import uuid

import pytest

from app.core.errors import ErrorKind, ServiceError
from app.services.templates import TemplateService, clamp_limit


class TestClampLimit:
    @pytest.mark.parametrize("requested, expected", [(0, 10), (-5, 10), (51, 10), (1, 1), (50, 50)])
    def test_clamp(self, requested, expected):
        assert clamp_limit(requested) == expected


class TestSearch:
    async def test_case_insensitive_ordered_by_name(self, session):
        templates = TemplateService(session)
        for name in ("Stripe API", "GitHub REST", "stripe webhooks", "Slack"):
            await templates.create(name, {"requests": []})

        found = await templates.search("STRIPE")
        assert [t.name for t in found] == ["Stripe API", "stripe webhooks"]

    async def test_limit(self, session):
        templates = TemplateService(session)
        for i in range(15):
            await templates.create(f"Template {i:02d}", {})
        assert len(await templates.search("", 0)) == 10
        assert len(await templates.search("", 3)) == 3

    async def test_get_and_delete(self, session):
        templates = TemplateService(session)
        created = await templates.create("Petstore", {"openapi": "3.0.0"}, category="samples")
        assert (await templates.get_by_id(created.id)).category == "samples"
        await templates.delete(created.id)
        with pytest.raises(ServiceError) as exc:
            await templates.delete(uuid.uuid4())
        assert exc.value.kind == ErrorKind.NOT_FOUND
