"""Tests for role + group permission resolution."""

import pytest

from caseflow.auth.roles import Role, role_tokens
from caseflow.errors import NotFoundError, ValidationError
from caseflow.services.permission_resolver import PermissionResolver


class TestRoleTokens:
    def test_applicant_only_holds_self_tokens(self):
        tokens = role_tokens(Role.APPLICANT)
        assert tokens
        assert all(t.endswith(":self") for t in tokens)

    def test_agent_extends_expert(self):
        assert role_tokens("expert") < role_tokens("agent")
        assert "case:write" in role_tokens("agent")
        assert "case:write" not in role_tokens("expert")

    def test_admin_holds_security_tokens(self):
        assert {"security:read", "security:write", "case:assign"} <= role_tokens("admin")

    def test_tokens_are_plain_strings(self):
        assert all(type(t) is str for t in role_tokens("admin"))

    def test_returns_a_fresh_set(self):
        role_tokens("agent").add("analytics:read")
        assert "analytics:read" not in role_tokens("agent")

    def test_unknown_role(self):
        with pytest.raises(ValueError):
            role_tokens("superuser")


@pytest.mark.asyncio
class TestPermissionResolver:
    async def test_role_tokens_without_grants(self, db_session, agent):
        tokens = await PermissionResolver(db_session).tokens_for(agent.id, agent.role)
        assert tokens == role_tokens("agent")

    async def test_grants_are_additive(self, db_session, expert):
        resolver = PermissionResolver(db_session)
        reporting = await resolver.create_group("reporting", ["analytics:read", "analytics:write"])
        audit = await resolver.create_group("audit-readers", ["security:read"])
        await resolver.grant_group(expert.id, reporting.id)
        await resolver.grant_group(expert.id, audit.id)

        tokens = await resolver.tokens_for(expert.id, "expert")
        assert tokens == role_tokens("expert") | {"analytics:read", "analytics:write", "security:read"}
        assert [g.name for g in await resolver.groups_for_user(expert.id)] == ["audit-readers", "reporting"]

    async def test_granting_twice_is_a_no_op(self, db_session, agent, admin):
        resolver = PermissionResolver(db_session)
        group = await resolver.create_group("reporting", ["analytics:read"])
        first = await resolver.grant_group(agent.id, group.id, assigned_by=admin.id)
        second = await resolver.grant_group(agent.id, group.id, assigned_by=admin.id)
        assert first is second
        assert len(await resolver.groups_for_user(agent.id)) == 1

    async def test_revoke(self, db_session, agent):
        resolver = PermissionResolver(db_session)
        group = await resolver.create_group("reporting", ["analytics:read"])
        await resolver.grant_group(agent.id, group.id)

        assert await resolver.revoke_group(agent.id, group.id)
        assert not await resolver.revoke_group(agent.id, group.id)
        assert "analytics:read" not in await resolver.tokens_for(agent.id, "agent")

    async def test_grant_unknown_group(self, db_session, agent):
        with pytest.raises(NotFoundError):
            await PermissionResolver(db_session).grant_group(agent.id, "no-such-group")

    async def test_rejects_malformed_tokens(self, db_session):
        with pytest.raises(ValidationError, match="Malformed"):
            await PermissionResolver(db_session).create_group("bad", ["analytics", "case:read"])

    async def test_rejects_duplicate_names(self, db_session):
        resolver = PermissionResolver(db_session)
        await resolver.create_group("reporting", ["analytics:read"])
        with pytest.raises(ValidationError, match="already exists"):
            await resolver.create_group("reporting", ["analytics:write"])

    async def test_group_tokens_are_deduplicated(self, db_session):
        group = await PermissionResolver(db_session).create_group(
            "reporting", ["analytics:read", "analytics:read", "case:read"],
        )
        assert group.permissions == ["analytics:read", "case:read"]
