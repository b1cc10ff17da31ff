"""
Permission Resolver

Maps a user to the set of permission tokens they hold: the tokens of their
role, plus the tokens of every permission group explicitly granted to them.
Grants only ever add tokens.
"""

import logging

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.auth.roles import Role, role_tokens
from caseflow.errors import NotFoundError, ValidationError
from caseflow.models import PermissionGroup, UserPermissionGroup

logger = logging.getLogger(__name__)


class PermissionResolver:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def tokens_for(self, user_id: str, role: Role | str) -> set[str]:
        """Role tokens ∪ granted group tokens for ``user_id``."""
        tokens = role_tokens(role)
        for group in await self.groups_for_user(user_id):
            tokens.update(str(t) for t in (group.permissions or []))
        return tokens

    async def groups_for_user(self, user_id: str) -> list[PermissionGroup]:
        result = await self.session.execute(
            select(PermissionGroup)
            .join(UserPermissionGroup, UserPermissionGroup.group_id == PermissionGroup.id)
            .where(UserPermissionGroup.user_id == user_id)
            .order_by(PermissionGroup.name)
        )
        return list(result.scalars())

    # ── Grant store management ───────────────────────────────────────────

    async def create_group(
        self, name: str, permissions: list[str], description: str | None = None
    ) -> PermissionGroup:
        malformed = [p for p in permissions if p.count(":") not in (1, 2)]
        if malformed:
            raise ValidationError(f"Malformed permission tokens: {sorted(malformed)}")

        existing = await self.session.execute(
            select(PermissionGroup.id).where(PermissionGroup.name == name)
        )
        if existing.scalar_one_or_none() is not None:
            raise ValidationError(f"Permission group '{name}' already exists")

        group = PermissionGroup(
            name=name,
            description=description,
            permissions=sorted(set(permissions)),
        )
        self.session.add(group)
        await self.session.flush()
        return group

    async def get_group(self, group_id: str) -> PermissionGroup:
        result = await self.session.execute(
            select(PermissionGroup).where(PermissionGroup.id == group_id)
        )
        group = result.scalar_one_or_none()
        if group is None:
            raise NotFoundError(f"Permission group {group_id} not found")
        return group

    async def list_groups(self) -> list[PermissionGroup]:
        result = await self.session.execute(select(PermissionGroup).order_by(PermissionGroup.name))
        return list(result.scalars())

    async def grant_group(self, user_id: str, group_id: str, assigned_by: str | None = None) -> UserPermissionGroup:
        """Grant a group to a user; granting twice is a no-op."""
        await self.get_group(group_id)

        result = await self.session.execute(
            select(UserPermissionGroup).where(
                UserPermissionGroup.user_id == user_id,
                UserPermissionGroup.group_id == group_id,
            )
        )
        link = result.scalar_one_or_none()
        if link is not None:
            return link

        link = UserPermissionGroup(user_id=user_id, group_id=group_id, assigned_by=assigned_by)
        self.session.add(link)
        await self.session.flush()
        logger.info("Granted permission group %s to user %s", group_id, user_id)
        return link

    async def revoke_group(self, user_id: str, group_id: str) -> bool:
        result = await self.session.execute(
            delete(UserPermissionGroup).where(
                UserPermissionGroup.user_id == user_id,
                UserPermissionGroup.group_id == group_id,
            )
        )
        revoked = result.rowcount == 1
        if revoked:
            logger.info("Revoked permission group %s from user %s", group_id, user_id)
        return revoked
