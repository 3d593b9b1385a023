"""
Membership resolver: effective roles and groups for an account.

Pure reads against the membership edges.  ``resolve`` bundles both into the
``Viewer`` that the visibility filter and feed work from; the elevated-role
bypass is ``Viewer.is_elevated``, which applies the same ``has_any_role``
predicate as the resolver does.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from campus_social.domain import Viewer, has_any_role
from campus_social.repositories.base import MembershipRepository


class MembershipResolver:
    def __init__(self, repo: MembershipRepository) -> None:
        self._repo = repo

    async def effective_roles(self, account_id: str) -> frozenset[str]:
        return frozenset(await self._repo.list_role_names(account_id))

    async def effective_groups(self, account_id: str) -> frozenset[str]:
        return frozenset(await self._repo.list_group_ids(account_id))

    async def effective_group_types(self, account_id: str) -> frozenset[str]:
        """Labels of the group types the account's groups are classified under."""
        return frozenset(await self._repo.list_group_type_labels(account_id))

    async def has_any_role(self, account_id: str, roles: Iterable[str]) -> bool:
        return has_any_role(await self.effective_roles(account_id), roles)

    async def resolve(self, account_id: str) -> Viewer:
        roles, groups = await asyncio.gather(
            self.effective_roles(account_id),
            self.effective_groups(account_id),
        )
        return Viewer(account_id=account_id, roles=roles, group_ids=groups)
