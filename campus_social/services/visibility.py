"""
Group-visibility filter.

Pure functions over the viewer's group set and the entity's group set, so
they can be tested without any storage.

Content is closed by default: an entity published to no group is visible
only to its creator and to elevated roles.
"""

from __future__ import annotations

from campus_social.domain import GroupGated, Viewer
from campus_social.errors import Forbidden


def is_visible(viewer: Viewer, entity: GroupGated) -> bool:
    if viewer.is_elevated:
        return True
    if not entity.group_ids:
        return entity.creator_id is not None and entity.creator_id == viewer.account_id
    return not viewer.group_ids.isdisjoint(entity.group_ids)


def require_visible(viewer: Viewer, entity: GroupGated) -> None:
    """Raise Forbidden unless ``viewer`` may see ``entity``."""
    if not is_visible(viewer, entity):
        raise Forbidden()
