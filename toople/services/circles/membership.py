"""
Membership rules for circles.

A non-empty circle always keeps at least one member holding the `admin`
right. These checks run against a circle document that was read together
with its revision; the write that follows is revision-checked, so a
concurrent change between check and write surfaces as a conflict.
"""

from typing import Any, Dict, Iterable, List, Optional

from common.utils.exceptions import ConflictException, InconsistencyException, ValidationException
from toople.models import ALL_RIGHTS, RIGHT_ADMIN


def normalize_rights(rights: Iterable[str]) -> List[str]:
    """
    Validate a rights set and return it in canonical order.

    Raises:
        ValidationException: If a right is unknown
    """
    rights = set(rights or [])
    unknown = rights - set(ALL_RIGHTS)
    if unknown:
        raise ValidationException(
            message=f"Unknown rights: {', '.join(sorted(unknown))}",
            code="INVALID_RIGHTS",
        )
    return [right for right in ALL_RIGHTS if right in rights]


def has_right(members: Dict[str, Any], user_id: str, right: str) -> bool:
    member = members.get(user_id)
    return member is not None and right in member.get("rights", [])


def admins(members: Dict[str, Any]) -> List[str]:
    return [uid for uid, m in members.items() if RIGHT_ADMIN in m.get("rights", [])]


def ensure_admin_retained(
    members: Dict[str, Any],
    user_id: str,
    new_rights: Optional[List[str]] = None,
) -> None:
    """
    Check that changing a member keeps the circle administrable.

    Args:
        members: The circle's membership map as read from the store
        user_id: Member being removed or changed
        new_rights: Rights after the change, None for removal

    Raises:
        ConflictException: If the member is the sole admin of a circle
            that would still have members afterwards
        InconsistencyException: If the circle already has members but no admin
    """
    current_admins = admins(members)
    if members and not current_admins:
        raise InconsistencyException(
            message="Circle has members but no admin",
            details={"members": sorted(members)},
        )

    if not has_right(members, user_id, RIGHT_ADMIN):
        return
    if new_rights is not None and RIGHT_ADMIN in new_rights:
        return

    others = {uid: m for uid, m in members.items() if uid != user_id}
    if new_rights is None and not others:
        # Last member leaving; the circle ends up empty
        return
    if any(uid != user_id for uid in current_admins):
        return

    raise ConflictException(
        message="User is the only admin of the circle; promote another member first",
        code="SOLE_ADMIN",
        details={"userId": user_id},
    )
