"""
Role checks for organization members.

Roles come from user_roles: admin sees and changes everything, managers
see and edit everything but only delete their own records, sales reps only
touch records they own.
"""

ADMIN = "admin"
MANAGER = "manager"
SALES_REP = "sales_rep"


def _is_owner(owner_id: str | None, requester_id: str | None) -> bool:
    return bool(owner_id and requester_id and owner_id == requester_id)


def can_access_resource(role: str | None, owner_id: str | None, requester_id: str | None) -> bool:
    if role in (ADMIN, MANAGER):
        return True
    if role == SALES_REP:
        return _is_owner(owner_id, requester_id)
    return False


def can_edit_resource(role: str | None, owner_id: str | None, requester_id: str | None) -> bool:
    if role in (ADMIN, MANAGER):
        return True
    if role == SALES_REP:
        return _is_owner(owner_id, requester_id)
    return False


def can_delete_resource(role: str | None, owner_id: str | None, requester_id: str | None) -> bool:
    if role == ADMIN:
        return True
    if role in (MANAGER, SALES_REP):
        return _is_owner(owner_id, requester_id)
    return False
