# Who may change a recipe: its owner, or anyone holding the admin role.

ADMIN_ROLE = "Admin"
USER_ROLE = "User"


def is_admin(roles) -> bool:
    return ADMIN_ROLE in set(roles or ())


def can_modify(user_id, owner_id, roles) -> bool:
    """Return True if ``user_id`` may edit or delete a recipe owned by
    ``owner_id``.

    ``owner_id`` is None for a recipe that does not exist; only admins pass
    in that case.
    """
    if is_admin(roles):
        return True
    if not user_id or owner_id is None:
        return False
    return user_id == owner_id
