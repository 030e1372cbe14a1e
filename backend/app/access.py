"""
Access control — pure predicates over (entity, user_id).

Entities are duck-typed: anything exposing ``user_id`` (owner), and for
campaigns ``collaborators`` (entries with ``user_id`` / ``role``), and for
personas ``is_predefined``. Works on domain records and ORM rows alike.
Every predicate fails closed: a missing owner, a missing actor or a
malformed collaborator entry never grants access.
"""

from typing import Any, Optional

EDIT_ROLES = frozenset({"editor", "admin"})
COLLABORATOR_ROLES = frozenset({"viewer", "editor", "admin"})


def _as_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text.lower() or None


def _role_value(role: Any) -> Optional[str]:
    role = getattr(role, "value", role)
    return role if isinstance(role, str) else None


def is_owner(entity: Any, user_id: Any) -> bool:
    owner = _as_id(getattr(entity, "user_id", None))
    actor = _as_id(user_id)
    return owner is not None and actor is not None and owner == actor


def collaborator_role(campaign: Any, user_id: Any) -> Optional[str]:
    """Role of user_id among the campaign's collaborators, or None."""
    actor = _as_id(user_id)
    if actor is None:
        return None
    for entry in getattr(campaign, "collaborators", None) or []:
        if isinstance(entry, dict):
            entry_user, entry_role = entry.get("user_id"), entry.get("role")
        else:
            entry_user, entry_role = getattr(entry, "user_id", None), getattr(entry, "role", None)
        role = _role_value(entry_role)
        if _as_id(entry_user) == actor and role in COLLABORATOR_ROLES:
            return role
    return None


def campaign_editable(campaign: Any, user_id: Any) -> bool:
    """Owner, or a collaborator with editor/admin role. Viewers never edit."""
    if is_owner(campaign, user_id):
        return True
    return collaborator_role(campaign, user_id) in EDIT_ROLES


def campaign_readable(campaign: Any, user_id: Any) -> bool:
    """Owner, or any collaborator (viewer included)."""
    return is_owner(campaign, user_id) or collaborator_role(campaign, user_id) is not None


def persona_editable(persona: Any, user_id: Any) -> bool:
    """Predefined personas are never editable; custom ones only by their owner."""
    if getattr(persona, "is_predefined", False) is not False:
        return False
    return is_owner(persona, user_id)


def persona_readable(persona: Any, user_id: Any) -> bool:
    if getattr(persona, "is_predefined", False) is True:
        return True
    return is_owner(persona, user_id)
