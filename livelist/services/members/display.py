"""Member display helpers"""
import re
from typing import List, Optional

from livelist.models.profile import Member

UNKNOWN_MEMBER = "Unknown"

_SEPARATORS = re.compile(r"[._-]+")


def display_name_from_email(email: str) -> str:
    """
    Derive a readable name from the local part of an email address.

    "john.doe@example.com" -> "John Doe". Returns the email unchanged when
    it has no local part.
    """
    name_part = email.split("@")[0]
    if not name_part:
        return email
    chunks = _SEPARATORS.sub(" ", name_part).split(" ")
    return " ".join(chunk[:1].upper() + chunk[1:] for chunk in chunks)


def assignee_value_for_member(member: Member) -> str:
    """Denormalized value stored in ``tasks.assigned_to`` for this member"""
    if member.full_name:
        return member.full_name
    if member.email:
        return display_name_from_email(member.email)
    return UNKNOWN_MEMBER


def member_sort_key(member: Member):
    # id breaks ties so equal names keep one order regardless of load order
    return (assignee_value_for_member(member).casefold(), member.id)


def sort_members(members: List[Member]) -> List[Member]:
    """Return members in the canonical order used for badges and colors"""
    return sorted(members, key=member_sort_key)


def initials_for_email(email: str, members: List[Member]) -> str:
    """Badge initials for the creator of a task"""
    member: Optional[Member] = next((m for m in members if m.email == email), None)
    if member and member.full_name:
        initials = "".join(word[0] for word in member.full_name.split() if word)[:2].upper()
        return initials or "?"
    name = display_name_from_email(email)
    return name[0].upper() if name else "?"
