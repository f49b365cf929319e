"""Member color assignment

Colors are a pure function of the member and its position in the sorted
member list of the active workspace. An explicit color on the profile
always wins.
"""
from typing import List, Optional

from livelist.models.profile import Member

from .display import assignee_value_for_member, sort_members

DEFAULT_MEMBER_COLORS = [
    "#8a9a5b", "#00c875", "#fdab3d", "#e44258", "#579bfc",
    "#6b7b4b", "#9ab06d", "#f9d648", "#7a8f5a", "#a25ddc",
]

UNASSIGNED_COLOR = "#8a9a6b"


def color_for(member: Member, index: int, palette: Optional[List[str]] = None) -> str:
    """Explicit color if set, else the palette entry for the position"""
    if member.color:
        return member.color
    palette = palette or DEFAULT_MEMBER_COLORS
    return palette[index % len(palette)]


def assign_colors(members: List[Member], palette: Optional[List[str]] = None) -> dict:
    """Map member id -> color over the canonical member ordering"""
    return {
        member.id: color_for(member, index, palette)
        for index, member in enumerate(sort_members(members))
    }


def color_for_assignee(
    assignee_value: Optional[str],
    members: List[Member],
    palette: Optional[List[str]] = None,
) -> str:
    """Color of the member whose display value matches a task's assignee"""
    if assignee_value is None:
        return UNASSIGNED_COLOR
    for index, member in enumerate(sort_members(members)):
        if assignee_value_for_member(member) == assignee_value:
            return color_for(member, index, palette)
    return UNASSIGNED_COLOR
