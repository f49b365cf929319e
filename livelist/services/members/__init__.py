"""Member display and color helpers"""
from .colors import (
    DEFAULT_MEMBER_COLORS,
    UNASSIGNED_COLOR,
    assign_colors,
    color_for,
    color_for_assignee,
)
from .display import (
    assignee_value_for_member,
    display_name_from_email,
    initials_for_email,
    sort_members,
)

__all__ = [
    "DEFAULT_MEMBER_COLORS",
    "UNASSIGNED_COLOR",
    "assign_colors",
    "color_for",
    "color_for_assignee",
    "assignee_value_for_member",
    "display_name_from_email",
    "initials_for_email",
    "sort_members",
]
