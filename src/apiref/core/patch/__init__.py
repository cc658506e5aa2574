"""Patch/action model and operations over patches."""

from apiref.core.patch.models import (
    MEMBER_KINDS,
    ZERO_TIME,
    Action,
    ActionType,
    BuildInfo,
    ElementKind,
    Patch,
    PatchHistory,
    Value,
    ValueKind,
    Version,
    parse_date,
)
from apiref.core.patch.operations import (
    ActionFilter,
    apply_change,
    apply_to_class,
    apply_to_enum,
    copy_patch,
    make_subactions,
    merge_patches,
    wrap_action,
    wrap_actions,
)

__all__ = [
    # Models
    "Action",
    "ActionType",
    "BuildInfo",
    "ElementKind",
    "MEMBER_KINDS",
    "Patch",
    "PatchHistory",
    "Value",
    "ValueKind",
    "Version",
    "ZERO_TIME",
    "parse_date",
    # Operations
    "ActionFilter",
    "apply_change",
    "apply_to_class",
    "apply_to_enum",
    "copy_patch",
    "make_subactions",
    "merge_patches",
    "wrap_action",
    "wrap_actions",
]
