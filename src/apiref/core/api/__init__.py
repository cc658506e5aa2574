"""Snapshot element model, JSON loading, in-place patching and diffing."""

from apiref.core.api.diff import ADD, CHANGE, REMOVE, RawAction, diff_dumps
from apiref.core.api.models import (
    MEMBER_TYPES,
    ApiDump,
    Callback,
    Class,
    Enum,
    EnumItem,
    Event,
    Function,
    Member,
    Parameter,
    Property,
    TypeRef,
    member_from_dict,
)
from apiref.core.api.patching import (
    add_enum_item,
    add_member,
    get_field,
    remove_enum_item,
    remove_member,
    set_field,
)

__all__ = [
    # Elements
    "ApiDump",
    "Class",
    "Property",
    "Function",
    "Event",
    "Callback",
    "Member",
    "MEMBER_TYPES",
    "Enum",
    "EnumItem",
    "TypeRef",
    "Parameter",
    "member_from_dict",
    # Patching
    "get_field",
    "set_field",
    "add_member",
    "remove_member",
    "add_enum_item",
    "remove_enum_item",
    # Diff
    "RawAction",
    "diff_dumps",
    "ADD",
    "CHANGE",
    "REMOVE",
]
