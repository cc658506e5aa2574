"""In-place patching of snapshot elements.

Field names are the dump field names ("ValueType", "Security", ...); values are
plain Python operands (``TypeRef``, ``list[Parameter]``, ``list[str]``, str,
int, bool) and are copied before being stored.
"""

from __future__ import annotations

import copy
from typing import Any

from apiref.core.api.models import (
    Callback,
    Class,
    Enum,
    EnumItem,
    Event,
    Function,
    Member,
    Property,
)

# Dump field name -> attribute name, per element type.
FIELDS: dict[type, dict[str, str]] = {
    Class: {
        "Name": "name",
        "Superclass": "superclass",
        "MemoryCategory": "memory_category",
        "Tags": "tags",
    },
    Property: {
        "Name": "name",
        "ValueType": "value_type",
        "Category": "category",
        "ReadSecurity": "read_security",
        "WriteSecurity": "write_security",
        "CanLoad": "can_load",
        "CanSave": "can_save",
        "Tags": "tags",
    },
    Function: {
        "Name": "name",
        "Parameters": "parameters",
        "ReturnType": "return_type",
        "Security": "security",
        "Tags": "tags",
    },
    Event: {
        "Name": "name",
        "Parameters": "parameters",
        "Security": "security",
        "Tags": "tags",
    },
    Callback: {
        "Name": "name",
        "Parameters": "parameters",
        "ReturnType": "return_type",
        "Security": "security",
        "Tags": "tags",
    },
    Enum: {"Name": "name", "Tags": "tags"},
    EnumItem: {"Name": "name", "Value": "value", "Tags": "tags"},
}


def get_field(element: Any, field: str) -> Any:
    """Read a dump field from an element.

    Raises:
        ValueError: If the element has no such field.
    """
    attr = FIELDS.get(type(element), {}).get(field)
    if attr is None:
        raise ValueError(f"Unknown field {field!r} for {type(element).__name__}")
    return getattr(element, attr)


def set_field(element: Any, field: str, value: Any) -> None:
    """Write a dump field on an element, storing a copy of the value.

    Raises:
        ValueError: If the element has no such field.
    """
    attr = FIELDS.get(type(element), {}).get(field)
    if attr is None:
        raise ValueError(f"Unknown field {field!r} for {type(element).__name__}")
    if isinstance(value, tuple):
        value = list(value)
    setattr(element, attr, copy.deepcopy(value))


def add_member(cls: Class, member: Member) -> None:
    """Add a copy of member to the class, replacing any member of that name."""
    for i, existing in enumerate(cls.members):
        if existing.name == member.name:
            cls.members[i] = member.copy()
            return
    cls.members.append(member.copy())


def remove_member(cls: Class, name: str) -> None:
    cls.members = [m for m in cls.members if m.name != name]


def add_enum_item(enum: Enum, item: EnumItem) -> None:
    """Add a copy of item to the enum, replacing any item of that name."""
    for i, existing in enumerate(enum.items):
        if existing.name == item.name:
            enum.items[i] = item.copy()
            return
    enum.items.append(item.copy())


def remove_enum_item(enum: Enum, name: str) -> None:
    enum.items = [i for i in enum.items if i.name != name]
