"""Snapshot differ.

Compares two API dumps and produces the ordered list of raw actions that turn
the first into the second. A missing predecessor diffs as an empty dump, so
every class and enum comes out as an Add.

Raw actions reference the elements of the snapshots they came from; they are
not safe to keep once either snapshot is mutated. Use
``apiref.core.patch.wrap_actions`` to turn them into independent Actions.

Usage:
    raw = diff_dumps(prev_dump, next_dump)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from apiref.core.api.models import ApiDump, Class, Enum, EnumItem, Member
from apiref.core.api.patching import get_field

REMOVE = -1
CHANGE = 0
ADD = 1

MEMBER_FIELDS: dict[str, tuple[str, ...]] = {
    "Property": (
        "ValueType",
        "Category",
        "ReadSecurity",
        "WriteSecurity",
        "CanLoad",
        "CanSave",
        "Tags",
    ),
    "Function": ("Parameters", "ReturnType", "Security", "Tags"),
    "Event": ("Parameters", "Security", "Tags"),
    "Callback": ("Parameters", "ReturnType", "Security", "Tags"),
}
CLASS_FIELDS = ("Superclass", "MemoryCategory", "Tags")
ENUM_FIELDS = ("Tags",)
ENUM_ITEM_FIELDS = ("Value", "Tags")


@dataclass(slots=True)
class RawAction:
    """One difference between two snapshots.

    ``type`` is -1 (remove), 0 (change) or 1 (add). ``class_``/``enum`` is the
    owner, ``member``/``item`` the changed child (None for whole-class or
    whole-enum actions). Change actions carry ``field`` with ``prev``/``next``.
    """

    type: int
    class_: Class | None = None
    member: Member | None = None
    enum: Enum | None = None
    item: EnumItem | None = None
    field: str = ""
    prev: Any = None
    next: Any = None


def _same(a: Any, b: Any) -> bool:
    if isinstance(a, list) and isinstance(b, list) and a and isinstance(a[0], str):
        return sorted(a) == sorted(b)
    return a == b


def _diff_fields(prev: Any, next: Any, fields: tuple[str, ...]) -> list[tuple[str, Any, Any]]:
    changes = []
    for name in fields:
        p, n = get_field(prev, name), get_field(next, name)
        if not _same(p, n):
            changes.append((name, p, n))
    return changes


def _diff_class(prev: Class, next: Class) -> list[RawAction]:
    actions = [
        RawAction(CHANGE, class_=next, field=name, prev=p, next=n)
        for name, p, n in _diff_fields(prev, next, CLASS_FIELDS)
    ]

    names = {m.name for m in next.members}
    for member in prev.members:
        if member.name not in names:
            actions.append(RawAction(REMOVE, class_=prev, member=member))

    for member in prev.members:
        other = next.get_member(member.name)
        if other is None:
            continue
        if other.member_type != member.member_type:
            actions.append(RawAction(REMOVE, class_=prev, member=member))
            actions.append(RawAction(ADD, class_=next, member=other))
            continue
        for name, p, n in _diff_fields(member, other, MEMBER_FIELDS[member.member_type]):
            actions.append(RawAction(CHANGE, class_=next, member=other, field=name, prev=p, next=n))

    names = {m.name for m in prev.members}
    for member in next.members:
        if member.name not in names:
            actions.append(RawAction(ADD, class_=next, member=member))
    return actions


def _diff_enum(prev: Enum, next: Enum) -> list[RawAction]:
    actions = [
        RawAction(CHANGE, enum=next, field=name, prev=p, next=n)
        for name, p, n in _diff_fields(prev, next, ENUM_FIELDS)
    ]

    names = {i.name for i in next.items}
    for item in prev.items:
        if item.name not in names:
            actions.append(RawAction(REMOVE, enum=prev, item=item))

    for item in prev.items:
        other = next.get_enum_item(item.name)
        if other is None:
            continue
        for name, p, n in _diff_fields(item, other, ENUM_ITEM_FIELDS):
            actions.append(RawAction(CHANGE, enum=next, item=other, field=name, prev=p, next=n))

    names = {i.name for i in prev.items}
    for item in next.items:
        if item.name not in names:
            actions.append(RawAction(ADD, enum=next, item=item))
    return actions


def diff_dumps(prev: ApiDump | None, next: ApiDump) -> list[RawAction]:
    """Diff two snapshots.

    Classes come first (removals and in-place changes in the order of the
    previous snapshot, then additions in the order of the next), then enums in
    the same pattern.

    Args:
        prev: Previous snapshot, or None for the first build.
        next: Snapshot to diff against.

    Returns:
        Ordered raw actions referencing elements of ``prev`` and ``next``.
    """
    if prev is None:
        prev = ApiDump()
    actions: list[RawAction] = []

    for cls in prev.classes:
        other = next.get_class(cls.name)
        if other is None:
            actions.append(RawAction(REMOVE, class_=cls))
        else:
            actions.extend(_diff_class(cls, other))
    known = {c.name for c in prev.classes}
    actions.extend(RawAction(ADD, class_=c) for c in next.classes if c.name not in known)

    for enum in prev.enums:
        other = next.get_enum(enum.name)
        if other is None:
            actions.append(RawAction(REMOVE, enum=enum))
        else:
            actions.extend(_diff_enum(enum, other))
    known = {e.name for e in prev.enums}
    actions.extend(RawAction(ADD, enum=e) for e in next.enums if e.name not in known)

    return actions
