"""Tests for the snapshot differ.

Critical Invariants:
- Diffing against no predecessor yields only Add actions
- Identical snapshots diff to nothing
- A member whose type changed is removed and re-added
"""

import copy

from apiref.core.api import ADD, CHANGE, REMOVE, diff_dumps
from builders import dump, enum, event, func, klass, prim, prop


def kinds(actions):
    return [
        (
            a.type,
            a.class_.name if a.class_ else a.enum.name,
            a.member.name if a.member else (a.item.name if a.item else None),
            a.field or None,
        )
        for a in actions
    ]


def test_first_build_is_all_adds() -> None:
    api = dump(klass("Instance", prop("Name")), enum("Material", ("Plastic", 1)))
    actions = diff_dumps(None, api)
    assert kinds(actions) == [(ADD, "Instance", None, None), (ADD, "Material", None, None)]


def test_identical_snapshots() -> None:
    api = dump(klass("Instance", prop("Name"), func("Destroy")), enum("Material", ("Plastic", 1)))
    assert diff_dumps(api, copy.deepcopy(api)) == []


def test_class_added_and_removed() -> None:
    prev = dump(klass("A"), klass("B"))
    next = dump(klass("B"), klass("C"))
    assert kinds(diff_dumps(prev, next)) == [
        (REMOVE, "A", None, None),
        (ADD, "C", None, None),
    ]


def test_class_field_changes() -> None:
    prev = dump(klass("Part", superclass="Instance", tags=["A", "B"]))
    next = dump(klass("Part", superclass="BasePart", tags=["B", "A"]))
    actions = diff_dumps(prev, next)
    assert kinds(actions) == [(CHANGE, "Part", None, "Superclass")]
    assert actions[0].prev == "Instance"
    assert actions[0].next == "BasePart"


def test_member_changes_order() -> None:
    """Removals come first, then in-place changes, then additions."""
    prev = dump(klass("Part", prop("Old"), prop("Size", prim("int")), prop("Name")))
    next = dump(klass("Part", prop("Name"), prop("Size", prim("Vector3")), prop("New")))
    assert kinds(diff_dumps(prev, next)) == [
        (REMOVE, "Part", "Old", None),
        (CHANGE, "Part", "Size", "ValueType"),
        (ADD, "Part", "New", None),
    ]


def test_member_type_change() -> None:
    prev = dump(klass("Part", prop("Touched")))
    next = dump(klass("Part", event("Touched")))
    assert kinds(diff_dumps(prev, next)) == [
        (REMOVE, "Part", "Touched", None),
        (ADD, "Part", "Touched", None),
    ]


def test_function_fields() -> None:
    prev = dump(klass("Part", func("Move", [(prim("int"), "x")], security="None")))
    next = dump(klass("Part", func("Move", [(prim("float"), "x")], returns=prim("bool"), security="PluginSecurity")))
    assert [a.field for a in diff_dumps(prev, next)] == ["Parameters", "ReturnType", "Security"]


def test_enum_items() -> None:
    prev = dump(enum("Material", ("Plastic", 1), ("Wood", 2)))
    next = dump(enum("Material", ("Plastic", 3), ("Slate", 4)))
    assert kinds(diff_dumps(prev, next)) == [
        (REMOVE, "Material", "Wood", None),
        (CHANGE, "Material", "Plastic", "Value"),
        (ADD, "Material", "Slate", None),
    ]
