"""Tests for entity graph replay.

Critical Invariants:
- One entity per id, holding every patch that touched it, grouped by build
- A class re-added without some members retroactively removes them,
  attributed to the patch that removed the class
- Actions on unknown owners are integrity errors, not silent no-ops
"""

import pytest

from apiref.core.patch import Action, ActionType, Patch
from apiref.entities import ClassEntity, EntityGraph, EnumItemEntity, MemberEntity, TypeEntity
from apiref.errors import GraphIntegrityError
from builders import dump, enum, func, history, info, klass, prim, prop


@pytest.fixture
def graph(part_history):
    return EntityGraph.build(history(*part_history))


def test_current_state(graph) -> None:
    part = graph.classes["Part"]
    assert not part.removed
    assert part.element.tags == ["Deprecated"]
    assert [m.name for m in part.member_list] == ["Anchored", "Size"]
    assert graph.members[("Instance", "Destroy")].parent is graph.classes["Instance"]
    assert [i.name for i in graph.enums["Material"].item_list] == ["Plastic", "Wood", "Slate"]


def test_patches_grouped_by_build(graph, part_history) -> None:
    h1, h2, h3 = (i for i, _ in part_history)
    part = graph.classes["Part"]
    assert [p.info for p in part.patches] == [h2, h3]
    assert [a.type for a in part.patches[0].actions] == [ActionType.ADD]
    assert [a.field for a in part.patches[1].actions] == ["Tags"]
    assert [p.info for p in graph.members[("Part", "Anchored")].patches] == [h3]
    assert [p.info for p in graph.enum_items[("Material", "Slate")].patches] == [h3]


def test_change_log(graph, part_history) -> None:
    _, h2, h3 = (i for i, _ in part_history)
    log = graph.classes["Part"].change_log()
    assert [p.info for p in log] == [h2, h3]
    assert [(a.type, a.member.name if a.member else None) for a in log[1].actions] == [
        (ActionType.CHANGE, None),
        (ActionType.ADD, "Anchored"),
    ]
    # The entity's own history is untouched
    assert len(graph.classes["Part"].patches[1].actions) == 1

    enum_log = graph.enums["Material"].change_log()
    assert [p.info for p in enum_log] == [h2, h3]
    assert enum_log[1].actions[0].item.name == "Slate"


def test_member_sorting() -> None:
    api = dump(klass("Part", func("Destroy"), prop("Size"), func("Clone"), prop("Anchored")))
    graph = EntityGraph.build(history((info("a"), api)))
    assert [m.name for m in graph.classes["Part"].member_list] == ["Anchored", "Size", "Clone", "Destroy"]


def test_enum_items_sorted_by_value() -> None:
    api = dump(enum("Material", ("Wood", 512), ("Plastic", 256), ("Air", 256)))
    graph = EntityGraph.build(history((info("a"), api)))
    assert [i.name for i in graph.enums["Material"].item_list] == ["Air", "Plastic", "Wood"]


def test_retroactive_member_removal() -> None:
    """CRITICAL: B(x, y) removed in P2 and re-added as B(x) in P3 lost y at P2."""
    p1, p2, p3 = info("p1", 1), info("p2", 2, "0.2.0.0"), info("p3", 3, "0.3.0.0")
    patches = history(
        (p1, dump(klass("B", prop("x"), prop("y")))),
        (p2, dump()),
        (p3, dump(klass("B", prop("x")))),
    )
    graph = EntityGraph.build(patches)

    b = graph.classes["B"]
    y = graph.members[("B", "y")]
    assert not b.removed
    assert y.removed
    assert [p.info for p in y.patches] == [p2]
    (cause,) = y.patches[0].actions
    assert cause.type is ActionType.REMOVE
    assert cause.class_.name == "B"
    assert not graph.members[("B", "x")].removed


def test_implicit_member_add_on_readd() -> None:
    """Members new in a whole-class re-add get that Add in their history."""
    p1, p2 = info("p1", 1), info("p2", 2, "0.2.0.0")
    patches = [
        Patch(info=p1, actions=[Action(ActionType.ADD, class_=klass("B", prop("x")))]),
        Patch(info=p2, prev=p1, actions=[Action(ActionType.ADD, class_=klass("B", prop("x"), prop("z")))]),
    ]
    graph = EntityGraph.build(patches)
    z = graph.members[("B", "z")]
    assert not z.removed
    assert [p.info for p in z.patches] == [p2]
    assert graph.members[("B", "x")].patches == []


def test_readd_without_removal_attributes_current_patch() -> None:
    p1, p2 = info("p1", 1), info("p2", 2, "0.2.0.0")
    add = Action(ActionType.ADD, class_=klass("B", prop("x")))
    patches = [
        Patch(info=p1, actions=[Action(ActionType.ADD, class_=klass("B", prop("x"), prop("y")))]),
        Patch(info=p2, prev=p1, actions=[add]),
    ]
    graph = EntityGraph.build(patches)
    y = graph.members[("B", "y")]
    assert y.removed
    assert y.patches[0].info == p2
    assert y.patches[0].actions == [add]


def test_retroactive_enum_item_removal() -> None:
    p1, p2, p3 = info("p1", 1), info("p2", 2, "0.2.0.0"), info("p3", 3, "0.3.0.0")
    patches = history(
        (p1, dump(enum("Material", ("Plastic", 1), ("Wood", 2)))),
        (p2, dump()),
        (p3, dump(enum("Material", ("Plastic", 1)))),
    )
    graph = EntityGraph.build(patches)
    wood = graph.enum_items[("Material", "Wood")]
    assert wood.removed
    assert [p.info for p in wood.patches] == [p2]


def test_removed_class_keeps_element() -> None:
    h4 = info("h4", 4, "0.4.0.0")
    patches = history(
        (info("h1", 1), dump(klass("Gone", prop("x")))),
        (h4, dump()),
    )
    graph = EntityGraph.build(patches)
    gone = graph.classes["Gone"]
    assert gone.removed
    assert gone.element.name == "Gone"
    assert gone not in graph.tree_roots


def test_hierarchy() -> None:
    api = dump(
        klass("Instance"),
        klass("PVInstance", superclass="Instance"),
        klass("BasePart", superclass="PVInstance"),
        klass("Part", superclass="BasePart"),
        klass("Orphan", superclass="Missing"),
    )
    graph = EntityGraph.build(history((info("a"), api)))
    part = graph.classes["Part"]
    assert [c.id for c in part.superclasses] == ["BasePart", "PVInstance", "Instance"]
    assert [c.id for c in graph.classes["PVInstance"].subclasses] == ["BasePart"]
    assert [c.id for c in graph.tree_roots] == ["Instance", "Orphan"]


def test_superclass_cycle_terminates() -> None:
    api = dump(klass("A", superclass="B"), klass("B", superclass="A"))
    graph = EntityGraph.build(history((info("a"), api)))
    assert [c.id for c in graph.classes["A"].superclasses] == ["B"]


def test_iter_all_order(graph) -> None:
    order = []
    for entity in graph.iter_all():
        if isinstance(entity, (MemberEntity, EnumItemEntity)):
            order.append(".".join(entity.id))
        else:
            order.append(entity.id)
    assert order == [
        "Instance",
        "Instance.Name",
        "Instance.Destroy",
        "Part",
        "Part.Anchored",
        "Part.Size",
        "Material",
        "Material.Plastic",
        "Material.Wood",
        "Material.Slate",
        "Vector3",
        "bool",
        "string",
        "void",
    ]


def test_class_icons(graph) -> None:
    graph.apply_class_icons({"Part": 34, "Unknown": 3})
    assert graph.classes["Part"].metadata.explorer_image_index == 34
    assert graph.classes["Instance"].metadata.explorer_image_index == 0


def test_type_categories(graph) -> None:
    assert [c.name for c in graph.type_categories] == ["Primitive"]
    assert all(isinstance(t, TypeEntity) for t in graph.type_categories[0].type_list)


@pytest.mark.parametrize(
    "action",
    [
        Action(ActionType.CHANGE, class_=klass("Nope"), field="Tags"),
        Action(ActionType.ADD, class_=klass("Nope"), member=prop("x")),
        Action(ActionType.CHANGE, enum=enum("Nope"), field="Tags"),
        Action(ActionType.ADD, enum=enum("Nope"), item=enum("X", ("i", 1)).items[0]),
    ],
    ids=["class-change", "member", "enum-change", "enum-item"],
)
def test_unknown_owner(action) -> None:
    with pytest.raises(GraphIntegrityError, match="Nope"):
        EntityGraph.build([Patch(info=info("a"), actions=[action])])


def test_member_change_replays_on_class_element() -> None:
    p1, p2 = info("p1", 1), info("p2", 2, "0.2.0.0")
    patches = history(
        (p1, dump(klass("Part", prop("Size", prim("int"))))),
        (p2, dump(klass("Part", prop("Size", prim("Vector3"))))),
    )
    graph = EntityGraph.build(patches)
    assert graph.classes["Part"].element.get_member("Size").value_type == prim("Vector3")
    assert graph.members[("Part", "Size")].element.value_type == prim("Vector3")


def test_class_entity_identity() -> None:
    assert ClassEntity(id="A") != ClassEntity(id="A")
