"""Tests for the search index codec.

Critical Invariants:
- Items are laid out types, classes, enums, members, enum items
- Every flag and security level lands in its own bits
- The same graph always encodes to the same bytes
"""

import pytest

from apiref.codec import ItemKind, decode_search_index, encode_search_index, write_search_index
from apiref.codec.search import class_record, enum_item_record, member_record, type_record
from apiref.core.api import EnumItem, TypeRef
from apiref.entities import (
    ClassEntity,
    EntityGraph,
    EnumEntity,
    EnumItemEntity,
    MemberEntity,
    TypeEntity,
)
from apiref.errors import SearchIndexError
from builders import callback, event, func, history, klass, prop


@pytest.fixture
def graph(part_history):
    return EntityGraph.build(history(*part_history))


def test_layout(graph) -> None:
    graph.apply_class_icons({"Instance": 1, "Part": 34})
    data = encode_search_index(graph)
    assert data[:7] == bytes([1, 2, 0, 4, 0, 14, 0])
    assert data[7:9] == bytes([1, 34])

    index = decode_search_index(data)
    assert index.class_offset == 4
    assert index.icons == [1, 34]
    assert [(i.name, i.kind) for i in index.items] == [
        ("Vector3", ItemKind.TYPE),
        ("bool", ItemKind.TYPE),
        ("string", ItemKind.TYPE),
        ("void", ItemKind.TYPE),
        ("Instance", ItemKind.CLASS),
        ("Part", ItemKind.CLASS),
        ("Material", ItemKind.ENUM),
        ("Instance.Name", ItemKind.PROPERTY),
        ("Instance.Destroy", ItemKind.FUNCTION),
        ("Part.Anchored", ItemKind.PROPERTY),
        ("Part.Size", ItemKind.PROPERTY),
        ("Material.Plastic", ItemKind.ENUM_ITEM),
        ("Material.Wood", ItemKind.ENUM_ITEM),
        ("Material.Slate", ItemKind.ENUM_ITEM),
    ]
    part = index.items[5]
    assert part.deprecated and not part.removed


def test_deterministic(part_history) -> None:
    a = encode_search_index(EntityGraph.build(history(*part_history)))
    b = encode_search_index(EntityGraph.build(history(*part_history)))
    assert a == b


def test_property_record_bits() -> None:
    owner = ClassEntity(id="Part")
    member = MemberEntity(
        id=("Part", "Secret"),
        parent=owner,
        element=prop(
            "Secret",
            read_security="NotAccessibleSecurity",
            write_security="RobloxSecurity",
            tags=["Deprecated", "NotBrowsable", "Hidden"],
        ),
        removed=True,
    )
    record = member_record(member)
    assert record == ItemKind.PROPERTY | 1 << 3 | 1 << 4 | 1 << 5 | 1 << 6 | 6 << 8 | 5 << 11


@pytest.mark.parametrize(
    ("element", "kind"),
    [
        (func("F", security="PluginSecurity", tags=["Hidden"]), ItemKind.FUNCTION),
        (event("E", security="PluginSecurity", tags=["Hidden"]), ItemKind.EVENT),
        (callback("C", security="PluginSecurity", tags=["Hidden"]), ItemKind.CALLBACK),
    ],
    ids=["function", "event", "callback"],
)
def test_member_record_security(element, kind) -> None:
    """Non-property members carry one security level and no Hidden bit."""
    member = MemberEntity(id=("Part", element.name), parent=ClassEntity(id="Part"), element=element)
    assert member_record(member) == kind | 2 << 8


def test_unknown_security_is_none() -> None:
    member = MemberEntity(
        id=("Part", "X"),
        parent=ClassEntity(id="Part"),
        element=func("X", security="SomethingNew"),
    )
    assert member_record(member) == ItemKind.FUNCTION


def test_member_without_element() -> None:
    member = MemberEntity(id=("Part", "X"), parent=ClassEntity(id="Part"))
    with pytest.raises(SearchIndexError):
        member_record(member)


def test_class_and_type_records() -> None:
    assert class_record(ClassEntity(id="X", element=klass("X", tags=["NotCreatable"]))) == 1 << 6
    assert class_record(ClassEntity(id="X", element=klass("X"), removed=True)) == 1 << 3
    assert type_record(TypeEntity(id="int", element=TypeRef("Primitive", "int"))) == ItemKind.TYPE | 1 << 3
    item = EnumItemEntity(
        id=("Material", "Old"),
        parent=EnumEntity(id="Material"),
        element=EnumItem("Old", 1, tags=["Deprecated"]),
    )
    assert enum_item_record(item) == ItemKind.ENUM_ITEM | 1 << 4


def test_decoded_flags() -> None:
    graph = EntityGraph()
    owner = ClassEntity(id="Part", element=klass("Part"))
    member = MemberEntity(
        id=("Part", "Secret"),
        parent=owner,
        element=prop("Secret", read_security="PluginSecurity", write_security="LocalUserSecurity", tags=["Hidden"]),
    )
    owner.member_list = [member]
    graph.class_list = [owner]
    (_, decoded) = decode_search_index(encode_search_index(graph)).items
    assert decoded.name == "Part.Secret"
    assert decoded.flag6
    assert decoded.security == "PluginSecurity"
    assert decoded.write_security == "LocalUserSecurity"


def test_icon_out_of_range(graph) -> None:
    graph.apply_class_icons({"Part": 256})
    with pytest.raises(SearchIndexError, match="out of range"):
        encode_search_index(graph)


def test_too_many_items() -> None:
    graph = EntityGraph()
    graph.type_list = [TypeEntity(id=str(i), element=TypeRef("Primitive", str(i))) for i in range(65536)]
    with pytest.raises(SearchIndexError, match="too many"):
        encode_search_index(graph)


def test_long_name() -> None:
    graph = EntityGraph()
    graph.type_list = [TypeEntity(id="T" * 256, element=TypeRef("Primitive", "T" * 256))]
    with pytest.raises(SearchIndexError, match="too long"):
        encode_search_index(graph)


@pytest.mark.parametrize(
    "data",
    [b"", b"\x02\x00\x00\x00\x00\x00\x00", b"\x01\x01\x00\x00\x00\x00\x00", b"\x01\x00\x00\x00\x00\x00\x00\x00"],
    ids=["empty", "bad-version", "missing-icon", "trailing"],
)
def test_decode_errors(data) -> None:
    with pytest.raises(SearchIndexError):
        decode_search_index(data)


def test_write_search_index(tmp_path, graph) -> None:
    path = tmp_path / "ref" / "search.db"
    write_search_index(path, graph)
    assert path.read_bytes() == encode_search_index(graph)
