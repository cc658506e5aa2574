"""Search index codec.

The search index is a flat list of every entity name with a 16-bit record of
its kind, status flags and security level, plus one icon index per class. The
client loads it whole, so items are laid out in a fixed order: types, classes,
enums, then the members of each class, then the items of each enum.

Layout (little-endian):
    u8  version (1)
    u16 icon count (= class count)
    u16 class offset (= type count)
    u16 item count
    u8  icon index, per class
    u16 item record, per item
    str name (u8 length prefix), per item

Usage:
    write_search_index(path, graph)
    index = decode_search_index(path.read_bytes())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

from apiref.codec.binio import BinaryReader, BinaryWriter, get_bit, get_bits, set_bit, set_bits
from apiref.codec.manifest import write_atomic
from apiref.core.api import Callback, Event, Function, Property
from apiref.entities import (
    ClassEntity,
    EntityGraph,
    EnumEntity,
    EnumItemEntity,
    MemberEntity,
    TypeEntity,
)
from apiref.errors import SearchIndexError

logger = logging.getLogger(__name__)

VERSION = 1
MAX_U16 = 0xFFFF


class ItemKind(IntEnum):
    CLASS = 0
    ENUM = 1
    ENUM_ITEM = 2
    TYPE = 3
    PROPERTY = 4
    FUNCTION = 5
    EVENT = 6
    CALLBACK = 7


MEMBER_ITEM_KINDS: dict[type, ItemKind] = {
    Property: ItemKind.PROPERTY,
    Function: ItemKind.FUNCTION,
    Event: ItemKind.EVENT,
    Callback: ItemKind.CALLBACK,
}

SECURITY_CODES: dict[str, int] = {
    "None": 0,
    "RobloxPlaceSecurity": 1,
    "PluginSecurity": 2,
    "LocalUserSecurity": 3,
    "RobloxScriptSecurity": 4,
    "RobloxSecurity": 5,
    "NotAccessibleSecurity": 6,
}
SECURITY_NAMES = {code: name for name, code in SECURITY_CODES.items()}

# Item record bit positions.
BIT_REMOVED = 3
BIT_DEPRECATED = 4
BIT_NOT_BROWSABLE = 5
BIT_NOT_CREATABLE = 6  # classes
BIT_HIDDEN = 6  # properties


@dataclass(slots=True)
class SearchItem:
    """One decoded item record."""

    name: str
    kind: ItemKind
    removed: bool = False
    deprecated: bool = False
    not_browsable: bool = False
    flag6: bool = False
    """NotCreatable for classes, Hidden for properties."""
    security: str = "None"
    write_security: str = "None"


@dataclass(slots=True)
class SearchIndex:
    version: int
    class_offset: int
    icons: list[int] = field(default_factory=list)
    items: list[SearchItem] = field(default_factory=list)


def security_code(name: str) -> int:
    return SECURITY_CODES.get(name, 0)


def _tag_flags(record: int, removed: bool, tags: list[str]) -> int:
    record = set_bit(record, BIT_REMOVED, removed)
    record = set_bit(record, BIT_DEPRECATED, "Deprecated" in tags)
    record = set_bit(record, BIT_NOT_BROWSABLE, "NotBrowsable" in tags)
    return record


def class_record(entity: ClassEntity) -> int:
    tags = entity.element.tags if entity.element else []
    record = set_bits(0, 0, 3, ItemKind.CLASS)
    record = _tag_flags(record, entity.removed, tags)
    return set_bit(record, BIT_NOT_CREATABLE, "NotCreatable" in tags)


def enum_record(entity: EnumEntity) -> int:
    tags = entity.element.tags if entity.element else []
    return _tag_flags(set_bits(0, 0, 3, ItemKind.ENUM), entity.removed, tags)


def enum_item_record(entity: EnumItemEntity) -> int:
    tags = entity.element.tags if entity.element else []
    return _tag_flags(set_bits(0, 0, 3, ItemKind.ENUM_ITEM), entity.removed, tags)


def type_record(entity: TypeEntity) -> int:
    return set_bit(set_bits(0, 0, 3, ItemKind.TYPE), BIT_REMOVED, entity.removed)


def member_record(entity: MemberEntity) -> int:
    """Item record for a member.

    Raises:
        SearchIndexError: If the member has no known element type.
    """
    element = entity.element
    kind = MEMBER_ITEM_KINDS.get(type(element))
    if kind is None:
        raise SearchIndexError(f"Unknown member kind for {entity.id}: {type(element).__name__}")
    record = _tag_flags(set_bits(0, 0, 3, kind), entity.removed, element.tags)
    if isinstance(element, Property):
        record = set_bit(record, BIT_HIDDEN, "Hidden" in element.tags)
        record = set_bits(record, 8, 11, security_code(element.read_security))
        record = set_bits(record, 11, 14, security_code(element.write_security))
    else:
        record = set_bits(record, 8, 11, security_code(element.security))
    return record


def _items(graph: EntityGraph) -> list[tuple[str, int]]:
    items: list[tuple[str, int]] = []
    items.extend((t.id, type_record(t)) for t in graph.type_list)
    items.extend((c.id, class_record(c)) for c in graph.class_list)
    items.extend((e.id, enum_record(e)) for e in graph.enum_list)
    for cls in graph.class_list:
        items.extend((f"{cls.id}.{m.name}", member_record(m)) for m in cls.member_list)
    for enum in graph.enum_list:
        items.extend((f"{enum.id}.{i.name}", enum_item_record(i)) for i in enum.item_list)
    return items


def encode_search_index(graph: EntityGraph) -> bytes:
    """Encode the graph's search index.

    Raises:
        SearchIndexError: If a count exceeds 65535, an icon index exceeds
            255, or a name is longer than 255 bytes.
    """
    items = _items(graph)
    for what, count in (
        ("class", len(graph.class_list)),
        ("type", len(graph.type_list)),
        ("item", len(items)),
    ):
        if count > MAX_U16:
            raise SearchIndexError(f"too many {what} entries for search index: {count}")

    w = BinaryWriter(SearchIndexError)
    w.write_u8(VERSION)
    w.write_u16(len(graph.class_list))
    w.write_u16(len(graph.type_list))
    w.write_u16(len(items))
    for cls in graph.class_list:
        w.write_u8(cls.metadata.explorer_image_index)
    for _, record in items:
        w.write_u16(record)
    for name, _ in items:
        w.write_string(name)
    return w.getvalue()


def write_search_index(path: str | Path, graph: EntityGraph) -> None:
    """Encode and atomically write the search index."""
    data = encode_search_index(graph)
    write_atomic(path, data)
    logger.info("Wrote search index %s (%d bytes)", path, len(data))


def decode_search_index(data: bytes) -> SearchIndex:
    """Decode a search index for inspection.

    Raises:
        SearchIndexError: On truncated or malformed data.
    """
    r = BinaryReader(data, SearchIndexError)
    version = r.read_u8()
    if version != VERSION:
        raise SearchIndexError(f"unsupported search index version {version}")
    icon_count = r.read_u16()
    class_offset = r.read_u16()
    item_count = r.read_u16()
    index = SearchIndex(version=version, class_offset=class_offset)
    index.icons = [r.read_u8() for _ in range(icon_count)]
    records = [r.read_u16() for _ in range(item_count)]
    for record in records:
        kind = get_bits(record, 0, 3)
        index.items.append(
            SearchItem(
                name=r.read_string(),
                kind=ItemKind(kind),
                removed=get_bit(record, BIT_REMOVED),
                deprecated=get_bit(record, BIT_DEPRECATED),
                not_browsable=get_bit(record, BIT_NOT_BROWSABLE),
                flag6=get_bit(record, BIT_NOT_CREATABLE),
                security=SECURITY_NAMES.get(get_bits(record, 8, 11), "None"),
                write_security=SECURITY_NAMES.get(get_bits(record, 11, 14), "None"),
            )
        )
    if r.remaining:
        raise SearchIndexError(f"{r.remaining} trailing bytes in search index")
    return index
