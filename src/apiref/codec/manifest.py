"""Manifest codec: the persisted patch history.

The manifest is a compact little-endian binary file. It is read at the start
of a run so unchanged patches can be reused, and rewritten atomically at the
end. Encoding a decoded manifest reproduces it byte for byte.

Usage:
    patches = read_manifest(path)
    ...
    write_manifest(path, history)

    text = manifest_to_json(patches)
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from apiref.codec.binio import BinaryReader, BinaryWriter, get_bits, set_bits
from apiref.codec.timestamp import decode_timestamp_parts, encode_timestamp
from apiref.core.api import (
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
from apiref.core.patch import (
    Action,
    ActionType,
    BuildInfo,
    ElementKind,
    Patch,
    Value,
    ValueKind,
    Version,
)
from apiref.errors import CodecError, ManifestError

logger = logging.getLogger(__name__)

# Action discriminant stored in bits 2-4 of the action header.
ACTION_CODES: dict[ElementKind, int] = {
    ElementKind.PROPERTY: 1,
    ElementKind.FUNCTION: 2,
    ElementKind.EVENT: 3,
    ElementKind.CALLBACK: 4,
    ElementKind.CLASS: 5,
    ElementKind.ENUM_ITEM: 6,
    ElementKind.ENUM: 7,
}
ACTION_KINDS = {code: kind for kind, code in ACTION_CODES.items()}

# Member type byte inside a class's member list.
MEMBER_CODES: dict[type, int] = {Property: 0, Function: 1, Event: 2, Callback: 3}
MEMBER_CLASSES = {code: cls for cls, code in MEMBER_CODES.items()}

VALUE_FALSE = 1
VALUE_TRUE = 2
VALUE_INT = 3
VALUE_STRING = 4
VALUE_TYPE = 5
VALUE_TAGS = 6
VALUE_PARAMETERS = 7


class ManifestEncoder:
    """Serializes patches into manifest bytes."""

    def __init__(self) -> None:
        self.w = BinaryWriter(ManifestError)

    def encode(self, patches: Iterable[Patch]) -> bytes:
        patches = list(patches)
        self.w.write_u32(len(patches))
        for patch in patches:
            self.write_patch(patch)
        return self.w.getvalue()

    def write_patch(self, patch: Patch) -> None:
        self.write_build_info(patch.info)
        self.w.write_bool(patch.prev is not None)
        if patch.prev is not None:
            self.write_build_info(patch.prev)
        self.w.write_string(patch.config)
        self.w.write_u32(len(patch.actions))
        for action in patch.actions:
            self.write_action(action)

    def write_build_info(self, info: BuildInfo) -> None:
        self.w.write_string(info.hash)
        try:
            stamp = encode_timestamp(info.date, info.nanos)
        except ValueError as e:
            raise ManifestError(f"cannot encode date of build {info.hash}: {e}") from e
        self.w.write_string(stamp)
        for part in (info.version.major, info.version.minor, info.version.maint, info.version.build):
            self.w.write_u32(part)

    def write_action(self, action: Action) -> None:
        try:
            kind = action.kind
        except ValueError as e:
            raise ManifestError(str(e)) from e
        header = set_bits(0, 0, 2, int(action.type) + 1)
        header = set_bits(header, 2, 5, ACTION_CODES[kind])
        self.w.write_u8(header)

        if kind is ElementKind.CLASS:
            self.write_class(action.class_)
        elif kind is ElementKind.ENUM:
            self.write_enum(action.enum)
        elif kind is ElementKind.ENUM_ITEM:
            self.write_enum(action.enum)
            self.write_enum_item(action.item)
        else:
            self.write_class(action.class_)
            self.write_member(action.member)

        if action.type is ActionType.CHANGE:
            self.w.write_string(action.field)
            self.write_value(action.prev or Value.empty())
            self.write_value(action.next or Value.empty())

    def write_type(self, t: TypeRef) -> None:
        self.w.write_string(t.category)
        self.w.write_string(t.name)

    def write_tags(self, tags: list[str] | tuple[str, ...]) -> None:
        self.w.write_u32(len(tags))
        for tag in tags:
            self.w.write_string(tag)

    def write_parameters(self, params: list[Parameter] | tuple[Parameter, ...]) -> None:
        self.w.write_u32(len(params))
        for param in params:
            self.write_type(param.type)
            self.w.write_string(param.name)
            self.w.write_bool(param.has_default)
            if param.default is not None:
                self.w.write_string(param.default)

    def write_class(self, cls: Class) -> None:
        self.w.write_string(cls.name)
        self.w.write_string(cls.superclass)
        self.w.write_string(cls.memory_category)
        self.w.write_u32(len(cls.members))
        for member in cls.members:
            self.w.write_u8(MEMBER_CODES[type(member)])
            self.write_member(member)
        self.write_tags(cls.tags)

    def write_member(self, member: Member) -> None:
        if isinstance(member, Property):
            self.w.write_string(member.name)
            self.write_type(member.value_type)
            self.w.write_string(member.category)
            self.w.write_string(member.read_security)
            self.w.write_string(member.write_security)
            flags = set_bits(0, 0, 1, int(member.can_load))
            flags = set_bits(flags, 1, 2, int(member.can_save))
            self.w.write_u8(flags)
        elif isinstance(member, Function):
            self.w.write_string(member.name)
            self.write_parameters(member.parameters)
            self.write_type(member.return_type)
            self.w.write_string(member.security)
        elif isinstance(member, Event):
            self.w.write_string(member.name)
            self.write_parameters(member.parameters)
            self.w.write_string(member.security)
        elif isinstance(member, Callback):
            self.w.write_string(member.name)
            self.write_parameters(member.parameters)
            self.write_type(member.return_type)
            self.w.write_string(member.security)
        else:
            raise ManifestError(f"Unknown member type: {type(member).__name__}")
        self.write_tags(member.tags)

    def write_enum(self, enum: Enum) -> None:
        self.w.write_string(enum.name)
        self.w.write_u32(len(enum.items))
        for item in enum.items:
            self.write_enum_item(item)
        self.write_tags(enum.tags)

    def write_enum_item(self, item: EnumItem) -> None:
        self.w.write_string(item.name)
        self.w.write_i32(item.value)
        self.write_tags(item.tags)

    def write_value(self, value: Value) -> None:
        kind = value.kind
        if kind is ValueKind.BOOL:
            self.w.write_u8(VALUE_TRUE if value.data else VALUE_FALSE)
        elif kind is ValueKind.INT:
            self.w.write_u8(VALUE_INT)
            self.w.write_i32(value.data)
        elif kind is ValueKind.STRING:
            self.w.write_u8(VALUE_STRING)
            self.w.write_string(value.data)
        elif kind is ValueKind.TYPE:
            self.w.write_u8(VALUE_TYPE)
            self.write_type(value.data)
        elif kind is ValueKind.TAGS:
            self.w.write_u8(VALUE_TAGS)
            self.write_tags(value.data)
        elif kind is ValueKind.PARAMETERS:
            self.w.write_u8(VALUE_PARAMETERS)
            self.write_parameters(value.data)
        else:
            raise ManifestError(f"cannot encode value of kind {kind.name}")


class ManifestDecoder:
    """Parses manifest bytes into patches.

    Args:
        data: Encoded manifest.
        strict: When False, unknown value tags decode as ``Value.empty()``
            instead of raising.
    """

    def __init__(self, data: bytes, strict: bool = True) -> None:
        self.r = BinaryReader(data, ManifestError)
        self.strict = strict

    def decode(self) -> list[Patch]:
        count = self.r.read_u32()
        patches = [self.read_patch() for _ in range(count)]
        if self.r.remaining:
            raise ManifestError(f"{self.r.remaining} trailing bytes after {count} patches")
        return patches

    def read_patch(self) -> Patch:
        info = self.read_build_info()
        prev = self.read_build_info() if self.r.read_bool() else None
        config = self.r.read_string()
        count = self.r.read_u32()
        actions = [self.read_action() for _ in range(count)]
        return Patch(info=info, prev=prev, config=config, actions=actions)

    def read_build_info(self) -> BuildInfo:
        hash_ = self.r.read_string()
        stamp = self.r.read_bytes(self.r.read_u8())
        try:
            date, nanos = decode_timestamp_parts(stamp)
        except CodecError as e:
            raise ManifestError(f"build {hash_}: {e}") from e
        version = Version(
            self.r.read_u32(), self.r.read_u32(), self.r.read_u32(), self.r.read_u32()
        )
        return BuildInfo(hash=hash_, date=date, version=version, nanos=nanos)

    def read_action(self) -> Action:
        header = self.r.read_u8()
        raw_type = get_bits(header, 0, 2) - 1
        if raw_type not in (-1, 0, 1):
            raise ManifestError(f"unknown action type bits in header {header:#04x}")
        kind = ACTION_KINDS.get(get_bits(header, 2, 5))
        if kind is None:
            raise ManifestError(f"unknown action kind in header {header:#04x}")
        action = Action(type=ActionType(raw_type))

        if kind is ElementKind.CLASS:
            action.class_ = self.read_class()
        elif kind is ElementKind.ENUM:
            action.enum = self.read_enum()
        elif kind is ElementKind.ENUM_ITEM:
            action.enum = self.read_enum()
            action.item = self.read_enum_item()
        else:
            action.class_ = self.read_class()
            member_cls = {
                ElementKind.PROPERTY: Property,
                ElementKind.FUNCTION: Function,
                ElementKind.EVENT: Event,
                ElementKind.CALLBACK: Callback,
            }[kind]
            action.member = self.read_member(member_cls)

        if action.type is ActionType.CHANGE:
            action.field = self.r.read_string()
            action.prev = self.read_value()
            action.next = self.read_value()
        return action

    def read_type(self) -> TypeRef:
        return TypeRef(category=self.r.read_string(), name=self.r.read_string())

    def read_tags(self) -> list[str]:
        return [self.r.read_string() for _ in range(self.r.read_u32())]

    def read_parameters(self) -> list[Parameter]:
        params = []
        for _ in range(self.r.read_u32()):
            type_ = self.read_type()
            name = self.r.read_string()
            default = self.r.read_string() if self.r.read_bool() else None
            params.append(Parameter(type=type_, name=name, default=default))
        return params

    def read_class(self) -> Class:
        cls = Class(
            name=self.r.read_string(),
            superclass=self.r.read_string(),
            memory_category=self.r.read_string(),
        )
        for _ in range(self.r.read_u32()):
            code = self.r.read_u8()
            member_cls = MEMBER_CLASSES.get(code)
            if member_cls is None:
                raise ManifestError(f"unknown member type {code} in class {cls.name}")
            cls.members.append(self.read_member(member_cls))
        cls.tags = self.read_tags()
        return cls

    def read_member(self, member_cls: type) -> Member:
        name = self.r.read_string()
        if member_cls is Property:
            value_type = self.read_type()
            category = self.r.read_string()
            read_security = self.r.read_string()
            write_security = self.r.read_string()
            flags = self.r.read_u8()
            member: Member = Property(
                name=name,
                value_type=value_type,
                category=category,
                read_security=read_security,
                write_security=write_security,
                can_load=bool(get_bits(flags, 0, 1)),
                can_save=bool(get_bits(flags, 1, 2)),
            )
        elif member_cls is Function:
            params = self.read_parameters()
            member = Function(name=name, parameters=params, return_type=self.read_type())
            member.security = self.r.read_string()
        elif member_cls is Event:
            params = self.read_parameters()
            member = Event(name=name, parameters=params, security=self.r.read_string())
        else:
            params = self.read_parameters()
            member = Callback(name=name, parameters=params, return_type=self.read_type())
            member.security = self.r.read_string()
        member.tags = self.read_tags()
        return member

    def read_enum(self) -> Enum:
        enum = Enum(name=self.r.read_string())
        enum.items = [self.read_enum_item() for _ in range(self.r.read_u32())]
        enum.tags = self.read_tags()
        return enum

    def read_enum_item(self) -> EnumItem:
        item = EnumItem(name=self.r.read_string(), value=self.r.read_i32())
        item.tags = self.read_tags()
        return item

    def read_value(self) -> Value:
        tag = self.r.read_u8()
        if tag == VALUE_FALSE:
            return Value(ValueKind.BOOL, False)
        if tag == VALUE_TRUE:
            return Value(ValueKind.BOOL, True)
        if tag == VALUE_INT:
            return Value(ValueKind.INT, self.r.read_i32())
        if tag == VALUE_STRING:
            return Value(ValueKind.STRING, self.r.read_string())
        if tag == VALUE_TYPE:
            return Value(ValueKind.TYPE, self.read_type())
        if tag == VALUE_TAGS:
            return Value(ValueKind.TAGS, tuple(self.read_tags()))
        if tag == VALUE_PARAMETERS:
            return Value(ValueKind.PARAMETERS, tuple(self.read_parameters()))
        if self.strict:
            raise ManifestError(f"unknown value tag {tag} at offset {self.r.position - 1}")
        logger.warning("Unknown value tag %d at offset %d, using empty value", tag, self.r.position - 1)
        return Value.empty()


def encode_manifest(patches: Iterable[Patch]) -> bytes:
    """Encode patches into manifest bytes.

    Raises:
        ManifestError: If a string is longer than 255 bytes, a number is out
            of range, or an action or value cannot be encoded.
    """
    return ManifestEncoder().encode(patches)


def decode_manifest(data: bytes, strict: bool = True) -> list[Patch]:
    """Decode manifest bytes into patches (all with ``stale=False``).

    Raises:
        ManifestError: On truncated or malformed data, or an unknown value
            tag when ``strict``.
    """
    return ManifestDecoder(data, strict=strict).decode()


def read_manifest(path: str | Path, strict: bool = True) -> list[Patch]:
    """Read a manifest file. A missing file is an empty history."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        logger.info("No manifest at %s, starting from an empty history", path)
        return []
    return decode_manifest(data, strict=strict)


def write_atomic(path: str | Path, data: bytes) -> None:
    """Write data to path through a synced temp file in the same directory."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def write_manifest(path: str | Path, patches: Iterable[Patch]) -> None:
    """Encode patches and atomically replace the manifest at path."""
    data = encode_manifest(patches)
    write_atomic(path, data)
    logger.info("Wrote manifest %s (%d bytes)", path, len(data))


# --- JSON export ---


def value_to_json(value: Value | None) -> dict[str, Any] | None:
    if value is None:
        return None
    data: Any = value.data
    if value.kind is ValueKind.TYPE:
        data = value.data.to_dict()
    elif value.kind is ValueKind.PARAMETERS:
        data = [p.to_dict() for p in value.data]
    elif value.kind is ValueKind.TAGS:
        data = list(value.data)
    return {"Type": value.kind.name.title(), "Value": data}


def value_from_json(data: dict[str, Any] | None) -> Value | None:
    if data is None:
        return None
    try:
        kind = ValueKind[data["Type"].upper()]
    except KeyError as e:
        raise ManifestError(f"unknown value type: {data.get('Type')!r}") from e
    raw = data.get("Value")
    if kind is ValueKind.TYPE:
        return Value(kind, TypeRef.from_dict(raw))
    if kind is ValueKind.PARAMETERS:
        return Value(kind, tuple(Parameter.from_dict(p) for p in raw or []))
    if kind is ValueKind.TAGS:
        return Value(kind, tuple(raw or []))
    return Value(kind, raw)


def action_to_json(action: Action) -> dict[str, Any]:
    data: dict[str, Any] = {"Type": action.type.name.title()}
    if action.class_ is not None:
        data["Class"] = action.class_.to_dict()
    if action.member is not None:
        data["Member"] = action.member.to_dict()
    if action.enum is not None:
        data["Enum"] = action.enum.to_dict()
    if action.item is not None:
        data["EnumItem"] = action.item.to_dict()
    if action.type is ActionType.CHANGE:
        data["Field"] = action.field
        data["Prev"] = value_to_json(action.prev)
        data["Next"] = value_to_json(action.next)
    return data


def action_from_json(data: dict[str, Any]) -> Action:
    try:
        type_ = ActionType[data["Type"].upper()]
    except KeyError as e:
        raise ManifestError(f"unknown action type: {data.get('Type')!r}") from e
    try:
        action = Action(
            type=type_,
            class_=Class.from_dict(data["Class"]) if "Class" in data else None,
            member=member_from_dict(data["Member"]) if "Member" in data else None,
            enum=Enum.from_dict(data["Enum"]) if "Enum" in data else None,
            item=EnumItem.from_dict(data["EnumItem"]) if "EnumItem" in data else None,
        )
    except ValueError as e:
        raise ManifestError(str(e)) from e
    if type_ is ActionType.CHANGE:
        action.field = data.get("Field", "")
        action.prev = value_from_json(data.get("Prev"))
        action.next = value_from_json(data.get("Next"))
    return action


def manifest_to_json(patches: Iterable[Patch]) -> str:
    """Human-readable export of a patch list."""
    out = []
    for patch in patches:
        out.append(
            {
                "Prev": patch.prev.to_dict() if patch.prev else None,
                "Info": patch.info.to_dict(),
                "Config": patch.config,
                "Actions": [action_to_json(a) for a in patch.actions],
            }
        )
    return json.dumps(out, indent="\t")


def manifest_from_json(text: str | bytes) -> list[Patch]:
    """Inverse of ``manifest_to_json``.

    Raises:
        ManifestError: If the text is not a valid export.
    """
    try:
        data = json.loads(text)
        return [
            Patch(
                info=BuildInfo.from_dict(p["Info"]),
                prev=BuildInfo.from_dict(p["Prev"]) if p.get("Prev") else None,
                config=p.get("Config", ""),
                actions=[action_from_json(a) for a in p.get("Actions") or []],
            )
            for p in data
        ]
    except (ValueError, KeyError, TypeError) as e:
        raise ManifestError(f"invalid manifest JSON: {e}") from e
