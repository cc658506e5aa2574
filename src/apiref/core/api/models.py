"""Snapshot element models.

One snapshot (an API dump) describes every class with its members and every
enum with its items at a single build. Elements are plain mutable dataclasses:
patch replay mutates them in place, and anything that must not observe later
mutation holds a deep copy (see ``copy()``).

Usage:
    dump = ApiDump.loads(path.read_text())
    part = dump.get_class("Part")
    prop = part.get_member("Anchored")
"""

from __future__ import annotations

import copy as cp
import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Self


@dataclass(frozen=True, slots=True)
class TypeRef:
    """Reference to a value type: a category plus a name."""

    category: str = ""
    name: str = ""

    def __str__(self) -> str:
        return self.name

    def to_dict(self) -> dict[str, Any]:
        return {"Category": self.category, "Name": self.name}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TypeRef:
        if not data:
            return cls()
        return cls(category=data.get("Category", ""), name=data.get("Name", ""))


@dataclass(frozen=True, slots=True)
class Parameter:
    """One function/event/callback parameter.

    ``default`` is None when the parameter has no default; an empty string is a
    real (empty) default.
    """

    type: TypeRef
    name: str
    default: str | None = None

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"Name": self.name, "Type": self.type.to_dict()}
        if self.default is not None:
            data["Default"] = self.default
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Parameter:
        return cls(
            type=TypeRef.from_dict(data.get("Type")),
            name=data.get("Name", ""),
            default=data.get("Default"),
        )


def _tags(data: dict[str, Any]) -> list[str]:
    return list(data.get("Tags") or [])


class _Tagged:
    """Mixin for elements carrying a tag list."""

    tags: list[str]

    def get_tag(self, tag: str) -> bool:
        return tag in self.tags

    def copy(self) -> Self:
        """Return an independent deep copy of the element."""
        return cp.deepcopy(self)


@dataclass(slots=True)
class Property(_Tagged):
    member_type: ClassVar[str] = "Property"

    name: str
    value_type: TypeRef = field(default_factory=TypeRef)
    category: str = ""
    read_security: str = "None"
    write_security: str = "None"
    can_load: bool = True
    can_save: bool = True
    tags: list[str] = field(default_factory=list)

    def get_security(self) -> tuple[str, str]:
        return self.read_security, self.write_security

    def to_dict(self) -> dict[str, Any]:
        return {
            "MemberType": self.member_type,
            "Name": self.name,
            "ValueType": self.value_type.to_dict(),
            "Category": self.category,
            "Security": {"Read": self.read_security, "Write": self.write_security},
            "Serialization": {"CanLoad": self.can_load, "CanSave": self.can_save},
            "Tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Property:
        security = data.get("Security") or {}
        if isinstance(security, str):
            security = {"Read": security, "Write": security}
        serialization = data.get("Serialization") or {}
        return cls(
            name=data.get("Name", ""),
            value_type=TypeRef.from_dict(data.get("ValueType")),
            category=data.get("Category", ""),
            read_security=security.get("Read", "None"),
            write_security=security.get("Write", "None"),
            can_load=bool(serialization.get("CanLoad", True)),
            can_save=bool(serialization.get("CanSave", True)),
            tags=_tags(data),
        )


@dataclass(slots=True)
class Function(_Tagged):
    member_type: ClassVar[str] = "Function"

    name: str
    parameters: list[Parameter] = field(default_factory=list)
    return_type: TypeRef = field(default_factory=TypeRef)
    security: str = "None"
    tags: list[str] = field(default_factory=list)

    def get_security(self) -> str:
        return self.security

    def to_dict(self) -> dict[str, Any]:
        return {
            "MemberType": self.member_type,
            "Name": self.name,
            "Parameters": [p.to_dict() for p in self.parameters],
            "ReturnType": self.return_type.to_dict(),
            "Security": self.security,
            "Tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Function:
        return cls(
            name=data.get("Name", ""),
            parameters=[Parameter.from_dict(p) for p in data.get("Parameters") or []],
            return_type=TypeRef.from_dict(data.get("ReturnType")),
            security=data.get("Security", "None"),
            tags=_tags(data),
        )


@dataclass(slots=True)
class Event(_Tagged):
    member_type: ClassVar[str] = "Event"

    name: str
    parameters: list[Parameter] = field(default_factory=list)
    security: str = "None"
    tags: list[str] = field(default_factory=list)

    def get_security(self) -> str:
        return self.security

    def to_dict(self) -> dict[str, Any]:
        return {
            "MemberType": self.member_type,
            "Name": self.name,
            "Parameters": [p.to_dict() for p in self.parameters],
            "Security": self.security,
            "Tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        return cls(
            name=data.get("Name", ""),
            parameters=[Parameter.from_dict(p) for p in data.get("Parameters") or []],
            security=data.get("Security", "None"),
            tags=_tags(data),
        )


@dataclass(slots=True)
class Callback(_Tagged):
    member_type: ClassVar[str] = "Callback"

    name: str
    parameters: list[Parameter] = field(default_factory=list)
    return_type: TypeRef = field(default_factory=TypeRef)
    security: str = "None"
    tags: list[str] = field(default_factory=list)

    def get_security(self) -> str:
        return self.security

    def to_dict(self) -> dict[str, Any]:
        return {
            "MemberType": self.member_type,
            "Name": self.name,
            "Parameters": [p.to_dict() for p in self.parameters],
            "ReturnType": self.return_type.to_dict(),
            "Security": self.security,
            "Tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Callback:
        return cls(
            name=data.get("Name", ""),
            parameters=[Parameter.from_dict(p) for p in data.get("Parameters") or []],
            return_type=TypeRef.from_dict(data.get("ReturnType")),
            security=data.get("Security", "None"),
            tags=_tags(data),
        )


Member = Property | Function | Event | Callback

MEMBER_TYPES: dict[str, type[Property] | type[Function] | type[Event] | type[Callback]] = {
    "Property": Property,
    "Function": Function,
    "Event": Event,
    "Callback": Callback,
}


def member_from_dict(data: dict[str, Any]) -> Member:
    """Build a member from its dump form, dispatching on ``MemberType``."""
    member_type = data.get("MemberType", "")
    factory = MEMBER_TYPES.get(member_type)
    if factory is None:
        raise ValueError(f"Unknown member type: {member_type!r}")
    return factory.from_dict(data)


@dataclass(slots=True)
class Class(_Tagged):
    name: str
    superclass: str = ""
    memory_category: str = ""
    members: list[Member] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def get_member(self, name: str) -> Member | None:
        for member in self.members:
            if member.name == name:
                return member
        return None

    def stripped(self) -> Class:
        """Copy of the class without its member list."""
        members = self.members
        self.members = []
        try:
            return self.copy()
        finally:
            self.members = members

    def to_dict(self) -> dict[str, Any]:
        return {
            "Name": self.name,
            "Superclass": self.superclass,
            "MemoryCategory": self.memory_category,
            "Members": [m.to_dict() for m in self.members],
            "Tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Class:
        return cls(
            name=data.get("Name", ""),
            superclass=data.get("Superclass", ""),
            memory_category=data.get("MemoryCategory", ""),
            members=[member_from_dict(m) for m in data.get("Members") or []],
            tags=_tags(data),
        )


@dataclass(slots=True)
class EnumItem(_Tagged):
    name: str
    value: int = 0
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"Name": self.name, "Value": self.value, "Tags": list(self.tags)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EnumItem:
        return cls(name=data.get("Name", ""), value=int(data.get("Value", 0)), tags=_tags(data))


@dataclass(slots=True)
class Enum(_Tagged):
    name: str
    items: list[EnumItem] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def get_enum_item(self, name: str) -> EnumItem | None:
        for item in self.items:
            if item.name == name:
                return item
        return None

    def stripped(self) -> Enum:
        """Copy of the enum without its item list."""
        items = self.items
        self.items = []
        try:
            return self.copy()
        finally:
            self.items = items

    def to_dict(self) -> dict[str, Any]:
        return {
            "Name": self.name,
            "Items": [i.to_dict() for i in self.items],
            "Tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Enum:
        return cls(
            name=data.get("Name", ""),
            items=[EnumItem.from_dict(i) for i in data.get("Items") or []],
            tags=_tags(data),
        )


@dataclass(slots=True)
class ApiDump:
    """A complete snapshot of the API surface at one build."""

    classes: list[Class] = field(default_factory=list)
    enums: list[Enum] = field(default_factory=list)
    version: int = 1

    def get_class(self, name: str) -> Class | None:
        for cls in self.classes:
            if cls.name == name:
                return cls
        return None

    def get_enum(self, name: str) -> Enum | None:
        for enum in self.enums:
            if enum.name == name:
                return enum
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "Version": self.version,
            "Classes": [c.to_dict() for c in self.classes],
            "Enums": [e.to_dict() for e in self.enums],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ApiDump:
        return cls(
            classes=[Class.from_dict(c) for c in data.get("Classes") or []],
            enums=[Enum.from_dict(e) for e in data.get("Enums") or []],
            version=int(data.get("Version", 1)),
        )

    @classmethod
    def loads(cls, text: str | bytes) -> ApiDump:
        """Parse a JSON API dump."""
        return cls.from_dict(json.loads(text))

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), indent="\t")
