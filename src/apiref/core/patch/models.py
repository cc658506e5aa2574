"""Patch and action models.

A Patch records how the API surface changed between two consecutive builds.
Patches form a chain: each one names the build it was diffed against in
``prev``, and a PatchHistory refuses to hold a broken chain.

Usage:
    history = PatchHistory()
    history.append(Patch(info=first, prev=None, config="win", actions=actions))
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, IntEnum, auto
from typing import Any, overload

from apiref.core.api import (
    Callback,
    Class,
    EnumItem,
    Event,
    Function,
    Member,
    Parameter,
    Property,
    TypeRef,
)
from apiref.core.api import Enum as EnumElement
from apiref.errors import PatchOrderError

# Zero value of a build timestamp: 0001-01-01 00:00:00 UTC.
ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)


class ActionType(IntEnum):
    """Kind of change an action records."""

    REMOVE = -1
    CHANGE = 0
    ADD = 1

    def describe(self, mode: str = "ed") -> str:
        """English form of the action type.

        Args:
            mode: ``"ed"`` (Added), ``"ing"`` (Adding), ``"s"`` (Adds),
                ``"n"`` (Addition) or ``"ns"`` (Additions).

        Raises:
            ValueError: If the mode is unknown.
        """
        forms = _DESCRIPTIONS.get(mode)
        if forms is None:
            raise ValueError(f"Unknown description mode: {mode!r}")
        return forms[self]


_DESCRIPTIONS: dict[str, dict[ActionType, str]] = {
    "ed": {ActionType.ADD: "Added", ActionType.REMOVE: "Removed", ActionType.CHANGE: "Changed"},
    "ing": {ActionType.ADD: "Adding", ActionType.REMOVE: "Removing", ActionType.CHANGE: "Changing"},
    "s": {ActionType.ADD: "Adds", ActionType.REMOVE: "Removes", ActionType.CHANGE: "Changes"},
    "n": {ActionType.ADD: "Addition", ActionType.REMOVE: "Removal", ActionType.CHANGE: "Change"},
    "ns": {ActionType.ADD: "Additions", ActionType.REMOVE: "Removals", ActionType.CHANGE: "Changes"},
}


class ElementKind(Enum):
    """Which element an action changes."""

    PROPERTY = auto()
    FUNCTION = auto()
    EVENT = auto()
    CALLBACK = auto()
    CLASS = auto()
    ENUM_ITEM = auto()
    ENUM = auto()

    @property
    def is_member(self) -> bool:
        return self in MEMBER_KINDS.values()


MEMBER_KINDS: dict[type, ElementKind] = {
    Property: ElementKind.PROPERTY,
    Function: ElementKind.FUNCTION,
    Event: ElementKind.EVENT,
    Callback: ElementKind.CALLBACK,
}


class ValueKind(Enum):
    """Closed set of value types an action field can hold."""

    EMPTY = auto()
    BOOL = auto()
    INT = auto()
    STRING = auto()
    TYPE = auto()
    TAGS = auto()
    PARAMETERS = auto()


# Field name -> kind for fields whose operand type is ambiguous on its own.
FIELD_KINDS: dict[str, ValueKind] = {
    "Tags": ValueKind.TAGS,
    "Parameters": ValueKind.PARAMETERS,
    "ValueType": ValueKind.TYPE,
    "ReturnType": ValueKind.TYPE,
}


@dataclass(frozen=True, slots=True)
class Value:
    """Tagged value of a changed field.

    ``data`` is immutable: tags and parameters are held as tuples.
    """

    kind: ValueKind
    data: Any = None

    @classmethod
    def empty(cls) -> Value:
        return cls(ValueKind.EMPTY)

    @classmethod
    def wrap(cls, obj: Any, field: str = "") -> Value:
        """Classify a Python operand.

        Args:
            obj: bool, int, str, TypeRef, or a sequence of tags or parameters.
            field: Field name, used to tell an empty tag list from an empty
                parameter list.

        Raises:
            ValueError: If the operand has no value kind.
        """
        if isinstance(obj, Value):
            return obj
        kind = FIELD_KINDS.get(field)
        if kind is ValueKind.TAGS:
            return cls(kind, tuple(obj))
        if kind is ValueKind.PARAMETERS:
            return cls(kind, tuple(obj))
        if obj is None:
            return cls.empty()
        if isinstance(obj, bool):
            return cls(ValueKind.BOOL, obj)
        if isinstance(obj, int):
            return cls(ValueKind.INT, obj)
        if isinstance(obj, str):
            return cls(ValueKind.STRING, obj)
        if isinstance(obj, TypeRef):
            return cls(ValueKind.TYPE, obj)
        if isinstance(obj, (list, tuple)):
            if obj and all(isinstance(p, Parameter) for p in obj):
                return cls(ValueKind.PARAMETERS, tuple(obj))
            if all(isinstance(t, str) for t in obj):
                return cls(ValueKind.TAGS, tuple(obj))
        raise ValueError(f"Unknown value type: {type(obj).__name__}")

    def unwrap(self) -> Any:
        """Operand form suitable for storing on an element."""
        if self.kind in (ValueKind.TAGS, ValueKind.PARAMETERS):
            return list(self.data)
        return self.data

    def __str__(self) -> str:
        if self.kind is ValueKind.TAGS:
            return "[" + ", ".join(self.data) + "]"
        if self.kind is ValueKind.PARAMETERS:
            return "(" + ", ".join(f"{p.type} {p.name}" for p in self.data) + ")"
        if self.kind is ValueKind.EMPTY:
            return ""
        return str(self.data)


_VERSION_SEP = re.compile(r"\s*[.,]\s*")


@dataclass(frozen=True, slots=True, order=True)
class Version:
    """Four-component build version."""

    major: int = 0
    minor: int = 0
    maint: int = 0
    build: int = 0

    def __post_init__(self) -> None:
        for part in (self.major, self.minor, self.maint, self.build):
            if part < 0:
                raise ValueError(f"Version components must be non-negative: {self!r}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.maint}.{self.build}"

    @classmethod
    def parse(cls, value: str | Sequence[int]) -> Version:
        """Parse ``"0.403.0.123"``, ``"0, 403, 0, 123"`` or a 4-item sequence.

        Raises:
            ValueError: If the value does not hold exactly four integers.
        """
        if isinstance(value, str):
            parts = _VERSION_SEP.split(value.strip())
        else:
            parts = list(value)
        if len(parts) != 4:
            raise ValueError(f"Invalid version: {value!r}")
        try:
            return cls(*(int(p) for p in parts))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid version: {value!r}") from e


@dataclass(frozen=True, slots=True)
class BuildInfo:
    """Identity of one build: content hash, timestamp and version.

    Two BuildInfos are equal only when all three match; timestamps compare as
    instants, so the same moment in two zones is equal.
    """

    hash: str
    date: datetime = ZERO_TIME
    version: Version = field(default_factory=Version)
    nanos: int = field(default=0, compare=False)
    """Nanoseconds of the timestamp below ``date``'s microsecond (0-999).

    Only carried so a decoded manifest re-encodes byte for byte; it takes no
    part in equality.
    """

    def __post_init__(self) -> None:
        if self.date.tzinfo is None or self.date.utcoffset() is None:
            raise ValueError(f"BuildInfo date must be timezone-aware: {self.date!r}")
        if not 0 <= self.nanos < 1000:
            raise ValueError(f"BuildInfo nanos must be in [0, 1000): {self.nanos}")

    def __str__(self) -> str:
        return f"{self.hash}; {self.date.isoformat()}; {self.version}"

    def to_dict(self) -> dict[str, Any]:
        return {"Hash": self.hash, "Date": self.date.isoformat(), "Version": str(self.version)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> BuildInfo:
        """Build from ``{"Hash", "Date", "Version"}`` or a bare hash string."""
        if isinstance(data, str):
            return cls(hash=data)
        date = data.get("Date")
        version = data.get("Version")
        return cls(
            hash=data.get("Hash", ""),
            date=parse_date(date) if date else ZERO_TIME,
            version=Version.parse(version) if version else Version(),
        )


def parse_date(value: str) -> datetime:
    """Parse an ISO 8601 timestamp, assuming UTC when no zone is given."""
    date = datetime.fromisoformat(value)
    if date.tzinfo is None:
        date = date.replace(tzinfo=UTC)
    return date


@dataclass(slots=True)
class Action:
    """One change within a patch.

    Exactly one of ``class_``/``enum`` is set. ``member``/``item`` is set for
    member and enum item actions. All elements are independent copies.
    """

    type: ActionType
    class_: Class | None = None
    member: Member | None = None
    enum: EnumElement | None = None
    item: EnumItem | None = None
    field: str = ""
    prev: Value | None = None
    next: Value | None = None
    index: int = 0

    @property
    def kind(self) -> ElementKind:
        """Element kind changed by this action.

        Raises:
            ValueError: If the action names no element.
        """
        if self.class_ is not None:
            if self.member is None:
                return ElementKind.CLASS
            kind = MEMBER_KINDS.get(type(self.member))
            if kind is None:
                raise ValueError(f"Unknown member type: {type(self.member).__name__}")
            return kind
        if self.enum is not None:
            if self.item is None:
                return ElementKind.ENUM
            return ElementKind.ENUM_ITEM
        raise ValueError("Action has no element")

    @property
    def element(self) -> Class | Member | EnumElement | EnumItem:
        """The changed element itself."""
        if self.member is not None:
            return self.member
        if self.item is not None:
            return self.item
        if self.class_ is not None:
            return self.class_
        if self.enum is not None:
            return self.enum
        raise ValueError("Action has no element")

    def __str__(self) -> str:
        kind = self.kind
        name = self.element.name
        if self.member is not None and self.class_ is not None:
            name = f"{self.class_.name}.{name}"
        elif self.item is not None and self.enum is not None:
            name = f"{self.enum.name}.{name}"
        text = f"{self.type.describe()} {kind.name.replace('_', ' ').title()} {name}"
        if self.type is ActionType.CHANGE:
            text += f".{self.field} from {self.prev} to {self.next}"
        return text


@dataclass(slots=True)
class Patch:
    """Changes introduced by one build relative to ``prev``."""

    info: BuildInfo
    prev: BuildInfo | None = None
    config: str = ""
    actions: list[Action] = field(default_factory=list)
    stale: bool = field(default=False, compare=False)
    """True when computed during this run rather than read from the manifest."""


class PatchHistory(Sequence[Patch]):
    """Ordered patches forming an unbroken prev chain."""

    def __init__(self, patches: Sequence[Patch] = ()) -> None:
        self._patches: list[Patch] = []
        self.extend(patches)

    @overload
    def __getitem__(self, index: int) -> Patch: ...

    @overload
    def __getitem__(self, index: slice) -> list[Patch]: ...

    def __getitem__(self, index: int | slice) -> Patch | list[Patch]:
        return self._patches[index]

    def __len__(self) -> int:
        return len(self._patches)

    def __iter__(self) -> Iterator[Patch]:
        return iter(self._patches)

    def __repr__(self) -> str:
        return f"PatchHistory({self._patches!r})"

    @property
    def last_info(self) -> BuildInfo | None:
        return self._patches[-1].info if self._patches else None

    def append(self, patch: Patch) -> None:
        """Append a patch.

        Raises:
            PatchOrderError: If ``patch.prev`` is not the last patch's build
                (or not None on an empty history).
        """
        if patch.prev != self.last_info:
            raise PatchOrderError(
                f"Patch {patch.info} follows {patch.prev}, expected {self.last_info}"
            )
        self._patches.append(patch)

    def extend(self, patches: Sequence[Patch]) -> None:
        for patch in patches:
            self.append(patch)

    def find(self, info: BuildInfo) -> Patch | None:
        """Patch for the given build, if present."""
        for patch in self._patches:
            if patch.info == info:
                return patch
        return None
