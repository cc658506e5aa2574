"""Entity models.

An entity is the lifetime view of one API element: its current snapshot, its
removed flag, every patch that touched it, and links to related entities.
Entities compare by identity; the graph guarantees one entity per id.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from apiref.core.api import Class, Enum, EnumItem, Member, Parameter, TypeRef
from apiref.core.patch import Action, Patch, merge_patches


@dataclass(slots=True)
class ClassMetadata:
    """Presentation metadata attached to a class."""

    explorer_image_index: int = 0
    """Index of the class icon in the explorer icon strip."""


@dataclass(eq=False, slots=True)
class Referrer:
    """A member referring to an entity, optionally through a parameter."""

    member: MemberEntity
    parameter: Parameter | None = None
    """None when the reference is a value type or return type."""


@dataclass(eq=False, slots=True)
class ClassEntity:
    id: str
    element: Class | None = None
    removed: bool = False
    patches: list[Patch] = field(default_factory=list)

    superclasses: list[ClassEntity] = field(default_factory=list)
    """Nearest first, non-removed only."""
    subclasses: list[ClassEntity] = field(default_factory=list)

    members: dict[tuple[str, str], MemberEntity] = field(default_factory=dict)
    member_list: list[MemberEntity] = field(default_factory=list)

    references: dict[TypeRef, Referable] = field(default_factory=dict)
    reference_list: list[Referable] = field(default_factory=list)
    referrers: dict[tuple[str, str], Referrer] = field(default_factory=dict)
    referrer_list: list[Referrer] = field(default_factory=list)

    metadata: ClassMetadata = field(default_factory=ClassMetadata)

    @property
    def type_ref(self) -> TypeRef:
        return TypeRef("Class", self.id)

    def change_log(self) -> list[Patch]:
        """The class's own patches merged with its members' member actions."""
        log = list(self.patches)
        for member in self.member_list:
            log = merge_patches(log, member.patches, _is_member_action)
        return log


@dataclass(eq=False, slots=True)
class MemberEntity:
    id: tuple[str, str]
    """(class name, member name)"""
    parent: ClassEntity
    element: Member | None = None
    removed: bool = False
    patches: list[Patch] = field(default_factory=list)

    references: dict[TypeRef, Referable] = field(default_factory=dict)
    reference_list: list[Referable] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.id[1]


@dataclass(eq=False, slots=True)
class EnumEntity:
    id: str
    element: Enum | None = None
    removed: bool = False
    patches: list[Patch] = field(default_factory=list)

    items: dict[tuple[str, str], EnumItemEntity] = field(default_factory=dict)
    item_list: list[EnumItemEntity] = field(default_factory=list)

    referrers: dict[tuple[str, str], Referrer] = field(default_factory=dict)
    referrer_list: list[Referrer] = field(default_factory=list)

    @property
    def type_ref(self) -> TypeRef:
        return TypeRef("Enum", self.id)

    def change_log(self) -> list[Patch]:
        """The enum's own patches merged with its items' item actions."""
        log = list(self.patches)
        for item in self.item_list:
            log = merge_patches(log, item.patches, _is_item_action)
        return log


@dataclass(eq=False, slots=True)
class EnumItemEntity:
    id: tuple[str, str]
    """(enum name, item name)"""
    parent: EnumEntity
    element: EnumItem | None = None
    removed: bool = False
    patches: list[Patch] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.id[1]


@dataclass(eq=False, slots=True)
class TypeEntity:
    """A non-class, non-enum value type referenced by some member."""

    id: str
    element: TypeRef
    removed: bool = True
    """True while no current member references the type."""

    referrers: dict[tuple[str, str], Referrer] = field(default_factory=dict)
    referrer_list: list[Referrer] = field(default_factory=list)
    removed_referrers: dict[tuple[str, str], Referrer] = field(default_factory=dict)
    removed_referrer_list: list[Referrer] = field(default_factory=list)

    @property
    def type_ref(self) -> TypeRef:
        return self.element


@dataclass(slots=True)
class TypeCategory:
    name: str
    types: dict[str, TypeEntity] = field(default_factory=dict)
    type_list: list[TypeEntity] = field(default_factory=list)


Referable = ClassEntity | EnumEntity | TypeEntity
Entity = ClassEntity | MemberEntity | EnumEntity | EnumItemEntity | TypeEntity


def _is_member_action(action: Action) -> bool:
    return action.class_ is not None and action.member is not None


def _is_item_action(action: Action) -> bool:
    return action.enum is not None and action.item is not None
