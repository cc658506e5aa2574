"""Entity graph: lifetime view of every class, member, enum, item and type."""

from apiref.entities.graph import EntityGraph, add_patch, type_refs
from apiref.entities.models import (
    ClassEntity,
    ClassMetadata,
    Entity,
    EnumEntity,
    EnumItemEntity,
    MemberEntity,
    Referable,
    Referrer,
    TypeCategory,
    TypeEntity,
)

__all__ = [
    "EntityGraph",
    "add_patch",
    "type_refs",
    "ClassEntity",
    "ClassMetadata",
    "MemberEntity",
    "EnumEntity",
    "EnumItemEntity",
    "TypeEntity",
    "TypeCategory",
    "Referrer",
    "Referable",
    "Entity",
]
