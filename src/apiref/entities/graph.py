"""Entity graph construction.

The graph is rebuilt from scratch on every run by replaying the full patch
history oldest first. Replay order matters: retroactive member removal looks
at the class snapshot left behind by earlier patches.

Usage:
    graph = EntityGraph.build(history)
    for entity in graph.iter_all():
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping

from apiref.core.api import (
    Callback,
    Class,
    Enum,
    Event,
    Function,
    Member,
    Parameter,
    Property,
    TypeRef,
)
from apiref.core.patch import (
    Action,
    ActionType,
    BuildInfo,
    ElementKind,
    Patch,
    apply_change,
    apply_to_class,
    apply_to_enum,
)
from apiref.entities.models import (
    ClassEntity,
    Entity,
    EnumEntity,
    EnumItemEntity,
    MemberEntity,
    Referable,
    Referrer,
    TypeCategory,
    TypeEntity,
)
from apiref.errors import GraphIntegrityError

logger = logging.getLogger(__name__)

MEMBER_ORDER: dict[type, int] = {Property: 0, Function: 1, Event: 2, Callback: 3}


def add_patch(patches: list[Patch], action: Action, info: BuildInfo) -> None:
    """Record action in an entity history, grouping actions by build."""
    for patch in reversed(patches):
        if patch.info == info:
            patch.actions.append(action)
            return
    patches.append(Patch(info=info, actions=[action]))


def has_patch(patches: list[Patch], info: BuildInfo) -> bool:
    return any(p.info == info for p in reversed(patches))


def type_refs(element: Member | None) -> list[tuple[TypeRef, Parameter | None]]:
    """Types a member element refers to, with the parameter they come from."""
    if isinstance(element, Property):
        return [(element.value_type, None)]
    if isinstance(element, (Function, Callback)):
        return [(element.return_type, None)] + [(p.type, p) for p in element.parameters]
    if isinstance(element, Event):
        return [(p.type, p) for p in element.parameters]
    return []


class EntityGraph:
    """Current and historical state of every entity, with cross-references."""

    def __init__(self) -> None:
        self.classes: dict[str, ClassEntity] = {}
        self.class_list: list[ClassEntity] = []
        self.members: dict[tuple[str, str], MemberEntity] = {}
        self.enums: dict[str, EnumEntity] = {}
        self.enum_list: list[EnumEntity] = []
        self.enum_items: dict[tuple[str, str], EnumItemEntity] = {}
        self.types: dict[str, TypeEntity] = {}
        self.type_list: list[TypeEntity] = []
        self.type_categories: list[TypeCategory] = []
        self.tree_roots: list[ClassEntity] = []
        self._categories: dict[str, TypeCategory] = {}

    @classmethod
    def build(cls, patches: Iterable[Patch]) -> EntityGraph:
        """Replay patches in order and link the result.

        Raises:
            GraphIntegrityError: If an action refers to an unknown owner.
        """
        graph = cls()
        count = 0
        for patch in patches:
            for action in patch.actions:
                graph.add_action(action, patch.info)
                count += 1
        graph.link()
        logger.debug(
            "Built entity graph from %d actions: %d classes, %d enums, %d types",
            count,
            len(graph.classes),
            len(graph.enums),
            len(graph.types),
        )
        return graph

    def add_action(self, action: Action, info: BuildInfo) -> None:
        kind = action.kind
        if kind is ElementKind.CLASS:
            self.add_class(action, info)
        elif kind is ElementKind.ENUM:
            self.add_enum(action, info)
        elif kind is ElementKind.ENUM_ITEM:
            self.add_enum_item(action, info)
        elif kind.is_member:
            self.add_member(action, info)
        else:
            raise ValueError(f"Unknown element kind: {kind}")

    # --- Replay ---

    def _member(self, parent: ClassEntity, name: str) -> MemberEntity:
        key = (parent.id, name)
        member = self.members.get(key)
        if member is None:
            member = MemberEntity(id=key, parent=parent)
            self.members[key] = member
            parent.members[key] = member
        return member

    def _enum_item(self, parent: EnumEntity, name: str) -> EnumItemEntity:
        key = (parent.id, name)
        item = self.enum_items.get(key)
        if item is None:
            item = EnumItemEntity(id=key, parent=parent)
            self.enum_items[key] = item
            parent.items[key] = item
        return item

    def add_class(self, action: Action, info: BuildInfo) -> None:
        cls = action.class_
        entity = self.classes.get(cls.name)
        if entity is None:
            if action.type is ActionType.CHANGE:
                raise GraphIntegrityError(f"Change to unknown class {cls.name} at {info}")
            entity = ClassEntity(id=cls.name)
            self.classes[cls.name] = entity

        if action.type is ActionType.ADD:
            for member in cls.members:
                m = self._member(entity, member.name)
                m.element = member.copy()
                m.removed = False
            if entity.element is not None and entity.element is not cls:
                self._reconcile_members(entity, entity.element, action, info)
            entity.element = cls.copy()
            entity.removed = False
        elif action.type is ActionType.REMOVE:
            entity.removed = True
            if entity.element is None:
                entity.element = cls.copy()
        else:
            apply_to_class(entity.element, action)

        add_patch(entity.patches, action, info)

    def _reconcile_members(
        self, entity: ClassEntity, old: Class, action: Action, info: BuildInfo
    ) -> None:
        """Infer member changes a whole-class Add implies but does not list."""
        new = action.class_
        # A class coming back after removal lost its missing members then.
        cause, cause_info = action, info
        if entity.removed and entity.patches:
            cause, cause_info = entity.patches[-1].actions[0], entity.patches[-1].info

        new_names = {m.name for m in new.members}
        for member in old.members:
            if member.name in new_names:
                continue
            m = self.members.get((entity.id, member.name))
            if m is None:
                continue
            m.removed = True
            if not has_patch(m.patches, cause_info):
                add_patch(m.patches, cause, cause_info)

        old_names = {m.name for m in old.members}
        for member in new.members:
            if member.name in old_names:
                continue
            m = self.members[(entity.id, member.name)]
            if not has_patch(m.patches, info):
                add_patch(m.patches, action, info)

    def add_member(self, action: Action, info: BuildInfo) -> None:
        cls, element = action.class_, action.member
        entity = self.classes.get(cls.name)
        if entity is None or entity.element is None:
            raise GraphIntegrityError(
                f"{action.type.describe()} member {cls.name}.{element.name} of unknown class at {info}"
            )
        member = self._member(entity, element.name)
        add_patch(member.patches, action, info)
        apply_to_class(entity.element, action)

        if action.type is ActionType.ADD:
            member.element = element.copy()
            member.removed = False
        elif action.type is ActionType.REMOVE:
            member.removed = True
            if member.element is None:
                member.element = element.copy()
        else:
            if member.element is None:
                member.element = element.copy()
            apply_change(member.element, action)

    def add_enum(self, action: Action, info: BuildInfo) -> None:
        enum = action.enum
        entity = self.enums.get(enum.name)
        if entity is None:
            if action.type is ActionType.CHANGE:
                raise GraphIntegrityError(f"Change to unknown enum {enum.name} at {info}")
            entity = EnumEntity(id=enum.name)
            self.enums[enum.name] = entity

        if action.type is ActionType.ADD:
            for item in enum.items:
                e = self._enum_item(entity, item.name)
                e.element = item.copy()
                e.removed = False
            if entity.element is not None and entity.element is not enum:
                self._reconcile_items(entity, entity.element, action, info)
            entity.element = enum.copy()
            entity.removed = False
        elif action.type is ActionType.REMOVE:
            entity.removed = True
            if entity.element is None:
                entity.element = enum.copy()
        else:
            apply_to_enum(entity.element, action)

        add_patch(entity.patches, action, info)

    def _reconcile_items(
        self, entity: EnumEntity, old: Enum, action: Action, info: BuildInfo
    ) -> None:
        cause, cause_info = action, info
        if entity.removed and entity.patches:
            cause, cause_info = entity.patches[-1].actions[0], entity.patches[-1].info

        new_names = {i.name for i in action.enum.items}
        for item in old.items:
            if item.name in new_names:
                continue
            e = self.enum_items.get((entity.id, item.name))
            if e is None:
                continue
            e.removed = True
            if not has_patch(e.patches, cause_info):
                add_patch(e.patches, cause, cause_info)

    def add_enum_item(self, action: Action, info: BuildInfo) -> None:
        enum, element = action.enum, action.item
        entity = self.enums.get(enum.name)
        if entity is None or entity.element is None:
            raise GraphIntegrityError(
                f"{action.type.describe()} item {enum.name}.{element.name} of unknown enum at {info}"
            )
        item = self._enum_item(entity, element.name)
        add_patch(item.patches, action, info)
        apply_to_enum(entity.element, action)

        if action.type is ActionType.ADD:
            item.element = element.copy()
            item.removed = False
        elif action.type is ActionType.REMOVE:
            item.removed = True
            if item.element is None:
                item.element = element.copy()
        else:
            if item.element is None:
                item.element = element.copy()
            apply_change(item.element, action)

    # --- Cross-references ---

    def _type(self, ref: TypeRef) -> TypeEntity:
        entity = self.types.get(ref.name)
        if entity is None:
            entity = TypeEntity(id=ref.name, element=ref)
            self.types[ref.name] = entity
            category = self._categories.get(ref.category)
            if category is None:
                category = TypeCategory(name=ref.category)
                self._categories[ref.category] = category
            category.types[ref.name] = entity
        return entity

    def refer(
        self,
        member: MemberEntity,
        ref: TypeRef,
        parameter: Parameter | None,
        current: bool,
    ) -> None:
        """Record that member refers to the type named by ref.

        A reference is live when it comes from the member's current element
        and neither the member nor its class is removed. Only live references
        link members to classes and enums. Type entities also keep the
        non-live ones as removed-only referrers, unless the same member
        already refers to them live.
        """
        live = current and not member.removed and not member.parent.removed
        target: Referable
        if ref.category == "Class":
            cls = self.classes.get(ref.name)
            if cls is None or not live:
                return
            cls.referrers.setdefault(member.id, Referrer(member, parameter))
            target = cls
        elif ref.category == "Enum":
            enum = self.enums.get(ref.name)
            if enum is None or not live:
                return
            enum.referrers.setdefault(member.id, Referrer(member, parameter))
            target = enum
        else:
            type_ = self._type(ref)
            if not live:
                if member.id not in type_.referrers:
                    type_.removed_referrers.setdefault(member.id, Referrer(member, parameter))
                return
            type_.removed = False
            type_.referrers.setdefault(member.id, Referrer(member, parameter))
            target = type_
        member.references.setdefault(ref, target)

    def link(self) -> None:
        """Resolve references and build every sorted view of the graph."""
        for key in sorted(self.members):
            member = self.members[key]
            for ref, param in type_refs(member.element):
                self.refer(member, ref, param, current=True)
            for patch in member.patches:
                for action in patch.actions:
                    if action.member is None or type(action.member) is not type(member.element):
                        continue
                    for ref, param in type_refs(action.member):
                        self.refer(member, ref, param, current=False)

        self.class_list = [self.classes[k] for k in sorted(self.classes)]
        self.enum_list = [self.enums[k] for k in sorted(self.enums)]
        self.type_list = [self.types[k] for k in sorted(self.types)]
        self.type_categories = [self._categories[k] for k in sorted(self._categories)]
        for category in self.type_categories:
            category.type_list = [category.types[k] for k in sorted(category.types)]

        for cls in self.class_list:
            cls.member_list = sorted(
                cls.members.values(),
                key=lambda m: (MEMBER_ORDER.get(type(m.element), len(MEMBER_ORDER)), m.name),
            )
            for member in cls.member_list:
                member.reference_list = _sorted_refs(member.references)
                for ref, target in member.references.items():
                    cls.references.setdefault(ref, target)
            cls.reference_list = _sorted_refs(cls.references)
            cls.referrer_list = _sorted_referrers(cls.referrers)

        for enum in self.enum_list:
            enum.item_list = sorted(
                enum.items.values(),
                key=lambda i: (i.element.value if i.element else 0, i.name),
            )
            enum.referrer_list = _sorted_referrers(enum.referrers)

        for type_ in self.type_list:
            type_.referrer_list = _sorted_referrers(type_.referrers)
            type_.removed_referrer_list = _sorted_referrers(type_.removed_referrers)

        self._link_hierarchy()

    def _link_hierarchy(self) -> None:
        self.tree_roots = []
        for cls in self.class_list:
            cls.superclasses = []
            seen = {cls.id}
            super_name = cls.element.superclass if cls.element else ""
            while super_name and super_name not in seen:
                seen.add(super_name)
                parent = self.classes.get(super_name)
                if parent is None:
                    break
                if not parent.removed:
                    cls.superclasses.append(parent)
                super_name = parent.element.superclass if parent.element else ""

            cls.subclasses = [
                sub
                for sub in self.class_list
                if not sub.removed and sub.element and sub.element.superclass == cls.id
            ]

            if cls.removed:
                continue
            parent = self.classes.get(cls.element.superclass) if cls.element else None
            if parent is None or parent.removed:
                self.tree_roots.append(cls)

    # --- Views ---

    def apply_class_icons(self, icons: Mapping[str, int]) -> None:
        """Set explorer icon indexes from a class name -> index table."""
        for name, index in icons.items():
            cls = self.classes.get(name)
            if cls is not None:
                cls.metadata.explorer_image_index = index

    def iter_all(self) -> Iterator[Entity]:
        """Every entity: the class forest depth first, then enums, then types."""

        def walk(cls: ClassEntity) -> Iterator[Entity]:
            yield cls
            yield from cls.member_list
            for sub in cls.subclasses:
                yield from walk(sub)

        for root in self.tree_roots:
            yield from walk(root)
        for enum in self.enum_list:
            yield enum
            yield from enum.item_list
        for category in self.type_categories:
            yield from category.type_list


def _sorted_refs(refs: dict[TypeRef, Referable]) -> list[Referable]:
    return [refs[k] for k in sorted(refs, key=lambda t: (t.category, t.name))]


def _sorted_referrers(referrers: dict[tuple[str, str], Referrer]) -> list[Referrer]:
    return [referrers[k] for k in sorted(referrers)]
