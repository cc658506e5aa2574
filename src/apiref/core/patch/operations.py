"""Operations over actions and patches.

Usage:
    actions = wrap_actions(diff_dumps(prev, next))
    log = merge_patches(cls.patches, member.patches, lambda a: a.member is not None)
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Sequence

from apiref.core.api import (
    Class,
    Enum,
    RawAction,
    add_enum_item,
    add_member,
    remove_enum_item,
    remove_member,
    set_field,
)
from apiref.core.patch.models import Action, ActionType, Patch, Value

ActionFilter = Callable[[Action], bool]
"""Signature: (action) -> keep"""


def wrap_action(raw: RawAction) -> Action:
    """Turn one raw diff action into an independent Action.

    Owners of member and item actions, and owners of Change actions, are copied
    without their child lists. Add and Remove of a whole class or enum keep the
    full copy so the action describes everything that appeared or vanished.
    """
    type_ = ActionType(raw.type)
    action = Action(type=type_)

    if raw.class_ is not None:
        if raw.member is not None or type_ is ActionType.CHANGE:
            action.class_ = raw.class_.stripped()
        else:
            action.class_ = raw.class_.copy()
    if raw.enum is not None:
        if raw.item is not None or type_ is ActionType.CHANGE:
            action.enum = raw.enum.stripped()
        else:
            action.enum = raw.enum.copy()
    if raw.member is not None:
        action.member = raw.member.copy()
    if raw.item is not None:
        action.item = raw.item.copy()

    if type_ is ActionType.CHANGE:
        action.field = raw.field
        action.prev = Value.wrap(copy.deepcopy(raw.prev), raw.field)
        action.next = Value.wrap(copy.deepcopy(raw.next), raw.field)
    return action


def wrap_actions(raw: Iterable[RawAction]) -> list[Action]:
    """Wrap every raw action, preserving order."""
    return [wrap_action(r) for r in raw]


def copy_patch(patch: Patch) -> Patch:
    """Shallow patch copy with its own action list."""
    return Patch(
        info=patch.info,
        prev=patch.prev,
        config=patch.config,
        actions=list(patch.actions),
        stale=patch.stale,
    )


def merge_patches(
    left: Sequence[Patch],
    right: Sequence[Patch],
    predicate: ActionFilter | None = None,
) -> list[Patch]:
    """Union two patch lists keyed by build.

    Every left patch is copied. Actions of each right patch (only those passing
    ``predicate``, when given) are appended to the left patch for the same
    build, or form a new patch at the end.

    Args:
        left: Base patches.
        right: Patches to fold in.
        predicate: Optional filter applied to right-hand actions.

    Returns:
        New patch list; neither input is modified.
    """
    merged = [copy_patch(p) for p in left]
    for patch in right:
        actions = [a for a in patch.actions if predicate is None or predicate(a)]
        for target in merged:
            if target.info == patch.info:
                target.actions.extend(actions)
                break
        else:
            new = copy_patch(patch)
            new.actions = actions
            merged.append(new)
    return merged


def make_subactions(action: Action) -> list[Action]:
    """Expand a class or enum action into one action per member or item.

    Returns an empty list for actions that are not about a whole class or
    enum, or whose owner carries no children.
    """
    if action.member is not None or action.item is not None:
        return []
    if action.class_ is not None:
        owner = action.class_.stripped()
        return [
            Action(type=action.type, class_=owner, member=member.copy())
            for member in action.class_.members
        ]
    if action.enum is not None:
        owner = action.enum.stripped()
        return [
            Action(type=action.type, enum=owner, item=item.copy())
            for item in action.enum.items
        ]
    return []


def apply_change(element: object, action: Action) -> None:
    """Apply a Change action's new value to an element in place."""
    if action.type is not ActionType.CHANGE:
        raise ValueError(f"Expected a change action, got {action.type.name}")
    set_field(element, action.field, action.next.unwrap() if action.next else None)


def apply_to_class(cls: Class, action: Action) -> None:
    """Replay a class or member action onto a class element."""
    if action.member is None:
        if action.type is ActionType.CHANGE:
            apply_change(cls, action)
        return
    if action.type is ActionType.ADD:
        add_member(cls, action.member)
    elif action.type is ActionType.REMOVE:
        remove_member(cls, action.member.name)
    else:
        member = cls.get_member(action.member.name)
        if member is not None:
            apply_change(member, action)


def apply_to_enum(enum: Enum, action: Action) -> None:
    """Replay an enum or enum item action onto an enum element."""
    if action.item is None:
        if action.type is ActionType.CHANGE:
            apply_change(enum, action)
        return
    if action.type is ActionType.ADD:
        add_enum_item(enum, action.item)
    elif action.type is ActionType.REMOVE:
        remove_enum_item(enum, action.item.name)
    else:
        item = enum.get_enum_item(action.item.name)
        if item is not None:
            apply_change(item, action)
