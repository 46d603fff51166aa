"""
Expansion of a novena day into fully resolved, client-renderable blocks.
"""

from __future__ import annotations

from typing import List, Mapping, Optional, Sequence

from novena_content.convert import iter_reference_blocks
from novena_content.errors import ExpansionError, InvalidReference, UnresolvedReference
from novena_content.types import (
    Block,
    ExpandedDay,
    GlobalText,
    LocalText,
    Novena,
    PrayerBlock,
    RawBlock,
    ReferenceBlock,
    ReferenceScope,
)

SCOPE_SEPARATOR = ":"


def split_ref(ref: str) -> tuple[ReferenceScope, str]:
    scope, separator, key = ref.partition(SCOPE_SEPARATOR)
    if not separator:
        raise InvalidReference(ref)
    try:
        return ReferenceScope(scope), key
    except ValueError:
        raise InvalidReference(ref) from None


def resolve_ref(
    ref: str,
    global_texts: Mapping[str, GlobalText],
    local_texts: Mapping[str, LocalText],
) -> PrayerBlock:
    scope, key = split_ref(ref)
    table = global_texts if scope == ReferenceScope.GLOBAL else local_texts
    target = table.get(key)
    if target is None:
        raise UnresolvedReference(scope.value, key)
    return PrayerBlock(
        scope=scope, key=key, title=target.title, content=target.content
    )


def expand_blocks(
    blocks: Sequence[RawBlock],
    global_texts: Mapping[str, GlobalText],
    local_texts: Mapping[str, LocalText],
) -> List[Block]:
    """Resolve reference blocks; every other block is already final."""
    expanded: List[Block] = []
    for block in blocks:
        if isinstance(block, ReferenceBlock):
            expanded.append(resolve_ref(block.ref, global_texts, local_texts))
        else:
            expanded.append(block)
    return expanded


def _section(
    override: Optional[Sequence[RawBlock]], default: Sequence[RawBlock]
) -> Sequence[RawBlock]:
    # An explicit empty override suppresses the default.
    return default if override is None else override


def expand_day(
    novena: Novena, day_number: int, global_texts: Mapping[str, GlobalText]
) -> Optional[ExpandedDay]:
    """
    Materialize the opening, body and closing of one day.

    Returns None when the novena has no such day. Raises an ExpansionError
    subclass when any reference cannot be resolved; no partial result is
    produced in that case.
    """
    day = novena.find_day(day_number)
    if day is None:
        return None

    overrides = day.overrides
    opening = _section(
        overrides.opening if overrides else None, novena.defaults.opening
    )
    closing = _section(
        overrides.closing if overrides else None, novena.defaults.closing
    )

    local_texts = novena.local_texts
    return ExpandedDay(
        number=day.number,
        title=day.title,
        opening=expand_blocks(opening, global_texts, local_texts),
        body=expand_blocks(day.body, global_texts, local_texts),
        closing=expand_blocks(closing, global_texts, local_texts),
    )


def find_unresolved_references(
    novena: Novena, global_texts: Mapping[str, GlobalText]
) -> List[str]:
    """
    Describe every reference in the novena that would fail to expand.

    An empty list means every reference resolves.
    """
    problems = []
    for location, block in iter_reference_blocks(novena):
        try:
            resolve_ref(block.ref, global_texts, novena.local_texts)
        except ExpansionError as e:
            problems.append(f"{novena.id} {location}: {e}")
    return problems
