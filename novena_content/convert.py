"""
Conversion of raw JSON content documents into validated novena types.

This is the only place where raw block shapes are inspected. Everything
downstream works with the typed blocks from `novena_content.types`.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from novena_content.errors import DanglingStepReference, NovenaDataError
from novena_content.types import (
    CatalogMeta,
    Day,
    DayOverrides,
    Defaults,
    GlobalText,
    LocalText,
    Novena,
    PassthroughBlock,
    Period,
    RawBlock,
    ReferenceBlock,
    RubricBlock,
    ScriptStep,
    StepKind,
    TextBlock,
)

BLOCK_FIELDS = ("ref", "text", "rubric")

# Step kinds as written in the older Portuguese content files.
STEP_KIND_ALIASES = {
    "fixo": StepKind.FIXED,
    "dia": StepKind.DAY,
    "acao": StepKind.ACTION,
    "comum": StepKind.COMMON,
}

DEFAULT_LANGUAGE = "pt-BR"


def _get_value(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _to_block(entry: Any, where: str, allow_unknown: bool) -> Optional[RawBlock]:
    if entry is None:
        return None
    if isinstance(entry, str):
        return TextBlock(content=entry, bare=True)
    if not isinstance(entry, dict):
        raise NovenaDataError(f"{where}: unsupported block {entry!r}")

    present = [name for name in BLOCK_FIELDS if entry.get(name) is not None]
    if len(present) > 1:
        raise NovenaDataError(
            f"{where}: ambiguous block with fields {', '.join(present)}"
        )
    if not present:
        if allow_unknown:
            return PassthroughBlock(raw=MappingProxyType(dict(entry)))
        raise NovenaDataError(f"{where}: unknown block shape {entry!r}")

    name = present[0]
    value = entry[name]
    if not isinstance(value, str):
        raise NovenaDataError(f"{where}: block field '{name}' must be a string")
    if name == "ref":
        return ReferenceBlock(ref=value)
    if name == "text":
        return TextBlock(content=value)
    return RubricBlock(content=value)


def blocks_from_list(
    entries: Any, where: str, allow_unknown: bool = False
) -> List[RawBlock]:
    """Parse a raw block list, dropping null entries."""
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise NovenaDataError(f"{where}: expected a list of blocks")
    blocks = []
    for index, entry in enumerate(entries):
        block = _to_block(entry, f"{where}[{index}]", allow_unknown)
        if block is not None:
            blocks.append(block)
    return blocks


def _to_local_text(data: Any, where: str) -> LocalText:
    if not isinstance(data, dict):
        raise NovenaDataError(f"{where}: expected an object")
    title = _get_value(data, "title", "titulo")
    if not isinstance(title, str):
        raise NovenaDataError(f"{where}: missing title")
    content = _get_value(data, "content", "texto_markdown", "texto")
    if content is not None and not isinstance(content, str):
        raise NovenaDataError(f"{where}: content must be a string or null")
    return LocalText(title=title, content=content)


def _to_text_table(data: Any, where: str) -> Mapping[str, LocalText]:
    if data is None:
        return MappingProxyType({})
    if not isinstance(data, dict):
        raise NovenaDataError(f"{where}: expected an object keyed by text key")
    return MappingProxyType(
        {key: _to_local_text(value, f"{where}.{key}") for key, value in data.items()}
    )


def _to_step(data: Any, where: str) -> ScriptStep:
    if not isinstance(data, dict):
        raise NovenaDataError(f"{where}: expected an object")
    raw_kind = _get_value(data, "kind", "tipo")
    if not isinstance(raw_kind, str):
        raise NovenaDataError(f"{where}: step kind must be a string")
    try:
        kind = STEP_KIND_ALIASES.get(raw_kind) or StepKind(raw_kind)
    except ValueError:
        raise NovenaDataError(f"{where}: unknown step kind {raw_kind!r}") from None
    ref = data.get("ref")
    if kind != StepKind.DAY and not isinstance(ref, str):
        raise NovenaDataError(f"{where}: step of kind {kind} needs a ref")
    return ScriptStep(kind=kind, ref=ref if kind != StepKind.DAY else None)


def _to_overrides(
    data: Any, where: str, allow_unknown: bool
) -> Optional[DayOverrides]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise NovenaDataError(f"{where}: expected an object")
    opening = data.get("opening")
    closing = data.get("closing")
    return DayOverrides(
        opening=(
            None
            if opening is None
            else tuple(blocks_from_list(opening, f"{where}.opening", allow_unknown))
        ),
        closing=(
            None
            if closing is None
            else tuple(blocks_from_list(closing, f"{where}.closing", allow_unknown))
        ),
    )


def _to_day(data: Any, where: str, allow_unknown: bool) -> Day:
    if not isinstance(data, dict):
        raise NovenaDataError(f"{where}: expected an object")
    number = _get_value(data, "day", "number", "numero")
    if isinstance(number, bool) or not isinstance(number, int) or number < 1:
        raise NovenaDataError(f"{where}: day number must be a positive integer")
    title = _get_value(data, "title", "titulo")
    if not isinstance(title, str):
        raise NovenaDataError(f"{where}: missing title")
    content = _get_value(data, "content", "texto_markdown")
    raw_body = data.get("body")
    if raw_body is None and isinstance(content, str):
        body: Tuple[RawBlock, ...] = (TextBlock(content=content),)
    else:
        body = tuple(blocks_from_list(raw_body, f"{where}.body", allow_unknown))
    return Day(
        number=number,
        title=title,
        body=body,
        content=content,
        overrides=_to_overrides(
            _get_value(data, "override", "overrides"),
            f"{where}.override",
            allow_unknown,
        ),
    )


def _to_meta(data: Any, where: str) -> CatalogMeta:
    if not isinstance(data, dict):
        raise NovenaDataError(f"{where}: expected an object")
    title = _get_value(data, "title", "nome", "titulo")
    if not isinstance(title, str):
        raise NovenaDataError(f"{where}: missing title")
    days_count = _get_value(data, "daysCount", "days_count")
    if days_count is None:
        days_count = 9
    if isinstance(days_count, bool) or not isinstance(days_count, int) or days_count < 1:
        raise NovenaDataError(f"{where}: daysCount must be a positive integer")
    tags = data.get("tags") or []
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise NovenaDataError(f"{where}: tags must be a list of strings")
    period = None
    raw_period = _get_value(data, "period", "periodo")
    if isinstance(raw_period, dict):
        period = Period(
            start=_get_value(raw_period, "start", "inicio") or "",
            end=_get_value(raw_period, "end", "fim") or "",
        )
    return CatalogMeta(
        title=title,
        caption=_get_value(data, "caption", "label", "subtitle") or "",
        days_count=days_count,
        tags=tuple(tags),
        thumbnail=data.get("thumbnail"),
        period=period,
        month=_get_value(data, "month", "mes"),
        type=data.get("type") or "novena",
    )


def validate_novena(novena: Novena) -> None:
    """Check the invariants a loaded novena must satisfy."""
    seen: set[int] = set()
    for day in novena.days:
        if day.number in seen:
            raise NovenaDataError(
                f"Novena {novena.id}: day {day.number} is declared twice"
            )
        if day.number > novena.meta.days_count:
            raise NovenaDataError(
                f"Novena {novena.id}: day {day.number} exceeds daysCount "
                f"{novena.meta.days_count}"
            )
        seen.add(day.number)

    for step in novena.script:
        if step.kind == StepKind.DAY:
            continue
        if step.ref not in novena.texts_for(step.kind):
            raise DanglingStepReference(novena.id, step.kind.value, step.ref)


def novena_from_dict(data: dict, allow_unknown_blocks: bool = False) -> Novena:
    if not isinstance(data, dict):
        raise NovenaDataError("Novena document must be an object")
    novena_id = data.get("id")
    if not isinstance(novena_id, str) or not novena_id:
        raise NovenaDataError("Novena document is missing its id")
    where = f"novena {novena_id}"

    raw_days = _get_value(data, "days", "dias") or []
    if not isinstance(raw_days, list):
        raise NovenaDataError(f"{where}.days: expected a list")
    raw_script = _get_value(data, "script", "roteiro") or []
    if not isinstance(raw_script, list):
        raise NovenaDataError(f"{where}.script: expected a list")
    defaults = data.get("defaults") or {}
    if not isinstance(defaults, dict):
        raise NovenaDataError(f"{where}.defaults: expected an object")

    novena = Novena(
        id=novena_id,
        slug=data.get("slug") or novena_id,
        language=data.get("language") or DEFAULT_LANGUAGE,
        meta=_to_meta(_get_value(data, "meta", "catalog", "catalogo"), f"{where}.meta"),
        days=tuple(
            _to_day(day, f"{where}.days[{index}]", allow_unknown_blocks)
            for index, day in enumerate(raw_days)
        ),
        script=tuple(
            _to_step(step, f"{where}.script[{index}]")
            for index, step in enumerate(raw_script)
        ),
        fixed_texts=_to_text_table(
            _get_value(data, "fixedTexts", "fixed_texts", "fixos"), f"{where}.fixedTexts"
        ),
        action_texts=_to_text_table(
            _get_value(data, "actionTexts", "action_texts", "acoes"),
            f"{where}.actionTexts",
        ),
        common_texts=_to_text_table(
            _get_value(data, "commonTexts", "common_texts", "comuns"),
            f"{where}.commonTexts",
        ),
        local_texts=_to_text_table(
            _get_value(data, "localTexts", "local_texts"), f"{where}.localTexts"
        ),
        defaults=Defaults(
            opening=tuple(
                blocks_from_list(
                    defaults.get("opening"),
                    f"{where}.defaults.opening",
                    allow_unknown_blocks,
                )
            ),
            closing=tuple(
                blocks_from_list(
                    defaults.get("closing"),
                    f"{where}.defaults.closing",
                    allow_unknown_blocks,
                )
            ),
        ),
        version=data.get("version") or 1,
        updated_at=_get_value(data, "updatedAt", "updated_at"),
    )
    validate_novena(novena)
    return novena


def global_texts_from_dict(data: Any) -> Dict[str, GlobalText]:
    """Build the global registry from an object keyed by text key."""
    if not isinstance(data, dict):
        raise NovenaDataError("Global texts document must be an object")
    registry: Dict[str, GlobalText] = {}
    for key, value in data.items():
        if not isinstance(value, dict):
            raise NovenaDataError(f"global text {key}: expected an object")
        title = value.get("title")
        content = value.get("content")
        if not isinstance(title, str) or not isinstance(content, str):
            raise NovenaDataError(f"global text {key}: title and content are required")
        declared_key = value.get("key", key)
        if declared_key != key:
            raise NovenaDataError(
                f"global text {key}: declared key {declared_key!r} does not match"
            )
        registry[key] = GlobalText(key=key, title=title, content=content)
    return registry


def iter_reference_blocks(novena: Novena):
    """Yield (location, block) for every reference block in the novena."""
    sections = [
        ("defaults.opening", novena.defaults.opening),
        ("defaults.closing", novena.defaults.closing),
    ]
    for day in novena.days:
        sections.append((f"days[{day.number}].body", day.body))
        if day.overrides:
            if day.overrides.opening is not None:
                sections.append((f"days[{day.number}].override.opening", day.overrides.opening))
            if day.overrides.closing is not None:
                sections.append((f"days[{day.number}].override.closing", day.overrides.closing))
    for location, blocks in sections:
        for block in blocks:
            if isinstance(block, ReferenceBlock):
                yield location, block

