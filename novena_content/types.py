from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union


class StepKind(StrEnum):
    FIXED = "fixed"
    DAY = "day"
    ACTION = "action"
    COMMON = "common"


class ReferenceScope(StrEnum):
    GLOBAL = "global"
    LOCAL = "local"


@dataclass(frozen=True)
class GlobalText:
    key: str
    title: str
    content: str

    def to_dict(self) -> dict:
        return {"key": self.key, "title": self.title, "content": self.content}


@dataclass(frozen=True)
class LocalText:
    """A novena-owned text. `content` is None for prayers recited from memory."""

    title: str
    content: Optional[str] = None

    def to_dict(self) -> dict:
        return {"title": self.title, "content": self.content}


@dataclass(frozen=True)
class ScriptStep:
    kind: StepKind
    ref: Optional[str] = None

    def to_dict(self) -> dict:
        data: dict = {"kind": self.kind.value}
        if self.ref is not None:
            data["ref"] = self.ref
        return data


# Blocks as stored in the content files.


@dataclass(frozen=True)
class TextBlock:
    content: str
    # True when the source entry was a bare string rather than {"text": ...}.
    bare: bool = False

    def to_raw(self) -> Any:
        return self.content if self.bare else {"text": self.content}

    def to_dict(self) -> dict:
        return {"type": "text", "content": self.content}


@dataclass(frozen=True)
class ReferenceBlock:
    ref: str

    def to_raw(self) -> dict:
        return {"ref": self.ref}


@dataclass(frozen=True)
class RubricBlock:
    """A stage direction, never a spoken prayer."""

    content: str

    def to_raw(self) -> dict:
        return {"rubric": self.content}

    def to_dict(self) -> dict:
        return {"type": "rubric", "content": self.content}


@dataclass(frozen=True)
class PassthroughBlock:
    """An unrecognized entry kept verbatim (only when unknown blocks are allowed)."""

    raw: Mapping[str, Any]

    def to_raw(self) -> dict:
        return dict(self.raw)

    def to_dict(self) -> dict:
        return dict(self.raw)


RawBlock = Union[TextBlock, ReferenceBlock, RubricBlock, PassthroughBlock]


# Blocks produced by expansion.


@dataclass(frozen=True)
class PrayerBlock:
    scope: ReferenceScope
    key: str
    title: str
    content: Optional[str]

    def to_dict(self) -> dict:
        return {
            "type": "prayer",
            "scope": self.scope.value,
            "key": self.key,
            "title": self.title,
            "content": self.content,
        }


Block = Union[TextBlock, PrayerBlock, RubricBlock, PassthroughBlock]


def raw_blocks(blocks: Sequence[RawBlock]) -> List[Any]:
    return [block.to_raw() for block in blocks]


@dataclass(frozen=True)
class DayOverrides:
    """
    Per-day replacements for the opening/closing sections.

    None means "use the novena default"; an empty list means "no text at all".
    """

    opening: Optional[Tuple[RawBlock, ...]] = None
    closing: Optional[Tuple[RawBlock, ...]] = None

    def to_raw(self) -> dict:
        data = {}
        if self.opening is not None:
            data["opening"] = raw_blocks(self.opening)
        if self.closing is not None:
            data["closing"] = raw_blocks(self.closing)
        return data


@dataclass(frozen=True)
class Day:
    number: int
    title: str
    body: Tuple[RawBlock, ...]
    content: Optional[str] = None
    overrides: Optional[DayOverrides] = None

    @property
    def text(self) -> str:
        """Markdown prayer of the day, falling back to the body's text blocks."""
        if self.content:
            return self.content
        return "\n\n".join(
            block.content for block in self.body if isinstance(block, TextBlock)
        )

    def to_dict(self) -> dict:
        data: dict = {
            "day": self.number,
            "title": self.title,
            "body": raw_blocks(self.body),
        }
        if self.content is not None:
            data["content"] = self.content
        if self.overrides is not None:
            data["override"] = self.overrides.to_raw()
        return data


@dataclass(frozen=True)
class Period:
    start: str
    end: str


@dataclass(frozen=True)
class CatalogMeta:
    title: str
    caption: str = ""
    days_count: int = 9
    tags: Tuple[str, ...] = ()
    thumbnail: Optional[str] = None
    period: Optional[Period] = None
    month: Optional[str] = None
    type: str = "novena"

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "caption": self.caption,
            "daysCount": self.days_count,
            "tags": list(self.tags),
            "thumbnail": self.thumbnail,
            "period": (
                {"start": self.period.start, "end": self.period.end}
                if self.period
                else None
            ),
            "month": self.month,
            "type": self.type,
        }


@dataclass(frozen=True)
class Defaults:
    opening: Tuple[RawBlock, ...] = ()
    closing: Tuple[RawBlock, ...] = ()


@dataclass(frozen=True)
class Novena:
    id: str
    slug: str
    language: str
    meta: CatalogMeta
    days: Tuple[Day, ...]
    script: Tuple[ScriptStep, ...] = ()
    fixed_texts: Mapping[str, LocalText] = field(default_factory=dict)
    action_texts: Mapping[str, LocalText] = field(default_factory=dict)
    common_texts: Mapping[str, LocalText] = field(default_factory=dict)
    local_texts: Mapping[str, LocalText] = field(default_factory=dict)
    defaults: Defaults = field(default_factory=Defaults)
    version: int = 1
    updated_at: Optional[str] = None

    def find_day(self, number: int) -> Optional[Day]:
        for day in self.days:
            if day.number == number:
                return day
        return None

    def texts_for(self, kind: StepKind) -> Mapping[str, LocalText]:
        if kind == StepKind.FIXED:
            return self.fixed_texts
        if kind == StepKind.ACTION:
            return self.action_texts
        if kind == StepKind.COMMON:
            return self.common_texts
        raise ValueError(f"Step kind {kind} has no text table")

    def summary(self) -> dict:
        return {"id": self.id, "slug": self.slug, **self.meta.to_dict()}

    def to_dict(self) -> dict:
        def texts(table: Mapping[str, LocalText]) -> dict:
            return {key: text.to_dict() for key, text in table.items()}

        return {
            "id": self.id,
            "slug": self.slug,
            "language": self.language,
            "meta": self.meta.to_dict(),
            "script": [step.to_dict() for step in self.script],
            "fixedTexts": texts(self.fixed_texts),
            "actionTexts": texts(self.action_texts),
            "commonTexts": texts(self.common_texts),
            "localTexts": texts(self.local_texts),
            "defaults": {
                "opening": raw_blocks(self.defaults.opening),
                "closing": raw_blocks(self.defaults.closing),
            },
            "days": [day.to_dict() for day in self.days],
            "version": self.version,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class ExpandedDay:
    number: int
    title: str
    opening: List[Block]
    body: List[Block]
    closing: List[Block]

    def to_dict(self) -> dict:
        return {
            "day": self.number,
            "title": self.title,
            "parts": {
                "opening": [block.to_dict() for block in self.opening],
                "body": [block.to_dict() for block in self.body],
                "closing": [block.to_dict() for block in self.closing],
            },
        }


@dataclass(frozen=True)
class ScriptEntry:
    kind: StepKind
    step: str
    title: str
    content: Optional[str]

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "step": self.step,
            "title": self.title,
            "content": self.content,
        }
