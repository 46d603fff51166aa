"""
Assembly of a day's full script (roteiro) from the novena's step list.
"""

from __future__ import annotations

from typing import List, Optional

from novena_content.errors import DanglingStepReference
from novena_content.types import Novena, ScriptEntry, StepKind

DAY_STEP_LABEL = "ORAÇÃO DO DIA"
MEMORIZED_PLACEHOLDER = "(Oração decorada/conhecida)"


def build_script(novena: Novena, day_number: int) -> Optional[List[ScriptEntry]]:
    """
    Walk the novena script in order, binding `day` steps to the requested day.

    Returns None when the day does not exist.
    """
    day = novena.find_day(day_number)
    if day is None:
        return None

    entries = []
    for step in novena.script:
        if step.kind == StepKind.DAY:
            entries.append(
                ScriptEntry(
                    kind=step.kind,
                    step=DAY_STEP_LABEL,
                    title=day.title,
                    content=day.text,
                )
            )
            continue

        text = novena.texts_for(step.kind).get(step.ref)
        if text is None:
            raise DanglingStepReference(novena.id, step.kind.value, step.ref)
        entries.append(
            ScriptEntry(
                kind=step.kind,
                step=step.kind.value.upper(),
                title=text.title,
                content=text.content or MEMORIZED_PLACEHOLDER,
            )
        )
    return entries
