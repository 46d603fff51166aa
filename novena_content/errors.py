"""
Exceptions raised while loading and expanding novena content.
"""

from __future__ import annotations


class NovenaError(Exception):
    """Base class for content errors."""


class NovenaDataError(NovenaError):
    """A content definition violates an invariant (bad data, not bad input)."""


class DanglingStepReference(NovenaDataError):
    def __init__(self, novena_id: str, kind: str, ref: str):
        self.novena_id = novena_id
        self.kind = kind
        self.ref = ref
        super().__init__(
            f"Novena {novena_id}: script step {kind}:{ref} has no matching text"
        )


class ExpansionError(NovenaError):
    """Raised when a day cannot be fully materialized."""


class InvalidReference(ExpansionError):
    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Ref inválida: {ref}")


class UnresolvedReference(ExpansionError):
    def __init__(self, scope: str, key: str):
        self.scope = scope
        self.key = key
        super().__init__(f"Texto {scope} inexistente: {key}")
