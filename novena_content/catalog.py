"""
Read-only snapshot of the global text registry and the novena documents.
"""

from __future__ import annotations

import json
import logging
import os
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

from novena_content.convert import global_texts_from_dict, novena_from_dict
from novena_content.errors import NovenaDataError
from novena_content.expand import find_unresolved_references
from novena_content.types import GlobalText, Novena

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.path.join(os.path.dirname(__file__), "data")
GLOBAL_TEXTS_FILE = "global_texts.json"
NOVENAS_DIR = "novenas"


class Catalog:
    """
    Immutable view over the loaded content.

    Built once at startup; readers never observe a partially loaded catalog
    because all validation happens before the instance is constructed.
    """

    def __init__(self, global_texts: Mapping[str, GlobalText], novenas: Iterable[Novena]):
        by_id: dict[str, Novena] = {}
        by_slug: dict[str, Novena] = {}
        for novena in novenas:
            if novena.id in by_id:
                raise NovenaDataError(f"Duplicate novena id {novena.id}")
            if novena.slug in by_slug:
                raise NovenaDataError(f"Duplicate novena slug {novena.slug}")
            by_id[novena.id] = novena
            by_slug[novena.slug] = novena
        self.global_texts = MappingProxyType(dict(global_texts))
        self._by_id = MappingProxyType(by_id)
        self._by_slug = MappingProxyType(by_slug)

    @property
    def novenas(self) -> List[Novena]:
        return list(self._by_id.values())

    def get_novena(self, id_or_slug: str) -> Optional[Novena]:
        return self._by_id.get(id_or_slug) or self._by_slug.get(id_or_slug)

    def get_global_text(self, key: str) -> Optional[GlobalText]:
        return self.global_texts.get(key)

    def search(self, query: str | None = None) -> List[Novena]:
        if not query or not query.strip():
            return self.novenas
        needle = query.strip().lower()
        return [
            novena
            for novena in self.novenas
            if needle in novena.meta.title.lower()
            or needle in novena.meta.caption.lower()
            or needle in novena.slug.lower()
        ]

    def unresolved_references(self) -> List[str]:
        problems: List[str] = []
        for novena in self.novenas:
            problems.extend(find_unresolved_references(novena, self.global_texts))
        return problems


def _read_json(path: str):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise NovenaDataError(f"{path}: invalid JSON ({e})") from e


def load_catalog(
    data_dir: str | None = None, allow_unknown_blocks: bool = False
) -> Catalog:
    """
    Load and validate every content file under `data_dir`.

    Raises NovenaDataError on the first invalid document.
    """
    data_dir = data_dir or DEFAULT_DATA_DIR
    global_texts = global_texts_from_dict(
        _read_json(os.path.join(data_dir, GLOBAL_TEXTS_FILE))
    )

    novenas_dir = os.path.join(data_dir, NOVENAS_DIR)
    novenas = []
    for filename in sorted(os.listdir(novenas_dir)):
        if not filename.endswith(".json"):
            continue
        path = os.path.join(novenas_dir, filename)
        try:
            novenas.append(
                novena_from_dict(
                    _read_json(path), allow_unknown_blocks=allow_unknown_blocks
                )
            )
        except NovenaDataError as e:
            raise NovenaDataError(f"{filename}: {e}") from e

    catalog = Catalog(global_texts, novenas)
    for problem in catalog.unresolved_references():
        logger.warning("Unresolved reference: %s", problem)
    logger.info(
        "Loaded %d novenas and %d global texts from %s",
        len(novenas),
        len(global_texts),
        data_dir,
    )
    return catalog
