"""
Small content fixtures shared by the test suites.
"""

from __future__ import annotations

import copy

GLOBAL_TEXTS = {
    "pn": {
        "key": "pn",
        "title": "Pai-Nosso",
        "content": "Pai Nosso que estais no Céu, santificado seja o vosso Nome. Amém.",
    },
    "am": {
        "key": "am",
        "title": "Ave-Maria",
        "content": "Ave Maria, cheia de graça, o Senhor é convosco. Amém.",
    },
}

SAMPLE_NOVENA = {
    "id": "novena-teste",
    "slug": "teste",
    "meta": {
        "title": "Novena de Teste",
        "caption": "Usada nos testes",
        "daysCount": 9,
        "tags": ["teste"],
    },
    "script": [
        {"kind": "fixed", "ref": "inicial"},
        {"kind": "day"},
        {"kind": "action", "ref": "pedido"},
        {"kind": "common", "ref": "pn"},
    ],
    "fixedTexts": {"inicial": {"title": "Oração inicial", "content": "Ó Deus, vinde."}},
    "actionTexts": {"pedido": {"title": "Pedido pessoal", "content": "Faça seu pedido."}},
    "commonTexts": {"pn": {"title": "Pai-Nosso", "content": None}},
    "localTexts": {
        "inicial": {"title": "Oração inicial", "content": "Ó Deus, vinde em nosso auxílio."},
        "final": {"title": "Oração final", "content": "Amém."},
    },
    "defaults": {
        "opening": [{"ref": "local:inicial"}],
        "closing": [
            {"rubric": "Pedido pessoal"},
            {"ref": "global:pn"},
            {"ref": "local:final"},
        ],
    },
    "days": [
        {"day": 1, "title": "Primeiro dia", "body": [{"text": "Texto do dia 1"}]},
        {
            "day": 2,
            "title": "Segundo dia",
            "body": ["Texto solto", None, {"ref": "global:am"}],
            "override": {"opening": [], "closing": None},
        },
        {
            "day": 3,
            "title": "Terceiro dia",
            "body": [{"text": "Texto do dia 3"}],
            "override": {"closing": [{"ref": "global:am"}]},
        },
        # Day 4 is intentionally missing (sparse days).
        {"day": 5, "title": "Quinto dia", "content": "Oração do quinto dia"},
    ],
}


def sample_global_texts() -> dict:
    return copy.deepcopy(GLOBAL_TEXTS)


def sample_novena_dict(**overrides) -> dict:
    data = copy.deepcopy(SAMPLE_NOVENA)
    data.update(overrides)
    return data
