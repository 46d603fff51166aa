import unittest

from novena_content.convert import (
    blocks_from_list,
    global_texts_from_dict,
    novena_from_dict,
)
from novena_content.errors import DanglingStepReference, NovenaDataError
from novena_content.testing_utils import sample_global_texts, sample_novena_dict
from novena_content.types import (
    PassthroughBlock,
    ReferenceBlock,
    RubricBlock,
    StepKind,
    TextBlock,
)


class BlocksFromListTest(unittest.TestCase):
    def test_shapes(self):
        blocks = blocks_from_list(
            [None, "solto", {"text": "t"}, {"ref": "global:pn"}, {"rubric": "r"}],
            "test",
        )

        self.assertEqual(
            blocks,
            [
                TextBlock(content="solto", bare=True),
                TextBlock(content="t"),
                ReferenceBlock(ref="global:pn"),
                RubricBlock(content="r"),
            ],
        )

    def test_raw_form_is_preserved(self):
        entries = ["solto", {"text": "t"}, {"ref": "local:x"}, {"rubric": "r"}]
        blocks = blocks_from_list(entries, "test")
        self.assertEqual([block.to_raw() for block in blocks], entries)

    def test_ambiguous_block_rejected(self):
        with self.assertRaises(NovenaDataError) as ctx:
            blocks_from_list([{"ref": "global:pn", "text": "x"}], "days[1].body")
        self.assertIn("ambiguous", str(ctx.exception))
        self.assertIn("days[1].body[0]", str(ctx.exception))

    def test_unknown_shape_rejected_by_default(self):
        with self.assertRaises(NovenaDataError):
            blocks_from_list([{"image": "x.png"}], "test")

    def test_unknown_shape_allowed(self):
        blocks = blocks_from_list([{"image": "x.png"}], "test", allow_unknown=True)
        self.assertEqual(blocks, [PassthroughBlock(raw={"image": "x.png"})])

    def test_non_string_field_rejected(self):
        with self.assertRaises(NovenaDataError):
            blocks_from_list([{"text": 3}], "test")

    def test_non_list_rejected(self):
        with self.assertRaises(NovenaDataError):
            blocks_from_list({"text": "x"}, "test")
        self.assertEqual(blocks_from_list(None, "test"), [])


class NovenaFromDictTest(unittest.TestCase):
    def test_sample_loads(self):
        novena = novena_from_dict(sample_novena_dict())

        self.assertEqual(novena.id, "novena-teste")
        self.assertEqual(novena.slug, "teste")
        self.assertEqual(novena.language, "pt-BR")
        self.assertEqual(novena.meta.days_count, 9)
        self.assertEqual([d.number for d in novena.days], [1, 2, 3, 5])
        self.assertEqual(novena.script[1].kind, StepKind.DAY)
        self.assertIsNone(novena.script[1].ref)
        self.assertIsNone(novena.common_texts["pn"].content)

    def test_override_presence(self):
        novena = novena_from_dict(sample_novena_dict())

        self.assertIsNone(novena.find_day(1).overrides)
        day2 = novena.find_day(2)
        self.assertEqual(day2.overrides.opening, ())
        self.assertIsNone(day2.overrides.closing)
        self.assertEqual(day2.overrides.to_raw(), {"opening": []})

    def test_content_only_day(self):
        day = novena_from_dict(sample_novena_dict()).find_day(5)

        self.assertEqual(day.body, (TextBlock(content="Oração do quinto dia"),))
        self.assertEqual(day.text, "Oração do quinto dia")

    def test_dangling_script_ref(self):
        data = sample_novena_dict()
        data["script"].append({"kind": "action", "ref": "jejum"})

        with self.assertRaises(DanglingStepReference) as ctx:
            novena_from_dict(data)
        self.assertEqual(ctx.exception.kind, "action")
        self.assertEqual(ctx.exception.ref, "jejum")

    def test_unknown_step_kind(self):
        data = sample_novena_dict()
        data["script"].append({"kind": "hymn", "ref": "x"})
        with self.assertRaises(NovenaDataError):
            novena_from_dict(data)

    def test_duplicate_day(self):
        data = sample_novena_dict()
        data["days"].append({"day": 1, "title": "De novo", "body": []})
        with self.assertRaises(NovenaDataError):
            novena_from_dict(data)

    def test_day_beyond_days_count(self):
        data = sample_novena_dict()
        data["days"].append({"day": 10, "title": "Extra", "body": []})
        with self.assertRaises(NovenaDataError):
            novena_from_dict(data)

    def test_invalid_day_number(self):
        data = sample_novena_dict()
        data["days"].append({"day": 0, "title": "Zero", "body": []})
        with self.assertRaises(NovenaDataError):
            novena_from_dict(data)

    def test_missing_id(self):
        data = sample_novena_dict()
        del data["id"]
        with self.assertRaises(NovenaDataError):
            novena_from_dict(data)

    def test_portuguese_keys(self):
        data = {
            "id": "novena-antiga",
            "catalogo": {"titulo": "Novena Antiga", "periodo": {"inicio": "01-01", "fim": "01-09"}},
            "roteiro": [{"tipo": "fixo", "ref": "sinal"}, {"tipo": "dia"}],
            "fixos": {"sinal": {"titulo": "Sinal da Cruz", "texto_markdown": "Em nome do Pai."}},
            "dias": [{"numero": 1, "titulo": "Dia 1", "texto_markdown": "Texto"}],
        }

        novena = novena_from_dict(data)

        self.assertEqual(novena.slug, "novena-antiga")
        self.assertEqual(novena.meta.title, "Novena Antiga")
        self.assertEqual(novena.meta.period.start, "01-01")
        self.assertEqual(novena.script[0].kind, StepKind.FIXED)
        self.assertEqual(novena.fixed_texts["sinal"].content, "Em nome do Pai.")
        self.assertEqual(novena.find_day(1).text, "Texto")

    def test_to_dict_uses_camel_case(self):
        data = novena_from_dict(sample_novena_dict()).to_dict()

        self.assertEqual(data["meta"]["daysCount"], 9)
        self.assertIn("localTexts", data)
        self.assertEqual(data["defaults"]["opening"], [{"ref": "local:inicial"}])
        self.assertEqual(data["days"][1]["override"], {"opening": []})


class GlobalTextsFromDictTest(unittest.TestCase):
    def test_loads(self):
        registry = global_texts_from_dict(sample_global_texts())
        self.assertEqual(registry["pn"].title, "Pai-Nosso")

    def test_key_mismatch(self):
        data = sample_global_texts()
        data["pn"]["key"] = "am"
        with self.assertRaises(NovenaDataError):
            global_texts_from_dict(data)

    def test_missing_content(self):
        with self.assertRaises(NovenaDataError):
            global_texts_from_dict({"pn": {"title": "Pai-Nosso"}})


if __name__ == "__main__":
    unittest.main()
