import json
import unittest
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from contract_health.extraction import ExtractionError, extract, repair_cosmetics, repair_structure
from contract_health.extraction.json_salvage import (
    brace_scan_parse,
    cosmetic_repair_parse,
    direct_parse,
    fenced_block_parse,
    structural_repair_parse,
)


NESTED_DIMENSIONS = (
    '{"document_type": "contract", "seller_company": "Acme Ltd.",\n'
    '"health_dimensions": {"mad": 10, "mao": 70, "maa": 50, "map": 40,\n'
    '"dimension_explanations": {"mad": "capped liability", "map": "single project"}}'
)


class JsonSalvageTests(unittest.TestCase):
    def test_fenced_block_with_trailing_comma_and_prose(self):
        text = 'Here is the result: ```json\n{"a":1,}\n``` thanks'
        self.assertEqual(extract(text), {"a": 1})

    def test_plain_json_uses_direct_strategy(self):
        payload = '  {"document_type": "quotation", "health_dimensions": {"mad": 1, "mao": 2, "maa": 3, "map": 4}}\n'
        self.assertEqual(direct_parse(payload)["document_type"], "quotation")
        self.assertEqual(extract(payload)["health_dimensions"]["map"], 4)

    def test_fenced_block_without_language_tag(self):
        text = 'Result:\n```\n{"seller_company": "Acme"}\n```'
        self.assertEqual(fenced_block_parse(text), {"seller_company": "Acme"})
        self.assertEqual(extract(text), {"seller_company": "Acme"})

    def test_structural_repair_closes_unterminated_dimensions_object(self):
        text = f"```json\n{NESTED_DIMENSIONS}\n```"
        with self.assertRaises(ValueError):
            fenced_block_parse(text)

        parsed = structural_repair_parse(text)
        self.assertEqual(parsed["health_dimensions"], {"mad": 10, "mao": 70, "maa": 50, "map": 40})
        self.assertEqual(parsed["dimension_explanations"]["mad"], "capped liability")
        self.assertEqual(extract(text), parsed)

    def test_repair_structure_leaves_well_formed_objects_alone(self):
        text = '{"health_dimensions": {"mad": 1, "map": 2}, "dimension_explanations": {"map": "x"}}'
        self.assertEqual(repair_structure(text), text)

    def test_cosmetic_repair_removes_comments_and_trailing_commas(self):
        text = (
            "```json\n"
            "{\n"
            "  // rating follows\n"
            '  "a": 1, /* inline */\n'
            '  "b": [1, 2,],\n'
            "}\n"
            "```"
        )
        self.assertEqual(cosmetic_repair_parse(text), {"a": 1, "b": [1, 2]})
        self.assertEqual(extract(text), {"a": 1, "b": [1, 2]})

    def test_repair_cosmetics_unwinds_nested_trailing_commas(self):
        self.assertEqual(repair_cosmetics('{"a": {"b": [1,],},}'), '{"a": {"b": [1]}}')

    def test_cosmetic_repair_leaves_string_contents_alone(self):
        payloads = [
            {"mad": "see clause 4 // liability", "n": 1},
            {"note": "items [4.1, 4.2,] kept", "n": 1},
            {"note": "penalty /* capped */ at 10%", "quote": 'He said "stop, }" // twice', "n": 2},
        ]
        for payload in payloads:
            with self.subTest(payload=payload):
                text = f"```json\n{json.dumps(payload)[:-1]},}}\n```"
                self.assertEqual(extract(text), payload)

    def test_repair_cosmetics_honours_escaped_quotes(self):
        self.assertEqual(
            repair_cosmetics('{"a": "x\\" // y,]", "b": 1, // note\n}'),
            '{"a": "x\\" // y,]", "b": 1 \n}',
        )

    def test_trailing_commas_at_several_depths(self):
        text = (
            "```json\n"
            "{\n"
            '  "health_dimensions": {"mad": 3, "mao": 78,},\n'
            '  "items": [[1, 2,], {"k": "v,]",},],\n'
            '  "note": "ends with comma,",\n'
            "}\n"
            "```"
        )
        self.assertEqual(
            extract(text),
            {
                "health_dimensions": {"mad": 3, "mao": 78},
                "items": [[1, 2], {"k": "v,]"}],
                "note": "ends with comma,",
            },
        )

    def test_brace_scan_recovers_object_surrounded_by_prose(self):
        text = 'Sure! Analysis: {"document_type": "contract", "seller_company": "Acme",} Hope this helps.'
        self.assertEqual(brace_scan_parse(text), {"document_type": "contract", "seller_company": "Acme"})
        self.assertEqual(extract(text)["seller_company"], "Acme")

    def test_failure_reports_first_parser_error_and_excerpt(self):
        text = "The model declined to answer this request."
        with self.assertRaises(ExtractionError) as ctx:
            extract(text, excerpt_chars=9)

        error = ctx.exception
        self.assertEqual(error.stage, "extraction")
        self.assertEqual(error.status_code, 502)
        self.assertEqual(error.excerpt, "The model")
        self.assertIn("Expecting value", error.parser_error)
        self.assertEqual(error.details(), {"parser_error": error.parser_error, "excerpt": "The model"})

    def test_top_level_array_is_not_an_object(self):
        with self.assertRaises(ExtractionError) as ctx:
            extract("[1, 2, 3]")
        self.assertIn("expected object", ctx.exception.parser_error)

    def test_non_text_input_is_rejected(self):
        with self.assertRaises(ExtractionError):
            extract(None)

    def test_valid_json_survives_unchanged(self):
        payload = {
            "document_type": "contract",
            "seller_company": "Acme // Partners",
            "health_dimensions": {"mad": 12.5, "mao": 80, "maa": 30, "map": 60},
        }
        self.assertEqual(extract(json.dumps(payload)), payload)
        self.assertEqual(extract(f"```json\n{json.dumps(payload, indent=2)}\n```"), payload)


if __name__ == "__main__":
    unittest.main()
