import json
import unittest

from app.core.errors import SchemaViolation
from app.validation.repair import parse_oracle_json, repair, strip_code_fence


class ResponseRepairTests(unittest.TestCase):
    def test_strips_json_fence(self):
        raw = '```json\n{"job_title": "Engineer"}\n```'
        self.assertEqual(parse_oracle_json(raw), {"job_title": "Engineer"})

    def test_strips_chatter_around_object(self):
        raw = 'Here is the result:\n{"a": [1, 2]}\nLet me know if you need more.'
        self.assertEqual(strip_code_fence(raw), '{"a": [1, 2]}')

    def test_drops_trailing_commas(self):
        raw = '{"skills": ["python", "sql",], "count": 2,}'
        self.assertEqual(parse_oracle_json(raw), {"skills": ["python", "sql"], "count": 2})

    def test_escapes_raw_newlines_inside_strings(self):
        raw = '{"summary": "line one\nline two", "tab": "a\tb"}'
        parsed = parse_oracle_json(raw)
        self.assertEqual(parsed["summary"], "line one\nline two")
        self.assertEqual(parsed["tab"], "a\tb")

    def test_commas_inside_strings_are_kept(self):
        raw = '{"text": "a, ]", "n": 1,}'
        self.assertEqual(parse_oracle_json(raw), {"text": "a, ]", "n": 1})

    def test_valid_json_is_unchanged(self):
        raw = '{"a": "b, }"}'
        self.assertEqual(repair(raw), raw)

    def test_repair_is_idempotent(self):
        raw = '```\n{"items": ["x",\n], "note": "two\nlines",}\n```'
        once = repair(raw)
        self.assertEqual(repair(once), once)
        self.assertEqual(json.loads(once), {"items": ["x"], "note": "two\nlines"})

    def test_single_quotes_are_repaired(self):
        self.assertEqual(parse_oracle_json("{'name': 'Go', 'found': true}"), {"name": "Go", "found": True})

    def test_scalar_reply_is_malformed(self):
        with self.assertRaises(SchemaViolation) as ctx:
            parse_oracle_json('"just a sentence"', stage="matching")
        self.assertEqual(ctx.exception.code, "malformed_json")

    def test_unrepairable_text_raises_schema_violation(self):
        with self.assertRaises(SchemaViolation) as ctx:
            parse_oracle_json("I cannot help with that.", stage="matching")
        self.assertEqual(ctx.exception.code, "malformed_json")
        self.assertEqual(ctx.exception.stage, "matching")


if __name__ == "__main__":
    unittest.main()
