import json
import unittest

from vibepulse.contracts.pulse_analysis import (
    DEFAULT_CATEGORY,
    MAX_REASONING_CHARS,
    MAX_SUMMARY_CHARS,
    MAX_TITLE_CHARS,
    clamp_score,
    find_json_object,
    parse_analysis,
    validate_analysis,
)


def _answer(**overrides):
    payload = {
        "relevanceScore": 82,
        "category": "tool-launch",
        "titleNL": "Nieuwe AI-editor",
        "summaryNL": "Een editor voor solo founders.",
        "reasoning": "Relevant voor vibecoders.",
    }
    payload.update(overrides)
    return json.dumps(payload)


class TestFindJsonObject(unittest.TestCase):
    def test_extracts_object_from_prose(self):
        text = "Hier is mijn analyse:\n```json\n{\"a\": 1}\n```\nSucces!"
        self.assertEqual(find_json_object(text), '{"a": 1}')

    def test_braces_inside_strings_are_ignored(self):
        text = 'x {"reasoning": "gebruikt {curly} braces", "n": {"m": 2}} y {"b": 3}'
        self.assertEqual(find_json_object(text), '{"reasoning": "gebruikt {curly} braces", "n": {"m": 2}}')

    def test_escaped_quotes(self):
        text = '{"t": "zegt \\"hoi}\\""}'
        self.assertEqual(json.loads(find_json_object(text)), {"t": 'zegt "hoi}"'})

    def test_no_object(self):
        self.assertIsNone(find_json_object("geen json hier"))
        self.assertIsNone(find_json_object("{ onafgemaakt"))

    def test_non_string_input(self):
        self.assertIsNone(find_json_object(42))
        self.assertIsNone(find_json_object(None))
        self.assertIsNone(parse_analysis({"relevanceScore": 80}, fallback_title="t"))


class TestParseAnalysis(unittest.TestCase):
    def test_valid_answer(self):
        r = parse_analysis("Analyse: " + _answer(), fallback_title="Original")
        self.assertEqual(r.relevance_score, 82)
        self.assertEqual(r.category, "tool-launch")
        self.assertEqual(r.title_translated, "Nieuwe AI-editor")

    def test_score_is_clamped(self):
        self.assertEqual(parse_analysis(_answer(relevanceScore=150), fallback_title="t").relevance_score, 100)
        self.assertEqual(parse_analysis(_answer(relevanceScore=-5), fallback_title="t").relevance_score, 0)

    def test_score_string_and_missing(self):
        self.assertEqual(parse_analysis(_answer(relevanceScore="77"), fallback_title="t").relevance_score, 77)
        self.assertEqual(parse_analysis('{"category": "tool-launch"}', fallback_title="t").relevance_score, 0)
        self.assertEqual(clamp_score("veel"), 0)

    def test_unknown_category_defaults(self):
        r = parse_analysis(_answer(category="drama"), fallback_title="t")
        self.assertEqual(r.category, DEFAULT_CATEGORY)

    def test_missing_title_uses_fallback(self):
        r = parse_analysis('{"relevanceScore": 60}', fallback_title="Original title")
        self.assertEqual(r.title_translated, "Original title")
        self.assertEqual(r.summary_translated, "")

    def test_lengths_are_capped(self):
        r = parse_analysis(
            _answer(titleNL="t" * 500, summaryNL="s" * 900, reasoning="r" * 400),
            fallback_title="x",
        )
        self.assertEqual(len(r.title_translated), MAX_TITLE_CHARS)
        self.assertEqual(len(r.summary_translated), MAX_SUMMARY_CHARS)
        self.assertEqual(len(r.reasoning), MAX_REASONING_CHARS)

    def test_wrong_types_are_rejected(self):
        self.assertTrue(validate_analysis({"relevanceScore": [1, 2]}))
        self.assertIsNone(parse_analysis('{"relevanceScore": [1, 2]}', fallback_title="t"))

    def test_unparseable_answers(self):
        self.assertIsNone(parse_analysis("", fallback_title="t"))
        self.assertIsNone(parse_analysis("Sorry, ik kan dit niet analyseren.", fallback_title="t"))
        self.assertIsNone(parse_analysis("{relevanceScore: 80}", fallback_title="t"))


if __name__ == "__main__":
    unittest.main()
