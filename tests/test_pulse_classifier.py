import json
import unittest
from unittest import mock

import requests

from vibepulse.config import Config
from vibepulse.contracts.pulse_analysis import ClassificationResult
from vibepulse.ingestion.item_types import PulseCandidate
from vibepulse.scoring.pulse_classifier import (
    NO_CONTENT_PLACEHOLDER,
    UNKNOWN_AUTHOR_PLACEHOLDER,
    PulseClassifier,
    build_user_prompt,
)


def _item(url="https://example.com/launch", **kw):
    fields = dict(source="hn", title="Show HN: A tiny AI editor", url=url, external_id="hn-abc")
    fields.update(kw)
    return PulseCandidate(**fields)


def _claude_response(text, status_code=200):
    resp = mock.Mock(status_code=status_code, text=text)
    resp.json.return_value = {"content": [{"type": "text", "text": text}]}
    return resp


class TestPrompt(unittest.TestCase):
    def test_placeholders_for_missing_content_and_author(self):
        prompt = build_user_prompt(_item())
        self.assertIn("BRON: HN", prompt)
        self.assertIn(f"INHOUD: {NO_CONTENT_PLACEHOLDER}", prompt)
        self.assertIn(f"AUTEUR: {UNKNOWN_AUTHOR_PLACEHOLDER}", prompt)

    def test_embeds_item_fields(self):
        prompt = build_user_prompt(_item(content="Lange tekst", author="alice"))
        self.assertIn("TITEL: Show HN: A tiny AI editor", prompt)
        self.assertIn("URL: https://example.com/launch", prompt)
        self.assertIn("INHOUD: Lange tekst", prompt)
        self.assertIn("AUTEUR: alice", prompt)


class TestClassify(unittest.TestCase):
    def setUp(self):
        self.config = Config(anthropic_api_key="sk-ant-test", classifier_batch_delay=0.5)

    def test_missing_key_returns_none_without_request(self):
        classifier = PulseClassifier(Config())
        with mock.patch("vibepulse.scoring.pulse_classifier.requests.post") as post:
            self.assertIsNone(classifier.classify(_item()))
        post.assert_not_called()

    def test_success_with_prose_around_json(self):
        answer = "Natuurlijk! " + json.dumps(
            {
                "relevanceScore": 150,
                "category": "tool-launch",
                "titleNL": "Kleine AI-editor gelanceerd",
                "summaryNL": "Handig voor solo bouwers.",
                "reasoning": "AI coding tool.",
            }
        ) + " Groet."
        with mock.patch(
            "vibepulse.scoring.pulse_classifier.requests.post", return_value=_claude_response(answer)
        ) as post:
            result = PulseClassifier(self.config).classify(_item())
        self.assertEqual(result.relevance_score, 100)
        self.assertEqual(result.title_translated, "Kleine AI-editor gelanceerd")
        _, kwargs = post.call_args
        self.assertEqual(kwargs["headers"]["x-api-key"], "sk-ant-test")
        self.assertEqual(kwargs["timeout"], self.config.classifier_timeout)

    def test_api_error_returns_none(self):
        with mock.patch(
            "vibepulse.scoring.pulse_classifier.requests.post", return_value=_claude_response("overloaded", 529)
        ):
            self.assertIsNone(PulseClassifier(self.config).classify(_item()))

    def test_timeout_returns_none(self):
        with mock.patch(
            "vibepulse.scoring.pulse_classifier.requests.post", side_effect=requests.Timeout("too slow")
        ):
            self.assertIsNone(PulseClassifier(self.config).classify(_item()))

    def test_unparseable_answer_returns_none(self):
        with mock.patch(
            "vibepulse.scoring.pulse_classifier.requests.post", return_value=_claude_response("Geen idee.")
        ):
            self.assertIsNone(PulseClassifier(self.config).classify(_item()))

    def test_empty_content_blocks_return_none(self):
        resp = mock.Mock(status_code=200, text="")
        resp.json.return_value = {"content": []}
        with mock.patch("vibepulse.scoring.pulse_classifier.requests.post", return_value=resp):
            self.assertIsNone(PulseClassifier(self.config).classify(_item()))


    def test_malformed_bodies_return_none(self):
        bodies = [
            {"content": {"text": "x"}},
            {"content": 5},
            {"content": [{"text": 42}]},
            {"content": ["not a block"]},
            ["content"],
        ]
        classifier = PulseClassifier(self.config)
        for body in bodies:
            with self.subTest(body=body):
                resp = mock.Mock(status_code=200, text=str(body))
                resp.json.return_value = body
                with mock.patch("vibepulse.scoring.pulse_classifier.requests.post", return_value=resp):
                    self.assertIsNone(classifier.classify(_item()))


class TestClassifyBatch(unittest.TestCase):
    def test_failures_are_excluded_and_calls_are_throttled(self):
        sleep = mock.Mock()
        classifier = PulseClassifier(Config(anthropic_api_key="k", classifier_batch_delay=0.5), sleep=sleep)
        ok = ClassificationResult(80, "tool-launch", "t", "s", "r")
        classifier.classify = mock.Mock(side_effect=[ok, None, ok])
        items = [_item("https://a.example"), _item("https://b.example"), _item("https://c.example")]

        results = classifier.classify_batch(items)

        self.assertEqual(set(results), {"https://a.example", "https://c.example"})
        self.assertEqual(sleep.call_count, 3)
        sleep.assert_called_with(0.5)


if __name__ == "__main__":
    unittest.main()
