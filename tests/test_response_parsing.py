import json
import unittest

from utils.response_parsing import extract_json_array, is_failure_phrase

QUESTIONS = [
    {"question": "Who led the expedition?", "options": ["Ada", "Bo", "Cy", "Di"], "answer": "A"},
    {"question": "When did it end?", "options": ["1901", "1902", "1903", "1904"], "answer": "D"},
]


class TestExtractJsonArray(unittest.TestCase):
    def test_plain_json(self):
        self.assertEqual(extract_json_array(json.dumps(QUESTIONS)), QUESTIONS)

    def test_surrounding_whitespace(self):
        self.assertEqual(extract_json_array("\n\n  " + json.dumps(QUESTIONS) + "  \n"), QUESTIONS)

    def test_fenced_block_with_language_tag(self):
        raw = "Here is your quiz:\n```json\n" + json.dumps(QUESTIONS, indent=2) + "\n```\nGood luck!"
        self.assertEqual(extract_json_array(raw), QUESTIONS)

    def test_fenced_block_without_language_tag(self):
        raw = "```\n" + json.dumps(QUESTIONS) + "\n```"
        self.assertEqual(extract_json_array(raw), QUESTIONS)

    def test_array_embedded_in_prose(self):
        # Nested option arrays must not truncate the outer match
        raw = "Sure! " + json.dumps(QUESTIONS) + " Let me know if you need more."
        self.assertEqual(extract_json_array(raw), QUESTIONS)

    def test_bracketed_prose_before_array(self):
        raw = "Note [draft]: " + json.dumps(QUESTIONS)
        self.assertEqual(extract_json_array(raw), QUESTIONS)

    def test_comma_separated_objects_without_brackets(self):
        cards = [{"question": "Who led it?", "answer": "Ada"}, {"question": "Ships?", "answer": "Three"}]
        raw = "Cards: " + ", ".join(json.dumps(c) for c in cards) + " done"
        self.assertEqual(extract_json_array(raw), cards)

    def test_no_array_returns_none(self):
        self.assertIsNone(extract_json_array("I could not find anything to quiz you on."))

    def test_empty_array_is_not_success(self):
        self.assertIsNone(extract_json_array("[]"))

    def test_object_is_not_an_array(self):
        self.assertIsNone(extract_json_array('{"question": "x"}'))

    def test_empty_and_none_input(self):
        self.assertIsNone(extract_json_array(""))
        self.assertIsNone(extract_json_array("   "))
        self.assertIsNone(extract_json_array(None))

    def test_unbalanced_bracket_returns_none(self):
        self.assertIsNone(extract_json_array("The answer is [incomplete and never closed"))


class TestFailurePhrase(unittest.TestCase):
    def test_detects_phrases_case_insensitively(self):
        self.assertTrue(is_failure_phrase("Unable to generate transcript from provided content."))
        self.assertTrue(is_failure_phrase("Sorry, I CANNOT CREATE that."))
        self.assertTrue(is_failure_phrase("I can't create flashcards here"))

    def test_normal_text(self):
        self.assertFalse(is_failure_phrase("The expedition returned in 1904."))
        self.assertFalse(is_failure_phrase(""))
        self.assertFalse(is_failure_phrase(None))


if __name__ == "__main__":
    unittest.main()
