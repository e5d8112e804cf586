import os
import re
import sys
import unittest


ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from pattern import Pattern  # noqa: E402


class PatternTests(unittest.TestCase):
    def test_string_pattern_matches_whole_line(self):
        p = Pattern("!", "ping", None)
        self.assertIsNotNone(p.match("!ping"))
        self.assertIsNone(p.match("!pingpong"))
        self.assertIsNone(p.match("say !ping"))

    def test_string_is_escaped(self):
        p = Pattern(None, "a.b", None)
        self.assertIsNotNone(p.match("a.b"))
        self.assertIsNone(p.match("axb"))

    def test_regex_pattern_keeps_groups(self):
        p = Pattern("!", re.compile(r"add (\d+) (\d+)"), None)
        m = p.match("!add 1 2")
        self.assertEqual(m.groups(), ("1", "2"))
        self.assertIsNone(p.match("add 1 2"))

    def test_regex_suffix_and_prefix(self):
        p = Pattern(re.compile(r"^(?:bot[:,] )"), re.compile(r"hi"), "?")
        self.assertIsNotNone(p.match("bot: hi?"))
        self.assertIsNone(p.match("bot: hi? there"))

    def test_absent_and_empty_components(self):
        self.assertEqual(Pattern(None, "x", "").to_regex().pattern, "^x$")
        self.assertEqual(Pattern("", re.compile("x"), None).to_regex().pattern, "x")

    def test_callable_components_receive_message(self):
        seen = []

        def prefix(message):
            seen.append(message)
            return message["nick"] + ": "

        p = Pattern(prefix, "hello", None)
        self.assertIsNotNone(p.match("bot: hello", {"nick": "bot"}))
        self.assertEqual(seen, [{"nick": "bot"}])

    def test_equality(self):
        self.assertEqual(Pattern("!", "a", None), Pattern("!", "a", None))
        self.assertNotEqual(Pattern("!", "a", None), Pattern("?", "a", None))
        self.assertEqual(len({Pattern("!", "a", None), Pattern("!", "a", None)}), 1)


if __name__ == "__main__":
    unittest.main()
