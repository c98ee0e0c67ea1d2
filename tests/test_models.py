"""Tests for the wire model base."""

import unittest

from cloudnotes.models._base import extra_mode


class ExtraModeTest(unittest.TestCase):
    def test_named_modes(self):
        self.assertEqual(extra_mode("forbid"), "forbid")
        self.assertEqual(extra_mode(" Allow "), "allow")

    def test_booleans(self):
        self.assertEqual(extra_mode("true"), "forbid")
        self.assertEqual(extra_mode("off"), "allow")

    def test_unset_or_unknown_falls_back(self):
        self.assertEqual(extra_mode(None), "ignore")
        self.assertEqual(extra_mode("sometimes"), "ignore")


if __name__ == "__main__":
    unittest.main()
