"""Tests for the basic building blocks: identifiers, preference flags and the parser-side hint representation."""
from __future__ import annotations

import unittest

from hintbound import AggPreference, HintTable, Identifier, JoinPreference, TableOptimizerHint


class IdentifierTests(unittest.TestCase):
    def test_case_insensitive_equality(self):
        self.assertEqual(Identifier("T1"), Identifier("t1"))
        self.assertEqual(hash(Identifier("T1")), hash(Identifier("t1")))
        self.assertNotEqual(Identifier("t1"), Identifier("t2"))

    def test_original_spelling_is_retained(self):
        identifier = Identifier("MyTable")
        self.assertEqual(identifier.original, "MyTable")
        self.assertEqual(identifier.lower, "mytable")
        self.assertEqual(str(identifier), "MyTable")

    def test_never_equal_to_plain_string(self):
        self.assertNotEqual(Identifier("t1"), "t1")
        self.assertNotIn("t1", {Identifier("t1")})

    def test_empty_identifier(self):
        self.assertFalse(Identifier())
        self.assertFalse(Identifier.of(None))
        self.assertTrue(Identifier("t1"))

    def test_of_keeps_identifiers(self):
        identifier = Identifier("t1")
        self.assertIs(Identifier.of(identifier), identifier)

    def test_wildcard(self):
        self.assertTrue(Identifier("*").is_wildcard())
        self.assertFalse(Identifier("test").is_wildcard())

    def test_ordering(self):
        names = sorted([Identifier("b"), Identifier("A"), Identifier("c")])
        self.assertEqual([name.original for name in names], ["A", "b", "c"])

    def test_rejects_non_strings(self):
        with self.assertRaises(TypeError):
            Identifier(42)


class PreferenceTests(unittest.TestCase):
    def test_empty_preference_is_falsy(self):
        self.assertFalse(JoinPreference(0))
        self.assertFalse(AggPreference(0))

    def test_preferences_combine(self):
        preference = JoinPreference.HashJoin | JoinPreference.BroadcastJoin
        self.assertIn(JoinPreference.HashJoin, preference)
        self.assertNotIn(JoinPreference.MergeJoin, preference)


class TableOptimizerHintTests(unittest.TestCase):
    def test_sequences_become_tuples(self):
        hint = TableOptimizerHint("USE_INDEX", [HintTable("t1")], indexes=["i1", "i2"])
        self.assertEqual(hint.tables, (HintTable("t1"),))
        self.assertEqual(hint.indexes, ("i1", "i2"))

    def test_single_argument_is_not_split(self):
        hint = TableOptimizerHint("QB_NAME", args="qb1")
        self.assertEqual(hint.args, ("qb1",))

    def test_normalized_name(self):
        self.assertEqual(TableOptimizerHint("Hash_Join").normalized_name, "hash_join")

    def test_partitions_become_tuples(self):
        table = HintTable("t1", partitions=["p0", "p1"])
        self.assertEqual(table.partitions, ("p0", "p1"))


if __name__ == "__main__":
    unittest.main()
