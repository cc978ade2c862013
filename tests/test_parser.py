"""Tests for parsing hint blocks into `TableOptimizerHint` instances."""
from __future__ import annotations

import unittest

from hintbound import HintParseError, HintTable, TableOptimizerHint, parse_hint_block


class HintParserTests(unittest.TestCase):
    def test_join_hint(self):
        hints = parse_hint_block("/*+ HASH_JOIN(t1, t2) */")
        self.assertEqual(hints, [TableOptimizerHint("HASH_JOIN", [HintTable("t1"), HintTable("t2")])])

    def test_delimiters_are_optional(self):
        self.assertEqual(parse_hint_block("HASH_JOIN(t1)"), parse_hint_block("/*+ HASH_JOIN(t1) */"))

    def test_multiple_hints(self):
        hints = parse_hint_block("/*+ HASH_JOIN(t1), MERGE_JOIN(t2) leading(t1, t2) */")
        self.assertEqual([hint.name for hint in hints], ["HASH_JOIN", "MERGE_JOIN", "leading"])

    def test_qualified_tables(self):
        hint = parse_hint_block("HASH_JOIN(@sel_2 t1, db.t2@qb1 PARTITION(p0, p1))")[0]
        self.assertEqual(hint.qb_name, "sel_2")
        self.assertEqual(hint.tables, (HintTable("t1"),
                                       HintTable("t2", db_name="db", qb_name="qb1", partitions=("p0", "p1"))))

    def test_wildcard_database(self):
        hint = parse_hint_block("INL_JOIN(*.t1)")[0]
        self.assertEqual(hint.tables, (HintTable("t1", db_name="*"),))

    def test_quoted_identifiers(self):
        hint = parse_hint_block("HASH_JOIN(`my table`, `t``2`)")[0]
        self.assertEqual([table.table_name for table in hint.tables], ["my table", "t`2"])

    def test_index_hints(self):
        use_index, ignore_index = parse_hint_block("USE_INDEX(db.t1, i1, i2) IGNORE_INDEX(t2)")
        self.assertEqual(use_index.tables, (HintTable("t1", db_name="db"),))
        self.assertEqual(use_index.indexes, ("i1", "i2"))
        self.assertEqual(ignore_index.indexes, ())

    def test_storage_groups(self):
        tiflash, tikv = parse_hint_block("READ_FROM_STORAGE(TIFLASH[t1, t2], TIKV[t3])")
        self.assertEqual((tiflash.storage, tikv.storage), ("TIFLASH", "TIKV"))
        self.assertEqual(tiflash.tables, (HintTable("t1"), HintTable("t2")))
        self.assertEqual(tikv.tables, (HintTable("t3"),))

    def test_argument_hints(self):
        time_range, qb_name, hash_agg = parse_hint_block(
            "TIME_RANGE('2020-02-02 10:10:10', \"2020-02-02 11:10:10\") QB_NAME(qb1) HASH_AGG()")
        self.assertEqual(time_range.args, ("2020-02-02 10:10:10", "2020-02-02 11:10:10"))
        self.assertEqual(qb_name.args, ("qb1",))
        self.assertEqual(hash_agg.args, ())
        self.assertEqual(hash_agg.tables, ())

    def test_hint_without_parentheses(self):
        self.assertEqual(parse_hint_block("STRAIGHT_JOIN"), [TableOptimizerHint("STRAIGHT_JOIN")])

    def test_empty_block(self):
        self.assertEqual(parse_hint_block("/*+ */"), [])

    def test_invalid_hints(self):
        invalid_hints = [
            "HASH_JOIN(t1",
            "HASH_JOIN(t1 t2)",
            "/*+ HASH_JOIN(t1)",
            "HASH_JOIN(t1) #",
            "READ_FROM_STORAGE(TIFLASH t1)",
            "USE_INDEX(t1, )",
        ]
        for hint_text in invalid_hints:
            with self.subTest(hint=hint_text):
                with self.assertRaises(HintParseError):
                    parse_hint_block(hint_text)

    def test_error_position(self):
        with self.assertRaises(HintParseError) as context:
            parse_hint_block("HASH_JOIN(t1 t2)")
        self.assertEqual(context.exception.position, 13)


if __name__ == "__main__":
    unittest.main()
