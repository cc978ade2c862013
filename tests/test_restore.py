"""Tests for rendering hints back into their canonical hint-comment syntax."""
from __future__ import annotations

import unittest

from hintbound import (
    HintCategory,
    HintedIndex,
    HintedTable,
    HintTable,
    IndexHintMode,
    TableOptimizerHint,
    parse_hint_block,
    restore_index_hint,
    restore_join_hint,
    restore_storage_hint,
    restore_table_optimizer_hint,
)


class JoinHintRestoreTests(unittest.TestCase):
    def test_single_table(self):
        self.assertEqual(restore_join_hint("merge_join", [HintedTable.of("t1", "test")]), "/*+ MERGE_JOIN(t1) */")

    def test_partitions(self):
        table = HintedTable.of("t1", "test", partitions=["p0", "p1"])
        self.assertEqual(restore_join_hint("merge_join", [table]), "/*+ MERGE_JOIN(t1 PARTITION(p0, p1)) */")

    def test_names_are_normalized(self):
        tables = [HintedTable.of("T1", "TEST"), HintedTable.of("t2", "test", partitions=["P0"])]
        self.assertEqual(restore_join_hint(HintCategory.HashJoin, tables), "/*+ HASH_JOIN(t1, t2 PARTITION(p0)) */")

    def test_no_tables(self):
        self.assertEqual(restore_join_hint("tidb_hj", []), "TIDB_HJ")


class IndexHintRestoreTests(unittest.TestCase):
    def test_index_hint(self):
        hint = HintedIndex.of("t1", "test", IndexHintMode.Use, ["I1", "i2"])
        self.assertEqual(restore_index_hint(hint.hint_type_string(), hint), "/*+ USE_INDEX(t1, i1, i2) */")

    def test_index_hint_without_indexes(self):
        hint = HintedIndex.of("t1", "test", IndexHintMode.Ignore, partitions=["p0"])
        self.assertEqual(restore_index_hint("ignore_index", hint), "/*+ IGNORE_INDEX(t1 PARTITION(p0)) */")


class StorageHintRestoreTests(unittest.TestCase):
    def test_both_engines(self):
        restored = restore_storage_hint([HintedTable.of("t1", "test")], [HintedTable.of("t2", "test")])
        self.assertEqual(restored, "/*+ READ_FROM_STORAGE(tiflash[t1], tikv[t2]) */")

    def test_single_engine(self):
        restored = restore_storage_hint([], [HintedTable.of("t1", "test"), HintedTable.of("t2", "test")])
        self.assertEqual(restored, "/*+ READ_FROM_STORAGE(tikv[t1, t2]) */")


class TableOptimizerHintRestoreTests(unittest.TestCase):
    def test_full_hint(self):
        hint = TableOptimizerHint("Hash_Join", [HintTable("T1", db_name="DB", qb_name="QB1", partitions=("P0",)),
                                                HintTable("t2")], qb_name="sel_2")
        self.assertEqual(restore_table_optimizer_hint(hint), "/*+ HASH_JOIN(@sel_2 db.t1@qb1 PARTITION(p0), t2) */")

    def test_index_hint(self):
        hint = TableOptimizerHint("use_index", [HintTable("t1")], indexes=["i1", "i2"])
        self.assertEqual(restore_table_optimizer_hint(hint), "/*+ USE_INDEX(t1, i1, i2) */")

    def test_storage_hint(self):
        hint = TableOptimizerHint("read_from_storage", [HintTable("t1"), HintTable("t2")], storage="TIFLASH")
        self.assertEqual(restore_table_optimizer_hint(hint), "/*+ READ_FROM_STORAGE(tiflash[t1, t2]) */")

    def test_arguments(self):
        hint = TableOptimizerHint("time_range", args=["2020-02-02 10:10:10", "2020-02-02 11:10:10"])
        self.assertEqual(restore_table_optimizer_hint(hint),
                         "/*+ TIME_RANGE('2020-02-02 10:10:10', '2020-02-02 11:10:10') */")

    def test_without_arguments(self):
        self.assertEqual(restore_table_optimizer_hint(TableOptimizerHint("hash_agg")), "/*+ HASH_AGG() */")
        self.assertEqual(restore_table_optimizer_hint(TableOptimizerHint("hash_agg", qb_name="sel_2")),
                         "/*+ HASH_AGG(@sel_2) */")

    def test_restored_hints_can_be_parsed(self):
        hints = [
            TableOptimizerHint("HASH_JOIN", [HintTable("t1", db_name="db", qb_name="qb1", partitions=("p0", "p1")),
                                             HintTable("t2")], qb_name="sel_2"),
            TableOptimizerHint("USE_INDEX", [HintTable("t1")], indexes=["i1"]),
            TableOptimizerHint("READ_FROM_STORAGE", [HintTable("t3")], storage="tikv"),
            TableOptimizerHint("TIME_RANGE", args=["2020-02-02 10:10:10", "2020-02-02 11:10:10"]),
        ]
        for hint in hints:
            with self.subTest(hint=hint.name):
                restored = restore_table_optimizer_hint(hint)
                self.assertEqual(parse_hint_block(restored), [hint])


if __name__ == "__main__":
    unittest.main()
