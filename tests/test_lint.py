"""Tests for the lint of hint blocks and the corresponding command line utility."""
from __future__ import annotations

import argparse
import contextlib
import io
import json
import unittest
from unittest import mock

from hintbound import HintParseError, QueryBlockResolver, lint
from hintbound.__main__ import main, parse_catalog
from hintbound._lint import ReportColumns


class LintTests(unittest.TestCase):
    def test_all_hints_match(self):
        result = lint("/*+ HASH_JOIN(t1, t2) USE_INDEX(t1, i1) READ_FROM_STORAGE(TIKV[t2]) */", {1: ["t1", "t2"]},
                      current_db="test")
        self.assertTrue(result.passed())
        self.assertEqual(result.warnings, [])

    def test_unknown_table(self):
        result = lint("/*+ HASH_JOIN(t1, t3) */", {1: ["t1", "t2"]}, current_db="test")
        self.assertFalse(result.passed())
        self.assertEqual(len(result.warnings), 1)
        self.assertEqual(result.warnings[0].tables, ("t3",))

    def test_inapplicable_hints_come_first(self):
        result = lint("/*+ HASH_JOIN(t3) MERGE_JOIN(t1 PARTITION(p0)) */", {1: ["t1"]}, current_db="test")
        self.assertEqual([type(warning).__name__ for warning in result.warnings],
                         ["InapplicableHintWarning", "UnmatchedHintWarning"])

    def test_qualified_catalog_tables(self):
        result = lint("/*+ HASH_JOIN(other.t1) */", {1: ["other.t1"]}, current_db="test")
        self.assertTrue(result.passed())

        result = lint("/*+ HASH_JOIN(other.t1) */", {1: ["t1"]}, current_db="test")
        self.assertFalse(result.passed())

    def test_single_table_per_block(self):
        result = lint("/*+ HASH_JOIN(t1) */", {1: "t1"}, current_db="test")
        self.assertTrue(result.passed())

    def test_query_blocks(self):
        catalog = {1: ["t1"], 2: ["t2"]}
        self.assertTrue(lint("/*+ HASH_JOIN(t2@sel_2) */", catalog, current_db="test").passed())
        self.assertFalse(lint("/*+ HASH_JOIN(t2) */", catalog, current_db="test").passed())
        self.assertTrue(lint("/*+ HASH_JOIN(t2) */", catalog, current_db="test", current_block=2).passed())

    def test_named_query_blocks(self):
        catalog = {1: ["t1"], 2: ["t2"]}
        self.assertTrue(lint("/*+ QB_NAME(sub) HASH_JOIN(t2@sub) */", catalog, current_db="test",
                             current_block=2).passed())
        resolver = QueryBlockResolver({"sub": 2})
        self.assertTrue(lint("/*+ HASH_JOIN(t2@sub) */", catalog, current_db="test", resolver=resolver).passed())
        self.assertFalse(lint("/*+ HASH_JOIN(t2@nowhere) */", catalog, current_db="test").passed())

    def test_report(self):
        result = lint("/*+ USE_INDEX(t1, i1) HASH_JOIN(t1, t3) */", {1: ["t1", "t2"]}, current_db="test")
        report = result.report()

        self.assertEqual(list(report.columns), ReportColumns)
        self.assertEqual(list(report["hint"]), ["use_index", "hash_join", "hash_join"])
        self.assertEqual(list(report["table"]), ["t1", "t1", "t3"])
        self.assertEqual(list(report["matched"]), [True, True, False])

    def test_empty_report(self):
        report = lint("/*+ HASH_AGG() */", {1: ["t1"]}, current_db="test").report()
        self.assertTrue(report.empty)
        self.assertEqual(list(report.columns), ReportColumns)

    def test_parse_errors_are_raised(self):
        with self.assertRaises(HintParseError):
            lint("/*+ HASH_JOIN(t1 */", {1: ["t1"]}, current_db="test")


class CommandLineTests(unittest.TestCase):
    def _run(self, *args: str) -> tuple[int, str, str]:
        stdout, stderr = io.StringIO(), io.StringIO()
        with mock.patch("sys.argv", ["hintbound", "--config", "/nonexistent/settings.json", *args]), \
                contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as context:
                main()
        return context.exception.code, stdout.getvalue(), stderr.getvalue()

    def test_parse_catalog(self):
        parser = argparse.ArgumentParser()
        catalog = parse_catalog(parser, ["t1", "2:t2", "2:db.t3"], 1)
        self.assertEqual(catalog, {1: ["t1"], 2: ["t2", "db.t3"]})

    def test_matching_hints(self):
        exit_code, _, stderr = self._run("-t", "t1", "-t", "t2", "/*+ HASH_JOIN(t1, t2) */")
        self.assertEqual(exit_code, 0)
        self.assertIn("All hints matched", stderr)

    def test_unmatched_hints(self):
        exit_code, _, stderr = self._run("-t", "t1", "/*+ HASH_JOIN(t1, t2) */")
        self.assertEqual(exit_code, 1)
        self.assertIn("There are no matching table names for (t2)", stderr)

    def test_json_output(self):
        exit_code, stdout, _ = self._run("--json", "-t", "t1", "/*+ HASH_JOIN(t1, t2) */")
        self.assertEqual(exit_code, 1)
        exported = json.loads(stdout)
        self.assertEqual(len(exported["warnings"]), 1)
        self.assertEqual(exported["plan_hints"]["tables"]["hash_join"][1]["matched"], False)

    def test_parse_error(self):
        exit_code, _, stderr = self._run("-t", "t1", "/*+ HASH_JOIN(t1 */")
        self.assertEqual(exit_code, 2)
        self.assertIn("Could not parse hints", stderr)


if __name__ == "__main__":
    unittest.main()
