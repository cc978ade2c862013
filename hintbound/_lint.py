"""Checks hint blocks against the tables of a statement without building an actual plan.

The lint simulates a plan build in which every table of every query block is probed against every hint category. Hints
that do not match any table in this simulation will not match in a real plan either, so the resulting warnings are a
reliable indicator for typos in table names, wrong query block references and similar mistakes. (The opposite does not
hold: a hint that matches here can still be ignored by the optimizer if the requested plan shape is not possible.)

Example
-------
>>> result = lint("/*+ HASH_JOIN(t1, t3) */", {1: ["t1", "t2"]}, current_db="test")
>>> [str(warning) for warning in result.warnings]  # doctest: +ELLIPSIS
['There are no matching table names for (t3) in optimizer hint /*+ HASH_JOIN(t1, t3) */ or ...']
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from . import util
from ._diagnostics import HintWarning, collect_unmatched_hint_warnings
from ._hints import HintedTable, PlanHints
from ._normalizer import QueryBlockResolver, SessionContext, build_plan_hints
from ._parser import parse_hint_block
from ._settings import HintSettings
from .util import jsondict

ReportColumns = ["hint", "db", "table", "query_block", "matched"]
"""The columns of `LintResult.report`."""


@dataclass
class LintResult:
    """The outcome of a lint run.

    Attributes
    ----------
    plan_hints : PlanHints
        The aggregate after all tables have been probed. It provides the match status of each entry.
    warnings : list[HintWarning]
        All diagnostics: first the hints that could not be applied at all, then the hints that did not match.
    """

    plan_hints: PlanHints
    warnings: list[HintWarning]

    def passed(self) -> bool:
        """Checks, whether the hints did not produce any warnings."""
        return not self.warnings

    def report(self) -> pd.DataFrame:
        """Provides the match status of all stored hint entries, one row per entry."""
        rows = [{"hint": hint_name, "db": entry.db_name.original, "table": entry.table_name.original,
                 "query_block": entry.query_block, "matched": entry.matched}
                for hint_name, entry in self.plan_hints.entries()]
        return util.as_df(rows, columns=ReportColumns)

    def __json__(self) -> jsondict:
        return {"plan_hints": self.plan_hints, "warnings": self.warnings}


def _parse_catalog_table(table: str, current_db: str, query_block: int) -> HintedTable:
    db_name, _, table_name = table.rpartition(".")
    return HintedTable.of(table_name, db_name if db_name else current_db, query_block=query_block)


def probe_table(plan_hints: PlanHints, table: HintedTable) -> None:
    """Probes all hint categories with a table, the way a plan builder would do while building a scan of that table."""
    plan_hints.join_preferences(table)
    plan_hints.prefer_leading(table)
    plan_hints.storage_preference(table)
    plan_hints.index_hints_for(table.db_name, table.table_name, query_block=table.query_block)
    plan_hints.index_merge_hints_for(table.db_name, table.table_name, query_block=table.query_block)


def lint(hint_text: str, catalog: Mapping[int, Iterable[str] | str], *, current_db: str, current_block: int = 1,
         resolver: Optional[QueryBlockResolver] = None, settings: Optional[HintSettings] = None) -> LintResult:
    """Checks whether the hints of a hint block would match the tables of a statement.

    Parameters
    ----------
    hint_text : str
        The hint block, e.g. ``/*+ HASH_JOIN(t1, t2) */``
    catalog : Mapping[int, Iterable[str] | str]
        The tables of each query block of the statement. Tables can be given as ``table`` or as ``db.table``. Unqualified
        tables belong to `current_db`.
    current_db : str
        The default database of the session
    current_block : int, optional
        The query block that the hint block has been written for. Defaults to the first block.
    resolver : Optional[QueryBlockResolver], optional
        Provides the names of the query blocks. By default, only the generated names (``sel_1`` etc.) and the names of
        ``QB_NAME`` hints are known.
    settings : Optional[HintSettings], optional
        Controls the logging and diagnostics. Uses the default settings if omitted.

    Returns
    -------
    LintResult
        The diagnostics together with the probed aggregate

    Raises
    ------
    HintParseError
        If the hint block cannot be parsed
    """
    settings = settings if settings is not None else HintSettings()
    log = util.make_logger(settings.verbose, prefix=util.timestamp)

    session = SessionContext(current_db)
    plan_hints = build_plan_hints(session, parse_hint_block(hint_text), resolver, current_block=current_block,
                                  settings=settings)
    plan_hints.seal()

    for query_block, tables in sorted(catalog.items()):
        for table in util.enlist(tables):
            candidate = _parse_catalog_table(table, current_db, query_block)
            log(f"Probing table {candidate}")
            probe_table(plan_hints, candidate)

    warnings = session.warnings + collect_unmatched_hint_warnings(plan_hints, settings)
    return LintResult(plan_hints, warnings)

