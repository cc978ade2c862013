"""Diagnostics for hints that cannot be applied.

Hints never cause a statement to fail. Instead, all problems are reported as `HintWarning` values which are handed back to
the caller (or appended to the session). There are two kinds of problems:

- `InapplicableHintWarning` is raised while hints are normalized, if a hint is structurally incompatible with its target,
  e.g. a positional join hint on a partitioned table. The entire hint is dropped in this case.
- `UnmatchedHintWarning` is produced by `collect_unmatched_hint_warnings` after the plan has been built, for all stored
  hint entries that never found a target.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from . import util
from ._core import HintIndexMerge, HintReadFromStorage
from ._hints import HintCategory, HintedIndex, HintedTable, PlanHints
from ._restore import restore_join_hint, restore_storage_hint
from ._settings import HintSettings
from .util import jsondict


class HintWarning(UserWarning):
    """Base class of all hint diagnostics. Warnings are regular values and are never raised by hintbound itself.

    Parameters
    ----------
    message : str
        The human-readable diagnostic
    hint : str, optional
        The name of the hint that caused the warning
    hint_text : str, optional
        The canonical rendering of the hint
    tables : Sequence[str], optional
        The tables that caused the warning, in the spelling of the query
    """

    def __init__(self, message: str, *, hint: str = "", hint_text: str = "", tables: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.hint_text = hint_text
        self.tables = tuple(tables)

    def __json__(self) -> jsondict:
        return {
            "kind": type(self).__name__,
            "message": self.message,
            "hint": self.hint,
            "hint_text": self.hint_text,
            "tables": list(self.tables),
        }

    def __eq__(self, other: object) -> bool:
        return (isinstance(other, type(self)) and self.message == other.message and self.hint == other.hint
                and self.tables == other.tables)

    def __hash__(self) -> int:
        return hash((type(self), self.message, self.hint, self.tables))

    def __str__(self) -> str:
        return self.message


class InapplicableHintWarning(HintWarning):
    """Indicates that a hint cannot be applied to its target and has been dropped entirely."""


class UnmatchedHintWarning(HintWarning):
    """Indicates that a stored hint entry did not bind to any element of the plan."""


def extract_unmatched_tables(tables: Sequence[HintedTable]) -> list[str]:
    """Provides the names of all tables that have not been matched, in the spelling of the query."""
    return [table.table_name.original for table in tables if not table.matched]


def _index_hint_warnings(index_hints: Sequence[HintedIndex], *, index_merge: bool) -> list[HintWarning]:
    warnings: list[HintWarning] = []
    for hint in index_hints:
        if hint.matched:
            continue
        hint_type = HintIndexMerge if index_merge else hint.hint_type_string()
        target = f"{hint.db_name}.{hint.table_name}"
        message = (f"{hint_type}({hint.index_string()}) is inapplicable, check whether the table({target}) exists "
                   "or use the table alias name")
        warnings.append(UnmatchedHintWarning(message, hint=hint_type, hint_text=f"{hint_type}({hint.index_string()})",
                                             tables=[hint.table_name.original]))
    return warnings


def _join_hint_warnings(category: HintCategory, tables: Sequence[HintedTable],
                        settings: HintSettings) -> list[HintWarning]:
    unmatched_tables = extract_unmatched_tables(tables)
    if not unmatched_tables:
        return []

    hint_text = restore_join_hint(category, tables)
    alias_text = ""
    if category.alias and settings.show_alias_hints:
        alias_text = f" or {restore_join_hint(category.alias, tables)}"

    warnings: list[HintWarning] = []
    for table in unmatched_tables:
        message = (f"There are no matching table names for ({table}) in optimizer hint {hint_text}{alias_text}. "
                   "Maybe you can use the table alias name")
        warnings.append(UnmatchedHintWarning(message, hint=category.value, hint_text=hint_text, tables=[table]))
    return warnings


def _storage_hint_warnings(tiflash_tables: Sequence[HintedTable],
                           tikv_tables: Sequence[HintedTable]) -> list[HintWarning]:
    unmatched_tables = extract_unmatched_tables(tiflash_tables) + extract_unmatched_tables(tikv_tables)
    if not unmatched_tables:
        return []
    hint_text = restore_storage_hint(tiflash_tables, tikv_tables)
    message = (f"There are no matching table names for ({', '.join(unmatched_tables)}) in optimizer hint {hint_text}. "
               "Maybe you can use the table alias name")
    return [UnmatchedHintWarning(message, hint=HintReadFromStorage, hint_text=hint_text, tables=unmatched_tables)]


JoinWarningOrder: tuple[HintCategory, ...] = (
    HintCategory.IndexNestedLoopJoin,
    HintCategory.IndexHashJoin,
    HintCategory.IndexMergeJoin,
    HintCategory.NoIndexJoin,
    HintCategory.NoIndexHashJoin,
    HintCategory.NoIndexMergeJoin,
    HintCategory.MergeJoin,
    HintCategory.BroadcastJoin,
    HintCategory.ShuffleJoin,
    HintCategory.HashJoin,
    HintCategory.HashJoinBuild,
    HintCategory.HashJoinProbe,
    HintCategory.Leading,
    HintCategory.NoMergeJoin,
    HintCategory.NoHashJoin,
)
"""The order in which the join categories are reported. Index hints are reported before and storage hints after them."""


def collect_unmatched_hint_warnings(plan_hints: PlanHints,
                                    settings: Optional[HintSettings] = None) -> list[HintWarning]:
    """Generates the warnings for all hint entries that have not been matched during plan construction.

    This should be called exactly once, after the plan has been built completely. The warnings are produced in a fixed
    order: index hints, index merge hints, the join categories in the order of `JoinWarningOrder` and the storage hints.

    Each unmatched index hint and each unmatched table of a join hint yield one warning. All unmatched tables of the storage
    hints are combined into a single warning.

    Parameters
    ----------
    plan_hints : PlanHints
        The hints of the statement
    settings : Optional[HintSettings], optional
        Controls whether alternate hint spellings are mentioned. Uses the default settings if omitted.

    Returns
    -------
    list[HintWarning]
        The diagnostics. The list is empty if all hints have been matched.
    """
    settings = settings if settings is not None else HintSettings()
    log = util.make_logger(settings.verbose, prefix=util.timestamp)

    warnings: list[HintWarning] = []
    warnings.extend(_index_hint_warnings(plan_hints.index_hints, index_merge=False))
    warnings.extend(_index_hint_warnings(plan_hints.index_merge_hints, index_merge=True))
    for category in JoinWarningOrder:
        warnings.extend(_join_hint_warnings(category, plan_hints.tables(category), settings))
    warnings.extend(_storage_hint_warnings(plan_hints.tables(HintCategory.TiFlash),
                                           plan_hints.tables(HintCategory.TiKV)))

    log(f"Collected {len(warnings)} warning(s) for unmatched hints")
    return warnings
