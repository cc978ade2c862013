"""Turns the hints produced by the parser into a `PlanHints` aggregate.

The main entry point is `build_plan_hints`, which removes duplicate hints, normalizes their table references and stores
them in the category they belong to. The individual steps are available as `remove_duplicated_hints` and
`tables_to_hinted`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Optional, Protocol

from . import util
from ._core import (
    AggPreference,
    HintAggToCop,
    HintBCJ,
    HintForceIndex,
    HintHashAgg,
    HintHashJoinBuild,
    HintHashJoinProbe,
    HintHJ,
    HintIgnoreIndex,
    HintIndexMerge,
    HintINLHJ,
    HintINLJ,
    HintINLMJ,
    HintLeading,
    HintLimitToCop,
    HintMerge,
    HintMPP1PhaseAgg,
    HintMPP2PhaseAgg,
    HintNoHashJoin,
    HintNoIndexHashJoin,
    HintNoIndexJoin,
    HintNoIndexMergeJoin,
    HintNoMergeJoin,
    HintQBName,
    HintReadFromStorage,
    HintShuffleJoin,
    HintSMJ,
    HintStreamAgg,
    HintTable,
    HintTiFlash,
    HintTiKV,
    HintTimeRange,
    HintUseIndex,
    Identifier,
    IndexHintMode,
    PositionalJoinHints,
    TableOptimizerHint,
    TiDBBroadCastJoin,
    TiDBHashJoin,
    TiDBIndexNestedLoopJoin,
    TiDBMergeJoin,
    normalize,
)
from ._diagnostics import HintWarning, InapplicableHintWarning
from ._hints import HintCategory, HintedIndex, HintedTable, PlanHints, TimeRange
from ._restore import restore_join_hint, restore_table_optimizer_hint
from ._settings import HintSettings


class Session(Protocol):
    """The parts of a client session that are required to process hints.

    Attributes
    ----------
    current_db : str
        The default database of the session. Unqualified tables in hints belong to this database.
    """

    current_db: str

    def append_warning(self, warning: HintWarning) -> None:
        """Stores a diagnostic for the current statement."""
        ...


class SessionContext:
    """A minimal session that simply collects all warnings in a list.

    Parameters
    ----------
    current_db : str, optional
        The default database. Defaults to an empty string, i.e. no database is selected.
    """

    def __init__(self, current_db: str = "") -> None:
        self.current_db = current_db
        self.warnings: list[HintWarning] = []

    def append_warning(self, warning: HintWarning) -> None:
        self.warnings.append(warning)

    def __repr__(self) -> str:
        return str(self)

    def __str__(self) -> str:
        return f"SessionContext(db={self.current_db}, warnings={len(self.warnings)})"


GeneratedBlockName = re.compile(r"(sel|upd|del|ins)_(?P<offset>\d+)")
"""Pattern of the query block names that are generated for blocks without an explicit ``QB_NAME``."""

UnknownQueryBlock = -1
"""Offset of hints for query blocks that do not exist. Such hints can never be matched."""


class QueryBlockResolver:
    """Determines the query block that a hint or a hinted table belongs to.

    Query blocks can be referenced by the names that have been assigned via ``QB_NAME`` hints, or by their generated
    names ``sel_1``, ``sel_2``, etc. which directly encode the offset of the block.

    Parameters
    ----------
    named_blocks : Mapping[str, int], optional
        The names that have been assigned to query blocks so far
    """

    def __init__(self, named_blocks: Optional[Mapping[str, int]] = None) -> None:
        self._named_blocks: dict[str, int] = {normalize(name): offset for name, offset in (named_blocks or {}).items()}

    def register(self, qb_name: str, offset: int) -> None:
        """Assigns a name to a query block. Later assignments of the same name take precedence."""
        self._named_blocks[normalize(qb_name)] = offset

    def hint_offset(self, qb_name: str, current_block: int) -> int:
        """Provides the offset of the query block that a hint (or table) with the given block name belongs to.

        Parameters
        ----------
        qb_name : str
            The name of the query block. Empty if the hint does not reference a block explicitly.
        current_block : int
            The block in which the hint has been written. This is used if `qb_name` is empty.

        Returns
        -------
        int
            The offset. `UnknownQueryBlock` if the name does not denote any block.
        """
        if not qb_name:
            return current_block
        normalized_name = normalize(qb_name)
        if normalized_name in self._named_blocks:
            return self._named_blocks[normalized_name]
        generated_name = GeneratedBlockName.fullmatch(normalized_name)
        return int(generated_name.group("offset")) if generated_name else UnknownQueryBlock


def tables_to_hinted(session: Session, hint_name: str, hint_tables: Sequence[HintTable], resolver: QueryBlockResolver,
                     current_block: int) -> list[HintedTable]:
    """Converts the raw table references of a hint into query block-scoped hinted tables.

    Tables without an explicit database belong to the current database of the session.

    Positional join hints (see `PositionalJoinHints`) cannot be applied to partitions. If any of the tables of such a hint
    specifies partitions, *all* tables of the hint are rejected: nothing is returned and a single
    `InapplicableHintWarning` is appended to the session.

    Parameters
    ----------
    session : Session
        Provides the current database and receives the warnings
    hint_name : str
        The name of the hint that the tables belong to
    hint_tables : Sequence[HintTable]
        The tables as produced by the parser
    resolver : QueryBlockResolver
        Determines the query block of each table
    current_block : int
        The query block that the hint has been written for

    Returns
    -------
    list[HintedTable]
        The normalized tables. Empty if there were no tables or if the hint was rejected.
    """
    if not hint_tables:
        return []

    default_db = Identifier(session.current_db)
    is_inapplicable = False
    hinted_tables: list[HintedTable] = []
    for hint_table in hint_tables:
        db_name = Identifier(hint_table.db_name) if hint_table.db_name else default_db
        hinted_table = HintedTable.of(hint_table.table_name, db_name,
                                      query_block=resolver.hint_offset(hint_table.qb_name, current_block),
                                      partitions=hint_table.partitions)
        if normalize(hint_name) in PositionalJoinHints and hinted_table.partitions:
            is_inapplicable = True
        hinted_tables.append(hinted_table)

    if is_inapplicable:
        hint_text = restore_join_hint(hint_name, hinted_tables)
        session.append_warning(
            InapplicableHintWarning(f"Optimizer Hint {hint_text} is inapplicable on specified partitions",
                                    hint=normalize(hint_name), hint_text=hint_text,
                                    tables=[table.table_name.original for table in hinted_tables]))
        return []
    return hinted_tables


def remove_duplicated_hints(hints: Sequence[TableOptimizerHint]) -> list[TableOptimizerHint]:
    """Removes hints that are restored to the same text as an earlier hint. The order of the hints is retained."""
    if len(hints) < 2:
        return list(hints)
    seen_hints: set[str] = set()
    unique_hints: list[TableOptimizerHint] = []
    for hint in hints:
        key = restore_table_optimizer_hint(hint)
        if key in seen_hints:
            continue
        seen_hints.add(key)
        unique_hints.append(hint)
    return unique_hints


JoinHintCategories: dict[str, HintCategory] = {
    TiDBMergeJoin: HintCategory.MergeJoin,
    HintSMJ: HintCategory.MergeJoin,
    HintNoMergeJoin: HintCategory.NoMergeJoin,
    TiDBBroadCastJoin: HintCategory.BroadcastJoin,
    HintBCJ: HintCategory.BroadcastJoin,
    HintShuffleJoin: HintCategory.ShuffleJoin,
    TiDBIndexNestedLoopJoin: HintCategory.IndexNestedLoopJoin,
    HintINLJ: HintCategory.IndexNestedLoopJoin,
    HintINLHJ: HintCategory.IndexHashJoin,
    HintINLMJ: HintCategory.IndexMergeJoin,
    HintNoIndexJoin: HintCategory.NoIndexJoin,
    HintNoIndexHashJoin: HintCategory.NoIndexHashJoin,
    HintNoIndexMergeJoin: HintCategory.NoIndexMergeJoin,
    TiDBHashJoin: HintCategory.HashJoin,
    HintHJ: HintCategory.HashJoin,
    HintNoHashJoin: HintCategory.NoHashJoin,
    HintHashJoinBuild: HintCategory.HashJoinBuild,
    HintHashJoinProbe: HintCategory.HashJoinProbe,
    HintLeading: HintCategory.Leading,
}
"""Maps the names of all table-scoped join hints (including their aliases) to their category."""

IndexHintModes: dict[str, IndexHintMode] = {
    HintUseIndex: IndexHintMode.Use,
    HintIgnoreIndex: IndexHintMode.Ignore,
    HintForceIndex: IndexHintMode.Force,
    HintIndexMerge: IndexHintMode.Use,
}

AggHintPreferences: dict[str, AggPreference] = {
    HintHashAgg: AggPreference.HashAgg,
    HintStreamAgg: AggPreference.StreamAgg,
    HintMPP1PhaseAgg: AggPreference.MPP1PhaseAgg,
    HintMPP2PhaseAgg: AggPreference.MPP2PhaseAgg,
}

StorageHintCategories: dict[str, HintCategory] = {
    HintTiFlash: HintCategory.TiFlash,
    HintTiKV: HintCategory.TiKV,
}


class _PlanHintsBuilder:
    """Dispatches the hints of a single statement into a new `PlanHints` aggregate."""

    def __init__(self, session: Session, resolver: QueryBlockResolver, current_block: int,
                 settings: HintSettings) -> None:
        self.session = session
        self.resolver = resolver
        self.current_block = current_block
        self.plan_hints = PlanHints()
        self.leading_hints = 0
        self._log = util.make_logger(settings.verbose, prefix=util.timestamp)

    def build(self, hints: Sequence[TableOptimizerHint]) -> PlanHints:
        hints = remove_duplicated_hints(hints)
        self._log(f"Processing {len(hints)} distinct hint(s)")

        # block names can be used before they are defined
        for hint in hints:
            if hint.normalized_name == HintQBName and hint.args:
                self.resolver.register(hint.args[0], self.resolver.hint_offset(hint.qb_name, self.current_block))

        for hint in hints:
            self._dispatch(hint)
        return self.plan_hints

    def _dispatch(self, hint: TableOptimizerHint) -> None:
        name = hint.normalized_name
        hint_block = self.resolver.hint_offset(hint.qb_name, self.current_block)
        self._log(f"Dispatching hint {restore_table_optimizer_hint(hint)} for query block {hint_block}")

        if name == HintLeading:
            self._add_leading(hint, hint_block)
        elif name in JoinHintCategories:
            tables = tables_to_hinted(self.session, name, hint.tables, self.resolver, hint_block)
            self.plan_hints.add_tables(JoinHintCategories[name], tables)
        elif name in IndexHintModes:
            self._add_index_hint(hint, hint_block)
        elif name == HintReadFromStorage:
            self._add_storage_hint(hint, hint_block)
        elif name in AggHintPreferences:
            self.plan_hints.agg.preferred |= AggHintPreferences[name]
        elif name == HintAggToCop:
            self.plan_hints.agg.prefer_agg_to_cop = True
        elif name == HintLimitToCop:
            self.plan_hints.prefer_limit_to_cop = True
        elif name == HintMerge:
            self.plan_hints.cte_merge = True
        elif name == HintTimeRange:
            self._add_time_range(hint)
        elif name == HintQBName:
            pass
        else:
            self._warn(hint, f"Hint {restore_table_optimizer_hint(hint)} is not supported")

    def _add_leading(self, hint: TableOptimizerHint, hint_block: int) -> None:
        self.leading_hints += 1
        if self.leading_hints > 1:
            self.plan_hints.clear_tables(HintCategory.Leading)
            if self.leading_hints == 2:
                self._warn(hint, "We can only use one leading hint at most, when multiple leading hints are used, "
                                 "all leading hints will be invalid")
            return
        tables = tables_to_hinted(self.session, HintLeading, hint.tables, self.resolver, hint_block)
        self.plan_hints.add_tables(HintCategory.Leading, tables)

    def _add_index_hint(self, hint: TableOptimizerHint, hint_block: int) -> None:
        if len(hint.tables) != 1:
            self._warn(hint, f"Optimizer Hint {restore_table_optimizer_hint(hint)} must reference exactly one table")
            return
        hint_table = hint.tables[0]
        db_name = hint_table.db_name if hint_table.db_name else self.session.current_db
        hinted_index = HintedIndex.of(hint_table.table_name, db_name, IndexHintModes[hint.normalized_name],
                                      hint.indexes, query_block=self.resolver.hint_offset(hint_table.qb_name, hint_block),
                                      partitions=hint_table.partitions)
        self.plan_hints.add_index_hint(hinted_index, index_merge=hint.normalized_name == HintIndexMerge)

    def _add_storage_hint(self, hint: TableOptimizerHint, hint_block: int) -> None:
        storage = normalize(hint.storage)
        if storage not in StorageHintCategories:
            self._warn(hint, f"Storage type {hint.storage} in optimizer hint {restore_table_optimizer_hint(hint)} "
                             "is not supported")
            return
        tables = tables_to_hinted(self.session, HintReadFromStorage, hint.tables, self.resolver, hint_block)
        self.plan_hints.add_tables(StorageHintCategories[storage], tables)

    def _add_time_range(self, hint: TableOptimizerHint) -> None:
        if len(hint.args) != 2:
            self._warn(hint, f"Optimizer Hint {restore_table_optimizer_hint(hint)} requires a start and an end time")
            return
        self.plan_hints.time_range = TimeRange(*hint.args)

    def _warn(self, hint: TableOptimizerHint, message: str) -> None:
        self._log(message)
        self.session.append_warning(InapplicableHintWarning(message, hint=hint.normalized_name,
                                                            hint_text=restore_table_optimizer_hint(hint),
                                                            tables=[table.table_name for table in hint.tables]))


def build_plan_hints(session: Session, hints: Iterable[TableOptimizerHint], resolver: Optional[QueryBlockResolver] = None,
                     *, current_block: int = 1, settings: Optional[HintSettings] = None) -> PlanHints:
    """Normalizes the hints of a statement and stores them in a new aggregate.

    Duplicate hints are removed first. Afterwards, each hint is stored in the category that corresponds to its name.
    Hints that cannot be applied at all (unsupported hints, positional join hints on partitions, malformed arguments) are
    dropped and reported to the session as `InapplicableHintWarning`. ``QB_NAME`` hints assign their name to the query
    block they have been written for.

    Parameters
    ----------
    session : Session
        Provides the current database and receives the warnings
    hints : Iterable[TableOptimizerHint]
        The hints as produced by the parser, in the order in which they were written
    resolver : Optional[QueryBlockResolver], optional
        Determines the query blocks of the hints. A new resolver without any named blocks is used by default.
    current_block : int, optional
        The query block that the hints have been written for. Defaults to the first block of the statement.
    settings : Optional[HintSettings], optional
        Controls the logging output. Uses the default settings if omitted.

    Returns
    -------
    PlanHints
        The aggregate. It is still open, i.e. more hints can be added until the first match is performed.
    """
    resolver = resolver if resolver is not None else QueryBlockResolver()
    settings = settings if settings is not None else HintSettings()
    builder = _PlanHintsBuilder(session, resolver, current_block, settings)
    return builder.build(list(hints))
