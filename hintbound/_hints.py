from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ._core import (
    AggPreference,
    HintBCJ,
    HintHashJoinBuild,
    HintHashJoinProbe,
    HintHJ,
    HintIndexMerge,
    HintINLHJ,
    HintINLJ,
    HintINLMJ,
    HintLeading,
    HintNoHashJoin,
    HintNoIndexHashJoin,
    HintNoIndexJoin,
    HintNoIndexMergeJoin,
    HintNoMergeJoin,
    HintShuffleJoin,
    HintSMJ,
    HintTiFlash,
    HintTiKV,
    Identifier,
    IndexHintMode,
    JoinPreference,
    StoragePreference,
    TiDBBroadCastJoin,
    TiDBHashJoin,
    TiDBIndexNestedLoopJoin,
    TiDBMergeJoin,
)
from .util import StateError, jsondict


class HintCategory(Enum):
    """The table-scoped hint categories of a statement.

    The value of each category is the canonical hint name that is used when the category is rendered as a hint again.
    Index hints are not part of this enumeration, because their entries carry additional index information (see
    `HintedIndex`).
    """

    MergeJoin = HintSMJ
    NoMergeJoin = HintNoMergeJoin
    BroadcastJoin = HintBCJ
    ShuffleJoin = HintShuffleJoin
    HashJoin = HintHJ
    NoHashJoin = HintNoHashJoin
    HashJoinBuild = HintHashJoinBuild
    HashJoinProbe = HintHashJoinProbe
    IndexNestedLoopJoin = HintINLJ
    IndexHashJoin = HintINLHJ
    IndexMergeJoin = HintINLMJ
    NoIndexJoin = HintNoIndexJoin
    NoIndexHashJoin = HintNoIndexHashJoin
    NoIndexMergeJoin = HintNoIndexMergeJoin
    Leading = HintLeading
    TiFlash = HintTiFlash
    TiKV = HintTiKV

    @property
    def alias(self) -> str:
        """Get the alternate spelling of the hint, or an empty string if there is none."""
        return _CategoryAliases.get(self, "")

    def is_storage(self) -> bool:
        """Checks, whether this category is one of the storage affinity categories."""
        return self in (HintCategory.TiFlash, HintCategory.TiKV)

    def __json__(self) -> str:
        return self.value


_CategoryAliases: dict[HintCategory, str] = {
    HintCategory.IndexNestedLoopJoin: TiDBIndexNestedLoopJoin,
    HintCategory.MergeJoin: TiDBMergeJoin,
    HintCategory.BroadcastJoin: TiDBBroadCastJoin,
    HintCategory.ShuffleJoin: HintShuffleJoin,
    HintCategory.HashJoin: TiDBHashJoin,
}

_JoinPreferences: dict[HintCategory, JoinPreference] = {
    HintCategory.MergeJoin: JoinPreference.MergeJoin,
    HintCategory.NoMergeJoin: JoinPreference.NoMergeJoin,
    HintCategory.BroadcastJoin: JoinPreference.BroadcastJoin,
    HintCategory.ShuffleJoin: JoinPreference.ShuffleJoin,
    HintCategory.HashJoin: JoinPreference.HashJoin,
    HintCategory.NoHashJoin: JoinPreference.NoHashJoin,
    HintCategory.HashJoinBuild: JoinPreference.HashJoinBuild,
    HintCategory.HashJoinProbe: JoinPreference.HashJoinProbe,
    HintCategory.IndexNestedLoopJoin: JoinPreference.IndexNestedLoopJoin,
    HintCategory.IndexHashJoin: JoinPreference.IndexHashJoin,
    HintCategory.IndexMergeJoin: JoinPreference.IndexMergeJoin,
    HintCategory.NoIndexJoin: JoinPreference.NoIndexJoin,
    HintCategory.NoIndexHashJoin: JoinPreference.NoIndexHashJoin,
    HintCategory.NoIndexMergeJoin: JoinPreference.NoIndexMergeJoin,
}


def _identifiers(names: Iterable[Identifier | str]) -> tuple[Identifier, ...]:
    return tuple(Identifier.of(name) for name in names)


@dataclass(eq=False)
class HintedTable:
    """A table that a hint should take effect on, scoped to a single query block.

    Hinted tables are used in two roles: as the stored entries of a `PlanHints` aggregate and as the candidates that the
    plan builder probes the aggregate with. Only stored entries ever have their `matched` flag set.

    Attributes
    ----------
    db_name : Identifier
        The database of the table. Can be the wildcard ``*`` for universal hints.
    table_name : Identifier
        The name of the table (or its alias)
    partitions : tuple[Identifier, ...]
        The partitions that the hint is restricted to
    query_block : int
        The offset of the query block that the hint is scoped to
    matched : bool
        Whether the hint has been applied to an actual plan element. This is the only mutable part of the entry.
    """

    db_name: Identifier
    table_name: Identifier
    partitions: tuple[Identifier, ...] = ()
    query_block: int = 0
    matched: bool = False

    @staticmethod
    def of(table: Identifier | str, db: Identifier | str = "", *, query_block: int = 0,
           partitions: Iterable[Identifier | str] = ()) -> HintedTable:
        """Creates a new hinted table from plain names."""
        return HintedTable(Identifier.of(db), Identifier.of(table), _identifiers(partitions), query_block)

    def identity(self) -> tuple[str, str, int]:
        """Provides the key that is used to match this table: normalized database, normalized table and query block."""
        return self.db_name.lower, self.table_name.lower, self.query_block

    def matches(self, candidate: HintedTable) -> bool:
        """Checks, whether this (stored) entry binds to the given candidate table.

        Names are compared case-insensitively, the wildcard database matches any database and the query blocks have to be
        equal.
        """
        return ((self.db_name == candidate.db_name or self.db_name.is_wildcard())
                and self.table_name == candidate.table_name
                and self.query_block == candidate.query_block)

    def __json__(self) -> jsondict:
        return {
            "db": self.db_name,
            "table": self.table_name,
            "partitions": list(self.partitions),
            "query_block": self.query_block,
            "matched": self.matched,
        }

    def __str__(self) -> str:
        return f"{self.db_name}.{self.table_name}@{self.query_block}"


@dataclass(frozen=True)
class IndexHint:
    """The index part of an index hint: what to do with the indexes and which indexes are affected.

    An empty `index_names` tuple addresses all indexes of the table, e.g. ``IGNORE_INDEX(t1)``.
    """

    mode: IndexHintMode
    index_names: tuple[Identifier, ...] = ()

    def __json__(self) -> jsondict:
        return {"mode": self.mode, "indexes": list(self.index_names)}


@dataclass(eq=False)
class HintedIndex:
    """An index hint that should take effect on a specific table.

    In contrast to `HintedTable`, index hints are matched by name only (see `match`). The query block is still recorded
    such that callers can restrict the candidate hints to the current block (see `PlanHints.index_hints_for`).

    Attributes
    ----------
    db_name : Identifier
        The database of the table. Can be the wildcard ``*``.
    table_name : Identifier
        The name of the table (or its alias)
    index_hint : IndexHint
        The requested mode and indexes
    partitions : tuple[Identifier, ...]
        The partitions that the hint is restricted to
    query_block : int
        The offset of the query block that the hint has been written for
    matched : bool
        Whether the hint has been applied to a table scan of the plan. If an index hint is not matched after the plan has
        been built, a warning is generated for it.
    """

    db_name: Identifier
    table_name: Identifier
    index_hint: IndexHint
    partitions: tuple[Identifier, ...] = ()
    query_block: int = 0
    matched: bool = False

    @staticmethod
    def of(table: Identifier | str, db: Identifier | str, mode: IndexHintMode,
           indexes: Iterable[Identifier | str] = (), *, query_block: int = 0,
           partitions: Iterable[Identifier | str] = ()) -> HintedIndex:
        """Creates a new hinted index from plain names."""
        return HintedIndex(Identifier.of(db), Identifier.of(table), IndexHint(mode, _identifiers(indexes)),
                           _identifiers(partitions), query_block)

    def match(self, db_name: Identifier | str, table_name: Identifier | str) -> bool:
        """Checks whether the hint is matched with the given database and table name."""
        db_name, table_name = Identifier.of(db_name), Identifier.of(table_name)
        return self.table_name == table_name and (self.db_name == db_name or self.db_name.is_wildcard())

    def hint_type_string(self) -> str:
        """Provides the hint name that corresponds to the mode of this hint, e.g. *use_index*."""
        return self.index_hint.mode.value

    def index_string(self) -> str:
        """Formats the hint target as ``db.table[, index_names]``."""
        index_list = ", ".join(index.lower for index in self.index_hint.index_names)
        index_suffix = f", {index_list}" if index_list else ""
        return f"{self.db_name}.{self.table_name}{index_suffix}"

    def as_table(self) -> HintedTable:
        """Provides the table part of this hint (without a match status)."""
        return HintedTable(self.db_name, self.table_name, self.partitions, self.query_block)

    def __json__(self) -> jsondict:
        return {
            "db": self.db_name,
            "table": self.table_name,
            "partitions": list(self.partitions),
            "query_block": self.query_block,
            "index_hint": self.index_hint,
            "matched": self.matched,
        }

    def __str__(self) -> str:
        return f"{self.hint_type_string()}({self.index_string()})"


@dataclass
class AggHints:
    """Aggregation-related hints of a query block. They are not associated with any table.

    Attributes
    ----------
    preferred : AggPreference
        The requested aggregation strategies. Empty if no strategy was requested.
    prefer_agg_to_cop : bool
        Whether aggregations should be pushed down to the storage layer (``AGG_TO_COP``)
    """

    preferred: AggPreference = AggPreference(0)
    prefer_agg_to_cop: bool = False

    def __json__(self) -> jsondict:
        return {"preferred": self.preferred, "agg_to_cop": self.prefer_agg_to_cop}


@dataclass(frozen=True)
class TimeRange:
    """The bounds of a ``TIME_RANGE`` hint, in the spelling of the query."""

    start: str
    end: str

    def __json__(self) -> jsondict:
        return {"from": self.start, "to": self.end}


@dataclass(eq=False)
class PlanHints:
    """The plan hints store all hints of a statement that control the plan choices of the optimizer.

    For each table-scoped hint category (see `HintCategory`) the aggregate maintains one ordered list of `HintedTable`
    entries. Index hints and index merge hints are kept in separate lists of `HintedIndex` entries. Hints that are not
    associated with any table are stored as plain attributes.

    The aggregate has two phases. While hints are normalized, entries can be appended to the lists (see `add_tables` and
    `add_index_hint`). As soon as the plan builder starts probing the aggregate, it is *sealed*: the lists can no longer be
    extended and the only mutation that remains is setting the `matched` flag of the stored entries. This flag is set as a
    side effect of the different ``prefer_XXX`` predicates and it is the only way how unmatched hints can be discovered
    afterwards.

    Attributes
    ----------
    agg : AggHints
        The aggregation hints
    prefer_limit_to_cop : bool
        Whether limits should be pushed down to the storage layer (``LIMIT_TO_COP``)
    cte_merge : bool
        Whether common table expressions should be inlined (``MERGE``)
    time_range : Optional[TimeRange]
        The time range of a ``TIME_RANGE`` hint, if one was given
    """

    agg: AggHints = field(default_factory=AggHints)
    prefer_limit_to_cop: bool = False
    cte_merge: bool = False
    time_range: Optional[TimeRange] = None

    def __post_init__(self) -> None:
        self._tables: dict[HintCategory, list[HintedTable]] = {category: [] for category in HintCategory}
        self._index_hints: list[HintedIndex] = []
        self._index_merge_hints: list[HintedIndex] = []
        self._sealed = False

    @property
    def sealed(self) -> bool:
        """Get whether the matching phase has started and no more entries can be added."""
        return self._sealed

    @property
    def index_hints(self) -> Sequence[HintedIndex]:
        """Get the ``USE_INDEX``, ``IGNORE_INDEX`` and ``FORCE_INDEX`` hints in the order in which they were added."""
        return tuple(self._index_hints)

    @property
    def index_merge_hints(self) -> Sequence[HintedIndex]:
        """Get the ``USE_INDEX_MERGE`` hints in the order in which they were added."""
        return tuple(self._index_merge_hints)

    def seal(self) -> None:
        """Ends the normalization phase. Sealing an aggregate multiple times is fine."""
        self._sealed = True

    def tables(self, category: HintCategory) -> Sequence[HintedTable]:
        """Provides the stored entries of a category in the order in which they were added.

        The entries are the actual stored entries, i.e. their match status reflects the current state of the aggregate.
        """
        return tuple(self._tables[category])

    def add_tables(self, category: HintCategory, tables: Iterable[HintedTable]) -> None:
        """Appends normalized tables to a category.

        Raises
        ------
        StateError
            If the aggregate is already sealed
        """
        self._ensure_open()
        self._tables[category].extend(tables)

    def clear_tables(self, category: HintCategory) -> None:
        """Drops all entries of a category. This is only possible while the aggregate is still open.

        Raises
        ------
        StateError
            If the aggregate is already sealed
        """
        self._ensure_open()
        self._tables[category].clear()

    def add_index_hint(self, hint: HintedIndex, *, index_merge: bool = False) -> None:
        """Appends a normalized index hint, either to the regular index hints or to the index merge hints.

        Raises
        ------
        StateError
            If the aggregate is already sealed
        """
        self._ensure_open()
        target = self._index_merge_hints if index_merge else self._index_hints
        target.append(hint)

    def match_table_name(self, candidates: Iterable[Optional[HintedTable]], category: HintCategory) -> bool:
        """Checks whether any of the candidate tables hits an entry of the category.

        Every stored entry that matches one of the candidates is marked as matched. *None* candidates are skipped. Even
        though multiple tables can be put into a single hint, this does not mean that the optimizer will reorder the joins
        such that they are joined directly. It only needs either side of a join to match one of the entries.
        """
        self.seal()
        entries = self._tables[category]
        hint_matched = False
        for candidate in candidates:
            if candidate is None:
                continue
            for i in range(len(entries)):
                if entries[i].matches(candidate):
                    entries[i].matched = True
                    hint_matched = True
        return hint_matched

    def prefer_merge_join(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is merge join."""
        return self.match_table_name(tables, HintCategory.MergeJoin)

    def prefer_no_merge_join(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is no merge join."""
        return self.match_table_name(tables, HintCategory.NoMergeJoin)

    def prefer_broadcast_join(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is broadcast join."""
        return self.match_table_name(tables, HintCategory.BroadcastJoin)

    def prefer_shuffle_join(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is shuffle join."""
        return self.match_table_name(tables, HintCategory.ShuffleJoin)

    def prefer_hash_join(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is hash join."""
        return self.match_table_name(tables, HintCategory.HashJoin)

    def prefer_no_hash_join(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is no hash join."""
        return self.match_table_name(tables, HintCategory.NoHashJoin)

    def prefer_hj_build(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is hash join build side."""
        return self.match_table_name(tables, HintCategory.HashJoinBuild)

    def prefer_hj_probe(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is hash join probe side."""
        return self.match_table_name(tables, HintCategory.HashJoinProbe)

    def prefer_inlj(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is index nested loop join."""
        return self.match_table_name(tables, HintCategory.IndexNestedLoopJoin)

    def prefer_inlhj(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is index nested loop hash join."""
        return self.match_table_name(tables, HintCategory.IndexHashJoin)

    def prefer_inlmj(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is index nested loop merge join."""
        return self.match_table_name(tables, HintCategory.IndexMergeJoin)

    def prefer_no_index_join(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is no index join."""
        return self.match_table_name(tables, HintCategory.NoIndexJoin)

    def prefer_no_index_hash_join(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is no index hash join."""
        return self.match_table_name(tables, HintCategory.NoIndexHashJoin)

    def prefer_no_index_merge_join(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether the join hint is no index merge join."""
        return self.match_table_name(tables, HintCategory.NoIndexMergeJoin)

    def prefer_leading(self, *tables: Optional[HintedTable]) -> bool:
        """Checks whether any of the tables takes part in the leading join order."""
        return self.match_table_name(tables, HintCategory.Leading)

    def join_preferences(self, *tables: Optional[HintedTable]) -> JoinPreference:
        """Determines all join strategies that are requested for a join of the given tables.

        Each join category is probed, hence all matching entries of all join categories are marked as matched.

        Returns
        -------
        JoinPreference
            The combined preferences. The empty flag if no hint applies to the tables.
        """
        preferences = JoinPreference(0)
        for category, preference in _JoinPreferences.items():
            if self.match_table_name(tables, category):
                preferences |= preference
        return preferences

    def prefer_tiflash(self, table: Optional[HintedTable]) -> Optional[HintedTable]:
        """Checks whether the table should be read from TiFlash. Provides the matching stored entry if it should."""
        return self._match_storage(table, HintCategory.TiFlash)

    def prefer_tikv(self, table: Optional[HintedTable]) -> Optional[HintedTable]:
        """Checks whether the table should be read from TiKV. Provides the matching stored entry if it should."""
        return self._match_storage(table, HintCategory.TiKV)

    def storage_preference(self, table: Optional[HintedTable]) -> StoragePreference:
        """Determines the storage engines that are requested for the table. Both engines are probed."""
        preference = StoragePreference(0)
        if self.prefer_tiflash(table) is not None:
            preference |= StoragePreference.TiFlash
        if self.prefer_tikv(table) is not None:
            preference |= StoragePreference.TiKV
        return preference

    def index_hints_for(self, db_name: Identifier | str, table_name: Identifier | str, *,
                        query_block: Optional[int] = None) -> list[HintedIndex]:
        """Provides all index hints that apply to a table and marks them as matched.

        If a query block is given, only hints of that block are considered.
        """
        return self._match_indexes(self._index_hints, db_name, table_name, query_block)

    def index_merge_hints_for(self, db_name: Identifier | str, table_name: Identifier | str, *,
                              query_block: Optional[int] = None) -> list[HintedIndex]:
        """Provides all index merge hints that apply to a table and marks them as matched.

        If a query block is given, only hints of that block are considered.
        """
        return self._match_indexes(self._index_merge_hints, db_name, table_name, query_block)

    def entries(self) -> Iterator[tuple[str, HintedTable | HintedIndex]]:
        """Provides all stored entries together with the name of their hint.

        Index hints come first, followed by the index merge hints and the table-scoped categories.
        """
        for index_hint in self._index_hints:
            yield index_hint.hint_type_string(), index_hint
        for index_hint in self._index_merge_hints:
            yield HintIndexMerge, index_hint
        for category, tables in self._tables.items():
            for table in tables:
                yield category.value, table

    def unmatched_entries(self) -> list[HintedTable | HintedIndex]:
        """Provides all stored entries that have not been matched (yet)."""
        return [entry for _, entry in self.entries() if not entry.matched]

    def _match_storage(self, table: Optional[HintedTable], category: HintCategory) -> Optional[HintedTable]:
        self.seal()
        if table is None:
            return None
        entries = self._tables[category]
        for i in range(len(entries)):
            if entries[i].identity() == table.identity():
                entries[i].matched = True
                return entries[i]
        return None

    def _match_indexes(self, entries: list[HintedIndex], db_name: Identifier | str, table_name: Identifier | str,
                       query_block: Optional[int]) -> list[HintedIndex]:
        self.seal()
        matches: list[HintedIndex] = []
        for i in range(len(entries)):
            if query_block is not None and entries[i].query_block != query_block:
                continue
            if entries[i].match(db_name, table_name):
                entries[i].matched = True
                matches.append(entries[i])
        return matches

    def _ensure_open(self) -> None:
        if self._sealed:
            raise StateError("Plan hints are sealed once matching has started. No more hints can be added.")

    def __json__(self) -> jsondict:
        return {
            "index_hints": self._index_hints,
            "index_merge_hints": self._index_merge_hints,
            "tables": {category.value: tables for category, tables in self._tables.items() if tables},
            "agg": self.agg,
            "limit_to_cop": self.prefer_limit_to_cop,
            "cte_merge": self.cte_merge,
            "time_range": self.time_range,
        }

    def __bool__(self) -> bool:
        return (bool(self._index_hints) or bool(self._index_merge_hints)
                or any(self._tables.values())
                or bool(self.agg.preferred) or self.agg.prefer_agg_to_cop
                or self.prefer_limit_to_cop or self.cte_merge or self.time_range is not None)
