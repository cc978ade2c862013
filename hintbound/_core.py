from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, Flag, auto

WildcardDatabase = "*"
"""Database name of universal hints such as ``HASH_JOIN(*.t1)``. It matches tables in every database."""

# Hint names are stored in their normalized (lowercase) form. The TiDB-prefixed spellings are the legacy aliases of
# their respective join hints.

TiDBMergeJoin = "tidb_smj"
HintSMJ = "merge_join"
HintNoMergeJoin = "no_merge_join"
TiDBBroadCastJoin = "tidb_bcj"
HintBCJ = "broadcast_join"
HintShuffleJoin = "shuffle_join"
HintLeading = "leading"
TiDBIndexNestedLoopJoin = "tidb_inlj"
HintINLJ = "inl_join"
HintINLHJ = "inl_hash_join"
HintINLMJ = "inl_merge_join"
HintNoIndexJoin = "no_index_join"
HintNoIndexHashJoin = "no_index_hash_join"
HintNoIndexMergeJoin = "no_index_merge_join"
TiDBHashJoin = "tidb_hj"
HintHJ = "hash_join"
HintNoHashJoin = "no_hash_join"
HintHashJoinBuild = "hash_join_build"
HintHashJoinProbe = "hash_join_probe"
HintHashAgg = "hash_agg"
HintStreamAgg = "stream_agg"
HintMPP1PhaseAgg = "mpp_1phase_agg"
HintMPP2PhaseAgg = "mpp_2phase_agg"
HintUseIndex = "use_index"
HintIgnoreIndex = "ignore_index"
HintForceIndex = "force_index"
HintIndexMerge = "use_index_merge"
HintAggToCop = "agg_to_cop"
HintLimitToCop = "limit_to_cop"
HintReadFromStorage = "read_from_storage"
HintTiFlash = "tiflash"
HintTiKV = "tikv"
HintTimeRange = "time_range"
HintMerge = "merge"
HintQBName = "qb_name"

PositionalJoinHints = frozenset(
    {
        TiDBMergeJoin,
        HintSMJ,
        TiDBIndexNestedLoopJoin,
        HintINLJ,
        HintINLHJ,
        HintINLMJ,
        TiDBHashJoin,
        HintHJ,
        HintLeading,
    }
)
"""Join hints whose tables denote participants of a specific join shape. These hints cannot be applied to partitions."""

IndexHintNames = frozenset({HintUseIndex, HintIgnoreIndex, HintForceIndex, HintIndexMerge})
"""Hints that address a single table and a list of its indexes."""


def normalize(identifier: str) -> str:
    """Generates a normalized version of an identifier.

    All identifiers of hints are compared in a case-insensitive manner.

    Parameters
    ----------
    identifier : str
        The identifier to normalize. Notice that empty strings can be normalized as well (without doing anything).

    Returns
    -------
    str
        The normalized identifier
    """
    return identifier.lower()


class Identifier:
    """A case-insensitive name of a database object, e.g. of a database, table, partition or index.

    Each identifier keeps the name in the spelling that was used in the query (the `original` form) as well as in a
    normalized form (`lower`). The original form is used for display purposes, e.g. when generating diagnostics. Equality,
    ordering and hashing are exclusively based on the normalized form, such that ``Identifier("T1") == Identifier("t1")``.

    Identifiers are never equal to plain strings. This prevents case-sensitive comparisons from sneaking in by accident.

    Parameters
    ----------
    name : str, optional
        The name as it was written in the query. Defaults to an empty string, which denotes an absent name (e.g. a table
        without an explicit database).
    """

    @staticmethod
    def of(name: Identifier | str | None) -> Identifier:
        """Wraps a name into an identifier, if it is not an identifier already. *None* becomes the empty identifier."""
        if isinstance(name, Identifier):
            return name
        return Identifier(name if name else "")

    def __init__(self, name: str = "") -> None:
        if not isinstance(name, str):
            raise TypeError(f"Identifier name must be a string, not {type(name).__name__}")
        self._original = name
        self._lower = normalize(name)
        self._hash_val = hash(self._lower)

    __match_args__ = ("original",)

    @property
    def original(self) -> str:
        """Get the name in the spelling of the query."""
        return self._original

    @property
    def lower(self) -> str:
        """Get the normalized name that is used for all comparisons."""
        return self._lower

    def is_wildcard(self) -> bool:
        """Checks, whether this identifier is the universal database name ``*``."""
        return self._lower == WildcardDatabase

    def __json__(self) -> str:
        return self._original

    def __bool__(self) -> bool:
        return bool(self._lower)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Identifier):
            return NotImplemented
        return self._lower < other._lower

    def __hash__(self) -> int:
        return self._hash_val

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Identifier) and self._lower == other._lower

    def __repr__(self) -> str:
        return f"Identifier({self._original!r})"

    def __str__(self) -> str:
        return self._original


class JoinPreference(Flag):
    """The join strategies that can be requested for a specific join.

    Preferences can be combined freely, e.g. ``JoinPreference.HashJoin | JoinPreference.BroadcastJoin``. The empty flag
    ``JoinPreference(0)`` means that no preference has been expressed at all, which is different from an explicit
    rejection such as `NoHashJoin`.
    """

    IndexNestedLoopJoin = auto()
    IndexHashJoin = auto()
    IndexMergeJoin = auto()
    HashJoinBuild = auto()
    HashJoinProbe = auto()
    HashJoin = auto()
    NoHashJoin = auto()
    MergeJoin = auto()
    NoMergeJoin = auto()
    NoIndexJoin = auto()
    NoIndexHashJoin = auto()
    NoIndexMergeJoin = auto()
    BroadcastJoin = auto()
    ShuffleJoin = auto()


class AggPreference(Flag):
    """The aggregation strategies that can be requested for a query block. The empty flag denotes no preference."""

    HashAgg = auto()
    StreamAgg = auto()
    MPP1PhaseAgg = auto()
    MPP2PhaseAgg = auto()


class StoragePreference(Flag):
    """The storage engines that a table can be read from. The empty flag denotes no preference."""

    TiKV = auto()
    TiFlash = auto()


class IndexHintMode(Enum):
    """The different ways an index hint can influence the access path selection of a table."""

    Use = HintUseIndex
    Ignore = HintIgnoreIndex
    Force = HintForceIndex

    def __json__(self) -> str:
        return self.value


def _as_tuple(items: Iterable[str] | str) -> tuple[str, ...]:
    return (items,) if isinstance(items, str) else tuple(items)


@dataclass(frozen=True)
class HintTable:
    """A table reference as it appears in the argument list of a hint, e.g. ``db.t1@sel_2 PARTITION(p0)``.

    This is the raw syntax produced by the parser. Missing parts are empty strings.

    Attributes
    ----------
    table_name : str
        The name of the table (or its alias)
    db_name : str
        The database of the table. Empty if the table is unqualified.
    qb_name : str
        The query block the table belongs to, if it was given explicitly via ``@qb``
    partitions : tuple[str, ...]
        The partitions of the table that the hint is restricted to
    """

    table_name: str
    db_name: str = ""
    qb_name: str = ""
    partitions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "partitions", _as_tuple(self.partitions))


@dataclass(frozen=True)
class TableOptimizerHint:
    """A single hint as produced by the parser, e.g. ``HASH_JOIN(@sel_2 t1, t2)``.

    Attributes
    ----------
    name : str
        The name of the hint in its original spelling
    tables : tuple[HintTable, ...]
        The tables that the hint refers to. Index hints contain exactly one table.
    qb_name : str
        The query block the hint has been written for (``@qb`` as the first argument). Empty for the current block.
    indexes : tuple[str, ...]
        The index names of index hints
    storage : str
        The storage engine of a ``READ_FROM_STORAGE`` group, i.e. *tiflash* or *tikv*. The parser produces one hint per
        storage group.
    args : tuple[str, ...]
        Further arguments of hints that do not refer to tables, e.g. the bounds of ``TIME_RANGE``
    """

    name: str
    tables: tuple[HintTable, ...] = ()
    qb_name: str = ""
    indexes: tuple[str, ...] = ()
    storage: str = ""
    args: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tables", tuple(self.tables))
        object.__setattr__(self, "indexes", _as_tuple(self.indexes))
        object.__setattr__(self, "args", _as_tuple(self.args))

    @property
    def normalized_name(self) -> str:
        """Get the lowercase hint name that is used to dispatch the hint."""
        return normalize(self.name)
