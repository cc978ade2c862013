"""Renders hints back into their canonical hint-comment syntax, e.g. ``/*+ HASH_JOIN(t1, t2 PARTITION(p0)) */``.

The rendered text is used in two places: as the key to detect duplicate hints and in the diagnostics for hints that could not
be applied. All identifiers are rendered in their normalized form, hint names in upper case.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from ._core import HintReadFromStorage, HintTable, IndexHintNames, TableOptimizerHint, normalize
from ._hints import HintCategory, HintedIndex, HintedTable

_BareArgument = re.compile(r"[A-Za-z0-9_$]+")


def _restore_partitions(partitions: Iterable[str]) -> str:
    partitions = list(partitions)
    return f" PARTITION({', '.join(partitions)})" if partitions else ""


def restore_table_list(tables: Iterable[HintedTable]) -> str:
    """Renders the tables of a hint as ``t1, t2 PARTITION(p0, p1)``. Database names are omitted."""
    return ", ".join(table.table_name.lower + _restore_partitions(part.lower for part in table.partitions)
                     for table in tables)


def restore_join_hint(hint_type: str | HintCategory, tables: Sequence[HintedTable]) -> str:
    """Restores a join hint to a string.

    Parameters
    ----------
    hint_type : str | HintCategory
        The name of the hint, e.g. *hash_join*. Categories are rendered by their canonical hint name.
    tables : Sequence[HintedTable]
        The tables of the hint

    Returns
    -------
    str
        The hint comment, e.g. ``/*+ HASH_JOIN(t1, t2) */``. If there are no tables, just the upper case hint name is
        returned.
    """
    hint_name = (hint_type.value if isinstance(hint_type, HintCategory) else hint_type).upper()
    if not tables:
        return hint_name
    return f"/*+ {hint_name}({restore_table_list(tables)}) */"


def restore_index_hint(hint_type: str, index: HintedIndex) -> str:
    """Restores an index hint to a string, e.g. ``/*+ USE_INDEX(t1 PARTITION(p0), idx_a, idx_b) */``."""
    target = restore_table_list([index.as_table()])
    index_names = "".join(f", {name.lower}" for name in index.index_hint.index_names)
    return f"/*+ {hint_type.upper()}({target}{index_names}) */"


def restore_storage_hint(tiflash_tables: Sequence[HintedTable], tikv_tables: Sequence[HintedTable]) -> str:
    """Restores the storage hints to a string, e.g. ``/*+ READ_FROM_STORAGE(tiflash[t1], tikv[t2]) */``.

    Storage engines without any tables are omitted.
    """
    groups = []
    if tiflash_tables:
        groups.append(f"{HintCategory.TiFlash.value}[{restore_table_list(tiflash_tables)}]")
    if tikv_tables:
        groups.append(f"{HintCategory.TiKV.value}[{restore_table_list(tikv_tables)}]")
    return f"/*+ {HintReadFromStorage.upper()}({', '.join(groups)}) */"


def _restore_hint_table(table: HintTable) -> str:
    db_prefix = f"{normalize(table.db_name)}." if table.db_name else ""
    qb_suffix = f"@{normalize(table.qb_name)}" if table.qb_name else ""
    partitions = _restore_partitions(normalize(partition) for partition in table.partitions)
    return f"{db_prefix}{normalize(table.table_name)}{qb_suffix}{partitions}"


def _restore_argument(arg: str) -> str:
    return arg if _BareArgument.fullmatch(arg) else "'" + arg.replace("'", "''") + "'"


def restore_table_optimizer_hint(hint: TableOptimizerHint) -> str:
    """Restores a hint as it was produced by the parser.

    In contrast to the other restore functions, this includes all parts of the original hint, i.e. database names and query
    blocks. Two hints that are restored to the same text are considered to be duplicates.
    """
    name = hint.normalized_name
    parts = [_restore_hint_table(table) for table in hint.tables]
    if name == HintReadFromStorage:
        parts = [f"{normalize(hint.storage)}[{', '.join(parts)}]"]
    elif name in IndexHintNames:
        parts.extend(normalize(index) for index in hint.indexes)
    parts.extend(_restore_argument(arg) for arg in hint.args)

    qb_prefix = f"@{normalize(hint.qb_name)}" if hint.qb_name else ""
    arguments = ", ".join(parts)
    separator = " " if qb_prefix and arguments else ""
    return f"/*+ {name.upper()}({qb_prefix}{separator}{arguments}) */"
