"""Parses hint blocks such as ``/*+ HASH_JOIN(t1, t2) USE_INDEX(t1, idx_a) */`` into `TableOptimizerHint` instances.

The parser understands the canonical hint syntax that is produced by the restore functions, as well as the usual
variations of hand-written hints:

- the ``/*+`` and ``*/`` delimiters are optional, hints can be separated by whitespace or commas
- hints can be scoped to a query block via ``@qb`` as their first argument, e.g. ``HASH_JOIN(@sel_2 t1, t2)``
- tables can be qualified by their database, scoped to a query block and restricted to partitions, e.g.
  ``db.t1@sel_2 PARTITION(p0, p1)``
- index hints list their indexes after the table: ``USE_INDEX(t1, idx_a, idx_b)``
- ``READ_FROM_STORAGE(TIFLASH[t1, t2], TIKV[t3])`` produces one hint per storage engine
- all other hints take plain arguments, e.g. ``TIME_RANGE('2020-02-02 10:10:10', '2020-02-02 11:10:10')``

Identifiers can be quoted using backticks.
"""

from __future__ import annotations

import re
from typing import Optional

from ._core import (
    HintAggToCop,
    HintHashAgg,
    HintLimitToCop,
    HintMerge,
    HintMPP1PhaseAgg,
    HintMPP2PhaseAgg,
    HintQBName,
    HintReadFromStorage,
    HintStreamAgg,
    HintTable,
    HintTimeRange,
    IndexHintNames,
    TableOptimizerHint,
    normalize,
)

ArgumentHints = frozenset(
    {
        HintHashAgg,
        HintStreamAgg,
        HintMPP1PhaseAgg,
        HintMPP2PhaseAgg,
        HintAggToCop,
        HintLimitToCop,
        HintMerge,
        HintTimeRange,
        HintQBName,
        "max_execution_time",
        "memory_quota",
        "use_toja",
        "no_decorrelate",
        "semi_join_rewrite",
        "ignore_plan_cache",
        "straight_join",
        "no_index_merge",
        "set_var",
        "resource_group",
    }
)
"""Hints whose arguments are plain values rather than tables."""

_TokenPattern = re.compile(
    r"""
    (?P<space>\s+)
    | (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    | (?P<quoted>`(?:[^`]|``)*`)
    | (?P<ident>[A-Za-z0-9_$*]+)
    | (?P<punct>[()\[\],.@=])
    """,
    re.VERBOSE,
)


class HintParseError(ValueError):
    """Indicates that a hint block does not follow the hint syntax.

    Parameters
    ----------
    msg : str
        A description of the problem
    text : str
        The hint block that was parsed
    position : int
        The character offset in `text` where the problem was detected
    """

    def __init__(self, msg: str, text: str, position: int) -> None:
        super().__init__(f"{msg} at position {position}: {text!r}")
        self.text = text
        self.position = position


def _tokenize(text: str) -> list[tuple[str, str, int]]:
    tokens: list[tuple[str, str, int]] = []
    position = 0
    while position < len(text):
        match = _TokenPattern.match(text, position)
        if not match:
            raise HintParseError(f"Unexpected character {text[position]!r}", text, position)
        kind = match.lastgroup
        value = match.group(kind)
        if kind == "string":
            tokens.append(("value", value[1:-1].replace(value[0] * 2, value[0]), position))
        elif kind == "quoted":
            tokens.append(("ident", value[1:-1].replace("``", "`"), position))
        elif kind != "space":
            tokens.append((kind, value, position))
        position = match.end()
    return tokens


def _strip_delimiters(text: str) -> str:
    text = text.strip()
    if text.startswith("/*+"):
        if not text.endswith("*/"):
            raise HintParseError("Unterminated hint block", text, len(text))
        text = text[3:-2]
    return text


class _HintParser:
    def __init__(self, text: str) -> None:
        self._text = _strip_delimiters(text)
        self._tokens = _tokenize(self._text)
        self._pos = 0

    def parse(self) -> list[TableOptimizerHint]:
        hints: list[TableOptimizerHint] = []
        while not self._at_end():
            if self._peek_punct(","):
                self._advance()
                continue
            hints.extend(self._parse_hint())
        return hints

    def _parse_hint(self) -> list[TableOptimizerHint]:
        name = self._expect_ident("hint name")
        if not self._peek_punct("("):
            return [TableOptimizerHint(name)]
        self._advance()

        qb_name = ""
        if self._peek_punct("@"):
            self._advance()
            qb_name = self._expect_ident("query block name")

        normalized_name = normalize(name)
        if normalized_name == HintReadFromStorage:
            hints = self._parse_storage_groups(name, qb_name)
        elif normalized_name in IndexHintNames:
            hints = [self._parse_index_hint(name, qb_name)]
        elif normalized_name in ArgumentHints:
            hints = [TableOptimizerHint(name, qb_name=qb_name, args=self._parse_arguments())]
        else:
            hints = [TableOptimizerHint(name, self._parse_table_list(")"), qb_name=qb_name)]

        self._expect_punct(")")
        return hints

    def _parse_storage_groups(self, name: str, qb_name: str) -> list[TableOptimizerHint]:
        hints: list[TableOptimizerHint] = []
        while True:
            storage = self._expect_ident("storage type")
            self._expect_punct("[")
            tables = self._parse_table_list("]")
            self._expect_punct("]")
            hints.append(TableOptimizerHint(name, tables, qb_name=qb_name, storage=storage))
            if not self._peek_punct(","):
                return hints
            self._advance()

    def _parse_index_hint(self, name: str, qb_name: str) -> TableOptimizerHint:
        table = self._parse_table()
        indexes: list[str] = []
        while self._peek_punct(","):
            self._advance()
            indexes.append(self._expect_ident("index name"))
        return TableOptimizerHint(name, (table,), qb_name=qb_name, indexes=indexes)

    def _parse_arguments(self) -> list[str]:
        args: list[str] = []
        while not self._peek_punct(")"):
            if self._at_end():
                raise HintParseError("Unterminated hint arguments", self._text, len(self._text))
            kind, value, position = self._advance()
            if kind in ("ident", "value"):
                args.append(value)
            elif value not in (",", "="):
                raise HintParseError(f"Unexpected {value!r} in hint arguments", self._text, position)
        return args

    def _parse_table_list(self, closing: str) -> list[HintTable]:
        if self._peek_punct(closing):
            return []
        tables = [self._parse_table()]
        while self._peek_punct(","):
            self._advance()
            tables.append(self._parse_table())
        return tables

    def _parse_table(self) -> HintTable:
        db_name, table_name = "", self._expect_ident("table name")
        if self._peek_punct("."):
            self._advance()
            db_name, table_name = table_name, self._expect_ident("table name")

        qb_name = ""
        if self._peek_punct("@"):
            self._advance()
            qb_name = self._expect_ident("query block name")

        partitions: list[str] = []
        if self._peek_partition_clause():
            self._advance()
            self._expect_punct("(")
            partitions.append(self._expect_ident("partition name"))
            while self._peek_punct(","):
                self._advance()
                partitions.append(self._expect_ident("partition name"))
            self._expect_punct(")")

        return HintTable(table_name, db_name=db_name, qb_name=qb_name, partitions=tuple(partitions))

    def _peek_partition_clause(self) -> bool:
        current, following = self._peek(), self._peek(1)
        return (current is not None and current[0] == "ident" and normalize(current[1]) == "partition"
                and following is not None and following[1] == "(")

    def _peek(self, lookahead: int = 0) -> Optional[tuple[str, str, int]]:
        index = self._pos + lookahead
        return self._tokens[index] if index < len(self._tokens) else None

    def _peek_punct(self, punct: str) -> bool:
        token = self._peek()
        return token is not None and token[0] == "punct" and token[1] == punct

    def _at_end(self) -> bool:
        return self._pos >= len(self._tokens)

    def _advance(self) -> tuple[str, str, int]:
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _expect_ident(self, description: str) -> str:
        token = self._peek()
        if token is None or token[0] != "ident":
            position = token[2] if token else len(self._text)
            raise HintParseError(f"Expected {description}", self._text, position)
        self._advance()
        return token[1]

    def _expect_punct(self, punct: str) -> None:
        if not self._peek_punct(punct):
            token = self._peek()
            position = token[2] if token else len(self._text)
            raise HintParseError(f"Expected {punct!r}", self._text, position)
        self._advance()


def parse_hint_block(text: str) -> list[TableOptimizerHint]:
    """Parses the hints of a hint block.

    Parameters
    ----------
    text : str
        The hint block, with or without the ``/*+ ... */`` delimiters

    Returns
    -------
    list[TableOptimizerHint]
        The hints in the order in which they appear. ``READ_FROM_STORAGE`` hints are split into one hint per storage engine.

    Raises
    ------
    HintParseError
        If the text is not a valid hint block
    """
    return _HintParser(text).parse()
