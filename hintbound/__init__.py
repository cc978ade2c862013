"""hintbound - Binding of optimizer hints to the tables and indexes of a query plan.

Optimizer hints are directives in the query text that steer the choices of the query optimizer, e.g.
``SELECT /*+ HASH_JOIN(t1, t2) USE_INDEX(t1, idx_a) */ ...``. Before a hint can take effect, it has to be bound to the
actual plan elements it refers to. hintbound provides this binding and the diagnostics for hints that never found a target.
On a high level, hints are processed in the following steps:

1. the hints of a statement are parsed into `TableOptimizerHint` instances. If no SQL parser is at hand, `parse_hint_block`
   can parse hint blocks directly.
2. `build_plan_hints` removes duplicate hints, normalizes their table references (default database, query block, partitions)
   and stores them in a `PlanHints` aggregate. Hints that cannot be applied at all are reported to the session right away.
3. while the plan is built, the plan builder probes the aggregate with the tables of the current plan node, e.g. via
   `PlanHints.prefer_hash_join` or `PlanHints.index_hints_for`. Each successful probe marks the matching hint entries.
4. after the plan has been built, `collect_unmatched_hint_warnings` reports all entries that have not been matched.

Hints never cause a statement to fail. All problems are reported as `HintWarning` values.

The `lint` function combines these steps for a quick check of a hint block against the tables of a statement. It is also
available on the command line via ``python -m hintbound``.

On a high-level, the hintbound project is structured as follows:

- `_core` contains the identifiers, hint names, preference flags and the parser-side hint representation
- `_hints` contains the `PlanHints` aggregate and its entries
- `_normalizer` turns parsed hints into the aggregate
- `_restore` and `_diagnostics` render hints back to text and generate the warnings
- the `util` package contains algorithms and types that are not specific to optimizer hints
"""

from . import util
from ._core import (
    AggPreference,
    HintTable,
    Identifier,
    IndexHintMode,
    JoinPreference,
    PositionalJoinHints,
    StoragePreference,
    TableOptimizerHint,
    WildcardDatabase,
)
from ._diagnostics import (
    HintWarning,
    InapplicableHintWarning,
    UnmatchedHintWarning,
    collect_unmatched_hint_warnings,
    extract_unmatched_tables,
)
from ._hints import (
    AggHints,
    HintCategory,
    HintedIndex,
    HintedTable,
    IndexHint,
    PlanHints,
    TimeRange,
)
from ._lint import LintResult, lint, probe_table
from ._normalizer import (
    QueryBlockResolver,
    Session,
    SessionContext,
    build_plan_hints,
    remove_duplicated_hints,
    tables_to_hinted,
)
from ._parser import HintParseError, parse_hint_block
from ._restore import (
    restore_index_hint,
    restore_join_hint,
    restore_storage_hint,
    restore_table_optimizer_hint,
)
from ._settings import HintSettings

__version__ = "0.4.0"

__all__ = [
    "util",
    "AggPreference",
    "HintTable",
    "Identifier",
    "IndexHintMode",
    "JoinPreference",
    "PositionalJoinHints",
    "StoragePreference",
    "TableOptimizerHint",
    "WildcardDatabase",
    "HintWarning",
    "InapplicableHintWarning",
    "UnmatchedHintWarning",
    "collect_unmatched_hint_warnings",
    "extract_unmatched_tables",
    "AggHints",
    "HintCategory",
    "HintedIndex",
    "HintedTable",
    "IndexHint",
    "PlanHints",
    "TimeRange",
    "LintResult",
    "lint",
    "probe_table",
    "QueryBlockResolver",
    "Session",
    "SessionContext",
    "build_plan_hints",
    "remove_duplicated_hints",
    "tables_to_hinted",
    "HintParseError",
    "parse_hint_block",
    "restore_index_hint",
    "restore_join_hint",
    "restore_storage_hint",
    "restore_table_optimizer_hint",
    "HintSettings",
]
