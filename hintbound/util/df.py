"""Utilities to work with Pandas data frames"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import Any, Optional

import pandas as pd


def _df_from_list(data: Collection[dict[Any, Any]], columns: Optional[Iterable[str]]) -> pd.DataFrame:
    data_template = next(iter(data))
    column_names = list(columns) if columns is not None else list(data_template.keys())
    df_container: dict[str, list[Any]] = {col: [] for col in column_names}
    for row in data:
        for key in df_container.keys():
            df_container[key].append(row[key])
    return pd.DataFrame(df_container)


def as_df(data: Collection[dict[Any, Any]], *, columns: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """Generates a new Pandas `DataFrame` from a collection of rows.

    Each dictionary in `data` corresponds to one row of the data frame and each key becomes a column. All dictionaries have
    to provide the same keys. The columns are inferred from the first dictionary unless they are given explicitly. If
    `data` is empty, the data frame still receives the explicitly given columns (but no rows).
    """
    if not data:
        return pd.DataFrame(columns=list(columns)) if columns is not None else pd.DataFrame()
    if isinstance(data, Collection) and not isinstance(data, dict):
        return _df_from_list(data, columns)
    raise TypeError("Unexpected data type: " + str(data))
