"""Provides utilities to work with arbitrary collections like lists, sets and tuples."""

from __future__ import annotations

from collections.abc import Iterable
from typing import overload

from .._base import T


@overload
def enlist(obj: list[T]) -> list[T]: ...


@overload
def enlist(obj: tuple[T, ...]) -> tuple[T, ...]: ...


@overload
def enlist(obj: str) -> list[str]: ...


@overload
def enlist(obj: Iterable[T] | T) -> Iterable[T]: ...


def enlist(obj):
    """Transforms any object into a singular list of that object, if it is not a container already.

    Specifically, the following types are treated as container-like and will not be transformed: lists, tuples, sets
    and frozensets. All other arguments will be wrapped in a list.

    For example, ``"abc"`` is turned into ``["abc"]``, whereas ``["abc"]`` is returned unmodified.

    Parameters
    ----------
    obj : T | Iterable[T]
        The object or list to wrap

    Returns
    -------
    Iterable[T]
        The object, wrapped into a list if necessary
    """
    if isinstance(obj, str):
        return [obj]
    list_types = [tuple, list, set, frozenset]
    if any(isinstance(obj, target_type) for target_type in list_types):
        return obj
    return [obj]
