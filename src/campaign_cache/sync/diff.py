"""Column-level diff between two serialized rows of the same entity.

Rows are compared by value, column by column. The primary identity is never
part of the diff. Both rows must have exactly the same columns so that no
persisted field can be skipped by accident.
"""

from typing import Any, Collection, List, Mapping

IDENTITY_COLUMNS = ("id",)


def diff_columns(
    new: Mapping[str, Any],
    old: Mapping[str, Any],
    ignore: Collection[str] = IDENTITY_COLUMNS,
) -> List[str]:
    """Return the names of columns whose values differ, in column order.

    Args:
        new: Serialized row of the newly observed entity
        old: Serialized row of the stored entity
        ignore: Columns excluded from comparison

    Raises:
        ValueError: If the rows do not have the same columns
    """
    if set(new) != set(old):
        missing = sorted(set(new) ^ set(old))
        raise ValueError(f"Rows have different columns: {missing}")

    return [name for name in new if name not in ignore and new[name] != old[name]]


def changed_values(new: Mapping[str, Any], columns: List[str]) -> dict[str, Any]:
    """Pick the new values of exactly the given columns."""
    return {name: new[name] for name in columns}
