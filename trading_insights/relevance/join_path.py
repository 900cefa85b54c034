"""Join ordering for the star schema: the fact table is always the hub."""
from __future__ import annotations

from typing import Iterable

from ..schema import FACT_TABLE


def resolve_join_path(tables: Iterable[str], *, fact_table: str = FACT_TABLE) -> list[str]:
    """Return ``tables`` ordered for a FROM/JOIN clause.

    The fact table comes first (prepended when the caller did not list it),
    followed by the remaining tables in first-occurrence order without
    duplicates. An empty input gives an empty path.
    """

    requested = list(tables)
    if not requested:
        return []

    path = [fact_table]
    for table in requested:
        if table not in path:
            path.append(table)
    return path
