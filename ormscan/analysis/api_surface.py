"""
TypeORM repository API surface.

Maps method names to their category. Names outside these tables are
not part of the API and produce no records.
"""

from typing import Optional

from ormscan.analysis.entities import MethodCategory

API_READ = frozenset({
    "countBy",
    "sum",
    "average",
    "minimum",
    "maximum",
    "findBy",
    "findAndCountBy",
    "findOneBy",
    "findOneByOrFail",
    "count",
    "exist",
    "find",
    "findAndCount",
    "findOne",
    "findOneOrFail",
    "findByIds",
    "findOneByIds",
})

API_WRITE = frozenset({
    "clear",
    "create",
    "insert",
    "merge",
    "preload",
    "save",
    "softRemove",
    "recover",
    "remove",
    "upsert",
    "update",
    "delete",
    "increment",
    "decrement",
    "softDelete",
    "restore",
})

API_OTHER = frozenset({"createQueryBuilder", "query"})

API_TRANSACTION = frozenset({"transaction", "startTransaction"})

_TABLES = (
    (API_READ, MethodCategory.READ),
    (API_WRITE, MethodCategory.WRITE),
    (API_OTHER, MethodCategory.OTHER),
    (API_TRANSACTION, MethodCategory.TRANSACTION),
)

# Methods whose first argument is a where-clause.
WHERE_FIRST_ARGUMENT = frozenset({
    "countBy",
    "findBy",
    "findAndCountBy",
    "findOneBy",
    "findOneByOrFail",
    "increment",
    "decrement",
    "update",
    "delete",
    "softDelete",
    "restore",
})

# Methods whose first argument is a find-options envelope.
OPTIONS_FIRST_ARGUMENT = frozenset({
    "count",
    "exist",
    "find",
    "findAndCount",
    "findOne",
    "findOneOrFail",
})

# Aggregates: the first argument is the column, the second the where-clause.
WHERE_SECOND_ARGUMENT = frozenset({"sum", "average", "minimum", "maximum"})


def classify(name: Optional[str]) -> Optional[MethodCategory]:
    """
    Classify a method name against the repository API.

    Args:
        name: Method name, or None when the callee has no static name.

    Returns:
        The method category, or None if the name is not part of the API.
    """
    if name is None:
        return None
    for names, category in _TABLES:
        if name in names:
            return category
    return None
