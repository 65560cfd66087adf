"""Small field-predicate vocabulary for counting queries.

Stores describe filters as ``eq("status", "Resolved")`` / ``ne(...)`` and
the predicates are compiled against a mapped model here, so the store code
never touches backend-specific operators.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class FieldPredicate:
    field: str
    op: str
    value: Any

    def to_clause(self, model) -> ColumnElement[bool]:
        column = getattr(model, self.field)
        if self.op == "eq":
            return column == self.value
        if self.op == "ne":
            return column != self.value
        raise ValueError(f"Unsupported predicate operator: {self.op}")


def eq(field: str, value: Any) -> FieldPredicate:
    return FieldPredicate(field, "eq", value)


def ne(field: str, value: Any) -> FieldPredicate:
    return FieldPredicate(field, "ne", value)


async def count_where(db: AsyncSession, model, *predicates: FieldPredicate) -> int:
    """Count rows of ``model`` matching every predicate."""
    stmt = select(func.count()).select_from(model)
    for predicate in predicates:
        stmt = stmt.where(predicate.to_clause(model))
    result = await db.execute(stmt)
    return int(result.scalar_one())
