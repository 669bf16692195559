"""
Typed aggregate queries for the admin dashboard and reports.

Each report is a ``SummaryQuery`` over one model: filters are chained
with ``where`` and the terminal methods return plain dicts.
"""
import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import extract, func
from sqlalchemy.orm import Session

# ~12 months
TRAILING_YEAR = datetime.timedelta(days=360)


class SummaryQuery:
    def __init__(self, db: Session, model, criteria=()):
        self.db = db
        self.model = model
        self.criteria = tuple(criteria)

    def where(self, *criteria) -> "SummaryQuery":
        return SummaryQuery(self.db, self.model, self.criteria + tuple(c for c in criteria if c is not None))

    def since(self, column, start: datetime.datetime) -> "SummaryQuery":
        return self.where(column >= start)

    def _filtered(self, *columns):
        return self.db.query(*columns).filter(*self.criteria)

    def count(self) -> int:
        return self._filtered(func.count(self.model.id)).scalar() or 0

    def total(self, column) -> float:
        return float(self._filtered(func.coalesce(func.sum(column), 0)).scalar() or 0)

    def count_by(self, column) -> List[Dict[str, Any]]:
        rows = (
            self._filtered(column, func.count(self.model.id))
            .group_by(column)
            .order_by(column)
            .all()
        )
        return [{"key": key, "count": count} for key, count in rows]

    def monthly(self, date_column, amount_column: Optional[Any] = None) -> List[Dict[str, Any]]:
        year = extract('year', date_column)
        month = extract('month', date_column)
        columns = [year, month, func.count(self.model.id)]
        if amount_column is not None:
            columns.append(func.coalesce(func.sum(amount_column), 0))
        rows = self._filtered(*columns).group_by(year, month).order_by(year, month).all()
        buckets = []
        for row in rows:
            bucket = {"year": int(row[0]), "month": int(row[1]), "count": row[2]}
            if amount_column is not None:
                bucket["amount"] = float(row[3])
            buckets.append(bucket)
        return buckets


def trailing_year_start(now: Optional[datetime.datetime] = None) -> datetime.datetime:
    return (now or datetime.datetime.utcnow()) - TRAILING_YEAR
