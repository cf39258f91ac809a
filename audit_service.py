import logging
from typing import Optional

from db import (
    ChangesAuditRepository,
    PRChangesAuditRepository,
    WeightAuditRepository,
)
from tools import MathTools

logger = logging.getLogger(__name__)


class AuditService:
    """Writes audit rows as a side effect of exercise, record and weight mutations.

    Audit inserts never interfere with the mutation that triggered them:
    a failing insert is logged and dropped.
    """

    PR_FIELDS = ("weight", "reps", "time")
    WEIGHT_FIELDS = ("weight", "body_fat", "muscle_mass", "bmi")

    def __init__(
        self,
        changes: ChangesAuditRepository,
        pr_changes: PRChangesAuditRepository,
        weight_audit: WeightAuditRepository,
    ) -> None:
        self.changes = changes
        self.pr_changes = pr_changes
        self.weight_audit = weight_audit

    @staticmethod
    def percentage_change(previous, new) -> float:
        return MathTools.percentage_change(previous, new)

    def _insert(self, repo, data: dict) -> Optional[dict]:
        try:
            return repo.create(data)
        except Exception:
            logger.warning("failed to write %s row", repo.table, exc_info=True)
            return None

    def record_exercise_update(self, before: dict, after: dict) -> Optional[dict]:
        previous = before.get("weight")
        new = after.get("weight")
        if previous == new:
            return None
        return self._insert(
            self.changes,
            {
                "exercise_name": after.get("name") or before.get("name"),
                "category": after.get("category") or before.get("category"),
                "previous_weight": previous,
                "new_weight": new,
                "percentage_change": self.percentage_change(previous, new),
            },
        )

    def _pr_row(self, record: dict, field: str, previous, new) -> dict:
        return {
            "record_id": record.get("id"),
            "exercise_name": record.get("exercise"),
            "category": record.get("category"),
            "field_name": field,
            "previous_value": None if previous is None else str(previous),
            "new_value": None if new is None else str(new),
            "percentage_change": self.percentage_change(previous, new),
        }

    def record_pr_create(self, record: dict) -> list[dict]:
        rows = []
        for field in self.PR_FIELDS:
            value = record.get(field)
            if value in (None, ""):
                continue
            row = self._insert(self.pr_changes, self._pr_row(record, field, None, value))
            if row:
                rows.append(row)
        return rows

    def record_pr_update(self, before: dict, after: dict) -> list[dict]:
        rows = []
        for field in self.PR_FIELDS:
            previous = before.get(field)
            new = after.get(field)
            if previous == new:
                continue
            row = self._insert(self.pr_changes, self._pr_row(after, field, previous, new))
            if row:
                rows.append(row)
        return rows

    def _weight_rows(
        self,
        entry_id: Optional[str],
        action: str,
        source: str,
        before: dict,
        after: dict,
    ) -> list[dict]:
        rows = []
        for field in self.WEIGHT_FIELDS:
            previous = before.get(field)
            new = after.get(field)
            if previous == new:
                continue
            row = self._insert(
                self.weight_audit,
                {
                    "entry_id": entry_id,
                    "action": action,
                    "source": source,
                    "field_name": field,
                    "previous_value": previous,
                    "new_value": new,
                    "percentage_change": self.percentage_change(previous, new),
                },
            )
            if row:
                rows.append(row)
        return rows

    def record_weight_create(self, entry: dict, source: str = "manual") -> list[dict]:
        return self._weight_rows(entry.get("id"), "create", source, {}, entry)

    def record_weight_update(
        self, before: dict, after: dict, source: str = "manual"
    ) -> list[dict]:
        return self._weight_rows(after.get("id"), "update", source, before, after)

    def record_weight_delete(self, entry: dict, source: str = "manual") -> list[dict]:
        return self._weight_rows(entry.get("id"), "delete", source, entry, {})
