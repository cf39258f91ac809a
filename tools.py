import csv
import datetime
import io
from typing import Iterable, List, Optional


class MathTools:
    """Provides the numeric helpers used by the audit and stats layers."""

    @staticmethod
    def to_number(value) -> Optional[float]:
        """Return ``value`` as float or ``None`` when it is blank or non-numeric."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        text = str(value).strip()
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            return None

    @classmethod
    def percentage_change(cls, previous, new) -> float:
        """Return the change from ``previous`` to ``new`` in percent.

        A missing, zero or non-numeric previous value yields 0 so callers never
        have to guard against division errors.
        """
        prev = cls.to_number(previous)
        curr = cls.to_number(new)
        if prev is None or curr is None or prev == 0:
            return 0.0
        return (curr - prev) / prev * 100

    @staticmethod
    def clamp(value: float, min_value: float, max_value: float) -> float:
        """Clamp ``value`` to the inclusive range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value")
        return max(min_value, min(value, max_value))


class TimeFormatter:
    """Formatting for stopwatch durations."""

    @staticmethod
    def format_ms(ms: int) -> str:
        """Return ``H:MM:SS`` for an hour or more, otherwise ``M:SS``."""
        total_seconds = max(0, int(ms)) // 1000
        hours, rem = divmod(total_seconds, 3600)
        minutes, seconds = divmod(rem, 60)
        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"

    @staticmethod
    def date_key(day: Optional[datetime.date] = None) -> str:
        return (day or datetime.date.today()).isoformat()


class WeightCsv:
    """Reader and writer for the weight entry CSV layout."""

    COLUMNS = ["date", "weight", "bodyFat", "muscle", "notes"]
    ERROR = "Upload failed: please check the CSV file format"

    @classmethod
    def parse(cls, text: str) -> List[dict]:
        """Parse ``text`` into weight entry payloads.

        Any malformed row rejects the whole file with one generic error.
        """
        try:
            rows = list(csv.reader(io.StringIO(text)))
        except csv.Error:
            raise ValueError(cls.ERROR)
        rows = [r for r in rows if any(cell.strip() for cell in r)]
        if rows and rows[0] and rows[0][0].strip().lower() == "date":
            rows = rows[1:]
        if not rows:
            raise ValueError(cls.ERROR)
        entries: list[dict] = []
        for row in rows:
            entries.append(cls._parse_row(row))
        return entries

    @classmethod
    def _parse_row(cls, row: List[str]) -> dict:
        if len(row) < 2 or len(row) > len(cls.COLUMNS):
            raise ValueError(cls.ERROR)
        cells = [c.strip() for c in row] + [""] * (len(cls.COLUMNS) - len(row))
        date_text, weight_text, fat_text, muscle_text, notes = cells
        try:
            parsed = datetime.datetime.strptime(date_text, "%Y-%m-%d")
        except ValueError:
            raise ValueError(cls.ERROR)
        if parsed.strftime("%Y-%m-%d") != date_text:
            raise ValueError(cls.ERROR)
        weight = MathTools.to_number(weight_text)
        if weight is None:
            raise ValueError(cls.ERROR)
        body_fat = MathTools.to_number(fat_text)
        muscle = MathTools.to_number(muscle_text)
        if (fat_text and body_fat is None) or (muscle_text and muscle is None):
            raise ValueError(cls.ERROR)
        return {
            "date": date_text,
            "weight": weight,
            "body_fat": body_fat,
            "muscle_mass": muscle,
            "notes": notes,
        }

    @classmethod
    def export(cls, entries: Iterable[dict]) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(cls.COLUMNS)
        for e in entries:
            writer.writerow(
                [
                    e.get("date", ""),
                    "" if e.get("weight") is None else e["weight"],
                    "" if e.get("body_fat") is None else e["body_fat"],
                    "" if e.get("muscle_mass") is None else e["muscle_mass"],
                    e.get("notes") or "",
                ]
            )
        return buf.getvalue()
