from __future__ import annotations
import datetime
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from db import WeightEntryRepository, WorkoutLogRepository


class StatisticsService:
    """Compute body weight and workout frequency statistics."""

    def __init__(
        self,
        weight_repo: WeightEntryRepository,
        log_repo: "WorkoutLogRepository" | None = None,
    ) -> None:
        self.weights = weight_repo
        self.logs = log_repo

    def _weight_frame(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> pd.DataFrame:
        rows = self.weights.fetch_history(start_date, end_date)
        if not rows:
            return pd.DataFrame(columns=["date", "weight", "body_fat", "muscle_mass"])
        df = pd.DataFrame(rows)[["date", "weight", "body_fat", "muscle_mass"]]
        df["date"] = pd.to_datetime(df["date"].str.slice(0, 10))
        for col in ("weight", "body_fat", "muscle_mass"):
            df[col] = pd.to_numeric(df[col], errors="coerce")
        return df.sort_values("date").reset_index(drop=True)

    @staticmethod
    def _round(value) -> Optional[float]:
        if value is None or pd.isna(value):
            return None
        return round(float(value), 2)

    def weight_stats(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> Dict[str, float | int | None]:
        """Return summary statistics over the weight entries in range."""
        df = self._weight_frame(start_date, end_date)
        if df.empty:
            return {
                "count": 0,
                "latest": None,
                "avg": 0.0,
                "min": 0.0,
                "max": 0.0,
                "change": 0.0,
                "weekly_rate": 0.0,
                "body_fat_change": None,
                "muscle_mass_change": None,
            }
        weights = df["weight"].to_numpy(dtype=float)
        days = (df["date"] - df["date"].iloc[0]).dt.days.to_numpy(dtype=float)
        if len(weights) > 1 and days[-1] > 0:
            slope = float(np.polyfit(days, weights, 1)[0])
        else:
            slope = 0.0
        fat = df["body_fat"].dropna()
        muscle = df["muscle_mass"].dropna()
        return {
            "count": int(len(df)),
            "latest": self._round(weights[-1]),
            "avg": self._round(np.mean(weights)),
            "min": self._round(np.min(weights)),
            "max": self._round(np.max(weights)),
            "change": self._round(weights[-1] - weights[0]),
            "weekly_rate": self._round(slope * 7),
            "body_fat_change": self._round(fat.iloc[-1] - fat.iloc[0]) if len(fat) else None,
            "muscle_mass_change": (
                self._round(muscle.iloc[-1] - muscle.iloc[0]) if len(muscle) else None
            ),
        }

    def weight_trend(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        window: int = 7,
    ) -> List[Dict[str, float | str | None]]:
        """Return daily weights with a rolling average over ``window`` days."""
        df = self._weight_frame(start_date, end_date)
        if df.empty:
            return []
        daily = df.groupby("date")["weight"].mean()
        rolling = daily.rolling(f"{window}D").mean()
        return [
            {
                "date": d.date().isoformat(),
                "weight": self._round(w),
                "average": self._round(rolling.loc[d]),
            }
            for d, w in daily.items()
        ]

    def workout_frequency(self, days: int = 30) -> Dict[str, int]:
        """Return the number of completed workouts per category in the last ``days``."""
        if self.logs is None:
            return {}
        rows = self.logs.fetch_rows()
        if not rows:
            return {}
        df = pd.DataFrame(rows)
        df["completed_at"] = pd.to_datetime(df["completed_at"].str.slice(0, 19), errors="coerce")
        cutoff = pd.Timestamp(datetime.datetime.now() - datetime.timedelta(days=days))
        recent = df[df["completed_at"] >= cutoff]
        counts = recent.groupby("category").size()
        return {str(k): int(v) for k, v in counts.items()}
