"""
Temporal patterns: a weekday x hour heatmap of productivity ("power hours").

Weekdays follow the calendar-grid convention 0 = Sunday ... 6 = Saturday.
Each entry contributes clip(MC + 3, 0, 5), where MC is scored against the
rest of the dataset. Empty cells stay at 0 and carry a count of 0, so the
consumer can tell "no data" from "genuinely low".
"""

from datetime import datetime
from typing import Dict, Iterable, List

import numpy as np
import pandas as pd

from thrive.config import DEFAULT_CONFIG, HeatmapParams, ThriveConfig
from thrive.models import Entry, entries_frame
from thrive.scoring import score_frame


WEEKDAYS = 7
HOURS = 24
WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def productivity_score(mc: float, p: HeatmapParams = HeatmapParams()) -> float:
    """Bounded transform of a Mood Composite onto the 0-5 scale."""
    return float(np.clip(mc + p.score_offset, p.score_min, p.score_max))


def _extreme_count(n_cells: int, p: HeatmapParams) -> int:
    return max(1, int(np.floor(n_cells * p.extreme_fraction)))


def build_heatmap(
    entries: Iterable[Entry],
    now: datetime,
    cfg: ThriveConfig = DEFAULT_CONFIG,
) -> Dict[str, object]:
    """
    Returns:
        {"matrix": 7x24 list of mean scores,
         "counts": 7x24 list of sample counts,
         "peak_hours": [{"weekday", "hour", "score", "count"}, ...] best first,
         "low_hours":  [...] worst first,
         "last_updated": ISO timestamp of `now`}
    """
    p = cfg.heatmap
    matrix = np.zeros((WEEKDAYS, HOURS), dtype=np.float64)
    counts = np.zeros((WEEKDAYS, HOURS), dtype=np.int64)

    df = entries_frame(entries)
    if df.empty:
        return {
            "matrix": matrix.tolist(),
            "counts": counts.tolist(),
            "peak_hours": [],
            "low_hours": [],
            "last_updated": now.isoformat(),
        }

    scores = score_frame(df, cfg, leave_one_out=True)
    cells = pd.DataFrame({
        # pandas dayofweek is Monday=0; shift to Sunday=0
        "weekday": (df["timestamp"].dt.dayofweek + 1) % WEEKDAYS,
        "hour": df["timestamp"].dt.hour,
        "score": scores["mc"].map(lambda mc: productivity_score(mc, p)),
    })

    grouped = cells.groupby(["weekday", "hour"])["score"].agg(avg="mean", samples="count")
    for (weekday, hour), row in grouped.iterrows():
        matrix[weekday, hour] = row["avg"]
        counts[weekday, hour] = int(row["samples"])

    ranked = (
        grouped.reset_index()
        .sort_values(["avg", "weekday", "hour"], ascending=[False, True, True], kind="stable")
    )
    cell_list: List[Dict[str, object]] = [
        {
            "weekday": int(r.weekday),
            "hour": int(r.hour),
            "score": round(float(r.avg), 3),
            "count": int(r.samples),
        }
        for r in ranked.itertuples(index=False)
    ]

    n = _extreme_count(len(cell_list), p)

    return {
        "matrix": np.round(matrix, 3).tolist(),
        "counts": counts.tolist(),
        "peak_hours": cell_list[:n],
        "low_hours": list(reversed(cell_list[-n:])),
        "last_updated": now.isoformat(),
    }


def best_hour_label(cell: Dict[str, object]) -> str:
    """Short label such as 'Tue 09:00'."""
    return f"{WEEKDAY_NAMES[cell['weekday']]} {cell['hour']:02d}:00"
