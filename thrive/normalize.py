"""
Baseline normalization: z-scores of a value against its own history.

    z = (value - mean(history)) / max(std(history), sigma_floor)

Population standard deviation (ddof=0) is used, matching how the history is
treated as the whole baseline rather than a sample of one. Fewer than
`min_history` points yields an invalid result with z = 0.
"""

import math
from typing import Dict, Sequence

import numpy as np

from thrive.config import NormalizerParams
from thrive.errors import InvalidEntryError


def zscore(
    value: float,
    history: Sequence[float],
    params: NormalizerParams = NormalizerParams(),
) -> Dict[str, object]:
    """
    Normalize `value` against `history`.

    Returns:
        {"z_score": float, "mean": float, "sigma": float, "is_valid": bool}
    """
    if not math.isfinite(value):
        raise InvalidEntryError(None, [f"cannot normalize non-finite value {value!r}"])

    values = np.asarray(history, dtype=np.float64)
    if values.size and not np.all(np.isfinite(values)):
        values = values[np.isfinite(values)]

    if values.size < params.min_history:
        return {
            "z_score": 0.0,
            "mean": float(value),
            "sigma": params.sigma_floor,
            "is_valid": False,
        }

    mean = float(values.mean())
    sigma = max(float(values.std(ddof=0)), params.sigma_floor)

    return {
        "z_score": (float(value) - mean) / sigma,
        "mean": mean,
        "sigma": sigma,
        "is_valid": True,
    }
