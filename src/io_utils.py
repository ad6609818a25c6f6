from __future__ import annotations

"""Utility functions for reading and writing CSV data.

This module centralises the I/O helpers used by the ride demo: a loader
for control point lists, a light-weight parser for ``key,value`` ride
parameter files and a writer for per-tick results.
"""

from pathlib import Path
from typing import Dict, Iterable, Mapping, Tuple

import csv
import numpy as np
import pandas as pd


def read_track_points_csv(path: str | Path) -> Tuple[np.ndarray, np.ndarray]:
    """Read control point positions and tilts from ``path``.

    The file must contain ``x_m``, ``y_m`` and ``z_m`` columns listing the
    points in traversal order.  An optional ``tilt_deg`` column gives the
    banking angle, defaulting to zero.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        Positions of shape ``(n, 3)`` and tilts of shape ``(n,)``.
    """
    df = pd.read_csv(path)
    required = {"x_m", "y_m", "z_m"}
    missing = required.difference(df.columns)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ValueError(f"track points file missing required columns: {missing_str}")

    xyz = df[["x_m", "y_m", "z_m"]].to_numpy(float)
    tilt = df.get("tilt_deg", pd.Series(0.0, index=df.index)).fillna(0.0).to_numpy(float)
    return xyz, tilt


def read_ride_params_csv(path: str | Path) -> Dict[str, float | bool]:
    """Read ride parameters from ``path``.

    Values of ``true``/``false`` are interpreted as booleans while other
    entries are parsed as floating point numbers.  Rows that are blank,
    lack a value or hold a non-numeric value are skipped.
    """
    params: Dict[str, float | bool] = {}
    with Path(path).open(newline="") as f:
        reader = csv.reader(f)
        for row in reader:
            if not row or all(cell.strip() == "" for cell in row):
                continue
            key = row[0].strip()
            try:
                raw_value = row[1].strip()
            except IndexError:
                continue

            value_lower = raw_value.lower()
            if value_lower == "true":
                params[key] = True
            elif value_lower == "false":
                params[key] = False
            else:
                try:
                    params[key] = float(raw_value)
                except ValueError:
                    continue
    return params


def write_csv(data: Mapping[str, Iterable] | pd.DataFrame, file_path: str | Path) -> None:
    """Write ``data`` to ``file_path`` ensuring parent directories exist."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(data, pd.DataFrame):
        data.to_csv(file_path, index=False)
    else:
        pd.DataFrame(data).to_csv(file_path, index=False)
