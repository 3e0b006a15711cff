"""
Dataset preparation: factor re-leveling and derived columns.

Public API:
    relevel()             — put a baseline level first
    derive_group()        — categorical column from identifier patterns
    log_transform()       — log(x + 1)
    standardize_within()  — per-group z-score
"""

from lmmselect.preprocessing.transforms import (
    relevel,
    derive_group,
    log_transform,
    standardize_within,
)

__all__ = [
    "relevel",
    "derive_group",
    "log_transform",
    "standardize_within",
]
