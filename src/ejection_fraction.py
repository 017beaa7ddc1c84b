"""Ejection fraction from end-diastolic and end-systolic volumes."""

from analysis_errors import DivisionByZeroError


def compute_ejection_fraction(ed_volume_ml: float, es_volume_ml: float) -> float:
    """Return ``(ED - ES) / ED * 100`` rounded to 2 decimals.

    Values outside 0-100 (e.g. ES larger than ED) are returned unclamped.

    Raises:
        DivisionByZeroError: If the ED volume is zero.
    """
    if ed_volume_ml == 0:
        raise DivisionByZeroError(
            "Cannot compute ejection fraction: ED volume is zero"
        )
    return round((ed_volume_ml - es_volume_ml) / ed_volume_ml * 100.0, 2)
