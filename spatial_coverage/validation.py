"""
Scan validation - coverage completeness and calibration status.
"""

from dataclasses import dataclass
from typing import Optional

from spatial_coverage.config import COVERAGE_PASS_THRESHOLD

STATUS_PASS = "pass"
STATUS_WARNING = "warning"
STATUS_FAIL = "fail"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validate_coverage()."""
    is_coverage_complete: bool   # strictly above the pass threshold
    coverage_percent: float
    is_calibrated: bool
    overall_status: str          # "pass", "warning" or "fail"


def validate_coverage(coverage_percent: Optional[float], is_calibrated: bool) -> ValidationResult:
    """
    Validate a scan.

    Incomplete coverage fails regardless of calibration; complete coverage
    without scale calibration is only a warning.

    Args:
        coverage_percent: 0-100, None treated as 0
        is_calibrated: Whether scale calibration was performed
    """
    percent = coverage_percent if coverage_percent is not None else 0.0
    complete = percent > COVERAGE_PASS_THRESHOLD

    if not complete:
        status = STATUS_FAIL
    elif not is_calibrated:
        status = STATUS_WARNING
    else:
        status = STATUS_PASS

    return ValidationResult(
        is_coverage_complete=complete,
        coverage_percent=percent,
        is_calibrated=is_calibrated,
        overall_status=status,
    )
