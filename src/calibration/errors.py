"""
Error kinds raised by the calibration pipeline.
Every one of them terminates the current calibration run.
"""


class CalibrationError(Exception):
    """모든 캘리브레이션 오류의 부모 클래스"""


class InsufficientDataError(CalibrationError):
    """Window holds too few samples for a stable estimate."""


class RangeError(CalibrationError, ValueError):
    """Invalid window bounds (empty, reversed or outside the recording)."""


class EmptyGridError(CalibrationError):
    pass


class NoFeasibleCandidateError(CalibrationError):
    """No grid candidate satisfies the criterion's hard constraints."""


class CalibrationCancelledError(CalibrationError):
    pass


class GridFormatError(CalibrationError, ValueError):
    """The parameter table resource could not be interpreted."""
