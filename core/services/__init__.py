from .date_utils import DateRangeService, DateWindow
from .rr_calculator import compute_rr_value, thresholds_for_age, calculate_age, WorkoutMetrics

__all__ = ['DateRangeService', 'DateWindow', 'compute_rr_value', 'thresholds_for_age', 'calculate_age', 'WorkoutMetrics']
