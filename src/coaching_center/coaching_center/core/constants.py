"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_PAGE = 1
DEFAULT_DATE_VIEW_LIMIT = 10
DEFAULT_REPORT_LIMIT = 20
DEFAULT_TIMESERIES_LIMIT = 100

LOW_ATTENDANCE_THRESHOLD = 75.0

SUBJECT_RANKING_SIZE = 10

MAX_TOTAL_MARKS = 1000
