"""Calendar utilities for working-day and quarter arithmetic.

Quarter labels are "Q1 2026" (canonical) or "2026-Q1" (accepted on input).
All functions are pure and return None/0 for unparseable input instead of
raising.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional

QUARTER_LABEL_PATTERNS = [
    re.compile(r"^\s*Q([1-4])\s+(\d{4})\s*$", re.IGNORECASE),
    re.compile(r"^\s*(\d{4})-Q([1-4])\s*$", re.IGNORECASE),
]


def parse_date(value) -> Optional[date]:
    """Parse an ISO date string (or date/datetime) into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    # Drop any time part: "2026-01-05T00:00:00.000Z" -> "2026-01-05"
    try:
        return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def format_date(value: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return value.strftime("%Y-%m-%d")


def format_quarter(quarter_number: int, year: int) -> str:
    return f"Q{quarter_number} {year}"


def parse_quarter_label(label) -> Optional[dict]:
    """Parse a quarter label into its date range.

    Args:
        label: "Q<1-4> <yyyy>" or "<yyyy>-Q<1-4>"

    Returns:
        Dict with start, end (inclusive last day), quarterNumber and year,
        or None if the label has any other shape.
    """
    if not isinstance(label, str):
        return None

    quarter_number = year = None
    match = QUARTER_LABEL_PATTERNS[0].match(label)
    if match:
        quarter_number, year = int(match.group(1)), int(match.group(2))
    else:
        match = QUARTER_LABEL_PATTERNS[1].match(label)
        if match:
            year, quarter_number = int(match.group(1)), int(match.group(2))

    if quarter_number is None or year < 1:
        return None

    start_month = (quarter_number - 1) * 3 + 1
    if quarter_number == 4:
        end = date(year, 12, 31)
    else:
        end = date(year, start_month + 3, 1) - timedelta(days=1)

    return {
        "start": date(year, start_month, 1),
        "end": end,
        "quarterNumber": quarter_number,
        "year": year,
    }


def canonical_quarter(label) -> Optional[str]:
    """Rewrite a quarter label in the "Q1 2026" form, or None if invalid."""
    quarter = parse_quarter_label(label)
    if not quarter:
        return None
    return format_quarter(quarter["quarterNumber"], quarter["year"])


def quarter_for_date(value) -> Optional[str]:
    """Return the canonical quarter label containing a date."""
    day = parse_date(value)
    if not day:
        return None
    return format_quarter((day.month - 1) // 3 + 1, day.year)


def current_quarter(today: Optional[date] = None) -> str:
    """Get the quarter label for today (or for the given date)."""
    return quarter_for_date(today or date.today())


def is_weekend(value: date) -> bool:
    """Saturday or Sunday."""
    return value.weekday() >= 5


def holiday_dates(holidays) -> set:
    """Collect ISO day strings from holiday dicts (or bare date strings)."""
    dates = set()
    for holiday in holidays or []:
        raw = holiday.get("date") if isinstance(holiday, dict) else holiday
        day = parse_date(raw)
        if day:
            dates.add(format_date(day))
    return dates


def is_public_holiday(value: date, holidays) -> bool:
    return format_date(value) in holiday_dates(holidays)


def holidays_for_country(country_id, holidays) -> list:
    """Filter public holidays to a single country."""
    return [h for h in holidays or [] if h.get("countryId") == country_id]


def holidays_in_quarter(quarter_label: str, country_id, holidays) -> list:
    """Get a country's holidays that fall inside a quarter."""
    quarter = parse_quarter_label(quarter_label)
    if not quarter:
        return []

    in_quarter = []
    for holiday in holidays_for_country(country_id, holidays):
        day = parse_date(holiday.get("date"))
        if day and quarter["start"] <= day <= quarter["end"]:
            in_quarter.append(holiday)
    return in_quarter


def count_working_days(range_start, range_end, holidays=None) -> int:
    """Count working days in an inclusive date range.

    Weekends and any day matching a holiday's date are excluded. Holidays
    are expected to be pre-filtered to the relevant country.
    """
    start = parse_date(range_start)
    end = parse_date(range_end)
    if not start or not end or start > end:
        return 0

    excluded = holiday_dates(holidays)
    working_days = 0
    current = start
    while current <= end:
        if not is_weekend(current) and format_date(current) not in excluded:
            working_days += 1
        current += timedelta(days=1)

    return working_days


def count_working_days_in_quarter(quarter_label: str, holidays=None) -> int:
    quarter = parse_quarter_label(quarter_label)
    if not quarter:
        return 0
    return count_working_days(quarter["start"], quarter["end"], holidays)


def count_working_days_clamped_to_quarter(start_date, end_date,
                                          quarter_label: str,
                                          holidays=None) -> int:
    """Count working days of a range after clamping it to a quarter.

    Used for time off that may straddle a quarter boundary.
    """
    quarter = parse_quarter_label(quarter_label)
    start = parse_date(start_date)
    end = parse_date(end_date)
    if not quarter or not start or not end:
        return 0

    return count_working_days(
        max(start, quarter["start"]),
        min(end, quarter["end"]),
        holidays
    )


def compare_quarters(a: str, b: str) -> int:
    """Compare two quarter labels: -1 if a < b, 0 if equal, 1 if a > b.

    Returns 0 when either label is unparseable.
    """
    qa = parse_quarter_label(a)
    qb = parse_quarter_label(b)
    if not qa or not qb:
        return 0

    key_a = (qa["year"], qa["quarterNumber"])
    key_b = (qb["year"], qb["quarterNumber"])
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def is_quarter_in_range(quarter: str, start_quarter: str, end_quarter: str) -> bool:
    return (
        compare_quarters(quarter, start_quarter) >= 0
        and compare_quarters(quarter, end_quarter) <= 0
    )


def next_quarter(quarter_label: str) -> str:
    quarter = parse_quarter_label(quarter_label)
    if not quarter:
        return quarter_label

    number, year = quarter["quarterNumber"] + 1, quarter["year"]
    if number > 4:
        number, year = 1, year + 1
    return format_quarter(number, year)


def previous_quarter(quarter_label: str) -> str:
    quarter = parse_quarter_label(quarter_label)
    if not quarter:
        return quarter_label

    number, year = quarter["quarterNumber"] - 1, quarter["year"]
    if number < 1:
        number, year = 4, year - 1
    return format_quarter(number, year)


def quarters_between(start_quarter: str, end_quarter: str) -> list:
    """All quarter labels from start to end, inclusive."""
    start = parse_quarter_label(start_quarter)
    end = parse_quarter_label(end_quarter)
    if not start or not end:
        return []

    quarters = []
    current = format_quarter(start["quarterNumber"], start["year"])
    last = format_quarter(end["quarterNumber"], end["year"])
    while compare_quarters(current, last) <= 0:
        quarters.append(current)
        current = next_quarter(current)
    return quarters


def generate_quarters(count: int = 8, start: Optional[str] = None) -> list:
    """Generate consecutive quarter labels starting at start (or now)."""
    current = start if parse_quarter_label(start) else current_quarter()
    parsed = parse_quarter_label(current)
    current = format_quarter(parsed["quarterNumber"], parsed["year"])

    quarters = []
    for _ in range(max(count, 0)):
        quarters.append(current)
        current = next_quarter(current)
    return quarters


def date_ranges_overlap(a_start, a_end, b_start, b_end) -> bool:
    """True if two inclusive date ranges share at least one day."""
    a_start, a_end = parse_date(a_start), parse_date(a_end)
    b_start, b_end = parse_date(b_start), parse_date(b_end)
    if not all([a_start, a_end, b_start, b_end]):
        return False
    return a_start <= b_end and b_start <= a_end


def prorate_to_window(total_days: float, range_start, range_end,
                      window_start, window_end, holidays=None) -> float:
    """Distribute a lump-sum commitment into a sub-window.

    The share is proportional to working days, not calendar days:
    total_days * (working days in overlap / working days in full range).

    Returns:
        0 when the full range has no working days or the window does not
        overlap it.
    """
    start, end = parse_date(range_start), parse_date(range_end)
    w_start, w_end = parse_date(window_start), parse_date(window_end)
    if not all([start, end, w_start, w_end]):
        return 0

    range_days = count_working_days(start, end, holidays)
    if range_days == 0:
        return 0

    overlap_days = count_working_days(max(start, w_start), min(end, w_end), holidays)
    if overlap_days == 0:
        return 0

    return total_days * overlap_days / range_days


def work_weeks_in_quarter(quarter_label: str, holidays=None) -> float:
    return count_working_days_in_quarter(quarter_label, holidays) / 5


def weekly_to_quarterly(days_per_week: float, work_weeks: float) -> float:
    """Convert a days-per-week rate to a quarterly total (1 decimal)."""
    return round(days_per_week * work_weeks, 1)


def quarterly_to_weekly(total_days: float, work_weeks: float) -> float:
    """Convert a quarterly total to days per week (1 decimal)."""
    if work_weeks == 0:
        return 0
    return round(total_days / work_weeks, 1)
