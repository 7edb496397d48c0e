import calendar
import re
from datetime import date, datetime
from typing import Any, Optional

from dateutil import parser as dtparser

PRESENT_WORDS = ("present", "current", "now", "today", "ongoing", "date")

_YEAR = r"(?:19|20)\d{2}"
_MONTH_ABBRS = {abbr.lower() for abbr in calendar.month_abbr if abbr}
# "2019-2023" or "2019-present": the only ranges written with an unspaced hyphen
_YEAR_RANGE_RE = re.compile(
    rf"^\s*({_YEAR})\s*-\s*({_YEAR}|{'|'.join(PRESENT_WORDS)})\s*$",
    re.IGNORECASE,
)
_RANGE_SPLIT_RE = re.compile(r"\s+(?:-|to|until|till|through)\s+|\s*[–—]\s*", re.IGNORECASE)
_SHORT_YEAR_RE = re.compile(r"^([a-z]{3,9})\.?\s*'?(\d{2})$", re.IGNORECASE)
_SPAN_RE = re.compile(
    r"(?P<num>\d+(?:\.\d+)?)\s*\+?\s*(?P<unit>years?|yrs?|y|months?|mos?|m)\b",
    re.IGNORECASE,
)


def clean_text(x: str) -> str:
    return re.sub(r'\s+', ' ', x or "").strip()


def _expand_short_year(text: str, today: date) -> str:
    """'Jun 19' means June 2019, not the 19th of June."""
    m = _SHORT_YEAR_RE.match(text)
    if not m or m.group(1)[:3].lower() not in _MONTH_ABBRS:
        return text
    short = int(m.group(2))
    century = 2000 if short <= today.year % 100 else 1900
    return f"{m.group(1)} {century + short}"


def parse_date_point(value: Any, today: Optional[date] = None) -> Optional[date]:
    """
    One end of a date range as a date. Missing month and day default to
    January 1st; present-words resolve to today. Unparseable input is None.
    """
    if value is None or isinstance(value, bool):
        return None
    today = today or date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        year = int(value)
        return date(year, 1, 1) if 1900 <= year <= 2100 else None
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.lower() in PRESENT_WORDS:
        return today
    try:
        parsed = dtparser.parse(_expand_short_year(text, today), default=datetime(today.year, 1, 1), fuzzy=True)
    except (ValueError, OverflowError):
        return None
    if not 1900 <= parsed.year <= 2100:
        return None
    return parsed.date()


def _years(start: date, end: date) -> float:
    months = (end.year - start.year) * 12 + (end.month - start.month)
    return round(max(0, months) / 12.0, 2)


def years_between(start: Any, end: Any, today: Optional[date] = None) -> float:
    """Years between two date-ish values; an empty end means still ongoing."""
    today = today or date.today()
    start_point = parse_date_point(start, today)
    if start_point is None:
        return 0.0
    end_point = parse_date_point(end, today) if end not in (None, "") else today
    if end_point is None:
        return 0.0
    return _years(start_point, end_point)


def _split_range(text: str):
    m = _YEAR_RANGE_RE.match(text)
    if m:
        return m.group(1), m.group(2)
    parts = _RANGE_SPLIT_RE.split(text.strip(), maxsplit=1)
    if len(parts) == 2 and all(part.strip() for part in parts):
        return parts[0], parts[1]
    return None


def parse_duration_years(text: Any, today: Optional[date] = None) -> float:
    """
    Best-effort years for a free-text duration such as "2019-2023",
    "Jan 2020 - Present", "2019-06-01 to 2021-05-31", "3 years" or
    "1 yr 6 mos". Unparseable input is 0.
    """
    if not isinstance(text, str) or not text.strip():
        return 0.0
    today = today or date.today()

    bounds = _split_range(text)
    if bounds:
        start = parse_date_point(bounds[0], today)
        end = parse_date_point(bounds[1], today)
        if start and end:
            return _years(start, end)

    total_months = 0.0
    for span in _SPAN_RE.finditer(text):
        num = float(span.group("num"))
        unit = span.group("unit").lower()
        if unit.startswith("y"):
            total_months += num * 12
        else:
            total_months += num
    if total_months:
        return round(total_months / 12.0, 2)
    return 0.0


def is_ongoing(text: Any) -> bool:
    if not isinstance(text, str):
        return False
    lowered = text.lower()
    return any(re.search(rf"\b{word}\b", lowered) for word in PRESENT_WORDS if word != "date")


def parse_year(value: Any) -> Optional[int]:
    """Latest four-digit year mentioned in a value, if any."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 1900 <= value <= 2100 else None
    if not isinstance(value, str):
        return None
    years = [int(y) for y in re.findall(_YEAR, value)]
    return max(years) if years else None
