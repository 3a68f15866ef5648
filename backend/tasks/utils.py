"""Date helpers and numbering for tasks"""
import re
from datetime import date, datetime, timedelta, timezone as dt_timezone
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

TASK_NO_PATTERN = re.compile(r'^T(\d+)$')


def parse_date_value(value):
    """
    Parse a date or date-time value.

    Accepts ``date``/``datetime`` objects and ISO strings (``2024-01-06`` or
    ``2024-01-06T09:00:00.000Z``). Returns ``None`` when the value can't be parsed.
    """
    if isinstance(value, (date, datetime)):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        if 'T' in text:
            return parse_datetime(text)
        return parse_date(text) or parse_datetime(text)
    except ValueError:
        # Well formatted but not a real date (e.g. 2024-02-30)
        return None


def adjust_weekend_date(value):
    """
    Move weekend dates onto working days.

    - Saturday -> previous Friday
    - Sunday -> next Monday
    - Weekdays are returned unchanged

    Empty values pass through as-is, and so do unparseable strings so that
    later validation rejects them instead of silently defaulting. Aware
    datetimes are judged (and returned) in UTC.
    """
    if not value:
        return value

    parsed = parse_date_value(value)
    if parsed is None:
        return value
    if isinstance(parsed, datetime) and timezone.is_aware(parsed):
        parsed = parsed.astimezone(dt_timezone.utc)

    weekday = parsed.weekday()  # Monday=0 ... Sunday=6
    if weekday == 5:
        return parsed - timedelta(days=1)
    if weekday == 6:
        return parsed + timedelta(days=1)
    return parsed


def adjust_weekend_date_to_string(value):
    """
    Adjust a weekend date and render it as an ISO string.

    String input with a time component keeps its original time part verbatim,
    only the date part is shifted. Everything else renders as ``YYYY-MM-DD``.
    """
    if not value:
        return value

    adjusted = adjust_weekend_date(value)
    if isinstance(adjusted, str):
        return adjusted

    date_only = adjusted.date() if isinstance(adjusted, datetime) else adjusted
    if isinstance(value, str) and 'T' in value:
        time_part = value.split('T', 1)[1]
        return f"{date_only.isoformat()}T{time_part}"
    return date_only.isoformat()


def generate_task_no():
    """Next sequential task number (T001, T002, ...)"""
    from .models import Task

    highest = 0
    for task_no in Task.objects.filter(task_no__regex=r'^T[0-9]+$').values_list('task_no', flat=True):
        match = TASK_NO_PATTERN.match(task_no)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"T{highest + 1:03d}"
