"""
Date helpers for worklog periods and durations
"""

from datetime import date, datetime, timedelta
from typing import Dict, Optional

PERIOD_DAYS = {
    'week': 7,
    'month': 30,
    '3months': 90,
    '6months': 180,
    'year': 365,
}

# Jira counts durations in 8-hour working days
WORKDAY_SECONDS = 8 * 3600


def format_date(value: date) -> str:
    return value.strftime('%Y-%m-%d')


def days_ago(days: int, today: Optional[date] = None) -> date:
    return (today or date.today()) - timedelta(days=days)


def get_date_range(period: str, today: Optional[date] = None) -> Dict[str, str]:
    """
    Date range ending today for a named period.

    Unknown periods collapse to a single day.
    """
    today = today or date.today()
    end_date = format_date(today)
    if period in PERIOD_DAYS:
        start_date = format_date(days_ago(PERIOD_DAYS[period], today))
    else:
        start_date = end_date
    return {'start_date': start_date, 'end_date': end_date}


def get_date_range_by_days(days: int, end_date: Optional[str] = None) -> Dict[str, str]:
    """Date range covering ``days`` days back from end_date (YYYY-MM-DD) or today."""
    end = datetime.strptime(end_date, '%Y-%m-%d').date() if end_date else date.today()
    start = end - timedelta(days=days)
    return {'start_date': format_date(start), 'end_date': format_date(end)}


def format_duration(seconds: int) -> str:
    """Format seconds as ``1d 2h 30m`` using working days."""
    days = seconds // WORKDAY_SECONDS
    hours = (seconds % WORKDAY_SECONDS) // 3600
    minutes = (seconds % 3600) // 60

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    return ' '.join(parts) or '0m'


def parse_jira_datetime(value: str) -> Optional[datetime]:
    """Parse Jira timestamps such as ``2024-12-24T10:00:00.000+0000``."""
    for pattern in ('%Y-%m-%dT%H:%M:%S.%f%z', '%Y-%m-%dT%H:%M:%S%z'):
        try:
            return datetime.strptime(value, pattern)
        except (TypeError, ValueError):
            continue
    return None


def format_jira_datetime(value: Optional[str], with_time: bool = True) -> str:
    """Readable form of a Jira timestamp; unparsable input is returned as is."""
    if not value:
        return 'Unknown'
    parsed = parse_jira_datetime(value)
    if parsed is None:
        return value
    return parsed.strftime('%Y-%m-%d %H:%M' if with_time else '%Y-%m-%d')
