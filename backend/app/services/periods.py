"""Calendar-month commission periods.

A sale belongs to the month it was made in, as seen from the reporting time
zone (COMMISSION_TIMEZONE). Period bounds are dates; when compared against
timestamps the end date runs through 23:59:59.999999 so late sales on the last
day of a month are never dropped.
"""
from datetime import date, datetime, time, tzinfo
from typing import List, Optional, Sequence, Tuple, Union

from dateutil import parser as date_parser
from dateutil import tz
from dateutil.relativedelta import relativedelta

from app.core.config import settings
from app.schemas.commission import CommissionPeriod, PeriodKind

END_OF_DAY = time(23, 59, 59, 999999)


def reference_timezone(name: Optional[str] = None) -> tzinfo:
    """Resolve the reporting time zone. An unknown zone name is a config error."""
    from app.services.rate_resolver import CommissionConfigurationError

    zone_name = name or settings.COMMISSION_TIMEZONE
    zone = tz.gettz(zone_name)
    if zone is None:
        raise CommissionConfigurationError(f"Unknown COMMISSION_TIMEZONE: {zone_name!r}")
    return zone


def parse_timestamp(
    value: Union[datetime, date, str, None],
    tzinfo: Optional[tzinfo] = None,
) -> Optional[datetime]:
    """Normalise a sale/segment timestamp to an aware datetime in the reference zone.

    Naive values are taken to be local (reference zone) time. Returns None for
    missing or unparsable input rather than raising.
    """
    zone = tzinfo or reference_timezone()

    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            value = date_parser.isoparse(value)
        except (ValueError, OverflowError):
            return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=zone)
        return value.astimezone(zone)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=zone)
    return None


def build_monthly_periods(
    months_back: Optional[int] = None,
    today: Optional[date] = None,
    tzinfo: Optional[tzinfo] = None,
) -> List[CommissionPeriod]:
    """Return `months_back` calendar months ending with the current one, newest first."""
    count = settings.DEFAULT_MONTHS_BACK if months_back is None else months_back
    if count < 1:
        raise ValueError("months_back must be at least 1")

    if today is None:
        today = datetime.now(tzinfo or reference_timezone()).date()
    current = today.replace(day=1)

    periods = []
    for i in range(count):
        start = current - relativedelta(months=i)
        end = start + relativedelta(day=31)  # clamps to the last day of that month
        periods.append(CommissionPeriod(
            kind=PeriodKind.MONTH,
            month=start.strftime("%Y-%m"),
            label=start.strftime("%B %Y"),
            period_start=start,
            period_end=end,
        ))
    return periods


def month_period(month: str) -> CommissionPeriod:
    """Single monthly period from a "YYYY-MM" string."""
    try:
        year, mon = map(int, month.split("-"))
        start = date(year, mon, 1)
    except ValueError:
        raise ValueError(f"Invalid month {month!r}, expected YYYY-MM")
    return CommissionPeriod(
        kind=PeriodKind.MONTH,
        month=start.strftime("%Y-%m"),
        label=start.strftime("%B %Y"),
        period_start=start,
        period_end=start + relativedelta(day=31),
    )


def custom_period(date_from: Optional[date] = None, date_to: Optional[date] = None) -> CommissionPeriod:
    """Ad-hoc date range. Either bound may be open; no bounds means all time."""
    if date_from and date_to and date_from > date_to:
        raise ValueError("date_from must not be after date_to")

    if date_from and date_to:
        label = f"{date_from.isoformat()} to {date_to.isoformat()}"
    elif date_from:
        label = f"From {date_from.isoformat()}"
    elif date_to:
        label = f"Until {date_to.isoformat()}"
    else:
        label = "All time"

    return CommissionPeriod(
        kind=PeriodKind.RANGE,
        label=label,
        period_start=date_from,
        period_end=date_to,
    )


def period_bounds(
    period: CommissionPeriod,
    tzinfo: Optional[tzinfo] = None,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive timestamp window of a period; None marks an open side."""
    zone = tzinfo or reference_timezone()
    starts_at = datetime.combine(period.period_start, time.min, tzinfo=zone) if period.period_start else None
    ends_at = datetime.combine(period.period_end, END_OF_DAY, tzinfo=zone) if period.period_end else None
    return starts_at, ends_at


def period_contains(period: CommissionPeriod, moment: datetime, tzinfo: Optional[tzinfo] = None) -> bool:
    starts_at, ends_at = period_bounds(period, tzinfo)
    if starts_at is not None and moment < starts_at:
        return False
    if ends_at is not None and moment > ends_at:
        return False
    return True


def period_for(
    moment: Optional[datetime],
    periods: Sequence[CommissionPeriod],
    tzinfo: Optional[tzinfo] = None,
) -> Optional[int]:
    """Index of the period a timestamp falls in, or None when it is outside all of them."""
    if moment is None:
        return None
    for index, period in enumerate(periods):
        if period_contains(period, moment, tzinfo):
            return index
    return None
