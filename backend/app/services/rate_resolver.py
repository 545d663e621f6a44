"""Commission rate resolution.

For a staff member and a sale timestamp exactly one (rate, basis) is in effect:

1. the rate-history segment covering the timestamp
   (effective_from <= ts and (effective_to is NULL or ts < effective_to));
   when segments overlap the latest effective_from wins, ties go to the
   later row,
2. otherwise the staff member's override,
3. otherwise the global default.

Whether commission is enabled is not part of resolution; the aggregator applies
that gate to the money, not to the rate shown.
"""
import logging
from bisect import bisect_right
from collections import defaultdict
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from app.schemas.commission import (
    CommissionSnapshot, GlobalCommissionSettings, RateHistorySegment,
    RateSource, ResolvedRate, StaffCommissionOverride,
)
from app.services.periods import parse_timestamp, reference_timezone

logger = logging.getLogger(__name__)

MIN_RATE = Decimal("0")
MAX_RATE = Decimal("100")


class CommissionConfigurationError(RuntimeError):
    """Raised when no default commission rate/basis is configured."""


def _warn_if_out_of_range(rate: Decimal, where: str) -> None:
    if rate < MIN_RATE or rate > MAX_RATE:
        logger.warning(f"Stored commission rate {rate} outside 0-100 ({where}); using it as-is")


class _Segment:
    __slots__ = ("starts", "ends", "rate")

    def __init__(self, starts: datetime, ends: Optional[datetime], rate: ResolvedRate):
        self.starts = starts
        self.ends = ends
        self.rate = rate

    def covers(self, moment: datetime) -> bool:
        return self.starts <= moment and (self.ends is None or moment < self.ends)


class RateResolver:
    """Resolves the rate in effect for (staff, timestamp) against one snapshot."""

    def __init__(
        self,
        settings: GlobalCommissionSettings,
        overrides: Iterable[StaffCommissionOverride] = (),
        rate_history: Iterable[RateHistorySegment] = (),
        tzinfo: Optional[tzinfo] = None,
    ):
        if settings.default_rate is None or settings.calculation_basis is None:
            raise CommissionConfigurationError(
                "Global commission settings have no default rate/basis configured"
            )
        self.tzinfo = tzinfo or reference_timezone()
        self.settings = settings

        _warn_if_out_of_range(settings.default_rate, "global default")
        self._default = ResolvedRate(
            rate=settings.default_rate,
            basis=settings.calculation_basis,
            source=RateSource.DEFAULT,
        )

        # One override row per staff; a later duplicate replaces an earlier one
        self._overrides: Dict[str, ResolvedRate] = {}
        for override in overrides:
            _warn_if_out_of_range(override.commission_rate, f"override for staff {override.staff_id}")
            self._overrides[override.staff_id] = ResolvedRate(
                rate=override.commission_rate,
                basis=override.commission_basis,
                source=RateSource.OVERRIDE,
            )

        # Per-staff segments sorted by (effective_from, input order) for bisection
        grouped: Dict[str, List[Tuple[datetime, int, _Segment]]] = defaultdict(list)
        for order, row in enumerate(rate_history):
            starts = parse_timestamp(row.effective_from, self.tzinfo)
            ends = parse_timestamp(row.effective_to, self.tzinfo)
            _warn_if_out_of_range(row.commission_rate, f"rate history for staff {row.staff_id}")
            segment = _Segment(starts, ends, ResolvedRate(
                rate=row.commission_rate,
                basis=row.commission_basis,
                source=RateSource.HISTORY,
            ))
            grouped[row.staff_id].append((starts, order, segment))

        self._segments: Dict[str, List[_Segment]] = {}
        self._starts: Dict[str, List[datetime]] = {}
        for staff_id, rows in grouped.items():
            rows.sort(key=lambda r: (r[0], r[1]))
            self._segments[staff_id] = [r[2] for r in rows]
            self._starts[staff_id] = [r[0] for r in rows]

    @classmethod
    def from_snapshot(cls, snapshot: CommissionSnapshot, tzinfo: Optional[tzinfo] = None) -> "RateResolver":
        return cls(snapshot.settings, snapshot.staff_overrides, snapshot.rate_history, tzinfo)

    @property
    def default(self) -> ResolvedRate:
        return self._default

    def history_rate(self, staff_id: str, moment: datetime) -> Optional[ResolvedRate]:
        segments = self._segments.get(staff_id)
        if not segments:
            return None
        # Every segment left of the insertion point started at or before `moment`;
        # walking back finds the latest-starting one that still covers it.
        index = bisect_right(self._starts[staff_id], moment) - 1
        while index >= 0:
            segment = segments[index]
            if segment.covers(moment):
                return segment.rate
            index -= 1
        return None

    def resolve(self, staff_id: Optional[str], moment=None) -> ResolvedRate:
        """Rate in effect for a staff member at a moment. Never fails for unknown staff."""
        if staff_id:
            at = parse_timestamp(moment, self.tzinfo)
            if at is not None:
                rate = self.history_rate(staff_id, at)
                if rate is not None:
                    return rate
            override = self._overrides.get(staff_id)
            if override is not None:
                return override
        return self._default


def resolve_rate(staff_id: Optional[str], moment, snapshot: CommissionSnapshot) -> ResolvedRate:
    """One-off resolution; build a RateResolver when resolving many sales."""
    return RateResolver.from_snapshot(snapshot).resolve(staff_id, moment)


def find_overlaps(
    segments: Iterable[RateHistorySegment],
    tzinfo: Optional[tzinfo] = None,
) -> List[Tuple[RateHistorySegment, RateHistorySegment]]:
    """Pairs of same-staff segments whose [effective_from, effective_to) intervals intersect."""
    zone = tzinfo or reference_timezone()
    by_staff: Dict[str, List[Tuple[datetime, Optional[datetime], RateHistorySegment]]] = defaultdict(list)
    for seg in segments:
        starts = parse_timestamp(seg.effective_from, zone)
        ends = parse_timestamp(seg.effective_to, zone)
        # an empty [a, a) segment covers nothing
        if ends is not None and ends <= starts:
            continue
        by_staff[seg.staff_id].append((starts, ends, seg))

    overlaps = []
    for staff_id in sorted(by_staff):
        rows = sorted(by_staff[staff_id], key=lambda r: r[0])
        for i, (starts_a, ends_a, seg_a) in enumerate(rows):
            for starts_b, ends_b, seg_b in rows[i + 1:]:
                # b starts at or after a; they intersect unless a ends by then
                if ends_a is None or starts_b < ends_a:
                    overlaps.append((seg_a, seg_b))
    return overlaps
