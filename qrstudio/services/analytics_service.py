"""Analytics shapes for a QR code, and the CSV report export.

There is no scan-event store yet: every series is spread deterministically
from the QR's ``scans`` / ``unique_scans`` counters, so the same counters
always produce the same shapes and every series sums back to its counter.
"""

import csv
import io
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from qrstudio.core.config import settings
from qrstudio.core.exceptions import AuthorizationError, ValidationError
from qrstudio.core.rbac import has_permission
from qrstudio.models.profile import Profile
from qrstudio.models.qr_code import QRCode
from qrstudio.services.cache_service import CacheService, cache_service

logger = logging.getLogger("qrstudio.analytics")

RANGE_DAYS = {"24h": 1, "7d": 7, "30d": 30, "90d": 90}

DEVICE_SHARES = [("Mobile", 60), ("Desktop", 30), ("Tablet", 10)]
LOCATION_SHARES = [
    ("United States", 40), ("Canada", 20), ("United Kingdom", 15), ("Germany", 10), ("Others", 15),
]
REFERRER_SHARES = [
    ("Direct", 50), ("Social Media", 20), ("Email", 15), ("Website", 10), ("Others", 5),
]
# Relative scan volume per hour of day, peaking mid-afternoon
HOURLY_WEIGHTS = [1, 1, 1, 1, 1, 2, 3, 5, 7, 8, 9, 10, 11, 11, 12, 12, 11, 10, 9, 8, 6, 4, 3, 2]


def distribute(total: int, weights: Sequence[int]) -> List[int]:
    """Split ``total`` proportionally to ``weights`` (largest remainder).

    The parts always sum to ``total``.
    """
    weight_sum = sum(weights)
    if total <= 0 or weight_sum <= 0:
        return [0] * len(weights)
    exact = [total * w / weight_sum for w in weights]
    parts = [int(x) for x in exact]
    short = total - sum(parts)
    by_remainder = sorted(range(len(weights)), key=lambda i: (exact[i] - parts[i], -i), reverse=True)
    for i in by_remainder[:short]:
        parts[i] += 1
    return parts


def _percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _growth(before: float, after: float) -> float:
    if not before:
        return 0.0
    return round((after - before) / before * 100, 1)


def _breakdown(label: str, shares, total: int) -> List[Dict[str, Any]]:
    counts = distribute(total, [pct for _, pct in shares])
    return [
        {label: name, "count": count, "percentage": pct}
        for (name, pct), count in zip(shares, counts)
    ]


class AnalyticsService:
    """Builds analytics payloads and caches them per QR counter snapshot."""

    def __init__(self, cache: CacheService = cache_service):
        self.cache = cache

    @staticmethod
    def check_time_range(time_range: str) -> int:
        if time_range not in RANGE_DAYS:
            raise ValidationError(
                f"Invalid time range '{time_range}'; expected one of {', '.join(RANGE_DAYS)}"
            )
        return RANGE_DAYS[time_range]

    @staticmethod
    def authorize(actor: Profile, qr: QRCode) -> None:
        """Owners need analytics.view_own; anyone else needs analytics.view_all."""
        if has_permission(actor.role, "analytics.view_all"):
            return
        if qr.owner_id == actor.id and has_permission(actor.role, "analytics.view_own"):
            return
        raise AuthorizationError("You cannot view analytics for this QR code")

    def get_qr_analytics(self, qr: QRCode, time_range: str = "7d", today: Optional[date] = None) -> Dict[str, Any]:
        days = self.check_time_range(time_range)
        today = today or datetime.now(timezone.utc).date()
        key = self._cache_key("basic", qr, time_range, today)
        cached = self.cache.get_json(key)
        if cached:
            return cached

        total, unique = qr.scans or 0, qr.unique_scans or 0
        result = {
            "total_scans": total,
            "unique_scans": unique,
            "scans_by_date": self._scans_by_date(total, unique, days, today),
            "device_types": _breakdown("device", DEVICE_SHARES, total),
            "locations": _breakdown("country", LOCATION_SHARES, total),
            "referrers": _breakdown("source", REFERRER_SHARES, total),
        }
        self.cache.set_json(key, result, ttl_seconds=settings.ANALYTICS_CACHE_TTL)
        return result

    def get_advanced_analytics(self, qr: QRCode, time_range: str = "7d", today: Optional[date] = None) -> Dict[str, Any]:
        """Basic analytics plus growth, conversion, hourly and funnel series.

        Growth compares the later half of the range with the earlier half.
        Conversion rate is unique scans over total scans.
        """
        days = self.check_time_range(time_range)
        today = today or datetime.now(timezone.utc).date()
        key = self._cache_key("advanced", qr, time_range, today)
        cached = self.cache.get_json(key)
        if cached:
            return cached

        basic = self.get_qr_analytics(qr, time_range, today)
        total, unique = basic["total_scans"], basic["unique_scans"]
        daily = basic["scans_by_date"]

        time_series = [
            {**day, "conversion_rate": _percent(day["unique_scans"], day["scans"])}
            for day in daily
        ]
        half = len(daily) // 2
        early, late = daily[:half], daily[half:]
        early_scans = sum(d["scans"] for d in early)
        late_scans = sum(d["scans"] for d in late)
        early_unique = sum(d["unique_scans"] for d in early)
        late_unique = sum(d["unique_scans"] for d in late)

        conversion_rate = _percent(unique, total)
        conversion_growth = round(_percent(late_unique, late_scans) - _percent(early_unique, early_scans), 1)
        avg_session = round(30 + 90 * unique / total, 1) if total else 0.0
        converted = round(unique * conversion_rate / 100)

        hourly_scans = distribute(total, HOURLY_WEIGHTS)
        hourly_conversions = distribute(unique, HOURLY_WEIGHTS)

        result = {
            **basic,
            "scan_growth": _growth(early_scans, late_scans),
            "unique_growth": _growth(early_unique, late_unique),
            "conversion_rate": conversion_rate,
            "conversion_growth": conversion_growth,
            "avg_session_duration": avg_session,
            "session_growth": round(_growth(early_unique, late_unique) - _growth(early_scans, late_scans), 1),
            "time_series_data": time_series,
            "hourly": [
                {"time": f"{hour:02d}:00", "scans": s, "conversions": c}
                for hour, (s, c) in enumerate(zip(hourly_scans, hourly_conversions))
            ],
            "conversion_funnel": [
                {"stage": "Scanned", "users": total, "conversions": unique},
                {"stage": "Visited", "users": unique, "conversions": converted},
                {"stage": "Converted", "users": converted, "conversions": converted},
            ],
        }
        self.cache.set_json(key, result, ttl_seconds=settings.ANALYTICS_CACHE_TTL)
        return result

    def export_report_csv(
        self,
        qr_name: str,
        time_range: str,
        analytics: Dict[str, Any],
        generated_at: Optional[datetime] = None,
    ) -> str:
        """Render advanced analytics as the downloadable CSV report."""
        generated_at = generated_at or datetime.now(timezone.utc)
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")

        writer.writerow(["QR Code Analytics Report"])
        writer.writerow([f"QR Code: {qr_name}"])
        writer.writerow([f"Time Range: {time_range}"])
        writer.writerow([f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}"])
        writer.writerow([])

        writer.writerow(["Performance Metrics"])
        writer.writerow(["Metric", "Value", "Change"])
        writer.writerow(["Total Scans", analytics["total_scans"], f"{analytics['scan_growth']}%"])
        writer.writerow(["Unique Scans", analytics["unique_scans"], f"{analytics['unique_growth']}%"])
        writer.writerow([
            "Conversion Rate", f"{analytics['conversion_rate']}%", f"{analytics['conversion_growth']}%",
        ])
        writer.writerow([
            "Avg Session Duration", f"{analytics['avg_session_duration']}s", f"{analytics['session_growth']}%",
        ])
        writer.writerow([])

        writer.writerow(["Daily Scans"])
        writer.writerow(["Date", "Total Scans", "Unique Scans", "Conversion Rate"])
        for day in analytics["time_series_data"]:
            writer.writerow([day["date"], day["scans"], day["unique_scans"], f"{day['conversion_rate']}%"])

        return buf.getvalue()

    # --- Internal helpers ---

    @staticmethod
    def _scans_by_date(total: int, unique: int, days: int, today: date) -> List[Dict[str, Any]]:
        # Linear ramp: later days weigh more
        weights = list(range(1, days + 1))
        scans = distribute(total, weights)
        uniques = distribute(unique, weights)
        start = today - timedelta(days=days - 1)
        return [
            {"date": (start + timedelta(days=i)).isoformat(), "scans": s, "unique_scans": u}
            for i, (s, u) in enumerate(zip(scans, uniques))
        ]

    @staticmethod
    def _cache_key(kind: str, qr: QRCode, time_range: str, today: date) -> str:
        return f"analytics:{kind}:{qr.id}:{time_range}:{today.isoformat()}:{qr.scans}:{qr.unique_scans}"


analytics_service = AnalyticsService()
