"""Tests for analytics shapes and the CSV report."""
import csv
import io
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from qrstudio.core.exceptions import AuthorizationError, ValidationError
from qrstudio.services.analytics_service import AnalyticsService, distribute
from qrstudio.services.cache_service import CacheService

TODAY = date(2024, 1, 7)


@pytest.fixture()
def service():
    return AnalyticsService(cache=CacheService(url=""))


def _qr(scans=1250, unique=890, owner_id=1):
    return SimpleNamespace(id=5, name="Spring Promo", owner_id=owner_id, scans=scans, unique_scans=unique)


def test_distribute_sums_to_total():
    assert distribute(10, [1, 1, 1]) == [4, 3, 3]
    assert sum(distribute(1250, [60, 30, 10])) == 1250
    assert distribute(0, [1, 2]) == [0, 0]


def test_basic_shape(service):
    data = service.get_qr_analytics(_qr(), "7d", today=TODAY)

    assert data["total_scans"] == 1250
    assert data["unique_scans"] == 890
    assert len(data["scans_by_date"]) == 7
    assert data["scans_by_date"][0]["date"] == "2024-01-01"
    assert data["scans_by_date"][-1]["date"] == "2024-01-07"
    assert sum(d["scans"] for d in data["scans_by_date"]) == 1250
    assert sum(d["unique_scans"] for d in data["scans_by_date"]) == 890
    assert data["device_types"][0] == {"device": "Mobile", "count": 750, "percentage": 60}
    assert {l["country"] for l in data["locations"]} >= {"United States", "Others"}
    assert sum(r["percentage"] for r in data["referrers"]) == 100


@pytest.mark.parametrize("time_range,days", [("24h", 1), ("7d", 7), ("30d", 30), ("90d", 90)])
def test_range_lengths(service, time_range, days):
    assert len(service.get_qr_analytics(_qr(), time_range, today=TODAY)["scans_by_date"]) == days


def test_invalid_range(service):
    with pytest.raises(ValidationError):
        service.get_qr_analytics(_qr(), "1y")


def test_advanced_shape(service):
    data = service.get_advanced_analytics(_qr(), "7d", today=TODAY)

    assert data["conversion_rate"] == 71.2
    assert len(data["hourly"]) == 24
    assert data["hourly"][0]["time"] == "00:00"
    assert sum(h["scans"] for h in data["hourly"]) == 1250
    assert [s["stage"] for s in data["conversion_funnel"]] == ["Scanned", "Visited", "Converted"]
    assert len(data["time_series_data"]) == 7
    assert set(data["time_series_data"][0]) == {"date", "scans", "unique_scans", "conversion_rate"}
    # later days weigh more, so the range is growing
    assert data["scan_growth"] > 0
    for key in ("unique_growth", "conversion_growth", "avg_session_duration", "session_growth"):
        assert key in data


def test_zero_scans_has_no_division_errors(service):
    data = service.get_advanced_analytics(_qr(scans=0, unique=0), "30d", today=TODAY)
    assert data["conversion_rate"] == 0.0
    assert data["avg_session_duration"] == 0.0
    assert all(d["scans"] == 0 for d in data["scans_by_date"])


def test_export_csv_layout(service):
    analytics = service.get_advanced_analytics(_qr(), "7d", today=TODAY)
    text = service.export_report_csv("Spring Promo", "7d", analytics, datetime(2024, 1, 7, 12, 30, 0))
    rows = list(csv.reader(io.StringIO(text)))

    assert rows[0] == ["QR Code Analytics Report"]
    assert rows[1] == ["QR Code: Spring Promo"]
    assert rows[2] == ["Time Range: 7d"]
    assert rows[3] == ["Generated: 2024-01-07 12:30:00"]
    assert rows[4] == []
    assert rows[5] == ["Performance Metrics"]
    assert rows[6] == ["Metric", "Value", "Change"]
    assert rows[7][:2] == ["Total Scans", "1250"]
    assert rows[9][1] == "71.2%"
    assert rows[10][0] == "Avg Session Duration" and rows[10][1].endswith("s")
    assert rows[11] == []
    assert rows[12] == ["Daily Scans"]
    assert rows[13] == ["Date", "Total Scans", "Unique Scans", "Conversion Rate"]
    assert len(rows[14:]) == 7
    assert rows[14][0] == "2024-01-01" and rows[14][3].endswith("%")


def test_authorize(service):
    owner = SimpleNamespace(id=1, role="editor")
    stranger = SimpleNamespace(id=2, role="editor")
    admin = SimpleNamespace(id=3, role="admin")
    guest = SimpleNamespace(id=1, role="guest")

    service.authorize(owner, _qr())
    service.authorize(admin, _qr())
    with pytest.raises(AuthorizationError):
        service.authorize(stranger, _qr())
    with pytest.raises(AuthorizationError):
        service.authorize(guest, _qr())
