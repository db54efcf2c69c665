from __future__ import annotations

from datetime import datetime, timezone

from weathercompare.querylog import QueryLogEntry
from weathercompare.services import analytics


def entry(api="OpenWeatherMap", location="London", time=500, status="success", at="2024-03-10T12:00:00+00:00"):
    return QueryLogEntry(api_name=api, location=location, response_time=time, status=status, timestamp=at)


def test_summary_of_three_queries():
    logs = [entry(time=500), entry(time=600), entry(time=1000, status="error")]

    summary = analytics.summarize_queries(logs)

    assert summary["totalQueries"] == 3
    assert summary["successfulQueries"] == 2
    assert summary["failedQueries"] == 1
    assert summary["successRate"] == 67
    assert summary["averageResponseTime"] == 700


def test_empty_log_gives_zeros():
    summary = analytics.summarize_queries([])

    assert summary["totalQueries"] == 0
    assert summary["successRate"] == 0
    assert summary["averageResponseTime"] == 0
    assert summary["apiBreakdown"] == {}
    assert summary["locationBreakdown"] == {}
    assert summary["dailyBreakdown"] == {}


def test_cache_hits_count_for_success_but_not_latency():
    stats = analytics.compute_stats([entry(time=0), entry(time=400), entry(time=800)])

    assert stats["total"] == 3
    assert stats["successRate"] == 100
    assert stats["averageResponseTime"] == 600
    assert stats["medianResponseTime"] == 600
    assert stats["minResponseTime"] == 400
    assert stats["maxResponseTime"] == 800


def test_breakdown_by_api():
    logs = [
        entry(api="WeatherAPI", time=300),
        entry(api="AccuWeather", status="error"),
        entry(api="WeatherAPI", time=500),
    ]

    breakdown = analytics.breakdown_by_api(logs)

    assert breakdown["WeatherAPI"]["total"] == 2
    assert breakdown["WeatherAPI"]["averageResponseTime"] == 400
    assert breakdown["AccuWeather"]["successRate"] == 0


def test_breakdown_by_day_is_sorted():
    logs = [
        entry(at="2024-03-11T09:00:00+00:00"),
        entry(at="2024-03-10T23:59:00+00:00"),
        entry(at="2024-03-11T10:00:00+00:00"),
    ]

    breakdown = analytics.breakdown_by_day(logs)

    assert list(breakdown) == ["2024-03-10", "2024-03-11"]
    assert breakdown["2024-03-11"]["total"] == 2


def test_location_breakdown_keeps_top_entries():
    logs = [entry(location=f"City {index}") for index in range(12)] + [entry(location="London")] * 3

    breakdown = analytics.location_breakdown(logs)

    assert len(breakdown) == 10
    assert next(iter(breakdown)) == "London"
    assert breakdown["London"] == 3


def test_filters():
    logs = [
        entry(api="WeatherAPI", location="London", time=200),
        entry(api="AccuWeather", location="Manchester", time=3000, status="error", at="2024-03-12T08:00:00+00:00"),
    ]

    assert analytics.filter_by_api(logs, "WeatherAPI") == logs[:1]
    assert analytics.filter_by_location(logs, "manch") == logs[1:]
    assert analytics.filter_by_status(logs, "error") == logs[1:]
    assert analytics.filter_by_performance(logs, "fast") == logs[:1]
    assert analytics.filter_by_performance(logs, "slow") == logs[1:]


def test_filter_by_date_range_is_inclusive():
    logs = [
        entry(at="2024-03-10T00:00:00+00:00"),
        entry(at="2024-03-11T00:00:00+00:00"),
        entry(at="2024-03-12T00:00:00+00:00"),
    ]

    selected = analytics.filter_by_date_range(
        logs, datetime(2024, 3, 10, tzinfo=timezone.utc), datetime(2024, 3, 11)
    )

    assert selected == logs[:2]


def test_accuracy_history_per_provider():
    logs = [
        entry(api="WeatherAPI", time=200, at="2024-03-10T10:00:00+00:00"),
        entry(api="WeatherAPI", time=400, status="error", at="2024-03-11T10:00:00+00:00"),
        entry(api="AccuWeather", time=900),
    ]

    history = analytics.accuracy_history(logs)

    assert history["WeatherAPI"]["totalRequests"] == 2
    assert history["WeatherAPI"]["successRate"] == 50
    assert history["WeatherAPI"]["averageResponseTime"] == 300
    assert list(history["WeatherAPI"]["dailyBreakdown"]) == ["2024-03-10", "2024-03-11"]
    assert history["AccuWeather"]["successRate"] == 100


def test_filter_logs_combines_filters():
    logs = [
        entry(api="WeatherAPI", location="London", time=200),
        entry(api="WeatherAPI", location="Londonderry", time=2500, status="error"),
        entry(api="AccuWeather", location="London", time=300),
        entry(api="WeatherAPI", location="London", time=250, at="2024-03-01T12:00:00+00:00"),
    ]

    assert analytics.filter_logs(logs) == logs
    assert analytics.filter_logs(logs, api_name="WeatherAPI", location="london") == [logs[0], logs[1], logs[3]]
    assert analytics.filter_logs(logs, api_name="WeatherAPI", performance="fast") == [logs[0], logs[3]]
    assert analytics.filter_logs(logs, status="error") == [logs[1]]
    assert analytics.filter_logs(
        logs, api_name="WeatherAPI", start=datetime(2024, 3, 5, tzinfo=timezone.utc)
    ) == logs[:2]


def test_daily_api_metrics_rows():
    logs = [
        entry(api="WeatherAPI", time=200, at="2024-03-10T10:00:00+00:00"),
        entry(api="WeatherAPI", time=600, status="error", at="2024-03-10T11:00:00+00:00"),
        entry(api="AccuWeather", time=900, at="2024-03-10T09:00:00+00:00"),
        entry(api="WeatherAPI", time=300, at="2024-03-09T10:00:00+00:00"),
    ]

    rows = analytics.daily_api_metrics(logs)

    assert [(row["date"], row["apiName"]) for row in rows] == [
        ("2024-03-10", "AccuWeather"),
        ("2024-03-10", "WeatherAPI"),
        ("2024-03-09", "WeatherAPI"),
    ]
    assert rows[1] == {
        "apiName": "WeatherAPI",
        "date": "2024-03-10",
        "totalRequests": 2,
        "successfulRequests": 1,
        "failedRequests": 1,
        "avgResponseTime": 400,
        "minResponseTime": 200,
        "maxResponseTime": 600,
    }
