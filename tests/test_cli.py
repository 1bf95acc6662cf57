"""Tests for the command line entry points."""

import json
import os

import pytest
from structlog.testing import capture_logs

from salon_analytics import cli


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep global logging configuration untouched and structlog output out of stdout."""
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    for name in list(os.environ):
        if name.startswith("SALON_ANALYTICS_"):
            monkeypatch.delenv(name)
    with capture_logs():
        yield


@pytest.fixture
def bookings_file(tmp_path):
    path = tmp_path / "bookings.json"
    path.write_text(
        json.dumps(
            [
                {"scheduled_date": "2025-06-10T09:00:00Z", "total_price": 100, "service_name": "Haircut"},
                {"scheduled_date": "2025-06-10T15:00:00Z", "total_price": 50, "service_name": "Haircut"},
                {"scheduled_date": "2025-06-03T11:00:00Z", "total_price": 100, "service_name": "Color"},
            ]
        )
    )
    return path


@pytest.fixture
def clients_file(tmp_path):
    path = tmp_path / "clients.json"
    path.write_text(
        json.dumps(
            [
                {"customer_id": "C1", "tenant_id": "salon-1", "last_visit": "2025-06-01T00:00:00Z", "total_visits": 1, "total_spent": 1000},
                {"customer_id": "C2", "tenant_id": "salon-1", "last_visit": "2025-06-01T00:00:00Z", "total_visits": 5, "total_spent": 5000},
                {"customer_id": "C3", "tenant_id": "salon-1", "last_visit": "2025-06-01T00:00:00Z", "total_visits": 10, "total_spent": 10000},
            ]
        )
    )
    return path


class TestReportCli:
    """Test report_cli."""

    def test_window_report(self, bookings_file, capsys):
        exit_code = cli.report_cli(
            [str(bookings_file), "--window", "7D", "--now", "2025-06-15T00:00:00Z"]
        )

        assert exit_code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["window_id"] == "7D"
        assert len(payload["current"]["buckets"]) == 7
        assert payload["current"]["buckets"][2]["total"] == "150.00"
        assert payload["percent_deltas"]["revenue"] == "50.00"
        assert payload["insights"][0]["severity"] == "positive"
        assert any("Haircut is your top performer" in i["text"] for i in payload["insights"])

    def test_custom_range_report(self, bookings_file, capsys):
        exit_code = cli.report_cli(
            [str(bookings_file), "--start", "2025-06-09T00:00:00Z", "--end", "2025-06-12T00:00:00Z"]
        )

        assert exit_code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["window_id"] is None
        assert len(payload["current"]["buckets"]) == 3

    def test_report_with_snapshots(self, bookings_file, clients_file, capsys):
        exit_code = cli.report_cli(
            [
                str(bookings_file),
                "--window",
                "7D",
                "--now",
                "2025-06-15T00:00:00Z",
                "--tenant",
                "salon-1",
                "--snapshots",
                str(clients_file),
            ]
        )

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out)["percent_deltas"]["activity"] == "100.00"

    def test_unknown_window_returns_error(self, bookings_file, capsys):
        exit_code = cli.report_cli([str(bookings_file), "--window", "13W"])

        assert exit_code == 2
        assert capsys.readouterr().out == ""

    def test_missing_mode_returns_error(self, bookings_file):
        assert cli.report_cli([str(bookings_file)]) == 2

    def test_non_list_input_returns_error(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"timestamp": "2025-06-10T09:00:00Z"}))

        assert cli.report_cli([str(path), "--window", "7D"]) == 2

    def test_oversized_input_returns_error(self, bookings_file, monkeypatch):
        monkeypatch.setattr(cli, "MAX_INPUT_BYTES", 10)
        assert cli.report_cli([str(bookings_file), "--window", "7D"]) == 2

    def test_unknown_timezone_returns_error(self, bookings_file, capsys):
        exit_code = cli.report_cli(
            [str(bookings_file), "--window", "7D", "--timezone", "Mars/Olympus"]
        )

        assert exit_code == 2
        assert capsys.readouterr().out == ""

    def test_invalid_max_points_env_returns_error(self, bookings_file, monkeypatch):
        monkeypatch.setenv("SALON_ANALYTICS_MAX_POINTS", "lots")
        assert cli.report_cli([str(bookings_file), "--window", "7D"]) == 2


class TestScoreCli:
    """Test score_cli."""

    def test_scores_and_segments(self, clients_file, capsys):
        exit_code = cli.score_cli([str(clients_file), "--now", "2025-06-15T00:00:00Z"])

        assert exit_code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["tenant_id"] == "salon-1"
        assert [s["rfm_scores"]["frequency"] for s in payload["scores"]] == [1, 3, 5]
        assert len(payload["segments"]) == 11
        loyal = next(s for s in payload["segments"] if s["segment"] == "loyal")
        assert loyal["count"] == 1

    def test_several_tenants_need_flag(self, tmp_path):
        path = tmp_path / "clients.json"
        path.write_text(
            json.dumps(
                [
                    {"customer_id": "C1", "tenant_id": "salon-1", "total_visits": 1, "total_spent": 10},
                    {"customer_id": "C2", "tenant_id": "salon-2", "total_visits": 2, "total_spent": 20},
                ]
            )
        )

        assert cli.score_cli([str(path)]) == 2

    def test_invalid_record_returns_error(self, tmp_path):
        path = tmp_path / "clients.json"
        path.write_text(json.dumps([{"customer_id": "C1", "tenant_id": "salon-1", "total_visits": -3}]))

        assert cli.score_cli([str(path)]) == 2

    def test_invalid_environment_returns_error(self, clients_file, monkeypatch):
        monkeypatch.setenv("SALON_ANALYTICS_TIMEZONE", "Not/AZone")
        assert cli.score_cli([str(clients_file)]) == 2
