"""
Tests for the command-line interface, run against the in-memory service.
"""

import json
import logging
from datetime import datetime

import pytest
import requests

from quartz_console import cli

from conftest import BASE_URL


@pytest.fixture
def run(monkeypatch, tmp_path, client):
    """Run the CLI with the fake service behind it."""
    monkeypatch.setattr(cli, "build_client", lambda config: client)
    config_path = tmp_path / "config.json"

    def _run(*argv):
        cli.main(["-c", str(config_path), "-u", BASE_URL, *argv])

    return _run


def test_list(scheduler, run, capsys):
    scheduler.add_job("report", group="billing")
    scheduler.add_job("ping", state="PAUSED")

    run("list")

    out = capsys.readouterr().out
    assert "Total Jobs: 2   Active: 1   Paused: 1" in out
    assert "report" in out
    assert "ping" in out


def test_list_search(scheduler, run, capsys):
    scheduler.add_job("report", group="billing")
    scheduler.add_job("ping")

    run("list", "--search", "BILL")

    out = capsys.readouterr().out
    assert "Scheduled Jobs matching 'BILL' (1 job)" in out
    assert "ping" not in out


def test_list_unreachable_exits_nonzero(scheduler, run, capsys):
    scheduler.fail_with = requests.exceptions.ConnectionError("refused")

    with pytest.raises(SystemExit) as exc_info:
        run("list")

    assert exc_info.value.code == 1
    assert "Could not reach scheduler" in capsys.readouterr().out


def test_create(scheduler, run, capsys):
    run(
        "create", "report",
        "--group", "billing",
        "--preset", "every-weekday-at-9-am",
        "--method", "post",
        "--url", "http://h/x",
        "--body", '{"a":1}',
        "--header", "X-Key=abc",
        "--prop", "retries=3",
        "--start", "2026-10-20 09:00",
    )

    job = scheduler.jobs[("billing", "report")]
    assert job['cronExpression'] == "0 0 9 ? * MON-FRI"
    assert job['jobDataMap'] == {
        'method': 'POST',
        'url': 'http://h/x',
        'body': '{"a":1}',
        'header.X-Key': 'abc',
        'retries': '3',
    }
    assert job['startTime'] == int(datetime(2026, 10, 20, 9, 0).timestamp() * 1000)
    assert "✓ billing/report saved" in capsys.readouterr().out


def test_create_rejected_exits_nonzero(scheduler, run):
    with pytest.raises(SystemExit) as exc_info:
        run("create", "report", "--url", "http://h", "--cron", "* * *")

    assert exc_info.value.code == 1
    assert scheduler.jobs == {}


def test_create_without_url_fails_validation(scheduler, run):
    with pytest.raises(SystemExit):
        run("create", "report")

    assert scheduler.posted() == []


def test_create_bad_time_exits_nonzero(run):
    with pytest.raises(SystemExit) as exc_info:
        run("create", "report", "--url", "http://h", "--start", "tomorrow")

    assert exc_info.value.code == 1


def test_edit_changes_only_given_fields(scheduler, run):
    scheduler.add_job(
        "report",
        data_map={'method': 'PUT', 'url': 'http://h', 'body': '{}', 'retries': '3', 'old': 'x'}
    )

    run("edit", "DEFAULT", "report", "--cron", "0 0 * * * ?", "--prop", "retries=5", "--remove-prop", "old")

    job = scheduler.jobs[("DEFAULT", "report")]
    assert job['cronExpression'] == "0 0 * * * ?"
    assert job['jobDataMap'] == {'method': 'PUT', 'url': 'http://h', 'body': '{}', 'retries': '5'}


def test_edit_missing_job(run):
    with pytest.raises(SystemExit) as exc_info:
        run("edit", "DEFAULT", "missing", "--url", "http://h")

    assert exc_info.value.code == 1


def test_delete_with_yes(scheduler, run, capsys):
    scheduler.add_job("report")

    run("delete", "DEFAULT", "report", "--yes")

    assert scheduler.jobs == {}
    assert "✓ Deleted DEFAULT/report" in capsys.readouterr().out


def test_delete_cancelled(scheduler, run, monkeypatch, capsys):
    scheduler.add_job("report")
    monkeypatch.setattr("builtins.input", lambda prompt: "n")

    run("delete", "DEFAULT", "report")

    assert ("DEFAULT", "report") in scheduler.jobs
    assert "Cancelled" in capsys.readouterr().out


def test_show(scheduler, run, capsys):
    scheduler.add_job("report", data_map={'method': 'GET', 'url': 'http://h/ping', 'header.Accept': 'json'})

    run("show", "DEFAULT", "report")

    out = capsys.readouterr().out
    assert "URL:    http://h/ping" in out
    assert "Accept: json" in out


def test_show_lists_recent_executions(scheduler, run, capsys):
    scheduler.add_job("report")
    scheduler.add_history("report", status="FAILURE", message="timeout")

    run("show", "DEFAULT", "report")

    out = capsys.readouterr().out
    assert "Execution History" in out
    assert "FAILURE" in out
    assert "timeout" in out


def test_history_json(scheduler, run, capsys):
    scheduler.add_job("report")
    scheduler.add_history("report", count=5)

    run("history", "DEFAULT", "report", "--limit", "2", "--json")

    logs = json.loads(capsys.readouterr().out)
    assert [log['id'] for log in logs] == ["log-5", "log-4"]


def test_groups(scheduler, run, capsys):
    scheduler.add_job("report", group="billing")

    run("groups")

    assert capsys.readouterr().out.split() == ["billing", "DEFAULT"]


def test_init_and_show_config(tmp_path, run, capsys):
    run("init")
    assert (tmp_path / "config.json").exists()

    run("show-config")

    out = capsys.readouterr().out
    assert f"Scheduler URL: {BASE_URL}" in out


def test_no_command_prints_help():
    with pytest.raises(SystemExit):
        cli.main([])


@pytest.mark.parametrize("limit", ["0", "-1"])
def test_history_rejects_non_positive_limit(scheduler, run, limit):
    scheduler.add_history("report")

    with pytest.raises(SystemExit) as exc_info:
        run("history", "DEFAULT", "report", "--limit", limit)

    assert exc_info.value.code == 2
    assert scheduler.requests == []


def test_watch_rejects_zero_interval(run):
    with pytest.raises(SystemExit) as exc_info:
        run("watch", "--interval", "0")

    assert exc_info.value.code == 2


def test_client_closed_after_command(scheduler, run, client, monkeypatch):
    closed = []
    monkeypatch.setattr(client, "close", lambda: closed.append(True))

    run("list")
    assert closed == [True]

    scheduler.fail_with = requests.exceptions.ConnectionError("refused")
    with pytest.raises(SystemExit):
        run("list")
    assert closed == [True, True]


def test_log_level_from_config_file(tmp_path, run):
    (tmp_path / "config.json").write_text(json.dumps({'logging': {'level': 'WARNING'}}))
    root = logging.getLogger()
    level = root.level
    try:
        run("list")
        assert root.level == logging.WARNING
    finally:
        root.setLevel(level)
