"""
Shared fixtures: an in-memory scheduler service mounted on a real
requests.Session, so the client runs its full request path without a network.
"""

import json
import logging
from urllib.parse import unquote, urlparse

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from quartz_console.client import SchedulerApiClient

BASE_URL = "http://scheduler.test"


class FakeSchedulerAdapter(BaseAdapter):
    """Answers the scheduler's JSON API from dictionaries."""

    def __init__(self):
        super().__init__()
        self.jobs = {}  # (group, name) -> job JSON
        self.history = {}  # (group, name) -> list of log JSON, newest first
        self.requests = []
        self.fail_with = None  # exception raised for every request
        self.broken = set()  # (method, path) answered with HTTP 500

    def add_job(self, name, group="DEFAULT", state="NORMAL", cron="0 0/5 * * * ?",
                data_map=None, description=""):
        self.jobs[(group, name)] = {
            'jobName': name,
            'jobGroup': group,
            'triggerName': f"{name}Trigger",
            'triggerGroup': group,
            'description': description,
            'cronExpression': cron,
            'state': state,
            'lastExecutionTime': None,
            'nextExecutionTime': "2026-10-19T10:05:00.000+00:00",
            'jobDataMap': dict(data_map or {'method': 'GET', 'url': 'http://example.com/ping'}),
        }
        return self.jobs[(group, name)]

    def add_history(self, name, group="DEFAULT", status="SUCCESS", count=1, message=""):
        logs = self.history.setdefault((group, name), [])
        for _ in range(count):
            n = len(logs) + 1
            logs.insert(0, {
                'id': f"log-{n}",
                'jobName': name,
                'jobGroup': group,
                'triggerName': f"{name}Trigger",
                'triggerGroup': group,
                'fireTime': f"2026-10-19T10:{n:02d}:00.000+00:00",
                'endTime': f"2026-10-19T10:{n:02d}:01.250+00:00",
                'duration': 1250,
                'status': status,
                'message': message,
            })

    def posted(self):
        """JSON bodies of every POST received."""
        return [json.loads(r.body) for r in self.requests if r.method == "POST"]

    def send(self, request, **kwargs):
        self.requests.append(request)

        if self.fail_with is not None:
            raise self.fail_with

        path = urlparse(request.url).path
        if (request.method, path) in self.broken:
            return self._respond(request, 500, "Internal Server Error")

        segments = [unquote(s) for s in path.split('/') if s]

        if request.method == "GET" and path == "/api/jobs":
            return self._respond(request, 200, list(self.jobs.values()))

        if request.method == "GET" and path == "/api/jobs/groups":
            groups = sorted({group for group, _ in self.jobs})
            return self._respond(request, 200, groups)

        if request.method == "POST" and path == "/api/jobs":
            return self._schedule(request)

        if request.method == "DELETE" and segments[:2] == ['api', 'jobs'] and len(segments) == 4:
            key = (segments[2], segments[3])
            if key not in self.jobs:
                return self._respond(request, 404, "")
            del self.jobs[key]
            return self._respond(request, 200, "Job deleted")

        if request.method == "GET" and segments[:2] == ['api', 'history'] and len(segments) == 4:
            return self._respond(request, 200, self.history.get((segments[2], segments[3]), []))

        return self._respond(request, 404, "Not Found")

    def _schedule(self, request):
        payload = json.loads(request.body)
        cron = payload.get('cronExpression') or ""

        if len(cron.split()) not in (6, 7):
            return self._respond(request, 500, f"Invalid cron expression: {cron}")

        job = self.add_job(
            payload['jobName'],
            group=payload['jobGroup'],
            cron=cron,
            data_map=payload.get('jobDataMap'),
            description=payload.get('description', "")
        )
        job['startTime'] = payload.get('startTime')
        job['endTime'] = payload.get('endTime')
        return self._respond(request, 200, "Job scheduled successfully")

    def _respond(self, request, status, payload):
        response = requests.Response()
        response.status_code = status
        response.reason = "OK" if status < 400 else "Error"
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"

        if isinstance(payload, (list, dict)):
            response._content = json.dumps(payload).encode("utf-8")
            response.headers = CaseInsensitiveDict({"Content-Type": "application/json"})
        else:
            response._content = payload.encode("utf-8")
            response.headers = CaseInsensitiveDict({"Content-Type": "text/plain"})

        return response

    def close(self):
        pass


@pytest.fixture
def scheduler():
    return FakeSchedulerAdapter()


@pytest.fixture
def session(scheduler):
    session = requests.Session()
    session.mount(BASE_URL, scheduler)
    return session


@pytest.fixture
def client(session):
    return SchedulerApiClient(BASE_URL, session=session)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the developer's own settings out of the tests."""
    for name in ("QUARTZ_MANAGER_URL", "QUARTZ_CONSOLE_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("QUARTZ_CONSOLE_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging() during a test."""
    root = logging.getLogger()
    before = list(root.handlers)
    yield
    for handler in root.handlers[:]:
        if handler not in before and type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
