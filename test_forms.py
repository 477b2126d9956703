"""
Tests for job form validation and request building.
"""

from dataclasses import replace

import pytest

from quartz_console.forms import (
    CRON_PRESETS,
    DEFAULT_CRON,
    FormMode,
    JobForm,
    build_request,
    validate,
)
from quartz_console.jobdata import ReservedKeyError
from quartz_console.models import TriggerInfo


def _form(**kwargs):
    fields = dict(job_name="report", url="http://h/x")
    fields.update(kwargs)
    return JobForm(**fields)


def test_defaults():
    form = JobForm()

    assert form.job_group == "DEFAULT"
    assert form.cron_expression == DEFAULT_CRON
    assert form.method == "GET"
    assert not form.body_enabled


def test_valid_form():
    assert validate(_form()) == []


def test_name_required_on_create():
    errors = validate(_form(job_name="  "))

    assert errors == ["Job name is required"]


@pytest.mark.parametrize("field,message", [
    ("job_group", "Job group is required"),
    ("cron_expression", "Cron expression is required"),
    ("url", "Endpoint URL is required"),
])
def test_required_fields(field, message):
    errors = validate(_form(**{field: ""}))

    assert message in errors


def test_unknown_method():
    errors = validate(_form(method="PATCH"))

    assert errors == ["Method must be one of GET, POST, PUT, DELETE"]


def test_lowercase_method_accepted():
    assert validate(_form(method="post")) == []


def test_reserved_property_key_reported():
    errors = validate(_form(additional_properties=[("url", "http://other")]))

    assert errors == ["Property key 'url' is reserved for the HTTP configuration"]


def test_end_must_follow_start():
    assert validate(_form(start_time=2000, end_time=1000)) == ["End time must be after start time"]
    assert validate(_form(start_time=1000, end_time=1000)) == ["End time must be after start time"]
    assert validate(_form(start_time=1000, end_time=2000)) == []
    assert validate(_form(end_time=1000)) == []


def test_cron_syntax_left_to_service():
    assert validate(_form(cron_expression="not a cron")) == []


def test_edit_keeps_identity():
    original = TriggerInfo(job_name="report", job_group="billing")
    form = _form(job_group="billing")

    assert validate(form, FormMode.EDIT, original) == []

    errors = validate(replace(form, job_name="renamed", job_group="ops"), FormMode.EDIT, original)
    assert errors == [
        "Job name cannot be changed (was 'report')",
        "Job group cannot be changed (was 'billing')",
    ]


def test_from_trigger_prefills_decoded_fields():
    job = TriggerInfo(
        job_name="report",
        job_group="billing",
        description=None,
        cron_expression="0 0 9 ? * MON",
        job_data_map={'method': 'PUT', 'url': 'http://h', 'body': '{}', 'z': '1', 'a': '2'}
    )

    form = JobForm.from_trigger(job)

    assert form.job_name == "report"
    assert form.description == ""
    assert form.method == "PUT"
    assert form.body_enabled
    assert form.additional_properties == [("a", "2"), ("z", "1")]


def test_build_request():
    form = _form(
        method="post",
        body='{"a":1}',
        description="Nightly",
        additional_properties=[("header.X-Key", "abc")],
        start_time=1000
    )

    request = build_request(form)

    assert request.job_name == "report"
    assert request.description == "Nightly"
    assert request.start_time == 1000
    assert request.end_time is None
    assert request.job_data_map == {
        'method': 'POST',
        'url': 'http://h/x',
        'body': '{"a":1}',
        'header.X-Key': 'abc',
    }


def test_build_request_rejects_reserved_keys():
    with pytest.raises(ReservedKeyError):
        build_request(_form(additional_properties=[("method", "GET")]))


def test_presets_are_second_first_cron():
    assert len(CRON_PRESETS) == 6
    for label, expression in CRON_PRESETS:
        assert label
        assert len(expression.split()) == 6
