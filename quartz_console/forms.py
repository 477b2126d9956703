"""
Job form state and client-side validation.

Only cheap precondition checks happen here; the scheduler service is the
source of truth for anything deeper, cron syntax included.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from quartz_console.config import DEFAULT_GROUP
from quartz_console.jobdata import (
    BODY_METHODS,
    DEFAULT_METHOD,
    HTTP_METHODS,
    decode,
    encode,
    reserved_collisions,
)
from quartz_console.models import JobRequest, TriggerInfo

DEFAULT_CRON = "0 0/5 * * * ?"

# (label, expression) in the scheduler's second-first cron format
CRON_PRESETS: List[Tuple[str, str]] = [
    ("Every minute", "0 * * * * ?"),
    ("Every 5 minutes", "0 0/5 * * * ?"),
    ("Every hour", "0 0 * * * ?"),
    ("Every day at midnight", "0 0 0 * * ?"),
    ("Every weekday at 9 AM", "0 0 9 ? * MON-FRI"),
    ("Every Monday at 9 AM", "0 0 9 ? * MON"),
]


class FormMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


@dataclass
class JobForm:
    """Editable fields of a job, as the form presents them."""
    job_name: str = ""
    job_group: str = DEFAULT_GROUP
    description: str = ""
    cron_expression: str = DEFAULT_CRON
    method: str = DEFAULT_METHOD
    url: str = ""
    body: str = ""
    additional_properties: List[Tuple[str, str]] = field(default_factory=list)
    start_time: Optional[int] = None  # epoch millis
    end_time: Optional[int] = None  # epoch millis

    @classmethod
    def from_trigger(cls, job: TriggerInfo) -> 'JobForm':
        """Prefill the form from an existing job."""
        dispatch = decode(job.job_data_map)
        return cls(
            job_name=job.job_name,
            job_group=job.job_group,
            description=job.description or "",
            cron_expression=job.cron_expression,
            method=dispatch.method,
            url=dispatch.url,
            body=dispatch.body,
            additional_properties=list(dispatch.additional_properties)
        )

    @property
    def body_enabled(self) -> bool:
        """The body field is only offered for methods that send one."""
        return self.method.upper() in BODY_METHODS


def _blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def validate(
    form: JobForm,
    mode: FormMode = FormMode.CREATE,
    original: Optional[TriggerInfo] = None
) -> List[str]:
    """
    Validate a job form before submission.

    Args:
        form: Form to check
        mode: CREATE or EDIT
        original: Job being edited (required for EDIT)

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if mode == FormMode.CREATE:
        if _blank(form.job_name):
            errors.append("Job name is required")
    elif original is not None:
        # name and group identify the job; they can't change after creation
        if form.job_name != original.job_name:
            errors.append(f"Job name cannot be changed (was '{original.job_name}')")
        if form.job_group != original.job_group:
            errors.append(f"Job group cannot be changed (was '{original.job_group}')")

    if _blank(form.job_group):
        errors.append("Job group is required")

    if _blank(form.cron_expression):
        errors.append("Cron expression is required")

    if form.method.upper() not in HTTP_METHODS:
        errors.append(f"Method must be one of {', '.join(HTTP_METHODS)}")

    if _blank(form.url):
        errors.append("Endpoint URL is required")

    for key in reserved_collisions(form.additional_properties):
        errors.append(f"Property key '{key}' is reserved for the HTTP configuration")

    if form.start_time is not None and form.end_time is not None and form.end_time <= form.start_time:
        errors.append("End time must be after start time")

    return errors


def build_request(form: JobForm) -> JobRequest:
    """
    Assemble the create/update payload from a (validated) form.

    Raises:
        ReservedKeyError: If a property collides with a reserved key
    """
    job_data_map = encode(
        form.method.upper(),
        form.url,
        form.body,
        form.additional_properties
    )

    return JobRequest(
        job_name=form.job_name,
        job_group=form.job_group,
        description=form.description,
        cron_expression=form.cron_expression,
        job_data_map=job_data_map,
        start_time=form.start_time,
        end_time=form.end_time
    )
