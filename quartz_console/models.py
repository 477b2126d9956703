"""
Data models for scheduled jobs, their triggers and execution history.

Wire records from the scheduler service use camelCase keys; the
dataclasses here use snake_case and convert at the boundary.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

PAUSED_STATE = "PAUSED"
NEVER = "Never"
COMPLETED = "Completed"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class TriggerInfo:
    """A job together with its (single) cron trigger, as listed by the service"""
    job_name: str
    job_group: str
    trigger_name: str = ""
    trigger_group: str = ""
    description: str = ""
    cron_expression: str = ""
    state: str = ""  # NORMAL, PAUSED, COMPLETE, ERROR, BLOCKED, ...
    last_execution_time: str = NEVER  # timestamp, 'Never'
    next_execution_time: str = COMPLETED  # timestamp, 'Completed'
    job_data_map: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str]:
        """(group, name) identity of the job"""
        return (self.job_group, self.job_name)

    @property
    def is_paused(self) -> bool:
        return self.state == PAUSED_STATE

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'TriggerInfo':
        """Create from a service JSON object"""
        return cls(
            job_name=_text(data.get('jobName')),
            job_group=_text(data.get('jobGroup')),
            trigger_name=_text(data.get('triggerName')),
            trigger_group=_text(data.get('triggerGroup')),
            description=_text(data.get('description')),
            cron_expression=_text(data.get('cronExpression')),
            state=_text(data.get('state')),
            last_execution_time=_text(data.get('lastExecutionTime')) or NEVER,
            next_execution_time=_text(data.get('nextExecutionTime')) or COMPLETED,
            job_data_map=dict(data.get('jobDataMap') or {})
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'jobName': self.job_name,
            'jobGroup': self.job_group,
            'triggerName': self.trigger_name,
            'triggerGroup': self.trigger_group,
            'description': self.description,
            'cronExpression': self.cron_expression,
            'state': self.state,
            'lastExecutionTime': self.last_execution_time,
            'nextExecutionTime': self.next_execution_time,
            'jobDataMap': dict(self.job_data_map)
        }


@dataclass(frozen=True)
class ExecutionLog:
    """One historical firing of a job"""
    id: str
    status: str  # SUCCESS, FAILURE, VETOED, ...
    fire_time: str
    end_time: Optional[str] = None  # absent for aborted runs
    duration: Optional[int] = None  # milliseconds
    message: str = ""
    job_name: str = ""
    job_group: str = ""
    trigger_name: str = ""
    trigger_group: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == "SUCCESS"

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'ExecutionLog':
        """Create from a service JSON object"""
        duration = data.get('duration')
        return cls(
            id=_text(data.get('id')),
            status=_text(data.get('status')),
            fire_time=_text(data.get('fireTime')),
            end_time=_text(data.get('endTime')) or None,
            duration=int(duration) if duration is not None else None,
            message=_text(data.get('message')),
            job_name=_text(data.get('jobName')),
            job_group=_text(data.get('jobGroup')),
            trigger_name=_text(data.get('triggerName')),
            trigger_group=_text(data.get('triggerGroup'))
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'status': self.status,
            'fireTime': self.fire_time,
            'endTime': self.end_time,
            'duration': self.duration,
            'message': self.message,
            'jobName': self.job_name,
            'jobGroup': self.job_group,
            'triggerName': self.trigger_name,
            'triggerGroup': self.trigger_group
        }


@dataclass
class JobRequest:
    """Create/update payload accepted by POST /api/jobs"""
    job_name: str
    job_group: str
    cron_expression: str
    job_data_map: Dict[str, str]
    description: str = ""
    start_time: Optional[int] = None  # epoch millis
    end_time: Optional[int] = None  # epoch millis

    def to_json(self) -> Dict[str, Any]:
        payload = {
            'jobName': self.job_name,
            'jobGroup': self.job_group,
            'description': self.description,
            'cronExpression': self.cron_expression,
            'jobDataMap': dict(self.job_data_map)
        }
        if self.start_time is not None:
            payload['startTime'] = self.start_time
        if self.end_time is not None:
            payload['endTime'] = self.end_time
        return payload


@dataclass
class TriggerStats:
    """Dashboard counters"""
    total: int
    active: int
    paused: int

    @classmethod
    def from_triggers(cls, triggers: List[TriggerInfo]) -> 'TriggerStats':
        paused = sum(1 for t in triggers if t.is_paused)
        return cls(total=len(triggers), active=len(triggers) - paused, paused=paused)


def filter_triggers(triggers: List[TriggerInfo], search_term: str) -> List[TriggerInfo]:
    """
    Filter triggers by a search term.

    Matches case-insensitively as a substring of the job name or the job
    group. An empty term returns the list unchanged.
    """
    if not search_term:
        return list(triggers)

    term = search_term.lower()
    return [
        t for t in triggers
        if term in t.job_name.lower() or term in t.job_group.lower()
    ]
