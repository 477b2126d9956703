"""
Quartz Console

Manage HTTP jobs on a remote cron scheduler service.

Main Components:
- SchedulerApiClient: Calls the scheduler service's JSON API
- ConsoleController: View state machine and dashboard polling
- JobDataMap: Codec between job data maps and HTTP dispatch settings
- JobForm / validate: Job form state and client-side validation
- Configuration: Service URL, polling and logging settings
"""

# Configuration
from .config import ConsoleConfig, ConnectionConfig, DashboardConfig, LoggingConfig

# Models
from .models import TriggerInfo, ExecutionLog, JobRequest, TriggerStats, filter_triggers

# Job data codec
from .jobdata import HttpDispatch, JobDataMap, ReservedKeyError, decode, encode

# Client
from .client import SchedulerApiClient, ConsoleError, TransportError, ValidationError

# Forms
from .forms import CRON_PRESETS, FormMode, JobForm, build_request, validate

# Controller
from .controller import AppState, ConsoleController, InvalidTransition, View, ViewKind

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "ConsoleConfig",
    "ConnectionConfig",
    "DashboardConfig",
    "LoggingConfig",
    # Models
    "TriggerInfo",
    "ExecutionLog",
    "JobRequest",
    "TriggerStats",
    "filter_triggers",
    # Job data codec
    "HttpDispatch",
    "JobDataMap",
    "ReservedKeyError",
    "decode",
    "encode",
    # Client
    "SchedulerApiClient",
    "ConsoleError",
    "TransportError",
    "ValidationError",
    # Forms
    "CRON_PRESETS",
    "FormMode",
    "JobForm",
    "build_request",
    "validate",
    # Controller
    "AppState",
    "ConsoleController",
    "InvalidTransition",
    "View",
    "ViewKind",
]
