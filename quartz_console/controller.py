"""
Console controller: navigation state machine and dashboard polling.

The controller owns one AppState value and replaces it only through its
named actions (navigate, data_loaded, load_failed, history_loaded,
groups_loaded, delete_failed, submit_started, submit_failed,
submit_succeeded, set_search).

Network calls run on a worker thread via asyncio.to_thread; all state
changes happen back on the event loop. Each list request is tagged with
the view epoch it was issued in and a request sequence number, and a
response is applied only if its view is still showing and nothing newer
has been applied since.

Polling uses an APScheduler AsyncIOScheduler interval job that exists
only while the dashboard is the active view.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED, EVENT_JOB_MAX_INSTANCES
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from quartz_console.client import ConsoleError, SchedulerApiClient, TransportError
from quartz_console.config import ConsoleConfig
from quartz_console.forms import FormMode, JobForm, build_request, validate
from quartz_console.models import ExecutionLog, TriggerInfo, TriggerStats, filter_triggers

logger = logging.getLogger(__name__)

POLL_JOB_PREFIX = "dashboard-poll"


class InvalidTransition(ConsoleError):
    """Raised when an action isn't available from the current view."""
    pass


class ViewKind(str, Enum):
    DASHBOARD = "dashboard"
    FORM = "form"
    DETAILS = "details"
    HISTORY = "history"


@dataclass(frozen=True)
class View:
    """The active view and the job snapshot it is about (if any)."""
    kind: ViewKind = ViewKind.DASHBOARD
    job: Optional[TriggerInfo] = None
    mode: Optional[FormMode] = None

    @classmethod
    def dashboard(cls) -> 'View':
        return cls()

    @classmethod
    def create_form(cls) -> 'View':
        return cls(ViewKind.FORM, mode=FormMode.CREATE)

    @classmethod
    def edit_form(cls, job: TriggerInfo) -> 'View':
        return cls(ViewKind.FORM, job=job, mode=FormMode.EDIT)

    @classmethod
    def details(cls, job: TriggerInfo) -> 'View':
        return cls(ViewKind.DETAILS, job=job)

    @classmethod
    def history(cls, job: TriggerInfo) -> 'View':
        return cls(ViewKind.HISTORY, job=job)


@dataclass(frozen=True)
class AppState:
    """Everything the console displays. Replaced, never mutated."""
    view: View = View()
    triggers: Tuple[TriggerInfo, ...] = ()
    loading: bool = True
    error: str = ""  # dashboard banner
    search_term: str = ""
    form: Optional[JobForm] = None
    form_error: str = ""
    submitting: bool = False
    groups: Tuple[str, ...] = ()
    history: Tuple[ExecutionLog, ...] = ()
    history_loading: bool = False


Listener = Callable[[AppState], None]


class ConsoleController:
    """
    Drives the console's views against a scheduler service.

    Usage:
        controller = ConsoleController(client, config)
        await controller.start()      # dashboard + polling
        ...
        await controller.stop()

    One-shot callers may skip start()/stop() and call refresh() directly;
    polling then never runs.
    """

    def __init__(
        self,
        client: SchedulerApiClient,
        config: Optional[ConsoleConfig] = None,
        scheduler: Optional[AsyncIOScheduler] = None
    ):
        self.client = client
        self.config = config or ConsoleConfig()
        self.scheduler = scheduler or AsyncIOScheduler(
            job_defaults={
                'coalesce': True,  # Collapse missed polls into one
                'max_instances': 1,  # Never overlap polls
            }
        )
        self.state = AppState()

        self._listeners: List[Listener] = []
        self._epoch = 0
        self._last_seq = 0
        self._applied_seq = 0
        self._poll_job_id: Optional[str] = None

        self._setup_event_listeners()

    def _setup_event_listeners(self):
        """Log poll job problems reported by APScheduler."""

        def job_error_listener(event):
            logger.error(f"Job '{event.job_id}' raised exception: {event.exception}")

        def job_missed_listener(event):
            logger.warning(f"Job '{event.job_id}' missed scheduled run time")

        def job_skipped_listener(event):
            logger.debug(f"Job '{event.job_id}' skipped: previous run still in progress")

        self.scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)
        self.scheduler.add_listener(job_missed_listener, EVENT_JOB_MISSED)
        self.scheduler.add_listener(job_skipped_listener, EVENT_JOB_MAX_INSTANCES)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        """Start the scheduler and, on the dashboard, begin polling."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Console scheduler started")

        if self.state.view.kind == ViewKind.DASHBOARD:
            self._start_polling()

    async def stop(self):
        """Stop polling and shut the scheduler down."""
        self._stop_polling()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            # AsyncIOScheduler defers shutdown to the loop
            await asyncio.sleep(0)
            logger.info("Console scheduler stopped")

    @property
    def polling(self) -> bool:
        return self._poll_job_id is not None and self.scheduler.get_job(self._poll_job_id) is not None

    def _start_polling(self):
        if not self.scheduler.running:
            return

        # a poll left running from an earlier visit must not hold up this one
        job_id = f"{POLL_JOB_PREFIX}-{self._epoch}"
        interval = self.config.dashboard.poll_interval_seconds
        self.scheduler.add_job(
            self.poll,
            'interval',
            seconds=interval,
            id=job_id,
            replace_existing=True,
            next_run_time=datetime.now()
        )
        self._poll_job_id = job_id
        logger.debug(f"Polling jobs every {interval}s ({job_id})")

    def _stop_polling(self):
        job_id, self._poll_job_id = self._poll_job_id, None
        if job_id is not None and self.scheduler.get_job(job_id) is not None:
            self.scheduler.remove_job(job_id)
            logger.debug("Polling stopped")

    def subscribe(self, listener: Listener):
        """Call listener with the new state after every action."""
        self._listeners.append(listener)

    def _set(self, **changes):
        self.state = replace(self.state, **changes)
        for listener in self._listeners:
            listener(self.state)

    def _require(self, kind: ViewKind, action: str):
        if self.state.view.kind != kind:
            raise InvalidTransition(
                f"Cannot {action} from the {self.state.view.kind.value} view"
            )

    def _next_seq(self) -> int:
        self._last_seq += 1
        return self._last_seq

    # ------------------------------------------------------------------
    # Named actions
    # ------------------------------------------------------------------

    def navigate(self, view: View, form: Optional[JobForm] = None):
        """
        Switch the active view.

        Any response still in flight for the previous view is invalidated.
        Leaving the dashboard stops polling; returning to it clears the held
        job, form and history and restarts polling with an immediate run.
        """
        previous = self.state.view.kind
        self._epoch += 1

        if previous == ViewKind.DASHBOARD and view.kind != ViewKind.DASHBOARD:
            self._stop_polling()

        self._set(
            view=view,
            form=form,
            form_error="",
            submitting=False,
            history=(),
            history_loading=view.kind in (ViewKind.DETAILS, ViewKind.HISTORY)
        )
        logger.debug(f"View: {previous.value} -> {view.kind.value}")

        if view.kind == ViewKind.DASHBOARD and previous != ViewKind.DASHBOARD:
            self._start_polling()

    def _is_current(self, epoch: int, seq: Optional[int] = None) -> bool:
        if epoch != self._epoch:
            return False
        return seq is None or seq > self._applied_seq

    def data_loaded(self, triggers: List[TriggerInfo], epoch: int, seq: int) -> bool:
        """Apply a job listing. Returns False if the response was stale."""
        if not self._is_current(epoch, seq):
            logger.debug(f"Discarding stale job list (request {seq})")
            return False

        self._applied_seq = seq
        self._set(triggers=tuple(triggers), loading=False, error="")
        return True

    def load_failed(self, message: str, epoch: int, seq: int) -> bool:
        """Show a listing failure in the banner; the old list stays visible."""
        if not self._is_current(epoch, seq):
            logger.debug(f"Discarding stale list failure (request {seq})")
            return False

        self._applied_seq = seq
        self._set(loading=False, error=message)
        return True

    def history_loaded(self, logs: List[ExecutionLog], epoch: int) -> bool:
        if not self._is_current(epoch):
            logger.debug("Discarding history for a view that is no longer shown")
            return False

        self._set(history=tuple(logs), history_loading=False)
        return True

    def groups_loaded(self, groups: List[str], epoch: int) -> bool:
        if not self._is_current(epoch):
            return False

        self._set(groups=tuple(groups))
        return True

    def delete_failed(self, message: str, epoch: int) -> bool:
        """Show a delete failure in the banner, if the dashboard is still showing."""
        if not self._is_current(epoch):
            logger.debug("Discarding delete failure for a view that is no longer shown")
            return False

        self._set(error=message)
        return True

    def submit_started(self, form: JobForm):
        self._set(form=form, submitting=True, form_error="")

    def submit_failed(self, message: str, form: Optional[JobForm] = None):
        self._set(form=form or self.state.form, submitting=False, form_error=message)

    def submit_succeeded(self):
        self.navigate(View.dashboard())

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def refresh(self) -> bool:
        """
        Re-fetch the job list (manual refresh, poll, or after a change).

        Returns:
            True if the result was applied to the dashboard
        """
        if self.state.view.kind != ViewKind.DASHBOARD:
            logger.debug("Not on the dashboard, skipping refresh")
            return False

        epoch, seq = self._epoch, self._next_seq()
        try:
            triggers = await asyncio.to_thread(self.client.list_jobs)
        except TransportError as e:
            logger.warning(f"Job list refresh failed: {e}")
            self.load_failed(str(e), epoch, seq)
            return False

        return self.data_loaded(triggers, epoch, seq)

    async def poll(self):
        """Scheduled refresh; runs only while the dashboard is active."""
        logger.debug("Polling job list")
        await self.refresh()

    async def delete(self, job: TriggerInfo):
        """
        Delete a job, then refresh. The caller confirms beforehand.

        Raises:
            TransportError: If the service didn't delete the job
        """
        self._require(ViewKind.DASHBOARD, "delete a job")

        epoch = self._epoch
        try:
            await asyncio.to_thread(self.client.delete_job, job.job_group, job.job_name)
        except TransportError as e:
            self.delete_failed(str(e), epoch)
            raise

        logger.info(f"Deleted job {job.job_group}/{job.job_name}")
        await self.refresh()

    def set_search(self, term: str):
        self._set(search_term=term)

    def visible_triggers(self) -> List[TriggerInfo]:
        return filter_triggers(list(self.state.triggers), self.state.search_term)

    def stats(self) -> TriggerStats:
        return TriggerStats.from_triggers(list(self.state.triggers))

    # ------------------------------------------------------------------
    # Transitions out of the dashboard
    # ------------------------------------------------------------------

    async def open_create(self):
        """Open a blank job form and load the selectable groups."""
        self._require(ViewKind.DASHBOARD, "create a job")

        form = JobForm(job_group=self.config.dashboard.default_group)
        self.navigate(View.create_form(), form=form)

        epoch = self._epoch
        groups = await asyncio.to_thread(self.client.list_groups)
        self.groups_loaded(groups, epoch)

    async def open_edit(self, job: TriggerInfo, refresh: bool = False):
        """
        Open the form for an existing job.

        Args:
            job: Snapshot from the dashboard
            refresh: Re-read the job from the service first, so the form
                     isn't built from a stale data map
        """
        self._require(ViewKind.DASHBOARD, "edit a job")

        if refresh:
            epoch = self._epoch
            try:
                fresh = await asyncio.to_thread(self.client.find_job, job.job_group, job.job_name)
            except TransportError as e:
                logger.warning(f"Could not re-read {job.job_group}/{job.job_name}, using snapshot: {e}")
                fresh = None
            else:
                if fresh is None:
                    logger.warning(f"Job {job.job_group}/{job.job_name} is no longer listed, using snapshot")

            if epoch != self._epoch:
                logger.debug("View changed while re-reading job, not opening form")
                return
            job = fresh or job

        self.navigate(View.edit_form(job), form=JobForm.from_trigger(job))

    async def open_details(self, job: TriggerInfo):
        """Open the details view and fetch the job's recent executions."""
        self._require(ViewKind.DASHBOARD, "view job details")
        self.navigate(View.details(job))
        await self._load_history(job)

    async def open_history(self, job: TriggerInfo):
        """Open the history view and fetch the job's recent executions."""
        self._require(ViewKind.DASHBOARD, "view job history")
        self.navigate(View.history(job))
        await self._load_history(job)

    async def _load_history(self, job: TriggerInfo):
        epoch = self._epoch
        logs = await asyncio.to_thread(
            self.client.fetch_history,
            job.job_group,
            job.job_name,
            self.config.dashboard.history_limit
        )
        self.history_loaded(logs, epoch)

    def back(self):
        """Return to the dashboard from any other view."""
        if self.state.view.kind == ViewKind.DASHBOARD:
            raise InvalidTransition("Already on the dashboard")
        self.navigate(View.dashboard())

    # ------------------------------------------------------------------
    # Form
    # ------------------------------------------------------------------

    async def save(self, form: Optional[JobForm] = None) -> bool:
        """
        Validate and submit the form.

        On success the console returns to the dashboard and reloads the job
        list; on failure it stays on the form with the error shown inline.

        Returns:
            True if the service accepted the job
        """
        self._require(ViewKind.FORM, "save a job")

        form = form or self.state.form
        view = self.state.view

        errors = validate(form, view.mode, view.job)
        if errors:
            self.submit_failed("; ".join(errors), form)
            return False

        self.submit_started(form)
        epoch = self._epoch

        try:
            await asyncio.to_thread(self.client.create_or_update_job, build_request(form))
        except ConsoleError as e:
            if epoch == self._epoch:
                self.submit_failed(str(e))
            return False

        logger.info(f"Saved job {form.job_group}/{form.job_name}")
        if epoch != self._epoch:
            # user left the form while the request was in flight
            return True

        self.submit_succeeded()
        await self.refresh()
        return True
