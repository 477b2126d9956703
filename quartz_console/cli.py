"""
Command-line interface for the scheduler console.

Provides CLI commands for:
- Listing jobs and watching the dashboard live
- Showing job details and execution history
- Creating, editing and deleting jobs
- Managing console configuration

Every command drives a ConsoleController, so the CLI goes through the same
views, validation and refresh rules as an interactive session.
"""

import argparse
import asyncio
import json
import logging
import sys
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from quartz_console.client import ConsoleError, SchedulerApiClient, TransportError
from quartz_console.config import ConsoleConfig
from quartz_console.controller import ConsoleController, ViewKind
from quartz_console.forms import CRON_PRESETS, JobForm
from quartz_console.jobdata import HEADER_PREFIX, HTTP_METHODS
from quartz_console.models import TriggerInfo
from quartz_console.render import (
    render_dashboard,
    render_details,
    render_form_summary,
    render_history,
    render_presets,
)

logger = logging.getLogger(__name__)

PRESETS_BY_SLUG = {
    label.lower().replace(' ', '-'): expr for label, expr in CRON_PRESETS
}


def setup_logging(log_file: str = None, verbose: bool = False, level: str = "INFO"):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)


def load_config(args) -> ConsoleConfig:
    """Resolve configuration from args, environment and config file."""
    config = ConsoleConfig.from_sources(config_path=args.config, base_url=args.url)

    errors = config.validate()
    if errors:
        logger.error("Configuration validation failed:")
        for error in errors:
            logger.error(f"  - {error}")
        sys.exit(1)

    return config


def build_client(config: ConsoleConfig) -> SchedulerApiClient:
    return SchedulerApiClient(
        config.connection.base_url,
        timeout=config.connection.request_timeout,
        default_group=config.dashboard.default_group
    )


@contextmanager
def open_console(args):
    """Controller for one command; the client session is closed on exit."""
    config = load_config(args)
    setup_logging(verbose=args.verbose, level=config.logging.level)

    client = build_client(config)
    try:
        yield ConsoleController(client, config)
    finally:
        client.close()


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive number, got {value}")
    return number


async def _load_job(controller: ConsoleController, group: str, name: str) -> TriggerInfo:
    """Refresh the dashboard and pick one job from it."""
    await controller.refresh()
    if controller.state.error:
        raise TransportError(controller.state.error)

    for job in controller.state.triggers:
        if job.key == (group, name):
            return job

    raise ConsoleError(f"Job '{group}/{name}' not found")


def _parse_pairs(pairs: Optional[List[str]], option: str) -> List[tuple]:
    result = []
    for pair in pairs or []:
        if '=' not in pair:
            raise ConsoleError(f"{option} expects KEY=VALUE, got '{pair}'")
        key, value = pair.split('=', 1)
        result.append((key, value))
    return result


def _parse_time(value: Optional[str]) -> Optional[int]:
    """'YYYY-MM-DD HH:MM' local time to epoch millis."""
    if not value:
        return None
    try:
        return int(datetime.strptime(value, '%Y-%m-%d %H:%M').timestamp() * 1000)
    except ValueError as e:
        raise ConsoleError(f"Invalid time '{value}', expected YYYY-MM-DD HH:MM") from e


def apply_form_args(form: JobForm, args) -> JobForm:
    """Overlay the options given on the command line onto a form."""
    changes = {}

    if getattr(args, 'group', None):
        changes['job_group'] = args.group
    if args.description is not None:
        changes['description'] = args.description
    if args.preset:
        changes['cron_expression'] = PRESETS_BY_SLUG[args.preset]
    if args.cron:
        changes['cron_expression'] = args.cron
    if args.method:
        changes['method'] = args.method.upper()
    if args.url is not None:
        changes['url'] = args.url
    if args.body is not None:
        changes['body'] = args.body

    start_time = _parse_time(args.start)
    if start_time is not None:
        changes['start_time'] = start_time
    end_time = _parse_time(args.end)
    if end_time is not None:
        changes['end_time'] = end_time

    props = dict(form.additional_properties)
    for key in getattr(args, 'remove_prop', None) or []:
        props.pop(key, None)
    for key, value in _parse_pairs(args.prop, '--prop'):
        props[key.strip()] = value
    for name, value in _parse_pairs(args.header, '--header'):
        props[f"{HEADER_PREFIX}{name.strip()}"] = value
    changes['additional_properties'] = sorted(props.items())

    return replace(form, **changes)


def cmd_list(args):
    """List jobs once."""
    with open_console(args) as controller:
        asyncio.run(controller.refresh())
        if args.search:
            controller.set_search(args.search)

        print(render_dashboard(
            controller.state,
            controller.visible_triggers(),
            controller.stats(),
            color=args.color
        ))
        print()

        if controller.state.error:
            sys.exit(1)


def cmd_watch(args):
    """Show the dashboard and keep it current until interrupted."""
    config = load_config(args)
    setup_logging(log_file=config.logging.file, verbose=args.verbose, level=config.logging.level)

    if args.interval:
        config.dashboard.poll_interval_seconds = args.interval

    client = build_client(config)
    controller = ConsoleController(client, config)
    if args.search:
        controller.set_search(args.search)

    def on_change(state):
        if state.view.kind != ViewKind.DASHBOARD or state.loading:
            return
        print(render_dashboard(
            state,
            controller.visible_triggers(),
            controller.stats(),
            color=args.color
        ))
        print(f"\nUpdated {datetime.now().strftime('%H:%M:%S')} | "
              f"every {config.dashboard.poll_interval_seconds}s | Ctrl+C to stop")

    controller.subscribe(on_change)

    async def run():
        await controller.start()
        try:
            await asyncio.Event().wait()
        finally:
            await controller.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Stopped watching")
    finally:
        client.close()


def cmd_groups(args):
    """List job groups."""
    with open_console(args) as controller:
        for group in controller.client.list_groups():
            print(group)


def cmd_show(args):
    """Show one job's details and its recent executions."""
    with open_console(args) as controller:
        async def run():
            job = await _load_job(controller, args.group, args.name)
            await controller.open_details(job)

        try:
            asyncio.run(run())
        except ConsoleError as e:
            logger.error(f"Failed to show job: {e}")
            sys.exit(1)

        state = controller.state
        print(render_details(state.view.job, list(state.history), color=args.color))
        print()


def cmd_history(args):
    """Show one job's recent executions."""
    with open_console(args) as controller:
        if args.limit:
            controller.config.dashboard.history_limit = args.limit

        async def run():
            job = await _load_job(controller, args.group, args.name)
            await controller.open_history(job)

        try:
            asyncio.run(run())
        except ConsoleError as e:
            logger.error(f"Failed to load history: {e}")
            sys.exit(1)

        state = controller.state
        if args.json:
            print(json.dumps([log.to_json() for log in state.history], indent=2))
            return

        print(render_history(state.view.job, list(state.history), color=args.color, verbose=args.verbose))
        print()


async def _submit(controller: ConsoleController, form: JobForm, action: str) -> bool:
    print(f"{action}:")
    print(render_form_summary(form))

    if not await controller.save(form):
        logger.error(f"Failed to {action.lower()}: {controller.state.form_error}")
        return False

    print(f"\n✓ {form.job_group}/{form.job_name} saved "
          f"({len(controller.state.triggers)} job(s) scheduled)")
    return True


def cmd_create(args):
    """Create a new job."""
    with open_console(args) as controller:
        async def run():
            await controller.open_create()
            form = replace(controller.state.form, job_name=args.name)
            form = apply_form_args(form, args)

            if form.job_group not in controller.state.groups:
                logger.info(f"Group '{form.job_group}' doesn't exist yet, it will be created")

            return await _submit(controller, form, "Create job")

        try:
            saved = asyncio.run(run())
        except ConsoleError as e:
            logger.error(f"Failed to create job: {e}")
            sys.exit(1)

        if not saved:
            sys.exit(1)


def cmd_edit(args):
    """Edit an existing job (name and group can't change)."""
    with open_console(args) as controller:
        async def run():
            job = await _load_job(controller, args.group, args.name)
            await controller.open_edit(job)
            form = apply_form_args(controller.state.form, args)
            return await _submit(controller, form, "Update job")

        try:
            saved = asyncio.run(run())
        except ConsoleError as e:
            logger.error(f"Failed to edit job: {e}")
            sys.exit(1)

        if not saved:
            sys.exit(1)


def cmd_delete(args):
    """Delete a job after confirmation."""
    with open_console(args) as controller:
        try:
            job = asyncio.run(_load_job(controller, args.group, args.name))
        except ConsoleError as e:
            logger.error(f"Failed to delete job: {e}")
            sys.exit(1)

        if not args.yes:
            answer = input(f'Are you sure you want to delete job "{job.job_name}"? [y/N] ')
            if answer.strip().lower() not in ('y', 'yes'):
                print("Cancelled")
                return

        try:
            asyncio.run(controller.delete(job))
        except TransportError as e:
            logger.error(f"Failed to delete job: {e}")
            sys.exit(1)

        print(f"✓ Deleted {job.job_group}/{job.job_name}")


def cmd_presets(args):
    """Show cron presets."""
    print(render_presets())
    print("\nUse with: --preset " + " | ".join(PRESETS_BY_SLUG))


def cmd_init(args):
    """Write a configuration file."""
    setup_logging(verbose=args.verbose)

    try:
        config = ConsoleConfig.from_sources(config_path=args.config, base_url=args.url)
        config.save()

        logger.info(f"Initialized console configuration at: {config.config_path}")
        logger.info(f"Scheduler URL: {config.connection.base_url}")

        log_dir = Path(config.logging.file).expanduser().parent
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created log directory: {log_dir}")

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        sys.exit(1)


def cmd_show_config(args):
    """Show current configuration."""
    config = ConsoleConfig.from_sources(config_path=args.config, base_url=args.url)
    setup_logging(verbose=args.verbose, level=config.logging.level)

    print(f"\nConfiguration file: {config.config_path}")
    print(f"Scheduler URL: {config.connection.base_url}")
    print(f"Request timeout: {config.connection.request_timeout or 'none'}")
    print(f"Poll interval: {config.dashboard.poll_interval_seconds}s")
    print(f"History limit: {config.dashboard.history_limit}")
    print(f"Default group: {config.dashboard.default_group}")
    print(f"Logging level: {config.logging.level}")
    print(f"Log file: {config.logging.file}")

    errors = config.validate()
    for error in errors:
        print(f"  ✗ {error}")


def _add_form_options(parser, include_group: bool):
    if include_group:
        parser.add_argument('--group', '-g', type=str, help='Job group (default: DEFAULT)')
    parser.add_argument('--description', '-d', type=str, help='Human-readable description')

    schedule = parser.add_mutually_exclusive_group()
    schedule.add_argument('--cron', type=str, help='Cron expression (second minute hour day month weekday [year])')
    schedule.add_argument('--preset', choices=list(PRESETS_BY_SLUG), help='Cron preset')

    parser.add_argument('--method', '-m', type=str.upper, choices=HTTP_METHODS, help='HTTP method')
    parser.add_argument('--url', type=str, help='Endpoint URL the job calls')
    parser.add_argument('--body', type=str, help='Request body (POST/PUT)')
    parser.add_argument('--prop', action='append', metavar='KEY=VALUE',
                        help='Additional property (repeatable)')
    parser.add_argument('--header', action='append', metavar='NAME=VALUE',
                        help='Request header, stored as header.NAME (repeatable)')
    parser.add_argument('--start', type=str, help='Start firing at (YYYY-MM-DD HH:MM)')
    parser.add_argument('--end', type=str, help='Stop firing at (YYYY-MM-DD HH:MM)')


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Quartz Console - manage HTTP jobs on a remote cron scheduler",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '-c', '--config',
        type=str,
        help='Path to console configuration file'
    )
    parser.add_argument(
        '-u', '--url',
        type=str,
        help='Scheduler service URL (overrides config and QUARTZ_MANAGER_URL)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # List command
    list_parser = subparsers.add_parser('list', help='List all jobs')
    list_parser.add_argument('--search', '-s', type=str, help='Filter by job name or group')
    list_parser.add_argument('--color', action='store_true', help='Colorize trigger states')
    list_parser.set_defaults(func=cmd_list)

    # Watch command
    watch_parser = subparsers.add_parser('watch', help='Live dashboard (polls until Ctrl+C)')
    watch_parser.add_argument('--interval', '-i', type=_positive_float, help='Poll interval in seconds')
    watch_parser.add_argument('--search', '-s', type=str, help='Filter by job name or group')
    watch_parser.add_argument('--color', action='store_true', help='Colorize trigger states')
    watch_parser.set_defaults(func=cmd_watch)

    # Groups command
    groups_parser = subparsers.add_parser('groups', help='List job groups')
    groups_parser.set_defaults(func=cmd_groups)

    # Show command
    show_parser = subparsers.add_parser('show', help='Show job details')
    show_parser.add_argument('group', help='Job group')
    show_parser.add_argument('name', help='Job name')
    show_parser.add_argument('--color', action='store_true', help='Colorize execution status')
    show_parser.set_defaults(func=cmd_show)

    # History command
    history_parser = subparsers.add_parser('history', help='View job execution history')
    history_parser.add_argument('group', help='Job group')
    history_parser.add_argument('name', help='Job name')
    history_parser.add_argument('--limit', '-n', type=_positive_int,
                                help='Maximum number of entries to show (default: 20)')
    history_parser.add_argument('--json', action='store_true', help='Output in JSON format')
    history_parser.add_argument('--color', action='store_true', help='Colorize status output')
    history_parser.set_defaults(func=cmd_history)

    # Create command
    create_parser = subparsers.add_parser('create', help='Create a new job')
    create_parser.add_argument('name', help='Job name')
    _add_form_options(create_parser, include_group=True)
    create_parser.set_defaults(func=cmd_create)

    # Edit command
    edit_parser = subparsers.add_parser('edit', help='Edit an existing job')
    edit_parser.add_argument('group', help='Job group')
    edit_parser.add_argument('name', help='Job name')
    _add_form_options(edit_parser, include_group=False)
    edit_parser.add_argument('--remove-prop', action='append', metavar='KEY',
                             help='Remove an additional property (repeatable)')
    edit_parser.set_defaults(func=cmd_edit)

    # Delete command
    delete_parser = subparsers.add_parser('delete', help='Delete a job')
    delete_parser.add_argument('group', help='Job group')
    delete_parser.add_argument('name', help='Job name')
    delete_parser.add_argument('--yes', '-y', action='store_true', help='Skip confirmation')
    delete_parser.set_defaults(func=cmd_delete)

    # Presets command
    presets_parser = subparsers.add_parser('presets', help='Show cron presets')
    presets_parser.set_defaults(func=cmd_presets)

    # Init command
    init_parser = subparsers.add_parser('init', help='Initialize console configuration')
    init_parser.set_defaults(func=cmd_init)

    # Show config command
    show_config_parser = subparsers.add_parser('show-config', help='Show configuration')
    show_config_parser.set_defaults(func=cmd_show_config)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == '__main__':
    main()
