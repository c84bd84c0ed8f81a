"""
Health runner - Wires configuration and adapters into one check pass.

Exit codes:
    0: Pass completed (regardless of how many servers were down)
    1: Fatal error (configuration, state, lock or unexpected)
    2: State saved but at least one recipient could not be notified
"""

import fcntl
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from servermon.adapters.notifiers import AdapterSmtpNotifier, AdapterStdoutNotifier
from servermon.adapters.probes import AdapterBackoffProbe, AdapterMockProbe
from servermon.adapters.state import AdapterJsonStateStore
from servermon.application.check_pass_use_case import CheckPassUseCase
from servermon.core.exceptions import LockError, NotificationError, ServermonError
from servermon.core.ports import Notifier, ProbeStrategy
from servermon.health import config

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_NOTIFY_FAILED = 2

PathLike = Union[str, Path]


def run_check_pass(
    config_path: PathLike = "config.toml",
    servers_path: PathLike = "servers.toml",
    users_path: PathLike = "users.toml",
    status_path: PathLike = "status.json",
    dry_run: bool = False,
    mock: Optional[bool] = None,
) -> int:
    """
    Run one check pass and return the process exit code.

    Args:
        config_path: Path to general config file
        servers_path: Path to servers file
        users_path: Path to users file
        status_path: Path to persisted run state
        dry_run: If True, print alerts instead of emailing and don't save state
        mock: Force (True) or forbid (False) the mock probe; None follows config

    Returns:
        Exit code: 0 (OK), 1 (FATAL), 2 (NOTIFY_FAILED)
    """
    try:
        logger.info("Loading config")
        app_config = config.load_config(config_path)
        endpoints = config.load_servers(servers_path)
        recipients = config.load_users(users_path)

        use_case = CheckPassUseCase(
            probe=build_probe(app_config, mock),
            store=AdapterJsonStateStore(status_path),
            notifier=build_notifier(app_config, dry_run),
            recipients=recipients,
            workers=app_config.healthcheck.workers,
            notify_recovered=app_config.healthcheck.notify_recovered,
            persist=not dry_run,
        )

        with instance_lock(status_path):
            report = use_case.execute(endpoints)

        logger.info(
            "Pass complete: checked=%d down=%d alerted=%d",
            report.checked,
            len(report.record.down_servers),
            len(report.alerts.down),
        )
        return EXIT_OK

    except NotificationError as e:
        logger.error("State saved but notification failed: %s", e)
        return EXIT_NOTIFY_FAILED
    except ServermonError as e:
        logger.error("Check pass aborted: %s", e)
        return EXIT_FATAL
    except Exception as e:  # pylint: disable=broad-except
        logger.error("Check pass failed: %s", e, exc_info=True)
        return EXIT_FATAL


def build_probe(app_config: config.AppConfig, mock: Optional[bool] = None) -> ProbeStrategy:
    """
    Choose the probe strategy.

    Args:
        app_config: Validated configuration
        mock: Overrides ``debug.mock_fetch`` when not None

    Returns:
        ProbeStrategy: Mock probe, or live probe with or without retries
    """
    use_mock = app_config.debug.mock_fetch if mock is None else mock
    if use_mock:
        logger.info("Using mock probe")
        return AdapterMockProbe(down_ids=app_config.debug.mock_down_ids)

    healthcheck = app_config.healthcheck
    max_attempts = healthcheck.max_attempts if healthcheck.try_with_backoff else 1
    return AdapterBackoffProbe(
        max_attempts=max_attempts,
        retry_interval=healthcheck.retry_interval,
        timeout=healthcheck.timeout,
    )


def build_notifier(app_config: config.AppConfig, dry_run: bool = False) -> Notifier:
    """
    Choose the notifier.

    Falls back to stdout when running dry or without an SMTP host.
    """
    if dry_run:
        logger.info("Dry-run mode: alerts will be printed, not sent")
        return AdapterStdoutNotifier(subject=app_config.smtp.subject)
    if not app_config.smtp.hostname:
        logger.warning("No SMTP hostname configured. Alerts will be printed to stdout.")
        return AdapterStdoutNotifier(subject=app_config.smtp.subject)
    return AdapterSmtpNotifier(app_config.smtp, timeout=app_config.healthcheck.timeout)


@contextmanager
def instance_lock(status_path: PathLike) -> Iterator[None]:
    """
    Hold an exclusive advisory lock next to the state file.

    Raises:
        LockError: If another pass holds the lock
    """
    lock_path = Path(f"{status_path}.lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(lock_path, "w", encoding="utf-8") as lock_file:
        try:
            fcntl.flock(lock_file, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except (BlockingIOError, OSError) as e:
            raise LockError(f"Another servermon pass holds {lock_path}") from e
        try:
            yield
        finally:
            fcntl.flock(lock_file, fcntl.LOCK_UN)
