"""CLI entrypoint.

Two commands:
- `trigger`: subscribe to the configured Zeebe job types and register Nomad jobs
- `batch-job`: the workload Nomad runs for each registered job
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from types import FrameType

from pydantic import ValidationError

from zeebe_nomad_trigger import __version__
from zeebe_nomad_trigger.batch_job import describe_environment, run_batch_job
from zeebe_nomad_trigger.config import BatchJobSettings, TriggerSettings
from zeebe_nomad_trigger.dispatch.handler import DispatchHandler
from zeebe_nomad_trigger.dispatch.worker import WorkerPool, create_worker_pool
from zeebe_nomad_trigger.logging import configure_logging
from zeebe_nomad_trigger.nomad.client import NomadClient
from zeebe_nomad_trigger.nomad.job_template import JobTemplate, JobTemplateError
from zeebe_nomad_trigger.zeebe.client import ZeebeClient

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zeebe-nomad-trigger",
        description="Register one Nomad batch job per Zeebe job",
    )
    parser.add_argument(
        "--version", action="version", version=f"zeebe-nomad-trigger {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser(
        "trigger",
        help="Subscribe to the configured Zeebe job types and dispatch jobs to Nomad",
    )
    subparsers.add_parser(
        "batch-job",
        help="Run the simulated long-running batch job and complete its Zeebe job",
    )
    return parser


def _install_signal_handlers(pool: WorkerPool) -> None:
    def _close(signum: int, _frame: FrameType | None) -> None:
        logger.info("Shutting down job workers", extra={"signal": signal.Signals(signum).name})
        pool.close()

    signal.signal(signal.SIGINT, _close)
    signal.signal(signal.SIGTERM, _close)


def _config_error(e: ValidationError) -> int:
    # Logging isn't configured yet; keep it simple and actionable.
    print("Configuration error (check your environment / .env):", file=sys.stderr)
    print(e, file=sys.stderr)
    return 2


def run_trigger() -> int:
    try:
        settings = TriggerSettings()
    except ValidationError as e:
        return _config_error(e)

    configure_logging(settings.log_level)

    assert settings.nomad_job_json_path is not None
    try:
        template = JobTemplate.load(settings.nomad_job_json_path)
    except JobTemplateError:
        logger.exception("Error loading Nomad job definition")
        return 2

    nomad = NomadClient(
        address=settings.nomad_server_url,
        token=settings.nomad_token,
        namespace=settings.nomad_namespace,
        region=settings.nomad_region,
        timeout=settings.nomad_timeout_seconds,
    )
    zeebe = ZeebeClient(address=settings.zeebe_broker_url)
    try:
        handler = DispatchHandler(
            nomad=nomad,
            zeebe=zeebe,
            template=template,
            broker_url=settings.batch_broker_address,
            duration=settings.job_duration,
            tasks_to_fail=settings.tasks_to_fail,
        )
        pool = create_worker_pool(settings, engine=zeebe, handler=handler)
        _install_signal_handlers(pool)

        logger.info(
            "Starting job workers",
            extra={
                "task_types": pool.task_types,
                "tasks_to_fail": sorted(settings.tasks_to_fail),
            },
        )
        pool.start()
        failures = pool.wait()
    finally:
        zeebe.close()
        nomad.close()

    if failures:
        logger.error(
            "Job workers stopped with failures",
            extra={"task_types": [f.task_type for f in failures]},
        )
        return 1
    return 0


def run_batch() -> int:
    try:
        settings = BatchJobSettings()
    except ValidationError as e:
        return _config_error(e)

    configure_logging(settings.log_level)
    logger.info("Batch job environment", extra={"env": describe_environment(dict(os.environ))})

    zeebe = ZeebeClient(address=settings.zeebe_broker_url)
    try:
        run_batch_job(settings, zeebe=zeebe)
    except Exception:
        logger.exception("Batch job failed", extra={"job_key": settings.job_key})
        return 1
    finally:
        zeebe.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "trigger":
        return run_trigger()
    if args.command == "batch-job":
        return run_batch()

    parser.error(f"unknown command {args.command!r}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
