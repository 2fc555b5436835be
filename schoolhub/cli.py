"""Command line entry points for operators and schedulers.

``schoolhub sweep run --once`` fits a cron job; without ``--once`` the two
maintenance sweeps repeat every ``--interval`` seconds (default taken from
``SWEEP_INTERVAL_SECONDS``).
"""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, Optional

import click

from .config import get_settings
from .database import Base, SessionLocal, engine
from .errors import StorageError
from .lifecycle import sweep_complete_expired_approved, sweep_delete_expired_completed
from .logging_middleware import configure_app_logging
from .schemas import SweepResult
from .store import BookingStore

logger = logging.getLogger("schoolhub.cli")

Sweep = Callable[[BookingStore, Optional[datetime]], SweepResult]


def _run_sweep(name: str, sweep: Sweep) -> bool:
    db = SessionLocal()
    try:
        result = sweep(BookingStore(db), None)
    except StorageError as exc:
        logger.error("Sweep %s failed: %s", name, exc.message)
        click.echo(f"{name}: failed ({exc.public_message})", err=True)
        return False
    finally:
        db.close()
    click.echo(f"{name}: {result.message}")
    return True


def run_all_sweeps() -> bool:
    completed = _run_sweep("update-booking-status", sweep_complete_expired_approved)
    cleaned = _run_sweep("cleanup-expired-bookings", sweep_delete_expired_completed)
    return completed and cleaned


@click.group(help="SchoolHub maintenance commands")
@click.option("--log-level", default=None, help="Override LOG_LEVEL for this run.")
def main(log_level: Optional[str]) -> None:
    configure_app_logging(log_level)


@main.command("init-db", help="Create any missing tables.")
def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    click.echo("Tables created.")


@main.group(help="Booking maintenance sweeps")
def sweep() -> None:
    pass


@sweep.command("complete", help="Mark approved bookings that have ended as completed.")
def sweep_complete() -> None:
    if not _run_sweep("update-booking-status", sweep_complete_expired_approved):
        raise SystemExit(1)


@sweep.command("cleanup", help="Delete completed bookings that have ended.")
def sweep_cleanup() -> None:
    if not _run_sweep("cleanup-expired-bookings", sweep_delete_expired_completed):
        raise SystemExit(1)


@sweep.command("run", help="Run both sweeps once, or repeatedly.")
@click.option("--once", is_flag=True, help="Run a single pass and exit.")
@click.option("--interval", type=click.IntRange(min=1), default=None, help="Seconds between passes.")
def sweep_run(once: bool, interval: Optional[int]) -> None:
    if once:
        if not run_all_sweeps():
            raise SystemExit(1)
        return
    pause = interval or get_settings().sweep_interval_seconds
    click.echo(f"Running booking sweeps every {pause}s")
    while True:
        # A failed pass is retried on the next tick only.
        run_all_sweeps()
        time.sleep(pause)


if __name__ == "__main__":
    main()
