from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from sqlalchemy.orm import Session

from timebank.db import SessionLocal
from timebank.errors import MonthClosedError
from timebank.services.daily import calculate_employee_day, is_month_closed
from timebank.services.monthly import evaluate_month
from timebank.settings import get_batch_max_workers

logger = logging.getLogger("timebank.batch")

SessionFactory = Callable[[], Session]


@dataclass
class BatchResult:
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    stopped: bool = False
    months_evaluated: int = 0
    failures: list[dict[str, Any]] = field(default_factory=list)

    def merge(self, other: BatchResult) -> None:
        self.processed += other.processed
        self.failed += other.failed
        self.skipped += other.skipped
        self.months_evaluated += other.months_evaluated
        self.failures.extend(other.failures)


def _dates(date_from: date, date_to: date) -> list[date]:
    return [date_from + timedelta(days=offset) for offset in range((date_to - date_from).days + 1)]


def _months(date_from: date, date_to: date) -> list[tuple[int, int]]:
    months: list[tuple[int, int]] = []
    for day in _dates(date_from, date_to):
        key = (day.year, day.month)
        if not months or months[-1] != key:
            months.append(key)
    return months


def _record_failure(result: BatchResult, employee_id: int, unit: str, exc: Exception) -> None:
    result.failed += 1
    result.failures.append({"employee_id": employee_id, "unit": unit, "error": str(exc) or type(exc).__name__})
    logger.exception(
        "batch_unit_failed",
        extra={"employee_id": employee_id, "unit": unit, "error_type": type(exc).__name__},
    )


def _recalculate_employee(
    employee_id: int,
    days: list[date],
    *,
    session_factory: SessionFactory,
    stop_event: threading.Event,
    today: date | None,
) -> BatchResult:
    result = BatchResult()
    # dates run strictly in order; day-change handling reads the previous day
    for day in days:
        if stop_event.is_set():
            break
        db = session_factory()
        try:
            if is_month_closed(db, employee_id, day):
                result.skipped += 1
                continue
            calculate_employee_day(db, employee_id, day, today=today)
            result.processed += 1
        except Exception as exc:
            db.rollback()
            _record_failure(result, employee_id, day.isoformat(), exc)
        finally:
            db.close()
    return result


def _evaluate_employee_months(
    employee_id: int,
    months: list[tuple[int, int]],
    *,
    session_factory: SessionFactory,
    stop_event: threading.Event,
) -> BatchResult:
    result = BatchResult()
    for year, month in months:
        if stop_event.is_set():
            break
        db = session_factory()
        try:
            evaluate_month(db, employee_id, year, month)
            result.months_evaluated += 1
        except MonthClosedError:
            db.rollback()
            result.skipped += 1
        except Exception as exc:
            db.rollback()
            _record_failure(result, employee_id, f"{year}-{month:02d}", exc)
        finally:
            db.close()
    return result


def recalculate_range(
    employee_ids: list[int],
    date_from: date,
    date_to: date,
    *,
    evaluate_months: bool = False,
    stop_event: threading.Event | None = None,
    session_factory: SessionFactory = SessionLocal,
    max_workers: int | None = None,
    today: date | None = None,
) -> BatchResult:
    """Recalculate daily values for many employees.

    Employees run in parallel, each in its own thread with a fresh session per
    date. Setting ``stop_event`` ends the run after the units already in
    progress. Monthly evaluation starts only once every daily unit has
    finished.
    """
    if date_to < date_from:
        raise ValueError("date_to must be on or after date_from")

    stop_event = stop_event or threading.Event()
    workers = max(1, min(max_workers or get_batch_max_workers(), len(employee_ids) or 1))
    days = _dates(date_from, date_to)
    employee_ids = list(dict.fromkeys(employee_ids))
    result = BatchResult()

    logger.info(
        "batch_recalculation_started",
        extra={
            "employee_count": len(employee_ids),
            "date_from": date_from,
            "date_to": date_to,
            "max_workers": workers,
        },
    )

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="timebank-batch") as executor:
        futures = [
            executor.submit(
                _recalculate_employee,
                employee_id,
                days,
                session_factory=session_factory,
                stop_event=stop_event,
                today=today,
            )
            for employee_id in employee_ids
        ]
        for future in futures:
            result.merge(future.result())

        if evaluate_months and not stop_event.is_set():
            months = _months(date_from, date_to)
            futures = [
                executor.submit(
                    _evaluate_employee_months,
                    employee_id,
                    months,
                    session_factory=session_factory,
                    stop_event=stop_event,
                )
                for employee_id in employee_ids
            ]
            for future in futures:
                result.merge(future.result())

    result.stopped = stop_event.is_set()
    logger.info(
        "batch_recalculation_finished",
        extra={
            "processed": result.processed,
            "failed": result.failed,
            "skipped": result.skipped,
            "stopped": result.stopped,
            "months_evaluated": result.months_evaluated,
        },
    )
    return result
