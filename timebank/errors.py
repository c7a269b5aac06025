from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class MonthClosedError(ApiError):
    def __init__(self, employee_id: int, year: int, month: int):
        super().__init__(
            409,
            "MONTH_CLOSED",
            f"Month {year}-{month:02d} is closed for employee {employee_id}.",
        )
        self.employee_id = employee_id
        self.year = year
        self.month = month


class MonthNotClosedError(ApiError):
    def __init__(self, employee_id: int, year: int, month: int):
        super().__init__(
            409,
            "MONTH_NOT_CLOSED",
            f"Month {year}-{month:02d} is not closed for employee {employee_id}.",
        )


class MonthlyValueNotFoundError(ApiError):
    def __init__(self, employee_id: int, year: int, month: int):
        super().__init__(
            404,
            "MONTHLY_VALUE_NOT_FOUND",
            f"No monthly value for employee {employee_id} in {year}-{month:02d}.",
        )


class UnresolvedErrorsError(ApiError):
    def __init__(self, error_dates: list[str]):
        super().__init__(
            409,
            "UNRESOLVED_ERRORS",
            "Month has days with unresolved errors: " + ", ".join(error_dates),
        )
        self.error_dates = error_dates


class ReopenReasonRequiredError(ApiError):
    def __init__(self) -> None:
        super().__init__(422, "REOPEN_REASON_REQUIRED", "A reason is required to reopen a month.")


class InvalidPeriodError(ApiError):
    def __init__(self, message: str):
        super().__init__(422, "INVALID_PERIOD", message)


class IncompleteScheduleError(ApiError):
    def __init__(self, missing_weekdays: list[str]):
        super().__init__(
            422,
            "INCOMPLETE_SCHEDULE",
            "Week plan is missing day plans for: " + ", ".join(missing_weekdays),
        )
        self.missing_weekdays = missing_weekdays


class InvalidDayPlanError(ApiError):
    def __init__(self, problems: list[str]):
        super().__init__(422, "INVALID_DAY_PLAN", "; ".join(problems))
        self.problems = problems


class InvalidCappingRuleError(ApiError):
    def __init__(self, problems: list[str]):
        super().__init__(422, "INVALID_CAPPING_RULE", "; ".join(problems))
        self.problems = problems


class DataIntegrityError(ApiError):
    def __init__(self, message: str):
        super().__init__(500, "DATA_INTEGRITY", message)


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
