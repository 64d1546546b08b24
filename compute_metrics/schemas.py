"""Pydantic schemas for finished tasks and API responses"""
import enum
from datetime import datetime

from pydantic import BaseModel, Field


class TaskStatus(str, enum.Enum):
    """Terminal outcome of a query executed by a worker."""
    OK = "ok"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"

    @property
    def status_code(self) -> str:
        """Short code used as the `status` metric label."""
        return self.value


class FinishedTask(BaseModel):
    """A query reported as finished by the worker execution subsystem."""
    worker_id: str
    status: TaskStatus
    exec_time_ms: int = Field(ge=0)

    class Config:
        frozen = True

    @property
    def status_code(self) -> str:
        return self.status.status_code


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    uptime_seconds: int
    now: datetime
