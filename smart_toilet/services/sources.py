"""
Ports between the health services and the stores behind them.

Key patterns:
- Protocol-based dependency injection (adapters live in `smart_toilet.adapters`)
- Explicit Result type for expected failures such as an unreachable store
"""

from collections.abc import Mapping
from typing import Any, Generic, Protocol, TypeVar

from smart_toilet.domain.models import Alert, CombinedRecord

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class StoreUnavailableError(ConnectionError):
    """A backing store could not be reached or refused the request."""


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    An Ok result may carry None (e.g. "no new session"), so success is tracked
    by the absence of an error rather than the presence of a value.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        if error is None:
            raise ValueError("Result.err() requires an error")
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error

    def __repr__(self) -> str:
        if self._error is not None:
            return f"Result.err({self._error!r})"
        return f"Result.ok({self._value!r})"


class ReportSource(Protocol):
    """Read access to a user's node in the realtime report tree."""

    async def fetch_user_tree(self, user_id: str) -> Mapping[str, Any] | None:
        """
        Return the `Users/{uid}` node (holding `Reports`), or None if absent.

        Raises:
            StoreUnavailableError: the store could not be read.
        """
        ...


class RecordLog(Protocol):
    """Append-only per-user history of combined records."""

    async def append(self, user_id: str, record: CombinedRecord) -> None: ...

    async def list_records(self, user_id: str) -> list[dict[str, Any]]: ...


class NotificationSink(Protocol):
    """Append-only per-user notification log."""

    async def notify(self, user_id: str, alert: Alert) -> None: ...


class NotificationInbox(Protocol):
    """Read side of the notification log, including read state."""

    async def recent(self, user_id: str, limit: int = 20) -> list[dict[str, Any]]: ...

    async def unread_count(self, user_id: str) -> int: ...

    async def mark_read(self, user_id: str, notification_id: str) -> None: ...

    async def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification as read and return how many changed."""
        ...


class ProfileStore(Protocol):
    """User profile documents."""

    async def get_profile(self, user_id: str) -> dict[str, Any] | None: ...

    async def save_profile(self, user_id: str, data: Mapping[str, Any]) -> None:
        """Create the profile or merge the given fields into it."""
        ...
