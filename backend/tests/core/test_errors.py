"""Error hierarchy — status codes and serialized shapes."""

from app.core.errors import (
    BackendError, DatabaseError, ErrorContext, ErrorSeverity, ResourceNotFoundError,
    UnauthenticatedError, ValidationError,
)


def test_local_errors_map_to_client_statuses():
    assert ValidationError("bad", field="url").http_status == 400
    assert UnauthenticatedError().http_status == 401
    assert ResourceNotFoundError("Bookmark", "b1").http_status == 404


def test_backend_error_keeps_provider_message():
    error = BackendError("row level security violation")
    assert error.message == "row level security violation"
    assert error.http_status == 502
    assert error.to_response()["error"]["code"] == "BACKEND_ERROR"


def test_database_error_is_a_critical_backend_error():
    error = DatabaseError("Connection or operational error", "execute")
    assert isinstance(error, BackendError)
    assert error.severity == ErrorSeverity.CRITICAL
    assert error.http_status == 503


def test_response_carries_context_ids():
    error = BackendError(
        "Bookmark not found", ErrorContext(owner_id="o1", bookmark_id="b1"),
        http_status=404,
    )
    body = error.to_response()["error"]
    assert body["context"] == {"owner_id": "o1", "bookmark_id": "b1"}


def test_sse_event_prefers_user_message():
    error = BackendError("internal detail", ErrorContext(user_message="Try again"))
    event = error.to_sse_event()
    assert event["type"] == "error"
    assert event["data"]["message"] == "Try again"
    assert event["data"]["recoverable"] is True
