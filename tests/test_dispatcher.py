"""Tests for the notification dispatcher."""

from unittest.mock import Mock

import requests

from notifications.dispatcher import NotificationDispatcher


def make_dispatcher(session):
    return NotificationDispatcher(
        "https://test-project.supabase.co/",
        "service-key",
        function_name="mailerlite-integration",
        timeout=5,
        session=session,
    )


def test_posts_event_to_edge_function():
    """Test the request shape sent to the edge function."""
    session = Mock()
    session.post.return_value = Mock(status_code=200)
    dispatcher = make_dispatcher(session)

    ok = dispatcher.send_event("rev@example.com", "review_assigned", {"assignment_number": 3})

    assert ok is True
    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args[0] == "https://test-project.supabase.co/functions/v1/mailerlite-integration"
    assert kwargs["json"] == {
        "user_email": "rev@example.com",
        "event_type": "review_assigned",
        "custom_data": {"assignment_number": 3},
    }
    assert kwargs["headers"]["Authorization"] == "Bearer service-key"
    assert kwargs["timeout"] == 5


def test_http_error_returns_false():
    """Test that a non-2xx response is reported, not raised."""
    session = Mock()
    response = Mock()
    response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
    session.post.return_value = response

    assert make_dispatcher(session).send_event("rev@example.com", "review_assigned") is False


def test_connection_error_returns_false():
    """Test that network failures are swallowed."""
    session = Mock()
    session.post.side_effect = requests.ConnectionError("unreachable")

    assert make_dispatcher(session).send_event("rev@example.com", "review_assigned") is False


def test_custom_data_defaults_to_empty():
    session = Mock()
    make_dispatcher(session).send_event("rev@example.com", "review_assigned")
    assert session.post.call_args.kwargs["json"]["custom_data"] == {}
