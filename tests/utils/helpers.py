"""
Test helper functions for common testing operations

These helpers provide utilities for test setup, response validation,
and common testing patterns across the test suite.
"""

import time
from typing import Any, Callable, Dict, List, Optional

from fastapi.testclient import TestClient


def wait_for_condition(condition: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Wait for a condition to become true with timeout"""
    start_time = time.time()
    while time.time() - start_time < timeout:
        if condition():
            return True
        time.sleep(interval)
    return False


def assert_error(response, status_code: int, code: str, message: Optional[str] = None) -> Dict[str, Any]:
    """Assert the JSON error envelope and return its body"""
    assert response.status_code == status_code, response.text
    body = response.json()
    assert set(body.keys()) == {"error"}
    error = body["error"]
    assert error["code"] == code
    assert error["status"] == status_code
    if message is not None:
        assert message in error["message"]
    return error


def assert_response_structure(response_data: Dict[str, Any], expected_keys: List[str], optional_keys: Optional[List[str]] = None):
    """Assert that response has expected structure"""
    optional_keys = optional_keys or []

    for key in expected_keys:
        assert key in response_data, f"Required key '{key}' missing from response"

    unexpected_keys = set(response_data.keys()) - set(expected_keys + optional_keys)
    assert not unexpected_keys, f"Unexpected keys in response: {unexpected_keys}"


def add_card(client: TestClient, session_id: str, content: str, column_type: str = "glad") -> Dict[str, Any]:
    response = client.post(
        f"/api/sessions/{session_id}/cards",
        json={"column_type": column_type, "content": content},
    )
    assert response.status_code == 201, response.text
    return response.json()


def toggle_vote(client: TestClient, card_id: str, session_id: str, voter_id: str):
    return client.patch(
        f"/api/cards/{card_id}/vote",
        json={"voter_id": voter_id, "session_id": session_id},
    )


def list_cards(client: TestClient, session_id: str, **params: Any) -> List[Dict[str, Any]]:
    response = client.get(f"/api/sessions/{session_id}/cards", params=params)
    assert response.status_code == 200, response.text
    return response.json()


def get_log_messages(caplog, logger_name: Optional[str] = None) -> List[str]:
    """Get log messages, optionally from one logger"""
    return [
        record.getMessage()
        for record in caplog.records
        if logger_name is None or record.name == logger_name
    ]
