# src/area_client/envelope.py

from typing import Any, Mapping

from .exceptions import GENERIC_API_FAILURE, ApiError


def is_failure_envelope(payload: Any) -> bool:
    return isinstance(payload, Mapping) and payload.get("success") is False


def failure_message(payload: Mapping[str, Any]) -> str:
    return payload.get("message") or payload.get("error") or GENERIC_API_FAILURE


def unwrap_api_response(payload: Any, error_cls=ApiError, status_code=None) -> Any:
    """
    Collapse a backend envelope into its payload.

    ``{"success": false, ...}`` raises ``error_cls`` with the envelope's
    ``message`` (or ``error``). ``{"success": true, "data": ...}`` returns
    ``data`` as-is, even when empty. Anything else is the legacy flattened
    shape and comes back without its ``success`` key. Non-object payloads
    (a bare JSON array) are returned unchanged.
    """
    if not isinstance(payload, Mapping):
        return payload

    # Checked before "data" so a failure carrying data is still a failure.
    if payload.get("success") is False:
        raise error_cls(failure_message(payload), status_code=status_code)

    if "data" in payload:
        return payload["data"]

    return {key: value for key, value in payload.items() if key != "success"}
