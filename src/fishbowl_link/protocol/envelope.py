"""FbiJson request/response envelope helpers.

Request:  {"FbiJson": {"Ticket": {"Key": ...}, "FbiMsgsRq": {"<Name>Rq": {...}}}}
Response: {"FbiJson": {"Ticket": {"Key": ..., "UserID": ...},
           "FbiMsgsRs": {"statusCode": ..., "statusMessage": ..., "<Name>Rs": {...}}}}
"""

from __future__ import annotations

import json
from typing import Any

from fishbowl_link.protocol.exceptions import ResponseDecodeError

ENVELOPE_ROOT = "FbiJson"
TICKET = "Ticket"
REQUEST_CONTAINER = "FbiMsgsRq"
RESPONSE_CONTAINER = "FbiMsgsRs"
STATUS_CODE = "statusCode"
STATUS_MESSAGE = "statusMessage"

Envelope = dict[str, Any]


def build_request(request_key: str, body: dict[str, Any], session_key: str = "") -> str:
    """Serialize a request envelope for one operation."""
    envelope = {
        ENVELOPE_ROOT: {
            TICKET: {"Key": session_key},
            REQUEST_CONTAINER: {request_key: body},
        },
    }
    return json.dumps(envelope, separators=(",", ":"))


def parse_response(data: bytes | str) -> Envelope:
    """Parse one frame body into a response envelope.

    Raises:
        ResponseDecodeError: Body is not JSON, lacks the FbiJson/FbiMsgsRs structure,
            or carries a non-numeric outer statusCode

    """
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    try:
        envelope = json.loads(data)
    except ValueError as e:
        raise ResponseDecodeError("invalid_json", text) from e

    if not isinstance(envelope, dict):
        raise ResponseDecodeError("not_an_object", text)
    root = envelope.get(ENVELOPE_ROOT)
    if not isinstance(root, dict) or not isinstance(root.get(RESPONSE_CONTAINER), dict):
        raise ResponseDecodeError("missing_envelope", text)

    code = root[RESPONSE_CONTAINER].get(STATUS_CODE)
    if code is not None:
        try:
            _ = int(code)
        except (TypeError, ValueError) as e:
            raise ResponseDecodeError("malformed_status", text) from e
    return envelope


def messages(envelope: Envelope) -> dict[str, Any]:
    """The FbiMsgsRs container of a parsed response."""
    return envelope[ENVELOPE_ROOT][RESPONSE_CONTAINER]


def ticket(envelope: Envelope) -> dict[str, Any]:
    ticket_value = envelope[ENVELOPE_ROOT].get(TICKET)
    return ticket_value if isinstance(ticket_value, dict) else {}


def outer_status(envelope: Envelope) -> int | None:
    code = messages(envelope).get(STATUS_CODE)
    return int(code) if code is not None else None


def response_item(envelope: Envelope) -> tuple[str | None, dict[str, Any]]:
    """Return ``(response_type, body)`` for the operation response, if present.

    The operation response is the single key of FbiMsgsRs ending in ``Rs``.
    """
    for key, value in messages(envelope).items():
        if key.endswith("Rs") and isinstance(value, dict):
            return key, value
    return None, {}
