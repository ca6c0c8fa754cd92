"""Response classification: status checks, session updates and result shaping."""

from __future__ import annotations

import logging
from typing import Any

from fishbowl_link.protocol import envelope, tabular
from fishbowl_link.protocol.envelope import Envelope
from fishbowl_link.protocol.exceptions import FishbowlStatusError
from fishbowl_link.protocol.status_codes import STATUS_SUCCESS, status_message
from fishbowl_link.session import Session
from fishbowl_link.transport.types import ResponseMode

logger = logging.getLogger(__name__)


class ResponseClassifier:
    """Turn a decoded response envelope into a result or a FishbowlStatusError.

    Both the outer FbiMsgsRs status and the inner ``<Name>Rs`` status must be
    1000. Login and logout responses update the session regardless of the
    requested mode; query and import-header rows are transcoded only in
    STRUCTURED mode.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def classify(self, response: Envelope, mode: ResponseMode = ResponseMode.STRUCTURED) -> Any:
        """Classify one response.

        Raises:
            FishbowlStatusError: Outer or inner status is not success

        """
        msgs = envelope.messages(response)
        response_type, body = envelope.response_item(response)

        outer_code = envelope.outer_status(response)
        if outer_code is not None and outer_code != STATUS_SUCCESS:
            raise self._status_error(outer_code, msgs.get(envelope.STATUS_MESSAGE), response_type)

        inner_code = body.get(envelope.STATUS_CODE)
        if inner_code is not None and int(inner_code) != STATUS_SUCCESS:
            message = body.get(envelope.STATUS_MESSAGE) or msgs.get(envelope.STATUS_MESSAGE)
            raise self._status_error(int(inner_code), message, response_type)

        match response_type:
            case "LoginRs":
                ticket = envelope.ticket(response)
                self.session.mark_logged_in(str(ticket.get("Key") or ""), ticket.get("UserID"))
            case "LogoutRs":
                self.session.mark_logged_out("logout")
            case _:
                pass

        if mode is ResponseMode.RAW:
            return response
        if mode is ResponseMode.STRUCTURED:
            match response_type:
                case "ExecuteQueryRs":
                    return self._query_records(body)
                case "ImportHeaderRs":
                    return self._import_header_fields(body)
                case _:
                    pass
        return body

    @staticmethod
    def _status_error(code: int, server_message: object, response_type: str | None) -> FishbowlStatusError:
        message = str(server_message) if server_message else status_message(code)
        logger.warning(
            "Fishbowl returned status %d: %s",
            code,
            message,
            extra={"status_code": code, "response_type": response_type},
        )
        return FishbowlStatusError(code, message, response_type)

    @staticmethod
    def _query_records(body: dict[str, Any]) -> list[dict[str, str]]:
        lines = tabular.normalize_row_list(body.get("Rows"))
        if not lines:
            return []
        return tabular.rows(lines[0], lines[1:])

    @staticmethod
    def _import_header_fields(body: dict[str, Any]) -> list[str]:
        lines = tabular.normalize_row_list(body.get("Header"))
        if not lines:
            return []
        return tabular.parse_line(lines[0])
