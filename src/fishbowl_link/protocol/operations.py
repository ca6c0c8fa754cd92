"""Typed Fishbowl operations and their request builders.

Each operation is a small frozen dataclass. ``request_key()`` and
``build_body()`` dispatch over the closed set of variants with ``match``;
``Custom`` is the escape hatch for request types without a dedicated variant.
"""

from __future__ import annotations

import base64
import hashlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from fishbowl_link.protocol import envelope, tabular
from fishbowl_link.protocol.exceptions import InvalidOperationError

if TYPE_CHECKING:
    from fishbowl_link.session import Session


@dataclass(frozen=True)
class Login:
    """Authenticate with the credentials held by the session."""


@dataclass(frozen=True)
class Logout:
    """End the current session."""


@dataclass(frozen=True)
class PartGet:
    number: str
    get_image: bool = False


@dataclass(frozen=True)
class ExecuteQuery:
    """Run a saved query by ``name`` or an ad-hoc SQL ``query``."""

    name: str | None = None
    query: str | None = None


@dataclass(frozen=True)
class Import:
    import_type: str
    rows: Sequence[Mapping[str, object]] = ()
    header: Sequence[str] | None = None


@dataclass(frozen=True)
class ImportHeader:
    import_type: str


@dataclass(frozen=True)
class IssueSO:
    so_number: str


@dataclass(frozen=True)
class QuickShip:
    so_number: str
    fulfill_service_items: bool = False
    error_if_not_fulfilled: bool = False
    ship_date: str | None = None


@dataclass(frozen=True)
class Custom:
    """Any request type, e.g. ``Custom("AddSOItem", {...})`` sends ``AddSOItemRq``."""

    name: str
    body: Mapping[str, Any] = field(default_factory=dict)


Operation = Login | Logout | PartGet | ExecuteQuery | Import | ImportHeader | IssueSO | QuickShip | Custom


def hash_password(password: str) -> str:
    """Fishbowl expects base64(md5(password))."""
    digest = hashlib.md5(password.encode("utf-8")).digest()  # noqa: S324
    return base64.b64encode(digest).decode("ascii")


def operation_name(operation: Operation) -> str:
    """Wire name without the Rq/Rs suffix."""
    match operation:
        case Login():
            return "Login"
        case Logout():
            return "Logout"
        case PartGet():
            return "PartGet"
        case ExecuteQuery():
            return "ExecuteQuery"
        case Import():
            return "Import"
        case ImportHeader():
            return "ImportHeader"
        case IssueSO():
            return "IssueSO"
        case QuickShip():
            return "QuickShip"
        case Custom(name=name):
            return name.removesuffix("Rq")


def request_key(operation: Operation) -> str:
    return f"{operation_name(operation)}Rq"


def response_key(operation: Operation) -> str:
    return f"{operation_name(operation)}Rs"


def build_body(operation: Operation, session: Session) -> dict[str, Any]:
    """Build the ``<Name>Rq`` body for an operation.

    Raises:
        InvalidOperationError: Required arguments are missing

    """
    match operation:
        case Login():
            return {
                "IAID": session.app_id,
                "IAName": session.app_name,
                "IADescription": session.app_description,
                "UserName": session.username,
                "UserPassword": hash_password(session.password),
            }
        case Logout():
            return {}
        case PartGet(number=number, get_image=get_image):
            return {"Number": number, "GetImage": get_image}
        case ExecuteQuery(name=None, query=None):
            raise InvalidOperationError("ExecuteQuery needs a name or a query")
        case ExecuteQuery(name=name, query=None):
            return {"Name": name}
        case ExecuteQuery(query=query):
            return {"Query": query}
        case Import(import_type=import_type, rows=rows, header=header):
            if not rows:
                raise InvalidOperationError("Import needs at least one row")
            return {"Type": import_type, "Rows": {"Row": tabular.encode_rows(rows, header)}}
        case ImportHeader(import_type=import_type):
            return {"Type": import_type}
        case IssueSO(so_number=so_number):
            return {"SONumber": so_number}
        case QuickShip():
            body: dict[str, Any] = {
                "SONumber": operation.so_number,
                "FulfillServiceItems": operation.fulfill_service_items,
                "ErrorIfNotFulfilled": operation.error_if_not_fulfilled,
            }
            if operation.ship_date is not None:
                body["ShipDate"] = operation.ship_date
            return body
        case Custom(body=body):
            return dict(body)


def build_envelope(operation: Operation, session: Session) -> str:
    """Serialize the full request envelope, ticket included.

    Login always goes out with an empty key.
    """
    key = "" if isinstance(operation, Login) else session.session_key
    return envelope.build_request(request_key(operation), build_body(operation, session), key)
