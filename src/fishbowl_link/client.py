"""FishbowlClient: one coroutine per Fishbowl operation over a shared connection."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from types import TracebackType
from typing import Any, Self

from fishbowl_link import const
from fishbowl_link.classifier import ResponseClassifier
from fishbowl_link.config import FishbowlConfig
from fishbowl_link.correlation import correlation_context, get_correlation_id
from fishbowl_link.dispatcher import USE_DEFAULT_TIMEOUT, RequestDispatcher
from fishbowl_link.logging_abstraction import get_logger
from fishbowl_link.metrics import registry
from fishbowl_link.protocol.operations import (
    Custom,
    ExecuteQuery,
    Import,
    ImportHeader,
    IssueSO,
    Login,
    Logout,
    Operation,
    PartGet,
    QuickShip,
)
from fishbowl_link.session import Session, SessionPhase
from fishbowl_link.transport.connection_manager import ConnectionManager
from fishbowl_link.transport.exceptions import FishbowlConnectionError
from fishbowl_link.transport.types import ResponseMode

logger = get_logger("fishbowl_link")


class FishbowlClient:
    """Async client for one Fishbowl server.

    Usage:
        async with FishbowlClient(FishbowlConfig(host="10.0.0.5")) as fb:
            parts = await fb.execute_query(query="SELECT num FROM part")

    Requests from any number of tasks are serialized over one connection.
    The connection is opened lazily by the first request (or by ``connect()``)
    and, with ``auto_login``, the session logs in before anything else is sent.
    """

    def __init__(
        self,
        config: FishbowlConfig | None = None,
        *,
        connection: ConnectionManager | None = None,
    ) -> None:
        self.config: FishbowlConfig = config or FishbowlConfig.from_env()
        self.session: Session = connection.session if connection else self.config.build_session()
        self.connection: ConnectionManager = connection or ConnectionManager(
            self.session,
            timeout_config=self.config.timeout_config(),
            retry_policy=self.config.retry_policy(),
            max_frame_size=self.config.max_frame_size,
        )
        self.dispatcher: RequestDispatcher = RequestDispatcher(
            self.session,
            self.connection,
            ResponseClassifier(self.session),
            auto_login=self.config.auto_login,
            request_timeout=self.connection.timeout_config.request_timeout_seconds,
        )
        if const.FISHBOWL_METRICS_PORT:
            registry.start_metrics_server(const.FISHBOWL_METRICS_PORT)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def phase(self) -> SessionPhase:
        return self.session.phase

    @property
    def logged_in(self) -> bool:
        return self.session.logged_in

    async def connect(self) -> None:
        """Open the connection now instead of on the first request.

        Joins a connect already started by a queued request instead of
        opening a second socket.

        Raises:
            FishbowlConnectionError: Fatal failure, or every attempt failed

        """
        if self.connection.is_connected():
            return
        logger.info(
            "→ Connecting to Fishbowl",
            extra={"host": self.config.host, "port": self.config.port, "auto_login": self.config.auto_login},
        )
        task = self.connection.ensure_connecting("connect")
        # wait() leaves the shared task running if this caller is cancelled
        _ = await asyncio.wait({task})
        if not self.connection.is_connected():
            raise self.connection.last_connect_error or FishbowlConnectionError(
                "connect failed",
                state=self.connection.state.value,
            )

    async def close(self) -> None:
        """Fail outstanding requests and disconnect. The client cannot be reused."""
        logger.info("Closing Fishbowl client", extra={"host": self.config.host})
        await self.dispatcher.close()

    async def request(
        self,
        operation: Operation,
        mode: ResponseMode = ResponseMode.STRUCTURED,
        timeout: float | None | object = USE_DEFAULT_TIMEOUT,
    ) -> Any:
        """Submit any operation.

        ``timeout`` is in seconds; omitted uses the configured request timeout
        and ``None`` waits without a deadline.
        """
        with correlation_context(get_correlation_id()):
            return await self.dispatcher.submit(operation, mode, timeout)

    def cancel_pending(self, reason: str = "cancelled by caller") -> int:
        """Withdraw every request that has not been written yet."""
        return self.dispatcher.cancel_pending(reason)

    async def login(self) -> dict[str, Any] | None:
        """Log in with the configured credentials; None if already logged in."""
        return await self.request(Login(), ResponseMode.PASSTHROUGH)

    async def logout(self) -> dict[str, Any]:
        return await self.request(Logout(), ResponseMode.PASSTHROUGH)

    async def part_get(self, number: str, get_image: bool = False) -> dict[str, Any]:
        return await self.request(PartGet(number, get_image))

    async def execute_query(
        self,
        name: str | None = None,
        query: str | None = None,
        mode: ResponseMode = ResponseMode.STRUCTURED,
    ) -> Any:
        """Run a saved query (``name``) or SQL (``query``).

        In STRUCTURED mode the rows come back as a list of ``{column: value}``
        dicts; PASSTHROUGH returns the ExecuteQueryRs body with raw CSV lines.
        """
        return await self.request(ExecuteQuery(name=name, query=query), mode)

    async def import_rows(
        self,
        import_type: str,
        rows: Sequence[Mapping[str, object]],
        header: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        """Import records, e.g. ``import_rows("ImportPart", [{"PartNumber": "B201", ...}])``."""
        return await self.request(Import(import_type, tuple(rows), tuple(header) if header else None))

    async def import_header(self, import_type: str, mode: ResponseMode = ResponseMode.STRUCTURED) -> Any:
        """Column names the server expects for ``import_type``."""
        return await self.request(ImportHeader(import_type), mode)

    async def issue_so(self, so_number: str) -> dict[str, Any]:
        return await self.request(IssueSO(so_number))

    async def quick_ship(
        self,
        so_number: str,
        fulfill_service_items: bool = False,
        error_if_not_fulfilled: bool = False,
        ship_date: str | None = None,
    ) -> dict[str, Any]:
        return await self.request(
            QuickShip(
                so_number,
                fulfill_service_items=fulfill_service_items,
                error_if_not_fulfilled=error_if_not_fulfilled,
                ship_date=ship_date,
            ),
        )

    async def custom(
        self,
        name: str,
        body: Mapping[str, Any] | None = None,
        mode: ResponseMode = ResponseMode.PASSTHROUGH,
    ) -> Any:
        """Send any request type, e.g. ``custom("AddSOItem", {...})``."""
        return await self.request(Custom(name, dict(body or {})), mode)
