"""Client configuration model."""

from __future__ import annotations

from pydantic import BaseModel, Field

from fishbowl_link import const
from fishbowl_link.protocol.frame_codec import DEFAULT_MAX_FRAME_SIZE
from fishbowl_link.session import Session
from fishbowl_link.transport.retry_policy import RetryPolicy, TimeoutConfig


class FishbowlConfig(BaseModel):
    """Connection, credential and timing settings for one FishbowlClient.

    Defaults match the stock Fishbowl server and the integrated-app identity
    used by the reference client; ``from_env()`` picks up FISHBOWL_* overrides.
    """

    host: str = "127.0.0.1"
    port: int = Field(default=28192, ge=1, le=65535)
    app_id: int = 54321
    app_name: str = "Fishbowljs"
    app_description: str = "Fishbowljs helper"
    username: str = "admin"
    password: str = Field(default="admin", repr=False)

    auto_login: bool = True
    connect_timeout: float = Field(default=5.0, gt=0)
    request_timeout: float | None = Field(default=60.0, gt=0)
    write_timeout: float = Field(default=10.0, gt=0)
    max_connect_attempts: int = Field(default=3, ge=1)
    max_frame_size: int = Field(default=DEFAULT_MAX_FRAME_SIZE, gt=0)

    @classmethod
    def from_env(cls, **overrides: object) -> FishbowlConfig:
        """Build a config from FISHBOWL_* environment variables plus explicit overrides."""
        values: dict[str, object] = {
            "host": const.FISHBOWL_HOST,
            "port": const.FISHBOWL_PORT,
            "app_id": const.FISHBOWL_IA_ID,
            "app_name": const.FISHBOWL_IA_NAME,
            "app_description": const.FISHBOWL_IA_DESCRIPTION,
            "username": const.FISHBOWL_USERNAME,
            "password": const.FISHBOWL_PASSWORD,
            "auto_login": const.FISHBOWL_AUTO_LOGIN,
            "connect_timeout": const.FISHBOWL_CONNECT_TIMEOUT,
            "request_timeout": const.FISHBOWL_REQUEST_TIMEOUT,
        }
        values.update(overrides)
        return cls.model_validate(values)

    def build_session(self) -> Session:
        return Session(
            host=self.host,
            port=self.port,
            app_id=self.app_id,
            app_name=self.app_name,
            app_description=self.app_description,
            username=self.username,
            password=self.password,
        )

    def timeout_config(self) -> TimeoutConfig:
        return TimeoutConfig(
            connect_timeout_seconds=self.connect_timeout,
            request_timeout_seconds=self.request_timeout,
            write_timeout_seconds=self.write_timeout,
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_attempts=self.max_connect_attempts)
