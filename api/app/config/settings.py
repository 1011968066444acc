"""Settings for the API."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Empty values are accepted at load time and reported per request as 503.
    servicebus_connection: str = Field("", validation_alias="SERVICEBUS_CONNECTION")
    servicebus_queue_name: str = Field("", validation_alias="SERVICEBUS_QUEUE_NAME")
    servicebus_session_queue_name: str = Field("", validation_alias="SERVICEBUS_SESSION_QUEUE_NAME")

    transport_backend: str = Field("servicebus", validation_alias="TRANSPORT_BACKEND")

    order_number_attribute: str = Field("orderNumber", validation_alias="ORDER_NUMBER_ATTRIBUTE")
    order_number_path: str = Field("header.orderNumber", validation_alias="ORDER_NUMBER_PATH")

    scan_default_max: int = Field(500, validation_alias="SCAN_DEFAULT_MAX")
    scan_batch_size: int = Field(50, validation_alias="SCAN_BATCH_SIZE")

    initial_backoff_seconds: float = Field(0.5, validation_alias="INITIAL_BACKOFF_SECONDS")
    max_backoff_seconds: float = Field(10.0, validation_alias="MAX_BACKOFF_SECONDS")
    max_connection_attempts: int = Field(5, validation_alias="MAX_CONNECTION_ATTEMPTS")
    backoff_multiplier: float = Field(2.0, validation_alias="BACKOFF_MULTIPLIER")

    send_timeout_seconds: float = Field(30.0, validation_alias="SEND_TIMEOUT_SECONDS")
    readiness_ping_timeout_seconds: float = Field(30.0, validation_alias="READINESS_PING_TIMEOUT_SECONDS")

    @property
    def servicebus_configured(self) -> bool:
        return bool(self.servicebus_connection.strip() and self.servicebus_queue_name.strip())
