from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    servicebus_connection: str = Field(..., validation_alias="SERVICEBUS_CONNECTION")
    servicebus_queue_name: str = Field(..., validation_alias="SERVICEBUS_QUEUE_NAME")

    transport_backend: str = Field("servicebus", validation_alias="TRANSPORT_BACKEND")

    # Draining the dead-letter queue removes entries the requeue endpoint would look for.
    consume_dead_letter: bool = Field(False, validation_alias="CONSUME_DEAD_LETTER")

    order_number_path: str = Field("header.orderNumber", validation_alias="ORDER_NUMBER_PATH")

    prefetch_count: int = Field(10, validation_alias="PREFETCH_COUNT")
    max_wait_time_seconds: float = Field(5.0, validation_alias="MAX_WAIT_TIME_SECONDS")

    initial_backoff_seconds: float = Field(0.5, validation_alias="INITIAL_BACKOFF_SECONDS")
    max_backoff_seconds: float = Field(10.0, validation_alias="MAX_BACKOFF_SECONDS")
    max_connection_attempts: int = Field(5, validation_alias="MAX_CONNECTION_ATTEMPTS")
    backoff_multiplier: float = Field(2.0, validation_alias="BACKOFF_MULTIPLIER")
