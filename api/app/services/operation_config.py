"""Per-process configuration handed to every queue operation."""
from __future__ import annotations

from dataclasses import dataclass

from api.app.config.settings import Settings
from api.app.domain.errors import ConfigurationError
from api.app.domain.predicates import DEFAULT_FIELD_ATTRIBUTE, DEFAULT_FIELD_PATH
from api.app.domain.scanner import DEFAULT_MAX_TO_SCAN, MAX_BATCH_SIZE


@dataclass(frozen=True)
class OperationConfig:
    queue_name: str
    session_queue_name: str = ""
    field_attribute: str = DEFAULT_FIELD_ATTRIBUTE
    field_path: str = DEFAULT_FIELD_PATH
    default_max_to_scan: int = DEFAULT_MAX_TO_SCAN
    batch_size: int = MAX_BATCH_SIZE

    def __post_init__(self) -> None:
        if not self.queue_name or not self.queue_name.strip():
            raise ConfigurationError("Service Bus configuration not found.")

    @classmethod
    def from_settings(cls, settings: Settings) -> "OperationConfig":
        return cls(
            queue_name=settings.servicebus_queue_name.strip(),
            session_queue_name=settings.servicebus_session_queue_name.strip(),
            field_attribute=settings.order_number_attribute,
            field_path=settings.order_number_path,
            default_max_to_scan=settings.scan_default_max,
            batch_size=settings.scan_batch_size,
        )

    def require_session_queue(self) -> str:
        if not self.session_queue_name:
            raise ConfigurationError("Service Bus session queue configuration not found.")
        return self.session_queue_name
