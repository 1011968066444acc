"""Service Bus transport lifecycle states."""
from enum import Enum


class TransportState(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    READY = "READY"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"
