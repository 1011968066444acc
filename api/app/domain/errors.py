"""Error taxonomy for queue operations. Routers map these to HTTP status codes."""


class QueueInspectorError(Exception):
    """Base error for queue inspection and redrive failures."""


class ValidationError(QueueInspectorError):
    """Request parameters are missing or invalid; raised before any transport call."""


class ConfigurationError(QueueInspectorError):
    """Queue connection string or queue name is unavailable."""


class TransportError(QueueInspectorError):
    """A peek, send or session call against the broker failed."""
