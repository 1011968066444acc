"""Port: remediation hook for dead-lettered orders (fix, resend, archive)."""
from __future__ import annotations

from typing import Protocol

from worker.app.domain.models import OrderPayload
from worker.app.ports.incoming_message import IncomingMessage


class DeadLetterRemediation(Protocol):
    async def remediate(self, message: IncomingMessage, order: OrderPayload | None) -> None:
        """Handle one dead-lettered message. order is None when the body is not JSON."""
        ...
