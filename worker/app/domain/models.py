"""Domain models."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class OrderPayload:
    """Parsed order body. document is the decoded JSON value."""

    document: Any
    order_number: str | None = None

    def pretty(self) -> str:
        return json.dumps(self.document, indent=2, ensure_ascii=False)


def _walk(document: Any, path: str) -> str | None:
    node = document
    for segment in path.split("."):
        if isinstance(node, dict) and segment in node:
            node = node[segment]
        elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
            node = node[int(segment)]
        else:
            return None
    if node is None or isinstance(node, (dict, list)):
        return None
    return str(node)


def parse_order(raw_body: bytes, order_number_path: str) -> OrderPayload:
    """Decode a JSON order body. Raises ValueError when the body is not JSON."""
    document = json.loads(raw_body.decode("utf-8"))
    return OrderPayload(document=document, order_number=_walk(document, order_number_path))
