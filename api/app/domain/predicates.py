"""Match predicates evaluated against peeked messages.

A predicate answers "is this the message the caller asked for?" without side
effects. Comparisons are case-insensitive. `ByField` looks at the custom
attribute first; a message that carries the attribute is decided by it alone,
and only messages without it have their body parsed. A body that is not JSON,
or lacks the path, is simply not a match.
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from api.app.domain.errors import ValidationError
from api.app.domain.models import PeekedMessage

DEFAULT_FIELD_ATTRIBUTE = "orderNumber"
DEFAULT_FIELD_PATH = "header.orderNumber"


class MatchSource(str, Enum):
    MESSAGE_ID = "message_id"
    ATTRIBUTE = "attribute"
    BODY = "body"


@dataclass(frozen=True)
class Match:
    source: MatchSource
    document: Any = None


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _same(left: str | None, right: str) -> bool:
    return bool(left) and left.casefold() == right.casefold()


def try_parse_json(body: bytes) -> Any | None:
    """Parse a JSON body; None when the body is empty or not JSON."""
    if not body:
        return None
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return None


def extract_path(document: Any, path: str) -> str | None:
    """Walk a dotted path (`header.orderNumber`, `lines.0.sku`) into parsed JSON."""
    node = document
    for segment in path.split("."):
        if isinstance(node, dict):
            if segment not in node:
                return None
            node = node[segment]
        elif isinstance(node, list) and segment.isdigit():
            index = int(segment)
            if index >= len(node):
                return None
            node = node[index]
        else:
            return None
    return _to_text(node)


def try_extract_field(body: bytes, path: str) -> str | None:
    document = try_parse_json(body)
    if document is None:
        return None
    return extract_path(document, path)


class MatchPredicate(ABC):
    """Base predicate. Subclasses implement `evaluate`."""

    @abstractmethod
    def evaluate(self, message: PeekedMessage) -> Match | None: ...

    def matches(self, message: PeekedMessage) -> bool:
        return self.evaluate(message) is not None


@dataclass(frozen=True)
class ById(MatchPredicate):
    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValidationError("message id must be non-empty")

    def evaluate(self, message: PeekedMessage) -> Match | None:
        if _same(message.message_id, self.value):
            return Match(MatchSource.MESSAGE_ID)
        return None


@dataclass(frozen=True)
class ByField(MatchPredicate):
    value: str
    attribute: str = DEFAULT_FIELD_ATTRIBUTE
    path: str = DEFAULT_FIELD_PATH

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValidationError(f"{self.attribute} must be non-empty")

    def evaluate(self, message: PeekedMessage) -> Match | None:
        attribute_value = _to_text(message.application_properties.get(self.attribute))
        if attribute_value:
            # Attribute is authoritative; the body is not consulted.
            if _same(attribute_value, self.value):
                return Match(MatchSource.ATTRIBUTE)
            return None

        document = try_parse_json(message.body)
        if document is None:
            return None
        if _same(extract_path(document, self.path), self.value):
            return Match(MatchSource.BODY, document=document)
        return None


@dataclass(frozen=True)
class AnyOf(MatchPredicate):
    """First matching child wins, in declaration order."""

    predicates: tuple[MatchPredicate, ...]

    def evaluate(self, message: PeekedMessage) -> Match | None:
        for predicate in self.predicates:
            match = predicate.evaluate(message)
            if match is not None:
                return match
        return None


def build_predicate(
    message_id: str | None,
    field_value: str | None,
    *,
    attribute: str = DEFAULT_FIELD_ATTRIBUTE,
    path: str = DEFAULT_FIELD_PATH,
) -> MatchPredicate:
    """Build the predicate for a lookup request; at least one key is required."""
    message_id = (message_id or "").strip()
    field_value = (field_value or "").strip()
    if not message_id and not field_value:
        raise ValidationError(f"Provide messageId or {attribute}")
    if message_id and field_value:
        return AnyOf((ById(message_id), ByField(field_value, attribute, path)))
    if message_id:
        return ById(message_id)
    return ByField(field_value, attribute, path)
