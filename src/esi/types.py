"""
Core types for the ESI resource clients.

This module defines the fundamental data structures used throughout the system:
- Backend enum choosing the cache medium of a resource
- CacheKey and CacheEntry for the cache stores
- Codec wrapping a pydantic TypeAdapter for one resource schema
- ResourceDescriptor, the immutable per-resource configuration
- Helper functions for timestamps
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import cached_property
from typing import Any, Generic, Mapping, TypeVar

import orjson
from pydantic import BaseModel, TypeAdapter, ValidationError

from esi.exceptions import ConfigurationError, DecodeError, InvalidRequestError

T = TypeVar("T")

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp in a fixed-width UTC form that sorts lexically."""
    return value.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a timestamp written by format_timestamp."""
    return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def is_identifier(value: str) -> bool:
    """Check that a namespace is safe to use as a directory or table name."""
    return bool(_IDENTIFIER.match(value))


class Backend(str, Enum):
    """Cache medium for a resource type."""

    FILE = "file"  # one JSON document per key
    TABLE = "table"  # one SQLite row per key


@dataclass(frozen=True)
class CacheKey:
    """Composite cache key: owner id plus an optional secondary id."""

    primary_id: int
    secondary_id: int | None = None

    @property
    def filename(self) -> str:
        """File name used by the file-backed store."""
        if self.secondary_id is None:
            return f"{self.primary_id}.json"
        return f"{self.primary_id}_{self.secondary_id}.json"

    @property
    def columns(self) -> tuple[int, int]:
        """Key columns used by the table-backed store (absent secondary is 0)."""
        return (self.primary_id, self.secondary_id if self.secondary_id is not None else 0)

    def __str__(self) -> str:
        if self.secondary_id is None:
            return str(self.primary_id)
        return f"{self.primary_id}/{self.secondary_id}"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A decoded cache entry with the time it was written."""

    namespace: str
    key: CacheKey
    value: T
    stored_at: datetime

    def age_seconds(self, now: datetime | None = None) -> float:
        """Seconds elapsed since the entry was stored."""
        return ((now or utc_now()) - self.stored_at).total_seconds()


class Codec(Generic[T]):
    """Converts between raw JSON, stored documents and typed values.

    Wraps a pydantic TypeAdapter so a resource schema can be a single model
    (singleton resources) or a list of models (listings).
    """

    def __init__(self, schema: type[Any], many: bool = False) -> None:
        self.schema = schema
        self.many = many
        self._adapter: TypeAdapter[Any] = TypeAdapter(list[schema] if many else schema)

    def decode(self, raw: bytes) -> T:
        """Decode a raw network payload.

        Raises:
            DecodeError: If the payload is not JSON or does not match the schema.
        """
        try:
            document = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise DecodeError(
                "Response is not valid JSON",
                context={"schema": self.schema.__name__, "error": str(e)},
            ) from e
        return self.load(document)

    def load(self, document: Any) -> T:
        """Validate an already-parsed JSON document.

        Raises:
            DecodeError: If the document does not match the schema.
        """
        try:
            return self._adapter.validate_python(document)
        except ValidationError as e:
            raise DecodeError(
                f"Payload does not match {self.schema.__name__}",
                context={"errors": e.error_count(), "error": str(e)[:500]},
            ) from e

    def dump(self, value: T) -> Any:
        """Convert a typed value to a JSON-compatible document."""
        return self._adapter.dump_python(value, mode="json")


@dataclass(frozen=True)
class ResourceDescriptor:
    """Immutable configuration for one ESI resource type.

    The TTL is not part of the descriptor; it lives in the ExpirationPolicy
    keyed by ``name``.
    """

    name: str
    path: str  # e.g. "/characters/{character_id}/planets/{planet_id}/"
    schema: type[BaseModel]
    many: bool = False
    backend: Backend = Backend.FILE
    paginated: bool = False
    key_fields: tuple[str, ...] = ("character_id",)
    query: tuple[tuple[str, str], ...] = ()
    end_signatures: tuple[str, ...] = ()
    forbidden_ttl_seconds: int | None = None

    def __post_init__(self) -> None:
        if not is_identifier(self.name):
            raise ConfigurationError(
                "Resource name must be an identifier", context={"name": self.name}
            )
        if self.paginated and not self.many:
            raise ConfigurationError(
                "Paginated resources must be listings", context={"name": self.name}
            )
        if not 1 <= len(self.key_fields) <= 2:
            raise ConfigurationError(
                "key_fields must name one or two path parameters",
                context={"name": self.name, "key_fields": self.key_fields},
            )
        unknown = [f for f in self.key_fields if f not in self.placeholders]
        if unknown:
            raise ConfigurationError(
                "key_fields must be path placeholders",
                context={"name": self.name, "unknown": unknown},
            )

    @cached_property
    def placeholders(self) -> tuple[str, ...]:
        """Placeholder names used in the path template, in order."""
        return tuple(
            field_name
            for _, field_name, _, _ in string.Formatter().parse(self.path)
            if field_name
        )

    @cached_property
    def codec(self) -> Codec[Any]:
        """Codec for this resource's schema."""
        return Codec(self.schema, many=self.many)

    @property
    def forbidden_namespace(self) -> str:
        """Namespace holding tombstones for forbidden lookups."""
        return f"{self.name}_forbidden"

    def _require(self, params: Mapping[str, Any], names: tuple[str, ...]) -> None:
        missing = [name for name in names if params.get(name) is None]
        if missing:
            raise InvalidRequestError(
                "Missing path parameters",
                context={"resource": self.name, "path": self.path, "missing": missing},
            )

    def path_for(self, params: Mapping[str, Any]) -> str:
        """Fill the path template.

        Raises:
            InvalidRequestError: If a placeholder has no value.
        """
        self._require(params, self.placeholders)
        return self.path.format(**{name: params[name] for name in self.placeholders})

    def key_for(self, params: Mapping[str, Any]) -> CacheKey:
        """Build the cache key from the key fields.

        Raises:
            InvalidRequestError: If a key field has no value.
        """
        self._require(params, self.key_fields)
        try:
            ids = [int(params[name]) for name in self.key_fields]
        except (TypeError, ValueError) as e:
            raise InvalidRequestError(
                "Key parameters must be integers",
                context={"resource": self.name, "key_fields": self.key_fields},
            ) from e
        return CacheKey(*ids)
