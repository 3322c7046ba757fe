# src/eventsocket/core/models.py
"""
Event value returned by the connection engine.
"""

import re
import sys
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, TextIO

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .interfaces import ConversionError, EventKind

_INTEGER = re.compile(r"[+-]?[0-9]+")


class Event(BaseModel):
    """
    One decoded frame: normalized headers and raw body text.
    Header values are always text, whatever the wire encoding was.
    Headers are held in a read-only mapping.
    """
    model_config = ConfigDict(frozen=True)

    kind: EventKind
    header: Mapping[str, str] = Field(default_factory=dict)
    body: str = ""

    @field_validator("header", mode="after")
    @classmethod
    def freeze_header(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("header")
    def serialize_header(self, value: Mapping[str, str]) -> Dict[str, Any]:
        return dict(value)

    def get(self, key: str) -> str:
        """Header value, or an empty string if absent"""
        return self.header.get(key, "")

    def get_int(self, key: str) -> int:
        """
        Header value parsed as a base-10 integer.

        Raises:
            ConversionError: If the header is absent or not an integer
        """
        value = self.header.get(key)
        if value is None:
            raise ConversionError(f"Header {key!r} not present")
        if not _INTEGER.fullmatch(value):
            raise ConversionError(f"Header {key!r} is not an integer: {value!r}")
        return int(value)

    @property
    def content_type(self) -> str:
        return self.get("Content-Type")

    @property
    def event_name(self) -> str:
        return self.get("Event-Name")

    def dump(self) -> str:
        """Render headers in key order, then the body if any"""
        lines = [f"{key}: {self.header[key]!r}" for key in sorted(self.header)]
        if self.body:
            lines.append(f"BODY: {self.body!r}")
        return "\n".join(lines)

    def pretty_print(self, file: Optional[TextIO] = None) -> None:
        print(self.dump(), file=file or sys.stdout)

    def __str__(self) -> str:
        if self.body:
            return f"{dict(self.header)} body={self.body}"
        return f"{dict(self.header)}"
