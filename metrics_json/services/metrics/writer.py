"""Structural document writers.

``DocumentWriter`` tracks nesting and rejects calls that would produce a
malformed document. Subclasses decide where the output goes:
``JsonDocumentWriter`` streams JSON text to a file-like sink and
``RecordBuffer`` builds an in-memory tree that can be committed to another
writer in one ``write_value`` call.
"""

import dataclasses
import json
import math
import numbers
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, TextIO

from pydantic import BaseModel

OBJECT = "object"
ARRAY = "array"

_UNSET = object()


class DocumentStructureError(Exception):
    """Raised when a writer call would unbalance or malform the document."""


class _Frame:
    __slots__ = ("kind", "count", "pending_field")

    def __init__(self, kind: str):
        self.kind = kind
        self.count = 0
        self.pending_field: Optional[str] = None


def _normalize_scalar(value: Any) -> Any:
    """Map a Python scalar onto something JSON can represent."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return _normalize_scalar(value.value)
    if isinstance(value, (bool, str)):
        return value
    # Integral/Real cover numpy scalars and Fraction; Decimal registers as neither
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, (numbers.Real, Decimal)):
        value = float(value)
        if math.isfinite(value):
            return value
        # Non-finite numbers are quoted so the document stays valid JSON
        if math.isnan(value):
            return "NaN"
        return "Infinity" if value > 0 else "-Infinity"
    return str(value)


class DocumentWriter:
    """Append-only structural writer with balance checking."""

    def __init__(self) -> None:
        self._stack: List[_Frame] = []
        self._root_written = False

    @property
    def depth(self) -> int:
        return len(self._stack)

    def begin_object(self) -> None:
        self._begin(OBJECT)

    def end_object(self) -> None:
        self._end(OBJECT)

    def begin_array(self) -> None:
        self._begin(ARRAY)

    def end_array(self) -> None:
        self._end(ARRAY)

    def field(self, name: str) -> None:
        if not self._stack or self._stack[-1].kind != OBJECT:
            raise DocumentStructureError(f"Field name {name!r} written outside an object")
        frame = self._stack[-1]
        if frame.pending_field is not None:
            raise DocumentStructureError(f"Field {frame.pending_field!r} has no value")
        self._on_field(name, frame.count == 0)
        frame.pending_field = name
        frame.count += 1

    def scalar(self, value: Any) -> None:
        self._enter_value()
        self._on_scalar(_normalize_scalar(value))

    def write_value(self, value: Any) -> None:
        """Write a scalar or a nested structure of mappings and sequences."""
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        elif dataclasses.is_dataclass(value) and not isinstance(value, type):
            value = dataclasses.asdict(value)

        if isinstance(value, dict):
            self.begin_object()
            for key, item in value.items():
                self.field(str(key))
                self.write_value(item)
            self.end_object()
        elif isinstance(value, (list, tuple)):
            self.begin_array()
            for item in value:
                self.write_value(item)
            self.end_array()
        else:
            self.scalar(value)

    def write_field(self, name: str, value: Any) -> None:
        self.field(name)
        self.write_value(value)

    def close(self) -> None:
        if self._stack:
            raise DocumentStructureError(f"{len(self._stack)} container(s) left open")

    def _begin(self, kind: str) -> None:
        self._enter_value()
        self._on_begin(kind)
        self._stack.append(_Frame(kind))

    def _end(self, kind: str) -> None:
        if not self._stack or self._stack[-1].kind != kind:
            raise DocumentStructureError(f"end_{kind} without matching begin_{kind}")
        frame = self._stack[-1]
        if frame.pending_field is not None:
            raise DocumentStructureError(f"Field {frame.pending_field!r} has no value")
        self._stack.pop()
        self._on_end(kind, frame.count == 0)

    def _enter_value(self) -> None:
        if not self._stack:
            if self._root_written:
                raise DocumentStructureError("Document already has a root value")
            self._root_written = True
            return
        frame = self._stack[-1]
        if frame.kind == OBJECT:
            if frame.pending_field is None:
                raise DocumentStructureError("Value inside an object must follow a field name")
            frame.pending_field = None
        else:
            self._on_element(frame.count == 0)
            frame.count += 1

    # Output hooks

    def _on_begin(self, kind: str) -> None:
        raise NotImplementedError

    def _on_end(self, kind: str, empty: bool) -> None:
        raise NotImplementedError

    def _on_field(self, name: str, first: bool) -> None:
        raise NotImplementedError

    def _on_element(self, first: bool) -> None:
        raise NotImplementedError

    def _on_scalar(self, value: Any) -> None:
        raise NotImplementedError


class JsonDocumentWriter(DocumentWriter):
    """Streams JSON text to ``stream``.

    With ``pretty`` set, containers are broken over indented lines. Field
    order and structure are the same either way.
    """

    def __init__(self, stream: TextIO, pretty: bool = False, indent: int = 2):
        super().__init__()
        self._stream = stream
        self._pretty = pretty
        self._indent = indent

    def _newline(self) -> None:
        if self._pretty:
            self._stream.write("\n" + " " * (self._indent * self.depth))

    def _on_begin(self, kind: str) -> None:
        self._stream.write("{" if kind == OBJECT else "[")

    def _on_end(self, kind: str, empty: bool) -> None:
        if not empty:
            self._newline()
        self._stream.write("}" if kind == OBJECT else "]")

    def _on_field(self, name: str, first: bool) -> None:
        if not first:
            self._stream.write(",")
        self._newline()
        self._stream.write(json.dumps(name))
        self._stream.write(": " if self._pretty else ":")

    def _on_element(self, first: bool) -> None:
        if not first:
            self._stream.write(",")
        self._newline()

    def _on_scalar(self, value: Any) -> None:
        self._stream.write(json.dumps(value))

    def close(self) -> None:
        super().close()
        self._stream.flush()


class RecordBuffer(DocumentWriter):
    """Collects writer calls into nested dicts and lists."""

    def __init__(self) -> None:
        super().__init__()
        self._containers: List[Any] = []
        self._pending_key: Optional[str] = None
        self._root: Any = _UNSET

    def _attach(self, value: Any) -> None:
        if not self._containers:
            self._root = value
        elif isinstance(self._containers[-1], dict):
            self._containers[-1][self._pending_key] = value
        else:
            self._containers[-1].append(value)

    def _on_begin(self, kind: str) -> None:
        container: Any = {} if kind == OBJECT else []
        self._attach(container)
        self._containers.append(container)

    def _on_end(self, kind: str, empty: bool) -> None:
        self._containers.pop()

    def _on_field(self, name: str, first: bool) -> None:
        self._pending_key = name

    def _on_element(self, first: bool) -> None:
        pass

    def _on_scalar(self, value: Any) -> None:
        self._attach(value)

    def result(self) -> Any:
        """The finished tree.

        Raises:
            DocumentStructureError: if nothing was written or a container is open
        """
        if self._stack or self._root is _UNSET:
            raise DocumentStructureError("Record is incomplete")
        return self._root
