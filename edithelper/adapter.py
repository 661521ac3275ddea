"""Interface to the host editing form that the commands read and write through."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Tuple, Union

logger = logging.getLogger(__name__)

# Scalar fields of a track row
FIELD_TITLE = "title"
FIELD_DURATION = "duration"
FIELD_POSITION = "position"

# Fields of structural entries
FIELD_NAME = "name"
FIELD_JOIN = "join"
FIELD_ROLE = "role"


class StructuralKind(Enum):
    """Kinds of dynamically created field groups."""

    ARTIST_CREDIT = "artist_credit"
    ROLE_CREDIT = "role_credit"
    TRACK_ROW = "track_row"


class AdapterError(Exception):
    """Base error for adapter failures.

    ``kind`` is ``"not-found"`` or ``"timeout"``.
    """

    kind = "error"

    def __init__(self, message: str, kind: str = ""):
        super().__init__(message)
        if kind:
            self.kind = kind


class FieldNotFoundError(AdapterError):
    kind = "not-found"


class StructuralNotFoundError(AdapterError):
    """The structural entry is no longer attached to the form."""

    kind = "not-found"


class AdapterTimeoutError(AdapterError):
    kind = "timeout"


def field_id(row_id: str, name: str) -> str:
    """Build the id of field ``name`` on row or entry ``row_id``."""
    return f"{row_id}/{name}"


def split_field_id(fid: str) -> Tuple[str, str]:
    """Inverse of :func:`field_id`: ``"r1/title"`` -> ``("r1", "title")``."""
    owner, _, name = fid.rpartition("/")
    if not owner:
        raise FieldNotFoundError(f"Malformed field id: {fid}")
    return owner, name


@dataclass
class StructuralEntry:
    """A created credit or row: its reference plus the ids of its fields."""

    ref: str
    kind: StructuralKind
    field_ids: Dict[str, str] = field(default_factory=dict)


Predicate = Callable[[], Union[bool, Awaitable[bool]]]


class Adapter(ABC):
    """Abstract host-form adapter.

    All capabilities are coroutines because creating or removing structural
    entries completes asynchronously in the host.
    """

    @abstractmethod
    async def list_rows(self) -> List[str]:
        """Return the ids of the track rows in display order."""
        raise NotImplementedError

    @abstractmethod
    async def get_field_value(self, field_id: str) -> str:
        """Return the current value of a field.

        Raises:
            FieldNotFoundError: The field does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    async def set_field_value(self, field_id: str, value: str) -> None:
        """Write a field value.

        Raises:
            FieldNotFoundError: The field does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_credits(self, row_id: str, kind: StructuralKind) -> List[StructuralEntry]:
        """Return the structural entries of ``kind`` currently attached to a row."""
        raise NotImplementedError

    @abstractmethod
    async def create_structural_entry(self, row_id: str, kind: StructuralKind) -> StructuralEntry:
        """Create a credit on a row (or a new track row) and wait until it exists.

        Raises:
            FieldNotFoundError: The row does not exist.
            AdapterTimeoutError: The entry did not appear in time.
        """
        raise NotImplementedError

    @abstractmethod
    async def remove_structural_entry(self, ref: str) -> bool:
        """Request removal of a structural entry.

        Returns:
            Whether the entry is still connected after the request.

        Raises:
            StructuralNotFoundError: The entry is already detached.
        """
        raise NotImplementedError

    async def await_structural_change(
        self, predicate: Predicate, timeout: float, interval: float = 0.1
    ) -> None:
        """Poll ``predicate`` every ``interval`` seconds until it holds.

        Raises:
            AdapterTimeoutError: The predicate did not hold within ``timeout`` seconds.
        """
        deadline = time.monotonic() + timeout
        while True:
            outcome = predicate()
            if asyncio.iscoroutine(outcome):
                outcome = await outcome
            if outcome:
                return
            if time.monotonic() >= deadline:
                raise AdapterTimeoutError(f"Structural change not observed within {timeout:.1f}s")
            await asyncio.sleep(interval)
