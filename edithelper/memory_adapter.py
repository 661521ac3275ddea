"""In-memory adapter that models a release edit form.

Structural entries are attached asynchronously, after ``creation_delay``
seconds, the way the real form renders new credit rows after a click. Rows and
entries can be told to misbehave so failure paths can be exercised.
"""

import asyncio
import itertools
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml

from .adapter import (
    FIELD_DURATION,
    FIELD_JOIN,
    FIELD_NAME,
    FIELD_POSITION,
    FIELD_ROLE,
    FIELD_TITLE,
    Adapter,
    FieldNotFoundError,
    StructuralEntry,
    StructuralKind,
    StructuralNotFoundError,
    field_id,
    split_field_id,
)

logger = logging.getLogger(__name__)

ROW_FIELDS = (FIELD_POSITION, FIELD_TITLE, FIELD_DURATION)

ENTRY_FIELDS = {
    StructuralKind.ARTIST_CREDIT: (FIELD_NAME, FIELD_JOIN),
    StructuralKind.ROLE_CREDIT: (FIELD_ROLE, FIELD_NAME),
}


class InMemoryAdapter(Adapter):
    """Reference adapter backed by plain dictionaries."""

    def __init__(
        self,
        creation_delay: float = 0.0,
        structural_timeout: float = 6.0,
        poll_interval: float = 0.1,
    ):
        self.creation_delay = creation_delay
        self.structural_timeout = structural_timeout
        self.poll_interval = poll_interval

        self._rows: Dict[str, Dict[str, str]] = {}
        self._row_order: List[str] = []
        # ref -> {"row": row_id, "kind": StructuralKind, "fields": {...}}
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._pending: Set[str] = set()
        self._ids = itertools.count(1)

        # failure injection
        self.stuck_rows: Set[str] = set()
        self.sticky_refs: Set[str] = set()

    # Building and exporting releases

    def add_row(self, position: str = "", title: str = "", duration: str = "") -> str:
        """Synchronously append a track row and return its id."""
        row_id = f"r{next(self._ids)}"
        self._rows[row_id] = {
            FIELD_POSITION: position or "",
            FIELD_TITLE: title or "",
            FIELD_DURATION: duration or "",
        }
        self._row_order.append(row_id)
        return row_id

    def add_entry(self, row_id: str, kind: StructuralKind, **values: str) -> str:
        """Synchronously attach a credit to a row and return its ref."""
        if row_id not in self._rows:
            raise FieldNotFoundError(f"Unknown row: {row_id}")
        ref = self._new_ref(kind)
        fields = {name: "" for name in ENTRY_FIELDS[kind]}
        fields.update({k: v for k, v in values.items() if k in fields})
        self._entries[ref] = {"row": row_id, "kind": kind, "fields": fields}
        return ref

    @classmethod
    def from_release(cls, data: Optional[Dict[str, Any]], **kwargs: Any) -> "InMemoryAdapter":
        """Build an adapter from a release mapping (``{"tracks": [...]}``)."""
        adapter = cls(**kwargs)
        for track in (data or {}).get("tracks") or []:
            row_id = adapter.add_row(
                position=str(track.get("position") or ""),
                title=str(track.get("title") or ""),
                duration=str(track.get("duration") or ""),
            )
            for artist in track.get("artists") or []:
                if isinstance(artist, str):
                    artist = {"name": artist}
                adapter.add_entry(
                    row_id,
                    StructuralKind.ARTIST_CREDIT,
                    name=str(artist.get("name", "")),
                    join=str(artist.get("join") or ""),
                )
            for credit in track.get("credits") or []:
                adapter.add_entry(
                    row_id,
                    StructuralKind.ROLE_CREDIT,
                    role=str(credit.get("role", "")),
                    name=str(credit.get("name", "")),
                )
        logger.debug(f"Loaded release with {len(adapter._row_order)} tracks")
        return adapter

    def to_release(self) -> Dict[str, Any]:
        tracks = []
        for row_id in self._row_order:
            track: Dict[str, Any] = dict(self._rows[row_id])
            artists = [
                dict(e["fields"]) for e in self._attached(row_id, StructuralKind.ARTIST_CREDIT)
            ]
            credits = [
                dict(e["fields"]) for e in self._attached(row_id, StructuralKind.ROLE_CREDIT)
            ]
            if artists:
                track["artists"] = artists
            if credits:
                track["credits"] = credits
            tracks.append(track)
        return {"tracks": tracks}

    @classmethod
    def load(cls, path: str, **kwargs: Any) -> "InMemoryAdapter":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is not None and not isinstance(data, dict):
            raise ValueError(f"Release file must contain a mapping, got {type(data).__name__}")
        return cls.from_release(data, **kwargs)

    def dump(self, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                self.to_release(), f, default_flow_style=False, allow_unicode=True, sort_keys=False
            )

    # Adapter capabilities

    async def list_rows(self) -> List[str]:
        return list(self._row_order)

    async def get_field_value(self, field_id: str) -> str:
        fields = self._fields_for(field_id)
        return fields[split_field_id(field_id)[1]]

    async def set_field_value(self, field_id: str, value: str) -> None:
        fields = self._fields_for(field_id)
        fields[split_field_id(field_id)[1]] = value if value is not None else ""

    async def list_credits(self, row_id: str, kind: StructuralKind) -> List[StructuralEntry]:
        if row_id not in self._rows:
            raise FieldNotFoundError(f"Unknown row: {row_id}")
        return [
            self._describe(ref)
            for ref, entry in self._entries.items()
            if entry["row"] == row_id and entry["kind"] == kind
        ]

    async def create_structural_entry(self, row_id: str, kind: StructuralKind) -> StructuralEntry:
        if kind != StructuralKind.TRACK_ROW and row_id not in self._rows:
            raise FieldNotFoundError(f"Unknown row: {row_id}")

        if kind == StructuralKind.TRACK_ROW:
            ref = f"r{next(self._ids)}"
        else:
            ref = self._new_ref(kind)
        self._pending.add(ref)

        if row_id in self.stuck_rows:
            logger.debug(f"Creation of {kind.value} on {row_id} will never complete")
        else:
            loop = asyncio.get_running_loop()
            loop.call_later(self.creation_delay, self._attach, ref, row_id, kind)

        try:
            await self.await_structural_change(
                lambda: ref in self._entries or ref in self._rows,
                timeout=self.structural_timeout,
                interval=self.poll_interval,
            )
        finally:
            self._pending.discard(ref)

        return self._describe(ref)

    async def remove_structural_entry(self, ref: str) -> bool:
        if ref not in self._entries and ref not in self._rows:
            raise StructuralNotFoundError(f"Structural entry {ref} is already detached")
        if ref in self.sticky_refs:
            logger.debug(f"Entry {ref} refused removal")
            return True

        if ref in self._rows:
            del self._rows[ref]
            self._row_order.remove(ref)
            for credit_ref in [r for r, e in self._entries.items() if e["row"] == ref]:
                del self._entries[credit_ref]
        else:
            del self._entries[ref]
        return False

    # Internals

    def _new_ref(self, kind: StructuralKind) -> str:
        prefix = "artist" if kind == StructuralKind.ARTIST_CREDIT else "credit"
        return f"{prefix}{next(self._ids)}"

    def _attach(self, ref: str, row_id: str, kind: StructuralKind) -> None:
        if ref not in self._pending:
            # the creating call already gave up
            return
        if kind == StructuralKind.TRACK_ROW:
            self._rows[ref] = {name: "" for name in ROW_FIELDS}
            self._row_order.append(ref)
        else:
            if row_id not in self._rows:
                return
            self._entries[ref] = {
                "row": row_id,
                "kind": kind,
                "fields": {name: "" for name in ENTRY_FIELDS[kind]},
            }

    def _attached(self, row_id: str, kind: StructuralKind) -> List[Dict[str, Any]]:
        return [e for e in self._entries.values() if e["row"] == row_id and e["kind"] == kind]

    def _describe(self, ref: str) -> StructuralEntry:
        if ref in self._rows:
            return StructuralEntry(
                ref=ref,
                kind=StructuralKind.TRACK_ROW,
                field_ids={name: field_id(ref, name) for name in ROW_FIELDS},
            )
        entry = self._entries[ref]
        return StructuralEntry(
            ref=ref,
            kind=entry["kind"],
            field_ids={name: field_id(ref, name) for name in entry["fields"]},
        )

    def _fields_for(self, fid: str) -> Dict[str, str]:
        owner, name = split_field_id(fid)
        if owner in self._rows:
            fields = self._rows[owner]
        elif owner in self._entries:
            fields = self._entries[owner]["fields"]
        else:
            raise FieldNotFoundError(f"Unknown field: {fid}")
        if name not in fields:
            raise FieldNotFoundError(f"Unknown field: {fid}")
        return fields
