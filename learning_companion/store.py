"""Flat JSON document holding every piece of server-side state.

Shape on disk::

    {"notes": [...], "captions": [...], "settings": {...}}

Every mutation reads the whole document, changes one part and rewrites the
whole file. Mutations go through one ``asyncio.Lock`` so concurrent POSTs
inside this process cannot drop each other's records; separate processes
sharing the file can still race.
"""

import asyncio
import copy
import json
import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

log = logging.getLogger(__name__)

NOTES = "notes"
CAPTIONS = "captions"
SETTINGS = "settings"

DEFAULT_DOCUMENT: Dict[str, Any] = {NOTES: [], CAPTIONS: [], SETTINGS: {}}


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def next_id(records: List[dict]) -> str:
    """Millisecond timestamp as a string, bumped past any id already taken."""
    taken = {r.get("id") for r in records}
    ms = int(time.time() * 1000)
    while str(ms) in taken:
        ms += 1
    return str(ms)


class DocumentStore:
    def __init__(self, path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    # ── raw file access (blocking, run in the executor) ──
    def _load(self) -> Dict[str, Any]:
        doc = copy.deepcopy(DEFAULT_DOCUMENT)
        if not self.path.exists():
            self._dump(doc)
            return doc
        with open(self.path, encoding="utf-8") as f:
            raw = f.read()
        if raw.strip():
            doc.update(json.loads(raw))
        return doc

    def _dump(self, doc: Dict[str, Any]) -> None:
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(doc, f, indent=2, ensure_ascii=False)
        os.replace(tmp, self.path)

    async def read(self) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._load)

    async def write(self, doc: Dict[str, Any]) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._dump, doc)

    async def mutate(self, fn: Callable[[Dict[str, Any]], Any]) -> Any:
        """Read, apply ``fn`` to the document in place, write back; returns ``fn``'s result."""
        async with self._lock:
            doc = await self.read()
            result = fn(doc)
            await self.write(doc)
            return result

    # ── collections ──
    async def list(self, collection: str) -> List[dict]:
        doc = await self.read()
        return doc[collection]

    async def add_note(self, text: str) -> dict:
        def _add(doc):
            note = {"id": next_id(doc[NOTES]), "text": text, "date": now_iso()}
            doc[NOTES].append(note)
            return note
        note = await self.mutate(_add)
        log.info("Saved note %s (%d chars)", note["id"], len(text))
        return note

    async def add_caption(self, text: str, timestamp: Optional[str] = None) -> dict:
        def _add(doc):
            caption = {"id": next_id(doc[CAPTIONS]), "text": text,
                       "timestamp": timestamp or now_iso()}
            doc[CAPTIONS].append(caption)
            return caption
        return await self.mutate(_add)

    # ── settings ──
    async def settings(self) -> Dict[str, Any]:
        doc = await self.read()
        return doc[SETTINGS]

    async def merge_settings(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        def _merge(doc):
            doc[SETTINGS] = {**doc[SETTINGS], **updates}
            return doc[SETTINGS]
        return await self.mutate(_merge)
