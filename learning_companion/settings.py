"""Accessibility preferences: the value type, its presets, and the client-side store.

The wire format is camelCase (``fontSize``, ``contrastMode`` ...) because the
same record is shared with the browser; attribute access is snake_case.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Literal, Optional, Set

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

log = logging.getLogger(__name__)

ContrastMode = Literal["light", "dark", "high-contrast"]
InputMode = Literal["voice", "text", "mixed"]


class AccessibilitySettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow",
                              alias_generator=to_camel, populate_by_name=True)

    font_size: float = 16
    contrast_mode: ContrastMode = "light"
    dyslexia_font: bool = False
    input_mode: InputMode = "mixed"
    speech_rate: float = 1
    captions_enabled: bool = True
    language: str = "en-US"
    demo_mode: bool = False

    def wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, warnings=False)


def _wire_keys(updates: Dict[str, Any]) -> Dict[str, Any]:
    fields = AccessibilitySettings.model_fields
    return {(fields[k].alias or k) if k in fields else k: v for k, v in updates.items()}


def _field_keys(values: Dict[str, Any]) -> Dict[str, Any]:
    by_alias = {f.alias: name for name, f in AccessibilitySettings.model_fields.items() if f.alias}
    return {by_alias.get(k, k): v for k, v in values.items()}


def apply_update(settings: AccessibilitySettings, updates: Dict[str, Any]) -> AccessibilitySettings:
    """New settings value: ``updates`` over ``settings``; keys not in ``updates`` keep their value.

    Values are coerced when they fit the field types and kept as given when
    they do not; the server stores whatever it is sent and so does this.
    """
    merged = {**settings.wire(), **_wire_keys(updates)}
    try:
        return AccessibilitySettings.model_validate(merged)
    except ValidationError as e:
        log.warning("Keeping unchecked settings values: %s", e.errors(include_url=False))
        return AccessibilitySettings.model_construct(**_field_keys(merged))


def document_effects(settings: AccessibilitySettings) -> Dict[str, Any]:
    """What the page must reflect: root font size, contrast class, dyslexia body class."""
    size = settings.font_size
    if isinstance(size, float) and size.is_integer():
        size = int(size)
    return {
        "font_size": f"{size}px",
        "root_class": settings.contrast_mode,
        "body_class": "dyslexia-font" if settings.dyslexia_font else "",
    }


# ════════════════════════════════════════════════════════
# ONBOARDING PERSONAS
# ════════════════════════════════════════════════════════
PERSONAS: List[Dict[str, Any]] = [
    {"id": "general", "title": "General Learner",
     "description": "Standard interface with balanced accessibility features.",
     "settings": {"contrastMode": "light", "dyslexiaFont": False, "speechRate": 1,
                  "captionsEnabled": True, "inputMode": "mixed", "fontSize": 16, "demoMode": False}},
    {"id": "visual", "title": "Visual Focus",
     "description": "High contrast, larger text, and simplified layouts.",
     "settings": {"contrastMode": "high-contrast", "dyslexiaFont": False, "speechRate": 1,
                  "captionsEnabled": True, "inputMode": "mixed", "fontSize": 20, "demoMode": False}},
    {"id": "auditory", "title": "Auditory Learner",
     "description": "Optimized for screen readers and voice navigation.",
     "settings": {"contrastMode": "dark", "dyslexiaFont": False, "speechRate": 0.8,
                  "captionsEnabled": True, "inputMode": "voice", "fontSize": 18, "demoMode": False}},
    {"id": "dyslexia", "title": "Dyslexia Support",
     "description": "Specialized fonts and spacing to improve readability.",
     "settings": {"contrastMode": "light", "dyslexiaFont": True, "speechRate": 1,
                  "captionsEnabled": True, "inputMode": "mixed", "fontSize": 18, "demoMode": False}},
    {"id": "motor", "title": "Motor Accessibility",
     "description": "Larger click targets and optimized for keyboard navigation.",
     "settings": {"contrastMode": "light", "dyslexiaFont": False, "speechRate": 1,
                  "captionsEnabled": True, "inputMode": "mixed", "fontSize": 18, "demoMode": False}},
]


def persona_updates(persona_id: str) -> Dict[str, Any]:
    persona = next((p for p in PERSONAS if p["id"] == persona_id), None)
    if persona is None:
        raise KeyError(persona_id)
    return {**persona["settings"], "activePersona": persona_id}


LANGUAGES = [
    {"code": "en-US", "name": "English (US)"},
    {"code": "en-GB", "name": "English (UK)"},
    {"code": "es-ES", "name": "Spanish"},
    {"code": "fr-FR", "name": "French"},
    {"code": "de-DE", "name": "German"},
    {"code": "it-IT", "name": "Italian"},
    {"code": "pt-BR", "name": "Portuguese"},
]


# ════════════════════════════════════════════════════════
# CLIENT-SIDE STORE
# ════════════════════════════════════════════════════════
class SettingsStore:
    """Holds the current settings, caches them locally and mirrors them to the server.

    Server pushes are fire-and-forget for the caller but each one is a real
    ``asyncio.Task``: its failure lands in ``last_sync_error`` and the log,
    and ``flush()`` waits for whatever is still in flight.
    """

    def __init__(self, cache_path, client: Optional[httpx.AsyncClient] = None,
                 endpoint: str = "/api/settings"):
        self.cache_path = Path(cache_path)
        self.client = client
        self.endpoint = endpoint
        self.last_sync_error: Optional[BaseException] = None
        self.synced: Optional[Dict[str, Any]] = None
        self._listeners: List[Callable[[AccessibilitySettings], None]] = []
        self._pending: Set[asyncio.Task] = set()
        self._settings = self._load_cache()

    @property
    def current(self) -> AccessibilitySettings:
        return self._settings

    def subscribe(self, listener: Callable[[AccessibilitySettings], None]) -> None:
        self._listeners.append(listener)
        listener(self._settings)

    def _load_cache(self) -> AccessibilitySettings:
        if not self.cache_path.exists():
            return AccessibilitySettings()
        try:
            cached = json.loads(self.cache_path.read_text("utf-8"))
        except ValueError as e:
            log.warning("Ignoring unreadable settings cache %s: %s", self.cache_path, e)
            return AccessibilitySettings()
        if not isinstance(cached, dict):
            return AccessibilitySettings()
        return apply_update(AccessibilitySettings(), cached)

    def _save_cache(self) -> None:
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        self.cache_path.write_text(json.dumps(self._settings.wire()), "utf-8")

    def _changed(self) -> None:
        self._save_cache()
        for listener in self._listeners:
            listener(self._settings)

    def update(self, updates: Optional[Dict[str, Any]] = None, **changes) -> AccessibilitySettings:
        self._settings = apply_update(self._settings, {**(updates or {}), **changes})
        self._changed()
        self._schedule_push()
        return self._settings

    def _schedule_push(self) -> Optional[asyncio.Task]:
        if self.client is None:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.debug("No running loop; settings kept local only")
            return None
        task = loop.create_task(self.push())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def push(self) -> Optional[Dict[str, Any]]:
        payload = self._settings.wire()
        try:
            r = await self.client.post(self.endpoint, json=payload)
            r.raise_for_status()
            synced = r.json()
        except (httpx.HTTPError, ValueError) as e:
            self.last_sync_error = e
            log.warning("Settings sync failed: %s", e)
            return None
        self.last_sync_error = None
        self.synced = synced
        log.debug("Settings synced to %s", self.endpoint)
        return self.synced

    async def pull(self) -> AccessibilitySettings:
        if self.client is None:
            return self._settings
        try:
            r = await self.client.get(self.endpoint)
            r.raise_for_status()
            remote = r.json()
        except (httpx.HTTPError, ValueError) as e:
            log.info("Using local settings only: %s", e)
            return self._settings
        if not isinstance(remote, dict):
            log.info("Ignoring server settings of type %s", type(remote).__name__)
            return self._settings
        if remote:
            self._settings = apply_update(self._settings, remote)
            self._changed()
        return self._settings

    async def flush(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending))
