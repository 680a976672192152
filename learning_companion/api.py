"""
Inclusive Learning Companion: FastAPI backend
==============================================
  • POST /api/analyze-image: Gemini or local TF detector + Tesseract description
  • POST /api/simplify-text: Gemini rewrite for easier reading
  • GET/POST /api/notes, /api/captions, /api/settings: JSON document persistence
  • POST /api/voice-command, /api/speak, /api/gesture: reader controls
  • GET  /: serves the complete HTML UI

Run:
    uvicorn learning_companion.api:create_app --factory --port 3000
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from . import speech, ui
from .cloud import GeminiClient
from .config import Config
from .errors import CapabilityUnavailableError, CompanionError, MissingInputError
from .gestures import GestureRecognizer, decode_frame, read_gesture
from .settings import (
    LANGUAGES,
    PERSONAS,
    AccessibilitySettings,
    apply_update,
    document_effects,
    persona_updates,
)
from .store import CAPTIONS, NOTES, DocumentStore
from .vision import ImageAnalyzer, ObjectDetector

log = logging.getLogger(__name__)

router = APIRouter()


# ════════════════════════════════════════════════════════
# REQUEST BODIES
# ════════════════════════════════════════════════════════
class TextReq(BaseModel):
    text: Optional[str] = None


class CaptionReq(BaseModel):
    text: Optional[str] = None
    timestamp: Optional[str] = None


class VoiceReq(BaseModel):
    transcript: str = ""
    speechRate: float = 1.0


class SpeakReq(BaseModel):
    text: str = ""
    language: str = "en-US"
    speechRate: float = 1.0


def _truthy(v: Optional[str]) -> bool:
    return (v or "").lower() == "true"


# ════════════════════════════════════════════════════════
# IMAGE ANALYSIS
# ════════════════════════════════════════════════════════
@router.post("/api/analyze-image")
async def analyze_image(request: Request,
                        image: Optional[UploadFile] = File(None),
                        useGemini: Optional[str] = Form(None),
                        demoMode: Optional[str] = Form(None)):
    state = request.app.state
    demo = _truthy(demoMode) or state.config.demo_mode
    if not demo:
        demo = (await state.store.settings()).get("demoMode") is True

    data = await image.read() if image is not None else None
    filename = image.filename if image is not None else "image.jpg"
    mime = image.content_type if image is not None else None
    try:
        result = await state.analyzer.analyze_upload(data, filename, mime,
                                                     use_cloud=_truthy(useGemini), demo=demo)
    except CompanionError:
        raise
    except Exception as e:
        log.exception("Analysis error: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to analyze image"})
    return {"description": result.description, "source": result.source}


@router.post("/api/simplify-text")
async def simplify_text(request: Request, req: TextReq):
    if not req.text:
        raise MissingInputError("Text is required")
    cloud = request.app.state.cloud
    if cloud is None:
        raise CapabilityUnavailableError("Gemini service not available (API Key missing)")
    try:
        simplified = await cloud.simplify(req.text)
    except Exception as e:
        log.error("Simplification error: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to simplify text"})
    return {"simplified": simplified}


# ════════════════════════════════════════════════════════
# NOTES / CAPTIONS / SETTINGS
# ════════════════════════════════════════════════════════
@router.get("/api/notes")
async def list_notes(request: Request):
    return await request.app.state.store.list(NOTES)


@router.post("/api/notes")
async def create_note(request: Request, req: TextReq):
    if not req.text:
        raise MissingInputError("Text required")
    return await request.app.state.store.add_note(req.text)


@router.get("/api/captions")
async def list_captions(request: Request):
    return await request.app.state.store.list(CAPTIONS)


@router.post("/api/captions")
async def create_caption(request: Request, req: CaptionReq):
    if not req.text:
        raise MissingInputError("Text required")
    return await request.app.state.store.add_caption(req.text, req.timestamp)


@router.get("/api/settings")
async def get_settings(request: Request):
    return await request.app.state.store.settings()


@router.post("/api/settings")
async def update_settings(request: Request, updates: Dict[str, Any] = Body(...)):
    return await request.app.state.store.merge_settings(updates)


@router.get("/api/personas")
def personas():
    return PERSONAS


@router.post("/api/personas/{persona_id}")
async def choose_persona(request: Request, persona_id: str):
    try:
        updates = persona_updates(persona_id)
    except KeyError:
        return JSONResponse(status_code=404, content={"error": f"Unknown persona: {persona_id}"})
    return await request.app.state.store.merge_settings(updates)


@router.get("/api/languages")
def languages():
    return LANGUAGES


# ════════════════════════════════════════════════════════
# READER CONTROLS
# ════════════════════════════════════════════════════════
@router.post("/api/voice-command")
def voice_command(req: VoiceReq):
    cmd, rate = speech.interpret(req.transcript, req.speechRate)
    return {"command": cmd, "speechRate": rate}


@router.post("/api/speak")
async def speak(req: SpeakReq):
    loop = asyncio.get_running_loop()
    audio, lang = await loop.run_in_executor(None, speech.synthesize, req.text, req.language, req.speechRate)
    return {"audio": audio, "lang": lang}


@router.post("/api/gesture")
async def gesture(request: Request, frame: Optional[UploadFile] = File(None)):
    if frame is None:
        raise MissingInputError("No frame uploaded")
    rgb = decode_frame(await frame.read())
    if rgb is None:
        raise MissingInputError("Could not decode frame")
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, read_gesture, request.app.state.gestures, rgb)


@router.get("/health")
def health(request: Request):
    state = request.app.state
    return {"status": "ok",
            "detector_ready": state.analyzer.detector.ready,
            "gesture_ready": state.gestures.ready,
            "gemini": state.cloud is not None}


@router.get("/", response_class=HTMLResponse)
async def index(request: Request):
    settings = apply_update(AccessibilitySettings(), await request.app.state.store.settings())
    return HTMLResponse(ui.render_page(document_effects(settings)))


# ════════════════════════════════════════════════════════
# APP
# ════════════════════════════════════════════════════════
async def _companion_error(request: Request, exc: CompanionError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def create_app(config: Optional[Config] = None, store=None, analyzer=None, gestures=None,
               cloud=None) -> FastAPI:
    config = config or Config.from_env()

    if cloud is None and config.cloud_enabled:
        cloud = GeminiClient(config.gemini_api_key, config.gemini_model)
    elif cloud is None:
        log.warning("GEMINI_API_KEY not set. Gemini features will be disabled.")

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        if config.load_models:
            application.state.analyzer.detector.start_loading()
            application.state.gestures.start_loading()
        log.info("Gemini integration: %s", "ACTIVE" if application.state.cloud else "INACTIVE (No API Key)")
        yield

    app = FastAPI(title="Inclusive Learning Companion", lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"],
                       allow_methods=["*"], allow_headers=["*"])
    app.add_exception_handler(CompanionError, _companion_error)

    app.state.config = config
    app.state.cloud = cloud
    app.state.store = store or DocumentStore(config.data_file)
    app.state.analyzer = analyzer or ImageAnalyzer(
        ObjectDetector(config.detector_url, config.detection_min_score, config.detection_max_boxes),
        config.upload_dir, cloud=cloud, demo_delay=config.demo_delay_seconds)
    app.state.gestures = gestures or GestureRecognizer(config.gesture_model_url, config.model_cache_dir)

    app.include_router(router)
    return app
