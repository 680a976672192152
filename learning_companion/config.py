"""Process configuration, read once from the environment (and ``.env``)."""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

DETECTOR_URL = "https://tfhub.dev/tensorflow/ssd_mobilenet_v2/2"
GESTURE_MODEL_URL = ("https://storage.googleapis.com/mediapipe-models/gesture_recognizer/"
                     "gesture_recognizer/float16/1/gesture_recognizer.task")

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def _flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config(BaseModel):
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"

    data_file: str = "db.json"
    upload_dir: str = "uploads"

    detector_url: str = DETECTOR_URL
    detection_min_score: float = 0.5
    detection_max_boxes: int = 20
    gesture_model_url: str = GESTURE_MODEL_URL
    model_cache_dir: str = "models"
    load_models: bool = True

    demo_mode: bool = False
    demo_delay_seconds: float = 1.5

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @property
    def cloud_enabled(self) -> bool:
        return bool(self.gemini_api_key)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Config":
        if dotenv:
            load_dotenv()
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.0-flash"),
            data_file=os.getenv("COMPANION_DATA_FILE", "db.json"),
            upload_dir=os.getenv("COMPANION_UPLOAD_DIR", "uploads"),
            detector_url=os.getenv("DETECTOR_URL", DETECTOR_URL),
            detection_min_score=float(os.getenv("DETECTION_MIN_SCORE", "0.5")),
            detection_max_boxes=int(os.getenv("DETECTION_MAX_BOXES", "20")),
            gesture_model_url=os.getenv("GESTURE_MODEL_URL", GESTURE_MODEL_URL),
            model_cache_dir=os.getenv("MODEL_CACHE_DIR", "models"),
            load_models=_flag("LOAD_MODELS", True),
            demo_mode=_flag("DEMO_MODE"),
            demo_delay_seconds=float(os.getenv("DEMO_DELAY_SECONDS", "1.5")),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
