"""Hand-gesture reader control: thumb up plays, open palm pauses.

The browser posts single camera frames; MediaPipe's gesture recognizer
names the top gesture and we map it to a reader command.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import cv2
import httpx
import numpy as np

log = logging.getLogger(__name__)

MIN_SCORE = 0.5
GESTURE_COMMANDS = {"Thumb_Up": "play", "Open_Palm": "pause"}


def decode_frame(data: bytes) -> Optional[np.ndarray]:
    if not data:
        return None
    nparr = np.frombuffer(data, np.uint8)
    try:
        frame = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    except cv2.error as e:
        log.warning("Error decoding frame: %s", e)
        return None
    if frame is None:
        return None
    return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)


def gesture_command(gesture: Optional[str], score: float) -> Optional[str]:
    if gesture is None or score <= MIN_SCORE:
        return None
    return GESTURE_COMMANDS.get(gesture)


class GestureRecognizer:
    def __init__(self, model_url: str, cache_dir):
        self.model_url = model_url
        self.cache_dir = Path(cache_dir)
        self._recognizer = None
        self._lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self._recognizer is not None

    @property
    def model_path(self) -> Path:
        return self.cache_dir / self.model_url.rsplit("/", 1)[-1]

    def start_loading(self) -> threading.Thread:
        t = threading.Thread(target=self._load, daemon=True)
        t.start()
        return t

    def _download(self) -> Path:
        path = self.model_path
        if path.exists():
            return path
        log.info("Downloading gesture model → %s", path)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        r = httpx.get(self.model_url, timeout=60, follow_redirects=True)
        r.raise_for_status()
        path.write_bytes(r.content)
        return path

    def _load(self):
        try:
            from mediapipe.tasks import python as mp_tasks
            from mediapipe.tasks.python import vision as mp_vision
            options = mp_vision.GestureRecognizerOptions(
                base_options=mp_tasks.BaseOptions(model_asset_path=str(self._download())),
                running_mode=mp_vision.RunningMode.IMAGE, num_hands=1)
            self._recognizer = mp_vision.GestureRecognizer.create_from_options(options)
            log.info("Gesture recognizer ready.")
        except Exception as e:
            log.error("Gesture recognizer failed to load: %s", e)

    def recognize(self, rgb: np.ndarray) -> Tuple[Optional[str], float]:
        import mediapipe as mp
        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb))
        # the task graph is not re-entrant
        with self._lock:
            result = self._recognizer.recognize(image)
        if not result.gestures or not result.gestures[0]:
            return None, 0.0
        top = result.gestures[0][0]
        return top.category_name, float(top.score)


def read_gesture(recognizer, rgb: np.ndarray) -> Dict[str, Any]:
    if not recognizer.ready:
        return {"gesture": None, "score": 0.0, "command": None, "ready": False}
    gesture, score = recognizer.recognize(rgb)
    return {"gesture": gesture, "score": score, "command": gesture_command(gesture, score), "ready": True}
