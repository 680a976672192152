import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from learning_companion.api import create_app
from learning_companion.config import Config
from learning_companion.store import DocumentStore
from learning_companion.vision import ImageAnalyzer


class FakeDetector:
    def __init__(self, labels=None, ready=True, error=None):
        self.labels = labels or []
        self.ready = ready
        self.error = error
        self.calls = []
        self.started = False

    def start_loading(self):
        self.started = True

    def detect(self, rgb):
        self.calls.append(rgb.shape)
        if self.error:
            raise self.error
        return list(self.labels)


class FakeCloud:
    def __init__(self, description="A cat on a sofa.", error=None, simplified="Short words."):
        self.description = description
        self.simplified = simplified
        self.error = error
        self.images = []

    async def describe_image(self, data, mime_type):
        self.images.append((len(data), mime_type))
        if self.error:
            raise self.error
        return self.description

    async def simplify(self, text):
        if self.error:
            raise self.error
        return self.simplified


class FakeOCR:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.paths = []

    def __call__(self, path):
        self.paths.append(path)
        if self.error:
            raise self.error
        return self.text


class FakeRecognizer:
    def __init__(self, gesture=None, score=0.0, ready=True):
        self.gesture = gesture
        self.score = score
        self.ready = ready
        self.started = False

    def start_loading(self):
        self.started = True

    def recognize(self, rgb):
        return self.gesture, self.score


def encode(ext, channels=3, size=(8, 12)):
    img = np.zeros((size[0], size[1], channels), np.uint8)
    img[..., 0] = 255
    ok, buf = cv2.imencode(ext, img)
    assert ok
    return buf.tobytes()


@pytest.fixture
def png_bytes():
    return encode(".png")


@pytest.fixture
def jpg_bytes():
    return encode(".jpg")


@pytest.fixture
def bmp_bytes():
    return encode(".bmp")


@pytest.fixture
def config(tmp_path):
    return Config(data_file=str(tmp_path / "db.json"), upload_dir=str(tmp_path / "uploads"),
                  model_cache_dir=str(tmp_path / "models"), load_models=False, demo_delay_seconds=0)


@pytest.fixture
def store(config):
    return DocumentStore(config.data_file)


@pytest.fixture
def detector():
    return FakeDetector(["person", "dog", "person"])


@pytest.fixture
def ocr():
    return FakeOCR()


@pytest.fixture
def analyzer(config, detector, ocr):
    return ImageAnalyzer(detector, config.upload_dir, ocr=ocr, demo_delay=0)


@pytest.fixture
def recognizer():
    return FakeRecognizer()


@pytest.fixture
def app(config, store, analyzer, recognizer):
    return create_app(config, store=store, analyzer=analyzer, gestures=recognizer)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
