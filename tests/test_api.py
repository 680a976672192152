from fastapi.testclient import TestClient

from conftest import FakeCloud, FakeOCR
from learning_companion.api import create_app
from learning_companion.vision import UNSUPPORTED, ImageAnalyzer


def test_index_is_rendered_with_stored_settings(client):
    client.post("/api/settings", json={"contrastMode": "dark", "fontSize": 22, "dyslexiaFont": True})

    r = client.get("/")

    assert r.status_code == 200
    assert '<html lang="en" class="dark" style="--font-size:22px">' in r.text
    assert '<body class="dyslexia-font">' in r.text


def test_health(client):
    assert client.get("/health").json() == {
        "status": "ok", "detector_ready": True, "gesture_ready": True, "gemini": False}


def test_lifespan_skips_model_loading_when_disabled(client, analyzer, recognizer):
    assert analyzer.detector.started is False
    assert recognizer.started is False


def test_lifespan_starts_model_loading(config, store, analyzer, recognizer):
    app = create_app(config.model_copy(update={"load_models": True}), store=store,
                     analyzer=analyzer, gestures=recognizer)
    with TestClient(app):
        assert analyzer.detector.started and recognizer.started


# ── notes / captions / settings ──
def test_note_round_trip(client):
    created = client.post("/api/notes", json={"text": "Mitochondria make ATP"}).json()

    notes = client.get("/api/notes").json()

    assert created in notes
    assert created["text"] == "Mitochondria make ATP"
    assert created["id"] and created["date"]


def test_sequential_notes_get_unique_ids(client):
    ids = [client.post("/api/notes", json={"text": f"n{i}"}).json()["id"] for i in range(5)]
    assert len(set(ids)) == 5
    assert len(client.get("/api/notes").json()) == 5


def test_note_requires_text(client):
    r = client.post("/api/notes", json={})
    assert r.status_code == 400
    assert r.json() == {"error": "Text required"}


def test_caption_round_trip(client):
    created = client.post("/api/captions", json={"text": "good morning", "timestamp": "9:00:01 AM"}).json()

    assert created["timestamp"] == "9:00:01 AM"
    assert client.get("/api/captions").json() == [created]
    assert client.post("/api/captions", json={"text": ""}).status_code == 400


def test_settings_round_trip_is_merged_superset(client):
    assert client.get("/api/settings").json() == {}
    client.post("/api/settings", json={"fontSize": 18, "language": "es-ES"})

    merged = client.post("/api/settings", json={"language": "fr-FR", "activePersona": "visual"}).json()

    assert merged == {"fontSize": 18, "language": "fr-FR", "activePersona": "visual"}
    assert client.get("/api/settings").json() == merged


def test_personas_and_languages(client):
    assert [p["id"] for p in client.get("/api/personas").json()][0] == "general"
    assert {"code": "en-US", "name": "English (US)"} in client.get("/api/languages").json()


# ── image analysis ──
def test_analyze_requires_image(client):
    r = client.post("/api/analyze-image", data={"useGemini": "false"})
    assert r.status_code == 400
    assert r.json() == {"error": "No image uploaded"}


def test_analyze_demo_mode_never_errors(client):
    r = client.post("/api/analyze-image", data={"demoMode": "true"})
    assert r.status_code == 200
    assert r.json()["source"] == "synthetic"


def test_analyze_demo_request_does_not_read_the_document(client, config):
    with open(config.data_file, "w") as f:
        f.write("{broken")

    r = client.post("/api/analyze-image", data={"demoMode": "true"})

    assert r.status_code == 200
    assert r.json()["source"] == "synthetic"


def test_analyze_demo_mode_from_stored_settings(client, bmp_bytes):
    client.post("/api/settings", json={"demoMode": True})
    r = client.post("/api/analyze-image", files={"image": ("x.bmp", bmp_bytes, "image/bmp")})
    assert r.json()["source"] == "synthetic"


def test_analyze_local(client, png_bytes, ocr):
    ocr.text = "Label"
    r = client.post("/api/analyze-image", files={"image": ("photo.png", png_bytes, "image/png")},
                    data={"useGemini": "false"})
    assert r.status_code == 200
    assert r.json() == {"description": 'This image contains: person, dog. Text found in image: "Label".',
                        "source": "local"}


def test_analyze_cloud_requested_without_key_is_local(client, png_bytes):
    r = client.post("/api/analyze-image", files={"image": ("photo.png", png_bytes, "image/png")},
                    data={"useGemini": "true"})
    assert r.json()["source"] == "local"


def test_analyze_cloud(config, store, detector, ocr, recognizer, png_bytes):
    cloud = FakeCloud("Two students at a whiteboard.")
    analyzer = ImageAnalyzer(detector, config.upload_dir, cloud=cloud, ocr=ocr, demo_delay=0)
    app = create_app(config, store=store, analyzer=analyzer, gestures=recognizer, cloud=cloud)
    with TestClient(app) as c:
        r = c.post("/api/analyze-image", files={"image": ("photo.png", png_bytes, "image/png")},
                   data={"useGemini": "true"})
    assert r.json() == {"description": "Two students at a whiteboard.", "source": "gemini"}


def test_analyze_unsupported_format(client, bmp_bytes, ocr):
    r = client.post("/api/analyze-image", files={"image": ("scan.bmp", bmp_bytes, "image/bmp")})
    assert r.json()["description"].startswith(UNSUPPORTED)
    assert len(ocr.paths) == 1


def test_analyze_catastrophic_failure_is_500(config, store, detector, recognizer, png_bytes):
    analyzer = ImageAnalyzer(detector, config.upload_dir, ocr=FakeOCR(error=RuntimeError("no tesseract")),
                             demo_delay=0)
    app = create_app(config, store=store, analyzer=analyzer, gestures=recognizer)
    with TestClient(app) as c:
        r = c.post("/api/analyze-image", files={"image": ("photo.png", png_bytes, "image/png")})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to analyze image"}


# ── simplification ──
def test_simplify_requires_text(client):
    assert client.post("/api/simplify-text", json={}).status_code == 400


def test_simplify_without_key_is_unavailable(client):
    r = client.post("/api/simplify-text", json={"text": "Photosynthesis is complex."})
    assert r.status_code == 503
    assert "API Key missing" in r.json()["error"]


def test_simplify(config, store, analyzer, recognizer):
    app = create_app(config, store=store, analyzer=analyzer, gestures=recognizer,
                     cloud=FakeCloud(simplified="Plants make food from light."))
    with TestClient(app) as c:
        assert c.post("/api/simplify-text", json={"text": "Photosynthesis ..."}).json() == {
            "simplified": "Plants make food from light."}


def test_simplify_provider_failure_is_500(config, store, analyzer, recognizer):
    app = create_app(config, store=store, analyzer=analyzer, gestures=recognizer,
                     cloud=FakeCloud(error=TimeoutError()))
    with TestClient(app) as c:
        r = c.post("/api/simplify-text", json={"text": "Photosynthesis ..."})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to simplify text"}


# ── reader controls ──
def test_voice_command(client):
    assert client.post("/api/voice-command", json={"transcript": "Go Faster please", "speechRate": 1.0}).json() == {
        "command": "faster", "speechRate": 1.25}
    assert client.post("/api/voice-command", json={"transcript": "hello"}).json() == {
        "command": None, "speechRate": 1.0}


def test_speak(client, monkeypatch):
    monkeypatch.setattr("learning_companion.speech.synthesize", lambda text, lang, rate: ("QUJD", "fr"))
    r = client.post("/api/speak", json={"text": "Bonjour", "language": "fr-FR"})
    assert r.json() == {"audio": "QUJD", "lang": "fr"}


def test_speak_requires_text(client):
    r = client.post("/api/speak", json={"text": "  "})
    assert r.status_code == 400


def test_gesture_requires_decodable_frame(client):
    assert client.post("/api/gesture").status_code == 400
    r = client.post("/api/gesture", files={"frame": ("f.jpg", b"garbage", "image/jpeg")})
    assert r.status_code == 400
    r = client.post("/api/gesture", files={"frame": ("f.jpg", b"", "image/jpeg")})
    assert r.status_code == 400


def test_gesture_maps_to_command(client, recognizer, jpg_bytes):
    recognizer.gesture, recognizer.score = "Thumb_Up", 0.93
    r = client.post("/api/gesture", files={"frame": ("f.jpg", jpg_bytes, "image/jpeg")})
    assert r.json() == {"gesture": "Thumb_Up", "score": 0.93, "command": "play", "ready": True}


def test_gesture_while_loading(client, recognizer, jpg_bytes):
    recognizer.ready = False
    r = client.post("/api/gesture", files={"frame": ("f.jpg", jpg_bytes, "image/jpeg")})
    assert r.json()["ready"] is False
    assert r.json()["command"] is None


def test_choose_persona_merges_preset(client):
    client.post("/api/settings", json={"language": "de-DE"})

    merged = client.post("/api/personas/visual").json()

    assert merged["contrastMode"] == "high-contrast"
    assert merged["fontSize"] == 20
    assert merged["activePersona"] == "visual"
    assert merged["language"] == "de-DE"
    assert client.post("/api/personas/pirate").status_code == 404


def test_index_offers_exports_and_camera_capture(client):
    page = client.get("/").text

    assert 'onclick="exportNotes()"' in page
    assert 'onclick="exportCaptions()"' in page
    assert 'id="cam-video"' in page
    assert "new Blob([text],{type:'text/plain'})" in page
