from datetime import datetime
from io import BytesIO
from unittest.mock import patch

import pytz
from fastapi.testclient import TestClient
from PIL import Image

# Import the FastAPI app
from src.api.main import app  # noqa: E402

client = TestClient(app)

NO_CACHE = "no-cache, no-store, must-revalidate, private"


def at(*args):
    """Freeze the resolver clock at the given UTC instant."""
    return patch("src.api.resolver.utcnow", return_value=datetime(*args, tzinfo=pytz.utc))


def open_png(res):
    img = Image.open(BytesIO(res.content))
    img.load()
    return img


def assert_png_response(res):
    assert res.status_code == 200
    assert res.headers["content-type"] == "image/png"
    assert res.headers["cache-control"] == NO_CACHE
    assert res.headers["pragma"] == "no-cache"
    assert res.headers["expires"] == "0"


class TestHealth:
    def test_health_check(self):
        res = client.get("/")
        assert res.status_code == 200
        assert res.json()["message"] == "Healthy"


class TestTimerImage:
    def test_fixed_end_scenario(self):
        params = {"end": "2099-01-01T00:00:00Z", "w": "600", "h": "140", "scale": "1"}
        with at(2098, 12, 30):
            res = client.get("/api/timer", params=params)
            debug = client.get("/api/timer", params={**params, "debug": "1"})
        assert_png_response(res)
        img = open_png(res)
        assert img.size == (600, 140)
        assert img.convert("RGB").getpixel((0, 0)) == (0x0B, 0x0B, 0x0B)
        assert debug.json()["groups"] == ["02", "00", "00", "00"]

    def test_start_ttl_expired_scenario(self):
        params = {"start": "2025-01-01T00:00:00Z", "ttl_hours": "5"}
        with at(2025, 1, 1, 5):
            res = client.get("/api/timer", params=params)
            debug = client.get("/api/timer", params={**params, "debug": "1"})
        assert_png_response(res)
        body = debug.json()
        assert body["diffMs"] == 0
        assert ":".join(body["groups"]) == "00:00:00:00"

    def test_no_params_is_evergreen(self):
        with at(2025, 6, 1, 12):
            res = client.get("/api/timer", params={"debug": "1"})
        body = res.json()
        assert body["diffMs"] == 86_400_000
        assert body["endUtc"] == "2025-06-02T12:00:00.000Z"
        assert body["groups"] == ["01", "00", "00", "00"]

    def test_local_end_with_zone(self):
        with at(2025, 8, 31, 18):
            res = client.get(
                "/api/timer",
                params={"end_local": "2025-09-01 00:00", "tz": "Asia/Karachi", "debug": "1"},
            )
        body = res.json()
        assert body["endUtc"] == "2025-08-31T19:00:00.000Z"
        assert body["diffMs"] == 3_600_000

    def test_clamped_dimensions(self):
        res = client.get("/api/timer", params={"w": "99999", "h": "1", "scale": "5"})
        assert_png_response(res)
        assert open_png(res).size == (3200, 160)

    def test_invalid_colors_still_render(self):
        res = client.get("/api/timer", params={"bg": "nothex", "style": "boxed"})
        assert_png_response(res)
        assert open_png(res).convert("RGB").getpixel((0, 0)) == (0x0B, 0x0B, 0x0B)


class TestTimerErrors:
    def test_invalid_end_is_400_plain_text(self):
        res = client.get("/api/timer", params={"end": "2025-13-45"})
        assert res.status_code == 400
        assert res.headers["content-type"].startswith("text/plain")
        assert res.text == "Invalid end time"

    def test_unknown_zone_is_400(self):
        res = client.get("/api/timer", params={"end_local": "2025-09-01 00:00", "tz": "Nowhere/City"})
        assert res.status_code == 400
        assert res.text == "Invalid end time"

    def test_out_of_range_instants_are_400(self):
        for params in (
            {"end": "9999-12-31T23:00:00-05:00"},
            {"start": "0001-01-01T00:00:00+05:00", "ttl_days": "1"},
        ):
            res = client.get("/api/timer", params=params)
            assert res.status_code == 400
            assert res.text == "Invalid end time"

    def test_whitespace_end_is_400(self):
        res = client.get("/api/timer", params={"end": "  ", "debug": "1"})
        assert res.status_code == 400
        assert res.text == "Invalid end time"

    def test_render_failure_returns_transparent_pixel(self):
        with patch("src.api.routers.timer.render_countdown", side_effect=RuntimeError("boom")):
            res = client.get("/api/timer", params={"end": "2099-01-01T00:00:00Z"})
        assert_png_response(res)
        img = open_png(res)
        assert img.size == (1, 1)
        assert img.getpixel((0, 0))[3] == 0


class TestDebugParams:
    def test_debug_payload_shape(self):
        with at(2098, 12, 30):
            res = client.get("/api/timer", params={"end": "2099-01-01T00:00:00Z", "debug": "1"})
        assert res.status_code == 200
        body = res.json()
        assert body["ok"] is True
        assert body["query"] == {"end": "2099-01-01T00:00:00Z", "debug": "1"}
        assert body["nowUtc"] == "2098-12-30T00:00:00.000Z"
        assert body["endUtc"] == "2099-01-01T00:00:00.000Z"
        assert body["diffMs"] == 2 * 86_400_000

    def test_debug_disabled_by_settings(self, monkeypatch):
        monkeypatch.setenv("ENABLE_DEBUG_PARAMS", "false")
        params = {"w": "1600", "h": "400", "scale": "2", "debug": "1", "overlay": "1"}
        res = client.get("/api/timer", params=params)
        assert_png_response(res)
        img = open_png(res).convert("RGB")
        assert img.size == (3200, 800)
        # no overlay text
        assert (255, 0, 255) not in {c for _, c in img.getcolors(maxcolors=img.width * img.height)}
