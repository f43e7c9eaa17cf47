import pytest
from unittest.mock import patch
from starlette.requests import Request

from src.core.config import settings
from src.engines.violation.taxonomy import CODE_DESCRIPTIONS

from conftest import FakeSession


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_ui_served_at_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "/api/predict" in response.text


@pytest.mark.asyncio
async def test_predict_success(client, image_bytes, fake_session):
    response = await client.post(
        "/api/predict",
        files={"image": ("site.png", image_bytes, "image/png")}
    )

    assert response.status_code == 200
    predictions = response.json()["predictions"]
    assert len(predictions) == 9
    assert predictions[0] == {
        "prediction": "Violation - OSHA 1910.37(a)(3)",
        "probability": 0.5,
        "caption": CODE_DESCRIPTIONS["OSHA 1910.37(a)(3)"],
        "code": "OSHA 1910.37(a)(3)",
    }
    assert predictions[1]["caption"] == "No violation detected."
    assert "X-Request-ID" in response.headers

    _, feeds = fake_session.calls[0]
    assert feeds["images"].shape == (1, 3, 640, 640)


@pytest.mark.asyncio
async def test_predict_v1_route(client, image_factory):
    response = await client.post(
        "/api/v1/predict",
        files={"image": ("site.jpg", image_factory(mode="RGB", fmt="JPEG"), "image/jpeg")}
    )

    assert response.status_code == 200
    assert "predictions" in response.json()


@pytest.mark.asyncio
async def test_predict_uses_first_of_several_files(client, image_bytes):
    response = await client.post(
        "/api/predict",
        files=[
            ("image", ("first.png", image_bytes, "image/png")),
            ("image", ("second.txt", b"not an image", "text/plain")),
        ]
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_wrong_method_is_405(client):
    response = await client.get("/api/predict")

    assert response.status_code == 405
    assert response.json()["error"] == "Method Not Allowed"


@pytest.mark.asyncio
async def test_missing_image_field_is_400(client, image_bytes):
    response = await client.post(
        "/api/predict",
        files={"photo": ("site.png", image_bytes, "image/png")}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "No image provided"


@pytest.mark.asyncio
async def test_empty_body_is_400(client):
    response = await client.post("/api/predict")

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_image_field_as_text_is_400(client):
    response = await client.post("/api/predict", data={"image": "site.png"})

    assert response.status_code == 400
    assert response.json()["error"] == "No image provided"


@pytest.mark.asyncio
async def test_empty_file_is_400(client):
    response = await client.post(
        "/api/predict",
        files={"image": ("empty.png", b"", "image/png")}
    )

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_undecodable_image_is_400(client, fake_session):
    response = await client.post(
        "/api/predict",
        files={"image": ("notes.png", b"plain text, not pixels", "image/png")}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["stage"] == "preprocess"
    assert "error" in body
    assert fake_session.calls == []


@pytest.mark.asyncio
async def test_oversized_upload_is_413(client, image_bytes, monkeypatch):
    monkeypatch.setattr(settings, "MAX_IMAGE_SIZE_BYTES", 16)

    response = await client.post(
        "/api/predict",
        files={"image": ("site.png", image_bytes, "image/png")}
    )

    assert response.status_code == 413
    assert response.json()["details"]["limit_bytes"] == 16


@pytest.mark.asyncio
async def test_form_parse_failure_is_500(client):
    with patch.object(Request, "form", side_effect=ValueError("malformed multipart")):
        response = await client.post(
            "/api/predict",
            content=b"--broken",
            headers={"Content-Type": "multipart/form-data; boundary=x"}
        )

    assert response.status_code == 500
    assert response.json()["error"] == "Error parsing the file"


@pytest.mark.asyncio
async def test_inference_failure_is_500(client, image_bytes, fake_session):
    fake_session.output_names = []

    response = await client.post(
        "/api/predict",
        files={"image": ("site.png", image_bytes, "image/png")}
    )

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Output tensor not found for key output"
    assert body["details"]["output_key"] == "output"


@pytest.mark.asyncio
async def test_metrics_endpoint(client, image_bytes):
    await client.post("/api/predict", files={"image": ("site.png", image_bytes, "image/png")})

    response = await client.get("/api/v1/metrics")

    assert response.status_code == 200
    assert "detector_predictions_total" in response.text
