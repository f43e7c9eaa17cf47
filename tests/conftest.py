import io
import pytest
import numpy as np
from types import SimpleNamespace
from typing import AsyncGenerator, List, Optional
from httpx import AsyncClient, ASGITransport
from PIL import Image

from src.main import app
from src.api.dependencies import get_detection_service
from src.engines.violation.repositories import ModelRepository
from src.engines.violation.services import ViolationDetectionService

# Probabilities in taxonomy order (indices 0-11)
SAMPLE_PROBABILITIES = [0.5, 0.3, 0.05, 0.05, 0.02, 0.02, 0.02, 0.02, 0.01, 0.005, 0.004, 0.001]


class FakeSession:
    """Stands in for onnxruntime.InferenceSession."""

    def __init__(self, values=None, output_names: Optional[List[str]] = None):
        self.values = SAMPLE_PROBABILITIES if values is None else values
        self.output_names = ["output"] if output_names is None else output_names
        self.calls = []

    def get_outputs(self):
        return [SimpleNamespace(name=name) for name in self.output_names]

    def run(self, output_names, feeds):
        self.calls.append((output_names, feeds))
        return [np.asarray([self.values], dtype=np.float64)]


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "best.onnx"
    path.write_bytes(b"onnx")
    return path


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def model_repo(model_file, fake_session) -> ModelRepository:
    return ModelRepository(
        model_path=model_file,
        session_factory=lambda path, providers: fake_session
    )


@pytest.fixture
def detection_service(model_repo) -> ViolationDetectionService:
    return ViolationDetectionService(model_repo)


def make_image_bytes(size=(320, 200), color=(200, 40, 40, 255), mode="RGBA", fmt="PNG") -> bytes:
    image = Image.new(mode, size, color[:len(mode)])
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_factory():
    return make_image_bytes


@pytest.fixture
def image_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
async def client(detection_service) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_detection_service] = lambda: detection_service
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
