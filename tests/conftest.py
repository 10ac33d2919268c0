import threading
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np
import pytest

from lofterfix.config import Settings
from lofterfix.db.gallery_storage import GalleryStorage
from lofterfix.executors.base import InferenceEngine
from lofterfix.services.model_service import ModelService
from lofterfix.services.repair_service import RepairService

NUM_ANCHORS = 8400


def make_tensor(
    anchors: Iterable[Tuple[int, Tuple[float, float, float, float, float]]],
    num_anchors: int = NUM_ANCHORS,
    transposed: bool = False,
    num_fields: int = 5,
) -> np.ndarray:
    """Builds a [1, 5, N] (or [1, N, 5]) output with the given anchors filled in."""
    tensor = np.zeros((1, num_fields, num_anchors), dtype=np.float32)
    for idx, values in anchors:
        tensor[0, :5, idx] = values
    if transposed:
        tensor = np.ascontiguousarray(tensor.transpose(0, 2, 1))
    return tensor


class FakeEngine(InferenceEngine):
    def __init__(self, settings, output=None):
        super().__init__(settings)
        self.output = output
        self.inputs = []
        self.loaded = False
        self.closed = False

    def load_model(self):
        self.loaded = True

    def run(self, model_input):
        self.inputs.append(model_input)
        if callable(self.output):
            return self.output(model_input)
        return self.output

    def close(self):
        self.closed = True


class EngineFactory:
    """Counts how many engines the model service creates."""

    def __init__(self, settings, output=None, error: Optional[Exception] = None):
        self.settings = settings
        self.output = output
        self.error = error
        self.calls = 0
        self.engines = []
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
        if self.error is not None:
            raise self.error
        engine = FakeEngine(self.settings, self.output)
        self.engines.append(engine)
        return engine


@pytest.fixture
def settings(tmp_path):
    return Settings(output_dir=str(tmp_path / "gallery"), model_input_size=640, debug_overlays=False)


@pytest.fixture
def write_image(tmp_path):
    def _write(name: str, image: np.ndarray) -> str:
        path = tmp_path / name
        cv2.imwrite(str(path), cv2.cvtColor(image, cv2.COLOR_RGB2BGR))
        return str(path)
    return _write


@pytest.fixture
def image_pair(write_image):
    rng = np.random.default_rng(7)
    target = rng.integers(0, 256, size=(96, 128, 3), dtype=np.uint8)
    reference = np.full((192, 256, 3), 200, dtype=np.uint8)
    reference[:, :, 0] = 30
    return (
        write_image("target.png", target),
        write_image("reference.png", reference),
        target,
    )


@pytest.fixture
def make_service(settings):
    def _make(output=None, error=None, svc_settings=None):
        svc_settings = svc_settings or settings
        factory = EngineFactory(svc_settings, output=output, error=error)
        model_service = ModelService(svc_settings, engine_factory=factory)
        storage = GalleryStorage(svc_settings.output_dir, quality=svc_settings.jpeg_quality)
        service = RepairService(model_service, storage, svc_settings)
        return service, factory
    return _make
