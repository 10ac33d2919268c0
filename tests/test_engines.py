import json
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

import numpy as np
import pytest

from lofterfix.config import Settings
from lofterfix.executors import onnx_engine
from lofterfix.executors.onnx_engine import OnnxEngine
from lofterfix.executors.triton_client import TritonEngine, _output_to_array
from lofterfix.services.model_service import ModelService


class _TritonHandler(BaseHTTPRequestHandler):
    received = []

    def log_message(self, *args):
        pass

    def do_GET(self):
        status = 200 if self.path == "/v2/models/watermark/ready" else 404
        self.send_response(status)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_POST(self):
        length = int(self.headers["Content-Length"])
        header_length = int(self.headers["Inference-Header-Content-Length"])
        body = self.rfile.read(length)
        meta = json.loads(body[:header_length])
        _TritonHandler.received.append((self.path, meta, len(body) - header_length))

        payload = json.dumps({
            "model_name": "watermark",
            "outputs": [{"name": "output0", "datatype": "FP32", "shape": [1, 5, 2], "data": list(range(10))}],
        }).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)


@pytest.fixture
def triton_url():
    server = HTTPServer(("127.0.0.1", 0), _TritonHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def test_output_is_reshaped():
    response = {"outputs": [{"name": "output0", "shape": [1, 2, 3], "data": [0, 1, 2, 3, 4, 5]}]}

    array = _output_to_array(response, "output0")

    assert array.shape == (1, 2, 3)
    assert array.dtype == np.float32


def test_missing_output_raises():
    with pytest.raises(RuntimeError):
        _output_to_array({"outputs": []}, "output0")


def test_invalid_triton_url():
    with pytest.raises(ValueError):
        TritonEngine(Settings(triton_url="localhost"))


def test_triton_engine_round_trip(triton_url):
    engine = TritonEngine(Settings(triton_url=triton_url, triton_model_name="watermark"))
    engine.load_model()

    model_input = np.zeros((1, 3, 8, 8), dtype=np.float32)
    output = engine.run(model_input)

    assert output.shape == (1, 5, 2)
    path, meta, raw_size = _TritonHandler.received[-1]
    assert path == "/v2/models/watermark/infer"
    assert meta["inputs"][0]["shape"] == [1, 3, 8, 8]
    assert raw_size == model_input.nbytes


def test_triton_engine_not_ready(triton_url):
    engine = TritonEngine(Settings(triton_url=triton_url, triton_model_name="other"))

    with pytest.raises(RuntimeError):
        engine.load_model()


class _FakeInput:
    def __init__(self, name, shape):
        self.name = name
        self.shape = shape


class _FakeSession:
    input_shape = [1, 3, 640, 640]
    created = []

    def __init__(self, path, providers=None):
        self.path = path
        self.providers = providers
        self.feeds = []
        _FakeSession.created.append(self)

    def get_inputs(self):
        return [_FakeInput("images", self.input_shape)]

    def run(self, output_names, feed):
        self.feeds.append((output_names, feed))
        return [np.ones((1, 5, 3), dtype=np.float32), np.zeros(1)]


@pytest.fixture
def onnx_settings(tmp_path, monkeypatch):
    model_path = tmp_path / "model.onnx"
    model_path.write_bytes(b"onnx")
    _FakeSession.created = []
    monkeypatch.setattr(onnx_engine.ort, "InferenceSession", _FakeSession)
    return Settings(output_dir=str(tmp_path), model_path=str(model_path), model_input_size=640)


@pytest.mark.parametrize("shape, channels_first, input_size", [
    ([1, 3, 320, 320], True, 320),
    ([1, 416, 416, 3], False, 416),
    (["batch", 3, "height", "width"], True, 640),
    ([1, 3, None, None], True, 640),
])
def test_onnx_engine_reads_the_input_layout(onnx_settings, monkeypatch, shape, channels_first, input_size):
    monkeypatch.setattr(_FakeSession, "input_shape", shape)
    engine = OnnxEngine(onnx_settings)

    engine.load_model()

    assert engine.input_name == "images"
    assert engine.channels_first is channels_first
    assert engine.input_size == input_size
    assert _FakeSession.created[0].providers == ["CPUExecutionProvider"]


def test_onnx_engine_runs_the_first_output(onnx_settings):
    engine = OnnxEngine(onnx_settings)
    engine.load_model()
    model_input = np.zeros((1, 3, 640, 640), dtype=np.float32)

    output = engine.run(model_input)

    assert output.shape == (1, 5, 3)
    output_names, feed = _FakeSession.created[0].feeds[0]
    assert output_names is None
    assert list(feed) == ["images"]
    assert feed["images"] is model_input


def test_onnx_engine_must_be_loaded_before_run(onnx_settings):
    engine = OnnxEngine(onnx_settings)

    with pytest.raises(RuntimeError):
        engine.run(np.zeros((1, 3, 640, 640), dtype=np.float32))

    engine.load_model()
    engine.close()
    assert engine.session is None


def test_model_service_uses_the_onnx_model_input_size(onnx_settings, monkeypatch):
    monkeypatch.setattr(_FakeSession, "input_shape", [1, 256, 256, 3])
    service = ModelService(onnx_settings)

    service.infer(np.full((40, 50, 3), 255, dtype=np.uint8))

    assert service.input_size == 256
    _, feed = _FakeSession.created[0].feeds[0]
    assert feed["images"].shape == (1, 256, 256, 3)
