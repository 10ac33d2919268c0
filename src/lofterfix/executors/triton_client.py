import http.client
import json
from typing import Any, Dict, Tuple
from urllib.parse import urlparse

import numpy as np
from loguru import logger

from lofterfix.executors.base import InferenceEngine
from lofterfix.utils.registry import register_engine


def infer_raw_tensor(
    host: str,
    port: int,
    model_name: str,
    model_input: np.ndarray,
    input_name: str = "images",
    output_name: str = "output0",
    timeout: float = 60.0,
) -> np.ndarray:
    """
    Runs the detector on a Triton server over the native HTTP (KServe v2) protocol.

    Args:
        host (str): Triton Inference Server host.
        port (int): Triton Inference Server port.
        model_name (str): Model to run.
        model_input (np.ndarray): Preprocessed float32 batch.

    Returns:
        np.ndarray: Raw output tensor, reshaped to the shape Triton reports.

    Raises:
        RuntimeError: If the inference request failed.
    """
    model_input = np.ascontiguousarray(model_input, dtype=np.float32)
    raw = model_input.tobytes(order='C')
    meta = {
        "inputs": [{
            "name": input_name,
            "datatype": "FP32",
            "shape": list(model_input.shape),
            "parameters": {"binary_data_size": len(raw)}
        }],
        "outputs": [{"name": output_name, "parameters": {"binary_data": False}}]
    }
    body = json.dumps(meta).encode('utf-8')

    conn = http.client.HTTPConnection(host, port, timeout=timeout)
    try:
        conn.putrequest('POST', f'/v2/models/{model_name}/infer')
        conn.putheader('Content-Type', 'application/octet-stream')
        conn.putheader('Inference-Header-Content-Length', str(len(body)))
        conn.putheader('Content-Length', str(len(body) + len(raw)))
        conn.endheaders()
        conn.send(body)
        conn.send(raw)

        resp = conn.getresponse()
        data = resp.read().decode('utf-8')

        if resp.status != 200:
            raise RuntimeError(f"Infer failed: {resp.status} {resp.reason} | {data}")

        return _output_to_array(json.loads(data), output_name)
    finally:
        conn.close()


def _output_to_array(response: Dict[str, Any], output_name: str) -> np.ndarray:
    outputs = response.get("outputs") or []
    for out in outputs:
        if out.get("name") == output_name:
            return np.asarray(out["data"], dtype=np.float32).reshape(out["shape"])
    raise RuntimeError(f"Output '{output_name}' missing from Triton response")


def model_ready(host: str, port: int, model_name: str, timeout: float = 10.0) -> Tuple[bool, str]:
    conn = http.client.HTTPConnection(host, port, timeout=timeout)
    try:
        conn.request('GET', f'/v2/models/{model_name}/ready')
        resp = conn.getresponse()
        detail = resp.read().decode('utf-8', errors='replace')
        return resp.status == 200, f"{resp.status} {resp.reason} {detail}".strip()
    finally:
        conn.close()


@register_engine("triton")
class TritonEngine(InferenceEngine):
    """
    Detector served by Triton; the server owns the weights, loading only
    checks the model is ready.
    """

    channels_first = True

    def __init__(self, settings):
        super().__init__(settings)
        parsed_url = urlparse(settings.triton_url)
        self.triton_host = parsed_url.hostname
        self.triton_port = parsed_url.port
        self.model_name = settings.triton_model_name
        self.input_name = settings.triton_input_name
        self.output_name = settings.triton_output_name
        self.timeout = settings.triton_timeout

        if not self.triton_host or not self.triton_port:
            raise ValueError(f"Invalid Triton URL: {settings.triton_url}. Expected 'http://<host>:<port>'")

    def load_model(self) -> None:
        logger.info(f"  › [Engine] Checking model '{self.model_name}' on {self.triton_host}:{self.triton_port}")
        ready, detail = model_ready(self.triton_host, self.triton_port, self.model_name, timeout=self.timeout)
        if not ready:
            raise RuntimeError(f"model '{self.model_name}' is not ready: {detail}")
        logger.info("  ✔ [Engine] Triton model is ready")

    def run(self, model_input: np.ndarray) -> np.ndarray:
        return infer_raw_tensor(
            host=self.triton_host,
            port=self.triton_port,
            model_name=self.model_name,
            model_input=model_input,
            input_name=self.input_name,
            output_name=self.output_name,
            timeout=self.timeout,
        )
