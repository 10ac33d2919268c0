import os
import time

import numpy as np
import onnxruntime as ort
from loguru import logger

from lofterfix.executors.base import InferenceEngine
from lofterfix.utils.registry import register_engine


@register_engine("onnx")
class OnnxEngine(InferenceEngine):
    """
    Local detector running on ONNX Runtime (CPU provider).
    """

    def __init__(self, settings):
        super().__init__(settings)
        self.model_path = settings.model_path
        self.session = None
        self.input_name = None

    def load_model(self) -> None:
        if not os.path.exists(self.model_path):
            raise FileNotFoundError(f"model file not found: {self.model_path}")

        logger.info(f"  › [Engine] Loading ONNX model: {self.model_path}")
        start_time = time.time()
        self.session = ort.InferenceSession(self.model_path, providers=["CPUExecutionProvider"])
        model_input = self.session.get_inputs()[0]
        self.input_name = model_input.name

        # [1, 3, H, W] exports are channels-first, [1, H, W, 3] ones are not
        shape = model_input.shape
        self.channels_first = len(shape) == 4 and shape[1] == 3
        if len(shape) == 4:
            side = shape[2] if self.channels_first else shape[1]
            if isinstance(side, int) and side > 0:
                self.input_size = side

        logger.info(
            f"  ✔ [Engine] Model loaded in {time.time() - start_time:.2f} sec. "
            f"(input '{self.input_name}' {shape}, channels_first={self.channels_first})"
        )

    def run(self, model_input: np.ndarray) -> np.ndarray:
        if self.session is None:
            raise RuntimeError("model is not loaded")
        outputs = self.session.run(None, {self.input_name: model_input})
        return outputs[0]

    def close(self) -> None:
        self.session = None
