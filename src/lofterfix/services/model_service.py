import threading
import time
from typing import Callable, Optional

import numpy as np
from loguru import logger

from lofterfix.errors import EngineInitError, InferenceError
from lofterfix.executors.base import InferenceEngine
from lofterfix.utils.images import to_model_input
from lofterfix.utils.registry import enginesRegister


def create_engine(settings) -> InferenceEngine:
    # engines register themselves on import
    from lofterfix.executors import onnx_engine, triton_client  # noqa: F401

    return enginesRegister.create(settings.inference_backend, settings)


class ModelService:
    """
    Owner of the process-wide detector engine.

    The engine is created on first use. Creation and every inference call run
    under the same lock, so there is at most one inference in flight no matter
    how many batches are submitted concurrently.
    """

    def __init__(self, settings, engine_factory: Optional[Callable[[], InferenceEngine]] = None):
        self.settings = settings
        self._engine_factory = engine_factory or (lambda: create_engine(settings))
        self._engine: Optional[InferenceEngine] = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._engine is not None

    @property
    def input_size(self) -> int:
        """Square resolution the detector consumes (the engine's once loaded)."""
        engine = self._engine
        return engine.input_size if engine is not None else self.settings.model_input_size

    def ensure_loaded(self) -> InferenceEngine:
        with self._lock:
            return self._ensure_loaded_locked()

    def _ensure_loaded_locked(self) -> InferenceEngine:
        if self._engine is not None:
            return self._engine

        logger.info(f"► [Models] Initializing '{self.settings.inference_backend}' engine")
        start_time = time.time()
        try:
            engine = self._engine_factory()
            engine.load_model()
        except Exception as e:
            logger.error(f"✖ [Models] Engine initialization failed: {e}")
            raise EngineInitError(f"inference engine failed to initialize: {e}") from e

        self._engine = engine
        logger.info(f"✔ [Models] Engine ready in {time.time() - start_time:.2f} sec.")
        return engine

    def infer(self, image: np.ndarray) -> np.ndarray:
        """Runs the detector on an RGB image and returns the raw output tensor."""
        with self._lock:
            engine = self._ensure_loaded_locked()
            model_input = to_model_input(image, engine.input_size, engine.channels_first)

            start_time = time.time()
            try:
                output = engine.run(model_input)
            except Exception as e:
                raise InferenceError(f"inference failed: {e}") from e

        if not isinstance(output, np.ndarray):
            raise InferenceError(f"engine returned {type(output).__name__}, expected ndarray")
        logger.info(f"  ✔ [Models] Inference done in {time.time() - start_time:.4f} sec., output {output.shape}")
        return output

    def shutdown(self) -> None:
        with self._lock:
            if self._engine is None:
                return
            try:
                self._engine.close()
            finally:
                self._engine = None
            logger.info("✔ [Models] Engine released")
