from abc import ABC, abstractmethod

import numpy as np


class InferenceEngine(ABC):
    """
    Raw detector runtime. Implementations load the model once and map a
    preprocessed input batch to the detector's output tensor.
    """

    channels_first: bool = False

    def __init__(self, settings):
        self.settings = settings
        self.input_size = settings.model_input_size

    @abstractmethod
    def load_model(self) -> None:
        ...

    @abstractmethod
    def run(self, model_input: np.ndarray) -> np.ndarray:
        ...

    def close(self) -> None:
        pass
