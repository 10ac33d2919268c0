"""
Application Configuration
This module centralizes all configuration for the lofterfix application.
It uses Pydantic's BaseSettings to load settings from environment variables
and a .env file, providing validation and type hints.
"""

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


PROJECT_DIRECTORY = Path(__file__).parent.parent


class Settings(BaseSettings):
    """
    Settings loaded from the environment and the .env file.

    Attributes:
        app_env (str): Runtime environment ('dev', 'prod').
        api_host (str): Host the API server binds to.
        api_port (int): Port the API server binds to.
        log_level (str): Logging level.
        log_json (bool): Whether logs are emitted as JSON.
        inference_backend (str): Registered engine name ('onnx' or 'triton').
        model_path (str): Detector weights used by the local engine.
        model_input_size (int): Square input resolution of the detector.
        output_dir (str): Root directory of the gallery the results go to.
        album_name (str): Album (sub-directory) the repaired images land in.
    """

    app_env: str = "prod"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    log_json: bool = False

    # Detector
    inference_backend: str = "onnx"
    model_path: str = "models/best_float16.onnx"
    model_input_size: int = 640

    # Triton
    triton_url: str = "http://localhost:8000"
    triton_model_name: str = "watermark"
    triton_input_name: str = "images"
    triton_output_name: str = "output0"
    triton_timeout: float = 60.0

    # Gallery
    output_dir: str = "gallery"
    album_name: str = "LofterFixed"
    output_prefix: str = "Fixed_"
    jpeg_quality: int = 98
    debug_overlays: bool = False

    # Batch defaults
    default_confidence: float = 0.5
    default_padding: float = 0.2

    model_config = SettingsConfigDict(
        env_prefix="LOFTERFIX__",
        env_nested_delimiter="__",
        env_file=PROJECT_DIRECTORY / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Single settings instance shared by the whole application
settings = Settings()
