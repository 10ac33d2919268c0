import cv2
import numpy as np

from lofterfix.errors import ReadError

ENCODABLE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp"}


def read_image(path: str) -> np.ndarray:
    """Reads an image file and converts it to an RGB numpy array."""
    try:
        arr = np.fromfile(path, dtype=np.uint8)
    except (OSError, ValueError) as e:
        raise ReadError(f"cannot read {path}: {e}") from e
    if arr.size == 0:
        raise ReadError(f"empty file: {path}")

    img = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if img is None:
        raise ReadError(f"cannot decode {path}")
    return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)


def encode_image(image: np.ndarray, ext: str = ".jpg", quality: int = 98) -> bytes:
    """
    Encodes an RGB array. JPEG honours ``quality``; unknown extensions are
    encoded as JPEG.
    """
    ext = ext.lower()
    if ext not in ENCODABLE_EXTENSIONS:
        ext = ".jpg"
    params = []
    if ext in (".jpg", ".jpeg"):
        params = [cv2.IMWRITE_JPEG_QUALITY, int(quality)]
    elif ext == ".webp":
        params = [cv2.IMWRITE_WEBP_QUALITY, int(quality)]

    try:
        bgr = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
        ok, buf = cv2.imencode(ext, bgr, params)
    except cv2.error as e:
        raise ValueError(f"cannot encode image as {ext}: {e}") from e
    if not ok:
        raise ValueError(f"cannot encode image as {ext}")
    return buf.tobytes()


def to_model_input(image: np.ndarray, size: int, channels_first: bool = False) -> np.ndarray:
    """
    Square-resizes an RGB image (bilinear, aspect ratio not kept) and scales
    it to [0, 1] float32 with a leading batch axis.
    """
    resized = cv2.resize(image, (size, size), interpolation=cv2.INTER_LINEAR)
    batch = resized.astype(np.float32) / 255.0
    if channels_first:
        batch = batch.transpose(2, 0, 1)  # HWC to CHW
    return np.ascontiguousarray(batch[np.newaxis, ...])
