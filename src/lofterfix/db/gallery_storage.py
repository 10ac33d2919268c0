import os

import numpy as np
from loguru import logger

from lofterfix.errors import SaveError
from lofterfix.utils.images import ENCODABLE_EXTENSIONS, encode_image


class GalleryStorage:
    """
    Album-style storage of repaired images: one directory per category under
    a common root.
    """

    def __init__(self, root_dir: str, quality: int = 98):
        self.root_dir = root_dir
        self.quality = quality

    def album_dir(self, category: str) -> str:
        return os.path.join(self.root_dir, category)

    def save(self, image: np.ndarray, suggested_name: str, category: str) -> str:
        name = os.path.basename(suggested_name)
        if not name:
            raise SaveError("empty file name")
        ext = os.path.splitext(name)[1].lower()
        if ext not in ENCODABLE_EXTENSIONS:
            name = f"{name}.jpg"
            ext = ".jpg"

        directory = self.album_dir(category)
        path = os.path.abspath(os.path.join(directory, name))
        try:
            data = encode_image(image, ext, self.quality)
            os.makedirs(directory, exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except (OSError, ValueError) as e:
            raise SaveError(f"cannot save {name}: {e}") from e

        logger.info(f"  ✔ [Storage] Saved {path}")
        return path
