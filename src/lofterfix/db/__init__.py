from .gallery_storage import GalleryStorage

__all__ = [
    "GalleryStorage",
]
