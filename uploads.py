"""Photo import: decode, downsample and thumbnail image files.

Files are processed on a small thread pool to cap peak memory. Results come
back in completion order, which is the order layers get added. ImportWorker
runs a batch off the GUI thread and reports each photo as it finishes.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Iterable, Iterator

from PIL import Image, ImageOps
from pillow_heif import register_heif_opener
from PySide6.QtCore import QThread, Signal

from layer_stack import release_resource
from models import LayerRequest, UploadSettings

logger = logging.getLogger(__name__)

# Phone photos arrive as HEIC; let Image.open read them like any other format.
register_heif_opener()


@dataclass
class UploadResult:
    """Outcome of importing one file: a layer request or an error message."""
    path: str
    request: LayerRequest | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.request is not None


def decode_image(source, max_dimension: int) -> Image.Image:
    """Open *source* (path or file object) as an upright RGBA image no larger than max_dimension."""
    with Image.open(source) as img:
        img.load()
        upright = ImageOps.exif_transpose(img)
        rgba = upright.convert("RGBA")
    if rgba.width > max_dimension or rgba.height > max_dimension:
        rgba.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
    return rgba


def make_thumbnail(img: Image.Image, size: int) -> Image.Image:
    thumb = img.copy()
    thumb.thumbnail((size, size), Image.Resampling.LANCZOS)
    return thumb


def load_photo(path: str, batch_index: int = 0,
               settings: UploadSettings | None = None) -> LayerRequest:
    """Decode one file into a layer-creation request. Raises on unreadable files."""
    s = settings or UploadSettings()
    img = decode_image(path, s.max_dimension)
    return LayerRequest(
        name=os.path.basename(path) or "Untitled",
        image=img,
        original_width=img.width,
        original_height=img.height,
        thumbnail=make_thumbnail(img, s.thumbnail_size),
        resource=img,
        batch_index=batch_index,
    )


def load_photos(paths: Iterable[str],
                settings: UploadSettings | None = None) -> Iterator[UploadResult]:
    """Import *paths* with at most settings.max_concurrent files in flight.

    Yields one UploadResult per path as each finishes; a bad file never
    stops the batch. Closing the generator early cancels files not yet started.
    """
    s = settings or UploadSettings()
    paths = list(paths)
    if not paths:
        return
    pool = ThreadPoolExecutor(max_workers=max(1, s.max_concurrent))
    try:
        futures = {
            pool.submit(load_photo, path, index, s): path
            for index, path in enumerate(paths)
        }
        for future in as_completed(futures):
            path = futures[future]
            try:
                yield UploadResult(path, request=future.result())
            except (OSError, ValueError, Image.DecompressionBombError) as e:
                logger.warning("Failed to decode %s: %s", path, e)
                yield UploadResult(path, error=f"Failed to upload {os.path.basename(path)}")
    finally:
        pool.shutdown(wait=True, cancel_futures=True)


class ImportWorker(QThread):
    """Worker thread that imports a batch of photos to keep the GUI responsive."""

    photo_loaded = Signal(object)       # LayerRequest
    photo_failed = Signal(str)          # error message
    batch_finished = Signal(object)     # this worker

    def __init__(self, paths: Iterable[str], settings: UploadSettings | None = None,
                 parent=None):
        super().__init__(parent)
        self.paths = list(paths)
        self.settings = settings or UploadSettings()
        self.errors: list[str] = []

    def run(self):
        results = load_photos(self.paths, self.settings)
        try:
            for result in results:
                if self.isInterruptionRequested():
                    if result.ok:
                        release_resource(result.request.resource)
                    break
                if result.ok:
                    self.photo_loaded.emit(result.request)
                else:
                    self.errors.append(result.error)
                    self.photo_failed.emit(result.error)
        finally:
            results.close()
            self.batch_finished.emit(self)
