"""
Codec adapter: decode image files into PixelBuffers and encode them back,
using OpenCV for the actual file formats.
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from film_emulation.data import PixelBuffer
from film_emulation.errors import InvalidInputError, RenderingFailedError

log = logging.getLogger(__name__)

OPAQUE_FORMATS = ('.jpg', '.jpeg')


def load_image(path: Union[str, Path]) -> PixelBuffer:
    """
    Load an image file as an RGB or RGBA buffer in [0, 1].
    8- and 16-bit files are normalized by their dtype maximum.

    Raises:
        InvalidInputError: file missing or not decodable
    """
    path = Path(path)
    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise InvalidInputError(f"cannot decode {path.name}")

    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2RGB)
    elif img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    else:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)

    log.debug(f"Loaded {path.name}: {img.shape[1]}x{img.shape[0]}, {img.dtype}")
    return PixelBuffer.from_array(img)


def save_image(buffer: PixelBuffer,
               path: Union[str, Path],
               quality: int = 95,
               bit_depth: int = 8) -> Path:
    """
    Encode a buffer to disk. JPEG output drops the alpha channel.

    Parameters:
        buffer: RGB or RGBA buffer
        path: Output file; the extension picks the format
        quality: JPEG quality (1-100)
        bit_depth: 8 or 16 (16 only for PNG/TIFF)

    Raises:
        RenderingFailedError: buffer not finite or encoder failed
    """
    path = Path(path)
    if not np.all(np.isfinite(buffer.data)):
        raise RenderingFailedError("non-finite samples")

    if bit_depth == 8:
        img_out = buffer.to_uint8()
    elif bit_depth == 16:
        img_out = buffer.to_uint16()
    else:
        raise ValueError(f"Unsupported bit depth: {bit_depth}. Use 8 or 16")

    suffix = path.suffix.lower()
    if buffer.channels == 4 and suffix in OPAQUE_FORMATS:
        img_out = img_out[:, :, :3]

    if img_out.shape[2] == 4:
        img_bgr = cv2.cvtColor(img_out, cv2.COLOR_RGBA2BGRA)
    else:
        img_bgr = cv2.cvtColor(np.ascontiguousarray(img_out), cv2.COLOR_RGB2BGR)

    path.parent.mkdir(parents=True, exist_ok=True)
    params = [cv2.IMWRITE_JPEG_QUALITY, quality] if suffix in OPAQUE_FORMATS else []
    try:
        ok = cv2.imwrite(str(path), img_bgr, params)
    except cv2.error as e:
        raise RenderingFailedError(str(e)) from e
    if not ok:
        raise RenderingFailedError(f"could not write {path.name}")

    log.debug(f"Saved {path}")
    return path
