"""
Decoding and encoding of page images.

Images are handled as numpy uint8 arrays; Pillow does the codec work and
PyMuPDF rasterizes scanned PDFs.
"""
import io
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

import fitz  # PyMuPDF
import numpy as np
from PIL import Image, UnidentifiedImageError

from essaymark.core.errors import ImageDecodeError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff', '.webp')

ImageSource = Union[str, Path, bytes]


def is_image_file(path: Union[str, Path]) -> bool:
    return str(path).lower().endswith(IMAGE_EXTENSIONS)


def is_pdf_file(path: Union[str, Path]) -> bool:
    return str(path).lower().endswith('.pdf')


def load_image(source: ImageSource) -> np.ndarray:
    """
    Decode an image into an H x W x 3 (or x 4 with alpha) uint8 array.

    Args:
        source: File path or encoded bytes

    Returns:
        Decoded pixel array

    Raises:
        ImageDecodeError: If the source is missing or not a decodable image
    """
    try:
        stream = io.BytesIO(source) if isinstance(source, bytes) else source
        with Image.open(stream) as img:
            img.load()
            mode = 'RGBA' if 'A' in img.getbands() else 'RGB'
            return np.asarray(img.convert(mode), dtype=np.uint8).copy()
    except (OSError, UnidentifiedImageError, ValueError) as e:
        raise ImageDecodeError(f"Cannot decode image: {e}") from e


def save_png(array: np.ndarray, path: Union[str, Path]) -> None:
    """Write an array as PNG, creating the parent directory."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    Image.fromarray(np.asarray(array, dtype=np.uint8)).save(path, format='PNG')


def image_size(path: Union[str, Path]):
    """(width, height) of an image file without decoding its pixels."""
    try:
        with Image.open(path) as img:
            return img.size
    except (OSError, UnidentifiedImageError) as e:
        raise ImageDecodeError(f"Cannot read image size: {e}") from e


def render_pdf_pages(pdf_path: Union[str, Path], out_dir: Union[str, Path],
                     target_width: int = 2480, prefix: Optional[str] = None) -> List[str]:
    """
    Rasterize every page of a PDF to PNG files.

    Args:
        pdf_path: Source PDF
        out_dir: Directory receiving one PNG per page
        target_width: Width in pixels of each rendered page
        prefix: File name prefix of the images; defaults to the PDF's stem

    Returns:
        Paths of the written images, in page order

    Raises:
        ImageDecodeError: If the PDF cannot be opened
    """
    try:
        doc = fitz.open(str(pdf_path))
    except (OSError, RuntimeError, ValueError) as e:
        raise ImageDecodeError(f"Cannot open PDF {pdf_path}: {e}") from e

    os.makedirs(out_dir, exist_ok=True)
    stem = prefix or Path(pdf_path).stem
    paths = []
    try:
        for page_num in range(len(doc)):
            page = doc.load_page(page_num)
            zoom = target_width / page.rect.width if page.rect.width else 1.0
            pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)

            out_path = os.path.join(str(out_dir), f"{stem}_p{page_num + 1}.png")
            pix.save(out_path)
            paths.append(out_path)
    finally:
        doc.close()

    logger.info("Rendered %d page(s) from %s", len(paths), pdf_path)
    return paths
