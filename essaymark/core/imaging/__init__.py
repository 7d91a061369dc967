"""
Page images: decoding, Sauvola binarization and the enhancement cache.
"""
from .sauvola import binarize, luminance, sauvola_threshold
from .image_io import load_image, render_pdf_pages, save_png
from .binarize_worker import BinarizeWorker
from .enhancement import EnhancementKey, EnhancementService

__all__ = [
    'binarize',
    'luminance',
    'sauvola_threshold',
    'load_image',
    'render_pdf_pages',
    'save_png',
    'BinarizeWorker',
    'EnhancementKey',
    'EnhancementService'
]
