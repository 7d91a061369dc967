"""
Gradebook, class statistics and annotated PDF export.
"""
from .reports import ClassStats, ErrorFrequency, class_stats, gradebook_filename, write_gradebook_csv
from .pdf_exporter import AnnotatedPdfExporter
from .export_worker import ExportWorker

__all__ = [
    'ClassStats',
    'ErrorFrequency',
    'class_stats',
    'gradebook_filename',
    'write_gradebook_csv',
    'AnnotatedPdfExporter',
    'ExportWorker'
]
