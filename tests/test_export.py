from pathlib import Path

import fitz
import numpy as np
from PIL import Image

from essaymark.core.annotations.models import (
    Annotation,
    AnnotationType,
    GradingMode,
    StampData,
    StudentScore
)
from essaymark.core.errors import ImageDecodeError
from essaymark.core.export import AnnotatedPdfExporter, ExportWorker
from essaymark.core.geometry import Rect
from essaymark.core.imaging.image_io import image_size, load_image, render_pdf_pages
from essaymark.core.session import Student

import pytest


def _student(tmp_path, pages=2):
    images = []
    for i in range(pages):
        path = tmp_path / f'page{i}.png'
        Image.fromarray(np.full((200, 150, 3), 230, dtype=np.uint8)).save(path)
        images.append(str(path))
    annotations = [
        Annotation(id='1', mode=GradingMode.LANGUAGE, page_index=0, annotation_type=AnnotationType.RECT,
                   rects=[Rect(0.1, 0.1, 0.3, 0.05)], code='SP', correction='their', text='spelling'),
        Annotation(id='2', mode=GradingMode.CONTENT, page_index=0, annotation_type=AnnotationType.DOT,
                   x=0.5, y=0.5, number=1),
        Annotation(id='3', mode=GradingMode.STAMPER, page_index=1, annotation_type=AnnotationType.STAMP,
                   x=0.1, y=0.7, stamp_data=StampData(StudentScore(4, 4, 3, 3), 14, 'Ms Smith', '19 Oct 2026')),
    ]
    return Student(id='s1', name='Ana', images=images, annotations=annotations,
                   scores=StudentScore(4, 4, 3, 3), justifications={'content': 'Clear ideas.'})


def test_export_writes_one_page_per_image(tmp_path):
    student = _student(tmp_path)
    progress = []
    exporter = AnnotatedPdfExporter()
    exporter.progress_signal.connect(lambda current, total: progress.append((current, total)))

    out = tmp_path / 'ana.pdf'
    assert exporter.export_student(student, str(out))
    with fitz.open(str(out)) as doc:
        assert len(doc) == 2
        assert doc[0].rect.width == pytest.approx(150)
        assert 'their' in doc[0].get_text()
    assert progress[-1] == (2, 2)


def test_export_without_background(tmp_path):
    out = tmp_path / 'plain.pdf'
    assert AnnotatedPdfExporter().export_students([_student(tmp_path, 1)], str(out), include_background=False)
    assert out.exists()


def test_export_fails_for_missing_image(tmp_path):
    student = Student(id='x', name='Missing', images=[str(tmp_path / 'gone.png')])
    assert not AnnotatedPdfExporter().export_student(student, str(tmp_path / 'out.pdf'))


def test_feedback_pdf(tmp_path):
    out = tmp_path / 'feedback.pdf'
    assert AnnotatedPdfExporter().export_feedback([_student(tmp_path)], str(out), level='B2', part='1')
    with fitz.open(str(out)) as doc:
        text = doc[0].get_text()
    assert 'Feedback: Ana' in text and 'Clear ideas.' in text


def test_export_worker_moves_result_into_place(tmp_path):
    out = tmp_path / 'worker.pdf'
    results = []
    worker = ExportWorker([_student(tmp_path, 1)], str(out))
    worker.completed.connect(lambda success, message: results.append(success))
    worker.run()
    assert results == [True]
    assert out.exists()
    assert [p.name for p in tmp_path.glob('tmp*.pdf')] == []


def test_render_pdf_pages(tmp_path):
    source = tmp_path / 'script.pdf'
    with fitz.open() as doc:
        doc.new_page(width=300, height=400)
        doc.new_page(width=300, height=400)
        doc.save(str(source))

    paths = render_pdf_pages(source, tmp_path / 'pages', target_width=150)
    assert len(paths) == 2 and paths[0].endswith('script_p1.png')
    assert image_size(paths[0]) == (150, 200)
    assert load_image(paths[1]).shape == (200, 150, 3)

    prefixed = render_pdf_pages(source, tmp_path / 'pages', target_width=150, prefix='abc123')
    assert [Path(p).name for p in prefixed] == ['abc123_p1.png', 'abc123_p2.png']


def test_unreadable_inputs_raise(tmp_path):
    bogus = tmp_path / 'bogus.pdf'
    bogus.write_bytes(b'not a pdf')
    with pytest.raises(ImageDecodeError):
        render_pdf_pages(bogus, tmp_path / 'pages')
    with pytest.raises(ImageDecodeError):
        load_image(b'garbage')
