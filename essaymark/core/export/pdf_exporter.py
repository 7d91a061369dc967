"""
Annotated PDF export of students' scripts.
"""
import logging
from typing import Dict, List, Optional, Sequence

import fitz  # PyMuPDF
from PyQt5.QtCore import QObject, pyqtSignal

from essaymark.core.annotations.codes import ELABORATION_COLOR, MODE_COLORS, MODE_LABELS
from essaymark.core.annotations.labels import dot_labels
from essaymark.core.annotations.models import SCORED_MODES, Annotation, AnnotationType, GradingMode
from essaymark.core.errors import ImageDecodeError
from essaymark.core.imaging.image_io import image_size
from essaymark.core.session.models import Student

logger = logging.getLogger(__name__)

# Annotation sizes are given for an 800 px wide page and scaled from there
REFERENCE_WIDTH = 800.0
WHITE = (1, 1, 1)


def _rgb(color) -> tuple:
    """PyMuPDF uses 0-1 colour components."""
    return tuple(c / 255.0 for c in color)


def annotation_color(annotation: Annotation) -> tuple:
    if annotation.mode == GradingMode.CONTENT and annotation.is_elaboration:
        return _rgb(ELABORATION_COLOR)
    return _rgb(MODE_COLORS[annotation.mode])


class AnnotatedPdfExporter(QObject):
    """Handles exporting annotated scripts to PDF files."""

    # Signal for progress updates
    progress_signal = pyqtSignal(int, int)  # current, total pages

    def export_students(self, students: Sequence[Student], output_pdf_path: str,
                        include_background: bool = True,
                        backgrounds: Optional[Dict[str, Dict[int, str]]] = None) -> bool:
        """
        Export the pages of several students into one PDF.

        Args:
            students: Students whose pages are exported, in order
            output_pdf_path: Where the PDF is written
            include_background: Draw the page image under the annotations;
                otherwise annotations are drawn on a white page
            backgrounds: Optional replacement images (e.g. enhanced pages)
                keyed by student id, then page index

        Returns:
            True if successful, False otherwise
        """
        backgrounds = backgrounds or {}
        total_pages = sum(s.page_count for s in students)
        current_page = 0

        doc = fitz.open()
        try:
            for student in students:
                labels = dot_labels(student.annotations)
                overrides = backgrounds.get(student.id, {})
                for page_index, image_path in enumerate(student.images):
                    self.progress_signal.emit(current_page, total_pages)

                    width, height = image_size(image_path)
                    page = doc.new_page(width=width, height=height)
                    if include_background:
                        page.insert_image(page.rect, filename=overrides.get(page_index, image_path))

                    page_annotations = [a for a in student.annotations if a.page_index == page_index]
                    for ann in page_annotations:
                        self._add_annotation_to_page(page, ann, labels)

                    current_page += 1

            self.progress_signal.emit(total_pages, total_pages)
            doc.save(output_pdf_path, garbage=4, deflate=True)
            logger.info("Exported %d page(s) to %s", total_pages, output_pdf_path)
            return True

        except (ImageDecodeError, OSError, RuntimeError, ValueError) as e:
            logger.error("Failed to export annotated PDF: %s", e)
            return False
        finally:
            doc.close()

    def export_student(self, student: Student, output_pdf_path: str, include_background: bool = True,
                       backgrounds: Optional[Dict[int, str]] = None) -> bool:
        overrides = {student.id: backgrounds} if backgrounds else None
        return self.export_students([student], output_pdf_path, include_background, overrides)

    def _add_annotation_to_page(self, page: fitz.Page, annotation: Annotation, labels: Dict[str, str]):
        """Add a single annotation to a PDF page."""
        scale = page.rect.width / REFERENCE_WIDTH
        try:
            if annotation.annotation_type == AnnotationType.RECT:
                self._draw_rect_annotation(page, annotation, scale)
            elif annotation.annotation_type == AnnotationType.DOT:
                self._draw_dot(page, annotation, labels.get(annotation.id, '?'), scale)
            elif annotation.annotation_type == AnnotationType.STAMP and annotation.stamp_data:
                self._draw_stamp(page, annotation, scale)
        except (RuntimeError, ValueError) as e:
            logger.warning("Failed to draw annotation %s on page %d: %s",
                           annotation.id, annotation.page_index, e)

    def _draw_rect_annotation(self, page: fitz.Page, annotation: Annotation, scale: float):
        color = annotation_color(annotation)
        w, h = page.rect.width, page.rect.height

        for index, r in enumerate(annotation.rects):
            rect = fitz.Rect(r.x * w, r.y * h, r.right * w, r.bottom * h)

            shape = page.new_shape()
            shape.draw_rect(rect)
            shape.finish(color=None, fill=color, fill_opacity=0.15, width=0)
            shape.commit()

            if index > 0:
                continue

            # Code tag stacked vertically left of the first area
            tag = annotation.code or MODE_LABELS[annotation.mode]
            char_h = 7 * scale
            pad = 2 * scale
            tag_w = char_h + 3 * scale
            tag_h = len(tag) * char_h + 2 * pad
            tag_x = rect.x0 - tag_w - scale
            tag_y = rect.y0 + rect.height / 2 - tag_h / 2
            tag_rect = fitz.Rect(tag_x, tag_y, tag_x + tag_w, tag_y + tag_h)

            shape = page.new_shape()
            shape.draw_rect(tag_rect)
            shape.finish(color=None, fill=color, width=0)
            shape.commit()

            for i, char in enumerate(tag):
                char_w = fitz.get_text_length(char, fontname="hebo", fontsize=char_h)
                baseline = tag_rect.y0 + pad + (i + 1) * char_h - char_h * 0.15
                page.insert_text(fitz.Point(tag_rect.x0 + (tag_w - char_w) / 2, baseline), char,
                                 fontname="hebo", fontsize=char_h, color=WHITE)

            if annotation.correction:
                page.insert_text(fitz.Point(rect.x0, rect.y0 - 0.5 * scale), annotation.correction,
                                 fontname="heit", fontsize=9 * scale, color=color)

    def _draw_dot(self, page: fitz.Page, annotation: Annotation, label: str, scale: float):
        center = fitz.Point((annotation.x or 0) * page.rect.width, (annotation.y or 0) * page.rect.height)
        radius = 10 * scale

        shape = page.new_shape()
        shape.draw_circle(center, radius)
        shape.finish(color=WHITE, fill=annotation_color(annotation), width=1.5 * scale)
        shape.commit()

        fontsize = radius * 1.1
        text_w = fitz.get_text_length(label, fontname="hebo", fontsize=fontsize)
        page.insert_text(fitz.Point(center.x - text_w / 2, center.y + fontsize * 0.35), label,
                         fontname="hebo", fontsize=fontsize, color=WHITE)

    def _draw_stamp(self, page: fitz.Page, annotation: Annotation, scale: float):
        data = annotation.stamp_data
        red = _rgb(MODE_COLORS[GradingMode.STAMPER])
        x = (annotation.x or 0) * page.rect.width
        y = (annotation.y or 0) * page.rect.height
        card = fitz.Rect(x, y, x + 140 * scale, y + 100 * scale)
        pad = 10 * scale
        row_h = 14 * scale

        shape = page.new_shape()
        shape.draw_rect(card, radius=0.08)
        shape.finish(color=red, fill=WHITE, width=2 * scale)
        shape.commit()

        short = {GradingMode.CONTENT: "C: ", GradingMode.COMMUNICATIVE: "CA:",
                 GradingMode.ORGANISATION: "O: ", GradingMode.LANGUAGE: "L: "}
        for row, mode in enumerate(SCORED_MODES, start=1):
            page.insert_text(fitz.Point(card.x0 + pad, card.y0 + pad + row_h * row),
                             f"{short[mode]} {data.scores.get(mode):g}/5",
                             fontname="cobo", fontsize=10 * scale, color=red)

        total = f"{data.total:g}"
        total_w = fitz.get_text_length(total, fontname="cobo", fontsize=22 * scale)
        page.insert_text(fitz.Point(card.x1 - pad - total_w, card.y0 + card.height / 2 + 10 * scale), total,
                         fontname="cobo", fontsize=22 * scale, color=red)
        out_of_w = fitz.get_text_length("/20", fontname="cobo", fontsize=8 * scale)
        page.insert_text(fitz.Point(card.x1 - pad - out_of_w, card.y0 + card.height / 2 + 20 * scale), "/20",
                         fontname="cobo", fontsize=8 * scale, color=red)

        page.insert_text(fitz.Point(card.x0 + pad, card.y1 - pad * 1.5), f"By {data.grader or 'Unknown'}",
                         fontname="cobo", fontsize=6 * scale, color=red)
        page.insert_text(fitz.Point(card.x0 + pad, card.y1 - pad * 0.8), data.date,
                         fontname="cobo", fontsize=6 * scale, color=red)

    def export_feedback(self, students: Sequence[Student], output_pdf_path: str,
                        level: str = '', part: str = '') -> bool:
        """
        Write one feedback page per student: total, category scores and
        the grader's justifications.

        Returns:
            True if successful, False otherwise
        """
        doc = fitz.open()
        try:
            for student in students:
                page = doc.new_page(width=595, height=842)  # A4 in points
                page.insert_text(fitz.Point(57, 57), f"Feedback: {student.name}", fontname="hebo", fontsize=18)
                page.insert_text(fitz.Point(57, 85), f"Level: {level} | Part: {part}", fontsize=12)
                page.insert_text(fitz.Point(57, 113), f"Total Score: {student.scores.total:g}/20", fontsize=12)

                y = 141.0
                for mode in SCORED_MODES:
                    page.insert_text(fitz.Point(57, y), f"{mode.value.capitalize()}: {student.scores.get(mode):g}/5",
                                     fontname="hebo", fontsize=12)
                    y += 8
                    text = student.justifications.get(mode.value) or "No justification provided."
                    box = fitz.Rect(71, y, 538, y + 120)
                    page.insert_textbox(box, text, fontsize=11)
                    lines = self._line_count(text, box.width, 11)
                    y += lines * 14 + 14

            doc.save(output_pdf_path, garbage=4, deflate=True)
            return True
        except (OSError, RuntimeError, ValueError) as e:
            logger.error("Failed to export feedback PDF: %s", e)
            return False
        finally:
            doc.close()

    @staticmethod
    def _line_count(text: str, width: float, fontsize: float) -> int:
        lines = 0
        for paragraph in text.splitlines() or ['']:
            words: List[str] = paragraph.split()
            current = ''
            lines += 1
            for word in words:
                candidate = f"{current} {word}".strip()
                if current and fitz.get_text_length(candidate, fontsize=fontsize) > width:
                    lines += 1
                    current = word
                else:
                    current = candidate
        return lines
