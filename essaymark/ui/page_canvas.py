"""
Page surface: shows one page image and its annotations, and forwards
pointer input to the interaction controller.
"""
from typing import Optional, Tuple

import numpy as np
from PyQt5.QtCore import QPointF, QRectF, QSize, Qt
from PyQt5.QtGui import QBrush, QColor, QFont, QImage, QPainter, QPen
from PyQt5.QtWidgets import QWidget

from essaymark.controllers.input_handler import UserInputHandler, pointer_event_from_qt
from essaymark.core.annotations.codes import ELABORATION_COLOR, MODE_COLORS, MODE_LABELS
from essaymark.core.annotations.labels import dot_labels
from essaymark.core.annotations.models import SCORED_MODES, Annotation, AnnotationType, GradingMode
from essaymark.core.geometry import Rect, SurfaceBounds, to_relative_point
from essaymark.core.interaction import InteractionController, InteractionMode

# Sizes in widget pixels at 800 px page width
DOT_RADIUS = 10
HANDLE_SIZE = 8
REFERENCE_WIDTH = 800.0

SELECTION_COLOR = QColor(59, 130, 246)


def qimage_from_array(array: np.ndarray) -> QImage:
    """Copy an RGB or RGBA uint8 array into a QImage."""
    array = np.ascontiguousarray(array)
    h, w = array.shape[:2]
    if array.ndim == 3 and array.shape[2] == 4:
        fmt = QImage.Format_RGBA8888
    else:
        if array.ndim == 2:
            array = np.ascontiguousarray(np.stack([array] * 3, axis=-1))
        fmt = QImage.Format_RGB888
    return QImage(array.data, w, h, array.strides[0], fmt).copy()


def mode_color(annotation: Annotation, alpha: int = 255) -> QColor:
    if annotation.mode == GradingMode.CONTENT and annotation.is_elaboration:
        rgb = ELABORATION_COLOR
    else:
        rgb = MODE_COLORS[annotation.mode]
    return QColor(rgb[0], rgb[1], rgb[2], alpha)


class PageCanvas(QWidget):
    """
    Widget painting a page and its annotations.

    It never mutates annotations; every pointer event goes to the
    InteractionController.
    """

    def __init__(self, interaction: InteractionController, input_handler: Optional[UserInputHandler] = None,
                 parent=None):
        super().__init__(parent)
        self.interaction = interaction
        self.input_handler = input_handler or UserInputHandler(interaction)

        self._image: Optional[QImage] = None
        self.zoom_level = 1.0

        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.StrongFocus)
        # Right click creates dots
        self.setContextMenuPolicy(Qt.PreventContextMenu)

        for signal in (interaction.annotations_changed, interaction.selection_changed,
                       interaction.interaction_changed, interaction.editing_changed,
                       interaction.mode_changed):
            signal.connect(self.update)

    # Page image and zoom

    def set_image(self, source) -> None:
        """
        Show a page image.

        Args:
            source: Image path, RGB(A) ndarray, or None to clear
        """
        if source is None:
            self._image = None
        elif isinstance(source, np.ndarray):
            self._image = qimage_from_array(source)
        else:
            image = QImage(str(source))
            self._image = image if not image.isNull() else None
        self._update_geometry()

    def set_zoom(self, zoom: float) -> None:
        self.zoom_level = max(0.1, min(zoom, 8.0))
        self._update_geometry()

    def image_size(self) -> QSize:
        if self._image is None:
            return QSize(0, 0)
        return QSize(int(self._image.width() * self.zoom_level), int(self._image.height() * self.zoom_level))

    def _update_geometry(self) -> None:
        size = self.image_size()
        self.setFixedSize(size)
        self.interaction.set_surface_bounds(SurfaceBounds(0, 0, size.width(), size.height()))
        self.update()

    @property
    def _scale(self) -> float:
        return max(self.width(), 1) / REFERENCE_WIDTH

    # Hit testing

    def hit_test(self, pos) -> Tuple[Optional[str], Optional[int], Optional[str]]:
        """
        Find what lies under a widget position.

        Returns:
            (annotation id, rect index, handle); handles are only offered on
            the annotation being edited
        """
        bounds = self.interaction.surface_bounds
        if bounds.width <= 0:
            return None, None, None
        point = to_relative_point((pos.x(), pos.y()), bounds)
        store = self.interaction.store

        editing = self.interaction.editing_id
        if editing is not None:
            ann, index, handle = store.handle_at_point(point, tolerance=HANDLE_SIZE * self._scale / bounds.width)
            if ann is not None and ann.id == editing:
                return ann.id, index, handle

        cfg = self.interaction.config
        stamp_height = cfg.stamp_height * bounds.width / bounds.height if bounds.height else cfg.stamp_height
        ann, index = store.annotation_at_point(
            point,
            tolerance=DOT_RADIUS * self._scale / bounds.width,
            stamp_size=(cfg.stamp_width, stamp_height)
        )
        if ann is None:
            return None, None, None
        return ann.id, index, None

    # Events

    def mousePressEvent(self, event):
        self.setFocus()
        target_id, rect_index, handle = self.hit_test(event.pos())
        self.interaction.pointer_down(pointer_event_from_qt(event, target_id, rect_index, handle))

    def mouseMoveEvent(self, event):
        self.interaction.pointer_move(pointer_event_from_qt(event))
        if self.interaction.mode == InteractionMode.IDLE:
            target_id, _, handle = self.hit_test(event.pos())
            if handle in ('nw', 'se'):
                self.setCursor(Qt.SizeFDiagCursor)
            elif handle in ('ne', 'sw'):
                self.setCursor(Qt.SizeBDiagCursor)
            elif target_id is not None:
                self.setCursor(Qt.SizeAllCursor)
            else:
                self.setCursor(Qt.CrossCursor)

    def mouseReleaseEvent(self, event):
        self.interaction.pointer_up(pointer_event_from_qt(event))

    def keyPressEvent(self, event):
        self.input_handler.handle_key_press(event)
        if not event.isAccepted():
            super().keyPressEvent(event)

    def focusOutEvent(self, event):
        # Pointer capture is lost with focus (e.g. window switch mid-drag)
        self.interaction.cancel()
        super().focusOutEvent(event)

    # Painting

    def _to_widget(self, rect: Rect) -> QRectF:
        w, h = self.width(), self.height()
        return QRectF(rect.x * w, rect.y * h, rect.width * w, rect.height * h)

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing)

        if self._image is None:
            painter.fillRect(self.rect(), QColor(30, 30, 30))
            return
        painter.drawImage(QRectF(0, 0, self.width(), self.height()), self._image)

        store = self.interaction.store
        labels = dot_labels(store.annotations)
        selected = set(self.interaction.selected_ids)
        editing = self.interaction.editing_id

        for ann in store.page_annotations():
            highlighted = ann.id in selected or ann.id == editing
            if ann.annotation_type == AnnotationType.RECT:
                self._paint_rect_annotation(painter, ann, highlighted, ann.id == editing)
            elif ann.annotation_type == AnnotationType.DOT:
                self._paint_dot(painter, ann, labels.get(ann.id, '?'), highlighted)
            elif ann.annotation_type == AnnotationType.STAMP:
                self._paint_stamp(painter, ann, highlighted)

        dashed = QPen(SELECTION_COLOR, 1, Qt.DashLine)
        if self.interaction.selection_box is not None:
            painter.setPen(dashed)
            painter.setBrush(QBrush(QColor(59, 130, 246, 30)))
            painter.drawRect(self._to_widget(self.interaction.selection_box))

        preview = self.interaction.creation_preview
        if preview is not None:
            color = QColor(*MODE_COLORS[self.interaction.active_mode])
            painter.setPen(QPen(color, 1, Qt.DashLine))
            painter.setBrush(Qt.NoBrush)
            painter.drawRect(self._to_widget(preview))

        painter.end()

    def _paint_rect_annotation(self, painter: QPainter, ann: Annotation, highlighted: bool, editing: bool):
        scale = self._scale
        fill = mode_color(ann, 0x26)
        for index, r in enumerate(ann.rects):
            area = self._to_widget(r)
            painter.setPen(QPen(SELECTION_COLOR, 2) if highlighted else Qt.NoPen)
            painter.setBrush(QBrush(fill))
            painter.drawRect(area)

            if editing:
                painter.setPen(QPen(SELECTION_COLOR, 1))
                painter.setBrush(QBrush(Qt.white))
                size = HANDLE_SIZE * scale
                for corner in (area.topLeft(), area.topRight(), area.bottomLeft(), area.bottomRight()):
                    painter.drawRect(QRectF(corner.x() - size / 2, corner.y() - size / 2, size, size))

            if index == 0:
                tag = ann.code or MODE_LABELS[ann.mode]
                font = QFont("monospace")
                font.setBold(True)
                font.setPixelSize(max(int(7 * scale), 6))
                painter.setFont(font)
                char_h = font.pixelSize()
                tag_rect = QRectF(area.left() - char_h - 4 * scale, area.center().y() - len(tag) * char_h / 2 - 2,
                                  char_h + 3 * scale, len(tag) * char_h + 4)
                painter.setPen(Qt.NoPen)
                painter.setBrush(QBrush(mode_color(ann)))
                painter.drawRoundedRect(tag_rect, 2, 2)
                painter.setPen(Qt.white)
                for i, char in enumerate(tag):
                    painter.drawText(QRectF(tag_rect.left(), tag_rect.top() + 2 + i * char_h, tag_rect.width(), char_h),
                                     Qt.AlignCenter, char)

                if ann.correction:
                    font.setItalic(True)
                    font.setPixelSize(max(int(9 * scale), 7))
                    painter.setFont(font)
                    painter.setPen(mode_color(ann))
                    painter.drawText(QPointF(area.left(), area.top() - 1), ann.correction)

    def _paint_dot(self, painter: QPainter, ann: Annotation, label: str, highlighted: bool):
        if ann.point is None:
            return
        radius = DOT_RADIUS * self._scale
        center = QPointF(ann.x * self.width(), ann.y * self.height())

        painter.setPen(QPen(SELECTION_COLOR if highlighted else Qt.white, 2 if highlighted else 1.5))
        painter.setBrush(QBrush(mode_color(ann)))
        painter.drawEllipse(center, radius, radius)

        font = QFont()
        font.setBold(True)
        font.setPixelSize(max(int(radius * 1.1), 6))
        painter.setFont(font)
        painter.setPen(Qt.white)
        painter.drawText(QRectF(center.x() - radius * 2, center.y() - radius, radius * 4, radius * 2),
                         Qt.AlignCenter, label)

    def _paint_stamp(self, painter: QPainter, ann: Annotation, highlighted: bool):
        data = ann.stamp_data
        if data is None or ann.point is None:
            return
        scale = self._scale
        red = QColor(*MODE_COLORS[GradingMode.STAMPER])
        card = QRectF(ann.x * self.width(), ann.y * self.height(), 140 * scale, 100 * scale)
        pad = 10 * scale

        painter.setPen(QPen(SELECTION_COLOR if highlighted else red, 2 * scale))
        painter.setBrush(QBrush(Qt.white))
        painter.drawRoundedRect(card, 8 * scale, 8 * scale)

        font = QFont("monospace")
        font.setBold(True)
        font.setPixelSize(max(int(10 * scale), 6))
        painter.setFont(font)
        painter.setPen(red)
        short = {GradingMode.CONTENT: "C: ", GradingMode.COMMUNICATIVE: "CA:",
                 GradingMode.ORGANISATION: "O: ", GradingMode.LANGUAGE: "L: "}
        for row, mode in enumerate(SCORED_MODES, start=1):
            painter.drawText(QPointF(card.left() + pad, card.top() + pad + 14 * scale * row),
                             f"{short[mode]} {data.scores.get(mode):g}/5")

        font.setPixelSize(max(int(22 * scale), 8))
        painter.setFont(font)
        painter.drawText(QRectF(card.left(), card.top(), card.width() - pad, card.height() / 2 + 10 * scale),
                         Qt.AlignRight | Qt.AlignBottom, f"{data.total:g}")

        font.setPixelSize(max(int(6 * scale), 5))
        painter.setFont(font)
        painter.drawText(QPointF(card.left() + pad, card.bottom() - pad * 1.5), f"By {data.grader or 'Unknown'}")
        painter.drawText(QPointF(card.left() + pad, card.bottom() - pad * 0.8), data.date)
