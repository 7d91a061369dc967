"""
Side panels: the annotation editor and the rubric scores.
"""
from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import (
    QComboBox,
    QDoubleSpinBox,
    QFormLayout,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
)

from essaymark.core.annotations.codes import codes_for_mode
from essaymark.core.annotations.models import SCORED_MODES, AnnotationType
from essaymark.core.interaction import InteractionController


class EditorPanel(QFrame):
    """Edits code, correction and comment of the focused annotation."""

    def __init__(self, interaction: InteractionController, parent=None):
        super().__init__(parent)
        self.interaction = interaction
        self._annotation_id = None

        self.title = QLabel()
        self.code_combo = QComboBox()
        self.correction_edit = QLineEdit()
        self.correction_edit.setPlaceholderText("Correction")
        self.comment_edit = QPlainTextEdit()
        self.comment_edit.setPlaceholderText("Comment")

        done = QPushButton("Done")
        cancel = QPushButton("Cancel")
        done.clicked.connect(interaction.editor_commit)
        cancel.clicked.connect(interaction.editor_cancel)

        buttons = QHBoxLayout()
        buttons.addWidget(cancel)
        buttons.addWidget(done)

        layout = QVBoxLayout(self)
        layout.addWidget(self.title)
        layout.addWidget(self.code_combo)
        layout.addWidget(self.correction_edit)
        layout.addWidget(self.comment_edit)
        layout.addLayout(buttons)

        self.code_combo.activated.connect(self._on_code_chosen)
        self.correction_edit.textEdited.connect(
            lambda text: self._write(correction=text))
        self.comment_edit.textChanged.connect(
            lambda: self._write(text=self.comment_edit.toPlainText()))

        interaction.editing_changed.connect(self.show_annotation)
        interaction.annotations_changed.connect(self._refresh)
        self.hide()

    def show_annotation(self, annotation_id):
        self._annotation_id = annotation_id
        self._refresh()

    def _refresh(self):
        ann = self.interaction.store.get(self._annotation_id)
        if ann is None or ann.annotation_type != AnnotationType.RECT:
            self.hide()
            return

        self.title.setText("New annotation" if self.interaction.is_editing_new else "Edit annotation")
        for widget in (self.code_combo, self.correction_edit, self.comment_edit):
            widget.blockSignals(True)

        self.code_combo.clear()
        self.code_combo.addItem("(no code)", None)
        for code in codes_for_mode(ann.mode):
            self.code_combo.addItem(f"{code.code}  {code.label}", code.code)
        index = self.code_combo.findData(ann.code)
        self.code_combo.setCurrentIndex(max(index, 0))

        if self.correction_edit.text() != (ann.correction or ''):
            self.correction_edit.setText(ann.correction or '')
        if self.comment_edit.toPlainText() != (ann.text or ''):
            self.comment_edit.setPlainText(ann.text or '')

        for widget in (self.code_combo, self.correction_edit, self.comment_edit):
            widget.blockSignals(False)
        self.show()

    def _on_code_chosen(self, index):
        self._write(code=self.code_combo.itemData(index))

    def _write(self, **fields):
        if self._annotation_id is not None:
            self.interaction.edit_fields(self._annotation_id, **fields)


class ScorePanel(QFrame):
    """Rubric scores of the current student (0-5 per category)."""

    def __init__(self, grading, parent=None):
        super().__init__(parent)
        self.grading = grading
        self.spin_boxes = {}

        form = QFormLayout(self)
        for mode in SCORED_MODES:
            spin = QDoubleSpinBox()
            spin.setRange(0, 5)
            spin.setSingleStep(0.5)
            spin.valueChanged.connect(lambda value, m=mode: self.grading.update_score(m, value))
            self.spin_boxes[mode] = spin
            form.addRow(mode.value.capitalize(), spin)

        self.total_label = QLabel()
        self.total_label.setAlignment(Qt.AlignRight)
        form.addRow("Total", self.total_label)

        grading.page_changed.connect(lambda *_: self.refresh())
        grading.scores_changed.connect(self._refresh_total)

    def refresh(self):
        student = self.grading.current_student
        for mode, spin in self.spin_boxes.items():
            spin.blockSignals(True)
            spin.setValue(student.scores.get(mode) if student else 0)
            spin.setEnabled(student is not None)
            spin.blockSignals(False)
        self._refresh_total()

    def _refresh_total(self):
        student = self.grading.current_student
        self.total_label.setText(f"{student.scores.total:g} / 20" if student else "")
