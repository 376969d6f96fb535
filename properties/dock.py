"""
properties/dock.py

Property panel for overlay styles.

Three groups edit the defaults for new texts, shapes and pen paths. If a
text or shape is selected on the canvas, edits in its group restyle it as
well; the main window does that through ``set_style_changed_callback``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Tuple

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor
from PyQt6.QtWidgets import (
    QCheckBox,
    QColorDialog,
    QComboBox,
    QDockWidget,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSlider,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from canvas.geometry import MAX_FONT_SIZE, MIN_FONT_SIZE
from properties.overlay_style import (
    FONT_WEIGHTS,
    MAX_STROKE_WIDTH,
    MIN_STROKE_WIDTH,
    SECTION_DRAWING,
    SECTION_SHAPE,
    SECTION_TEXT,
)
from settings import OverlayDefaults
from utils import hex_to_qcolor, qcolor_to_hex

# Called with (section, {attribute: value})
StyleChanged = Callable[[str, Dict[str, Any]], None]

_GROUP_TITLES = {
    SECTION_TEXT: "Text",
    SECTION_SHAPE: "Shapes",
    SECTION_DRAWING: "Pen",
}


class _ColorRow(QWidget):
    """Color button plus a swatch showing the current color."""

    def __init__(self, title: str, parent=None):
        super().__init__(parent)
        self.title = title
        self.color = "#000000"
        self.button = QPushButton("Pick...")
        self.preview = QLabel()
        self.preview.setFixedSize(28, 18)
        row = QHBoxLayout(self)
        row.setContentsMargins(0, 0, 0, 0)
        row.addWidget(self.preview)
        row.addWidget(self.button)
        row.addStretch(1)

    def show_color(self, hex_color: str) -> None:
        self.color = hex_color
        c = hex_to_qcolor(hex_color, QColor("#000000"))
        self.preview.setStyleSheet(f"background-color: {c.name()}; border: 1px solid #444;")
        self.preview.setToolTip(hex_color)


class PropertiesPanel(QWidget):
    """
    Style editor for new and selected overlays.

    Groups:
    - Text: color, font size, weight, opacity
    - Shapes: stroke color, fill color, filled, stroke width, opacity
    - Pen: stroke color, stroke width, opacity

    Every edit is reported through the style-changed callback as
    ``(section, {attribute: value})``.
    """

    def __init__(self, defaults: OverlayDefaults, parent=None):
        super().__init__(parent)
        self._on_style_changed: Optional[StyleChanged] = None
        self._loading = False
        self._colors: Dict[Tuple[str, str], _ColorRow] = {}

        layout = QVBoxLayout(self)
        layout.addWidget(self._build_text_group())
        layout.addWidget(self._build_shape_group())
        layout.addWidget(self._build_drawing_group())
        layout.addStretch(1)

        self.load(defaults)

    # ----------------------------
    # Construction
    # ----------------------------

    def _color_row(self, form: QFormLayout, section: str, key: str, label: str) -> _ColorRow:
        row = _ColorRow(label)
        row.button.clicked.connect(lambda checked=False: self.pick_color(section, key))
        self._colors[(section, key)] = row
        form.addRow(label, row)
        return row

    def _opacity_slider(self, form: QFormLayout, section: str) -> QSlider:
        slider = QSlider(Qt.Orientation.Horizontal)
        slider.setRange(0, 100)
        label = QLabel("0%")
        slider.valueChanged.connect(lambda v: label.setText(f"{v}%"))
        slider.valueChanged.connect(lambda v: self._emit(section, opacity=v))
        row = QWidget()
        h = QHBoxLayout(row)
        h.setContentsMargins(0, 0, 0, 0)
        h.addWidget(slider, 1)
        h.addWidget(label)
        form.addRow("Opacity:", row)
        return slider

    def _stroke_width_spin(self, form: QFormLayout, section: str) -> QSpinBox:
        spin = QSpinBox()
        spin.setRange(MIN_STROKE_WIDTH, MAX_STROKE_WIDTH)
        spin.setSuffix(" px")
        spin.valueChanged.connect(lambda v: self._emit(section, stroke_width=v))
        form.addRow("Stroke width:", spin)
        return spin

    def _build_text_group(self) -> QGroupBox:
        box = QGroupBox(_GROUP_TITLES[SECTION_TEXT])
        form = QFormLayout(box)
        self.text_color = self._color_row(form, SECTION_TEXT, "color", "Color:")
        self.text_size = QSpinBox()
        self.text_size.setRange(MIN_FONT_SIZE, MAX_FONT_SIZE)
        self.text_size.setSuffix(" px")
        self.text_size.valueChanged.connect(lambda v: self._emit(SECTION_TEXT, font_size=v))
        form.addRow("Size:", self.text_size)
        self.text_weight = QComboBox()
        self.text_weight.addItems(FONT_WEIGHTS)
        self.text_weight.currentTextChanged.connect(lambda w: self._emit(SECTION_TEXT, font_weight=w))
        form.addRow("Weight:", self.text_weight)
        self.text_opacity = self._opacity_slider(form, SECTION_TEXT)
        return box

    def _build_shape_group(self) -> QGroupBox:
        box = QGroupBox(_GROUP_TITLES[SECTION_SHAPE])
        form = QFormLayout(box)
        self.shape_stroke = self._color_row(form, SECTION_SHAPE, "stroke_color", "Stroke:")
        self.shape_filled = QCheckBox("Filled")
        self.shape_filled.toggled.connect(self._on_filled_toggled)
        form.addRow("", self.shape_filled)
        self.shape_fill = self._color_row(form, SECTION_SHAPE, "fill_color", "Fill:")
        self.shape_width = self._stroke_width_spin(form, SECTION_SHAPE)
        self.shape_opacity = self._opacity_slider(form, SECTION_SHAPE)
        return box

    def _build_drawing_group(self) -> QGroupBox:
        box = QGroupBox(_GROUP_TITLES[SECTION_DRAWING])
        form = QFormLayout(box)
        self.pen_color = self._color_row(form, SECTION_DRAWING, "stroke_color", "Color:")
        self.pen_width = self._stroke_width_spin(form, SECTION_DRAWING)
        self.pen_opacity = self._opacity_slider(form, SECTION_DRAWING)
        return box

    # ----------------------------
    # Wiring
    # ----------------------------

    def set_style_changed_callback(self, cb: Optional[StyleChanged]) -> None:
        self._on_style_changed = cb

    def _emit(self, section: str, **changes: Any) -> None:
        if self._loading or self._on_style_changed is None:
            return
        self._on_style_changed(section, changes)

    def _on_filled_toggled(self, filled: bool) -> None:
        self.shape_fill.setEnabled(filled)
        self._emit(SECTION_SHAPE, filled=filled)

    # ----------------------------
    # Values
    # ----------------------------

    def load(self, defaults: OverlayDefaults) -> None:
        """Show *defaults* without reporting any change."""
        self._loading = True
        try:
            text, shape, pen = defaults.text, defaults.shape, defaults.drawing
            self.text_color.show_color(text.color)
            self.text_size.setValue(int(text.font_size))
            self.text_weight.setCurrentText(text.font_weight)
            self.text_opacity.setValue(int(text.opacity))

            self.shape_stroke.show_color(shape.stroke_color)
            self.shape_fill.show_color(shape.fill_color)
            self.shape_filled.setChecked(bool(shape.filled))
            self.shape_fill.setEnabled(bool(shape.filled))
            self.shape_width.setValue(int(round(shape.stroke_width)))
            self.shape_opacity.setValue(int(shape.opacity))

            self.pen_color.show_color(pen.stroke_color)
            self.pen_width.setValue(int(round(pen.stroke_width)))
            self.pen_opacity.setValue(int(pen.opacity))
        finally:
            self._loading = False

    def set_color(self, section: str, key: str, hex_color: str) -> None:
        """Show and report a color chosen for (section, key)."""
        self._colors[(section, key)].show_color(hex_color)
        self._emit(section, **{key: hex_color})

    def pick_color(self, section: str, key: str) -> None:
        """Show the color dialog for one color attribute."""
        row = self._colors[(section, key)]
        initial = hex_to_qcolor(row.color, QColor("#000000"))
        c = QColorDialog.getColor(initial, self, f"{_GROUP_TITLES[section]} {row.title.rstrip(':')}")
        if not c.isValid():
            return
        self.set_color(section, key, qcolor_to_hex(c))


class PropertiesDock(QDockWidget):
    """Dock wrapper placing the properties panel beside the canvas."""

    def __init__(self, defaults: OverlayDefaults, parent=None):
        super().__init__("Properties", parent)
        self.setObjectName("PropertiesDock")
        self.panel = PropertiesPanel(defaults, self)
        self.setWidget(self.panel)
