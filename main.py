"""
main.py

WardleySync - Main Application

PyQt6 application for Wardley maps with:
- Text notation editor, live-parsed into the map canvas
- Drag components (the notation is patched to match)
- Text, icon, image, shape and freehand annotations with undo/redo
- Style panel for new annotations and the selected text or shape
- Recorded reveal sequences, played back here and in a presenter window
- Projects stored locally, JSON import/export, PNG export

Usage:
    python main.py

Dependencies:
    pip install PyQt6 pillow platformdirs tomli-w jsonschema
"""

from __future__ import annotations

import sys
import traceback
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtGui import QAction, QActionGroup, QKeySequence
from PyQt6.QtWidgets import (
    QApplication,
    QFileDialog,
    QInputDialog,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QScrollArea,
    QSplitter,
    QToolBar,
)

import debug_trace
from canvas.interaction import (
    TOOL_CIRCLE,
    TOOL_ICON,
    TOOL_LINE,
    TOOL_MOVE,
    TOOL_PEN,
    TOOL_RECTANGLE,
    TOOL_TEXT,
    TOOL_TRIANGLE,
)
from canvas.view import MapCanvasWidget
from debug_trace import close_log, trace, trace_call, trace_exception
from export import (
    ExportError,
    ExportTarget,
    render_png,
    suggest_png_filename,
    suggest_project_filename,
)
from history import HistoryManager
from notation import parse_map, patch_component_position, reparse_into
import overlay_store
from presentation.channel import QtChannelBus
from presentation.presenter_view import PresenterWindow
from presentation.sequencer import Sequencer
from presentation.timer import QtScheduler
from properties import PropertiesDock, StyleError, apply_style_change, load_selection_style
from projects import (
    JsonDirectoryStorage,
    ProjectImportError,
    ProjectManager,
    ProjectNotFoundError,
    generate_project_name,
)
from settings import SettingsManager, get_settings
from styles import DEFAULT_STYLE, STYLES
from utils import image_to_data_url

EXAMPLE_MAP = """title Tea Shop

component Business [0.95, 0.63]
component Public [0.95, 0.78] label [-22.00, -14.00]
component Cup of Tea [0.79, 0.61] label [19.00, -4.00] (build)
component Cup [0.73, 0.78] (buy)
component Tea [0.63, 0.81] (buy)
component Hot Water [0.52, 0.80] label [5.00, -10.00]
component Water [0.38, 0.82] (outsource)
component Kettle [0.43, 0.35] label [-57.00, 4.00] inertia
component Power [0.10, 0.70] (outsource)

Business -> Cup of Tea
Public -> Cup of Tea
Cup of Tea -> Cup
Cup of Tea -> Tea
Cup of Tea -> Hot Water
Hot Water -> Water
Hot Water -> Kettle
Kettle -> Power

note Standardising power allows Kettles to evolve faster [0.30, 0.49]
"""

TOOLS = [
    ("Move", TOOL_MOVE, "Ctrl+1", "Select, move and resize"),
    ("Text", TOOL_TEXT, "Ctrl+2", "Place a text annotation"),
    ("Icon", TOOL_ICON, "Ctrl+3", "Place an icon or emoji"),
    ("Line", TOOL_LINE, "Ctrl+4", "Draw a line"),
    ("Rectangle", TOOL_RECTANGLE, "Ctrl+5", "Draw a rectangle"),
    ("Circle", TOOL_CIRCLE, "Ctrl+6", "Draw a circle"),
    ("Triangle", TOOL_TRIANGLE, "Ctrl+7", "Draw a triangle"),
    ("Pen", TOOL_PEN, "Ctrl+8", "Draw freehand"),
]


class MainWindow(QMainWindow):
    """Main application window for WardleySync.

    Args:
        settings_manager: The SettingsManager instance for application settings.
    """

    def __init__(self, settings_manager: SettingsManager):
        super().__init__()
        self.settings_manager = settings_manager
        s = settings_manager.settings
        self.setWindowTitle("WardleySync")

        # Model
        self.history = HistoryManager(parse_map(EXAMPLE_MAP), capacity=s.history.capacity)
        self.bus = QtChannelBus(parent=self)
        self.sequencer = Sequencer(
            self.history,
            QtScheduler(self),
            channel=self.bus.endpoint("editor"),
            delay=s.presentation.autoplay_delay,
        )
        self.projects = ProjectManager(JsonDirectoryStorage(settings_manager.get_projects_dir()))
        self.export_target = ExportTarget(settings_manager.get_export_dir())
        self.current_project: Optional[str] = None
        self.presenter: Optional[PresenterWindow] = None

        # Editor (left) and canvas (right)
        self.editor = QPlainTextEdit()
        self.editor.setPlainText(EXAMPLE_MAP)
        self.editor.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)

        self.canvas = MapCanvasWidget(self.history, self.sequencer, s)
        scroll = QScrollArea()
        scroll.setWidget(self.canvas)
        scroll.setAlignment(Qt.AlignmentFlag.AlignCenter)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self.editor)
        splitter.addWidget(scroll)
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 3)
        self.setCentralWidget(splitter)

        # Style panel (right side)
        self.properties = PropertiesDock(s.defaults, self)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, self.properties)
        self._styled_selection = None

        self._build_menus()
        self._build_toolbar()

        # Guard: editor text set programmatically must not re-parse
        self._syncing_from_canvas = False

        # Debounced re-parse while typing
        self._parse_timer = QTimer(self)
        self._parse_timer.setSingleShot(True)
        self._parse_timer.setInterval(250)
        self._parse_timer.timeout.connect(self._apply_editor_text)
        self.editor.textChanged.connect(self._on_editor_text_changed)

        # Callbacks
        self.history.set_change_callback(self._on_history_changed)
        self.sequencer.set_change_callback(self._on_sequencer_changed)
        self.canvas.interaction.set_component_moved_callback(self._on_component_moved)
        self.canvas.set_text_prompt(self._prompt_text)
        self.canvas.set_drop_image_callback(self._on_drop_image)
        self.properties.panel.set_style_changed_callback(self._on_style_changed)

        self._update_actions()
        self.statusBar().showMessage("Edit the notation on the left; drag components on the map.")

    # ═══════════════════════════════════════════════════════════
    # UI construction
    # ═══════════════════════════════════════════════════════════

    def _action(self, text: str, slot, shortcut=None, tip: str = "") -> QAction:
        act = QAction(text, self)
        if shortcut is not None:
            act.setShortcut(shortcut)
        if tip:
            act.setStatusTip(tip)
        act.triggered.connect(lambda checked=False: slot())
        return act

    def _build_menus(self):
        """Build the application menu bar."""
        menubar = self.menuBar()

        # File menu
        file_menu = menubar.addMenu("&File")
        file_menu.addAction(self._action("New Project", self.new_project, QKeySequence.StandardKey.New))
        file_menu.addAction(self._action("Open Project...", self.open_project_dialog, QKeySequence.StandardKey.Open))
        file_menu.addAction(self._action("Save Project", self.save_project, QKeySequence.StandardKey.Save))
        file_menu.addAction(self._action("Save Project As...", self.save_project_as, QKeySequence.StandardKey.SaveAs))
        file_menu.addAction(self._action("Delete Project...", self.delete_project_dialog))
        file_menu.addSeparator()
        file_menu.addAction(self._action("Import Project JSON...", self.import_project_dialog))
        file_menu.addAction(self._action("Export Project JSON", self.export_project_json))
        file_menu.addAction(self._action("Export PNG", self.export_png, "Ctrl+E"))
        file_menu.addAction(self._action("Select Export Folder...", self.select_export_dir))
        file_menu.addAction(self._action("Use Download Folder", self.clear_export_dir))
        file_menu.addSeparator()
        file_menu.addAction(self._action("Insert Image...", self.insert_image_dialog))
        file_menu.addSeparator()
        file_menu.addAction(self._action("E&xit", self.close, QKeySequence.StandardKey.Quit))

        # Edit menu
        edit_menu = menubar.addMenu("&Edit")
        self.undo_act = self._action("Undo", self.undo, QKeySequence.StandardKey.Undo)
        self.redo_act = self._action("Redo", self.redo, QKeySequence.StandardKey.Redo)
        edit_menu.addAction(self.undo_act)
        edit_menu.addAction(self.redo_act)
        edit_menu.addSeparator()
        edit_menu.addAction(self._action("Delete Selected", self.canvas.interaction.delete_selected))

        # Presentation menu
        pres_menu = menubar.addMenu("&Presentation")
        self.record_act = self._action("Record Sequence", self.sequencer.toggle_recording, "Ctrl+R")
        self.record_act.setCheckable(True)
        self.play_act = self._action("Play", self.sequencer.toggle_play, "F5")
        self.prev_act = self._action("Previous Step", self.sequencer.previous, "Alt+Left")
        self.next_act = self._action("Next Step", self.sequencer.next, "Alt+Right")
        self.exit_pres_act = self._action("Exit Presentation", self.sequencer.exit_presentation, "Escape")
        self.clear_seq_act = self._action("Clear Sequence", self.sequencer.clear)
        for act in (self.record_act, self.play_act, self.prev_act, self.next_act,
                    self.exit_pres_act, self.clear_seq_act):
            pres_menu.addAction(act)
        pres_menu.addSeparator()
        pres_menu.addAction(self._action("Auto-advance Delay...", self.set_delay_dialog))
        pres_menu.addAction(self._action("Open Presenter Window", self.open_presenter, "Ctrl+Shift+P"))

        # View menu
        view_menu = menubar.addMenu("&View")
        view_menu.addAction(self.properties.toggleViewAction())
        view_menu.addSeparator()
        theme_group = QActionGroup(self)
        for name in STYLES:
            act = QAction(name, self, checkable=True)
            act.setChecked(name == self.settings_manager.settings.theme)
            act.triggered.connect(lambda checked=False, n=name: self.apply_theme(n))
            theme_group.addAction(act)
            view_menu.addAction(act)

        # Help menu
        help_menu = menubar.addMenu("&Help")
        help_menu.addAction(self._action("About", self.show_about))

    def _build_toolbar(self):
        """Build the tool palette."""
        tb = QToolBar("Tools")
        self.addToolBar(tb)

        group = QActionGroup(self)
        group.setExclusive(True)
        self.tool_actions = {}
        for text, tool, shortcut, tip in TOOLS:
            act = QAction(text, self, checkable=True)
            act.setShortcut(shortcut)
            act.setToolTip(f"{tip} ({shortcut})")
            act.setStatusTip(tip)
            act.triggered.connect(lambda checked=False, t=tool: self.canvas.set_tool(t))
            group.addAction(act)
            tb.addAction(act)
            self.tool_actions[tool] = act
        self.tool_actions[TOOL_MOVE].setChecked(True)

        tb.addSeparator()
        tb.addAction(self.undo_act)
        tb.addAction(self.redo_act)
        tb.addSeparator()
        tb.addAction(self.record_act)
        tb.addAction(self.prev_act)
        tb.addAction(self.play_act)
        tb.addAction(self.next_act)

    # ═══════════════════════════════════════════════════════════
    # Model callbacks
    # ═══════════════════════════════════════════════════════════

    def _on_history_changed(self, snapshot):
        self.canvas.refresh()
        self.sequencer.publish_state()
        self._update_actions()
        self._sync_style_panel(snapshot)

    def _sync_style_panel(self, snapshot):
        """Load the style of the selected text or shape into the panel."""
        sel = overlay_store.selected(snapshot.overlays)
        if sel == self._styled_selection:
            return
        self._styled_selection = sel
        defaults = self.settings_manager.settings.defaults
        if load_selection_style(defaults, snapshot) is not None:
            self.properties.panel.load(defaults)

    def _on_style_changed(self, section, changes):
        try:
            apply_style_change(self.settings_manager.settings.defaults, self.history, section, changes)
        except StyleError as e:
            self.statusBar().showMessage(str(e))

    def _on_sequencer_changed(self, _sequencer):
        self.canvas.refresh()
        self._update_actions()

    def _update_actions(self):
        seq = self.sequencer
        self.undo_act.setEnabled(self.history.can_undo())
        self.redo_act.setEnabled(self.history.can_redo())
        self.record_act.setChecked(seq.is_recording)
        self.play_act.setText("Pause" if seq.is_playing else "Play")
        has_items = seq.item_count > 0 and not seq.is_recording
        self.play_act.setEnabled(has_items)
        self.prev_act.setEnabled(has_items)
        self.next_act.setEnabled(has_items)
        self.editor.setReadOnly(seq.is_presenting)
        if seq.is_recording:
            self.statusBar().showMessage(f"Recording: click components and connections ({seq.item_count} recorded)")
        elif seq.is_presenting:
            self.statusBar().showMessage(f"Step {seq.step} / {seq.item_count}")

    def _on_editor_text_changed(self):
        if self._syncing_from_canvas:
            return
        self._parse_timer.start()

    def _apply_editor_text(self):
        """Re-parse the notation; overlays and the sequence carry over."""
        text = self.editor.toPlainText()
        self.history.commit_silent(reparse_into(self.history.present, text))

    def _set_editor_text(self, text: str):
        self._syncing_from_canvas = True
        try:
            bar = self.editor.verticalScrollBar()
            pos = bar.value()
            self.editor.setPlainText(text)
            bar.setValue(pos)
        finally:
            self._syncing_from_canvas = False

    def _on_component_moved(self, name: str, x: float, y: float):
        self._set_editor_text(patch_component_position(self.editor.toPlainText(), name, x, y))

    def _prompt_text(self, title: str, initial: str) -> Optional[str]:
        text, ok = QInputDialog.getText(self, title, "Text:", text=initial)
        return text if ok else None

    def _on_drop_image(self, path: str, px: float, py: float):
        try:
            url, w, h = image_to_data_url(path)
        except OSError as e:
            QMessageBox.warning(self, "Image", f"Cannot load image:\n{e}")
            return
        self.canvas.interaction.add_image(px, py, url, w, h)

    # ═══════════════════════════════════════════════════════════
    # Edit
    # ═══════════════════════════════════════════════════════════

    def undo(self):
        if self.history.undo():
            self.sequencer.sync_with_history()

    def redo(self):
        if self.history.redo():
            self.sequencer.sync_with_history()

    def insert_image_dialog(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Insert Image", "", "Images (*.png *.jpg *.jpeg *.gif *.bmp *.webp)"
        )
        if path:
            vp = self.canvas.viewport
            self._on_drop_image(path, vp.width / 2, vp.height / 2)

    # ═══════════════════════════════════════════════════════════
    # Projects
    # ═══════════════════════════════════════════════════════════

    @trace_call("PROJECT")
    def _load_record(self, record):
        self.sequencer.clear()
        self._parse_timer.stop()
        self._set_editor_text(record.raw_text)
        self.history.reset(record.map)
        self.sequencer.sync_with_history()
        self.current_project = record.name
        self.setWindowTitle(f"WardleySync - {record.name}")

    def new_project(self):
        self.sequencer.clear()
        self._parse_timer.stop()
        self._set_editor_text(EXAMPLE_MAP)
        self.history.reset(parse_map(EXAMPLE_MAP))
        self.current_project = None
        self.setWindowTitle("WardleySync")

    def save_project(self):
        if self.current_project is None:
            self.save_project_as()
            return
        self._save_as(self.current_project)

    def save_project_as(self):
        name, ok = QInputDialog.getText(self, "Save Project", "Project name:",
                                        text=self.current_project or generate_project_name())
        if ok and name.strip():
            self._save_as(name.strip())

    @trace_call("PROJECT")
    def _save_as(self, name: str):
        self._parse_timer.stop()
        self._apply_editor_text()
        self.projects.save_project(name, self.editor.toPlainText(), self.history.present)
        self.current_project = name
        self.setWindowTitle(f"WardleySync - {name}")
        self.statusBar().showMessage(f"Saved project {name}")

    def _choose_project(self, title: str) -> Optional[str]:
        names = self.projects.project_names()
        if not names:
            QMessageBox.information(self, title, "No saved projects.")
            return None
        name, ok = QInputDialog.getItem(self, title, "Project:", names, 0, False)
        return name if ok else None

    def open_project_dialog(self):
        name = self._choose_project("Open Project")
        if name is None:
            return
        record = self.projects.load_project(name)
        if record is None:
            QMessageBox.critical(self, "Open Project", f"Project {name!r} could not be read.")
            return
        self._load_record(record)
        self.statusBar().showMessage(f"Opened project {name}")

    def delete_project_dialog(self):
        name = self._choose_project("Delete Project")
        if name is None:
            return
        if QMessageBox.question(self, "Delete Project", f"Delete project {name!r}?") != QMessageBox.StandardButton.Yes:
            return
        self.projects.delete_project(name)
        if name == self.current_project:
            self.current_project = None
            self.setWindowTitle("WardleySync")

    def import_project_dialog(self):
        path, _ = QFileDialog.getOpenFileName(self, "Import Project", "", "Project JSON (*.json)")
        if not path:
            return
        try:
            record = self.projects.import_project(Path(path).read_text(encoding="utf-8"))
        except (OSError, ProjectImportError) as e:
            QMessageBox.critical(self, "Import failed", str(e))
            return
        self._load_record(record)
        self.statusBar().showMessage(f"Imported project {record.name}")

    @trace_call("EXPORT")
    def export_project_json(self):
        if self.current_project is None:
            self.save_project_as()
            if self.current_project is None:
                return
        else:
            self._save_as(self.current_project)
        try:
            text = self.projects.export_project(self.current_project)
            path = self.export_target.save_text(suggest_project_filename(self.current_project), text)
        except (ProjectNotFoundError, ExportError) as e:
            QMessageBox.critical(self, "Export failed", str(e))
            return
        self.statusBar().showMessage(f"Exported {path}")

    # ═══════════════════════════════════════════════════════════
    # Export
    # ═══════════════════════════════════════════════════════════

    @trace_call("EXPORT")
    def export_png(self):
        c = self.settings_manager.settings.canvas
        wmap = self.history.present
        try:
            data = render_png(wmap, c.width, c.height, c)
            path = self.export_target.save_bytes(suggest_png_filename(wmap.title), data)
        except ExportError as e:
            QMessageBox.critical(self, "Export failed", str(e))
            return
        self.statusBar().showMessage(f"PNG saved to {path}")

    def select_export_dir(self):
        directory = QFileDialog.getExistingDirectory(self, "Select Export Folder")
        if directory:
            self.export_target.select_directory(Path(directory))
            self.settings_manager.settings.storage.export_dir = directory

    def clear_export_dir(self):
        self.export_target.clear_directory()
        self.settings_manager.settings.storage.export_dir = ""
        self.statusBar().showMessage("Exports go to the download folder")

    # ═══════════════════════════════════════════════════════════
    # Presentation
    # ═══════════════════════════════════════════════════════════

    def set_delay_dialog(self):
        value, ok = QInputDialog.getDouble(
            self, "Auto-advance Delay", "Seconds per step:", self.sequencer.delay, 0.1, 60.0, 1
        )
        if ok:
            self.sequencer.set_delay(value)
            self.settings_manager.settings.presentation.autoplay_delay = value

    def open_presenter(self):
        if self.presenter is None:
            self.presenter = PresenterWindow(self.bus.endpoint("presenter"), self.settings_manager.settings)
        self.presenter.show()
        self.presenter.raise_()
        self.presenter.activateWindow()

    # ═══════════════════════════════════════════════════════════
    # View / Help
    # ═══════════════════════════════════════════════════════════

    def apply_theme(self, name: str):
        if name not in STYLES:
            return
        QApplication.instance().setStyleSheet(STYLES[name])
        self.settings_manager.settings.theme = name

    def show_about(self):
        QMessageBox.about(
            self,
            "About WardleySync",
            "WardleySync\n\nWardley maps from a text notation, with annotations, "
            "reveal sequences and a presenter window.",
        )

    def closeEvent(self, event):
        self.sequencer.dispose()
        if self.presenter is not None:
            self.presenter.close()
        super().closeEvent(event)


def main():
    """Application entry point."""
    # Set up global exception handler to catch crashes
    sys.excepthook = _excepthook
    trace("Application starting", "MAIN")
    app = QApplication(sys.argv)

    # Load settings (use singleton to ensure single instance)
    trace("Loading settings", "MAIN")
    settings_manager = get_settings()
    settings_manager.ensure_file_complete()
    debug = settings_manager.settings.debug
    debug_trace.configure(debug.trace, debug.trace_paint)

    # Apply saved theme (or default if not set)
    initial_style = settings_manager.settings.theme
    if initial_style not in STYLES:
        initial_style = DEFAULT_STYLE
        settings_manager.settings.theme = initial_style
    app.setStyleSheet(STYLES[initial_style])

    # Save settings on application quit
    def save_on_quit():
        trace("Saving settings on quit", "MAIN")
        settings_manager.save()
        close_log()

    app.aboutToQuit.connect(save_on_quit)

    trace("Creating MainWindow", "MAIN")
    w = MainWindow(settings_manager)
    w.resize(1600, 1000)
    trace("Showing MainWindow", "MAIN")
    w.show()
    trace("Entering event loop", "MAIN")
    return app.exec()


def _excepthook(exc_type, exc_value, exc_tb):
    trace("UNCAUGHT EXCEPTION:", "CRASH")
    trace("".join(traceback.format_exception(exc_type, exc_value, exc_tb)), "CRASH")
    close_log()
    sys.__excepthook__(exc_type, exc_value, exc_tb)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        trace(f"FATAL: {type(e).__name__}: {e}", "CRASH")
        trace_exception("Fatal exception")
        close_log()
        raise
