"""
styles.py

Application stylesheets - Light and Dark themes.

The map canvas always paints its own white background; these sheets only
style the surrounding window chrome.
"""

LIGHT_STYLE = """
/* === Base Colors === */
QMainWindow {
    background-color: #f3f4f6;
}

QWidget {
    background-color: #f9fafb;
    color: #1f2937;
    font-family: "Segoe UI", "SF Pro Display", sans-serif;
    font-size: 13px;
}

/* === Menu Bar === */
QMenuBar {
    background-color: #ffffff;
    border-bottom: 1px solid #e5e7eb;
}

QMenuBar::item:selected, QMenu::item:selected {
    background-color: #dbeafe;
    color: #1e3a8a;
}

QMenu {
    background-color: #ffffff;
    border: 1px solid #d1d5db;
    padding: 4px;
}

/* === Toolbar === */
QToolBar {
    background-color: #ffffff;
    border-bottom: 1px solid #e5e7eb;
    spacing: 4px;
    padding: 2px;
}

QToolButton {
    padding: 4px 8px;
    border-radius: 4px;
}

QToolButton:checked {
    background-color: #2563eb;
    color: #ffffff;
}

QToolButton:hover:!checked {
    background-color: #e5e7eb;
}

/* === Editor === */
QPlainTextEdit {
    background-color: #ffffff;
    border: 1px solid #d1d5db;
    font-family: "JetBrains Mono", "Consolas", monospace;
    font-size: 13px;
    selection-background-color: #bfdbfe;
}

/* === Buttons === */
QPushButton {
    background-color: #2563eb;
    color: #ffffff;
    border: none;
    border-radius: 4px;
    padding: 6px 14px;
}

QPushButton:hover {
    background-color: #1d4ed8;
}

QPushButton:disabled {
    background-color: #9ca3af;
}

QStatusBar {
    background-color: #ffffff;
    border-top: 1px solid #e5e7eb;
}
"""

DARK_STYLE = """
/* === Base Colors === */
QMainWindow {
    background-color: #18181b;
}

QWidget {
    background-color: #202024;
    color: #e4e4e7;
    font-family: "Segoe UI", "SF Pro Display", sans-serif;
    font-size: 13px;
}

/* === Menu Bar === */
QMenuBar {
    background-color: #27272a;
    border-bottom: 1px solid #3f3f46;
}

QMenuBar::item:selected, QMenu::item:selected {
    background-color: #1e40af;
}

QMenu {
    background-color: #27272a;
    border: 1px solid #3f3f46;
    padding: 4px;
}

/* === Toolbar === */
QToolBar {
    background-color: #27272a;
    border-bottom: 1px solid #3f3f46;
    spacing: 4px;
    padding: 2px;
}

QToolButton {
    padding: 4px 8px;
    border-radius: 4px;
}

QToolButton:checked {
    background-color: #3b82f6;
    color: #ffffff;
}

QToolButton:hover:!checked {
    background-color: #3f3f46;
}

/* === Editor === */
QPlainTextEdit {
    background-color: #18181b;
    border: 1px solid #3f3f46;
    font-family: "JetBrains Mono", "Consolas", monospace;
    font-size: 13px;
    selection-background-color: #1e40af;
}

/* === Buttons === */
QPushButton {
    background-color: #3b82f6;
    color: #ffffff;
    border: none;
    border-radius: 4px;
    padding: 6px 14px;
}

QPushButton:hover {
    background-color: #2563eb;
}

QPushButton:disabled {
    background-color: #52525b;
}

QStatusBar {
    background-color: #27272a;
    border-top: 1px solid #3f3f46;
}
"""

# Style registry for easy access
STYLES = {
    "Light": LIGHT_STYLE,
    "Dark": DARK_STYLE,
}

DEFAULT_STYLE = "Light"
