"""PySide6 window that hosts the document and copies selections as markdown."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
from dataclasses import replace
from pathlib import Path

from PySide6.QtCore import QEvent, QObject, Qt, QTimer, QUrl
from PySide6.QtGui import QAction, QClipboard, QKeyEvent, QKeySequence
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import QApplication, QMainWindow

from .codehl import PygmentsHighlighter
from .config import Settings
from .document import DocumentRenderer, build_document
from .extract import extract_selection
from .model import SourceDocument

logger = logging.getLogger(__name__)

_SELECTION_JS = "window.__mdlensSelection ? window.__mdlensSelection() : null"
_STATE_JS = "window.__mdlensState ? window.__mdlensState() : null"


def _placeholder_page(message: str) -> str:
    return (
        "<!doctype html><html><body style='font-family:sans-serif;color:#6b7280;padding:2rem'>"
        f"<p>{message}</p></body></html>"
    )


class CopyKeyFilter(QObject):
    """Take the Copy key away from Chromium so it runs smart copy instead.

    The web view's focus proxy accepts ShortcutOverride for Copy, so a
    window shortcut never sees the key while the page has focus.
    """

    def __init__(self, on_copy, parent: QObject | None = None):
        super().__init__(parent)
        self._on_copy = on_copy

    def eventFilter(self, watched, event) -> bool:
        if event.type() not in (QEvent.Type.ShortcutOverride, QEvent.Type.KeyPress):
            return super().eventFilter(watched, event)
        if not isinstance(event, QKeyEvent) or not event.matches(QKeySequence.StandardKey.Copy):
            return super().eventFilter(watched, event)
        if event.type() == QEvent.Type.ShortcutOverride:
            # Claim the key so it arrives as a KeyPress below.
            event.accept()
        else:
            self._on_copy()
        return True


class MdLensWindow(QMainWindow):
    def __init__(self, path: Path, settings: Settings):
        super().__init__()
        self.path = path
        self.settings = settings
        self._code_highlighter = PygmentsHighlighter(settings.code_style)
        self.renderer = DocumentRenderer(settings, self._code_highlighter)
        self.source: SourceDocument | None = None
        # Signature of the rendered file and of the last change seen but not
        # yet rendered; a change is rendered once it is stable for one tick.
        self._displayed_signature: tuple[int, int] | None = None
        self._pending_signature: tuple[int, int] | None = None

        self.setWindowTitle(f"mdlens - {path.name}")
        self.resize(1100, 860)

        self.preview = QWebEngineView(self)
        self.preview.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.preview.customContextMenuRequested.connect(self._show_preview_context_menu)
        self.setCentralWidget(self.preview)

        self._copy_key_filter = CopyKeyFilter(self._copy_smart_selection, self)
        self._filtered_focus_proxy = None
        self.preview.installEventFilter(self._copy_key_filter)
        self.preview.loadFinished.connect(self._install_copy_key_filter)

        reload_action = QAction("Reload", self)
        reload_action.setShortcut(QKeySequence(QKeySequence.StandardKey.Refresh))
        reload_action.triggered.connect(lambda: self._refresh(reason="reloaded"))
        self.addAction(reload_action)

        self._file_change_watch_timer = QTimer(self)
        self._file_change_watch_timer.setInterval(settings.watch_interval_ms)
        self._file_change_watch_timer.timeout.connect(self._on_file_change_watch_tick)
        self._file_change_watch_timer.start()

        self.statusBar().showMessage("Ready")
        self._load(self.settings)

    # -- loading ------------------------------------------------------------

    def _file_signature(self) -> tuple[int, int] | None:
        try:
            stat = self.path.stat()
        except OSError:
            return None
        return int(stat.st_mtime_ns), int(stat.st_size)

    def _load(self, settings: Settings, heading: str | None = None) -> None:
        """Render the file and replace the page wholesale."""
        signature = self._file_signature()
        try:
            text = self.path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Could not read %s: %s", self.path, exc)
            self.source = None
            self.preview.setHtml(_placeholder_page(f"Could not read {self.path.name}"))
            self.statusBar().showMessage(f"Could not read {self.path}", 5000)
            return

        result = self.renderer.render(text, base_dir=self.path.parent)
        page = build_document(
            result,
            self.path.name,
            settings,
            initial_heading=heading,
            code_background=self._code_highlighter.background_color(),
        )
        self.source = result.source
        self._displayed_signature = signature
        self._pending_signature = None
        self.preview.setHtml(page, QUrl.fromLocalFile(str(self.path.parent) + os.sep))

    def _install_copy_key_filter(self, _ok: bool = True) -> None:
        """Filter key events on the focus proxy, which exists once a page loads."""
        proxy = self.preview.focusProxy()
        if proxy is None or proxy is self._filtered_focus_proxy:
            return
        proxy.installEventFilter(self._copy_key_filter)
        self._filtered_focus_proxy = proxy

    def _refresh(self, reason: str) -> None:
        """Re-render, keeping the current view mode and heading position."""

        def apply_state(state) -> None:
            settings = self.settings
            heading = None
            if isinstance(state, dict):
                mode = state.get("mode")
                if mode in ("rendered", "literal"):
                    settings = replace(settings, view_mode=mode)
                if isinstance(state.get("heading"), str):
                    heading = state["heading"]
            self._load(settings, heading)
            self.statusBar().showMessage(f"Refreshed ({reason})", 3000)

        self.preview.page().runJavaScript(_STATE_JS, apply_state)

    def _on_file_change_watch_tick(self) -> None:
        """Re-render when the file changed on disk and has settled."""
        signature = self._file_signature()
        if signature is None:
            # Editors may replace the file while saving.
            return
        if signature == self._displayed_signature:
            self._pending_signature = None
            return
        if signature != self._pending_signature:
            self._pending_signature = signature
            return
        self._pending_signature = None
        self._displayed_signature = signature
        self._refresh(reason="file changed on disk")

    # -- copying ------------------------------------------------------------

    def _show_preview_context_menu(self, pos) -> None:
        self.preview.page().runJavaScript(
            _SELECTION_JS,
            lambda result: self._show_preview_context_menu_with_selection(pos, result),
        )

    def _show_preview_context_menu_with_selection(self, pos, selection_info) -> None:
        menu = self.preview.createStandardContextMenu()
        copy_source_action: QAction | None = None
        copy_rendered_action: QAction | None = None
        if isinstance(selection_info, dict) and str(selection_info.get("text") or "").strip():
            menu.addSeparator()
            copy_rendered_action = menu.addAction("Copy Rendered Text")
            copy_source_action = menu.addAction("Copy Source Markdown")

        chosen = menu.exec(self.preview.mapToGlobal(pos))
        if copy_rendered_action is not None and chosen == copy_rendered_action:
            self._set_plain_text_clipboard(str(selection_info.get("text") or ""))
            self.statusBar().showMessage("Copied rendered text", 3000)
        elif copy_source_action is not None and chosen == copy_source_action:
            self._copy_selection_as_source_markdown(selection_info)
        menu.deleteLater()

    def _copy_smart_selection(self) -> None:
        self.preview.page().runJavaScript(_SELECTION_JS, self._copy_selection_as_source_markdown)

    def _copy_selection_as_source_markdown(self, selection_info) -> None:
        """Copy the markdown behind the selection, or the plain text if none maps."""
        if not isinstance(selection_info, dict):
            return
        text = str(selection_info.get("text") or "")
        if not text:
            return
        if selection_info.get("mode") == "literal" or self.source is None:
            # The literal view already shows source text.
            self._set_plain_text_clipboard(text)
            self.statusBar().showMessage("Copied text", 3000)
            return

        ranges = selection_info.get("ranges") or []
        extracted = extract_selection(text, ranges, self.source)
        if extracted is None:
            self._set_plain_text_clipboard(text)
            self.statusBar().showMessage("Copied rendered text (no source lines found)", 3000)
            return
        self._set_plain_text_clipboard(extracted)
        line_count = extracted.count("\n") + 1
        self.statusBar().showMessage(f"Copied source markdown ({line_count} lines)", 3000)

    def _set_plain_text_clipboard(self, text: str) -> None:
        """Set clipboard text via Qt, with platform CLI fallback for reliability."""
        clipboard = QApplication.clipboard()
        clipboard.setText(text, QClipboard.Mode.Clipboard)
        if clipboard.supportsSelection():
            clipboard.setText(text, QClipboard.Mode.Selection)
        QApplication.processEvents()

        try:
            if os.environ.get("WAYLAND_DISPLAY") and shutil.which("wl-copy"):
                subprocess.run(["wl-copy"], input=text, text=True, check=False)
            elif os.environ.get("DISPLAY") and shutil.which("xclip"):
                subprocess.run(["xclip", "-selection", "clipboard"], input=text, text=True, check=False)
        except OSError as exc:
            # Qt clipboard already received the text.
            logger.debug("Clipboard helper failed: %s", exc)


def run_viewer(path: Path, settings: Settings) -> int:
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("mdlens")
    app.setDesktopFileName("mdlens")
    window = MdLensWindow(path.resolve(), settings)
    window.show()
    return app.exec()
