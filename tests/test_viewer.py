import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
pytest.importorskip("PySide6.QtWebEngineWidgets")

from PySide6.QtCore import QEvent, Qt  # noqa: E402
from PySide6.QtGui import QKeyEvent  # noqa: E402
from PySide6.QtWidgets import QApplication  # noqa: E402

from mdlens.viewer import CopyKeyFilter  # noqa: E402


@pytest.fixture(scope="module")
def qt_app():
    return QApplication.instance() or QApplication([])


def _key(event_type, key=Qt.Key.Key_C, modifiers=Qt.KeyboardModifier.ControlModifier):
    return QKeyEvent(event_type, key, modifiers)


def test_copy_key_is_claimed_and_runs_smart_copy(qt_app):
    calls = []
    key_filter = CopyKeyFilter(lambda: calls.append("copy"))

    override = _key(QEvent.Type.ShortcutOverride)
    override.ignore()
    assert key_filter.eventFilter(key_filter, override) is True
    assert override.isAccepted()
    assert calls == []

    assert key_filter.eventFilter(key_filter, _key(QEvent.Type.KeyPress)) is True
    assert calls == ["copy"]


def test_other_keys_pass_through(qt_app):
    calls = []
    key_filter = CopyKeyFilter(lambda: calls.append("copy"))

    plain_c = _key(QEvent.Type.KeyPress, modifiers=Qt.KeyboardModifier.NoModifier)

    assert key_filter.eventFilter(key_filter, plain_c) is False
    assert calls == []
