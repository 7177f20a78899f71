"""Controller layer: MainWindow and PrintBoardApp.

Owns the current EditorState snapshot and routes every user intent through
LayerStack or the viewport functions, then hands the new snapshot to the view.
"""

import logging
from dataclasses import replace

from PySide6.QtCore import Qt, QEvent, Signal
from PySide6.QtGui import QAction, QActionGroup, QKeySequence
from PySide6.QtWidgets import (
    QApplication, QMainWindow, QStatusBar, QFileDialog, QMessageBox, QMenu, QDialog,
    QDockWidget,
)

from layer_stack import LayerStack, UP, DOWN, release_resource
from models import (
    Classic, EditorState, UploadSettings,
    CLASSIC, HEIGHT, IMAGE_FILTER, ORIGINAL, PRINT_SIZES, WIDTH, is_square,
)
from uploads import ImportWorker
from views import CanvasWidget, CropEditorDialog, LayerPanel, describe_print
import viewport

logger = logging.getLogger(__name__)


# === MainWindow ===

class MainWindow(QMainWindow):
    """Top-level window: menu bar, canvas, layer panel, status bar."""

    import_finished = Signal(list)  # error messages of one import batch

    def __init__(self, upload_settings: UploadSettings | None = None):
        super().__init__()
        self.state = EditorState()
        self.stack = LayerStack()
        self.upload_settings = upload_settings or UploadSettings()
        self._last_errors: list[str] = []
        self._workers: list[ImportWorker] = []
        self._pending = 0  # photos still decoding
        self._closing = False

        self.setWindowTitle("Print Board")
        self.resize(1100, 800)

        self.canvas = CanvasWidget(self.state)
        self.setCentralWidget(self.canvas)
        self.canvas.layer_clicked.connect(self._on_layer_clicked)
        self.canvas.layer_moved.connect(self._on_layer_moved)
        self.canvas.layer_rotated.connect(self._on_layer_rotated)
        self.canvas.viewport_changed.connect(self._on_viewport_changed)
        self.canvas.files_dropped.connect(self.add_photos)
        self.canvas.crop_edit_requested.connect(self._edit_crop)
        self.canvas.customContextMenuRequested.connect(self._show_context_menu)

        self.layer_panel = LayerPanel(self.state)
        self.layer_panel.layer_clicked.connect(self._on_layer_clicked)
        self.layer_panel.visibility_changed.connect(self._on_visibility_changed)
        self.layer_panel.reorder_requested.connect(
            lambda layer_id, direction: self._apply(
                self.stack.reorder(self.state, layer_id, direction)))
        self.layer_panel.delete_requested.connect(
            lambda layer_id: self._apply(self.stack.remove(self.state, layer_id)))
        dock = QDockWidget("Layers", self)
        dock.setObjectName("layers")
        dock.setWidget(self.layer_panel)
        dock.setFeatures(QDockWidget.DockWidgetFeature.DockWidgetMovable)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, dock)

        self._layer_actions: list[QAction] = []
        self._build_menus()
        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._update_actions()
        self._update_status()

    def _build_menus(self):
        mb = self.menuBar()

        about_act = QAction("&About Print Board", self)
        about_act.setMenuRole(QAction.MenuRole.AboutRole)
        about_act.triggered.connect(self._show_about)

        # --- File menu ---
        file_menu = mb.addMenu("&File")

        act = QAction("&Add Photos...", self)
        act.setShortcut(QKeySequence.StandardKey.Open)
        act.triggered.connect(self._open_photos)
        file_menu.addAction(act)

        act = QAction("&Export View as PNG...", self)
        act.setShortcut(QKeySequence("Ctrl+E"))
        act.triggered.connect(self._export)
        file_menu.addAction(act)

        file_menu.addSeparator()

        act = QAction("&Quit", self)
        act.setShortcut(QKeySequence.StandardKey.Quit)
        act.triggered.connect(self.close)
        file_menu.addAction(act)

        # --- Edit menu ---
        edit_menu = mb.addMenu("&Edit")

        act = self._layer_action("&Delete Selected", self._delete_selected)
        # On macOS, the key labeled "delete" sends Backspace, not forward-delete.
        act.setShortcuts([QKeySequence.StandardKey.Delete, QKeySequence(Qt.Key.Key_Backspace)])
        edit_menu.addAction(act)

        self._crop_action = self._layer_action("Edit &Crop...", self._edit_crop_selected)
        self._crop_action.setShortcut(QKeySequence("Ctrl+K"))
        edit_menu.addAction(self._crop_action)

        edit_menu.addSeparator()

        act = QAction("Clear &All", self)
        act.triggered.connect(self._clear_all)
        edit_menu.addAction(act)

        edit_menu.addAction(about_act)

        # --- Photo menu ---
        photo_menu = mb.addMenu("&Photo")
        self._size_menu = photo_menu.addMenu("Print &Size")
        self._size_group = QActionGroup(self)
        self._size_actions: dict[str | None, QAction] = {}
        for size in [None] + PRINT_SIZES:
            label = "Free Size" if size is None else f"{size.name} cm"
            act = QAction(label, self, checkable=True)
            act.triggered.connect(lambda checked=False, s=size: self.set_print_size(s))
            self._size_group.addAction(act)
            self._size_menu.addAction(act)
            self._size_actions[size.id if size else None] = act

        self._mode_menu = photo_menu.addMenu("Print &Mode")
        self._mode_group = QActionGroup(self)
        self._mode_actions = {}
        for key, label in [((CLASSIC, WIDTH), "Classic (Crop to Fit)"),
                           ((ORIGINAL, WIDTH), "Original (Fixed Width)"),
                           ((ORIGINAL, HEIGHT), "Original (Fixed Height)")]:
            act = QAction(label, self, checkable=True)
            act.triggered.connect(lambda checked=False, k=key: self.set_print_mode(*k))
            self._mode_group.addAction(act)
            self._mode_menu.addAction(act)
            self._mode_actions[key] = act

        self._orientation_action = self._layer_action("Toggle &Orientation", self.toggle_orientation)
        self._orientation_action.setShortcut(QKeySequence("Ctrl+R"))
        photo_menu.addAction(self._orientation_action)

        photo_menu.addSeparator()

        for label, key, slot in [
            ("Bring to &Front", Qt.Key.Key_Home, lambda: self._restack("front")),
            ("Bring &Forward", Qt.Key.Key_PageUp, lambda: self._restack(UP)),
            ("Send &Backward", Qt.Key.Key_PageDown, lambda: self._restack(DOWN)),
            ("Send to Bac&k", Qt.Key.Key_End, lambda: self._restack("back")),
        ]:
            act = self._layer_action(label, slot)
            act.setShortcut(QKeySequence(key))
            photo_menu.addAction(act)

        photo_menu.addSeparator()

        act = self._layer_action("&Show/Hide", self._toggle_visible)
        photo_menu.addAction(act)
        act = self._layer_action("&Lock/Unlock", self._toggle_locked)
        act.setShortcut(QKeySequence("Ctrl+L"))
        photo_menu.addAction(act)

        # --- View menu ---
        view_menu = mb.addMenu("&View")

        act = QAction("Zoom &In", self)
        act.setShortcut(QKeySequence.StandardKey.ZoomIn)
        act.triggered.connect(lambda: self.canvas.zoom_view(1.25))
        view_menu.addAction(act)

        act = QAction("Zoom &Out", self)
        act.setShortcut(QKeySequence.StandardKey.ZoomOut)
        act.triggered.connect(lambda: self.canvas.zoom_view(1 / 1.25))
        view_menu.addAction(act)

        act = QAction("&Actual Size", self)
        act.setShortcut(QKeySequence("Ctrl+0"))
        act.triggered.connect(lambda: self._on_viewport_changed(viewport.reset()))
        view_menu.addAction(act)

    def _layer_action(self, label: str, slot) -> QAction:
        """An action that only makes sense with a selected layer."""
        act = QAction(label, self)
        act.triggered.connect(slot)
        self._layer_actions.append(act)
        return act

    # --- State ---

    def _apply(self, state: EditorState):
        """Replace the current snapshot and refresh the view."""
        if state is self.state:
            return
        self.state = state
        self.canvas.set_state(state)
        self.layer_panel.set_state(state)
        self._update_actions()
        self._update_status()

    def _update_actions(self):
        layer = self.state.selected_layer
        for act in self._layer_actions:
            act.setEnabled(layer is not None)
        self._size_menu.setEnabled(layer is not None)
        self._mode_menu.setEnabled(layer is not None and layer.print_size is not None)
        if layer is None:
            return
        size = layer.print_size
        self._size_actions[size.id if size else None].setChecked(True)
        self._orientation_action.setEnabled(size is not None and not is_square(size))
        self._crop_action.setEnabled(isinstance(layer.policy, Classic))
        if layer.print_mode is not None:
            self._mode_actions[(layer.print_mode, layer.fixed_side or WIDTH)].setChecked(True)

    def _update_status(self):
        n = len(self.state.layers)
        zoom = round(self.state.viewport.zoom * 100)
        if n == 0:
            msg = f"No photos \u2014 Add photos or drag them onto the canvas | Zoom: {zoom}%"
        else:
            msg = f"{n} photo{'s' if n != 1 else ''} | Zoom: {zoom}%"
            layer = self.state.selected_layer
            if layer is not None:
                mode = f" {layer.print_mode}" if layer.print_mode else ""
                lock = " [locked]" if layer.locked else ""
                hidden = " [hidden]" if not layer.visible else ""
                msg += f" | Selected: {layer.name} ({describe_print(layer)}{mode}){lock}{hidden}"
        if self._pending:
            msg += f" | Importing {self._pending}..."
        if self._last_errors:
            msg += " | " + "; ".join(self._last_errors)
        self._status.showMessage(msg)

    # --- Canvas signals ---

    def _on_layer_clicked(self, layer_id):
        self._apply(self.stack.select(self.state, layer_id))

    def _on_layer_moved(self, layer_id: str, x: float, y: float):
        self._apply(self.stack.update(self.state, layer_id, x=x, y=y))

    def _on_layer_rotated(self, layer_id: str, rotation: float):
        self._apply(self.stack.update(self.state, layer_id, rotation=rotation))

    def _on_viewport_changed(self, vp):
        self._apply(replace(self.state, viewport=vp))

    def _on_visibility_changed(self, layer_id: str, visible: bool):
        self._apply(self.stack.update(self.state, layer_id, visible=visible))

    # --- Photo import ---

    def _open_photos(self):
        paths, _ = QFileDialog.getOpenFileNames(self, "Add Photos", "", IMAGE_FILTER)
        if paths:
            self.add_photos(paths)

    def add_photos(self, paths: list[str]) -> ImportWorker | None:
        """Start importing image files in the background.

        Each photo becomes a layer as soon as it is decoded. import_finished
        carries the batch's error messages once every file is done.
        """
        paths = list(paths)
        if not paths:
            return None
        worker = ImportWorker(paths, self.upload_settings, self)
        worker.photo_loaded.connect(self._on_photo_loaded)
        worker.photo_failed.connect(self._on_photo_failed)
        worker.batch_finished.connect(self._on_import_finished)
        self._workers.append(worker)
        self._pending += len(paths)
        self._last_errors = []
        logger.debug("Importing %d photo(s)", len(paths))
        worker.start()
        self._update_status()
        return worker

    def _on_photo_loaded(self, request):
        if self._closing:
            release_resource(request.resource)
            return
        self._pending = max(0, self._pending - 1)
        self._apply(self.stack.add_request(self.state, request))

    def _on_photo_failed(self, error: str):
        self._pending = max(0, self._pending - 1)
        self._last_errors.append(error)
        self._update_status()

    def _on_import_finished(self, worker: ImportWorker):
        worker.wait()
        if worker in self._workers:
            self._workers.remove(worker)
        worker.deleteLater()
        self._update_status()
        self.import_finished.emit(list(worker.errors))

    # --- Selected-layer actions ---

    def _selected_id(self) -> str | None:
        layer = self.state.selected_layer
        return layer.id if layer else None

    def set_print_size(self, size):
        layer_id = self._selected_id()
        if layer_id is not None:
            self._apply(self.stack.set_print_size(self.state, layer_id, size))

    def set_print_mode(self, mode: str, fixed_side: str = WIDTH):
        layer_id = self._selected_id()
        if layer_id is not None:
            self._apply(self.stack.set_print_mode(self.state, layer_id, mode, fixed_side))

    def toggle_orientation(self):
        layer_id = self._selected_id()
        if layer_id is not None:
            self._apply(self.stack.toggle_orientation(self.state, layer_id))

    def _restack(self, where: str):
        layer_id = self._selected_id()
        if layer_id is None:
            return
        if where == "front":
            state = self.stack.move_to_front(self.state, layer_id)
        elif where == "back":
            state = self.stack.move_to_back(self.state, layer_id)
        else:
            state = self.stack.reorder(self.state, layer_id, where)
        self._apply(state)

    def _toggle_visible(self):
        layer = self.state.selected_layer
        if layer is not None:
            self._apply(self.stack.update(self.state, layer.id, visible=not layer.visible))

    def _toggle_locked(self):
        layer = self.state.selected_layer
        if layer is not None:
            self._apply(self.stack.update(self.state, layer.id, locked=not layer.locked))

    def _delete_selected(self):
        layer_id = self._selected_id()
        if layer_id is not None:
            self._apply(self.stack.remove(self.state, layer_id))

    def _clear_all(self):
        self._apply(self.stack.clear(self.state))

    def _edit_crop_selected(self):
        layer_id = self._selected_id()
        if layer_id is not None:
            self._edit_crop(layer_id)

    def _edit_crop(self, layer_id: str):
        """Open the crop editor for a classic layer."""
        layer = self.state.get_layer(layer_id)
        if layer is None or not isinstance(layer.policy, Classic):
            return
        dlg = CropEditorDialog(layer, self)
        if dlg.exec() == QDialog.DialogCode.Accepted:
            self._apply(self.stack.set_crop(self.state, layer_id, dlg.result_crop()))

    def _show_context_menu(self, pos):
        layer = self.canvas.layer_at(pos)
        if layer is None:
            return
        self._apply(self.stack.select(self.state, layer.id))

        menu = QMenu(self)
        menu.addMenu(self._size_menu)
        menu.addMenu(self._mode_menu)
        menu.addAction(self._orientation_action)
        menu.addAction(self._crop_action)
        menu.addSeparator()
        front_act = menu.addAction("Bring to Front")
        back_act = menu.addAction("Send to Back")
        menu.addSeparator()
        hide_act = menu.addAction("Hide" if layer.visible else "Show")
        lock_act = menu.addAction("Unlock" if layer.locked else "Lock")
        menu.addSeparator()
        delete_act = menu.addAction("Delete")
        chosen = menu.exec(self.canvas.mapToGlobal(pos))
        if chosen == front_act:
            self._restack("front")
        elif chosen == back_act:
            self._restack("back")
        elif chosen == hide_act:
            self._toggle_visible()
        elif chosen == lock_act:
            self._toggle_locked()
        elif chosen == delete_act:
            self._delete_selected()

    # --- Export ---

    def _export(self):
        path, _ = QFileDialog.getSaveFileName(self, "Export View", "", "PNG Image (*.png)")
        if not path:
            return
        if not path.lower().endswith(".png"):
            path += ".png"
        self.export_png(path)

    def export_png(self, path: str) -> bool:
        """Save the current canvas view to a PNG file."""
        if self.canvas.grab().save(path, "PNG"):
            return True
        QMessageBox.critical(self, "Export Error", f"Could not write file:\n{path}")
        return False

    def _show_about(self):
        QMessageBox.about(
            self,
            "About Print Board",
            "Print Board\n\n"
            "Lay out photos at their real print size\n"
            "before ordering prints.",
        )

    def closeEvent(self, event):
        # Photos still arriving from a worker are released instead of added
        self._closing = True
        for worker in self._workers:
            worker.requestInterruption()
            worker.wait()
        self.state = self.stack.clear(self.state)
        event.accept()


# === PrintBoardApp: custom QApplication for macOS file open events ===

class PrintBoardApp(QApplication):
    """QApplication subclass that handles macOS QFileOpenEvent."""

    file_open_requested = Signal(str)

    def event(self, event):
        if event.type() == QEvent.Type.FileOpen:
            self.file_open_requested.emit(event.file())
            return True
        return super().event(event)
