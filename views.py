"""View layer: Qt widgets for display and interaction.

Contains CanvasWidget (infinite canvas of placed photos), LayerPanel and
CropEditorDialog.
Widgets never change the editor state themselves; they emit signals and the
controller answers with a new snapshot via ``set_state``.
"""

import io
import math

from PIL import Image
from PySide6.QtCore import Qt, QRectF, QPointF, QEvent, QSize, Signal
from PySide6.QtGui import QIcon, QImage, QPixmap, QPainter, QPen, QColor, QTransform
from PySide6.QtWidgets import (
    QWidget, QDialog, QDialogButtonBox, QVBoxLayout, QHBoxLayout, QPushButton,
    QAbstractItemView, QListWidget, QListWidgetItem,
)

from layer_stack import DOWN, UP
from models import Crop, EditorState, Layer, Viewport, PPCM, print_dimensions
from viewport import pan_by, screen_to_world, zoom_at, zoom_by


_GRID_MAJOR_EVERY = 5     # minor lines per major line (5 cm)
_GRID_MAX_LINES = 400     # per axis, coarser spacing beyond this
_SELECTION_COLOR = QColor(59, 130, 246)
_LOCKED_COLOR = QColor(140, 140, 140)


def pil_to_qimage(img: Image.Image) -> QImage:
    """Convert a Pillow image to a QImage through PNG bytes."""
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    qimg = QImage()
    qimg.loadFromData(buf.getvalue())
    return qimg


def _to_qimage(image) -> QImage | None:
    if isinstance(image, QImage):
        return image
    if isinstance(image, Image.Image):
        return pil_to_qimage(image)
    return None


def describe_print(layer: Layer) -> str:
    """Short label like '13 × 9 cm' for the layer's oriented print size."""
    size = layer.print_size
    if size is None:
        return "Free size"
    w, h = print_dimensions(size, layer.is_landscape)
    return f"{w:g} × {h:g} cm"


# === CanvasWidget: infinite canvas ===

class CanvasWidget(QWidget):
    """Draws layers in z order over a centimeter grid, with zoom and pan."""

    layer_clicked = Signal(object)           # layer id or None
    layer_moved = Signal(str, float, float)  # id, x, y
    layer_rotated = Signal(str, float)       # id, degrees
    viewport_changed = Signal(object)        # Viewport
    files_dropped = Signal(list)             # local file paths
    crop_edit_requested = Signal(str)        # layer id

    def __init__(self, state: EditorState, parent=None):
        super().__init__(parent)
        self.state = state
        self._image_cache: dict[str, QImage] = {}
        self._drag_mode: str | None = None   # "move", "rotate" or "pan"
        self._drag_layer_id: str | None = None
        self._drag_start = QPointF()
        self._drag_start_layer = (0.0, 0.0, 0.0)
        self._drag_start_angle = 0.0
        self._drag_start_viewport = Viewport()
        self.setMinimumSize(400, 400)
        self.setAcceptDrops(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)

    def set_state(self, state: EditorState):
        """Show a new snapshot, dropping cached images of removed layers."""
        self.state = state
        live = {layer.id for layer in state.layers}
        for layer_id in list(self._image_cache):
            if layer_id not in live:
                del self._image_cache[layer_id]
        self.update()

    def _get_image(self, layer: Layer) -> QImage | None:
        if layer.id not in self._image_cache:
            qimg = _to_qimage(layer.image)
            if qimg is None or qimg.isNull():
                return None
            self._image_cache[layer.id] = qimg
        return self._image_cache[layer.id]

    # --- Gestures ---

    def event(self, event):
        """Handle native gesture events (macOS trackpad pinch-to-zoom)."""
        if event.type() == QEvent.Type.NativeGesture:
            try:
                if event.gestureType() == Qt.NativeGestureType.ZoomNativeGesture:
                    pos = event.position()
                    self.viewport_changed.emit(
                        zoom_by(self.state.viewport, 1.0 + event.value(), pos.x(), pos.y()))
                    return True
            except AttributeError:
                pass  # Platform doesn't support NativeGestureType
        return super().event(event)

    def zoom_view(self, factor: float):
        """Zoom about the widget center."""
        self.viewport_changed.emit(
            zoom_by(self.state.viewport, factor, self.width() / 2, self.height() / 2))

    # --- Painting ---

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(10, 10, 10))

        vp = self.state.viewport
        painter.translate(vp.pan_x, vp.pan_y)
        painter.scale(vp.zoom, vp.zoom)

        self._paint_grid(painter, vp)
        for layer in self.state.ordered_layers():
            if layer.visible:
                self._paint_layer(painter, layer)

        painter.end()

    def _grid_step(self, zoom: float, span: float) -> float:
        # 1 cm when zoomed in, 5 cm at medium zoom, 10 cm when zoomed out
        if zoom < 0.3:
            step = PPCM * _GRID_MAJOR_EVERY * 2
        elif zoom < 0.6:
            step = PPCM * _GRID_MAJOR_EVERY
        else:
            step = PPCM
        while span / step > _GRID_MAX_LINES:
            step *= _GRID_MAJOR_EVERY
        return step

    def _paint_grid(self, painter, vp: Viewport):
        left, top = screen_to_world(vp, 0, 0)
        right, bottom = screen_to_world(vp, self.width(), self.height())
        step = self._grid_step(vp.zoom, max(right - left, bottom - top))

        minor = QPen(QColor(26, 26, 26), 1)
        major = QPen(QColor(37, 37, 37), 1)
        axis = QPen(QColor(51, 51, 51), 1)
        for pen in (minor, major, axis):
            pen.setCosmetic(True)

        def pen_for(i):
            if i == 0:
                return axis
            return major if i % _GRID_MAJOR_EVERY == 0 else minor

        for i in range(math.floor(left / step), math.ceil(right / step) + 1):
            painter.setPen(pen_for(i))
            painter.drawLine(QPointF(i * step, top), QPointF(i * step, bottom))
        for i in range(math.floor(top / step), math.ceil(bottom / step) + 1):
            painter.setPen(pen_for(i))
            painter.drawLine(QPointF(left, i * step), QPointF(right, i * step))

    def _paint_layer(self, painter, layer: Layer):
        painter.save()
        painter.translate(layer.x, layer.y)
        painter.rotate(layer.rotation)
        dest = QRectF(0, 0, layer.display_width, layer.display_height)

        qimg = self._get_image(layer)
        if qimg is not None:
            sx, sy, sw, sh = layer.crop.pixel_rect(qimg.width(), qimg.height())
            painter.drawImage(dest, qimg, QRectF(sx, sy, sw, sh))
        else:
            painter.fillRect(dest, QColor(60, 60, 60))

        if layer.id == self.state.selected_layer_id:
            self._paint_selection(painter, layer, dest)
        painter.restore()

    def _paint_selection(self, painter, layer: Layer, dest: QRectF):
        """Dashed print frame and size label around the selected layer."""
        color = _LOCKED_COLOR if layer.locked else _SELECTION_COLOR
        pen = QPen(color, 2, Qt.PenStyle.DashLine)
        pen.setCosmetic(True)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(dest.adjusted(-2, -2, 2, 2))
        painter.setPen(color)
        painter.drawText(QPointF(0, -6), describe_print(layer))

    # --- Hit testing ---

    def layer_at(self, pos) -> Layer | None:
        """Return the topmost visible layer under a widget position, or None."""
        wx, wy = screen_to_world(self.state.viewport, pos.x(), pos.y())
        for layer in reversed(self.state.ordered_layers()):
            if not layer.visible:
                continue
            t = QTransform()
            t.translate(layer.x, layer.y)
            t.rotate(layer.rotation)
            inv, ok = t.inverted()
            if not ok:
                continue
            local = inv.map(QPointF(wx, wy))
            if (0 <= local.x() <= layer.display_width
                    and 0 <= local.y() <= layer.display_height):
                return layer
        return None

    # --- Mouse interaction ---

    def wheelEvent(self, event):
        """Scroll to zoom toward the cursor."""
        delta = event.angleDelta().y()
        if delta == 0:
            event.ignore()
            return
        pos = event.position()
        self.viewport_changed.emit(zoom_at(self.state.viewport, delta, pos.x(), pos.y()))
        event.accept()

    def mousePressEvent(self, event):
        pos = event.position()
        if event.button() == Qt.MouseButton.MiddleButton:
            self._start_drag("pan", pos)
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
            event.accept()
            return
        if event.button() == Qt.MouseButton.LeftButton:
            hit = self.layer_at(pos)
            self.layer_clicked.emit(hit.id if hit else None)
            if hit is None:
                # Clicked empty space -- allow drag-to-pan
                self._start_drag("pan", pos)
            elif not hit.locked:
                rotate = bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)
                self._start_drag("rotate" if rotate else "move", pos, hit)
        super().mousePressEvent(event)

    def _start_drag(self, mode: str, pos: QPointF, layer: Layer | None = None):
        self._drag_mode = mode
        self._drag_start = QPointF(pos)
        self._drag_start_viewport = self.state.viewport
        if layer is not None:
            self._drag_layer_id = layer.id
            self._drag_start_layer = (layer.x, layer.y, layer.rotation)
            self._drag_start_angle = self._angle_from_origin(pos, layer.x, layer.y)

    def _angle_from_origin(self, pos: QPointF, ox: float, oy: float) -> float:
        wx, wy = screen_to_world(self.state.viewport, pos.x(), pos.y())
        return math.degrees(math.atan2(wy - oy, wx - ox))

    def mouseMoveEvent(self, event):
        if self._drag_mode is None:
            super().mouseMoveEvent(event)
            return
        pos = event.position()
        delta = pos - self._drag_start
        if self._drag_mode == "pan":
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
            self.viewport_changed.emit(
                pan_by(self._drag_start_viewport, delta.x(), delta.y()))
        elif self._drag_mode == "move":
            x0, y0, _ = self._drag_start_layer
            zoom = self.state.viewport.zoom
            self.layer_moved.emit(self._drag_layer_id,
                                  x0 + delta.x() / zoom, y0 + delta.y() / zoom)
        else:
            x0, y0, r0 = self._drag_start_layer
            angle = self._angle_from_origin(pos, x0, y0)
            self.layer_rotated.emit(self._drag_layer_id,
                                    (r0 + angle - self._drag_start_angle) % 360)
        event.accept()

    def mouseReleaseEvent(self, event):
        if self._drag_mode is not None and event.button() in (
            Qt.MouseButton.MiddleButton, Qt.MouseButton.LeftButton
        ):
            self._drag_mode = None
            self._drag_layer_id = None
            self.unsetCursor()
            event.accept()
        else:
            super().mouseReleaseEvent(event)

    def mouseDoubleClickEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            hit = self.layer_at(event.position())
            if hit is not None:
                self.crop_edit_requested.emit(hit.id)
                event.accept()
                return
        super().mouseDoubleClickEvent(event)

    # --- Drag and drop ---

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()

    def dragMoveEvent(self, event):
        event.acceptProposedAction()

    def dropEvent(self, event):
        paths = [url.toLocalFile() for url in event.mimeData().urls() if url.isLocalFile()]
        if paths:
            self.files_dropped.emit(paths)
        event.acceptProposedAction()


# === LayerPanel: list of layers, top of the stack first ===

_THUMB_SIZE = 40


class LayerPanel(QWidget):
    """Layer list with thumbnails, visibility checkboxes and stacking buttons.

    Hidden layers can't be clicked on the canvas, so this is where they are
    found and shown again.
    """

    layer_clicked = Signal(object)             # layer id or None
    visibility_changed = Signal(str, bool)     # id, visible
    reorder_requested = Signal(str, str)       # id, "up" or "down"
    delete_requested = Signal(str)             # id

    def __init__(self, state: EditorState, parent=None):
        super().__init__(parent)
        self.state = state
        self._icon_cache: dict[str, QIcon] = {}

        self.list = QListWidget()
        self.list.setIconSize(QSize(_THUMB_SIZE, _THUMB_SIZE))
        self.list.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.list.itemSelectionChanged.connect(self._on_selection_changed)
        self.list.itemChanged.connect(self._on_item_changed)

        self.up_button = QPushButton("↑ Up")
        self.up_button.clicked.connect(lambda: self._request_reorder(UP))
        self.down_button = QPushButton("↓ Down")
        self.down_button.clicked.connect(lambda: self._request_reorder(DOWN))
        self.delete_button = QPushButton("Delete")
        self.delete_button.clicked.connect(self._request_delete)

        btn_row = QHBoxLayout()
        btn_row.addWidget(self.up_button)
        btn_row.addWidget(self.down_button)
        btn_row.addStretch()
        btn_row.addWidget(self.delete_button)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)
        layout.addWidget(self.list, 1)
        layout.addLayout(btn_row)
        self.setMinimumWidth(220)
        self.set_state(state)

    def set_state(self, state: EditorState):
        """Rebuild or refresh the rows for a new snapshot."""
        self.state = state
        layers = list(reversed(state.ordered_layers()))
        live = {layer.id for layer in layers}
        for layer_id in list(self._icon_cache):
            if layer_id not in live:
                del self._icon_cache[layer_id]

        self.list.blockSignals(True)
        try:
            if [self.list.item(i).data(Qt.ItemDataRole.UserRole)
                    for i in range(self.list.count())] != [l.id for l in layers]:
                self.list.clear()
                for layer in layers:
                    item = QListWidgetItem()
                    item.setData(Qt.ItemDataRole.UserRole, layer.id)
                    item.setFlags(item.flags() | Qt.ItemFlag.ItemIsUserCheckable)
                    self.list.addItem(item)
            for row, layer in enumerate(layers):
                self._refresh_item(self.list.item(row), layer)
        finally:
            self.list.blockSignals(False)

        selected = state.selected_layer is not None
        self.up_button.setEnabled(selected)
        self.down_button.setEnabled(selected)
        self.delete_button.setEnabled(selected)

    def _refresh_item(self, item: QListWidgetItem, layer: Layer):
        if layer.print_size is not None:
            detail = f"{layer.print_size.name} cm · {'L' if layer.is_landscape else 'P'}"
        else:
            detail = f"{round(layer.display_width)}×{round(layer.display_height)}"
        item.setText(f"{layer.name}\n{detail}")
        item.setCheckState(Qt.CheckState.Checked if layer.visible else Qt.CheckState.Unchecked)
        item.setToolTip("Visible" if layer.visible else "Hidden")
        icon = self._icon(layer)
        if icon is not None:
            item.setIcon(icon)
        item.setSelected(layer.id == self.state.selected_layer_id)

    def _icon(self, layer: Layer) -> QIcon | None:
        if layer.id not in self._icon_cache:
            qimg = _to_qimage(layer.thumbnail)
            if qimg is None or qimg.isNull():
                return None
            self._icon_cache[layer.id] = QIcon(QPixmap.fromImage(qimg))
        return self._icon_cache[layer.id]

    def row_of(self, layer_id: str) -> int:
        """Row index of a layer in the list, or -1."""
        for i in range(self.list.count()):
            if self.list.item(i).data(Qt.ItemDataRole.UserRole) == layer_id:
                return i
        return -1

    # --- User input ---

    def _on_selection_changed(self):
        items = self.list.selectedItems()
        self.layer_clicked.emit(items[0].data(Qt.ItemDataRole.UserRole) if items else None)

    def _on_item_changed(self, item: QListWidgetItem):
        layer_id = item.data(Qt.ItemDataRole.UserRole)
        layer = self.state.get_layer(layer_id)
        visible = item.checkState() == Qt.CheckState.Checked
        if layer is not None and layer.visible != visible:
            self.visibility_changed.emit(layer_id, visible)

    def _request_reorder(self, direction: str):
        if self.state.selected_layer_id is not None:
            self.reorder_requested.emit(self.state.selected_layer_id, direction)

    def _request_delete(self):
        if self.state.selected_layer_id is not None:
            self.delete_requested.emit(self.state.selected_layer_id)


# === Crop Editor Dialog ===

_HANDLE_SIZE = 8  # pixels, half-width of resize handles
_MIN_CROP = 10    # minimum crop dimension in image pixels


class _CropCanvas(QWidget):
    """Interactive canvas for moving and resizing a crop with a fixed aspect ratio."""

    _HANDLE_NAMES = ["nw", "ne", "sw", "se"]
    _HANDLE_CURSORS = {
        "nw": Qt.CursorShape.SizeFDiagCursor, "se": Qt.CursorShape.SizeFDiagCursor,
        "ne": Qt.CursorShape.SizeBDiagCursor, "sw": Qt.CursorShape.SizeBDiagCursor,
        "move": Qt.CursorShape.SizeAllCursor,
    }

    def __init__(self, pixmap: QPixmap, crop_rect: QRectF, parent=None):
        super().__init__(parent)
        self._pixmap = pixmap
        self._crop = QRectF(crop_rect)
        if crop_rect.width() > 0 and crop_rect.height() > 0:
            self._aspect = crop_rect.width() / crop_rect.height()
        else:
            self._aspect = 1.0
        self._drag_mode: str | None = None
        self._drag_start = QPointF()
        self._drag_start_crop = QRectF()
        self.setMinimumSize(300, 300)
        self.setMouseTracking(True)

    def crop_rect(self) -> QRectF:
        return QRectF(self._crop)

    def set_crop(self, r: QRectF):
        self._crop = QRectF(r)
        self.update()

    def _transform(self) -> tuple[float, float, float]:
        """Return (scale, offset_x, offset_y) to fit image into widget."""
        padding = 10
        w = max(1, self.width() - 2 * padding)
        h = max(1, self.height() - 2 * padding)
        s = min(w / max(1, self._pixmap.width()), h / max(1, self._pixmap.height()))
        ox = padding + (w - self._pixmap.width() * s) / 2
        oy = padding + (h - self._pixmap.height() * s) / 2
        return s, ox, oy

    def _crop_on_screen(self) -> QRectF:
        s, ox, oy = self._transform()
        return QRectF(ox + self._crop.x() * s, oy + self._crop.y() * s,
                      self._crop.width() * s, self._crop.height() * s)

    # --- Painting ---

    def paintEvent(self, event):
        p = QPainter(self)
        p.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        p.fillRect(self.rect(), QColor(60, 60, 60))

        s, ox, oy = self._transform()
        img_rect = QRectF(ox, oy, self._pixmap.width() * s, self._pixmap.height() * s)
        p.drawPixmap(img_rect.toRect(), self._pixmap)

        # Dim everything outside the crop
        crop = self._crop_on_screen()
        dim = QColor(0, 0, 0, 120)
        p.fillRect(QRectF(img_rect.x(), img_rect.y(),
                          img_rect.width(), crop.y() - img_rect.y()), dim)
        p.fillRect(QRectF(img_rect.x(), crop.bottom(),
                          img_rect.width(), img_rect.bottom() - crop.bottom()), dim)
        p.fillRect(QRectF(img_rect.x(), crop.y(),
                          crop.x() - img_rect.x(), crop.height()), dim)
        p.fillRect(QRectF(crop.right(), crop.y(),
                          img_rect.right() - crop.right(), crop.height()), dim)

        p.setPen(QPen(QColor(255, 255, 255), 2, Qt.PenStyle.DashLine))
        p.setBrush(Qt.BrushStyle.NoBrush)
        p.drawRect(crop)

        p.setPen(Qt.PenStyle.NoPen)
        p.setBrush(QColor(255, 255, 255))
        for hx, hy in self._handle_positions(crop):
            p.drawRect(QRectF(hx - _HANDLE_SIZE / 2, hy - _HANDLE_SIZE / 2,
                              _HANDLE_SIZE, _HANDLE_SIZE))
        p.end()

    @staticmethod
    def _handle_positions(r: QRectF) -> list[tuple[float, float]]:
        return [(r.left(), r.top()), (r.right(), r.top()),
                (r.left(), r.bottom()), (r.right(), r.bottom())]

    def _hit_handle(self, pos: QPointF) -> str | None:
        """Return handle name or 'move' if inside the crop, else None."""
        crop = self._crop_on_screen()
        for name, (hx, hy) in zip(self._HANDLE_NAMES, self._handle_positions(crop)):
            if abs(pos.x() - hx) <= _HANDLE_SIZE and abs(pos.y() - hy) <= _HANDLE_SIZE:
                return name
        if crop.contains(pos):
            return "move"
        return None

    # --- Mouse interaction ---

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            mode = self._hit_handle(event.position())
            if mode is not None:
                self._drag_mode = mode
                self._drag_start = event.position()
                self._drag_start_crop = QRectF(self._crop)
                event.accept()
                return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self._drag_mode is None:
            mode = self._hit_handle(event.position())
            if mode in self._HANDLE_CURSORS:
                self.setCursor(self._HANDLE_CURSORS[mode])
            else:
                self.unsetCursor()
            return

        s, _, _ = self._transform()
        if s <= 0:
            return
        dx = (event.position().x() - self._drag_start.x()) / s
        dy = (event.position().y() - self._drag_start.y()) / s
        if self._drag_mode == "move":
            self._crop = self._moved(self._drag_start_crop, dx, dy)
        else:
            self._crop = self._resized(self._drag_start_crop, self._drag_mode, dx)
        self.update()
        event.accept()

    def _moved(self, r: QRectF, dx: float, dy: float) -> QRectF:
        iw, ih = self._pixmap.width(), self._pixmap.height()
        nx = max(0.0, min(r.x() + dx, iw - r.width()))
        ny = max(0.0, min(r.y() + dy, ih - r.height()))
        return QRectF(nx, ny, r.width(), r.height())

    def _resized(self, r: QRectF, handle: str, dx: float) -> QRectF:
        """Resize from a corner keeping the opposite corner and the aspect ratio."""
        iw, ih = self._pixmap.width(), self._pixmap.height()
        east = "e" in handle
        south = "s" in handle
        anchor_x = r.left() if east else r.right()
        anchor_y = r.top() if south else r.bottom()
        room_w = iw - anchor_x if east else anchor_x
        room_h = ih - anchor_y if south else anchor_y
        max_w = min(room_w, room_h * self._aspect)
        min_w = min(max(_MIN_CROP, _MIN_CROP * self._aspect), max_w)

        w = r.width() + dx if east else r.width() - dx
        w = max(min_w, min(w, max_w))
        h = w / self._aspect
        x = anchor_x if east else anchor_x - w
        y = anchor_y if south else anchor_y - h
        return QRectF(x, y, w, h)

    def mouseReleaseEvent(self, event):
        if self._drag_mode is not None:
            self._drag_mode = None
            event.accept()
        else:
            super().mouseReleaseEvent(event)


class CropEditorDialog(QDialog):
    """Modal dialog for repositioning a classic layer's crop."""

    def __init__(self, layer: Layer, parent=None):
        super().__init__(parent)
        self.setWindowTitle(f"Edit Crop \u2014 {layer.name}")
        self._img_w = layer.original_width
        self._img_h = layer.original_height

        qimg = _to_qimage(layer.image)
        pix = QPixmap.fromImage(qimg) if qimg is not None else QPixmap(self._img_w, self._img_h)

        layout = QVBoxLayout(self)
        self._canvas = _CropCanvas(pix, QRectF(*layer.crop.pixel_rect(self._img_w, self._img_h)))
        layout.addWidget(self._canvas, 1)

        btn_row = QHBoxLayout()
        reset_btn = QPushButton("Reset (Centered)")
        reset_btn.clicked.connect(self._reset_crop)
        btn_row.addWidget(reset_btn)
        btn_row.addStretch()
        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        btn_row.addWidget(buttons)
        layout.addLayout(btn_row)

        # Size dialog to show image comfortably
        max_w, max_h = 700, 700
        aspect = self._img_w / self._img_h if self._img_h > 0 else 1.0
        if aspect > 1:
            dw = min(max_w, max(400, self._img_w))
            dh = int(dw / aspect) + 80
        else:
            dh = min(max_h, max(400, self._img_h))
            dw = int(dh * aspect) + 40
        self.resize(max(400, dw), max(400, dh))

    def _reset_crop(self):
        r = self._canvas.crop_rect()
        x = (self._img_w - r.width()) / 2
        y = (self._img_h - r.height()) / 2
        self._canvas.set_crop(QRectF(x, y, r.width(), r.height()))

    def result_crop(self) -> Crop:
        """Return the crop normalized to the image size."""
        r = self._canvas.crop_rect()
        return Crop(r.x() / self._img_w, r.y() / self._img_h,
                    r.width() / self._img_w, r.height() / self._img_h)
