"""Data model classes and constants for Print Board.

On-canvas geometry is in preview pixels (PPCM per centimeter). Crop aspect
math is done in print pixels at 300 DPI.
"""

from dataclasses import dataclass, field
from typing import Any


# === Constants ===
PPCM = 12              # canvas pixels per centimeter (9x13 cm -> 108x156 px)
DPI = 300              # print resolution used for crop aspect ratios
CM_PER_INCH = 2.54
MAX_PREVIEW_SIZE = 200  # longest side of a free-size layer, in canvas pixels
ZOOM_STEP = 1.12       # zoom factor per wheel notch

# New layers from one import batch are laid out on a grid
IMPORT_ORIGIN = 50
IMPORT_COLUMNS = 3
IMPORT_SPACING = 20

IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.heic *.heif *.bmp *.gif *.tif *.tiff *.webp)"

WIDTH = "width"
HEIGHT = "height"
CLASSIC = "classic"
ORIGINAL = "original"


# === Print catalog ===

@dataclass(frozen=True)
class PrintSize:
    """A standard photo print size. Inch values are for reference only."""
    id: str
    name: str
    width_cm: float
    height_cm: float
    width_inches: float
    height_inches: float


PRINT_SIZES = [
    PrintSize("9x13", "9 × 13", 9, 13, 3.54, 5.12),
    PrintSize("10x15", "10 × 15", 10, 15, 3.94, 5.91),
    PrintSize("11x16", "11 × 16", 11, 16, 4.33, 6.30),
    PrintSize("13x18", "13 × 18", 13, 18, 5.12, 7.09),
]

DEFAULT_PRINT_SIZE = PRINT_SIZES[0]


def lookup_print_size(size_id: str) -> PrintSize | None:
    for size in PRINT_SIZES:
        if size.id == size_id:
            return size
    return None


def is_square(size: PrintSize) -> bool:
    """Orientation does not apply to square sizes."""
    return size.width_cm == size.height_cm


def print_dimensions(size: PrintSize, is_landscape: bool) -> tuple[float, float]:
    """Return (width_cm, height_cm) of the print in the given orientation."""
    if is_landscape:
        return size.height_cm, size.width_cm
    return size.width_cm, size.height_cm


# === Scale conversion ===

def cm_to_px(cm: float) -> float:
    return cm * PPCM


def px_to_cm(px: float) -> float:
    return px / PPCM


def cm_to_print_px(cm: float) -> float:
    """Centimeters to print pixels at DPI."""
    return cm / CM_PER_INCH * DPI


def canvas_dimensions(width_cm: float, height_cm: float, is_landscape: bool) -> tuple[float, float]:
    """Return the (width, height) canvas footprint of a print in pixels."""
    if is_landscape:
        return cm_to_px(height_cm), cm_to_px(width_cm)
    return cm_to_px(width_cm), cm_to_px(height_cm)


# === Sizing policy ===

@dataclass(frozen=True)
class Unconstrained:
    """Free size: natural aspect, capped preview size, no crop."""


@dataclass(frozen=True)
class Classic:
    """Fixed print size; the image is cropped to the print aspect ratio."""
    size: PrintSize
    is_landscape: bool = False


@dataclass(frozen=True)
class Original:
    """One side pinned to the print size, the other follows the image aspect."""
    size: PrintSize
    is_landscape: bool = False
    fixed_side: str = WIDTH


SizingPolicy = Unconstrained | Classic | Original


# === Data Model ===

@dataclass(frozen=True)
class Crop:
    """Crop rectangle normalized to 0..1 of the original image."""
    x: float = 0.0
    y: float = 0.0
    width: float = 1.0
    height: float = 1.0

    def pixel_rect(self, image_w: int, image_h: int) -> tuple[float, float, float, float]:
        """(x, y, w, h) in image pixel coords."""
        return (self.x * image_w, self.y * image_h,
                self.width * image_w, self.height * image_h)

    @property
    def is_full(self) -> bool:
        return self == FULL_CROP


FULL_CROP = Crop()


@dataclass(frozen=True)
class LayerRequest:
    """Layer-creation data produced by the photo import pipeline."""
    name: str
    image: Any = field(compare=False)  # decoded pixel data (PIL image)
    original_width: int
    original_height: int
    thumbnail: Any = field(default=None, compare=False)
    resource: Any = field(default=None, compare=False)  # released with the layer
    batch_index: int = 0    # position within its import batch


@dataclass(frozen=True)
class Layer:
    """One photograph placed on the canvas."""
    id: str
    name: str
    image: Any = field(compare=False)
    original_width: int
    original_height: int
    thumbnail: Any = field(default=None, compare=False)
    resource: Any = field(default=None, compare=False)
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0   # degrees, around the layer origin
    policy: SizingPolicy = field(default_factory=Unconstrained)
    crop: Crop = FULL_CROP
    display_width: float = 0.0
    display_height: float = 0.0
    z_index: int = 0
    visible: bool = True
    locked: bool = False

    @property
    def print_size(self) -> PrintSize | None:
        if isinstance(self.policy, Unconstrained):
            return None
        return self.policy.size

    @property
    def is_landscape(self) -> bool:
        if isinstance(self.policy, Unconstrained):
            return False
        return self.policy.is_landscape

    @property
    def print_mode(self) -> str | None:
        if isinstance(self.policy, Classic):
            return CLASSIC
        if isinstance(self.policy, Original):
            return ORIGINAL
        return None

    @property
    def fixed_side(self) -> str | None:
        if isinstance(self.policy, Original):
            return self.policy.fixed_side
        return None

    @property
    def image_aspect(self) -> float:
        return self.original_width / self.original_height


@dataclass(frozen=True)
class Viewport:
    """Canvas zoom and pan. Screen = world * zoom + pan."""
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0


@dataclass(frozen=True)
class EditorState:
    """Immutable snapshot of the editor. Stacking order lives in z_index."""
    layers: tuple[Layer, ...] = ()
    selected_layer_id: str | None = None
    viewport: Viewport = Viewport()

    def ordered_layers(self) -> list[Layer]:
        """Layers bottom to top."""
        return sorted(self.layers, key=lambda layer: layer.z_index)

    def get_layer(self, layer_id: str | None) -> Layer | None:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    @property
    def selected_layer(self) -> Layer | None:
        return self.get_layer(self.selected_layer_id)

    @property
    def active_layer(self) -> Layer | None:
        """The selected layer if it can be transformed, else None."""
        layer = self.selected_layer
        if layer is None or not layer.visible or layer.locked:
            return None
        return layer


@dataclass
class UploadSettings:
    """Photo import settings."""
    max_concurrent: int = 3      # files decoded at once
    max_dimension: int = 2000    # longest side after downsampling, in pixels
    thumbnail_size: int = 64     # layer list thumbnail, in pixels
