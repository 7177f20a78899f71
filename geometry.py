"""Geometry engine: crop rectangles and canvas footprints for print sizes.

Every function here is pure. Image dimensions must be positive; callers
guarantee that before a layer exists.

Two scales are involved:
  - display sizes use the on-canvas PPCM scale (``canvas_dimensions``)
  - classic crops are computed against the print size in 300 DPI pixels,
    which has the same aspect ratio but keeps the ratio exact
"""

from dataclasses import dataclass

from models import (
    Classic, Crop, FULL_CROP, Original, PrintSize, SizingPolicy, Unconstrained,
    CLASSIC, HEIGHT, MAX_PREVIEW_SIZE, ORIGINAL, WIDTH,
    canvas_dimensions, cm_to_print_px, is_square, print_dimensions,
)


@dataclass(frozen=True)
class Geometry:
    """Derived layer fields for one sizing policy."""
    crop: Crop
    display_width: float
    display_height: float


def compute_centered_crop(image_w: float, image_h: float,
                          target_w: float, target_h: float) -> Crop:
    """Return the largest centered crop of the image with the target aspect ratio.

    A relatively wider image keeps its full height and is narrowed; otherwise
    (ties included) it keeps its full width and is shortened.
    """
    image_aspect = image_w / image_h
    target_aspect = target_w / target_h

    if image_aspect > target_aspect:
        crop_h = image_h
        crop_w = image_h * target_aspect
    else:
        crop_w = image_w
        crop_h = image_w / target_aspect

    x = (image_w - crop_w) / 2
    y = (image_h - crop_h) / 2
    return clamp_crop(Crop(x / image_w, y / image_h, crop_w / image_w, crop_h / image_h))


def clamp_crop(crop: Crop) -> Crop:
    """Clamp a normalized crop into the unit square, size first, then position."""
    w = min(max(crop.width, 0.0), 1.0)
    h = min(max(crop.height, 0.0), 1.0)
    x = min(max(crop.x, 0.0), 1.0 - w)
    y = min(max(crop.y, 0.0), 1.0 - h)
    return Crop(x, y, w, h)


def apply_classic(image_w: float, image_h: float,
                  size: PrintSize, is_landscape: bool) -> Geometry:
    """Fixed print footprint with the image cropped to the print aspect."""
    display_w, display_h = canvas_dimensions(size.width_cm, size.height_cm, is_landscape)
    width_cm, height_cm = print_dimensions(size, is_landscape)
    crop = compute_centered_crop(image_w, image_h,
                                 cm_to_print_px(width_cm), cm_to_print_px(height_cm))
    return Geometry(crop, display_w, display_h)


def apply_original(image_w: float, image_h: float, size: PrintSize,
                   is_landscape: bool, fixed_side: str) -> Geometry:
    """Pin one side to the print size and derive the other from the image aspect."""
    image_aspect = image_w / image_h
    canvas_w, canvas_h = canvas_dimensions(size.width_cm, size.height_cm, is_landscape)
    if fixed_side == WIDTH:
        return Geometry(FULL_CROP, canvas_w, canvas_w / image_aspect)
    return Geometry(FULL_CROP, canvas_h * image_aspect, canvas_h)


def apply_unconstrained(image_w: float, image_h: float,
                        max_size: float = MAX_PREVIEW_SIZE) -> Geometry:
    """Natural aspect, scaled down (never up) to fit within max_size."""
    scale = min(max_size / image_w, max_size / image_h, 1.0)
    return Geometry(FULL_CROP, image_w * scale, image_h * scale)


def apply_policy(image_w: float, image_h: float, policy: SizingPolicy) -> Geometry:
    if isinstance(policy, Classic):
        return apply_classic(image_w, image_h, policy.size, policy.is_landscape)
    if isinstance(policy, Original):
        return apply_original(image_w, image_h, policy.size,
                              policy.is_landscape, policy.fixed_side)
    return apply_unconstrained(image_w, image_h)


# === Policy transitions ===

def default_policy(image_w: float, image_h: float, size: PrintSize) -> Classic:
    """Classic at *size*, landscape when the image is wider than tall."""
    return Classic(size, is_landscape=image_w > image_h)


def with_print_size(policy: SizingPolicy, size: PrintSize | None,
                    image_w: float, image_h: float,
                    is_landscape: bool | None = None) -> SizingPolicy:
    """Policy after a print-size change. Mode and fixed side are kept.

    An explicit *is_landscape* that differs from the kept orientation is applied
    like an orientation toggle.
    """
    if size is None:
        return Unconstrained()
    if isinstance(policy, Unconstrained):
        new_policy = default_policy(image_w, image_h, size)
    elif isinstance(policy, Original):
        new_policy = Original(size, policy.is_landscape, policy.fixed_side)
    else:
        new_policy = Classic(size, policy.is_landscape)
    if is_landscape is not None and is_landscape != new_policy.is_landscape:
        return _with_landscape(new_policy, is_landscape)
    return new_policy


def with_print_mode(policy: SizingPolicy, mode: str,
                    fixed_side: str = WIDTH) -> SizingPolicy:
    """Policy after a mode switch. Unconstrained policies have no mode."""
    if isinstance(policy, Unconstrained):
        return policy
    if mode == CLASSIC:
        return Classic(policy.size, policy.is_landscape)
    if mode == ORIGINAL:
        return Original(policy.size, policy.is_landscape, fixed_side)
    raise ValueError(f"Unknown print mode: {mode!r}")


def toggled_orientation(policy: SizingPolicy) -> SizingPolicy:
    """Policy with orientation flipped; unchanged for free and square sizes.

    In original mode the fixed side flips too, so the same physical print
    edge stays pinned.
    """
    if isinstance(policy, Unconstrained) or is_square(policy.size):
        return policy
    if isinstance(policy, Original):
        return Original(policy.size, not policy.is_landscape, flip_side(policy.fixed_side))
    return Classic(policy.size, not policy.is_landscape)


def flip_side(side: str) -> str:
    return HEIGHT if side == WIDTH else WIDTH


def _with_landscape(policy: Classic | Original, is_landscape: bool) -> Classic | Original:
    """Set orientation the way a toggle would, flipping the fixed side with it."""
    if is_landscape == policy.is_landscape:
        return policy
    return toggled_orientation(policy)
