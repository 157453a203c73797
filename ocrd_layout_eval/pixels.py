from enum import Enum, IntFlag

import numpy as np
from PIL import Image

from .errors import ValidationError, ResourceError
from .geometry import Rectangle

class PixelClass(Enum):
    """
    Colour palette of classified evaluation images.

    Every foreground pixel has been coloured by the upstream classifier
    according to whether it lies in a ground-truth region and/or in a
    detected (hypothesis) region. ``ANY_FOREGROUND`` is not a colour,
    but selects every pixel which is not ``BACKGROUND``.
    """
    BACKGROUND = (255, 255, 255)
    TRUE_POSITIVE = (255, 0, 0)
    FALSE_POSITIVE = (0, 0, 255)
    FALSE_NEGATIVE = (0, 255, 0)
    TRUE_NEGATIVE = (255, 165, 0)
    ANY_FOREGROUND = None

    @property
    def color(self):
        return self.value

    @property
    def cli_name(self):
        return self.name.lower().replace('_', '-')

    @classmethod
    def from_name(cls, name):
        if isinstance(name, cls):
            return name
        try:
            return cls[name.upper().replace('-', '_')]
        except KeyError:
            raise ValidationError(f"unknown pixel class '{name}'") from None

class AccountingPass(IntFlag):
    """bits marked in a tracker image, one per counting pass"""
    VERTEX = 1
    EDGE_MATCH = 2
    EDGE_COVER = 4
    VERTEX_MATCH = 8
    UNCOVERED = 16

def check_classes(foreground, match):
    """
    Validate the pixel classes used for counting the foreground of regions
    and the matching pixels of their intersections.

    Matching pixels must be part of the foreground, otherwise true positives
    could exceed the foreground of their region.
    """
    if match in (PixelClass.BACKGROUND, PixelClass.ANY_FOREGROUND):
        raise ValidationError(f"match class must be a foreground colour, not {match.cli_name}")
    if foreground is PixelClass.BACKGROUND:
        raise ValidationError("foreground class cannot be background")
    if foreground not in (PixelClass.ANY_FOREGROUND, match):
        raise ValidationError(f"foreground class {foreground.cli_name} does not contain "
                              f"match class {match.cli_name}")

def as_pixel_array(image):
    """Get the RGB pixel buffer of a PIL image or numpy array (H x W x 3, uint8)."""
    if isinstance(image, Image.Image):
        try:
            image = np.asarray(image.convert('RGB'))
        except (OSError, ValueError) as err:
            raise ResourceError(f"cannot access image pixels: {err}") from err
    elif not isinstance(image, np.ndarray):
        raise ResourceError(f"cannot access pixels of {type(image).__name__} object")
    if image.ndim != 3 or image.shape[2] != 3 or image.dtype != np.uint8:
        raise ResourceError(f"expected RGB image (H x W x 3, uint8), "
                            f"got shape {image.shape} of {image.dtype}")
    return image

def make_tracker(image):
    """Allocate a tracker image (no pixel counted yet) of the same size as ``image``."""
    try:
        return np.zeros(image.shape[:2], dtype=np.uint8)
    except MemoryError as err:
        raise ResourceError(f"cannot allocate tracker image of size {image.shape[:2]}") from err

def class_mask(pixels, pixel_class):
    """Get a boolean mask of all pixels in ``pixels`` belonging to ``pixel_class``."""
    if pixel_class is PixelClass.ANY_FOREGROUND:
        return np.any(pixels != PixelClass.BACKGROUND.color, axis=-1)
    if pixel_class is PixelClass.BACKGROUND:
        raise ValidationError("cannot count background pixels")
    return np.all(pixels == pixel_class.color, axis=-1)

def count_class_pixels(image, pixel_class):
    """Count all pixels of ``pixel_class`` on the whole image (without tracking)."""
    return int(np.count_nonzero(class_mask(image, pixel_class)))

def _window(rect, window):
    """slices of ``rect`` relative to the origin of ``window``"""
    return (slice(rect.top - window.top, rect.bottom - window.top),
            slice(rect.left - window.left, rect.right - window.left))

def count_pixels(rect, image, pixel_class, tracker, tag, exclude=()):
    """
    Count pixels of ``pixel_class`` inside ``rect`` which have not been counted before.

    ``rect`` gets clipped to the image bounds. Pixels inside any of the
    rectangles in ``exclude`` are ignored. Every matching pixel is looked up
    in the ``tracker`` image: if its ``tag`` bit is still unset, it is counted
    and marked, otherwise it is counted as a duplicate. So repeated calls with
    the same ``tag`` and tracker (i.e. for overlapping rectangles of the same
    set) never count a pixel twice, while other passes (with other tags) can
    share the tracker without interference.

    Returns a tuple of count and duplicate count. Modifies ``tracker`` in place.
    """
    height, width = tracker.shape
    clipped = rect.clip(width, height)
    if clipped is None:
        return 0, 0
    rows, cols = clipped.slices
    matching = class_mask(image[rows, cols], pixel_class)
    for other in exclude:
        overlap = clipped.intersection(other)
        if overlap is not None:
            matching[_window(overlap, clipped)] = False
    marks = tracker[rows, cols] # view
    seen = (marks & int(tag)).astype(bool)
    fresh = matching & ~seen
    count = int(np.count_nonzero(fresh))
    duplicates = int(np.count_nonzero(matching & seen))
    marks[fresh] |= int(tag)
    return count, duplicates

def count_region_pixels(rects, image, pixel_class, exclude=()):
    """
    Count pixels of ``pixel_class`` inside the union of ``rects``
    but outside of all rectangles in ``exclude`` (without tracking).
    """
    height, width = image.shape[:2]
    rects = [rect for rect in (rect.clip(width, height) for rect in rects) if rect is not None]
    if not rects:
        return 0
    window = Rectangle(min(rect.left for rect in rects),
                       min(rect.top for rect in rects),
                       max(rect.right for rect in rects),
                       max(rect.bottom for rect in rects))
    inside = np.zeros((window.height, window.width), dtype=bool)
    for rect in rects:
        inside[_window(rect, window)] = True
    for other in exclude:
        overlap = window.intersection(other)
        if overlap is not None:
            inside[_window(overlap, window)] = False
    rows, cols = window.slices
    return int(np.count_nonzero(inside & class_mask(image[rows, cols], pixel_class)))
