import numpy as np
import pytest
from PIL import Image

from ocrd_layout_eval import Rectangle, PixelClass, ValidationError, ResourceError
from ocrd_layout_eval.pixels import (
    AccountingPass,
    as_pixel_array,
    check_classes,
    class_mask,
    count_class_pixels,
    count_pixels,
    count_region_pixels,
    make_tracker,
)

@pytest.fixture
def inked():
    """20x20 page, every pixel a true positive"""
    return np.full((20, 20, 3), PixelClass.TRUE_POSITIVE.color, dtype=np.uint8)

@pytest.fixture
def halves():
    """20x20 page, left half true positive, right half false positive"""
    image = np.full((20, 20, 3), 255, dtype=np.uint8)
    image[:, :10] = PixelClass.TRUE_POSITIVE.color
    image[:, 10:] = PixelClass.FALSE_POSITIVE.color
    return image

def test_count_marks_tracker(inked):
    tracker = make_tracker(inked)
    assert tracker.shape == (20, 20)
    assert not tracker.any()
    assert count_pixels(Rectangle(0, 0, 10, 10), inked, PixelClass.ANY_FOREGROUND,
                        tracker, AccountingPass.VERTEX) == (100, 0)
    assert np.all(tracker[:10, :10] == int(AccountingPass.VERTEX))
    assert not tracker[10:, :].any()
    assert not tracker[:, 10:].any()

def test_overlap_counted_as_duplicate(inked):
    tracker = make_tracker(inked)
    count1, dup1 = count_pixels(Rectangle(0, 0, 10, 10), inked, PixelClass.ANY_FOREGROUND,
                                tracker, AccountingPass.VERTEX)
    count2, dup2 = count_pixels(Rectangle(5, 5, 15, 15), inked, PixelClass.ANY_FOREGROUND,
                                tracker, AccountingPass.VERTEX)
    assert (count1, dup1) == (100, 0)
    assert (count2, dup2) == (75, 25)
    # the union measured directly
    union = np.zeros((20, 20), dtype=bool)
    union[0:10, 0:10] = True
    union[5:15, 5:15] = True
    assert count1 + count2 == np.count_nonzero(union)
    assert count1 + (count2 + dup2) - dup2 == np.count_nonzero(union)

def test_same_rectangle_twice(inked):
    tracker = make_tracker(inked)
    rect = Rectangle(2, 2, 6, 6)
    assert count_pixels(rect, inked, PixelClass.TRUE_POSITIVE, tracker, AccountingPass.VERTEX) == (16, 0)
    assert count_pixels(rect, inked, PixelClass.TRUE_POSITIVE, tracker, AccountingPass.VERTEX) == (0, 16)

def test_passes_do_not_interfere(inked):
    tracker = make_tracker(inked)
    rect = Rectangle(0, 0, 10, 10)
    assert count_pixels(rect, inked, PixelClass.ANY_FOREGROUND, tracker, AccountingPass.VERTEX) == (100, 0)
    assert count_pixels(rect, inked, PixelClass.TRUE_POSITIVE, tracker, AccountingPass.EDGE_MATCH) == (100, 0)
    assert count_pixels(rect, inked, PixelClass.TRUE_POSITIVE, tracker, AccountingPass.EDGE_MATCH) == (0, 100)
    assert np.all(tracker[:10, :10] == int(AccountingPass.VERTEX | AccountingPass.EDGE_MATCH))

def test_count_by_class(halves):
    rect = Rectangle(0, 0, 20, 20)
    assert count_pixels(rect, halves, PixelClass.ANY_FOREGROUND,
                        make_tracker(halves), AccountingPass.VERTEX) == (400, 0)
    assert count_pixels(rect, halves, PixelClass.TRUE_POSITIVE,
                        make_tracker(halves), AccountingPass.VERTEX) == (200, 0)
    assert count_pixels(rect, halves, PixelClass.FALSE_POSITIVE,
                        make_tracker(halves), AccountingPass.VERTEX) == (200, 0)
    assert count_pixels(rect, halves, PixelClass.TRUE_NEGATIVE,
                        make_tracker(halves), AccountingPass.VERTEX) == (0, 0)

def test_background_not_counted():
    image = np.full((10, 10, 3), 255, dtype=np.uint8)
    image[0, 0] = PixelClass.FALSE_NEGATIVE.color
    tracker = make_tracker(image)
    assert count_pixels(Rectangle(0, 0, 10, 10), image, PixelClass.ANY_FOREGROUND,
                        tracker, AccountingPass.VERTEX) == (1, 0)
    assert tracker.sum() == 1

def test_clipped_to_image(inked):
    tracker = make_tracker(inked)
    assert count_pixels(Rectangle(15, 15, 30, 30), inked, PixelClass.ANY_FOREGROUND,
                        tracker, AccountingPass.VERTEX) == (25, 0)
    assert count_pixels(Rectangle(-5, -5, 5, 5), inked, PixelClass.ANY_FOREGROUND,
                        tracker, AccountingPass.VERTEX) == (25, 0)

def test_outside_image(inked):
    tracker = make_tracker(inked)
    assert count_pixels(Rectangle(30, 30, 40, 40), inked, PixelClass.ANY_FOREGROUND,
                        tracker, AccountingPass.VERTEX) == (0, 0)
    assert not tracker.any()

def test_background_class_rejected(inked):
    with pytest.raises(ValidationError):
        count_pixels(Rectangle(0, 0, 5, 5), inked, PixelClass.BACKGROUND,
                     make_tracker(inked), AccountingPass.VERTEX)

def test_class_mask_and_totals(halves):
    assert class_mask(halves, PixelClass.TRUE_POSITIVE)[:, :10].all()
    assert not class_mask(halves, PixelClass.TRUE_POSITIVE)[:, 10:].any()
    assert count_class_pixels(halves, PixelClass.ANY_FOREGROUND) == 400
    assert count_class_pixels(halves, PixelClass.FALSE_POSITIVE) == 200

def test_as_pixel_array_from_pil():
    image = Image.new('L', (30, 20), 255)
    pixels = as_pixel_array(image)
    assert pixels.shape == (20, 30, 3)
    assert pixels.dtype == np.uint8
    assert count_class_pixels(pixels, PixelClass.ANY_FOREGROUND) == 0

def test_as_pixel_array_passes_arrays(inked):
    assert as_pixel_array(inked) is inked

@pytest.mark.parametrize("image", [
    None,
    "page.png",
    np.zeros((10, 10), dtype=np.uint8),
    np.zeros((10, 10, 4), dtype=np.uint8),
    np.zeros((10, 10, 3), dtype=np.float32),
])
def test_as_pixel_array_rejects(image):
    with pytest.raises(ResourceError):
        as_pixel_array(image)

def test_pixel_class_names():
    assert PixelClass.from_name('true-positive') is PixelClass.TRUE_POSITIVE
    assert PixelClass.from_name('ANY_FOREGROUND') is PixelClass.ANY_FOREGROUND
    assert PixelClass.from_name(PixelClass.TRUE_NEGATIVE) is PixelClass.TRUE_NEGATIVE
    assert PixelClass.FALSE_NEGATIVE.cli_name == 'false-negative'
    with pytest.raises(ValidationError):
        PixelClass.from_name('purple')

def test_check_classes():
    check_classes(PixelClass.ANY_FOREGROUND, PixelClass.TRUE_POSITIVE)
    check_classes(PixelClass.TRUE_POSITIVE, PixelClass.TRUE_POSITIVE)
    with pytest.raises(ValidationError):
        check_classes(PixelClass.ANY_FOREGROUND, PixelClass.ANY_FOREGROUND)
    with pytest.raises(ValidationError):
        check_classes(PixelClass.ANY_FOREGROUND, PixelClass.BACKGROUND)
    with pytest.raises(ValidationError):
        check_classes(PixelClass.BACKGROUND, PixelClass.TRUE_POSITIVE)
    with pytest.raises(ValidationError):
        check_classes(PixelClass.FALSE_POSITIVE, PixelClass.TRUE_POSITIVE)

def test_count_excluding(inked):
    tracker = make_tracker(inked)
    rect = Rectangle(0, 0, 10, 10)
    assert count_pixels(rect, inked, PixelClass.ANY_FOREGROUND, tracker, AccountingPass.UNCOVERED,
                        exclude=[Rectangle(0, 0, 5, 10), Rectangle(5, 8, 30, 30)]) == (40, 0)
    assert not tracker[:, :5].any()
    assert not tracker[8:, :].any()
    # excluded pixels stay unmarked, so they are no duplicates later
    assert count_pixels(rect, inked, PixelClass.ANY_FOREGROUND, tracker,
                        AccountingPass.UNCOVERED) == (60, 40)

def test_count_region_union(halves):
    rects = [Rectangle(0, 0, 10, 10), Rectangle(5, 5, 15, 15)]
    assert count_region_pixels(rects, halves, PixelClass.ANY_FOREGROUND) == 175
    assert count_region_pixels(rects, halves, PixelClass.TRUE_POSITIVE) == 100 + 25
    assert count_region_pixels(rects, halves, PixelClass.ANY_FOREGROUND,
                               exclude=[Rectangle(0, 0, 20, 5)]) == 125
    assert count_region_pixels(rects, halves, PixelClass.ANY_FOREGROUND,
                               exclude=[Rectangle(0, 0, 20, 20)]) == 0

def test_count_region_outside(halves):
    assert count_region_pixels([], halves, PixelClass.ANY_FOREGROUND) == 0
    assert count_region_pixels([Rectangle(30, 30, 40, 40)], halves, PixelClass.ANY_FOREGROUND) == 0
    assert count_region_pixels([Rectangle(15, 15, 30, 30)], halves, PixelClass.FALSE_POSITIVE) == 25
