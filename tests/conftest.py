import numpy as np
import pytest

from ocrd_layout_eval import BipartiteGraph, PixelClass

def _fill(mask, rects):
    for rect in rects:
        mask[rect.slices] = True
    return mask

@pytest.fixture
def classify():
    """Colour-code ink pixels the way the upstream classifier does."""
    def classify_page(width, height, ink, gt_rects, hyp_rects):
        ink = _fill(np.zeros((height, width), dtype=bool), ink)
        in_gt = _fill(np.zeros_like(ink), gt_rects)
        in_hyp = _fill(np.zeros_like(ink), hyp_rects)
        image = np.full((height, width, 3), 255, dtype=np.uint8)
        image[ink & in_gt & in_hyp] = PixelClass.TRUE_POSITIVE.color
        image[ink & ~in_gt & in_hyp] = PixelClass.FALSE_POSITIVE.color
        image[ink & in_gt & ~in_hyp] = PixelClass.FALSE_NEGATIVE.color
        image[ink & ~in_gt & ~in_hyp] = PixelClass.TRUE_NEGATIVE.color
        return image
    return classify_page

@pytest.fixture
def evaluate(classify):
    """Build the graph of a classified page (ink defaults to all rectangles)."""
    def evaluate_page(gt_rects, hyp_rects, ink=None, size=(100, 100), **kwargs):
        width, height = size
        if ink is None:
            ink = list(gt_rects) + list(hyp_rects)
        image = classify(width, height, ink, gt_rects, hyp_rects)
        return BipartiteGraph(gt_rects, hyp_rects, image, image.copy(), **kwargs)
    return evaluate_page
