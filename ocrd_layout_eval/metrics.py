from typing import List
from dataclasses import dataclass, field

from ocrd_utils import getLogger

from .errors import ValidationError
from .geometry import Rectangle
from .pixels import (
    PixelClass,
    as_pixel_array,
    count_class_pixels,
)

# Detection theory, as used for the page-level ratios below:
# P:  positives = foreground pixels inside ground-truth regions
# N:  negatives = foreground pixels outside of all ground-truth regions
# True Positive Rate (Sensitivity, Hit Rate, Recall): TPR = TP/P
# False Positive Rate (Fallout): FPR = FP/N
# Accuracy: ACC = (TP+TN)/(P+N)
# True Negative Rate (Specificity): SPC = TN/N = 1-FPR
# Positive Predictive Value (Precision): PPV = TP/(TP+FP)
# Negative Predictive Value: NPV = TN/(TN+FN)
# False Discovery Rate: FDR = FP/(FP+TP)

@dataclass(frozen=True)
class PageTotals:
    """image area (number of pixels)"""
    total_area: int
    """number of foreground pixels on the page"""
    total_fg_pixels: int
    """number of foreground pixels which are negative in the ground truth"""
    total_negative_pixels: int

    def __post_init__(self):
        if min(self.total_area, self.total_fg_pixels, self.total_negative_pixels) < 0:
            raise ValidationError(f"page totals must not be negative: {self}")
        if self.total_fg_pixels > self.total_area:
            raise ValidationError(f"page has more foreground pixels ({self.total_fg_pixels}) "
                                  f"than pixels ({self.total_area})")
        if self.total_negative_pixels > self.total_fg_pixels:
            raise ValidationError(f"page has more negative pixels ({self.total_negative_pixels}) "
                                  f"than foreground pixels ({self.total_fg_pixels})")

    @classmethod
    def from_image(cls, image):
        """
        Derive page totals from a classified image: every non-background pixel
        is foreground, false positive and true negative pixels are negatives.
        """
        image = as_pixel_array(image)
        height, width = image.shape[:2]
        return cls(total_area=height * width,
                   total_fg_pixels=count_class_pixels(image, PixelClass.ANY_FOREGROUND),
                   total_negative_pixels=(count_class_pixels(image, PixelClass.FALSE_POSITIVE) +
                                          count_class_pixels(image, PixelClass.TRUE_NEGATIVE)))

@dataclass
class GTBoxDescription:
    """
    ratio of the box's foreground pixels (without those attributed to an
    earlier box) to the total foreground pixels, so the ratios of all boxes
    add up to the ground truth's ``fg_pixel_ratio``
    """
    fg_pix_ratio: float
    """ratio of the box's area to the total image area"""
    area_ratio: float
    rect: Rectangle
    """index of the ground-truth vertex"""
    vertex: int

@dataclass
class GroundTruthMetrics:
    """total ground-truth regions"""
    segmentations: int = 0
    """total foreground pixels inside ground-truth regions"""
    total_seg_fg_pixels: int = 0
    """total foreground pixels outside of ground-truth regions"""
    total_nonseg_fg_pixels: int = 0
    total_fg_pixels: int = 0
    """total_seg_fg_pixels / total_fg_pixels"""
    fg_pixel_ratio: float = 0.0
    """total area of all ground-truth regions"""
    total_seg_area: int = 0
    total_area: int = 0
    """total_seg_area / total_area"""
    area_ratio: float = 0.0
    """per-box weights"""
    descriptions: List[GTBoxDescription] = field(default_factory=list)

@dataclass
class RegionDescription:
    """
    Metrics of a single hypothesis region.

    A detected region only has true or false positive pixels.
    But if it overlaps ground-truth regions, the foreground of those which it
    does not cover can be counted as its false negatives on the spot. Regions
    missed entirely are not reachable from here (see OverlappingGTRegion).
    """
    num_fg_pixels: int
    num_fg_pixels_duplicate: int
    area: int
    rect: Rectangle
    """index of the hypothesis vertex"""
    vertex: int
    true_positive_pix: int = 0
    false_positive_pix: int = 0
    """false positive pixels already counted for another hypothesis region"""
    false_positive_pix_duplicate: int = 0
    """ground-truth foreground in the union of the overlapping regions outside of this one"""
    false_negative_pix: int = 0
    recall: float = 0.0
    precision: float = 0.0
    fallout: float = 0.0
    fallout_duplicate: float = 0.0
    false_discovery: float = 0.0
    false_discovery_duplicate: float = 0.0
    """degree of the hypothesis vertex"""
    num_gt_overlap: int = 0
    correct: bool = False

@dataclass
class OverlappingGTRegion:
    rect: Rectangle
    """index of the ground-truth vertex"""
    vertex: int
    false_negative_pixels: int = 0
    false_negative_pixels_duplicate: int = 0
    """degree of the ground-truth vertex"""
    numedges: int = 0

    @property
    def missed(self):
        return self.numedges == 0

@dataclass
class HypothesisMetrics:
    """
    Page-level metrics of the hypothesis segmentation.

    Oversegmentations count all hypothesis regions contributing to a split
    ground-truth region, undersegmentations count all ground-truth regions
    merged by a hypothesis region. The per-box averages are taken over the
    over-/undersegmented components only.
    """
    correctsegmentations: int = 0
    total_gt_regions: int = 0
    total_recall: float = 0.0
    total_fallout: float = 0.0
    total_precision: float = 0.0
    total_fdr: float = 0.0
    oversegmentations: int = 0
    avg_oversegmentations_perbox: float = 0.0
    undersegmentations: int = 0
    avg_undersegmentations_perbox: float = 0.0
    """ground-truth regions split into several hypothesis regions"""
    oversegmentedcomponents: int = 0
    """hypothesis regions merging several ground-truth regions"""
    undersegmentedcomponents: int = 0
    """ground-truth regions missed entirely"""
    falsenegatives: int = 0
    """hypothesis regions without any ground-truth counterpart"""
    falsepositives: int = 0
    negative_predictive_val: float = 0.0
    specificity: float = 0.0
    accuracy: float = 0.0
    total_false_negative_pix: int = 0
    total_false_positive_pix: int = 0
    """TP+FP"""
    total_positive_fg_pix: int = 0
    total_true_positive_fg_pix: int = 0
    total_true_negative_fg_pix: int = 0
    total_fg_pix: int = 0
    """total_fg_pix - total_positive_fg_pix, i.e. TN+FN"""
    total_negative_fg_pix: int = 0
    boxes: List[RegionDescription] = field(default_factory=list)
    overlapgts: List[OverlappingGTRegion] = field(default_factory=list)
    """type of regions evaluated"""
    res_type_name: str = ''

    @property
    def missed_regions(self):
        return [region for region in self.overlapgts if region.missed]

def _ratio(numerator, denominator):
    # empty denominators are defined as zero
    if not denominator:
        return 0.0
    return numerator / denominator

def ground_truth_metrics(gt_vertices, totals: PageTotals) -> GroundTruthMetrics:
    metrics = GroundTruthMetrics(segmentations=len(gt_vertices),
                                 total_fg_pixels=totals.total_fg_pixels,
                                 total_area=totals.total_area)
    for vertex in gt_vertices:
        metrics.total_seg_area += vertex.area
        metrics.total_seg_fg_pixels += vertex.unique_foreground_pixels
        metrics.descriptions.append(GTBoxDescription(
            fg_pix_ratio=_ratio(vertex.unique_foreground_pixels, totals.total_fg_pixels),
            area_ratio=_ratio(vertex.area, totals.total_area),
            rect=vertex.rect,
            vertex=vertex.set_index))
    metrics.total_nonseg_fg_pixels = max(0, metrics.total_fg_pixels - metrics.total_seg_fg_pixels)
    metrics.fg_pixel_ratio = _ratio(metrics.total_seg_fg_pixels, metrics.total_fg_pixels)
    metrics.area_ratio = _ratio(metrics.total_seg_area, metrics.total_area)
    return metrics

def _is_correct(edge, gt_vertex, threshold):
    if gt_vertex.degree != 1:
        return False # oversegmented
    matched = edge.intersecting_foreground_pixels + edge.intersecting_foreground_pixels_duplicate
    return _ratio(matched, gt_vertex.foreground_pixels) >= threshold

def hypothesis_metrics(gt_vertices, hyp_vertices, totals: PageTotals,
                       gtmetrics: GroundTruthMetrics,
                       threshold=0.99, res_type_name='', log=None) -> HypothesisMetrics:
    """
    Aggregate the (edge-annotated) vertices into page-level hypothesis metrics.

    Walk the hypothesis set to get true and false positives, partial false
    negatives, undersegmentations and false positive regions. Then walk
    the ground-truth set to get false negatives, missed regions and
    oversegmentations (which cannot be seen from the hypothesis side).

    A hypothesis region is a correct segmentation iff it overlaps exactly one
    ground-truth region, which in turn overlaps no other hypothesis region,
    and its matching pixels make up at least ``threshold`` of that region's
    foreground.
    """
    if log is None:
        log = getLogger('ocrd.layout_eval.metrics')
    positives = gtmetrics.total_seg_fg_pixels
    negatives = totals.total_negative_pixels
    metrics = HypothesisMetrics(total_gt_regions=len(gt_vertices),
                                total_fg_pix=totals.total_fg_pixels,
                                res_type_name=res_type_name)
    for vertex in hyp_vertices:
        degree = vertex.degree
        true_pos = sum(edge.intersecting_foreground_pixels for edge in vertex.edges)
        false_pos = max(0, vertex.unique_foreground_pixels - true_pos)
        # duplicates which are not matching pixels
        false_pos_dup = vertex.foreground_pixels_duplicate - vertex.matching_pixels_duplicate
        false_neg = vertex.uncovered_foreground_pixels
        region = RegionDescription(
            num_fg_pixels=vertex.foreground_pixels,
            num_fg_pixels_duplicate=vertex.foreground_pixels_duplicate,
            area=vertex.area,
            rect=vertex.rect,
            vertex=vertex.set_index,
            true_positive_pix=true_pos,
            false_positive_pix=false_pos,
            false_positive_pix_duplicate=false_pos_dup,
            false_negative_pix=false_neg,
            recall=_ratio(true_pos, positives),
            precision=_ratio(true_pos, true_pos + false_pos),
            fallout=_ratio(false_pos, negatives),
            fallout_duplicate=_ratio(false_pos_dup, negatives),
            false_discovery=_ratio(false_pos, true_pos + false_pos),
            false_discovery_duplicate=_ratio(false_pos_dup, true_pos + false_pos + false_pos_dup),
            num_gt_overlap=degree,
            correct=(degree == 1 and
                     _is_correct(vertex.edges[0], gt_vertices[vertex.edges[0].vertex], threshold)))
        if degree == 0:
            log.debug("hypothesis region %d %s is a false positive", vertex.set_index, vertex.rect)
            metrics.falsepositives += 1
        elif degree > 1:
            log.debug("hypothesis region %d %s merges %d ground-truth regions",
                      vertex.set_index, vertex.rect, degree)
            metrics.undersegmentedcomponents += 1
            metrics.undersegmentations += degree
        if region.correct:
            metrics.correctsegmentations += 1
        metrics.total_true_positive_fg_pix += true_pos
        metrics.total_false_positive_pix += false_pos
        metrics.total_recall += region.recall
        metrics.total_precision += region.precision
        metrics.total_fallout += region.fallout
        metrics.total_fdr += region.false_discovery
        metrics.boxes.append(region)
    for vertex in gt_vertices:
        degree = vertex.degree
        region = OverlappingGTRegion(
            rect=vertex.rect,
            vertex=vertex.set_index,
            false_negative_pixels=vertex.uncovered_foreground_pixels,
            false_negative_pixels_duplicate=vertex.uncovered_foreground_pixels_duplicate,
            numedges=degree)
        if degree == 0:
            log.debug("ground-truth region %d %s was missed", vertex.set_index, vertex.rect)
            metrics.falsenegatives += 1
        elif degree > 1:
            log.debug("ground-truth region %d %s is split into %d hypothesis regions",
                      vertex.set_index, vertex.rect, degree)
            metrics.oversegmentedcomponents += 1
            metrics.oversegmentations += degree
        metrics.total_false_negative_pix += region.false_negative_pixels
        metrics.overlapgts.append(region)
    metrics.avg_oversegmentations_perbox = _ratio(metrics.oversegmentations,
                                                  metrics.oversegmentedcomponents)
    metrics.avg_undersegmentations_perbox = _ratio(metrics.undersegmentations,
                                                   metrics.undersegmentedcomponents)
    metrics.total_positive_fg_pix = (metrics.total_true_positive_fg_pix +
                                     metrics.total_false_positive_pix)
    metrics.total_negative_fg_pix = max(0, metrics.total_fg_pix - metrics.total_positive_fg_pix)
    true_neg = max(0, negatives - metrics.total_false_positive_pix)
    metrics.total_true_negative_fg_pix = true_neg
    metrics.specificity = _ratio(true_neg, negatives)
    metrics.negative_predictive_val = _ratio(true_neg, true_neg + metrics.total_false_negative_pix)
    metrics.accuracy = _ratio(metrics.total_true_positive_fg_pix + true_neg, positives + negatives)
    return metrics

def aggregate(gt_vertices, hyp_vertices, totals: PageTotals,
              threshold=0.99, res_type_name='', log=None):
    """Compute ground-truth and hypothesis metrics from both (edge-annotated) vertex sets."""
    if log is None:
        log = getLogger('ocrd.layout_eval.metrics')
    gtmetrics = ground_truth_metrics(gt_vertices, totals)
    hypmetrics = hypothesis_metrics(gt_vertices, hyp_vertices, totals, gtmetrics,
                                    threshold=threshold, res_type_name=res_type_name, log=log)
    log.info(f"{hypmetrics.correctsegmentations} correct of {len(hyp_vertices)} hypothesis "
             f"and {len(gt_vertices)} ground-truth regions, "
             f"{hypmetrics.falsepositives} FP / {hypmetrics.falsenegatives} FN regions")
    return gtmetrics, hypmetrics
