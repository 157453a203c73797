import os
from collections import OrderedDict as odict
from dataclasses import asdict

import numpy as np
from PIL import Image, ImageDraw

from .pixels import AccountingPass

# colours for tracker debug images
TRACKER_COLORS = [
    (AccountingPass.VERTEX, (96, 96, 96)),
    (AccountingPass.UNCOVERED, (0, 0, 200)),
    (AccountingPass.EDGE_COVER, (0, 160, 0)),
    (AccountingPass.EDGE_MATCH, (200, 0, 0)),
]

def format_metrics(gtmetrics, hypmetrics):
    """Describe the page-wide metrics in human-readable form."""
    lines = []
    if hypmetrics.res_type_name:
        lines.append(f"Region type: {hypmetrics.res_type_name}")
    lines += [
        f"Ground-truth regions: {gtmetrics.segmentations}",
        f"Hypothesis regions: {len(hypmetrics.boxes)}",
        f"Correct segmentations: {hypmetrics.correctsegmentations}",
        f"Oversegmentations: {hypmetrics.oversegmentations}",
        f"Oversegmented components: {hypmetrics.oversegmentedcomponents}",
        f"Average oversegmentations per box: {hypmetrics.avg_oversegmentations_perbox:.3f}",
        f"Undersegmentations: {hypmetrics.undersegmentations}",
        f"Undersegmented components: {hypmetrics.undersegmentedcomponents}",
        f"Average undersegmentations per box: {hypmetrics.avg_undersegmentations_perbox:.3f}",
        f"False negative regions (missed): {hypmetrics.falsenegatives}",
        f"False positive regions: {hypmetrics.falsepositives}",
        f"Total recall: {hypmetrics.total_recall:.4f}",
        f"Total precision: {hypmetrics.total_precision:.4f}",
        f"Total fallout: {hypmetrics.total_fallout:.4f}",
        f"Total false discovery rate: {hypmetrics.total_fdr:.4f}",
        f"Specificity: {hypmetrics.specificity:.4f}",
        f"Negative predictive value: {hypmetrics.negative_predictive_val:.4f}",
        f"Accuracy: {hypmetrics.accuracy:.4f}",
        f"Foreground pixels: {hypmetrics.total_fg_pix}",
        f"True positive pixels: {hypmetrics.total_true_positive_fg_pix}",
        f"False positive pixels: {hypmetrics.total_false_positive_pix}",
        f"False negative pixels: {hypmetrics.total_false_negative_pix}",
        f"True negative pixels: {hypmetrics.total_true_negative_fg_pix}",
        f"Segmented ground-truth area ratio: {gtmetrics.area_ratio:.4f}",
        f"Segmented ground-truth foreground ratio: {gtmetrics.fg_pixel_ratio:.4f}",
    ]
    return '\n'.join(lines) + '\n'

def format_metrics_verbose(gtmetrics, hypmetrics):
    """Describe the metrics of each hypothesis region and each ground-truth region."""
    lines = [format_metrics(gtmetrics, hypmetrics).rstrip('\n')]
    for region in hypmetrics.boxes:
        lines += [
            f"Hypothesis region {region.vertex} {region.rect}:",
            f"  area: {region.area}",
            f"  foreground pixels: {region.num_fg_pixels} ({region.num_fg_pixels_duplicate} duplicate)",
            f"  overlapping ground-truth regions: {region.num_gt_overlap}",
            f"  correct: {'yes' if region.correct else 'no'}",
            f"  true positive pixels: {region.true_positive_pix}",
            f"  false positive pixels: {region.false_positive_pix} "
            f"({region.false_positive_pix_duplicate} duplicate)",
            f"  false negative pixels: {region.false_negative_pix}",
            f"  recall: {region.recall:.4f}",
            f"  precision: {region.precision:.4f}",
            f"  fallout: {region.fallout:.4f} ({region.fallout_duplicate:.4f} duplicate)",
            f"  false discovery: {region.false_discovery:.4f} "
            f"({region.false_discovery_duplicate:.4f} duplicate)",
        ]
    for region, description in zip(hypmetrics.overlapgts, gtmetrics.descriptions):
        lines += [
            f"Ground-truth region {region.vertex} {region.rect}:",
            f"  overlapping hypothesis regions: {region.numedges}" +
            (" (missed)" if region.missed else ""),
            f"  false negative pixels: {region.false_negative_pixels} "
            f"({region.false_negative_pixels_duplicate} duplicate)",
            f"  area ratio: {description.area_ratio:.4f}",
            f"  foreground ratio: {description.fg_pix_ratio:.4f}",
        ]
    return '\n'.join(lines) + '\n'

def metrics_to_dict(gtmetrics, hypmetrics):
    """Convert both metrics records into plain (JSON-serialisable) dicts."""
    stats = odict()
    stats['groundtruth'] = asdict(gtmetrics)
    stats['hypothesis'] = asdict(hypmetrics)
    return stats

def write_tracker_images(graph, directory, basename):
    """
    Save the tracker image of each set as PNG, with the rectangles of that set outlined.

    Pixels are coloured by the last counting pass which marked them (vertex
    foreground in grey, uncovered ground truth in blue, covered ground
    truth in green, matching pixels in red).
    Return the list of file paths written.
    """
    os.makedirs(directory, exist_ok=True)
    paths = []
    for name, tracker, vertices in [('groundtruth', graph.gt_tracker, graph.ground_truth),
                                    ('hypothesis', graph.hyp_tracker, graph.hypothesis)]:
        pixels = np.zeros(tracker.shape + (3,), dtype=np.uint8)
        for tag, color in TRACKER_COLORS:
            pixels[(tracker & int(tag)).astype(bool)] = color
        image = Image.fromarray(pixels)
        draw = ImageDraw.Draw(image)
        for vertex in vertices:
            rect = vertex.rect
            draw.rectangle([rect.left, rect.top, rect.right - 1, rect.bottom - 1],
                           outline=(255, 255, 255))
        path = os.path.join(directory, f"{basename}.{name}.tracker.png")
        image.save(path)
        paths.append(path)
    return paths
