"""
Bipartite graph of ground-truth and hypothesis regions of one page.

By definition a bipartite graph consists of two independent sets with edges
only between the two sets. One set represents the ground truth, the other the
hypothesis (never comparing either to itself). Each vertex is a rectangular
region of the page with an area and a number of foreground pixels. Each edge
is the non-empty intersection of a ground-truth and a hypothesis rectangle,
weighted by its area and its number of matching foreground pixels. Vertices
without edges are missed (ground truth) or falsely detected (hypothesis)
regions.
"""
from typing import List
from enum import Enum
from dataclasses import dataclass, field

from ocrd_utils import getLogger

from .config import EvaluationConfig
from .errors import EvaluationError, ValidationError
from .geometry import Rectangle
from .metrics import PageTotals, aggregate
from .pixels import (
    PixelClass,
    AccountingPass,
    as_pixel_array,
    make_tracker,
    count_pixels,
    count_region_pixels,
)

class GraphChoice(Enum):
    GROUND_TRUTH = 'groundtruth'
    HYPOTHESIS = 'hypothesis'

    @property
    def opposite(self):
        if self is GraphChoice.GROUND_TRUTH:
            return GraphChoice.HYPOTHESIS
        return GraphChoice.GROUND_TRUTH

@dataclass
class Edge:
    """index of the opposite vertex in its set"""
    vertex: int
    """set of the opposite vertex"""
    which_set: GraphChoice
    """intersection of both rectangles"""
    overlap: Rectangle
    overlap_area: int
    """matching pixels inside the intersection (hypothesis image)"""
    intersecting_foreground_pixels: int
    intersecting_foreground_pixels_duplicate: int
    """foreground pixels inside the intersection (ground-truth image)"""
    covered_foreground_pixels: int
    covered_foreground_pixels_duplicate: int

@dataclass
class Vertex:
    rect: Rectangle
    area: int
    """all foreground pixels inside the rectangle"""
    foreground_pixels: int
    """
    part of the foreground already attributed to an earlier rectangle of the
    same set (recorded in order to avoid double counting)
    """
    foreground_pixels_duplicate: int
    which_set: GraphChoice
    set_index: int
    edges: List[Edge] = field(default_factory=list)
    """part of the duplicate foreground which is of the match class (hypothesis only)"""
    matching_pixels_duplicate: int = 0
    """
    foreground pixels of the ground truth left uncovered: for a ground-truth
    vertex, those of its region outside of all overlapping hypothesis regions
    (with duplicates counted separately, as above); for a hypothesis vertex,
    those of the union of all overlapping ground-truth regions outside of
    its own region
    """
    uncovered_foreground_pixels: int = 0
    uncovered_foreground_pixels_duplicate: int = 0

    def __post_init__(self):
        if not (0 <= self.matching_pixels_duplicate <= self.foreground_pixels_duplicate
                <= self.foreground_pixels <= self.area):
            raise ValidationError(
                f"{self.which_set.value} region {self.set_index} {self.rect}: inconsistent counts "
                f"(matching duplicate={self.matching_pixels_duplicate}, "
                f"duplicate={self.foreground_pixels_duplicate}, "
                f"foreground={self.foreground_pixels}, area={self.area})")

    @property
    def degree(self):
        return len(self.edges)

    @property
    def unique_foreground_pixels(self):
        return self.foreground_pixels - self.foreground_pixels_duplicate

def make_vertices(rects, image, pixel_class, tracker, which_set, match=None, log=None):
    """
    Create one vertex per rectangle of ``rects`` (in that order).

    Foreground pixels shared by overlapping rectangles are attributed to the
    first of them; subsequent rectangles report them as duplicates. If
    ``match`` is given, then also count which of those duplicates are of
    that class.

    The area of each vertex is that of its rectangle clipped to the image.
    """
    if log is None:
        log = getLogger('ocrd.layout_eval.graph')
    height, width = tracker.shape
    vertices = []
    for index, rect in enumerate(rects):
        try:
            rect.validate()
        except ValidationError as err:
            raise ValidationError(f"{which_set.value} region {index}: {err}") from err
        clipped = rect.clip(width, height)
        if clipped is None:
            raise ValidationError(f"{which_set.value} region {index} {rect} "
                                  f"is outside of the image ({width}x{height})")
        if clipped != rect:
            log.warning("clipping %s region %d %s to image bounds %dx%d",
                        which_set.value, index, rect, width, height)
        count, duplicates = count_pixels(rect, image, pixel_class, tracker, AccountingPass.VERTEX)
        matching_dup = 0
        if match is not None:
            _, matching_dup = count_pixels(rect, image, match, tracker, AccountingPass.VERTEX_MATCH)
        vertex = Vertex(rect=rect,
                        area=clipped.area,
                        foreground_pixels=count + duplicates,
                        foreground_pixels_duplicate=duplicates,
                        which_set=which_set,
                        set_index=index,
                        matching_pixels_duplicate=matching_dup)
        log.debug("%s vertex %d %s: area=%d fg=%d duplicate=%d", which_set.value, index, rect,
                  vertex.area, vertex.foreground_pixels, vertex.foreground_pixels_duplicate)
        vertices.append(vertex)
    return vertices

def make_edges(gt_vertices, hyp_vertices, gt_image, hyp_image,
               foreground, match, gt_tracker, hyp_tracker, log=None):
    """
    Connect every pair of ground-truth and hypothesis vertices whose rectangles
    intersect (inside the image).

    Count the ``match`` pixels inside the intersection on the hypothesis image
    (true positives), and the ``foreground`` pixels inside the intersection on
    the ground-truth image (covered ground truth). Both use their own tracker,
    so with ground truth as the outer and hypothesis as the inner loop, every
    pixel gets credited to the same vertex which owns it as foreground.

    Append an edge to both vertices, each pointing to the other one.
    """
    if log is None:
        log = getLogger('ocrd.layout_eval.graph')
    height, width = gt_tracker.shape
    for gt_vertex in gt_vertices:
        for hyp_vertex in hyp_vertices:
            overlap = gt_vertex.rect.intersection(hyp_vertex.rect)
            if overlap is not None:
                overlap = overlap.clip(width, height)
            if overlap is None:
                continue
            matching, matching_dup = count_pixels(overlap, hyp_image, match, hyp_tracker,
                                                  AccountingPass.EDGE_MATCH)
            covered, covered_dup = count_pixels(overlap, gt_image, foreground, gt_tracker,
                                                AccountingPass.EDGE_COVER)
            log.debug("edge %d-%d over %s: area=%d matching=%d(+%d) covered=%d(+%d)",
                      gt_vertex.set_index, hyp_vertex.set_index, overlap, overlap.area,
                      matching, matching_dup, covered, covered_dup)
            counts = dict(overlap=overlap,
                          overlap_area=overlap.area,
                          intersecting_foreground_pixels=matching,
                          intersecting_foreground_pixels_duplicate=matching_dup,
                          covered_foreground_pixels=covered,
                          covered_foreground_pixels_duplicate=covered_dup)
            gt_vertex.edges.append(Edge(vertex=hyp_vertex.set_index,
                                        which_set=GraphChoice.HYPOTHESIS, **counts))
            hyp_vertex.edges.append(Edge(vertex=gt_vertex.set_index,
                                         which_set=GraphChoice.GROUND_TRUTH, **counts))

def make_uncovered(gt_vertices, hyp_vertices, gt_image, foreground, gt_tracker, log=None):
    """
    Count the ground-truth foreground left uncovered by the (edge-annotated) vertices.

    For each ground-truth vertex, count the ``foreground`` pixels of its
    rectangle outside of all hypothesis rectangles it overlaps, using the
    ground-truth tracker (in the same order as the vertices, so duplicates
    are attributed alike). For each hypothesis vertex, count the
    ``foreground`` pixels of the union of the ground-truth rectangles it
    overlaps outside of its own rectangle.
    """
    if log is None:
        log = getLogger('ocrd.layout_eval.graph')
    for gt_vertex in gt_vertices:
        covering = [hyp_vertices[edge.vertex].rect for edge in gt_vertex.edges]
        count, duplicates = count_pixels(gt_vertex.rect, gt_image, foreground, gt_tracker,
                                         AccountingPass.UNCOVERED, exclude=covering)
        gt_vertex.uncovered_foreground_pixels = count
        gt_vertex.uncovered_foreground_pixels_duplicate = duplicates
    for hyp_vertex in hyp_vertices:
        overlapping = [gt_vertices[edge.vertex].rect for edge in hyp_vertex.edges]
        hyp_vertex.uncovered_foreground_pixels = count_region_pixels(
            overlapping, gt_image, foreground, exclude=[hyp_vertex.rect])
    for vertex in gt_vertices + hyp_vertices:
        log.debug("%s vertex %d %s: uncovered=%d(+%d)", vertex.which_set.value,
                  vertex.set_index, vertex.rect, vertex.uncovered_foreground_pixels,
                  vertex.uncovered_foreground_pixels_duplicate)

class BipartiteGraph:
    """
    Evaluation of the hypothesis segmentation of a single page.

    Each page to be evaluated uses its own graph. The segmentations of ground
    truth and hypothesis are each given by a list of rectangles and an image
    whose foreground pixels have been colour-coded by correctness class
    (see :py:class:`~ocrd_layout_eval.pixels.PixelClass`).

    Construction runs all phases in order: allocate a tracker image for each
    set, create the ground-truth and the hypothesis vertices, connect them by
    edges, count the ground truth left uncovered, and compute the metrics.
    Analysing the number of vertices and edges and their weights then yields:

    1. correct segmentations: hypothesis regions matching exactly one
       ground-truth region, covering (almost) all of its foreground
    2. oversegmentations: ground-truth regions split into several hypothesis
       regions (each of which counts towards the severity)
    3. undersegmentations: hypothesis regions merging several ground-truth
       regions (each of which counts towards the severity)
    4. over-/undersegmented components: the number of such regions
    5. false negatives: ground-truth regions missed entirely
    6. false positives: hypothesis regions without any ground truth

    Trackers are owned by the graph and released by :py:meth:`clear`
    (or when leaving the ``with`` block).
    """

    def __init__(self, gt_rects, hyp_rects, gt_image, hyp_image,
                 totals: PageTotals = None,
                 foreground=PixelClass.ANY_FOREGROUND,
                 match=PixelClass.TRUE_POSITIVE,
                 threshold=0.99,
                 res_type_name=''):
        self.logger = getLogger('ocrd.layout_eval.graph')
        self.config = EvaluationConfig(foreground=PixelClass.from_name(foreground),
                                       match=PixelClass.from_name(match),
                                       threshold=threshold,
                                       region_type=res_type_name or None)
        self.res_type_name = res_type_name
        self.ground_truth = []
        self.hypothesis = []
        self.gt_tracker = self.hyp_tracker = None
        self.gtmetrics = self.hypmetrics = None
        try:
            self.gt_image = as_pixel_array(gt_image)
            self.hyp_image = as_pixel_array(hyp_image)
            if self.gt_image.shape != self.hyp_image.shape:
                raise ValidationError(f"ground-truth image {self.gt_image.shape[:2]} and "
                                      f"hypothesis image {self.hyp_image.shape[:2]} differ in size")
            if totals is None:
                totals = PageTotals.from_image(self.hyp_image)
            self.totals = totals
            self.logger.info("building bipartite graph of %d ground-truth and %d hypothesis regions%s",
                             len(gt_rects), len(hyp_rects),
                             f" of type {res_type_name}" if res_type_name else "")
            # each set has its own tracker, never shared
            self.gt_tracker = make_tracker(self.gt_image)
            self.hyp_tracker = make_tracker(self.hyp_image)
            self.make_vertices(GraphChoice.GROUND_TRUTH, gt_rects)
            self.make_vertices(GraphChoice.HYPOTHESIS, hyp_rects)
            self.make_edges()
            self.gtmetrics, self.hypmetrics = aggregate(
                self.ground_truth, self.hypothesis, self.totals,
                threshold=self.config.threshold,
                res_type_name=res_type_name,
                log=getLogger('ocrd.layout_eval.metrics'))
        except EvaluationError:
            self.clear()
            raise

    def make_vertices(self, graph: GraphChoice, rects):
        if graph is GraphChoice.GROUND_TRUTH:
            self.ground_truth = make_vertices(rects, self.gt_image, self.config.foreground,
                                              self.gt_tracker, graph, log=self.logger)
        else:
            self.hypothesis = make_vertices(rects, self.hyp_image, self.config.foreground,
                                            self.hyp_tracker, graph, match=self.config.match,
                                            log=self.logger)

    def make_edges(self):
        make_edges(self.ground_truth, self.hypothesis,
                   self.gt_image, self.hyp_image,
                   self.config.foreground, self.config.match,
                   self.gt_tracker, self.hyp_tracker,
                   log=self.logger)
        make_uncovered(self.ground_truth, self.hypothesis,
                       self.gt_image, self.config.foreground, self.gt_tracker,
                       log=self.logger)

    def vertex_set(self, graph: GraphChoice) -> List[Vertex]:
        if graph is GraphChoice.GROUND_TRUTH:
            return self.ground_truth
        return self.hypothesis

    def edges(self):
        """Iterate all edges once, as (ground-truth index, hypothesis index, edge)."""
        for vertex in self.ground_truth:
            for edge in vertex.edges:
                yield vertex.set_index, edge.vertex, edge

    def get_hypothesis_metrics(self):
        return self.hypmetrics

    def describe_set(self, graph: GraphChoice):
        """Log all vertices of the given set with their edges (for debugging)."""
        for vertex in self.vertex_set(graph):
            self.logger.debug("%s %d %s: area=%d fg=%d duplicate=%d edges=%s",
                              graph.value, vertex.set_index, vertex.rect, vertex.area,
                              vertex.foreground_pixels, vertex.foreground_pixels_duplicate,
                              ', '.join(f"{edge.vertex}({edge.intersecting_foreground_pixels}px)"
                                        for edge in vertex.edges) or '-')

    def clear(self):
        """Release vertices, edges, trackers and images. (Metrics already copied out stay valid.)"""
        for vertex in self.ground_truth + self.hypothesis:
            vertex.edges.clear()
        self.ground_truth = []
        self.hypothesis = []
        self.gt_tracker = self.hyp_tracker = None
        self.gt_image = self.hyp_image = None
        self.gtmetrics = self.hypmetrics = None

    def __enter__(self):
        return self

    def __exit__(self, etype, evalue, etrace):
        self.clear()
        return False
