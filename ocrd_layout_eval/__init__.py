from .errors import EvaluationError, ValidationError, ResourceError
from .geometry import Rectangle
from .pixels import PixelClass
from .metrics import PageTotals, GroundTruthMetrics, HypothesisMetrics
from .graph import BipartiteGraph, GraphChoice
