import json

import numpy as np
from PIL import Image

from ocrd_layout_eval import Rectangle
from ocrd_layout_eval.report import (
    format_metrics,
    format_metrics_verbose,
    metrics_to_dict,
    write_tracker_images,
)

GT = [Rectangle(0, 0, 40, 20), Rectangle(50, 50, 60, 60)]
HYP = [Rectangle(0, 0, 20, 20), Rectangle(20, 0, 40, 20), Rectangle(70, 0, 90, 10)]

def test_format_metrics(evaluate):
    graph = evaluate(GT, HYP, res_type_name='TextRegion')
    report = format_metrics(graph.gtmetrics, graph.hypmetrics)
    lines = report.splitlines()
    assert lines[0] == "Region type: TextRegion"
    assert "Ground-truth regions: 2" in lines
    assert "Hypothesis regions: 3" in lines
    assert "Correct segmentations: 0" in lines
    assert "Oversegmentations: 2" in lines
    assert "False negative regions (missed): 1" in lines
    assert "False positive regions: 1" in lines
    assert "Average oversegmentations per box: 2.000" in lines
    assert report.endswith('\n')

def test_format_metrics_without_type(evaluate):
    rect = Rectangle(0, 0, 10, 10)
    graph = evaluate([rect], [rect])
    lines = format_metrics(graph.gtmetrics, graph.hypmetrics).splitlines()
    assert lines[0] == "Ground-truth regions: 1"
    assert "Accuracy: 1.0000" in lines

def test_format_metrics_verbose(evaluate):
    graph = evaluate(GT, HYP)
    report = format_metrics_verbose(graph.gtmetrics, graph.hypmetrics)
    assert report.startswith(format_metrics(graph.gtmetrics, graph.hypmetrics))
    assert "Hypothesis region 2 [70,0,90,10]:" in report
    assert "Ground-truth region 1 [50,50,60,60]:" in report
    assert "  overlapping hypothesis regions: 0 (missed)" in report
    assert report.count("Hypothesis region ") == 3
    assert report.count("Ground-truth region ") == 2

def test_metrics_to_dict(evaluate):
    graph = evaluate(GT, HYP)
    stats = metrics_to_dict(graph.gtmetrics, graph.hypmetrics)
    assert list(stats) == ['groundtruth', 'hypothesis']
    assert stats['groundtruth']['segmentations'] == 2
    assert stats['hypothesis']['oversegmentations'] == 2
    assert stats['hypothesis']['boxes'][0]['rect'] == dict(left=0, top=0, right=20, bottom=20)
    # serialisable as is
    assert json.loads(json.dumps(stats)) == stats

def test_write_tracker_images(evaluate, tmp_path):
    graph = evaluate(GT, HYP)
    paths = write_tracker_images(graph, str(tmp_path / 'debug'), 'page')
    assert [p.rsplit('/', 1)[-1] for p in paths] == ['page.groundtruth.tracker.png',
                                                     'page.hypothesis.tracker.png']
    for path in paths:
        with Image.open(path) as image:
            assert image.size == (100, 100)
            pixels = np.asarray(image.convert('RGB'))
        # inside a rectangle outline, outside of all rectangles
        assert tuple(pixels[5, 5]) != (0, 0, 0)
        assert tuple(pixels[95, 5]) == (0, 0, 0)
