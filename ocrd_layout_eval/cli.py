import os
import json
from collections import OrderedDict as odict

import click
from PIL import Image

from ocrd_utils import getLogger, initLogging

from .boxfile import read_boxes
from .config import DEFAULTS, PARAMETERS, EvaluationConfig
from .errors import EvaluationError, ResourceError, ValidationError
from .graph import BipartiteGraph
from .report import (
    format_metrics,
    format_metrics_verbose,
    metrics_to_dict,
    write_tracker_images,
)

@click.command()
@click.option('-G', '--gt-boxes', type=click.Path(exists=True, dir_okay=False),
              help="box file of ground-truth regions")
@click.option('-D', '--dt-boxes', type=click.Path(exists=True, dir_okay=False),
              help="box file of detected (hypothesis) regions")
@click.option('-g', '--gt-image', type=click.Path(exists=True, dir_okay=False),
              help="classified ground-truth image")
@click.option('-d', '--dt-image', type=click.Path(exists=True, dir_okay=False),
              help="classified hypothesis image")
@click.option('-T', '--region-type', default=DEFAULTS['region-type'],
              help=PARAMETERS['region-type']['description'])
@click.option('-F', '--foreground', type=click.Choice(PARAMETERS['foreground']['enum']),
              default=DEFAULTS['foreground'],
              help=PARAMETERS['foreground']['description'])
@click.option('-M', '--match', type=click.Choice(PARAMETERS['match']['enum']),
              default=DEFAULTS['match'],
              help=PARAMETERS['match']['description'])
@click.option('-t', '--threshold', type=click.FloatRange(0, 1, min_open=True),
              default=DEFAULTS['threshold'],
              help=PARAMETERS['threshold']['description'])
@click.option('-V', '--verbose', is_flag=True,
              help="also report metrics of each region")
@click.option('-j', '--json', 'as_json', is_flag=True,
              help="write report as JSON instead of text")
@click.option('-O', '--debug-dir', type=click.Path(file_okay=False),
              help="directory to write tracker images to")
@click.option('-R', '--report-file', type=click.File('w'), default='-',
              help="file name to write evaluation results to")
@click.argument('tabfile', type=click.File('r'), required=False)
def standalone_cli(gt_boxes,
                   dt_boxes,
                   gt_image,
                   dt_image,
                   region_type,
                   foreground,
                   match,
                   threshold,
                   verbose,
                   as_json,
                   debug_dir,
                   report_file,
                   tabfile):
    """Performs pixel-accurate layout evaluation on the given box files and images.

    \b
    For each page, read the rectangles of the ground-truth and the
    hypothesis segmentation (one box per line, ``TYPE LEFT TOP RIGHT BOTTOM``,
    optionally restricted to ``region-type``), and the corresponding
    classified images (foreground pixels coloured by correctness class).

    \b
    Then build the bipartite graph of overlapping ground-truth and
    hypothesis regions, and count correct segmentations, over- and
    undersegmentations, missed and false regions, as well as pixel-wise
    recall, precision, fallout, specificity and accuracy.

    \b
    Pass a single page via options, or several pages as tab-separated
    list file (GT boxes, DT boxes, GT image, DT image per line).
    Write the report to ``report-file``.
    """
    initLogging()
    log = getLogger('ocrd.layout_eval.cli')
    single = [gt_boxes, dt_boxes, gt_image, dt_image]
    assert all(single) if tabfile is None else not any(single), \
        "pass pages either as tab-separated list file or via all of -G, -D, -g and -d"
    if tabfile is None:
        pages = [tuple(single)]
    else:
        pages = [tuple(line.strip().split('\t')) for line in tabfile.readlines() if line.strip()]
        assert len(pages), "list of files is empty"
        assert all(len(page) == 4 for page in pages), \
            "list of files must be tab-separated (GT boxes, DT boxes, GT image, DT image)"
    try:
        config = EvaluationConfig.from_parameters({'region-type': region_type,
                                                   'foreground': foreground,
                                                   'match': match,
                                                   'threshold': threshold})
        results = evaluate_files(pages, config, debug_dir=debug_dir)
    except EvaluationError as err:
        log.error("evaluation failed: %s", err)
        raise click.ClickException(str(err)) from err
    if as_json:
        json.dump(odict((page_id, metrics_to_dict(*metrics))
                        for page_id, metrics in results.items()),
                  report_file, indent=2)
        return
    for page_id, metrics in results.items():
        report_file.write(f"Page: {page_id}\n")
        if verbose:
            report_file.write(format_metrics_verbose(*metrics))
        else:
            report_file.write(format_metrics(*metrics))

# standalone entry point
def evaluate_files(pages, config=None, debug_dir=None):
    """
    Evaluate each page of ``pages`` (tuples of GT box file, DT box file,
    GT image file, DT image file) with its own bipartite graph.

    Return a dict of page ID (image file basename) to pair of
    ground-truth and hypothesis metrics. Page IDs must be unique.
    """
    log = getLogger('ocrd.layout_eval.cli')
    if config is None:
        config = EvaluationConfig()
    page_ids = [os.path.splitext(os.path.basename(page[2]))[0] for page in pages]
    for page_id, page in zip(page_ids, pages):
        if page_ids.count(page_id) > 1:
            raise ValidationError(f"page ID '{page_id}' of ground-truth image '{page[2]}' is not unique")
    results = odict()
    for page_id, (gt_boxfile, dt_boxfile, gt_imgfile, dt_imgfile) in zip(page_ids, pages):
        log.info("processing page %s", page_id)
        gt_rects = read_boxes(gt_boxfile, region_type=config.region_type)
        dt_rects = read_boxes(dt_boxfile, region_type=config.region_type)
        with BipartiteGraph(gt_rects, dt_rects,
                            _load_image(gt_imgfile),
                            _load_image(dt_imgfile),
                            foreground=config.foreground,
                            match=config.match,
                            threshold=config.threshold,
                            res_type_name=config.region_type or '') as graph:
            if debug_dir:
                write_tracker_images(graph, debug_dir, page_id)
            results[page_id] = graph.gtmetrics, graph.hypmetrics
    return results

def _load_image(path):
    try:
        image = Image.open(path)
        image.load()
    except OSError as err:
        raise ResourceError(f"cannot read image '{path}': {err}") from err
    return image
