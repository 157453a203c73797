from ocrd_utils import getLogger

from .errors import ValidationError
from .geometry import Rectangle

def parse_boxes(lines, region_type=None, log=None):
    """
    Parse rectangles from the lines of a box file.

    Each line holds one box as ``TYPE LEFT TOP RIGHT BOTTOM`` (or just the
    four coordinates, without type). Blank lines and ``#`` comments are
    ignored. If ``region_type`` is given, then boxes of other (or no) type
    are skipped.

    Return the list of rectangles in file order.
    """
    if log is None:
        log = getLogger('ocrd.layout_eval.boxfile')
    rects = []
    for lineno, line in enumerate(lines, 1):
        line = line.split('#', 1)[0].strip()
        if not line:
            continue
        fields = line.split()
        if len(fields) == 5:
            type_, coords = fields[0], fields[1:]
        elif len(fields) == 4:
            type_, coords = None, fields
        else:
            raise ValidationError(f"line {lineno}: expected '[TYPE] LEFT TOP RIGHT BOTTOM', got '{line}'")
        if region_type and type_ != region_type:
            if type_ is None:
                log.warning("skipping box without type on line %d", lineno)
            else:
                log.debug("skipping box of type %s on line %d", type_, lineno)
            continue
        try:
            left, top, right, bottom = map(int, coords)
        except ValueError:
            raise ValidationError(f"line {lineno}: non-integer coordinates in '{line}'") from None
        rects.append(Rectangle(left, top, right, bottom))
    return rects

def read_boxes(path, region_type=None, log=None):
    with open(path, 'r', encoding='utf-8') as boxfile:
        return parse_boxes(boxfile, region_type=region_type, log=log)
