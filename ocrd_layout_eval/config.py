import json
from typing import Optional
from dataclasses import dataclass
from importlib.resources import files

from .errors import ValidationError
from .pixels import PixelClass, check_classes

OCRD_TOOL = json.loads(files(__package__).joinpath('ocrd-tool.json').read_text(encoding='utf-8'))

TOOL = 'page-layout-evaluate'

PARAMETERS = OCRD_TOOL['tools'][TOOL]['parameters']

DEFAULTS = {name: PARAMETERS[name]['default'] for name in PARAMETERS}

@dataclass(frozen=True)
class EvaluationConfig:
    foreground: PixelClass = PixelClass.from_name(DEFAULTS['foreground'])
    match: PixelClass = PixelClass.from_name(DEFAULTS['match'])
    threshold: float = DEFAULTS['threshold']
    region_type: Optional[str] = DEFAULTS['region-type'] or None

    def __post_init__(self):
        check_classes(self.foreground, self.match)
        if not 0.0 < self.threshold <= 1.0:
            raise ValidationError(f"threshold must be in (0, 1], got {self.threshold}")

    @classmethod
    def from_parameters(cls, parameters=None):
        """
        Merge ``parameters`` (as named in the ocrd-tool.json) over the defaults.

        Entries which are None are ignored; unknown names are an error.
        """
        params = dict(DEFAULTS)
        for name, value in (parameters or {}).items():
            if name not in PARAMETERS:
                raise ValidationError(f"unknown parameter '{name}'")
            if value is not None:
                params[name] = value
        for name in ('foreground', 'match'):
            if (isinstance(params[name], str) and
                params[name] not in PARAMETERS[name]['enum']):
                raise ValidationError(f"invalid value '{params[name]}' for parameter '{name}'")
        return cls(foreground=PixelClass.from_name(params['foreground']),
                   match=PixelClass.from_name(params['match']),
                   threshold=float(params['threshold']),
                   region_type=params['region-type'] or None)
