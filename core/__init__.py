"""Core package - Domain models, constants and error kinds."""

from .models import (
    BlankArea,
    Component,
    SourceCrop,
    PlacementTransform,
    DetectionConfig,
    BrushSettings,
    FormSummary,
)
from .constants import (
    FitMode,
    Tool,
    HistoryState,
    ErrorKind,
    LUMA_WEIGHTS,
    DEFAULT_DETECTION_PARAMS,
    HIGHLIGHT_FILL,
    HOVER_FILL,
)
from .exceptions import (
    FormFillError,
    DecodeFailure,
    ContextUnavailable,
    FormNotFound,
)

__all__ = [
    # Models
    'BlankArea',
    'Component',
    'SourceCrop',
    'PlacementTransform',
    'DetectionConfig',
    'BrushSettings',
    'FormSummary',

    # Constants
    'FitMode',
    'Tool',
    'HistoryState',
    'ErrorKind',
    'LUMA_WEIGHTS',
    'DEFAULT_DETECTION_PARAMS',
    'HIGHLIGHT_FILL',
    'HOVER_FILL',

    # Errors
    'FormFillError',
    'DecodeFailure',
    'ContextUnavailable',
    'FormNotFound',
]
