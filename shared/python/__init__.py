"""
AoH Toolkit — Shared Python Package
====================================
Re-exports the shared base class, exception hierarchy, and validator
utilities so tools can import from a single location::

    from shared.python import GeoTool, Validators
    from shared.python.exceptions import DataShapeError
"""

from shared.python.base_tool import GeoTool
from shared.python.exceptions import (
    AoHToolkitError,
    CodeTranslationError,
    ColumnNotFoundError,
    ConfigError,
    CRSError,
    DataShapeError,
    ElevationRangeError,
    EmptyHabitatCodeError,
    EmptyIntersectionError,
    ExperimentNotFoundError,
    HabitatAttributeError,
    InputValidationError,
    IntersectionError,
    LayerAreaError,
    LayerOpenError,
    NonNumericHabitatCodeError,
    OutputWriteError,
    RasterError,
    ScaleMismatchError,
    SpeciesLookupError,
    SpeciesNotFoundError,
)
from shared.python.validators import Validators

__all__ = [
    "GeoTool",
    "Validators",
    "AoHToolkitError",
    "InputValidationError",
    "ColumnNotFoundError",
    "ConfigError",
    "ExperimentNotFoundError",
    "CRSError",
    "SpeciesLookupError",
    "SpeciesNotFoundError",
    "ElevationRangeError",
    "HabitatAttributeError",
    "CodeTranslationError",
    "EmptyHabitatCodeError",
    "NonNumericHabitatCodeError",
    "RasterError",
    "LayerOpenError",
    "LayerAreaError",
    "IntersectionError",
    "ScaleMismatchError",
    "EmptyIntersectionError",
    "DataShapeError",
    "OutputWriteError",
]
