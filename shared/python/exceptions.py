"""
AoH Toolkit — Custom Exception Hierarchy
=========================================
Every AoH Toolkit module raises exceptions from this module so callers
can catch them at the right level of granularity.

Hierarchy::

    AoHToolkitError                      ← catch-all base
    ├── InputValidationError             ← bad files, missing columns, etc.
    │   ├── ColumnNotFoundError          ← table / vector column missing
    │   └── ConfigError                  ← malformed experiment config
    │       └── ExperimentNotFoundError  ← unknown experiment key
    ├── CRSError                         ← invalid / unknown CRS string
    ├── SpeciesLookupError               ← species database problems
    │   ├── SpeciesNotFoundError         ← taxon id absent
    │   ├── ElevationRangeError          ← stored bounds violate lower < upper
    │   └── HabitatAttributeError        ← unknown season / suitability label
    ├── CodeTranslationError             ← IUCN code cannot be flattened
    │   ├── EmptyHabitatCodeError
    │   └── NonNumericHabitatCodeError
    ├── RasterError                      ← layer / raster processing issues
    │   ├── LayerOpenError               ← input raster or vector unreadable
    │   ├── LayerAreaError               ← restriction outside layer extent
    │   ├── IntersectionError
    │   │   ├── ScaleMismatchError       ← layers differ in pixel scale
    │   │   └── EmptyIntersectionError   ← layers do not overlap
    │   └── DataShapeError               ← windowed read of the wrong shape
    └── OutputWriteError                 ← cannot write to output path

Usage::

    from shared.python.exceptions import SpeciesNotFoundError

    raise SpeciesNotFoundError(22694927)
"""

from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class AoHToolkitError(Exception):
    """Base exception for all AoH Toolkit errors.

    Catch this to handle any toolkit error without caring about the
    exact subtype.

    Args:
        message: Human-readable description of the error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation & configuration
# ---------------------------------------------------------------------------


class InputValidationError(AoHToolkitError):
    """Raised when inputs fail pre-processing validation.

    This is the parent class for more specific input problems.
    """


class ColumnNotFoundError(InputValidationError):
    """Raised when an expected column is absent from a tabular dataset.

    Args:
        column: The name of the missing column.
        available: List of column names that ARE present, used to
                   generate a helpful error message.

    Example::

        raise ColumnNotFoundError("id_no", gdf.columns.tolist())
    """

    def __init__(self, column: str, available: list[str]) -> None:
        available_str = ", ".join(f"'{c}'" for c in available)
        super().__init__(
            f"Column '{column}' not found. Available columns: {available_str}"
        )
        self.column: str = column
        self.available: list[str] = available


class ConfigError(InputValidationError):
    """Raised when the experiment configuration file is malformed."""


class ExperimentNotFoundError(ConfigError):
    """Raised when the requested experiment key is not in the config.

    Args:
        experiment: The experiment name that was requested.
        available: Experiment names that ARE defined.
    """

    def __init__(self, experiment: str, available: list[str]) -> None:
        available_str = ", ".join(f"'{e}'" for e in available) or "none"
        super().__init__(
            f"Failed to find experiment '{experiment}'. "
            f"Defined experiments: {available_str}"
        )
        self.experiment: str = experiment
        self.available: list[str] = available


# ---------------------------------------------------------------------------
# CRS
# ---------------------------------------------------------------------------


class CRSError(AoHToolkitError):
    """Raised when a coordinate reference system string cannot be parsed
    or does not match the rest of the output georeferencing.

    Args:
        crs_string: The raw CRS string that caused the error
                    (e.g. ``"EPSG:99999"``).
        reason: Optional extra detail.
    """

    def __init__(self, crs_string: str, reason: str = "") -> None:
        detail = reason or (
            "Use an EPSG code (e.g. 'EPSG:4326') or a valid WKT/PROJ string."
        )
        super().__init__(f"Invalid or unrecognised CRS: '{crs_string}'. {detail}")
        self.crs_string: str = crs_string
        self.reason: str = reason


# ---------------------------------------------------------------------------
# Species database
# ---------------------------------------------------------------------------


class SpeciesLookupError(AoHToolkitError):
    """Raised when species data cannot be retrieved from the store."""


class SpeciesNotFoundError(SpeciesLookupError):
    """Raised when a taxon id has no matching record.

    Args:
        taxid: The IUCN taxon id that was looked up.
        source: Which source lacked the species (database, range file).
    """

    def __init__(self, taxid: int, source: str = "species database") -> None:
        super().__init__(f"No match found for species {taxid} in {source}")
        self.taxid: int = taxid
        self.source: str = source


class ElevationRangeError(SpeciesLookupError):
    """Raised when stored elevation bounds do not satisfy ``lower < upper``.

    Args:
        lower: Lower elevation bound as stored.
        upper: Upper elevation bound as stored.
    """

    def __init__(self, lower: int, upper: int) -> None:
        super().__init__(
            f"Invalid elevation range {lower}..{upper}: lower must be below upper"
        )
        self.lower: int = lower
        self.upper: int = upper


class HabitatAttributeError(SpeciesLookupError):
    """Raised when a habitat row carries an unknown season or suitability.

    Args:
        attribute: ``"season"`` or ``"suitability"``.
        value: The unrecognised label.
    """

    def __init__(self, attribute: str, value: Any) -> None:
        super().__init__(f"Unrecognised habitat {attribute}: {value!r}")
        self.attribute: str = attribute
        self.value: Any = value


# ---------------------------------------------------------------------------
# Habitat code translation
# ---------------------------------------------------------------------------


class CodeTranslationError(AoHToolkitError):
    """Raised when an IUCN habitat code cannot be converted to a flat code."""


class EmptyHabitatCodeError(CodeTranslationError):
    """Raised for an empty habitat code string."""

    def __init__(self) -> None:
        super().__init__("Habitat code is empty")


class NonNumericHabitatCodeError(CodeTranslationError):
    """Raised when a dotted habitat code has a non-numeric segment.

    Args:
        code: The offending habitat code.
    """

    def __init__(self, code: str) -> None:
        super().__init__(f"Habitat code '{code}' contains non-numeric parts")
        self.code: str = code


# ---------------------------------------------------------------------------
# Raster
# ---------------------------------------------------------------------------


class RasterError(AoHToolkitError):
    """Raised for general raster processing failures (rasterio / numpy).

    Subclass this for more specific raster errors.
    """


class LayerOpenError(RasterError):
    """Raised when an input raster or vector layer cannot be opened.

    Args:
        path: The file that failed to open.
        reason: Underlying library error message.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to open {path}: {reason}")
        self.path: str = path
        self.reason: str = reason


class LayerAreaError(RasterError):
    """Raised when a layer is restricted to an area outside its extent."""


class IntersectionError(RasterError):
    """Raised when a common processing window cannot be resolved."""


class ScaleMismatchError(IntersectionError):
    """Raised when layers do not share one pixel scale.

    Args:
        scales: The pixel scale of every layer, in input order.
    """

    def __init__(self, scales: list[Any]) -> None:
        listed = ", ".join(str(s) for s in scales)
        super().__init__(f"Layers have mismatched pixel scales: {listed}")
        self.scales: list[Any] = scales


class EmptyIntersectionError(IntersectionError):
    """Raised when the layers have no area in common.

    Args:
        area: The degenerate rectangle that was computed.
    """

    def __init__(self, area: Any) -> None:
        super().__init__(f"Layers do not intersect (computed area {area})")
        self.area: Any = area


class DataShapeError(RasterError):
    """Raised when a windowed read returns data of an unexpected shape.

    Args:
        layer: Name of the layer that produced the read.
        expected: Description of the expected sample count / stride.
        actual: Description of what was returned.
    """

    def __init__(self, layer: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Too much data from {layer} layer: expected {expected}, got {actual}"
        )
        self.layer: str = layer
        self.expected: str = expected
        self.actual: str = actual


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(AoHToolkitError):
    """Raised when output cannot be written to disk.

    Args:
        output_path: String representation of the path that failed.
        reason: Underlying OS or library error message.

    Example::

        raise OutputWriteError("/read-only/dir/123-resident.tif", "Permission denied")
    """

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write output to '{output_path}': {reason}"
        )
        self.output_path: str = output_path
        self.reason: str = reason
