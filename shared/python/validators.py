"""
AoH Toolkit — Shared Input Validators
======================================
Precondition checks run from ``validate_inputs`` before any raster is
opened.  Each check raises a toolkit exception instead of returning a
flag, so a failing run stops with one clear message::

    def validate_inputs(self) -> None:
        Validators.assert_file_exists(self.input_path, "Config file")
        Validators.assert_supported_extension(self.input_path, [".json"])
        Validators.assert_output_dir_writable(self.output_path)
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from shared.python.exceptions import (
    ColumnNotFoundError,
    CRSError,
    InputValidationError,
    OutputWriteError,
)


class Validators:
    """Namespace of static precondition checks; never instantiated."""

    # ------------------------------------------------------------------
    # Files & directories
    # ------------------------------------------------------------------

    @staticmethod
    def assert_file_exists(path: Path, label: str = "Input file") -> None:
        """Require *path* to be an existing file.

        Args:
            path: File to check.
            label: Name of the input in the error, e.g. ``"Habitat raster"``.

        Raises:
            InputValidationError: If *path* is missing or is a directory.
        """
        path = Path(path)
        if path.is_dir():
            raise InputValidationError(f"{label} '{path}' is a directory, expected a file.")
        if not path.is_file():
            raise InputValidationError(f"{label} not found: '{path}'.")

    @staticmethod
    def assert_output_dir_writable(output_dir: Path) -> None:
        """Create *output_dir* and its parents if they do not exist yet.

        Raises:
            OutputWriteError: If the directory cannot be created.
        """
        output_dir = Path(output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(output_dir), str(exc)) from exc

    @staticmethod
    def assert_supported_extension(path: Path, extensions: Sequence[str]) -> None:
        """Require *path* to end in one of *extensions* (case-insensitive, with dots).

        Raises:
            InputValidationError: If the suffix is not allowed.
        """
        suffix = Path(path).suffix.lower()
        allowed = [ext.lower() for ext in extensions]
        if suffix not in allowed:
            raise InputValidationError(
                f"Unsupported file extension '{suffix}' for '{Path(path).name}'; "
                f"expected one of: {', '.join(allowed)}"
            )

    # ------------------------------------------------------------------
    # Georeferencing
    # ------------------------------------------------------------------

    @staticmethod
    def assert_crs_valid(crs_string: str) -> None:
        """Require *crs_string* to parse as a CRS (EPSG code, PROJ or WKT).

        Raises:
            CRSError: If pyproj rejects the string.
        """
        # Lazy import; only CRS checks need pyproj.
        from pyproj import CRS  # noqa: PLC0415
        from pyproj.exceptions import CRSError as ProjCRSError  # noqa: PLC0415

        try:
            CRS.from_user_input(crs_string)
        except ProjCRSError as exc:
            raise CRSError(crs_string) from exc

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    @staticmethod
    def assert_columns_exist(df: object, required_columns: Sequence[str]) -> None:
        """Require every name in *required_columns* to be a column of *df*.

        Args:
            df: A pandas or geopandas DataFrame.
            required_columns: Column names to look for.

        Raises:
            ColumnNotFoundError: For the first missing column.
        """
        available = [str(c) for c in df.columns]  # type: ignore[attr-defined]
        missing = [col for col in required_columns if col not in available]
        if missing:
            raise ColumnNotFoundError(missing[0], available)
