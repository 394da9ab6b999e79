"""
Tests — Shared Validators & Base Tool
======================================
Unit tests for :class:`~shared.python.validators.Validators` and the
:class:`~shared.python.base_tool.GeoTool` template method.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from shared.python.base_tool import GeoTool
from shared.python.exceptions import (
    AoHToolkitError,
    ColumnNotFoundError,
    CRSError,
    InputValidationError,
    OutputWriteError,
)
from shared.python.validators import Validators


class TestValidators:
    def test_file_exists_passes(self, tmp_path: Path) -> None:
        path = tmp_path / "a.txt"
        path.write_text("x", encoding="utf-8")
        Validators.assert_file_exists(path)

    def test_missing_file_uses_label(self, tmp_path: Path) -> None:
        with pytest.raises(InputValidationError, match="Habitat raster not found"):
            Validators.assert_file_exists(tmp_path / "none.tif", "Habitat raster")

    def test_directory_is_not_a_file(self, tmp_path: Path) -> None:
        with pytest.raises(InputValidationError, match="directory"):
            Validators.assert_file_exists(tmp_path)

    def test_output_dir_created(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b"
        Validators.assert_output_dir_writable(target)
        assert target.is_dir()

    def test_output_dir_over_file_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        with pytest.raises(OutputWriteError):
            Validators.assert_output_dir_writable(blocker / "sub")

    def test_extension_checked(self, tmp_path: Path) -> None:
        Validators.assert_supported_extension(tmp_path / "config.JSON", [".json"])
        with pytest.raises(InputValidationError, match="Unsupported file extension"):
            Validators.assert_supported_extension(tmp_path / "config.yaml", [".json"])

    def test_crs_valid(self) -> None:
        Validators.assert_crs_valid("EPSG:4326")

    def test_crs_invalid(self) -> None:
        with pytest.raises(CRSError) as exc_info:
            Validators.assert_crs_valid("not a crs")
        assert exc_info.value.crs_string == "not a crs"

    def test_columns_exist(self) -> None:
        df = pd.DataFrame({"id_no": [1], "geometry": [None]})
        Validators.assert_columns_exist(df, ["id_no"])
        with pytest.raises(ColumnNotFoundError) as exc_info:
            Validators.assert_columns_exist(df, ["taxid"])
        assert exc_info.value.available == ["id_no", "geometry"]


class _RecordingTool(GeoTool):
    def __init__(self, input_path: Path, output_path: Path, fail: bool = False) -> None:
        super().__init__(input_path, output_path)
        self.calls: list[str] = []
        self.fail = fail

    def validate_inputs(self) -> None:
        self.calls.append("validate")
        if self.fail:
            raise InputValidationError("bad input")

    def process(self) -> None:
        self.calls.append("process")


class TestGeoTool:
    def test_run_validates_then_processes(self, tmp_path: Path) -> None:
        tool = _RecordingTool(tmp_path / "in", tmp_path / "out")
        tool.run()
        assert tool.calls == ["validate", "process"]

    def test_validation_failure_stops_run(self, tmp_path: Path) -> None:
        tool = _RecordingTool(tmp_path / "in", tmp_path / "out", fail=True)
        with pytest.raises(AoHToolkitError, match="bad input"):
            tool.run()
        assert tool.calls == ["validate"]
