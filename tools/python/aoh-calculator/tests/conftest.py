"""
Shared fixtures for the AoH Calculator tests.

Builds small synthetic inputs on disk: GeoTIFFs via rasterio, an IUCN
batch SQLite database, a GeoPackage of ranges and a config file tying
them together into one experiment.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Callable

import geopandas as gpd
import numpy as np
import pytest
import rasterio
from rasterio.transform import from_bounds
from shapely.geometry import box

# Species fixtures in the test database.
GOOD_SPECIES = 1001
BAD_ELEVATION_SPECIES = 1002
MISSING_ELEVATION_SPECIES = 1003
BAD_SEASON_SPECIES = 1004

RasterFactory = Callable[..., Path]


def write_raster(
    path: Path,
    data: np.ndarray,
    bounds: tuple[float, float, float, float],
    crs: str = "EPSG:4326",
) -> Path:
    """Write a single-band GeoTIFF of *data* covering *bounds* (west, south, east, north)."""
    height, width = data.shape
    with rasterio.open(
        path, "w",
        driver="GTiff",
        height=height,
        width=width,
        count=1,
        dtype=data.dtype,
        crs=crs,
        transform=from_bounds(*bounds, width, height),
    ) as dst:
        dst.write(data, 1)
    return path


@pytest.fixture()
def raster_factory(tmp_path: Path) -> RasterFactory:
    """Return a helper that writes a GeoTIFF into ``tmp_path``."""

    def _make(name: str, data: np.ndarray, bounds: tuple[float, float, float, float]) -> Path:
        return write_raster(tmp_path / name, data, bounds)

    return _make


@pytest.fixture()
def species_db(tmp_path: Path) -> Path:
    """SQLite database laid out like an IUCN batch export."""
    path = tmp_path / "iucn.db"
    with sqlite3.connect(path) as conn:
        conn.executescript(
            """
            CREATE TABLE taxonomy (id INTEGER PRIMARY KEY, elevationLower INTEGER, elevationUpper INTEGER);
            CREATE TABLE habitat (id INTEGER PRIMARY KEY, code TEXT);
            CREATE TABLE taxonomy_habitat_m2m (
                taxonomy INTEGER, habitat INTEGER, season TEXT, suitability TEXT, majorImportance INTEGER
            );
            """
        )
        conn.executemany(
            "INSERT INTO taxonomy VALUES (?, ?, ?)",
            [
                (GOOD_SPECIES, 0, 3800),
                (BAD_ELEVATION_SPECIES, 500, 100),
                (MISSING_ELEVATION_SPECIES, None, None),
                (BAD_SEASON_SPECIES, 0, 1000),
            ],
        )
        conn.executemany(
            "INSERT INTO habitat VALUES (?, ?)",
            [(1, "14.1"), (2, "1.4"), (3, "9.8.5"), (4, "5")],
        )
        conn.executemany(
            "INSERT INTO taxonomy_habitat_m2m VALUES (?, ?, ?, ?, ?)",
            [
                (GOOD_SPECIES, 1, "Resident", "Suitable", 1),
                (GOOD_SPECIES, 2, "Breeding Season", "Marginal", 0),
                (GOOD_SPECIES, 3, "Passage", "Suitable", 0),
                (GOOD_SPECIES, 4, "Non-Breeding Season", "Unknown", 0),
                (BAD_SEASON_SPECIES, 1, "Sometimes", "Suitable", 0),
            ],
        )
    return path


@pytest.fixture()
def range_file(tmp_path: Path) -> Path:
    """GeoPackage whose two features for GOOD_SPECIES together cover (0, 0)-(4, 4)."""
    path = tmp_path / "ranges.gpkg"
    ranges = gpd.GeoDataFrame(
        {"id_no": [GOOD_SPECIES, GOOD_SPECIES, 9999]},
        geometry=[box(0, 0, 2, 4), box(2, 0, 4, 4), box(10, 10, 11, 11)],
        crs="EPSG:4326",
    )
    ranges.to_file(path, driver="GPKG")
    return path


@pytest.fixture()
def experiment_inputs(tmp_path: Path, species_db: Path, range_file: Path) -> dict[str, Path]:
    """4x4 one-degree rasters at (0, 0)-(4, 4) plus a matching area column.

    Elevation is 100 everywhere and habitat is Jung code 1401, so every
    pixel of GOOD_SPECIES' range counts as habitat.
    """
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return {
        "habitat": write_raster(
            data_dir / "habitat.tif", np.full((4, 4), 1401, dtype=np.int16), (0, 0, 4, 4)
        ),
        "elevation": write_raster(
            data_dir / "elevation.tif", np.full((4, 4), 100, dtype=np.uint16), (0, 0, 4, 4)
        ),
        "area": write_raster(
            data_dir / "area.tif", np.ones((4, 1), dtype=np.float32), (-180, 0, -179, 4)
        ),
        "range": range_file,
        "iucn_batch": species_db,
    }


@pytest.fixture()
def config_file(tmp_path: Path, experiment_inputs: dict[str, Path]) -> Path:
    """config.json with a single ``jung`` experiment over :func:`experiment_inputs`."""
    config = {
        "experiments": {
            "jung": {
                "translator": "jung",
                **{key: str(path) for key, path in experiment_inputs.items()},
            }
        }
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config), encoding="utf-8")
    return path
