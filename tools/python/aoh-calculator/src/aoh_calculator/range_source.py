"""
AoH Calculator — Species Range Geometry
========================================
Loads a species' range polygons from a vector file (GeoPackage,
shapefile, GeoJSON) with :mod:`geopandas` and merges them into one
geometry ready for :class:`~aoh_calculator.layers.GeometryLayer`.
"""

from __future__ import annotations

import logging
from pathlib import Path

import geopandas as gpd
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from shared.python.exceptions import LayerOpenError, SpeciesNotFoundError
from shared.python.validators import Validators

logger = logging.getLogger("aohtoolkit.aoh_calculator.range_source")


def geometry_for_species(path: Path, taxid: int, id_column: str = "id_no") -> BaseGeometry:
    """Return the union of every range feature belonging to *taxid*.

    Args:
        path: Vector file holding the range polygons.
        taxid: IUCN taxon id to select.
        id_column: Attribute column holding the taxon id.

    Returns:
        A shapely geometry covering the species' range.

    Raises:
        LayerOpenError: If the vector file cannot be read.
        ColumnNotFoundError: If *id_column* is missing.
        SpeciesNotFoundError: If no feature has a non-empty geometry for *taxid*.
    """
    path = Path(path)
    try:
        ranges = gpd.read_file(path)
    except Exception as exc:  # noqa: BLE001 — driver errors vary by IO engine
        raise LayerOpenError(str(path), str(exc)) from exc

    Validators.assert_columns_exist(ranges, [id_column])

    species = ranges[ranges[id_column] == taxid]
    geometries = [g for g in species.geometry if g is not None and not g.is_empty]
    if not geometries:
        raise SpeciesNotFoundError(taxid, source=f"range file '{path.name}'")

    logger.debug("Merging %d range feature(s) for species %d", len(geometries), taxid)
    return unary_union(geometries)
