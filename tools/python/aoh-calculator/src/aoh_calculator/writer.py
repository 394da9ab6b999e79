"""
AoH Calculator — GeoTIFF Output
================================
Writes the per-pixel area of habitat to a single-band float64 BigTIFF,
one row-band at a time and strictly in raster-row order.

Georeferencing is given the way GeoTIFF describes it: a pixel scale, a
tie point anchoring pixel (0, 0) to a world coordinate, and a GeoKey
directory.  The keys that rasterio/GDAL express through other means are
mapped onto them (the CRS and the ``AREA_OR_POINT`` tag).

Usage::

    with GeoTiffWriter(path, width, height, scale, (area.left, area.top)) as writer:
        calculate_aoh(..., output=writer)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import numpy as np
import numpy.typing as npt
import rasterio
from rasterio.crs import CRS
from rasterio.errors import CRSError as RasterioCRSError
from rasterio.errors import RasterioIOError
from rasterio.transform import Affine
from rasterio.windows import Window

from shared.python.exceptions import CRSError, OutputWriteError

from aoh_calculator.layers import PixelScale

logger = logging.getLogger("aohtoolkit.aoh_calculator.writer")


# ---------------------------------------------------------------------------
# GeoKey directory
# ---------------------------------------------------------------------------

GT_MODEL_TYPE_GEO_KEY = 1024
GT_RASTER_TYPE_GEO_KEY = 1025
GEODETIC_CRS_GEO_KEY = 2048
GEODETIC_CITATION_GEO_KEY = 2049
PROJECTED_CRS_GEO_KEY = 3072

MODEL_TYPE_PROJECTED = 1
MODEL_TYPE_GEOGRAPHIC = 2
RASTER_PIXEL_IS_AREA = 1
RASTER_PIXEL_IS_POINT = 2

GEO_ASCII_PARAMS_TAG = 34737


@dataclass(frozen=True)
class GeoKeyEntry:
    """One entry of a GeoTIFF GeoKey directory.

    Attributes:
        key_id: GeoKey id, e.g. ``2048`` for GeodeticCRSGeoKey.
        tiff_tag: Tag holding the value, or ``None`` when the value is
                  stored inline in ``value_or_index``.
        value_count: Number of values.
        value_or_index: The value itself, or an index into ``tiff_tag``.
    """

    key_id: int
    tiff_tag: int | None
    value_count: int
    value_or_index: int


DEFAULT_GEO_KEYS: tuple[GeoKeyEntry, ...] = (
    GeoKeyEntry(GT_MODEL_TYPE_GEO_KEY, None, 1, MODEL_TYPE_GEOGRAPHIC),
    GeoKeyEntry(GT_RASTER_TYPE_GEO_KEY, None, 1, RASTER_PIXEL_IS_AREA),
    GeoKeyEntry(GEODETIC_CITATION_GEO_KEY, GEO_ASCII_PARAMS_TAG, 1, 2),
    GeoKeyEntry(GEODETIC_CRS_GEO_KEY, None, 1, 4326),
)


def resolve_geo_keys(crs: str, geo_keys: Sequence[GeoKeyEntry]) -> tuple[CRS, dict[str, str]]:
    """Combine a CRS string and GeoKey entries into a rasterio CRS and tags.

    A geodetic or projected CRS key overrides *crs*.  The model type key
    must agree with whether the CRS is geographic.

    Raises:
        CRSError: If the CRS cannot be parsed or contradicts the model type.
    """
    code: str = crs
    tags: dict[str, str] = {}
    model_type: int | None = None

    for entry in geo_keys:
        if entry.key_id in (GEODETIC_CRS_GEO_KEY, PROJECTED_CRS_GEO_KEY) and entry.tiff_tag is None:
            code = f"EPSG:{entry.value_or_index}"
        elif entry.key_id == GT_RASTER_TYPE_GEO_KEY:
            tags["AREA_OR_POINT"] = "Point" if entry.value_or_index == RASTER_PIXEL_IS_POINT else "Area"
        elif entry.key_id == GT_MODEL_TYPE_GEO_KEY:
            model_type = entry.value_or_index
        else:
            logger.debug("GeoKey %d is derived from the CRS; entry ignored", entry.key_id)

    try:
        resolved = CRS.from_user_input(code)
    except RasterioCRSError as exc:
        raise CRSError(code) from exc

    if model_type == MODEL_TYPE_GEOGRAPHIC and not resolved.is_geographic:
        raise CRSError(code, "GeoKey model type is geographic but the CRS is projected.")
    if model_type == MODEL_TYPE_PROJECTED and not resolved.is_projected:
        raise CRSError(code, "GeoKey model type is projected but the CRS is not.")
    return resolved, tags


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


class GeoTiffWriter:
    """Append-only, band-by-band GeoTIFF writer.

    Implements the :class:`~aoh_calculator.calculator.OutputSink`
    protocol.  Bands must arrive in raster-row order covering the full
    width; the file is only valid once :meth:`close` has been called.

    Args:
        path: Output file path.
        width: Raster width in pixels.
        height: Raster height in pixels.
        pixel_scale: Pixel size; ``y`` negative for north-up output.
        tie_point: World coordinate ``(x, y)`` of the top-left corner of pixel (0, 0).
        crs: CRS string, overridden by a CRS GeoKey in *geo_keys*.
        geo_keys: GeoKey directory entries.

    Raises:
        CRSError: If the georeferencing is inconsistent.
        OutputWriteError: If the file cannot be created.
    """

    def __init__(
        self,
        path: Path,
        width: int,
        height: int,
        pixel_scale: PixelScale,
        tie_point: tuple[float, float],
        crs: str = "EPSG:4326",
        geo_keys: Sequence[GeoKeyEntry] = DEFAULT_GEO_KEYS,
    ) -> None:
        self.path = Path(path)
        self.width = width
        self.height = height
        self._next_row = 0

        resolved_crs, tags = resolve_geo_keys(crs, geo_keys)
        transform = Affine(
            abs(pixel_scale.x), 0.0, tie_point[0],
            0.0, -abs(pixel_scale.y), tie_point[1],
        )
        try:
            self._dataset = rasterio.open(
                self.path, "w",
                driver="GTiff",
                width=width,
                height=height,
                count=1,
                dtype="float64",
                crs=resolved_crs,
                transform=transform,
                BIGTIFF="YES",
            )
            if tags:
                self._dataset.update_tags(**tags)
        except (RasterioIOError, OSError) as exc:
            raise OutputWriteError(str(self.path), str(exc)) from exc

    def write(self, origin: tuple[int, int], data: npt.NDArray[np.float64]) -> None:
        """Write the band *data* with its top-left pixel at *origin*.

        Raises:
            OutputWriteError: If the band is out of order, does not span
                the full width, overruns the raster, or the write fails.
        """
        x, y = origin
        rows, cols = data.shape
        if x != 0 or cols != self.width:
            raise OutputWriteError(
                str(self.path), f"band at {origin} of width {cols} does not span width {self.width}"
            )
        if y != self._next_row:
            raise OutputWriteError(
                str(self.path), f"band at row {y} written out of order, expected row {self._next_row}"
            )
        if y + rows > self.height:
            raise OutputWriteError(
                str(self.path), f"band rows {y}-{y + rows} exceed raster height {self.height}"
            )
        try:
            self._dataset.write(data, 1, window=Window(0, y, cols, rows))
        except (RasterioIOError, OSError) as exc:
            raise OutputWriteError(str(self.path), str(exc)) from exc
        self._next_row = y + rows

    @property
    def complete(self) -> bool:
        """``True`` once every row of the raster has been written."""
        return self._next_row == self.height

    def close(self) -> None:
        """Flush and close the file, finalising the GeoTIFF."""
        if self._dataset.closed:
            return
        try:
            self._dataset.close()
        except (RasterioIOError, OSError) as exc:
            raise OutputWriteError(str(self.path), str(exc)) from exc

    def __enter__(self) -> GeoTiffWriter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
