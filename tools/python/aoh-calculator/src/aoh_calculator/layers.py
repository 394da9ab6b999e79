"""
AoH Calculator — Geospatial Layers
===================================
Windowed, read-only views over the inputs of an AoH calculation.

A layer knows its pixel scale, its geospatial area and the pixel window
it currently covers.  Restricting a layer to a smaller area returns a
new layer of the same concrete class that shares the underlying open
dataset, so the caller can resolve a common intersection once and then
read identical pixel rectangles from every input.

Classes:
    PixelScale        Geospatial units per pixel on each axis.
    GeospatialArea    World-coordinate bounding box.
    RasterWindow      Pixel-space rectangle.
    Layer             Abstract base for all layers.
    RasterLayer       Single band of any rasterio-readable raster.
    UniformAreaLayer  One-pixel-wide raster of per-row pixel areas.
    GeometryLayer     Vector geometry rasterised on demand.

Usage::

    from aoh_calculator.layers import RasterLayer

    with RasterLayer(Path("data/elevation.tif"), dtype="uint16") as dem:
        samples, stride = dem.read_window(RasterWindow(0, 0, 512, 512))
"""

from __future__ import annotations

import copy
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import numpy as np
import numpy.typing as npt
import rasterio
from rasterio.errors import RasterioIOError
from rasterio.features import rasterize
from rasterio.transform import Affine
from rasterio.windows import Window
from shapely.geometry.base import BaseGeometry

from shared.python.exceptions import InputValidationError, LayerAreaError, LayerOpenError

logger = logging.getLogger("aohtoolkit.aoh_calculator.layers")

# Fraction of a pixel by which a requested area may overshoot a layer's
# extent and still be treated as inside it.
GRID_TOLERANCE = 1e-6

LayerT = TypeVar("LayerT", bound="Layer")


# ---------------------------------------------------------------------------
# Geometry value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PixelScale:
    """Size of one pixel in world units.

    ``y`` keeps the sign of the raster's affine transform, so it is
    negative for the usual north-up rasters.
    """

    x: float
    y: float


@dataclass(frozen=True)
class GeospatialArea:
    """World-coordinate bounding box with ``top >= bottom``."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom


@dataclass(frozen=True)
class RasterWindow:
    """Pixel-space rectangle inside a layer."""

    xoff: int
    yoff: int
    xsize: int
    ysize: int

    def __post_init__(self) -> None:
        if min(self.xoff, self.yoff, self.xsize, self.ysize) < 0:
            raise ValueError(f"Raster window values must be non-negative: {self}")

    def to_rasterio(self) -> Window:
        """Equivalent :class:`rasterio.windows.Window`."""
        return Window(self.xoff, self.yoff, self.xsize, self.ysize)


# ---------------------------------------------------------------------------
# Layer ABC
# ---------------------------------------------------------------------------


class Layer(ABC):
    """Abstract base for every input of the AoH calculation.

    Subclasses implement :meth:`read_window`; the geometry bookkeeping
    (current window, area, restriction) lives here.

    Args:
        pixel_scale: Pixel size of the layer.
        extent: Full geospatial extent of the underlying data.
        name: Short label used in log and error messages.
    """

    def __init__(self, pixel_scale: PixelScale, extent: GeospatialArea, name: str) -> None:
        self._pixel_scale = pixel_scale
        self._extent = extent
        self._window = RasterWindow(
            xoff=0,
            yoff=0,
            xsize=round(extent.width / abs(pixel_scale.x)),
            ysize=round(extent.height / abs(pixel_scale.y)),
        )
        self.name = name

    @property
    def pixel_scale(self) -> PixelScale:
        return self._pixel_scale

    @property
    def window(self) -> RasterWindow:
        """Pixel window of the layer within its full extent."""
        return self._window

    @property
    def area(self) -> GeospatialArea:
        """Geospatial area covered by :attr:`window`."""
        xs, ys = abs(self._pixel_scale.x), abs(self._pixel_scale.y)
        left = self._extent.left + self._window.xoff * xs
        top = self._extent.top - self._window.yoff * ys
        return GeospatialArea(
            left=left,
            top=top,
            right=left + self._window.xsize * xs,
            bottom=top - self._window.ysize * ys,
        )

    def restrict_to_area(self: LayerT, area: GeospatialArea) -> LayerT:
        """Return a copy of this layer whose window covers exactly *area*.

        The copy is the same concrete class and shares the open dataset.

        Raises:
            LayerAreaError: If *area* is empty or not inside the layer's
                full extent.
        """
        xs, ys = abs(self._pixel_scale.x), abs(self._pixel_scale.y)
        extent = self._extent
        tol_x, tol_y = xs * GRID_TOLERANCE, ys * GRID_TOLERANCE
        if (
            area.width <= 0
            or area.height <= 0
            or area.left < extent.left - tol_x
            or area.right > extent.right + tol_x
            or area.top > extent.top + tol_y
            or area.bottom < extent.bottom - tol_y
        ):
            raise LayerAreaError(
                f"Area {area} is not within the {self.name} layer extent {extent}"
            )

        restricted = copy.copy(self)
        restricted._window = RasterWindow(
            xoff=round((area.left - extent.left) / xs),
            yoff=round((extent.top - area.top) / ys),
            xsize=round(area.width / xs),
            ysize=round(area.height / ys),
        )
        logger.debug("Restricted %s layer to %s", self.name, restricted._window)
        return restricted

    @abstractmethod
    def read_window(self, window: RasterWindow) -> tuple[npt.NDArray[Any], int]:
        """Read a pixel rectangle relative to :attr:`window`.

        Args:
            window: Rectangle whose offsets are relative to this layer's
                    current window.

        Returns:
            ``(samples, stride)``: a flat array of samples and the number
            of samples per row in that array.
        """

    def close(self) -> None:
        """Release any underlying dataset handle."""

    def __enter__(self: LayerT) -> LayerT:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(name={self.name!r}, "
            f"pixel_scale={self._pixel_scale}, window={self._window})"
        )

    # ------------------------------------------------------------------
    # Protected helpers
    # ------------------------------------------------------------------

    def _absolute(self, window: RasterWindow) -> RasterWindow:
        """Translate *window* from layer-relative to dataset pixel space."""
        if (
            window.xoff + window.xsize > self._window.xsize
            or window.yoff + window.ysize > self._window.ysize
        ):
            raise LayerAreaError(
                f"Window {window} exceeds the {self.name} layer window {self._window}"
            )
        return RasterWindow(
            xoff=self._window.xoff + window.xoff,
            yoff=self._window.yoff + window.yoff,
            xsize=window.xsize,
            ysize=window.ysize,
        )


def _open_dataset(path: Path) -> rasterio.io.DatasetReader:
    """Open *path* with rasterio, wrapping failures in :class:`LayerOpenError`."""
    try:
        dataset = rasterio.open(path)
    except RasterioIOError as exc:
        raise LayerOpenError(str(path), str(exc)) from exc

    transform = dataset.transform
    if transform.b != 0 or transform.d != 0:
        dataset.close()
        raise LayerOpenError(str(path), "rotated rasters are not supported")
    return dataset


# ---------------------------------------------------------------------------
# Concrete layers
# ---------------------------------------------------------------------------


class RasterLayer(Layer):
    """One band of a raster file, used for the elevation and habitat inputs.

    Samples are cast to *dtype* so the rest of the pipeline sees the
    sample types named in the experiment configuration.

    Args:
        path: Path to a GeoTIFF (or any rasterio-supported raster).
        dtype: numpy dtype the samples are returned as.
        name: Label for messages.  Defaults to the file stem.
        band: 1-based band index to read.

    Raises:
        LayerOpenError: If rasterio cannot open *path* or a block fails to read.
    """

    def __init__(
        self,
        path: Path,
        dtype: npt.DTypeLike = np.float64,
        name: str | None = None,
        band: int = 1,
    ) -> None:
        self.path = Path(path)
        dataset = _open_dataset(self.path)
        if not 1 <= band <= dataset.count:
            dataset.close()
            raise LayerOpenError(
                str(self.path), f"band {band} requested but raster has {dataset.count}"
            )

        bounds = dataset.bounds
        super().__init__(
            PixelScale(dataset.transform.a, dataset.transform.e),
            GeospatialArea(left=bounds.left, top=bounds.top, right=bounds.right, bottom=bounds.bottom),
            name or self.path.stem,
        )
        self._dataset = dataset
        self._dtype = np.dtype(dtype)
        self._band = band

    def read_window(self, window: RasterWindow) -> tuple[npt.NDArray[Any], int]:
        try:
            data = self._dataset.read(self._band, window=self._absolute(window).to_rasterio())
        except RasterioIOError as exc:
            raise LayerOpenError(str(self.path), str(exc)) from exc
        return data.astype(self._dtype, copy=False).ravel(), data.shape[1]

    def close(self) -> None:
        self._dataset.close()


class UniformAreaLayer(Layer):
    """Pixel areas stored as a one-pixel-wide raster, one value per row.

    In a geographic projection the area of a pixel depends only on its
    latitude, so a single column describes the whole map.  The layer's
    extent is widened to span longitudes -180 to 180 and every read
    returns one sample per requested row with a stride of 1.

    Raises:
        LayerOpenError: If *path* cannot be opened or is wider than one pixel,
            or a block fails to read.
    """

    def __init__(self, path: Path, dtype: npt.DTypeLike = np.float64, name: str = "area") -> None:
        self.path = Path(path)
        dataset = _open_dataset(self.path)
        if dataset.width != 1:
            dataset.close()
            raise LayerOpenError(
                str(self.path), f"expected a raster one pixel wide, got {dataset.width}"
            )

        bounds = dataset.bounds
        super().__init__(
            PixelScale(dataset.transform.a, dataset.transform.e),
            GeospatialArea(left=-180.0, top=bounds.top, right=180.0, bottom=bounds.bottom),
            name,
        )
        self._dataset = dataset
        self._dtype = np.dtype(dtype)

    def read_window(self, window: RasterWindow) -> tuple[npt.NDArray[Any], int]:
        absolute = self._absolute(window)
        try:
            rows = self._dataset.read(1, window=Window(0, absolute.yoff, 1, absolute.ysize))
        except RasterioIOError as exc:
            raise LayerOpenError(str(self.path), str(exc)) from exc
        return rows.astype(self._dtype, copy=False).ravel(), 1

    def close(self) -> None:
        self._dataset.close()


class GeometryLayer(Layer):
    """A vector geometry rasterised at a fixed pixel scale.

    The extent is the geometry's bounding box snapped outwards to the
    pixel grid anchored at the origin.  Reads burn the geometry into a
    ``uint8`` mask (1 inside, 0 outside) for just the requested window.

    Args:
        geometry: Shapely geometry of the species range.
        pixel_scale: Pixel scale to rasterise at, normally taken from
                     the area layer.
        name: Label for messages.

    Raises:
        InputValidationError: If *geometry* is empty.
    """

    def __init__(self, geometry: BaseGeometry, pixel_scale: PixelScale, name: str = "range") -> None:
        if geometry is None or geometry.is_empty:
            raise InputValidationError("Range geometry is empty")

        xs, ys = abs(pixel_scale.x), abs(pixel_scale.y)
        minx, miny, maxx, maxy = geometry.bounds
        left = math.floor(minx / xs) * xs
        right = max(math.ceil(maxx / xs) * xs, left + xs)
        top = math.ceil(maxy / ys) * ys
        bottom = min(math.floor(miny / ys) * ys, top - ys)
        super().__init__(pixel_scale, GeospatialArea(left, top, right, bottom), name)
        self._geometry = geometry

    def read_window(self, window: RasterWindow) -> tuple[npt.NDArray[Any], int]:
        absolute = self._absolute(window)
        xs, ys = abs(self._pixel_scale.x), abs(self._pixel_scale.y)
        transform = Affine(
            xs, 0.0, self._extent.left + absolute.xoff * xs,
            0.0, -ys, self._extent.top - absolute.yoff * ys,
        )
        mask = rasterize(
            [(self._geometry, 1)],
            out_shape=(window.ysize, window.xsize),
            transform=transform,
            fill=0,
            dtype=np.uint8,
        )
        return mask.ravel(), window.xsize
