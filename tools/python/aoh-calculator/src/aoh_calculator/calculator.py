"""
AoH Calculator — Classification Accumulator
============================================
Streams four co-extensive layers (range mask, per-row pixel area,
elevation, habitat) in bounded row-bands and column-blocks, keeps the
pixels that pass all three filters, sums their area and optionally
hands each finished row-band to an output sink.

A pixel contributes the area of its row when:

* the range mask is nonzero,
* its elevation lies inside the species' closed elevation range, and
* its habitat code is one of the species' flat habitat codes.

Peak memory is one row-band of float64 values regardless of the size of
the window.

Usage::

    from aoh_calculator.calculator import calculate_aoh

    total = calculate_aoh(
        range_layer, area_layer, dem, habitat,
        habitat_codes={1100, 1101},
        elevation_range=ElevationRange(0, 3800),
        output=writer,
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Protocol, Sequence, TypeVar

import numpy as np
import numpy.typing as npt

from shared.python.exceptions import DataShapeError

from aoh_calculator.layers import Layer, RasterWindow
from aoh_calculator.species import ElevationRange

logger = logging.getLogger("aohtoolkit.aoh_calculator.calculator")

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Chunk geometry & output sink
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChunkSize:
    """Maximum block shape read from the layers in one go.

    The default width stays under the 32K image limit of the vector
    renderer; the height bounds the row-band buffer.
    """

    width: int = (1 << 15) - 1
    height: int = 1 << 10

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise ValueError(f"Chunk dimensions must be positive: {self}")


DEFAULT_CHUNK_SIZE = ChunkSize()


class OutputSink(Protocol):
    """Anything that accepts finished row-bands in raster-row order."""

    def write(self, origin: tuple[int, int], data: npt.NDArray[np.float64]) -> None:
        """Write *data* (rows x columns) with its top-left pixel at *origin* ``(x, y)``."""


# ---------------------------------------------------------------------------
# Habitat membership
# ---------------------------------------------------------------------------


def binary_search(values: Sequence[T], key: T) -> int | None:
    """Find *key* in the ascending sequence *values*.

    Returns:
        An index ``i`` with ``values[i] == key``, or ``None`` if absent.
    """
    low, high = 0, len(values)
    while low < high:
        mid = low + (high - low) // 2
        value = values[mid]
        if value == key:
            return mid
        if value < key:  # type: ignore[operator]
            low = mid + 1
        else:
            high = mid
    return None


def sorted_codes(codes: Iterable[int]) -> npt.NDArray[np.int64]:
    """Sorted, de-duplicated habitat codes ready for :func:`contains_sorted`."""
    return np.array(sorted(set(codes)), dtype=np.int64)


def contains_sorted(haystack: npt.NDArray[np.int64], samples: npt.NDArray[Any]) -> npt.NDArray[np.bool_]:
    """Vectorised binary search: which *samples* occur in *haystack*.

    Args:
        haystack: Ascending array without duplicates.
        samples: Habitat samples of any integer dtype.

    Returns:
        Boolean array shaped like *samples*.
    """
    if haystack.size == 0:
        return np.zeros(samples.shape, dtype=bool)
    samples = samples.astype(np.int64, copy=False)
    index = np.searchsorted(haystack, samples)
    np.minimum(index, haystack.size - 1, out=index)
    return haystack[index] == samples


# ---------------------------------------------------------------------------
# Read validation
# ---------------------------------------------------------------------------


def _read_exact(layer: Layer, block: RasterWindow) -> npt.NDArray[Any]:
    """Read a full-resolution block, insisting on an unpadded buffer."""
    samples, stride = layer.read_window(block)
    expected = block.xsize * block.ysize
    if samples.size != expected or stride != block.xsize:
        raise DataShapeError(
            layer.name,
            f"{expected} samples with stride {block.xsize}",
            f"{samples.size} samples with stride {stride}",
        )
    return samples.reshape(block.ysize, block.xsize)


def _read_rows(layer: Layer, block: RasterWindow) -> npt.NDArray[Any]:
    """Read one value per block row from the area layer."""
    samples, stride = layer.read_window(block)
    if samples.size != block.ysize or stride != 1:
        raise DataShapeError(
            layer.name,
            f"{block.ysize} samples with stride 1",
            f"{samples.size} samples with stride {stride}",
        )
    return samples


def _read_mask(layer: Layer, block: RasterWindow) -> npt.NDArray[np.bool_]:
    """Read the range mask, which may come back with padded rows."""
    samples, stride = layer.read_window(block)
    width, height = block.xsize, block.ysize
    if (
        stride < width
        or samples.size < width * height
        or samples.size < (height - 1) * stride + width
    ):
        raise DataShapeError(
            layer.name,
            f"at least {width * height} samples with stride >= {width}",
            f"{samples.size} samples with stride {stride}",
        )
    rows = np.arange(height)[:, np.newaxis] * stride + np.arange(width)
    return samples[rows] != 0


# ---------------------------------------------------------------------------
# Accumulator
# ---------------------------------------------------------------------------


def calculate_aoh(
    geometry: Layer,
    area: Layer,
    elevation: Layer,
    habitat: Layer,
    habitat_codes: Iterable[int],
    elevation_range: ElevationRange,
    output: OutputSink | None = None,
    chunk_size: ChunkSize = DEFAULT_CHUNK_SIZE,
) -> float:
    """Sum the area of every pixel that passes the range, elevation and habitat filters.

    All four layers must already be restricted to the same window (see
    :func:`aoh_calculator.intersection.restrict_layers`).

    Args:
        geometry: Range mask layer; any nonzero sample is inside the range.
        area: Per-row pixel area layer.
        elevation: Elevation layer.
        habitat: Habitat code layer.
        habitat_codes: Flat habitat codes the species can use.
        elevation_range: Inclusive elevation bounds.
        output: Optional sink receiving each finished row-band.
        chunk_size: Maximum block shape to read at once.

    Returns:
        The total area of habitat, in the units of the area layer.

    Raises:
        DataShapeError: If the layers' windows differ or any read returns
            a buffer of the wrong shape.  Bands already written to
            *output* must then be discarded by the caller.
    """
    layers = (geometry, area, elevation, habitat)
    target = geometry.window
    for layer in layers[1:]:
        if (layer.window.xsize, layer.window.ysize) != (target.xsize, target.ysize):
            raise DataShapeError(
                layer.name,
                f"window {target.xsize}x{target.ysize}",
                f"window {layer.window.xsize}x{layer.window.ysize}",
            )

    codes = sorted_codes(habitat_codes)
    lower, upper = elevation_range.lower, elevation_range.upper

    band = np.zeros((min(chunk_size.height, target.ysize), target.xsize), dtype=np.float64)
    total = 0.0

    for y in range(0, target.ysize, chunk_size.height):
        height = min(chunk_size.height, target.ysize - y)

        for x in range(0, target.xsize, chunk_size.width):
            width = min(chunk_size.width, target.xsize - x)
            block = RasterWindow(xoff=x, yoff=y, xsize=width, ysize=height)

            inside = _read_mask(geometry, block)
            heights = _read_exact(elevation, block).astype(np.int64, copy=False)
            habitats = _read_exact(habitat, block)
            row_area = _read_rows(area, block).astype(np.float64, copy=False)

            selected = (
                inside
                & (heights >= lower)
                & (heights <= upper)
                & contains_sorted(codes, habitats)
            )
            values = np.where(selected, row_area[:, np.newaxis], 0.0)
            total += float(values.sum(dtype=np.float64))
            band[:height, x:x + width] = values

        if output is not None:
            output.write((0, y), band[:height])
        logger.debug("Processed rows %d-%d of %d", y, y + height, target.ysize)

    return total
