"""
AoH Calculator
==============
Area of Habitat calculation for a single species: habitat code
translation, layer intersection and a chunked classification
accumulator that streams rasters into a GeoTIFF.

Public API::

    from aoh_calculator.pipeline import AoHCalculator
    from aoh_calculator.calculator import calculate_aoh
    from aoh_calculator.habitat_codes import translate_codes

Modules:
    habitat_codes — IUCN to Jung habitat code translation
    layers        — Raster, area and geometry layers with windowing
    intersection  — Common-window resolution across layers
    calculator    — Chunked range/elevation/habitat accumulator
    species       — IUCN batch SQLite store
    range_source  — Species range geometry loading
    writer        — Band-by-band GeoTIFF output
    config        — JSON experiment configuration
    pipeline      — Main orchestrator (``GeoTool`` subclass)
"""

from __future__ import annotations

__version__ = "1.0.0"
