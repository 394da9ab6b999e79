"""
AoH Calculator — Experiment Configuration
==========================================
Parses the JSON configuration that names the input datasets of each
experiment, plus the season choices offered on the command line.

Example ``config.json``::

    {
      "experiments": {
        "jung": {
          "translator": "jung",
          "habitat": "data/iucn_habitatclassification_composite_lvl2.tif",
          "elevation": "data/dem.tif",
          "area": "data/area-per-pixel.tif",
          "range": "data/ranges.gpkg",
          "iucn_batch": "data/iucn.db"
        }
      }
    }

Relative paths are resolved against the directory holding the config
file.  Optional keys per experiment: ``sample_types``, ``suitability``,
``crs``, ``range_id_column``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np

from shared.python.exceptions import ConfigError, ExperimentNotFoundError
from shared.python.validators import Validators

from aoh_calculator.species import HabitatSeason, HabitatSuitability

logger = logging.getLogger("aohtoolkit.aoh_calculator.config")

REQUIRED_KEYS = ("translator", "habitat", "elevation", "area", "range", "iucn_batch")


# ---------------------------------------------------------------------------
# Seasons
# ---------------------------------------------------------------------------


class Seasonality(str, Enum):
    """Season an AoH map is produced for."""

    BREEDING = "breeding"
    NONBREEDING = "nonbreeding"
    RESIDENT = "resident"

    @property
    def habitat_seasons(self) -> tuple[HabitatSeason, ...]:
        """IUCN habitat seasons that count towards this season's map."""
        if self is Seasonality.BREEDING:
            return (HabitatSeason.RESIDENT, HabitatSeason.BREEDING, HabitatSeason.UNKNOWN)
        if self is Seasonality.NONBREEDING:
            return (HabitatSeason.RESIDENT, HabitatSeason.NON_BREEDING, HabitatSeason.UNKNOWN)
        return (
            HabitatSeason.RESIDENT,
            HabitatSeason.BREEDING,
            HabitatSeason.NON_BREEDING,
            HabitatSeason.UNKNOWN,
        )


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SampleTypes:
    """numpy dtypes of the area, elevation and habitat samples.

    Attributes:
        area: dtype of per-row pixel areas.
        elevation: dtype of elevation samples.
        habitat: dtype of habitat codes.
    """

    area: str = "float32"
    elevation: str = "uint16"
    habitat: str = "int16"

    def __post_init__(self) -> None:
        for name in ("area", "elevation", "habitat"):
            try:
                np.dtype(getattr(self, name))
            except TypeError as exc:
                raise ConfigError(f"Unknown {name} sample type: {getattr(self, name)!r}") from exc


SAMPLE_TYPE_PRESETS: dict[str, SampleTypes] = {
    "jung": SampleTypes(area="float32", elevation="uint16", habitat="int16"),
    "esacci": SampleTypes(area="float64", elevation="int16", habitat="uint8"),
}

SUPPORTED_TRANSLATORS = ("jung",)


@dataclass
class ExperimentConfig:
    """Inputs and options for one named experiment.

    Attributes:
        name: Experiment key in the config file.
        translator: Habitat code scheme of the habitat raster.
        habitat: Habitat raster path.
        elevation: Elevation raster path.
        area: One-pixel-wide area-per-pixel raster path.
        range: Vector file of species ranges.
        iucn_batch: SQLite species database path.
        sample_types: dtypes the rasters are read as.
        suitability: Habitat suitabilities to keep; empty keeps all.
        crs: CRS written to the output GeoTIFF.
        range_id_column: Taxon id column in the range file.
    """

    name: str
    translator: str
    habitat: Path
    elevation: Path
    area: Path
    range: Path
    iucn_batch: Path
    sample_types: SampleTypes = field(default_factory=SampleTypes)
    suitability: list[HabitatSuitability] = field(default_factory=list)
    crs: str = "EPSG:4326"
    range_id_column: str = "id_no"

    @property
    def input_files(self) -> dict[str, Path]:
        """Every input file, keyed by a human-readable label."""
        return {
            "Habitat raster": self.habitat,
            "Elevation raster": self.elevation,
            "Area raster": self.area,
            "Range file": self.range,
            "Species database": self.iucn_batch,
        }


@dataclass
class Config:
    """Parsed configuration file."""

    experiments: dict[str, ExperimentConfig] = field(default_factory=dict)

    def experiment(self, name: str) -> ExperimentConfig:
        """Look up an experiment by name.

        Raises:
            ExperimentNotFoundError: If *name* is not defined.
        """
        try:
            return self.experiments[name]
        except KeyError:
            raise ExperimentNotFoundError(name, sorted(self.experiments)) from None


# ---------------------------------------------------------------------------
# Config parser
# ---------------------------------------------------------------------------


def load_config(config_path: Path) -> Config:
    """Parse a JSON configuration file into a :class:`Config`.

    Raises:
        ConfigError: If the file cannot be read or parsed, or an
            experiment is missing required keys or has bad values.
        CRSError: If an experiment names an unknown CRS.
    """
    config_path = Path(config_path)
    try:
        raw: Any = json.loads(config_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Failed to parse config '{config_path}': {exc}") from exc

    if not isinstance(raw, dict) or not isinstance(raw.get("experiments"), dict):
        raise ConfigError(f"Config '{config_path}' must have a top-level 'experiments' mapping")

    base_dir = config_path.parent
    experiments = {
        name: _parse_experiment(name, body, base_dir)
        for name, body in raw["experiments"].items()
    }
    logger.debug("Loaded %d experiment(s) from %s", len(experiments), config_path)
    return Config(experiments=experiments)


def _parse_experiment(name: str, raw: Any, base_dir: Path) -> ExperimentConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"Experiment '{name}' must be a mapping")
    missing = [key for key in REQUIRED_KEYS if key not in raw]
    if missing:
        raise ConfigError(f"Experiment '{name}' is missing key(s): {', '.join(missing)}")

    translator = raw["translator"]
    if translator not in SUPPORTED_TRANSLATORS:
        raise ConfigError(
            f"Experiment '{name}' uses unsupported translator {translator!r}; "
            f"supported: {', '.join(SUPPORTED_TRANSLATORS)}"
        )

    overrides = raw.get("sample_types", {})
    if not isinstance(overrides, dict):
        raise ConfigError(f"Experiment '{name}' sample_types must be an object")
    unknown = set(overrides) - {"area", "elevation", "habitat"}
    if unknown:
        raise ConfigError(f"Experiment '{name}' has unknown sample type(s): {', '.join(sorted(unknown))}")
    sample_types = SampleTypes(**{**asdict(SAMPLE_TYPE_PRESETS[translator]), **overrides})

    try:
        suitability = [HabitatSuitability(s) for s in raw.get("suitability", [])]
    except ValueError as exc:
        raise ConfigError(f"Experiment '{name}' has an unknown suitability: {exc}") from exc

    crs = raw.get("crs", "EPSG:4326")
    Validators.assert_crs_valid(crs)

    def resolve(key: str) -> Path:
        path = Path(raw[key])
        return path if path.is_absolute() else base_dir / path

    return ExperimentConfig(
        name=name,
        translator=translator,
        habitat=resolve("habitat"),
        elevation=resolve("elevation"),
        area=resolve("area"),
        range=resolve("range"),
        iucn_batch=resolve("iucn_batch"),
        sample_types=sample_types,
        suitability=suitability,
        crs=crs,
        range_id_column=raw.get("range_id_column", "id_no"),
    )
