"""
AoH Calculator — Pipeline Orchestrator
=======================================
Runs one Area of Habitat calculation end to end for a single species and
season.  Inherits from :class:`~shared.python.base_tool.GeoTool` and
implements the Template Method pattern.

Stages:

1. Look up the species' habitats and elevation range in the IUCN batch
   database and translate the habitat codes for the experiment's map.
2. Load the species' range geometry.
3. Open the area, range, elevation and habitat layers, intersect them
   and restrict each to the common window.
4. Stream the layers through :func:`~aoh_calculator.calculator.calculate_aoh`,
   writing ``{taxid}-{season}.tif`` into the output directory.

Usage::

    from pathlib import Path
    from aoh_calculator.config import Seasonality
    from aoh_calculator.pipeline import AoHCalculator

    calc = AoHCalculator(
        taxid=22694927,
        season=Seasonality.RESIDENT,
        experiment="jung",
        output_dir=Path("results/"),
        config_path=Path("config.json"),
    )
    calc.run()
    print(calc.result.area)
"""

from __future__ import annotations

import json
import logging
from contextlib import ExitStack
from dataclasses import asdict, dataclass, field
from pathlib import Path

from shared.python.base_tool import GeoTool
from shared.python.exceptions import OutputWriteError
from shared.python.validators import Validators

from aoh_calculator.calculator import DEFAULT_CHUNK_SIZE, ChunkSize, calculate_aoh
from aoh_calculator.config import Config, ExperimentConfig, Seasonality, load_config
from aoh_calculator.habitat_codes import translate_codes
from aoh_calculator.intersection import calculate_intersection, restrict_layers
from aoh_calculator.layers import GeometryLayer, Layer, RasterLayer, UniformAreaLayer
from aoh_calculator.range_source import geometry_for_species
from aoh_calculator.species import ElevationRange, SpeciesStore
from aoh_calculator.writer import GeoTiffWriter

logger = logging.getLogger("aohtoolkit.aoh_calculator.pipeline")


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass
class AoHResult:
    """Summary of one finished calculation.

    Attributes:
        taxid: IUCN taxon id.
        season: Season the map was produced for.
        experiment: Experiment name from the config file.
        area: Total area of habitat, in the units of the area raster.
        output_path: The GeoTIFF written.
        habitat_codes: Sorted IUCN habitat codes used.
        translated_codes: Sorted map codes the habitat codes became.
        elevation_lower: Lower elevation bound.
        elevation_upper: Upper elevation bound.
        window: ``[width, height]`` of the computed raster in pixels.
    """

    taxid: int
    season: str
    experiment: str
    area: float
    output_path: str
    habitat_codes: list[str] = field(default_factory=list)
    translated_codes: list[int] = field(default_factory=list)
    elevation_lower: int = 0
    elevation_upper: int = 0
    window: list[int] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class AoHCalculator(GeoTool):
    """Area of Habitat calculation for one species, season and experiment.

    Attributes:
        config: Parsed configuration, set by :meth:`validate_inputs`.
        experiment: The selected experiment, set by :meth:`validate_inputs`.
    """

    def __init__(
        self,
        taxid: int,
        season: Seasonality,
        experiment: str,
        output_dir: Path,
        *,
        config_path: Path = Path("config.json"),
        results_path: Path | None = None,
        chunk_size: ChunkSize = DEFAULT_CHUNK_SIZE,
        verbose: bool = False,
    ) -> None:
        """Initialise the calculator.

        Args:
            taxid: IUCN taxon id of the species.
            season: Season to produce the map for.
            experiment: Name of the experiment in the config file.
            output_dir: Directory the GeoTIFF is written into.
            config_path: JSON experiment configuration file.
            results_path: Optional JSON file to write the result summary to.
            chunk_size: Block shape used when streaming the rasters.
            verbose: Enable debug-level logging.
        """
        super().__init__(input_path=config_path, output_path=output_dir, verbose=verbose)
        self.taxid = taxid
        self.season = Seasonality(season)
        self.experiment_name = experiment
        self.results_path = Path(results_path) if results_path is not None else None
        self.chunk_size = chunk_size

        self.config: Config | None = None
        self.experiment: ExperimentConfig | None = None
        self._result: AoHResult | None = None

    @property
    def output_file(self) -> Path:
        """GeoTIFF path for this species and season."""
        return self.output_path / f"{self.taxid}-{self.season.value}.tif"

    @property
    def result(self) -> AoHResult:
        """The finished calculation.

        Raises:
            RuntimeError: If :meth:`run` has not completed.
        """
        if self._result is None:
            raise RuntimeError("No result yet; call run() first.")
        return self._result

    # ------------------------------------------------------------------
    # GeoTool interface
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Load the config, select the experiment and check every input exists.

        Raises:
            InputValidationError: If the config file or an input is missing.
            ConfigError: If the config is malformed.
            ExperimentNotFoundError: If the experiment is not defined.
            OutputWriteError: If the output directory cannot be created.
        """
        Validators.assert_file_exists(self.input_path, "Config file")
        Validators.assert_supported_extension(self.input_path, [".json"])
        self.config = load_config(self.input_path)
        self.experiment = self.config.experiment(self.experiment_name)

        for label, path in self.experiment.input_files.items():
            Validators.assert_file_exists(path, label)

        Validators.assert_output_dir_writable(self.output_path)
        if self.results_path is not None:
            Validators.assert_output_dir_writable(self.results_path.parent)

        logger.info(
            "Experiment '%s' validated for species %d (%s)",
            self.experiment.name, self.taxid, self.season.value,
        )

    def process(self) -> None:
        """Look up the species, stream the layers and write the AoH map."""
        assert self.experiment is not None, "Call validate_inputs() first."
        experiment = self.experiment

        store = SpeciesStore(experiment.iucn_batch)
        habitats = store.habitats_for_species(
            self.taxid,
            seasons=self.season.habitat_seasons,
            suitabilities=experiment.suitability,
        )
        habitat_codes = sorted({h.code for h in habitats})
        translated = translate_codes(habitat_codes)
        elevation_range = store.elevation_range_for_species(self.taxid)

        logger.info("Habitats: %s", ", ".join(habitat_codes) or "none")
        logger.debug("Translated habitat codes: %s", sorted(translated))
        logger.info("Elevation range: %s", elevation_range)
        if not translated:
            logger.warning("Species %d has no habitat codes on the map; AoH will be zero", self.taxid)

        geometry = geometry_for_species(experiment.range, self.taxid, experiment.range_id_column)
        types = experiment.sample_types

        with ExitStack() as stack:
            area = stack.enter_context(UniformAreaLayer(experiment.area, dtype=types.area))
            range_layer = GeometryLayer(geometry, area.pixel_scale)
            elevation = stack.enter_context(
                RasterLayer(experiment.elevation, dtype=types.elevation, name="elevation")
            )
            habitat = stack.enter_context(
                RasterLayer(experiment.habitat, dtype=types.habitat, name="habitat")
            )

            layers = [range_layer, area, elevation, habitat]
            intersection = calculate_intersection(layers)
            range_layer, area, elevation, habitat = restrict_layers(layers, intersection)
            window = range_layer.window
            logger.info("Computing %dx%d pixels over %s", window.xsize, window.ysize, intersection)

            total = self._calculate(
                [range_layer, area, elevation, habitat], translated, elevation_range
            )

        self._result = AoHResult(
            taxid=self.taxid,
            season=self.season.value,
            experiment=experiment.name,
            area=total,
            output_path=str(self.output_file),
            habitat_codes=habitat_codes,
            translated_codes=sorted(translated),
            elevation_lower=elevation_range.lower,
            elevation_upper=elevation_range.upper,
            window=[window.xsize, window.ysize],
        )
        logger.info("Area of habitat for species %d: %f", self.taxid, total)

        if self.results_path is not None:
            self._write_results()

    # ------------------------------------------------------------------
    # Stage helpers
    # ------------------------------------------------------------------

    def _calculate(
        self,
        layers: list[Layer],
        codes: set[int],
        elevation_range: ElevationRange,
    ) -> float:
        """Run the accumulator into the output GeoTIFF, removing it on failure."""
        assert self.experiment is not None
        range_layer, area, elevation, habitat = layers
        window = range_layer.window
        try:
            with GeoTiffWriter(
                self.output_file,
                width=window.xsize,
                height=window.ysize,
                pixel_scale=area.pixel_scale,
                tie_point=(range_layer.area.left, range_layer.area.top),
                crs=self.experiment.crs,
            ) as writer:
                return calculate_aoh(
                    range_layer, area, elevation, habitat,
                    habitat_codes=codes,
                    elevation_range=elevation_range,
                    output=writer,
                    chunk_size=self.chunk_size,
                )
        except BaseException:
            logger.error("Calculation failed; removing partial output '%s'", self.output_file)
            self.output_file.unlink(missing_ok=True)
            raise

    def _write_results(self) -> None:
        """Write the result summary as JSON."""
        assert self.results_path is not None and self._result is not None
        try:
            self.results_path.write_text(json.dumps(asdict(self._result), indent=2), encoding="utf-8")
        except OSError as exc:
            raise OutputWriteError(str(self.results_path), str(exc)) from exc
        logger.info("Result summary written to '%s'", self.results_path)
