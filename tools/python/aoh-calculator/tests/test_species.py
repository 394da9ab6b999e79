"""
Tests — Species Store & Range Source
=====================================
Unit tests for :class:`~aoh_calculator.species.SpeciesStore` and
:func:`~aoh_calculator.range_source.geometry_for_species`, run against
the SQLite and GeoPackage fixtures from ``conftest.py``.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from aoh_calculator.range_source import geometry_for_species
from aoh_calculator.species import (
    ElevationRange,
    Habitat,
    HabitatSeason,
    HabitatSuitability,
    SpeciesStore,
)
from shared.python.exceptions import (
    ColumnNotFoundError,
    ElevationRangeError,
    HabitatAttributeError,
    InputValidationError,
    LayerOpenError,
    SpeciesLookupError,
    SpeciesNotFoundError,
)

GOOD_SPECIES = 1001
BAD_ELEVATION_SPECIES = 1002
MISSING_ELEVATION_SPECIES = 1003
BAD_SEASON_SPECIES = 1004
UNKNOWN_SPECIES = 424242


class TestElevationRange:
    def test_contains_is_inclusive(self) -> None:
        elevation = ElevationRange(0, 3800)
        assert 0 in elevation
        assert 3800 in elevation
        assert 3801 not in elevation

    def test_str(self) -> None:
        assert str(ElevationRange(-10, 200)) == "-10...200"

    @pytest.mark.parametrize(("lower", "upper"), [(100, 100), (500, 100)])
    def test_lower_must_be_below_upper(self, lower: int, upper: int) -> None:
        with pytest.raises(ElevationRangeError):
            ElevationRange(lower, upper)


class TestSpeciesStore:
    def test_missing_database_raises(self, tmp_path: Path) -> None:
        with pytest.raises(InputValidationError):
            SpeciesStore(tmp_path / "nope.db")

    def test_all_habitats(self, species_db: Path) -> None:
        habitats = SpeciesStore(species_db).habitats_for_species(GOOD_SPECIES)
        assert {h.code for h in habitats} == {"14.1", "1.4", "9.8.5", "5"}
        assert Habitat("14.1", True, HabitatSeason.RESIDENT, HabitatSuitability.SUITABLE) in habitats

    def test_season_filter(self, species_db: Path) -> None:
        habitats = SpeciesStore(species_db).habitats_for_species(
            GOOD_SPECIES, seasons=[HabitatSeason.RESIDENT, HabitatSeason.BREEDING]
        )
        assert {h.code for h in habitats} == {"14.1", "1.4"}

    def test_single_season_filter(self, species_db: Path) -> None:
        habitats = SpeciesStore(species_db).habitats_for_species(
            GOOD_SPECIES, seasons=[HabitatSeason.PASSAGE]
        )
        assert {h.code for h in habitats} == {"9.8.5"}

    def test_suitability_filter(self, species_db: Path) -> None:
        habitats = SpeciesStore(species_db).habitats_for_species(
            GOOD_SPECIES, suitabilities=[HabitatSuitability.SUITABLE]
        )
        assert {h.code for h in habitats} == {"14.1", "9.8.5"}

    def test_combined_filters(self, species_db: Path) -> None:
        habitats = SpeciesStore(species_db).habitats_for_species(
            GOOD_SPECIES,
            seasons=[HabitatSeason.RESIDENT, HabitatSeason.NON_BREEDING],
            suitabilities=["Suitable", "Unknown"],
        )
        assert {h.code for h in habitats} == {"14.1", "5"}

    def test_unknown_species_habitats_raise(self, species_db: Path) -> None:
        with pytest.raises(SpeciesNotFoundError) as exc_info:
            SpeciesStore(species_db).habitats_for_species(UNKNOWN_SPECIES)
        assert exc_info.value.taxid == UNKNOWN_SPECIES

    def test_unknown_season_label_raises(self, species_db: Path) -> None:
        with pytest.raises(HabitatAttributeError) as exc_info:
            SpeciesStore(species_db).habitats_for_species(BAD_SEASON_SPECIES)
        assert exc_info.value.attribute == "season"
        assert exc_info.value.value == "Sometimes"

    def test_elevation_range(self, species_db: Path) -> None:
        assert SpeciesStore(species_db).elevation_range_for_species(GOOD_SPECIES) == ElevationRange(0, 3800)

    def test_inverted_elevation_raises(self, species_db: Path) -> None:
        with pytest.raises(ElevationRangeError):
            SpeciesStore(species_db).elevation_range_for_species(BAD_ELEVATION_SPECIES)

    def test_missing_elevation_raises(self, species_db: Path) -> None:
        with pytest.raises(ElevationRangeError):
            SpeciesStore(species_db).elevation_range_for_species(MISSING_ELEVATION_SPECIES)

    def test_unknown_species_elevation_raises(self, species_db: Path) -> None:
        with pytest.raises(SpeciesNotFoundError):
            SpeciesStore(species_db).elevation_range_for_species(UNKNOWN_SPECIES)

    def test_corrupt_database_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.db"
        path.write_bytes(b"this is not sqlite" * 100)
        with pytest.raises(SpeciesLookupError):
            SpeciesStore(path).elevation_range_for_species(GOOD_SPECIES)


class TestGeometryForSpecies:
    def test_features_are_merged(self, range_file: Path) -> None:
        geometry = geometry_for_species(range_file, GOOD_SPECIES)
        assert geometry.bounds == (0.0, 0.0, 4.0, 4.0)
        assert geometry.area == pytest.approx(16.0)

    def test_unknown_species_raises(self, range_file: Path) -> None:
        with pytest.raises(SpeciesNotFoundError, match="ranges.gpkg"):
            geometry_for_species(range_file, UNKNOWN_SPECIES)

    def test_missing_column_raises(self, range_file: Path) -> None:
        with pytest.raises(ColumnNotFoundError):
            geometry_for_species(range_file, GOOD_SPECIES, id_column="taxid")

    def test_unreadable_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "ranges.gpkg"
        path.write_text("not a geopackage", encoding="utf-8")
        with pytest.raises(LayerOpenError):
            geometry_for_species(path, GOOD_SPECIES)
