"""
AoH Calculator — Species Habitat & Elevation Store
===================================================
Reads species habitat preferences and elevation limits from an IUCN
batch export held in SQLite.

Expected tables::

    taxonomy              (id, elevationLower, elevationUpper, ...)
    habitat               (id, code, ...)
    taxonomy_habitat_m2m  (taxonomy, habitat, season, suitability, majorImportance)

Classes:
    HabitatSeason       Season a habitat is used in.
    HabitatSuitability  How suitable IUCN rates a habitat.
    Habitat             One habitat record for a species.
    ElevationRange      Closed elevation interval with ``lower < upper``.
    SpeciesStore        Query wrapper over the SQLite database.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from shared.python.exceptions import (
    ElevationRangeError,
    HabitatAttributeError,
    SpeciesLookupError,
    SpeciesNotFoundError,
)
from shared.python.validators import Validators

logger = logging.getLogger("aohtoolkit.aoh_calculator.species")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


class HabitatSeason(str, Enum):
    RESIDENT = "Resident"
    UNKNOWN = "Seasonal Occurrence Unknown"
    BREEDING = "Breeding Season"
    NON_BREEDING = "Non-Breeding Season"
    PASSAGE = "Passage"


class HabitatSuitability(str, Enum):
    SUITABLE = "Suitable"
    MARGINAL = "Marginal"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Habitat:
    """One habitat a species is recorded as using.

    Attributes:
        code: Dotted IUCN habitat code, e.g. ``"1.4"``.
        major_importance: Whether IUCN flags the habitat as of major importance.
        season: When the species uses the habitat.
        suitability: IUCN suitability rating.
    """

    code: str
    major_importance: bool
    season: HabitatSeason
    suitability: HabitatSuitability


@dataclass(frozen=True)
class ElevationRange:
    """Inclusive elevation interval in metres.

    A range whose lower bound is not strictly below its upper bound is
    invalid input, not a single-elevation range.

    Raises:
        ElevationRangeError: If ``lower >= upper``.
    """

    lower: int
    upper: int

    def __post_init__(self) -> None:
        if not self.lower < self.upper:
            raise ElevationRangeError(self.lower, self.upper)

    def __contains__(self, elevation: int) -> bool:
        return self.lower <= elevation <= self.upper

    def __str__(self) -> str:
        return f"{self.lower}...{self.upper}"


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

_HABITAT_QUERY = """
    SELECT habitat.code AS code,
           m2m.season AS season,
           m2m.suitability AS suitability,
           m2m.majorImportance AS major_importance
    FROM habitat
    JOIN taxonomy_habitat_m2m AS m2m ON habitat.id = m2m.habitat
    WHERE m2m.taxonomy = ?
"""

_ELEVATION_QUERY = """
    SELECT elevationLower AS lower, elevationUpper AS upper
    FROM taxonomy
    WHERE id = ?
"""


class SpeciesStore:
    """Read-only access to an IUCN batch SQLite database.

    Args:
        db_path: Path to the SQLite file.

    Raises:
        InputValidationError: If *db_path* does not exist.

    Example::

        store = SpeciesStore(Path("data/iucn.db"))
        habitats = store.habitats_for_species(22694927, seasons=[HabitatSeason.RESIDENT])
        elevation = store.elevation_range_for_species(22694927)
    """

    def __init__(self, db_path: Path) -> None:
        Validators.assert_file_exists(Path(db_path), "Species database")
        self.db_path = Path(db_path)

    def habitats_for_species(
        self,
        taxid: int,
        seasons: Iterable[HabitatSeason] = (),
        suitabilities: Iterable[HabitatSuitability] = (),
    ) -> set[Habitat]:
        """Habitats recorded for *taxid*, optionally filtered.

        Args:
            taxid: IUCN taxon id.
            seasons: Keep only habitats used in these seasons.  Empty
                     means no season filter.
            suitabilities: Keep only habitats with these ratings.  Empty
                           means no suitability filter.

        Raises:
            SpeciesNotFoundError: If *taxid* is not in the taxonomy table.
            HabitatAttributeError: If a row holds an unknown season or
                suitability label.
        """
        self._require_species(taxid)

        sql = _HABITAT_QUERY
        params: list[Any] = [int(taxid)]
        filters = {
            "season": [HabitatSeason(s).value for s in seasons],
            "suitability": [HabitatSuitability(s).value for s in suitabilities],
        }
        for column, values in filters.items():
            if values:
                sql += f" AND m2m.{column} IN ({', '.join('?' for _ in values)})"
                params.extend(values)

        rows = self._query(sql, params)
        habitats: set[Habitat] = set()
        for row in rows.itertuples(index=False):
            try:
                season = HabitatSeason(row.season)
            except ValueError as exc:
                raise HabitatAttributeError("season", row.season) from exc
            try:
                suitability = HabitatSuitability(row.suitability)
            except ValueError as exc:
                raise HabitatAttributeError("suitability", row.suitability) from exc
            habitats.add(Habitat(
                code=str(row.code),
                major_importance=bool(row.major_importance),
                season=season,
                suitability=suitability,
            ))

        logger.debug("Species %d has %d matching habitat record(s)", taxid, len(habitats))
        return habitats

    def elevation_range_for_species(self, taxid: int) -> ElevationRange:
        """Elevation limits for *taxid*.

        Raises:
            SpeciesNotFoundError: If *taxid* is not in the taxonomy table.
            ElevationRangeError: If the stored bounds violate ``lower < upper``
                or are missing.
        """
        rows = self._query(_ELEVATION_QUERY, [int(taxid)])
        if rows.empty:
            raise SpeciesNotFoundError(taxid)
        row = rows.iloc[0]
        if pd.isna(row["lower"]) or pd.isna(row["upper"]):
            raise ElevationRangeError(row["lower"], row["upper"])
        return ElevationRange(int(row["lower"]), int(row["upper"]))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_species(self, taxid: int) -> None:
        rows = self._query("SELECT id FROM taxonomy WHERE id = ?", [int(taxid)])
        if rows.empty:
            raise SpeciesNotFoundError(taxid)

    def _query(self, sql: str, params: list[Any]) -> pd.DataFrame:
        """Run a read-only query and return the rows as a DataFrame."""
        uri = f"{self.db_path.resolve().as_uri()}?mode=ro"
        try:
            with closing(sqlite3.connect(uri, uri=True)) as conn:
                return pd.read_sql_query(sql, conn, params=params)
        except (sqlite3.Error, pd.errors.DatabaseError) as exc:
            raise SpeciesLookupError(
                f"Failed to query species database '{self.db_path}': {exc}"
            ) from exc
