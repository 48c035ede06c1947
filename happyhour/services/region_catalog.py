# happyhour/services/region_catalog.py
# Coordinate -> region lookup and the per-region venue/street pools.

import json
import logging
import os
from typing import Dict, List, Optional

from happyhour.models.dto import (
    CATEGORY_POOLS,
    Coordinate,
    PostalFormat,
    Region,
    RegionTable,
)

logger = logging.getLogger(__name__)

DEFAULT_KEY = "default"
FALLBACK_POOL = "restaurants"

REGIONS_FILE = os.path.join(os.path.dirname(__file__), "..", "data", "regions.json")

DEFAULT_REGION = Region(
    name=DEFAULT_KEY,
    country="Unknown",
    timezone="UTC",
    lat_range=(-90.0, 90.0),
    lng_range=(-180.0, 180.0),
)

class RegionCatalog:
    """Read-only region table.

    - `lookup` scans the bounding boxes in file order; the first box that
      contains the coordinate wins, otherwise `DEFAULT_REGION`.
    - `catalog_for` / `streets_for` fall back to the "default" pools.
    """

    def __init__(self, table: RegionTable):
        self.regions: List[Region] = list(table.regions)
        self._catalogs: Dict[str, Dict[str, List[str]]] = table.venue_catalogs
        self._streets: Dict[str, List[str]] = table.street_names
        self._postal_formats: Dict[str, PostalFormat] = table.postal_formats

        if DEFAULT_KEY not in self._catalogs or DEFAULT_KEY not in self._streets:
            raise ValueError("region table must define 'default' venue and street pools")

    @classmethod
    def from_file(cls, file_path: str = REGIONS_FILE) -> "RegionCatalog":
        """Load regions.json and validate it with the RegionTable model."""
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            table = RegionTable.model_validate(data)
        except FileNotFoundError:
            logger.error(f"Region table not found at: {file_path}")
            raise
        except Exception as e:
            logger.error(f"Error loading or validating region table: {e}")
            raise

        catalog = cls(table)
        logger.info(f"Loaded {len(catalog.regions)} regions from region table.")
        return catalog

    def lookup(self, coord: Coordinate) -> Region:
        for region in self.regions:
            if region.contains(coord.latitude, coord.longitude):
                return region
        return DEFAULT_REGION

    def catalog_for(self, region: Region, category: str) -> List[str]:
        catalog = self._catalogs.get(region.name) or self._catalogs[DEFAULT_KEY]
        pool_key = CATEGORY_POOLS.get(category, FALLBACK_POOL)
        names = catalog.get(pool_key) or catalog.get(FALLBACK_POOL)
        if not names:
            names = self._catalogs[DEFAULT_KEY][FALLBACK_POOL]
        return names

    def streets_for(self, region: Region) -> List[str]:
        return self._streets.get(region.name) or self._streets[DEFAULT_KEY]

    def postal_format_for(self, region: Region) -> Optional[PostalFormat]:
        return self._postal_formats.get(region.name)

    @staticmethod
    def cuisine_for(region: Region) -> str:
        return region.cuisine or "international"

    @staticmethod
    def display_name(region: Region) -> str:
        return "Downtown" if region.is_default else region.name
