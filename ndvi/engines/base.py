"""Backend abstractions for deferred NDVI computation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Final, Protocol

SENTINEL2_COLLECTION: Final[str] = "COPERNICUS/S2_SR_HARMONIZED"
NIR_BAND: Final[str] = "B8"
RED_BAND: Final[str] = "B4"
QA_BAND: Final[str] = "QA60"
NDVI_BAND: Final[str] = "NDVI"
MAX_CLOUD_PERCENT: Final[int] = 20
CLOUD_BIT_MASK: Final[int] = 1 << 10
CIRRUS_BIT_MASK: Final[int] = 1 << 11
REFLECTANCE_SCALE: Final[int] = 10000
NATIVE_SCALE_METERS: Final[int] = 10
TIME_START_PROPERTY: Final[str] = "system:time_start"
INDEX_PROPERTY: Final[str] = "system:index"


@dataclass(frozen=True)
class BBox:
    """Normalized bounding box for NDVI requests (WGS84 decimal degrees)."""

    south: Decimal
    west: Decimal
    north: Decimal
    east: Decimal


@dataclass(frozen=True)
class GeoPoint:
    """Single location in WGS84 decimal degrees."""

    lat: float
    lon: float


GeoRegion = BBox | GeoPoint


@dataclass(frozen=True)
class ImageQuery:
    """Everything needed to describe a filtered Sentinel-2 collection."""

    region: GeoRegion
    start: datetime
    end: datetime
    max_cloud: int = MAX_CLOUD_PERCENT
    nir_band: str = NIR_BAND
    red_band: str = RED_BAND
    collection: str = SENTINEL2_COLLECTION


@dataclass(frozen=True)
class DerivedImage:
    """Deferred NDVI image plus the sorted collection it was drawn from.

    Both attributes are backend expressions; nothing has been computed
    until one of the backend evaluation methods is called.
    """

    query: ImageQuery
    collection: Any
    ndvi: Any


@dataclass(frozen=True)
class VisParams:
    min: float
    max: float
    palette: tuple[str, ...]

    def as_dict(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max, "palette": list(self.palette)}


@dataclass(frozen=True)
class SessionHandle:
    project_id: str
    established_at: datetime


class NdviBackend(Protocol):
    """Interface for backends that build and evaluate NDVI graphs.

    `derive` only describes work. `establish`, `probe`, `tile_template`
    and `reduce_point` are the evaluation boundaries and the only methods
    allowed to talk to the remote service.
    """

    def establish(self, credentials: Any) -> SessionHandle:
        """Authenticate and initialize the backend session."""

    def derive(self, query: ImageQuery) -> DerivedImage:
        """Build the deferred masked, composited NDVI image."""

    def probe(self, image: DerivedImage) -> str | None:
        """Return the composite's identifier, or None if nothing qualifies."""

    def tile_template(self, image: DerivedImage, vis: VisParams) -> str:
        """Return a tile URL template with {z}, {x} and {y} placeholders."""

    def reduce_point(
        self, image: DerivedImage, point: GeoPoint, scale: int
    ) -> float | None:
        """Return the NDVI value at a point, or None when masked."""

