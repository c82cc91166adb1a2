"""Error taxonomy and the diagnostic collector for recoverable failures."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)


class BuildingMeshError(Exception):
    """Base class for all building synthesis errors."""


class InvalidCoordinate(BuildingMeshError, ValueError):
    """A point or reference is malformed or not finite."""


class UnsupportedGeometry(BuildingMeshError):
    """The feature geometry is neither a Polygon nor a MultiPolygon."""


class InsufficientPoints(BuildingMeshError):
    """A ring or solid is degenerate (too few points, no height)."""


class UnsupportedRoofKind(BuildingMeshError):
    """The roof:shape tag names a shape that is not generated."""

    def __init__(self, roof_shape):
        super().__init__(f"roof shape {roof_shape!r} not supported, "
                         f"falling back to flat")
        self.roof_shape = roof_shape


@dataclass
class Diagnostic:
    feature_id: Optional[str]
    error: BuildingMeshError

    @property
    def kind(self) -> str:
        return type(self.error).__name__

    def __str__(self):
        where = self.feature_id or "<unnamed>"
        return f"{where}: {self.kind}: {self.error}"


@dataclass
class Diagnostics:
    """Ordered record of recoverable failures.

    Each report is also logged as a warning, so a collector can be
    dropped in anywhere a caller does not care to inspect the entries.
    """
    entries: List[Diagnostic] = field(default_factory=list)

    def report(self, error: BuildingMeshError,
               feature_id: Optional[str] = None) -> None:
        entry = Diagnostic(feature_id, error)
        self.entries.append(entry)
        logger.warning(str(entry))

    def extend(self, other: "Diagnostics") -> None:
        """Append entries collected elsewhere, without logging them again."""
        self.entries.extend(other.entries)

    def of_type(self, error_type) -> List[Diagnostic]:
        return [d for d in self.entries if isinstance(d.error, error_type)]

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)
