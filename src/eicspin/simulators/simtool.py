"""
Adapter to an external beam simulation tool.

An external tool (e.g. a 6D tracking code) can supply per-particle energy
and trajectory tables as functions of the longitudinal position. Reading
these tables is only safe after a one-time setup of the tool, so the
adapter separates the two steps:

* ``SimToolAdapter.prepare()`` runs the setup once, guarded by a lock,
  and returns an immutable ``PreparedSimTool``.
* Particle tasks only hold the ``PreparedSimTool`` and read their tables
  from it concurrently.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional
import logging
import threading

from ..optics import OrbitFunction, PeriodicTable
from .types import TrackingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedSimTool:
    """Read-only per-particle tables of a prepared external simulation tool."""
    name: str
    gamma_tables: Mapping[int, PeriodicTable] = field(default_factory=dict)
    trajectory_tables: Mapping[int, PeriodicTable] = field(default_factory=dict)
    closed_orbit: Optional[OrbitFunction] = None

    def __post_init__(self):
        object.__setattr__(self, 'gamma_tables', MappingProxyType(dict(self.gamma_tables)))
        object.__setattr__(self, 'trajectory_tables', MappingProxyType(dict(self.trajectory_tables)))

    def gamma_table(self, particle_id: int) -> PeriodicTable:
        """Energy (gamma) versus position of one particle."""
        try:
            return self.gamma_tables[particle_id]
        except KeyError:
            raise TrackingError(f"{self.name}: no energy table for particle {particle_id}") from None

    def trajectory_table(self, particle_id: int) -> PeriodicTable:
        """Transverse position (x, z) versus position of one particle."""
        try:
            return self.trajectory_tables[particle_id]
        except KeyError:
            raise TrackingError(f"{self.name}: no trajectory table for particle {particle_id}") from None


class SimToolAdapter(ABC):
    """
    Base class of external simulation tool adapters.

    Subclasses implement ``setup`` which runs the external tool (or reads
    its output) and returns the prepared tables. ``prepare`` may be called
    from any thread and any number of times; the setup runs exactly once.
    """

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()
        self._prepared: Optional[PreparedSimTool] = None

    @abstractmethod
    def setup(self) -> PreparedSimTool:
        """One-time setup of the external tool."""
        pass

    @property
    def is_prepared(self) -> bool:
        return self._prepared is not None

    def prepare(self) -> PreparedSimTool:
        with self._lock:
            if self._prepared is None:
                logger.info(f"Preparing external simulation tool '{self.name}'")
                self._prepared = self.setup()
            return self._prepared


class InMemorySimTool(SimToolAdapter):
    """
    Adapter for tables already available in memory.

    Args:
        gamma_tables: Energy table per particle id
        trajectory_tables: Trajectory table (values with columns x, z) per particle id
        closed_orbit: Closed orbit computed by the tool
    """

    def __init__(self, gamma_tables: Optional[Dict[int, PeriodicTable]] = None,
                 trajectory_tables: Optional[Dict[int, PeriodicTable]] = None,
                 closed_orbit: Optional[OrbitFunction] = None,
                 name: str = "in-memory"):
        super().__init__(name)
        self.gamma_tables = dict(gamma_tables or {})
        self.trajectory_tables = dict(trajectory_tables or {})
        self.closed_orbit = closed_orbit
        self.setup_count = 0

    def setup(self) -> PreparedSimTool:
        self.setup_count += 1
        return PreparedSimTool(
            name=self.name,
            gamma_tables=self.gamma_tables,
            trajectory_tables=self.trajectory_tables,
            closed_orbit=self.closed_orbit,
        )
