# Create a lattice class to represent a storage ring for the spin tracking.
# A lattice is an ordered sequence of elements forming one turn. Positions are
# measured along the design orbit; positions beyond one circumference refer to
# later turns, so the tracking can iterate over the ring turn by turn.

from dataclasses import dataclass, field
from typing import Iterator, Optional
import bisect
import logging
import math

from eicspin.constants import C_GAMMA, E_REST
from eicspin.machine_portal.element import Element, ElementKind
from eicspin.machine_portal.drift import Drift
from eicspin.machine_portal.bend import Bend
from eicspin.machine_portal.quadrupole import Quadrupole
from eicspin.machine_portal.sextupole import Sextupole
from eicspin.machine_portal.kicker import Kicker
from eicspin.machine_portal.solenoid import Solenoid
from eicspin.machine_portal.rfcavity import RFCavity
from eicspin.optics import OrbitFunction, OrbitPoint

logger = logging.getLogger(__name__)


def create_element_by_type(element_type: str, name: str, length: float = 0.0, **parameters) -> Element:
    """Factory function to create the correct element type based on element_type string."""
    element_classes = {
        'Drift': Drift,
        'Bend': Bend,
        'Quadrupole': Quadrupole,
        'Sextupole': Sextupole,
        'Kicker': Kicker,
        'Solenoid': Solenoid,
        'RFCavity': RFCavity,
    }
    element_class = element_classes.get(element_type)
    if element_class is None:
        return Element(name=name, type=element_type, length=length, **parameters)
    return element_class(name=name, length=length, **parameters)


@dataclass(frozen=True)
class PlacedElement:
    """An element at its absolute position (including previous turns)."""
    element: Element
    begin: float
    end: float
    turn: int

    @property
    def center(self) -> float:
        return 0.5 * (self.begin + self.end)


@dataclass
class Lattice:
    """Class representing a storage ring as one turn of elements.

    Machine parameters that cannot be derived from the element sequence
    alone (momentum compaction and longitudinal damping partition number)
    are supplied by the optics provider. The closed orbit is optional; the
    design orbit is used when it is missing.
    """
    name: str
    elements: list[Element] = field(default_factory=list)
    closed_orbit: Optional[OrbitFunction] = None
    momentum_compaction: float = 0.0
    momentum_compaction2: float = 0.0
    damping_partition_z: float = 2.0

    def __post_init__(self):
        """Validate the lattice name and place the initial elements."""
        if not self.name:
            raise ValueError("Lattice must have a name.")
        if not isinstance(self.elements, list):
            raise TypeError("Elements must be a list of Element instances.")
        for element in self.elements:
            if not isinstance(element, Element):
                raise TypeError("All elements in the lattice must be instances of Element.")
        self._place_elements()

    def _place_elements(self):
        self._begins = []
        self._thetas = []
        pos = 0.0
        theta = 0.0
        for element in self.elements:
            self._begins.append(pos)
            self._thetas.append(theta)
            pos += element.length
            if element.kind == ElementKind.DIPOLE:
                theta += abs(element.angle)
        self._circumference = pos
        self._total_angle = theta

    def add_element(self, element: Element):
        """Append an element at the end of the ring."""
        if not isinstance(element, Element):
            raise TypeError("Element must be an instance of Element.")
        self.elements.append(element)
        self._place_elements()

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[PlacedElement]:
        """Iterate over the elements of the first turn."""
        for element, begin in zip(self.elements, self._begins):
            yield PlacedElement(element, begin, begin + element.length, 1)

    @property
    def circumference(self) -> float:
        return self._circumference

    @property
    def total_bent_length(self) -> float:
        return sum(e.length for e in self.elements if e.kind == ElementKind.DIPOLE)

    def count(self, kind: ElementKind) -> int:
        """Number of elements of the given kind in one turn."""
        return sum(1 for e in self.elements if e.kind == kind)

    def turn(self, pos: float) -> int:
        """Revolution number (starting at 1) of an absolute position."""
        return int(math.floor(pos / self.circumference)) + 1

    def pos_in_turn(self, pos: float) -> float:
        return pos % self.circumference

    def pos_of_turn(self, turn: int) -> float:
        """Absolute position at the beginning of a revolution."""
        return (turn - 1) * self.circumference

    def theta(self, pos: float) -> float:
        """Bending angle accumulated from the start of the turn to ``pos`` (in turn)."""
        s = self.pos_in_turn(pos)
        idx = bisect.bisect_right(self._begins, s) - 1
        if idx < 0:
            return 0.0
        element = self.elements[idx]
        theta = self._thetas[idx]
        if element.kind == ElementKind.DIPOLE:
            theta += abs(element.angle) * min(1.0, (s - self._begins[idx]) / element.length)
        return theta

    def orbit(self, pos: float) -> OrbitPoint:
        """Closed orbit at ``pos``, the design orbit if no closed orbit is set."""
        if self.closed_orbit is None:
            return OrbitPoint(0.0, 0.0)
        return self.closed_orbit.get(self.pos_in_turn(pos))

    def elements_from(self, pos: float) -> Iterator[PlacedElement]:
        """Iterate endlessly over the ring, starting with the element at ``pos``.

        The first element yielded is the one containing ``pos`` or, for a
        position at an element boundary, the one starting there.
        """
        if not self.elements or self.circumference <= 0:
            raise ValueError(f"Lattice '{self.name}' has no elements with non-zero length.")
        turn = self.turn(pos)
        s = pos - self.pos_of_turn(turn)
        idx = 0
        while idx < len(self.elements):
            begin = self._begins[idx]
            if begin + self.elements[idx].length > s or (self.elements[idx].length == 0.0 and begin >= s):
                break
            idx += 1
        if idx == len(self.elements):
            idx = 0
            turn += 1
        while True:
            offset = self.pos_of_turn(turn)
            for element, begin in zip(self.elements[idx:], self._begins[idx:]):
                yield PlacedElement(element, offset + begin, offset + begin + element.length, turn)
            idx = 0
            turn += 1

    def cavities(self) -> list[RFCavity]:
        return [e for e in self.elements if e.kind == ElementKind.CAVITY]

    def dipoles(self) -> list[Bend]:
        return [e for e in self.elements if e.kind == ElementKind.DIPOLE]

    def energy_loss_per_turn(self, gamma: float) -> float:
        """Mean energy radiated per turn in GeV at energy ``gamma``."""
        energy = gamma * E_REST
        integral = sum(abs(b.angle) / abs(b.radius) for b in self.dipoles())
        return C_GAMMA / (2 * math.pi) * energy**4 * integral

    def bending_radius(self) -> float:
        """Average bending radius (total bent length / total bending angle)."""
        if self._total_angle == 0.0:
            return 0.0
        return self.total_bent_length / self._total_angle

    def machine_parameters(self, gamma: float) -> dict[str, float]:
        """Derived longitudinal machine parameters at energy ``gamma``.

        Parameters that cannot be derived are reported as zero.

        Returns:
            Dictionary with keys q, h, R, alphac, alphac2, Jz
        """
        cavities = self.cavities()
        voltage = sum(c.voltage for c in cavities)
        u0 = self.energy_loss_per_turn(gamma)
        q = voltage / u0 if (voltage > 0 and u0 > 0) else 0.0
        h = float(cavities[0].harmonic) if cavities else 0.0
        params = {
            'q': q,
            'h': h,
            'R': self.bending_radius(),
            'alphac': self.momentum_compaction,
            'alphac2': self.momentum_compaction2,
            'Jz': self.damping_partition_z,
        }
        logger.debug(f"Machine parameters of '{self.name}' at gamma={gamma:.1f}: {params}")
        return params

    def summary(self) -> str:
        return (f"Lattice '{self.name}': {len(self)} elements, C = {self.circumference:.3f} m, "
                f"{self.count(ElementKind.DIPOLE)} dipoles, {self.count(ElementKind.CAVITY)} cavities")
