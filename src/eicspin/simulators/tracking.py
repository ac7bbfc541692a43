"""
Multi-particle spin tracking and polarization.
"""

from typing import Dict, Mapping, Optional
import logging

import pandas as pd

from ..dynamics.spin import SpinMotion
from .base import Simulation
from .tasks import TrackingTask
from .types import AggregationError, SimulationResults

logger = logging.getLogger(__name__)


def average_spin_motion(motions: Mapping[int, SpinMotion], errors=()) -> SpinMotion:
    """
    Pointwise average of the spin motions of all successful particles.

    Args:
        motions: Spin motion per particle id
        errors: Ids of failed particles (e.g. the error ledger), skipped

    Returns:
        Average spin motion (the polarization)

    Raises:
        AggregationError: If no particle succeeded or sample times differ
    """
    successful = [(pid, motion) for pid, motion in motions.items() if pid not in errors]
    if not successful:
        raise AggregationError("No particle finished successfully, polarization cannot be calculated")

    first_id, total = successful[0]
    for pid, motion in successful[1:]:
        if not motion.same_times(total):
            raise AggregationError(
                f"Sample times of particle {pid} differ from particle {first_id}, cannot average spin motions"
            )
        total = total + motion
    return total / len(successful)


class SpinTracking(Simulation[TrackingTask]):
    """
    Spin tracking of all particles and their average polarization.

    Example:
        >>> tracking = SpinTracking(config, num_threads=4)
        >>> tracking.set_model(lattice)
        >>> results = tracking.start()
        >>> tracking.polarization.to_frame()
    """

    def __init__(self, config, num_threads: Optional[int] = None, monitors=None):
        super().__init__(config, num_threads, monitors)
        self.polarization: Optional[SpinMotion] = None

    def create_task(self, particle_id: int) -> TrackingTask:
        return TrackingTask(particle_id, self.config)

    def check_preconditions(self):
        self.config.check_tracking()
        super().check_preconditions()

    def start(self) -> SimulationResults:
        """
        Track all particles and average their spins.

        Raises:
            ConfigurationError: If the run cannot start
        """
        logger.info("\n" + self.config.summary())
        self.polarization = None
        results = self.run_tasks()

        if results.success:
            self.polarization = average_spin_motion(self.spin_motions(), self.errors)
            logger.info(f"Polarization calculated from {results.num_successful} particles "
                        f"in {results.execution_time:.1f} s")
        else:
            logger.error("Aborted: no particle was tracked successfully")
        return results

    def spin_motions(self) -> Dict[int, SpinMotion]:
        return {task.particle_id: task.spin_motion for task in self.tasks}

    def spin_motion(self, particle_id: int) -> SpinMotion:
        return self.tasks[particle_id].spin_motion

    def phase_space(self, particle_id: int) -> Optional[pd.DataFrame]:
        """Longitudinal phase space of a particle flagged in ``save_gamma``."""
        return self.tasks[particle_id].phase_space()

    def polarization_frame(self) -> pd.DataFrame:
        if self.polarization is None:
            raise AggregationError("No polarization available, run start() first")
        return self.polarization.to_frame()
