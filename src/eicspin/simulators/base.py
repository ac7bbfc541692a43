"""
Base simulation engine for EICSpin.

This module provides the generic parallel task scheduler and the abstract
base class of multi-particle simulations. A simulation creates one task per
particle, hands the shared machine model to every task, runs all tasks on a
fixed pool of worker threads and reports failed particles without aborting
the others.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar
import logging
import os
import threading
import time

from ..machine_portal.element import ElementKind
from .simtool import PreparedSimTool, SimToolAdapter
from .tasks import SimulationTask
from .types import (
    ConfigurationError,
    RF_GAMMA_MODES,
    SIMTOOL_GAMMA_MODES,
    SimulationResults,
    TaskStatus,
    TrajectoryMode,
)

logger = logging.getLogger(__name__)

TaskT = TypeVar('TaskT', bound=SimulationTask)


class TaskScheduler(Generic[TaskT]):
    """
    Fixed-size thread pool executing a queue of particle tasks.

    Workers claim the next task under a single lock, run it outside the
    lock and record any exception in the error ledger (particle id ->
    message). A failing task never stops its worker or the other tasks.
    The same lock guards the queue cursor, the set of running tasks and
    the error ledger.

    Args:
        tasks: Tasks to execute, each exposing ``particle_id``, ``run()`` and ``progress()``
        num_threads: Worker threads, default number of CPUs (at least 1)
        on_task_done: Optional callback ``(task, error)`` called by the worker after each task
    """

    def __init__(self, tasks: Sequence[TaskT] = (), num_threads: Optional[int] = None,
                 on_task_done: Optional[Callable[[TaskT, Optional[Exception]], None]] = None):
        self.tasks: List[TaskT] = list(tasks)
        self.num_threads = max(1, num_threads if num_threads is not None else (os.cpu_count() or 1))
        self.on_task_done = on_task_done

        self._lock = threading.Lock()
        self._next = 0
        self._running: Dict[int, TaskT] = {}
        self._errors: Dict[int, str] = {}

    def add(self, task: TaskT):
        with self._lock:
            self.tasks.append(task)

    @property
    def num_tasks(self) -> int:
        return len(self.tasks)

    @property
    def num_errors(self) -> int:
        with self._lock:
            return len(self._errors)

    @property
    def errors(self) -> Dict[int, str]:
        """Copy of the error ledger."""
        with self._lock:
            return dict(self._errors)

    def progress(self) -> Dict[int, float]:
        """Snapshot of the progress of all currently running tasks."""
        with self._lock:
            running = list(self._running.items())
        return {particle_id: task.progress() for particle_id, task in running}

    def _claim(self) -> Optional[TaskT]:
        with self._lock:
            if self._next >= len(self.tasks):
                return None
            task = self.tasks[self._next]
            self._next += 1
            self._running[task.particle_id] = task
            task.status = TaskStatus.RUNNING
            return task

    def _worker(self):
        while True:
            task = self._claim()
            if task is None:
                return
            error = None
            try:
                task.run()
            except Exception as e:
                error = e
                message = str(e) or type(e).__name__
                logger.warning(f"Particle {task.particle_id} failed: {message}")
                with self._lock:
                    self._errors[task.particle_id] = message
            finally:
                with self._lock:
                    self._running.pop(task.particle_id, None)
                    task.status = TaskStatus.ERROR if error is not None else TaskStatus.COMPLETED
            if self.on_task_done is not None:
                try:
                    self.on_task_done(task, error)
                except Exception as e:
                    logger.warning(f"Task callback error for particle {task.particle_id}: {e}")

    def start(self):
        """Execute all tasks and block until every worker has finished."""
        with self._lock:
            self._next = 0
            self._running.clear()
            self._errors.clear()

        threads = [
            threading.Thread(target=self._worker, name=f"eicspin-worker-{i}", daemon=True)
            for i in range(self.num_threads)
        ]
        logger.debug(f"Starting {len(threads)} worker threads for {self.num_tasks} tasks")
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()


class SimulationMonitor(ABC):
    """
    Abstract base class for simulation monitoring and callbacks.

    Monitors can be attached to simulations to receive updates about the
    progress. ``on_task_complete`` is called from the worker threads.
    """

    @abstractmethod
    def on_simulation_start(self, simulation: "Simulation"):
        """Called when the simulation starts."""
        pass

    @abstractmethod
    def on_task_complete(self, particle_id: int, data: Dict[str, Any]):
        """Called after each particle task."""
        pass

    @abstractmethod
    def on_simulation_complete(self, results: SimulationResults):
        """Called when the simulation finishes."""
        pass

    @abstractmethod
    def on_error(self, error: Exception):
        """Called when the simulation aborts."""
        pass


class ProgressMonitor(SimulationMonitor):
    """Simple progress monitoring implementation."""

    def __init__(self, show_progress: bool = True):
        self.show_progress = show_progress
        self.start_time = None
        self.total_tasks = 0
        self.completed = 0
        self._lock = threading.Lock()

    def on_simulation_start(self, simulation: "Simulation"):
        self.start_time = time.time()
        self.total_tasks = simulation.num_particles
        self.completed = 0
        if self.show_progress:
            logger.info(f"Starting {type(simulation).__name__} with {simulation.num_particles} particles "
                        f"on {simulation.scheduler.num_threads} threads")

    def on_task_complete(self, particle_id: int, data: Dict[str, Any]):
        with self._lock:
            self.completed += 1
            completed = self.completed
        report_every = max(1, self.total_tasks // 10)
        if self.show_progress and (completed % report_every == 0 or completed == self.total_tasks):
            elapsed = time.time() - self.start_time if self.start_time else 0
            progress = completed / self.total_tasks * 100 if self.total_tasks else 100.0
            logger.info(f"Progress: {progress:.1f}% ({completed}/{self.total_tasks} particles, {elapsed:.1f}s elapsed)")

    def on_simulation_complete(self, results: SimulationResults):
        if self.show_progress:
            logger.info(f"Simulation completed in {results.execution_time:.2f}s")
            logger.info(f"Successful particles: {results.num_successful}/{results.num_particles}")

    def on_error(self, error: Exception):
        logger.error(f"Simulation error: {error}")


class Simulation(ABC, Generic[TaskT]):
    """
    Abstract base class of multi-particle simulations.

    Key features:
    - One task per particle id, executed by a ``TaskScheduler``
    - Shared machine model (lattice and prepared external tool) set once
    - Structural preconditions checked before any task is queued
    - Monitor/callback system for progress updates
    """

    def __init__(self, config, num_threads: Optional[int] = None,
                 monitors: Optional[List[SimulationMonitor]] = None):
        self.config = config
        self.lattice = None
        self.simtool: Optional[PreparedSimTool] = None
        self.scheduler: TaskScheduler[TaskT] = TaskScheduler(num_threads=num_threads,
                                                             on_task_done=self._task_done)
        self.results: Optional[SimulationResults] = None

        self.monitors: List[SimulationMonitor] = []
        if monitors is None:
            self.add_monitor(ProgressMonitor())
        else:
            for monitor in monitors:
                self.add_monitor(monitor)

    # === Model ===

    def set_model(self, lattice, simtool: Optional[SimToolAdapter] = None):
        """
        Set the machine model shared by all particles.

        The external tool is prepared here, once, before any task exists.
        For RF-based gamma modes unset machine parameters of the
        configuration are completed from the lattice.

        Args:
            lattice: Lattice provider
            simtool: Adapter of an external simulation tool
        """
        self.lattice = lattice
        if simtool is not None:
            self.simtool = simtool.prepare()
            if lattice.closed_orbit is None and self.simtool.closed_orbit is not None:
                lattice.closed_orbit = self.simtool.closed_orbit
                logger.info(f"Using closed orbit of '{self.simtool.name}'")
        if self.config.gamma_mode in RF_GAMMA_MODES:
            self.config.autocomplete(lattice)

    @property
    def model_ready(self) -> bool:
        return self.lattice is not None and len(self.lattice) > 0 and self.lattice.circumference > 0

    def check_preconditions(self):
        """
        Check everything that would make all particles fail.

        Raises:
            ConfigurationError: If the run cannot start
        """
        if not self.model_ready:
            raise ConfigurationError("Model not initialized: call set_model with a non-empty lattice")
        config = self.config
        needs_simtool = (config.gamma_mode in SIMTOOL_GAMMA_MODES
                         or config.trajectory_mode == TrajectoryMode.SIMTOOL)
        if needs_simtool and self.simtool is None:
            raise ConfigurationError(
                f"gamma_mode '{config.gamma_mode.value}' / trajectory_mode '{config.trajectory_mode.value}' "
                "requires an external simulation tool in set_model"
            )
        if config.gamma_mode in RF_GAMMA_MODES:
            config.check_rf_parameters()
            if self.lattice.count(ElementKind.CAVITY) == 0:
                raise ConfigurationError(f"gamma_mode '{config.gamma_mode.value}' requires RF cavities in the lattice")
        config.check_trajectory_parameters()

    # === Tasks ===

    @abstractmethod
    def create_task(self, particle_id: int) -> TaskT:
        """Create the task of one particle."""
        pass

    @property
    def tasks(self) -> List[TaskT]:
        return self.scheduler.tasks

    @property
    def num_particles(self) -> int:
        return self.config.num_particles

    @property
    def num_successful(self) -> int:
        return self.scheduler.num_tasks - self.scheduler.num_errors

    @property
    def errors(self) -> Dict[int, str]:
        return self.scheduler.errors

    def successful_tasks(self) -> List[TaskT]:
        errors = self.errors
        return [task for task in self.tasks if task.particle_id not in errors]

    def _populate(self):
        tasks = []
        for particle_id in range(self.config.num_particles):
            task = self.create_task(particle_id)
            task.set_model(self.lattice, self.simtool)
            tasks.append(task)
        self.scheduler.tasks = tasks

    def _task_done(self, task: TaskT, error: Optional[Exception]):
        self._notify_monitors('task_complete', task.particle_id, {'error': error, 'status': task.status})

    def run_tasks(self) -> SimulationResults:
        """
        Check preconditions, run all particle tasks and collect the bookkeeping.

        Returns:
            SimulationResults with successful count, error ledger and timing
        """
        try:
            self.check_preconditions()
            self._populate()
        except Exception as e:
            self._notify_monitors('error', e)
            raise

        self._notify_monitors('simulation_start', self)
        start_time = time.time()
        self.scheduler.start()

        self.results = SimulationResults(
            num_particles=self.scheduler.num_tasks,
            num_successful=self.num_successful,
            errors=self.errors,
            execution_time=time.time() - start_time,
            num_threads=self.scheduler.num_threads,
        )
        if self.results.errors:
            logger.warning(self.results.error_report())
        self._notify_monitors('simulation_complete', self.results)
        return self.results

    @abstractmethod
    def start(self) -> SimulationResults:
        """Run the simulation."""
        pass

    def error_report(self) -> str:
        if self.results is None:
            return "Simulation not started."
        return self.results.error_report()

    # === Monitors ===

    def add_monitor(self, monitor: SimulationMonitor):
        """Add a monitoring callback."""
        self.monitors.append(monitor)
        logger.debug(f"Added monitor: {type(monitor).__name__}")

    def remove_monitor(self, monitor: SimulationMonitor):
        """Remove a monitoring callback."""
        if monitor in self.monitors:
            self.monitors.remove(monitor)
            logger.debug(f"Removed monitor: {type(monitor).__name__}")

    def _notify_monitors(self, event: str, *args, **kwargs):
        """Notify all registered monitors of an event."""
        for monitor in self.monitors:
            try:
                if hasattr(monitor, f'on_{event}'):
                    getattr(monitor, f'on_{event}')(*args, **kwargs)
            except Exception as e:
                logger.warning(f"Monitor {type(monitor).__name__} error in on_{event}: {e}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(num_particles={self.num_particles}, model_ready={self.model_ready})"
