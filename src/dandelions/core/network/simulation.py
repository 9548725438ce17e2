"""
Force-directed layout of a Network.

Every pair of nodes repels with an inverse-square force; parent-child
pairs are also joined by Hooke springs. The O(n^2) pairwise pass is split
into contiguous ranges of the packed lower-triangular pair enumeration,
one per worker thread, each accumulating into a private buffer. The
calling thread sums the buffers once every worker has finished and then
integrates.

The simulation is driven by a single thread. Pin, unpin and translate are
meant to be called from that same thread between steps.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from types import TracebackType

import numpy as np

from dandelions.core.exceptions import ConfigurationError, UnknownNodeError
from dandelions.core.matrix_utils import ltri_indices, ltri_k, ltri_size
from dandelions.core.network.model import Network, Node
from dandelions.models.config import SimulationConfig

logger = logging.getLogger(__name__)


class Constant:
    """A tunable physical constant with a slider range.

    ``maximum`` may be below ``minimum``, which reverses the direction of
    :meth:`set_fraction` and :meth:`as_fraction`.

    Example:
        >>> c = Constant(0.2, 10.0, 0.1)
        >>> c.set_fraction(1.0)
        >>> c.value
        0.1
    """

    def __init__(self, value: float, minimum: float, maximum: float):
        lo, hi = sorted((minimum, maximum))
        if not lo <= value <= hi:
            raise ConfigurationError(
                f"Constant value {value} outside range [{minimum}, {maximum}]"
            )
        self.value = value
        self.default = value
        self.minimum = minimum
        self.maximum = maximum

    def __repr__(self) -> str:
        return f"Constant({self.value!r}, {self.minimum!r}, {self.maximum!r})"

    def as_fraction(self) -> float:
        """Position of the value between minimum and maximum."""
        if self.maximum == self.minimum:
            return 0.0
        return (self.value - self.minimum) / (self.maximum - self.minimum)

    def set_fraction(self, f: float) -> None:
        """Set the value by interpolating between minimum and maximum."""
        if not 0.0 <= f <= 1.0:
            raise ValueError(f"Fraction must be in [0, 1], got {f}")
        self.value = self.minimum + f * (self.maximum - self.minimum)

    def reset(self) -> None:
        self.value = self.default


# Slider ranges (minimum, maximum) for each constant
CONSTANT_RANGES: dict[str, tuple[float, float]] = {
    "repulsion": (0.0, 1.0),
    "compaction": (0.0, 0.01),
    "drag": (0.0, 2.0),
    "tension": (0.0, 2.0),
    "scale": (0.5, 2.0),
    "max_speed": (10.0, 0.1),
    "timestep": (0.1, 4.0),
}


def _make_constants(config: SimulationConfig) -> dict[str, Constant]:
    """Constants from config, widening a slider range to contain its value."""
    constants = {}
    for name, (lo, hi) in CONSTANT_RANGES.items():
        value = getattr(config, name)
        if lo <= hi:
            lo, hi = min(lo, value), max(hi, value)
        else:
            lo, hi = max(lo, value), min(hi, value)
        constants[name] = Constant(value, lo, hi)
    return constants


def _pair_forces(
    rows: np.ndarray,
    cols: np.ndarray,
    x: np.ndarray,
    y: np.ndarray,
    mass: np.ndarray,
    springs: np.ndarray,
    rest: np.ndarray,
    repulsion: float,
    tension: float,
    epsilon: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Net force on every node from one contiguous range of pairs.

    Returns private (fx, fy) buffers sized to the whole node set.
    """
    n = len(x)
    i, j = rows, cols
    dx = x[j] - x[i]
    dy = y[j] - y[i]
    r_sq = dx * dx + dy * dy
    r = np.maximum(np.sqrt(r_sq), epsilon)
    r_sq = np.maximum(r_sq, epsilon)

    fg = -repulsion * mass[i] * mass[j] / r_sq
    fs = tension * springs * (r - rest)
    f = (fg + fs) / r

    fx = f * dx
    fy = f * dy
    out_x = np.bincount(i, weights=fx, minlength=n) - np.bincount(j, weights=fx, minlength=n)
    out_y = np.bincount(i, weights=fy, minlength=n) - np.bincount(j, weights=fy, minlength=n)
    return out_x, out_y


class ForceSimulation:
    """Force-directed simulation over a snapshot of a Network's nodes.

    Nodes are snapshotted in ascending draw order (``Node.z``) when the
    simulation is reset; the arrays below are aligned with that snapshot.
    Positions are written back to the nodes after every step.

    Use as a context manager so the worker pool is shut down::

        with ForceSimulation(network, SimulationConfig(seed=1)) as sim:
            sim.pin_node(0)
            sim.run(500)
    """

    def __init__(
        self,
        network: Network,
        config: SimulationConfig | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.network = network
        self.config = config or SimulationConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.constants = _make_constants(self.config)
        self.epsilon = self.config.epsilon

        self.n_workers = self.config.n_workers or max(1, (os.cpu_count() or 2) - 1)
        self.reset()
        self._executor = ThreadPoolExecutor(
            max_workers=self.n_workers,
            thread_name_prefix="force",
        )

    def __enter__(self) -> ForceSimulation:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Shut down the worker pool."""
        self._executor.shutdown(wait=True)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """Snapshot nodes, scatter them on the unit circle and rebuild springs."""
        self.iteration = 0
        self._max_velocity = 0.0

        self.nodes: list[Node] = sorted(self.network.nodes, key=lambda n: n.z)
        self._index = {n.id: k for k, n in enumerate(self.nodes)}
        n = len(self.nodes)

        angles = self.rng.random(n) * 2.0 * np.pi
        self.x = np.cos(angles)
        self.y = np.sin(angles)
        self.vx = np.zeros(n)
        self.vy = np.zeros(n)
        self.pinned = np.zeros(n, dtype=bool)
        self.mass = np.array([node.mass + len(node.children) for node in self.nodes])
        self.radius = np.array([node.radius for node in self.nodes])

        n_pairs = ltri_size(n)
        self.springs = np.zeros(n_pairs)
        self.rest_lengths = np.zeros(n_pairs)
        self.radius_sums = np.zeros(n_pairs)
        for node in self.nodes:
            if node.parent is None or node.parent not in self._index:
                continue
            i = self._index[node.id]
            j = self._index[node.parent]
            k = ltri_k(i, j)
            self.springs[k] = 1.0
            self.rest_lengths[k] = node.length
            self.radius_sums[k] = self.radius[i] + self.radius[j]

        self._rows, self._cols = ltri_indices(n)
        bounds = np.linspace(0, n_pairs, min(self.n_workers, max(n_pairs, 1)) + 1)
        self._ranges = [
            (int(lo), int(hi)) for lo, hi in zip(bounds[:-1].round(), bounds[1:].round()) if hi > lo
        ]

        self._write_back()
        logger.debug(
            f"Simulation reset: {n} nodes, {n_pairs} pairs over {len(self._ranges)} ranges"
        )

    def _write_back(self) -> None:
        for k, node in enumerate(self.nodes):
            node.x = float(self.x[k])
            node.y = float(self.y[k])

    def _slot(self, node_id: int) -> int:
        try:
            return self._index[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def value(self, name: str) -> float:
        return self.constants[name].value

    @property
    def max_velocity(self) -> float:
        """Largest node speed reached in the most recent step."""
        return self._max_velocity

    def positions(self) -> np.ndarray:
        """(n, 2) array of positions in snapshot order."""
        return np.column_stack([self.x, self.y])

    @property
    def node_ids(self) -> list[int]:
        return [n.id for n in self.nodes]

    # -------------------------------------------------------------------------
    # Stepping
    # -------------------------------------------------------------------------

    def _forces(self) -> tuple[np.ndarray, np.ndarray]:
        n = len(self.nodes)
        fx = np.zeros(n)
        fy = np.zeros(n)
        if not self._ranges:
            return fx, fy

        # Spring rest length depends on the live scale constant
        rest = self.rest_lengths * self.value("scale") + self.radius_sums
        repulsion = self.value("repulsion")
        tension = self.value("tension")

        futures = [
            self._executor.submit(
                _pair_forces,
                self._rows[lo:hi],
                self._cols[lo:hi],
                self.x,
                self.y,
                self.mass,
                self.springs[lo:hi],
                rest[lo:hi],
                repulsion,
                tension,
                self.epsilon,
            )
            for lo, hi in self._ranges
        ]
        # Barrier: every range must finish before integration
        for future in futures:
            part_x, part_y = future.result()
            fx += part_x
            fy += part_y
        return fx, fy

    def simulate_step(self) -> int:
        """Advance the simulation by one tick.

        Returns:
            Number of steps taken since the last reset.
        """
        drag = self.value("drag")
        compaction = self.value("compaction")
        max_speed = self.value("max_speed")
        dt = self.value("timestep")

        fx, fy = self._forces()

        self.vx += (fx - drag * self.vx - compaction * self.x) / self.mass
        self.vy += (fy - drag * self.vy - compaction * self.y) / self.mass

        speed = np.hypot(self.vx, self.vy)
        moving = speed > self.epsilon
        scale = np.ones_like(speed)
        scale[moving] = np.minimum(max_speed, speed[moving]) / speed[moving]
        self.vx *= scale
        self.vy *= scale
        self.vx[self.pinned] = 0.0
        self.vy[self.pinned] = 0.0

        self.x += dt * self.vx
        self.y += dt * self.vy

        self._max_velocity = float(np.hypot(self.vx, self.vy).max()) if len(speed) else 0.0
        self._write_back()

        self.iteration += 1
        return self.iteration

    def run(self, steps: int, stop_event: threading.Event | None = None) -> int:
        """Take up to ``steps`` steps, stopping between steps if ``stop_event`` is set."""
        for _ in range(steps):
            if stop_event is not None and stop_event.is_set():
                logger.debug(f"Simulation stopped at iteration {self.iteration}")
                break
            self.simulate_step()
        return self.iteration

    # -------------------------------------------------------------------------
    # Interaction
    # -------------------------------------------------------------------------

    def pin_node(self, node_id: int) -> None:
        """Hold a node in place: zero its velocity until unpinned."""
        k = self._slot(node_id)
        self.vx[k] = 0.0
        self.vy[k] = 0.0
        self.pinned[k] = True

    def unpin_node(self, node_id: int) -> None:
        self.pinned[self._slot(node_id)] = False

    def translate_node(self, node_id: int, dx: float, dy: float) -> None:
        """Move a node by (dx, dy) without touching any other node."""
        k = self._slot(node_id)
        self.x[k] += dx
        self.y[k] += dy
        node = self.nodes[k]
        node.x = float(self.x[k])
        node.y = float(self.y[k])

    def pick(self, point: Sequence[float]) -> Node | None:
        """Topmost node (highest z) whose disc contains ``point``, if any."""
        x, y = point
        for k in range(len(self.nodes) - 1, -1, -1):
            if np.hypot(x - self.x[k], y - self.y[k]) < self.radius[k]:
                return self.nodes[k]
        return None
