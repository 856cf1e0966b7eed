"""
Phase-synchronized worker pool for per-cell science operators.

Each iteration applies an ordered list of operators to every active cell.
Work is split across a fixed pool of threads:

    - Static striping: worker w handles cells w, w+n, w+2n, ...
    - One task queue per worker; the controller pushes the same operator
      into every queue.
    - Barrier after every operator: all workers finish operator k on all of
      their cells before any worker receives operator k+1.

The barrier is what makes the scheme consistent: an operator may read a
neighbor's state as left by the previous operator, so no worker may run
ahead into the next phase while another is still writing.

Cells above ``top_layer`` are skipped by every operator. Each operator
application holds the cell's lock so that outside readers never observe a
half-written cell.
"""

import os
import queue
import threading
from typing import Callable, List, Optional, Sequence

from loguru import logger

from ..errors import OperatorError
from ..grid.cell import Cell
from ..grid.domain import Domain, DomainContext

ScienceOperator = Callable[[Cell, DomainContext], None]

_STOP = object()


def operator_name(op: ScienceOperator) -> str:
    return getattr(op, '__name__', type(op).__name__)


class ScienceScheduler:
    """
    Applies science operators to all cells with a fixed thread pool.

    Parameters
    ----------
    domain : Domain
        Domain whose active cells are updated.
    operators : sequence of callables
        ``operator(cell, context)``, applied in order once per iteration.
    n_workers : int, optional
        Number of worker threads. Defaults to the number of processors.
    top_layer : int, optional
        Cells with a layer above this are not simulated.

    Example
    -------
    >>> with ScienceScheduler(domain, [add_emissions_flux, decay]) as sched:
    ...     sched.run_iteration()
    """

    def __init__(self,
                 domain: Domain,
                 operators: Sequence[ScienceOperator],
                 n_workers: Optional[int] = None,
                 top_layer: Optional[int] = None):
        if n_workers is None:
            n_workers = os.cpu_count() or 1
        if n_workers < 1:
            raise ValueError(f"n_workers must be positive, got {n_workers}")

        self.domain = domain
        self.context = domain.context()
        self.operators = list(operators)
        self.n_workers = n_workers
        self.top_layer = top_layer
        self.iteration = 0

        self._queues: List[queue.Queue] = []
        self._threads: List[threading.Thread] = []
        self._barrier = threading.Barrier(n_workers + 1)
        self._errors: List[Optional[BaseException]] = [None] * n_workers
        self._running = False

    # ------------------------------------------------------------------
    # Pool lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Create the worker threads. Called once per run."""
        if self._running:
            return
        for worker_id in range(self.n_workers):
            q = queue.Queue(maxsize=1)
            t = threading.Thread(
                target=self._worker,
                args=(worker_id, q),
                name=f"science-worker-{worker_id}",
                daemon=True,
            )
            self._queues.append(q)
            self._threads.append(t)
            t.start()
        self._running = True
        logger.debug(f"Started {self.n_workers} science workers")

    def close(self) -> None:
        """Stop the workers. Only valid between phases."""
        if not self._running:
            return
        for q in self._queues:
            q.put(_STOP)
        for t in self._threads:
            t.join()
        self._queues.clear()
        self._threads.clear()
        self._running = False

    def __enter__(self) -> 'ScienceScheduler':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Work
    # ------------------------------------------------------------------

    def _is_active(self, cell: Cell) -> bool:
        return self.top_layer is None or cell.layer <= self.top_layer

    def _worker(self, worker_id: int, tasks: queue.Queue) -> None:
        cells = self.domain.cells
        while True:
            op = tasks.get()
            if op is _STOP:
                return
            try:
                for idx in range(worker_id, len(cells), self.n_workers):
                    cell = cells[idx]
                    if not self._is_active(cell):
                        continue
                    with cell.lock:
                        op(cell, self.context)
            except Exception as exc:
                # Reported by the controller once every worker reaches the barrier
                self._errors[worker_id] = exc
            except BaseException as exc:
                # The worker exits, but only after releasing the controller
                self._errors[worker_id] = exc
                raise
            finally:
                self._barrier.wait()

    def run_phase(self, op: ScienceOperator) -> None:
        """
        Apply one operator to every active cell and wait for completion.

        Raises
        ------
        OperatorError
            If the operator raised on any cell. The phase still completes
            on all workers first.
        """
        if not self._running:
            raise RuntimeError("Scheduler is not started")

        for q in self._queues:
            q.put(op)
        self._barrier.wait()

        failures = [e for e in self._errors if e is not None]
        if failures:
            self._errors = [None] * self.n_workers
            raise OperatorError(operator_name(op), self.iteration, failures[0]) from failures[0]

    def run_iteration(self) -> None:
        """Apply every operator in order, one barrier-separated phase each."""
        self.iteration += 1
        for op in self.operators:
            self.run_phase(op)
