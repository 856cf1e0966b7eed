"""
Global time step selection for the explicit transport scheme.

One time step is shared by every cell. It is the minimum over all cells of
four stability limits:

    Advection (CFL):        Δt₁ = C / √3 / max(s_x, s_y, s_z)
                            s_x = (|u| + 2·u') / Δx, etc.
    Vertical diffusion:     Δt₂ = C · Δz² / (2·K_zz)
    Horizontal diffusion:   Δt₃ = C · Δx² / (2·K_xxyy)
                            Δt₄ = C · Δy² / (2·K_xxyy)

The factor 2 on the turbulent deviation bounds unresolved turbulence; √3
combines the three per-axis Courant limits into one 3-D limit. A zero or
negative speed/diffusivity gives an unbounded (infinite) term, which is
simply excluded from the minimum.

Reference: Courant, Friedrichs, Lewy (1928); von Neumann stability analysis
for the explicit diffusion operator.
"""

from dataclasses import dataclass
from typing import NamedTuple

import numpy as np
import numpy.typing as npt
from loguru import logger

from ..constants import DEFAULT_COURANT, DEFAULT_FALLBACK_DT, SQRT3
from ..grid.domain import Domain

NDArrayFloat = npt.NDArray[np.floating]


@dataclass
class TimeStepConfig:
    """Configuration for time stepping."""
    courant: float = DEFAULT_COURANT
    min_dt: float = 0.0
    max_dt: float = np.inf                  # Optional ceiling on the stable step
    fallback_dt: float = DEFAULT_FALLBACK_DT


class StabilityBounds(NamedTuple):
    """Per-cell stability limits [s]; ``inf`` where a limit does not apply."""
    advection: NDArrayFloat
    vertical_diffusion: NDArrayFloat
    diffusion_x: NDArrayFloat
    diffusion_y: NDArrayFloat

    def cell_minimum(self) -> NDArrayFloat:
        """Smallest bound for every cell."""
        return np.minimum.reduce([self.advection, self.vertical_diffusion,
                                  self.diffusion_x, self.diffusion_y])


def _safe_ratio(num: NDArrayFloat, den: NDArrayFloat) -> NDArrayFloat:
    """num / den, with ``inf`` wherever den or the result is not positive and finite."""
    out = np.full(np.shape(den), np.inf)
    ok = den > 0
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        out[ok] = num[ok] / den[ok]
    out[~np.isfinite(out) | (out <= 0)] = np.inf
    return out


def _normalized_speed(mean: NDArrayFloat, deviation: NDArrayFloat,
                      extent: NDArrayFloat) -> NDArrayFloat:
    """(|mean| + 2·deviation) / extent, with 0 where extent is not positive."""
    speed = np.abs(mean) + 2.0 * deviation
    out = np.zeros_like(speed)
    ok = extent > 0
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        out[ok] = speed[ok] / extent[ok]
    out[~np.isfinite(out)] = 0.0
    return out


def compute_stability_bounds(dx: NDArrayFloat, dy: NDArrayFloat, dz: NDArrayFloat,
                             u: NDArrayFloat, v: NDArrayFloat, w: NDArrayFloat,
                             u_dev: NDArrayFloat, v_dev: NDArrayFloat, w_dev: NDArrayFloat,
                             kxxyy: NDArrayFloat, kzz: NDArrayFloat,
                             courant: float = DEFAULT_COURANT) -> StabilityBounds:
    """
    Compute the four stability limits for arrays of cell properties.

    All array arguments have shape (n_cells,).
    """
    s_max = np.maximum.reduce([
        _normalized_speed(u, u_dev, dx),
        _normalized_speed(v, v_dev, dy),
        _normalized_speed(w, w_dev, dz),
    ])
    advection = _safe_ratio(np.full_like(s_max, courant / SQRT3), s_max)

    vertical = _safe_ratio(courant * dz**2, 2.0 * kzz)
    diff_x = _safe_ratio(courant * dx**2, 2.0 * kxxyy)
    diff_y = _safe_ratio(courant * dy**2, 2.0 * kxxyy)

    return StabilityBounds(advection=advection, vertical_diffusion=vertical,
                           diffusion_x=diff_x, diffusion_y=diff_y)


def compute_domain_stability_bounds(domain: Domain,
                                    courant: float = DEFAULT_COURANT) -> StabilityBounds:
    """Stability limits for every active cell of a domain."""
    def column(name):
        return np.array([getattr(c, name) for c in domain.cells], dtype=float)

    return compute_stability_bounds(
        column('dx'), column('dy'), column('dz'),
        column('u_avg'), column('v_avg'), column('w_avg'),
        column('u_deviation'), column('v_deviation'), column('w_deviation'),
        column('kxxyy'), column('kzz'),
        courant=courant,
    )


def compute_global_timestep(domain: Domain, cfg: TimeStepConfig = None) -> float:
    """
    Compute the single global time step [s] for a domain.

    The minimum over all cells and limits, clipped to
    ``[cfg.min_dt, cfg.max_dt]`` (unbounded above by default). A domain with
    no finite limit (no wind, no diffusion) advances with ``cfg.fallback_dt``.
    """
    if cfg is None:
        cfg = TimeStepConfig()

    if not domain.cells:
        return float(cfg.fallback_dt)

    bounds = compute_domain_stability_bounds(domain, cfg.courant)
    dt = float(np.min(bounds.cell_minimum()))
    if not np.isfinite(dt):
        logger.debug(f"No finite stability limit; using fallback_dt={cfg.fallback_dt:g} s")
        return float(cfg.fallback_dt)
    return float(np.clip(dt, cfg.min_dt, cfg.max_dt))


def set_timestep(domain: Domain, cfg: TimeStepConfig = None) -> float:
    """Compute the global time step and store it on the domain."""
    domain.dt = compute_global_timestep(domain, cfg)
    logger.info(f"  Time step: {domain.dt:.4g} s")
    return domain.dt
