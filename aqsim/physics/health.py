"""
Concentration-response functions for PM2.5 mortality.

Relative risk is log-linear in concentration, with a 10 μg/m³ increase in
PM2.5 raising all-cause mortality by 6% (Krewski et al. 2009):

    RR(C) = exp(ln(1.06) / 10 · C)

Attributable deaths for a population with baseline mortality rate I
[deaths per 100,000 per year]:

    deaths = (RR - 1) / RR · P · I / 100,000
"""

import math

RR_PER_10 = 1.06
RATE_DENOMINATOR = 100000.0

_BETA = math.log(RR_PER_10) / 10.0


def rr_pm25_linear(concentration: float) -> float:
    """Relative risk of death at a PM2.5 concentration [μg/m³]."""
    return math.exp(_BETA * concentration)


def deaths(relative_risk: float, population: float, mortality_rate: float) -> float:
    """Expected attributable deaths per year for one cell."""
    if relative_risk <= 0.0:
        return 0.0
    return (relative_risk - 1.0) / relative_risk * population * mortality_rate / RATE_DENOMINATOR
