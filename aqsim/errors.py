"""Exceptions raised by the solver."""


class AQSimError(Exception):
    """Base class for solver errors."""


class UnknownPollutantError(AQSimError, KeyError):
    """Emissions were supplied for a pollutant the model does not track."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown emissions pollutant {self.name!r}"


class UnknownVariableError(AQSimError, KeyError):
    """An output variable name could not be resolved."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown variable {self.name!r}"


class OperatorError(AQSimError, RuntimeError):
    """A science operator failed; the run stops at the phase boundary."""

    def __init__(self, operator_name: str, iteration: int, cause: BaseException):
        super().__init__(
            f"Science operator {operator_name!r} failed during iteration "
            f"{iteration}: {cause}"
        )
        self.operator_name = operator_name
        self.iteration = iteration
        self.cause = cause
