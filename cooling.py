# cooling.py
"""
Cooling schedules for the swap search.

A schedule maps a round number (0-based) to a temperature. The optimizer
only reads temperatures; how they fall over time is decided here.
"""

from abc import ABC, abstractmethod

class CoolingSchedule(ABC):
    """Abstract base class for temperature schedules."""

    def __init__(self, initial_temperature: float):
        self.initial_temperature = initial_temperature

    @abstractmethod
    def temperature(self, round_index: int) -> float:
        """Temperature to use in the given round."""
        pass

    @abstractmethod
    def get_mode_name(self) -> str:
        pass

class ExponentialCooling(CoolingSchedule):
    """T(k) = T0 * rate**k"""

    def __init__(self, initial_temperature: float, rate: float):
        super().__init__(initial_temperature)
        self.rate = rate

    def temperature(self, round_index: int) -> float:
        return self.initial_temperature * self.rate ** round_index

    def get_mode_name(self) -> str:
        return f"Exponential (rate {self.rate})"

class LinearCooling(CoolingSchedule):
    """T(k) = max(0, T0 - rate * k)"""

    def __init__(self, initial_temperature: float, rate: float):
        super().__init__(initial_temperature)
        self.rate = rate

    def temperature(self, round_index: int) -> float:
        return max(0.0, self.initial_temperature - self.rate * round_index)

    def get_mode_name(self) -> str:
        return f"Linear (step {self.rate})"

def create_schedule(name: str, initial_temperature: float, rate: float) -> CoolingSchedule:
    if name == 'exponential':
        return ExponentialCooling(initial_temperature, rate)
    elif name == 'linear':
        return LinearCooling(initial_temperature, rate)
    else:
        raise ValueError(f"Unknown cooling schedule: {name}")
