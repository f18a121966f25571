"""Pure domain values for the bookkeeping kernel."""

from bookkeeping_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from bookkeeping_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from bookkeeping_kernel.domain.values import Currency, Money
from bookkeeping_kernel.domain.workflow import (
    Guard,
    Transition,
    Workflow,
    allowed_targets,
    can_transition,
    require_transition,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "CurrencyInfo",
    "CurrencyRegistry",
    "Currency",
    "Money",
    "Guard",
    "Transition",
    "Workflow",
    "can_transition",
    "require_transition",
    "allowed_targets",
]
