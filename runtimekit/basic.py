"""Small pallets: a greeting call, event emitters and a last-caller record."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from runtimekit.runtime import Origin, System, ensure_signed

logger = logging.getLogger(__name__)


class HelloSubstrate:
    """A pallet whose only call logs a greeting for a signed caller."""

    def __init__(self, system: System) -> None:
        self.system = system

    def say_hello(self, origin: Origin) -> None:
        caller = ensure_signed(origin)
        logger.info("Hello World")
        logger.info("Request sent by: %r", caller)


@dataclass(frozen=True)
class EmitInput:
    """Some input was sent by an account."""

    account: Any
    value: int


class GenericEvent:
    """Emits an event carrying the caller's account and their input."""

    def __init__(self, system: System) -> None:
        self.system = system

    def do_something(self, origin: Origin, input: int) -> None:
        user = ensure_signed(origin)
        self.system.deposit_event(EmitInput(user, input))


@dataclass(frozen=True)
class SimpleEmitInput:
    """Some input was sent."""

    value: int


class SimpleEvent:
    """Emits an event carrying only the caller's input."""

    def __init__(self, system: System) -> None:
        self.system = system

    def do_something(self, origin: Origin, input: int) -> None:
        ensure_signed(origin)
        self.system.deposit_event(SimpleEmitInput(input))


@dataclass(frozen=True)
class Called:
    """The pallet was called by an account."""

    account: Any


class LastCaller:
    """Remembers the account that called it most recently."""

    def __init__(self, system: System) -> None:
        self.system = system
        self._caller: Any = None

    def call(self, origin: Origin) -> None:
        caller = ensure_signed(origin)
        self._caller = caller
        self.system.deposit_event(Called(caller))

    def caller(self) -> Any:
        """The most recent caller, or None if there has been none."""
        return self._caller