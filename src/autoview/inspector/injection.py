"""Injection Strategy Selector.

Tries, in order, every known way of getting the probe running inside the
embedded target. The first strategy that reports success wins; failures are
logged and never raised to the caller.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from autoview.core.errors import AccessDeniedError, InjectionError

from .messages import InjectInspector, encode

if TYPE_CHECKING:
    from .surface import PreviewSurface

logger = logging.getLogger("autoview.injection")

WaitReady = Callable[[float], Awaitable[bool]]

_ACCESS_DENIED_MARKERS = ("securityerror", "cross-origin", "permission denied", "blocked a frame", "not accessible")


def classify_failure(strategy: str, error: Exception) -> InjectionError:
    """Map whatever a strategy raised onto the injection error taxonomy."""
    if isinstance(error, InjectionError):
        return error
    reason = str(error) or error.__class__.__name__
    if any(marker in reason.lower() for marker in _ACCESS_DENIED_MARKERS):
        return AccessDeniedError(strategy, reason)
    return InjectionError(strategy, reason)


class InjectionStrategy(ABC):
    name: str

    @abstractmethod
    async def attempt(self, surface: PreviewSurface, script: str, wait_ready: WaitReady) -> bool:
        """Run the probe in the target; True when it is known to be running."""


class PrivilegedBridgeStrategy(InjectionStrategy):
    name = "privileged-bridge"

    async def attempt(self, surface: PreviewSurface, script: str, wait_ready: WaitReady) -> bool:
        if not surface.supports_privileged:
            return False
        await surface.execute_privileged(script)
        return True


class ScriptElementStrategy(InjectionStrategy):
    name = "script-element"

    async def attempt(self, surface: PreviewSurface, script: str, wait_ready: WaitReady) -> bool:
        await surface.inject_script_element(script)
        return True


class GlobalEvalStrategy(InjectionStrategy):
    name = "global-eval"

    async def attempt(self, surface: PreviewSurface, script: str, wait_ready: WaitReady) -> bool:
        await surface.evaluate_in_target(script)
        return True


class SelfInjectionRequestStrategy(InjectionStrategy):
    """Ask an opted-in target to evaluate the probe itself."""

    name = "self-injection"

    def __init__(self, timeout_ms: int = 1000) -> None:
        self.timeout_ms = timeout_ms

    async def attempt(self, surface: PreviewSurface, script: str, wait_ready: WaitReady) -> bool:
        await surface.post_message(encode(InjectInspector(script=script)))
        return await wait_ready(self.timeout_ms / 1000)


def default_strategies(self_inject_timeout_ms: int = 1000) -> list[InjectionStrategy]:
    return [
        PrivilegedBridgeStrategy(),
        ScriptElementStrategy(),
        GlobalEvalStrategy(),
        SelfInjectionRequestStrategy(self_inject_timeout_ms),
    ]


@dataclass
class InjectionOutcome:
    success: bool
    strategy: str | None = None
    attempts: list[str] = field(default_factory=list)
    errors: list[InjectionError] = field(default_factory=list)
    already_injected: bool = False


class InjectionStrategySelector:
    """Owns the registry of targets the probe is already running in."""

    def __init__(self, strategies: Sequence[InjectionStrategy] | None = None) -> None:
        self.strategies = list(strategies) if strategies is not None else default_strategies()
        self._injected: dict[tuple[str, int], str] = {}

    def is_injected(self, target: tuple[str, int]) -> bool:
        return target in self._injected

    def forget(self, target: tuple[str, int]) -> None:
        self._injected.pop(target, None)

    def forget_surface(self, identity: str) -> None:
        for target in [t for t in self._injected if t[0] == identity]:
            del self._injected[target]

    async def inject(self, surface: PreviewSurface, script: str, wait_ready: WaitReady) -> InjectionOutcome:
        target = surface.target
        if target in self._injected:
            logger.debug("Probe already running in %s via %s", target, self._injected[target])
            return InjectionOutcome(success=True, strategy=self._injected[target], already_injected=True)

        outcome = InjectionOutcome(success=False)
        for strategy in self.strategies:
            outcome.attempts.append(strategy.name)
            try:
                succeeded = await strategy.attempt(surface, script, wait_ready)
            except Exception as e:
                error = classify_failure(strategy.name, e)
                outcome.errors.append(error)
                kind = "access denied" if isinstance(error, AccessDeniedError) else "failed"
                logger.info("Injection strategy %s %s: %s", strategy.name, kind, error.reason)
                continue

            if succeeded:
                logger.info("Probe injected into %s via %s", target, strategy.name)
                self._injected[target] = strategy.name
                outcome.success = True
                outcome.strategy = strategy.name
                return outcome
            logger.debug("Injection strategy %s not applicable", strategy.name)

        logger.warning("All injection strategies failed for %s", target)
        return outcome
