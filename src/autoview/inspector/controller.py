"""Inspection Controller: host-side owner of the inspection session."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from autoview.core.config import InspectorConfig
from autoview.core.errors import AutoViewError
from autoview.core.models import BoundingBox, FrameworkInfo, InspectionResult
from autoview.mapping.source_mapper import SourceMapper

from .detector import FrameworkDetector
from .fallback import FallbackInspector
from .injection import InjectionStrategySelector, default_strategies
from .messages import (
    InspectClick,
    InspectHover,
    InspectionAck,
    InspectLeave,
    InspectorReady,
    MessageBus,
    RequestInspectionState,
    StartInspection,
    StopInspection,
    SurfaceClick,
    SurfaceMove,
    encode,
)
from .probe import ProbeSettings, render_probe_script

if TYPE_CHECKING:
    from .surface import PreviewSurface

logger = logging.getLogger("autoview.controller")

ResultCallback = Callable[[InspectionResult], Awaitable[None] | None]


class InspectionMode(StrEnum):
    PROBE = "probe"
    FALLBACK = "fallback"


@dataclass
class InspectionSession:
    on_result: ResultCallback | None = None
    is_inspecting: bool = False
    live: bool = False
    mode: InspectionMode = InspectionMode.PROBE
    highlighted_rect: BoundingBox | None = None
    last_result: InspectionResult | None = None
    framework: FrameworkInfo | None = None
    ready: asyncio.Event = field(default_factory=asyncio.Event)
    acknowledged: asyncio.Event = field(default_factory=asyncio.Event)

    def reset_document(self) -> None:
        """Forget what belonged to the previous document of the target."""
        self.live = False
        self.highlighted_rect = None
        self.framework = None
        self.ready.clear()
        self.acknowledged.clear()


class InspectionController:
    """Runs injection, the START handshake and turns probe messages into results.

    The session becomes live only once the probe acknowledges START. Until
    then START is retried; ``REQUEST_STATE`` from the probe triggers a resync.
    """

    def __init__(
        self,
        surface: PreviewSurface | None = None,
        *,
        config: InspectorConfig | None = None,
        detector: FrameworkDetector | None = None,
        source_mapper: SourceMapper | None = None,
        selector: InjectionStrategySelector | None = None,
    ) -> None:
        self.config = config or InspectorConfig.default()
        self.detector = detector or FrameworkDetector()
        self.source_mapper = source_mapper or SourceMapper(Path.cwd())
        self.selector = selector or InjectionStrategySelector(default_strategies(self.config.self_inject_timeout_ms))
        self.probe_script = render_probe_script(ProbeSettings(flash_ms=self.config.flash_ms))

        self.bus = MessageBus()
        self.bus.subscribe(InspectorReady, self._on_ready)
        self.bus.subscribe(RequestInspectionState, self._on_request_state)
        self.bus.subscribe(InspectionAck, self._on_ack)
        self.bus.subscribe(InspectHover, self._on_hover)
        self.bus.subscribe(InspectLeave, self._on_leave)
        self.bus.subscribe(InspectClick, self._on_click)
        self.bus.subscribe(SurfaceMove, self._on_surface_move)
        self.bus.subscribe(SurfaceClick, self._on_surface_click)

        self.surface: PreviewSurface | None = None
        self.fallback: FallbackInspector | None = None
        self.session: InspectionSession | None = None
        self._unsubscribe: list[Callable[[], None]] = []
        self._tasks: set[asyncio.Task] = set()

        if surface is not None:
            self.attach(surface)

    @property
    def is_inspecting(self) -> bool:
        return self.session is not None and self.session.is_inspecting

    # Lifecycle

    def attach(self, surface: PreviewSurface) -> None:
        if self.surface is surface:
            return
        if surface.owner is not None and surface.owner is not self:
            raise AutoViewError(f"Surface {surface.identity} already has an inspection controller")
        if self.surface is not None:
            self._release_surface()

        surface.owner = self
        self.surface = surface
        self.fallback = FallbackInspector(surface)
        self._unsubscribe = [
            surface.on_message(self.handle_message),
            surface.on_load(self._on_surface_load),
        ]

    def _release_surface(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        if self.surface is not None:
            self.surface.owner = None
            self.selector.forget_surface(self.surface.identity)
        self.surface = None
        self.fallback = None

    async def start(self, on_result: ResultCallback) -> None:
        if self.surface is None or self.fallback is None:
            logger.warning("Cannot start inspection: no preview surface attached")
            return
        if self.is_inspecting:
            self.session.on_result = on_result
            return

        session = InspectionSession(on_result=on_result, is_inspecting=True)
        self.session = session
        try:
            await self.fallback.arm()
        except Exception:
            logger.warning("Could not arm the surface listener", exc_info=True)
        await self._inject_and_handshake(session)

    async def stop(self) -> None:
        session = self.session
        if session is None or not session.is_inspecting:
            return

        session.is_inspecting = False
        self.session = None
        if self.surface is None:
            return
        try:
            await self.surface.post_message(encode(StopInspection()))
        except Exception:
            logger.debug("STOP not delivered", exc_info=True)
        try:
            await self.fallback.disarm()
            await self.surface.hide_overlay()
        except Exception:
            logger.warning("Could not reset the surface after stopping", exc_info=True)

    async def detach(self) -> None:
        await self.stop()
        for task in list(self._tasks):
            task.cancel()
        if self.surface is not None:
            try:
                await self.surface.remove_overlay()
            except Exception:
                logger.debug("Overlay removal failed", exc_info=True)
            self._release_surface()

    # Injection and handshake

    async def _inject_and_handshake(self, session: InspectionSession) -> None:
        surface = self.surface
        session.ready.clear()
        session.acknowledged.clear()

        outcome = await self.selector.inject(surface, self.probe_script, self._wait_ready_for(session))
        if self.session is not session:
            return
        if not outcome.success:
            await self._use_fallback(session)
            return

        if not await self._handshake(session):
            logger.warning("Probe never acknowledged START after %d attempts", self.config.start_attempts)
            await self._use_fallback(session)

    def _wait_ready_for(self, session: InspectionSession) -> Callable[[float], Awaitable[bool]]:
        async def wait_ready(timeout: float) -> bool:
            try:
                await asyncio.wait_for(session.ready.wait(), timeout)
            except TimeoutError:
                return False
            return True

        return wait_ready

    async def _handshake(self, session: InspectionSession) -> bool:
        await asyncio.sleep(self.config.settle_delay_ms / 1000)
        for attempt in range(1, self.config.start_attempts + 1):
            if self.session is not session or not session.is_inspecting:
                return True
            await self._send_start()
            try:
                await asyncio.wait_for(session.acknowledged.wait(), self.config.ack_timeout_ms / 1000)
            except TimeoutError:
                logger.debug("No ACK for START (attempt %d)", attempt)
                continue
            return True
        return False

    async def _send_start(self) -> None:
        try:
            await self.surface.post_message(encode(StartInspection()))
        except Exception:
            logger.debug("START not delivered", exc_info=True)

    async def _use_fallback(self, session: InspectionSession) -> None:
        session.mode = InspectionMode.FALLBACK
        try:
            await self.fallback.activate()
        except Exception:
            logger.warning("Could not activate fallback inspection", exc_info=True)

    async def _on_surface_load(self) -> None:
        session = self.session
        logger.debug("Surface %s loaded a new document", self.surface.identity)
        self.selector.forget_surface(self.surface.identity)
        if session is None:
            return
        session.reset_document()
        await self._hide_overlay()
        if not session.is_inspecting:
            return
        await asyncio.sleep(self.config.reinject_delay_ms / 1000)
        if self.session is session and session.is_inspecting:
            self._spawn(self._inject_and_handshake(session))

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # Messages

    async def handle_message(self, raw: Any) -> None:
        try:
            await self.bus.dispatch(raw)
        except Exception:
            logger.exception("Error handling inspector message %r", raw.get("type") if isinstance(raw, dict) else raw)

    async def _on_ready(self, message: InspectorReady) -> None:
        framework = self.detector.detect(message.framework)
        logger.info("Inspector ready, framework: %s %s", framework.type, framework.version or "")
        if self.session is not None:
            self.session.framework = framework
            self.session.ready.set()

    async def _on_request_state(self, message: RequestInspectionState) -> None:
        if self.is_inspecting:
            await self._send_start()

    async def _on_ack(self, message: InspectionAck) -> None:
        session = self.session
        if session is None or not session.is_inspecting:
            return
        session.live = True
        session.acknowledged.set()
        if session.mode is InspectionMode.FALLBACK:
            logger.info("Probe acknowledged late, leaving fallback inspection")
            session.mode = InspectionMode.PROBE
            await self.fallback.deactivate()

    async def _on_hover(self, message: InspectHover) -> None:
        if not self.is_inspecting:
            return
        try:
            box = await self.surface.bounding_box()
            if box is None:
                await self._hide_overlay()
                return
            rect = message.rect.translated(box.left, box.top)
            self.session.highlighted_rect = rect
            await self.surface.show_overlay(rect)
        except Exception:
            logger.debug("Overlay geometry failed", exc_info=True)
            await self._hide_overlay()

    async def _on_leave(self, message: InspectLeave) -> None:
        await self._hide_overlay()

    async def _hide_overlay(self) -> None:
        if self.session is not None:
            self.session.highlighted_rect = None
        if self.surface is None:
            return
        try:
            await self.surface.hide_overlay()
        except Exception:
            logger.debug("Could not hide overlay", exc_info=True)

    async def _on_click(self, message: InspectClick) -> None:
        if not self.is_inspecting:
            return
        result = await self.inspect_click(message)
        await self._deliver(result)

    async def inspect_click(self, message: InspectClick) -> InspectionResult:
        """Locate the component and map it to sources; degrades instead of failing."""
        framework = self.detector.detect(message.framework)
        component_source = None
        try:
            descriptor = self.detector.adapter_for(framework).describe(message.component)
            if descriptor is not None:
                component_source = await self.source_mapper.map_component(descriptor)
        except Exception:
            logger.warning("Component resolution failed for <%s>", message.dom_node.tag_name, exc_info=True)
        return InspectionResult(dom_node=message.dom_node, framework=framework, component_source=component_source)

    async def _on_surface_move(self, message: SurfaceMove) -> None:
        if not self.is_inspecting or not self.fallback.active:
            return
        self.session.highlighted_rect = await self.fallback.handle_move(message.rect)

    async def _on_surface_click(self, message: SurfaceClick) -> None:
        if not self.is_inspecting or not self.fallback.active:
            return
        result = await self.fallback.handle_click(message.rect)
        if result is not None:
            await self._deliver(result)

    async def _deliver(self, result: InspectionResult) -> None:
        session = self.session
        if session is None:
            return
        session.last_result = result
        if session.on_result is None:
            return
        try:
            outcome = session.on_result(result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("Inspection result callback failed")
