"""Wire protocol between the host and the probe running inside the preview.

Messages are plain structurally-cloned objects posted with
``window.postMessage``; each one is tagged by a unique ``type`` string.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Annotated, Any, Literal, TypeVar

from pydantic import Field, TypeAdapter, ValidationError

from autoview.core.models import BoundingBox, DOMNodeInfo, WireModel

from .detector import FrameworkSignals
from .locator import ComponentReport

logger = logging.getLogger("autoview.messages")

START_INSPECTION = "AUTOVIEW_START_INSPECTION"
STOP_INSPECTION = "AUTOVIEW_STOP_INSPECTION"
INJECT_INSPECTOR = "AUTOVIEW_INJECT_INSPECTOR"
INSPECTOR_READY = "AUTOVIEW_INSPECTOR_READY"
REQUEST_INSPECTION_STATE = "AUTOVIEW_REQUEST_INSPECTION_STATE"
INSPECT_HOVER = "AUTOVIEW_INSPECT_HOVER"
INSPECT_LEAVE = "AUTOVIEW_INSPECT_LEAVE"
INSPECT_CLICK = "AUTOVIEW_INSPECT_CLICK"
INSPECTION_ACK = "AUTOVIEW_INSPECTION_ACK"
TEST_RESULT = "AUTOVIEW_TEST_RESULT"
SURFACE_CLICK = "AUTOVIEW_SURFACE_CLICK"
SURFACE_MOVE = "AUTOVIEW_SURFACE_MOVE"


# Host -> target


class StartInspection(WireModel):
    type: Literal["AUTOVIEW_START_INSPECTION"] = START_INSPECTION


class StopInspection(WireModel):
    type: Literal["AUTOVIEW_STOP_INSPECTION"] = STOP_INSPECTION


class InjectInspector(WireModel):
    """Asks an opted-in target to evaluate the probe itself."""

    type: Literal["AUTOVIEW_INJECT_INSPECTOR"] = INJECT_INSPECTOR
    script: str


# Target -> host


class InspectorReady(WireModel):
    type: Literal["AUTOVIEW_INSPECTOR_READY"] = INSPECTOR_READY
    framework: FrameworkSignals = Field(default_factory=FrameworkSignals)


class RequestInspectionState(WireModel):
    type: Literal["AUTOVIEW_REQUEST_INSPECTION_STATE"] = REQUEST_INSPECTION_STATE


class InspectHover(WireModel):
    type: Literal["AUTOVIEW_INSPECT_HOVER"] = INSPECT_HOVER
    rect: BoundingBox


class InspectLeave(WireModel):
    type: Literal["AUTOVIEW_INSPECT_LEAVE"] = INSPECT_LEAVE


class InspectClick(WireModel):
    type: Literal["AUTOVIEW_INSPECT_CLICK"] = INSPECT_CLICK
    dom_node: DOMNodeInfo
    framework: FrameworkSignals = Field(default_factory=FrameworkSignals)
    component: ComponentReport | None = None


class InspectionAck(WireModel):
    type: Literal["AUTOVIEW_INSPECTION_ACK"] = INSPECTION_ACK


class ClickTestReport(WireModel):
    type: Literal["AUTOVIEW_TEST_RESULT"] = TEST_RESULT
    selector: str
    success: bool
    error: str | None = None
    component_found: bool | None = None


# Raised by the host bridge on the surface element itself


class SurfaceClick(WireModel):
    type: Literal["AUTOVIEW_SURFACE_CLICK"] = SURFACE_CLICK
    rect: BoundingBox | None = None


class SurfaceMove(WireModel):
    type: Literal["AUTOVIEW_SURFACE_MOVE"] = SURFACE_MOVE
    rect: BoundingBox | None = None


OutboundMessage = StartInspection | StopInspection | InjectInspector

InboundMessage = Annotated[
    InspectorReady
    | RequestInspectionState
    | InspectHover
    | InspectLeave
    | InspectClick
    | InspectionAck
    | ClickTestReport
    | SurfaceClick
    | SurfaceMove,
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[Any] = TypeAdapter(InboundMessage)


def parse_message(raw: Any) -> WireModel | None:
    """Validate a raw posted payload; None for foreign or malformed messages."""
    if not isinstance(raw, dict) or not str(raw.get("type", "")).startswith("AUTOVIEW_"):
        return None
    try:
        return _inbound_adapter.validate_python(raw)
    except ValidationError as e:
        logger.debug("Dropping malformed %s message: %s", raw.get("type"), e)
        return None


def encode(message: OutboundMessage) -> dict[str, Any]:
    return message.to_wire()


M = TypeVar("M", bound=WireModel)
Handler = Callable[[Any], Awaitable[None] | None]


class MessageBus:
    """Typed fan-out of inbound messages to per-type handlers."""

    def __init__(self) -> None:
        self._handlers: defaultdict[type[WireModel], list[Handler]] = defaultdict(list)

    def subscribe(self, message_cls: type[M], handler: Callable[[M], Awaitable[None] | None]) -> Callable[[], None]:
        self._handlers[message_cls].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[message_cls]:
                self._handlers[message_cls].remove(handler)

        return unsubscribe

    async def dispatch(self, raw: Any) -> WireModel | None:
        message = parse_message(raw)
        if message is None:
            return None
        for handler in list(self._handlers[type(message)]):
            result = handler(message)
            if inspect.isawaitable(result):
                await result
        return message
