"""Preview surfaces: the host-side handle on the embedded app being inspected."""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from autoview.core.errors import SurfaceUnavailableError
from autoview.core.models import BoundingBox

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle, Frame, Page

logger = logging.getLogger("autoview.surface")

MessageCallback = Callable[[dict[str, Any]], Awaitable[None] | None]
LoadCallback = Callable[[], Awaitable[None] | None]

HOST_OVERLAY_ID = "__autoview_host_overlay__"
FALLBACK_SHIELD_ID = "__autoview_fallback_shield__"
BINDING_NAME = "autoviewBridge"


class PreviewSurface(ABC):
    """An embedded target the controller can inject into and talk to.

    ``identity`` and ``generation`` together name one loaded document; the
    generation is bumped on every navigation of the embedded target.
    """

    supports_privileged: bool = False

    def __init__(self, identity: str | None = None) -> None:
        self.identity = identity or uuid.uuid4().hex[:8]
        self.generation = 0
        self.owner: object | None = None
        self._message_callbacks: list[MessageCallback] = []
        self._load_callbacks: list[LoadCallback] = []

    @property
    def target(self) -> tuple[str, int]:
        return (self.identity, self.generation)

    def on_message(self, callback: MessageCallback) -> Callable[[], None]:
        self._message_callbacks.append(callback)
        return lambda: self._remove(self._message_callbacks, callback)

    def on_load(self, callback: LoadCallback) -> Callable[[], None]:
        self._load_callbacks.append(callback)
        return lambda: self._remove(self._load_callbacks, callback)

    @staticmethod
    def _remove(callbacks: list, callback: Any) -> None:
        if callback in callbacks:
            callbacks.remove(callback)

    async def emit_message(self, payload: dict[str, Any]) -> None:
        for callback in list(self._message_callbacks):
            result = callback(payload)
            if inspect.isawaitable(result):
                await result

    async def emit_load(self) -> None:
        self.generation += 1
        for callback in list(self._load_callbacks):
            result = callback()
            if inspect.isawaitable(result):
                await result

    @abstractmethod
    async def bounding_box(self) -> BoundingBox | None:
        """Box of the surface element in host viewport coordinates."""

    @abstractmethod
    async def post_message(self, message: dict[str, Any]) -> None:
        """Post a message onto the target's window. Dropped if nobody listens."""

    async def execute_privileged(self, script: str) -> None:
        raise SurfaceUnavailableError("No privileged bridge on this surface")

    @abstractmethod
    async def inject_script_element(self, script: str) -> None: ...

    @abstractmethod
    async def evaluate_in_target(self, script: str) -> None: ...

    async def snapshot_html(self) -> str | None:
        """Serialized HTML of the target document, when readable."""
        return None

    @abstractmethod
    async def show_overlay(self, rect: BoundingBox) -> None: ...

    @abstractmethod
    async def hide_overlay(self) -> None: ...

    async def remove_overlay(self) -> None:
        await self.hide_overlay()

    @abstractmethod
    async def arm_fallback(self) -> None:
        """Start forwarding click/move events of the surface element itself."""

    @abstractmethod
    async def disarm_fallback(self) -> None: ...

    @abstractmethod
    async def set_fallback_style(self, active: bool) -> None:
        """Toggle pointer-cursor styling (and click capture) on the surface element."""


HOST_BRIDGE_SCRIPT = """
({ selector, binding, overlayId, shieldId }) => {
  const frame = document.querySelector(selector);
  if (!frame) throw new Error('Preview surface not found: ' + selector);

  const state = { armed: false };
  const send = (payload) => window[binding](payload);
  const rectOf = (el) => {
    const r = el.getBoundingClientRect();
    return { x: r.x, y: r.y, width: r.width, height: r.height, top: r.top, right: r.right, bottom: r.bottom, left: r.left };
  };

  window.addEventListener('message', (event) => {
    const data = event.data;
    if (event.source !== frame.contentWindow || !data || typeof data !== 'object') return;
    if (typeof data.type !== 'string' || data.type.indexOf('AUTOVIEW_') !== 0) return;
    send(data);
  });

  const onClick = (event) => {
    if (!state.armed) return;
    event.preventDefault();
    send({ type: 'AUTOVIEW_SURFACE_CLICK', rect: rectOf(frame) });
  };
  const onMove = () => {
    if (state.armed) send({ type: 'AUTOVIEW_SURFACE_MOVE', rect: rectOf(frame) });
  };
  frame.addEventListener('click', onClick);
  frame.addEventListener('mousemove', onMove);

  const overlay = () => {
    let el = document.getElementById(overlayId);
    if (!el) {
      el = document.createElement('div');
      el.id = overlayId;
      el.style.cssText = 'position: fixed; pointer-events: none; z-index: 2147483647; display: none;' +
        'background: rgba(59, 130, 246, 0.2); border: 2px solid rgb(59, 130, 246); box-sizing: border-box;';
      document.body.appendChild(el);
    }
    return el;
  };

  const shield = () => {
    let el = document.getElementById(shieldId);
    if (!el) {
      el = document.createElement('div');
      el.id = shieldId;
      el.style.cssText = 'position: fixed; z-index: 2147483646; background: transparent; display: none;';
      el.addEventListener('click', onClick);
      el.addEventListener('mousemove', onMove);
      document.body.appendChild(el);
    }
    return el;
  };

  window.__autoviewSurfaces = window.__autoviewSurfaces || {};
  window.__autoviewSurfaces[selector] = {
    post(message) {
      if (frame.contentWindow) frame.contentWindow.postMessage(message, '*');
    },
    injectScript(source) {
      const doc = frame.contentDocument;
      if (!doc) throw new Error('SecurityError: cross-origin document is not accessible');
      const script = doc.createElement('script');
      script.textContent = source;
      (doc.head || doc.documentElement).appendChild(script);
    },
    evalScript(source) {
      const win = frame.contentWindow;
      if (!win || typeof win.eval !== 'function') throw new Error('SecurityError: cross-origin window is not accessible');
      win.eval(source);
    },
    showOverlay(rect) {
      const el = overlay();
      el.style.left = rect.left + 'px';
      el.style.top = rect.top + 'px';
      el.style.width = rect.width + 'px';
      el.style.height = rect.height + 'px';
      el.style.display = 'block';
    },
    hideOverlay() {
      const el = document.getElementById(overlayId);
      if (el) el.style.display = 'none';
    },
    removeOverlay() {
      const el = document.getElementById(overlayId);
      if (el) el.remove();
    },
    arm() { state.armed = true; },
    disarm() {
      state.armed = false;
      this.setFallback(false);
    },
    setFallback(active) {
      frame.style.cursor = active ? 'pointer' : '';
      const el = shield();
      if (!active) {
        el.style.display = 'none';
        return;
      }
      const r = frame.getBoundingClientRect();
      el.style.left = r.left + 'px';
      el.style.top = r.top + 'px';
      el.style.width = r.width + 'px';
      el.style.height = r.height + 'px';
      el.style.cursor = 'pointer';
      el.style.display = 'block';
    }
  };
}
"""


class PlaywrightSurface(PreviewSurface):
    """An ``<iframe>`` inside a Playwright-driven host page."""

    supports_privileged = True

    def __init__(self, page: Page, selector: str = "iframe", identity: str | None = None) -> None:
        super().__init__(identity)
        self.page = page
        self.selector = selector
        self._frame: Frame | None = None
        self._tasks: set[asyncio.Task] = set()

    async def setup(self) -> None:
        """Install the host bridge and start following the frame's navigations."""
        await self.page.expose_binding(BINDING_NAME, self._on_binding)
        await self.page.evaluate(
            HOST_BRIDGE_SCRIPT,
            {
                "selector": self.selector,
                "binding": BINDING_NAME,
                "overlayId": HOST_OVERLAY_ID,
                "shieldId": FALLBACK_SHIELD_ID,
            },
        )
        self._frame = await self._content_frame()
        self.page.on("framenavigated", self._on_navigation)

    async def _content_frame(self) -> Frame:
        handle: ElementHandle | None = await self.page.query_selector(self.selector)
        if handle is None:
            raise SurfaceUnavailableError(f"No element matches {self.selector!r}")
        frame = await handle.content_frame()
        if frame is None:
            raise SurfaceUnavailableError(f"{self.selector!r} has no content frame")
        return frame

    @property
    def frame(self) -> Frame:
        if self._frame is None:
            raise SurfaceUnavailableError("Surface is not set up")
        return self._frame

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_binding(self, source: Any, payload: Any) -> None:
        if isinstance(payload, dict):
            self._spawn(self.emit_message(payload))

    def _on_navigation(self, frame: Frame) -> None:
        if frame is not self._frame:
            return
        logger.debug("Surface %s navigated to %s", self.identity, frame.url)
        self._spawn(self.emit_load())

    async def _call(self, method: str, *args: Any) -> Any:
        return await self.page.evaluate(
            "([selector, method, args]) => window.__autoviewSurfaces[selector][method](...args)",
            [self.selector, method, list(args)],
        )

    async def bounding_box(self) -> BoundingBox | None:
        handle = await self.page.query_selector(self.selector)
        box = await handle.bounding_box() if handle else None
        if box is None:
            return None
        return BoundingBox.from_xywh(box["x"], box["y"], box["width"], box["height"])

    async def post_message(self, message: dict[str, Any]) -> None:
        await self._call("post", message)

    async def execute_privileged(self, script: str) -> None:
        await self.frame.evaluate("(source) => { (0, eval)(source); }", script)

    async def inject_script_element(self, script: str) -> None:
        await self._call("injectScript", script)

    async def evaluate_in_target(self, script: str) -> None:
        await self._call("evalScript", script)

    async def snapshot_html(self) -> str | None:
        return await self.frame.content()

    async def show_overlay(self, rect: BoundingBox) -> None:
        await self._call("showOverlay", rect.to_wire())

    async def hide_overlay(self) -> None:
        await self._call("hideOverlay")

    async def remove_overlay(self) -> None:
        await self._call("removeOverlay")

    async def arm_fallback(self) -> None:
        await self._call("arm")

    async def disarm_fallback(self) -> None:
        await self._call("disarm")

    async def set_fallback_style(self, active: bool) -> None:
        await self._call("setFallback", active)
