"""The probe script that runs inside the preview's execution context.

The probe owns event capture and the in-page highlight, collects framework
signals, and walks the React ownership chain of the clicked element. It never
posts live DOM nodes or framework objects: props and state are safe-copied
before they leave the page.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from . import messages
from .locator import MAX_ANCESTOR_DEPTH, MAX_DESCENDANT_SCAN, MAX_OWNER_DEPTH, MAX_TREE_VISIT

PROBE_OVERLAY_ID = "__autoview_probe_overlay__"
PROBE_INSTALLED_FLAG = "__autoviewProbeInstalled"
MAX_SIGNAL_SCAN = 2000
READY_RESYNC_DELAY_MS = 100


@dataclass
class ProbeSettings:
    flash_ms: int = 200
    ancestor_depth: int = MAX_ANCESTOR_DEPTH
    descendant_scan: int = MAX_DESCENDANT_SCAN
    owner_depth: int = MAX_OWNER_DEPTH
    tree_visit: int = MAX_TREE_VISIT
    signal_scan: int = MAX_SIGNAL_SCAN

    def to_config(self) -> dict:
        return {
            "types": {
                "start": messages.START_INSPECTION,
                "stop": messages.STOP_INSPECTION,
                "ready": messages.INSPECTOR_READY,
                "requestState": messages.REQUEST_INSPECTION_STATE,
                "hover": messages.INSPECT_HOVER,
                "leave": messages.INSPECT_LEAVE,
                "click": messages.INSPECT_CLICK,
                "ack": messages.INSPECTION_ACK,
            },
            "limits": {
                "ancestorDepth": self.ancestor_depth,
                "descendantScan": self.descendant_scan,
                "ownerDepth": self.owner_depth,
                "treeVisit": self.tree_visit,
                "signalScan": self.signal_scan,
            },
            "flashMs": self.flash_ms,
            "overlayId": PROBE_OVERLAY_ID,
            "installedFlag": PROBE_INSTALLED_FLAG,
            "resyncDelayMs": READY_RESYNC_DELAY_MS,
        }


_PROBE_TEMPLATE = r"""
(function () {
  var CONFIG = __AUTOVIEW_PROBE_CONFIG__;
  var TYPES = CONFIG.types;
  var LIMITS = CONFIG.limits;
  if (window[CONFIG.installedFlag]) {
    window.parent.postMessage({ type: TYPES.requestState }, '*');
    return;
  }
  window[CONFIG.installedFlag] = true;
  var INSTANCE_KEY_PREFIXES = ['__reactFiber', '__reactInternalFiber', '__reactInternalInstance'];

  function post(message) {
    window.parent.postMessage(message, '*');
  }

  // ---- framework signals ----

  function instanceKey(el) {
    var keys = Object.keys(el);
    for (var i = 0; i < keys.length; i++) {
      for (var j = 0; j < INSTANCE_KEY_PREFIXES.length; j++) {
        if (keys[i].indexOf(INSTANCE_KEY_PREFIXES[j]) === 0) return keys[i];
      }
    }
    return null;
  }

  function instanceOf(el) {
    var key = instanceKey(el);
    return key ? el[key] : null;
  }

  function anyElement(predicate) {
    var all = document.querySelectorAll('*');
    var n = Math.min(all.length, LIMITS.signalScan);
    for (var i = 0; i < n; i++) {
      if (predicate(all[i])) return true;
    }
    return false;
  }

  function hasScopedVueAttribute(el) {
    for (var i = 0; i < el.attributes.length; i++) {
      if (el.attributes[i].name.indexOf('data-v-') === 0) return true;
    }
    return false;
  }

  function collectSignals() {
    var ngVersion = document.querySelector('[ng-version]');
    return {
      react: {
        globalObject: !!window.React,
        version: window.React && window.React.version ? String(window.React.version) : null,
        rootAttribute: !!document.querySelector('[data-reactroot]'),
        nextRoot: !!document.querySelector('#__next'),
        nextScript: !!document.querySelector('script[src*="next"]'),
        instanceKeys: anyElement(function (el) { return instanceKey(el) !== null; }),
        devtoolsHook: !!window.__REACT_DEVTOOLS_GLOBAL_HOOK__
      },
      vue: {
        globalObject: !!window.Vue,
        version: window.Vue && window.Vue.version ? String(window.Vue.version) : null,
        appMarker: !!window.__VUE__,
        devtoolsHook: !!window.__VUE_DEVTOOLS_GLOBAL_HOOK__,
        rootAttribute: !!document.querySelector('[data-v-app]'),
        scopedAttribute: anyElement(hasScopedVueAttribute)
      },
      angular: {
        globalNamespace: !!(window.ng || window.angular),
        versionAttribute: ngVersion ? ngVersion.getAttribute('ng-version') : null
      },
      svelte: {
        globalMarker: !!(window.__SVELTE__ || window.__svelte),
        hydrationAttribute: !!document.querySelector('[data-svelte-h]')
      }
    };
  }

  function reactDetected(signals) {
    var r = signals.react;
    return r.globalObject || r.rootAttribute || r.nextRoot || r.instanceKeys || r.devtoolsHook;
  }

  // ---- DOM facts ----

  function rectOf(el) {
    var r = el.getBoundingClientRect();
    return { x: r.x, y: r.y, width: r.width, height: r.height, top: r.top, right: r.right, bottom: r.bottom, left: r.left };
  }

  // id("x"), or id('x') when the id holds a double quote; ids with both quotes get a positional path.
  function idStep(id) {
    if (id.indexOf('"') === -1) return 'id("' + id + '")';
    if (id.indexOf("'") === -1) return "id('" + id + "')";
    return null;
  }

  function getXPath(el) {
    var step = el.id ? idStep(el.id) : null;
    if (step) return step;
    if (el === document.body) return '/html/body';
    if (el === document.documentElement || !el.parentElement) return '/' + el.tagName.toLowerCase();
    var index = 1;
    var sibling = el.previousElementSibling;
    while (sibling) {
      if (sibling.tagName === el.tagName) index++;
      sibling = sibling.previousElementSibling;
    }
    return getXPath(el.parentElement) + '/' + el.tagName.toLowerCase() + '[' + index + ']';
  }

  function escapeCss(value) {
    return window.CSS && CSS.escape ? CSS.escape(value) : value;
  }

  function getCssSelector(el) {
    if (el.id) return '#' + escapeCss(el.id);
    var tag = el.tagName.toLowerCase();
    var classes = Array.prototype.slice.call(el.classList).filter(Boolean);
    if (classes.length) return tag + '.' + classes.map(escapeCss).join('.');
    return tag;
  }

  function getDomNodeInfo(el) {
    var attributes = {};
    for (var i = 0; i < el.attributes.length; i++) {
      attributes[el.attributes[i].name] = el.attributes[i].value;
    }
    return {
      tagName: el.tagName.toLowerCase(),
      classList: Array.prototype.slice.call(el.classList),
      attributes: attributes,
      xpath: getXPath(el),
      cssSelector: getCssSelector(el),
      boundingRect: rectOf(el)
    };
  }

  // ---- component locator (in-page half) ----

  function safeCopy(value) {
    var out = {};
    if (!value || typeof value !== 'object') return out;
    Object.keys(value).forEach(function (key) {
      var v = value[key];
      var t = typeof v;
      if (v === null || v === undefined) out[key] = null;
      else if (t === 'string' || t === 'number' || t === 'boolean') out[key] = v;
      else if (Array.isArray(v)) out[key] = '[Array]';
      else if (t === 'function') out[key] = '[Function]';
      else if (t === 'object') out[key] = '[Object]';
      else out[key] = '[Unknown]';
    });
    return out;
  }

  function area(el) {
    var r = el.getBoundingClientRect();
    return r.width * r.height;
  }

  function findChildFiber(parentFiber, element) {
    var queue = parentFiber.child ? [parentFiber.child] : [];
    var visited = 0;
    while (queue.length && visited < LIMITS.treeVisit) {
      var fiber = queue.shift();
      visited++;
      if (fiber.stateNode === element) return fiber;
      if (fiber.child) queue.push(fiber.child);
      if (fiber.sibling) queue.push(fiber.sibling);
    }
    return null;
  }

  function findEntry(element) {
    var direct = instanceOf(element);
    if (direct) return { fiber: direct, method: 'instance-key' };

    var legacy = element._reactInternalFiber || element.__reactInternalFiber ||
      element.__reactInternalInstance || element._reactInternalInstance;
    if (legacy) return { fiber: legacy, method: 'legacy-property' };

    var hook = window.__REACT_DEVTOOLS_GLOBAL_HOOK__;
    if (hook && hook.renderers && typeof hook.renderers.forEach === 'function') {
      var found = null;
      hook.renderers.forEach(function (renderer) {
        if (!found && renderer && typeof renderer.findFiberByHostInstance === 'function') {
          found = renderer.findFiberByHostInstance(element);
        }
      });
      if (found) return { fiber: found, method: 'devtools-renderer' };
    }

    var parent = element.parentElement;
    for (var depth = 0; parent && depth < LIMITS.ancestorDepth; depth++) {
      var parentFiber = instanceOf(parent);
      if (parentFiber) {
        return { fiber: findChildFiber(parentFiber, element) || parentFiber, method: 'ancestor' };
      }
      parent = parent.parentElement;
    }

    var descendants = element.querySelectorAll('*');
    var n = Math.min(descendants.length, LIMITS.descendantScan);
    for (var i = 0; i < n; i++) {
      var fiber = instanceOf(descendants[i]);
      for (var steps = 0; fiber && steps < LIMITS.treeVisit; steps++) {
        var node = fiber.stateNode;
        if (node === element || (node && node.nodeType === 1 && node.contains(element))) {
          return { fiber: fiber, method: 'descendant' };
        }
        fiber = fiber.return;
      }
    }
    return null;
  }

  function isComponentType(type) {
    if (typeof type === 'function') return true;
    return !!type && typeof type === 'object' &&
      (typeof type.render === 'function' || typeof type.type === 'function');
  }

  function isBuiltIn(type) {
    var React = window.React;
    if (React && (type === React.Fragment || type === React.StrictMode)) return true;
    var tag = type && type.$$typeof;
    return tag === Symbol.for('react.fragment') || tag === Symbol.for('react.strict_mode');
  }

  function nameOf(type) {
    var inner = type.render || type.type;
    return type.name || type.displayName ||
      (inner && (inner.name || inner.displayName)) || 'Anonymous';
  }

  function hostNodeOf(fiber) {
    var node = fiber;
    for (var steps = 0; node && steps < LIMITS.treeVisit; steps++) {
      if (node.stateNode && node.stateNode.nodeType === 1) return node.stateNode;
      node = node.child;
    }
    return null;
  }

  function sourceOf(source) {
    if (!source || !source.fileName) return null;
    return {
      fileName: String(source.fileName),
      lineNumber: typeof source.lineNumber === 'number' ? source.lineNumber : null,
      columnNumber: typeof source.columnNumber === 'number' ? source.columnNumber : null
    };
  }

  function moduleIdOf(type) {
    var req = window.__webpack_require__;
    var cache = req && (req.c || req.cache);
    if (!cache) return null;
    var ids = Object.keys(cache);
    for (var i = 0; i < ids.length; i++) {
      var exported = cache[ids[i]] && cache[ids[i]].exports;
      if (!exported) continue;
      if (exported === type) return ids[i];
      if (typeof exported === 'object') {
        var names = Object.keys(exported);
        for (var j = 0; j < names.length; j++) {
          if (exported[names[j]] === type) return ids[i];
        }
      }
    }
    return null;
  }

  function classStateOf(fiber) {
    var instance = fiber.stateNode;
    if (instance && typeof instance === 'object' && instance.nodeType === undefined &&
        instance.state && typeof instance.state === 'object') {
      return safeCopy(instance.state);
    }
    return null;
  }

  function describeFiber(fiber, type, depth, element) {
    var host = hostNodeOf(fiber);
    var debugSource = sourceOf(fiber._debugSource);
    var typeSource = sourceOf(type.__source) || sourceOf(fiber.elementType && fiber.elementType.__source);
    var debugStack = fiber._debugStack && fiber._debugStack.stack ? String(fiber._debugStack.stack) : null;
    return {
      name: nameOf(type),
      displayName: type.displayName ? String(type.displayName) : null,
      depth: depth,
      directMatch: host === element,
      boxArea: host ? area(host) : null,
      debugSource: debugSource,
      typeSource: typeSource,
      debugStack: debugStack,
      moduleId: debugSource || typeSource || debugStack ? null : moduleIdOf(type),
      props: safeCopy(fiber.memoizedProps || fiber.pendingProps),
      state: classStateOf(fiber)
    };
  }

  function locateReact(element) {
    var entry = findEntry(element);
    if (!entry) return null;
    var candidates = [];
    var fiber = entry.fiber;
    for (var depth = 0; fiber && depth < LIMITS.ownerDepth; depth++) {
      var type = fiber.type || fiber.elementType;
      if (type && isComponentType(type) && !isBuiltIn(type)) {
        candidates.push(describeFiber(fiber, type, depth, element));
      }
      fiber = fiber.return || fiber._debugOwner;
    }
    return { candidates: candidates, elementArea: area(element), entryMethod: entry.method };
  }

  // ---- highlight ----

  var overlay = null;
  var isInspecting = false;

  function getOverlay() {
    if (overlay && overlay.isConnected) return overlay;
    overlay = document.createElement('div');
    overlay.id = CONFIG.overlayId;
    overlay.style.cssText = [
      'position: fixed', 'top: 0', 'left: 0', 'width: 0', 'height: 0',
      'background: rgba(59, 130, 246, 0.3)', 'border: 2px solid rgb(59, 130, 246)',
      'pointer-events: none', 'z-index: 2147483646', 'box-sizing: border-box',
      'transition: all 0.1s ease', 'display: none'
    ].join(' !important;') + ' !important;';
    document.body.appendChild(overlay);
    return overlay;
  }

  function showOverlay(el) {
    var box = getOverlay();
    var r = el.getBoundingClientRect();
    box.style.setProperty('display', 'block', 'important');
    box.style.setProperty('left', r.left + 'px', 'important');
    box.style.setProperty('top', r.top + 'px', 'important');
    box.style.setProperty('width', r.width + 'px', 'important');
    box.style.setProperty('height', r.height + 'px', 'important');
  }

  function hideOverlay() {
    if (overlay) overlay.style.setProperty('display', 'none', 'important');
  }

  function flashOverlay() {
    var box = getOverlay();
    box.style.setProperty('border-color', 'rgb(34, 197, 94)', 'important');
    setTimeout(function () {
      box.style.setProperty('border-color', 'rgb(59, 130, 246)', 'important');
    }, CONFIG.flashMs);
  }

  // ---- events ----

  function onMouseOver(event) {
    if (!isInspecting || event.target === overlay || event.target.nodeType !== 1) return;
    showOverlay(event.target);
    post({ type: TYPES.hover, rect: rectOf(event.target) });
  }

  function onMouseOut() {
    if (!isInspecting) return;
    hideOverlay();
    post({ type: TYPES.leave });
  }

  function onClick(event) {
    if (!isInspecting || event.target.nodeType !== 1) return;
    event.preventDefault();
    event.stopPropagation();
    event.stopImmediatePropagation();

    var element = event.target;
    var signals = collectSignals();
    var component = null;
    if (reactDetected(signals)) {
      try {
        component = locateReact(element);
      } catch (e) {
        component = null;
      }
    }
    post({ type: TYPES.click, domNode: getDomNodeInfo(element), framework: signals, component: component });
    flashOverlay();
  }

  function start() {
    if (!isInspecting) {
      isInspecting = true;
      document.addEventListener('mouseover', onMouseOver, true);
      document.addEventListener('mouseout', onMouseOut, true);
      document.addEventListener('click', onClick, true);
      document.body.style.cursor = 'crosshair';
      getOverlay();
    }
    post({ type: TYPES.ack });
  }

  function stop() {
    isInspecting = false;
    document.removeEventListener('mouseover', onMouseOver, true);
    document.removeEventListener('mouseout', onMouseOut, true);
    document.removeEventListener('click', onClick, true);
    document.body.style.cursor = '';
    hideOverlay();
  }

  function install() {
    window.addEventListener('message', function (event) {
      var data = event.data;
      if (event.source !== window.parent || !data || typeof data !== 'object') return;
      if (data.type === TYPES.start) start();
      else if (data.type === TYPES.stop) stop();
    });
    post({ type: TYPES.ready, framework: collectSignals() });
    setTimeout(function () {
      post({ type: TYPES.requestState });
    }, CONFIG.resyncDelayMs);
  }

  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', install, { once: true });
  } else {
    install();
  }
})();
"""

# A target app can include this to opt in to self-injection (last injection strategy).
SELF_INJECTION_SNIPPET = (
    r"""
window.addEventListener('message', function (event) {
  if (event.source !== window.parent || !event.data) return;
  if (event.data.type === '__TYPE__' && typeof event.data.script === 'string') {
    (0, eval)(event.data.script);
  }
});
""".replace("__TYPE__", messages.INJECT_INSPECTOR).strip()
)


def render_probe_script(settings: ProbeSettings | None = None) -> str:
    """Build the probe source with limits and message tags filled in."""
    config = (settings or ProbeSettings()).to_config()
    return _PROBE_TEMPLATE.replace("__AUTOVIEW_PROBE_CONFIG__", json.dumps(config)).strip()
