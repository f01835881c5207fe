"""Framework Detector and per-framework adapters.

The probe only collects passive signals from the page (globals, marker
attributes, per-element instance keys, devtools hooks). Classification
happens here, in priority order react > vue > angular > svelte.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pydantic import Field

from autoview.core.models import FrameworkInfo, FrameworkType, WireModel

from .locator import ComponentLocator

if TYPE_CHECKING:
    from collections.abc import Sequence

    from autoview.core.models import ComponentDescriptor

    from .locator import ComponentReport


class ReactSignals(WireModel):
    global_object: bool = False
    version: str | None = None
    root_attribute: bool = False
    next_root: bool = False
    next_script: bool = False
    instance_keys: bool = False
    devtools_hook: bool = False


class VueSignals(WireModel):
    global_object: bool = False
    version: str | None = None
    app_marker: bool = False
    devtools_hook: bool = False
    root_attribute: bool = False
    scoped_attribute: bool = False


class AngularSignals(WireModel):
    global_namespace: bool = False
    version_attribute: str | None = None


class SvelteSignals(WireModel):
    global_marker: bool = False
    hydration_attribute: bool = False


class FrameworkSignals(WireModel):
    """Raw detection signals, as collected inside the target page."""

    react: ReactSignals = Field(default_factory=ReactSignals)
    vue: VueSignals = Field(default_factory=VueSignals)
    angular: AngularSignals = Field(default_factory=AngularSignals)
    svelte: SvelteSignals = Field(default_factory=SvelteSignals)


class FrameworkAdapter(ABC):
    """Capabilities AutoView has for one UI framework."""

    type: FrameworkType

    @abstractmethod
    def detect(self, signals: FrameworkSignals) -> FrameworkInfo | None:
        """Return framework info when the signals match, else None."""

    def describe(self, report: ComponentReport | None) -> ComponentDescriptor | None:
        """Turn the in-page component report into a descriptor (None when unsupported)."""
        return None


class ReactAdapter(FrameworkAdapter):
    type = FrameworkType.REACT

    def __init__(self, locator: ComponentLocator | None = None) -> None:
        self.locator = locator or ComponentLocator()

    def detect(self, signals: FrameworkSignals) -> FrameworkInfo | None:
        react = signals.react
        if not (
            react.global_object or react.root_attribute or react.next_root or react.instance_keys or react.devtools_hook
        ):
            return None

        version = react.version
        if version is None and react.next_root and react.next_script:
            version = "Next.js"
        return FrameworkInfo(type=self.type, version=version, devtools=react.devtools_hook)

    def describe(self, report: ComponentReport | None) -> ComponentDescriptor | None:
        return self.locator.describe(report)


class VueAdapter(FrameworkAdapter):
    type = FrameworkType.VUE

    def detect(self, signals: FrameworkSignals) -> FrameworkInfo | None:
        vue = signals.vue
        if not (vue.global_object or vue.app_marker or vue.devtools_hook or vue.root_attribute or vue.scoped_attribute):
            return None
        return FrameworkInfo(type=self.type, version=vue.version, devtools=vue.devtools_hook)


class AngularAdapter(FrameworkAdapter):
    type = FrameworkType.ANGULAR

    def detect(self, signals: FrameworkSignals) -> FrameworkInfo | None:
        angular = signals.angular
        if not (angular.global_namespace or angular.version_attribute):
            return None
        return FrameworkInfo(type=self.type, version=angular.version_attribute or None)


class SvelteAdapter(FrameworkAdapter):
    type = FrameworkType.SVELTE

    def detect(self, signals: FrameworkSignals) -> FrameworkInfo | None:
        svelte = signals.svelte
        if not (svelte.global_marker or svelte.hydration_attribute):
            return None
        return FrameworkInfo(type=self.type)


class UnknownAdapter(FrameworkAdapter):
    type = FrameworkType.UNKNOWN

    def detect(self, signals: FrameworkSignals) -> FrameworkInfo | None:
        return FrameworkInfo(type=self.type)


# Priority order matters: the first adapter whose signals match wins.
ADAPTER_REGISTRY: dict[FrameworkType, type[FrameworkAdapter]] = {
    FrameworkType.REACT: ReactAdapter,
    FrameworkType.VUE: VueAdapter,
    FrameworkType.ANGULAR: AngularAdapter,
    FrameworkType.SVELTE: SvelteAdapter,
}


class FrameworkDetector:
    """Classifies the page's framework and hands out the matching adapter."""

    def __init__(self, adapters: Sequence[FrameworkAdapter] | None = None) -> None:
        if adapters is None:
            adapters = [adapter_cls() for adapter_cls in ADAPTER_REGISTRY.values()]
        self.adapters = list(adapters)
        self.unknown = UnknownAdapter()

    def detect(self, signals: FrameworkSignals | None) -> FrameworkInfo:
        if signals is None:
            return FrameworkInfo()
        for adapter in self.adapters:
            info = adapter.detect(signals)
            if info is not None:
                return info
        return FrameworkInfo()

    def adapter_for(self, framework: FrameworkInfo | FrameworkType) -> FrameworkAdapter:
        framework_type = framework.type if isinstance(framework, FrameworkInfo) else framework
        for adapter in self.adapters:
            if adapter.type == framework_type:
                return adapter
        return self.unknown
