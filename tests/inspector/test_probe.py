"""Tests for the rendered probe script."""

import json
import re

from autoview.inspector import messages
from autoview.inspector.locator import MAX_OWNER_DEPTH
from autoview.inspector.probe import (
    PROBE_INSTALLED_FLAG,
    PROBE_OVERLAY_ID,
    SELF_INJECTION_SNIPPET,
    ProbeSettings,
    render_probe_script,
)


def embedded_config(script: str) -> dict:
    match = re.search(r"var CONFIG = (\{.*?\});\n", script)
    assert match is not None
    return json.loads(match.group(1))


def test_probe_is_a_self_contained_function() -> None:
    """The rendered script is one IIFE with every placeholder filled in."""
    script = render_probe_script()

    assert script.startswith("(function () {")
    assert script.endswith("})();")
    assert "__AUTOVIEW_PROBE_CONFIG__" not in script


def test_probe_config_carries_protocol_and_limits() -> None:
    """Message tags and depth limits come from the Python side."""
    config = embedded_config(render_probe_script(ProbeSettings(flash_ms=50)))

    assert config["types"]["start"] == messages.START_INSPECTION
    assert config["types"]["ack"] == messages.INSPECTION_ACK
    assert config["types"]["click"] == messages.INSPECT_CLICK
    assert config["limits"]["ownerDepth"] == MAX_OWNER_DEPTH
    assert config["flashMs"] == 50
    assert config["overlayId"] == PROBE_OVERLAY_ID
    assert config["installedFlag"] == PROBE_INSTALLED_FLAG


def test_probe_never_posts_raw_nodes() -> None:
    """Props and state go through the in-page safe copy."""
    script = render_probe_script()

    assert "safeCopy(" in script
    assert "getXPath" in script
    assert "getCssSelector" in script


def test_self_injection_snippet() -> None:
    """The opt-in snippet evaluates only the inject message from the parent."""
    assert messages.INJECT_INSPECTOR in SELF_INJECTION_SNIPPET
    assert "event.source !== window.parent" in SELF_INJECTION_SNIPPET
    assert "__TYPE__" not in SELF_INJECTION_SNIPPET


def test_probe_xpath_quotes_ids() -> None:
    """The in-page xpath switches to single quotes for ids holding a double quote."""
    script = render_probe_script()

    assert "function idStep(id)" in script
    assert "return \"id('\" + id + \"')\";" in script
    assert "var step = el.id ? idStep(el.id) : null;" in script
