"""Finding the dev server to inspect: terminal-output parsing and TCP probing."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

logger = logging.getLogger("autoview.ports")

MIN_PORT = 3000
MAX_PORT = 9999
DEFAULT_HOST_PORT = 5173
FALLBACK_PORTS = (3000, 8080, 5000)

PORT_PATTERNS = [
    re.compile(r"(?:https?://)?(?:localhost|127\.0\.0\.1):(\d+)", re.IGNORECASE),
    re.compile(
        r"(?:Server|development server|dev server).*?(?:running|listening|started).*?(?:on port|port|:)\s*(\d+)",
        re.IGNORECASE,
    ),
    re.compile(r"(?:Local|Development|Dev).*?(?:http://.*?:|:)(\d+)", re.IGNORECASE),
    re.compile(r"➜\s+Local:\s+http://.*?:(\d+)", re.IGNORECASE),
    re.compile(r"ready - started server on.*?(\d+)", re.IGNORECASE),
    re.compile(r"Local:\s+http://.*?:(\d+)", re.IGNORECASE),
    re.compile(r"Live Development Server is listening on.*?(\d+)", re.IGNORECASE),
    re.compile(r"port\s*(\d+)", re.IGNORECASE),
    re.compile(r"(?:http://.*?:|https://.*?:)(\d+)", re.IGNORECASE),
    re.compile(r"address.*?(\d+)", re.IGNORECASE),
]

PORT_DESCRIPTIONS = {
    3000: "React/Next.js Dev Server",
    3001: "React Dev Server (Alt)",
    8080: "Webpack Dev Server",
    8000: "Python/Django Server",
    4200: "Angular Dev Server",
    5000: "Flask/Express Server",
    9000: "SvelteKit Dev Server",
    8888: "Jupyter Notebook",
    3333: "Remix Dev Server",
    4000: "Development Server",
    4321: "Astro Dev Server",
}


@dataclass
class DetectedPort:
    port: int
    description: str
    is_active: bool
    from_terminal: bool = False


def parse_terminal_output_for_ports(output: str, host_port: int = DEFAULT_HOST_PORT) -> list[int]:
    """Ports mentioned in dev-server output, in order of first appearance."""
    ports: list[int] = []
    for pattern in PORT_PATTERNS:
        for match in pattern.finditer(output):
            port = int(match.group(1))
            if MIN_PORT <= port <= MAX_PORT and port != host_port:
                ports.append(port)
    return list(dict.fromkeys(ports))


def describe_port(port: int, from_terminal: bool = False) -> str:
    description = PORT_DESCRIPTIONS.get(port, "Development Server")
    return f"{description} (detected)" if from_terminal else description


async def check_port(port: int, host: str = "localhost", timeout: float = 0.5) -> bool:
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except (OSError, TimeoutError):
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        logger.debug("Error closing probe connection to %s:%d", host, port)
    return True


async def scan_ports(
    terminal_ports: Iterable[int] = (),
    host: str = "localhost",
    timeout: float = 0.5,
) -> list[DetectedPort]:
    """Active ports, terminal-detected first, then ascending.

    Without terminal hints only a few common dev-server ports are probed.
    """
    from_terminal = list(dict.fromkeys(terminal_ports))
    candidates = from_terminal or list(FALLBACK_PORTS)

    states = await asyncio.gather(*(check_port(port, host, timeout) for port in candidates))
    detected = [
        DetectedPort(
            port=port,
            description=describe_port(port, port in from_terminal),
            is_active=active,
            from_terminal=port in from_terminal,
        )
        for port, active in zip(candidates, states)
        if active
    ]
    detected.sort(key=lambda p: (not p.from_terminal, p.port))
    logger.debug("Active ports: %s", [p.port for p in detected])
    return detected
