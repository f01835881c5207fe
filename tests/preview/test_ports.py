"""Tests for dev-server port discovery."""

import asyncio

import pytest

from autoview.preview.ports import (
    DetectedPort,
    check_port,
    describe_port,
    parse_terminal_output_for_ports,
    scan_ports,
)


@pytest.mark.parametrize(
    "output, expected",
    [
        ("  VITE v5.2.0  ready in 312 ms\n\n  ➜  Local:   http://localhost:5174/\n", [5174]),
        ("ready - started server on 0.0.0.0:3000, url: http://localhost:3000", [3000]),
        ("Compiled successfully!\n  Local:            http://localhost:3001\n", [3001]),
        ("Angular Live Development Server is listening on localhost:4200", [4200]),
        ("http://localhost:8080 and http://127.0.0.1:3000 and http://localhost:8080 again", [8080, 3000]),
    ],
)
def test_parse_dev_server_output(output: str, expected: list[int]) -> None:
    """Common dev server banners yield their port, deduplicated in order."""
    assert parse_terminal_output_for_ports(output) == expected


def test_parse_skips_out_of_range_and_host_ports() -> None:
    """System ports and AutoView's own host port are never candidates."""
    assert parse_terminal_output_for_ports("listening on port 80, see http://localhost:22") == []
    assert parse_terminal_output_for_ports("Local: http://localhost:5173/") == []
    assert parse_terminal_output_for_ports("Local: http://localhost:5173/", host_port=4000) == [5173]


def test_describe_port() -> None:
    """Known ports get a friendly name; terminal hits are marked."""
    assert describe_port(3000) == "React/Next.js Dev Server"
    assert describe_port(4321, from_terminal=True) == "Astro Dev Server (detected)"
    assert describe_port(7777) == "Development Server"


async def unused_port() -> int:
    server = await asyncio.start_server(lambda reader, writer: writer.close(), "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()
    return port


async def test_check_port() -> None:
    """Only listening ports are active."""
    server = await asyncio.start_server(lambda reader, writer: writer.close(), "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        assert await check_port(port, "127.0.0.1")
    finally:
        server.close()
        await server.wait_closed()

    assert not await check_port(await unused_port(), "127.0.0.1")


async def test_scan_ports_reports_active_terminal_ports() -> None:
    """Terminal ports are probed and inactive ones dropped."""
    servers = [await asyncio.start_server(lambda reader, writer: writer.close(), "127.0.0.1", 0) for _ in range(2)]
    active = sorted(server.sockets[0].getsockname()[1] for server in servers)
    closed = await unused_port()
    try:
        detected = await scan_ports([active[1], closed, active[0]], host="127.0.0.1")
    finally:
        for server in servers:
            server.close()
            await server.wait_closed()

    assert [port.port for port in detected] == active
    assert all(isinstance(port, DetectedPort) and port.from_terminal and port.is_active for port in detected)
    assert detected[0].description.endswith("(detected)")
