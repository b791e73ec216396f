import asyncio
import time

import pytest

from theatre_pos.errors import PrinterConnectionFailed, PrinterTimeout, UnsupportedConnection, ValidationError
from theatre_pos.models.core import ConnectionType
from theatre_pos.schemas.configuration import PrinterOut
from theatre_pos.services.printer import print_to, send_raw
from theatre_pos.services.receipt import CUT, receipt_bytes


def test_payload_is_delivered_and_close_is_success():
    received = []

    async def scenario():
        async def handler(reader, writer):
            received.append(await reader.read())
            writer.close()

        server = await asyncio.start_server(handler, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        async with server:
            await send_raw("127.0.0.1", port, receipt_bytes("hello\n" + CUT), timeout=5)

    asyncio.run(scenario())
    assert received == [b"hello\n\x1d\x56\x00"]


def test_refused_connection(dead_port):
    with pytest.raises(PrinterConnectionFailed) as ei:
        asyncio.run(send_raw("127.0.0.1", dead_port, b"x", timeout=5))
    assert isinstance(ei.value.cause, OSError)


def test_printer_that_never_hangs_up_times_out():
    async def scenario():
        release = asyncio.Event()

        async def handler(reader, writer):
            await release.wait()
            writer.close()

        server = await asyncio.start_server(handler, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        async with server:
            started = time.monotonic()
            with pytest.raises(PrinterTimeout):
                await send_raw("127.0.0.1", port, b"x" + CUT.encode(), timeout=0.3)
            elapsed = time.monotonic() - started
            release.set()
        return elapsed

    assert asyncio.run(scenario()) < 3


def test_usb_printer_fails_before_any_io():
    usb = PrinterOut(id="p1", name="Back office", connection_type=ConnectionType.USB, device_path="/dev/usb/lp0")
    with pytest.raises(UnsupportedConnection):
        asyncio.run(print_to(usb, b"x"))


def test_network_printer_without_address():
    p = PrinterOut(id="p2", name="Half set up", connection_type=ConnectionType.NETWORK)
    with pytest.raises(ValidationError):
        asyncio.run(print_to(p, b"x"))


def test_print_to_uses_default_port_when_unset(monkeypatch):
    calls = []

    async def fake_send(host, port, payload, timeout=None):
        calls.append((host, port, payload))

    monkeypatch.setattr("theatre_pos.services.printer.send_raw", fake_send)
    p = PrinterOut(id="p3", name="Counter", connection_type=ConnectionType.NETWORK, ip_address="10.0.0.5")
    asyncio.run(print_to(p, b"abc"))
    assert calls == [("10.0.0.5", 9100, b"abc")]
