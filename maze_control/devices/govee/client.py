"""Govee LAN client — asyncio UDP transport.

Two primitives:

  - :meth:`LanClient.send` is fire-and-forget.  Govee devices never
    acknowledge control commands.
  - :meth:`LanClient.query_status` sends ``devStatus`` and waits for one
    reply datagram with a hard deadline.

Replies always arrive on the fixed listen port (4002), so only one status
query can be in flight per process.  Queries are serialised by an
``asyncio.Lock``; commands are not.  A query's deadline includes the
time spent waiting for the lock.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from maze_control.devices.govee.protocol import (
    DEVICE_PORT,
    LISTEN_PORT,
    GoveeCommand,
    GoveeDeviceState,
    decode_status,
    dev_status,
)
from maze_control.exceptions import DeviceRequestError, DeviceTimeoutError
from maze_control.logging import get_logger

log = get_logger(__name__)


class LanClient(ABC):
    """Abstract contract for talking to Govee lights."""

    @abstractmethod
    async def send(self, ip: str, command: GoveeCommand) -> None:
        """Send *command* to the light at *ip* without waiting for anything."""

    @abstractmethod
    async def query_status(self, ip: str, timeout: float) -> GoveeDeviceState:
        """Return the light's current state.

        Raises:
            DeviceTimeoutError:  No reply within *timeout* seconds, queueing
                                 behind other queries included.
            MalformedReplyError: The reply could not be decoded.
            DeviceRequestError:  The query could not be sent.
        """

    async def close(self) -> None:
        """Release sockets."""


class _ReplyProtocol(asyncio.DatagramProtocol):
    """Resolve a future with the first datagram received from *expected_ip*."""

    def __init__(self, expected_ip: str) -> None:
        self._expected_ip = expected_ip
        self.reply: asyncio.Future[bytes] = asyncio.get_running_loop().create_future()

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        if addr[0] != self._expected_ip:
            log.debug("govee_reply_ignored", source=addr[0], expected=self._expected_ip)
            return
        if not self.reply.done():
            self.reply.set_result(data)

    def error_received(self, exc: Exception) -> None:
        if not self.reply.done():
            self.reply.set_exception(exc)


class GoveeLanClient(LanClient):
    """UDP implementation of :class:`LanClient`.

    Usage::

        client = GoveeLanClient()
        state = await client.query_status("192.168.1.50", timeout=3.0)
        await client.send("192.168.1.50", protocol.brightness(100))
        await client.close()
    """

    def __init__(
        self,
        command_port: int = DEVICE_PORT,
        listen_port: int = LISTEN_PORT,
        bind_host: str = "0.0.0.0",
    ) -> None:
        self._command_port = command_port
        self._listen_port = listen_port
        self._bind_host = bind_host
        self._sender: asyncio.DatagramTransport | None = None
        self._status_lock = asyncio.Lock()

    async def _sender_transport(self) -> asyncio.DatagramTransport:
        if self._sender is None or self._sender.is_closing():
            loop = asyncio.get_running_loop()
            transport, _ = await loop.create_datagram_endpoint(
                asyncio.DatagramProtocol, local_addr=(self._bind_host, 0)
            )
            self._sender = transport
        return self._sender

    async def send(self, ip: str, command: GoveeCommand) -> None:
        payload = command.encode()
        try:
            transport = await self._sender_transport()
            transport.sendto(payload, (ip, self._command_port))
        except OSError as exc:
            raise DeviceRequestError(ip, f"could not send '{command.cmd}': {exc}") from exc
        log.debug("govee_command_sent", address=ip, cmd=command.cmd, data=command.data)

    async def query_status(self, ip: str, timeout: float) -> GoveeDeviceState:
        # The deadline covers the wait for the status lock as well as the reply.
        try:
            async with asyncio.timeout(timeout):
                raw = await self._exchange_status(ip)
        except TimeoutError:
            raise DeviceTimeoutError(ip, timeout) from None

        state = decode_status(raw, ip)
        log.info(
            "govee_status",
            address=ip,
            power=state.power,
            brightness=state.brightness,
            color=(state.color.r, state.color.g, state.color.b),
            kelvin=state.color_temperature_kelvin,
        )
        return state

    async def _exchange_status(self, ip: str) -> bytes:
        async with self._status_lock:
            loop = asyncio.get_running_loop()
            try:
                listener, protocol = await loop.create_datagram_endpoint(
                    lambda: _ReplyProtocol(ip),
                    local_addr=(self._bind_host, self._listen_port),
                )
            except OSError as exc:
                raise DeviceRequestError(
                    ip, f"could not listen on port {self._listen_port}: {exc}"
                ) from exc

            try:
                await self.send(ip, dev_status())
                try:
                    return await protocol.reply
                except OSError as exc:
                    raise DeviceRequestError(ip, f"status reply failed: {exc}") from exc
            finally:
                listener.close()

    async def close(self) -> None:
        if self._sender is not None:
            self._sender.close()
            self._sender = None
