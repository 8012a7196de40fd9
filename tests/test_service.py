from __future__ import annotations

import pytest

from fakes import FakeConnection, ack_reply, make_device, power_reply, service_reply
from lifxctl.core.config import InvocationOptions
from lifxctl.core.errors import CorrelationError, PayloadError, TransportReceiveError
from lifxctl.core.service import LifxService
from lifxctl.core.whitelist import Whitelist


def _service(registry, connection, addresses=None) -> LifxService:
    def factory(addr):
        if addresses is not None:
            addresses.append(addr)
        return connection

    return LifxService(registry=registry, connection_factory=factory)


def test_getter_waits_for_declared_response(connection, registry) -> None:
    device = make_device(1)
    connection.on("GetPower", power_reply(registry, device, 65535))

    result = _service(registry, connection).execute("GetPower", [], InvocationOptions())

    assert result.waited
    assert result.message.res_required
    assert not result.message.ack_required
    assert result.responses[device].payload == {"Level": 65535}
    assert connection.sent[0][1] is None
    assert connection.closed


def test_setter_is_fire_and_forget_by_default(connection, registry) -> None:
    connection.on("SetPower", ack_reply(registry, make_device(1)))

    result = _service(registry, connection).execute("SetPower", ["Level:0"], InvocationOptions())

    assert not result.waited
    assert not result.message.ack_required
    assert not result.message.res_required
    assert connection.sent_names == ["SetPower"]
    assert connection.timeouts == []


def test_require_res_on_ack_only_message_requests_ack(connection, registry) -> None:
    device = make_device(1)
    connection.on("SetPower", ack_reply(registry, device))

    result = _service(registry, connection).execute(
        "SetPower", ["Level:0"], InvocationOptions(require_res=True)
    )

    assert result.message.ack_required
    assert result.responses[device].is_ack


def test_require_ack_overrides_declared_response(connection, registry) -> None:
    device = make_device(1)
    connection.on("GetPower", power_reply(registry, device, 1), ack_reply(registry, device))

    result = _service(registry, connection).execute("GetPower", [], InvocationOptions(require_ack=True))

    assert result.message.ack_required
    assert not result.message.res_required
    assert result.responses[device].is_ack


def test_message_without_response_can_wait_for_ack(connection, registry) -> None:
    device = make_device(1)
    connection.on("SetWaveform", ack_reply(registry, device))

    result = _service(registry, connection).execute("SetWaveform", [], InvocationOptions(require_ack=True))

    assert list(result.responses) == [device]


def test_require_res_without_response_fails_before_sending(registry) -> None:
    addresses: list = []
    with pytest.raises(CorrelationError):
        _service(registry, FakeConnection(), addresses).execute(
            "SetWaveform", [], InvocationOptions(require_res=True)
        )
    assert addresses == []


def test_bad_payload_fails_before_connecting(registry) -> None:
    addresses: list = []
    with pytest.raises(PayloadError):
        _service(registry, FakeConnection(), addresses).execute("SetPower", ["Level:-1"], InvocationOptions())
    assert addresses == []


def test_broadcast_address_reaches_connection_factory(connection, registry) -> None:
    addresses: list = []
    options = InvocationOptions(broadcast_addr=("10.0.0.255", 1234))

    _service(registry, connection, addresses).execute("SetWaveform", [], options)

    assert addresses == [("10.0.0.255", 1234)]


def test_whitelist_targets_discovered_devices(connection, registry) -> None:
    first, second = make_device(1), make_device(2)
    connection.on("GetService", service_reply(registry, first), service_reply(registry, second))
    connection.on("GetPower", power_reply(registry, first, 1), power_reply(registry, second, 2))
    options = InvocationOptions(whitelist=Whitelist.parse(macs=["d0:73:d5:00:00:02"]))

    result = _service(registry, connection).execute("GetPower", [], options)

    assert result.devices == [second]
    assert connection.sent[1][1] == [second]
    assert list(result.responses) == [second]


def test_no_matching_devices_sends_nothing_further(connection, registry, caplog) -> None:
    connection.on("GetService", service_reply(registry, make_device(1)))
    options = InvocationOptions(whitelist=Whitelist.parse(macs=["d0:73:d5:00:00:09"]))

    result = _service(registry, connection).execute("SetPower", ["Level:0"], options)

    assert result.devices == []
    assert connection.sent_names == ["GetService"]
    assert "No devices matched" in caplog.text


def test_connection_closed_when_receive_fails(registry) -> None:
    class BrokenConnection(FakeConnection):
        def receive(self, timeout_s):
            raise TransportReceiveError("socket gone")

    connection = BrokenConnection()
    with pytest.raises(TransportReceiveError):
        _service(registry, connection).execute("GetPower", [], InvocationOptions())
    assert connection.closed


def test_list_devices_runs_discovery(connection, registry) -> None:
    device = make_device(3)
    connection.on("GetService", service_reply(registry, device))

    assert _service(registry, connection).list_devices(InvocationOptions()) == [device]
    assert connection.closed


def test_list_types_sorted_by_code(registry) -> None:
    codes = [d.code for d in LifxService(registry=registry).list_types()]
    assert codes == sorted(codes)
    assert codes[0] == 2
