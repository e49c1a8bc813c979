"""Tests for the non-router network layer."""

from bac_whois.network.address import GLOBAL_BROADCAST, LOCAL_BROADCAST, BACnetAddress
from bac_whois.network.layer import NetworkLayer
from bac_whois.network.npdu import NPDU, decode_npdu, encode_npdu
from tests.helpers import PEER, PEER_MAC, ROUTER_MAC, FakeDatalink


def _layer():
    datalink = FakeDatalink()
    return NetworkLayer(datalink), datalink


class TestSend:
    def test_local_broadcast(self):
        layer, datalink = _layer()
        layer.send(b"\x10\x08", LOCAL_BROADCAST)
        assert datalink.broadcasts == [b"\x01\x00\x10\x08"]
        assert datalink.unicasts == []

    def test_global_broadcast_sets_dnet(self):
        layer, datalink = _layer()
        layer.send(b"\x10\x08", GLOBAL_BROADCAST)
        npdu = decode_npdu(datalink.broadcasts[0])
        assert npdu.dnet == 0xFFFF
        assert npdu.dadr == b""

    def test_remote_broadcast(self):
        layer, datalink = _layer()
        layer.send(b"\x10\x08", BACnetAddress(network=2))
        npdu = decode_npdu(datalink.broadcasts[0])
        assert npdu.dnet == 2
        assert npdu.dadr == b""

    def test_local_unicast(self):
        layer, datalink = _layer()
        layer.send(b"\x10\x08", PEER)
        assert datalink.unicasts == [(b"\x01\x00\x10\x08", PEER_MAC)]

    def test_remote_station_via_router(self):
        layer, datalink = _layer()
        destination = BACnetAddress(network=2, mac_address=ROUTER_MAC, remote_address=b"\x0a")
        layer.send(b"\x10\x08", destination)
        data, mac = datalink.unicasts[0]
        assert mac == ROUTER_MAC
        npdu = decode_npdu(data)
        assert npdu.dnet == 2
        assert npdu.dadr == b"\x0a"

    def test_expecting_reply(self):
        layer, datalink = _layer()
        layer.send(b"\x60\x01\x09", PEER, expecting_reply=True)
        assert decode_npdu(datalink.unicasts[0][0]).expecting_reply is True


class TestReceive:
    def test_timeout(self):
        layer, _ = _layer()
        assert layer.receive(10) is None

    def test_local_frame(self):
        layer, datalink = _layer()
        datalink.deliver(b"\x01\x00\x10\x00", PEER_MAC)
        frame = layer.receive(10)
        assert frame.apdu == b"\x10\x00"
        assert frame.source == PEER

    def test_routed_frame_keeps_router_mac(self):
        layer, datalink = _layer()
        datalink.deliver(encode_npdu(NPDU(snet=5, sadr=b"\x0a", apdu=b"\x10\x00")), ROUTER_MAC)
        frame = layer.receive(10)
        assert frame.source == BACnetAddress(
            network=5, mac_address=ROUTER_MAC, remote_address=b"\x0a"
        )

    def test_global_broadcast_accepted(self):
        layer, datalink = _layer()
        datalink.deliver(encode_npdu(NPDU(dnet=0xFFFF, apdu=b"\x10\x08")))
        assert layer.receive(10).apdu == b"\x10\x08"

    def test_other_network_ignored(self):
        layer, datalink = _layer()
        datalink.deliver(encode_npdu(NPDU(dnet=9, dadr=b"\x01", apdu=b"\x10\x08")))
        assert layer.receive(10) is None

    def test_network_message_ignored(self):
        layer, datalink = _layer()
        datalink.deliver(b"\x01\x80\x01\x00\x05")
        assert layer.receive(10) is None

    def test_malformed_dropped(self, caplog):
        layer, datalink = _layer()
        datalink.deliver(b"\x02\x00\x10\x00")
        assert layer.receive(10) is None
        assert "Dropped malformed NPDU" in caplog.text

    def test_oversized_sadr_dropped(self):
        layer, datalink = _layer()
        datalink.deliver(encode_npdu(NPDU(snet=5, sadr=bytes(8), apdu=b"\x10\x00")))
        assert layer.receive(10) is None

    def test_empty_datagram(self):
        layer, datalink = _layer()
        datalink.deliver(b"")
        assert layer.receive(10) is None

    def test_expecting_reply_flag(self):
        layer, datalink = _layer()
        datalink.deliver(b"\x01\x04\x00\x05\x01\x0c")
        assert layer.receive(10).expecting_reply is True


class TestMaintenance:
    def test_forwards_to_datalink(self):
        layer, datalink = _layer()
        layer.maintenance(1)
        assert datalink.maintenance_calls == [1]
        assert layer.datalink is datalink
