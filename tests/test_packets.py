import struct
import unittest

from mcping.exceptions import TruncatedStream, UnexpectedPacketId, UnexpectedPong
from mcping.framing import Frame, pack_string, parse_frame
from mcping.packets import (
    Handshake,
    PingRequest,
    PongResponse,
    StatusRequest,
    StatusResponse,
)


class HandshakeTests(unittest.TestCase):
    def test_wire_layout(self):
        packet = Handshake("localhost", 25565, protocol_version=768).to_frame()
        self.assertEqual(
            packet,
            b"\x10"  # frame length
            b"\x00"  # packet id
            b"\x80\x06"  # protocol version 768
            b"\x09localhost"
            b"\x63\xdd"  # port 25565
            b"\x01",  # next state: status
        )

    def test_decode(self):
        handshake = Handshake("mc.example.com", 25570, protocol_version=47)
        frame, _ = parse_frame(handshake.to_frame())
        self.assertEqual(frame.packet_id, 0x00)
        self.assertEqual(Handshake.decode(frame.body), handshake)

    def test_decode_without_port(self):
        with self.assertRaises(TruncatedStream):
            Handshake.decode(b"\x01\x01a\x63")


class StatusPacketTests(unittest.TestCase):
    def test_status_request(self):
        self.assertEqual(StatusRequest().to_frame(), b"\x01\x00")

    def test_status_response(self):
        frame = Frame(0x00, pack_string('{"a":1}'))
        self.assertEqual(StatusResponse.from_frame(frame).payload, '{"a":1}')

    def test_status_response_wrong_packet_id(self):
        frame = Frame(0x01, pack_string("{}"))
        with self.assertRaises(UnexpectedPacketId) as ctx:
            StatusResponse.from_frame(frame)
        self.assertEqual((ctx.exception.expected, ctx.exception.actual), (0x00, 0x01))

    def test_status_response_string_longer_than_body(self):
        with self.assertRaises(TruncatedStream):
            StatusResponse.from_frame(Frame(0x00, b"\x10{}"))


class PingPongTests(unittest.TestCase):
    def test_ping_frame(self):
        self.assertEqual(
            PingRequest(42).to_frame(), b"\x09\x01" + struct.pack(">q", 42)
        )

    def test_pong_matches_ping(self):
        pong = PongResponse.from_frame(Frame(0x01, struct.pack(">q", -5)))
        self.assertEqual(pong.payload, -5)
        pong.check(PingRequest(-5))

    def test_pong_mismatch(self):
        with self.assertRaises(UnexpectedPong):
            PongResponse(1).check(PingRequest(2))

    def test_short_pong(self):
        with self.assertRaises(TruncatedStream):
            PongResponse.from_frame(Frame(0x01, b"\x00\x01"))


if __name__ == "__main__":
    unittest.main()
