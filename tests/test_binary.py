import io
import os
import struct
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from d2p_pak import binary
from d2p_pak.errors import FormatError, InvalidEncoding, IoFailure, TruncatedStream


class TestReadPrimitives(unittest.TestCase):

    def test_integers_use_big_endian(self):
        stream = io.BytesIO(b"\x07" + b"\x01\x02" + b"\xff\xff\xff\xfe" + b"\x80\x00\x00\x00")
        self.assertEqual(binary.read_u8(stream), 7)
        self.assertEqual(binary.read_u16(stream), 0x0102)
        self.assertEqual(binary.read_i32(stream), -2)
        self.assertEqual(binary.read_u32(stream), 0x80000000)

    def test_string_is_length_prefixed_utf8(self):
        payload = "gfx/é.png".encode("utf-8")
        stream = io.BytesIO(struct.pack(">H", len(payload)) + payload + b"trailing")
        self.assertEqual(binary.read_string(stream), "gfx/é.png")
        self.assertEqual(stream.tell(), 2 + len(payload))

    def test_empty_string(self):
        self.assertEqual(binary.read_string(io.BytesIO(b"\x00\x00")), "")

    def test_short_read_is_truncated(self):
        with self.assertRaises(TruncatedStream):
            binary.read_i32(io.BytesIO(b"\x00\x01"))

    def test_string_longer_than_stream_is_truncated(self):
        with self.assertRaises(TruncatedStream):
            binary.read_string(io.BytesIO(b"\x00\x05abc"))

    def test_truncated_is_a_format_error_and_eof_error(self):
        with self.assertRaises(FormatError):
            binary.read_u8(io.BytesIO(b""))
        with self.assertRaises(EOFError):
            binary.read_u8(io.BytesIO(b""))

    def test_invalid_utf8(self):
        with self.assertRaises(InvalidEncoding):
            binary.read_string(io.BytesIO(b"\x00\x02\xc3\x28"))

    def test_closed_stream_is_io_failure(self):
        stream = io.BytesIO(b"\x00\x00\x00\x00")
        stream.close()
        with self.assertRaises(IoFailure):
            binary.read_i32(stream)
        with self.assertRaises(IoFailure):
            binary.seek(stream, 0)


class TestWritePrimitives(unittest.TestCase):

    def test_written_values_read_back(self):
        stream = io.BytesIO()
        binary.write_u8(stream, 2)
        binary.write_i32(stream, -42)
        binary.write_u32(stream, 4000000000)
        binary.write_string(stream, "link")
        stream.seek(0)
        self.assertEqual(binary.read_u8(stream), 2)
        self.assertEqual(binary.read_i32(stream), -42)
        self.assertEqual(binary.read_u32(stream), 4000000000)
        self.assertEqual(binary.read_string(stream), "link")

    def test_string_layout(self):
        stream = io.BytesIO()
        binary.write_string(stream, "ab")
        self.assertEqual(stream.getvalue(), b"\x00\x02ab")

    def test_string_too_long(self):
        with self.assertRaises(ValueError):
            binary.write_string(io.BytesIO(), "x" * (binary.MAX_STRING_LENGTH + 1))


if __name__ == "__main__":
    unittest.main()
