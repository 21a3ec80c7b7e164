"""
Tests for the bencode codec.
"""

import io
import unittest

from nrepleval.errors import MalformedFrame, ResponseTooLarge
from nrepleval.protocol.bencode import decode, encode, read_value, write_value


class _TrickleStream:
    """Binary stream that hands out at most one byte per read."""

    def __init__(self, data: bytes):
        self._data = io.BytesIO(data)

    def read(self, size: int = -1) -> bytes:
        return self._data.read(min(size, 1) if size > 0 else 1)


class TestEncode(unittest.TestCase):
    """Encoding produces the exact wire bytes."""

    def test_scalars(self):
        self.assertEqual(encode(b"spam"), b"4:spam")
        self.assertEqual(encode(""), b"0:")
        self.assertEqual(encode(42), b"i42e")
        self.assertEqual(encode(-3), b"i-3e")
        self.assertEqual(encode(0), b"i0e")

    def test_str_is_utf8(self):
        self.assertEqual(encode("λ"), b"2:\xce\xbb")

    def test_list_and_tuple(self):
        self.assertEqual(encode([b"a", 1, []]), b"l1:ai1elee")
        self.assertEqual(encode((1, 2)), b"li1ei2ee")

    def test_dict_keeps_insertion_order(self):
        self.assertEqual(encode({"op": "eval", "code": "(+ 1 2)"}), b"d2:op4:eval4:code7:(+ 1 2)e")
        self.assertEqual(encode({"b": 1, "a": 2}), b"d1:bi1e1:ai2ee")

    def test_encoding_is_deterministic(self):
        request = {"op": "eval", "code": "(println :x)", "ns": "user"}
        self.assertEqual(encode(request), encode(dict(request)))

    def test_bool_rejected(self):
        with self.assertRaises(TypeError):
            encode(True)

    def test_unsupported_type_rejected(self):
        with self.assertRaises(TypeError):
            encode(1.5)
        with self.assertRaises(TypeError):
            encode({1: b"x"})

    def test_duplicate_key_after_encoding_rejected(self):
        with self.assertRaises(ValueError):
            encode({"a": 1, b"a": 2})

    def test_write_value(self):
        stream = io.BytesIO()
        write_value(stream, {"status": ["done"]})
        self.assertEqual(stream.getvalue(), b"d6:statusl4:doneee")


class TestDecode(unittest.TestCase):
    """Decoding valid frames."""

    def test_round_trip_message(self):
        message = {
            "id": b"42",
            "value": b"3",
            "status": [b"done"],
            "count": -7,
            "nested": {"items": [b"x", 1, [], {}], "empty": b""},
        }
        self.assertEqual(decode(encode(message)), message)

    def test_binary_safety(self):
        data = bytes(range(256)) + b"\x00\x00e:ld"
        self.assertEqual(decode(encode(data)), data)

    def test_keys_decode_to_str_values_to_bytes(self):
        decoded = decode(b"d5:value1:3e")
        self.assertEqual(decoded, {"value": b"3"})

    def test_deep_nesting(self):
        depth = 5000
        value = decode(b"l" * depth + b"e" * depth)
        for _ in range(depth - 1):
            self.assertEqual(len(value), 1)
            value = value[0]
        self.assertEqual(value, [])

    def test_read_value_consumes_one_frame_at_a_time(self):
        stream = io.BytesIO(encode({"out": "a"}) + encode({"status": ["done"]}))
        self.assertEqual(read_value(stream), {"out": b"a"})
        self.assertEqual(read_value(stream), {"status": [b"done"]})
        self.assertIsNone(read_value(stream))

    def test_read_value_handles_short_reads(self):
        frame = encode({"out": "hello world", "n": 12})
        self.assertEqual(read_value(_TrickleStream(frame)), {"out": b"hello world", "n": 12})

    def test_max_string_checked_against_length_prefix(self):
        self.assertEqual(read_value(io.BytesIO(b"5:hello"), max_string=5), b"hello")
        with self.assertRaises(ResponseTooLarge):
            read_value(io.BytesIO(b"d3:out999999999:"), max_string=1024)

    def test_huge_length_prefix_then_eof(self):
        with self.assertRaises(MalformedFrame):
            read_value(io.BufferedReader(io.BytesIO(b"999999999999999:abc")))


class TestMalformed(unittest.TestCase):
    """Grammar violations raise MalformedFrame."""

    def assertMalformed(self, data: bytes):
        with self.assertRaises(MalformedFrame):
            decode(data)

    def test_truncated_mapping(self):
        frame = encode({"op": "eval", "code": "(+ 1 2)"})
        for cut in range(1, len(frame)):
            with self.subTest(cut=cut):
                self.assertMalformed(frame[:cut])

    def test_truncated_mapping_on_stream(self):
        stream = io.BytesIO(b"d5:value1:3")
        with self.assertRaises(MalformedFrame):
            read_value(stream)

    def test_bad_length_prefix(self):
        self.assertMalformed(b"3x:abc")
        self.assertMalformed(b"5:abc")

    def test_bad_integers(self):
        self.assertMalformed(b"ie")
        self.assertMalformed(b"i-e")
        self.assertMalformed(b"i12ae")
        self.assertMalformed(b"i1.5e")

    def test_unknown_token(self):
        self.assertMalformed(b"x")

    def test_unexpected_end_marker(self):
        self.assertMalformed(b"e")

    def test_non_string_key(self):
        self.assertMalformed(b"di1ei2ee")

    def test_missing_value_for_key(self):
        self.assertMalformed(b"d3:fooe")

    def test_duplicate_key(self):
        self.assertMalformed(b"d1:ai1e1:ai2ee")

    def test_empty_and_trailing_input(self):
        self.assertMalformed(b"")
        self.assertMalformed(b"i1ei2e")


if __name__ == "__main__":
    unittest.main()
