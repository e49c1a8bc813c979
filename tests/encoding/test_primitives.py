"""Tests for Unsigned, Enumerated and ObjectIdentifier codecs."""

import pytest

from bac_whois.encoding.primitives import (
    MAX_INSTANCE,
    decode_object_identifier,
    decode_unsigned,
    encode_application_enumerated,
    encode_application_object_id,
    encode_application_unsigned,
    encode_context_tagged,
    encode_object_identifier,
    encode_unsigned,
)


class TestUnsigned:
    @pytest.mark.parametrize(
        ("value", "encoded"),
        [
            (0, b"\x00"),
            (255, b"\xff"),
            (256, b"\x01\x00"),
            (1476, b"\x05\xc4"),
            (0x10000, b"\x01\x00\x00"),
            (0xFFFFFFFF, b"\xff\xff\xff\xff"),
        ],
    )
    def test_minimum_octets(self, value, encoded):
        assert encode_unsigned(value) == encoded
        assert decode_unsigned(encoded) == value

    @pytest.mark.parametrize("value", [-1, 0x100000000])
    def test_out_of_range(self, value):
        with pytest.raises(ValueError):
            encode_unsigned(value)

    @pytest.mark.parametrize("data", [b"", b"\x01\x02\x03\x04\x05"])
    def test_decode_bad_length(self, data):
        with pytest.raises(ValueError, match="1-4 bytes"):
            decode_unsigned(data)


class TestObjectIdentifier:
    def test_device(self):
        assert encode_object_identifier(8, 1234) == b"\x02\x00\x04\xd2"
        assert decode_object_identifier(b"\x02\x00\x04\xd2") == (8, 1234)

    def test_max_instance(self):
        assert decode_object_identifier(encode_object_identifier(8, MAX_INSTANCE)) == (
            8,
            MAX_INSTANCE,
        )

    def test_instance_out_of_range(self):
        with pytest.raises(ValueError, match="Instance number"):
            encode_object_identifier(8, MAX_INSTANCE + 1)

    def test_type_out_of_range(self):
        with pytest.raises(ValueError, match="Object type"):
            encode_object_identifier(1024, 0)

    def test_decode_wrong_length(self):
        with pytest.raises(ValueError, match="4 bytes"):
            decode_object_identifier(b"\x02\x00\x04")


class TestTagged:
    def test_application_unsigned(self):
        assert encode_application_unsigned(1476) == b"\x22\x05\xc4"

    def test_application_enumerated(self):
        assert encode_application_enumerated(3) == b"\x91\x03"

    def test_application_object_id(self):
        assert encode_application_object_id(8, 1234) == b"\xc4\x02\x00\x04\xd2"

    def test_context_tagged(self):
        assert encode_context_tagged(1, b"\x64") == b"\x19\x64"
