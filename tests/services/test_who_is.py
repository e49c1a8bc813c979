import pytest

from bac_whois.encoding.primitives import MAX_INSTANCE
from bac_whois.services.who_is import IAmRequest, WhoIsRequest
from bac_whois.types.enums import Segmentation


class TestWhoIsRequest:
    def test_encode_no_range(self):
        req = WhoIsRequest()
        assert req.encode() == b""

    def test_encode_with_range(self):
        req = WhoIsRequest(low_limit=100, high_limit=200)
        assert req.encode() == b"\x09\x64\x19\xc8"

    def test_encode_wide_range(self):
        req = WhoIsRequest(low_limit=0, high_limit=MAX_INSTANCE)
        assert req.encode() == b"\x09\x00\x1b\x3f\xff\xff"

    def test_encode_single_device(self):
        assert WhoIsRequest(low_limit=42, high_limit=42).encode() == b"\x09\x2a\x19\x2a"

    def test_mismatched_limits_treated_as_unbounded(self):
        """Both limits must be present or both absent (Clause 16.10.1.1.1)."""
        req = WhoIsRequest(low_limit=100, high_limit=None)
        assert req.low_limit is None
        assert req.high_limit is None

    def test_mismatched_limits_high_only(self):
        req = WhoIsRequest(low_limit=None, high_limit=200)
        assert req.low_limit is None
        assert req.high_limit is None

    def test_limit_out_of_range(self):
        with pytest.raises(ValueError, match="0-4194303"):
            WhoIsRequest(low_limit=0, high_limit=MAX_INSTANCE + 1)


class TestIAmRequest:
    def test_encode(self):
        req = IAmRequest(
            device_instance=1234,
            max_apdu_length=1476,
            segmentation_supported=Segmentation.NONE,
            vendor_id=260,
        )
        assert req.encode() == b"\xc4\x02\x00\x04\xd2\x22\x05\xc4\x91\x03\x22\x01\x04"

    def test_round_trip(self):
        req = IAmRequest(
            device_instance=MAX_INSTANCE,
            max_apdu_length=480,
            segmentation_supported=Segmentation.BOTH,
            vendor_id=42,
        )
        decoded = IAmRequest.decode(req.encode())
        assert decoded == req
        assert decoded.segmentation_supported is Segmentation.BOTH

    def test_decode_rejects_non_device(self):
        # analog-input,1 instead of device
        data = b"\xc4\x00\x00\x00\x01\x22\x05\xc4\x91\x03\x21\x08"
        with pytest.raises(ValueError, match="not a device"):
            IAmRequest.decode(data)

    def test_decode_wrong_tag(self):
        # max-APDU encoded as enumerated
        data = b"\xc4\x02\x00\x04\xd2\x92\x05\xc4\x91\x03\x21\x08"
        with pytest.raises(ValueError, match="Expected application tag 2"):
            IAmRequest.decode(data)

    @pytest.mark.parametrize("cut", [0, 3, 5, 8, 11])
    def test_decode_truncated(self, cut):
        data = b"\xc4\x02\x00\x04\xd2\x22\x05\xc4\x91\x03\x21\x08"
        with pytest.raises(ValueError):
            IAmRequest.decode(data[:cut])

    def test_decode_unknown_segmentation(self):
        data = b"\xc4\x02\x00\x04\xd2\x22\x05\xc4\x91\x07\x21\x08"
        with pytest.raises(ValueError):
            IAmRequest.decode(data)
