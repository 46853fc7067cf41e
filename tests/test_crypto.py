"""
tests/test_crypto.py

Strict Ed25519 verification and the operator key manager.
"""

import pytest

from claimvault.core.crypto import (
    Ed25519KeyManager,
    decode_signature,
    encode_signature,
    normalize_public_key_hex,
    verify_strict,
)


# Group order of edwards25519
L = 2 ** 252 + 27742317777372353535851937790883648493

IDENTITY_POINT = "01" + "00" * 31
ORDER_EIGHT_POINT = "26e8958fc2b227b045c3f489f2ef98f0d5dfac05d3c63339b13802886d53fc05"

MESSAGE = b'{"amount":"10","type":"claimvault.fungible_claim.v1"}'


@pytest.fixture
def key():
    return Ed25519KeyManager.generate()


class TestVerifyStrict:

    def test_valid_signature_verifies(self, key):
        sig = key.sign(MESSAGE)
        assert verify_strict(MESSAGE, sig, key.public_key_hex)

    def test_accepts_raw_bytes_forms(self, key):
        raw_sig = decode_signature(key.sign(MESSAGE))
        raw_pub = bytes.fromhex(key.public_key_hex)
        assert verify_strict(MESSAGE, raw_sig, raw_pub)

    def test_accepts_padded_base64(self, key):
        sig = key.sign(MESSAGE)
        assert len(sig) == 86
        assert verify_strict(MESSAGE, sig + "==", key.public_key_hex)

    def test_tampered_message_fails(self, key):
        sig = key.sign(MESSAGE)
        assert not verify_strict(MESSAGE + b" ", sig, key.public_key_hex)

    def test_wrong_key_fails(self, key):
        other = Ed25519KeyManager.generate()
        assert not verify_strict(MESSAGE, key.sign(MESSAGE), other.public_key_hex)

    def test_flipped_signature_bit_fails(self, key):
        raw = bytearray(decode_signature(key.sign(MESSAGE)))
        raw[5] ^= 0x01
        assert not verify_strict(MESSAGE, bytes(raw), key.public_key_hex)

    @pytest.mark.parametrize("bad_sig", [
        "",
        "not-base64!!",
        "A" * 85,
        b"\x00" * 63,
        b"\x00" * 65,
        None,
        12345,
    ])
    def test_malformed_signature_returns_false(self, key, bad_sig):
        assert verify_strict(MESSAGE, bad_sig, key.public_key_hex) is False

    @pytest.mark.parametrize("bad_key", [
        "",
        "zz" * 32,
        "ab" * 31,
        b"\x01" * 31,
        None,
    ])
    def test_malformed_public_key_returns_false(self, key, bad_key):
        assert verify_strict(MESSAGE, key.sign(MESSAGE), bad_key) is False

    def test_unreduced_scalar_rejected(self, key):
        """S + L verifies under a lax check but is malleable, so it is rejected."""
        raw = decode_signature(key.sign(MESSAGE))
        s = int.from_bytes(raw[32:], "little")
        malleated = raw[:32] + (s + L).to_bytes(32, "little")
        assert not verify_strict(MESSAGE, malleated, key.public_key_hex)

    @pytest.mark.parametrize("point", [IDENTITY_POINT, ORDER_EIGHT_POINT, "00" * 32])
    def test_small_order_public_key_rejected(self, point):
        sig = encode_signature(bytes.fromhex(IDENTITY_POINT) + b"\x00" * 32)
        assert not verify_strict(MESSAGE, sig, point)

    def test_small_order_r_rejected(self, key):
        raw = decode_signature(key.sign(MESSAGE))
        forged = bytes.fromhex(IDENTITY_POINT) + raw[32:]
        assert not verify_strict(MESSAGE, forged, key.public_key_hex)

    def test_non_canonical_key_encoding_rejected(self):
        # y = p encodes 0 non-canonically
        non_canonical = (2 ** 255 - 19).to_bytes(32, "little")
        assert not verify_strict(MESSAGE, "A" * 86, non_canonical)

    def test_never_raises_on_garbage(self):
        assert verify_strict(b"", object(), object()) is False


class TestNormalizePublicKey:

    def test_accepts_raw_and_hex(self, key):
        raw = bytes.fromhex(key.public_key_hex)
        assert normalize_public_key_hex(raw) == key.public_key_hex
        assert normalize_public_key_hex(key.public_key_hex.upper()) == key.public_key_hex

    def test_rejects_small_order(self):
        with pytest.raises(ValueError):
            normalize_public_key_hex(IDENTITY_POINT)

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            normalize_public_key_hex("ab" * 16)


class TestKeyManager:

    def test_public_key_hex_is_64_lowercase(self, key):
        assert len(key.public_key_hex) == 64
        assert key.public_key_hex == key.public_key_hex.lower()

    def test_sign_returns_unpadded_base64url(self, key):
        sig = key.sign(MESSAGE)
        assert "=" not in sig
        assert len(decode_signature(sig)) == 64

    def test_verify_uses_own_key(self, key):
        assert key.verify(MESSAGE, key.sign(MESSAGE))
        assert not key.verify(MESSAGE, Ed25519KeyManager.generate().sign(MESSAGE))

    def test_save_and_load_roundtrip(self, key, tmp_path):
        path = tmp_path / "keys" / "operator.pem"
        key.save(path)
        loaded = Ed25519KeyManager.from_file(path)
        assert loaded.public_key_hex == key.public_key_hex

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Ed25519KeyManager.from_file(tmp_path / "nope.pem")

    def test_from_file_garbage(self, tmp_path):
        path = tmp_path / "bad.pem"
        path.write_text("not a key")
        with pytest.raises(ValueError):
            Ed25519KeyManager.from_file(path)

    def test_seed_roundtrip(self, key):
        clone = Ed25519KeyManager.from_private_bytes(key.private_bytes_raw())
        assert clone.public_key_hex == key.public_key_hex

    def test_seed_wrong_length(self):
        with pytest.raises(ValueError):
            Ed25519KeyManager.from_private_bytes(b"\x00" * 31)

    def test_repr_hides_private_material(self, key):
        assert key.public_key_hex[:16] in repr(key)
        assert key.private_bytes_raw().hex() not in repr(key)
