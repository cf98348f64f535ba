"""Tests for message body encryption."""

import base64

import pytest

from securecontact.security.encryption import (
    ALGORITHM,
    DECRYPTION_FAILED,
    HEADER_LENGTH,
    CodecFailure,
    decode_message,
    decrypt,
    encode_message,
    encrypt,
)

KEY = "a-long-and-secret-password"


class TestEncryptDecrypt:

    def test_round_trip(self) -> None:
        text = "Hello there, 日本語 and émojis 🎉"
        assert decrypt(encrypt(text, KEY), KEY) == text

    def test_blob_layout(self) -> None:
        text = "0123456789"
        raw = base64.b64decode(encrypt(text, KEY))
        assert len(raw) == HEADER_LENGTH + len(text.encode("utf-8"))

    def test_fresh_salt_and_nonce_per_call(self) -> None:
        first = base64.b64decode(encrypt("same text", KEY))
        second = base64.b64decode(encrypt("same text", KEY))
        assert first[:64] != second[:64]
        assert first[64:80] != second[64:80]
        assert first != second

    def test_wrong_key_raises(self) -> None:
        blob = encrypt("secret", KEY)
        with pytest.raises(CodecFailure):
            decrypt(blob, "another-password")

    def test_flipped_ciphertext_byte_raises(self) -> None:
        raw = bytearray(base64.b64decode(encrypt("secret message", KEY)))
        raw[-1] ^= 0x01
        with pytest.raises(CodecFailure):
            decrypt(base64.b64encode(bytes(raw)).decode("ascii"), KEY)

    @pytest.mark.parametrize("blob", ["not base64 !!", base64.b64encode(b"short").decode("ascii")])
    def test_malformed_blob_raises(self, blob) -> None:
        with pytest.raises(CodecFailure):
            decrypt(blob, KEY)

    def test_missing_password_raises(self) -> None:
        with pytest.raises(CodecFailure):
            encrypt("text", "")


class TestEncodeDecodeMessage:

    def test_without_key_passes_through(self) -> None:
        encoded = encode_message("plain text", None)
        assert encoded.message == "plain text"
        assert encoded.encrypted is False
        assert encoded.algorithm is None

    def test_empty_message_passes_through(self) -> None:
        encoded = encode_message("", KEY)
        assert encoded.message == ""
        assert encoded.encrypted is False

    def test_with_key_encrypts(self) -> None:
        encoded = encode_message("plain text", KEY)
        assert encoded.encrypted is True
        assert encoded.algorithm == ALGORITHM
        assert encoded.message != "plain text"
        assert decode_message(encoded.message, KEY) == "plain text"

    def test_decode_with_wrong_key_returns_placeholder(self) -> None:
        encoded = encode_message("plain text", KEY)
        assert decode_message(encoded.message, "wrong") == DECRYPTION_FAILED

    def test_decode_without_key_returns_placeholder(self) -> None:
        encoded = encode_message("plain text", KEY)
        assert decode_message(encoded.message, None) == DECRYPTION_FAILED

    def test_decode_garbage_returns_placeholder(self) -> None:
        assert decode_message("%%%", KEY) == DECRYPTION_FAILED
