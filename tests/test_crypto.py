"""Tests for gaugewire._crypto."""

from __future__ import annotations

from gaugewire._crypto import build_login_payload, hash_tokens, make_client_nonce


class TestHashTokens:
    def test_known_vector(self):
        assert hash_tokens(["a", "b"]) == "d8160c9b3dc20d4e931aeb4f45262155"

    def test_order_matters(self):
        assert hash_tokens(["b", "a"]) == "7a24db7fe0cacbaf37c7ec47aabce92d"
        assert hash_tokens(["a", "b"]) != hash_tokens(["b", "a"])

    def test_deterministic(self):
        assert hash_tokens(["x", "y", "z"]) == hash_tokens(["x", "y", "z"])

    def test_changing_an_element_changes_digest(self):
        assert hash_tokens(["a", "b"]) != hash_tokens(["a", "c"])

    def test_empty_sequence(self):
        assert hash_tokens([]) == "d41d8cd98f00b204e9800998ecf8427e"


class TestClientNonce:
    def test_hex_of_64_bytes(self):
        nonce = make_client_nonce()
        assert len(nonce) == 128
        int(nonce, 16)

    def test_random(self):
        assert make_client_nonce() != make_client_nonce()


class TestBuildLoginPayload:
    def test_digest_chain(self):
        payload = build_login_payload(
            "owner", "secret", "eGauge Administration", "abc123", client_nonce="cafe"
        )
        assert payload == {
            "usr": "owner",
            "rlm": "eGauge Administration",
            "nnc": "abc123",
            "cnnc": "cafe",
            "hash": "0871ee817a7839be389a5cb5383a8388",
        }

    def test_password_not_sent(self):
        payload = build_login_payload("owner", "secret", "realm", "nonce")
        assert "secret" not in payload.values()

    def test_generates_client_nonce(self):
        payload = build_login_payload("owner", "secret", "realm", "nonce")
        assert len(payload["cnnc"]) == 128
        ha1 = hash_tokens(["owner", "realm", "secret"])
        assert payload["hash"] == hash_tokens([ha1, "nonce", payload["cnnc"]])
