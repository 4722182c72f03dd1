"""Tests for HMAC payload signing."""

import hashlib
import hmac

from courier.webhooks.signing import canonical_json, sign, sign_body, verify_signature

PAYLOAD = {
    "event": "entry.created",
    "timestamp": "2025-01-01T00:00:00+00:00",
    "data": {"id": "entry_1", "name": "Meditation", "tags": ["calm"]},
}


class TestCanonicalJson:
    """Tests for wire serialization."""

    def test_compact_separators(self):
        """Body should have no whitespace between tokens."""
        body = canonical_json({"a": 1, "b": [1, 2]})
        assert body == b'{"a":1,"b":[1,2]}'

    def test_preserves_key_order(self):
        """Keys should stay in insertion order, not be sorted."""
        body = canonical_json({"event": "x", "timestamp": "t", "data": {}})
        assert body.startswith(b'{"event":"x","timestamp":"t"')

    def test_unescaped_utf8(self):
        """Non-ASCII characters should be emitted as UTF-8, not escaped."""
        body = canonical_json({"name": "café"})
        assert body == '{"name":"café"}'.encode()


class TestSign:
    """Tests for sign() and sign_body()."""

    def test_signature_format(self):
        """Signature should be sha256= followed by 64 hex characters."""
        signature = sign("s3cr3t-value", PAYLOAD)
        assert signature.startswith("sha256=")
        assert len(signature) == len("sha256=") + 64

    def test_matches_independent_hmac(self):
        """Signature should equal HMAC-SHA256 over the compact JSON text."""
        text = (
            '{"event":"entry.created","timestamp":"2025-01-01T00:00:00+00:00",'
            '"data":{"id":"entry_1","name":"Meditation","tags":["calm"]}}'
        )
        expected = hmac.new(b"s3cr3t-value", text.encode(), hashlib.sha256).hexdigest()

        assert sign("s3cr3t-value", PAYLOAD) == f"sha256={expected}"

    def test_deterministic(self):
        """Same secret and payload should always sign the same."""
        assert sign("s3cr3t-value", PAYLOAD) == sign("s3cr3t-value", dict(PAYLOAD))

    def test_secret_changes_signature(self):
        """Different secrets should produce different signatures."""
        assert sign("secret-one", PAYLOAD) != sign("secret-two", PAYLOAD)

    def test_sign_equals_sign_body_of_canonical_json(self):
        """sign() should cover exactly the bytes canonical_json() produces."""
        assert sign("k" * 16, PAYLOAD) == sign_body("k" * 16, canonical_json(PAYLOAD))


class TestVerifySignature:
    """Tests for receiver-side verification."""

    def test_valid_signature(self):
        """A signature produced by sign_body() should verify."""
        body = canonical_json(PAYLOAD)
        assert verify_signature("s3cr3t-value", body, sign_body("s3cr3t-value", body))

    def test_accepts_str_body(self):
        """A decoded body should verify the same as raw bytes."""
        body = canonical_json(PAYLOAD)
        signature = sign_body("s3cr3t-value", body)
        assert verify_signature("s3cr3t-value", body.decode("utf-8"), signature)

    def test_tampered_body(self):
        """Any change to the body should fail verification."""
        body = canonical_json(PAYLOAD)
        signature = sign_body("s3cr3t-value", body)
        assert not verify_signature("s3cr3t-value", body + b" ", signature)

    def test_wrong_secret(self):
        """A different secret should fail verification."""
        body = canonical_json(PAYLOAD)
        signature = sign_body("s3cr3t-value", body)
        assert not verify_signature("other-secret", body, signature)

    def test_malformed_signature(self):
        """A header without the sha256= prefix should fail verification."""
        body = canonical_json(PAYLOAD)
        digest = sign_body("s3cr3t-value", body).removeprefix("sha256=")
        assert not verify_signature("s3cr3t-value", body, digest)
