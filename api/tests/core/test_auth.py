"""Tests for core.auth bearer-token helpers."""

from core.auth import _extract_bearer_token, generate_api_token, hash_api_token


class _FakeRequest:
    def __init__(self, authorization: str | None):
        self.headers = {"authorization": authorization} if authorization else {}


class TestTokens:
    def test_tokens_are_unique(self):
        assert generate_api_token() != generate_api_token()

    def test_digest_is_stable_hex(self):
        digest = hash_api_token("abc")

        assert digest == hash_api_token("abc")
        assert len(digest) == 64
        assert digest != hash_api_token("abd")


class TestExtractBearerToken:
    def test_reads_bearer_header(self):
        assert _extract_bearer_token(_FakeRequest("Bearer tok")) == "tok"

    def test_scheme_is_case_insensitive(self):
        assert _extract_bearer_token(_FakeRequest("bearer tok")) == "tok"

    def test_missing_header(self):
        assert _extract_bearer_token(_FakeRequest(None)) is None

    def test_other_scheme(self):
        assert _extract_bearer_token(_FakeRequest("Basic dXNlcjpwdw==")) is None

    def test_empty_token(self):
        assert _extract_bearer_token(_FakeRequest("Bearer   ")) is None
