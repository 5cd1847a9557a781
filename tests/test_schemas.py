"""Tests for response metadata and error envelopes."""

from invest_intel import SCHEMA_VERSION, SERVER_VERSION
from invest_intel.utils.provenance import build_error_response, build_meta


class TestBuildMeta:
    """Tests for build_meta function."""

    def test_meta_versions(self) -> None:
        """Test meta carries server and schema versions."""
        meta = build_meta("generate_signals")

        assert meta["server_version"] == SERVER_VERSION
        assert meta["schema_version"] == SCHEMA_VERSION
        assert meta["tool"] == "generate_signals"

    def test_meta_duration_rounded(self) -> None:
        """Test duration is rounded to one decimal."""
        assert build_meta("build_digest", duration_ms=12.345)["duration_ms"] == 12.3

    def test_meta_no_duration(self) -> None:
        """Test duration is omitted when not measured."""
        assert "duration_ms" not in build_meta("build_digest")


class TestBuildErrorResponse:
    """Tests for build_error_response function."""

    def test_error_envelope(self) -> None:
        """Test error flag, type, message and error meta."""
        resp = build_error_response("insufficient_data", "Need at least 20 bars, got 3", symbol="AAA")

        assert resp["error"] is True
        assert resp["error_type"] == "insufficient_data"
        assert resp["message"] == "Need at least 20 bars, got 3"
        assert resp["symbol"] == "AAA"
        assert resp["meta"]["tool"] == "error"
        assert "duration_ms" not in resp["meta"]

    def test_error_without_symbol(self) -> None:
        """Test batch-level errors carry no symbol."""
        resp = build_error_response("invalid_parameters", "No assets supplied")
        assert "symbol" not in resp
