"""
Tests for the chunk decoder.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from supercache.cache.decoder import ChunkDecoder, decompress_text, text_to_bytes
from supercache.cache.encoder import ChunkEncoder, compress_to_text
from supercache.cache.layout import Manifest, part_key
from supercache.exceptions import IntegrityError


@pytest.fixture
def decoder() -> ChunkDecoder:
    return ChunkDecoder()


@pytest.fixture
def small_encoder() -> ChunkEncoder:
    """Encoder with a small cap so split layouts stay cheap to build."""
    return ChunkEncoder(max_value_bytes=512)


def _tamper(text: str) -> str:
    """Change one digit of a comma-text chunk."""
    index = next(i for i, ch in enumerate(text) if ch.isdigit())
    replacement = "1" if text[index] != "1" else "2"
    return text[:index] + replacement + text[index + 1:]


class TestByteText:
    """Tests for parsing the comma-separated byte encoding."""

    def test_signed_and_unsigned_agree(self) -> None:
        assert text_to_bytes("31,-117,0") == text_to_bytes("31,139,0") == b"\x1f\x8b\x00"

    @pytest.mark.parametrize("text", ["", "a,b", "1,,2", "1.5,2", "300", "-129", "true"])
    def test_rejects_malformed(self, text: str) -> None:
        with pytest.raises(IntegrityError) as exc_info:
            text_to_bytes(text)
        assert exc_info.value.context["reason"] == "encoding"

    def test_decompress_round_trip(self) -> None:
        value = "Grüße 漢字 🎉" * 100
        assert decompress_text(compress_to_text(value)) == value

    def test_decompress_rejects_non_gzip(self) -> None:
        with pytest.raises(IntegrityError) as exc_info:
            decompress_text("1,2,3,4")
        assert exc_info.value.context["reason"] == "gzip"


class TestClassification:
    """Tests for first-pass classification of fetched entries."""

    def test_direct_value(self, decoder: ChunkDecoder) -> None:
        result = decoder.decode(["a"], {"a": "hello"})
        assert result.values == {"a": "hello"}
        assert result.purge == frozenset()

    def test_empty_direct_value_is_hit(self, decoder: ChunkDecoder) -> None:
        result = decoder.decode(["a"], {"a": ""})
        assert "a" in result.values
        assert result.values["a"] == ""

    def test_absent_key_is_plain_miss(self, decoder: ChunkDecoder) -> None:
        """Test a key with no entries is neither returned nor purged."""
        result = decoder.decode(["a"], {})
        assert result.values == {}
        assert result.purge == frozenset()

    def test_compressed_value(self, decoder: ChunkDecoder) -> None:
        value = "y" * 300000
        result = decoder.decode(["b"], {"b.zip": compress_to_text(value)})
        assert result.values == {"b": value}

    def test_compressed_payload_in_manifest_slot(self, decoder: ChunkDecoder) -> None:
        """Test a manifest slot holding a payload is decoded as compressed."""
        result = decoder.decode(["b"], {"b[0].zip": compress_to_text("hello")})
        assert result.values == {"b": "hello"}

    def test_corrupt_compressed_value_purged(self, decoder: ChunkDecoder) -> None:
        result = decoder.decode(["b"], {"b.zip": "1,2,3"})
        assert result.values == {}
        assert result.purge == frozenset({"b"})

    def test_garbage_manifest_slot_purged(self, decoder: ChunkDecoder) -> None:
        """Test malformed manifest JSON is a miss plus purge, never an error."""
        result = decoder.decode(["b"], {"b[0].zip": '{"num_parts": '})
        assert result.values == {}
        assert result.purge == frozenset({"b"})

    def test_direct_value_wins(self, decoder: ChunkDecoder) -> None:
        raw = {"a": "direct", "a.zip": compress_to_text("stale")}
        assert decoder.decode(["a"], raw).values == {"a": "direct"}

    def test_duplicate_keys_decoded_once(self, decoder: ChunkDecoder) -> None:
        result = decoder.decode(["a", "a"], {"a": "x"})
        assert result.values == {"a": "x"}

    def test_first_pass_names_part_keys(
        self,
        decoder: ChunkDecoder,
        small_encoder: ChunkEncoder,
        noisy_text: Callable[..., str],
    ) -> None:
        """Test pending manifests list the parts to fetch, in order."""
        entries = small_encoder.encode("k", noisy_text(2000))
        manifest = Manifest.parse(entries["k[0].zip"])
        assert manifest is not None

        state = decoder.first_pass(["k"], {"k[0].zip": entries["k[0].zip"]})
        assert state.values == {}
        assert state.part_keys() == [part_key("k", i) for i in range(1, manifest.num_parts + 1)]


class TestSplitReconstruction:
    """Tests for second-pass reassembly and verification."""

    def test_round_trip(
        self,
        decoder: ChunkDecoder,
        small_encoder: ChunkEncoder,
        noisy_text: Callable[..., str],
    ) -> None:
        value = noisy_text(5000)
        result = decoder.decode(["k"], small_encoder.encode("k", value))
        assert result.values == {"k": value}
        assert result.purge == frozenset()

    def test_multi_byte_round_trip(self, decoder: ChunkDecoder, small_encoder: ChunkEncoder) -> None:
        value = "".join(chr(0x4E00 + (i * 7919) % 20000) for i in range(3000))
        entries = small_encoder.encode("k", value)
        assert "k[0].zip" in entries
        assert decoder.decode(["k"], entries).values == {"k": value}

    def test_two_passes(
        self,
        decoder: ChunkDecoder,
        small_encoder: ChunkEncoder,
        noisy_text: Callable[..., str],
    ) -> None:
        """Test the split pass works when parts arrive in a second batch."""
        value = noisy_text(5000)
        entries = small_encoder.encode("k", value)
        state = decoder.first_pass(["k"], {"k[0].zip": entries["k[0].zip"]})
        parts = {name: entries[name] for name in state.part_keys()}
        assert decoder.second_pass(state, parts).values == {"k": value}

    def test_missing_part_purged(
        self,
        decoder: ChunkDecoder,
        small_encoder: ChunkEncoder,
        noisy_text: Callable[..., str],
    ) -> None:
        entries = small_encoder.encode("k", noisy_text(5000))
        del entries["k[2].zip"]

        result = decoder.decode(["k"], entries)
        assert result.values == {}
        assert result.purge == frozenset({"k"})

    def test_tampered_part_purged(
        self,
        decoder: ChunkDecoder,
        small_encoder: ChunkEncoder,
        noisy_text: Callable[..., str],
    ) -> None:
        entries = small_encoder.encode("k", noisy_text(5000))
        entries["k[1].zip"] = _tamper(entries["k[1].zip"])

        result = decoder.decode(["k"], entries)
        assert result.values == {}
        assert result.purge == frozenset({"k"})

    def test_value_hash_mismatch_purged(
        self,
        decoder: ChunkDecoder,
        small_encoder: ChunkEncoder,
        noisy_text: Callable[..., str],
    ) -> None:
        """Test a manifest whose value fingerprint disagrees is rejected."""
        entries = small_encoder.encode("k", noisy_text(5000))
        manifest = Manifest.parse(entries["k[0].zip"])
        assert manifest is not None
        forged = Manifest(
            num_parts=manifest.num_parts,
            hash="0" * 32,
            size=manifest.size,
            zip=manifest.zip,
        )
        entries["k[0].zip"] = forged.to_json()

        result = decoder.decode(["k"], entries)
        assert result.purge == frozenset({"k"})

    def test_mixed_generations_purged(
        self,
        decoder: ChunkDecoder,
        small_encoder: ChunkEncoder,
        noisy_text: Callable[..., str],
    ) -> None:
        """Test a manifest and parts from different writes do not combine."""
        old = small_encoder.encode("k", noisy_text(5000, seed=1))
        new = small_encoder.encode("k", noisy_text(5000, seed=2))
        mixed = dict(new)
        mixed["k[1].zip"] = old["k[1].zip"]

        result = decoder.decode(["k"], mixed)
        assert result.values == {}
        assert result.purge == frozenset({"k"})

    def test_manifest_without_fingerprints(
        self,
        decoder: ChunkDecoder,
        small_encoder: ChunkEncoder,
        noisy_text: Callable[..., str],
    ) -> None:
        """Test manifests lacking hashes still reassemble."""
        value = noisy_text(5000)
        entries = small_encoder.encode("k", value)
        manifest = Manifest.parse(entries["k[0].zip"])
        assert manifest is not None
        entries["k[0].zip"] = Manifest(num_parts=manifest.num_parts).to_json()

        assert decoder.decode(["k"], entries).values == {"k": value}

    def test_failure_isolated_per_key(
        self,
        decoder: ChunkDecoder,
        small_encoder: ChunkEncoder,
        noisy_text: Callable[..., str],
    ) -> None:
        good = noisy_text(5000, seed=3)
        raw = {**small_encoder.encode("good", good), **small_encoder.encode("bad", noisy_text(5000))}
        del raw["bad[1].zip"]
        raw["plain"] = "p"

        result = decoder.decode(["good", "bad", "plain", "absent"], raw)
        assert result.values == {"good": good, "plain": "p"}
        assert result.purge == frozenset({"bad"})
