"""
Tests for shared types and the composite key scheme.
"""

from __future__ import annotations

import pytest

from authstore.codec import BufferJSONCodec
from authstore.types import (
    CREDS_KEY,
    Codec,
    KeyCategory,
    composite_key,
    generate_id,
    split_composite_key,
)


class TestCompositeKey:
    """Tests for building and splitting record keys."""

    def test_plain_category(self) -> None:
        assert composite_key("session", "123.0") == "session-123.0"

    def test_numeric_id(self) -> None:
        assert composite_key("prekey", 1) == composite_key("prekey", "1")

    def test_enum_category(self) -> None:
        assert composite_key(KeyCategory.SESSION, "a") == composite_key("session", "a")

    @pytest.mark.parametrize(
        "left, right",
        [
            (("pre-key", "1"), ("pre", "key-1")),
            (("a-b", "c"), ("a", "b-c")),
            (("a%2Db", "c"), ("a-b", "c")),
            (("x", ""), ("x-", "")),
        ],
    )
    def test_injective(self, left: tuple[str, str], right: tuple[str, str]) -> None:
        """Test that distinct pairs never share a record key."""
        assert composite_key(*left) != composite_key(*right)

    @pytest.mark.parametrize(
        "category, key_id",
        [
            ("pre-key", "1"),
            ("app-state-sync-key", "AAAAAF9x"),
            ("sender-key", "group@g.us--alice-0"),
            ("odd%2Dname", "1"),
            ("100%", "x"),
        ],
    )
    def test_split_inverts_composite(self, category: str, key_id: str) -> None:
        assert split_composite_key(composite_key(category, key_id)) == (category, key_id)

    def test_creds_is_not_a_composite_key(self) -> None:
        with pytest.raises(ValueError):
            split_composite_key(CREDS_KEY)

    def test_empty_category_rejected(self) -> None:
        with pytest.raises(ValueError):
            composite_key("", "1")


class TestHelpers:
    """Tests for ID generation and the codec protocol."""

    def test_generate_id_prefix(self) -> None:
        first = generate_id("sess")
        assert first.startswith("sess_")
        assert first != generate_id("sess")

    def test_buffer_codec_satisfies_protocol(self) -> None:
        assert isinstance(BufferJSONCodec(), Codec)
