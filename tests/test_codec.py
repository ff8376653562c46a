"""Tests for vote entry encoding."""

import pytest

from votelog.codec import (
    ACTION_MASK,
    MAX_INT64,
    MAX_TARGET,
    Vote,
    decode,
    encode,
    flatten,
    parse_decimal,
    parse_entry,
    unflatten,
)
from votelog.errors import InvalidEvent


class TestEncode:
    """Tests for packing votes."""

    def test_bit_layout(self):
        """Action sits in the low 4 bits, target above it."""
        assert encode(5, 1337) == (1337 << 4) | 5
        assert encode(0, 0) == 0
        assert encode(15, 1) == 31

    def test_roundtrip_all_actions(self):
        """Every action survives encode/decode at the target extremes."""
        for action in range(16):
            for target in (0, 1, 9000, MAX_TARGET):
                assert decode(encode(action, target)) == Vote(action, target)

    def test_action_too_large(self):
        """Actions with bits above the 4th are rejected."""
        with pytest.raises(InvalidEvent):
            encode(16, 1)
        with pytest.raises(InvalidEvent):
            encode(0x1F, 1)

    def test_negative_action(self):
        with pytest.raises(InvalidEvent):
            encode(-1, 1)

    def test_target_overflow(self):
        """Targets beyond 28 bits are rejected."""
        with pytest.raises(InvalidEvent):
            encode(1, MAX_TARGET + 1)
        with pytest.raises(InvalidEvent):
            encode(1, -5)

    def test_non_integers_rejected(self):
        with pytest.raises(InvalidEvent):
            encode("5", 1)
        with pytest.raises(InvalidEvent):
            encode(True, 1)
        with pytest.raises(InvalidEvent):
            encode(1, 2.0)

    def test_invalid_event_is_value_error(self):
        with pytest.raises(ValueError):
            encode(99, 1)

    def test_vote_encode(self):
        assert Vote(action=7, target=9000).encode() == encode(7, 9000)


class TestDecode:
    """Tests for unpacking entries."""

    def test_decode_masks_only(self):
        value = (123 << 4) | 9
        vote = decode(value)
        assert vote.action == 9
        assert vote.target == 123
        assert vote.action == value & ACTION_MASK

    def test_parse_entry(self):
        assert parse_entry("21397") == 21397
        assert parse_entry(b"21397") == 21397


class TestParseDecimal:
    """Strict decimal parsing shared by sync cursors and CSV import."""

    def test_plain_and_signed(self):
        assert parse_decimal("42") == 42
        assert parse_decimal("+5") == 5
        assert parse_decimal("-3") == -3

    def test_int64_bounds(self):
        assert parse_decimal(str(MAX_INT64)) == MAX_INT64
        assert parse_decimal(str(-MAX_INT64 - 1)) == -MAX_INT64 - 1
        with pytest.raises(ValueError):
            parse_decimal(str(MAX_INT64 + 1))
        with pytest.raises(ValueError):
            parse_decimal(str(-MAX_INT64 - 2))

    @pytest.mark.parametrize("raw", ["1_000", "\u0661\u0662", " 1", "1.0", "", "0x10", "--1"])
    def test_rejected(self, raw):
        with pytest.raises(ValueError):
            parse_decimal(raw)

class TestFlatten:
    def test_flatten_order(self):
        votes = [Vote(5, 1337), Vote(7, 9000)]
        assert flatten(votes) == [5, 1337, 7, 9000]

    def test_unflatten(self):
        assert unflatten([5, 1337, 7, 9000]) == [Vote(5, 1337), Vote(7, 9000)]
        assert unflatten([]) == []

    def test_unflatten_odd_length(self):
        with pytest.raises(ValueError):
            unflatten([1, 2, 3])
