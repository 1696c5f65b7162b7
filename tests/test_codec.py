"""Tests for queue message decoding and identifier validation."""

import pytest

from stockpulse_notifier.domain.exceptions import (
    FailureReason,
    InvalidIdentifierError,
    MalformedMessageError,
)
from stockpulse_notifier.messaging import codec
from stockpulse_notifier.messaging.models import MessageIdentifiers, WishlistMessage


class TestParse:
    """Test JSON decoding of raw payloads."""

    def test_parse_valid_payload(self):
        message = codec.parse('{"id": "u1::s1"}')
        assert message == WishlistMessage(id="u1::s1")

    def test_parse_bytes_payload(self):
        assert codec.parse(b'{"id": "u1::s1"}').id == "u1::s1"

    def test_unknown_fields_are_ignored(self):
        message = codec.parse('{"id": "u1::s1", "priority": 5}')
        assert message.id == "u1::s1"

    def test_missing_id_decodes_to_none(self):
        assert codec.parse("{}").id is None

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "",
            "[1, 2]",
            '"u1::s1"',
            '{"id": 42}',
            '{"id": ["u1::s1"]}',
            '{"id": "u1::s1"',
        ],
    )
    def test_malformed_payloads(self, raw):
        with pytest.raises(MalformedMessageError) as exc_info:
            codec.parse(raw)
        assert exc_info.value.reason == FailureReason.MALFORMED_MESSAGE
        assert "Invalid message format" in str(exc_info.value)

    def test_non_text_input_is_malformed(self):
        with pytest.raises(MalformedMessageError):
            codec.parse({"id": "u1::s1"})

    def test_malformed_keeps_cause(self):
        with pytest.raises(MalformedMessageError) as exc_info:
            codec.parse("not json")
        assert exc_info.value.cause is not None
        assert exc_info.value.__cause__ is exc_info.value.cause


class TestValidate:
    """Test identifier checks and splitting."""

    def test_valid_identifier(self):
        ids = codec.validate(WishlistMessage(id="a::b"))
        assert ids == MessageIdentifiers(user_id="a", stock_id="b", wishlist_id="a::b")

    def test_decode_round_trip_identity(self):
        ids = codec.decode('{"id": "user-42::stock-7"}')
        assert ids.user_id == "user-42"
        assert ids.stock_id == "stock-7"
        assert ids.wishlist_id == "user-42::stock-7"

    def test_split_on_first_separator_only(self):
        ids = codec.validate(WishlistMessage(id="u::s::x"))
        assert ids.user_id == "u"
        assert ids.stock_id == "s::x"
        assert ids.wishlist_id == "u::s::x"

    def test_halves_are_not_trimmed(self):
        ids = codec.validate(WishlistMessage(id=" u1 :: s1 "))
        assert ids.user_id == " u1 "
        assert ids.stock_id == " s1 "
        assert ids.user_id + "::" + ids.stock_id == ids.wishlist_id

    def test_none_message(self):
        with pytest.raises(InvalidIdentifierError, match="Message is null"):
            codec.validate(None)

    @pytest.mark.parametrize("wishlist_id", [None, "", "   "])
    def test_missing_or_blank_id(self, wishlist_id):
        with pytest.raises(InvalidIdentifierError, match="null or empty"):
            codec.validate(WishlistMessage(id=wishlist_id))

    def test_missing_separator(self):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            codec.validate(WishlistMessage(id="u1s1"))
        assert "Expected format: 'userId::stockId'" in str(exc_info.value)
        assert exc_info.value.reason == FailureReason.INVALID_IDENTIFIER

    def test_single_colon_is_not_a_separator(self):
        with pytest.raises(InvalidIdentifierError):
            codec.validate(WishlistMessage(id="u1:s1"))

    @pytest.mark.parametrize("wishlist_id", ["::s1", "  ::s1"])
    def test_empty_user_half(self, wishlist_id):
        with pytest.raises(InvalidIdentifierError, match="User ID is null or empty"):
            codec.validate(WishlistMessage(id=wishlist_id))

    @pytest.mark.parametrize("wishlist_id", ["u1::", "u1::   ", "::"])
    def test_empty_stock_half(self, wishlist_id):
        # "::" fails on the user half first
        expected = "User ID" if wishlist_id == "::" else "Stock ID"
        with pytest.raises(InvalidIdentifierError, match=expected):
            codec.validate(WishlistMessage(id=wishlist_id))


class TestEncode:
    def test_encode_produces_wire_format(self):
        raw = codec.encode(WishlistMessage(id="u1::s1"))
        assert codec.parse(raw).id == "u1::s1"
