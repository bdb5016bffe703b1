"""Tests for boundary request validation."""

import pytest

from campus_feed.errors import RequestRejected
from campus_feed.models import ContentType
from campus_feed.validation import parse_feed_request, validate_interest, validate_registration


class TestParseFeedRequest:
    def test_defaults(self):
        request = parse_feed_request({})
        assert (request.page, request.limit, request.type, request.user_id) == (1, 20, None, None)

    def test_parses_strings(self):
        request = parse_feed_request({"page": "3", "limit": "10", "type": "activity", "userId": "7"})
        assert request.page == 3
        assert request.limit == 10
        assert request.type == ContentType.ACTIVITY
        assert request.user_id == 7

    @pytest.mark.parametrize("params", [
        {"page": "0"},
        {"page": "-1"},
        {"limit": "abc"},
        {"limit": 0},
        {"type": "podcast"},
        {"userId": "ana"},
        {"page": str(10 ** 19)},
        {"limit": str(2 ** 63)},
        {"page": str(2 ** 62), "limit": "20"},
        {"userId": str(-(10 ** 20))},
        {"limit": 1.5},
        {"limit": "1.5"},
        {"page": float("inf")},
    ])
    def test_rejects_invalid(self, params):
        with pytest.raises(RequestRejected) as exc_info:
            parse_feed_request(params)
        assert exc_info.value.status_code == 400

    def test_largest_offset_is_accepted(self):
        request = parse_feed_request({"page": str(2 ** 62), "limit": "1"})
        assert request.page == 2 ** 62

    def test_integral_float_is_accepted(self):
        assert parse_feed_request({"limit": 5.0}).limit == 5

    def test_blank_values_use_defaults(self):
        request = parse_feed_request({"page": "", "type": "", "userId": ""})
        assert request.page == 1
        assert request.type is None
        assert request.user_id is None


class TestValidateRegistration:
    def test_valid(self):
        assert validate_registration("1", 2) == (1, 2)

    @pytest.mark.parametrize("user_id,event_id", [(None, 1), (1, None), ("", 1), (1, "  ")])
    def test_missing(self, user_id, event_id):
        with pytest.raises(RequestRejected):
            validate_registration(user_id, event_id)

    @pytest.mark.parametrize("event_id", [3.7, "3.7", 2 ** 63, float("nan")])
    def test_rejects_non_integral_or_oversized_ids(self, event_id):
        with pytest.raises(RequestRejected) as exc_info:
            validate_registration(1, event_id)
        assert exc_info.value.status_code == 400


class TestValidateInterest:
    def test_trims_tag(self):
        assert validate_interest(1, "  Jazz ") == (1, "Jazz")

    def test_rejects_long_tag(self):
        with pytest.raises(RequestRejected):
            validate_interest(1, "a" * 31)

    def test_rejects_missing_tag(self):
        with pytest.raises(RequestRejected):
            validate_interest(1, "   ")

    def test_rejects_non_string_tag(self):
        with pytest.raises(RequestRejected):
            validate_interest(1, 42)
