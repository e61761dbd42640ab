"""
Unit tests for rating arithmetic and validation
"""
import pytest

from skillswap.exceptions import ValidationError
from skillswap.services.rating_aggregator import mean_rating, validate_rating


class TestMeanRating:
    """Test exact mean with half-up rounding to 2 places"""

    def test_simple_mean(self):
        assert mean_rating(9, 2) == 4.5

    def test_rounds_half_up(self):
        # 14 / 3 = 4.6666...
        assert mean_rating(14, 3) == 4.67
        # 4.125 must round up, not to even
        assert mean_rating(33, 8) == 4.13

    def test_repeating_decimal_rounds_down(self):
        # 13 / 3 = 4.3333...
        assert mean_rating(13, 3) == 4.33

    def test_no_reviews(self):
        assert mean_rating(0, 0) is None

    def test_bounds(self):
        assert mean_rating(5, 5) == 1.0
        assert mean_rating(25, 5) == 5.0


class TestValidateRating:
    """Test the 1..5 integer rule"""

    @pytest.mark.parametrize("rating", [1, 3, 5])
    def test_valid(self, rating):
        assert validate_rating(rating) == rating

    @pytest.mark.parametrize("rating", [0, 6, -1, 4.5, "5", None, True])
    def test_invalid(self, rating):
        with pytest.raises(ValidationError) as exc_info:
            validate_rating(rating)

        assert exc_info.value.field == "rating"
