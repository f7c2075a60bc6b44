#!/usr/bin/env python3
"""Tests for chat number formatting."""

import pytest

from meme_sniper.utils.formatting import (
    calculate_team_allocation,
    format_large_number,
    format_number,
    format_percentage,
    format_price,
    format_short_address,
)


class TestFormatting:
    """Tests for the formatting helpers."""

    def test_format_large_number(self):
        """Test raw 18-decimal amounts."""
        assert format_large_number("1500000000000000000") == "1.5"
        assert format_large_number("1") == "0.000000000000000001"
        assert format_large_number("0") == "0"
        assert format_large_number("12345", decimals=2) == "123.45"
        with pytest.raises(ValueError):
            format_large_number("1e18")

    def test_format_number(self):
        """Test suffixes and decimal trimming."""
        assert format_number("999") == "999"
        assert format_number(1500) == "1.5K"
        assert format_number("2500000") == "2.5M"
        assert format_number("1000000000") == "1B"
        assert format_number("0.123") == "0.12"
        with pytest.raises(ValueError):
            format_number("lots")

    def test_price_and_percentage(self):
        """Test that non-numeric inputs pass through unchanged."""
        assert format_price("0.0049") == "0.00"
        assert format_price("N/A") == "N/A"
        assert format_percentage("12.345") == "12.3"

    def test_short_address(self):
        """Test address shortening."""
        assert format_short_address("0x" + "a" * 60 + "beef") == "0xaaaa...beef"
        assert format_short_address("0x1") == "0x1"

    def test_team_allocation(self):
        """Test the percentage of total supply."""
        assert calculate_team_allocation("1000", "25") == "2.50"
        with pytest.raises(ValueError, match="zero"):
            calculate_team_allocation("0", "1")
