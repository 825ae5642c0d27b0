"""
Unit tests for scraping utilities
"""

import pytest
from leadminer.scraping.utils import (
    is_valid_email, is_valid_phone, format_phone, parse_number, validate_url,
    normalize_company_name, is_valid_article_url, split_sentences, truncate_text
)


class TestTextCleaning:
    """Test text cleaning utilities"""

    def test_normalize_company_name(self):
        """Test company name normalization"""
        assert normalize_company_name("Acme Construction Corp") == "acme construction"
        assert normalize_company_name("Skyline Group LLC") == "skyline group"
        assert normalize_company_name("Acme Co.") == "acme"
        assert normalize_company_name(None) == ""

    def test_split_sentences(self):
        """Test sentence splitting"""
        assert split_sentences("One. Two! Three?") == ["One.", "Two!", "Three?"]
        assert split_sentences("") == []

    def test_truncate_text(self):
        """Test truncation keeps short text intact"""
        assert truncate_text("short", 10) == "short"
        truncated = truncate_text("word " * 50, 40)
        assert len(truncated) <= 43
        assert truncated.endswith("...")


class TestEmailValidation:
    """Test email validation utilities"""

    def test_is_valid_email(self):
        """Test email format validation"""
        assert is_valid_email("sarah.johnson@acme.com") is True
        assert is_valid_email("not an email") is False
        assert is_valid_email(None) is False


class TestPhoneUtilities:
    """Test phone validation and formatting"""

    def test_is_valid_phone(self):
        """Test North American phone validation"""
        assert is_valid_phone("(555) 123-4567") is True
        assert is_valid_phone("+1 555 123 4567") is True
        assert is_valid_phone("123-4567") is False
        assert is_valid_phone(None) is False

    def test_format_phone(self):
        """Test phone formatting"""
        assert format_phone("555.123.4567") == "(555) 123-4567"
        assert format_phone("+1 555 123 4567") == "(555) 123-4567"


class TestNumberParsing:
    """Test numeric token parsing"""

    def test_parse_number(self):
        """Test thousands separators and decimals"""
        assert parse_number("$1,250,000") == 1250000.0
        assert parse_number("about 3.5 million") == 3.5
        assert parse_number("none") is None
        assert parse_number("") is None


class TestURLValidation:
    """Test URL validation utilities"""

    def test_validate_url(self):
        """Test URL validation"""
        assert validate_url("https://example.com") is True
        assert validate_url("http://www.company.com/page") is True
        assert validate_url("not-a-url") is False
        assert validate_url("ftp://example.com/file") is False

    def test_is_valid_article_url(self):
        """Test article URL filter"""
        assert is_valid_article_url("https://example.com/news/2025/hotel-project") is True
        assert is_valid_article_url("https://example.com/tag/hotels") is False
        assert is_valid_article_url("https://example.com/search?q=hotel") is False
        assert is_valid_article_url("https://example.com/brochure.pdf") is False
        assert is_valid_article_url("https://a.b/x") is False
        assert is_valid_article_url("") is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
