"""models モジュールのユニットテスト."""

import pytest

from cost_per_click.errors import MalformedDomainError, ValidationError
from cost_per_click.models import LogRecord, SponsoredLinkPrice


class TestSponsoredLinkPrice:
    """SponsoredLinkPrice のテスト."""

    def test_valid(self):
        SponsoredLinkPrice(referrer_domain="example.com", price=0.0).validate()

    def test_empty_domain(self):
        with pytest.raises(ValidationError, match="リファラドメインが空"):
            SponsoredLinkPrice(referrer_domain="", price=1.0).validate()

    def test_negative_price(self):
        with pytest.raises(ValidationError, match="負の値"):
            SponsoredLinkPrice(referrer_domain="example.com", price=-1.0).validate()

    def test_to_document(self):
        doc = SponsoredLinkPrice(referrer_domain="example.com", price=0.15).to_document()
        assert doc == {"referrer_domain": "example.com", "price": 0.15}


class TestLogRecord:
    """LogRecord のテスト."""

    def test_from_source(self):
        source = {"referrer_domain": "www.example.com", "verb": "GET"}
        assert LogRecord.from_source(source) == LogRecord("www.example.com")

    def test_from_source_missing_field(self):
        assert LogRecord.from_source({}).referrer_domain == ""

    def test_from_source_non_string(self):
        """文字列以外の referrer_domain は不正なドメインとして扱うこと."""
        with pytest.raises(MalformedDomainError, match="malformed referrer domain"):
            LogRecord.from_source({"referrer_domain": 12345})
