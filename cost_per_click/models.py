"""データモデル定義."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from cost_per_click.errors import MalformedDomainError, ValidationError

# 第 2 レベルドメイン -> リクエスト数
DomainCount = dict[str, int]

# ドメイン -> クリック単価
PriceTable = dict[str, float]


@dataclass(frozen=True)
class LogRecord:
    """Elasticsearch から取得したアクセスログ 1 件."""

    referrer_domain: str  # 例: www.example.com

    @classmethod
    def from_source(cls, source: dict) -> LogRecord:
        """検索ヒットの _source から生成する. referrer_domain が無ければ空文字."""
        domain = source.get("referrer_domain")
        if domain is None:
            return cls(referrer_domain="")
        if not isinstance(domain, str):
            raise MalformedDomainError(f"malformed referrer domain: {domain!r}")
        return cls(referrer_domain=domain)


@dataclass
class SponsoredLinkPrice:
    """Elasticsearch に書き込むドメイン別のスポンサードリンク料金."""

    referrer_domain: str  # 第 2 レベルドメイン (例: example.com)
    price: float  # セント単位に切り上げ済み

    def validate(self) -> None:
        if not self.referrer_domain:
            raise ValidationError(
                f"リファラドメインが空のため保存できません: {self!r}"
            )
        if self.price < 0:
            raise ValidationError(
                f"料金が負の値のため保存できません: {self!r}"
            )

    def to_document(self) -> dict:
        return asdict(self)
