"""クリック単価の読み込みと料金計算モジュール."""

from __future__ import annotations

import logging
from decimal import ROUND_CEILING, Decimal
from numbers import Real
from pathlib import Path

import yaml

from cost_per_click.config import DEFAULT_COST_PER_CLICK_PATH
from cost_per_click.errors import ConfigError
from cost_per_click.models import DomainCount, PriceTable, SponsoredLinkPrice

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def load_price_table(config_path: str | Path | None) -> PriceTable:
    """クリック単価ファイル (YAML) を読み込む.

    ファイルは「ドメイン名: 単価」のマッピング。

    Args:
        config_path: ファイルパス。空なら cost_per_click.yml

    Returns:
        {ドメイン名: 単価}

    Raises:
        ConfigError: ファイルが読めない、または内容が不正な場合
    """
    path = Path(config_path or DEFAULT_COST_PER_CLICK_PATH)

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"クリック単価ファイルを読み込めません: {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"クリック単価ファイルをデコードできません: {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"クリック単価ファイルはマッピングである必要があります: {path}")

    table: PriceTable = {}
    for domain, price in data.items():
        if not isinstance(domain, str) or not domain:
            raise ConfigError(f"ドメイン名が不正です: {domain!r}")
        # YAML の true/false は bool (int のサブクラス) になるので弾く
        if isinstance(price, bool) or not isinstance(price, Real):
            raise ConfigError(f"単価が数値ではありません: {domain}={price!r}")
        if price < 0:
            raise ConfigError(f"単価が負の値です: {domain}={price!r}")
        table[domain] = float(price)

    return table


def round_up_to_cent(count: int, price_per_click: float) -> float:
    """リクエスト数 × 単価をセント単位で切り上げる.

    float のまま 100 倍すると 7 × 0.01 が 0.08 になるため Decimal で計算する。
    """
    total = Decimal(count) * Decimal(repr(price_per_click))
    return float(total.quantize(_CENT, rounding=ROUND_CEILING))


def compute_prices(counts: DomainCount, price_table: PriceTable) -> list[SponsoredLinkPrice]:
    """単価が設定されているドメインの料金を計算する.

    単価ファイルに無いドメインはスキップする。
    """
    prices = [
        SponsoredLinkPrice(
            referrer_domain=domain,
            price=round_up_to_cent(count, price_table[domain]),
        )
        for domain, count in sorted(counts.items())
        if domain in price_table
    ]
    logger.info("料金計算: %d 件 (対象ドメイン %d 件)", len(prices), len(counts))
    return prices
