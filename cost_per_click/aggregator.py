"""リファラドメインの集計モジュール.

www.smith.com と smith.com を同じドメインとして扱うため、
ドメイン名の末尾 2 ラベル（第 2 レベルドメイン）単位でリクエスト数を数える。
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence

from cost_per_click.errors import ConsistencyError, MalformedDomainError
from cost_per_click.models import DomainCount

logger = logging.getLogger(__name__)


def second_level_domain(domain: str) -> str:
    """ドメイン名から第 2 レベルドメインを取り出す.

    Args:
        domain: リファラドメイン (例: "www.example.com")

    Returns:
        末尾 2 ラベルを "." で連結した文字列 (例: "example.com")

    Raises:
        MalformedDomainError: ラベルが 2 つ未満、または末尾 2 ラベルに空がある場合
    """
    labels = domain.split(".")
    if len(labels) < 2 or not labels[-2] or not labels[-1]:
        raise MalformedDomainError(f"malformed referrer domain: {domain!r}")
    return f"{labels[-2]}.{labels[-1]}"


def count_by_domain(domains: Sequence[str]) -> DomainCount:
    """第 2 レベルドメインごとのリクエスト数を数える.

    集計後に件数の整合性を確認する。
    """
    counts: DomainCount = dict(Counter(second_level_domain(d) for d in domains))
    check_consistency(counts, len(domains))
    logger.info("ドメイン数: %d (リクエスト %d 件)", len(counts), len(domains))
    return counts


def check_consistency(counts: DomainCount, total: int) -> None:
    """集計結果の合計が入力件数と一致することを確認する."""
    counted = sum(counts.values())
    if counted != total:
        raise ConsistencyError(
            f"集計されなかったリクエストがあります ({counted}/{total} 件)。"
            "Elasticsearch への保存は行いません。"
        )
