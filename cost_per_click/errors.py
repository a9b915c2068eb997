"""例外定義.

どの例外もバッチ全体を中断させる。main で捕捉して FAILED を出力する。
"""

from __future__ import annotations


class CostPerClickError(Exception):
    """このバッチが送出する例外の基底クラス."""


class ConfigError(CostPerClickError):
    """接続先の指定やクリック単価ファイルが不正."""


class StoreError(CostPerClickError):
    """Elasticsearch への接続・検索・書き込みの失敗."""


class ConsistencyError(CostPerClickError):
    """集計件数と取得件数が一致しない."""


class ValidationError(CostPerClickError):
    """書き込み前のレコード検証に失敗."""


class MalformedDomainError(ValidationError):
    """リファラドメインが 2 ラベル未満."""
