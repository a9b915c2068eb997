"""Elasticsearch 操作モジュール.

アクセスログは logstash-* インデックスから読み出し、
計算結果は sponsored_link インデックスを作り直して書き込む。
クライアントは connect() で取得したハンドルを明示的に受け渡す。
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from elasticsearch import ApiError, Elasticsearch, TransportError
from elasticsearch.helpers import BulkIndexError, bulk

from cost_per_click.config import (
    LOGSTASH_INDEX_PATTERN,
    MAX_RESULT_WINDOW,
    SCROLL_KEEPALIVE,
    SPONSORED_LINK_INDEX,
)
from cost_per_click.errors import ConfigError, StoreError
from cost_per_click.models import LogRecord, SponsoredLinkPrice

logger = logging.getLogger(__name__)

_HOSTNAME_NODE = re.compile(
    r"(([a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9\-]*[a-zA-Z0-9])\.)*"
    r"([A-Za-z0-9]|[A-Za-z0-9][A-Za-z0-9\-]*[A-Za-z0-9]):[0-9]+"
)
_IPV4_NODE = re.compile(
    r"(([0-9]|[1-9][0-9]|1[0-9]{2}|2[0-4][0-9]|25[0-5])\.){3}"
    r"([0-9]|[1-9][0-9]|1[0-9]{2}|2[0-4][0-9]|25[0-5]):[0-9]+"
)
_LOGSTASH_INDEX = re.compile(LOGSTASH_INDEX_PATTERN)

_ES_ERRORS = (ApiError, TransportError)


def parse_es_nodes(es_nodes: str) -> list[str]:
    """接続先 ("host1:port1,host2:port2") を URL のリストに変換する.

    Raises:
        ConfigError: 形式が正しくない場合
    """
    if not es_nodes:
        raise ConfigError("Elasticsearch の接続先が指定されていません (--es_nodes)")

    urls = []
    for node in es_nodes.split(","):
        if not (_HOSTNAME_NODE.fullmatch(node) or _IPV4_NODE.fullmatch(node)):
            raise ConfigError(f"Elasticsearch の接続先の形式が正しくありません: {es_nodes!r}")
        urls.append(f"http://{node}")
    return urls


@contextmanager
def connect(es_nodes: str) -> Iterator[ElasticsearchStore]:
    """Elasticsearch に接続し、終了時にクライアントを閉じる."""
    urls = parse_es_nodes(es_nodes)
    try:
        client = Elasticsearch(hosts=urls)
    except (ValueError, *_ES_ERRORS) as e:
        raise StoreError(f"Elasticsearch クライアントを作成できません: {e}") from e

    try:
        yield ElasticsearchStore(client)
    finally:
        client.close()


class ElasticsearchStore:
    """ログの取得と計算結果の保存を行う."""

    def __init__(self, client: Elasticsearch):
        self.client = client
        # 取得処理全体を排他する（ドキュメント単位ではない）
        self._lock = threading.Lock()

    def get_referrer_domains(self) -> list[LogRecord]:
        """全 logstash インデックスからアクセスログを取得する.

        ヒット 0 件のページが返ったインデックスはそこで打ち切り、次へ進む。
        """
        records: list[LogRecord] = []

        with self._lock:
            for index in self._logstash_indices():
                total = self._count(index)
                fetched = self._fetch_index(index, total, records)
                logger.info("%s: %d/%d 件取得", index, fetched, total)

        return records

    def save_sponsored_link_prices(self, prices: list[SponsoredLinkPrice]) -> None:
        """計算結果で sponsored_link インデックスを置き換える.

        検証に失敗した場合は Elasticsearch に一切触れない。
        """
        for price in prices:
            price.validate()

        # 1 回分の結果だけを残すため、既存インデックスは削除する
        try:
            if self.client.indices.exists(index=SPONSORED_LINK_INDEX):
                resp = self.client.indices.delete(index=SPONSORED_LINK_INDEX)
                if not resp["acknowledged"]:
                    raise StoreError(f"インデックス {SPONSORED_LINK_INDEX} の削除が確認されませんでした")
                logger.info("既存インデックス %s を削除", SPONSORED_LINK_INDEX)
        except _ES_ERRORS as e:
            raise StoreError(f"インデックス {SPONSORED_LINK_INDEX} を削除できません: {e}") from e

        # 結果が 0 件でも空のインデックスは残す
        try:
            self.client.indices.create(index=SPONSORED_LINK_INDEX)
        except _ES_ERRORS as e:
            raise StoreError(f"インデックス {SPONSORED_LINK_INDEX} を作成できません: {e}") from e

        actions = [
            {"_index": SPONSORED_LINK_INDEX, "_source": p.to_document()}
            for p in prices
        ]
        try:
            indexed, _ = bulk(self.client, actions)
        except (BulkIndexError, *_ES_ERRORS) as e:
            raise StoreError(f"SponsoredLinkPrice を登録できません: {e}") from e

        try:
            self.client.indices.refresh(index=SPONSORED_LINK_INDEX)
            self.client.indices.flush(index=SPONSORED_LINK_INDEX)
        except _ES_ERRORS as e:
            raise StoreError(f"インデックス {SPONSORED_LINK_INDEX} をフラッシュできません: {e}") from e

        logger.info("%s に %d 件登録", SPONSORED_LINK_INDEX, indexed)

    def _logstash_indices(self) -> list[str]:
        try:
            names = self.client.indices.get_alias(index="*")
        except _ES_ERRORS as e:
            raise StoreError(f"インデックス一覧を取得できません: {e}") from e
        return sorted(name for name in names if _LOGSTASH_INDEX.search(name))

    def _count(self, index: str) -> int:
        try:
            return self.client.count(index=index)["count"]
        except _ES_ERRORS as e:
            raise StoreError(f"インデックス {index} の件数を取得できません: {e}") from e

    def _fetch_index(self, index: str, total: int, records: list[LogRecord]) -> int:
        """1 インデックス分を MAX_RESULT_WINDOW 件ずつ scroll で取得し records に追加する.

        Returns:
            取得件数
        """
        if total <= 0:
            return 0

        fetched = 0
        scroll_id = None
        try:
            resp = self.client.search(
                index=index,
                scroll=SCROLL_KEEPALIVE,
                size=min(MAX_RESULT_WINDOW, total),
                query={"match_all": {}},
                source_includes=["referrer_domain"],
            )
            while fetched < total:
                scroll_id = resp["_scroll_id"]
                hits = resp["hits"]["hits"]
                if not hits:
                    logger.warning("%s: ヒット 0 件のため打ち切り (%d/%d 件)", index, fetched, total)
                    break

                for hit in hits[: total - fetched]:
                    records.append(LogRecord.from_source(hit.get("_source") or {}))
                fetched += min(len(hits), total - fetched)

                if fetched < total:
                    resp = self.client.scroll(scroll_id=scroll_id, scroll=SCROLL_KEEPALIVE)
        except _ES_ERRORS as e:
            raise StoreError(f"インデックス {index} のログを取得できません: {e}") from e
        finally:
            if scroll_id:
                self._clear_scroll(scroll_id)

        return fetched

    def _clear_scroll(self, scroll_id: str) -> None:
        try:
            self.client.clear_scroll(scroll_id=scroll_id)
        except _ES_ERRORS as e:
            # scroll は keepalive 経過で自動的に破棄される
            logger.warning("scroll を解放できません: %s", e)
