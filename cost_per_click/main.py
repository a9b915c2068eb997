"""スポンサードリンク料金計算 — メインエントリーポイント.

処理フロー:
  1. Elasticsearch に接続
  2. logstash インデックスからアクセスログのリファラドメインを取得
  3. 第 2 レベルドメイン単位でリクエスト数を集計
  4. クリック単価ファイルを読み込み、ドメインごとの料金を計算
  5. sponsored_link インデックスを作り直して結果を保存
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from collections.abc import Sequence
from datetime import datetime

from cost_per_click.aggregator import count_by_domain
from cost_per_click.config import COST_PER_CLICK_PATH, ES_NODES, LOG_DIR
from cost_per_click.errors import CostPerClickError
from cost_per_click.pricing import compute_prices, load_price_table
from cost_per_click.store import connect

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """ロギングの初期設定."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / f"cost_per_click_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cost-per-click",
        description="Compute the price per domain from apache log generator.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.0.1")
    parser.add_argument(
        "--es_nodes",
        default=ES_NODES,
        help='Elasticsearch nodes to connect to. Expected format is: '
        '"<es_node1>:<es_port1>[,<es_node2>:<es_port2>...]" (env: CC_ES_NODES)',
    )
    parser.add_argument(
        "-c", "--config",
        default=COST_PER_CLICK_PATH,
        help="Path to the cost_per_click.yml file used to compute global "
        "sponsored link cost. (env: CC_CONFIG)",
    )
    return parser


def run(es_nodes: str, config_path: str) -> None:
    """メイン処理. 失敗時は CostPerClickError を送出する."""
    logger.info("=== スポンサードリンク料金計算 開始 ===")
    start_time = time.time()

    # 1. 接続
    logger.info("Elasticsearch に接続: %s", es_nodes)
    with connect(es_nodes) as store:

        # 2. ログ取得
        records = store.get_referrer_domains()
        logger.info("取得したログ: %d 件", len(records))

        # 3. ドメイン単位で集計（件数が合わなければここで中断し、保存しない）
        counts = count_by_domain([r.referrer_domain for r in records])

        # 4. 料金計算
        logger.info("クリック単価ファイル: %s", config_path)
        price_table = load_price_table(config_path)
        prices = compute_prices(counts, price_table)
        logger.info("計算したスポンサードリンク料金: %d 件", len(prices))

        # 5. 保存
        store.save_sponsored_link_prices(prices)

    elapsed = time.time() - start_time
    logger.info("=== スポンサードリンク料金計算 完了 (%.1f 秒) ===", elapsed)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        run(args.es_nodes, args.config)
    except CostPerClickError as e:
        logger.error("FAILED: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
