"""設定モジュール — 環境変数・定数定義."""

import os
from pathlib import Path

from dotenv import load_dotenv

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# --- Elasticsearch ---
# "<es_node1>:<es_port1>[,<es_node2>:<es_port2>...]"
ES_NODES: str = os.environ.get("CC_ES_NODES", "")

# ログの入っているインデックス（logstash-YYYY.MM.DD など）
LOGSTASH_INDEX_PATTERN = r"logstash-.*"

# 計算結果の書き込み先
SPONSORED_LINK_INDEX = "sponsored_link"

# 1 回の検索で取得する最大件数（index.max_result_window の既定値）
MAX_RESULT_WINDOW = 10000
SCROLL_KEEPALIVE = "1m"

# --- クリック単価 ---
DEFAULT_COST_PER_CLICK_PATH = "cost_per_click.yml"
COST_PER_CLICK_PATH: str = os.environ.get("CC_CONFIG", DEFAULT_COST_PER_CLICK_PATH)

# --- ログ ---
LOG_DIR = Path(os.environ.get("CC_LOG_DIR", _PROJECT_ROOT / "logs"))
