"""
注文コード・請求書番号の生成

現在時刻と乱数から作るだけで、重複チェックは行わない。
請求書番号はDB側でアカウント単位のUNIQUE制約がある。
"""
import random
from datetime import datetime
from typing import Optional

# 曜日略称（ロケールに依存しないよう固定）
WEEKDAY_ABBREVIATIONS = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']

SUFFIX_MIN = 100
SUFFIX_MAX = 999


def _random_suffix(rng: Optional[random.Random] = None) -> int:
    """3桁の乱数（100〜999）"""
    return (rng or random).randint(SUFFIX_MIN, SUFFIX_MAX)


def generate_order_code(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    """
    注文コードを生成

    形式: 日(2桁)_時分(HHMM)_曜日_乱数3桁  例: 05_1430_Mon_123

    Args:
        now: 基準日時（省略時は現在時刻）
        rng: 乱数生成器（テスト用）

    Returns:
        str: 注文コード
    """
    now = now or datetime.now()
    parts = [
        f"{now.day:02d}",
        now.strftime('%H%M'),
        WEEKDAY_ABBREVIATIONS[now.weekday()],
        str(_random_suffix(rng)),
    ]
    return '_'.join(parts)


def generate_invoice_number(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    """
    請求書番号を生成

    形式: INV-YYYYMMDD-HHMMSS-乱数3桁

    Args:
        now: 基準日時（省略時は現在時刻）
        rng: 乱数生成器（テスト用）

    Returns:
        str: 請求書番号
    """
    now = now or datetime.now()
    return f"INV-{now.strftime('%Y%m%d')}-{now.strftime('%H%M%S')}-{_random_suffix(rng)}"
