"""
在庫の表示用処理
"""
from typing import List

LOW_STOCK_THRESHOLD = 5


def annotate_low_stock(items: List[dict], threshold: int = LOW_STOCK_THRESHOLD) -> List[dict]:
    """
    在庫に low_stock（数量が閾値以下）を付ける

    low_stock は保存せず、読み出し時に毎回計算する。
    """
    return [dict(item, low_stock=(item.get('quantity') or 0) <= threshold) for item in items]
