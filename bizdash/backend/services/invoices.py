"""
請求書の支払い処理

請求書が「paid」に変わった時に作成する入金取引を決める
"""
from datetime import datetime
from typing import Optional

PAID_STATUS = 'paid'
DEFAULT_PAYMENT_CATEGORY = 'Invoice Payment'


def resolve_payment_transaction(
    invoice: dict,
    previous_status: Optional[str],
    now: datetime,
    category: str = DEFAULT_PAYMENT_CATEGORY
) -> Optional[dict]:
    """
    支払い済みになった請求書の入金取引を作成

    paid 以外から paid に変わった場合（新規作成時に paid の場合を含む）のみ作成する。
    paid → paid の更新では作成しない。

    Args:
        invoice: 更新後の請求書
        previous_status: 更新前のステータス（新規作成時はNone）
        now: 取引日時
        category: 取引カテゴリ

    Returns:
        dict: 作成する取引の値、不要な場合はNone
    """
    if invoice.get('status') != PAID_STATUS or previous_status == PAID_STATUS:
        return None

    return {
        'type': 'income',
        'amount': invoice['amount'],
        'category': category,
        'description': f"Invoice {invoice['invoice_number']} paid",
        'transaction_date': now.isoformat(),
    }
