"""
入力チェック

フォームから送られてきた値を書き込み前にチェックする
"""
from typing import Iterable, Optional
import logging

from ..aggregator.period import to_timestamp

logger = logging.getLogger(__name__)

ORDER_STATUSES = ('pending', 'confirmed', 'shipped', 'delivered', 'cancelled')
INVOICE_STATUSES = ('draft', 'sent', 'paid', 'overdue')
TRANSACTION_TYPES = ('income', 'expense')


class ValidationError(ValueError):
    """入力値が不正な場合の例外"""
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


def validate_required(data: dict, required: Iterable[str], name: str) -> None:
    """
    必須項目の存在チェック

    Args:
        data: 入力データ
        required: 必須項目リスト
        name: データ名（エラーメッセージ用）

    Raises:
        ValidationError: 必須項目が不足している場合
    """
    missing = [
        key for key in required
        if data.get(key) is None or (isinstance(data.get(key), str) and not data[key].strip())
    ]
    if missing:
        raise ValidationError(f"{name}に必須項目がありません: {missing}", field=missing[0])


def validate_choice(data: dict, key: str, choices: Iterable[str]) -> None:
    """選択肢の値チェック（未指定は許可）"""
    choices = tuple(choices)
    if key in data and data[key] not in choices:
        raise ValidationError(f"{key}の値が不正です: {data[key]!r}（{', '.join(choices)}）", field=key)


def validate_number(data: dict, key: str, minimum: Optional[float] = None, integer: bool = False) -> None:
    """
    数値チェック（未指定は許可）

    文字列で送られてきた数値は変換して data を書き換える。
    """
    if data.get(key) is None:
        return
    value = data[key]
    if isinstance(value, bool):
        raise ValidationError(f"{key}は数値で指定してください: {value!r}", field=key)
    try:
        number = int(value) if integer else float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key}は数値で指定してください: {value!r}", field=key)
    if integer and float(value) != number:
        raise ValidationError(f"{key}は整数で指定してください: {value!r}", field=key)
    if minimum is not None and number < minimum:
        raise ValidationError(f"{key}は{minimum}以上で指定してください: {value!r}", field=key)
    data[key] = number


def validate_date(data: dict, key: str) -> None:
    """日付チェック（未指定は許可）"""
    if data.get(key) is None:
        return
    if to_timestamp(data[key]) is None:
        raise ValidationError(f"{key}の日付を解釈できません: {data[key]!r}", field=key)


def validate_customer(data: dict, partial: bool = False) -> None:
    """顧客の入力チェック"""
    if not partial:
        validate_required(data, ['name', 'email'], '顧客')


def validate_order(data: dict, partial: bool = False) -> None:
    """注文の入力チェック"""
    if not partial:
        validate_required(data, ['customer_id'], '注文')
    validate_choice(data, 'status', ORDER_STATUSES)
    validate_number(data, 'total_amount')
    validate_date(data, 'order_date')
    for item in data.get('items') or []:
        validate_required(item, ['item_name'], '注文明細')
        validate_number(item, 'quantity', minimum=0, integer=True)
        validate_number(item, 'unit_price')


def validate_invoice(data: dict, partial: bool = False) -> None:
    """請求書の入力チェック"""
    if not partial:
        validate_required(data, ['order_id', 'amount', 'due_date'], '請求書')
    validate_choice(data, 'status', INVOICE_STATUSES)
    validate_number(data, 'amount')
    validate_date(data, 'due_date')


def validate_transaction(data: dict, partial: bool = False) -> None:
    """入出金の入力チェック"""
    if not partial:
        validate_required(data, ['type', 'amount', 'category', 'description'], '入出金')
    validate_choice(data, 'type', TRANSACTION_TYPES)
    validate_number(data, 'amount')
    validate_date(data, 'transaction_date')


def validate_inventory_item(data: dict, partial: bool = False) -> None:
    """在庫の入力チェック（数量は0以上の整数、価格は0以上）"""
    if not partial:
        validate_required(data, ['name'], '在庫')
    validate_number(data, 'quantity', minimum=0, integer=True)
    validate_number(data, 'price', minimum=0)
