"""
請求書作成フォーム用の注文検索

顧客名の部分一致で候補を出し、注文が1件に絞れたら自動選択する
"""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class CustomerSuggestion:
    """顧客候補"""
    name: str
    custom_customer_id: Optional[str] = None

    def to_dict(self):
        """辞書形式に変換"""
        return {'name': self.name, 'custom_customer_id': self.custom_customer_id}


@dataclass
class OrderLookupResult:
    """注文検索の結果"""
    suggestions: List[CustomerSuggestion] = field(default_factory=list)
    orders: List[dict] = field(default_factory=list)
    selected_order_id: Optional[str] = None
    amount: Optional[float] = None

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'suggestions': [s.to_dict() for s in self.suggestions],
            'orders': self.orders,
            'selected_order_id': self.selected_order_id,
            'amount': self.amount
        }


def suggest_customers(orders: List[dict], query: str) -> List[CustomerSuggestion]:
    """
    注文の顧客から名前に検索語を含むものを重複なしで返す

    Args:
        orders: 注文（customer_name, customer_custom_id付き）
        query: 検索語（空の場合は候補なし）
    """
    query = (query or '').strip().lower()
    if not query:
        return []

    suggestions = {}
    for order in orders:
        name = order.get('customer_name')
        if not name or query not in name.lower():
            continue
        custom_id = order.get('customer_custom_id')
        key = (name, custom_id or '')
        if key not in suggestions:
            suggestions[key] = CustomerSuggestion(name=name, custom_customer_id=custom_id)
    return list(suggestions.values())


def match_orders(
    orders: List[dict],
    query: str = '',
    customer: Optional[CustomerSuggestion] = None
) -> List[dict]:
    """
    検索条件に合う注文を返す

    顧客が選択されていれば名前とIDの完全一致、なければ名前の部分一致。
    検索語も顧客もない場合は全件。
    """
    if customer is not None:
        return [
            o for o in orders
            if o.get('customer_name') == customer.name
            and o.get('customer_custom_id') == customer.custom_customer_id
        ]

    query = (query or '').strip().lower()
    if not query:
        return list(orders)
    return [o for o in orders if query in (o.get('customer_name') or '').lower()]


def lookup_orders(
    orders: List[dict],
    query: str = '',
    customer: Optional[CustomerSuggestion] = None
) -> OrderLookupResult:
    """
    候補・一致注文・自動選択をまとめて返す

    一致する注文がちょうど1件の場合（検索語なしで注文が1件のみの場合を含む）、
    その注文IDと金額を選択状態にする。
    """
    result = OrderLookupResult(
        suggestions=suggest_customers(orders, query),
        orders=match_orders(orders, query, customer)
    )
    if len(result.orders) == 1:
        selected = result.orders[0]
        result.selected_order_id = selected.get('id')
        result.amount = selected.get('total_amount') or 0
    return result
