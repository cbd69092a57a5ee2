"""
ダッシュボード集計モジュール
今月と先月の集計結果を比較して前月比を計算する
"""
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from .reports import ReportResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GrowthResult:
    """
    前月比の計算結果

    比較元がない（None/0）場合は defined=False で value を持たない。
    """
    defined: bool
    value: Optional[float] = None

    @classmethod
    def undefined(cls) -> 'GrowthResult':
        return cls(defined=False)

    def to_dict(self):
        """辞書形式に変換"""
        if not self.defined:
            return {'defined': False}
        return {'defined': True, 'value': self.value}


def calculate_growth(current: Optional[float], previous: Optional[float]) -> GrowthResult:
    """
    前月比（%）を計算

    Args:
        current: 今期の値
        previous: 前期の値（None または 0 の場合は計算しない）

    Returns:
        GrowthResult: ((current - previous) / previous) * 100
    """
    if previous is None or current is None or previous == 0:
        return GrowthResult.undefined()

    value = (current - previous) / previous * 100
    # NaN / 無限大は表示しない
    if not math.isfinite(value):
        return GrowthResult.undefined()
    return GrowthResult(defined=True, value=value)


@dataclass
class RecentActivity:
    """最近のアクティビティ"""
    id: str
    type: str
    title: str
    description: str
    date: str
    amount: Optional[float] = None

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'description': self.description,
            'amount': self.amount,
            'date': self.date
        }


@dataclass
class DashboardSummaryResult:
    """ダッシュボード表示用の集計結果"""
    total_revenue: float = 0.0
    total_expenses: float = 0.0
    net_profit: float = 0.0
    total_customers: int = 0
    total_orders: int = 0
    total_invoices: int = 0
    growth: Dict[str, GrowthResult] = field(default_factory=dict)
    recent_activity: List[RecentActivity] = field(default_factory=list)

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'total_revenue': self.total_revenue,
            'total_expenses': self.total_expenses,
            'net_profit': self.net_profit,
            'total_customers': self.total_customers,
            'total_orders': self.total_orders,
            'total_invoices': self.total_invoices,
            'growth': {k: v.to_dict() for k, v in self.growth.items()},
            'recent_activity': [a.to_dict() for a in self.recent_activity]
        }


class DashboardSummary:
    """
    ダッシュボード集計クラス

    使用例:
        summary = DashboardSummary(this_month_result, last_month_result)
        result = summary.calculate()
    """

    # 前月比を表示する指標（表示名: ReportResultの属性名）
    GROWTH_METRICS = {
        'revenue': 'total_revenue',
        'expenses': 'total_expenses',
        'customers': 'customer_count',
        'orders': 'order_count',
    }

    def __init__(
        self,
        current: ReportResult,
        previous: Optional[ReportResult] = None,
        recent_orders: Optional[List[dict]] = None
    ):
        """
        Args:
            current: 今月の集計結果
            previous: 先月の集計結果（取得できなかった場合はNone）
            recent_orders: 最近の注文（customer_name付き、新しい順）
        """
        self.current = current
        self.previous = previous
        self.recent_orders = recent_orders or []
        self.result = DashboardSummaryResult()

    def calculate(self) -> DashboardSummaryResult:
        """
        全ての集計を実行

        Returns:
            DashboardSummaryResult: 集計結果
        """
        self.result.total_revenue = self.current.total_revenue
        self.result.total_expenses = self.current.total_expenses
        self.result.net_profit = self.current.net_profit
        self.result.total_customers = self.current.customer_count
        self.result.total_orders = self.current.order_count
        self.result.total_invoices = self.current.invoice_count

        self._calculate_growth()
        self._build_recent_activity()
        return self.result

    def _calculate_growth(self) -> None:
        """前月比を計算"""
        for name, attr in self.GROWTH_METRICS.items():
            previous = getattr(self.previous, attr) if self.previous else None
            growth = calculate_growth(getattr(self.current, attr), previous)
            self.result.growth[name] = growth
            if growth.defined:
                logger.info(f"前月比 {name}: {growth.value:+.1f}%")
            else:
                logger.info(f"前月比 {name}: 比較データなし")

    def _build_recent_activity(self) -> None:
        """最近の注文からアクティビティを作成"""
        for order in self.recent_orders:
            order_id = str(order.get('id', ''))
            customer_name = order.get('customer_name') or 'Customer'
            self.result.recent_activity.append(RecentActivity(
                id=order_id,
                type='order',
                title=f"New order from {customer_name}",
                description=f"Order #{order_id[-8:]} - {order.get('status', '')}",
                amount=order.get('total_amount'),
                date=order.get('created_at', '')
            ))
