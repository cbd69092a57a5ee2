"""
レポート集計モジュール
期間内の顧客・注文・請求書・入出金から KPI とグラフ用データを作成する
"""
import pandas as pd
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional
import logging

from .period import DateRange, to_timestamp

logger = logging.getLogger(__name__)


@dataclass
class MonthlyTotal:
    """月別の収入・支出"""
    month: str
    income: float = 0.0
    expense: float = 0.0

    def to_dict(self):
        """辞書形式に変換"""
        return {'month': self.month, 'income': self.income, 'expense': self.expense}


@dataclass
class ReportResult:
    """集計結果全体を格納するデータクラス"""
    period: Optional[DateRange] = None
    customer_count: int = 0
    order_count: int = 0
    invoice_count: int = 0
    total_revenue: float = 0.0
    total_expenses: float = 0.0
    net_profit: float = 0.0
    category_breakdown: Dict[str, float] = field(default_factory=dict)
    income_breakdown: Dict[str, float] = field(default_factory=dict)
    item_frequency: Dict[str, int] = field(default_factory=dict)
    order_status_counts: Dict[str, int] = field(default_factory=dict)
    monthly_totals: List[MonthlyTotal] = field(default_factory=list)

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'period': self.period.to_dict() if self.period else None,
            'customer_count': self.customer_count,
            'order_count': self.order_count,
            'invoice_count': self.invoice_count,
            'total_revenue': self.total_revenue,
            'total_expenses': self.total_expenses,
            'net_profit': self.net_profit,
            'category_breakdown': self.category_breakdown,
            'income_breakdown': self.income_breakdown,
            'item_frequency': self.item_frequency,
            'order_status_counts': self.order_status_counts,
            'monthly_totals': [m.to_dict() for m in self.monthly_totals]
        }


class ReportAggregator:
    """
    レポート集計クラス

    金額の妥当性チェックは行わない（負数・NaNもそのまま合計する）。

    使用例:
        period = DateRange.parse('2025-01-01', '2025-01-31')
        aggregator = ReportAggregator(transactions, orders, customers, invoices, period)
        result = aggregator.aggregate_all()
    """

    # 期間判定に使う日時カラム
    TRANSACTION_DATE_FIELD = 'transaction_date'
    CREATED_AT_FIELD = 'created_at'
    # カテゴリ未設定の取引の集計先
    UNCATEGORIZED = 'Uncategorized'

    def __init__(
        self,
        transactions: Iterable[dict],
        orders: Iterable[dict],
        customers: Iterable[dict],
        invoices: Iterable[dict],
        period: DateRange,
        progress_callback: Optional[Callable[[str, int], None]] = None
    ):
        """
        Args:
            transactions: 入出金レコード（type, amount, category, transaction_date）
            orders: 注文レコード（status, created_at, items）
            customers: 顧客レコード（created_at）
            invoices: 請求書レコード（created_at）
            period: 集計期間
            progress_callback: 進捗通知用コールバック (message, percentage)
        """
        self.transactions = list(transactions or [])
        self.orders = list(orders or [])
        self.customers = list(customers or [])
        self.invoices = list(invoices or [])
        self.period = period
        self.progress_callback = progress_callback

        # 期間内に絞り込んだデータ
        self.transactions_df: Optional[pd.DataFrame] = None
        self.orders_df: Optional[pd.DataFrame] = None
        self.customers_df: Optional[pd.DataFrame] = None
        self.invoices_df: Optional[pd.DataFrame] = None
        # 集計結果
        self.result = ReportResult(period=period)

    def _notify_progress(self, message: str, percentage: int):
        """進捗を通知"""
        logger.info(f"[{percentage}%] {message}")
        if self.progress_callback:
            self.progress_callback(message, percentage)

    def aggregate_all(self) -> ReportResult:
        """
        全ての集計を実行

        Returns:
            ReportResult: 集計結果
        """
        self._notify_progress("期間フィルタリングを開始", 0)

        # Step 1: 期間内のデータに絞り込み
        self._filter_data()
        self._notify_progress("期間フィルタリング完了", 20)

        # Step 2: 件数
        self._count_records()
        self._notify_progress("件数集計完了", 35)

        # Step 3: 収入・支出
        self._aggregate_totals()
        self._notify_progress("収支集計完了", 55)

        # Step 4: カテゴリ別
        self._aggregate_by_category()
        self._notify_progress("カテゴリ別集計完了", 70)

        # Step 5: 商品別・状態別
        self._aggregate_order_items()
        self._notify_progress("商品別集計完了", 85)

        # Step 6: 月別
        self._aggregate_by_month()
        self._notify_progress("集計完了", 100)
        return self.result

    def _filter_records(self, records: List[dict], date_field: str, name: str) -> pd.DataFrame:
        """
        レコードを期間内に絞り込み

        Args:
            records: 対象レコード
            date_field: 期間判定に使うカラム
            name: データ名（ログ用）

        Returns:
            pd.DataFrame: 期間内のレコード（_ts カラムに変換済み日時）
        """
        df = pd.DataFrame(records)
        if df.empty:
            return df

        if date_field not in df.columns:
            logger.warning(f"{name}に{date_field}カラムが存在しません。全件を期間外とします。")
            return df.iloc[0:0]

        in_period = df[date_field].map(self.period.contains).astype(bool)
        filtered = df[in_period].copy()
        filtered['_ts'] = [to_timestamp(v) for v in filtered[date_field]]

        logger.info(f"{name}: {len(filtered)}件（元データ: {len(df)}件）")
        return filtered

    def _filter_data(self) -> None:
        """全データを期間で絞り込み"""
        self.transactions_df = self._filter_records(
            self.transactions, self.TRANSACTION_DATE_FIELD, "入出金"
        )
        if not self.transactions_df.empty:
            self.transactions_df['amount'] = self.transactions_df['amount'].astype(float)
            if 'category' in self.transactions_df.columns:
                self.transactions_df['category'] = (
                    self.transactions_df['category'].fillna(self.UNCATEGORIZED).astype(str)
                )
            else:
                self.transactions_df['category'] = self.UNCATEGORIZED

        self.orders_df = self._filter_records(self.orders, self.CREATED_AT_FIELD, "注文")
        self.customers_df = self._filter_records(self.customers, self.CREATED_AT_FIELD, "顧客")
        self.invoices_df = self._filter_records(self.invoices, self.CREATED_AT_FIELD, "請求書")

    def _count_records(self) -> None:
        """期間内の件数を集計"""
        self.result.customer_count = len(self.customers_df)
        self.result.order_count = len(self.orders_df)
        self.result.invoice_count = len(self.invoices_df)

    def _transactions_of_type(self, tx_type: str) -> pd.DataFrame:
        """指定した種別（income/expense）の取引を抽出"""
        df = self.transactions_df
        if df.empty or 'type' not in df.columns:
            return df.iloc[0:0]
        return df[df['type'] == tx_type]

    def _aggregate_totals(self) -> None:
        """収入・支出・利益を計算"""
        income_df = self._transactions_of_type('income')
        expense_df = self._transactions_of_type('expense')

        self.result.total_revenue = _sum_amount(income_df)
        self.result.total_expenses = _sum_amount(expense_df)
        self.result.net_profit = self.result.total_revenue - self.result.total_expenses

        logger.info(f"収入合計: {self.result.total_revenue:,.2f}")
        logger.info(f"支出合計: {self.result.total_expenses:,.2f}")
        logger.info(f"利益: {self.result.net_profit:,.2f}")

    def _aggregate_by_category(self) -> None:
        """カテゴリ別の支出・収入を集計"""
        self.result.category_breakdown = _group_amount(self._transactions_of_type('expense'))
        self.result.income_breakdown = _group_amount(self._transactions_of_type('income'))
        logger.info(f"支出カテゴリ数: {len(self.result.category_breakdown)}")

    def _aggregate_order_items(self) -> None:
        """商品別の数量と注文状態別の件数を集計"""
        if self.orders_df.empty:
            return

        if 'status' in self.orders_df.columns:
            counts = self.orders_df['status'].value_counts(sort=False)
            self.result.order_status_counts = {
                str(status): int(count) for status, count in counts.items()
            }

        if 'items' not in self.orders_df.columns:
            logger.warning("注文に明細（items）がありません。商品別集計をスキップします。")
            return

        rows = []
        for items in self.orders_df['items']:
            if not isinstance(items, list):
                continue
            for item in items:
                name = item.get('item_name', item.get('name'))
                if name is None:
                    continue
                rows.append({'item_name': str(name), 'quantity': item.get('quantity', 0)})

        if not rows:
            return

        items_df = pd.DataFrame(rows)
        frequency = items_df.groupby('item_name', sort=False)['quantity'].sum()
        self.result.item_frequency = {
            name: _to_native(quantity) for name, quantity in frequency.items()
        }
        logger.info(f"商品別集計: {len(self.result.item_frequency)}商品")

    def _aggregate_by_month(self) -> None:
        """月別の収入・支出を集計（グラフ用）"""
        df = self.transactions_df
        if df.empty or 'type' not in df.columns:
            return

        df = df[df['type'].isin(['income', 'expense'])].copy()
        if df.empty:
            return

        df['_month'] = [ts.strftime('%Y-%m') for ts in df['_ts']]
        grouped = df.groupby(['_month', 'type'])['amount'].sum().unstack(fill_value=0.0)

        for month, row in grouped.sort_index().iterrows():
            self.result.monthly_totals.append(MonthlyTotal(
                month=month,
                income=float(row.get('income', 0.0)),
                expense=float(row.get('expense', 0.0))
            ))


def _sum_amount(df: pd.DataFrame) -> float:
    """金額を合計（NaNは除外せずそのまま伝播させる）"""
    if df.empty:
        return 0.0
    return float(df['amount'].sum(skipna=False))


def _group_amount(df: pd.DataFrame) -> Dict[str, float]:
    """カテゴリ別に金額を合計"""
    if df.empty:
        return {}
    grouped = df.groupby('category', sort=False)['amount'].agg(lambda s: s.sum(skipna=False))
    return {str(category): float(amount) for category, amount in grouped.items()}


def _to_native(value):
    """numpyのスカラーをPythonの数値に変換"""
    return value.item() if hasattr(value, 'item') else value
