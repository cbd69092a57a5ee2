"""
データベースサービス

全ての読み書きを user_id（アカウント識別子）で絞り込む。
他アカウントの行は存在しない行と同じ扱いになる。
"""
import sqlite3
import uuid
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional
import logging

from ...database import get_connection, init_database, TABLE_DATE_COLUMNS
from ..aggregator.codes import generate_order_code, generate_invoice_number
from ..aggregator.period import DateRange, to_timestamp
from .invoices import resolve_payment_transaction, PAID_STATUS, DEFAULT_PAYMENT_CATEGORY

logger = logging.getLogger(__name__)


class DataStoreError(Exception):
    """データストア操作に失敗した場合の例外"""
    pass


class RecordNotFoundError(DataStoreError):
    """対象の行が存在しない（または他アカウントの行）場合の例外"""
    def __init__(self, table: str, record_id: str):
        self.table = table
        self.record_id = record_id
        super().__init__(f"{table} に ID {record_id} のデータが見つかりません")


class RecordInUseError(DataStoreError):
    """他のデータから参照されている行を削除しようとした場合の例外"""
    def __init__(self, table: str, record_id: str, referenced_by: str):
        self.table = table
        self.record_id = record_id
        self.referenced_by = referenced_by
        super().__init__(f"{table} の ID {record_id} は {referenced_by} から参照されているため削除できません")


@dataclass
class InvoiceSaveResult:
    """請求書保存の結果（支払い時は作成した入金取引も含む）"""
    invoice: dict
    transaction: Optional[dict] = None

    def to_dict(self):
        """辞書形式に変換"""
        return {'invoice': self.invoice, 'transaction': self.transaction}


@dataclass
class ReportData:
    """レポート用に取得した期間内データ"""
    customers: List[dict] = field(default_factory=list)
    orders: List[dict] = field(default_factory=list)
    invoices: List[dict] = field(default_factory=list)
    transactions: List[dict] = field(default_factory=list)

    def by_entity(self) -> Dict[str, List[dict]]:
        """エクスポート用（エンティティ名: レコード）"""
        return {
            'customers': self.customers,
            'orders': self.orders,
            'invoices': self.invoices,
            'transactions': self.transactions
        }


def utc_now() -> datetime:
    """現在時刻（UTC、タイムゾーン情報なし）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_timestamp(value) -> Optional[str]:
    """日時をUTCのISO文字列に揃える（範囲検索を文字列比較で行うため）"""
    ts = to_timestamp(value)
    return ts.isoformat() if ts is not None else None


class DatabaseService:
    """
    データベース操作サービス

    使用例:
        db = DatabaseService(db_path)
        customer = db.insert_row('customers', user_id, {'name': 'Ada', 'email': 'ada@example.com'})
        result = db.mark_invoice_paid(user_id, invoice_id)
    """

    # テーブルごとの書き込み可能カラム（id, user_id, created_at はサービス側で設定）
    WRITABLE_COLUMNS = {
        'customers': ['custom_customer_id', 'name', 'email', 'phone', 'address', 'company', 'notes'],
        'orders': ['custom_order_id', 'customer_id', 'total_amount', 'status', 'order_date', 'notes'],
        'invoices': ['order_id', 'invoice_number', 'amount', 'status', 'due_date'],
        'financial_transactions': ['type', 'amount', 'category', 'description', 'transaction_date'],
        'inventory': ['name', 'description', 'quantity', 'price'],
    }

    # 部分一致検索の対象カラム
    SEARCH_COLUMNS = {
        'customers': ['name', 'email', 'company'],
        'financial_transactions': ['description', 'category'],
        'inventory': ['name', 'description'],
        'invoices': ['invoice_number'],
    }

    # 削除前に参照の有無を確認するテーブル（テーブル名: [(参照元テーブル, 参照カラム)]）
    REFERENCED_BY = {
        'orders': [('invoices', 'order_id')],
    }

    # 範囲検索のためUTCに揃えて保存する日時カラム
    TIMESTAMP_COLUMNS = {'transaction_date'}

    def __init__(
        self,
        db_path: Optional[Path] = None,
        payment_category: str = DEFAULT_PAYMENT_CATEGORY
    ):
        """
        Args:
            db_path: データベースファイルパス
            payment_category: 請求書支払い時の取引カテゴリ
        """
        self.db_path = db_path
        self.payment_category = payment_category

    def init_schema(self) -> None:
        """テーブルを作成"""
        try:
            init_database(self.db_path)
        except sqlite3.Error as e:
            logger.error(f"データベース初期化エラー: {e}")
            raise DataStoreError(f"データベースの初期化に失敗しました: {e}") from e

    def _connect(self):
        return get_connection(self.db_path)

    # ========== 共通処理 ==========

    def _check_table(self, table: str) -> None:
        if table not in self.WRITABLE_COLUMNS:
            raise ValueError(f"無効なテーブル名: {table}")

    def _clean_values(self, table: str, values: dict) -> dict:
        """書き込み可能なカラムだけを取り出す"""
        cleaned = {k: v for k, v in values.items() if k in self.WRITABLE_COLUMNS[table]}
        for column in self.TIMESTAMP_COLUMNS & cleaned.keys():
            cleaned[column] = normalize_timestamp(cleaned[column])
        return cleaned

    @staticmethod
    def _rows_to_dicts(cursor) -> List[dict]:
        columns = [description[0] for description in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def _select_one(self, cursor, table: str, user_id: str, row_id: str) -> dict:
        cursor.execute(f'SELECT * FROM {table} WHERE id = ? AND user_id = ?', (row_id, user_id))
        rows = self._rows_to_dicts(cursor)
        if not rows:
            raise RecordNotFoundError(table, row_id)
        return rows[0]

    def _insert(self, cursor, table: str, user_id: str, values: dict, now: Optional[datetime] = None) -> str:
        row = self._clean_values(table, values)
        row['id'] = str(uuid.uuid4())
        row['user_id'] = user_id
        row['created_at'] = (now or utc_now()).isoformat()

        columns = ', '.join(row.keys())
        placeholders = ', '.join('?' for _ in row)
        cursor.execute(
            f'INSERT INTO {table} ({columns}) VALUES ({placeholders})',
            list(row.values())
        )
        return row['id']

    def _update(self, cursor, table: str, user_id: str, row_id: str, values: dict) -> None:
        row = self._clean_values(table, values)
        if not row:
            return
        assignments = ', '.join(f'{column} = ?' for column in row)
        cursor.execute(
            f'UPDATE {table} SET {assignments} WHERE id = ? AND user_id = ?',
            list(row.values()) + [row_id, user_id]
        )

    def _run(self, action: str, func, immediate: bool = False):
        """
        接続を開いて処理を実行し、コミットする

        sqlite3のエラーはロールバックしてDataStoreErrorに変換する。
        immediate=True の場合は最初の読み込み前に書き込みロックを取得する。
        読み込みからコミットまでの間、他の接続は書き込めない。
        """
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            logger.error(f"データベース接続エラー: {e}")
            raise DataStoreError(f"データベースに接続できません: {e}") from e

        try:
            if immediate:
                conn.execute('BEGIN IMMEDIATE')
            result = func(conn.cursor())
            conn.commit()
            return result
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"{action}エラー: {e}")
            raise DataStoreError(f"{action}に失敗しました: {e}") from e
        finally:
            conn.close()

    # ========== 汎用CRUD ==========

    def fetch_rows(
        self,
        table: str,
        user_id: str,
        period: Optional[DateRange] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[dict]:
        """
        アカウントの行を作成日の新しい順に取得

        Args:
            table: テーブル名
            user_id: アカウント識別子
            period: 日付範囲（テーブルごとの日付カラムで絞り込み）
            search: 部分一致検索語
            limit: 最大件数
        """
        self._check_table(table)

        def _fetch(cursor):
            query = f'SELECT * FROM {table} WHERE user_id = ?'
            params = [user_id]

            if period is not None:
                date_column = TABLE_DATE_COLUMNS[table]
                query += f' AND {date_column} >= ? AND {date_column} <= ?'
                params += [period.start.isoformat(), period.end.isoformat()]

            if search and table in self.SEARCH_COLUMNS:
                conditions = ' OR '.join(f'{col} LIKE ?' for col in self.SEARCH_COLUMNS[table])
                query += f' AND ({conditions})'
                params += [f'%{search}%'] * len(self.SEARCH_COLUMNS[table])

            query += ' ORDER BY created_at DESC'
            if limit:
                query += ' LIMIT ?'
                params.append(limit)

            cursor.execute(query, params)
            return self._rows_to_dicts(cursor)

        return self._run(f"{table}取得", _fetch)

    def get_row(self, table: str, user_id: str, row_id: str) -> dict:
        """1行取得"""
        self._check_table(table)
        return self._run(f"{table}取得", lambda cursor: self._select_one(cursor, table, user_id, row_id))

    def insert_row(self, table: str, user_id: str, values: dict) -> dict:
        """行を追加して追加後の行を返す"""
        self._check_table(table)

        def _create(cursor):
            row_id = self._insert(cursor, table, user_id, values)
            return self._select_one(cursor, table, user_id, row_id)

        row = self._run(f"{table}登録", _create)
        logger.info(f"{table} 登録: {row['id']}")
        return row

    def update_row(self, table: str, user_id: str, row_id: str, values: dict) -> dict:
        """行を更新して更新後の行を返す"""
        self._check_table(table)

        def _modify(cursor):
            self._select_one(cursor, table, user_id, row_id)
            self._update(cursor, table, user_id, row_id, values)
            return self._select_one(cursor, table, user_id, row_id)

        row = self._run(f"{table}更新", _modify)
        logger.info(f"{table} 更新: {row_id}")
        return row

    def delete_row(self, table: str, user_id: str, row_id: str) -> None:
        """行を削除"""
        self._check_table(table)

        def _remove(cursor):
            for ref_table, ref_column in self.REFERENCED_BY.get(table, []):
                cursor.execute(
                    f'SELECT COUNT(*) FROM {ref_table} WHERE {ref_column} = ? AND user_id = ?',
                    (row_id, user_id)
                )
                if cursor.fetchone()[0]:
                    raise RecordInUseError(table, row_id, ref_table)
            cursor.execute(f'DELETE FROM {table} WHERE id = ? AND user_id = ?', (row_id, user_id))
            if cursor.rowcount == 0:
                raise RecordNotFoundError(table, row_id)

        self._run(f"{table}削除", _remove, immediate=True)
        logger.info(f"{table} 削除: {row_id}")

    # ========== 注文 ==========

    def _attach_items(self, cursor, user_id: str, orders: List[dict]) -> List[dict]:
        """注文に明細（items）を付ける"""
        if not orders:
            return orders

        cursor.execute('''
            SELECT oi.order_id, oi.id, oi.item_name, oi.quantity, oi.unit_price, oi.total_price
            FROM order_items oi
            JOIN orders o ON o.id = oi.order_id
            WHERE o.user_id = ?
            ORDER BY oi.created_at, oi.rowid
        ''', (user_id,))

        items_by_order = defaultdict(list)
        for row in self._rows_to_dicts(cursor):
            items_by_order[row.pop('order_id')].append(row)

        for order in orders:
            order['items'] = items_by_order.get(order['id'], [])
        return orders

    def _insert_items(self, cursor, order_id: str, items: List[dict]) -> float:
        """明細を登録して合計金額を返す"""
        total = 0.0
        now = utc_now().isoformat()
        for item in items:
            quantity = item.get('quantity', 0)
            unit_price = item.get('unit_price', 0)
            total_price = quantity * unit_price
            cursor.execute('''
                INSERT INTO order_items (id, order_id, item_name, quantity, unit_price, total_price, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            ''', (str(uuid.uuid4()), order_id, item['item_name'], quantity, unit_price, total_price, now))
            total += total_price
        return total

    def fetch_orders(
        self,
        user_id: str,
        period: Optional[DateRange] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        with_items: bool = False
    ) -> List[dict]:
        """
        注文を顧客名付きで取得

        Args:
            user_id: アカウント識別子
            period: 作成日の範囲
            search: 注文コード・顧客名の部分一致
            limit: 最大件数
            with_items: 明細を付けるか
        """
        def _fetch(cursor):
            query = '''
                SELECT o.*, c.name AS customer_name, c.custom_customer_id AS customer_custom_id
                FROM orders o
                LEFT JOIN customers c ON c.id = o.customer_id AND c.user_id = o.user_id
                WHERE o.user_id = ?
            '''
            params = [user_id]

            if period is not None:
                query += ' AND o.created_at >= ? AND o.created_at <= ?'
                params += [period.start.isoformat(), period.end.isoformat()]

            if search:
                query += ' AND (o.custom_order_id LIKE ? OR c.name LIKE ?)'
                params += [f'%{search}%', f'%{search}%']

            query += ' ORDER BY o.created_at DESC'
            if limit:
                query += ' LIMIT ?'
                params.append(limit)

            cursor.execute(query, params)
            orders = self._rows_to_dicts(cursor)
            if with_items:
                self._attach_items(cursor, user_id, orders)
            return orders

        return self._run("注文取得", _fetch)

    def get_order(self, user_id: str, order_id: str) -> dict:
        """注文を明細付きで1件取得"""
        def _fetch(cursor):
            order = self._select_one(cursor, 'orders', user_id, order_id)
            return self._attach_items(cursor, user_id, [order])[0]

        return self._run("注文取得", _fetch)

    def create_order(
        self,
        user_id: str,
        values: dict,
        items: Optional[List[dict]] = None,
        now: Optional[datetime] = None
    ) -> dict:
        """
        注文を登録（注文コードを自動生成）

        total_amount が未指定の場合は明細の 数量×単価 の合計を使う。
        """
        now = now or datetime.now()
        values = dict(values)
        if values.get('total_amount') is None:
            values.pop('total_amount', None)
        values.setdefault('status', 'pending')
        values.setdefault('order_date', now.strftime('%Y-%m-%d'))
        if not values.get('custom_order_id'):
            values['custom_order_id'] = generate_order_code(now)

        def _create(cursor):
            order_id = self._insert(cursor, 'orders', user_id, values)
            if items:
                total = self._insert_items(cursor, order_id, items)
                if values.get('total_amount') is None:
                    self._update(cursor, 'orders', user_id, order_id, {'total_amount': total})
            order = self._select_one(cursor, 'orders', user_id, order_id)
            return self._attach_items(cursor, user_id, [order])[0]

        order = self._run("注文登録", _create)
        logger.info(f"注文登録: {order['custom_order_id']} ({order['id']})")
        return order

    def update_order(
        self,
        user_id: str,
        order_id: str,
        values: dict,
        items: Optional[List[dict]] = None
    ) -> dict:
        """注文を更新（items を指定した場合は明細を置き換える）"""
        def _modify(cursor):
            self._select_one(cursor, 'orders', user_id, order_id)
            changes = dict(values)
            if items is not None:
                cursor.execute('DELETE FROM order_items WHERE order_id = ?', (order_id,))
                total = self._insert_items(cursor, order_id, items)
                if changes.get('total_amount') is None:
                    changes['total_amount'] = total
            self._update(cursor, 'orders', user_id, order_id, changes)
            order = self._select_one(cursor, 'orders', user_id, order_id)
            return self._attach_items(cursor, user_id, [order])[0]

        order = self._run("注文更新", _modify)
        logger.info(f"注文更新: {order_id}")
        return order

    # ========== 請求書 ==========

    def save_invoice(
        self,
        user_id: str,
        values: dict,
        invoice_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> InvoiceSaveResult:
        """
        請求書を登録・更新

        ステータスが paid に変わった場合は入金取引（Invoice Payment）を同じトランザクションで作成する。
        どちらかの書き込みに失敗した場合は両方ともロールバックされる。
        変更前ステータスの読み込みから書き込みロックを保持するため、同じ請求書への同時支払いでも取引は1件になる。

        Args:
            user_id: アカウント識別子
            values: 請求書の値
            invoice_id: 更新対象のID（新規作成時はNone）
            now: 入金取引の日時（省略時は現在時刻）

        Returns:
            InvoiceSaveResult: 保存後の請求書と作成した取引
        """
        now = now or utc_now()
        values = dict(values)

        def _save(cursor):
            if invoice_id:
                previous = self._select_one(cursor, 'invoices', user_id, invoice_id)
                previous_status = previous['status']
                self._update(cursor, 'invoices', user_id, invoice_id, values)
                saved_id = invoice_id
            else:
                previous_status = None
                if not values.get('invoice_number'):
                    values['invoice_number'] = generate_invoice_number()
                values.setdefault('status', 'draft')
                saved_id = self._insert(cursor, 'invoices', user_id, values)

            invoice = self._select_one(cursor, 'invoices', user_id, saved_id)

            transaction = None
            payment = resolve_payment_transaction(invoice, previous_status, now, self.payment_category)
            if payment:
                tx_id = self._insert(cursor, 'financial_transactions', user_id, payment, now=now)
                transaction = self._select_one(cursor, 'financial_transactions', user_id, tx_id)

            return InvoiceSaveResult(invoice=invoice, transaction=transaction)

        result = self._run("請求書保存", _save, immediate=True)
        logger.info(f"請求書保存: {result.invoice['invoice_number']} ({result.invoice['status']})")
        if result.transaction:
            logger.info(f"入金取引を作成: {result.transaction['amount']:,.2f} ({result.transaction['id']})")
        return result

    def mark_invoice_paid(self, user_id: str, invoice_id: str, now: Optional[datetime] = None) -> InvoiceSaveResult:
        """請求書を支払い済みにする（既に paid の場合は取引を作成しない）"""
        return self.save_invoice(user_id, {'status': PAID_STATUS}, invoice_id=invoice_id, now=now)

    # ========== レポート ==========

    def fetch_report_data(self, user_id: str, period: DateRange, max_workers: int = 4) -> ReportData:
        """
        期間内の顧客・注文・請求書・入出金を並列に取得

        全ての取得が終わってから結果を返す。どれかが失敗した場合はその例外を送出する。
        """
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            customers = executor.submit(self.fetch_rows, 'customers', user_id, period)
            orders = executor.submit(self.fetch_orders, user_id, period, None, None, True)
            invoices = executor.submit(self.fetch_rows, 'invoices', user_id, period)
            transactions = executor.submit(self.fetch_rows, 'financial_transactions', user_id, period)

            data = ReportData(
                customers=customers.result(),
                orders=orders.result(),
                invoices=invoices.result(),
                transactions=transactions.result()
            )

        logger.info(
            f"レポートデータ取得: 顧客{len(data.customers)}件, 注文{len(data.orders)}件, "
            f"請求書{len(data.invoices)}件, 入出金{len(data.transactions)}件"
        )
        return data

    def get_database_status(self, user_id: str) -> dict:
        """
        アカウントのテーブル別件数を取得

        Returns:
            dict: {テーブル名: 件数}
        """
        def _count(cursor):
            stats = {}
            for table in self.WRITABLE_COLUMNS:
                cursor.execute(f'SELECT COUNT(*) FROM {table} WHERE user_id = ?', (user_id,))
                stats[table] = cursor.fetchone()[0]
            return stats

        return self._run("データベース状態取得", _count)
