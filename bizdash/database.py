"""
業務ダッシュボード - データベース管理

全テーブルに user_id（アカウント識別子）を持たせ、読み書きは必ずアカウント単位で行う
"""
import sqlite3
from pathlib import Path
import logging

logger = logging.getLogger(__name__)

# デフォルトのDBパス
DEFAULT_DB_PATH = Path(__file__).parent.parent / 'bizdash.db'

# 利用可能なテーブル（テーブル名: 日付範囲フィルタに使うカラム）
TABLE_DATE_COLUMNS = {
    'customers': 'created_at',
    'orders': 'created_at',
    'invoices': 'created_at',
    'financial_transactions': 'transaction_date',
    'inventory': 'created_at',
}


def get_connection(db_path=None):
    """データベース接続を取得"""
    if db_path is None:
        db_path = DEFAULT_DB_PATH

    conn = sqlite3.connect(
        str(db_path),
        timeout=30.0,
        check_same_thread=False
    )

    # WALモード有効化（並行アクセス対応）
    conn.execute('PRAGMA journal_mode=WAL')
    conn.execute('PRAGMA synchronous=NORMAL')
    conn.execute('PRAGMA foreign_keys = ON')  # 外部キー制約有効化

    return conn


def init_database(db_path=None):
    """データベースを初期化（全テーブル作成）"""
    conn = get_connection(db_path)
    cursor = conn.cursor()

    # 1. customers (顧客)
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS customers (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            custom_customer_id TEXT,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            phone TEXT,
            address TEXT,
            company TEXT,
            notes TEXT,
            created_at TEXT NOT NULL
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_customers_user ON customers(user_id, created_at)')

    # 2. orders (注文)
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS orders (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            custom_order_id TEXT,
            customer_id TEXT NOT NULL,
            total_amount REAL NOT NULL DEFAULT 0,
            status TEXT NOT NULL DEFAULT 'pending',
            order_date TEXT NOT NULL,
            notes TEXT,
            created_at TEXT NOT NULL
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_orders_user ON orders(user_id, created_at)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_orders_customer ON orders(customer_id)')

    # 3. order_items (注文明細)
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS order_items (
            id TEXT PRIMARY KEY,
            order_id TEXT NOT NULL,
            item_name TEXT NOT NULL,
            quantity INTEGER NOT NULL,
            unit_price REAL NOT NULL,
            total_price REAL NOT NULL,
            created_at TEXT NOT NULL,
            FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE CASCADE
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items(order_id)')

    # 4. invoices (請求書)
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS invoices (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            order_id TEXT NOT NULL,
            invoice_number TEXT NOT NULL,
            amount REAL NOT NULL,
            status TEXT NOT NULL DEFAULT 'draft',
            due_date TEXT NOT NULL,
            created_at TEXT NOT NULL,
            UNIQUE(user_id, invoice_number),
            FOREIGN KEY (order_id) REFERENCES orders(id)
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_invoices_user ON invoices(user_id, created_at)')

    # 5. financial_transactions (入出金)
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS financial_transactions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
            amount REAL NOT NULL,
            category TEXT NOT NULL,
            description TEXT NOT NULL,
            transaction_date TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_transactions_user ON financial_transactions(user_id, transaction_date)')

    # 6. inventory (在庫)
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS inventory (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            quantity INTEGER NOT NULL DEFAULT 0 CHECK (quantity >= 0),
            price REAL NOT NULL DEFAULT 0 CHECK (price >= 0),
            created_at TEXT NOT NULL
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_inventory_user ON inventory(user_id, created_at)')

    conn.commit()
    conn.close()

    logger.info(f"データベースを初期化しました: {db_path or DEFAULT_DB_PATH}")
