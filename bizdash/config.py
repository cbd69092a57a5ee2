"""
アプリケーション設定
"""
import os
from pathlib import Path


class Config:
    """アプリケーション設定クラス"""

    # サーバー設定
    HOST = os.getenv('HOST', '127.0.0.1')
    PORT = int(os.getenv('PORT', 8080))
    DEBUG = os.getenv('DEBUG', 'false').lower() == 'true'
    TESTING = False

    # パス設定
    APP_DIR = Path(__file__).parent
    BASE_DIR = APP_DIR.parent
    DB_PATH = Path(os.getenv('BIZDASH_DB_PATH', BASE_DIR / 'bizdash.db'))
    EXPORT_DIR = Path(os.getenv('BIZDASH_EXPORT_DIR', Path.home() / 'Downloads'))

    # CORS許可オリジン（フロントエンド開発サーバー）
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]

    # ファイルエンコーディング
    CSV_ENCODING = 'utf-8'

    # 在庫少アラートの閾値（この数量以下で表示）
    LOW_STOCK_THRESHOLD = 5

    # 請求書支払い時に作成する取引のカテゴリ
    INVOICE_PAYMENT_CATEGORY = 'Invoice Payment'

    # ダッシュボードの最近のアクティビティ件数
    RECENT_ACTIVITY_LIMIT = 5

    # レポート取得時の並列数（customers/orders/invoices/transactions）
    REPORT_FETCH_WORKERS = 4

    @classmethod
    def init_app(cls):
        """アプリケーション初期化時の設定"""
        # 出力ディレクトリ作成
        cls.EXPORT_DIR.mkdir(parents=True, exist_ok=True)
        cls.DB_PATH.parent.mkdir(parents=True, exist_ok=True)


class DevelopmentConfig(Config):
    """開発環境設定"""
    DEBUG = True


class ProductionConfig(Config):
    """本番環境設定"""
    DEBUG = False


class TestingConfig(Config):
    """テスト環境設定"""
    TESTING = True
    DEBUG = False


# 設定マッピング
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """現在の設定を取得"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])
