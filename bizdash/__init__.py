"""
業務ダッシュボード

顧客・注文・請求書・入出金・在庫の管理と期間レポート
"""

__version__ = '1.0.0'
