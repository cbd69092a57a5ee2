"""
業務ダッシュボード バックエンド
"""
