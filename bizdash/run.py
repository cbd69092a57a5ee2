"""
アプリケーション起動スクリプト
"""
import argparse
import os


def main(argv=None):
    """メイン関数"""
    parser = argparse.ArgumentParser(
        description='業務ダッシュボード（顧客・注文・請求書・入出金・在庫）'
    )
    parser.add_argument(
        '--port', '-p',
        type=int,
        default=int(os.getenv('PORT', 8080)),
        help='サーバーポート番号（デフォルト: 8080）'
    )
    parser.add_argument(
        '--host',
        type=str,
        default=os.getenv('HOST', '127.0.0.1'),
        help='ホストアドレス（デフォルト: 127.0.0.1）'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='デバッグモードで起動'
    )
    parser.add_argument(
        '--init-db',
        action='store_true',
        help='データベースを初期化して終了'
    )

    args = parser.parse_args(argv)

    # 環境変数に設定
    os.environ['PORT'] = str(args.port)
    os.environ['HOST'] = args.host
    if args.debug:
        os.environ['DEBUG'] = 'true'

    from .config import get_config

    if args.init_db:
        from .database import init_database
        config = get_config()
        config.init_app()
        init_database(config.DB_PATH)
        print(f"データベースを初期化しました: {config.DB_PATH}")
        return 0

    # アプリケーション作成
    from .backend.api import create_app
    app = create_app()

    print(f"""
============================================================
  業務ダッシュボード
============================================================
  サーバー起動中...
  URL: http://{args.host}:{args.port}
  DB:  {app.config['DB_PATH']}

  停止するには Ctrl+C を押してください
============================================================
    """)

    # サーバー起動
    app.run(
        host=args.host,
        port=args.port,
        debug=args.debug
    )
    return 0


if __name__ == '__main__':
    main()
