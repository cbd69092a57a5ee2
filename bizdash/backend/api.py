"""
Flask APIエンドポイント
"""
from flask import Flask, request, jsonify, send_file, g
from flask_cors import CORS
from pathlib import Path
import logging
from datetime import datetime

from .aggregator import (
    DateRange, ReportAggregator, DashboardSummary, ExcelExporter,
    generate_invoice_number
)
from .services import (
    FileHandler, DatabaseService, DataStoreError, RecordNotFoundError, RecordInUseError,
    annotate_low_stock, lookup_orders, CustomerSuggestion
)
from .services.db_service import utc_now
from .services.validation import (
    validate_customer, validate_order, validate_invoice, validate_transaction,
    validate_inventory_item, ORDER_STATUSES, INVOICE_STATUSES, TRANSACTION_TYPES
)

# ロギング設定
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# アカウント識別子を渡すヘッダー（認証は外部で行う）
ACCOUNT_HEADER = 'X-Account-Id'

# アカウント不要のエンドポイント
PUBLIC_ENDPOINTS = {'health_check', 'get_app_config'}

# エクスポート名: テーブル名
EXPORT_TABLES = {
    'customers': 'customers',
    'orders': 'orders',
    'invoices': 'invoices',
    'transactions': 'financial_transactions',
    'inventory': 'inventory',
}


def _error_response(e: Exception, action: str):
    """例外をエラーレスポンスに変換"""
    if isinstance(e, RecordInUseError):
        logger.warning(f"{action}: {e}")
        return jsonify({'status': 'error', 'message': str(e)}), 409
    if isinstance(e, RecordNotFoundError):
        logger.warning(f"{action}: {e}")
        return jsonify({'status': 'error', 'message': str(e)}), 404
    if isinstance(e, ValueError):
        logger.error(f"バリデーションエラー（{action}）: {e}")
        return jsonify({'status': 'error', 'message': str(e)}), 400
    logger.error(f"{action}エラー: {e}")
    return jsonify({'status': 'error', 'message': str(e)}), 500


def _json_body() -> dict:
    """リクエストのJSONを取得"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError('JSONオブジェクトを送信してください')
    return data


def _request_period(default_today: bool = True):
    """クエリパラメータ start/end から期間を作成"""
    start = request.args.get('start')
    end = request.args.get('end')
    if not start and not end:
        if not default_today:
            return None
        return DateRange.today()
    return DateRange.parse_local(start or end, end or start)


def create_app(config=None):
    """
    Flaskアプリケーションファクトリ

    Args:
        config: 設定オブジェクト（省略時は FLASK_ENV から選択）

    Returns:
        Flask: アプリケーションインスタンス
    """
    app = Flask(__name__)

    # 設定読み込み
    if config is None:
        from ..config import get_config
        config = get_config()
    app.config.from_object(config)
    if hasattr(config, 'init_app'):
        config.init_app()

    # CORS設定（フロントエンドからのアクセス許可）
    CORS(app, origins=app.config['CORS_ORIGINS'])

    # サービス初期化
    db_service = DatabaseService(
        Path(app.config['DB_PATH']),
        payment_category=app.config['INVOICE_PAYMENT_CATEGORY']
    )
    db_service.init_schema()
    file_handler = FileHandler(Path(app.config['EXPORT_DIR']), encoding=app.config['CSV_ENCODING'])

    app.db_service = db_service
    app.file_handler = file_handler

    @app.before_request
    def load_account():
        """アカウント識別子をヘッダーから取得"""
        if request.method == 'OPTIONS' or request.endpoint in PUBLIC_ENDPOINTS:
            return None
        if not request.path.startswith('/api/'):
            return None
        user_id = (request.headers.get(ACCOUNT_HEADER) or '').strip()
        if not user_id:
            return jsonify({'status': 'error', 'message': f'{ACCOUNT_HEADER} ヘッダーがありません'}), 401
        g.user_id = user_id
        return None

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """ヘルスチェック"""
        return jsonify({'status': 'ok', 'timestamp': datetime.now().isoformat()})

    @app.route('/api/config', methods=['GET'])
    def get_app_config():
        """設定情報取得"""
        return jsonify({
            'order_statuses': list(ORDER_STATUSES),
            'invoice_statuses': list(INVOICE_STATUSES),
            'transaction_types': list(TRANSACTION_TYPES),
            'low_stock_threshold': app.config['LOW_STOCK_THRESHOLD'],
            'invoice_payment_category': app.config['INVOICE_PAYMENT_CATEGORY'],
            'export_entities': list(EXPORT_TABLES)
        })

    # ========== 顧客 ==========

    @app.route('/api/customers', methods=['GET'])
    def list_customers():
        """顧客一覧"""
        try:
            customers = db_service.fetch_rows('customers', g.user_id, search=request.args.get('q'))
            return jsonify({'status': 'success', 'data': customers})
        except Exception as e:
            return _error_response(e, '顧客取得')

    @app.route('/api/customers', methods=['POST'])
    def create_customer():
        """顧客登録"""
        try:
            data = _json_body()
            validate_customer(data)
            customer = db_service.insert_row('customers', g.user_id, data)
            return jsonify({'status': 'success', 'data': customer}), 201
        except Exception as e:
            return _error_response(e, '顧客登録')

    @app.route('/api/customers/<customer_id>', methods=['PUT'])
    def update_customer(customer_id):
        """顧客更新"""
        try:
            data = _json_body()
            validate_customer(data, partial=True)
            customer = db_service.update_row('customers', g.user_id, customer_id, data)
            return jsonify({'status': 'success', 'data': customer})
        except Exception as e:
            return _error_response(e, '顧客更新')

    @app.route('/api/customers/<customer_id>', methods=['DELETE'])
    def delete_customer(customer_id):
        """顧客削除"""
        try:
            db_service.delete_row('customers', g.user_id, customer_id)
            return jsonify({'status': 'success', 'message': '削除しました'})
        except Exception as e:
            return _error_response(e, '顧客削除')

    # ========== 注文 ==========

    @app.route('/api/orders', methods=['GET'])
    def list_orders():
        """注文一覧（顧客名付き）"""
        try:
            orders = db_service.fetch_orders(
                g.user_id,
                search=request.args.get('q'),
                with_items=request.args.get('items', 'false').lower() == 'true'
            )
            return jsonify({'status': 'success', 'data': orders})
        except Exception as e:
            return _error_response(e, '注文取得')

    @app.route('/api/orders/<order_id>', methods=['GET'])
    def get_order(order_id):
        """注文詳細（明細付き）"""
        try:
            order = db_service.get_order(g.user_id, order_id)
            return jsonify({'status': 'success', 'data': order})
        except Exception as e:
            return _error_response(e, '注文取得')

    @app.route('/api/orders', methods=['POST'])
    def create_order():
        """注文登録（注文コードは自動生成）"""
        try:
            data = _json_body()
            validate_order(data)
            db_service.get_row('customers', g.user_id, data['customer_id'])
            items = data.pop('items', None) or []
            order = db_service.create_order(g.user_id, data, items)
            return jsonify({'status': 'success', 'data': order}), 201
        except Exception as e:
            return _error_response(e, '注文登録')

    @app.route('/api/orders/<order_id>', methods=['PUT'])
    def update_order(order_id):
        """注文更新"""
        try:
            data = _json_body()
            validate_order(data, partial=True)
            if data.get('customer_id'):
                db_service.get_row('customers', g.user_id, data['customer_id'])
            items = data.pop('items', None)
            order = db_service.update_order(g.user_id, order_id, data, items)
            return jsonify({'status': 'success', 'data': order})
        except Exception as e:
            return _error_response(e, '注文更新')

    @app.route('/api/orders/<order_id>', methods=['DELETE'])
    def delete_order(order_id):
        """注文削除（明細も削除）"""
        try:
            db_service.delete_row('orders', g.user_id, order_id)
            return jsonify({'status': 'success', 'message': '削除しました'})
        except Exception as e:
            return _error_response(e, '注文削除')

    # ========== 請求書 ==========

    @app.route('/api/invoices', methods=['GET'])
    def list_invoices():
        """請求書一覧"""
        try:
            invoices = db_service.fetch_rows('invoices', g.user_id, search=request.args.get('q'))
            return jsonify({'status': 'success', 'data': invoices})
        except Exception as e:
            return _error_response(e, '請求書取得')

    @app.route('/api/invoices/next-number', methods=['GET'])
    def next_invoice_number():
        """請求書番号の候補を生成"""
        return jsonify({'status': 'success', 'invoice_number': generate_invoice_number()})

    @app.route('/api/invoices/order-lookup', methods=['GET'])
    def invoice_order_lookup():
        """請求書フォーム用の顧客候補・注文検索"""
        try:
            customer = None
            if request.args.get('customer'):
                customer = CustomerSuggestion(
                    name=request.args['customer'],
                    custom_customer_id=request.args.get('customer_id') or None
                )
            orders = db_service.fetch_orders(g.user_id)
            result = lookup_orders(orders, request.args.get('q', ''), customer)
            return jsonify({'status': 'success', **result.to_dict()})
        except Exception as e:
            return _error_response(e, '注文検索')

    @app.route('/api/invoices', methods=['POST'])
    def create_invoice():
        """請求書登録（paid で登録した場合は入金取引も作成）"""
        try:
            data = _json_body()
            validate_invoice(data)
            db_service.get_row('orders', g.user_id, data['order_id'])
            result = db_service.save_invoice(g.user_id, data)
            return jsonify({'status': 'success', **result.to_dict()}), 201
        except Exception as e:
            return _error_response(e, '請求書登録')

    @app.route('/api/invoices/<invoice_id>', methods=['PUT'])
    def update_invoice(invoice_id):
        """請求書更新（paid に変わった場合は入金取引も作成）"""
        try:
            data = _json_body()
            validate_invoice(data, partial=True)
            if data.get('order_id'):
                db_service.get_row('orders', g.user_id, data['order_id'])
            result = db_service.save_invoice(g.user_id, data, invoice_id=invoice_id)
            return jsonify({'status': 'success', **result.to_dict()})
        except Exception as e:
            return _error_response(e, '請求書更新')

    @app.route('/api/invoices/<invoice_id>/pay', methods=['POST'])
    def pay_invoice(invoice_id):
        """請求書を支払い済みにする"""
        try:
            result = db_service.mark_invoice_paid(g.user_id, invoice_id)
            return jsonify({'status': 'success', **result.to_dict()})
        except Exception as e:
            return _error_response(e, '請求書支払い')

    @app.route('/api/invoices/<invoice_id>', methods=['DELETE'])
    def delete_invoice(invoice_id):
        """請求書削除"""
        try:
            db_service.delete_row('invoices', g.user_id, invoice_id)
            return jsonify({'status': 'success', 'message': '削除しました'})
        except Exception as e:
            return _error_response(e, '請求書削除')

    # ========== 入出金 ==========

    @app.route('/api/transactions', methods=['GET'])
    def list_transactions():
        """入出金一覧"""
        try:
            transactions = db_service.fetch_rows(
                'financial_transactions', g.user_id,
                period=_request_period(default_today=False),
                search=request.args.get('q')
            )
            return jsonify({'status': 'success', 'data': transactions})
        except Exception as e:
            return _error_response(e, '入出金取得')

    @app.route('/api/transactions', methods=['POST'])
    def create_transaction():
        """入出金登録"""
        try:
            data = _json_body()
            validate_transaction(data)
            data.setdefault('transaction_date', utc_now().isoformat())
            transaction = db_service.insert_row('financial_transactions', g.user_id, data)
            return jsonify({'status': 'success', 'data': transaction}), 201
        except Exception as e:
            return _error_response(e, '入出金登録')

    @app.route('/api/transactions/<transaction_id>', methods=['PUT'])
    def update_transaction(transaction_id):
        """入出金更新"""
        try:
            data = _json_body()
            validate_transaction(data, partial=True)
            transaction = db_service.update_row('financial_transactions', g.user_id, transaction_id, data)
            return jsonify({'status': 'success', 'data': transaction})
        except Exception as e:
            return _error_response(e, '入出金更新')

    @app.route('/api/transactions/<transaction_id>', methods=['DELETE'])
    def delete_transaction(transaction_id):
        """入出金削除"""
        try:
            db_service.delete_row('financial_transactions', g.user_id, transaction_id)
            return jsonify({'status': 'success', 'message': '削除しました'})
        except Exception as e:
            return _error_response(e, '入出金削除')

    # ========== 在庫 ==========

    @app.route('/api/inventory', methods=['GET'])
    def list_inventory():
        """在庫一覧（low_stock 付き）"""
        try:
            items = db_service.fetch_rows('inventory', g.user_id, search=request.args.get('q'))
            items = annotate_low_stock(items, app.config['LOW_STOCK_THRESHOLD'])
            return jsonify({'status': 'success', 'data': items})
        except Exception as e:
            return _error_response(e, '在庫取得')

    @app.route('/api/inventory', methods=['POST'])
    def create_inventory_item():
        """在庫登録"""
        try:
            data = _json_body()
            validate_inventory_item(data)
            item = db_service.insert_row('inventory', g.user_id, data)
            item = annotate_low_stock([item], app.config['LOW_STOCK_THRESHOLD'])[0]
            return jsonify({'status': 'success', 'data': item}), 201
        except Exception as e:
            return _error_response(e, '在庫登録')

    @app.route('/api/inventory/<item_id>', methods=['PUT'])
    def update_inventory_item(item_id):
        """在庫更新"""
        try:
            data = _json_body()
            validate_inventory_item(data, partial=True)
            item = db_service.update_row('inventory', g.user_id, item_id, data)
            item = annotate_low_stock([item], app.config['LOW_STOCK_THRESHOLD'])[0]
            return jsonify({'status': 'success', 'data': item})
        except Exception as e:
            return _error_response(e, '在庫更新')

    @app.route('/api/inventory/<item_id>', methods=['DELETE'])
    def delete_inventory_item(item_id):
        """在庫削除"""
        try:
            db_service.delete_row('inventory', g.user_id, item_id)
            return jsonify({'status': 'success', 'message': '削除しました'})
        except Exception as e:
            return _error_response(e, '在庫削除')

    # ========== ダッシュボード・レポート ==========

    def _aggregate(period: DateRange):
        """期間内データを取得して集計"""
        data = db_service.fetch_report_data(
            g.user_id, period, max_workers=app.config['REPORT_FETCH_WORKERS']
        )
        aggregator = ReportAggregator(
            data.transactions, data.orders, data.customers, data.invoices, period
        )
        return aggregator.aggregate_all()

    @app.route('/api/dashboard', methods=['GET'])
    def dashboard():
        """今月の集計と前月比・最近の注文"""
        try:
            current = _aggregate(DateRange.current_month())
            try:
                previous = _aggregate(DateRange.previous_month())
            except DataStoreError as e:
                logger.warning(f"先月データを取得できませんでした（前月比なし）: {e}")
                previous = None

            recent_orders = db_service.fetch_orders(
                g.user_id, limit=app.config['RECENT_ACTIVITY_LIMIT']
            )
            summary = DashboardSummary(current, previous, recent_orders).calculate()
            return jsonify({'status': 'success', 'data': summary.to_dict()})
        except Exception as e:
            return _error_response(e, 'ダッシュボード集計')

    @app.route('/api/reports', methods=['GET'])
    def reports():
        """期間レポート（デフォルト: 今日）"""
        try:
            result = _aggregate(_request_period())
            return jsonify({'status': 'success', 'data': result.to_dict()})
        except Exception as e:
            return _error_response(e, 'レポート集計')

    def _export_records(entity: str, period):
        table = EXPORT_TABLES[entity]
        if table == 'orders':
            return db_service.fetch_orders(g.user_id, period=period)
        return db_service.fetch_rows(table, g.user_id, period=period)

    @app.route('/api/reports/export/<entity>', methods=['GET'])
    def export_entity(entity):
        """エンティティをCSVでダウンロード"""
        try:
            if entity not in EXPORT_TABLES:
                return jsonify({'status': 'error', 'message': f'無効なエクスポート名: {entity}'}), 400

            records = _export_records(entity, _request_period(default_today=False))
            filepath = file_handler.export_entity(g.user_id, entity, records)
            return send_file(
                filepath,
                mimetype='text/csv',
                as_attachment=True,
                download_name=f'{entity}.csv'
            )
        except Exception as e:
            return _error_response(e, 'CSVエクスポート')

    @app.route('/api/reports/export', methods=['POST'])
    def export_report_data():
        """レポート期間の顧客・注文・請求書・入出金をCSV出力"""
        try:
            period = _request_period()
            data = db_service.fetch_report_data(
                g.user_id, period, max_workers=app.config['REPORT_FETCH_WORKERS']
            )
            orders = [{k: v for k, v in o.items() if k != 'items'} for o in data.orders]
            files = file_handler.export_all(g.user_id, {
                'customers': data.customers,
                'orders': orders,
                'invoices': data.invoices,
                'transactions': data.transactions
            })
            return jsonify({
                'status': 'success',
                'files': files,
                'output_dir': str(file_handler.account_dir(g.user_id))
            })
        except Exception as e:
            return _error_response(e, 'CSVエクスポート')

    @app.route('/api/reports/export', methods=['DELETE'])
    def cleanup_report_exports():
        """アカウントのエクスポートファイルを削除"""
        try:
            file_handler.cleanup_exports(g.user_id)
            return jsonify({'status': 'success', 'message': 'エクスポートファイルを削除しました'})
        except Exception as e:
            return _error_response(e, 'エクスポートファイル削除')

    @app.route('/api/reports/export-excel', methods=['GET'])
    def export_report_excel():
        """レポートをExcelでダウンロード"""
        try:
            result = _aggregate(_request_period())
            exporter = ExcelExporter(result, output_dir=file_handler.account_dir(g.user_id))
            filepath = exporter.export()
            return send_file(
                filepath,
                as_attachment=True,
                download_name=filepath.name
            )
        except Exception as e:
            return _error_response(e, 'Excel出力')

    @app.route('/api/database/status', methods=['GET'])
    def database_status():
        """アカウントのテーブル別件数"""
        try:
            return jsonify({'status': 'success', 'data': db_service.get_database_status(g.user_id)})
        except Exception as e:
            return _error_response(e, 'データベース状態取得')

    return app
