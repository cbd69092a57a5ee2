"""Tests for the HTTP API."""

import pytest

from bizdash.backend.aggregator import DateRange


def _create_customer(client, headers, name='Ada Lovelace'):
    response = client.post('/api/customers', json={'name': name, 'email': 'ada@example.com'}, headers=headers)
    assert response.status_code == 201
    return response.get_json()['data']


def _create_order(client, headers, customer_name='Ada Lovelace'):
    customer = _create_customer(client, headers, customer_name)
    response = client.post('/api/orders', json={
        'customer_id': customer['id'],
        'items': [{'item_name': 'Widget', 'quantity': 3, 'unit_price': 10}],
    }, headers=headers)
    assert response.status_code == 201
    return response.get_json()['data']


def _create_invoice(client, headers, status='sent', amount=300.0):
    order = _create_order(client, headers)
    response = client.post('/api/invoices', json={
        'order_id': order['id'], 'amount': amount, 'status': status, 'due_date': '2025-02-01'
    }, headers=headers)
    assert response.status_code == 201
    return response.get_json()


class TestPublicEndpoints:
    def test_health(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'ok'

    def test_config(self, client):
        data = client.get('/api/config').get_json()
        assert data['low_stock_threshold'] == 5
        assert data['invoice_payment_category'] == 'Invoice Payment'
        assert 'paid' in data['invoice_statuses']


class TestAccountHeader:
    def test_missing_header_rejected(self, client):
        response = client.get('/api/customers')
        assert response.status_code == 401
        assert response.get_json()['status'] == 'error'

    def test_accounts_isolated(self, client, headers, other_headers):
        customer = _create_customer(client, headers)
        assert client.get('/api/customers', headers=other_headers).get_json()['data'] == []
        response = client.delete(f"/api/customers/{customer['id']}", headers=other_headers)
        assert response.status_code == 404


class TestCustomers:
    def test_crud(self, client, headers):
        customer = _create_customer(client, headers)

        response = client.put(f"/api/customers/{customer['id']}", json={'company': 'Analytical Engines'},
                              headers=headers)
        assert response.get_json()['data']['company'] == 'Analytical Engines'

        listed = client.get('/api/customers?q=analytical', headers=headers).get_json()['data']
        assert [c['id'] for c in listed] == [customer['id']]

        assert client.delete(f"/api/customers/{customer['id']}", headers=headers).status_code == 200
        assert client.get('/api/customers', headers=headers).get_json()['data'] == []

    def test_missing_required_field(self, client, headers):
        response = client.post('/api/customers', json={'name': 'No Email'}, headers=headers)
        assert response.status_code == 400
        assert response.get_json()['status'] == 'error'

    def test_non_json_body(self, client, headers):
        response = client.post('/api/customers', data='plain', headers=headers)
        assert response.status_code == 400


class TestOrders:
    def test_create_generates_code_and_total(self, client, headers):
        order = _create_order(client, headers)
        assert order['custom_order_id'].count('_') == 3
        assert order['total_amount'] == 30.0
        assert order['items'][0]['item_name'] == 'Widget'

    def test_list_includes_customer_name(self, client, headers):
        _create_order(client, headers)
        orders = client.get('/api/orders', headers=headers).get_json()['data']
        assert orders[0]['customer_name'] == 'Ada Lovelace'

    def test_get_with_items(self, client, headers):
        order = _create_order(client, headers)
        data = client.get(f"/api/orders/{order['id']}", headers=headers).get_json()['data']
        assert len(data['items']) == 1

    def test_unknown_customer(self, client, headers):
        response = client.post('/api/orders', json={'customer_id': 'missing'}, headers=headers)
        assert response.status_code == 404

    def test_invalid_status(self, client, headers):
        order = _create_order(client, headers)
        response = client.put(f"/api/orders/{order['id']}", json={'status': 'lost'}, headers=headers)
        assert response.status_code == 400

    def test_delete_invoiced_order_conflicts(self, client, headers):
        invoice = _create_invoice(client, headers)['invoice']
        response = client.delete(f"/api/orders/{invoice['order_id']}", headers=headers)
        assert response.status_code == 409
        assert client.get(f"/api/orders/{invoice['order_id']}", headers=headers).status_code == 200


class TestInvoices:
    def test_pay_creates_single_income_transaction(self, client, headers):
        invoice = _create_invoice(client, headers, status='sent', amount=300.0)['invoice']

        paid = client.post(f"/api/invoices/{invoice['id']}/pay", headers=headers).get_json()
        assert paid['invoice']['status'] == 'paid'
        assert paid['transaction']['category'] == 'Invoice Payment'
        assert paid['transaction']['amount'] == 300.0

        again = client.put(f"/api/invoices/{invoice['id']}", json={'status': 'paid'}, headers=headers).get_json()
        assert again['transaction'] is None

        transactions = client.get('/api/transactions', headers=headers).get_json()['data']
        assert len(transactions) == 1
        assert transactions[0]['type'] == 'income'

    def test_invoice_number_generated(self, client, headers):
        invoice = _create_invoice(client, headers)['invoice']
        assert invoice['invoice_number'].startswith('INV-')

    def test_next_number(self, client, headers):
        data = client.get('/api/invoices/next-number', headers=headers).get_json()
        assert data['invoice_number'].startswith('INV-')

    def test_order_must_belong_to_account(self, client, headers, other_headers):
        order = _create_order(client, headers)
        response = client.post('/api/invoices', json={
            'order_id': order['id'], 'amount': 10, 'due_date': '2025-02-01'
        }, headers=other_headers)
        assert response.status_code == 404

    def test_pay_unknown_invoice(self, client, headers):
        assert client.post('/api/invoices/missing/pay', headers=headers).status_code == 404

    def test_order_lookup_selects_single_match(self, client, headers):
        order = _create_order(client, headers, customer_name='Beta LLC')
        _create_order(client, headers, customer_name='Acme Corp')

        data = client.get('/api/invoices/order-lookup?q=beta', headers=headers).get_json()

        assert [s['name'] for s in data['suggestions']] == ['Beta LLC']
        assert data['selected_order_id'] == order['id']
        assert data['amount'] == 30.0


class TestTransactionsAndInventory:
    def test_transaction_validation(self, client, headers):
        response = client.post('/api/transactions', json={
            'type': 'gift', 'amount': 1, 'category': 'x', 'description': 'x'
        }, headers=headers)
        assert response.status_code == 400

    def test_transaction_search(self, client, headers):
        client.post('/api/transactions', json={
            'type': 'expense', 'amount': 12.5, 'category': 'Office', 'description': 'Paper'
        }, headers=headers)
        data = client.get('/api/transactions?q=paper', headers=headers).get_json()['data']
        assert [t['amount'] for t in data] == [12.5]

    def test_inventory_low_stock(self, client, headers):
        client.post('/api/inventory', json={'name': 'Bolt', 'quantity': 5, 'price': 0.1}, headers=headers)
        client.post('/api/inventory', json={'name': 'Nut', 'quantity': 50, 'price': 0.05}, headers=headers)
        items = {i['name']: i['low_stock'] for i in client.get('/api/inventory', headers=headers).get_json()['data']}
        assert items == {'Bolt': True, 'Nut': False}

    def test_inventory_negative_quantity(self, client, headers):
        response = client.post('/api/inventory', json={'name': 'Bolt', 'quantity': -1}, headers=headers)
        assert response.status_code == 400


class TestReports:
    def test_default_period_is_today(self, client, headers):
        client.post('/api/transactions', json={
            'type': 'income', 'amount': 100, 'category': 'Sales', 'description': 'Walk-in'
        }, headers=headers)
        data = client.get('/api/reports', headers=headers).get_json()['data']
        assert data['period'] == DateRange.today().to_dict()
        assert data['total_revenue'] >= 0

    def test_explicit_period(self, client, headers):
        for when, amount in [('2025-01-10', 100), ('2025-01-20', 40), ('2025-02-02', 999)]:
            client.post('/api/transactions', json={
                'type': 'income' if amount != 40 else 'expense', 'amount': amount,
                'category': 'Sales', 'description': when, 'transaction_date': when
            }, headers=headers)

        data = client.get('/api/reports?start=2025-01-01&end=2025-01-31', headers=headers).get_json()['data']

        assert data['total_revenue'] == 100.0
        assert data['total_expenses'] == 40.0
        assert data['net_profit'] == 60.0
        assert data['category_breakdown'] == {'Sales': 40.0}

    def test_invalid_period(self, client, headers):
        response = client.get('/api/reports?start=2025-02-01&end=2025-01-01', headers=headers)
        assert response.status_code == 400

    def test_dashboard(self, client, headers):
        _create_order(client, headers)
        data = client.get('/api/dashboard', headers=headers).get_json()['data']
        assert data['total_orders'] == 1
        assert data['total_customers'] == 1
        assert data['growth']['orders'] == {'defined': False}
        assert data['recent_activity'][0]['title'] == 'New order from Ada Lovelace'

    def test_export_entity_csv(self, client, headers):
        _create_customer(client, headers)
        response = client.get('/api/reports/export/customers', headers=headers)
        assert response.status_code == 200
        assert 'customers.csv' in response.headers['Content-Disposition']
        assert response.data.decode('utf-8').splitlines()[0].startswith('id,user_id')
        response.close()

    def test_export_unknown_entity(self, client, headers):
        assert client.get('/api/reports/export/secrets', headers=headers).status_code == 400

    def test_export_report_files(self, client, app, headers):
        _create_customer(client, headers)
        data = client.post('/api/reports/export', headers=headers).get_json()
        assert data['files'] == ['customers.csv', 'orders.csv', 'invoices.csv', 'transactions.csv']
        assert (app.file_handler.account_dir('account-a') / 'customers.csv').exists()

    def test_cleanup_export_files(self, client, app, headers, other_headers):
        _create_customer(client, headers)
        client.post('/api/reports/export', headers=headers)
        client.post('/api/reports/export', headers=other_headers)

        response = client.delete('/api/reports/export', headers=headers)

        assert response.status_code == 200
        assert list(app.file_handler.account_dir('account-a').iterdir()) == []
        assert (app.file_handler.account_dir('account-b') / 'customers.csv').exists()

    @pytest.mark.filterwarnings('ignore::DeprecationWarning')
    def test_export_excel(self, client, headers):
        response = client.get('/api/reports/export-excel', headers=headers)
        assert response.status_code == 200
        assert response.headers['Content-Disposition'].endswith('.xlsx')
        response.close()
