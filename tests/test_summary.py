"""Tests for month-over-month growth and the dashboard summary."""

import math

import pytest

from bizdash.backend.aggregator import DashboardSummary, GrowthResult, ReportResult, calculate_growth


class TestCalculateGrowth:
    def test_increase(self):
        growth = calculate_growth(120, 100)
        assert growth.defined
        assert growth.value == 20.0

    def test_decrease(self):
        assert calculate_growth(50, 200).value == -75.0

    def test_zero_baseline_undefined(self):
        growth = calculate_growth(80, 0)
        assert not growth.defined
        assert growth.value is None

    def test_missing_baseline_undefined(self):
        assert not calculate_growth(80, None).defined
        assert not calculate_growth(None, 80).defined

    def test_non_finite_result_undefined(self):
        assert not calculate_growth(float('inf'), 10).defined
        assert not calculate_growth(float('nan'), 10).defined

    def test_undefined_never_serialises_infinity(self):
        data = calculate_growth(80, 0).to_dict()
        assert data == {'defined': False}

    def test_defined_to_dict(self):
        assert calculate_growth(120, 100).to_dict() == {'defined': True, 'value': 20.0}


def _result(**kwargs):
    return ReportResult(**kwargs)


class TestDashboardSummary:
    def test_kpis_and_growth(self):
        current = _result(total_revenue=1200.0, total_expenses=200.0, net_profit=1000.0,
                          customer_count=4, order_count=10, invoice_count=3)
        previous = _result(total_revenue=1000.0, total_expenses=0.0, customer_count=2, order_count=10)

        summary = DashboardSummary(current, previous).calculate()

        assert summary.total_revenue == 1200.0
        assert summary.net_profit == 1000.0
        assert summary.total_invoices == 3
        assert summary.growth['revenue'] == GrowthResult(defined=True, value=20.0)
        assert not summary.growth['expenses'].defined
        assert summary.growth['customers'].value == 100.0
        assert summary.growth['orders'].value == 0.0

    def test_without_previous_month(self):
        summary = DashboardSummary(_result(total_revenue=10.0)).calculate()
        assert all(not g.defined for g in summary.growth.values())

    def test_recent_activity(self):
        orders = [
            {'id': 'f0e1d2c3-b4a5-4987-8654-abcdef123456', 'customer_name': 'Ada Lovelace',
             'status': 'pending', 'total_amount': 42.0, 'created_at': '2025-01-05T10:00:00'},
            {'id': 'short', 'customer_name': None, 'status': 'shipped', 'created_at': '2025-01-04T10:00:00'},
        ]
        summary = DashboardSummary(_result(), recent_orders=orders).calculate()

        first, second = summary.recent_activity
        assert first.title == 'New order from Ada Lovelace'
        assert first.description == 'Order #ef123456 - pending'
        assert first.amount == 42.0
        assert second.title == 'New order from Customer'
        assert second.description == 'Order #short - shipped'

    def test_to_dict(self):
        data = DashboardSummary(_result(total_revenue=5.0), _result(total_revenue=0.0)).calculate().to_dict()
        assert data['growth']['revenue'] == {'defined': False}
        assert not any(isinstance(v, float) and math.isinf(v) for v in data.values())
