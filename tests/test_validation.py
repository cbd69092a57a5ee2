"""Tests for input validation."""

import pytest

from bizdash.backend.services.validation import (
    ValidationError,
    validate_customer,
    validate_inventory_item,
    validate_invoice,
    validate_order,
    validate_transaction,
)


class TestRequiredFields:
    def test_customer_requires_name_and_email(self):
        with pytest.raises(ValidationError) as exc:
            validate_customer({'name': 'Ada'})
        assert exc.value.field == 'email'

    def test_blank_string_is_missing(self):
        with pytest.raises(ValidationError):
            validate_customer({'name': '  ', 'email': 'a@example.com'})

    def test_partial_update_skips_required(self):
        validate_customer({'phone': '555'}, partial=True)

    def test_invoice_requires_order_amount_due_date(self):
        with pytest.raises(ValidationError):
            validate_invoice({'order_id': 'o1', 'amount': 10})

    def test_transaction_required(self):
        with pytest.raises(ValidationError):
            validate_transaction({'type': 'income', 'amount': 10, 'category': 'Sales'})


class TestChoices:
    def test_order_status(self):
        with pytest.raises(ValidationError):
            validate_order({'customer_id': 'c1', 'status': 'lost'})

    def test_invoice_status(self):
        with pytest.raises(ValidationError):
            validate_invoice({'status': 'void'}, partial=True)

    def test_transaction_type(self):
        with pytest.raises(ValidationError):
            validate_transaction({'type': 'refund'}, partial=True)


class TestNumbers:
    def test_numeric_strings_converted(self):
        data = {'name': 'Bolt', 'quantity': '12', 'price': '0.5'}
        validate_inventory_item(data)
        assert data['quantity'] == 12
        assert data['price'] == 0.5

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            validate_inventory_item({'name': 'Bolt', 'quantity': -1})

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            validate_inventory_item({'name': 'Bolt', 'price': -0.01})

    def test_fractional_quantity_rejected(self):
        with pytest.raises(ValidationError):
            validate_inventory_item({'name': 'Bolt', 'quantity': 1.5})

    def test_boolean_rejected(self):
        with pytest.raises(ValidationError):
            validate_transaction({'amount': True}, partial=True)

    def test_order_items_checked(self):
        with pytest.raises(ValidationError):
            validate_order({'customer_id': 'c1', 'items': [{'item_name': 'Widget', 'quantity': 'many'}]})

    def test_bad_due_date(self):
        with pytest.raises(ValidationError):
            validate_invoice({'order_id': 'o1', 'amount': 10, 'due_date': 'soon'})

    def test_validation_error_is_value_error(self):
        assert issubclass(ValidationError, ValueError)
