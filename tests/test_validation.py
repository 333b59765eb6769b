from decimal import Decimal

import pytest

from services.payment_service.exceptions import ValidationError
from services.payment_service.validation import new_order_id, validate_payment_request

from helpers import ORDER_ID, TODAY, payment_request


def test_valid_request_is_normalized():
    checkout = validate_payment_request(payment_request(), today=TODAY)

    assert checkout.order_id == ORDER_ID
    assert checkout.card_number == "4111111111111111"
    assert checkout.expiry_month == 9
    assert checkout.expiry_year == 2031
    assert checkout.amount == Decimal("129.99")
    assert checkout.shipping.formatted() == "12 Range Rd, Boise, ID, 83702"
    assert checkout.billing is None
    assert checkout.billing_or_shipping is checkout.shipping
    assert checkout.items[0].product_id == "rifle-stock-7"
    assert checkout.items[0].options == {"color": "walnut"}
    assert checkout.items_total == Decimal("129.99")


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"orderId": None}, "order_id"),
        ({"cardNumber": "   "}, "card_number"),
        ({"expiryMonth": ""}, "expiry_month"),
        ({"expiryYear": None}, "expiry_year"),
        ({"cvv": " "}, "cvv"),
        ({"amount": None}, "amount"),
        ({"shippingAddress": {"address": " ", "zipCode": "83702"}}, "shipping_address.address"),
        ({"shippingAddress": {"address": "12 Range Rd"}}, "shipping_address.zip_code"),
        ({"shippingAddress": None}, "shipping_address.address"),
        ({"items": []}, "items"),
    ],
)
def test_missing_required_field_is_named(overrides, field):
    with pytest.raises(ValidationError) as excinfo:
        validate_payment_request(payment_request(**overrides), today=TODAY)
    assert excinfo.value.field == field


@pytest.mark.parametrize("amount", ["0", "-5.00", "0.004"])
def test_non_positive_amount_rejected(amount):
    with pytest.raises(ValidationError) as excinfo:
        validate_payment_request(payment_request(amount=amount), today=TODAY)
    assert excinfo.value.field == "amount"


def test_amount_is_checked_after_rounding_to_cents():
    checkout = validate_payment_request(payment_request(amount="0.005"), today=TODAY)
    assert checkout.amount == Decimal("0.01")


@pytest.mark.parametrize("number", ["4111 1111 1111", "4111-1111-1111-1111", "41111111111111112", "abcd"])
def test_card_number_must_be_15_or_16_digits(number):
    with pytest.raises(ValidationError) as excinfo:
        validate_payment_request(payment_request(cardNumber=number), today=TODAY)
    assert excinfo.value.field == "card_number"


def test_fifteen_digit_card_accepted():
    checkout = validate_payment_request(payment_request(cardNumber="3782 822463 10005"), today=TODAY)
    assert checkout.card_number == "378282246310005"


def test_expiry_in_current_month_is_valid():
    checkout = validate_payment_request(payment_request(expiryMonth="10", expiryYear="2026"), today=TODAY)
    assert (checkout.expiry_month, checkout.expiry_year) == (10, 2026)


def test_expiry_one_month_in_the_past_is_rejected():
    with pytest.raises(ValidationError):
        validate_payment_request(payment_request(expiryMonth="09", expiryYear="2026"), today=TODAY)


def test_two_digit_expiry_year():
    checkout = validate_payment_request(payment_request(expiryYear="31"), today=TODAY)
    assert checkout.expiry_year == 2031

    with pytest.raises(ValidationError):
        validate_payment_request(payment_request(expiryMonth="12", expiryYear="25"), today=TODAY)


@pytest.mark.parametrize("month", ["0", "13", "ab"])
def test_expiry_month_range(month):
    with pytest.raises(ValidationError) as excinfo:
        validate_payment_request(payment_request(expiryMonth=month), today=TODAY)
    assert excinfo.value.field == "expiry_month"


@pytest.mark.parametrize("cvv", ["12", "12345", "1a3"])
def test_cvv_format(cvv):
    with pytest.raises(ValidationError) as excinfo:
        validate_payment_request(payment_request(cvv=cvv), today=TODAY)
    assert excinfo.value.field == "cvv"


def test_four_digit_cvv_accepted():
    assert validate_payment_request(payment_request(cvv="1234"), today=TODAY).cvv == "1234"


def test_order_id_must_be_a_uuid():
    with pytest.raises(ValidationError) as excinfo:
        validate_payment_request(payment_request(orderId="order-1"), today=TODAY)
    assert excinfo.value.field == "order_id"


def test_item_quantity_must_be_positive():
    items = [{"id": "mag-10", "quantity": 0, "price": "19.99"}]
    with pytest.raises(ValidationError) as excinfo:
        validate_payment_request(payment_request(items=items), today=TODAY)
    assert excinfo.value.field == "items[0].quantity"


def test_billing_address_kept_when_given():
    billing = {"address": "1 Main St", "city": "Reno", "state": "NV", "zipCode": "89501"}
    checkout = validate_payment_request(payment_request(billingAddress=billing), today=TODAY)
    assert checkout.billing_or_shipping.formatted() == "1 Main St, Reno, NV, 89501"


def test_blank_billing_address_falls_back_to_shipping():
    checkout = validate_payment_request(payment_request(billingAddress={"address": "  "}), today=TODAY)
    assert checkout.billing is None


def test_numeric_fields_sent_as_numbers_are_accepted():
    checkout = validate_payment_request(
        payment_request(expiryMonth=9, expiryYear=2031, amount=129.99, cvv=123), today=TODAY
    )
    assert checkout.amount == Decimal("129.99")
    assert checkout.cvv == "123"


def test_default_today_is_used_when_not_given():
    # Far-future expiry stays valid whatever the real date is
    checkout = validate_payment_request(payment_request(expiryYear="2099"))
    assert checkout.expiry_year == 2099


def test_new_order_id_is_unique_uuid():
    first, second = new_order_id(), new_order_id()
    assert first != second
    assert len(first) == 36
