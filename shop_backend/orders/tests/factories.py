# orders/tests/factories.py

"""
Shared fixtures for orders tests.

FulfillmentTestCase swaps in the fake gateway and fake carrier for every
test and restores the registries afterwards.
"""

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from catalog.models import CatalogItem, SizeVariant
from orders.models import Order
from orders.services.order_intent import CartLineInput, create_order_intent
from orders.services.payment_verifier import verify_payment
from orders.services.shipment_orchestrator import process_shipment
from payments.gateway import FakeGateway, reset_gateway, set_gateway
from payments.gateway.port import compute_signature
from promotions.models import PromoCode
from shipping.carrier import FakeCarrier, reset_carrier, set_carrier

ADDRESS = {
    "name": "Asha Rao",
    "phone": "9876543210",
    "email": "asha@example.com",
    "address_line1": "12 MG Road",
    "city": "Pune",
    "state": "Maharashtra",
    "pincode": "411001",
}


def make_customer(username="buyer", **extra):
    return get_user_model().objects.create_user(username=username, password="pw-12345", **extra)


def make_item(name="Linen Shirt", *, sizes=None, status=CatalogItem.STATUS_LIVE, **fields):
    """
    sizes: iterable of (size, sku, regular_price, sale_price, stock)
    """
    item = CatalogItem.objects.create(name=name, status=status, **fields)
    for size, sku, regular, sale, stock in sizes or [("M", "SHIRT-M", "1000", "800", 10)]:
        SizeVariant.objects.create(
            item=item,
            size=size,
            sku=sku,
            regular_price=Decimal(regular),
            sale_price=Decimal(sale),
            stock=stock,
        )
    return item


def make_promo(code="SAVE10", discount_type=PromoCode.TYPE_PERCENTAGE, value="10", **fields):
    now = timezone.now()
    fields.setdefault("start_date", now - timedelta(days=1))
    fields.setdefault("end_date", now + timedelta(days=30))
    return PromoCode.objects.create(
        code=code,
        discount_type=discount_type,
        discount_value=Decimal(value),
        **fields,
    )


def line(item, *, sku="", size="", quantity=1, price=None):
    return CartLineInput(item_id=str(item.id), sku=sku, size=size, quantity=quantity, client_price=price)


def place_order(customer, lines, *, promo_code=None, address=None):
    return create_order_intent(
        customer=customer,
        lines=lines,
        delivery_address=dict(address or ADDRESS),
        promo_code=promo_code,
    ).order


def sign(order, payment_id, secret="rzp_test_secret"):
    return compute_signature(secret=secret, order_id=order.gateway_order_id, payment_id=payment_id)


def pay(order, payment_id="pay_001"):
    return verify_payment(
        gateway_order_id=order.gateway_order_id,
        gateway_payment_id=payment_id,
        signature=sign(order, payment_id),
    )


class FulfillmentTestCase(TestCase):
    def setUp(self):
        super().setUp()
        self.gateway = FakeGateway(key_secret="rzp_test_secret")
        self.carrier = FakeCarrier()
        set_gateway(self.gateway)
        set_carrier(self.carrier)
        self.addCleanup(reset_gateway)
        self.addCleanup(reset_carrier)

        self.customer = make_customer()
        self.item = make_item(
            sizes=[
                ("M", "SHIRT-M", "1000", "800", 10),
                ("L", "SHIRT-L", "1000", "800", 10),
            ]
        )

    def paid_order(self, *, quantity=1, promo_code=None, payment_id="pay_001"):
        order = place_order(
            self.customer,
            [line(self.item, sku="SHIRT-M", size="M", quantity=quantity)],
            promo_code=promo_code,
        )
        return pay(order, payment_id=payment_id).order

    def shipped_order(self, **kwargs):
        order = self.paid_order(**kwargs)
        process_shipment(order.id, carrier=self.carrier)
        order.refresh_from_db()
        return order

    def delivered_order(self, *, delivered_at=None, **kwargs):
        order = self.shipped_order(**kwargs)
        Order.objects.filter(id=order.id).update(
            shipping_status=Order.SHIPPING_DELIVERED,
            delivered_at=delivered_at or timezone.now(),
        )
        order.refresh_from_db()
        return order
