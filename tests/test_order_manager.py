"""
Tests for the order lifecycle controller and submission pipeline.
"""

import asyncio

import pytest

from conftest import TODAY, failure_response, open_store, success_response
from pizza_bot.config import OrderingConfig
from pizza_bot.rate_limiter import RateLimiter
from pizza_bot.schemas.orders import (
    Customer,
    DeliveryAddress,
    ErrorType,
    NextAction,
    Order,
    OrderError,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Topping,
)
from pizza_bot.schemas.remote import RemoteStore, TrackingStatus
from pizza_bot.services.order_manager import (
    GENERIC_ERROR_MESSAGE,
    OrderManager,
    select_delivery_store,
)


# =============================================================================
# Submission Pipeline
# =============================================================================

class TestProcessOrder:
    """End-to-end behaviour of process_order against a fake remote API."""

    @pytest.mark.asyncio
    async def test_priced_without_payment(self, manager, fake_api, customer, item):
        order = Order(items=[item])

        result = await manager.process_order(order, customer)

        assert isinstance(result, Order)
        assert result.payment_status in (PaymentStatus.NOT_SET, PaymentStatus.INVALID)
        assert result.progress.is_confirmed is False
        assert result.progress.has_customer_info is True
        assert result.total == 21.47
        assert result.store_id == "4336"
        assert fake_api.calls == ["find_stores", "validate_order", "price_order"]

    @pytest.mark.asyncio
    async def test_placed_with_payment(self, manager, fake_api, customer, item, payment):
        order = Order(items=[item], payment_method=payment)

        result = await manager.process_order(order, customer)

        assert result.status == OrderStatus.CONFIRMED
        assert result.payment_status == PaymentStatus.PROCESSED
        assert result.progress.is_confirmed is True
        assert result.progress.has_valid_payment is True
        assert result.order_id == "ORD-1001"
        assert result.estimated_wait_minutes == 20
        assert fake_api.calls[-1] == "place_order"

    @pytest.mark.asyncio
    async def test_validate_failure_stops_pipeline(self, manager, fake_api, customer, item, payment):
        fake_api.validate_response = failure_response("Store closed")
        order = Order(items=[item], payment_method=payment)

        result = await manager.process_order(order, customer)

        assert result == OrderError(
            type=ErrorType.VALIDATION_FAILED,
            code="API_VALIDATION_FAILED",
            message="Store closed",
        )
        assert "price_order" not in fake_api.calls
        assert "place_order" not in fake_api.calls

    @pytest.mark.asyncio
    async def test_total_is_remote_amount_not_estimate(self, manager, fake_api, customer, payment):
        fake_api.price_response = success_response(total=5.0)
        order = Order(
            items=[OrderItem(size="XLARGE", crust="PAN", toppings=[Topping(code="BACON")])],
            payment_method=payment,
        )

        result = await manager.process_order(order, customer)

        assert result.total == 5.0
        assert fake_api.requests["place_order"]["Payments"][0]["Amount"] == 5.0

    @pytest.mark.asyncio
    async def test_pricing_failure(self, manager, fake_api, customer, item):
        fake_api.price_response = failure_response("Coupon invalid", {"Code": "PriceMismatch"})

        result = await manager.process_order(Order(items=[item]), customer)

        assert result.code == "API_PRICING_FAILED"
        assert result.type == ErrorType.VALIDATION_FAILED
        assert result.message == "Coupon invalid, PriceMismatch"

    @pytest.mark.asyncio
    async def test_placement_failure_is_payment_error(self, manager, fake_api, customer, item, payment):
        fake_api.place_response = failure_response("Card declined")
        order = Order(items=[item], payment_method=payment)

        result = await manager.process_order(order, customer)

        assert result.type == ErrorType.PAYMENT_FAILED
        assert result.code == "API_ORDER_FAILED"
        assert result.message == "Card declined"
        assert order.status != OrderStatus.CONFIRMED
        assert order.progress.is_confirmed is False

    @pytest.mark.asyncio
    async def test_invalid_payment_marks_order(self, manager, fake_api, customer, item, payment):
        expired = payment.model_copy(update={"expiry_date": "01/20"})
        order = Order(items=[item], payment_method=expired)

        result = await manager.process_order(order, customer)

        assert result.code == "CARD_EXPIRED"
        assert result.type == ErrorType.PAYMENT_FAILED
        assert order.payment_status == PaymentStatus.INVALID
        assert "place_order" not in fake_api.calls

    @pytest.mark.asyncio
    async def test_invalid_customer_makes_no_remote_calls(self, manager, fake_api, customer, item):
        bad = customer.model_copy(update={"email": "nope"})

        result = await manager.process_order(Order(items=[item]), bad)

        assert result.code == "INVALID_EMAIL"
        assert fake_api.calls == []

    @pytest.mark.asyncio
    async def test_invalid_item_makes_no_remote_calls(self, manager, fake_api, customer):
        order = Order(items=[OrderItem(size="LARGE", crust="THIN"), OrderItem(size="HUGE", crust="THIN")])

        result = await manager.process_order(order, customer)

        assert result.code == "INVALID_SIZE"
        assert fake_api.calls == []
        # Customer details were valid, so that flag is still recorded
        assert order.progress.has_customer_info is True

    @pytest.mark.asyncio
    async def test_rate_limited(self, fake_api, repository, customer, item):
        manager = OrderManager(
            api=fake_api,
            repository=repository,
            rate_limiter=RateLimiter(max_requests=1, time_window=60000),
            today=lambda: TODAY,
        )
        await manager.process_order(Order(items=[item]), customer)
        fake_api.calls.clear()

        result = await manager.process_order(Order(items=[item]), customer)

        assert result.code == "RATE_LIMIT_EXCEEDED"
        assert result.message == "Too many orders. Please try again in a few minutes."
        assert fake_api.calls == []

    @pytest.mark.asyncio
    async def test_resubmitting_confirmed_order_is_a_no_op(self, manager, fake_api, customer, item, payment):
        order = Order(items=[item], payment_method=payment)
        await manager.process_order(order, customer)
        fake_api.calls.clear()

        result = await manager.process_order(order, customer)

        assert result is order
        assert result.order_id == "ORD-1001"
        assert fake_api.calls == []

    @pytest.mark.asyncio
    async def test_cancelled_order_rejected(self, manager, fake_api, customer, item):
        order = Order(items=[item], status=OrderStatus.CANCELLED)

        result = await manager.process_order(order, customer)

        assert result.code == "ORDER_CANCELLED"
        assert fake_api.calls == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_system_error(self, manager, fake_api, customer, item):
        async def explode(request):
            raise RuntimeError("connection reset by peer at 10.0.0.1")

        fake_api.validate_order = explode

        result = await manager.process_order(Order(items=[item]), customer)

        assert result.type == ErrorType.SYSTEM_ERROR
        assert result.code == "SYSTEM_ERROR"
        assert result.message == GENERIC_ERROR_MESSAGE
        assert "10.0.0.1" not in result.message

    @pytest.mark.asyncio
    async def test_hanging_remote_call_times_out(self, fake_api, repository, rate_limiter, customer, item):
        async def hang(request):
            await asyncio.sleep(5)

        fake_api.price_order = hang
        manager = OrderManager(
            api=fake_api,
            repository=repository,
            rate_limiter=rate_limiter,
            remote_timeout=0.05,
            today=lambda: TODAY,
        )

        result = await manager.process_order(Order(items=[item]), customer)

        assert result.type == ErrorType.SYSTEM_ERROR

    @pytest.mark.asyncio
    async def test_no_store_available(self, manager, fake_api, customer, item):
        closed = open_store().model_copy(update={"is_open": False})
        fake_api.stores = [closed]

        result = await manager.process_order(Order(items=[item]), customer)

        assert result.type == ErrorType.SYSTEM_ERROR
        assert result.code == "NO_STORE_AVAILABLE"
        assert "validate_order" not in fake_api.calls

    @pytest.mark.asyncio
    async def test_bound_store_is_reused(self, manager, fake_api, customer, item):
        order = Order(items=[item], store_id="9999")

        await manager.process_order(order, customer)

        assert "find_stores" not in fake_api.calls
        assert fake_api.requests["validate_order"]["StoreID"] == "9999"

    @pytest.mark.asyncio
    async def test_store_binding_is_per_order(self, manager, fake_api, customer, item):
        first = Order(items=[item])
        await manager.process_order(first, customer)

        fake_api.stores = [open_store("5555")]
        second = Order(items=[item])
        await manager.process_order(second, customer)

        assert first.store_id == "4336"
        assert second.store_id == "5555"

    @pytest.mark.asyncio
    async def test_unparseable_address(self, manager, fake_api, customer, item):
        bad = customer.model_copy(update={"address": "the big house on the hill"})

        result = await manager.process_order(Order(items=[item]), bad)

        assert result.code == "UNPARSEABLE_ADDRESS"
        assert result.type == ErrorType.VALIDATION_FAILED
        assert fake_api.calls == []

    @pytest.mark.asyncio
    async def test_failed_customer_check_keeps_earlier_flag(self, manager, fake_api, customer, item):
        order = Order(items=[item])
        order.progress.has_customer_info = True

        result = await manager.process_order(order, customer.model_copy(update={"email": "nope"}))

        assert result.code == "INVALID_EMAIL"
        assert order.progress.has_customer_info is True

    @pytest.mark.asyncio
    async def test_expired_card_keeps_earlier_payment_flag(self, manager, fake_api, customer, item, payment):
        order = Order(items=[item], payment_method=payment.model_copy(update={"expiry_date": "01/20"}))
        order.progress.has_valid_payment = True

        result = await manager.process_order(order, customer)

        assert result.code == "CARD_EXPIRED"
        assert order.progress.has_valid_payment is True

    @pytest.mark.asyncio
    async def test_optional_fields_may_be_empty(self, fake_api, repository, rate_limiter, customer, item):
        manager = OrderManager(
            api=fake_api,
            repository=repository,
            rate_limiter=rate_limiter,
            ordering_config=OrderingConfig(requires_email=False, requires_customer_name=False),
            today=lambda: TODAY,
        )

        result = await manager.process_order(Order(items=[item]), customer.model_copy(update={"email": "", "name": ""}))

        assert isinstance(result, Order)
        assert result.progress.has_customer_info is True


class TestSelectDeliveryStore:

    def test_nearest_open_store(self):
        stores = [open_store("far", 5.0), open_store("near", 0.8), open_store("mid", 2.0)]
        assert select_delivery_store(stores).store_id == "near"

    def test_skips_stores_not_taking_delivery(self):
        no_delivery = RemoteStore.model_validate({
            "StoreID": "closest",
            "IsOnlineCapable": True,
            "IsDeliveryStore": True,
            "IsOpen": True,
            "ServiceIsOpen": {"Delivery": False},
            "MinDistance": 0.1,
        })
        assert select_delivery_store([no_delivery, open_store("ok", 3.0)]).store_id == "ok"

    def test_none_when_empty(self):
        assert select_delivery_store([]) is None


# =============================================================================
# Conversation Guidance
# =============================================================================

class TestNextRequiredAction:

    def test_no_order(self, customer):
        assert OrderManager.get_next_required_action(None, customer) == NextAction.START_ORDER

    def test_missing_customer_fields(self, customer, item):
        order = Order(items=[item])
        assert OrderManager.get_next_required_action(order, None) == NextAction.PROVIDE_CUSTOMER_INFO
        partial = customer.model_copy(update={"email": ""})
        assert OrderManager.get_next_required_action(order, partial) == NextAction.PROVIDE_CUSTOMER_INFO

    def test_no_items(self, customer):
        assert OrderManager.get_next_required_action(Order(), customer) == NextAction.ADD_ITEMS

    def test_needs_valid_payment(self, customer, item, payment):
        order = Order(items=[item])
        assert OrderManager.get_next_required_action(order, customer) == NextAction.PROVIDE_PAYMENT
        order.payment_method = payment
        assert OrderManager.get_next_required_action(order, customer) == NextAction.PROVIDE_PAYMENT

    def test_confirm_then_complete(self, customer, item, payment):
        order = Order(items=[item], payment_method=payment)
        order.progress.has_valid_payment = True
        assert OrderManager.get_next_required_action(order, customer) == NextAction.CONFIRM_ORDER
        order.progress.is_confirmed = True
        assert OrderManager.get_next_required_action(order, customer) == NextAction.ORDER_COMPLETE

    def test_repeated_calls_agree(self, customer, item):
        order = Order(items=[item])
        results = {OrderManager.get_next_required_action(order, customer) for _ in range(3)}
        assert results == {NextAction.PROVIDE_PAYMENT}

    def test_dialogue(self):
        text = OrderManager.get_next_required_action_dialogue(None, None)
        assert "order a pizza" in text

    def test_only_required_fields_are_asked_for(self, customer, item):
        config = OrderingConfig(requires_email=False)
        order = Order(items=[item])
        no_email = customer.model_copy(update={"email": ""})

        assert OrderManager.get_next_required_action(order, no_email) == NextAction.PROVIDE_CUSTOMER_INFO
        assert OrderManager.get_next_required_action(order, no_email, config) == NextAction.PROVIDE_PAYMENT


class TestOrderSummary:

    def test_summary_lists_items_and_total(self, manager, customer):
        order = Order(
            items=[OrderItem(size="LARGE", crust="THIN", toppings=[Topping(code="PEPPERONI", amount=2)], quantity=2)],
            total=31.98,
        )
        summary = manager.get_order_summary(order, customer)

        assert "Order for: Jo" in summary
        assert "Delivery to: 12 A St, Springfield IL" in summary
        assert "1. 2x Large Thin Pizza" in summary
        assert "Extra Pepperoni (Whole Pizza) - Standard Topping" in summary
        assert "Total: $31.98" in summary

    def test_empty(self, manager):
        assert manager.get_order_summary() == "No order details available"

    def test_estimate_total(self, manager, item):
        assert manager.estimate_total(Order(items=[item])) == 13.99
        assert manager.estimate_total(Order(items=[OrderItem(size="HUGE", crust="THIN")])) is None


# =============================================================================
# Persistence-Aware Operations
# =============================================================================

class TestOrderLifecycle:

    def test_initialize_order(self, manager):
        order = manager.initialize_order("u1")
        assert order.status == OrderStatus.NEW
        assert order.payment_status == PaymentStatus.NOT_SET
        assert manager.get_order("u1") == order

    def test_save_item_awaits_payment(self, manager, item):
        manager.initialize_order("u1")

        result = manager.save_item("u1", item)

        assert result.status == OrderStatus.AWAITING_PAYMENT
        assert manager.get_order("u1").items == [item]

    def test_save_item_replaces_last(self, manager, item, pepperoni_item):
        manager.initialize_order("u1")
        manager.save_item("u1", item)

        manager.save_item("u1", pepperoni_item, replace_last=True)

        assert manager.get_order("u1").items == [pepperoni_item]

    def test_save_invalid_item(self, manager):
        manager.initialize_order("u1")

        result = manager.save_item("u1", OrderItem(size="LARGE", crust="DEEP"))

        assert result.code == "INVALID_CRUST"
        assert manager.get_order("u1").items == []

    def test_save_item_without_order(self, manager, item):
        assert manager.save_item("u1", item).code == "NO_ACTIVE_ORDER"

    def test_valid_payment_moves_to_processing(self, manager, item, payment):
        manager.initialize_order("u1")
        manager.save_item("u1", item)

        result = manager.update_payment("u1", payment)

        assert result.status == OrderStatus.PROCESSING
        assert result.payment_status == PaymentStatus.VALID
        assert result.progress.has_valid_payment is True
        assert manager.get_order("u1").payment_method == payment

    def test_item_after_payment_is_processing(self, manager, item, payment):
        manager.initialize_order("u1")
        manager.update_payment("u1", payment)

        assert manager.save_item("u1", item).status == OrderStatus.PROCESSING

    def test_invalid_payment_not_stored(self, manager, payment):
        manager.initialize_order("u1")

        result = manager.update_payment("u1", payment.model_copy(update={"card_number": "4111"}))

        assert result.code == "INVALID_CARD_NUMBER"
        stored = manager.get_order("u1")
        assert stored.payment_status == PaymentStatus.INVALID
        assert stored.payment_method is None

    def test_update_customer_merges_fields(self, manager):
        manager.initialize_order("u1")
        manager.update_customer("u1", name="Jo", phone="555-123-4567")

        result = manager.update_customer("u1", email="a@b.com", phone="")

        assert isinstance(result, Customer)
        assert result.phone == "555-123-4567"
        assert result.email == "a@b.com"
        assert manager.get_order("u1").progress.has_customer_info is False

    def test_update_customer_complete_sets_flag(self, manager):
        manager.initialize_order("u1")

        manager.update_customer(
            "u1", name="Jo", phone="555-123-4567", email="a@b.com", address="12 A St, Springfield IL"
        )

        assert manager.get_order("u1").progress.has_customer_info is True

    def test_update_customer_invalid(self, manager):
        manager.initialize_order("u1")

        result = manager.update_customer(
            "u1", name="Jo", phone="12", email="a@b.com", address="12 A St, Springfield IL"
        )

        assert result.code == "INVALID_PHONE"
        assert manager.get_order("u1").progress.has_customer_info is False

    @pytest.mark.asyncio
    async def test_submit_order_persists_confirmation(self, manager, repository, customer, item, payment):
        manager.initialize_order("u1")
        repository.save_customer("u1", customer)
        manager.save_item("u1", item)
        manager.update_payment("u1", payment)

        result = await manager.submit_order("u1")

        assert result.status == OrderStatus.CONFIRMED
        stored = manager.get_order("u1")
        assert stored.status == OrderStatus.CONFIRMED
        assert stored.total == 21.47
        assert stored.store_id == "4336"

    @pytest.mark.asyncio
    async def test_submit_failure_still_persists_progress(self, manager, fake_api, repository, customer, item):
        fake_api.validate_response = failure_response("Store closed")
        manager.initialize_order("u1")
        repository.save_customer("u1", customer)
        manager.save_item("u1", item)

        result = await manager.submit_order("u1")

        assert result.code == "API_VALIDATION_FAILED"
        stored = manager.get_order("u1")
        assert stored.progress.has_customer_info is True
        assert stored.store_id == "4336"

    @pytest.mark.asyncio
    async def test_submit_without_order(self, manager):
        assert (await manager.submit_order("u1")).code == "NO_ACTIVE_ORDER"

    def test_cancel_order(self, manager, item):
        manager.initialize_order("u1")
        manager.save_item("u1", item)

        result = manager.cancel_order("u1")

        assert result.status == OrderStatus.CANCELLED
        assert manager.save_item("u1", item).code == "ORDER_CANCELLED"

    def test_cannot_cancel_confirmed(self, manager, repository):
        repository.save_order("u1", Order(status=OrderStatus.CONFIRMED))
        assert manager.cancel_order("u1").code == "ORDER_ALREADY_CONFIRMED"

    @pytest.mark.asyncio
    async def test_address_change_finds_a_new_store(self, manager, fake_api, repository, customer, item):
        manager.initialize_order("u1")
        manager.update_customer("u1", **customer.model_dump(include={"name", "phone", "email", "address"}))
        manager.save_item("u1", item)
        await manager.submit_order("u1")
        assert manager.get_order("u1").store_id == "4336"

        manager.update_customer("u1", address="900 Lake Shore Dr, Chicago IL 60611")
        assert manager.get_order("u1").store_id == ""

        fake_api.stores = [open_store("7777")]
        fake_api.calls.clear()
        await manager.submit_order("u1")

        assert fake_api.calls[0] == "find_stores"
        assert fake_api.requests["find_stores"] == ("900 Lake Shore Dr", "Chicago", "IL")
        assert fake_api.requests["validate_order"]["StoreID"] == "7777"
        assert manager.get_order("u1").store_id == "7777"

    def test_same_address_keeps_store(self, manager, repository, customer):
        repository.save_customer("u1", customer)
        repository.save_order("u1", Order(store_id="4336"))

        manager.update_customer("u1", address=customer.address, phone="555-987-6543")

        assert manager.get_order("u1").store_id == "4336"

    def test_new_address_drops_stale_structured_address(self, manager, repository, customer):
        structured = DeliveryAddress(street="12 A St", city="Springfield", region="IL")
        repository.save_customer("u1", customer.model_copy(update={"delivery_address": structured}))
        repository.save_order("u1", Order(store_id="4336"))

        result = manager.update_customer("u1", address="900 Lake Shore Dr, Chicago IL 60611")

        assert result.delivery_address is None
        assert manager.get_customer("u1").delivery_address is None
        assert manager.get_order("u1").store_id == ""

    def test_address_change_on_confirmed_order_keeps_store(self, manager, repository, customer):
        repository.save_customer("u1", customer)
        repository.save_order("u1", Order(status=OrderStatus.CONFIRMED, store_id="4336"))

        manager.update_customer("u1", address="900 Lake Shore Dr, Chicago IL 60611")

        assert manager.get_order("u1").store_id == "4336"

    def test_invalid_update_keeps_customer_flag(self, manager, customer):
        manager.initialize_order("u1")
        manager.update_customer("u1", **customer.model_dump(include={"name", "phone", "email", "address"}))

        result = manager.update_customer("u1", phone="12")

        assert result.code == "INVALID_PHONE"
        assert manager.get_order("u1").progress.has_customer_info is True

    def test_rejected_card_keeps_payment_flag(self, manager, item, payment):
        manager.initialize_order("u1")
        manager.save_item("u1", item)
        manager.update_payment("u1", payment)

        result = manager.update_payment("u1", payment.model_copy(update={"cvv": "1"}))

        assert result.code == "INVALID_CVV"
        assert manager.get_order("u1").progress.has_valid_payment is True

    def test_rejected_replacement_keeps_card_on_file(self, manager, item, payment):
        manager.initialize_order("u1")
        manager.save_item("u1", item)
        manager.update_payment("u1", payment)

        manager.update_payment("u1", payment.model_copy(update={"card_number": "4111"}))

        stored = manager.get_order("u1")
        assert stored.payment_method.card_number == payment.card_number
        assert stored.payment_status == PaymentStatus.VALID
        assert stored.status == OrderStatus.PROCESSING
        assert manager.has_card_on_file(stored) is True

    def test_payment_attempts_are_limited(self, manager, payment):
        manager.initialize_order("u1")
        bad = payment.model_copy(update={"cvv": "1"})
        for _ in range(3):
            assert manager.update_payment("u1", bad).code == "INVALID_CVV"

        result = manager.update_payment("u1", payment)

        assert result.type == ErrorType.PAYMENT_FAILED
        assert result.code == "PAYMENT_ATTEMPTS_EXCEEDED"
        stored = manager.get_order("u1")
        assert stored.failed_payment_attempts == 3
        assert stored.payment_method is None

    def test_valid_card_resets_attempts(self, manager, payment):
        manager.initialize_order("u1")
        bad = payment.model_copy(update={"cvv": "1"})
        manager.update_payment("u1", bad)
        manager.update_payment("u1", bad)

        manager.update_payment("u1", payment)

        assert manager.get_order("u1").failed_payment_attempts == 0
        assert manager.update_payment("u1", bad).code == "INVALID_CVV"

    def test_attempt_limit_comes_from_config(self, fake_api, repository, payment):
        manager = OrderManager(
            api=fake_api,
            repository=repository,
            ordering_config=OrderingConfig(max_failed_attempts=1),
            today=lambda: TODAY,
        )
        manager.initialize_order("u1")
        manager.update_payment("u1", payment.model_copy(update={"cvv": "1"}))

        assert manager.update_payment("u1", payment).code == "PAYMENT_ATTEMPTS_EXCEEDED"

    def test_optional_field_completes_customer(self, fake_api, repository):
        manager = OrderManager(
            api=fake_api,
            repository=repository,
            ordering_config=OrderingConfig(requires_email=False),
            today=lambda: TODAY,
        )
        manager.initialize_order("u1")

        result = manager.update_customer("u1", name="Jo", phone="555-123-4567", address="12 A St, Springfield IL")

        assert isinstance(result, Customer)
        assert manager.get_order("u1").progress.has_customer_info is True


class TestStoreAvailability:

    @pytest.mark.asyncio
    async def test_available(self, manager, fake_api):
        result = await manager.check_store_availability("12 A St, Springfield IL 62701")

        assert result.is_available is True
        assert result.store_id == "4336"
        assert "1.2 miles" in result.message
        assert fake_api.requests["find_stores"] == ("12 A St", "Springfield", "IL")

    @pytest.mark.asyncio
    async def test_no_stores(self, manager, fake_api):
        fake_api.stores = []
        result = await manager.check_store_availability("12 A St, Springfield IL")
        assert result.is_available is False

    @pytest.mark.asyncio
    async def test_unparseable_address(self, manager, fake_api):
        result = await manager.check_store_availability("nowhere")
        assert result.is_available is False
        assert fake_api.calls == []


class TestTrackOrder:

    @pytest.mark.asyncio
    async def test_returns_status(self, manager, fake_api, repository, customer):
        repository.save_customer("u1", customer)
        fake_api.tracking = TrackingStatus(order_status="Out for delivery", driver_name="Sam")

        result = await manager.track_order("u1")

        assert result.order_status == "Out for delivery"
        assert fake_api.requests["track_order"] == "555-123-4567"

    @pytest.mark.asyncio
    async def test_requires_phone(self, manager):
        assert (await manager.track_order("u1")).code == "MISSING_PHONE"

    @pytest.mark.asyncio
    async def test_no_active_orders(self, manager, repository, customer):
        repository.save_customer("u1", customer)
        assert (await manager.track_order("u1")).code == "NO_ACTIVE_TRACKING"

    @pytest.mark.asyncio
    async def test_tracker_failure(self, manager, fake_api, repository, customer):
        async def explode(phone):
            raise RuntimeError("tracker down")

        fake_api.track_order = explode
        repository.save_customer("u1", customer)

        result = await manager.track_order("u1")

        assert result.code == "TRACKING_UNAVAILABLE"
        assert result.type == ErrorType.SYSTEM_ERROR
