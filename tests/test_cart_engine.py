"""Tests for the cart reconciliation engine against the mock retailer API."""

import asyncio
from decimal import Decimal

import pytest

from storefront.cart.engine import CartEngine
from storefront.mockapi.core.config import settings as mock_settings
from storefront.mockapi.store import memory_store
from storefront.notifications import Level
from storefront.schemas import CatalogProduct

EMAIL = mock_settings.RETAILER_EMAIL
CART = "/api/retailer/cart"

RICE, FLOUR, SUGAR, LENTILS = 1, 2, 3, 4


async def _engine(client, notifier):
    engine = CartEngine(client, notifier)
    assert await engine.load_catalog()
    assert await engine.load()
    return engine


class TestAdd:
    def test_add_product_not_in_cart(self, make_client, notifier, transport):
        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                assert engine.quantity(FLOUR) is None

                assert await engine.add(FLOUR) is True

                line = engine.line(FLOUR)
                assert line.quantity == 1
                assert line.loading is False
                assert [line.product_id for line in engine.cart_lines()] == [FLOUR]

        asyncio.run(scenario())
        assert transport.count("POST", CART) == 1
        assert memory_store.get_quantity(EMAIL, FLOUR) == 1

    def test_add_failure_resets_to_not_in_cart(self, make_client, notifier, transport):
        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                transport.fail_next("POST", CART, 503, "Service unavailable")

                assert await engine.add(FLOUR) is False

                line = engine.line(FLOUR)
                assert line.quantity is None
                assert line.loading is False
                assert engine.cart_lines() == []

        asyncio.run(scenario())
        assert notifier.latest.level == Level.ERROR
        assert notifier.latest.message == "Service unavailable"

    def test_add_out_of_stock_product_makes_no_request(self, make_client, notifier, transport):
        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                assert await engine.add(SUGAR) is False
                assert engine.quantity(SUGAR) is None

        asyncio.run(scenario())
        assert transport.count("POST", CART) == 0
        assert notifier.latest.message == "Sugar is out of stock"

    def test_add_on_line_in_cart_increments(self, make_client, notifier):
        memory_store.put_quantity(EMAIL, FLOUR, 2)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                assert await engine.add(FLOUR) is True
                assert engine.quantity(FLOUR) == 3

        asyncio.run(scenario())

    def test_unknown_product_raises(self, make_client, notifier):
        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                with pytest.raises(KeyError):
                    await engine.add(999)

        asyncio.run(scenario())


class TestIncrement:
    def test_increment_at_stock_limit_is_refused_locally(self, make_client, notifier, transport):
        memory_store.put_quantity(EMAIL, LENTILS, 2)  # stock_qty is 2

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                assert engine.quantity(LENTILS) == 2

                assert await engine.increment(LENTILS) is False
                assert engine.quantity(LENTILS) == 2

        asyncio.run(scenario())
        assert transport.count("POST", CART) == 0
        assert notifier.latest.level == Level.ERROR
        assert notifier.latest.message == "Lentils: Only 2 available"

    def test_failed_increment_restores_previous_quantity(self, make_client, notifier, transport):
        memory_store.put_quantity(EMAIL, FLOUR, 3)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                transport.fail_next("POST", CART, 500, "Server error")

                assert await engine.increment(FLOUR) is False
                assert engine.quantity(FLOUR) == 3
                assert engine.line(FLOUR).loading is False

        asyncio.run(scenario())
        assert memory_store.get_quantity(EMAIL, FLOUR) == 3
        assert notifier.messages(Level.ERROR) == ["Server error"]

    def test_server_rejection_message_is_shown(self, make_client, notifier):
        memory_store.put_quantity(EMAIL, FLOUR, 3)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                # stock dropped on the server after the cart was loaded
                memory_store.set_stock(FLOUR, 3)
                assert await engine.increment(FLOUR) is False
                assert engine.quantity(FLOUR) == 3

        asyncio.run(scenario())
        assert notifier.latest.message == "Only 3 Flour available"

    def test_server_quantity_wins_over_optimistic_guess(self, make_client, notifier):
        memory_store.put_quantity(EMAIL, FLOUR, 2)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                # another tab added more in the meantime
                memory_store.put_quantity(EMAIL, FLOUR, 5)

                assert await engine.increment(FLOUR) is True
                assert engine.quantity(FLOUR) == 6

        asyncio.run(scenario())

    def test_optimistic_value_and_busy_flag_while_in_flight(self, make_client, notifier, transport):
        memory_store.put_quantity(EMAIL, FLOUR, 3)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                transport.delay("POST", CART, 0.05)

                task = asyncio.create_task(engine.increment(FLOUR))
                await asyncio.sleep(0)
                line = engine.line(FLOUR)
                assert line.loading is True
                assert line.quantity == 4

                # second click while the first is outstanding
                assert await engine.increment(FLOUR) is False
                assert await engine.decrement(FLOUR) is False

                assert await task is True
                assert line.loading is False
                assert line.quantity == 4

        asyncio.run(scenario())
        assert transport.count("POST", CART) == 1

    def test_reload_mid_flight_keeps_line_busy(self, make_client, notifier, transport):
        memory_store.put_quantity(EMAIL, FLOUR, 3)
        memory_store.put_quantity(EMAIL, RICE, 1)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                transport.delay("POST", CART, 0.05)

                task = asyncio.create_task(engine.increment(FLOUR))
                await asyncio.sleep(0)
                memory_store.put_quantity(EMAIL, RICE, 2)
                assert await engine.load()

                line = engine.line(FLOUR)
                assert line.loading is True
                assert line.quantity == 4
                # lines without a request in flight still take the server value
                assert engine.quantity(RICE) == 2
                assert await engine.increment(FLOUR) is False

                assert await task is True
                assert line.loading is False
                assert line.quantity == 4

        asyncio.run(scenario())
        assert transport.count("POST", CART) == 1
        assert memory_store.get_quantity(EMAIL, FLOUR) == 4

    def test_unreadable_success_body_rolls_back(self, make_client, notifier, transport):
        memory_store.put_quantity(EMAIL, FLOUR, 3)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                transport.respond_next("POST", CART, 200, "<html>proxy</html>")

                assert await engine.increment(FLOUR) is False
                line = engine.line(FLOUR)
                assert line.quantity == 3
                assert line.loading is False

        asyncio.run(scenario())
        assert notifier.latest.level == Level.ERROR
        assert notifier.latest.message == "Failed to update cart"


class TestDecrement:
    def test_decrement_to_zero_removes_line(self, make_client, notifier):
        memory_store.put_quantity(EMAIL, RICE, 1)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                assert await engine.decrement(RICE) is True

                assert engine.line(RICE).quantity is None
                assert engine.quantity(RICE) is None
                assert RICE not in [line.product_id for line in engine.view()]

        asyncio.run(scenario())
        assert memory_store.get_cart(EMAIL) == []

    def test_failed_decrement_restores_previous_quantity(self, make_client, notifier, transport):
        memory_store.put_quantity(EMAIL, RICE, 1)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                transport.drop_next("POST", CART)

                assert await engine.decrement(RICE) is False
                assert engine.quantity(RICE) == 1
                assert engine.line(RICE).loading is False

        asyncio.run(scenario())
        assert notifier.latest.message == "Failed to update cart"

    def test_decrement_not_in_cart_is_noop(self, make_client, notifier, transport):
        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                assert await engine.decrement(RICE) is False

        asyncio.run(scenario())
        assert transport.count("POST", CART) == 0

    def test_settled_quantity_matches_server(self, make_client, notifier):
        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                for op in ("add", "increment", "increment", "decrement", "increment", "increment", "decrement"):
                    await getattr(engine, op)(FLOUR)
                    assert engine.quantity(FLOUR) == memory_store.get_quantity(EMAIL, FLOUR)
                assert engine.quantity(FLOUR) == 3

        asyncio.run(scenario())


class TestRemove:
    def test_remove_success(self, make_client, notifier, transport):
        memory_store.put_quantity(EMAIL, FLOUR, 4)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                assert await engine.remove(FLOUR) is True
                assert engine.quantity(FLOUR) is None
                assert engine.line(FLOUR).loading is False

        asyncio.run(scenario())
        assert transport.count("DELETE", f"{CART}/{FLOUR}") == 1
        assert notifier.latest.message == "Flour removed from cart"

    def test_remove_failure_keeps_line(self, make_client, notifier, transport):
        memory_store.put_quantity(EMAIL, FLOUR, 4)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                transport.fail_next("DELETE", f"{CART}/{FLOUR}", 500, "Could not remove")
                assert await engine.remove(FLOUR) is False
                line = engine.line(FLOUR)
                assert line.quantity == 4
                assert line.loading is False

        asyncio.run(scenario())
        assert notifier.latest.message == "Could not remove"


class TestLoadAndViews:
    def test_load_replaces_local_quantities(self, make_client, notifier):
        memory_store.put_quantity(EMAIL, RICE, 2)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                assert engine.quantity(RICE) == 2
                memory_store.clear_cart(EMAIL)
                memory_store.put_quantity(EMAIL, FLOUR, 1)
                assert await engine.load()
                assert engine.quantity(RICE) is None
                assert engine.quantity(FLOUR) == 1

        asyncio.run(scenario())

    def test_view_filters_and_sorts(self, make_client, notifier):
        memory_store.put_quantity(EMAIL, RICE, 1)
        memory_store.put_quantity(EMAIL, FLOUR, 2)
        memory_store.put_quantity(EMAIL, LENTILS, 1)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                def names(lines):
                    return [line.product.name for line in lines]

                assert names(engine.view()) == ["Flour", "Lentils", "Rice"]
                assert names(engine.view(query="l")) == ["Flour", "Lentils"]
                assert names(engine.view(sort="price", descending=True)) == ["Lentils", "Rice", "Flour"]
                assert names(engine.view(sort="quantity", descending=True))[0] == "Flour"
                assert "Sugar" in names(engine.view(in_cart_only=False))
                assert engine.total == Decimal("2.50") + Decimal("3.60") + Decimal("3.10")
                assert engine.item_count == 4

        asyncio.run(scenario())

    def test_catalog_refresh_keeps_quantities(self, make_client, notifier):
        memory_store.put_quantity(EMAIL, FLOUR, 2)

        async def scenario():
            async with make_client() as client:
                engine = await _engine(client, notifier)
                memory_store.set_stock(FLOUR, 7)
                assert await engine.load_catalog()
                line = engine.line(FLOUR)
                assert line.quantity == 2
                assert line.product.stock_qty == 7

        asyncio.run(scenario())


class TestAuthentication:
    def test_load_without_session_redirects(self, make_client, notifier):
        async def scenario():
            async with make_client(token=None) as client:
                engine = CartEngine(client, notifier)
                assert await engine.load() is False

        asyncio.run(scenario())
        assert notifier.redirect_to == "/signin"

    def test_mutation_401_rolls_back_and_redirects(self, make_client, notifier, transport):
        async def scenario():
            async with make_client(token="not-a-session") as client:
                engine = CartEngine(client, notifier)
                engine.seed_catalog([
                    CatalogProduct(id=FLOUR, name="Flour", price=Decimal("1.80"), stock_qty=10),
                ])
                assert await engine.add(FLOUR) is False
                assert engine.quantity(FLOUR) is None

        asyncio.run(scenario())
        assert notifier.redirect_to == "/signin"
        assert transport.count("POST", CART) == 1
