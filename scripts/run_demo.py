#!/usr/bin/env python3
"""
run_demo.py - End-to-end walk through the storefront core
- Signs in as the demo retailer
- Loads the catalog, adds to cart, bumps into the stock limit
- Validates and checks out the cart (mock payment session URL)
- Accepts, ships and delivers an order item, then tries an illegal transition

Runs against the in-process mock API by default, or a live API with --base-url.
"""
import argparse
import asyncio
from typing import Optional

import httpx

from storefront.api.client import RetailerApiClient
from storefront.cart.engine import CartEngine
from storefront.core.logs import setup_logging
from storefront.mockapi.core.config import settings as mock_settings
from storefront.notifications import Level, Notifier
from storefront.orders.board import OrderBoard
from storefront.orders.lifecycle import OrderAction

COLORS = {Level.INFO: "\033[94m", Level.SUCCESS: "\033[92m", Level.ERROR: "\033[91m"}


class DemoRunner:
    def __init__(self, base_url: Optional[str], email: str, password: str):
        transport = None
        if base_url is None:
            from storefront.mockapi.main import app

            transport = httpx.ASGITransport(app=app)
            base_url = "http://testserver"
        self.client = RetailerApiClient(base_url, transport=transport)
        self.notifier = Notifier(limit=50)
        self.cart = CartEngine(self.client, self.notifier)
        self.board = OrderBoard(self.client, self.notifier)
        self.email = email
        self.password = password
        self._shown = 0

    # ---------- helpers ----------
    def show_step(self, title: str):
        print(f"\n=== {title} ===")

    def flush_toasts(self):
        toasts = [t for t in self.notifier.toasts if t.id > self._shown]
        for t in toasts:
            print(f"   toast[{COLORS[t.level]}{t.level.value}\033[0m] {t.message}")
            self._shown = t.id
        if self.notifier.redirect_to:
            print(f"   redirect -> {self.notifier.redirect_to}")

    def show_cart(self):
        for line in self.cart.view():
            print(f"   - {line.product.name.ljust(10)} x{line.quantity}  (stock {line.product.stock_qty})")
        print(f"   total: {self.cart.total}")

    def show_orders(self):
        for order in self.board.orders:
            for item in order.items:
                controls = ", ".join(c.label for c in self.board.controls_for(item)) or "-"
                print(f"   - order {order.id} item {item.id}: {item.status.value.ljust(9)} [{controls}]")

    # ---------- flow ----------
    async def run(self):
        print("Starting storefront demo")
        print("=" * 50)
        try:
            self.show_step("Sign in")
            await self.client.sign_in(self.email, self.password)
            print(f"   signed in as {self.email}")

            self.show_step("Catalog + cart")
            await self.cart.load_catalog()
            await self.cart.load()
            rice = next(line for line in self.cart.view(in_cart_only=False) if line.product.name == "Rice")
            await self.cart.add(rice.product_id)
            for _ in range(rice.product.stock_qty):
                await self.cart.increment(rice.product_id)
            self.flush_toasts()
            self.show_cart()

            self.show_step("Checkout")
            url = await self.cart.checkout("http://localhost/checkout/success", "http://localhost/cart")
            self.flush_toasts()
            print(f"   payment redirect: {url}")

            self.show_step("Orders")
            await self.board.load()
            self.show_orders()
            pending = next(i for i in self.board.items() if i.status.value == "pending")
            for action in (OrderAction.ACCEPT, OrderAction.SHIP, OrderAction.DELIVER):
                await self.board.perform(pending.id, action)
            await self.board.perform(pending.id, OrderAction.REJECT)
            self.flush_toasts()
            self.show_orders()
        finally:
            await self.client.aclose()


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--base-url", default=None, help="Live retailer API; defaults to the in-process mock")
    ap.add_argument("--email", default=mock_settings.RETAILER_EMAIL)
    ap.add_argument("--password", default=mock_settings.RETAILER_PASSWORD)
    ap.add_argument("--log-level", default=None)
    args = ap.parse_args()
    setup_logging(args.log_level)
    asyncio.run(DemoRunner(args.base_url, args.email, args.password).run())


if __name__ == "__main__":
    main()
