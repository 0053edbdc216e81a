"""Retailer order board: lists orders and drives item status changes.

The board never predicts the next status. After a successful update it
re-fetches the whole order list and renders whatever the server returns.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from storefront.api.client import RetailerApiClient
from storefront.errors import ApiError, AuthenticationRequired, Superseded, TransitionNotAllowed
from storefront.loader import LatestOnly
from storefront.notifications import Notifier
from storefront.orders import lifecycle
from storefront.orders.lifecycle import OrderAction
from storefront.schemas import Order, OrderItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Control:
    action: OrderAction
    label: str
    enabled: bool


class OrderBoard:
    def __init__(self, client: RetailerApiClient, notifier: Notifier):
        self._client = client
        self._notifier = notifier
        self.orders: List[Order] = []
        self.loading = False
        self.current_order: Optional[Order] = None
        self._busy: Set[int] = set()
        self._detail = LatestOnly()

    async def load(self) -> bool:
        self.loading = True
        try:
            self.orders = await self._client.list_orders()
        except AuthenticationRequired as exc:
            self._notifier.require_sign_in(exc.sign_in_url)
            return False
        except ApiError as exc:
            self._notifier.error(exc.message)
            return False
        finally:
            self.loading = False
        logger.debug("loaded %d orders", len(self.orders))
        return True

    async def open_order(self, order_id: int) -> Optional[Order]:
        """Load one order's detail; a newer call cancels this one and it returns None."""
        try:
            order = await self._detail.run(self._client.get_order(order_id))
        except Superseded:
            logger.debug("detail load for order %s superseded", order_id)
            return None
        except AuthenticationRequired as exc:
            self._notifier.require_sign_in(exc.sign_in_url)
            return None
        except ApiError as exc:
            self._notifier.error(exc.message)
            return None
        self.current_order = order
        return order

    def items(self) -> List[OrderItem]:
        return [item for order in self.orders for item in order.items]

    def find_item(self, item_id: int) -> Optional[OrderItem]:
        for item in self.items():
            if item.id == item_id:
                return item
        return None

    def is_busy(self, item_id: int) -> bool:
        return item_id in self._busy

    def controls_for(self, item: OrderItem) -> List[Control]:
        if lifecycle.is_terminal(item.status):
            return []
        enabled = not self.is_busy(item.id)
        return [
            Control(action=a, label=lifecycle.action_label(a, item.status), enabled=enabled)
            for a in lifecycle.allowed_actions(item.status)
        ]

    async def perform(self, item_id: int, action: OrderAction) -> bool:
        item = self.find_item(item_id)
        if item is None:
            self._notifier.error(f"Order item {item_id} not found")
            return False
        if self.is_busy(item_id):
            logger.debug("item %s already has a request in flight", item_id)
            return False
        target = lifecycle.ACTION_TARGETS[OrderAction(action)]
        try:
            lifecycle.check_transition(item.status, target)
        except TransitionNotAllowed as exc:
            self._notifier.error(str(exc))
            return False

        self._busy.add(item_id)
        try:
            try:
                await self._client.update_order_item_status(item_id, target)
            except AuthenticationRequired as exc:
                self._notifier.require_sign_in(exc.sign_in_url)
                return False
            except ApiError as exc:
                self._notifier.error(exc.message)
                return False
            logger.info("order item %s -> %s", item_id, target.value)
            self._notifier.success(f"Order item {item_id} marked as {target.value}")
            await self.load()
            return True
        finally:
            self._busy.discard(item_id)
