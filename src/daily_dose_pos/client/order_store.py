"""
Локальное состояние заказов на кассе/кухне.

Держит корзину, список заказов в работе и офлайн-очередь. Согласует
оптимистичные изменения с ответами HTTP и push-событиями, которые могут
прийти в любом порядке:

- оптимистичный заказ заменяется подтверждённым, если push с тем же
  серверным id ещё не пришёл, иначе просто удаляется;
- push для заказа с неподтверждённой локальной сменой статуса
  игнорируется до ответа сервера;
- при обрыве сети заказ уходит в офлайн-очередь и отправляется при
  переподключении по одному, с проверкой на дубликаты.
"""
import asyncio
import enum
import json
import logging
import random
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from daily_dose_pos.client.api import PosApiClient
from daily_dose_pos.client.errors import ApiError, ErrorKind, classify
from daily_dose_pos.core.order_state import (
    DrinkTicketEnum,
    OrderStatusEnum,
    check_transition,
    drink_ticket_on_create,
    initial_payment_status,
)
from daily_dose_pos.core.pricing import CENT, line_total, order_total, to_cents, validate_selection
from daily_dose_pos.errors import NotFoundError
from daily_dose_pos.schemas.menu import GlobalAddonSection, MenuItemRead, MenuRead
from daily_dose_pos.schemas.order import MenuItemSnapshot, OrderItemRead, OrderRead
from daily_dose_pos.utils import as_utc, utcnow

logger = logging.getLogger(__name__)

LOCAL_ORDER_PREFIX = "ORD"
_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

_INACTIVE = (OrderStatusEnum.closed, OrderStatusEnum.cancelled, OrderStatusEnum.voided)

# (level, message): info | success | warning | error
Notifier = Callable[[str, str], None]


class OrderOrigin(str, enum.Enum):
    local = "local"
    server = "server"


@dataclass(eq=False)
class TrackedOrder:
    order: OrderRead
    origin: OrderOrigin = OrderOrigin.server

    @property
    def id(self) -> str:
        return self.order.id

    @property
    def confirmed(self) -> bool:
        return self.origin == OrderOrigin.server


@dataclass
class CartLine:
    menu_item: MenuItemRead
    quantity: int = 1
    selected_flavors: List[str] = field(default_factory=list)

    def matches(self, item_id: str, flavors: Optional[Sequence[str]]) -> bool:
        return self.menu_item.id == item_id and sorted(self.selected_flavors) == sorted(flavors or [])


def _base36(number: int) -> str:
    digits = ""
    while number:
        number, rem = divmod(number, 36)
        digits = _BASE36[rem] + digits
    return digits or "0"


def provisional_order_id() -> str:
    return f"{LOCAL_ORDER_PREFIX}-{_base36(int(time.time() * 1000))}{_base36(random.randint(0, 36 ** 3 - 1)).zfill(3)}"


def _log_notice(level: str, message: str) -> None:
    logger.log(logging.ERROR if level == "error" else logging.INFO, message)


class OrderStore:
    def __init__(
        self,
        api: PosApiClient,
        *,
        global_addons: Sequence[GlobalAddonSection] = (),
        queue_path: Optional[str | Path] = None,
        notify: Optional[Notifier] = None,
    ):
        self.api = api
        self.global_addons: List[GlobalAddonSection] = list(global_addons)
        self.current_order: List[CartLine] = []
        self.orders: List[TrackedOrder] = []
        self.offline_queue: List[Dict[str, Any]] = []
        # id заказа -> число локальных правок в полёте
        self.pending_updates: Counter[str] = Counter()
        self._sync_lock = asyncio.Lock()
        self.queue_path = Path(queue_path) if queue_path else None
        self.notify: Notifier = notify or _log_notice
        self._load_queue()

    # --- корзина ---

    def add_to_order(self, item: MenuItemRead, flavors: Optional[Sequence[str]] = None) -> CartLine:
        """Добавляет позицию; одинаковые позиция+опции складываются в одну строку."""
        flavors = list(flavors or [])
        validate_selection(item, flavors, self.global_addons)

        for line in self.current_order:
            if line.matches(item.id, flavors):
                line.quantity += 1
                return line

        line = CartLine(menu_item=item, quantity=1, selected_flavors=flavors)
        self.current_order.append(line)
        return line

    def remove_from_order(self, item_id: str, flavors: Optional[Sequence[str]] = None) -> None:
        self.current_order = [l for l in self.current_order if not l.matches(item_id, flavors)]

    def update_quantity(self, item_id: str, flavors: Optional[Sequence[str]], quantity: int) -> None:
        if quantity <= 0:
            self.remove_from_order(item_id, flavors)
            return
        for line in self.current_order:
            if line.matches(item_id, flavors):
                line.quantity = quantity

    def clear_order(self) -> None:
        self.current_order = []

    def get_order_total(self) -> Decimal:
        return to_cents(order_total(self.current_order, self.global_addons))

    # --- поиск ---

    def get_order(self, order_id: str) -> Optional[OrderRead]:
        tracked = self._find_confirmed(order_id) or self._find_provisional(order_id)
        return tracked.order if tracked else None

    def _find_confirmed(self, order_id: str) -> Optional[TrackedOrder]:
        return next((t for t in self.orders if t.confirmed and t.id == order_id), None)

    def _find_provisional(self, order_id: str) -> Optional[TrackedOrder]:
        return next((t for t in self.orders if not t.confirmed and t.id == order_id), None)

    def _remove(self, tracked: TrackedOrder) -> None:
        self.orders = [t for t in self.orders if t is not tracked]

    # --- создание заказа ---

    def _build_payload(self, lines: List[CartLine], **details) -> Dict[str, Any]:
        total = to_cents(order_total(lines, self.global_addons))
        return {
            "id": provisional_order_id(),
            "items": [
                {
                    "menuItem": {
                        "id": l.menu_item.id,
                        "name": l.menu_item.name,
                        "price": float(l.menu_item.price),
                        "type": l.menu_item.type,
                        "emoji": l.menu_item.emoji,
                    },
                    "quantity": l.quantity,
                    "selectedFlavors": list(l.selected_flavors),
                }
                for l in lines
            ],
            "total": float(total),
            "createdAt": utcnow().isoformat(),
            "customerName": details.get("customer_name") or "Guest",
            "tableNumber": details.get("table_number"),
            "beeperNumber": details.get("beeper_number"),
            "paymentMethod": details.get("payment_method") or "Cash",
            "amountTendered": details.get("amount_tendered"),
            "changeAmount": details.get("change_amount"),
            "orderType": details.get("order_type") or "dine-in",
            "isTest": False,
        }

    def _optimistic_order(self, payload: Dict[str, Any], lines: List[CartLine]) -> OrderRead:
        items = [
            OrderItemRead(
                menu_item=MenuItemSnapshot.model_validate(p["menuItem"]),
                quantity=l.quantity,
                selected_flavors=list(l.selected_flavors),
                line_total=to_cents(line_total(l.menu_item, l.selected_flavors, l.quantity, self.global_addons)),
            )
            for p, l in zip(payload["items"], lines)
        ]
        return OrderRead(
            id=payload["id"],
            items=items,
            total=Decimal(str(payload["total"])),
            status=OrderStatusEnum.new,
            payment_status=initial_payment_status(payload["paymentMethod"]),
            payment_method=payload["paymentMethod"],
            amount_tendered=payload["amountTendered"],
            change_amount=payload["changeAmount"],
            customer_name=payload["customerName"],
            table_number=payload["tableNumber"],
            beeper_number=payload["beeperNumber"],
            order_type=payload["orderType"],
            drink_ticket=drink_ticket_on_create(i.menu_item.type for i in items),
            created_at=datetime.fromisoformat(payload["createdAt"]),
        )

    async def submit_order(
        self,
        *,
        customer_name: Optional[str] = None,
        table_number: Optional[int] = None,
        beeper_number: Optional[int] = None,
        payment_method: str = "Cash",
        amount_tendered: Optional[float] = None,
        change_amount: Optional[float] = None,
        order_type: str = "dine-in",
    ) -> Optional[TrackedOrder]:
        """
        Оформляет заказ из корзины.

        Заказ сразу появляется локально с временным id. Постоянная ошибка
        (403 «магазин закрыт», валидация, 5xx после повторов) откатывает его
        и пробрасывается вызывающему; обрыв сети кладёт заказ в офлайн-очередь.
        """
        if not self.current_order:
            return None

        lines = self.current_order
        self.current_order = []

        payload = self._build_payload(
            lines,
            customer_name=customer_name,
            table_number=table_number,
            beeper_number=beeper_number,
            payment_method=payment_method,
            amount_tendered=amount_tendered,
            change_amount=change_amount,
            order_type=order_type,
        )
        provisional = TrackedOrder(self._optimistic_order(payload, lines), origin=OrderOrigin.local)
        self.orders.insert(0, provisional)

        try:
            confirmed = await self.api.create_order(payload)
        except (ApiError, httpx.TransportError) as e:
            if classify(e) == ErrorKind.permanent:
                self._remove(provisional)
                self.notify("error", str(e))
                raise

            logger.info("Online submission of %s failed (%s), queuing offline", payload["id"], e)
            self.offline_queue.append(payload)
            self._save_queue()
            self.notify("warning", "Order saved locally. Will sync when online.")
            return provisional

        return self._confirm(provisional, confirmed)

    def _confirm(self, provisional: Optional[TrackedOrder], confirmed: OrderRead) -> TrackedOrder:
        existing = self._find_confirmed(confirmed.id)
        if existing is not None:
            # push order:new успел раньше ответа
            if provisional is not None:
                self._remove(provisional)
            return existing

        tracked = TrackedOrder(confirmed, origin=OrderOrigin.server)
        for idx, t in enumerate(self.orders):
            if t is provisional:
                self.orders[idx] = tracked
                break
        else:
            self.orders.insert(0, tracked)
        return tracked

    # --- офлайн-очередь ---

    def _looks_submitted(self, payload: Dict[str, Any]) -> bool:
        """
        Нечёткая проверка на дубликат: то же имя клиента, итог в пределах цента,
        то же число позиций и подтверждённый заказ новее поставленного в очередь.
        """
        queued_at = as_utc(datetime.fromisoformat(payload["createdAt"]))
        total = Decimal(str(payload.get("total") or 0))
        name = payload.get("customerName") or "Guest"
        item_count = len(payload.get("items") or [])

        for t in self.orders:
            if not t.confirmed:
                continue
            o = t.order
            if (
                o.customer_name == name
                and abs(o.total - total) < CENT
                and len(o.items) == item_count
                and as_utc(o.created_at) > queued_at
            ):
                return True
        return False

    async def sync_offline_orders(self) -> int:
        """
        Отправляет офлайн-очередь последовательно, в порядке постановки.
        Дубликаты пропускаются молча, отклонённые сервером удаляются из очереди,
        сетевые ошибки оставляют заказ до следующей синхронизации.
        Одновременные вызовы выполняются по очереди.
        """
        async with self._sync_lock:
            return await self._drain_offline_queue()

    async def _drain_offline_queue(self) -> int:
        if not self.offline_queue:
            return 0

        batch = list(self.offline_queue)
        self.notify("info", f"Syncing {len(batch)} offline orders...")

        remaining = []
        synced = 0
        for payload in batch:
            provisional = self._find_provisional(payload["id"])

            if self._looks_submitted(payload):
                logger.info("Offline order %s already submitted, skipping", payload["id"])
                if provisional is not None:
                    self._remove(provisional)
                continue

            try:
                confirmed = await self.api.create_order(payload)
            except httpx.TransportError:
                remaining.append(payload)
                continue
            except ApiError as e:
                logger.warning("Offline order %s rejected: %s", payload["id"], e)
                if provisional is not None:
                    self._remove(provisional)
                self.notify("error", f"Order {payload['id']} rejected: {e.detail}")
                continue

            self._confirm(provisional, confirmed)
            synced += 1
            self.notify("success", f"Order {payload['id']} synced!")

        # заказы, поставленные в очередь во время синхронизации, не теряем
        batch_ids = {p["id"] for p in batch}
        self.offline_queue = remaining + [p for p in self.offline_queue if p["id"] not in batch_ids]
        self._save_queue()
        return synced

    def _load_queue(self) -> None:
        if self.queue_path is None or not self.queue_path.exists():
            return
        try:
            self.offline_queue = json.loads(self.queue_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.error("Failed to read offline queue from %s", self.queue_path, exc_info=True)
            self.offline_queue = []

    def _save_queue(self) -> None:
        if self.queue_path is None:
            return
        self.queue_path.write_text(json.dumps(self.offline_queue), encoding="utf-8")

    # --- статусы ---

    async def update_order_status(self, order_id: str, status: OrderStatusEnum | str) -> OrderRead:
        """
        Оптимистичная смена статуса. Пока запрос в полёте, push-события
        по этому заказу игнорируются; при ошибке статус откатывается.
        """
        status = OrderStatusEnum(status)
        tracked = self._find_confirmed(order_id)
        if tracked is None:
            raise NotFoundError("Order not found")

        snapshot = tracked.order
        if not check_transition(snapshot.status, status, snapshot.payment_status, snapshot.payment_method):
            return snapshot

        tracked.order = snapshot.model_copy(update={"status": status})
        self._mark_pending(order_id)
        try:
            updated = await self.api.update_order_status(order_id, status.value)
        except (ApiError, httpx.TransportError) as e:
            logger.warning("Failed to update order %s status: %s", order_id, e)
            tracked.order = tracked.order.model_copy(update={"status": snapshot.status})
            self.notify("error", "Connection error. Reverting changes.")
            raise
        finally:
            self._unmark_pending(order_id)

        if order_id in self.pending_updates:
            # тикет напитка ещё в полёте: его локальное значение не трогаем
            updated = updated.model_copy(update={"drink_ticket": tracked.order.drink_ticket})
        tracked.order = updated
        if status == OrderStatusEnum.completed:
            self.notify("success", "Order completed!")
        return updated

    async def mark_as_paid(
        self,
        order_id: str,
        payment_method: str,
        amount_tendered: Optional[float] = None,
        change_amount: Optional[float] = None,
    ) -> OrderRead:
        tracked = self._find_confirmed(order_id)
        if tracked is None:
            raise NotFoundError("Order not found")

        try:
            updated = await self.api.mark_paid(order_id, payment_method, amount_tendered, change_amount)
        except (ApiError, httpx.TransportError):
            self.notify("error", "Failed to mark as paid")
            raise

        tracked.order = updated
        self.notify("success", "Order marked as paid")
        return updated

    # --- напиточные тикеты ---

    @property
    def drink_queue(self) -> List[OrderRead]:
        queue = [
            t.order for t in self.orders
            if t.order.drink_ticket == DrinkTicketEnum.pending and t.order.status not in _INACTIVE
        ]
        return sorted(queue, key=lambda o: as_utc(o.created_at))

    async def complete_drink_ticket(self, order_id: str) -> OrderRead:
        tracked = self._find_confirmed(order_id)
        if tracked is None:
            raise NotFoundError("Order not found")

        previous = tracked.order.drink_ticket
        tracked.order = tracked.order.model_copy(update={"drink_ticket": DrinkTicketEnum.done})
        self._mark_pending(order_id)
        try:
            updated = await self.api.complete_drink_ticket(order_id)
        except (ApiError, httpx.TransportError):
            tracked.order = tracked.order.model_copy(update={"drink_ticket": previous})
            self.notify("error", "Failed to complete drink ticket")
            raise
        finally:
            self._unmark_pending(order_id)

        if order_id in self.pending_updates:
            # смена статуса ещё в полёте: берём только тикет
            updated = tracked.order.model_copy(update={"drink_ticket": updated.drink_ticket})
        tracked.order = updated
        return updated

    def _mark_pending(self, order_id: str) -> None:
        self.pending_updates[order_id] += 1

    def _unmark_pending(self, order_id: str) -> None:
        self.pending_updates[order_id] -= 1
        if self.pending_updates[order_id] <= 0:
            del self.pending_updates[order_id]

    # --- синхронизация с сервером ---

    async def fetch_orders(self) -> None:
        """
        Перечитывает активные заказы. Заказы с неподтверждённой локальной
        правкой остаются локальными, неподтверждённые оптимистичные сохраняются.
        """
        try:
            incoming = await self.api.get_orders()
        except (ApiError, httpx.TransportError) as e:
            logger.warning("Failed to fetch orders: %s", e)
            return

        merged = []
        for order in incoming:
            local = self._find_confirmed(order.id) if order.id in self.pending_updates else None
            merged.append(local or TrackedOrder(order, origin=OrderOrigin.server))

        provisional = [t for t in self.orders if not t.confirmed]
        self.orders = provisional + merged

    def handle_order_new(self, data: Dict[str, Any]) -> None:
        order = self._parse_push(data)
        if order is None or self._find_confirmed(order.id) is not None:
            return
        self.orders.insert(0, TrackedOrder(order, origin=OrderOrigin.server))

    def handle_order_update(self, data: Dict[str, Any]) -> None:
        order = self._parse_push(data)
        if order is None:
            return
        if order.id in self.pending_updates:
            logger.debug("Ignoring push for %s: local update in flight", order.id)
            return

        tracked = self._find_confirmed(order.id)
        if tracked is not None:
            tracked.order = order
        elif order.status not in _INACTIVE:
            self.orders.insert(0, TrackedOrder(order, origin=OrderOrigin.server))

    async def refresh_menu(self) -> Optional[MenuRead]:
        """Перечитывает меню; глобальные add-on секции нужны для цен в корзине."""
        try:
            menu = await self.api.get_menu()
        except (ApiError, httpx.TransportError) as e:
            logger.warning("Failed to fetch menu: %s", e)
            return None
        self.global_addons = list(menu.global_addons)
        return menu

    async def handle_session_update(self, data: Optional[Dict[str, Any]] = None) -> None:
        await self.fetch_orders()

    async def handle_reconnect(self) -> None:
        """Пропущенные события не переигрываются: перечитываем всё и шлём очередь."""
        await self.fetch_orders()
        await self.sync_offline_orders()

    async def dispatch(self, event: str, data: Any = None) -> None:
        """Точка входа для realtime-событий вида {"event": ..., "data": ...}."""
        if event == "order:new":
            self.handle_order_new(data)
        elif event == "order:update":
            self.handle_order_update(data)
        elif event == "session:update":
            await self.handle_session_update(data)
        elif event == "menu:update":
            await self.refresh_menu()
        elif event == "settings:update" and (data or {}).get("key") == "global_addons":
            self._set_global_addons(data.get("value"))
        else:
            logger.debug("Unhandled realtime event %s", event)

    def _set_global_addons(self, raw: Optional[str]) -> None:
        try:
            sections = json.loads(raw or "[]")
            self.global_addons = [GlobalAddonSection.model_validate(s) for s in sections]
        except (ValueError, ValidationError):
            logger.warning("Ignoring malformed global add-ons update")

    @staticmethod
    def _parse_push(data: Any) -> Optional[OrderRead]:
        try:
            return OrderRead.model_validate(data)
        except ValidationError:
            logger.warning("Ignoring malformed order push")
            return None
