"""
Ценообразование позиций заказа.

Цена строки = (базовая цена + цены выбранных опций) * количество.
Опция ищется сначала в секциях самой позиции, затем (только для напитков)
в глобальных add-on секциях. Первое совпадение выигрывает, ненайденная
опция стоит 0. Округление только при выводе (to_cents), не в процессе.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Protocol, Sequence

from daily_dose_pos.errors import SelectionLimitError
from daily_dose_pos.schemas.menu import FlavorSection, GlobalAddonSection

ZERO = Decimal("0")
CENT = Decimal("0.01")


class PricedItem(Protocol):
    price: Decimal
    type: str

    @property
    def sections(self) -> List[FlavorSection]: ...


class PricedLine(Protocol):
    menu_item: PricedItem
    quantity: int
    selected_flavors: Optional[List[str]]


def to_cents(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def applicable_addons(item_type: str, global_addons: Sequence[GlobalAddonSection]) -> List[GlobalAddonSection]:
    if item_type != "drink":
        return []
    return [s for s in global_addons if s.applies_to(item_type)]


def find_option_price(name: str, sections: Iterable[FlavorSection]) -> Optional[Decimal]:
    for section in sections:
        for option in section.options:
            if option.name == name:
                return option.price
    return None


def option_price(item: PricedItem, name: str, global_addons: Sequence[GlobalAddonSection] = ()) -> Decimal:
    price = find_option_price(name, item.sections)
    if price is None:
        price = find_option_price(name, applicable_addons(item.type, global_addons))
    return price if price is not None else ZERO


def unit_price(
    item: PricedItem,
    selected_flavors: Optional[Sequence[str]],
    global_addons: Sequence[GlobalAddonSection] = (),
) -> Decimal:
    total = Decimal(item.price)
    for name in selected_flavors or ():
        total += option_price(item, name, global_addons)
    return total


def line_total(
    item: PricedItem,
    selected_flavors: Optional[Sequence[str]],
    quantity: int,
    global_addons: Sequence[GlobalAddonSection] = (),
) -> Decimal:
    return unit_price(item, selected_flavors, global_addons) * quantity


def order_total(lines: Iterable[PricedLine], global_addons: Sequence[GlobalAddonSection] = ()) -> Decimal:
    total = ZERO
    for line in lines:
        total += line_total(line.menu_item, line.selected_flavors, line.quantity, global_addons)
    return total


def validate_selection(
    item: PricedItem,
    selected_flavors: Sequence[str],
    global_addons: Sequence[GlobalAddonSection] = (),
) -> None:
    """
    Проверяет лимиты выбора по секциям (max).
    Вызывается при выборе опций, не при расчёте цены.
    Опция засчитывается в первую секцию, где она встречается.
    """
    sections = list(item.sections) + applicable_addons(item.type, global_addons)
    counts = [0] * len(sections)
    for name in selected_flavors:
        for idx, section in enumerate(sections):
            if name in section.option_names():
                counts[idx] += 1
                break

    for section, count in zip(sections, counts):
        if count > section.max:
            raise SelectionLimitError(
                f"'{section.name}' allows at most {section.max} option(s), got {count}"
            )
