from decimal import Decimal

import pytest

from daily_dose_pos.core.pricing import (
    line_total,
    option_price,
    order_total,
    to_cents,
    unit_price,
    validate_selection,
)
from daily_dose_pos.errors import SelectionLimitError
from daily_dose_pos.schemas.menu import FlavorSection, GlobalAddonSection, MenuItemRead, normalize_flavors


def _latte(**overrides) -> MenuItemRead:
    data = {
        "id": "latte",
        "name": "Latte",
        "price": "120.00",
        "category": "Coffee",
        "type": "drink",
        "flavors": [
            {"name": "Size", "max": 1, "options": [{"name": "Regular"}, {"name": "Large", "price": 15}]},
            {"name": "Shots", "max": 2, "options": [{"name": "Extra Shot", "price": 5}]},
        ],
    }
    data.update(overrides)
    return MenuItemRead.model_validate(data)


def _croissant() -> MenuItemRead:
    return MenuItemRead.model_validate({
        "id": "croissant",
        "name": "Croissant",
        "price": 85,
        "category": "Pastry",
        "type": "food",
        "flavors": ["Butter", "Chocolate"],
        "maxFlavors": 2,
    })


SYRUPS = GlobalAddonSection(
    name="Syrups",
    max=3,
    options=[{"name": "Vanilla", "price": 10}, {"name": "Large", "price": 99}],
)


class _Line:
    def __init__(self, menu_item, quantity, selected_flavors):
        self.menu_item = menu_item
        self.quantity = quantity
        self.selected_flavors = selected_flavors


def test_sectioned_options_add_to_base_price():
    latte = _latte()
    assert unit_price(latte, ["Large", "Extra Shot"]) == Decimal("140")
    assert line_total(latte, ["Large", "Extra Shot"], 2) == Decimal("280")


def test_unknown_option_costs_nothing():
    assert unit_price(_latte(), ["Oat Milk"]) == Decimal("120")


def test_flat_flavor_list_is_free():
    croissant = _croissant()
    assert unit_price(croissant, ["Chocolate"]) == Decimal("85")
    sections = croissant.sections
    assert len(sections) == 1
    assert sections[0].name == "Flavors"
    assert sections[0].max == 2


def test_item_sections_win_over_global_addons():
    # "Large" есть и в позиции (15), и в глобальной секции (99)
    assert option_price(_latte(), "Large", [SYRUPS]) == Decimal("15")


def test_global_addons_apply_to_drinks_only():
    assert unit_price(_latte(), ["Vanilla"], [SYRUPS]) == Decimal("130")
    assert unit_price(_croissant(), ["Vanilla"], [SYRUPS]) == Decimal("85")


def test_global_addon_allowed_types_filter():
    food_only = GlobalAddonSection(name="Sauces", allowed_types=["food"], options=[{"name": "Vanilla", "price": 7}])
    assert unit_price(_latte(), ["Vanilla"], [food_only]) == Decimal("120")


def test_first_match_wins_even_when_free():
    free_first = GlobalAddonSection(name="Promo", options=[{"name": "Vanilla", "price": 0}])
    assert unit_price(_latte(), ["Vanilla"], [free_first, SYRUPS]) == Decimal("120")


def test_order_total_sums_lines():
    lines = [
        _Line(_latte(), 2, ["Large"]),
        _Line(_croissant(), 1, []),
    ]
    assert order_total(lines) == Decimal("355")


def test_no_rounding_until_output():
    item = _latte(price="0.333", flavors=[])
    total = line_total(item, [], 3)
    assert total == Decimal("0.999")
    assert to_cents(total) == Decimal("1.00")


def test_to_cents_rounds_half_up():
    assert to_cents(Decimal("2.005")) == Decimal("2.01")
    assert to_cents(Decimal("2.004")) == Decimal("2.00")


def test_selection_within_limits_passes():
    validate_selection(_latte(), ["Large", "Extra Shot", "Extra Shot"])


def test_selection_over_section_max_is_rejected():
    with pytest.raises(SelectionLimitError) as exc:
        validate_selection(_latte(), ["Regular", "Large"])
    assert "'Size'" in str(exc.value)


def test_selection_limit_counts_global_addons_for_drinks():
    one_syrup = GlobalAddonSection(name="Syrups", max=1, options=[{"name": "Vanilla"}, {"name": "Caramel"}])
    with pytest.raises(SelectionLimitError):
        validate_selection(_latte(), ["Vanilla", "Caramel"], [one_syrup])
    # для еды глобальные секции не действуют
    validate_selection(_croissant(), ["Vanilla", "Caramel"], [one_syrup])


def test_normalize_flavors_keeps_sections():
    sections = [FlavorSection(name="Size", options=["Small"])]
    assert normalize_flavors(sections) == sections
    assert normalize_flavors([]) == []
    assert sections[0].options[0].price == Decimal("0")
