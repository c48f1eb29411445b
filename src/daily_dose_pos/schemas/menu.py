from decimal import Decimal
from typing import List, Literal, Optional, Union

from pydantic import Field, field_validator

from daily_dose_pos.schemas.common import CamelModel, Money

ItemType = Literal["food", "drink"]


class FlavorOption(CamelModel):
    name: str
    price: Money = Field(Decimal("0"), ge=0)


class FlavorSection(CamelModel):
    name: str = Field(..., min_length=1)
    max: int = Field(1, ge=1)
    options: List[FlavorOption] = []

    @field_validator("options", mode="before")
    @classmethod
    def coerce_bare_options(cls, value):
        # "Large" -> {"name": "Large", "price": 0}
        if not isinstance(value, list):
            return value
        coerced = []
        for option in value:
            if isinstance(option, str):
                coerced.append({"name": option})
            elif isinstance(option, dict) and option.get("price") is None:
                coerced.append({k: v for k, v in option.items() if k != "price"})
            else:
                coerced.append(option)
        return coerced

    def option_names(self) -> List[str]:
        return [o.name for o in self.options]


class GlobalAddonSection(FlavorSection):
    # None: секция действует для всех типов позиций
    allowed_types: Optional[List[ItemType]] = None

    def applies_to(self, item_type: str) -> bool:
        return self.allowed_types is None or item_type in self.allowed_types


# Две исторические формы одного и того же поля flavors
SimpleFlavorList = List[str]
SectionedFlavorList = List[FlavorSection]


def normalize_flavors(
    flavors: Union[SectionedFlavorList, SimpleFlavorList, None],
    max_flavors: Optional[int] = None,
) -> List[FlavorSection]:
    """
    Приводит flavors к единому виду: списку секций.
    Плоский список строк превращается в одну бесплатную секцию с лимитом max_flavors.
    """
    if not flavors:
        return []
    if all(isinstance(f, FlavorSection) for f in flavors):
        return list(flavors)
    return [
        FlavorSection(
            name="Flavors",
            max=max_flavors or 1,
            options=[FlavorOption(name=str(f)) for f in flavors],
        )
    ]


class MenuItemBase(CamelModel):
    name: str = Field(..., min_length=1)
    price: Money = Field(..., ge=0)
    category: str = Field(..., min_length=1)
    type: ItemType = "food"
    emoji: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None
    is_available: bool = True
    flavors: Union[SectionedFlavorList, SimpleFlavorList] = []
    max_flavors: int = Field(1, ge=1)

    @field_validator("flavors", mode="before")
    @classmethod
    def empty_flavors(cls, value):
        return value or []

    @field_validator("max_flavors", mode="before")
    @classmethod
    def default_max_flavors(cls, value):
        return value or 1

    @property
    def sections(self) -> List[FlavorSection]:
        return normalize_flavors(self.flavors, self.max_flavors)


class MenuItemCreate(MenuItemBase):
    id: Optional[str] = None


class MenuItemUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[Money] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1)
    type: Optional[ItemType] = None
    emoji: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None
    is_available: Optional[bool] = None
    flavors: Optional[Union[SectionedFlavorList, SimpleFlavorList]] = None
    max_flavors: Optional[int] = Field(None, ge=1)


class MenuItemRead(MenuItemBase):
    id: str


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1)


class CategoryReorder(CamelModel):
    categories: List[str]


class MenuRead(CamelModel):
    categories: List[str]
    items: List[MenuItemRead]
    global_addons: List[GlobalAddonSection] = []
