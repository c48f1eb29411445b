from pydantic import Field

from daily_dose_pos.schemas.common import CamelModel

GLOBAL_ADDONS_KEY = "global_addons"


class SettingWrite(CamelModel):
    key: str = Field(..., min_length=1)
    value: str
