from typing import Literal

from pydantic import BaseModel, Field

from boligdeposit.constants.gdpr import ConsentType

CookieAction = Literal["accept_all", "accept_selected", "reject_all"]


class CookieConsentSubmit(BaseModel):
    action: CookieAction
    # Only read for accept_selected; essential is always granted
    choices: dict[ConsentType, bool] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "action": "accept_selected",
                "choices": {"analytics": True, "marketing": False, "functional": True, "third_party": False},
            }
        }


class CookieConsentState(BaseModel):
    state: str
    choices: dict[ConsentType, bool]
