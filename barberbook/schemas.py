# barberbook/schemas.py

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from enum import Enum
from datetime import datetime
from typing import Annotated, List, Optional

from barberbook.core import as_utc

# stored naive UTC, rendered with an explicit offset
UtcDateTime = Annotated[datetime, AfterValidator(as_utc)]


class ReservationStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


# statuses that occupy personnel time
ACTIVE_STATUSES = (ReservationStatus.pending.value, ReservationStatus.confirmed.value)


class UserRole(str, Enum):
    admin = "admin"
    owner = "owner"
    personnel = "personnel"
    client = "client"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole


# Request bodies: required fields are checked by the scheduling core so that
# missing input is reported as invalid_request rather than a 422.

class ReservationCreate(CamelModel):
    services: Optional[List[int]] = None
    date: Optional[str] = None
    barbershop_id: Optional[int] = None
    personnel: Optional[int] = None


class StatusUpdate(CamelModel):
    status: Optional[str] = None
    client_id: Optional[int] = None


class BlockCreate(CamelModel):
    date: Optional[str] = None
    time: Optional[str] = None
    barbershop_id: Optional[int] = None
    duration: Optional[int] = Field(default=None, gt=0)
    is_monthly: bool = False


class BlockDelete(CamelModel):
    date: Optional[str] = None
    time: Optional[str] = None
    barbershop_id: Optional[int] = None


class FcmTokenUpdate(CamelModel):
    fcm_token: Optional[str] = None


class PersonRef(CamelModel):
    id: int
    first_name: str
    last_name: str


class ServiceSummary(CamelModel):
    id: int
    name: str
    price: float
    duration: Optional[int] = None


class ReservationPublic(CamelModel):
    id: int
    client: Optional[PersonRef] = None
    personnel: PersonRef
    barbershop_id: int
    services: List[ServiceSummary]
    date: UtcDateTime
    end_time: UtcDateTime
    status: ReservationStatus
    price: float


class BlockedSlotPublic(CamelModel):
    id: int
    personnel_id: int
    barbershop_id: Optional[int] = None
    date: UtcDateTime
    end_time: UtcDateTime
    is_monthly: bool
    is_admin_block: bool


class CancelResponse(BaseModel):
    message: str
    reservation: ReservationPublic


class UnblockResponse(BaseModel):
    message: str
    deleted: BlockedSlotPublic


class LoyaltyEntry(CamelModel):
    description: str
    points: int
    date: UtcDateTime


class LoyaltyPublic(CamelModel):
    points: int
    history: List[LoyaltyEntry]
