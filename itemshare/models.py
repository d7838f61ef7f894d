from sqlmodel import SQLModel, Field
from pydantic import EmailStr, StringConstraints, field_validator
from typing import Annotated, Optional
import datetime
import enum


NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _to_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


############
# USER MODEL
############


class UserBase(SQLModel):
    name: str = Field(max_length=50)
    email: str = Field(max_length=100, index=True, unique=True)


class User(UserBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    hashed_password: str


class UserCreate(SQLModel):
    name: Annotated[NonBlankStr, StringConstraints(max_length=50)]
    email: EmailStr
    password: NonBlankStr


class UserUpdate(SQLModel):
    name: Optional[Annotated[NonBlankStr, StringConstraints(max_length=50)]] = None
    email: Optional[EmailStr] = None
    password: Optional[NonBlankStr] = None


class UserRead(UserBase):
    id: int


################
# REQUEST MODEL
################


class ItemRequest(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    description: str = Field(max_length=200)
    requestor_id: int = Field(foreign_key="user.id", index=True)
    created: datetime.datetime = Field(index=True)


class ItemRequestCreate(SQLModel):
    description: Annotated[NonBlankStr, StringConstraints(max_length=200)]


##############
# ITEM MODEL
##############


class ItemBase(SQLModel):
    name: str
    description: str
    available: bool


class Item(ItemBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="user.id", index=True)
    request_id: Optional[int] = Field(
        default=None, foreign_key="itemrequest.id", index=True
    )


class ItemCreate(SQLModel):
    name: NonBlankStr
    description: NonBlankStr
    available: bool
    request_id: Optional[int] = None


class ItemUpdate(SQLModel):
    name: Optional[NonBlankStr] = None
    description: Optional[NonBlankStr] = None
    available: Optional[bool] = None


class ItemRead(ItemBase):
    id: int
    request_id: Optional[int] = None


class ItemRequestRead(SQLModel):
    id: int
    description: str
    created: datetime.datetime
    items: list[ItemRead] = []


###############
# BOOKING MODEL
###############


class BookingStatus(str, enum.Enum):
    WAITING = "WAITING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class BookingBase(SQLModel):
    item_id: int
    start_time: datetime.datetime
    end_time: datetime.datetime


class Booking(BookingBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    item_id: int = Field(foreign_key="item.id", index=True)
    booker_id: int = Field(foreign_key="user.id", index=True)
    start_time: datetime.datetime = Field(index=True)
    status: BookingStatus = Field(default=BookingStatus.WAITING, index=True)


class BookingCreate(BookingBase):
    @field_validator("start_time", "end_time")
    @classmethod
    def utc_time(cls, value: datetime.datetime) -> datetime.datetime:
        return _to_utc(value)


class BookingRead(SQLModel):
    id: int
    start_time: datetime.datetime
    end_time: datetime.datetime
    status: BookingStatus
    item: ItemRead
    booker: UserRead


class BookingSummary(SQLModel):
    """What an owner sees of an item's last or next booking."""

    id: int
    booker_id: int


###############
# COMMENT MODEL
###############


class Comment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    text: str
    item_id: int = Field(foreign_key="item.id", index=True)
    author_id: int = Field(foreign_key="user.id")
    created: datetime.datetime


class CommentCreate(SQLModel):
    text: NonBlankStr


class CommentRead(SQLModel):
    id: int
    text: str
    author_name: str
    created: datetime.datetime


class ItemDetail(ItemRead):
    last_booking: Optional[BookingSummary] = None
    next_booking: Optional[BookingSummary] = None
    comments: list[CommentRead] = []
