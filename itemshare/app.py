from contextlib import asynccontextmanager
from typing import Annotated
from fastapi import Depends, FastAPI, HTTPException, Request, status, Query
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from datetime import timedelta
from sqlmodel import Session, SQLModel
import logging

from .auth import (
    Token,
    authenticate_user,
    create_access_token,
    get_current_user,
)
from .availability import check_booking_window
from .classifier import BookingState
from .clock import Clock, get_clock
from .config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    DEFAULT_PAGE_SIZE,
    LOG_LEVEL,
    MAX_PAGE_SIZE,
)
from .database import engine, get_session
from .exceptions import (
    ForbiddenError,
    ItemAvailabilityError,
    NotFoundError,
    ValidationError,
)
from .item_requests import ItemRequestService
from .items import ItemService
from .lifecycle import BookingService
from .models import (
    BookingCreate,
    BookingRead,
    CommentCreate,
    CommentRead,
    ItemCreate,
    ItemDetail,
    ItemRead,
    ItemRequestCreate,
    ItemRequestRead,
    ItemUpdate,
    User,
    UserCreate,
    UserRead,
    UserUpdate,
)
from .users import UserService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    SQLModel.metadata.create_all(engine)
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Item sharing API",
    description="API to share items: list them, book other users' items, "
    "approve bookings and leave comments.",
    version="0.3.0",
)


# --- Error mapping ---
def _error_handler(status_code: int):
    async def handler(request: Request, exc):
        logger.debug(
            "%s %s -> %s: %s", request.method, request.url.path, status_code, exc
        )
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    return handler


app.add_exception_handler(NotFoundError, _error_handler(status.HTTP_404_NOT_FOUND))
app.add_exception_handler(ForbiddenError, _error_handler(status.HTTP_403_FORBIDDEN))
app.add_exception_handler(
    ItemAvailabilityError, _error_handler(status.HTTP_400_BAD_REQUEST)
)
app.add_exception_handler(ValidationError, _error_handler(status.HTTP_400_BAD_REQUEST))


# --- Dependencies ---
CurrentUser = Annotated[User, Depends(get_current_user)]


def get_booking_service(
    session: Session = Depends(get_session), clock: Clock = Depends(get_clock)
) -> BookingService:
    return BookingService(session, clock)


def get_item_service(
    session: Session = Depends(get_session), clock: Clock = Depends(get_clock)
) -> ItemService:
    return ItemService(session, clock)


def get_request_service(
    session: Session = Depends(get_session), clock: Clock = Depends(get_clock)
) -> ItemRequestService:
    return ItemRequestService(session, clock)


def get_user_service(session: Session = Depends(get_session)) -> UserService:
    return UserService(session)


class Page:
    """`from`/`size` query parameters turned into an offset and a limit.

    `from` is rounded down to a whole page, so from=5&size=10 is page 0.
    """

    def __init__(
        self,
        from_: int = Query(0, alias="from", ge=0, description="Index of first element"),
        size: int = Query(
            DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Page size"
        ),
    ):
        self.limit = size
        self.offset = (from_ // size) * size


def parse_state(
    state: str = Query(
        "ALL",
        description="ALL, CURRENT, PAST, FUTURE, WAITING or REJECTED (any case)",
    )
) -> BookingState:
    return BookingState.parse(state)


# --- Users ---
@app.post(
    "/users",
    response_model=UserRead,
    summary="Register new user",
    response_description="User data",
    tags=["Users"],
)
def register_user(user: UserCreate, users: UserService = Depends(get_user_service)):
    """
    Register new user. The email doubles as login name.
    """
    return users.create(user)


@app.post(
    "/token", summary="Log in", response_description="Bearer token", tags=["Users"]
)
def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Session = Depends(get_session),
) -> Token:
    """Obtain token for login. Send the email as username."""
    user = authenticate_user(session, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.email}, expires_delta=access_token_expires
    )
    return Token(access_token=access_token, token_type="bearer")


@app.get(
    "/users/me",
    response_model=UserRead,
    summary="Get current user",
    response_description="Current user data",
    tags=["Users"],
)
def read_users_me(current_user: CurrentUser):
    """Get current user data."""
    return current_user


@app.get(
    "/users",
    response_model=list[UserRead],
    dependencies=[Depends(get_current_user)],
    summary="List users",
    tags=["Users"],
)
def list_users(users: UserService = Depends(get_user_service)):
    return users.list_all()


@app.get(
    "/users/{id}",
    response_model=UserRead,
    dependencies=[Depends(get_current_user)],
    summary="Get user",
    tags=["Users"],
)
def read_user(id: int, users: UserService = Depends(get_user_service)):
    return users.read(id)


@app.patch(
    "/users/{id}",
    response_model=UserRead,
    summary="Update user",
    response_description="Updated user data",
    tags=["Users"],
)
def update_user(
    id: int,
    patch: UserUpdate,
    current_user: CurrentUser,
    users: UserService = Depends(get_user_service),
):
    """
    Update own name, email or password. Omitted fields are left unchanged.
    - **id**: User ID, must be the caller's own.
    """
    return users.update(current_user.id, id, patch)


@app.delete("/users/{id}", summary="Delete user", tags=["Users"])
def delete_user(
    id: int, current_user: CurrentUser, users: UserService = Depends(get_user_service)
):
    """Delete own account. Refused while the account still has items, bookings,
    requests or comments.
    """
    users.delete(current_user.id, id)
    return {"ok": True}


# --- Items ---
@app.post(
    "/items",
    response_model=ItemRead,
    summary="List new item",
    response_description="Item data",
    tags=["Items"],
)
def create_item(
    item: ItemCreate,
    current_user: CurrentUser,
    items: ItemService = Depends(get_item_service),
):
    """Add an item owned by the caller.
    - **request_id**: Optional item request this item answers; ignored if unknown.
    """
    return items.create(current_user.id, item)


@app.patch(
    "/items/{id}",
    response_model=ItemDetail,
    summary="Update item",
    response_description="Updated item data",
    tags=["Items"],
)
def update_item(
    id: int,
    patch: ItemUpdate,
    current_user: CurrentUser,
    items: ItemService = Depends(get_item_service),
):
    """
    Update name, description or availability. Owner only.
    - **id**: Unique ID of item.
    """
    return items.update(current_user.id, id, patch)


@app.get(
    "/items/search",
    response_model=list[ItemRead],
    dependencies=[Depends(get_current_user)],
    summary="Search available items",
    response_description="List of items",
    tags=["Items"],
)
def search_items(
    text: str = Query("", description="Text to look for in name or description"),
    page: Page = Depends(),
    items: ItemService = Depends(get_item_service),
):
    """Case-insensitive search over available items. Blank text finds nothing."""
    return items.search(text, page.offset, page.limit)


@app.get(
    "/items/{id}",
    response_model=ItemDetail,
    summary="Get item",
    response_description="Item with comments; last and next booking for the owner",
    tags=["Items"],
)
def read_item(
    id: int, current_user: CurrentUser, items: ItemService = Depends(get_item_service)
):
    return items.read(current_user.id, id)


@app.get(
    "/items",
    response_model=list[ItemDetail],
    summary="List own items",
    response_description="List of items",
    tags=["Items"],
)
def list_items(
    current_user: CurrentUser,
    page: Page = Depends(),
    items: ItemService = Depends(get_item_service),
):
    return items.list_owned(current_user.id, page.offset, page.limit)


@app.post(
    "/items/{id}/comment",
    response_model=CommentRead,
    summary="Comment on item",
    response_description="Comment data",
    tags=["Items"],
)
def create_comment(
    id: int,
    comment: CommentCreate,
    current_user: CurrentUser,
    items: ItemService = Depends(get_item_service),
):
    """Leave a comment. Requires an approved booking of the item that has started."""
    return items.create_comment(current_user.id, id, comment.text)


# --- Bookings ---
@app.post(
    "/bookings",
    response_model=BookingRead,
    summary="Create new booking",
    response_description="Booking data",
    tags=["Bookings"],
)
def create_booking(
    booking: BookingCreate,
    current_user: CurrentUser,
    bookings: BookingService = Depends(get_booking_service),
    clock: Clock = Depends(get_clock),
):
    """Request a booking. It waits for the owner's decision.
    - **item_id**: Item requested
    - **start_time**: Start time of booking (datetime, not in the past)
    - **end_time**: End time of booking (datetime, after start_time)
    """
    check_booking_window(booking.start_time, booking.end_time, clock.now())
    created = bookings.create(
        current_user.id, booking.item_id, booking.start_time, booking.end_time
    )
    return bookings.describe(created)


@app.get(
    "/bookings/owner",
    response_model=list[BookingRead],
    summary="List bookings of own items",
    response_description="List of bookings, latest start first",
    tags=["Bookings"],
)
def list_owner_bookings(
    current_user: CurrentUser,
    state: BookingState = Depends(parse_state),
    page: Page = Depends(),
    bookings: BookingService = Depends(get_booking_service),
):
    found = bookings.list_owner_item_bookings(
        current_user.id, state, page.offset, page.limit
    )
    return bookings.describe_all(found)


@app.get(
    "/bookings/{id}",
    response_model=BookingRead,
    summary="Get booking",
    response_description="Booking data",
    tags=["Bookings"],
)
def read_booking(
    id: int,
    current_user: CurrentUser,
    bookings: BookingService = Depends(get_booking_service),
):
    """Visible to the booker and the item owner only."""
    return bookings.describe(bookings.read(current_user.id, id))


@app.get(
    "/bookings",
    response_model=list[BookingRead],
    summary="List own bookings",
    response_description="List of bookings, latest start first",
    tags=["Bookings"],
)
def list_bookings(
    current_user: CurrentUser,
    state: BookingState = Depends(parse_state),
    page: Page = Depends(),
    bookings: BookingService = Depends(get_booking_service),
):
    found = bookings.list_booker_bookings(
        current_user.id, state, page.offset, page.limit
    )
    return bookings.describe_all(found)


@app.patch(
    "/bookings/{id}",
    response_model=BookingRead,
    summary="Approve or reject booking",
    response_description="Updated booking data",
    tags=["Bookings"],
)
def decide_booking(
    id: int,
    current_user: CurrentUser,
    approved: bool = Query(..., description="true to approve, false to reject"),
    bookings: BookingService = Depends(get_booking_service),
):
    """
    Decide a waiting booking. Item owner only; a decided booking stays decided.
    - **id**: Booking ID
    """
    return bookings.describe(bookings.set_approval(current_user.id, id, approved))


# --- Item requests ---
@app.post(
    "/requests",
    response_model=ItemRequestRead,
    summary="Ask for an item",
    tags=["Requests"],
)
def create_request(
    request: ItemRequestCreate,
    current_user: CurrentUser,
    requests: ItemRequestService = Depends(get_request_service),
):
    return requests.create(current_user.id, request.description)


@app.get(
    "/requests",
    response_model=list[ItemRequestRead],
    summary="List own requests",
    tags=["Requests"],
)
def list_own_requests(
    current_user: CurrentUser,
    requests: ItemRequestService = Depends(get_request_service),
):
    return requests.list_own(current_user.id)


@app.get(
    "/requests/all",
    response_model=list[ItemRequestRead],
    summary="List other users' requests",
    tags=["Requests"],
)
def list_other_requests(
    current_user: CurrentUser,
    page: Page = Depends(),
    requests: ItemRequestService = Depends(get_request_service),
):
    return requests.list_others(current_user.id, page.offset, page.limit)


@app.get(
    "/requests/{id}",
    response_model=ItemRequestRead,
    summary="Get request",
    tags=["Requests"],
)
def read_request(
    id: int,
    current_user: CurrentUser,
    requests: ItemRequestService = Depends(get_request_service),
):
    return requests.read(current_user.id, id)
