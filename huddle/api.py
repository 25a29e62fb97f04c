"""FastAPI application exposing the circles, chat, status, availability and meetup endpoints."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, load_settings
from .models import ChatMessage, Circle, Meetup, User
from .seed import load_seed_table
from .service import CommunityService
from .store import JSONStore

logger = logging.getLogger("huddle.api")


class _Payload(BaseModel):
    """Every body field is optional; each route checks what it needs."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RegisterUserRequest(_Payload):
    user_id: Optional[str] = Field(default=None, alias="userId")
    name: Optional[str] = None


class CreateCircleRequest(_Payload):
    name: Optional[str] = None
    status: Optional[str] = None
    info: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")


class JoinRequest(_Payload):
    user_id: Optional[str] = Field(default=None, alias="userId")


class PostChatRequest(_Payload):
    author_id: Optional[str] = Field(default=None, alias="authorId")
    author_name: Optional[str] = Field(default=None, alias="authorName")
    message: Optional[str] = None


class SetStatusRequest(_Payload):
    status: Optional[str] = None


class SetAvailabilityRequest(_Payload):
    day: Optional[Union[str, int]] = None
    state: Optional[str] = None


class CreateMeetupRequest(_Payload):
    title: Optional[str] = None
    details: Optional[str] = None
    time: Optional[str] = None
    total: Optional[int] = None


class _View(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UserView(_View):
    user_id: str = Field(alias="userId")
    name: str
    status: str
    availability: Dict[str, str]


class StatusView(_View):
    user_id: str = Field(alias="userId")
    status: str


class AvailabilityView(_View):
    user_id: str = Field(alias="userId")
    availability: Dict[str, str]


class CircleView(_View):
    id: str
    name: str
    members: List[str]
    status: str
    info: str


class ChatMessageView(_View):
    id: str
    author_id: str = Field(alias="authorId")
    author_name: str = Field(alias="authorName")
    message: str
    ts: int


class MeetupView(_View):
    id: str
    title: str
    details: str
    time: str
    total: int
    attendees: List[str]


class MeetupSummary(_View):
    id: str
    title: str
    details: str
    time: str
    total: int
    people: int


def _user_to_view(user: User) -> UserView:
    return UserView(
        user_id=user.id,
        name=user.name,
        status=user.status,
        availability=dict(user.availability),
    )


def _circle_to_view(circle: Circle) -> CircleView:
    return CircleView(**circle.to_dict())


def _message_to_view(message: ChatMessage) -> ChatMessageView:
    return ChatMessageView(
        id=message.id,
        author_id=message.author_id,
        author_name=message.author_name,
        message=message.message,
        ts=message.ts,
    )


def _meetup_to_summary(meetup: Meetup) -> MeetupSummary:
    return MeetupSummary(**meetup.summary())


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def register_routes(app: FastAPI, service: CommunityService) -> None:
    """Bind every JSON endpoint to ``service``."""

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/users", response_model=UserView)
    async def register_user(request: Optional[RegisterUserRequest] = None) -> UserView:
        request = request or RegisterUserRequest()
        try:
            user = service.register_user(request.user_id, request.name)
        except ValueError as exc:
            raise _bad_request(exc) from exc
        return _user_to_view(user)

    @app.get("/api/circles", response_model=List[CircleView])
    async def list_circles() -> List[CircleView]:
        return [_circle_to_view(circle) for circle in service.list_circles()]

    @app.post("/api/circles", response_model=CircleView)
    async def create_circle(request: Optional[CreateCircleRequest] = None) -> CircleView:
        request = request or CreateCircleRequest()
        try:
            circle = service.create_circle(
                request.name,
                status=request.status,
                info=request.info,
                user_id=request.user_id,
            )
        except ValueError as exc:
            raise _bad_request(exc) from exc
        return _circle_to_view(circle)

    @app.post("/api/circles/{circle_id}/join", response_model=CircleView)
    async def join_circle(circle_id: str, request: Optional[JoinRequest] = None) -> CircleView:
        request = request or JoinRequest()
        try:
            circle = service.join_circle(circle_id, request.user_id)
        except KeyError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="circle not found")
        return _circle_to_view(circle)

    @app.get("/api/chat/{circle_id}", response_model=List[ChatMessageView])
    async def list_chat(circle_id: str) -> List[ChatMessageView]:
        return [_message_to_view(message) for message in service.list_chat(circle_id)]

    @app.post("/api/chat/{circle_id}", response_model=ChatMessageView)
    async def post_chat(circle_id: str, request: Optional[PostChatRequest] = None) -> ChatMessageView:
        request = request or PostChatRequest()
        try:
            message = service.post_chat(
                circle_id,
                request.message,
                author_id=request.author_id,
                author_name=request.author_name,
            )
        except ValueError as exc:
            raise _bad_request(exc) from exc
        return _message_to_view(message)

    @app.get("/api/status/{user_id}", response_model=StatusView)
    async def get_status(user_id: str) -> StatusView:
        user = service.get_status(user_id)
        return StatusView(user_id=user.id, status=user.status)

    @app.post("/api/status/{user_id}", response_model=StatusView)
    async def set_status(user_id: str, request: Optional[SetStatusRequest] = None) -> StatusView:
        request = request or SetStatusRequest()
        user = service.set_status(user_id, request.status)
        return StatusView(user_id=user.id, status=user.status)

    @app.get("/api/availability/{user_id}", response_model=AvailabilityView)
    async def get_availability(user_id: str) -> AvailabilityView:
        user = service.get_availability(user_id)
        return AvailabilityView(user_id=user.id, availability=dict(user.availability))

    @app.post("/api/availability/{user_id}", response_model=AvailabilityView)
    async def set_availability(
        user_id: str, request: Optional[SetAvailabilityRequest] = None
    ) -> AvailabilityView:
        request = request or SetAvailabilityRequest()
        day = None if request.day is None else str(request.day)
        try:
            user = service.set_availability(user_id, day, request.state)
        except ValueError as exc:
            raise _bad_request(exc) from exc
        return AvailabilityView(user_id=user.id, availability=dict(user.availability))

    @app.get("/api/meetups", response_model=List[MeetupSummary])
    async def list_meetups() -> List[MeetupSummary]:
        return [_meetup_to_summary(meetup) for meetup in service.list_meetups()]

    @app.post("/api/meetups", response_model=MeetupView)
    async def create_meetup(request: Optional[CreateMeetupRequest] = None) -> MeetupView:
        request = request or CreateMeetupRequest()
        try:
            meetup = service.create_meetup(
                request.title,
                details=request.details,
                time=request.time,
                total=request.total,
            )
        except ValueError as exc:
            raise _bad_request(exc) from exc
        return MeetupView(**meetup.to_dict())

    @app.post("/api/meetups/{meetup_id}/join", response_model=MeetupSummary)
    async def join_meetup(meetup_id: str, request: Optional[JoinRequest] = None) -> MeetupSummary:
        request = request or JoinRequest()
        try:
            meetup = service.join_meetup(meetup_id, request.user_id)
        except KeyError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="meetup not found")
        return _meetup_to_summary(meetup)


def build_service(settings: Settings) -> CommunityService:
    """Construct the community service from ``settings``, seeding a fresh data file."""

    store = JSONStore(settings.data_path, flush_delay=settings.flush_delay)
    return CommunityService.open(store, seed_table=load_seed_table(settings.seed_path))


def create_app(
    *,
    settings: Settings | None = None,
    service: CommunityService | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application serving the client app."""

    settings = settings or load_settings()
    community_service = service or build_service(settings)

    app = FastAPI(
        title="Huddle API",
        version="0.1.0",
        description="Circles, chat, availability and meetups for the Huddle client app.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.service = community_service

    register_routes(app, community_service)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError):
        logger.info("Rejected malformed request body: %s", exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "invalid request body"},
        )

    return app


__all__ = ["build_service", "create_app", "register_routes"]
