"""Team chat: channel history, posting, editing and deleting messages."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, raise_http_for
from app.core.database import get_db
from app.models import Message
from app.schemas.auth import CurrentUser, MessageResponse
from app.schemas.messages import CHANNEL_PATTERN, MessageCreate, MessageEdit, MessageOut
from app.services.authorization import ensure_can_modify_message
from app.services.errors import ServiceError

router = APIRouter()

DEFAULT_CHANNELS = ("general",)


def _get_message_or_404(db: Session, message_id: int) -> Message:
    message = db.get(Message, message_id)
    if message is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return message


@router.get("/channels", response_model=list[str])
def list_channels(
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> list[str]:
    used = {row[0] for row in db.query(Message.channel).distinct().all()}
    return sorted(used.union(DEFAULT_CHANNELS))


@router.get("/messages/{channel}", response_model=list[MessageOut])
def list_messages(
    channel: Annotated[str, Path(pattern=CHANNEL_PATTERN)],
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[MessageOut]:
    """Newest page first from the database, returned oldest to newest for display."""
    rows = (
        db.query(Message)
        .filter(Message.channel == channel)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return [MessageOut.model_validate(m) for m in reversed(rows)]


@router.post("/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def post_message(
    body: MessageCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageOut:
    if body.reply_to is not None:
        parent = _get_message_or_404(db, body.reply_to)
        if parent.channel != body.channel:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Reply must be in the same channel as the original message",
            )
    message = Message(
        content=body.content,
        channel=body.channel,
        reply_to=body.reply_to,
        user_id=current_user.id,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return MessageOut.model_validate(message)


@router.patch("/messages/{message_id}", response_model=MessageOut)
def edit_message(
    message_id: int,
    body: MessageEdit,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageOut:
    message = _get_message_or_404(db, message_id)
    try:
        ensure_can_modify_message(current_user, message)
    except ServiceError as e:
        raise_http_for(e)
    message.content = body.content
    message.edited = True
    message.updated_at = func.now()
    db.commit()
    db.refresh(message)
    return MessageOut.model_validate(message)


@router.delete("/messages/{message_id}", response_model=MessageResponse)
def delete_message(
    message_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    message = _get_message_or_404(db, message_id)
    try:
        ensure_can_modify_message(current_user, message)
    except ServiceError as e:
        raise_http_for(e)
    db.query(Message).filter(Message.reply_to == message_id).update(
        {Message.reply_to: None}, synchronize_session=False
    )
    db.delete(message)
    db.commit()
    return MessageResponse(message="Message deleted successfully")
