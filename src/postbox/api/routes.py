from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from loguru import logger

from postbox.api.deps import get_service
from postbox.errors import InvalidInputError, MailboxError, NotFoundError
from postbox.schemas import Message, MessageCreate, MessageCreated, MessageDelete
from postbox.service import MailboxService

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("", response_model=MessageCreated)
async def post_message(payload: MessageCreate, service: MailboxService = Depends(get_service)):
    try:
        message_id = await service.submit(payload.recipient_user_name, payload.content)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MailboxError as e:
        logger.error(f"error submitting message: {e}")
        raise HTTPException(status_code=500, detail="error submitting message")
    return MessageCreated(message_id=message_id)


@router.get("/new", response_model=list[Message])
async def get_new_messages(service: MailboxService = Depends(get_service)):
    try:
        return await service.fetch_new()
    except MailboxError as e:
        logger.error(f"error fetching new messages: {e}")
        raise HTTPException(status_code=500, detail="error fetching new messages")


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_messages(payload: MessageDelete, service: MailboxService = Depends(get_service)):
    if not payload.message_ids:
        raise HTTPException(status_code=400, detail="message_ids is required")
    try:
        await service.delete(payload.message_ids)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="message not found")
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MailboxError as e:
        logger.error(f"error deleting messages: {e}")
        raise HTTPException(status_code=500, detail="error deleting messages")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("", response_model=list[Message])
async def get_all_messages(
    start_cursor: str | None = None,
    end_cursor: str | None = None,
    service: MailboxService = Depends(get_service),
):
    try:
        # empty query values mean "no bound"
        return await service.list_range(start_cursor or None, end_cursor or None)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="message not found")
    except MailboxError as e:
        logger.error(f"error fetching all messages: {e}")
        raise HTTPException(status_code=500, detail="error fetching all messages")
