from fastapi import Request

from postbox.service import MailboxService


def get_service(request: Request) -> MailboxService:
    return request.app.state.service
