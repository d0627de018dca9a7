from postbox.models.message import MessageRecord

__all__ = ["MessageRecord"]
