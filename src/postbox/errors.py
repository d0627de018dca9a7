class MailboxError(Exception):
    """Base class for every error raised by the mailbox core."""


class StoreError(MailboxError):
    """Storage I/O or transaction failure."""


class ConflictError(MailboxError):
    """A message with the same id already exists."""


class NotFoundError(MailboxError):
    """A referenced message id does not exist."""


class InvalidInputError(MailboxError):
    """A call violated a precondition of the mailbox service."""
