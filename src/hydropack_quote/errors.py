"""Domain errors raised by the quoting core and mapped to HTTP status codes in main."""

from __future__ import annotations


class QuoteError(Exception):
    """Base class for quoting errors that are shown to the user."""


class StaleQuoteError(QuoteError):
    """An export, save or financing view was requested before recalculating."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Please calculate the total before you {action}.")


class MissingCustomerFieldsError(QuoteError):
    """Required customer fields are empty."""

    def __init__(self, fields: list[str]) -> None:
        self.fields = list(fields)
        super().__init__("Please complete required customer fields: " + ", ".join(self.fields))


class SaveInProgressError(QuoteError):
    """A save for this session is already running."""

    def __init__(self) -> None:
        super().__init__("A save is already in progress for this quote.")


class QuoteStoreError(QuoteError):
    """The quote store rejected or failed a create/update/list/delete."""


class PartnerNotFoundError(QuoteError):
    def __init__(self, partner_code: str, message: str | None = None) -> None:
        self.partner_code = partner_code
        super().__init__(message or f'Partner "{partner_code}" not found')


class PartnerQuotingDisabledError(QuoteError):
    def __init__(self, partner_code: str) -> None:
        self.partner_code = partner_code
        super().__init__(f'Partner "{partner_code}" does not have quote creation enabled')
