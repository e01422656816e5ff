"""
Email routing - core business logic.

Takes one decoded HandlerInput and runs exactly one of the three SES
operations:
1. ``email``     -> single send
2. ``emails``    -> batch of single sends (best effort)
3. ``bulkEmail`` -> templated bulk send
Anything else is a no-op returning an empty HandlerOutput.

Errors from the single and bulk paths are captured in the output rather than
propagated; the handler decides whether to re-raise them.
"""

import logging
from typing import Any, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .errors import DeadlineExceededError, EmailValidationError
from .models import (
    HandlerInput,
    HandlerOutput,
    SendBulkEmailInput,
    SendEmailInput,
    SendEmailOutput,
)
from services import ses as ses_service

logger = logging.getLogger(__name__)


def _remaining_ms(context: Any) -> Optional[int]:
    """Remaining invocation time from a Lambda context, or None if unknown."""
    if context is None:
        return None
    get_remaining = getattr(context, 'get_remaining_time_in_millis', None)
    if get_remaining is None:
        return None
    return get_remaining()


class EmailRouter:
    """
    Dispatches send requests to SES.

    The SES client is injected so tests can substitute a fake.
    """

    def __init__(self, ses_client, deadline_margin_ms: int = 1000):
        """
        Args:
            ses_client: boto3 sesv2 client (or compatible fake)
            deadline_margin_ms: Stop issuing batch entries once the invocation
                has less than this many milliseconds left
        """
        self.ses_client = ses_client
        self.deadline_margin_ms = deadline_margin_ms

    def route(self, handler_input: HandlerInput, context: Any = None) -> HandlerOutput:
        """
        Run the operation selected by the populated input field.

        Args:
            handler_input: Decoded request envelope
            context: Lambda context (used for the batch deadline), optional

        Returns:
            HandlerOutput with only the dispatched operation's fields set
        """
        populated = handler_input.populated_fields
        if len(populated) > 1:
            logger.warning(
                f"Multiple operations requested {populated}; "
                f"handling '{populated[0]}' and ignoring the rest"
            )

        if handler_input.email is not None:
            return self.send_email(handler_input.email)
        elif handler_input.emails:
            return self.send_emails(handler_input.emails, context)
        elif handler_input.bulk_email is not None:
            return self.send_bulk_email(handler_input.bulk_email)

        logger.info("No operation requested, returning empty output")
        return HandlerOutput()

    def send_email(self, email: SendEmailInput) -> HandlerOutput:
        """Single send. Validation and SES errors land in ``error``."""
        try:
            output = ses_service.send_email(self.ses_client, email)
        except (EmailValidationError, ClientError, BotoCoreError) as e:
            logger.error(f"Single send failed: {e}")
            return HandlerOutput(error=str(e), failure=e)

        return HandlerOutput(email=output)

    def send_emails(self, emails: List[SendEmailInput], context: Any = None) -> HandlerOutput:
        """
        Batch send, one entry at a time in request order.

        A failing entry never stops the others. Once the invocation deadline
        is near, the remaining entries are recorded as errors without being
        sent.
        """
        logger.info(f"Processing batch of {len(emails)} email(s)")

        outputs: List[SendEmailOutput] = []
        errors: List[str] = []

        for index, email in enumerate(emails):
            remaining = _remaining_ms(context)
            if remaining is not None and remaining < self.deadline_margin_ms:
                error = DeadlineExceededError(remaining)
                logger.warning(f"Batch entry {index} not sent: {error}")
                errors.append(str(error))
                continue

            try:
                outputs.append(ses_service.send_email(self.ses_client, email))
            except (EmailValidationError, ClientError, BotoCoreError) as e:
                logger.warning(f"Batch entry {index} failed: {e}")
                errors.append(str(e))

        logger.info(
            f"Batch complete: sent={len(outputs)}, failed={len(errors)}"
        )

        if not errors:
            return HandlerOutput(emails=outputs)
        return HandlerOutput(emails=outputs, errors=errors)

    def send_bulk_email(self, bulk_email: SendBulkEmailInput) -> HandlerOutput:
        """Bulk send. Validation and SES errors land in ``bulk_email_error``."""
        logger.info(f"Processing bulk email with {len(bulk_email.entries)} entr(ies)")

        try:
            output = ses_service.send_bulk_email(self.ses_client, bulk_email)
        except (EmailValidationError, ClientError, BotoCoreError) as e:
            logger.error(f"Bulk send failed: {e}")
            return HandlerOutput(bulk_email_error=str(e), failure=e)

        return HandlerOutput(bulk_email=output)
