"""
AWS Lambda handler for sending email through Amazon SES.

Thin orchestration layer that decodes the event and delegates to EmailRouter.

Expected event format (exactly one field):
{
    "email": {...},        # single send
    "emails": [{...}],     # batch of single sends
    "bulkEmail": {...}     # templated bulk send
}
"""

import logging
import os
from typing import Dict, Any

from domain.models import HandlerInput
from domain.router import EmailRouter
from services import ses as ses_service
from services.ses import ConfigurationError

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO').upper())

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)


def _read_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean flag from the environment.

    Raises:
        ConfigurationError: If the value is not a recognised boolean
    """
    raw = os.environ.get(name)
    if raw is None or raw == '':
        return default
    value = raw.strip().lower()
    if value in ('1', 'true', 'yes', 'on'):
        return True
    if value in ('0', 'false', 'no', 'off'):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got: '{raw}'")


# Initialize once at module level (reused across invocations)
RAISE_ON_SEND_ERROR = _read_bool_env('RAISE_ON_SEND_ERROR', True)
DEADLINE_MARGIN_MS = ses_service.read_int_env('DEADLINE_MARGIN_MS', 1000, minimum=0)
ses_client = ses_service.create_ses_client()
email_router = EmailRouter(ses_client, deadline_margin_ms=DEADLINE_MARGIN_MS)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Route an email request to SES.

    Args:
        event: Request envelope (email / emails / bulkEmail)
        context: Lambda context

    Returns:
        Response envelope dict (email, error, emails, errors, bulkEmail, bulkEmailError)

    Raises:
        ValueError: If the event is malformed
        Exception: The single or bulk send failure, when RAISE_ON_SEND_ERROR is set
    """
    handler_input = HandlerInput.from_dict(event)
    logger.info(f"Received request: operations={handler_input.populated_fields}")

    output = email_router.route(handler_input, context)

    if output.failure is not None and RAISE_ON_SEND_ERROR:
        logger.error(f"Send failed, reporting function error: {output.failure}")
        raise output.failure

    return output.to_dict()
