"""
Amazon SES (API v2) operations for the Lambda handler.

This module translates the domain models into boto3 ``sesv2`` request
parameters and maps the SES responses back into domain results. The SES client
itself is created by ``create_ses_client`` and passed in by the caller.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from domain.errors import MissingContentError, MissingDestinationError
from domain.models import (
    Body,
    BulkEmailEntryResult,
    Content,
    Destination,
    EmailContent,
    ListManagementOptions,
    SendBulkEmailInput,
    SendBulkEmailOutput,
    SendEmailInput,
    SendEmailOutput,
    Template,
)

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'us-east-1'


class ConfigurationError(Exception):
    """Raised when SES client configuration is invalid."""
    pass


# ============================================================================
# Client configuration
# ============================================================================

def read_int_env(name: str, default: int, minimum: int = 1) -> int:
    """
    Read an integer of at least ``minimum`` from the environment.

    Raises:
        ConfigurationError: If the variable is set but not an integer, or is
            below ``minimum``
    """
    raw = os.environ.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got: '{raw}'")
    if value < minimum:
        raise ConfigurationError(f"{name} must be at least {minimum}, got: {value}")
    return value


def create_ses_client(region: Optional[str] = None):
    """
    Create a boto3 SES v2 client configured from the environment.

    Retries are left to botocore's standard retry mode; SES_MAX_ATTEMPTS only
    bounds them.

    Args:
        region: AWS region. Defaults to AWS_REGION / AWS_DEFAULT_REGION.

    Returns:
        boto3 sesv2 client
    """
    region = region or os.environ.get(
        'AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', DEFAULT_REGION)
    )
    connect_timeout = read_int_env('SES_CONNECT_TIMEOUT', 10)
    read_timeout = read_int_env('SES_READ_TIMEOUT', 30)
    max_attempts = read_int_env('SES_MAX_ATTEMPTS', 3)

    client_config = Config(
        retries={
            'max_attempts': max_attempts,
            'mode': 'standard'
        },
        connect_timeout=connect_timeout,
        read_timeout=read_timeout
    )

    client = boto3.client('sesv2', region_name=region, config=client_config)

    logger.info(
        f"SES client initialized: region={region}, "
        f"connect_timeout={connect_timeout}s, read_timeout={read_timeout}s, "
        f"max_attempts={max_attempts}"
    )
    return client


def describe_client_error(error: ClientError) -> Tuple[str, str]:
    """Return (code, message) from a botocore ClientError."""
    code = error.response.get('Error', {}).get('Code', 'Unknown')
    message = error.response.get('Error', {}).get('Message', str(error))
    return code, message


# ============================================================================
# Request translation
# ============================================================================

def build_tags(tags: Optional[Dict[str, str]]) -> Optional[List[Dict[str, str]]]:
    """
    Convert a name -> value tag mapping into the SES tag list.

    Returns:
        List of {'Name', 'Value'} dicts, or None when there are no tags
    """
    if not tags:
        return None
    return [{'Name': name, 'Value': value} for name, value in tags.items()]


def _build_content(content: Content) -> Dict[str, str]:
    result = {'Data': content.data}
    if content.charset:
        result['Charset'] = content.charset
    return result


def _build_body(body: Body) -> Dict[str, Any]:
    # Html and Text are both sent when both are present; mail clients pick one
    result = {}
    if body.html is not None:
        result['Html'] = _build_content(body.html)
    if body.text is not None:
        result['Text'] = _build_content(body.text)
    return result


def _build_template(template: Template) -> Dict[str, str]:
    result = {}
    if template.name:
        result['TemplateName'] = template.name
    if template.arn:
        result['TemplateArn'] = template.arn
    if template.data:
        result['TemplateData'] = template.data
    return result


def _build_destination(destination: Destination) -> Dict[str, List[str]]:
    result = {'ToAddresses': list(destination.to)}
    if destination.cc:
        result['CcAddresses'] = list(destination.cc)
    if destination.bcc:
        result['BccAddresses'] = list(destination.bcc)
    return result


def _build_list_management(options: ListManagementOptions) -> Dict[str, str]:
    result = {'ContactListName': options.contact_list_name}
    if options.topic_name:
        result['TopicName'] = options.topic_name
    return result


def build_email_content(content: EmailContent) -> Dict[str, Any]:
    """
    Translate EmailContent into the SES ``Content`` parameter.

    Raises:
        MissingContentError: If no simple, raw or template content is present
    """
    result = {}

    message = content.resolve_message()
    if message is not None:
        simple = {}
        if message.subject is not None:
            simple['Subject'] = _build_content(message.subject)
        if message.body is not None and not message.body.is_empty:
            simple['Body'] = _build_body(message.body)
        result['Simple'] = simple

    if content.raw is not None:
        result['Raw'] = {'Data': content.raw.data}

    if content.template is not None:
        result['Template'] = _build_template(content.template)

    if not result:
        raise MissingContentError()
    return result


def build_send_email_request(email: SendEmailInput) -> Dict[str, Any]:
    """
    Build keyword arguments for ``sesv2.send_email``.

    Args:
        email: Single send request

    Returns:
        Dict of boto3 parameters (unset optional fields omitted)

    Raises:
        MissingContentError: If content is missing
        MissingDestinationError: If dest is missing
    """
    if email.content is None or not email.content.has_content:
        raise MissingContentError()
    if email.destination is None:
        raise MissingDestinationError()

    params = {
        'Content': build_email_content(email.content),
        'Destination': _build_destination(email.destination),
    }

    optional = {
        'FromEmailAddress': email.from_address,
        'FromEmailAddressIdentityArn': email.from_arn,
        'ReplyToAddresses': email.reply_to,
        'FeedbackForwardingEmailAddress': email.feedback_forwarding_email_address,
        'FeedbackForwardingEmailAddressIdentityArn':
            email.feedback_forwarding_email_address_identity_arn,
        'ConfigurationSetName': email.configuration_set_name,
        'EmailTags': build_tags(email.tags),
    }
    params.update({k: v for k, v in optional.items() if v})

    if email.list_management_options is not None:
        params['ListManagementOptions'] = _build_list_management(email.list_management_options)

    return params


def build_send_bulk_email_request(bulk: SendBulkEmailInput) -> Dict[str, Any]:
    """
    Build keyword arguments for ``sesv2.send_bulk_email``.

    Every entry is validated before anything is returned, so a single entry
    without a destination fails the whole bulk send.

    Raises:
        MissingDestinationError: If any entry has no destination
        MissingContentError: If the default template is missing
    """
    entries = []
    for index, entry in enumerate(bulk.entries):
        if entry.destination is None:
            raise MissingDestinationError(f"Destination is required for bulk entry {index}")

        built = {'Destination': _build_destination(entry.destination)}

        replacement_tags = build_tags(entry.tags)
        if replacement_tags:
            built['ReplacementTags'] = replacement_tags

        if entry.replacement_template_data:
            built['ReplacementEmailContent'] = {
                'ReplacementTemplate': {
                    'ReplacementTemplateData': entry.replacement_template_data
                }
            }

        entries.append(built)

    if bulk.default_template is None:
        raise MissingContentError("Default template content is required")

    params = {
        'BulkEmailEntries': entries,
        'DefaultContent': {'Template': _build_template(bulk.default_template)},
    }

    optional = {
        'FromEmailAddress': bulk.from_address,
        'FromEmailAddressIdentityArn': bulk.from_arn,
        'ReplyToAddresses': bulk.reply_to,
        'FeedbackForwardingEmailAddress': bulk.feedback_forwarding_email_address,
        'FeedbackForwardingEmailAddressIdentityArn':
            bulk.feedback_forwarding_email_address_identity_arn,
        'ConfigurationSetName': bulk.configuration_set_name,
        'DefaultEmailTags': build_tags(bulk.default_tags),
    }
    params.update({k: v for k, v in optional.items() if v})

    return params


# ============================================================================
# Response translation
# ============================================================================

def parse_send_email_response(response: Dict[str, Any]) -> SendEmailOutput:
    """Map a ``send_email`` response to SendEmailOutput."""
    return SendEmailOutput(
        message_id=response.get('MessageId'),
        metadata=response.get('ResponseMetadata', {})
    )


def parse_send_bulk_email_response(response: Dict[str, Any]) -> SendBulkEmailOutput:
    """Map a ``send_bulk_email`` response to SendBulkEmailOutput."""
    results = []
    for item in response.get('BulkEmailEntryResults', []):
        results.append(BulkEmailEntryResult.from_status(
            item.get('Status'), item.get('MessageId'), item.get('Error')
        ))
    return SendBulkEmailOutput(
        results=results,
        metadata=response.get('ResponseMetadata', {})
    )


# ============================================================================
# Operations
# ============================================================================

def send_email(client, email: SendEmailInput) -> SendEmailOutput:
    """
    Send a single email through SES.

    Args:
        client: boto3 sesv2 client
        email: Single send request

    Returns:
        SendEmailOutput with the SES message id

    Raises:
        MissingContentError, MissingDestinationError: On invalid requests
        ClientError: When SES rejects the request
    """
    params = build_send_email_request(email)

    try:
        response = client.send_email(**params)
    except ClientError as e:
        code, message = describe_client_error(e)
        logger.error(f"SES send_email failed: error_code={code}, error_message={message}")
        raise

    output = parse_send_email_response(response)
    logger.info(f"SES accepted email: message_id={output.message_id}")
    return output


def send_bulk_email(client, bulk: SendBulkEmailInput) -> SendBulkEmailOutput:
    """
    Send a templated bulk email through SES.

    Per-entry failures come back as statuses in the result, not as exceptions.

    Raises:
        MissingDestinationError: If any entry has no destination (nothing is sent)
        MissingContentError: If the default template is missing
        ClientError: When SES rejects the whole request
    """
    params = build_send_bulk_email_request(bulk)

    try:
        response = client.send_bulk_email(**params)
    except ClientError as e:
        code, message = describe_client_error(e)
        logger.error(f"SES send_bulk_email failed: error_code={code}, error_message={message}")
        raise

    output = parse_send_bulk_email_response(response)
    failed = [r for r in output.results if not r.succeeded]
    logger.info(
        f"SES bulk send complete: entries={len(output.results)}, "
        f"failed={len(failed)}"
    )
    return output
