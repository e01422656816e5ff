"""
Data models for the email routing domain.

These dataclasses mirror the JSON schema exchanged between the client library
and the Lambda handler. Field names on the wire (``dest``, ``configSetName``,
``fromArn``...) are part of the compatibility surface, so every model converts
explicitly with ``from_dict`` / ``to_dict`` instead of relying on attribute
names.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    """Remove keys whose value is None."""
    return {k: v for k, v in data.items() if v is not None}


def _expect_dict(value: Any, name: str) -> Optional[Dict[str, Any]]:
    """
    Validate that a decoded JSON value is an object (or absent).

    Raises:
        ValueError: If value is present but not a dict
    """
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError(f"'{name}' must be an object, got {type(value).__name__}")
    return value


def _expect_list(value: Any, name: str) -> Optional[List[Any]]:
    """
    Validate that a decoded JSON value is an array (or absent).

    Raises:
        ValueError: If value is present but not a list
    """
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValueError(f"'{name}' must be an array, got {type(value).__name__}")
    return value


def _string_list(value: Any, name: str) -> Optional[List[str]]:
    items = _expect_list(value, name)
    if items is None:
        return None
    for item in items:
        if not isinstance(item, str):
            raise ValueError(f"'{name}' items must be strings, got {type(item).__name__}")
    return list(items)


def _tags(value: Any, name: str) -> Optional[Dict[str, str]]:
    tags = _expect_dict(value, name)
    if tags is None:
        return None
    for key, tag_value in tags.items():
        if not isinstance(tag_value, str):
            raise ValueError(
                f"'{name}.{key}' must be a string, got {type(tag_value).__name__}"
            )
    return dict(tags)


# ============================================================================
# Message content
# ============================================================================

@dataclass
class Content:
    """
    Text content with an optional character set.

    Attributes:
        data: The content itself
        charset: Character set, e.g. "UTF-8" (SES assumes 7-bit ASCII if unset)
    """
    data: str
    charset: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, name: str = 'content') -> Optional['Content']:
        data = _expect_dict(data, name)
        if data is None:
            return None
        return cls(data=data.get('data'), charset=data.get('charset'))

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({'data': self.data, 'charset': self.charset})


@dataclass
class Body:
    """HTML and/or plain text version of a message body."""
    html: Optional[Content] = None
    text: Optional[Content] = None

    @property
    def is_empty(self) -> bool:
        return self.html is None and self.text is None

    @classmethod
    def from_dict(cls, data: Any, name: str = 'body') -> Optional['Body']:
        data = _expect_dict(data, name)
        if data is None:
            return None
        return cls(
            html=Content.from_dict(data.get('html'), f'{name}.html'),
            text=Content.from_dict(data.get('text'), f'{name}.text'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'html': self.html.to_dict() if self.html else None,
            'text': self.text.to_dict() if self.text else None,
        })


@dataclass
class Message:
    """A simple message: subject line plus body."""
    body: Optional[Body] = None
    subject: Optional[Content] = None

    @classmethod
    def from_dict(cls, data: Any, name: str = 'simple') -> Optional['Message']:
        data = _expect_dict(data, name)
        if data is None:
            return None
        return cls(
            body=Body.from_dict(data.get('body'), f'{name}.body'),
            subject=Content.from_dict(data.get('subject'), f'{name}.subject'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'body': self.body.to_dict() if self.body else None,
            'subject': self.subject.to_dict() if self.subject else None,
        })


@dataclass
class RawMessage:
    """
    A complete MIME message.

    Attributes:
        data: Raw message bytes (base64 text on the wire)
    """
    data: bytes

    @classmethod
    def from_dict(cls, data: Any, name: str = 'raw') -> Optional['RawMessage']:
        data = _expect_dict(data, name)
        if data is None:
            return None
        raw = data.get('data')
        if isinstance(raw, str):
            try:
                raw = base64.b64decode(raw, validate=True)
            except ValueError as e:
                raise ValueError(f"'{name}.data' must be base64 encoded: {e}")
        return cls(data=raw)

    def to_dict(self) -> Dict[str, Any]:
        if self.data is None:
            return {}
        return {'data': base64.b64encode(self.data).decode('ascii')}


@dataclass
class Template:
    """Reference to a stored SES template plus its variable data (JSON text)."""
    arn: Optional[str] = None
    name: Optional[str] = None
    data: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, name: str = 'template') -> Optional['Template']:
        data = _expect_dict(data, name)
        if data is None:
            return None
        return cls(arn=data.get('arn'), name=data.get('name'), data=data.get('data'))

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({'arn': self.arn, 'name': self.name, 'data': self.data})


@dataclass
class EmailContent:
    """
    Content of a single email.

    Exactly one of simple/raw/template is expected. Callers written against the
    older flat schema put ``body`` and ``subject`` directly on the content
    object instead of under ``simple``; both dialects are accepted and resolved
    by ``resolve_message``.
    """
    simple: Optional[Message] = None
    raw: Optional[RawMessage] = None
    template: Optional[Template] = None
    body: Optional[Body] = None
    subject: Optional[Content] = None

    def resolve_message(self) -> Optional[Message]:
        """
        Pick the simple message to send.

        Flat body+subject win when both are set, otherwise ``simple`` is used.
        """
        if self.body is not None and self.subject is not None:
            return Message(body=self.body, subject=self.subject)
        return self.simple

    @property
    def has_content(self) -> bool:
        return (
            self.resolve_message() is not None
            or self.raw is not None
            or self.template is not None
        )

    @classmethod
    def from_dict(cls, data: Any, name: str = 'content') -> Optional['EmailContent']:
        data = _expect_dict(data, name)
        if data is None:
            return None
        return cls(
            simple=Message.from_dict(data.get('simple'), f'{name}.simple'),
            raw=RawMessage.from_dict(data.get('raw'), f'{name}.raw'),
            template=Template.from_dict(data.get('template'), f'{name}.template'),
            body=Body.from_dict(data.get('body'), f'{name}.body'),
            subject=Content.from_dict(data.get('subject'), f'{name}.subject'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'simple': self.simple.to_dict() if self.simple else None,
            'raw': self.raw.to_dict() if self.raw else None,
            'template': self.template.to_dict() if self.template else None,
            'body': self.body.to_dict() if self.body else None,
            'subject': self.subject.to_dict() if self.subject else None,
        })


# ============================================================================
# Requests
# ============================================================================

@dataclass
class Destination:
    """Recipients of an email."""
    to: List[str] = field(default_factory=list)
    cc: Optional[List[str]] = None
    bcc: Optional[List[str]] = None

    @classmethod
    def from_dict(cls, data: Any, name: str = 'dest') -> Optional['Destination']:
        data = _expect_dict(data, name)
        if data is None:
            return None
        return cls(
            to=_string_list(data.get('to'), f'{name}.to') or [],
            cc=_string_list(data.get('cc'), f'{name}.cc'),
            bcc=_string_list(data.get('bcc'), f'{name}.bcc'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({'to': self.to, 'cc': self.cc, 'bcc': self.bcc})


@dataclass
class ListManagementOptions:
    """Contact list and topic used for unsubscribe handling."""
    contact_list_name: str
    topic_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, name: str = 'listManagementOptions') -> Optional['ListManagementOptions']:
        data = _expect_dict(data, name)
        if data is None:
            return None
        return cls(
            contact_list_name=data.get('contactListName'),
            topic_name=data.get('topicName'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'contactListName': self.contact_list_name,
            'topicName': self.topic_name,
        })


@dataclass
class SendEmailInput:
    """
    A request to send one email.

    Attributes:
        from_address: Verified "From" address (``from`` on the wire)
        destination: Recipients (``dest`` on the wire)
        content: Message content
        configuration_set_name: SES configuration set (``configSetName``)
        tags: Message tags as a name -> value mapping
        feedback_forwarding_email_address: Bounce/complaint address
        feedback_forwarding_email_address_identity_arn: Sending authorization ARN
            for the feedback address
        from_arn: Sending authorization ARN for the From address
        reply_to: Reply-To addresses
        list_management_options: Contact list options
    """
    from_address: Optional[str] = None
    destination: Optional[Destination] = None
    content: Optional[EmailContent] = None
    configuration_set_name: Optional[str] = None
    tags: Optional[Dict[str, str]] = None
    feedback_forwarding_email_address: Optional[str] = None
    feedback_forwarding_email_address_identity_arn: Optional[str] = None
    from_arn: Optional[str] = None
    reply_to: Optional[List[str]] = None
    list_management_options: Optional[ListManagementOptions] = None

    @classmethod
    def from_dict(cls, data: Any, name: str = 'email') -> Optional['SendEmailInput']:
        data = _expect_dict(data, name)
        if data is None:
            return None
        return cls(
            from_address=data.get('from'),
            destination=Destination.from_dict(data.get('dest'), f'{name}.dest'),
            content=EmailContent.from_dict(data.get('content'), f'{name}.content'),
            configuration_set_name=data.get('configSetName'),
            tags=_tags(data.get('tags'), f'{name}.tags'),
            feedback_forwarding_email_address=data.get('feedbackForwardingEmailAddress'),
            feedback_forwarding_email_address_identity_arn=data.get(
                'feedbackForwardingEmailAddressIdentityArn'
            ),
            from_arn=data.get('fromArn'),
            reply_to=_string_list(data.get('replyTo'), f'{name}.replyTo'),
            list_management_options=ListManagementOptions.from_dict(
                data.get('listManagementOptions'), f'{name}.listManagementOptions'
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'from': self.from_address,
            'dest': self.destination.to_dict() if self.destination else None,
            'content': self.content.to_dict() if self.content else None,
            'configSetName': self.configuration_set_name,
            'tags': self.tags,
            'feedbackForwardingEmailAddress': self.feedback_forwarding_email_address,
            'feedbackForwardingEmailAddressIdentityArn':
                self.feedback_forwarding_email_address_identity_arn,
            'fromArn': self.from_arn,
            'replyTo': self.reply_to,
            'listManagementOptions':
                self.list_management_options.to_dict() if self.list_management_options else None,
        })


@dataclass
class BulkEmailEntry:
    """
    One recipient of a bulk send.

    Attributes:
        destination: Recipients for this entry (required)
        replacement_template_data: Per-entry template data overriding the default
        tags: Per-entry replacement tags
    """
    destination: Optional[Destination] = None
    replacement_template_data: Optional[str] = None
    tags: Optional[Dict[str, str]] = None

    @classmethod
    def from_dict(cls, data: Any, name: str = 'entry') -> 'BulkEmailEntry':
        data = _expect_dict(data, name) or {}
        content = _expect_dict(data.get('content'), f'{name}.content') or {}
        replacement = _expect_dict(
            content.get('replacementTemplate'), f'{name}.content.replacementTemplate'
        ) or {}
        return cls(
            destination=Destination.from_dict(data.get('destination'), f'{name}.destination'),
            replacement_template_data=replacement.get('data'),
            tags=_tags(data.get('tags'), f'{name}.tags'),
        )

    def to_dict(self) -> Dict[str, Any]:
        content = None
        if self.replacement_template_data is not None:
            content = {'replacementTemplate': {'data': self.replacement_template_data}}
        return _drop_none({
            'destination': self.destination.to_dict() if self.destination else None,
            'content': content,
            'tags': self.tags,
        })


@dataclass
class SendBulkEmailInput:
    """
    A templated send to many recipients.

    Sender, reply-to and authorization fields apply to every entry.
    """
    entries: List[BulkEmailEntry] = field(default_factory=list)
    default_template: Optional[Template] = None
    default_tags: Optional[Dict[str, str]] = None
    configuration_set_name: Optional[str] = None
    from_address: Optional[str] = None
    from_arn: Optional[str] = None
    reply_to: Optional[List[str]] = None
    feedback_forwarding_email_address: Optional[str] = None
    feedback_forwarding_email_address_identity_arn: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, name: str = 'bulkEmail') -> Optional['SendBulkEmailInput']:
        data = _expect_dict(data, name)
        if data is None:
            return None
        entries = _expect_list(data.get('entries'), f'{name}.entries') or []
        default_content = _expect_dict(data.get('defaultContent'), f'{name}.defaultContent') or {}
        # "temaplte" and "fromarn" are the spellings older callers were built against
        template = default_content.get('template', default_content.get('temaplte'))
        return cls(
            entries=[
                BulkEmailEntry.from_dict(entry, f'{name}.entries[{i}]')
                for i, entry in enumerate(entries)
            ],
            default_template=Template.from_dict(template, f'{name}.defaultContent.template'),
            default_tags=_tags(data.get('defaultTags'), f'{name}.defaultTags'),
            configuration_set_name=data.get('configSetName'),
            from_address=data.get('from'),
            from_arn=data.get('fromArn', data.get('fromarn')),
            reply_to=_string_list(data.get('replyTo'), f'{name}.replyTo'),
            feedback_forwarding_email_address=data.get('feedbackForwardingEmailAddress'),
            feedback_forwarding_email_address_identity_arn=data.get(
                'feedbackForwardingEmailAddressIdentityArn'
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        default_content = None
        if self.default_template is not None:
            default_content = {'template': self.default_template.to_dict()}
        return _drop_none({
            'entries': [entry.to_dict() for entry in self.entries],
            'defaultContent': default_content,
            'defaultTags': self.default_tags,
            'configSetName': self.configuration_set_name,
            'from': self.from_address,
            'fromArn': self.from_arn,
            'replyTo': self.reply_to,
            'feedbackForwardingEmailAddress': self.feedback_forwarding_email_address,
            'feedbackForwardingEmailAddressIdentityArn':
                self.feedback_forwarding_email_address_identity_arn,
        })


# ============================================================================
# Results
# ============================================================================

class BulkEmailStatus(str, Enum):
    """Per-entry status reported by SES for a bulk send."""
    SUCCESS = 'SUCCESS'
    MESSAGE_REJECTED = 'MESSAGE_REJECTED'
    MAIL_FROM_DOMAIN_NOT_VERIFIED = 'MAIL_FROM_DOMAIN_NOT_VERIFIED'
    CONFIGURATION_SET_NOT_FOUND = 'CONFIGURATION_SET_NOT_FOUND'
    TEMPLATE_NOT_FOUND = 'TEMPLATE_NOT_FOUND'
    ACCOUNT_SUSPENDED = 'ACCOUNT_SUSPENDED'
    ACCOUNT_THROTTLED = 'ACCOUNT_THROTTLED'
    ACCOUNT_DAILY_QUOTA_EXCEEDED = 'ACCOUNT_DAILY_QUOTA_EXCEEDED'
    INVALID_SENDING_POOL_NAME = 'INVALID_SENDING_POOL_NAME'
    ACCOUNT_SENDING_PAUSED = 'ACCOUNT_SENDING_PAUSED'
    CONFIGURATION_SET_SENDING_PAUSED = 'CONFIGURATION_SET_SENDING_PAUSED'
    INVALID_PARAMETER = 'INVALID_PARAMETER'
    TRANSIENT_FAILURE = 'TRANSIENT_FAILURE'
    FAILED = 'FAILED'


@dataclass
class SendEmailOutput:
    """
    Result of an accepted single send.

    Attributes:
        message_id: SES message identifier
        metadata: SES response metadata (request id, HTTP status...)
    """
    message_id: Optional[str]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SendEmailOutput':
        return cls(message_id=data.get('messageId'), metadata=data.get('metaData') or {})

    def to_dict(self) -> Dict[str, Any]:
        return {'messageId': self.message_id, 'metaData': self.metadata}


@dataclass
class BulkEmailEntryResult:
    """Outcome of one bulk entry. A non-SUCCESS status is data, not an exception."""
    status: Optional[BulkEmailStatus] = None
    message_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == BulkEmailStatus.SUCCESS

    @classmethod
    def from_status(cls, status: Optional[str], message_id: Optional[str] = None,
                    error: Optional[str] = None) -> 'BulkEmailEntryResult':
        """
        Build a result from a raw status string.

        SES may add statuses this module does not know. Those entries were
        not confirmed as sent, so they map to FAILED and the raw status is
        kept in ``error``.
        """
        if not status:
            return cls(status=None, message_id=message_id, error=error)
        try:
            return cls(status=BulkEmailStatus(status), message_id=message_id, error=error)
        except ValueError:
            unrecognized = f"Unrecognized status '{status}'"
            return cls(
                status=BulkEmailStatus.FAILED,
                message_id=message_id,
                error=f"{unrecognized}: {error}" if error else unrecognized,
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BulkEmailEntryResult':
        return cls.from_status(data.get('status'), data.get('messageId'), data.get('error'))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value if self.status else None,
            'messageId': self.message_id,
            'error': self.error,
        }


@dataclass
class SendBulkEmailOutput:
    """Per-entry results of a bulk send, in entry order."""
    results: List[BulkEmailEntryResult] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SendBulkEmailOutput':
        return cls(
            results=[BulkEmailEntryResult.from_dict(r) for r in data.get('result') or []],
            metadata=data.get('metaData') or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'result': [r.to_dict() for r in self.results],
            'metaData': self.metadata,
        }


# ============================================================================
# Handler envelopes
# ============================================================================

@dataclass
class HandlerInput:
    """
    Request envelope. At most one field is expected to be set; when several
    are, ``email`` wins over ``emails`` which wins over ``bulk_email``.
    """
    email: Optional[SendEmailInput] = None
    emails: List[SendEmailInput] = field(default_factory=list)
    bulk_email: Optional[SendBulkEmailInput] = None

    @property
    def populated_fields(self) -> List[str]:
        """Wire names of the populated fields, in dispatch order."""
        names = []
        if self.email is not None:
            names.append('email')
        if self.emails:
            names.append('emails')
        if self.bulk_email is not None:
            names.append('bulkEmail')
        return names

    @classmethod
    def from_dict(cls, data: Any) -> 'HandlerInput':
        """
        Decode a Lambda event into a HandlerInput.

        Raises:
            ValueError: If the event or one of its fields has the wrong JSON type
        """
        if data is None:
            return cls()
        data = _expect_dict(data, 'event')
        emails = _expect_list(data.get('emails'), 'emails') or []
        return cls(
            email=SendEmailInput.from_dict(data.get('email'), 'email'),
            emails=[
                SendEmailInput.from_dict(item, f'emails[{i}]') or SendEmailInput()
                for i, item in enumerate(emails)
            ],
            bulk_email=SendBulkEmailInput.from_dict(data.get('bulkEmail'), 'bulkEmail'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'email': self.email.to_dict() if self.email else None,
            'emails': [e.to_dict() for e in self.emails] if self.emails else None,
            'bulkEmail': self.bulk_email.to_dict() if self.bulk_email else None,
        })


@dataclass
class HandlerOutput:
    """
    Response envelope. Only the fields of the dispatched operation are set.

    Attributes:
        email: Single send result
        error: Single send error message
        emails: Successful batch results
        errors: Batch error messages (None when no entry failed)
        bulk_email: Bulk send result
        bulk_email_error: Bulk send error message
        failure: Exception that failed the single or bulk send (not serialized)
    """
    email: Optional[SendEmailOutput] = None
    error: Optional[str] = None
    emails: Optional[List[SendEmailOutput]] = None
    errors: Optional[List[str]] = None
    bulk_email: Optional[SendBulkEmailOutput] = None
    bulk_email_error: Optional[str] = None
    failure: Optional[Exception] = field(default=None, repr=False, compare=False)

    @property
    def is_empty(self) -> bool:
        return all(
            value is None for value in (
                self.email, self.error, self.emails,
                self.errors, self.bulk_email, self.bulk_email_error,
            )
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HandlerOutput':
        data = data or {}
        email = data.get('email')
        emails = data.get('emails')
        bulk_email = data.get('bulkEmail')
        return cls(
            email=SendEmailOutput.from_dict(email) if email else None,
            error=data.get('error'),
            emails=[SendEmailOutput.from_dict(e) for e in emails] if emails is not None else None,
            errors=data.get('errors'),
            bulk_email=SendBulkEmailOutput.from_dict(bulk_email) if bulk_email else None,
            bulk_email_error=data.get('bulkEmailError'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'email': self.email.to_dict() if self.email else None,
            'error': self.error,
            'emails': [e.to_dict() for e in self.emails] if self.emails is not None else None,
            'errors': self.errors,
            'bulkEmail': self.bulk_email.to_dict() if self.bulk_email else None,
            'bulkEmailError': self.bulk_email_error,
        }
