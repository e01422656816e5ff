"""
Client for invoking the lambda-ses function.

This module wraps ``lambda.invoke`` so callers can send email through the
deployed function without dealing with payload encoding or log decoding.

Usage:
    from integrations.lambda_ses import LambdaSes

    lambda_ses = LambdaSes()
    response = lambda_ses.send_email({
        "from": "sender@example.com",
        "dest": {"to": ["recipient@example.com"]},
        "content": {
            "simple": {
                "subject": {"data": "Hello"},
                "body": {"html": {"data": "<p>Hello!</p>", "charset": "UTF-8"}}
            }
        }
    })
    print(response.payload.email.message_id)
"""

import base64
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import boto3

from domain.models import (
    HandlerInput,
    HandlerOutput,
    SendBulkEmailInput,
    SendEmailInput,
)

logger = logging.getLogger(__name__)

DEFAULT_FUNCTION_NAME = 'lambda-ses'

INVOCATION_TYPES = ('RequestResponse', 'Event', 'DryRun')
LOG_TYPES = ('None', 'Tail')

# Parameters the client always sets itself
_RESERVED_PARAMS = ('FunctionName', 'Payload')


@dataclass
class InvocationErrorPayload:
    """
    Error object returned by Lambda when the function itself failed.

    Attributes:
        error_message: Exception message from the function
        error_type: Exception class name
        stack_trace: Stack trace lines, when Lambda provides them
    """
    error_message: str
    error_type: str
    stack_trace: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InvocationErrorPayload':
        return cls(
            error_message=str(data.get('errorMessage', '')),
            error_type=str(data.get('errorType', 'Unknown')),
            stack_trace=list(data.get('stackTrace') or []),
        )


@dataclass
class InvocationResponse:
    """
    Decoded result of one invocation.

    Attributes:
        status: 200 for RequestResponse, 202 for Event, 204 for DryRun
        error: Set when the function execution failed (FunctionError)
        logs: Decoded tail of the execution log (LogType="Tail" only)
        payload: HandlerOutput, InvocationErrorPayload on function error,
            or None when the invocation returned no payload
        version: Function version that executed
        metadata: boto3 response metadata
    """
    status: Optional[int] = None
    error: Optional[str] = None
    logs: Optional[str] = None
    payload: Optional[Union[HandlerOutput, InvocationErrorPayload]] = None
    version: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class LambdaSesError(Exception):
    """
    Raised when the remote function execution failed.

    This is not an email delivery failure: those are reported inside the
    payload. It means the handler crashed or raised.
    """

    def __init__(self, response: InvocationResponse):
        self.response = response
        self.payload = response.payload
        self.status = response.status
        self.error = response.error
        self.logs = response.logs
        self.version = response.version
        self.metadata = response.metadata

        if isinstance(self.payload, InvocationErrorPayload):
            message = f"{self.payload.error_type}: {self.payload.error_message}"
        else:
            message = f"Function error: {self.error}"
        super().__init__(message)


def _decode_logs(log_result: Optional[str]) -> Optional[str]:
    if not log_result:
        return None
    return base64.b64decode(log_result).decode('utf-8', errors='replace')


def _read_payload(raw_payload: Any) -> Optional[str]:
    """Read the invoke Payload (StreamingBody or bytes) into text."""
    if raw_payload is None:
        return None
    body = raw_payload.read() if hasattr(raw_payload, 'read') else raw_payload
    if isinstance(body, bytes):
        body = body.decode('utf-8')
    return body or None


class LambdaSes:
    """
    Sends email through the lambda-ses function.

    Every call is one synchronous ``lambda.invoke`` round trip. Two calling
    conventions are offered: ``send_or_return`` always returns the decoded
    response, ``send_or_throw`` raises LambdaSesError when the function
    itself failed.
    """

    def __init__(self, lambda_client=None, function_name: str = DEFAULT_FUNCTION_NAME):
        """
        Args:
            lambda_client: boto3 Lambda client. Created from the default
                session when omitted.
            function_name: Function name, ARN or alias to invoke
        """
        self.lambda_client = lambda_client or boto3.client('lambda')
        self.function_name = function_name

    def _build_invoke_params(
        self,
        payload: Union[HandlerInput, Dict[str, Any]],
        params: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Merge caller parameters over the defaults.

        Raises:
            ValueError: If params override reserved keys or carry unknown enum values
        """
        params = dict(params or {})

        reserved = [key for key in _RESERVED_PARAMS if key in params]
        if reserved:
            raise ValueError(f"Parameters {reserved} are set by the client and cannot be overridden")

        invocation_type = params.pop('InvocationType', None) or 'RequestResponse'
        log_type = params.pop('LogType', None) or 'Tail'

        if invocation_type not in INVOCATION_TYPES:
            raise ValueError(
                f"InvocationType must be one of {INVOCATION_TYPES}, got: '{invocation_type}'"
            )
        if log_type not in LOG_TYPES:
            raise ValueError(f"LogType must be one of {LOG_TYPES}, got: '{log_type}'")

        body = payload.to_dict() if isinstance(payload, HandlerInput) else payload

        invoke_params = {
            'FunctionName': self.function_name,
            'InvocationType': invocation_type,
            'LogType': log_type,
            'Payload': json.dumps(body).encode('utf-8'),
        }
        invoke_params.update(params)
        return invoke_params

    def _invoke(
        self,
        payload: Union[HandlerInput, Dict[str, Any]],
        params: Optional[Dict[str, Any]]
    ) -> InvocationResponse:
        invoke_params = self._build_invoke_params(payload, params)

        logger.info(
            f"Invoking {self.function_name}: "
            f"invocation_type={invoke_params['InvocationType']}, "
            f"payload_size={len(invoke_params['Payload'])} bytes"
        )

        result = self.lambda_client.invoke(**invoke_params)

        function_error = result.get('FunctionError')
        text = _read_payload(result.get('Payload'))

        decoded = None
        if text is not None:
            data = json.loads(text)
            if function_error:
                decoded = InvocationErrorPayload.from_dict(data if isinstance(data, dict) else {})
            else:
                decoded = HandlerOutput.from_dict(data)

        response = InvocationResponse(
            status=result.get('StatusCode'),
            error=function_error,
            logs=_decode_logs(result.get('LogResult')),
            payload=decoded,
            version=result.get('ExecutedVersion'),
            metadata=result.get('ResponseMetadata', {}),
        )

        if function_error:
            logger.warning(f"Function {self.function_name} reported error: {function_error}")
        else:
            logger.info(f"Invocation complete: status={response.status}, version={response.version}")

        return response

    def send_or_return(
        self,
        payload: Union[HandlerInput, Dict[str, Any]],
        params: Optional[Dict[str, Any]] = None
    ) -> InvocationResponse:
        """
        Invoke the function and return the decoded response.

        Never raises for a function error; check ``response.error``.

        Args:
            payload: HandlerInput or its wire-format dict
            params: Extra ``lambda.invoke`` parameters (InvocationType, LogType,
                Qualifier, ClientContext)

        Returns:
            InvocationResponse
        """
        return self._invoke(payload, params)

    def send_or_throw(
        self,
        payload: Union[HandlerInput, Dict[str, Any]],
        params: Optional[Dict[str, Any]] = None
    ) -> InvocationResponse:
        """
        Invoke the function, raising if its execution failed.

        Raises:
            LambdaSesError: If Lambda reported a FunctionError
        """
        response = self._invoke(payload, params)
        if response.error:
            raise LambdaSesError(response)
        return response

    def send(
        self,
        payload: Union[HandlerInput, Dict[str, Any]],
        params: Optional[Dict[str, Any]] = None,
        throw_error: bool = False
    ) -> InvocationResponse:
        """Send email(s) via the function; see send_or_return / send_or_throw."""
        if throw_error:
            return self.send_or_throw(payload, params)
        return self.send_or_return(payload, params)

    def send_email(
        self,
        email: Union[SendEmailInput, Dict[str, Any]],
        params: Optional[Dict[str, Any]] = None,
        throw_error: bool = False
    ) -> InvocationResponse:
        """Send a single email. The result is in ``payload.email`` / ``payload.error``."""
        if isinstance(email, SendEmailInput):
            return self.send(HandlerInput(email=email), params, throw_error)
        return self.send({'email': email}, params, throw_error)

    def send_emails(
        self,
        emails: List[Union[SendEmailInput, Dict[str, Any]]],
        params: Optional[Dict[str, Any]] = None,
        throw_error: bool = False
    ) -> InvocationResponse:
        """Send several emails. Results are in ``payload.emails`` / ``payload.errors``."""
        items = [e.to_dict() if isinstance(e, SendEmailInput) else e for e in emails]
        return self.send({'emails': items}, params, throw_error)

    def send_bulk_email(
        self,
        bulk_email: Union[SendBulkEmailInput, Dict[str, Any]],
        params: Optional[Dict[str, Any]] = None,
        throw_error: bool = False
    ) -> InvocationResponse:
        """Send a templated bulk email. The result is in ``payload.bulk_email``."""
        if isinstance(bulk_email, SendBulkEmailInput):
            return self.send(HandlerInput(bulk_email=bulk_email), params, throw_error)
        return self.send({'bulkEmail': bulk_email}, params, throw_error)
