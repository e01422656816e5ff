"""
Tests for EmailRouter dispatch and aggregation.
"""

import pytest
from unittest.mock import Mock
from botocore.exceptions import ClientError, EndpointConnectionError

from domain.errors import MissingContentError, MissingDestinationError
from domain.models import HandlerInput
from domain.router import EmailRouter


@pytest.fixture
def ses_client():
    """Mock SES client that accepts every email."""
    client = Mock()
    client.send_email.return_value = {
        'MessageId': 'msg-123',
        'ResponseMetadata': {'RequestId': 'req-1'}
    }
    client.send_bulk_email.return_value = {
        'BulkEmailEntryResults': [
            {'Status': 'SUCCESS', 'MessageId': 'bulk-1'},
            {'Status': 'SUCCESS', 'MessageId': 'bulk-2'},
        ],
        'ResponseMetadata': {'RequestId': 'req-2'}
    }
    return client


@pytest.fixture
def router(ses_client):
    return EmailRouter(ses_client)


class TestDispatch:
    """Test selection of the operation."""

    def test_single_email(self, router, ses_client, simple_email):
        """Test a valid single email fills email and leaves error empty."""
        output = router.route(HandlerInput.from_dict({'email': simple_email}))

        assert output.email.message_id == 'msg-123'
        assert output.error is None
        assert output.emails is None
        assert output.bulk_email is None
        ses_client.send_email.assert_called_once()

    def test_no_operation(self, router, ses_client):
        """Test that an empty input is a no-op."""
        output = router.route(HandlerInput.from_dict({}))

        assert output.is_empty
        assert output.failure is None
        ses_client.send_email.assert_not_called()
        ses_client.send_bulk_email.assert_not_called()

    def test_empty_emails_list_is_no_op(self, router, ses_client):
        """Test that an empty emails list does not select the batch path."""
        output = router.route(HandlerInput.from_dict({'emails': []}))

        assert output.is_empty
        ses_client.send_email.assert_not_called()

    def test_email_wins_over_other_fields(self, router, ses_client, simple_email, bulk_email):
        """Test first-match-wins when several fields are populated."""
        output = router.route(HandlerInput.from_dict({
            'bulkEmail': bulk_email,
            'emails': [simple_email, simple_email],
            'email': simple_email,
        }))

        assert output.email is not None
        assert output.emails is None
        assert output.bulk_email is None
        assert ses_client.send_email.call_count == 1
        ses_client.send_bulk_email.assert_not_called()

    def test_emails_win_over_bulk(self, router, ses_client, simple_email, bulk_email):
        """Test that emails is chosen before bulkEmail."""
        output = router.route(HandlerInput.from_dict({
            'bulkEmail': bulk_email,
            'emails': [simple_email],
        }))

        assert len(output.emails) == 1
        ses_client.send_bulk_email.assert_not_called()


class TestSingleSend:
    """Test the single send path."""

    def test_missing_content(self, router, ses_client):
        """Test that missing content is reported without calling SES."""
        output = router.route(HandlerInput.from_dict({
            'email': {'from': 'a@x.com', 'dest': {'to': ['b@x.com']}}
        }))

        assert output.email is None
        assert output.error == 'Content is required'
        assert isinstance(output.failure, MissingContentError)
        ses_client.send_email.assert_not_called()

    def test_missing_destination(self, router, simple_email):
        """Test that missing dest is reported."""
        del simple_email['dest']

        output = router.route(HandlerInput.from_dict({'email': simple_email}))

        assert output.error == 'Destination is required'
        assert isinstance(output.failure, MissingDestinationError)

    def test_provider_error(self, router, ses_client, simple_email):
        """Test that an SES error lands in error and failure."""
        error = ClientError(
            {'Error': {'Code': 'MessageRejected', 'Message': 'Email address is not verified.'}},
            'SendEmail'
        )
        ses_client.send_email.side_effect = error

        output = router.route(HandlerInput.from_dict({'email': simple_email}))

        assert output.email is None
        assert 'Email address is not verified.' in output.error
        assert output.failure is error

    def test_transport_error(self, router, ses_client, simple_email):
        """Test that botocore transport errors are captured too."""
        ses_client.send_email.side_effect = EndpointConnectionError(
            endpoint_url='https://email.us-east-1.amazonaws.com'
        )

        output = router.route(HandlerInput.from_dict({'email': simple_email}))

        assert 'Could not connect' in output.error
        assert isinstance(output.failure, EndpointConnectionError)


class TestBatchSend:
    """Test the best-effort batch path."""

    def test_all_succeed(self, router, ses_client, simple_email):
        """Test that errors is omitted when nothing fails."""
        output = router.route(HandlerInput.from_dict({'emails': [simple_email] * 3}))

        assert len(output.emails) == 3
        assert output.errors is None
        assert output.to_dict()['errors'] is None
        assert ses_client.send_email.call_count == 3

    def test_partial_failure(self, router, ses_client, simple_email):
        """Test that N entries with K failures give N-K results and K errors."""
        missing_content = {'from': 'a@x.com', 'dest': {'to': ['b@x.com']}}

        output = router.route(HandlerInput.from_dict({
            'emails': [simple_email, missing_content]
        }))

        assert len(output.emails) == 1
        assert output.errors == ['Content is required']
        assert output.failure is None

    def test_provider_failure_does_not_stop_batch(self, router, ses_client, simple_email):
        """Test that a rejected entry does not abort the following ones."""
        ses_client.send_email.side_effect = [
            {'MessageId': 'msg-1'},
            ClientError({'Error': {'Code': 'Throttling', 'Message': 'Rate exceeded'}}, 'SendEmail'),
            {'MessageId': 'msg-3'},
        ]

        output = router.route(HandlerInput.from_dict({'emails': [simple_email] * 3}))

        assert [o.message_id for o in output.emails] == ['msg-1', 'msg-3']
        assert len(output.errors) == 1
        assert 'Rate exceeded' in output.errors[0]
        assert ses_client.send_email.call_count == 3

    def test_null_entry(self, router, simple_email):
        """Test that a null entry is reported as missing content."""
        output = router.route(HandlerInput.from_dict({'emails': [simple_email, None]}))

        assert len(output.emails) == 1
        assert output.errors == ['Content is required']

    def test_deadline_stops_remaining_entries(self, ses_client, simple_email, lambda_context):
        """Test that entries after the deadline are recorded as errors, not sent."""
        lambda_context.get_remaining_time_in_millis.side_effect = [5000, 500, 400]
        router = EmailRouter(ses_client, deadline_margin_ms=1000)

        output = router.route(
            HandlerInput.from_dict({'emails': [simple_email] * 3}),
            lambda_context
        )

        assert len(output.emails) == 1
        assert len(output.errors) == 2
        assert all('deadline exceeded' in e for e in output.errors)
        assert ses_client.send_email.call_count == 1

    def test_context_without_deadline(self, router, ses_client, simple_email):
        """Test that a context lacking get_remaining_time_in_millis is ignored."""
        output = router.route(
            HandlerInput.from_dict({'emails': [simple_email]}),
            object()
        )

        assert len(output.emails) == 1


class TestBulkSend:
    """Test the bulk path."""

    def test_bulk_success(self, router, ses_client, bulk_email):
        """Test result mapping for a bulk send."""
        output = router.route(HandlerInput.from_dict({'bulkEmail': bulk_email}))

        assert [r.message_id for r in output.bulk_email.results] == ['bulk-1', 'bulk-2']
        assert output.bulk_email_error is None
        ses_client.send_bulk_email.assert_called_once()

    def test_missing_destination_aborts_bulk(self, router, ses_client, bulk_email):
        """Test that any entry without destination fails before SES is called."""
        del bulk_email['entries'][1]['destination']

        output = router.route(HandlerInput.from_dict({'bulkEmail': bulk_email}))

        assert output.bulk_email is None
        assert output.bulk_email_error == 'Destination is required for bulk entry 1'
        assert isinstance(output.failure, MissingDestinationError)
        ses_client.send_bulk_email.assert_not_called()

    def test_entry_statuses_are_data(self, router, ses_client, bulk_email):
        """Test that failed entry statuses do not produce an error."""
        ses_client.send_bulk_email.return_value = {
            'BulkEmailEntryResults': [
                {'Status': 'SUCCESS', 'MessageId': 'bulk-1'},
                {'Status': 'ACCOUNT_DAILY_QUOTA_EXCEEDED', 'Error': 'Quota exceeded'},
            ]
        }

        output = router.route(HandlerInput.from_dict({'bulkEmail': bulk_email}))

        assert output.bulk_email_error is None
        assert output.failure is None
        assert output.bulk_email.results[1].succeeded is False

    def test_unknown_entry_status_is_data(self, router, ses_client, bulk_email):
        """Test that an unrecognized status after SES accepted the bulk is still reported as output."""
        ses_client.send_bulk_email.return_value = {
            'BulkEmailEntryResults': [
                {'Status': 'SUCCESS', 'MessageId': 'bulk-1'},
                {'Status': 'SOME_NEW_STATUS', 'MessageId': 'bulk-2'},
            ]
        }

        output = router.route(HandlerInput.from_dict({'bulkEmail': bulk_email}))

        assert output.bulk_email_error is None
        assert output.failure is None
        assert [r.message_id for r in output.bulk_email.results] == ['bulk-1', 'bulk-2']
        assert output.bulk_email.results[1].succeeded is False
        assert 'SOME_NEW_STATUS' in output.bulk_email.results[1].error
        ses_client.send_bulk_email.assert_called_once()

    def test_bulk_provider_error(self, router, ses_client, bulk_email):
        """Test that an SES error for the whole request is captured."""
        ses_client.send_bulk_email.side_effect = ClientError(
            {'Error': {'Code': 'NotFoundException', 'Message': 'Template not found'}},
            'SendBulkEmail'
        )

        output = router.route(HandlerInput.from_dict({'bulkEmail': bulk_email}))

        assert 'Template not found' in output.bulk_email_error
        assert isinstance(output.failure, ClientError)
