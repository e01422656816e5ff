"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
from unittest.mock import Mock

import pytest

# Add src and hooks to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../hooks'))

# Set up test environment variables before importing any modules
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')
os.environ.setdefault('AWS_ACCESS_KEY_ID', 'testing')
os.environ.setdefault('AWS_SECRET_ACCESS_KEY', 'testing')
os.environ.setdefault('LOG_LEVEL', 'INFO')


@pytest.fixture
def lambda_context():
    """Mock Lambda context with plenty of time left."""
    context = Mock()
    context.aws_request_id = "test-request-id"
    context.function_name = "lambda-ses-test"
    context.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:lambda-ses-test"
    context.get_remaining_time_in_millis.return_value = 300000
    return context


@pytest.fixture
def simple_email():
    """Wire-format single email request."""
    return {
        'from': 'a@x.com',
        'dest': {'to': ['b@x.com']},
        'content': {
            'simple': {
                'subject': {'data': 'Hi'},
                'body': {'html': {'data': '<p>hi</p>'}}
            }
        }
    }


@pytest.fixture
def bulk_email():
    """Wire-format bulk email request with two entries."""
    return {
        'from': 'a@x.com',
        'defaultContent': {
            'template': {'name': 'welcome', 'data': '{"name": "friend"}'}
        },
        'defaultTags': {'campaign': 'launch'},
        'entries': [
            {
                'destination': {'to': ['b@x.com']},
                'content': {'replacementTemplate': {'data': '{"name": "Bea"}'}},
                'tags': {'segment': 'beta'}
            },
            {
                'destination': {'to': ['c@x.com']}
            }
        ]
    }
