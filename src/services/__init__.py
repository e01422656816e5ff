"""
Service functions used by the Lambda handler.

This package wraps the AWS SDK calls the handler depends on.
"""

__all__ = ['ses']
