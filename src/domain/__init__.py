"""
Domain layer for email routing.

This layer contains:
- Data models (wire-format request and response envelopes)
- Routing logic (dispatch to single, batch or bulk send)
- Validation errors
"""
