"""
Clients for calling the deployed function from other services.
"""
