"""
Domain utilities for the token service.

Includes the request router, request/response models and the CORS header
helper. Nothing here performs IO except the router's upstream calls.
"""
