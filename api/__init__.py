"""
API client layer for the draft session engine

HTTP client for the catalog / persistence API and the spectator event stream.
"""
from .client import APIClient, get_api_client, get_global_client, cleanup_global_client

__all__ = ['APIClient', 'get_api_client', 'get_global_client', 'cleanup_global_client']
