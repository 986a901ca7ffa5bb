"""
Services package for the arbiter.
"""

from .arbiter_service import ArbiterService, service_result

__all__ = ['ArbiterService', 'service_result']
