"""API client module for the upstream sports data provider"""

from .base_client import BaseAPIClient
from .espn_client import EspnClient, SPORT_PATHS, CORE_PATHS, sport_path

__all__ = [
    'BaseAPIClient',
    'EspnClient',
    'SPORT_PATHS',
    'CORE_PATHS',
    'sport_path',
]
