"""
Fetch Module

Retrieves compatibility documents and endoflife.date release data for the
resolution pipeline.
"""

from .fetcher import DocumentFetcher, FetchOutcome, github_raw_url, normalize_fetched_content, successful_contents
from .retry import RetryPolicy, is_retryable_http_status, is_retryable_network_error, retry_call
from .url_policy import validate_public_https_url

__all__ = [
    'DocumentFetcher',
    'FetchOutcome',
    'github_raw_url',
    'normalize_fetched_content',
    'successful_contents',
    'RetryPolicy',
    'is_retryable_http_status',
    'is_retryable_network_error',
    'retry_call',
    'validate_public_https_url',
]
