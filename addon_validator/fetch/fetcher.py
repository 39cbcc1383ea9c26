"""
Document fetcher for compatibility pages and endoflife.date release data.

Pages are fetched through a shared requests.Session with the retry policy
from retry.py. Distinct URLs can be fetched concurrently through a fixed-size
worker pool, and one failed URL never affects the others.
"""

import json
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from ..config import FetchConfig
from ..exceptions import FetchError
from ..models import EOLCycle, EOLProduct
from .retry import RetryPolicy, RetryableStatusError, is_retryable_http_status, retry_call
from .url_policy import validate_public_https_url

logger = logging.getLogger(__name__)

EOL_API_URL = "https://endoflife.date/api/{product}.json"
EOL_PRODUCTS_URL = "https://endoflife.date/api/v1/products"
RAW_GITHUB_HOST = "https://raw.githubusercontent.com"

PAGE_ACCEPT = "text/html,application/xhtml+xml,text/plain;q=0.9,*/*;q=0.8"
JSON_ACCEPT = "application/json"

BLOCK_TAGS = ['p', 'div', 'li', 'tr', 'td', 'th', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
              'table', 'section', 'article', 'ul', 'ol']

_HORIZONTAL_WHITESPACE = re.compile(r'[ \t\r\f\v]+')


@dataclass(frozen=True)
class FetchOutcome:
    """Fetched text for a URL, or the error that prevented fetching it."""
    content: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


def successful_contents(outcomes: Dict[str, FetchOutcome]) -> Dict[str, str]:
    """Content of every outcome that fetched without error, keyed by URL."""
    return {url: outcome.content for url, outcome in outcomes.items() if outcome.ok}


def github_raw_url(url: str) -> str:
    """
    Rewrite a GitHub URL to raw Markdown on raw.githubusercontent.com.

    Repository roots map to HEAD/README.md, blob URLs to the raw file and tree
    URLs to README.md in that directory. Wiki, release and organisation URLs,
    and anything not on github.com, are returned unchanged.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if parsed.netloc != 'github.com':
        return url

    segments = [segment for segment in parsed.path.split('/') if segment]
    if len(segments) < 2:
        return url

    owner, repo = segments[0], segments[1]
    if len(segments) >= 3 and segments[2] in ('wiki', 'releases'):
        return url

    if len(segments) >= 4 and segments[2] == 'blob':
        ref = segments[3]
        file_path = '/'.join(segments[4:])
        return f"{RAW_GITHUB_HOST}/{owner}/{repo}/{ref}/{file_path}"

    if len(segments) >= 4 and segments[2] == 'tree':
        ref = segments[3]
        if len(segments) > 4:
            sub_path = '/'.join(segments[4:])
            return f"{RAW_GITHUB_HOST}/{owner}/{repo}/{ref}/{sub_path}/README.md"
        return f"{RAW_GITHUB_HOST}/{owner}/{repo}/{ref}/README.md"

    if len(segments) == 2:
        return f"{RAW_GITHUB_HOST}/{owner}/{repo}/HEAD/README.md"

    return url


def normalize_fetched_content(raw_text: str, is_raw: bool, max_chars: int = 120000) -> str:
    """
    Turn fetched content into plain text lines.

    HTML block elements become line breaks so version tables stay one row
    per line; tags are dropped and whitespace collapsed. Raw Markdown is
    left as is. The result is cut to max_chars.

    Args:
        raw_text: Response body
        is_raw: True for raw GitHub content
        max_chars: Maximum length of the returned text

    Returns:
        Normalized text
    """
    text = raw_text
    if not is_raw:
        soup = BeautifulSoup(raw_text, 'html.parser')
        for tag in soup(['script', 'style']):
            tag.decompose()
        for tag in soup.find_all('br'):
            tag.replace_with('\n')
        for tag in soup.find_all(BLOCK_TAGS):
            tag.insert_before('\n')
            tag.insert_after('\n')
        text = soup.get_text()
        text = _HORIZONTAL_WHITESPACE.sub(' ', text)
        text = '\n'.join(line.strip() for line in text.split('\n') if line.strip())

    if len(text) > max_chars:
        text = text[:max_chars]
    return text


class DocumentFetcher:
    """Fetches compatibility pages and EOL data over HTTPS."""

    def __init__(self, config: Optional[FetchConfig] = None,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the fetcher.

        Args:
            config: Fetch configuration, defaults to FetchConfig()
            session: Optional requests session to share
            sleep: Sleep function used between retries
        """
        self.config = config or FetchConfig()
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': self.config.user_agent})
        self.retry_policy = RetryPolicy.from_config(self.config)
        self.sleep = sleep

    def fetch_page(self, url: str) -> str:
        """
        Fetch a compatibility page as normalized text.

        Args:
            url: Public HTTPS URL

        Returns:
            Normalized page text

        Raises:
            FetchError: If the URL is rejected, the request fails or the
                response status is 400 or above
        """
        validate_public_https_url(url)
        raw_url = github_raw_url(url)
        is_raw = raw_url != url
        if is_raw:
            validate_public_https_url(raw_url)

        response = self._get(raw_url, self.config.timeout_seconds, PAGE_ACCEPT)
        try:
            if response.status_code >= 400:
                raise FetchError(f"HTTP {response.status_code}", url=url, status_code=response.status_code)
            body = self._read_body(response)
        finally:
            response.close()

        return normalize_fetched_content(body, is_raw, self.config.max_content_chars)

    def fetch_eol_cycles(self, product: str) -> List[EOLCycle]:
        """
        Fetch release cycles for an endoflife.date product slug.

        Raises:
            FetchError: On transport errors, a non-200 status or an unexpected body
        """
        url = EOL_API_URL.format(product=product)
        data = self._get_json(url)
        if not isinstance(data, list):
            raise FetchError("expected a list of release cycles", url=url)
        return [EOLCycle.from_dict(item) for item in data if isinstance(item, dict)]

    def fetch_eol_products(self) -> List[EOLProduct]:
        """
        Fetch the endoflife.date v1 product catalog.

        Raises:
            FetchError: On transport errors, a non-200 status or an unexpected body
        """
        data = self._get_json(EOL_PRODUCTS_URL)
        if not isinstance(data, dict) or not isinstance(data.get('result'), list):
            raise FetchError("expected an object with a 'result' list", url=EOL_PRODUCTS_URL)
        return [EOLProduct.from_dict(item) for item in data['result'] if isinstance(item, dict)]

    def fetch_all(self, urls: Iterable[str]) -> Dict[str, FetchOutcome]:
        """
        Fetch distinct URLs concurrently.

        Args:
            urls: URLs to fetch; duplicates and blanks are ignored

        Returns:
            Dictionary of URL to FetchOutcome, one entry per distinct URL
        """
        distinct = sorted({url.strip() for url in urls if url and url.strip()})
        if not distinct:
            return {}

        logger.info(f"Fetching {len(distinct)} compatibility pages")
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            outcomes = list(executor.map(self._fetch_outcome, distinct))
        return dict(zip(distinct, outcomes))

    def _fetch_outcome(self, url: str) -> FetchOutcome:
        try:
            return FetchOutcome(content=self.fetch_page(url))
        except (FetchError, requests.exceptions.RequestException) as e:
            logger.warning(f"Failed to fetch {url}: {e}")
            return FetchOutcome(error=str(e))

    def _get(self, url: str, timeout: float, accept: str) -> requests.Response:
        attempts = max(self.retry_policy.attempts, 1)

        def attempt_request(attempt: int) -> requests.Response:
            response = self.session.get(url, timeout=timeout, headers={'Accept': accept}, stream=True)
            if is_retryable_http_status(response.status_code) and attempt < attempts:
                response.close()
                raise RetryableStatusError(f"retryable HTTP status {response.status_code}",
                                           url=url, status_code=response.status_code)
            return response

        try:
            return retry_call(attempt_request, self.retry_policy, sleep=self.sleep)
        except requests.exceptions.RequestException as e:
            raise FetchError(f"HTTP request failed: {e}", url=url)

    def _get_json(self, url: str):
        response = self._get(url, self.config.eol_timeout_seconds, JSON_ACCEPT)
        try:
            if response.status_code != 200:
                raise FetchError(f"unexpected status {response.status_code}", url=url,
                                 status_code=response.status_code)
            body = self._read_body(response)
        finally:
            response.close()

        try:
            return json.loads(body)
        except ValueError as e:
            raise FetchError(f"invalid JSON: {e}", url=url)

    def _read_body(self, response: requests.Response) -> str:
        """Read at most max_body_bytes of the response body as text."""
        limit = self.config.max_body_bytes
        chunks = []
        size = 0
        for chunk in response.iter_content(chunk_size=65536):
            if not chunk:
                continue
            chunks.append(chunk)
            size += len(chunk)
            if size >= limit:
                break
        body = b''.join(chunks)[:limit]
        return body.decode(response.encoding or 'utf-8', errors='replace')
