"""Upload local images to ReadMe and return their hosted URLs."""

import logging
import os

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

README_IMAGES_URL = 'https://api.readme.com/v2/images'
DEFAULT_TIMEOUT = 30


class UploadError(RuntimeError):
    """The image could not be uploaded or no URL came back."""


def create_session(retries: int = 3, backoff_factor: float = 0.5) -> requests.Session:
    """Create an HTTP session that retries rate limits and server errors."""
    session = requests.Session()
    session.headers.update({
        'User-Agent': 'ReadMe Migration Tool',
        'Accept': 'application/json',
    })
    retry = Retry(
        total=retries,
        backoff_factor=backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset(['POST']),
        raise_on_status=False,
    )
    session.mount('https://', HTTPAdapter(max_retries=retry))
    return session


class ImageUploader:
    """Uploads images, remembering results per local file."""

    def __init__(self, api_key: str, session: requests.Session = None, timeout: float = DEFAULT_TIMEOUT,
                 endpoint: str = README_IMAGES_URL):
        self.api_key = api_key
        self.session = session or create_session()
        self.timeout = timeout
        self.endpoint = endpoint
        self.cache = {}

    def upload(self, local_path: str) -> str:
        """Upload ``local_path`` and return the hosted URL.

        Raises:
            UploadError: missing key, HTTP failure, timeout, or no URL in the response.
        """
        if not local_path:
            raise UploadError('A local image path is required.')
        if not self.api_key:
            raise UploadError('README API key is missing.')
        if local_path in self.cache:
            return self.cache[local_path]

        with open(local_path, 'rb') as f:
            files = {'file': (os.path.basename(local_path), f)}
            try:
                resp = self.session.post(
                    self.endpoint,
                    headers={'Authorization': f'Bearer {self.api_key}'},
                    files=files,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                raise UploadError(f'Upload failed: {e}') from e

        if not resp.ok:
            raise UploadError(f'Upload failed ({resp.status_code} {resp.reason}): {resp.text[:500]}')

        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        url = _hosted_url(payload)
        if not url:
            raise UploadError('Upload succeeded but no URL was returned by ReadMe.')

        logger.debug('Uploaded %s -> %s', local_path, url)
        self.cache[local_path] = url
        return url


def _hosted_url(payload) -> str:
    if not isinstance(payload, dict):
        return ''
    data = payload.get('data')
    if isinstance(data, dict) and data.get('url'):
        return data['url']
    return payload.get('url') or ''
