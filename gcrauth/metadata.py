import json
import logging
import time
from typing import Dict

import requests
from urllib3.exceptions import ReadTimeoutError
from urllib3.util import Timeout

from gcrauth.configuration import Configuration, METADATA_TIMEOUT, OAUTH2_USERNAME
from gcrauth.models import DockerAuth


class HttpFetchError(Exception):
    """Non-success status code from the metadata service"""

    def __init__(self, status_code: int, url: str):
        self._status_code: int = status_code
        self._url: str = url
        super(HttpFetchError, self).__init__(
            f"http status code: {status_code} while fetching url {url}"
        )

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def url(self) -> str:
        return self._url


class MetadataParseError(ValueError):
    """Response body of the metadata service is not the expected token JSON"""

    def __init__(self, body: str, cause: str):
        self.body: str = body
        super(MetadataParseError, self).__init__(f"while parsing json blob {body}: {cause}")


class MetadataClient:
    """
    Client for the token endpoint of the GCE instance metadata service
    https://cloud.google.com/compute/docs/access/create-enable-service-accounts-for-instances

    Construct once and pass it to everything which needs registry credentials,
    the underlying requests.Session is shared among the callers.
    Every request must complete within 'timeout' seconds in total, body included.
    Requests are never retried, the caller owns the retry policy.
    """

    def __init__(self, configuration: Configuration = None, session: requests.Session = None,
                 timeout: float = METADATA_TIMEOUT):
        self.logger: logging.Logger = logging.getLogger("metadata")
        self.config: Configuration = configuration or Configuration()
        self.timeout: float = timeout
        # Injected session belongs to the caller, only own session is closed
        self._owns_session: bool = session is None
        if not self._owns_session:
            self.session: requests.Session = session
        else:
            self.session = requests.Session()
            # Metadata server is plain http on link-local address
            self.session.mount("http://", requests.adapters.HTTPAdapter())

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close requests session if created by this client"""
        if self.session and self._owns_session:
            self.session.close()

    def _read_content(self, r: requests.Response, url: str, deadline: float) -> bytes:
        """
        Read response body until the deadline. Socket timeout is lowered to the time left
        before every read, so slowly trickling body can't extend the request.
        """
        sock = getattr(getattr(r.raw, "connection", None), "sock", None)
        content = bytearray()
        chunks = r.iter_content(chunk_size=1)
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise requests.exceptions.ReadTimeout(f"Reading {url} took more than {self.timeout} seconds")
            if sock:
                sock.settimeout(remaining)
            try:
                chunk = next(chunks)
            except StopIteration:
                return bytes(content)
            except requests.ConnectionError as e:
                # requests reports socket timeout while streaming as ConnectionError
                if (e.args and isinstance(e.args[0], ReadTimeoutError)) or time.monotonic() >= deadline:
                    raise requests.exceptions.ReadTimeout(
                        f"Reading {url} took more than {self.timeout} seconds") from e
                raise
            content += chunk

    def _log_failed_response(self, r: requests.Response, url: str, deadline: float):
        try:
            body = self._read_content(r, url, deadline).decode("utf-8", errors="replace")
            self.logger.error(f"body of failing http response: {body}")
        except Exception as e:  # Only diagnostics, never hide the status error
            self.logger.debug(f"Unable to read body of failing http response: {e}")

    def read_url(self, url: str, headers: Dict[str, str] = None) -> bytes:
        """
        GET given url and return the body.
        Raises HttpFetchError on non-2xx status, transport errors of requests are raised as they are.
        Timeout is raised when whole request is not done within the timeout.
        """
        deadline = time.monotonic() + self.timeout
        # Connect and response headers share the total, body is limited by the deadline
        timeout = Timeout(connect=self.timeout, read=self.timeout, total=self.timeout)
        r = self.session.get(url, headers=headers, timeout=timeout, stream=True)
        try:
            if not 200 <= r.status_code < 300:
                self._log_failed_response(r, url, deadline)
                raise HttpFetchError(r.status_code, url)
            return self._read_content(r, url, deadline)
        finally:
            r.close()

    def fetch_access_token(self) -> str:
        """
        Query the metadata endpoint for access token of the default service account.
        Missing 'access_token' gives empty token, only invalid JSON or wrong types are errors.
        """
        blob = self.read_url(self.config.metadata_url, self.config.metadata_headers)
        body = blob.decode("utf-8", errors="replace")
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError as e:
            raise MetadataParseError(body, str(e)) from e
        if parsed is None:
            parsed = {}
        if not isinstance(parsed, dict):
            raise MetadataParseError(body, "not a JSON object")
        token = parsed.get("access_token")
        if token is None:
            token = ""
        if not isinstance(token, str):
            raise MetadataParseError(body, "access_token is not a string")
        if not token:
            self.logger.warning(f"No access token in response of {self.config.metadata_url}")
        else:
            self.logger.debug(f"Got access token from {self.config.metadata_url}")
        return token

    def fetch_gcr_credentials(self, server_address: str = "") -> DockerAuth:
        """Docker credentials for Google Container Registry, access token used as password"""
        return DockerAuth(OAUTH2_USERNAME, self.fetch_access_token(), server_address)


def fetch_gcr_credentials(client: MetadataClient, server_address: str = "") -> DockerAuth:
    return client.fetch_gcr_credentials(server_address)
