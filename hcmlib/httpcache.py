import asyncio
import os
from typing import Awaitable, Callable, Container, Dict, Mapping, Optional, Text, Tuple, Union
from urllib.parse import urldefrag, urljoin

import requests
import requests.adapters
import requests.models

from .resolver import PathResolutionError

USER_AGENT = os.getenv('USER_AGENT', 'hcmlib (+https://github.com/mizdra/happy-css-modules)')
FETCH_TIMEOUT = float(os.getenv('HCM_FETCH_TIMEOUT', '10'))


class NetworkError(Exception):
    """A remote stylesheet could not be fetched.  The failure is transient: the
    same URL may be fetched by a later load.

    """

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"could not fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class RetryAfterException(NetworkError):
    def __init__(self, url: str, retry_after: int) -> None:
        super().__init__(url, f"HTTP 429 Too Many Requests / Retry-After: {retry_after}")
        self.retry_after = retry_after


class HTTPClient(requests.Session):
    timeout: float

    def __init__(self, timeout: float = FETCH_TIMEOUT) -> None:
        super().__init__()
        self.timeout = timeout
        self.headers['User-Agent'] = USER_AGENT

    def get_adapter(self, url: str) -> requests.adapters.BaseAdapter:
        client = self
        inner = super().get_adapter(url)

        class AdapterWrapper(requests.adapters.BaseAdapter):
            def send(
                self,
                req: requests.models.PreparedRequest,
                stream: bool = False,
                timeout: Union[None, float, Tuple[float, float], Tuple[float, None]] = None,
                verify: Union[bool, str] = True,
                cert: Union[None, Union[bytes, Text], Container[Union[bytes, Text]]] = None,
                proxies: Optional[Mapping[str, str]] = None,
            ) -> requests.models.Response:
                client.hook_before_send(req)
                resp = inner.send(
                    req,
                    stream=stream,
                    timeout=timeout,
                    verify=verify,
                    cert=cert,
                    proxies=proxies,
                )
                if (
                    resp.status_code == 429
                    and (retry_after := resp.headers.get('retry-after', 'x')).isnumeric()
                ):
                    raise RetryAfterException(str(req.url), int(retry_after))
                elif (
                    resp.is_redirect
                    and req.url
                    and urljoin(req.url, resp.headers['location']) == req.url
                ):
                    raise RetryAfterException(str(req.url), 60)
                return resp

            def close(self) -> None:
                inner.close()

        return AdapterWrapper()

    def fetch(self, url: str) -> str:
        """Fetch the body of a remote stylesheet.  Raises PathResolutionError if
        the server says it does not exist, NetworkError for anything else that
        goes wrong.

        """
        try:
            resp = self.get(urldefrag(url).url, timeout=self.timeout)
        except RetryAfterException:
            raise
        except requests.exceptions.Timeout:
            raise NetworkError(url, "HTTP_TIMEOUT")
        except requests.exceptions.RequestException as err:
            raise NetworkError(url, f"{err}")
        if resp.status_code in (404, 410):
            raise PathResolutionError(url, None, f"HTTP_{resp.status_code}")
        if resp.status_code != 200:
            raise NetworkError(url, f"HTTP_{resp.status_code}")
        return resp.text

    def hook_before_send(self, request: requests.models.PreparedRequest) -> None:
        """Override this to provide a callback that is called before making a
        request.

        """
        pass


class ContentCache:
    """Stylesheet bodies keyed by resolved path or URL, shared by every load of
    a Loader.

    There is at most one in-flight fetch per key; concurrent callers await the
    same task.  A fetch that fails is forgotten, so that a later load may retry
    it.

    """

    _entries: Dict[str, 'asyncio.Future[str]']

    def __init__(self) -> None:
        self._entries = {}

    async def get(self, key: str, fetch: Callable[[], Awaitable[str]]) -> str:
        future = self._entries.get(key)
        if future is not None and future.done():
            if not future.cancelled() and future.exception() is None:
                return future.result()
            future = None
        if future is None:
            future = asyncio.ensure_future(fetch())
            self._entries[key] = future
            future.add_done_callback(lambda done: self._evict_failed(key, done))
        return await asyncio.shield(future)

    def _evict_failed(self, key: str, future: 'asyncio.Future[str]') -> None:
        if future.cancelled() or future.exception() is not None:
            if self._entries.get(key) is future:
                del self._entries[key]

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
