import httpx
import pytest

CHANNEL_ID = "123456789012345678"
FIRST_MESSAGE_ID = 987654321098765432


def make_messages(count: int, start: int = FIRST_MESSAGE_ID, **extra) -> list[dict]:
    """Newest-first message stubs with descending snowflake ids"""
    return [{'id': str(start - i), **extra} for i in range(count)]


def make_pages(*sizes: int) -> list[list[dict]]:
    pages = []
    start = FIRST_MESSAGE_ID
    for size in sizes:
        pages.append(make_messages(size, start=start))
        start -= size
    return pages


class FakeDiscord:
    """
    Stands in for the Discord REST API behind httpx.MockTransport.

    `pages` are served in order to GET requests; an entry may be a list of
    messages, an httpx.Response, or an exception to raise. Delete statuses
    can be queued per message id; everything else gets 204.
    """

    def __init__(self, pages=None, delete_statuses=None, default_delete_status=204):
        self.pages = list(pages or [])
        self.delete_statuses = {k: list(v) for k, v in (delete_statuses or {}).items()}
        self.default_delete_status = default_delete_status
        self.list_calls: list[dict] = []
        self.delete_calls: list[str] = []
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.method == "GET":
            self.list_calls.append(dict(request.url.params))
            page = self.pages.pop(0) if self.pages else []
            if isinstance(page, Exception):
                raise page
            if isinstance(page, httpx.Response):
                return page
            return httpx.Response(200, json=page)

        if request.method == "DELETE":
            message_id = request.url.path.rsplit('/', 1)[-1]
            self.delete_calls.append(message_id)
            queued = self.delete_statuses.get(message_id)
            if queued:
                status = queued.pop(0)
                if isinstance(status, Exception):
                    raise status
                return httpx.Response(status)
            return httpx.Response(self.default_delete_status)

        return httpx.Response(405)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def call_count(self) -> int:
        return len(self.requests)


class SleepRecorder:
    """Async sleep replacement that records requested delays"""

    def __init__(self):
        self.calls: list[float] = []
        self.on_sleep = None

    async def __call__(self, seconds: float):
        self.calls.append(seconds)
        if self.on_sleep:
            self.on_sleep(seconds)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()
