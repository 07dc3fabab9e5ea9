"""
Client-side image sync controller.

ImageSyncClient talks to the sync endpoints. ImageSyncPoller keeps the
latest progress snapshot, starts the job on request and polls while the
job is in progress. Failures are kept in ``poller.error``; they are logged
and never raised out of the poller.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Any

import httpx

from spellbinder.models.errors import SpellBinderError, SyncJobError, SyncNetworkError
from spellbinder.models.sync import ImageSyncProgress, ImageSyncResult, SyncState

logger = logging.getLogger(__name__)

PROGRESS_PATH = "/api/sync/images/progress"
TRIGGER_PATH = "/api/sync/images"

DEFAULT_INTERVAL = 2.0
DEFAULT_MAX_INTERVAL = 30.0
DEFAULT_MAX_POLLS = 900


class ImageSyncClient:
    """Thin wrapper over the image sync endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = headers

    async def _request(self, method: str, path: str) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, headers=self._headers)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SyncNetworkError(f"Request to {path} failed: {e}") from e

        if not isinstance(data, dict):
            raise SyncNetworkError(f"Unexpected response from {path}")
        if not data.get("success"):
            raise SyncJobError(data.get("error") or f"Request to {path} failed")
        return data

    async def fetch_progress(self) -> ImageSyncProgress:
        """
        Fetch the current progress snapshot.

        Raises:
            SyncNetworkError: Transport failure or malformed body
            SyncJobError: Server answered with success=false
        """
        data = await self._request("GET", PROGRESS_PATH)
        try:
            return ImageSyncProgress.from_dict(data["progress"])
        except (KeyError, TypeError, ValueError) as e:
            raise SyncNetworkError(f"Malformed progress response: {e}") from e

    async def start_sync(self) -> ImageSyncResult:
        """
        Ask the server to start the image job.

        Raises:
            SyncNetworkError: Transport failure or malformed body
            SyncJobError: Server refused, e.g. a job is already running
        """
        data = await self._request("POST", TRIGGER_PATH)
        return ImageSyncResult(
            success=True,
            message=data.get("message"),
            processed=data.get("processed"),
            failed=data.get("failed"),
            skipped=data.get("skipped"),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class ImageSyncPoller:
    """
    Tracks one image sync job from the client side.

    Call ``start()`` once to load the status. While the status is
    in_progress a background task fetches progress once every ``interval``
    seconds and stops as soon as the status changes, after ``max_polls``
    ticks, or on ``close()``. Consecutive network failures double the
    interval up to ``max_interval``.
    """

    def __init__(
        self,
        client: ImageSyncClient,
        interval: float = DEFAULT_INTERVAL,
        max_polls: int = DEFAULT_MAX_POLLS,
        max_interval: float = DEFAULT_MAX_INTERVAL,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        log: logging.Logger = logger,
    ) -> None:
        self.client = client
        self.interval = interval
        self.max_polls = max_polls
        self.max_interval = max_interval
        self._sleep = sleep
        self._log = log

        self.progress: ImageSyncProgress | None = None
        self.is_loading = False
        self.error: str | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def status(self) -> SyncState:
        return self.progress.status if self.progress else SyncState.NOT_STARTED

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def start(self) -> None:
        """Load the current status. Starts polling if a job is running."""
        await self.refresh()

    async def refresh(self) -> bool:
        """
        Fetch progress once.

        Returns True on success. On failure ``error`` is set and the
        previous status is kept.
        """
        try:
            self.progress = await self.client.fetch_progress()
        except SpellBinderError as e:
            self.error = e.message
            self._log.warning("Image sync status fetch failed: %s", e.message)
            return False

        self.error = None
        self._ensure_polling()
        return True

    async def trigger(self) -> ImageSyncResult:
        """
        Start the image job.

        Ignored while a trigger is outstanding or a job is in progress;
        no request is sent in that case.
        """
        if self.is_loading or self.status is SyncState.IN_PROGRESS:
            return ImageSyncResult(success=False, error="Image sync already in progress")

        self.is_loading = True
        self.error = None
        try:
            result = await self.client.start_sync()
        except SpellBinderError as e:
            self.error = e.message
            self._log.warning("Image sync trigger failed: %s", e.message)
            return ImageSyncResult(success=False, error=e.message)
        finally:
            self.is_loading = False

        await self.refresh()
        return result

    def _ensure_polling(self) -> None:
        if self._closed or self.polling or self.status is not SyncState.IN_PROGRESS:
            return
        self._poll_task = asyncio.create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        interval = self.interval
        ticks = 0
        while self.status is SyncState.IN_PROGRESS:
            await self._sleep(interval)
            ticks += 1
            if await self.refresh():
                interval = self.interval
            else:
                interval = min(interval * 2, self.max_interval)

            if ticks >= self.max_polls and self.status is SyncState.IN_PROGRESS:
                self.error = f"Image sync still in progress after {ticks} polls"
                self._log.warning(self.error)
                return

    async def join(self) -> None:
        """Wait for the current poll task to finish."""
        if self._poll_task is not None:
            await asyncio.gather(self._poll_task, return_exceptions=True)

    async def close(self) -> None:
        """Stop polling. Safe to call more than once."""
        self._closed = True
        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def __aenter__(self) -> "ImageSyncPoller":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
