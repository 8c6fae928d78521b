"""Asyncio binding of the callback transport contract."""

import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

from tgsync.lib.errors import NotConnectedError
from tgsync.models.request import Reply, RequestDescriptor
from tgsync.services.interfaces.transport import IConnectionState, ITransport, ReplyHandler


logger = logging.getLogger(__name__)


Exchange = Callable[[RequestDescriptor], Awaitable[Union[Reply, Tuple[bool, Any]]]]


class AsyncioTransport(ITransport, IConnectionState):
    """Runs each request as an asyncio task and reports the reply through a callback.

    ``exchange`` is a coroutine function that performs one round trip with
    the daemon and returns a Reply (or a ``(success, payload)`` tuple).
    Replies are delivered from task done-callbacks, so ``on_reply`` never
    runs inside ``send``.
    """

    def __init__(self, exchange: Exchange, request_timeout: Optional[float] = None,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        self.logger = logging.getLogger(__name__)
        self._exchange = exchange
        self.request_timeout = request_timeout
        self._loop = loop
        self._active_requests: Dict[int, asyncio.Task] = {}
        self._request_ids = itertools.count(1)
        self._closed = False

    @property
    def outstanding(self) -> int:
        """Number of requests still waiting for a reply."""
        return len(self._active_requests)

    def is_usable(self) -> bool:
        return not self._closed

    def send(self, request: RequestDescriptor, on_reply: ReplyHandler) -> None:
        if self._closed:
            raise NotConnectedError()

        loop = self._loop or asyncio.get_running_loop()
        request_id = next(self._request_ids)
        task = loop.create_task(self._run(request))
        self._active_requests[request_id] = task
        task.add_done_callback(lambda done: self._deliver(request_id, request, done, on_reply))

        self.logger.debug(f"Sent request {request_id}: {request}")

    async def _run(self, request: RequestDescriptor) -> Reply:
        if self.request_timeout is None:
            result = await self._exchange(request)
        else:
            result = await asyncio.wait_for(self._exchange(request), self.request_timeout)

        if isinstance(result, Reply):
            return result
        success, payload = result
        return Reply(success=success, payload=payload)

    def _deliver(self, request_id: int, request: RequestDescriptor, task: asyncio.Task,
                 on_reply: ReplyHandler) -> None:
        self._active_requests.pop(request_id, None)

        if task.cancelled():
            reply = Reply.failure(f"Request cancelled: {request}")
        elif isinstance(task.exception(), asyncio.TimeoutError):
            reply = Reply.failure(f"Request timed out after {self.request_timeout}s: {request}")
        elif task.exception() is not None:
            error = task.exception()
            self.logger.warning(f"Request {request_id} ({request.command}) raised {error!r}")
            reply = Reply.failure(str(error))
        else:
            reply = task.result()

        on_reply(reply.success, reply.payload)

    async def close(self) -> None:
        """Stop accepting requests and cancel the ones still outstanding."""
        self._closed = True
        tasks = list(self._active_requests.values())
        for task in tasks:
            if not task.done():
                task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        # Let the done-callbacks deliver their failed replies.
        await asyncio.sleep(0)

        self.logger.info(f"Transport closed, cancelled {len(tasks)} outstanding requests")
