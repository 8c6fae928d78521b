"""Session refresh orchestrator: profile, contacts and chats."""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from tgsync.lib.completion import CompletionSignal, CountingBarrier, Initiator, JoinAll, Outcome
from tgsync.lib.config import RefreshConfig
from tgsync.lib.errors import NotConnectedError, TGSyncError, UpstreamRequestFailed
from tgsync.lib.metrics import RefreshMetrics, RefreshRecord
from tgsync.models.entities import Chat, Contact, PeerType
from tgsync.models.request import RequestDescriptor
from tgsync.models.session_state import SessionState
from tgsync.services.interfaces.transport import IConnectionState, ITransport


logger = logging.getLogger(__name__)


ReplyBody = Callable[[bool, Any], None]


class SessionRefreshOrchestrator:
    """Refreshes the session's profile, contacts and chats through the transport.

    Every public operation returns immediately with a CompletionSignal.
    Session state is only mutated from reply handlers, which the event
    loop runs one at a time.
    """

    def __init__(
        self,
        transport: ITransport,
        connection: Optional[IConnectionState] = None,
        config: Optional[RefreshConfig] = None,
        metrics: Optional[RefreshMetrics] = None,
        tracer: Optional[trace.Tracer] = None
    ):
        """Initialize the orchestrator.

        Args:
            transport: Transport used to issue requests
            connection: Connection state source; defaults to the transport itself
            config: Refresh settings
            metrics: Metrics collector
            tracer: Tracer for refresh spans
        """
        if connection is None:
            if not isinstance(transport, IConnectionState):
                raise TypeError("A connection state source is required when the transport does not provide one")
            connection = transport

        self.logger = logging.getLogger(__name__)
        self.transport = transport
        self.connection = connection
        self.config = config or RefreshConfig()
        self.metrics = metrics or RefreshMetrics()
        self.tracer = tracer or trace.get_tracer("tgsync")
        self._state = SessionState()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def profile(self) -> Optional[Contact]:
        return self._state.profile

    @property
    def contacts(self) -> List[Contact]:
        return list(self._state.contacts)

    @property
    def chats(self) -> List[Chat]:
        return list(self._state.chats)

    def is_connected(self) -> bool:
        return self.connection.is_usable()

    def refresh_all(
        self,
        on_done: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None
    ) -> CompletionSignal:
        """Refresh profile, contacts and chats concurrently.

        ``on_done`` runs once after all three have finished and the state is
        stamped; ``on_error`` runs instead if any of them failed.

        Raises:
            NotConnectedError: if the transport is not usable
        """
        self._assert_connected()

        join = JoinAll({
            "profile": self._member(self.refresh_profile),
            "contacts": self._member(self.refresh_contacts),
            "chats": self._member(self.refresh_chats),
        }, name="refresh_all")

        span = self.tracer.start_span("session.refresh_all", attributes={"refresh.members": len(join.names)})
        started = time.perf_counter()

        def finish(outcome: Outcome) -> None:
            duration_ms = (time.perf_counter() - started) * 1000

            if outcome.success:
                self._state.refreshed_at = datetime.now(timezone.utc)
                self._state.last_error = None
                span.set_status(Status(StatusCode.OK))
                self.logger.info("Successfully loaded all information", extra={"session": self._state.summary()})
            else:
                self._state.last_error = str(outcome.error)
                span.record_exception(outcome.error)
                span.set_status(Status(StatusCode.ERROR, str(outcome.error)))
                self.logger.error(f"Session refresh failed: {outcome.error}", extra={
                    "members": {name: result.success for name, result in join.results.items()}
                })

            span.set_attribute("refresh.contacts", len(self._state.contacts))
            span.set_attribute("refresh.chats", len(self._state.chats))
            span.end()

            self.metrics.record_refresh(RefreshRecord(
                operation="refresh_all",
                duration_ms=duration_ms,
                success=outcome.success,
                contacts=len(self._state.contacts),
                chats=len(self._state.chats),
                error_type=type(outcome.error).__name__ if outcome.error else None
            ))

            if outcome.success:
                if on_done is not None:
                    on_done()
            elif on_error is not None:
                on_error(outcome.error)

        join.signal.on_complete(finish)
        return join.perform()

    async def refresh(self) -> SessionState:
        """Run ``refresh_all`` and wait for it.

        Raises:
            NotConnectedError: if the transport is not usable
            UpstreamRequestFailed: if a fatal request failed
        """
        outcome = await self.refresh_all().wait()
        if not outcome.success:
            raise outcome.error
        return self._state

    def refresh_profile(self) -> CompletionSignal:
        """Fetch the account's own contact and store it as the profile."""
        self._assert_connected()
        signal = CompletionSignal("profile")
        self._state.profile = None

        def handle(success: bool, payload: Any) -> None:
            if not success or not isinstance(payload, dict):
                raise UpstreamRequestFailed("get_self", "Couldn't fetch the user profile.", payload)

            contact = self._state.contacts.insert(Contact.from_payload(self, payload))
            self._state.profile = contact
            signal.fire(True)

        self._send(RequestDescriptor(command="get_self"), signal, handle)
        return signal

    def refresh_contacts(self) -> CompletionSignal:
        """Fetch the contact list, deduplicating by identity."""
        self._assert_connected()
        signal = CompletionSignal("contacts")
        self._state.reset_contacts()

        def handle(success: bool, payload: Any) -> None:
            if not success or not isinstance(payload, list):
                raise UpstreamRequestFailed("contact_list", "Couldn't fetch the contact list.", payload)

            for raw_contact in payload:
                self._state.contacts.insert(Contact.from_payload(self, raw_contact))
            signal.fire(True)

        self._send(RequestDescriptor(command="contact_list"), signal, handle)
        return signal

    def refresh_chats(self) -> CompletionSignal:
        """Fetch the dialog list, then ``chat_info`` for every group chat in it.

        User dialogs become chats directly. The returned signal fires once
        every group chat has been resolved, immediately if there are none.
        """
        self._assert_connected()
        barrier = CountingBarrier(name="chats")
        chats: List[Chat] = []
        self._state.chats = chats

        def handle(success: bool, payload: Any) -> None:
            if not success or not isinstance(payload, list):
                raise UpstreamRequestFailed("dialog_list", "Couldn't fetch the dialog(chat) list.", payload)

            group_ids = []
            for peer in payload:
                if not isinstance(peer, dict):
                    raise UpstreamRequestFailed("dialog_list", f"Unexpected dialog entry: {peer!r}", payload)

                peer_type = peer.get("peer_type")
                if peer_type == PeerType.CHAT:
                    group_ids.append(peer.get("peer_id", peer.get("id")))
                elif peer_type == PeerType.USER:
                    chats.append(Chat.from_payload(self, peer))
                else:
                    self.logger.debug(f"Ignoring dialog with peer type {peer_type}")

            barrier.set_expected(len(group_ids))
            for peer_id in group_ids:
                if peer_id is None or not str(peer_id).strip():
                    self._chat_info_failed(peer_id, barrier, UpstreamRequestFailed(
                        "dialog_list", "Chat dialog without a peer id.", payload
                    ))
                else:
                    self._request_chat_info(peer_id, barrier, chats)

        self._send(RequestDescriptor(command="dialog_list"), barrier.signal, handle)
        return barrier.signal

    def _request_chat_info(self, peer_id: Any, barrier: CountingBarrier, chats: List[Chat]) -> None:
        request = RequestDescriptor(command="chat_info", args=[f"chat#{peer_id}"])

        def handle(success: bool, payload: Any) -> None:
            if not success or not isinstance(payload, dict):
                self._chat_info_failed(peer_id, barrier, UpstreamRequestFailed(
                    "chat_info", f"Couldn't fetch chat {peer_id}.", payload
                ))
                return

            try:
                chat = Chat.from_payload(self, payload)
            except UpstreamRequestFailed as e:
                self._chat_info_failed(peer_id, barrier, e)
                return

            chats.append(chat)
            barrier.arrive()

        try:
            self._send(request, barrier.signal, handle)
        except NotConnectedError as e:
            self._chat_info_failed(peer_id, barrier, e)

    def _chat_info_failed(self, peer_id: Any, barrier: CountingBarrier, error: TGSyncError) -> None:
        if self.config.chat_info_failure_policy == "fail":
            self.logger.error(f"Chat {peer_id} could not be resolved: {error}")
            barrier.fail(error)
            return

        self.logger.warning(f"Omitting chat {peer_id} from the chat list: {error}")
        self.metrics.record_chat_dropped()
        barrier.arrive()

    def _member(self, start: Callable[[], CompletionSignal]) -> Initiator:
        def initiator(arrived: Callable[[Outcome], None]) -> None:
            start().on_complete(arrived)
        return initiator

    def _send(self, request: RequestDescriptor, signal: CompletionSignal, handle: ReplyBody) -> None:
        """Issue ``request``; a TGSyncError raised by ``handle`` fails ``signal``."""
        self._assert_connected()

        def on_reply(success: bool, payload: Any) -> None:
            if not success:
                self.metrics.record_request_failure(request.command)
            try:
                handle(success, payload)
            except TGSyncError as e:
                if signal.fired:
                    raise
                self.logger.error(f"Request '{request}' failed: {e}")
                signal.fail(e)

        self.metrics.record_request(request.command)
        self.logger.debug(f"Requesting '{request}'")
        self.transport.send(request, on_reply)

    def _assert_connected(self) -> None:
        if not self.is_connected():
            raise NotConnectedError()
