"""Raw CDP WebSocket connection used by the CDP-backed automation driver."""

from __future__ import annotations

import json
import socket
import time
from collections.abc import Iterable
from contextlib import suppress
from typing import Any

import websocket

from .http_client import HttpClientError


class CdpConnection:
    """Low-level CDP WebSocket connection."""

    def __init__(self, ws_url: str, timeout: float = 5.0, *, max_events: int = 2000):
        self.ws = websocket.create_connection(ws_url, timeout=timeout, suppress_origin=True)
        self.ws_url = ws_url
        self.timeout = timeout
        self._next_id = 1
        # Events arrive interleaved with command responses; keep them for later consumers
        # (console scraping) instead of dropping them while waiting for a reply.
        self._event_queue: list[dict[str, Any]] = []
        self._max_event_queue = max_events

    def _push_event(self, event: dict[str, Any]) -> None:
        if not isinstance(event, dict) or not isinstance(event.get("method"), str):
            return
        self._event_queue.append(event)
        if len(self._event_queue) > self._max_event_queue:
            del self._event_queue[: len(self._event_queue) - self._max_event_queue]

    def pop_events(self, methods: Iterable[str]) -> list[dict[str, Any]]:
        """Remove and return every queued event whose method is in `methods` (oldest first)."""
        wanted = set(methods)
        taken: list[dict[str, Any]] = []
        kept: list[dict[str, Any]] = []
        for ev in self._event_queue:
            (taken if ev.get("method") in wanted else kept).append(ev)
        self._event_queue = kept
        return taken

    def drain_events(self, *, max_messages: int = 200) -> int:
        """Pull already-buffered events off the socket without blocking."""
        drained = 0
        for _ in range(max(0, int(max_messages))):
            try:
                self.ws.settimeout(0.0)
                raw = self.ws.recv()
            except Exception:  # noqa: BLE001
                # Would-block / timeout means nothing is buffered.
                break

            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                continue

            if isinstance(data, dict) and isinstance(data.get("method"), str) and "id" not in data:
                self._push_event(data)
                drained += 1
                continue
            # Unexpected non-event; stop to avoid consuming responses.
            break
        return drained

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send CDP command and wait for response."""
        msg_id = self._next_id
        self._next_id += 1

        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params

        try:
            self.ws.settimeout(min(2.0, max(0.5, float(self.timeout))))
            self.ws.send(json.dumps(msg))
        except Exception as exc:  # noqa: BLE001
            raise HttpClientError(str(exc)) from exc

        return self._recv_until(msg_id)

    def _recv_until(self, expected_id: int) -> dict[str, Any]:
        deadline = time.time() + self.timeout
        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                raise HttpClientError("CDP response timed out")

            # websocket-client recv() blocks indefinitely without a socket timeout.
            try:
                self.ws.settimeout(min(0.5, remaining))
                raw = self.ws.recv()
            except Exception as exc:  # noqa: BLE001
                msg = str(exc).lower()
                if isinstance(exc, TimeoutError) or "timed out" in msg:
                    continue
                raise HttpClientError(str(exc)) from exc

            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                continue

            if isinstance(data, dict) and isinstance(data.get("method"), str) and "id" not in data:
                self._push_event(data)
                continue

            if data.get("id") == expected_id:
                if "error" in data:
                    raise HttpClientError(str(data["error"]))
                return data.get("result", {})

    def abort(self) -> None:
        """Hard break of the underlying socket."""
        sock = getattr(self.ws, "sock", None)
        if sock is not None:
            with suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)
            with suppress(OSError):
                sock.close()

    def close(self) -> None:
        self.abort()


__all__ = ["CdpConnection"]
