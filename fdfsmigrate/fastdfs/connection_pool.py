"""Pool of tracker connections and a client that borrows from it."""

from __future__ import annotations

import queue
import threading
from contextlib import contextmanager
from typing import Iterator

from .client import Client
from .protocol import FastDFSError, FileInfo, StorageServer


class ConnectionPool:
    """A bounded pool of connected clients to one tracker.

    Half of the pool is connected up front; connections that fail to open
    are skipped.
    """

    def __init__(self, tracker_addr: str, tracker_port: int, max_connections: int) -> None:
        self.tracker_addr = tracker_addr
        self.tracker_port = tracker_port
        self.max_connections = max_connections
        self._idle: queue.Queue[Client] = queue.Queue(maxsize=max(max_connections, 0))
        self._lock = threading.Lock()
        self._closed = False

        for _ in range(max_connections // 2):
            client = Client(tracker_addr, tracker_port)
            try:
                client.connect()
            except FastDFSError:
                continue
            self._idle.put_nowait(client)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def _create_new_connection(self) -> Client:
        client = Client(self.tracker_addr, self.tracker_port)
        try:
            client.connect()
        except FastDFSError as exc:
            raise FastDFSError(f"failed to create new connection: {exc}") from exc
        return client

    @staticmethod
    def _alive(client: Client) -> bool:
        if not client.is_connected():
            return False
        try:
            client.ping()
        except FastDFSError:
            return False
        return True

    def get(self) -> Client:
        """Return a live connection, reusing an idle one when it still answers."""
        if self.closed:
            raise FastDFSError("connection pool is closed")
        try:
            client = self._idle.get_nowait()
        except queue.Empty:
            return self._create_new_connection()
        if self._alive(client):
            return client
        client.close()
        return self._create_new_connection()

    def put(self, client: Client | None) -> None:
        """Return a connection; dead connections and overflow are closed."""
        if client is None:
            return
        if self.closed:
            client.close()
            return
        if not self._alive(client):
            client.close()
            return
        try:
            self._idle.put_nowait(client)
        except queue.Full:
            client.close()

    def close(self) -> None:
        """Close the pool and every idle connection; repeated calls do nothing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        while True:
            try:
                client = self._idle.get_nowait()
            except queue.Empty:
                break
            client.close()

    def size(self) -> int:
        return self.max_connections

    def available(self) -> int:
        return self._idle.qsize()


class PooledClient:
    """Runs each operation on a connection borrowed from a pool."""

    def __init__(self, pool: ConnectionPool) -> None:
        self.pool = pool

    @contextmanager
    def _lease(self) -> Iterator[Client]:
        client = self.pool.get()
        try:
            yield client
        finally:
            self.pool.put(client)

    def ping(self) -> None:
        with self._lease() as client:
            client.ping()

    def get_storage_server(self, group_name: str) -> StorageServer:
        with self._lease() as client:
            return client.get_storage_server(group_name)

    def list_files(self, group_name: str, start_file_name: str, limit: int) -> list[FileInfo]:
        with self._lease() as client:
            return client.list_files(group_name, start_file_name, limit)

    def download_file(self, file_id: str) -> bytes:
        with self._lease() as client:
            return client.download_file(file_id)

    def upload_file(self, group_name: str, file_name: str, data: bytes) -> str:
        with self._lease() as client:
            return client.upload_file(group_name, file_name, data)

    def delete_file(self, file_id: str) -> None:
        with self._lease() as client:
            client.delete_file(file_id)

    def get_file_info(self, file_id: str) -> FileInfo:
        with self._lease() as client:
            return client.get_file_info(file_id)