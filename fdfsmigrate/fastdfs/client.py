"""Blocking FastDFS client for tracker and storage servers."""

from __future__ import annotations

import socket
import struct
from typing import Any

from .protocol import (
    FDFS_FILE_EXT_NAME_MAX_LEN,
    FDFS_FILE_NAME_MAX_LEN,
    FDFS_GROUP_NAME_MAX_LEN,
    FDFS_PROTO_CMD_ACTIVE_TEST,
    FDFS_PROTO_STATUS_SUCCESS,
    HEADER_SIZE,
    IP_ADDRESS_SIZE,
    STORAGE_PROTO_CMD_DELETE_FILE,
    STORAGE_PROTO_CMD_DOWNLOAD_FILE,
    STORAGE_PROTO_CMD_LIST_ONE_GROUP,
    STORAGE_PROTO_CMD_QUERY_FILE_INFO,
    STORAGE_PROTO_CMD_UPLOAD_FILE,
    TRACKER_PROTO_CMD_SERVICE_QUERY_STORE_WITHOUT_GROUP_ONE,
    TRACKER_QUERY_STORAGE_STORE_BODY_LEN,
    FastDFSError,
    FileInfo,
    Header,
    StorageServer,
    UploadResponse,
)

DEFAULT_TIMEOUT = 30.0

_INT64 = struct.Struct(">q")
_UINT32 = struct.Struct(">I")
_UINT64_MASK = (1 << 64) - 1
_FILE_LIST_ENTRY_LEN = (
    FDFS_GROUP_NAME_MAX_LEN + FDFS_FILE_NAME_MAX_LEN + 3 * 8 + 4 + IP_ADDRESS_SIZE
)
_FILE_INFO_MIN_LEN = 3 * 8 + 4 + IP_ADDRESS_SIZE


def _fixed(text: str, size: int) -> bytes:
    """Encode ``text`` into a NUL-padded field of ``size`` bytes, truncating if longer."""
    return text.encode("utf-8")[:size].ljust(size, b"\x00")


def _text(field: bytes) -> str:
    return field.rstrip(b"\x00").decode("utf-8", errors="replace")


def _int64(data: bytes, offset: int) -> int:
    return _INT64.unpack_from(data, offset)[0]


def parse_file_id(file_id: str) -> tuple[str, str]:
    """Split ``group/remote/name`` into group name and remote file name."""
    parts = file_id.split("/", 1)
    if len(parts) != 2:
        raise FastDFSError(f"invalid file ID format: {file_id}")
    return parts[0], parts[1]


def parse_storage_server(data: bytes) -> StorageServer:
    """Decode the tracker's storage-query response body."""
    if len(data) < TRACKER_QUERY_STORAGE_STORE_BODY_LEN:
        raise FastDFSError("invalid storage server response length")
    ip_end = FDFS_GROUP_NAME_MAX_LEN + IP_ADDRESS_SIZE - 1
    return StorageServer(
        group_name=_text(data[:FDFS_GROUP_NAME_MAX_LEN]),
        ip_addr=_text(data[FDFS_GROUP_NAME_MAX_LEN:ip_end]),
        port=_int64(data, ip_end),
    )


def parse_file_list(data: bytes) -> list[FileInfo]:
    """Decode a list-files response; a trailing partial entry is ignored."""
    files = []
    names_end = FDFS_GROUP_NAME_MAX_LEN + FDFS_FILE_NAME_MAX_LEN
    for start in range(0, len(data) - _FILE_LIST_ENTRY_LEN + 1, _FILE_LIST_ENTRY_LEN):
        entry = data[start:start + _FILE_LIST_ENTRY_LEN]
        files.append(
            FileInfo(
                group_name=_text(entry[:FDFS_GROUP_NAME_MAX_LEN]),
                file_name=_text(entry[FDFS_GROUP_NAME_MAX_LEN:names_end]),
                file_size=_int64(entry, names_end),
                create_time=_int64(entry, names_end + 8),
                crc32=_UINT32.unpack_from(entry, names_end + 24)[0],
                source_ip_addr=_text(entry[names_end + 28:]),
            )
        )
    return files


def parse_upload_response(data: bytes) -> UploadResponse:
    """Decode the storage server's upload response body."""
    if len(data) < FDFS_GROUP_NAME_MAX_LEN:
        raise FastDFSError(f"invalid upload response length: {len(data)}")
    return UploadResponse(
        group_name=_text(data[:FDFS_GROUP_NAME_MAX_LEN]),
        file_name=_text(data[FDFS_GROUP_NAME_MAX_LEN:]),
    )


def parse_file_info(group_name: str, file_name: str, data: bytes) -> FileInfo:
    """Decode a query-file-info response body for the given file."""
    if len(data) < _FILE_INFO_MIN_LEN:
        raise FastDFSError("invalid file info data length")
    return FileInfo(
        group_name=group_name,
        file_name=file_name,
        file_size=_int64(data, 0),
        create_time=_int64(data, 8),
        crc32=_UINT32.unpack_from(data, 24)[0],
        source_ip_addr=_text(data[28:28 + IP_ADDRESS_SIZE]),
    )


def get_file_extension(file_name: str) -> str:
    """Return the text after the last dot, cut to the protocol's maximum length."""
    parts = file_name.split(".")
    if len(parts) > 1:
        return parts[-1][:FDFS_FILE_EXT_NAME_MAX_LEN]
    return ""


class Client:
    """A single connection to a FastDFS tracker or storage server."""

    def __init__(
        self, tracker_addr: str, tracker_port: int, timeout: float = DEFAULT_TIMEOUT
    ) -> None:
        self.tracker_addr = tracker_addr
        self.tracker_port = tracker_port
        self.timeout = timeout
        self._sock: socket.socket | None = None

    # -- connection -------------------------------------------------------

    def connect(self) -> None:
        address = f"{self.tracker_addr}:{self.tracker_port}"
        try:
            self._sock = socket.create_connection(
                (self.tracker_addr, self.tracker_port), timeout=self.timeout
            )
        except OSError as exc:
            raise FastDFSError(f"failed to connect to tracker {address}: {exc}") from exc

    def close(self) -> None:
        if self._sock is not None:
            sock, self._sock = self._sock, None
            sock.close()

    def is_connected(self) -> bool:
        return self._sock is not None

    def __enter__(self) -> "Client":
        if not self.is_connected():
            self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # -- wire helpers -----------------------------------------------------

    def _require_connection(self) -> socket.socket:
        if self._sock is None:
            raise FastDFSError("client not connected")
        return self._sock

    def _receive_exactly(self, size: int) -> bytes:
        sock = self._require_connection()
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = sock.recv(min(remaining, 65536))
            if not chunk:
                raise EOFError("unexpected EOF")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def _exchange(self, command: int, body: bytes, label: str, failure: str) -> Header:
        """Send one request and return the successful response header."""
        sock = self._require_connection()
        try:
            sock.sendall(Header(length=len(body), command=command).pack())
        except OSError as exc:
            raise FastDFSError(f"failed to send {label} request: {exc}") from exc
        if body:
            try:
                sock.sendall(body)
            except OSError as exc:
                raise FastDFSError(f"failed to send {label} data: {exc}") from exc
        try:
            header = Header.unpack(self._receive_exactly(HEADER_SIZE))
        except (OSError, EOFError) as exc:
            raise FastDFSError(f"failed to receive {label} response: {exc}") from exc
        if header.status != FDFS_PROTO_STATUS_SUCCESS:
            raise FastDFSError(f"{failure} failed with status: {header.status}")
        return header

    def _receive_body(self, length: int, what: str) -> bytes:
        try:
            return self._receive_exactly(length)
        except (OSError, EOFError) as exc:
            raise FastDFSError(f"failed to receive {what}: {exc}") from exc

    def _storage_client(self, group_name: str) -> "Client":
        try:
            server = self.get_storage_server(group_name)
        except FastDFSError as exc:
            raise FastDFSError(f"failed to get storage server: {exc}") from exc
        storage = Client(server.ip_addr, server.port, self.timeout)
        try:
            storage.connect()
        except FastDFSError as exc:
            raise FastDFSError(f"failed to connect to storage server: {exc}") from exc
        return storage

    @staticmethod
    def _split_file_id(file_id: str) -> tuple[str, str]:
        try:
            return parse_file_id(file_id)
        except FastDFSError as exc:
            raise FastDFSError(f"invalid file ID: {exc}") from exc

    # -- tracker operations -----------------------------------------------

    def ping(self) -> None:
        """Send an active test; raises FastDFSError on failure."""
        self._exchange(FDFS_PROTO_CMD_ACTIVE_TEST, b"", "ping", "ping")

    def get_storage_server(self, group_name: str) -> StorageServer:
        """Ask the tracker which storage server to use for ``group_name``."""
        header = self._exchange(
            TRACKER_PROTO_CMD_SERVICE_QUERY_STORE_WITHOUT_GROUP_ONE,
            _fixed(group_name, FDFS_GROUP_NAME_MAX_LEN),
            "get storage",
            "get storage",
        )
        if header.length < TRACKER_QUERY_STORAGE_STORE_BODY_LEN:
            raise FastDFSError(f"invalid response length: {header.length}")
        return parse_storage_server(self._receive_body(header.length, "storage server data"))

    # -- file operations --------------------------------------------------

    def list_files(self, group_name: str, start_file_name: str, limit: int) -> list[FileInfo]:
        with self._storage_client(group_name) as storage:
            return storage._list_from_storage(group_name, start_file_name, limit)

    def download_file(self, file_id: str) -> bytes:
        group_name, file_name = self._split_file_id(file_id)
        with self._storage_client(group_name) as storage:
            return storage._download_from_storage(group_name, file_name)

    def upload_file(self, group_name: str, file_name: str, data: bytes) -> str:
        """Upload ``data`` and return the new file ID."""
        with self._storage_client(group_name) as storage:
            return storage._upload_to_storage(file_name, data)

    def delete_file(self, file_id: str) -> None:
        group_name, file_name = self._split_file_id(file_id)
        with self._storage_client(group_name) as storage:
            storage._delete_from_storage(group_name, file_name)

    def get_file_info(self, file_id: str) -> FileInfo:
        group_name, file_name = self._split_file_id(file_id)
        with self._storage_client(group_name) as storage:
            return storage._file_info_from_storage(group_name, file_name)

    # -- storage-side requests --------------------------------------------

    def _list_from_storage(
        self, group_name: str, start_file_name: str, limit: int
    ) -> list[FileInfo]:
        body = (
            _fixed(group_name, FDFS_GROUP_NAME_MAX_LEN)
            + _fixed(start_file_name, FDFS_FILE_NAME_MAX_LEN)
            + struct.pack(">Q", limit & _UINT64_MASK)
        )
        header = self._exchange(STORAGE_PROTO_CMD_LIST_ONE_GROUP, body, "list files", "list files")
        if header.length == 0:
            return []
        return parse_file_list(self._receive_body(header.length, "file list data"))

    def _download_from_storage(self, group_name: str, file_name: str) -> bytes:
        # Offset 0 and byte count 0 request the whole file.
        body = (
            bytes(16)
            + _fixed(group_name, FDFS_GROUP_NAME_MAX_LEN)
            + file_name.encode("utf-8")
        )
        header = self._exchange(STORAGE_PROTO_CMD_DOWNLOAD_FILE, body, "download", "download")
        if header.length == 0:
            return b""
        return self._receive_body(header.length, "file data")

    def _upload_to_storage(self, file_name: str, data: bytes) -> str:
        body = (
            b"\x00"
            + _fixed(get_file_extension(file_name), FDFS_FILE_EXT_NAME_MAX_LEN)
            + bytes(data)
        )
        header = self._exchange(STORAGE_PROTO_CMD_UPLOAD_FILE, body, "upload", "upload")
        if header.length < FDFS_GROUP_NAME_MAX_LEN:
            raise FastDFSError(f"invalid upload response length: {header.length}")
        response = parse_upload_response(
            self._receive_body(header.length, "upload response data")
        )
        return f"{response.group_name}/{response.file_name}"

    def _delete_from_storage(self, group_name: str, file_name: str) -> None:
        body = _fixed(group_name, FDFS_GROUP_NAME_MAX_LEN) + file_name.encode("utf-8")
        self._exchange(STORAGE_PROTO_CMD_DELETE_FILE, body, "delete", "delete")

    def _file_info_from_storage(self, group_name: str, file_name: str) -> FileInfo:
        body = _fixed(group_name, FDFS_GROUP_NAME_MAX_LEN) + file_name.encode("utf-8")
        header = self._exchange(
            STORAGE_PROTO_CMD_QUERY_FILE_INFO, body, "file info", "get file info"
        )
        if header.length < 3 * 8 + IP_ADDRESS_SIZE:
            raise FastDFSError(f"invalid file info response length: {header.length}")
        return parse_file_info(
            group_name, file_name, self._receive_body(header.length, "file info data")
        )