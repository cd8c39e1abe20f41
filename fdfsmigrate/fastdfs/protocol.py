"""FastDFS wire protocol constants and message structures."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime

FDFS_PROTO_PKG_LEN_SIZE = 8
FDFS_GROUP_NAME_MAX_LEN = 16
IP_ADDRESS_SIZE = 16
FDFS_FILE_NAME_MAX_LEN = 128
FDFS_FILE_EXT_NAME_MAX_LEN = 6
TRACKER_QUERY_STORAGE_STORE_BODY_LEN = (
    FDFS_GROUP_NAME_MAX_LEN + IP_ADDRESS_SIZE + FDFS_PROTO_PKG_LEN_SIZE
)
HEADER_SIZE = FDFS_PROTO_PKG_LEN_SIZE + 2

TRACKER_PROTO_CMD_SERVICE_QUERY_STORE_WITHOUT_GROUP_ONE = 101
TRACKER_PROTO_CMD_SERVICE_QUERY_FETCH_ONE = 102
TRACKER_PROTO_CMD_SERVICE_QUERY_UPDATE = 103
TRACKER_PROTO_CMD_SERVICE_QUERY_STORE_WITH_GROUP_ONE = 104
TRACKER_PROTO_CMD_SERVICE_QUERY_FETCH_ALL = 105
TRACKER_PROTO_CMD_SERVICE_QUERY_STORE_WITHOUT_GROUP_ALL = 106
TRACKER_PROTO_CMD_SERVICE_QUERY_STORE_WITH_GROUP_ALL = 107

STORAGE_PROTO_CMD_UPLOAD_FILE = 11
STORAGE_PROTO_CMD_DELETE_FILE = 12
STORAGE_PROTO_CMD_SET_METADATA = 13
STORAGE_PROTO_CMD_DOWNLOAD_FILE = 14
STORAGE_PROTO_CMD_GET_METADATA = 15
STORAGE_PROTO_CMD_UPLOAD_SLAVE_FILE = 21
STORAGE_PROTO_CMD_QUERY_FILE_INFO = 22
STORAGE_PROTO_CMD_UPLOAD_APPENDER_FILE = 23
STORAGE_PROTO_CMD_APPEND_FILE = 24
STORAGE_PROTO_CMD_MODIFY_FILE = 34
STORAGE_PROTO_CMD_TRUNCATE_FILE = 36
STORAGE_PROTO_CMD_LIST_ONE_GROUP = 40
STORAGE_PROTO_CMD_LIST_ALL_GROUPS = 41

FDFS_PROTO_CMD_QUIT = 82
FDFS_PROTO_CMD_ACTIVE_TEST = 111
FDFS_PROTO_CMD_RESP = 100

FDFS_PROTO_STATUS_SUCCESS = 0
FDFS_PROTO_STATUS_ERROR = 1

_HEADER = struct.Struct(">qBB")


class FastDFSError(Exception):
    """Raised on protocol, connection or server errors."""


@dataclass
class Header:
    """Packet header: body length, command and status."""

    length: int = 0
    command: int = 0
    status: int = 0

    def pack(self) -> bytes:
        return _HEADER.pack(self.length, self.command, self.status)

    @classmethod
    def unpack(cls, data: bytes) -> "Header":
        if len(data) != HEADER_SIZE:
            raise FastDFSError(f"invalid header length: {len(data)}")
        length, command, status = _HEADER.unpack(data)
        return cls(length=length, command=command, status=status)


@dataclass
class StorageServer:
    group_name: str = ""
    ip_addr: str = ""
    port: int = 0
    store_path_index: int = 0


@dataclass
class FileInfo:
    group_name: str = ""
    file_name: str = ""
    file_size: int = 0
    create_time: int = 0
    crc32: int = 0
    source_ip_addr: str = ""

    def created_at(self) -> datetime:
        """Creation time as a local datetime."""
        return datetime.fromtimestamp(self.create_time)

    def file_id(self) -> str:
        return f"{self.group_name}/{self.file_name}"


@dataclass
class UploadResponse:
    group_name: str = ""
    file_name: str = ""


@dataclass
class GroupInfo:
    group_name: str = ""
    total_mb: int = 0
    free_mb: int = 0
    trunk_free_mb: int = 0
    storage_count: int = 0
    storage_port: int = 0
    storage_http_port: int = 0
    active_count: int = 0
    current_write_server: int = 0
    store_path_count: int = 0
    subdir_count_per_path: int = 0
    current_trunk_file_id: int = 0