"""
列表转换器：把各后端的原始目录列表统一为按文件名排序的 FtpFile 列表。

- SimpleFileListConverter：仅文件名的平铺列表（nlist / NLST）。
- SftpFileListConverter：带属性、可递归嵌套的详细列表（rawlist / MLSD）。
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone, tzinfo
from typing import Any, Iterable

from gsftp.models import TYPE_DIRECTORY, FtpFile, RawEntry, RawListing, is_subtree

logger = logging.getLogger(__name__)

DEFAULT_DATE_TIME_FORMAT = "%d/%m/%Y %H:%M:%S"


def format_permissions(bits: int) -> str:
    """
    权限位转为 "0" + 低 3 位八进制，去掉文件类型位。

    0o100755 -> "0755"
    """
    return "0" + str(int(format(bits, "o")) % 1000)


def join_path(base_path: str, name: str) -> str:
    """以 / 连接前缀与名称；前缀已以 / 结尾（如根目录 "/"）时不重复。"""
    if base_path.endswith("/"):
        return base_path + name
    return f"{base_path}/{name}"


class FileListConverter(ABC):
    """原始列表 -> FtpFile 列表。"""

    @abstractmethod
    def parse(self, listing: Any, base_path: str = "") -> list[FtpFile]:
        raise NotImplementedError


class SimpleFileListConverter(FileListConverter):
    """平铺文件名列表：每个名字一条，只有 filename，保持输入顺序。"""

    def parse(self, listing: Iterable[str], base_path: str = "") -> list[FtpFile]:
        return [FtpFile(filename=name) for name in listing]


class SftpFileListConverter(FileListConverter):
    """
    详细列表转换器。

    :param date_time_format: md_time 的 strftime 格式，默认 "%d/%m/%Y %H:%M:%S"
    :param tz: 格式化时间所用时区，默认 UTC
    :param directory_type: 叶子 type 等于该值时视为目录
    """

    def __init__(
        self,
        date_time_format: str = DEFAULT_DATE_TIME_FORMAT,
        *,
        tz: tzinfo = timezone.utc,
        directory_type: Any = TYPE_DIRECTORY,
    ):
        self.date_time_format = date_time_format
        self.tz = tz
        self.directory_type = directory_type

    def parse(self, listing: RawListing, base_path: str = "") -> list[FtpFile]:
        files = self._walk(listing, base_path)
        files.sort(key=lambda f: f.filename.lower())
        return files

    def _walk(self, listing: RawListing, base_path: str) -> list[FtpFile]:
        files: list[FtpFile] = []
        for name, data in listing.items():
            if name == "..":
                continue
            if is_subtree(data):
                files.extend(self._walk(data, join_path(base_path, name)))
                continue
            # "." 是目录自身：不追加路径段，但仍输出一条
            path = base_path if name == "." else join_path(base_path, name)
            files.append(self._to_file(RawEntry.from_mapping(data, name=path or name), path))
        logger.debug(f"Parsed {len(files)} entries under '{base_path or '/'}'")
        return files

    def _to_file(self, entry: RawEntry, path: str) -> FtpFile:
        return FtpFile(
            filename=path,
            is_dir=entry.type == self.directory_type,
            rights=format_permissions(entry.permissions),
            user=entry.uid,
            group=entry.gid,
            size=entry.size,
            md_time=self.format_time(entry.mtime),
        )

    def format_time(self, timestamp: int) -> str:
        return datetime.fromtimestamp(timestamp, tz=self.tz).strftime(self.date_time_format)
