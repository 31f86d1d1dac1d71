"""
gsftp 数据模型：统一的文件记录 FtpFile 与原始列表条目 RawEntry。

原始详细列表（rawlist）为嵌套 dict：
- 键为路径段；值为子目录（嵌套 dict，无 type 键）或叶子元数据。
- 叶子元数据至少含 type / permissions / mtime，可选 uid / gid / size。
- "." 表示目录自身的属性，".." 为父目录，转换时跳过。
"""

from __future__ import annotations

import stat
from dataclasses import dataclass
from typing import Any, Mapping, Union

from gsftp.errors import ListingFormatError

# SFTP 文件类型（draft-ietf-secsh-filexfer 中的 SSH_FILEXFER_TYPE_*）
TYPE_REGULAR = 1
TYPE_DIRECTORY = 2
TYPE_SYMLINK = 3
TYPE_SPECIAL = 4
TYPE_UNKNOWN = 5

REQUIRED_FIELDS = ("type", "permissions", "mtime")

# 详细列表：名称 -> 叶子元数据 或 嵌套子目录
RawListing = Mapping[str, Any]
RawLeaf = Union[Mapping[str, Any], object]


def file_type_from_mode(mode: int | None) -> int:
    """由 POSIX st_mode 推出 SFTP 文件类型。"""
    if mode is None:
        return TYPE_UNKNOWN
    if stat.S_ISDIR(mode):
        return TYPE_DIRECTORY
    if stat.S_ISREG(mode):
        return TYPE_REGULAR
    if stat.S_ISLNK(mode):
        return TYPE_SYMLINK
    return TYPE_SPECIAL


def is_subtree(value: Any) -> bool:
    """
    判断列表值是否为待递归的子目录。

    原始列表不区分「子目录」与「叶子」，只能靠有无 type 键识别：
    无 type 键的映射即为子目录。
    """
    return isinstance(value, Mapping) and "type" not in value


@dataclass(frozen=True)
class FtpFile:
    """
    列表中的一个文件/目录。

    :param filename: 相对查询目录、以 / 连接的路径，总是有值
    :param is_dir: 是否为目录；简单列表无元数据时为 None
    :param rights: 八进制权限字符串，如 "0755"
    :param user: uid
    :param group: gid
    :param size: 字节数
    :param md_time: 按转换器格式化后的修改时间
    """

    filename: str
    is_dir: bool | None = None
    rights: str | None = None
    user: int | None = None
    group: int | None = None
    size: int | None = None
    md_time: str | None = None


@dataclass(frozen=True)
class RawEntry:
    """详细列表中一个叶子的类型化形式。"""

    type: int
    permissions: int
    mtime: int
    uid: int | None = None
    gid: int | None = None
    size: int | None = None

    @classmethod
    def from_mapping(cls, data: RawLeaf, name: str = "") -> RawEntry:
        """校验并构造；缺少 type / permissions / mtime 时抛 ListingFormatError。"""
        if not isinstance(data, Mapping):
            data = vars(data)
        missing = [f for f in REQUIRED_FIELDS if data.get(f) is None]
        if missing:
            raise ListingFormatError("listing_format", entry=name, fields=", ".join(missing))
        return cls(
            type=data["type"],
            permissions=int(data["permissions"]),
            mtime=int(data["mtime"]),
            uid=data.get("uid"),
            gid=data.get("gid"),
            size=data.get("size"),
        )


def entry_from_attributes(attrs: Any) -> dict[str, Any]:
    """将 stat 风格对象（st_mode / st_mtime / st_uid ...）转为叶子元数据 dict。"""
    mode = getattr(attrs, "st_mode", None)
    return {
        "type": file_type_from_mode(mode),
        "permissions": mode,
        "mtime": getattr(attrs, "st_mtime", None),
        "uid": getattr(attrs, "st_uid", None),
        "gid": getattr(attrs, "st_gid", None),
        "size": getattr(attrs, "st_size", None),
    }
