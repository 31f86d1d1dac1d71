"""
列表转换器单元测试：排序、"." / ".." 处理、权限与时间格式、格式错误。
"""

from __future__ import annotations

from datetime import timedelta, timezone
from types import SimpleNamespace

import pytest

from gsftp import (
    TYPE_DIRECTORY,
    TYPE_REGULAR,
    FtpFile,
    ListingFormatError,
    SftpFileListConverter,
    SimpleFileListConverter,
    format_permissions,
)

from tests.config import SAMPLE_MTIME, SAMPLE_MTIME_TEXT


def _leaf(type_: int = TYPE_REGULAR, permissions: int = 0o100644, mtime: int = SAMPLE_MTIME, **extra) -> dict:
    return {"type": type_, "permissions": permissions, "mtime": mtime, **extra}


# ------------------------- format_permissions -------------------------


def test_format_permissions_masks_type_bits() -> None:
    """去掉文件类型位，只保留低 3 位八进制，并加前导 0。"""
    assert format_permissions(0o100755) == "0755"
    assert format_permissions(0o040700) == "0700"
    assert format_permissions(0o755) == "0755"
    assert format_permissions(0o100644) == "0644"


def test_format_permissions_drops_leading_zero_digits() -> None:
    """模 1000 后不补零：0o100044 -> "044"。"""
    assert format_permissions(0o100044) == "044"


# ------------------------- SimpleFileListConverter -------------------------


def test_simple_converter_keeps_input_order() -> None:
    """平铺列表按输入顺序输出，只有 filename。"""
    files = SimpleFileListConverter().parse(["b.txt", "A.txt"])
    assert files == [FtpFile(filename="b.txt"), FtpFile(filename="A.txt")]
    assert files[0].is_dir is None
    assert files[0].rights is None
    assert files[0].md_time is None


def test_simple_converter_two_names() -> None:
    files = SimpleFileListConverter().parse(["a.txt", "b.txt"])
    assert [f.filename for f in files] == ["a.txt", "b.txt"]
    assert all(f.size is None and f.user is None and f.group is None for f in files)


# ------------------------- SftpFileListConverter -------------------------


def test_detailed_nested_listing() -> None:
    """子目录递归；"." 叶子只产出目录本身路径；结果按文件名排序。"""
    listing = {
        "sub": {
            "file1": _leaf(permissions=0o100644),
            ".": _leaf(TYPE_DIRECTORY, permissions=0o040755),
        },
        "file0": _leaf(permissions=0o100755, mtime=SAMPLE_MTIME + 60),
    }
    files = SftpFileListConverter().parse(listing)
    assert [f.filename for f in files] == ["/file0", "/sub", "/sub/file1"]
    by_name = {f.filename: f for f in files}
    assert by_name["/sub"].is_dir is True
    assert by_name["/sub"].rights == "0755"
    assert by_name["/sub/file1"].is_dir is False
    assert by_name["/sub/file1"].rights == "0644"
    assert by_name["/file0"].rights == "0755"


def test_detailed_skips_parent_entry() -> None:
    """".." 永不出现在输出中，包括嵌套层级。"""
    listing = {
        "..": _leaf(TYPE_DIRECTORY),
        "a": _leaf(),
        "sub": {"..": _leaf(TYPE_DIRECTORY), "b": _leaf()},
    }
    files = SftpFileListConverter().parse(listing)
    names = [f.filename for f in files]
    assert names == ["/a", "/sub/b"]
    assert not any(n.endswith("..") for n in names)


def test_detailed_sorted_case_insensitive() -> None:
    """无论输入顺序，输出按不区分大小写的文件名升序。"""
    listing = {"b": _leaf(), "C": _leaf(), "a": _leaf(), "B2": _leaf()}
    files = SftpFileListConverter().parse(listing)
    assert [f.filename for f in files] == ["/a", "/b", "/B2", "/C"]


def test_detailed_base_path_prefix() -> None:
    """base_path 作为前缀；"." 叶子对应 base_path 本身。"""
    listing = {".": _leaf(TYPE_DIRECTORY, 0o040755), "x.bin": _leaf()}
    files = SftpFileListConverter().parse(listing, "/data")
    assert [f.filename for f in files] == ["/data", "/data/x.bin"]


def test_detailed_root_base_path() -> None:
    """根目录前缀 "/" 不产生双斜杠。"""
    listing = {".": _leaf(TYPE_DIRECTORY, 0o040755), "etc": {"hosts": _leaf()}}
    files = SftpFileListConverter().parse(listing, "/")
    assert [f.filename for f in files] == ["/", "/etc/hosts"]


def test_detailed_current_dir_base_path() -> None:
    listing = {".": _leaf(TYPE_DIRECTORY, 0o040755), "a.txt": _leaf()}
    files = SftpFileListConverter().parse(listing, ".")
    assert [f.filename for f in files] == [".", "./a.txt"]


def test_detailed_mtime_default_format() -> None:
    """默认格式 d/m/Y H:M:S（UTC，24 小时，补零）。"""
    files = SftpFileListConverter().parse({"f": _leaf(mtime=SAMPLE_MTIME)})
    assert files[0].md_time == SAMPLE_MTIME_TEXT


def test_detailed_custom_format_and_timezone() -> None:
    conv = SftpFileListConverter("%Y-%m-%d %H:%M", tz=timezone(timedelta(hours=2)))
    files = conv.parse({"f": _leaf(mtime=SAMPLE_MTIME)})
    assert files[0].md_time == "2021-03-04 07:06"


def test_detailed_optional_fields() -> None:
    """uid/gid/size 可缺省，缺省为 None。"""
    files = SftpFileListConverter().parse(
        {"with": _leaf(uid=1000, gid=100, size=42), "without": _leaf()}
    )
    by_name = {f.filename: f for f in files}
    assert (by_name["/with"].user, by_name["/with"].group, by_name["/with"].size) == (1000, 100, 42)
    assert (by_name["/without"].user, by_name["/without"].group, by_name["/without"].size) == (None, None, None)


def test_detailed_rights_always_start_with_zero() -> None:
    listing = {f"f{i}": _leaf(permissions=p) for i, p in enumerate([0o100600, 0o100777, 0o040711, 0o120777])}
    for f in SftpFileListConverter().parse(listing):
        assert f.rights.startswith("0")
        assert len(f.rights) == 4


def test_detailed_accepts_attribute_objects() -> None:
    """叶子可为属性对象（按 vars() 读取）。"""
    leaf = SimpleNamespace(type=TYPE_REGULAR, permissions=0o100640, mtime=SAMPLE_MTIME, size=7)
    files = SftpFileListConverter().parse({"obj": leaf})
    assert files[0].rights == "0640"
    assert files[0].size == 7


def test_detailed_custom_directory_type() -> None:
    conv = SftpFileListConverter(directory_type="dir")
    files = conv.parse({"d": _leaf("dir"), "f": _leaf("file")})
    assert [f.is_dir for f in files] == [True, False]


def test_detailed_missing_required_field_fails_listing() -> None:
    """叶子缺少必需字段时整个列表失败。"""
    listing = {"ok": _leaf(), "bad": {"type": TYPE_REGULAR, "permissions": 0o644}}
    with pytest.raises(ListingFormatError) as exc:
        SftpFileListConverter().parse(listing)
    assert "mtime" in str(exc.value)
    assert "/bad" in str(exc.value)
