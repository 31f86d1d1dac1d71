"""
FTP / FTPS 驱动，基于标准库 ftplib。

详细列表使用 MLSD：各条目的 facts 转为与 SFTP rawlist 相同的叶子元数据，
再交给同一个详细列表转换器。
"""

from __future__ import annotations

import ftplib
import logging
import os
import posixpath
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterator

from gsftp.converter import SimpleFileListConverter
from gsftp.driver import (
    ASCII,
    BINARY,
    DriverConfig,
    ProgressCallback,
    RemoteDriver,
    default_local_file,
    default_remote_file,
)
from gsftp.errors import AuthError, FtpException
from gsftp.models import TYPE_DIRECTORY, TYPE_REGULAR, TYPE_UNKNOWN, FtpFile

logger = logging.getLogger(__name__)

MLSD_FACTS = ["type", "size", "modify", "unix.mode", "unix.uid", "unix.gid", "unix.owner", "unix.group"]

# MLSD type fact -> SFTP 文件类型；cdir / pdir 在列表中记为 "." / ".."
_MLSD_TYPES = {
    "file": TYPE_REGULAR,
    "dir": TYPE_DIRECTORY,
    "cdir": TYPE_DIRECTORY,
    "pdir": TYPE_DIRECTORY,
}


def parse_mlsd_time(value: str) -> int:
    """MLSD/MDTM 时间（YYYYMMDDHHMMSS[.sss]，UTC）转为 epoch 秒。"""
    dt = datetime.strptime(value.strip()[:14], "%Y%m%d%H%M%S")
    return int(dt.replace(tzinfo=timezone.utc).timestamp())


def _int_fact(facts: dict[str, str], *names: str) -> int | None:
    for name in names:
        value = facts.get(name)
        if value is not None and value.isdigit():
            return int(value)
    return None


def entry_from_facts(facts: dict[str, str]) -> dict[str, Any]:
    """
    MLSD facts 转为叶子元数据。

    无 unix.mode 时权限记为 0；无 modify 时不填 mtime（由转换器报格式错误）。
    """
    mode = facts.get("unix.mode")
    modify = facts.get("modify")
    return {
        "type": _MLSD_TYPES.get(facts.get("type", "").lower(), TYPE_UNKNOWN),
        "permissions": int(mode, 8) if mode else 0,
        "mtime": parse_mlsd_time(modify) if modify else None,
        "uid": _int_fact(facts, "unix.uid", "unix.owner"),
        "gid": _int_fact(facts, "unix.gid", "unix.group"),
        "size": _int_fact(facts, "size", "sizd"),
    }


@dataclass(frozen=True)
class FtpConfig(DriverConfig):
    """
    FTP 连接配置。

    :param passive: 是否使用被动模式
    :param ssl: 是否使用 FTPS（显式 TLS，AUTH TLS）
    """

    passive: bool = True
    ssl: bool = False


class FtpDriver(RemoteDriver):
    """FTP 驱动；ssl=True 时为 FTPS。"""

    protocol = "FTP"
    default_port = 21
    config_class = FtpConfig
    connection_fields = RemoteDriver.connection_fields + ("passive", "ssl")
    client_errors = ftplib.all_errors

    @property
    def ftp(self) -> ftplib.FTP:
        return self._handle

    # ------------------------- 会话 -------------------------

    def connect(self) -> None:
        if self._handle is not None:
            self.close()
        cfg = self.config
        ftp = ftplib.FTP_TLS() if cfg.ssl else ftplib.FTP()
        logger.info(f"Connecting to {'ftps' if cfg.ssl else 'ftp'}://{self.host}:{self.port}")
        try:
            with self._failure("connect"):
                ftp.connect(self.host, self.port, timeout=cfg.timeout)
                ftp.set_pasv(cfg.passive)
        except FtpException:
            ftp.close()
            raise
        self._handle = ftp
        self._authenticated = False

    def login(self) -> None:
        cfg = self.config
        if not cfg.username:
            raise AuthError("login_no_user", host=self.host, port=self.port, protocol=self.protocol)
        self.connect_if_needed(with_login=False)
        try:
            self.ftp.login(cfg.username, cfg.password or "")
        except ftplib.all_errors as e:
            raise AuthError(
                "login_password", host=self.host, port=self.port, protocol=self.protocol, user=cfg.username
            ) from e
        with self._failure("connect"):
            if cfg.ssl:
                self.ftp.prot_p()
        self._authenticated = True
        logger.info(f"Logged in to {self.host}:{self.port} as '{cfg.username}'")

    def close(self) -> None:
        if self._handle is None:
            return
        try:
            self._handle.quit()
        except ftplib.all_errors as e:
            logger.debug(f"QUIT failed on {self.host}, closing socket: {e}")
            self._handle.close()
        self._handle = None
        self._authenticated = False
        logger.info(f"Closed connection to {self.host}:{self.port}")

    # ------------------------- 目录 -------------------------

    def pwd(self) -> str:
        self.connect_if_needed()
        with self._failure("pwd"):
            return self.ftp.pwd()

    def chdir(self, path: str) -> str:
        self.connect_if_needed()
        with self._failure("chdir", folder=path):
            self.ftp.cwd(path)
        return self.pwd()

    def ls(self, dir: str = ".", full: bool = False, recursive: bool = False) -> list[FtpFile]:
        self.connect_if_needed()
        logger.debug(f"Listing '{dir}' on {self.host} (full={full}, recursive={recursive})")
        converter = self.file_list_converter
        with self._failure("ls", folder=dir):
            if full:
                files: Any = self._rawlist(dir, recursive)
            else:
                files = self._nlist(dir, recursive)
                converter = SimpleFileListConverter()
        return converter.parse(files, self._base_path(dir))

    def _rawlist(self, path: str, recursive: bool) -> dict[str, Any]:
        listing: dict[str, Any] = {}
        for name, facts in list(self.ftp.mlsd(path, facts=MLSD_FACTS)):
            kind = facts.get("type", "").lower()
            key = "." if kind == "cdir" else ".." if kind == "pdir" else name
            leaf = entry_from_facts(facts)
            if recursive and kind == "dir":
                subtree = self._rawlist(posixpath.join(path, name), True)
                subtree["."] = leaf
                listing[key] = subtree
            else:
                listing[key] = leaf
        return listing

    def _nlist(self, path: str, recursive: bool, prefix: str = "") -> list[str]:
        if not recursive:
            return [posixpath.basename(n.rstrip("/")) or n for n in self.ftp.nlst(path)]
        names: list[str] = []
        for name, facts in list(self.ftp.mlsd(path, facts=["type"])):
            kind = facts.get("type", "").lower()
            if kind in ("cdir", "pdir"):
                continue
            names.append(f"{prefix}{name}")
            if kind == "dir":
                names.extend(self._nlist(posixpath.join(path, name), True, f"{prefix}{name}/"))
        return names

    def _is_dir(self, path: str) -> bool:
        """尝试 CWD 进入 path 判断是否为目录，之后回到原目录。"""
        current = self.ftp.pwd()
        try:
            self.ftp.cwd(path)
        except ftplib.error_perm:
            return False
        self.ftp.cwd(current)
        return True

    def _walk(self, path: str) -> Iterator[tuple[str, bool]]:
        """深度优先遍历，子项先于父目录产出 (路径, 是否目录)。"""
        for name, facts in list(self.ftp.mlsd(path, facts=["type"])):
            kind = facts.get("type", "").lower()
            if kind in ("cdir", "pdir"):
                continue
            child = posixpath.join(path, name)
            if kind == "dir":
                yield from self._walk(child)
            yield child, kind == "dir"

    def mkdir(self, dir: str) -> None:
        self.connect_if_needed()
        with self._failure("mkdir", folder=dir):
            self.ftp.mkd(dir)

    # ------------------------- 文件 -------------------------

    def mdtm(self, path: str) -> int:
        self.connect_if_needed()
        with self._failure("mdtm", file=path):
            resp = self.ftp.sendcmd(f"MDTM {path}")
        try:
            return parse_mlsd_time(resp.split(None, 1)[1])
        except (IndexError, ValueError) as e:
            raise self._error("mdtm", file=path) from e

    def chmod(self, mode: str | int, file: str, recursive: bool = False) -> None:
        mode = self._chmod_mode(mode, file)
        self.connect_if_needed()
        with self._failure("chmod", file=file, mode=f"0{mode:o}"):
            self.ftp.sendcmd(f"SITE CHMOD {mode:o} {file}")
            if recursive and self._is_dir(file):
                for child, _ in list(self._walk(file)):
                    self.ftp.sendcmd(f"SITE CHMOD {mode:o} {child}")

    def file_exists(self, path: str) -> bool:
        self.connect_if_needed()
        parent, name = posixpath.split(path.rstrip("/"))
        with self._failure("ls", folder=parent or "."):
            try:
                names = self.ftp.nlst(parent or ".")
            except (ftplib.error_perm, ftplib.error_temp):
                # 目录不存在，或空目录上 NLST 返回 450
                return False
        return any(posixpath.basename(n.rstrip("/")) == name for n in names)

    def delete(self, path: str, recursive: bool = False) -> None:
        self.connect_if_needed()
        with self._failure("delete", file=path):
            if self._is_dir(path):
                if recursive:
                    for child, is_dir in list(self._walk(path)):
                        if is_dir:
                            self.ftp.rmd(child)
                        else:
                            self.ftp.delete(child)
                self.ftp.rmd(path)
            else:
                self.ftp.delete(path)
        logger.info(f"Deleted '{path}' on {self.host}")

    def rename(self, oldname: str, newname: str) -> None:
        self.connect_if_needed()
        with self._failure("rename", oldname=oldname, newname=newname):
            self.ftp.rename(oldname, newname)

    def size(self, path: str) -> int:
        self.connect_if_needed()
        with self._failure("size", file=path):
            self.ftp.voidcmd("TYPE I")
            res = self.ftp.size(path)
        if res is None:
            raise self._error("size", file=path)
        return res

    def _progress(self, total: int, async_fn: ProgressCallback | None) -> Callable[[int], None]:
        """按块累计字节数并回调 async_fn(已传, 总数)。"""
        sent = [0]

        def on_block(n: int) -> None:
            sent[0] += n
            if async_fn is not None:
                async_fn(sent[0], total)

        return on_block

    def get(
        self,
        remote_file: str,
        local_file: str | None = None,
        mode: str = BINARY,
        asynchronous: bool = False,
        async_fn: ProgressCallback | None = None,
    ) -> str:
        self.connect_if_needed()
        local_file = default_local_file(remote_file, local_file)
        total = 0
        if asynchronous and async_fn is not None:
            try:
                total = self.size(remote_file)
            except FtpException:
                total = 0
        progress = self._progress(total, async_fn if asynchronous else None)
        logger.info(f"Downloading '{remote_file}' from {self.host} to '{local_file}'")
        with self._download(remote_file, local_file):
            if mode == ASCII:
                with open(local_file, "w", encoding="utf-8", newline="") as f:

                    def write_line(line: str) -> None:
                        f.write(line + "\n")
                        progress(len(line) + 1)

                    self.ftp.retrlines(f"RETR {remote_file}", write_line)
            else:
                with open(local_file, "wb") as f:

                    def write_block(block: bytes) -> None:
                        f.write(block)
                        progress(len(block))

                    self.ftp.retrbinary(f"RETR {remote_file}", write_block)
        return os.path.realpath(local_file)

    def put(
        self,
        local_file: str,
        remote_file: str | None = None,
        mode: str = BINARY,
        asynchronous: bool = False,
        async_fn: ProgressCallback | None = None,
    ) -> str:
        self.connect_if_needed()
        remote_file = default_remote_file(local_file, remote_file)
        logger.info(f"Uploading '{local_file}' to '{remote_file}' on {self.host}")
        with self._failure("put", local_file=local_file, remote_file=remote_file):
            progress = self._progress(os.path.getsize(local_file), async_fn if asynchronous else None)
            with open(local_file, "rb") as f:
                if mode == ASCII:
                    self.ftp.storlines(f"STOR {remote_file}", f, callback=lambda line: progress(len(line)))
                else:
                    self.ftp.storbinary(f"STOR {remote_file}", f, callback=lambda block: progress(len(block)))
        return remote_file
