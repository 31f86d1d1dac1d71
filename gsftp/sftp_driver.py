"""
SFTP (SSH) 驱动，基于 paramiko。

认证优先级：私钥文件（密码作为口令） > 密码 > 报错。
"""

from __future__ import annotations

import io
import logging
import os
import posixpath
import socket
import stat
from pathlib import Path
from typing import Any, Iterator

import paramiko

from gsftp.converter import SimpleFileListConverter
from gsftp.driver import (
    BINARY,
    ProgressCallback,
    RemoteDriver,
    default_local_file,
    default_remote_file,
)
from gsftp.errors import AuthError, FtpException
from gsftp.models import TYPE_DIRECTORY, FtpFile, entry_from_attributes

logger = logging.getLogger(__name__)

# 依次尝试的私钥类型
KEY_CLASSES: tuple[type[paramiko.PKey], ...] = (
    paramiko.RSAKey,
    paramiko.ECDSAKey,
    paramiko.Ed25519Key,
)
CERT_SUFFIX = "-cert-v01@openssh.com"


def _read_key_file(key_type: str, key_file: str) -> str:
    path = Path(key_file)
    if not path.exists():
        raise FtpException("key_missing", key_type=key_type, key_file=key_file)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FtpException("key_unreadable", key_type=key_type, key_file=key_file) from e


class SftpDriver(RemoteDriver):
    """
    SFTP 驱动。

    示例：
        >>> with SftpDriver(host="example.com", username="user", password="pass") as sftp:
        ...     files = sftp.ls("/upload", full=True)
        ...     sftp.get("/upload/report.csv", "report.csv")
    """

    protocol = "SFTP"
    default_port = 22
    client_errors = (OSError, paramiko.SSHException)

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._sftp: paramiko.SFTPClient | None = None

    # ------------------------- 会话 -------------------------

    def connect(self) -> None:
        if self._handle is not None:
            self.close()
        timeout = self.config.timeout
        logger.info(f"Connecting to sftp://{self.host}:{self.port}")
        with self._failure("connect"):
            sock = socket.create_connection((self.host, self.port), timeout=timeout)
            transport = None
            try:
                transport = paramiko.Transport(sock)
                transport.banner_timeout = timeout
                transport.start_client(timeout=timeout)
            except self.client_errors:
                if transport is not None:
                    transport.close()
                sock.close()
                raise
        self._handle = transport
        self._authenticated = False

    def login(self) -> None:
        cfg = self.config
        if not cfg.username:
            raise AuthError("login_no_user", host=self.host, port=self.port, protocol=self.protocol)
        # 密钥文件在联网前读取，缺失或不可读时直接失败
        key = self._load_private_key() if cfg.private_key_file else None
        if key is None and not cfg.password:
            raise AuthError(
                "login_no_credentials", host=self.host, port=self.port, protocol=self.protocol, user=cfg.username
            )
        self.connect_if_needed(with_login=False)
        try:
            if key is not None:
                self._handle.auth_publickey(cfg.username, key)
            else:
                self._handle.auth_password(cfg.username, cfg.password)
        except paramiko.SSHException as e:
            raise AuthError(
                "login_key" if key is not None else "login_password",
                host=self.host,
                port=self.port,
                protocol=self.protocol,
                user=cfg.username,
            ) from e
        with self._failure("connect"):
            self._sftp = paramiko.SFTPClient.from_transport(self._handle)
        self._authenticated = True
        logger.info(f"Logged in to sftp://{self.host}:{self.port} as '{cfg.username}' ({'key' if key else 'password'})")

    def _load_private_key(self) -> paramiko.PKey:
        cfg = self.config
        text = _read_key_file("Private", cfg.private_key_file)
        passphrase = cfg.password or None
        key: paramiko.PKey | None = None
        for key_class in KEY_CLASSES:
            try:
                key = key_class.from_private_key(io.StringIO(text), password=passphrase)
                break
            except (paramiko.SSHException, ValueError):
                continue
        if key is None:
            raise FtpException("key_invalid", key_type="Private", key_file=cfg.private_key_file)
        if cfg.public_key_file:
            self._attach_public_key(key, cfg.public_key_file)
        return key

    def _attach_public_key(self, key: paramiko.PKey, key_file: str) -> None:
        """公钥为 OpenSSH 证书时附加到私钥；普通公钥须与私钥匹配。"""
        text = _read_key_file("Public", key_file)
        try:
            blob = paramiko.PublicBlob.from_string(text.strip())
        except ValueError as e:
            raise FtpException("key_invalid", key_type="Public", key_file=key_file) from e
        if blob.key_type.endswith(CERT_SUFFIX):
            key.load_certificate(blob)
        elif blob.key_blob != key.asbytes():
            raise FtpException("key_invalid", key_type="Public", key_file=key_file)

    def close(self) -> None:
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._handle is not None:
            self._handle.close()
            self._handle = None
            logger.info(f"Closed connection to sftp://{self.host}:{self.port}")
        self._authenticated = False

    # ------------------------- 目录 -------------------------

    def pwd(self) -> str:
        self.connect_if_needed()
        with self._failure("pwd"):
            return self._sftp.normalize(".")

    def chdir(self, path: str) -> str:
        self.connect_if_needed()
        with self._failure("chdir", folder=path):
            self._sftp.chdir(path)
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
        """详细列表：名称 -> 元数据；递归时子目录为嵌套 dict，其 "." 为目录自身属性。"""
        listing: dict[str, Any] = {}
        for attrs in self._sftp.listdir_attr(path):
            leaf = entry_from_attributes(attrs)
            if recursive and leaf["type"] == TYPE_DIRECTORY:
                subtree = self._rawlist(posixpath.join(path, attrs.filename), True)
                subtree["."] = leaf
                listing[attrs.filename] = subtree
            else:
                listing[attrs.filename] = leaf
        return listing

    def _nlist(self, path: str, recursive: bool, prefix: str = "") -> list[str]:
        if not recursive:
            return self._sftp.listdir(path)
        names: list[str] = []
        for attrs in self._sftp.listdir_attr(path):
            name = f"{prefix}{attrs.filename}"
            names.append(name)
            if attrs.st_mode is not None and stat.S_ISDIR(attrs.st_mode):
                names.extend(self._nlist(posixpath.join(path, attrs.filename), True, f"{name}/"))
        return names

    def mkdir(self, dir: str) -> None:
        self.connect_if_needed()
        with self._failure("mkdir", folder=dir):
            self._sftp.mkdir(dir)

    def _walk(self, path: str) -> Iterator[tuple[str, bool]]:
        """深度优先遍历 path 下所有条目，子项先于父目录产出 (路径, 是否目录)。"""
        for attrs in self._sftp.listdir_attr(path):
            child = posixpath.join(path, attrs.filename)
            is_dir = attrs.st_mode is not None and stat.S_ISDIR(attrs.st_mode)
            if is_dir:
                yield from self._walk(child)
            yield child, is_dir

    # ------------------------- 文件 -------------------------

    def mdtm(self, path: str) -> int:
        self.connect_if_needed()
        with self._failure("mdtm", file=path):
            return int(self._sftp.stat(path).st_mtime)

    def chmod(self, mode: str | int, file: str, recursive: bool = False) -> None:
        mode = self._chmod_mode(mode, file)
        self.connect_if_needed()
        with self._failure("chmod", file=file, mode=f"0{mode:o}"):
            self._sftp.chmod(file, mode)
            if recursive and stat.S_ISDIR(self._sftp.stat(file).st_mode or 0):
                for child, _ in self._walk(file):
                    self._sftp.chmod(child, mode)

    def file_exists(self, path: str) -> bool:
        self.connect_if_needed()
        with self._failure("ls", folder=path):
            try:
                self._sftp.stat(path)
            except IOError:
                return False
        return True

    def delete(self, path: str, recursive: bool = False) -> None:
        self.connect_if_needed()
        with self._failure("delete", file=path):
            attrs = self._sftp.lstat(path)
            if attrs.st_mode is not None and stat.S_ISDIR(attrs.st_mode):
                if recursive:
                    for child, is_dir in self._walk(path):
                        if is_dir:
                            self._sftp.rmdir(child)
                        else:
                            self._sftp.remove(child)
                self._sftp.rmdir(path)
            else:
                self._sftp.remove(path)
        logger.info(f"Deleted '{path}' on {self.host}")

    def rename(self, oldname: str, newname: str) -> None:
        self.connect_if_needed()
        with self._failure("rename", oldname=oldname, newname=newname):
            self._sftp.rename(oldname, newname)

    def size(self, path: str) -> int:
        self.connect_if_needed()
        with self._failure("size", file=path):
            return int(self._sftp.stat(path).st_size)

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
        callback = async_fn if asynchronous else None
        logger.info(f"Downloading '{remote_file}' from {self.host} to '{local_file}'")
        with self._download(remote_file, local_file):
            self._sftp.get(remote_file, local_file, callback=callback)
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
        callback = async_fn if asynchronous else None
        logger.info(f"Uploading '{local_file}' to '{remote_file}' on {self.host}")
        with self._failure("put", local_file=local_file, remote_file=remote_file):
            self._sftp.put(local_file, remote_file, callback=callback)
        return remote_file
