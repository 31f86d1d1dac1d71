"""gsftp：FTP / SFTP 统一驱动接口与目录列表转换。"""

from gsftp.converter import (
    FileListConverter,
    SftpFileListConverter,
    SimpleFileListConverter,
    format_permissions,
)
from gsftp.driver import ASCII, BINARY, DriverConfig, RemoteDriver, open_driver
from gsftp.errors import AuthError, FtpException, ListingFormatError
from gsftp.ftp_driver import FtpConfig, FtpDriver
from gsftp.models import TYPE_DIRECTORY, TYPE_REGULAR, FtpFile, RawEntry
from gsftp.sftp_driver import SftpDriver

__all__ = [
    "RemoteDriver",
    "SftpDriver",
    "FtpDriver",
    "DriverConfig",
    "FtpConfig",
    "open_driver",
    "ASCII",
    "BINARY",
    "FtpFile",
    "RawEntry",
    "TYPE_DIRECTORY",
    "TYPE_REGULAR",
    "FileListConverter",
    "SftpFileListConverter",
    "SimpleFileListConverter",
    "format_permissions",
    "FtpException",
    "AuthError",
    "ListingFormatError",
]
