"""
gsftp 异常与消息模板。

所有驱动错误均为 FtpException；消息由 MESSAGES 中的模板按 host / 路径等参数格式化，
替换 MESSAGES 中的条目即可本地化。
"""

from __future__ import annotations

from typing import Any

MESSAGES: dict[str, str] = {
    # 认证
    "login_no_user": 'Could not login to {protocol} server "{host}" on port "{port}" without username.',
    "login_no_credentials": 'Could not login to {protocol} server "{host}" on port "{port}" with user "{user}": no password or key file.',
    "login_key": 'Could not login to {protocol} server "{host}" on port "{port}" with user "{user}" using key.',
    "login_password": 'Could not login to {protocol} server "{host}" on port "{port}" with user "{user}".',
    "key_missing": '{key_type} key file "{key_file}" does not exist.',
    "key_unreadable": '{key_type} key file "{key_file}" could not be read.',
    "key_invalid": '{key_type} key file "{key_file}" is not a supported key.',
    # 连接
    "connect": 'Could not connect to {protocol} server "{host}" on port "{port}".',
    # 文件操作
    "pwd": 'Could not get current folder on server "{host}".',
    "chdir": 'Could not go to "{folder}" on server "{host}".',
    "ls": 'Could not read folder "{folder}" on server "{host}".',
    "mdtm": 'Could not get modification time of file "{file}" on server "{host}".',
    "mkdir": 'An error occurred while creating folder "{folder}" on server "{host}".',
    "chmod": 'Could not change mode (to "{mode}") of file "{file}" on server "{host}".',
    "delete": 'Could not delete file "{file}" on server "{host}".',
    "rename": 'Could not rename file "{oldname}" to "{newname}" on server "{host}".',
    "size": 'Could not get size of file "{file}" on server "{host}".',
    "get": 'Could not get file "{remote_file}" from server "{host}".',
    "put": 'Could not put file "{local_file}" on "{remote_file}" on server "{host}".',
    # 列表格式
    "listing_format": 'Malformed listing entry "{entry}": missing {fields}.',
}


class FtpException(Exception):
    """
    远程文件操作失败。

    :param message_id: MESSAGES 中的模板键；不在其中时按原样作为模板
    :param params: 模板参数（host、folder、file 等）
    """

    def __init__(self, message_id: str, **params: Any):
        self.message_id = message_id
        self.params = params
        template = MESSAGES.get(message_id, message_id)
        try:
            message = template.format(**params)
        except (KeyError, IndexError):
            message = template
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)


class AuthError(FtpException):
    """缺少或被拒绝的登录凭证。"""


class ListingFormatError(FtpException):
    """详细列表叶子缺少必需字段。"""
