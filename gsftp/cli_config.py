"""
CLI 连接配置：本地保存/读取 url、username、password 与密钥文件路径。
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def _config_dir() -> Path:
    """配置目录：~/.config/gsftp（所有平台统一）。"""
    return Path.home() / ".config" / "gsftp"


def _config_path() -> Path:
    return _config_dir() / "config.json"


def load_config() -> dict[str, Any] | None:
    """读取本地配置；不存在、无效或缺少 url 时返回 None。"""
    p = _config_path()
    if not p.exists():
        return None
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict) or "url" not in data:
        return None
    return data


def save_config(
    url: str,
    username: str | None = None,
    password: str | None = None,
    *,
    private_key_file: str | None = None,
    public_key_file: str | None = None,
) -> None:
    """保存连接信息到本地；值为 None 的字段不写入。"""
    p = _config_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    data: dict[str, Any] = {"url": url.rstrip("/")}
    optional = {
        "username": username,
        "password": password,
        "private_key_file": private_key_file,
        "public_key_file": public_key_file,
    }
    data.update({k: v for k, v in optional.items() if v is not None})
    p.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def clear_config() -> bool:
    """清除本地配置；存在则删除并返回 True。"""
    p = _config_path()
    if p.exists():
        p.unlink()
        return True
    return False
