"""
pytest 配置与共享 fixture。

测试目标与账号见 tests.config。
集成测试会对 GSFTP_TEST_SERVERS 中每个服务器各执行一次（driver 参数化）。
"""

from __future__ import annotations

from typing import Iterator

import pytest

from gsftp import FtpException, RemoteDriver, open_driver

from tests.config import GSFTP_TEST_SERVERS, REMOTE_DIR


@pytest.fixture(autouse=True)
def _patch_config_path(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """将 CLI 配置路径指向临时目录，避免污染用户 ~/.config/gsftp。"""
    config_dir = tmp_path / "gsftp"
    config_dir.mkdir(parents=True, exist_ok=True)

    def _config_dir():
        return config_dir

    monkeypatch.setattr("gsftp.cli_config._config_dir", _config_dir)


@pytest.fixture(scope="module", params=[pytest.param(s, id=s["url"].split(":")[0]) for s in GSFTP_TEST_SERVERS])
def live_driver(request: pytest.FixtureRequest) -> Iterator[RemoteDriver]:
    """
    已登录的真实驱动；每个 GSFTP_TEST_SERVERS 服务器各跑一遍。
    服务器不可达时跳过整个模块。
    """
    server = request.param
    drv = open_driver(server["url"], username=server["username"], password=server["password"], timeout=3)
    try:
        drv.connect()
        drv.login()
    except FtpException as e:
        pytest.skip(f"测试服务器不可用 ({server['url']}): {e}")
    yield drv
    drv.close()


@pytest.fixture(scope="module")
def remote_dir() -> str:
    return REMOTE_DIR
