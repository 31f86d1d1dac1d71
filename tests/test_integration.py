"""
真实服务器集成测试：在 REMOTE_DIR 下上传、列出、下载、改名、删除。

服务器与账号来自 tests.config；live_driver 由 conftest 按 GSFTP_TEST_SERVERS 参数化，
服务器不可达时整个模块跳过。
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Iterator

import pytest

from gsftp import FtpException, RemoteDriver

from tests.config import RUNS_DIR

pytestmark = pytest.mark.integration

CONTENT = b"gsftp integration\n" * 64


@pytest.fixture(scope="module")
def runs_dir() -> Path:
    """runs 目录，若不存在则创建。"""
    RUNS_DIR.mkdir(parents=True, exist_ok=True)
    return RUNS_DIR


@pytest.fixture
def work_dir(live_driver: RemoteDriver, remote_dir: str) -> Iterator[str]:
    """每个测试一个独立的远程目录，结束后递归删除。"""
    if not live_driver.file_exists(remote_dir):
        live_driver.mkdir(remote_dir)
    path = f"{remote_dir}/it-{time.time_ns()}"
    live_driver.mkdir(path)
    yield path
    try:
        live_driver.rmdir(path)
    except FtpException:
        pass


@pytest.fixture
def local_file(tmp_path: Path) -> Path:
    f = tmp_path / "sample.bin"
    f.write_bytes(CONTENT)
    return f


class TestTransfer:
    def test_put_then_get(self, live_driver: RemoteDriver, work_dir: str, local_file: Path, runs_dir: Path) -> None:
        remote = f"{work_dir}/sample.bin"
        progress: list[tuple[int, int]] = []
        assert live_driver.put(str(local_file), remote, asynchronous=True, async_fn=lambda s, t: progress.append((s, t))) == remote
        assert progress and progress[-1][0] == len(CONTENT)

        assert live_driver.file_exists(remote)
        assert live_driver.size(remote) == len(CONTENT)
        assert abs(live_driver.mdtm(remote) - time.time()) < 24 * 3600

        target = runs_dir / f"{live_driver.protocol.lower()}-sample.bin"
        saved = live_driver.get(remote, str(target))
        assert Path(saved).read_bytes() == CONTENT

    def test_get_missing_file(self, live_driver: RemoteDriver, work_dir: str, tmp_path: Path) -> None:
        with pytest.raises(FtpException):
            live_driver.get(f"{work_dir}/missing.bin", str(tmp_path / "missing.bin"))


class TestListing:
    def test_ls_simple_and_full(self, live_driver: RemoteDriver, work_dir: str, local_file: Path) -> None:
        live_driver.put(str(local_file), f"{work_dir}/b.bin")
        live_driver.mkdir(f"{work_dir}/A")
        live_driver.put(str(local_file), f"{work_dir}/A/inner.bin")

        names = sorted(f.filename for f in live_driver.ls(work_dir))
        assert names == ["A", "b.bin"]

        full = live_driver.ls(work_dir, full=True, recursive=True)
        by_name = {f.filename: f for f in full}
        assert f"{work_dir}/b.bin" in by_name
        assert f"{work_dir}/A/inner.bin" in by_name
        assert by_name[f"{work_dir}/A"].is_dir is True
        assert by_name[f"{work_dir}/b.bin"].size == len(CONTENT)
        assert [f.filename for f in full] == sorted((f.filename for f in full), key=str.lower)


class TestManage:
    def test_rename_and_delete(self, live_driver: RemoteDriver, work_dir: str, local_file: Path) -> None:
        live_driver.put(str(local_file), f"{work_dir}/old.bin")
        live_driver.rename(f"{work_dir}/old.bin", f"{work_dir}/new.bin")
        assert not live_driver.file_exists(f"{work_dir}/old.bin")
        assert live_driver.file_exists(f"{work_dir}/new.bin")
        live_driver.delete(f"{work_dir}/new.bin")
        assert not live_driver.file_exists(f"{work_dir}/new.bin")

    def test_chmod(self, live_driver: RemoteDriver, work_dir: str, local_file: Path) -> None:
        remote = f"{work_dir}/mode.bin"
        live_driver.put(str(local_file), remote)
        try:
            live_driver.chmod("0640", remote)
        except FtpException as e:
            pytest.skip(f"服务器不支持 chmod: {e}")
        rights = {f.filename: f.rights for f in live_driver.ls(work_dir, full=True)}
        if rights[remote] != "00":
            assert rights[remote] == "0640"

    def test_rmdir_recursive(self, live_driver: RemoteDriver, work_dir: str, local_file: Path) -> None:
        tree = f"{work_dir}/tree"
        live_driver.mkdir(tree)
        live_driver.mkdir(f"{tree}/sub")
        live_driver.put(str(local_file), f"{tree}/sub/x.bin")
        live_driver.rmdir(tree)
        assert not live_driver.file_exists(tree)
