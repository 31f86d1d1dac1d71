"""
测试用配置：服务器地址、账号、远程目录与本地目录。

仅在此处维护，conftest、main.py 及各 test_*.py 均从此导入。
- 集成测试：对 GSFTP_TEST_SERVERS 中每个服务器各执行一次；不可达则跳过。
- 单元测试：用本配置中的 URL/路径做 mock 或断言。
"""

from datetime import datetime, timezone
from pathlib import Path

# ---------- 服务器与路径 ----------
SFTP_HOST = "127.0.0.1"
SFTP_PORT = 2222
FTP_HOST = "127.0.0.1"
FTP_PORT = 2121
SFTP_URL = f"sftp://{SFTP_HOST}:{SFTP_PORT}"
FTP_URL = f"ftp://{FTP_HOST}:{FTP_PORT}"

# 远程测试目录（集成测试会在其中创建/删除文件）
REMOTE_DIR = "upload"
SAMPLE_REMOTE_FILE = f"{REMOTE_DIR}/sample.txt"
FULL_URL_DIR = f"{SFTP_URL}/{REMOTE_DIR}"
FULL_URL_FILE = f"{SFTP_URL}/{SAMPLE_REMOTE_FILE}"

# ---------- 账号 ----------
USERNAME = "foo"
PASSWORD = "pass"

# 每个服务器都会跑一遍集成测试（ls/put/get/rename/delete 等）
GSFTP_TEST_SERVERS = [
    {"url": SFTP_URL, "username": USERNAME, "password": PASSWORD},
    {"url": FTP_URL, "username": USERNAME, "password": PASSWORD},
]

# ---------- 列表样例 ----------
# 2021-03-04 05:06:07 UTC
SAMPLE_MTIME = int(datetime(2021, 3, 4, 5, 6, 7, tzinfo=timezone.utc).timestamp())
SAMPLE_MTIME_TEXT = "04/03/2021 05:06:07"

# ---------- 本地目录 ----------
_TESTS_DIR = Path(__file__).resolve().parent
RUNS_DIR = _TESTS_DIR.parent / "runs"
