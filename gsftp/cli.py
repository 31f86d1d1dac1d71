"""
gsftp CLI：连接信息保存一次，之后所有命令复用；可用 --url 或完整链接覆盖。
"""

from __future__ import annotations

import getpass
import logging
import sys
from contextlib import contextmanager
from typing import Annotated, Iterator, Optional
from urllib.parse import urlparse

import typer

from gsftp import FtpException, RemoteDriver, open_driver
from gsftp.cli_config import clear_config, load_config, save_config
from gsftp.driver import ASCII, BINARY

URL_SCHEMES = ("sftp", "ftp", "ftps")


def _format_size(n: int) -> str:
    """将字节数格式化为人类可读（KiB/MiB/GiB）。"""
    if n < 1024:
        return f"{n} B"
    if n < 1024 * 1024:
        return f"{n / 1024:.1f} KiB"
    if n < 1024 * 1024 * 1024:
        return f"{n / (1024 * 1024):.1f} MiB"
    return f"{n / (1024 * 1024 * 1024):.1f} GiB"


def _make_progress_callback(filename: str) -> tuple[object, object]:
    """返回 (on_progress(sent, total) 回调, finish 回调)。进度条输出到 stderr。"""
    last_pct: list[int] = [-1]
    bar_width = 24

    def on_progress(sent: int, total_bytes: int) -> None:
        if total_bytes <= 0:
            return
        pct = min(100, int(100 * sent / total_bytes))
        if pct != last_pct[0] and (pct % 5 == 0 or sent == total_bytes):
            last_pct[0] = pct
            filled = int(bar_width * pct / 100)
            head = ">" if filled < bar_width else ""
            bar = "=" * filled + head + " " * (bar_width - filled - len(head))
            sys.stderr.write(f"\r  {filename} [{bar}] {pct}% {_format_size(sent)}/{_format_size(total_bytes)}   ")
            sys.stderr.flush()

    def finish() -> None:
        sys.stderr.write("\n")
        sys.stderr.flush()

    return on_progress, finish


app = typer.Typer(
    name="gsftp",
    help="FTP/SFTP CLI. Save the connection once; every command reuses it.",
)

_url_option: type = Annotated[
    Optional[str],
    typer.Option("--url", "-u", help="Override saved server URL, e.g. sftp://host:22 (required if not logged in)"),
]


@app.callback()
def _main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log driver activity to stderr")] = False,
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")


def _parse_path_or_url(path_or_url: str) -> tuple[str, str | None]:
    """
    解析「远程路径」或「完整链接」。
    返回 (path, url_override)。
    - 若输入为 sftp|ftp|ftps://host[:port]/path → path 为 path 部分（无则 "."），url 为 scheme://netloc
    - 否则视为路径原样返回
    """
    raw = (path_or_url or "").strip()
    if not raw:
        return "", None
    parsed = urlparse(raw)
    if parsed.scheme in URL_SCHEMES and parsed.netloc:
        return parsed.path or ".", f"{parsed.scheme}://{parsed.netloc}"
    return raw, None


def _get_driver(url: str | None) -> RemoteDriver | None:
    cfg = load_config() or {}
    url = url or cfg.get("url")
    if not url:
        return None
    options = {
        k: cfg[k]
        for k in ("username", "password", "private_key_file", "public_key_file")
        if cfg.get(k) is not None
    }
    return open_driver(url, **options)


def _require_driver(url: str | None) -> RemoteDriver:
    try:
        driver = _get_driver(url)
    except ValueError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)
    if driver is None:
        typer.echo("error: no saved connection. run 'gsftp login' or pass --url", err=True)
        raise typer.Exit(1)
    return driver


@contextmanager
def _session(path: str, url: str | None) -> Iterator[tuple[RemoteDriver, str]]:
    """解析 path，打开驱动；FtpException 输出到 stderr 并以 1 退出，结束时关闭连接。"""
    remote, url_override = _parse_path_or_url(path)
    driver = _require_driver(url_override or url)
    try:
        yield driver, remote
    except FtpException as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        driver.close()


# ------------------------- login / logout / auth -------------------------


@app.command("login", help="Save connection settings to local config")
def login(
    url: Annotated[Optional[str], typer.Option("--url", "-u", help="Server URL, e.g. sftp://host:22")] = None,
    username: Annotated[Optional[str], typer.Option("--username", "-l", help="Username")] = None,
    password: Annotated[Optional[str], typer.Option("--password", "-p", help="Password or key passphrase (unsafe in shell)")] = None,
    private_key_file: Annotated[Optional[str], typer.Option("--key", "-k", help="Private key file")] = None,
    public_key_file: Annotated[Optional[str], typer.Option("--pubkey", help="Public key / certificate file")] = None,
) -> None:
    url = url or input("Server URL (e.g. sftp://127.0.0.1:22): ").strip()
    if not url:
        typer.echo("error: server URL required", err=True)
        raise typer.Exit(1)
    if urlparse(url).scheme not in URL_SCHEMES:
        typer.echo(f"error: URL must start with {', '.join(s + '://' for s in URL_SCHEMES)}", err=True)
        raise typer.Exit(1)
    username = username or input("Username: ").strip() or None
    if username and password is None and private_key_file is None:
        password = getpass.getpass("Password: ")
    save_config(
        url,
        username,
        password,
        private_key_file=private_key_file,
        public_key_file=public_key_file,
    )
    typer.echo("Saved.")


@app.command("logout", help="Clear saved connection settings")
def logout() -> None:
    if clear_config():
        typer.echo("Cleared.")
    else:
        typer.echo("No saved connection.")


auth_app = typer.Typer(help="Auth subcommands")
app.add_typer(auth_app, name="auth")


def _auth_mode(cfg: dict) -> str:
    if cfg.get("private_key_file"):
        return "key"
    if cfg.get("username") and cfg.get("password"):
        return "password"
    return "no"


@auth_app.command("status", help="Show whether a connection is saved")
def auth_status() -> None:
    cfg = load_config()
    if not cfg:
        typer.echo("Not logged in.")
        return
    typer.echo(f"url: {cfg.get('url', '')}")
    typer.echo(f"auth: {_auth_mode(cfg)}")


@app.command("info", help="Show saved URL, user and auth mode")
def info_cmd() -> None:
    cfg = load_config()
    if not cfg:
        typer.echo("Not logged in. Run 'gsftp login' or pass --url for commands.")
        return
    typer.echo(f"url: {cfg.get('url')}")
    typer.echo(f"user: {cfg.get('username') or '-'}")
    typer.echo(f"auth: {_auth_mode(cfg)}")


# ------------------------- list / ls -------------------------


def _cmd_list_impl(path: str, full: bool, recursive: bool, url: str | None) -> None:
    with _session(path or ".", url) as (driver, remote):
        files = driver.ls(remote or ".", full=full, recursive=recursive)
    for f in files:
        if not full:
            typer.echo(f.filename)
            continue
        name = f"{f.filename}/" if f.is_dir else f.filename
        size = _format_size(f.size) if f.size is not None else "-"
        typer.echo(f"  {f.rights or '-'}  {size:>10}  {f.md_time or '-'}  {name}")


@app.command("list", help="List directory")
def list_cmd(
    path: Annotated[str, typer.Argument(help="Remote directory or full URL (default: .)")] = ".",
    full: Annotated[bool, typer.Option("--full", "-f", help="Show permissions, size and modification time")] = False,
    recursive: Annotated[bool, typer.Option("--recursive", "-r", help="List subdirectories too")] = False,
    url: _url_option = None,
) -> None:
    _cmd_list_impl(path, full, recursive, url)


@app.command("ls", help="Alias for list")
def ls_cmd(
    path: Annotated[str, typer.Argument(help="Remote directory or full URL (default: .)")] = ".",
    full: Annotated[bool, typer.Option("--full", "-f", help="Show permissions, size and modification time")] = False,
    recursive: Annotated[bool, typer.Option("--recursive", "-r", help="List subdirectories too")] = False,
    url: _url_option = None,
) -> None:
    _cmd_list_impl(path, full, recursive, url)


@app.command("pwd", help="Print remote working directory")
def pwd_cmd(url: _url_option = None) -> None:
    with _session("", url) as (driver, _):
        cwd = driver.pwd()
    typer.echo(cwd)


# ------------------------- get / put -------------------------


@app.command("get", help="Download a file")
def get_cmd(
    remote_path: Annotated[str, typer.Argument(help="Remote file or full URL (e.g. /data/foo.txt or sftp://host/data/foo.txt)")],
    output: Annotated[Optional[str], typer.Option("--output", "-o", help="Local path (default: same name in current directory)")] = None,
    ascii_mode: Annotated[bool, typer.Option("--ascii", help="ASCII transfer (FTP only)")] = False,
    progress: Annotated[bool, typer.Option("--progress", "-p", help="Show download progress")] = False,
    url: _url_option = None,
) -> None:
    with _session(remote_path, url) as (driver, remote):
        on_progress, progress_finish = _make_progress_callback(remote) if progress else (None, lambda: None)
        try:
            saved = driver.get(
                remote,
                output,
                mode=ASCII if ascii_mode else BINARY,
                asynchronous=progress,
                async_fn=on_progress,
            )
        finally:
            progress_finish()
    typer.echo(f"Saved to {saved}.")


@app.command("put", help="Upload a file")
def put_cmd(
    local_path: Annotated[str, typer.Argument(help="Local file path")],
    remote_path: Annotated[Optional[str], typer.Argument(help="Remote file or full URL (default: local name)")] = None,
    ascii_mode: Annotated[bool, typer.Option("--ascii", help="ASCII transfer (FTP only)")] = False,
    progress: Annotated[bool, typer.Option("--progress", "-p", help="Show upload progress")] = False,
    url: _url_option = None,
) -> None:
    with _session(remote_path or "", url) as (driver, remote):
        on_progress, progress_finish = _make_progress_callback(local_path) if progress else (None, lambda: None)
        try:
            uploaded = driver.put(
                local_path,
                remote or None,
                mode=ASCII if ascii_mode else BINARY,
                asynchronous=progress,
                async_fn=on_progress,
            )
        finally:
            progress_finish()
    typer.echo(f"Uploaded to {uploaded}.")


# ------------------------- mkdir / rmdir / delete / rename / chmod -------------------------


@app.command("mkdir", help="Create a folder")
def mkdir_cmd(
    path: Annotated[str, typer.Argument(help="Remote folder or full URL")],
    url: _url_option = None,
) -> None:
    with _session(path, url) as (driver, remote):
        driver.mkdir(remote)
    typer.echo("Created.")


@app.command("rmdir", help="Delete a folder and everything in it")
def rmdir_cmd(
    path: Annotated[str, typer.Argument(help="Remote folder or full URL")],
    url: _url_option = None,
) -> None:
    with _session(path, url) as (driver, remote):
        driver.rmdir(remote)
    typer.echo("Deleted.")


@app.command("delete", help="Delete a file (or folder with --recursive)")
def delete_cmd(
    path: Annotated[str, typer.Argument(help="Remote path or full URL")],
    recursive: Annotated[bool, typer.Option("--recursive", "-r", help="Delete folder contents too")] = False,
    url: _url_option = None,
) -> None:
    with _session(path, url) as (driver, remote):
        driver.delete(remote, recursive=recursive)
    typer.echo("Deleted.")


@app.command("rename", help="Rename or move a remote file")
def rename_cmd(
    oldname: Annotated[str, typer.Argument(help="Current remote path or full URL")],
    newname: Annotated[str, typer.Argument(help="New remote path")],
    url: _url_option = None,
) -> None:
    with _session(oldname, url) as (driver, remote):
        driver.rename(remote, newname)
    typer.echo("Renamed.")


@app.command("chmod", help="Change permissions (e.g. 0644 or 755)")
def chmod_cmd(
    mode: Annotated[str, typer.Argument(help="Mode, octal (e.g. 0644 or 755)")],
    path: Annotated[str, typer.Argument(help="Remote path or full URL")],
    recursive: Annotated[bool, typer.Option("--recursive", "-r", help="Apply to folder contents too")] = False,
    url: _url_option = None,
) -> None:
    with _session(path, url) as (driver, remote):
        driver.chmod(mode, remote, recursive=recursive)
    typer.echo("OK.")


# ------------------------- size / mdtm -------------------------


@app.command("size", help="Print remote file size in bytes")
def size_cmd(
    path: Annotated[str, typer.Argument(help="Remote file or full URL")],
    human: Annotated[bool, typer.Option("--human", "-H", help="Human readable size")] = False,
    url: _url_option = None,
) -> None:
    with _session(path, url) as (driver, remote):
        n = driver.size(remote)
    typer.echo(_format_size(n) if human else str(n))


@app.command("mdtm", help="Print remote file modification time (epoch seconds)")
def mdtm_cmd(
    path: Annotated[str, typer.Argument(help="Remote file or full URL")],
    url: _url_option = None,
) -> None:
    with _session(path, url) as (driver, remote):
        ts = driver.mdtm(remote)
    typer.echo(str(ts))


# ------------------------- main -------------------------


def main() -> None:
    app()


if __name__ == "__main__":
    main()
