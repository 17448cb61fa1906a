"""Shared test fixtures for proctop."""

import logging
import shutil
from pathlib import Path

import pytest
import structlog

from proctop.config import Config
from proctop.procfs import StatSource

LIVE_PROC = Path("/proc/stat").exists()

requires_live_proc = pytest.mark.skipif(not LIVE_PROC, reason="needs a Linux /proc")

PASSWD = """\
root:x:0:0:root:/root:/bin/bash
daemon:x:1:1:daemon:/usr/sbin:/usr/sbin/nologin
# comment line
alice:x:1000:1000:Alice,,,:/home/alice:/bin/bash
bob:x:1001:1001::/home/bob:/bin/sh
"""

OS_RELEASE = """\
NAME="Ubuntu"
VERSION_ID="22.04"
PRETTY_NAME="Ubuntu 22.04.3 LTS"
ID=ubuntu
"""


class FakeProc:
    """Builder for a /proc-like directory tree under tmp_path."""

    def __init__(self, root: Path) -> None:
        self.root = root / "proc"
        self.root.mkdir()
        self.os_release = root / "os-release"
        self.passwd = root / "passwd"
        self.os_release.write_text(OS_RELEASE)
        self.passwd.write_text(PASSWD)

    def source(self, clock_ticks: int = 100) -> StatSource:
        return StatSource(
            proc_root=self.root,
            os_release_path=self.os_release,
            passwd_path=self.passwd,
            clock_ticks=clock_ticks,
        )

    def config(self) -> Config:
        config = Config()
        config.paths.proc_root = str(self.root)
        config.paths.os_release = str(self.os_release)
        config.paths.passwd = str(self.passwd)
        config.monitor.clock_ticks = 100
        return config

    def write(self, name: str, text: str) -> Path:
        path = self.root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    def write_stat(
        self,
        cpu: list[int] | None = None,
        processes: int = 1234,
        running: int = 3,
    ) -> None:
        cpu = cpu if cpu is not None else [200, 0, 0, 100, 0, 0, 0, 0, 0, 0]
        line = " ".join(str(v) for v in cpu)
        self.write(
            "stat",
            f"cpu  {line}\n"
            "cpu0 1 2 3 4 5 6 7 8 9 10\n"
            "cpu1 1 2 3 4 5 6 7 8 9 10\n"
            "intr 12345 0 0\n"
            "ctxt 987654\n"
            "btime 1700000000\n"
            f"processes {processes}\n"
            f"procs_running {running}\n"
            "procs_blocked 0\n",
        )

    def write_meminfo(self, total_kb: int = 16000000, free_kb: int = 4000000) -> None:
        self.write(
            "meminfo",
            f"MemTotal:       {total_kb} kB\n"
            f"MemFree:        {free_kb} kB\n"
            "MemAvailable:   8000000 kB\n"
            "Buffers:          100000 kB\n",
        )

    def write_uptime(self, seconds: str = "1000.55 3000.10") -> None:
        self.write("uptime", f"{seconds}\n")

    def write_version(self) -> None:
        self.write(
            "version",
            "Linux version 6.5.0-14-generic (buildd@lcy02-amd64-110) "
            "(gcc 12.3.0) #14~22.04.1-Ubuntu SMP\n",
        )

    def add_process(
        self,
        pid: int,
        comm: str = "bash",
        cmdline: str = "/bin/bash",
        rss_kb: int | None = 1024,
        uid: int = 1000,
        utime: int = 10,
        stime: int = 5,
        cutime: int = 3,
        cstime: int = 2,
        starttime: int = 50000,
    ) -> None:
        proc_dir = self.root / str(pid)
        proc_dir.mkdir()
        (proc_dir / "stat").write_text(
            f"{pid} ({comm}) S 1 {pid} {pid} 0 -1 4194560 100 0 0 0 "
            f"{utime} {stime} {cutime} {cstime} 20 0 1 0 {starttime} "
            "10000000 256 18446744073709551615 0 0 0 0 0 0 0 0 0 0 0 0 17 0 0 0 0 0 0\n"
        )
        status = f"Name:\t{comm}\nState:\tS (sleeping)\nUid:\t{uid}\t{uid}\t{uid}\t{uid}\n"
        if rss_kb is not None:
            status += f"VmRSS:\t{rss_kb} kB\n"
        status += "Threads:\t1\n"
        (proc_dir / "status").write_text(status)
        (proc_dir / "cmdline").write_text(cmdline.replace(" ", "\0") + "\0" if cmdline else "")

    def remove_process(self, pid: int) -> None:
        shutil.rmtree(self.root / str(pid))

    def populate(self) -> None:
        """Write a complete, well-formed system."""
        self.write_stat()
        self.write_meminfo()
        self.write_uptime()
        self.write_version()
        (self.root / "self").mkdir()
        (self.root / "sys").mkdir()
        self.write("filesystems", "nodev\tsysfs\n")


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    """An empty fake proc tree with os-release and passwd files."""
    return FakeProc(tmp_path)


@pytest.fixture
def populated_proc(fake_proc: FakeProc) -> FakeProc:
    """A fake proc tree with system files and two processes."""
    fake_proc.populate()
    fake_proc.add_process(1, comm="systemd", cmdline="/sbin/init splash", rss_kb=2048, uid=0)
    fake_proc.add_process(42, comm="python3", cmdline="python3 -m http.server", rss_kb=51456)
    return fake_proc


@pytest.fixture
def isolated_logging(tmp_path, monkeypatch):
    """Point HOME at tmp_path and restore logging state afterwards."""
    monkeypatch.setenv("HOME", str(tmp_path))
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield tmp_path
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    structlog.reset_defaults()
