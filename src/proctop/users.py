"""User name lookup from the system account file."""

from pathlib import Path

import structlog

log = structlog.get_logger()

DEFAULT_PASSWD_PATH = Path("/etc/passwd")


class UserDirectory:
    """Resolve numeric user ids to names using a passwd-format file.

    The file is read on every lookup, so accounts added while the monitor is
    running show up on the next refresh.
    """

    def __init__(self, passwd_path: Path | str = DEFAULT_PASSWD_PATH) -> None:
        self._passwd_path = Path(passwd_path)

    @property
    def passwd_path(self) -> Path:
        return self._passwd_path

    def resolve_user(self, uid: str) -> str:
        """Return the name whose id field equals uid, or "" when unmatched."""
        if not uid:
            return ""
        try:
            with open(self._passwd_path, encoding="utf-8", errors="replace") as f:
                for line in f:
                    if not line.strip() or line.startswith("#"):
                        continue
                    # name:password:uid:gid:gecos:home:shell
                    fields = line.rstrip("\n").split(":")
                    if len(fields) >= 3 and fields[2] == uid:
                        return fields[0]
        except OSError as e:
            log.debug("proc_read_failed", path=str(self._passwd_path), error=str(e))
        return ""
