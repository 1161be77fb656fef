from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from .errors import UnknownEventKind


class EventKind(Enum):
    """Типы записей audit.log, которые мы понимаем (значение = токен из type=...)."""

    SYSCALL = "SYSCALL"
    SOCKADDR = "SOCKADDR"
    CWD = "CWD"
    PATH = "PATH"
    PROCTITLE = "PROCTITLE"
    USER_ACCT = "USER_ACCT"
    CRED_ACQ = "CRED_ACQ"
    USER_AUTH = "USER_AUTH"
    USER_CMD = "USER_CMD"
    USER_START = "USER_START"
    USER_END = "USER_END"
    USER_AVC = "USER_AVC"
    LOGIN = "LOGIN"
    CRED_REFR = "CRED_REFR"
    CRED_DISP = "CRED_DISP"
    DAEMON_END = "DAEMON_END"
    SERVICE_START = "SERVICE_START"
    SERVICE_STOP = "SERVICE_STOP"
    BPF = "BPF"

    @classmethod
    def from_token(cls, token: str, line: str = ""):
        kind = _KIND_BY_TOKEN.get(token)
        if kind is None:
            raise UnknownEventKind(token, line)
        return kind


# токен -> тип; всё, чего здесь нет, считается неизвестным
_KIND_BY_TOKEN = {kind.value: kind for kind in EventKind}


@dataclass(frozen=True)
class AuditTimestamp:
    # msg=audit(1731248208.117:6983) -> seconds=1731248208, nanoseconds=117
    seconds: int
    nanoseconds: int

    def to_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.seconds, tz=timezone.utc)


@dataclass
class Record:
    """
    Одна разобранная строка audit.log.

    id: строка "sec.frac:seq" из msg=audit(...), используется только как
    ключ корреляции и сравнивается как текст.
    fields: пары key=value; при повторе ключа побеждает последнее значение.
    """

    id: str
    timestamp: AuditTimestamp
    kind: EventKind
    fields: dict = field(default_factory=dict)


@dataclass(frozen=True)
class NetworkFact:
    """Процесс exe под пользователем uid открыл соединение к peer:port."""

    timestamp: AuditTimestamp
    uid: str
    exe: str
    peer: str
    port: str


@dataclass(frozen=True)
class SocketPathFact:
    """Процесс exe под пользователем uid открыл локальный сокет path."""

    timestamp: AuditTimestamp
    uid: str
    exe: str
    path: str
