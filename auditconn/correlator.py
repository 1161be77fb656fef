# auditconn/correlator.py

import logging

from .models import EventKind, NetworkFact, SocketPathFact
from .resolver import HostnameCache, parse_address

logger = logging.getLogger(__name__)

# x86_64: arch=c000003e, номер connect = 42 (для строк без обогащения)
ARCH_X86_64 = "c000003e"
CONNECT_SYSCALL_NR = "42"


def is_connect_syscall(fields) -> bool:
    if fields.get("SYSCALL") == "connect":
        return True
    return fields.get("arch") == ARCH_X86_64 and fields.get("syscall") == CONNECT_SYSCALL_NR


class Correlator:
    """
    Склеивает SYSCALL и следующий за ним SOCKADDR с тем же audit id.

    Из SYSCALL запоминаем exe и uid, SOCKADDR их забирает (и удаляет).
    Предполагается, что SYSCALL в логе идёт раньше SOCKADDR своего события;
    если это не так, факт выйдет с пустыми uid/exe, а не с ошибкой.
    Записи, для которых SOCKADDR так и не пришёл, остаются до конца работы.
    """

    def __init__(self, cache=None):
        self.cache = cache if cache is not None else HostnameCache()
        self.pending_exe = {}
        self.pending_uid = {}

        # --- счётчики для итоговой строки ---
        self.records_seen = 0
        self.syscall_connects = 0
        self.facts_emitted = 0

    @property
    def pending(self):
        return len(self.pending_exe.keys() | self.pending_uid.keys())

    def observe(self, record):
        """Принимает Record, возвращает список фактов (0, 1 или 2)."""
        self.records_seen += 1

        if record.kind is EventKind.SYSCALL:
            self._remember(record)
            return []
        if record.kind is EventKind.SOCKADDR:
            facts = self._consume(record)
            self.facts_emitted += len(facts)
            return facts
        return []

    def _remember(self, record):
        fields = record.fields
        if is_connect_syscall(fields):
            self.syscall_connects += 1

        # повторный SYSCALL с тем же id заменяет запись целиком
        self.pending_exe.pop(record.id, None)
        self.pending_uid.pop(record.id, None)

        exe = fields.get("exe")
        if exe is not None:
            self.pending_exe[record.id] = exe

        # UID: имя пользователя из обогащённой части, uid: число
        uid = fields.get("UID", fields.get("uid"))
        if uid is not None:
            self.pending_uid[record.id] = uid

    def _consume(self, record):
        fields = record.fields
        exe = self.pending_exe.pop(record.id, "")
        uid = self.pending_uid.pop(record.id, "")
        if not exe and not uid:
            logger.debug("SOCKADDR %s has no matching SYSCALL", record.id)

        facts = []

        address = parse_address(fields.get("laddr", ""))
        if address is not None:
            facts.append(NetworkFact(
                timestamp=record.timestamp,
                uid=uid,
                exe=exe,
                peer=self.cache.resolve(address),
                port=fields.get("lport", "none"),
            ))

        # unix-сокет
        path = fields.get("path")
        if path is not None:
            facts.append(SocketPathFact(
                timestamp=record.timestamp,
                uid=uid,
                exe=exe,
                path=path,
            ))

        return facts
