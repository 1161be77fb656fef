import logging
import re

from .errors import MalformedHeader, MalformedTimestamp, ParseError, UnterminatedQuote
from .models import AuditTimestamp, EventKind, Record

logger = logging.getLogger(__name__)

# https://github.com/linux-audit/audit-documentation/wiki/SPEC-Audit-Event-Enrichment
# между "сырыми" и "человеческими" полями ядро ставит 0x1d вместо пробела
ENRICHED_SEPARATOR = "\x1d"

# пример: type=SYSCALL msg=audit(1731248208.117:6983): arch=c000003e ...
TYPE_RE = re.compile(r"type=(\S+)[ \t]+")
# длина цифр ограничена: int() на тысячах цифр бросает ValueError
TIMESTAMP_RE = re.compile(r"([0-9]{1,19})\.([0-9]{1,10})(?![0-9])")
SEPARATOR_RE = re.compile(r"[ \x1d]")

HEADER_PREFIX = "msg=audit("

MAX_SECONDS = 253402300799  # 9999-12-31 23:59:59 UTC, дальше datetime не умеет
MAX_NANOSECONDS = 999_999_999


def parse_line(line: str) -> Record:
    """
    Разбор одной строки из /var/log/audit/audit.log.

    Возвращает Record или бросает ParseError (UnknownEventKind,
    MalformedHeader, MalformedTimestamp, UnterminatedQuote).
    Глобального состояния нет: одна и та же строка всегда даёт одинаковый
    результат.
    """
    line = line.strip()

    match = TYPE_RE.match(line)
    if not match:
        raise MalformedHeader("missing type= marker", line)
    kind = EventKind.from_token(match.group(1), line)

    event_id, timestamp, pos = _parse_header(line, match.end())
    rest = line[pos:]

    if kind is EventKind.SOCKADDR:
        fields = _parse_sockaddr(rest, line)
    else:
        fields = parse_fields(rest, line)

    return Record(id=event_id, timestamp=timestamp, kind=kind, fields=fields)


def _parse_header(line, pos):
    """msg=audit(<sec>.<frac>:<seq>): -> (id, timestamp, позиция после заголовка)."""
    if not line.startswith(HEADER_PREFIX, pos):
        raise MalformedHeader("missing msg=audit( header", line)

    start = pos + len(HEADER_PREFIX)
    end = line.find(")", start)
    if end < 0:
        raise MalformedHeader("unterminated msg=audit( header", line)

    event_id = line[start:end]
    timestamp = _parse_timestamp(event_id, line)

    # после ")" обязательно ":", затем пробел или конец строки
    if not line.startswith(":", end + 1):
        raise MalformedHeader("missing '): ' after event id", line)
    pos = end + 2
    if pos < len(line):
        if line[pos] != " ":
            raise MalformedHeader("missing '): ' after event id", line)
        pos += 1

    return event_id, timestamp, pos


def _parse_timestamp(event_id, line):
    match = TIMESTAMP_RE.match(event_id)
    if not match:
        raise MalformedTimestamp(f"malformed timestamp in {event_id!r}", line)

    seconds, nanoseconds = int(match.group(1)), int(match.group(2))
    if seconds > MAX_SECONDS or nanoseconds > MAX_NANOSECONDS:
        raise MalformedTimestamp(f"timestamp out of range in {event_id!r}", line)

    return AuditTimestamp(seconds, nanoseconds)


def _parse_sockaddr(rest, line):
    # SOCKADDR: настоящие поля лежат в SADDR={ saddr_fam=inet laddr=... }
    start = rest.find("{")
    if start < 0:
        # некоторые бэкенды пишут без фигурных скобок, разбираем как обычно
        return parse_fields(rest, line)

    end = rest.find("}", start + 1)
    body = rest[start + 1:] if end < 0 else rest[start + 1:end]
    return parse_fields(body, line)


def parse_fields(text: str, line: str = "") -> dict:
    """
    Список key=value, разделённых пробелом или ENRICHED_SEPARATOR.

    Значение в кавычках тянется до следующей кавычки (пробелы внутри
    допустимы, сами кавычки отбрасываются). Повторный ключ перезаписывает
    предыдущий. Токены без "=" пропускаются.
    """
    fields = {}
    pos = 0
    length = len(text)

    while pos < length:
        if text[pos] in (" ", ENRICHED_SEPARATOR):
            pos += 1
            continue

        sep = SEPARATOR_RE.search(text, pos)
        end = sep.start() if sep else length

        eq = text.find("=", pos, end)
        if eq < 0:
            logger.debug("skipping token without '=': %r", text[pos:end])
            pos = end
            continue

        key = text[pos:eq]
        value_start = eq + 1
        if text.startswith('"', value_start):
            close = text.find('"', value_start + 1)
            if close < 0:
                raise UnterminatedQuote(f"unterminated quoted value for {key!r}", line or text)
            value = text[value_start + 1:close]
            end = close + 1
        else:
            value = text[value_start:end]

        fields[key] = value
        pos = end

    return fields


def parse_log_file(path="/var/log/audit/audit.log"):
    """
    Читает лог auditd построчно.
    Для каждой непустой строки отдаёт (номер строки, Record) или
    (номер строки, ParseError); ошибка одной строки не мешает остальным.
    Ошибки открытия/чтения файла (OSError) пробрасываются наружу.
    """
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        for line_num, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                yield line_num, parse_line(line)
            except ParseError as err:
                yield line_num, err
