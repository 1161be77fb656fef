import ipaddress
import logging
import socket

logger = logging.getLogger(__name__)


def reverse_lookup(address) -> str:
    """Обратный DNS-запрос (блокирующий). Бросает OSError, если имени нет."""
    hostname, _aliases, _addresses = socket.gethostbyaddr(str(address))
    return hostname


def parse_address(value):
    """'8.8.8.8' / '::1' -> ip_address, всё остальное -> None."""
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        return None


class HostnameCache:
    """
    Кэш ip -> имя хоста на всё время работы (без TTL и вытеснения).

    lookup: внешняя функция обратного резолва; None отключает сеть
    и всегда возвращает сам адрес. Неудачный резолв тоже кэшируется,
    чтобы не дёргать DNS на каждой повторной строке.
    """

    def __init__(self, lookup=reverse_lookup):
        self.lookup = lookup
        self._names = {}
        self.hits = 0
        self.misses = 0

    def __len__(self):
        return len(self._names)

    def __contains__(self, address):
        return address in self._names

    def resolve(self, address) -> str:
        name = self._names.get(address)
        if name is not None:
            self.hits += 1
            return name

        self.misses += 1
        name = str(address)
        if self.lookup is not None:
            try:
                name = self.lookup(address)
            except (OSError, ValueError) as e:
                logger.debug("reverse lookup failed for %s: %s", address, e)
                name = str(address)

        self._names[address] = name
        return name
