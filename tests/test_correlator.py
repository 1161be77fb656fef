"""
Tests for the SYSCALL -> SOCKADDR correlator.
"""

import pytest

from auditconn.correlator import Correlator, is_connect_syscall
from auditconn.models import AuditTimestamp, EventKind, NetworkFact, Record, SocketPathFact
from auditconn.parser import parse_line
from auditconn.resolver import HostnameCache

TS = AuditTimestamp(1731248208, 117)


def make_record(kind, fields, event_id="T:1"):
    return Record(id=event_id, timestamp=TS, kind=kind, fields=dict(fields))


@pytest.fixture
def lookups():
    return []


@pytest.fixture
def correlator(lookups):
    def lookup(address):
        lookups.append(address)
        if str(address) == "8.8.8.8":
            return "dns.google"
        raise OSError("no PTR record")

    return Correlator(HostnameCache(lookup=lookup))


# =============================================================================
# SYSCALL
# =============================================================================


class TestSysCall:
    def test_syscall_emits_nothing(self, correlator):
        facts = correlator.observe(make_record(EventKind.SYSCALL, {"exe": "/bin/x", "uid": "101"}))
        assert facts == []
        assert correlator.pending_exe == {"T:1": "/bin/x"}
        assert correlator.pending_uid == {"T:1": "101"}
        assert correlator.pending == 1

    def test_enriched_uid_preferred(self, correlator):
        correlator.observe(make_record(EventKind.SYSCALL, {"uid": "101", "UID": "systemd-resolve"}))
        assert correlator.pending_uid["T:1"] == "systemd-resolve"

    def test_repeated_syscall_overwrites(self, correlator):
        correlator.observe(make_record(EventKind.SYSCALL, {"exe": "/bin/old", "uid": "1"}))
        correlator.observe(make_record(EventKind.SYSCALL, {"exe": "/bin/new", "uid": "2"}))
        assert correlator.pending_exe == {"T:1": "/bin/new"}
        assert correlator.pending_uid == {"T:1": "2"}

    def test_repeated_syscall_drops_stale_keys(self, correlator):
        correlator.observe(make_record(EventKind.SYSCALL, {"exe": "/bin/old", "uid": "1"}))
        correlator.observe(make_record(EventKind.SYSCALL, {"uid": "2"}))
        assert correlator.pending_exe == {}
        assert correlator.pending_uid == {"T:1": "2"}

        facts = correlator.observe(make_record(EventKind.SOCKADDR, {"path": "/dev/log"}))
        assert facts[0].exe == ""
        assert facts[0].uid == "2"

    def test_connect_counter(self, correlator):
        correlator.observe(make_record(EventKind.SYSCALL, {"SYSCALL": "connect"}, "a"))
        correlator.observe(make_record(EventKind.SYSCALL, {"arch": "c000003e", "syscall": "42"}, "b"))
        correlator.observe(make_record(EventKind.SYSCALL, {"arch": "c000003e", "syscall": "41"}, "c"))
        assert correlator.syscall_connects == 2

    def test_is_connect_syscall(self):
        assert is_connect_syscall({"SYSCALL": "connect", "syscall": "42"})
        assert not is_connect_syscall({"SYSCALL": "socket", "syscall": "41"})
        # 42 на aarch64 не connect
        assert not is_connect_syscall({"arch": "c00000b7", "syscall": "42"})


# =============================================================================
# SOCKADDR
# =============================================================================


class TestSockAddr:
    def test_network_fact(self, correlator):
        correlator.observe(make_record(EventKind.SYSCALL, {"exe": "/bin/x", "uid": "101"}))
        facts = correlator.observe(make_record(EventKind.SOCKADDR, {"laddr": "8.8.8.8", "lport": "53"}))

        assert facts == [NetworkFact(timestamp=TS, uid="101", exe="/bin/x", peer="dns.google", port="53")]
        assert correlator.pending == 0
        assert correlator.facts_emitted == 1

    def test_pending_entry_is_consumed_once(self, correlator):
        correlator.observe(make_record(EventKind.SYSCALL, {"exe": "/bin/x", "uid": "101"}))
        correlator.observe(make_record(EventKind.SOCKADDR, {"laddr": "8.8.8.8", "lport": "53"}))
        facts = correlator.observe(make_record(EventKind.SOCKADDR, {"laddr": "8.8.8.8", "lport": "53"}))

        assert len(facts) == 1
        assert facts[0].uid == ""
        assert facts[0].exe == ""

    def test_lookup_failure_uses_literal(self, correlator):
        facts = correlator.observe(make_record(EventKind.SOCKADDR, {"laddr": "10.1.2.3", "lport": "443"}))
        assert facts[0].peer == "10.1.2.3"

    def test_ipv6_address(self, correlator):
        facts = correlator.observe(make_record(EventKind.SOCKADDR, {"laddr": "2001:db8::1", "lport": "80"}))
        assert facts[0].peer == "2001:db8::1"

    def test_missing_port(self, correlator):
        facts = correlator.observe(make_record(EventKind.SOCKADDR, {"laddr": "8.8.8.8"}))
        assert facts[0].port == "none"

    def test_invalid_address_is_ignored(self, correlator, lookups):
        facts = correlator.observe(make_record(EventKind.SOCKADDR, {"laddr": "not-an-ip", "lport": "1"}))
        assert facts == []
        assert lookups == []

    def test_unix_socket_fact(self, correlator):
        correlator.observe(make_record(EventKind.SYSCALL, {"exe": "/usr/bin/logger", "uid": "0"}))
        facts = correlator.observe(make_record(EventKind.SOCKADDR, {"saddr_fam": "local", "path": "/dev/log"}))
        assert facts == [SocketPathFact(timestamp=TS, uid="0", exe="/usr/bin/logger", path="/dev/log")]

    def test_both_facts_for_one_record(self, correlator):
        correlator.observe(make_record(EventKind.SYSCALL, {"exe": "/bin/x", "uid": "101"}))
        facts = correlator.observe(make_record(
            EventKind.SOCKADDR, {"laddr": "8.8.8.8", "lport": "53", "path": "/run/sock"},
        ))

        assert [type(f) for f in facts] == [NetworkFact, SocketPathFact]
        assert all(f.uid == "101" and f.exe == "/bin/x" for f in facts)
        assert correlator.facts_emitted == 2

    def test_sockaddr_before_syscall(self, correlator):
        facts = correlator.observe(make_record(EventKind.SOCKADDR, {"laddr": "8.8.8.8", "lport": "53"}))
        correlator.observe(make_record(EventKind.SYSCALL, {"exe": "/bin/x", "uid": "101"}))

        assert facts[0].uid == ""
        assert correlator.pending == 1

    def test_ids_compared_as_text(self, correlator):
        correlator.observe(make_record(EventKind.SYSCALL, {"exe": "/bin/x"}, "1.10:5"))
        facts = correlator.observe(make_record(EventKind.SOCKADDR, {"laddr": "8.8.8.8"}, "1.1:5"))
        assert facts[0].exe == ""
        assert correlator.pending_exe == {"1.10:5": "/bin/x"}

    def test_resolver_cache_is_shared(self, correlator, lookups):
        for _ in range(3):
            correlator.observe(make_record(EventKind.SOCKADDR, {"laddr": "8.8.8.8"}))
        assert len(lookups) == 1


# =============================================================================
# OTHER KINDS
# =============================================================================


class TestOtherKinds:
    @pytest.mark.parametrize("kind", [EventKind.PATH, EventKind.CWD, EventKind.PROCTITLE, EventKind.USER_CMD])
    def test_ignored(self, correlator, kind):
        correlator.observe(make_record(EventKind.SYSCALL, {"exe": "/bin/x", "uid": "1"}))
        facts = correlator.observe(make_record(kind, {"laddr": "8.8.8.8", "path": "/x", "exe": "/bin/y"}))

        assert facts == []
        assert correlator.pending_exe == {"T:1": "/bin/x"}
        assert correlator.records_seen == 2


# =============================================================================
# PARSED LINES
# =============================================================================


def test_parsed_lines_end_to_end():
    correlator = Correlator(HostnameCache(lookup=None))
    correlator.observe(parse_line(
        'type=SYSCALL msg=audit(1731248208.117:6983): arch=c000003e syscall=42 uid=101 '
        'exe="/usr/lib/systemd/systemd-resolved"\x1dSYSCALL=connect UID="systemd-resolve"'
    ))
    facts = correlator.observe(parse_line(
        "type=SOCKADDR msg=audit(1731248208.117:6983): saddr=0200\x1d"
        "SADDR={ saddr_fam=inet laddr=100.100.100.100 lport=53 }"
    ))

    assert facts == [NetworkFact(
        timestamp=AuditTimestamp(1731248208, 117),
        uid="systemd-resolve",
        exe="/usr/lib/systemd/systemd-resolved",
        peer="100.100.100.100",
        port="53",
    )]
    assert correlator.syscall_connects == 1
