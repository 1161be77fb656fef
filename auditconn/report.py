from .models import NetworkFact


def format_time(timestamp, time_format=None) -> str:
    """
    Время события в UTC. По умолчанию: "Sun 10 Nov 2024 14:16:50"
    (день месяца без ведущего нуля). time_format: свой шаблон strftime.
    """
    dt = timestamp.to_datetime()
    if time_format:
        return dt.strftime(time_format)
    return f"{dt:%a} {dt.day} {dt:%b %Y %H:%M:%S}"


def render_fact(fact, time_format=None) -> str:
    when = format_time(fact.timestamp, time_format)
    if isinstance(fact, NetworkFact):
        return f"{when} {fact.uid} {fact.exe} {fact.peer} port {fact.port}"
    return f"{when} {fact.uid} {fact.exe} {fact.path}"


def render_summary(correlator) -> str:
    return f"Total syscall connect {correlator.syscall_connects} / parsed {correlator.facts_emitted}"
