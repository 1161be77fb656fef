class ParseError(Exception):
    """
    Строку audit.log не удалось разобрать.

    line  : исходная строка (для диагностики),
    reason: короткое описание причины.
    """

    def __init__(self, reason: str, line: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.line = line

    def __str__(self):
        return self.reason


class UnknownEventKind(ParseError):
    def __init__(self, token: str, line: str = ""):
        super().__init__(f"unknown event type {token!r}", line)
        self.token = token


class MalformedHeader(ParseError):
    pass


class MalformedTimestamp(ParseError):
    pass


class UnterminatedQuote(ParseError):
    pass
