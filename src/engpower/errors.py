class EngpowerError(Exception):
    """Base class for engine errors."""


class BankError(EngpowerError):
    """The item bank cannot produce valid questions."""


class InvalidUsername(EngpowerError):
    pass


class SessionNotFound(EngpowerError):
    pass


class NoActiveQuestion(EngpowerError):
    """An answer arrived while no question was waiting for one."""
