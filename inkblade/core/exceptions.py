"""Error taxonomy for the combat core.

Invalid-state errors are programming errors and always reach the caller.
Subscriber failures and malformed keystroke timing are absorbed where they
happen and never show up here.
"""


class InkbladeError(Exception):
    """Base class for all errors raised by the combat core."""


class InvalidStateError(InkbladeError):
    """An operation was attempted in a state that does not allow it.

    Raised for combat calls against a missing or terminal encounter, for
    resolving an attempt that is not complete, and for targeting an enemy
    that has already been defeated.
    """


class UnknownEventError(InkbladeError, TypeError):
    """Something that is not a catalog event was published or subscribed to."""


class BusShutdownError(InkbladeError):
    """The event bus has been torn down."""


class TuningError(InkbladeError, ValueError):
    """Tuning configuration is malformed or violates an ordering rule."""


class TemplateError(InkbladeError, ValueError):
    """Enemy template data is malformed."""
