"""Exceptions raised by the block tree store for caller errors.

Structural operations on unknown ids do not raise; they return a
``MutationResult``.  These exceptions cover arguments that can never be
valid, such as creating a block in a document that does not exist.
"""


class InvalidReferenceError(ValueError):
    """An argument references a document or block that cannot be used."""
