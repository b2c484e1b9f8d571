"""Exception hierarchy raised by the mapping layer."""

from __future__ import annotations


class MapperError(Exception):
    """Base error for every failure raised by the mapper."""


class MissingMetadataError(MapperError):
    """The class carries no ``@measurement`` declaration."""


class MissingRequiredAttributeError(MapperError):
    """A declaration lacks an attribute required by the requested operation."""


class UnsupportedTypeError(MapperError):
    """A column declares a type that cannot be written to the database."""


class FieldAccessError(MapperError):
    """Reading a column value from a model instance failed."""
