#! /usr/bin/env python
"""Named integer constants used throughout the validator"""

import logging
import types


class EnumMetaClass(type):

    """Metaclass for :class:`Enumeration`

    Initialises the Enumeration immediately after the class is
    defined."""

    def __init__(self, name, bases, dct):
        super(EnumMetaClass, self).__init__(name, bases, dct)
        if hasattr(self, '_init_enum'):
            self._init_enum()


EnumBase = types.new_class("EnumBase", (object, ),
                           {'metaclass': EnumMetaClass})


class Enumeration(EnumBase):

    """Abstract class for defining enumerations

    Not designed to be instantiated, derived classes define a class
    member called 'decode' which maps canonical strings to simple
    integers::

        class Outcome(Enumeration):
            decode = {
                'Pass': 1,
                'Fail': 2}

        Outcome.Pass == 1    # True thanks to metaclass

    A second dictionary called aliases maps additional names onto
    canonical strings.  The special key None in aliases defines the
    DEFAULT value of the enumeration.  Canonical names that are not
    legal Python identifiers (such as 'None') should be given an alias
    so that they can be referred to as class attributes."""

    @classmethod
    def _init_enum(cls):
        if not hasattr(cls, 'decode'):
            # Skip initialisation for Enumeration itself
            return
        cls.encode = dict((v, k) for k, v in cls.decode.items())
        if hasattr(cls, 'aliases'):
            for k, v in cls.aliases.items():
                if k is None:
                    cls.DEFAULT = cls.decode[v]
                else:
                    cls.decode[k] = cls.decode[v]
        for k, v in cls.decode.items():
            if hasattr(cls, k):
                logging.error("Illegal name for Enumeration: %s", repr(k))
            else:
                setattr(cls, k, v)

    DEFAULT = None
    """The DEFAULT value of the enumeration defaults to None"""

    @classmethod
    def from_str(cls, src):
        """Decodes a string returning a value in this enumeration.

        If no legal value can be decoded then ValueError is raised."""
        try:
            src = src.strip()
            return cls.decode[src]
        except (KeyError, AttributeError):
            raise ValueError("Can't decode %s from %s" %
                             (cls.__name__, repr(src)))

    @classmethod
    def from_str_lower(cls, src):
        """Decodes a string, converting it to lower case first.

        Returns a value in this enumeration.  If no legal value can be
        decoded then ValueError is raised."""
        try:
            src = src.strip().lower()
            return cls.decode[src]
        except (KeyError, AttributeError):
            raise ValueError("Can't decode %s from %s" %
                             (cls.__name__, repr(src)))

    @classmethod
    def to_str(cls, value):
        """Encodes one of the enumeration constants returning a string.

        If value is None then the encoded default value is returned (if
        defined) or None."""
        return cls.encode.get(value, cls.encode.get(cls.DEFAULT, None))

    @classmethod
    def values(cls):
        """Returns a sorted list of the canonical values"""
        return sorted(cls.encode.keys())


class EnumerationNoCase(Enumeration):

    """Enumeration that automatically adds lower-case aliases

    Designed to be used in conjunction with :meth:`from_str_lower` for
    case insensitive matching of names read from settings files and
    command line options."""

    @classmethod
    def _init_enum(cls):
        if not hasattr(cls, 'decode'):
            # Skip initialisation for EnumerationNoCase itself
            return
        if 'aliases' not in cls.__dict__:
            cls.aliases = {}
        for k in list(cls.decode.keys()):
            a = k.lower()
            if a != k and a not in cls.aliases and a not in cls.decode:
                cls.aliases[a] = k
        super(EnumerationNoCase, cls)._init_enum()
