#! /usr/bin/env python
"""Engine settings

Settings are established once, before a validation run starts, and
are read-only thereafter.  They are passed explicitly to the objects
that need them, there is no module level configuration."""

import json
import logging

from .core import ODataVersion
from .errors import SettingsError


class EngineSettings(object):

    """Read-only settings for a validation run

    Settings are given as keyword arguments, unknown names raise
    :class:`SettingsError`.  The defined settings are:

    max_payload_size (1048576)
        The maximum size, in bytes, of any payload retrieved from a
        service.

    rule_timeout (30)
        The maximum time, in seconds, a single rule may run for.  None
        disables the limit.

    workers (4)
        The number of threads used to run rules.

    category ("core")
        The category of a newly built context.

    categories (None)
        A list of rule categories to run, None runs all categories.

    default_version ("V4")
        The version assumed for live services whose responses carry no
        version header, the name of an :class:`ODataVersion` value.

    request_timeout (60)
        The socket timeout, in seconds, used when fetching resources.

    Any attempt to set an attribute after construction raises
    AttributeError."""

    defaults = {
        'max_payload_size': 0x100000,
        'rule_timeout': 30,
        'workers': 4,
        'category': "core",
        'categories': None,
        'default_version': "V4",
        'request_timeout': 60,
        }

    def __init__(self, **kwargs):
        values = dict(self.defaults)
        for name, value in kwargs.items():
            if name not in self.defaults:
                raise SettingsError("Unknown setting: %s" % name)
            values[name] = value
        self._check(values)
        for name, value in values.items():
            object.__setattr__(self, name, value)
        object.__setattr__(self, '_frozen', True)

    @staticmethod
    def _check(values):
        try:
            values['max_payload_size'] = int(values['max_payload_size'])
            values['workers'] = int(values['workers'])
            if values['rule_timeout'] is not None:
                values['rule_timeout'] = float(values['rule_timeout'])
            if values['request_timeout'] is not None:
                values['request_timeout'] = float(values['request_timeout'])
        except (TypeError, ValueError) as err:
            raise SettingsError(str(err))
        if values['max_payload_size'] <= 0:
            raise SettingsError("max_payload_size must be positive")
        if values['workers'] < 1:
            raise SettingsError("workers must be at least 1")
        if values['rule_timeout'] is not None and values['rule_timeout'] <= 0:
            raise SettingsError("rule_timeout must be positive")
        try:
            ODataVersion.from_str(values['default_version'])
        except ValueError:
            raise SettingsError("Unknown version: %s" %
                                repr(values['default_version']))
        if values['categories'] is not None:
            values['categories'] = tuple(values['categories'])

    def __setattr__(self, name, value):
        raise AttributeError("EngineSettings are read-only")

    def __delattr__(self, name):
        raise AttributeError("EngineSettings are read-only")

    @property
    def version(self):
        """The default version as an :class:`ODataVersion` value"""
        return ODataVersion.from_str(self.default_version)

    def replace(self, **kwargs):
        """Returns a new instance with some settings changed"""
        values = dict((k, getattr(self, k)) for k in self.defaults)
        values.update(kwargs)
        return self.__class__(**values)

    @classmethod
    def from_dict(cls, settings):
        """Creates an instance from a settings dictionary

        The dictionary's keys are class names, settings for this class
        are taken from the 'EngineSettings' key.  Other keys are
        ignored."""
        if not isinstance(settings, dict):
            raise SettingsError("Settings must be a JSON object")
        class_settings = settings.setdefault('EngineSettings', {})
        if not isinstance(class_settings, dict):
            raise SettingsError("EngineSettings must be a JSON object")
        return cls(**class_settings)

    @classmethod
    def load(cls, path):
        """Loads settings from the JSON file at *path*"""
        logging.info("Loading settings from %s", path)
        try:
            with open(path, 'rb') as f:
                settings = json.loads(f.read().decode('utf-8'))
        except (IOError, ValueError) as err:
            raise SettingsError("Can't load settings from %s: %s" %
                                (path, str(err)))
        return cls.from_dict(settings)
