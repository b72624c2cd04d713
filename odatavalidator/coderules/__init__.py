#! /usr/bin/env python
"""Built-in rules

Each module in this package defines rule classes and a function
register_rules(registry) that adds them to a :class:`RuleRegistry`.
Use :func:`default_registry` to obtain a registry loaded with all the
built-in rules."""

import urllib.parse

from ..rules import RuleRegistry
from ..sniffer import parse_json_object


#: the modules that make up the built-in rule set, in load order
MODULES = (
    'odatavalidator.coderules.svcdoc',
    'odatavalidator.coderules.error',
    'odatavalidator.coderules.feed',
    'odatavalidator.coderules.entry',
    'odatavalidator.coderules.individualproperty',
    'odatavalidator.coderules.delta',
    'odatavalidator.coderules.entityref',
    )


def default_registry():
    """Returns a new registry containing all the built-in rules"""
    registry = RuleRegistry()
    registry.load_modules(MODULES)
    return registry


def json_payload(context):
    """Returns the context's payload as a dictionary or None"""
    return parse_json_object(context.response_payload)


def is_annotation(name):
    """True if a JSON property name is an instance annotation"""
    return name.startswith("@") or name.startswith("odata.") or \
        "@" in name


def is_well_formed_uri(value):
    """True if value is a well formed absolute or relative URI"""
    if not value or not isinstance(value, str):
        return False
    if any(c.isspace() for c in value) or '\\' in value:
        return False
    try:
        parts = urllib.parse.urlsplit(value)
        parts.port
    except ValueError:
        return False
    if parts.scheme and not (parts.netloc or parts.path):
        return False
    return True
