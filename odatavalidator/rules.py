#! /usr/bin/env python
"""Rule declarations and the rule registry

A rule is a class derived from :class:`Rule` that declares its
applicability constraints as class attributes and implements
:meth:`Rule.verify`.  Rules are collected in a :class:`RuleRegistry`,
usually with the :meth:`RuleRegistry.register` class decorator::

    registry = RuleRegistry()

    @registry.register
    class ErrorCore4001(Rule):
        name = "Error.Core.4001"
        requirement_level = RequirementLevel.Must
        payload_type = PayloadType.Error

        def verify(self, context):
            ...

A constraint left as None is a wildcard: the rule applies whatever the
value of that dimension."""

import importlib
import logging

from .core import RequirementLevel, Result
from .errors import RuleRegistrationError


class ViolationInfo(object):

    """Details of a rule violation

    message
        A description of the problem

    destination
        The URI of the resource that was validated

    details
        Optional extra information, for example the offending part of
        the payload

    line
        Optional line number within the payload"""

    def __init__(self, message, destination=None, details=None, line=None):
        self.message = message
        self.destination = destination
        self.details = details
        self.line = line

    def __str__(self):
        if self.line is not None:
            return "%s (line %i)" % (self.message, self.line)
        return self.message

    def __repr__(self):
        return "ViolationInfo(%s)" % repr(self.message)


class RuleDescriptor(object):

    """The declared properties of a rule

    Instances are created from the class attributes of a :class:`Rule`
    by :meth:`Rule.descriptor` but may also be constructed directly.
    The constraint attributes are:

    payload_type, payload_format, version
        Enumeration values or None

    require_metadata
        True if the rule needs a metadata document, False or None
        impose no constraint

    offline, projection, media_link_entry
        True, False or None

    metadata_type
        A :class:`MetadataAmount` value or None

    require_service_document
        True if the rule needs a service document"""

    fields = (
        'name', 'category', 'description', 'spec_section', 'help_link',
        'error_message', 'requirement_level', 'payload_type',
        'payload_format', 'version', 'require_metadata', 'offline',
        'projection', 'media_link_entry', 'metadata_type',
        'require_service_document')

    def __init__(self, name, category="core", description=None,
                 spec_section=None, help_link=None, error_message=None,
                 requirement_level=RequirementLevel.Must, payload_type=None,
                 payload_format=None, version=None, require_metadata=None,
                 offline=None, projection=None, media_link_entry=None,
                 metadata_type=None, require_service_document=None):
        if not name:
            raise RuleRegistrationError("A rule must have a name")
        self.name = name
        self.category = category
        self.description = description
        self.spec_section = spec_section
        self.help_link = help_link
        self.error_message = error_message or description
        self.requirement_level = requirement_level
        self.payload_type = payload_type
        self.payload_format = payload_format
        self.version = version
        self.require_metadata = require_metadata
        self.offline = offline
        self.projection = projection
        self.media_link_entry = media_link_entry
        self.metadata_type = metadata_type
        self.require_service_document = require_service_document

    def __repr__(self):
        return "RuleDescriptor(%s)" % repr(self.name)


class Rule(object):

    """Abstract class for rules

    Derived classes override the class attributes below and implement
    :meth:`verify`.  Rules must not keep state between calls to
    verify, a single instance may be used by several threads."""

    name = None
    category = "core"
    description = None
    spec_section = None
    help_link = None
    error_message = None
    requirement_level = RequirementLevel.Must
    payload_type = None
    payload_format = None
    version = None
    require_metadata = None
    offline = None
    projection = None
    media_link_entry = None
    metadata_type = None
    require_service_document = None

    def __init__(self):
        self._descriptor = None

    def descriptor(self):
        """Returns the :class:`RuleDescriptor` of this rule"""
        if self._descriptor is None:
            self._descriptor = RuleDescriptor(
                **dict((f, getattr(self, f)) for f in RuleDescriptor.fields))
        return self._descriptor

    def verify(self, context):
        """Verifies the rule against a :class:`ServiceContext`

        Returns a tuple of (:class:`Result`, :class:`ViolationInfo`).
        The result is Pass, Fail or NotApplicable, the last being used
        when the rule discovers that it does not apply to the context
        after all.  The violation info is None unless the result is
        Fail."""
        raise NotImplementedError

    def passed(self):
        return Result.Pass, None

    def failed(self, context, details=None, message=None, line=None):
        """Returns a Fail result with a :class:`ViolationInfo`"""
        return Result.Fail, ViolationInfo(
            message or self.error_message or self.description,
            context.destination, details, line)

    def not_applicable(self):
        return Result.NotApplicable, None

    def __repr__(self):
        return "<%s %s>" % (self.__class__.__name__, self.name)


class RuleRegistry(object):

    """An explicit collection of rules

    Rules are kept in registration order, which is the order in which
    the dispatcher reports them."""

    def __init__(self, rules=()):
        self._rules = []
        self._names = {}
        for rule in rules:
            self.add(rule)

    def add(self, rule):
        """Adds a :class:`Rule` instance

        Raises :class:`RuleRegistrationError` if the rule has no name
        or a rule with the same name has already been added."""
        if not isinstance(rule, Rule):
            raise RuleRegistrationError("Not a rule: %s" % repr(rule))
        name = rule.name
        if not name:
            raise RuleRegistrationError(
                "%s has no name" % rule.__class__.__name__)
        if name in self._names:
            raise RuleRegistrationError("Duplicate rule name: %s" % name)
        self._names[name] = rule
        self._rules.append(rule)
        logging.debug("Registered rule %s", name)
        return rule

    def register(self, rule_class):
        """Class decorator that adds an instance of rule_class"""
        self.add(rule_class())
        return rule_class

    def load_modules(self, module_names):
        """Imports modules so that their rules are registered

        module_names
            An iterable of fully qualified module names.  Each module
            is expected to register its rules with this registry, either
            with :meth:`register` or by defining a function called
            register_rules that takes the registry as its only
            argument."""
        for module_name in module_names:
            module = importlib.import_module(module_name)
            register = getattr(module, 'register_rules', None)
            if register is not None:
                register(self)
            logging.info("Loaded rules from %s", module_name)

    def get(self, name):
        return self._names.get(name)

    def __contains__(self, name):
        return name in self._names

    def __iter__(self):
        return iter(list(self._rules))

    def __len__(self):
        return len(self._rules)

    def categories(self):
        """Returns the set of rule categories"""
        return set(r.category for r in self._rules)
