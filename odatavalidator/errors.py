#! /usr/bin/env python


class ValidatorError(Exception):

    """Base error for validator exceptions"""
    pass


class FetchError(ValidatorError):

    """Raised when a resource cannot be retrieved from a service

    The underlying transport error, if any, is available as the
    *cause* attribute."""

    def __init__(self, message, cause=None):
        super(FetchError, self).__init__(message)
        self.cause = cause


class OversizedPayload(ValidatorError):

    """Raised when a response body exceeds the payload size ceiling

    OversizedPayload defines two additional fields, the configured
    limit and the size that was declared or read when the limit was
    crossed (both in bytes).  The body is never truncated to fit."""

    def __init__(self, message, limit, size):
        super(OversizedPayload, self).__init__(message)
        self.limit = limit
        self.size = size


class RuleInvocationFault(ValidatorError):

    """Describes an exception raised from within a rule body

    These are recorded by the dispatcher, they are never raised out of
    a dispatch run.  The original exception is available as *cause*."""

    def __init__(self, message, rule_name, cause=None):
        super(RuleInvocationFault, self).__init__(message)
        self.rule_name = rule_name
        self.cause = cause


class RuleTimeout(RuleInvocationFault):

    """Raised when a rule exceeds its time budget"""
    pass


class RuleRegistrationError(ValidatorError):

    """Raised when a rule cannot be added to a registry"""
    pass


class ContextError(ValidatorError):

    """Raised when a service context cannot be built"""
    pass


class SettingsError(ValidatorError):

    """Raised when engine settings are invalid"""
    pass
