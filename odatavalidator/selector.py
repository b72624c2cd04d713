#! /usr/bin/env python
"""Decides which rules apply to a context

Applicability is decided from the rule's declared constraints alone,
the rule itself is never invoked.  Every constraint that is not None
must match the context."""

from .core import VERSION_RANGES


def version_matches(declared, actual):
    """True if the *actual* version satisfies the *declared* one

    declared
        A single version or one of the range sentinels (V1_V2, V3_V4,
        V1_V2_V3 or V_All), None matches everything

    actual
        The version of the context"""
    if declared is None:
        return True
    allowed = VERSION_RANGES.get(declared)
    if allowed is not None:
        return actual in allowed
    return declared == actual


def is_applicable(descriptor, context):
    """True if a rule applies to a context

    descriptor
        A :class:`RuleDescriptor` or any object with the same
        attributes, such as a :class:`Rule`

    context
        A :class:`ServiceContext`

    This function has no side effects."""
    if descriptor is None or context is None:
        raise TypeError("is_applicable requires a descriptor and context")
    if descriptor.payload_type is not None and \
            descriptor.payload_type != context.payload_type:
        return False
    if descriptor.payload_format is not None and \
            descriptor.payload_format != context.payload_format:
        return False
    if not version_matches(descriptor.version, context.version):
        return False
    if descriptor.require_metadata and not context.metadata_document:
        return False
    if descriptor.offline is not None and \
            bool(descriptor.offline) != context.offline:
        return False
    if descriptor.projection is not None and \
            bool(descriptor.projection) != context.projection:
        return False
    if descriptor.media_link_entry is not None and \
            bool(descriptor.media_link_entry) != context.is_media_link_entry:
        return False
    if descriptor.metadata_type is not None and \
            descriptor.metadata_type != context.metadata_type:
        return False
    if descriptor.require_service_document and \
            not context.has_service_document:
        return False
    return True


def select_rules(rules, context, categories=None):
    """Returns the list of rules that apply to a context

    rules
        An iterable of :class:`Rule` instances

    categories
        An optional collection of category names, rules in other
        categories are excluded"""
    return [r for r in rules
            if (categories is None or r.category in categories) and
            is_applicable(r, context)]
