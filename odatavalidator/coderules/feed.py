#! /usr/bin/env python
"""Rules for feeds"""

from .. import core
from ..core import ODataVersion, PayloadFormat, PayloadType, RequirementLevel
from ..rules import Rule
from . import is_annotation, json_payload


class FeedCore4013(Rule):

    """Entities in a feed only carry declared properties

    When the feed was requested through a $ref URL each member must
    instead carry an id annotation."""

    name = "Feed.Core.4013"
    description = (
        "A collection of entities MUST be represented as a JSON array. "
        "Each element MUST be a valid JSON representation of an entity or "
        "an entity reference.")
    spec_section = "12"
    version = ODataVersion.V4
    requirement_level = RequirementLevel.Must
    payload_type = PayloadType.Feed
    payload_format = PayloadFormat.JsonLight
    require_metadata = True

    def verify(self, context):
        obj = json_payload(context)
        md = context.metadata
        if obj is None or md is None:
            return self.not_applicable()
        entries = obj.get(core.VALUE)
        if not isinstance(entries, list):
            return self.failed(context, "value is not an array")
        declared = set()
        for name in md.entity_set_names():
            declared.update(md.get_normal_properties(name))
            declared.update(md.get_navigation_properties(name))
        refs = "$ref" in context.destination
        result = self.not_applicable()
        for entry in entries:
            if not isinstance(entry, dict):
                return self.failed(context, entry)
            if refs:
                if not any(is_annotation(n) and "id" in n for n in entry):
                    return self.failed(context, entry)
            else:
                for name in entry:
                    if not is_annotation(name) and name not in declared:
                        return self.failed(context, name)
            result = self.passed()
        return result


def register_rules(registry):
    registry.register(FeedCore4013)
