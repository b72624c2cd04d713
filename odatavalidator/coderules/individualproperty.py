#! /usr/bin/env python
"""Rules for individual property payloads"""

from .. import core
from ..classifier import get_context_fragment
from ..core import ODataVersion, PayloadFormat, PayloadType, RequirementLevel
from ..rules import Rule
from . import json_payload


class IndividualPropertyCore4201(Rule):

    """A primitive individual property is an object with a single
    name/value pair called 'value'

    Properties of complex or collection type are not covered, for
    these the rule is not applicable."""

    name = "IndividualProperty.Core.4201"
    description = (
        "In individual property, a property that is of a primitive type "
        "is represented as an object with a single name/value pair whose "
        "name is value and whose value is a primitive value.")
    spec_section = "11"
    version = ODataVersion.V4
    requirement_level = RequirementLevel.Must
    payload_type = PayloadType.IndividualProperty
    payload_format = PayloadFormat.JsonLight
    require_metadata = True

    def verify(self, context):
        obj = json_payload(context)
        if obj is None or core.V4_CONTEXT not in obj:
            return self.failed(context, context.response_payload)
        fragment = get_context_fragment(context.response_payload) or ""
        segments = fragment.split("/")
        if len(segments) < 2:
            return self.not_applicable()
        entity_set = segments[0].split("(")[0]
        md = context.metadata
        if md is None:
            return self.not_applicable()
        type_name = md.get_entity_type_short_name(entity_set)
        primitives = [p.name for p in md.get_properties(type_name)
                      if (p.type or "").startswith("Edm.")]
        if segments[1] not in primitives:
            return self.not_applicable()
        if core.VALUE in obj:
            return self.passed()
        return self.failed(context, context.response_payload)


def register_rules(registry):
    registry.register(IndividualPropertyCore4201)
