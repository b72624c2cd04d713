#! /usr/bin/env python
"""Rules for delta responses"""

from .. import core
from ..classifier import get_context_fragment
from ..core import ODataVersion, PayloadFormat, PayloadType, RequirementLevel
from ..rules import Rule
from . import json_payload


class DeltaCore4013(Rule):

    """Entities from other entity sets carry a context annotation

    An entity in a delta response belongs to the entity set in the
    context URL if the last segment of its id is the entity set name
    followed by a key predicate."""

    name = "Delta.Core.4013"
    description = (
        "Entities that are not part of the entity set specified by the "
        "context URL MUST include the odata.context annotation to specify "
        "the entity set of the entity.")
    spec_section = "14.1"
    version = ODataVersion.V4
    requirement_level = RequirementLevel.Must
    payload_type = PayloadType.Delta
    payload_format = PayloadFormat.JsonLight

    def verify(self, context):
        obj = json_payload(context)
        if obj is None or not isinstance(obj.get(core.VALUE), list):
            return self.not_applicable()
        fragment = get_context_fragment(context.response_payload) or ""
        entity_set = fragment.split("/")[0].split("(")[0]
        result = self.not_applicable()
        for entity in obj[core.VALUE]:
            if not isinstance(entity, dict):
                continue
            eid = entity.get(core.V4_ID)
            segment = eid.rstrip("/").split("/")[-1] \
                if isinstance(eid, str) else ""
            if segment.startswith(entity_set + "("):
                result = self.passed()
            elif core.V4_CONTEXT in entity:
                result = self.passed()
            else:
                return self.failed(context, eid)
        return result


def register_rules(registry):
    registry.register(DeltaCore4013)
