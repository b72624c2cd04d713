#! /usr/bin/env python
"""Rules for entity reference payloads"""

from ..core import ODataVersion, PayloadFormat, PayloadType, RequirementLevel
from ..rules import Rule
from ..sniffer import local_name, parse_xml
from . import is_well_formed_uri


class EntityReferenceCore4601(Rule):

    name = "EntityReference.Core.4601"
    description = "The id of entity reference may be absolute or relative."
    spec_section = "13"
    version = ODataVersion.V4
    requirement_level = RequirementLevel.May
    payload_type = PayloadType.EntityRef
    payload_format = PayloadFormat.Xml
    require_metadata = False
    offline = True

    def verify(self, context):
        root = parse_xml(context.response_payload)
        if root is None:
            return self.not_applicable()
        refs = [e for e in root.iter() if local_name(e.tag) == "ref"]
        if not refs:
            return self.not_applicable()
        for e in refs:
            if not is_well_formed_uri(e.get("id")):
                return self.failed(context, e.get("id"))
        return self.passed()


def register_rules(registry):
    registry.register(EntityReferenceCore4601)
