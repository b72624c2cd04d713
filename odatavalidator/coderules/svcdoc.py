#! /usr/bin/env python
"""Rules for service documents"""

from .. import core
from ..core import (
    MetadataAmount,
    ODataVersion,
    PayloadFormat,
    PayloadType,
    RequirementLevel)
from ..rules import Rule
from ..sniffer import first_property, local_name, parse_xml
from . import is_well_formed_uri, json_payload


class SvcDocCore4003(Rule):

    name = "SvcDoc.Core.4003"
    description = (
        "The value of the odata.context property MUST NOT contain any "
        "fragment part in V4.")
    spec_section = "5"
    version = ODataVersion.V4
    requirement_level = RequirementLevel.Must
    payload_type = PayloadType.ServiceDoc
    payload_format = PayloadFormat.JsonLight

    def verify(self, context):
        if context.metadata_type == MetadataAmount.none:
            return self.not_applicable()
        obj = json_payload(context)
        if obj is None:
            return self.not_applicable()
        first = first_property(obj)
        if first is None or first[0] != core.V4_CONTEXT:
            return self.failed(context, "missing %s" % core.V4_CONTEXT)
        value = first[1]
        if isinstance(value, str) and is_well_formed_uri(value) and \
                "#" not in value:
            return self.passed()
        return self.failed(context, value)


class SvcDocCore4011(Rule):

    """Service document members of kind Singleton name singletons
    declared in the metadata document"""

    name = "SvcDoc.Core.4011"
    description = (
        "JSON objects representing a singleton MUST contain the kind "
        "name/value pair with a value of Singleton.")
    spec_section = "5"
    version = ODataVersion.V4
    requirement_level = RequirementLevel.Must
    payload_type = PayloadType.ServiceDoc
    payload_format = PayloadFormat.JsonLight
    require_metadata = True

    def verify(self, context):
        obj = json_payload(context)
        md = context.metadata
        if obj is None or md is None:
            return self.not_applicable()
        singletons = md.singleton_names()
        members = obj.get(core.VALUE)
        if not singletons or not isinstance(members, list):
            return self.not_applicable()
        result = self.not_applicable()
        for member in members:
            if not isinstance(member, dict) or \
                    member.get("kind") != "Singleton":
                continue
            if member.get("name") in singletons:
                result = self.passed()
            else:
                return self.failed(context, member.get("name"))
        return result


class SvcDocCore4612(Rule):

    name = "SvcDoc.Core.4612"
    description = (
        "The metadata:name attribute in app:collection element MUST "
        "contain the name of the entity set.")
    spec_section = "8.2.2"
    version = ODataVersion.V3_V4
    requirement_level = RequirementLevel.Must
    payload_type = PayloadType.ServiceDoc
    payload_format = PayloadFormat.Xml
    require_metadata = True

    def verify(self, context):
        root = parse_xml(context.response_payload)
        md = context.metadata
        if root is None or md is None:
            return self.not_applicable()
        attr = "{%s}name" % core.NS_METADATA_V4
        names = [e.get(attr) for e in root.iter()
                 if local_name(e.tag) == "collection" and
                 e.get(attr) is not None]
        if not names:
            return self.not_applicable()
        entity_sets = md.entity_set_names()
        for name in names:
            if name not in entity_sets:
                return self.failed(context, name)
        return self.passed()


def register_rules(registry):
    registry.register(SvcDocCore4003)
    registry.register(SvcDocCore4011)
    registry.register(SvcDocCore4612)
