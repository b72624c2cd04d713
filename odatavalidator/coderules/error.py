#! /usr/bin/env python
"""Rules for error responses"""

from .. import core
from ..core import ODataVersion, PayloadFormat, PayloadType, RequirementLevel
from ..rules import Rule
from ..sniffer import local_name, namespace, parse_xml
from . import json_payload


class ErrorCore4010(Rule):

    """Each member of the details array has a code and a message"""

    name = "Error.Core.4010"
    description = (
        "The value for the details name/value pair MUST be an array of "
        "JSON objects that MUST contain name/value pairs for code and "
        "message.")
    spec_section = "19"
    version = ODataVersion.V3_V4
    requirement_level = RequirementLevel.Must
    payload_type = PayloadType.Error
    payload_format = PayloadFormat.JsonLight

    def verify(self, context):
        obj = json_payload(context)
        if context.version == ODataVersion.V4:
            body_name = core.V4_LIGHT_ERROR
        else:
            body_name = core.V3_LIGHT_ERROR
        body = obj.get(body_name) if obj is not None else None
        if not isinstance(body, dict) or \
                not isinstance(body.get("details"), list):
            return self.not_applicable()
        result = self.not_applicable()
        for detail in body["details"]:
            if not isinstance(detail, dict):
                continue
            if core.ERROR_CODE in detail and core.ERROR_MESSAGE in detail:
                result = self.passed()
            else:
                return self.failed(context, detail)
        return result


class ErrorCore4605(Rule):

    """XML errors have code and message children"""

    name = "Error.Core.4605"
    description = (
        "The error element MUST contain a code element and a message "
        "element in the metadata namespace.")
    spec_section = "4.6"
    requirement_level = RequirementLevel.Must
    payload_type = PayloadType.Error
    payload_format = PayloadFormat.Xml

    def verify(self, context):
        root = parse_xml(context.response_payload)
        if root is None:
            return self.not_applicable()
        if context.version == ODataVersion.V4:
            ns = core.NS_METADATA_V4
        else:
            ns = core.NS_METADATA_V3
        names = set(local_name(e.tag) for e in root
                    if namespace(e.tag) == ns)
        if core.ERROR_CODE in names and core.ERROR_MESSAGE in names:
            return self.passed()
        return self.failed(context, sorted(names))


def register_rules(registry):
    registry.register(ErrorCore4010)
    registry.register(ErrorCore4605)
