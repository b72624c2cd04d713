#! /usr/bin/env python
"""Enumerations and protocol constants shared by the validator"""

from .enumeration import Enumeration, EnumerationNoCase


#: namespace of the data services metadata elements (V1-V3)
NS_METADATA_V3 = \
    "http://schemas.microsoft.com/ado/2007/08/dataservices/metadata"
#: namespace of the data services elements (V1-V3)
NS_DATASERVICES_V3 = "http://schemas.microsoft.com/ado/2007/08/dataservices"
#: namespace of the OData 4 metadata elements
NS_METADATA_V4 = "http://docs.oasis-open.org/odata/ns/metadata"
#: namespace of the OData 4 data elements
NS_DATA_V4 = "http://docs.oasis-open.org/odata/ns/data"
#: namespace of the OData 4 EDMX wrapper
NS_EDMX_V4 = "http://docs.oasis-open.org/odata/ns/edmx"
#: namespace of the OData 4 CSDL elements
NS_EDM_V4 = "http://docs.oasis-open.org/odata/ns/edm"
#: namespace of the Atom syndication format
NS_ATOM = "http://www.w3.org/2005/Atom"
#: namespace of the Atom publishing protocol
NS_APP = "http://www.w3.org/2007/app"

METADATA_NAMESPACES = (NS_METADATA_V3, NS_METADATA_V4)

# header names
DATA_SERVICE_VERSION = "DataServiceVersion"
ODATA_VERSION = "OData-Version"
CONTENT_TYPE = "Content-Type"
CONTENT_LENGTH = "Content-Length"

# media types
CT_JSON = "application/json"
CT_ATOM = "application/atom+xml"
CT_XML = "application/xml"
CT_TEXT_XML = "text/xml"
CT_TEXT_PLAIN = "text/plain"

# JSON Light context annotations
V3_CONTEXT = "odata.metadata"
V4_CONTEXT = "@odata.context"
METADATA_SEGMENT = "$metadata"
METADATA_FRAGMENT = "$metadata#"
V3_ENTITY_MARKER = "@Element"
V4_ENTITY_MARKER = "$entity"
V3_DELTA_MARKER = "@delta"
V4_DELTA_MARKER = "$delta"
V4_COLLECTION_REF_MARKER = "$metadata#Collection($ref)"
V4_REF_MARKER = "$metadata#$ref"
V3_LINKS_SEGMENT = "$links"

# JSON error envelopes
V3_LIGHT_ERROR = "odata.error"
V4_LIGHT_ERROR = "error"
VERBOSE_ERROR = "error"
ERROR_MESSAGE = "message"
ERROR_CODE = "code"

# JSON verbose names
VERBOSE_ROOT = "d"
VERBOSE_RESULTS = "results"
VERBOSE_METADATA = "__metadata"
VERBOSE_URI = "uri"
VERBOSE_ENTITY_SETS = "EntitySets"
VERBOSE_CONTENT_TYPE = "content_type"
VERBOSE_TYPE = "type"

# JSON Light annotations and names
V3_TYPE = "odata.type"
V4_TYPE = "@odata.type"
V3_ID = "odata.id"
V4_ID = "@odata.id"
VALUE = "value"

QUERY_SELECT = "$select="


class PayloadFormat(Enumeration):

    """An enumeration of serialization families
    ::

        PayloadFormat.none
        PayloadFormat.JsonLight

    The value 'None' is used for empty payloads and is available as the
    attribute *none*."""

    decode = {
        "None": 0,
        "Atom": 1,
        "Xml": 2,
        "Json": 3,
        "JsonLight": 4,
        "Image": 5,
        "Other": 6,
        }

    aliases = {
        "none": "None",
        }


class PayloadType(Enumeration):

    """An enumeration of semantic payload types
    ::

        PayloadType.Feed
        PayloadType.none"""

    decode = {
        "None": 0,
        "ServiceDoc": 1,
        "Metadata": 2,
        "Feed": 3,
        "Entry": 4,
        "Property": 5,
        "IndividualProperty": 6,
        "Link": 7,
        "EntityRef": 8,
        "Delta": 9,
        "Error": 10,
        "RawValue": 11,
        "Other": 12,
        }

    aliases = {
        "none": "None",
        }


class ODataVersion(Enumeration):

    """An enumeration of protocol versions

    V1_V2, V3_V4, V1_V2_V3 and V_All are range sentinels used only in
    rule declarations and by request header overrides, they are never
    the result of reading a response header (except V1_V2 and V_All
    which have their own header syntax)."""

    decode = {
        "UNKNOWN": 0,
        "V1": 1,
        "V2": 2,
        "V3": 3,
        "V4": 4,
        "V1_V2": 5,
        "V3_V4": 6,
        "V1_V2_V3": 7,
        "V_All": 8,
        }

    aliases = {
        None: "UNKNOWN",
        }


#: static range membership table, each range maps to the set of
#: versions it contains
VERSION_RANGES = {
    ODataVersion.V1_V2: frozenset((ODataVersion.V1, ODataVersion.V2,
                                   ODataVersion.V1_V2)),
    ODataVersion.V3_V4: frozenset((ODataVersion.V3, ODataVersion.V4,
                                   ODataVersion.V3_V4)),
    ODataVersion.V1_V2_V3: frozenset((ODataVersion.V1, ODataVersion.V2,
                                      ODataVersion.V3, ODataVersion.V1_V2,
                                      ODataVersion.V1_V2_V3)),
    ODataVersion.V_All: frozenset(ODataVersion.encode.keys()),
    }


class MetadataAmount(EnumerationNoCase):

    """An enumeration used to represent the odata.metadata control
    ::

            MetadataAmount.none
            MetadataAmount.DEFAULT == MetadataAmount.minimal"""

    decode = {
        "none": 0,
        "minimal": 1,
        "full": 2,
        }

    aliases = {
        None: "minimal",
        "nometadata": "none",
        "minimalmetadata": "minimal",
        "fullmetadata": "full",
        }


class RequirementLevel(EnumerationNoCase):

    """Normative strength of a rule"""

    decode = {
        "Must": 1,
        "Should": 2,
        "May": 3,
        "ShouldNot": 4,
        "MustNot": 5,
        "Recommended": 6,
        "Extended": 7,
        }


class Result(Enumeration):

    """The outcome of verifying a single rule

    Error is reserved for infrastructure failures (a rule that raised
    or timed out) and is never returned by a rule body."""

    decode = {
        "Pass": 1,
        "Fail": 2,
        "NotApplicable": 3,
        "Error": 4,
        }


class Classification(Enumeration):

    """Report classification of an outcome"""

    decode = {
        "success": 1,
        "error": 2,
        "warning": 3,
        "recommendation": 4,
        "notApplicable": 5,
        "aborted": 6,
        }
