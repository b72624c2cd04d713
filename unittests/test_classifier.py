#! /usr/bin/env python

import json
import os.path
import unittest

import odatavalidator.classifier as classifier

from odatavalidator.core import ODataVersion, PayloadFormat, PayloadType
from odatavalidator.metadata import MetadataDocument


TEST_DATA_DIR = os.path.join(
    os.path.split(os.path.abspath(__file__))[0], 'data_odatavalidator')


def load_data(name):
    with open(os.path.join(TEST_DATA_DIR, name), 'rb') as f:
        return f.read().decode('utf-8')


def suite():
    loader = unittest.TestLoader()
    return unittest.TestSuite((
        loader.loadTestsFromTestCase(XMLTests),
        loader.loadTestsFromTestCase(VerboseTests),
        loader.loadTestsFromTestCase(LightTests),
        loader.loadTestsFromTestCase(ClassifyPayloadTests),
        loader.loadTestsFromTestCase(InspectionTests),
    ))


def light(context, **kwargs):
    obj = {"@odata.context": context}
    obj.update(kwargs)
    return json.dumps(obj)


SVC_DOC = '{"@odata.context":"http://svc/$metadata",' \
    '"value":[{"name":"Products","url":"Products"}]}'

DELTA = '{"@odata.context":"http://svc/$metadata#Products/$delta",' \
    '"value":[{"@odata.id":"Products(1)","Name":"Widget"}]}'

COLLECTION_REF = '{"@odata.context":"http://svc/$metadata#Collection($ref)",' \
    '"value":[{"@odata.id":"Products(0)"}]}'

ENTITY_REF = '{"@odata.context":"http://svc/$metadata#$ref",' \
    '"@odata.id":"Products(0)"}'

PRIMITIVE = '{"@odata.context":"http://svc/$metadata#Edm.String",' \
    '"value":"Widget"}'

COMPLEX_COLLECTION = \
    '{"@odata.context":"http://svc/$metadata#Collection(ODataDemo.Address)",' \
    '"value":[{"Street":"1 High St","City":"Town"}]}'

FEED = '{"@odata.context":"http://svc/$metadata#Products",' \
    '"value":[{"ID":1,"Name":"Widget"}]}'

ENTRY = '{"@odata.context":"http://svc/$metadata#Products",' \
    '"ID":1,"Name":"Widget"}'

ENTITY = '{"@odata.context":"http://svc/$metadata#Products/$entity",' \
    '"ID":1,"Name":"Widget"}'

SINGLETON = '{"@odata.context":"http://svc/$metadata#Featured",' \
    '"ID":1,"Name":"Widget","Rank":1}'

INDIVIDUAL = '{"@odata.context":"http://svc/$metadata#Products(1)/Name",' \
    '"value":"Widget"}'

NAVIGATION = \
    '{"@odata.context":"http://svc/$metadata#Products(1)/Categories",' \
    '"value":[{"ID":1,"Name":"Tools"}]}'

V4_ERROR = '{"error":{"code":"501","message":"Unsupported"}}'

V3_ERROR = '{"odata.error":{"code":"",' \
    '"message":{"lang":"en-US","value":"Resource not found"}}}'

V3_ENTRY = '{"odata.metadata":"http://svc/$metadata#Products/@Element",' \
    '"ID":1}'

V3_FEED = '{"odata.metadata":"http://svc/$metadata#Products",' \
    '"value":[{"ID":1}]}'

V3_LINKS = \
    '{"odata.metadata":"http://svc/$metadata#Products/$links/Category",' \
    '"url":"http://svc/Categories(1)"}'

V3_DELTA = '{"odata.metadata":"http://svc/$metadata#Products/@delta",' \
    '"value":[]}'

UNNAMED_TYPE = """<edmx:Edmx Version="4.0"
    xmlns:edmx="http://docs.oasis-open.org/odata/ns/edmx">
    <edmx:DataServices>
        <Schema Namespace="NS"
            xmlns="http://docs.oasis-open.org/odata/ns/edm">
            <EntityType>
                <Property Name="ID" Type="Edm.Int32"/>
            </EntityType>
            <EntityType Name="Product">
                <Property Name="ID" Type="Edm.Int32"/>
            </EntityType>
            <EntityContainer Name="Container">
                <EntitySet Name="Products" EntityType="NS.Product"/>
                <EntitySet EntityType="NS.Product"/>
            </EntityContainer>
        </Schema>
    </edmx:DataServices>
</edmx:Edmx>"""


class XMLTests(unittest.TestCase):

    def classify(self, payload):
        return classifier.classify_type(payload, PayloadFormat.Xml)

    def test_ladder(self):
        self.assertTrue(self.classify(load_data('svcdoc_v4.xml')) ==
                        PayloadType.ServiceDoc)
        self.assertTrue(self.classify(load_data('metadata_v4.xml')) ==
                        PayloadType.Metadata)
        self.assertTrue(self.classify(
            '<m:value xmlns:m="http://docs.oasis-open.org/odata/ns/metadata"'
            '>Widget</m:value>') == PayloadType.IndividualProperty)
        self.assertTrue(self.classify(
            '<m:error xmlns:m="http://docs.oasis-open.org/odata/ns/metadata"'
            '><m:code/><m:message>x</m:message></m:error>') ==
            PayloadType.Error)
        self.assertTrue(self.classify(
            '<uri xmlns="http://schemas.microsoft.com/ado/2007/08/'
            'dataservices">http://svc/Categories(1)</uri>') ==
            PayloadType.Link)
        self.assertTrue(self.classify('<links><uri>x</uri></links>') ==
                        PayloadType.Link)
        self.assertTrue(self.classify(load_data('ref_v4.xml')) ==
                        PayloadType.EntityRef)
        self.assertTrue(self.classify(
            '<d:Name xmlns:d="http://docs.oasis-open.org/odata/ns/data"'
            '>Widget</d:Name>') == PayloadType.Property)

    def test_malformed(self):
        self.assertTrue(self.classify("<a><b></a>") == PayloadType.Other)
        self.assertTrue(self.classify("") == PayloadType.none)

    def test_atom(self):
        self.assertTrue(classifier.classify_type(
            load_data('entry_v4.xml'), PayloadFormat.Atom) ==
            PayloadType.Entry)
        self.assertTrue(classifier.classify_type(
            '<feed xmlns="http://www.w3.org/2005/Atom"/>',
            PayloadFormat.Atom) == PayloadType.Feed)


class VerboseTests(unittest.TestCase):

    def classify(self, payload):
        return classifier.classify_type(payload, PayloadFormat.Json)

    def test_ladder(self):
        self.assertTrue(self.classify('{"d":[{"ID":1}]}') ==
                        PayloadType.Feed)
        self.assertTrue(self.classify(
            '{"d":{"results":[{"ID":1}],"__count":"1"}}') ==
            PayloadType.Feed)
        self.assertTrue(self.classify('{"d":{"ID":1,"Name":"Widget"}}') ==
                        PayloadType.Entry)
        self.assertTrue(self.classify(
            '{"d":{"EntitySets":["Products"]}}') == PayloadType.ServiceDoc)
        self.assertTrue(self.classify(
            '{"error":{"code":"","message":{"lang":"en","value":"x"}}}') ==
            PayloadType.Error)
        self.assertTrue(self.classify(
            '{"d":{"uri":"http://svc/Categories(1)"}}') == PayloadType.Link)
        self.assertTrue(self.classify('{"d":{"Name":"Widget"}}') ==
                        PayloadType.Property)

    def test_not_verbose(self):
        self.assertTrue(self.classify(FEED) == PayloadType.Other)
        self.assertTrue(self.classify('{"d":"Widget"}') == PayloadType.Other)
        self.assertTrue(self.classify("[") == PayloadType.Other)

    def test_reach_inner(self):
        self.assertTrue(classifier.reach_inner({"d": {"results": [1]}}) ==
                        [1])
        self.assertTrue(classifier.reach_inner({"x": 1}) is None)
        self.assertTrue(classifier.reach_inner(None) is None)


class LightTests(unittest.TestCase):

    def setUp(self):        # noqa
        self.md = MetadataDocument(load_data('metadata_v4.xml'))

    def classify(self, payload, metadata=None):
        return classifier.classify_type(payload, PayloadFormat.JsonLight,
                                        metadata)

    def test_service_doc(self):
        self.assertTrue(self.classify(SVC_DOC) == PayloadType.ServiceDoc)
        self.assertTrue(self.classify(SVC_DOC, self.md) ==
                        PayloadType.ServiceDoc)

    def test_delta(self):
        self.assertTrue(self.classify(DELTA) == PayloadType.Delta)
        self.assertTrue(self.classify(DELTA, self.md) == PayloadType.Delta)
        self.assertTrue(self.classify(V3_DELTA) == PayloadType.Delta)

    def test_entity_ref(self):
        for payload in (COLLECTION_REF, ENTITY_REF, V3_LINKS):
            self.assertTrue(self.classify(payload) == PayloadType.EntityRef)
            self.assertTrue(self.classify(payload, self.md) ==
                            PayloadType.EntityRef)

    def test_property(self):
        self.assertTrue(self.classify(PRIMITIVE) == PayloadType.Property)
        self.assertTrue(self.classify(COMPLEX_COLLECTION, self.md) ==
                        PayloadType.Property)

    def test_feed_entry_round_trip(self):
        self.assertTrue(self.classify(FEED, self.md) == PayloadType.Feed)
        self.assertTrue(self.classify(ENTRY, self.md) == PayloadType.Entry)
        self.assertTrue(self.classify(
            light("http://svc/$metadata#Products", value=[]), self.md) ==
            PayloadType.Feed)
        # an entity set the metadata does not declare
        self.assertTrue(self.classify(
            light("http://svc/$metadata#Widgets", ID=1), self.md) ==
            PayloadType.Other)

    def test_feed_entry_no_metadata(self):
        self.assertTrue(self.classify(FEED) == PayloadType.Feed)
        self.assertTrue(self.classify(ENTRY) == PayloadType.Entry)
        self.assertTrue(self.classify(ENTITY) == PayloadType.Entry)
        self.assertTrue(self.classify(NAVIGATION) == PayloadType.Feed)

    def test_singleton(self):
        self.assertTrue(self.classify(SINGLETON, self.md) ==
                        PayloadType.Entry)

    def test_projected_feed(self):
        payload = light("http://svc/$metadata#Products(Name,Price)",
                        value=[{"Name": "Widget", "Price": 2.5}])
        self.assertTrue(self.classify(payload, self.md) == PayloadType.Feed)

    def test_navigation_feed(self):
        self.assertTrue(self.classify(NAVIGATION, self.md) ==
                        PayloadType.Feed)

    def test_individual_property(self):
        self.assertTrue(self.classify(INDIVIDUAL, self.md) ==
                        PayloadType.IndividualProperty)
        self.assertTrue(self.classify(INDIVIDUAL) ==
                        PayloadType.IndividualProperty)
        # not a declared property
        payload = light("http://svc/$metadata#Products(1)/Colour",
                        value="Red")
        self.assertTrue(self.classify(payload, self.md) ==
                        PayloadType.Other)

    def test_errors(self):
        self.assertTrue(self.classify(V4_ERROR) == PayloadType.Error)
        self.assertTrue(self.classify(V3_ERROR) == PayloadType.Error)
        # message types are version specific
        self.assertTrue(self.classify(
            '{"odata.error":{"code":"","message":"x"}}') ==
            PayloadType.Other)
        self.assertTrue(self.classify(
            '{"error":{"code":"","message":{"value":"x"}}}') ==
            PayloadType.Other)

    def test_v3(self):
        self.assertTrue(self.classify(V3_ENTRY) == PayloadType.Entry)
        self.assertTrue(self.classify(V3_FEED) == PayloadType.Feed)

    def test_no_context(self):
        for payload in ('{"value":[{"ID":1}]}',
                        '{"ID":1,"@odata.context":"http://svc/$metadata"}',
                        '{}', '[1]', "not json"):
            self.assertTrue(self.classify(payload) == PayloadType.Other,
                            payload)
            self.assertTrue(self.classify(payload, self.md) ==
                            PayloadType.Other, payload)

    def test_quoted_context(self):
        payload = light('"http://svc/$metadata"', value=[])
        self.assertTrue(self.classify(payload) == PayloadType.ServiceDoc)

    def test_exclusive(self):
        predicates = [p for p, t in classifier.LIGHT_LADDER
                      if p is not classifier.is_light_error]
        for payload, md in (
                (SVC_DOC, None), (SVC_DOC, self.md),
                (DELTA, None), (DELTA, self.md),
                (COLLECTION_REF, None), (COLLECTION_REF, self.md),
                (ENTITY_REF, None),
                (PRIMITIVE, None), (COMPLEX_COLLECTION, self.md),
                (FEED, None), (FEED, self.md),
                (ENTRY, None), (ENTRY, self.md),
                (ENTITY, None), (ENTITY, self.md),
                (SINGLETON, self.md),
                (INDIVIDUAL, None), (INDIVIDUAL, self.md),
                (NAVIGATION, self.md),
                (V3_ENTRY, None), (V3_FEED, None), (V3_LINKS, None)):
            lp = classifier.LightPayload(json.loads(payload), md)
            matches = [p.__name__ for p in predicates if p(lp)]
            self.assertTrue(len(matches) == 1, "%s: %s" % (payload, matches))

    def test_light_payload(self):
        lp = classifier.LightPayload(json.loads(INDIVIDUAL))
        self.assertTrue(lp.v4 and not lp.v3)
        self.assertTrue(lp.has_context())
        self.assertTrue(lp.last == "Name")
        self.assertTrue(lp.fragment == "Products(1)/Name")
        self.assertFalse(lp.has_value_array())
        lp = classifier.LightPayload({"ID": 1})
        self.assertFalse(lp.has_context())
        self.assertTrue(lp.fragment is None)


class ClassifyPayloadTests(unittest.TestCase):

    def test_tuple(self):
        headers = "Content-Type: application/json;odata.metadata=minimal" \
            "\r\nOData-Version: 4.0\r\n"
        self.assertTrue(classifier.classify_payload(SVC_DOC, headers) == (
            PayloadFormat.JsonLight, PayloadType.ServiceDoc,
            ODataVersion.V4))
        md = load_data('metadata_v4.xml')
        self.assertTrue(classifier.classify_payload(
            INDIVIDUAL, headers, md) == (
            PayloadFormat.JsonLight, PayloadType.IndividualProperty,
            ODataVersion.V4))

    def test_deterministic(self):
        md = load_data('metadata_v4.xml')
        for payload in (SVC_DOC, FEED, ENTRY, INDIVIDUAL, V4_ERROR,
                        load_data('entry_v4.xml')):
            first = classifier.classify_payload(payload, None, md)
            for i in range(3):
                self.assertTrue(
                    classifier.classify_payload(payload, None, md) == first)

    def test_total(self):
        garbage = ("", None, " ", "null", "true", "0", "[]", "{", "}",
                   "<", "<?xml version='1.0'?>", "\x00\xff�",
                   '{"@odata.context":null}', '{"@odata.context":42}',
                   '{"@odata.context":"$metadata#"}',
                   '{"@odata.context":"http://svc/$metadata#Products/"}',
                   '{"d":null}', '{"error":null}', "[" * 50000,
                   '<a xmlns:m="urn:x"><m:ref/></a>')
        md = load_data('metadata_v4.xml')
        for payload in garbage:
            for headers in (None, "", "Content-Type: application/json\r\n",
                            "Content-Type: text/plain\r\n"
                            "OData-Version: 4.0\r\n",
                            "Content-Type: application/atom+xml\r\n",
                            "no colon here"):
                for metadata in (None, md, "<notmetadata/>"):
                    result = classifier.classify_payload(payload, headers,
                                                         metadata)
                    self.assertTrue(len(result) == 3)

    def test_unnamed_declarations(self):
        headers = "Content-Type: application/json\r\nOData-Version: 4.0\r\n"
        self.assertTrue(classifier.classify_payload(
            ENTRY, headers, UNNAMED_TYPE) == (
            PayloadFormat.JsonLight, PayloadType.Entry, ODataVersion.V4))
        self.assertTrue(classifier.classify_type(
            FEED, PayloadFormat.JsonLight, UNNAMED_TYPE) ==
            PayloadType.Feed)

    def test_raw_value(self):
        headers = "Content-Type: text/plain;charset=utf-8\r\n" \
            "OData-Version: 4.0\r\n"
        self.assertTrue(classifier.classify_payload("Widget", headers)[1] ==
                        PayloadType.RawValue)
        self.assertTrue(classifier.classify_type(
            "<d:Name xmlns:d='urn:x'>Widget</d:Name>", PayloadFormat.Xml,
            headers=headers) == PayloadType.RawValue)
        # no version header, no raw value
        self.assertTrue(classifier.classify_payload(
            "Widget", "Content-Type: text/plain\r\n")[1] ==
            PayloadType.Other)

    def test_empty(self):
        self.assertTrue(classifier.classify_payload("", None) == (
            PayloadFormat.none, PayloadType.none, ODataVersion.UNKNOWN))


class InspectionTests(unittest.TestCase):

    def setUp(self):        # noqa
        self.md = MetadataDocument(load_data('metadata_v4.xml'))

    def test_entity_type(self):
        self.assertTrue(classifier.get_entity_type(
            load_data('entry_v4.xml'), PayloadType.Entry,
            PayloadFormat.Atom) == "ODataDemo.Product")
        payload = light("http://svc/$metadata#Products",
                        value=[{"@odata.type": "#ODataDemo.Product"}])
        self.assertTrue(classifier.get_entity_type(
            payload, PayloadType.Feed, PayloadFormat.JsonLight) ==
            "ODataDemo.Product")
        payload = '{"d":{"__metadata":{"type":"ODataDemo.Product"},"ID":1}}'
        self.assertTrue(classifier.get_entity_type(
            payload, PayloadType.Entry, PayloadFormat.Json) ==
            "ODataDemo.Product")
        self.assertTrue(classifier.get_entity_type(
            ENTRY, PayloadType.Entry, PayloadFormat.JsonLight) is None)
        self.assertTrue(classifier.get_entity_type(
            ENTRY, PayloadType.Property, PayloadFormat.JsonLight) is None)

    def test_media_link_entry(self):
        self.assertFalse(classifier.is_media_link_entry(
            load_data('entry_v4.xml'), PayloadType.Entry,
            PayloadFormat.Atom))
        mle = '<entry xmlns="http://www.w3.org/2005/Atom" ' \
            'xmlns:m="http://docs.oasis-open.org/odata/ns/metadata">' \
            '<content type="image/png" src="Photos(1)/$value"/>' \
            '<m:properties/></entry>'
        self.assertTrue(classifier.is_media_link_entry(
            mle, PayloadType.Entry, PayloadFormat.Atom))
        self.assertFalse(classifier.is_media_link_entry(
            mle, PayloadType.Feed, PayloadFormat.Atom))

    def test_context_helpers(self):
        self.assertTrue(classifier.get_context_fragment(INDIVIDUAL) ==
                        "Products(1)/Name")
        self.assertTrue(classifier.get_context_fragment(SVC_DOC) is None)
        self.assertTrue(classifier.get_entity_set(
            INDIVIDUAL, PayloadFormat.JsonLight) == "Products")
        self.assertTrue(classifier.get_entity_set(
            INDIVIDUAL, PayloadFormat.Json) is None)

    def test_get_id(self):
        self.assertTrue(classifier.get_id(
            load_data('entry_v4.xml'), PayloadFormat.Atom) ==
            "http://svc/Products(1)")
        self.assertTrue(classifier.get_id(
            load_data('entry_v4.json'), PayloadFormat.JsonLight) ==
            "http://svc/Products(1)")
        self.assertTrue(classifier.get_id(ENTRY, PayloadFormat.JsonLight)
                        is None)

    def test_projected_properties(self):
        self.assertTrue(classifier.get_projected_properties(
            load_data('feed_v4.json'), PayloadFormat.JsonLight, self.md,
            "Product") is None)
        payload = light("http://svc/$metadata#Products(Name,Price)",
                        value=[{"@odata.id": "Products(1)", "Name": "Widget",
                                "Price": 2.5}])
        self.assertTrue(classifier.get_projected_properties(
            payload, PayloadFormat.JsonLight, self.md, "Product") ==
            ["Name", "Price"])
        self.assertTrue(classifier.get_projected_properties(
            load_data('entry_v4.xml'), PayloadFormat.Atom, self.md,
            "Product") == ["ID", "Name"])
        self.assertTrue(classifier.get_projected_properties(
            payload, PayloadFormat.JsonLight, None, "Product") is None)

    def test_entity_type_matches(self):
        entry = load_data('entry_v4.xml')
        self.assertTrue(classifier.entity_type_matches(
            entry, PayloadType.Entry, PayloadFormat.Atom, self.md))
        other = entry.replace("ODataDemo.Product", "Northwind.Order")
        self.assertFalse(classifier.entity_type_matches(
            other, PayloadType.Entry, PayloadFormat.Atom, self.md))
        self.assertTrue(classifier.entity_type_matches(
            ENTRY, PayloadType.Entry, PayloadFormat.JsonLight, self.md))


if __name__ == "__main__":
    unittest.main()
