#! /usr/bin/env python

import io
import optparse
import os.path
import shutil
import tempfile
import unittest

from odatavalidator.core import ODataVersion
from odatavalidator.validate import ValidatorApp


TEST_DATA_DIR = os.path.join(
    os.path.split(os.path.abspath(__file__))[0], 'data_odatavalidator')


def data_path(name):
    return os.path.join(TEST_DATA_DIR, name)


def suite():
    loader = unittest.TestLoader()
    return unittest.TestSuite((
        loader.loadTestsFromTestCase(SetupTests),
        loader.loadTestsFromTestCase(OfflineRunTests),
    ))


XML_ERROR = b"""<m:error
    xmlns:m="http://docs.oasis-open.org/odata/ns/metadata">
    <m:code>42</m:code>
</m:error>"""


def make_app(argv):
    """Returns a fresh app class set up from argv"""

    class MockApp(ValidatorApp):
        pass

    parser = optparse.OptionParser()
    MockApp.add_options(parser)
    options, args = parser.parse_args(argv)
    MockApp.setup(options=options, args=args)
    return MockApp


class TempDirMixin(object):

    def setUp(self):        # noqa
        self.d = tempfile.mkdtemp('.d', 'odatavalidator-')

    def tearDown(self):     # noqa
        shutil.rmtree(self.d, True)

    def write(self, name, data):
        path = os.path.join(self.d, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path


class SetupTests(TempDirMixin, unittest.TestCase):

    def test_defaults(self):
        app_class = make_app(["http://svc/"])
        self.assertTrue(app_class.args == ["http://svc/"])
        self.assertTrue(app_class.options.format == "json")
        self.assertTrue(app_class.engine_settings.workers == 4)
        self.assertTrue(app_class().request_headers() == [])

    def test_settings_file(self):
        path = self.write('settings.json',
                          b'{"EngineSettings": {"workers": 2}}')
        app_class = make_app(["--settings", path, "http://svc/"])
        self.assertTrue(app_class.settings_file == path)
        self.assertTrue(app_class.engine_settings.workers == 2)

    def test_options(self):
        app_class = make_app(["--category", "extra", "--version", "4.0",
                              "http://svc/"])
        self.assertTrue(app_class.engine_settings.category == "extra")
        self.assertTrue(app_class.engine_settings.categories == ("extra",))
        self.assertTrue(app_class().request_headers() ==
                        [("OData-Version", "4.0")])

    def test_bad_settings(self):
        for data in (b'{"EngineSettings": {"workers": 0}}', b'{"Engine'):
            path = self.write('settings.json', data)

            class MockApp(ValidatorApp):
                pass

            self.assertTrue(MockApp.main(
                ["--settings", path, "http://svc/"]) == 2)

    def test_usage(self):
        class MockApp(ValidatorApp):
            pass

        try:
            MockApp.main([])
            self.fail("no URL or payload")
        except SystemExit as err:
            self.assertTrue(err.code == 2)


class OfflineRunTests(TempDirMixin, unittest.TestCase):

    def run_app(self, argv):
        out = io.StringIO()
        app = make_app(argv)(out)
        status = app.run()
        return status, out.getvalue().splitlines()

    def test_entry(self):
        status, lines = self.run_app([
            "--offline", data_path('entry_v4.xml'),
            "--metadata", data_path('metadata_v4.xml')])
        self.assertTrue(status == 0)
        self.assertTrue(len(lines) == 11)
        self.assertTrue(lines[-1] == "10 rule(s): success 1, "
                        "notApplicable 9")
        self.assertTrue([line for line in lines
                         if line.startswith("Entry.Core.2003 ")])

    def test_failure(self):
        path = self.write('error.xml', XML_ERROR)
        status, lines = self.run_app(["--offline", path,
                                      "--version", "4.0"])
        self.assertTrue(status == 1)
        failed = [line for line in lines
                  if line.startswith("Error.Core.4605 ")]
        self.assertTrue(len(failed) == 1)
        self.assertTrue(" error " in failed[0])

    def test_headers(self):
        status, lines = self.run_app([
            "--offline", data_path('feed_v4.json'),
            "--metadata", data_path('metadata_v4.xml'),
            "--headers", data_path('headers_v4.txt')])
        self.assertTrue(status == 0)
        passed = [line for line in lines
                  if line.startswith("Feed.Core.4013 ")]
        self.assertTrue(" success " in passed[0])

    def test_category(self):
        status, lines = self.run_app([
            "--offline", data_path('entry_v4.xml'), "--category", "extra"])
        self.assertTrue(status == 0)
        self.assertTrue(lines == ["0 rule(s): "])

    def test_missing_file(self):
        status, lines = self.run_app([
            "--offline", os.path.join(self.d, 'missing.json')])
        self.assertTrue(status == 2)
        self.assertTrue(lines == [])

    def test_version_header(self):
        app = make_app(["--offline", data_path('ref_v4.xml'),
                        "--version", "3.0"])()
        ctx = app.build_context()
        self.assertTrue(ctx.version == ODataVersion.V3)
        self.assertTrue(ctx.offline)


if __name__ == "__main__":
    unittest.main()
