#! /usr/bin/env python

import os.path
import shutil
import tempfile
import unittest

from odatavalidator.core import ODataVersion
from odatavalidator.errors import SettingsError
from odatavalidator.settings import EngineSettings


def suite():
    loader = unittest.TestLoader()
    return unittest.TestSuite((
        loader.loadTestsFromTestCase(SettingsTests),
        loader.loadTestsFromTestCase(LoadTests),
    ))


class SettingsTests(unittest.TestCase):

    def test_defaults(self):
        s = EngineSettings()
        self.assertTrue(s.max_payload_size == 0x100000)
        self.assertTrue(s.rule_timeout == 30)
        self.assertTrue(s.workers == 4)
        self.assertTrue(s.category == "core")
        self.assertTrue(s.categories is None)
        self.assertTrue(s.default_version == "V4")
        self.assertTrue(s.version == ODataVersion.V4)
        self.assertTrue(s.request_timeout == 60)

    def test_values(self):
        s = EngineSettings(max_payload_size="2048", workers=1,
                           rule_timeout=None, categories=["core", "extra"],
                           default_version="V3")
        self.assertTrue(s.max_payload_size == 2048)
        self.assertTrue(s.rule_timeout is None)
        self.assertTrue(s.categories == ("core", "extra"))
        self.assertTrue(s.version == ODataVersion.V3)

    def test_bad_values(self):
        for kwargs in (
                {'colour': 'red'},
                {'max_payload_size': 0},
                {'max_payload_size': "big"},
                {'workers': 0},
                {'rule_timeout': -1},
                {'default_version': "V5"}):
            try:
                EngineSettings(**kwargs)
                self.fail("EngineSettings(%s)" % repr(kwargs))
            except SettingsError:
                pass

    def test_read_only(self):
        s = EngineSettings()
        try:
            s.workers = 8
            self.fail("settings are writable")
        except AttributeError:
            pass
        try:
            del s.workers
            self.fail("settings are deletable")
        except AttributeError:
            pass
        self.assertTrue(s.workers == 4)

    def test_replace(self):
        s = EngineSettings(workers=2)
        s2 = s.replace(category="extra")
        self.assertFalse(s2 is s)
        self.assertTrue(s2.category == "extra")
        self.assertTrue(s2.workers == 2)
        self.assertTrue(s.category == "core")
        try:
            s.replace(workers=0)
            self.fail("replace skipped checks")
        except SettingsError:
            pass

    def test_from_dict(self):
        s = EngineSettings.from_dict({
            'EngineSettings': {'workers': 2},
            'ValidatorApp': {'level': 20}})
        self.assertTrue(s.workers == 2)
        s = EngineSettings.from_dict({})
        self.assertTrue(s.workers == 4)
        for settings in ([], {'EngineSettings': 3}):
            try:
                EngineSettings.from_dict(settings)
                self.fail("from_dict(%s)" % repr(settings))
            except SettingsError:
                pass


class LoadTests(unittest.TestCase):

    def setUp(self):        # noqa
        self.d = tempfile.mkdtemp('.d', 'odatavalidator-')

    def tearDown(self):     # noqa
        shutil.rmtree(self.d, True)

    def write(self, name, data):
        path = os.path.join(self.d, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def test_load(self):
        path = self.write('settings.json',
                          b'{"EngineSettings": {"max_payload_size": 512}}')
        s = EngineSettings.load(path)
        self.assertTrue(s.max_payload_size == 512)

    def test_bad_file(self):
        path = self.write('bad.json', b'{"EngineSettings": ')
        for p in (path, os.path.join(self.d, 'missing.json')):
            try:
                EngineSettings.load(p)
                self.fail("loaded %s" % p)
            except SettingsError:
                pass


if __name__ == "__main__":
    unittest.main()
