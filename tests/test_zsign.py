import os
import json
import shutil
import tempfile
import threading
import unittest
from unittest import mock
from pydantic import ValidationError

import pyzsign
from pyzsign import BinaryNotFoundError, SignOptions, UnsupportedPlatformError, Zsign, ZsignConfig, parse_version
from fake_zsign import create_fake_zsign, create_host_fake_zsign


@unittest.skipIf(os.name == 'nt', 'fake zsign relies on a shebang line')
class TestZsign(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.bin_dir = os.path.join(self.test_dir, 'bin')
        create_fake_zsign(self.bin_dir, 'linux', 'x64')
        self.zsign = Zsign(ZsignConfig(bin_dir=self.bin_dir), system='Linux', machine='x86_64')

    def tearDown(self):
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    def test_binary_resolved_at_construction(self):
        self.assertEqual(self.zsign.binary_path, os.path.join(self.bin_dir, 'zsign_linux_x64'))

    def test_missing_binary_fails_at_construction(self):
        with self.assertRaises(BinaryNotFoundError):
            Zsign(ZsignConfig(bin_dir=self.bin_dir), system='Darwin', machine='arm64')

    def test_unsupported_os_fails_at_construction(self):
        with self.assertRaises(UnsupportedPlatformError):
            Zsign(ZsignConfig(bin_dir=self.bin_dir), system='Plan9', machine='x64')

    def test_get_version(self):
        result = self.zsign.get_version().result(10)
        self.assertEqual(result.output, 'version: 0.7.1\n')
        self.assertEqual(parse_version(result.output), '0.7.1')

    def test_show_help(self):
        result = self.zsign.show_help().result(10)
        self.assertTrue(result.output.startswith('Usage: zsign'))

    def test_sign_forwards_options(self):
        output = os.path.join(self.test_dir, 'signed.ipa')
        options = {'pkey': 'dev.p12', 'prov': 'dev.mobileprovision', 'password': 'pw',
                   'zip_level': 9, 'output': output}
        result = self.zsign.sign('in.ipa', options).result(10)

        expected = ['--pkey', 'dev.p12', '--prov', 'dev.mobileprovision', '--output', output,
                    '--password', 'pw', '--zip_level', '9', 'in.ipa']
        self.assertEqual(json.loads(result.output), expected)
        self.assertTrue(os.path.exists(output))

    def test_sign_with_sign_options(self):
        result = self.zsign.sign('Demo.app', SignOptions(force=True, quiet=True)).result(10)
        self.assertEqual(json.loads(result.output), ['--force', '--quiet', 'Demo.app'])

    def test_sign_callback(self):
        calls = []
        called = threading.Event()

        def callback(error, output):
            calls.append((error, output))
            called.set()

        result = self.zsign.sign('fail.ipa', {}, callback).result(10)
        self.assertFalse(result.ok)
        self.assertTrue(called.wait(10))
        self.assertEqual(len(calls), 1)
        self.assertIs(calls[0][0], result.error)
        self.assertIsNone(calls[0][1])

    def test_instances_keep_their_own_debug_flag(self):
        noisy = Zsign(ZsignConfig(bin_dir=self.bin_dir, debug=True), system='Linux', machine='x64')
        self.assertTrue(noisy.dispatcher.config.debug)
        self.assertFalse(self.zsign.dispatcher.config.debug)


class TestParseVersion(unittest.TestCase):
    def test_parse(self):
        self.assertEqual(parse_version('version: 0.5\n'), '0.5')
        self.assertEqual(parse_version('zsign v0.7.1 '), 'v0.7.1')

    def test_unrecognized(self):
        for output in ('', '0.5', 'version: \n'):
            with self.subTest(output=output):
                with self.assertRaises(ValueError):
                    parse_version(output)


class TestZsignConfig(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            config = ZsignConfig()
        self.assertFalse(config.debug)
        self.assertIsNone(config.timeout)
        self.assertIsNone(config.env)
        self.assertTrue(config.binary_dir.endswith('bin'))

    def test_from_env(self):
        environ = {
            'ZSIGN_DEBUG': 'yes',
            'ZSIGN_BIN_DIR': '/opt/zsign',
            'ZSIGN_TIMEOUT': '30',
            'ZSIGN_ENV': '{"ZSIGN_CACHE": "off"}',
        }
        with mock.patch.dict(os.environ, environ, clear=True):
            config = ZsignConfig.from_env()
        self.assertTrue(config.debug)
        self.assertEqual(config.binary_dir, '/opt/zsign')
        self.assertEqual(config.timeout, 30.0)
        self.assertEqual(config.env, {'ZSIGN_CACHE': 'off'})

    def test_from_empty_env(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(ZsignConfig.from_env(), ZsignConfig(debug=False))
        with mock.patch.dict(os.environ, {'ZSIGN_DEBUG': '0'}, clear=True):
            self.assertFalse(ZsignConfig.from_env().debug)

    def test_constructor_overrides_environment(self):
        with mock.patch.dict(os.environ, {'ZSIGN_DEBUG': 'true', 'ZSIGN_BIN_DIR': '/env'}, clear=True):
            config = ZsignConfig(bin_dir='/explicit')
        self.assertTrue(config.debug)
        self.assertEqual(config.bin_dir, '/explicit')

    def test_invalid_values_name_the_setting(self):
        for name, value in (('ZSIGN_TIMEOUT', 'abc'), ('ZSIGN_TIMEOUT', '-1'), ('ZSIGN_DEBUG', 'maybe')):
            with self.subTest(name=name, value=value):
                with mock.patch.dict(os.environ, {name: value}, clear=True):
                    with self.assertRaises(ValidationError) as ctx:
                        ZsignConfig.from_env()
                self.assertIn(name[len('ZSIGN_'):].lower(), str(ctx.exception))

    def test_frozen(self):
        config = ZsignConfig(debug=True)
        with self.assertRaises(ValidationError):
            config.debug = False


@unittest.skipIf(os.name == 'nt', 'fake zsign relies on a shebang line')
class TestDefaultInstance(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.test_dir, True)
        if not create_host_fake_zsign(self.test_dir):
            self.skipTest('no zsign binary for this platform')
        pyzsign._default = None

    def tearDown(self):
        pyzsign._default = None

    def test_module_functions(self):
        with mock.patch.dict(os.environ, {'ZSIGN_BIN_DIR': self.test_dir}):
            self.assertEqual(pyzsign.get_version().result(10).output, 'version: 0.7.1\n')
            self.assertTrue(pyzsign.show_help().result(10).ok)
            result = pyzsign.sign('in.ipa', {'bundle_id': 'com.example'}).result(10)
            self.assertEqual(json.loads(result.output), ['--bundle_id', 'com.example', 'in.ipa'])
            self.assertIs(pyzsign.get_default(), pyzsign.get_default())


if __name__ == '__main__':
    unittest.main()
