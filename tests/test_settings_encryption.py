import os
import sys
import unittest
import keyring
import keyring.backend
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import SettingsFile
from db import SettingsRepository

class DummyKeyring(keyring.backend.KeyringBackend):
    priority = 1
    def __init__(self):
        self.store = {}
    def get_password(self, service, username):
        return self.store.get((service, username))
    def set_password(self, service, username, password):
        self.store[(service, username)] = password
    def delete_password(self, service, username):
        self.store.pop((service, username), None)

class SettingsEncryptionTest(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = DummyKeyring()
        keyring.set_keyring(self.backend)
        os.environ['ENCRYPT_SETTINGS'] = '1'
        self.path = 'enc_settings.yaml'
        self.db_path = 'enc_settings.db'
        for p in (self.path, self.db_path):
            if os.path.exists(p):
                os.remove(p)

    def tearDown(self) -> None:
        for p in (self.path, self.db_path):
            if os.path.exists(p):
                os.remove(p)
        os.environ.pop('ENCRYPT_SETTINGS', None)

    def test_encrypt_and_load(self) -> None:
        cfg = SettingsFile(self.path)
        cfg.save({'app_password': 'secret', 'weight_unit': 'lb'})
        self.assertTrue(os.path.exists(self.path))
        with open(self.path, encoding='utf-8') as f:
            self.assertNotIn('secret', f.read())
        data = cfg.load()
        self.assertEqual(data['app_password'], 'secret')
        self.assertEqual(data['weight_unit'], 'lb')

    def test_missing_secret_is_dropped(self) -> None:
        cfg = SettingsFile(self.path)
        cfg.save({'app_password': 'secret'})
        self.backend.store.clear()
        self.assertNotIn('app_password', cfg.load())

    def test_repository_keeps_password_out_of_yaml(self) -> None:
        repo = SettingsRepository(self.db_path, self.path)
        repo.set_text('app_password', 'hunter2')
        with open(self.path, encoding='utf-8') as f:
            self.assertNotIn('hunter2', f.read())
        self.assertEqual(repo.get_text('app_password', ''), 'hunter2')
        self.assertNotIn('app_password', repo.all_settings())


class PlainSettingsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.path = 'plain_settings.yaml'
        self.db_path = 'plain_settings.db'
        for p in (self.path, self.db_path):
            if os.path.exists(p):
                os.remove(p)

    def tearDown(self) -> None:
        for p in (self.path, self.db_path):
            if os.path.exists(p):
                os.remove(p)

    def test_yaml_overrides_database(self) -> None:
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write('weight_unit: kg\nsession_hours: 12\n')
        repo = SettingsRepository(self.db_path, self.path)
        self.assertEqual(repo.get_text('weight_unit', 'lb'), 'kg')
        self.assertEqual(repo.get_int('session_hours', 24), 12)
        self.assertEqual(repo.all_settings()['timer_throttle_ms'], 100)

    def test_invalid_yaml_value_rejected(self) -> None:
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write('log_level: LOUD\n')
        with self.assertRaises(ValueError):
            SettingsRepository(self.db_path, self.path)


if __name__ == '__main__':
    unittest.main()
