import os
import logging
import yaml
import keyring

APP_VERSION = "1.0.0"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install the application log format on the root logger."""
    numeric = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric)


class SettingsFile:
    """The ``settings.yaml`` overlay read and written by ``SettingsRepository``.

    With ``ENCRYPT_SETTINGS=1`` the app password is kept in the system keyring
    and the file only records that one is set.
    """

    KEYRING_SERVICE = "fitness-tracker"
    PASSWORD_KEY = "app_password"

    def __init__(self, path: str = "settings.yaml") -> None:
        self.path = path
        self.use_keyring = os.environ.get("ENCRYPT_SETTINGS") == "1"

    def load(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            return {}
        if self.use_keyring and self.PASSWORD_KEY in data:
            secret = keyring.get_password(self.KEYRING_SERVICE, self.PASSWORD_KEY)
            if secret is None:
                del data[self.PASSWORD_KEY]
            else:
                data[self.PASSWORD_KEY] = secret
        return data

    def save(self, data: dict) -> None:
        out = dict(data)
        if self.use_keyring and self.PASSWORD_KEY in out:
            keyring.set_password(
                self.KEYRING_SERVICE, self.PASSWORD_KEY, str(out[self.PASSWORD_KEY])
            )
            out[self.PASSWORD_KEY] = True
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f, sort_keys=True)
