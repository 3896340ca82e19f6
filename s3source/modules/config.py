# s3source/modules/config.py
import configparser
import os

ENV_VAR = "S3SOURCE_CONFIG"

DEFAULT_LOCATIONS = [
    "/etc/s3source/s3source.conf",
    os.path.expanduser("~/.config/s3source/s3source.conf"),
]

DEFAULTS = {
    "paths": {
        "home": "~/.local/share/s3source",
        "cache_root": "~/.bundle",
        "app_cache": "vendor/cache",
    },
    "aws": {
        "cli": "aws",
        "config_file": "~/.aws/config",
    },
    "index": {
        "remote_blob": "specs.json.gz",
    },
}


class SourceConfig:
    def __init__(self, locations=None):
        self.locations = locations or self._default_locations()
        self.config = configparser.ConfigParser()
        self.loaded_from = None
        self.reload()

    @staticmethod
    def _default_locations():
        env = os.environ.get(ENV_VAR)
        return ([env] if env else []) + DEFAULT_LOCATIONS

    def reload(self):
        """(Re)load defaults, then the first config file found, if any."""
        self.config = configparser.ConfigParser()
        self.config.read_dict(DEFAULTS)
        self.loaded_from = None
        for path in self.locations:
            if os.path.isfile(path):
                self.config.read(path)
                self.loaded_from = path
                return

    def get(self, section, option, fallback=None):
        try:
            return self.config.get(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return fallback

    def getpath(self, section, option, fallback=None):
        value = self.get(section, option, fallback=fallback)
        if value is None:
            return None
        return os.path.abspath(os.path.expanduser(value))

    def getboolean(self, section, option, fallback=False):
        try:
            return self.config.getboolean(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getint(self, section, option, fallback=0):
        try:
            return self.config.getint(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getlist(self, section, option, fallback=None, delimiter=";"):
        raw = self.get(section, option, fallback="")
        if raw:
            return [item.strip() for item in raw.split(delimiter) if item.strip()]
        return fallback or []

    def set(self, section, option, value):
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, option, str(value))

    def __getitem__(self, section):
        if section in self.config:
            return dict(self.config[section])
        raise KeyError(f"Section '{section}' not found.")

    def __contains__(self, section):
        return section in self.config


# Default global instance shared by the other modules
config = SourceConfig()
