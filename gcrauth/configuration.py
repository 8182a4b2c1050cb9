import logging
import pathlib
from typing import Dict, List

import yaml

METADATA_URL = "http://169.254.169.254/computeMetadata/v1/instance/service-accounts/default/token"
METADATA_HEADERS = {"Metadata-Flavor": "Google"}
METADATA_TIMEOUT = 10  # Seconds, limit for the whole request
OAUTH2_USERNAME = "oauth2accesstoken"
# Parts of the host name can be glob, e.g. '*.gcr.io' matches 'foo.gcr.io' and 'bar.gcr.io'
CONTAINER_REGISTRY_HOSTS = ("container.cloud.google.com", "gcr.io", "*.gcr.io")


class ConfigurationError(Exception):
    pass


class Configuration:

    def __init__(self, config_path: str = ""):
        self.logger = logging.getLogger("configuration")
        self.home = pathlib.Path.home() / '.gcrauth'
        self.file: pathlib.Path = pathlib.Path(
            config_path) if config_path else self.home / 'config.yaml'
        if self.file.is_file():
            with self.file.open() as f:
                try:
                    self.values: Dict = yaml.load(f, Loader=yaml.SafeLoader) or {}
                except yaml.YAMLError as e:
                    self.logger.error(f"Unable to load configuration file: {e}")
                    raise ConfigurationError(f"Invalid configuration file {self.file}") from e
        else:
            self.logger.debug(
                f"No configuration file found in location: {self.file.absolute()}"
            )
            self.values: Dict = {}
        if not isinstance(self.values, dict):
            raise ConfigurationError(f"Configuration file {self.file} must contain a mapping.")

        # Token endpoint of the instance metadata service
        self.metadata_url: str = self.values.get("metadata_url", METADATA_URL)
        if not self.metadata_url or not isinstance(self.metadata_url, str):
            raise ConfigurationError(f"Metadata URL must be non-empty string. Value: {self.metadata_url!r}")
        # Header is required by the metadata service, not configurable
        self.metadata_headers: Dict = dict(METADATA_HEADERS)
        hosts = self.values.get("registry_hosts", CONTAINER_REGISTRY_HOSTS)
        if isinstance(hosts, str):
            hosts = [hosts]
        if not isinstance(hosts, (list, tuple)) or not all(isinstance(h, str) for h in hosts):
            raise ConfigurationError(f"Registry hosts must be list of host patterns. Value: {hosts!r}")
        self.registry_hosts: List[str] = list(hosts)
