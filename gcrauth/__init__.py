from gcrauth.models import DockerAuth, DockerAuthEncoder
from .configuration import Configuration, ConfigurationError, CONTAINER_REGISTRY_HOSTS
from .metadata import MetadataClient, HttpFetchError, MetadataParseError, fetch_gcr_credentials
from .hosts import HostMatcher, InvalidPatternError, is_container_registry_host, registry_host, translate_pattern

__all__ = ["DockerAuth", "DockerAuthEncoder", "Configuration", "ConfigurationError", "CONTAINER_REGISTRY_HOSTS",
           "MetadataClient", "HttpFetchError", "MetadataParseError", "fetch_gcr_credentials",
           "HostMatcher", "InvalidPatternError", "is_container_registry_host", "registry_host", "translate_pattern"]
