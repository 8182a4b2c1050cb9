from json import JSONEncoder
from typing import Dict

from docker import auth


class DockerAuth:
    """
    Username and password pair for Docker registry login.

    Instanced for every fetch, the caller owns it.
    """

    def __init__(self, username: str, password: str, server_address: str = ""):
        if not username or not isinstance(username, str):
            raise ValueError("Username must be non-empty string.")
        # Empty password is kept, metadata service may answer without token
        if not isinstance(password, str):
            raise ValueError("Password must be string.")
        self._username: str = username
        self._password: str = password
        self.server_address: str = server_address

    @property
    def username(self) -> str:
        return self._username

    @property
    def password(self) -> str:
        return self._password

    def __eq__(self, other):
        if not isinstance(other, DockerAuth):
            return NotImplemented
        return (self.username, self.password, self.server_address) == (
            other.username, other.password, other.server_address)

    def __repr__(self):
        return f"DockerAuth(username={self.username!r}, server_address={self.server_address!r})"

    def __iter__(self):
        yield "username", self.username
        yield "password", self.password
        if self.server_address:
            yield "serveraddress", self.server_address

    def to_auth_config(self) -> Dict[str, str]:
        """Format accepted as 'auth_config' by docker-py, e.g. client.images.pull"""
        return dict(self)

    def to_helper_output(self) -> Dict[str, str]:
        """Response of 'get' in the Docker credential helper protocol"""
        return {
            "ServerURL": self.server_address,
            "Username": self.username,
            "Secret": self.password,
        }

    def encode_header(self) -> bytes:
        """Value for X-Registry-Auth header of the Docker Engine API"""
        return auth.encode_header(self.to_auth_config())


class DockerAuthEncoder(JSONEncoder):
    def default(self, o):
        if isinstance(o, DockerAuth):
            return o.to_auth_config()
        return JSONEncoder.default(self, o)
