from .docker_auth import DockerAuth, DockerAuthEncoder

__all__ = ["DockerAuth", "DockerAuthEncoder"]
