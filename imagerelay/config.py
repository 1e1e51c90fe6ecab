"""
Configuration module for the image relay.

Loads all configuration from environment variables with sensible defaults.
"""

import os


class ConfigError(Exception):
    """Raised when a required setting is missing."""


class Config:
    """
    Relay configuration from environment variables.

    Loads all configuration values from environment variables with sensible defaults.
    Registry credentials have no default and are checked by validate().
    """

    def __init__(self):
        """
        Initialize configuration from environment variables.

        Environment Variables:
            USERNAME: Destination registry user. Required at startup
            PASSWORD: Destination registry password. Required at startup
            DEST_REPOSITORY: Repository synced images are pushed to. Default: dierbei/csi_demo
            PRUNE_UNTIL: Age filter for image pruning. Default: 1m
            DOCKER_HOST: Docker daemon URL. Default: aiodocker's own lookup
            LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO
            FLASK_HOST: Server bind address. Default: 127.0.0.1
            FLASK_PORT: Server bind port. Default: 3030
        """
        # Registry credentials
        self.USERNAME = os.getenv("USERNAME")
        self.PASSWORD = os.getenv("PASSWORD")

        # Relay
        self.DEST_REPOSITORY = os.getenv("DEST_REPOSITORY", "dierbei/csi_demo")
        self.PRUNE_UNTIL = os.getenv("PRUNE_UNTIL", "1m")
        self.DOCKER_HOST = os.getenv("DOCKER_HOST") or None

        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        # Server
        self.FLASK_HOST = os.getenv("FLASK_HOST", "127.0.0.1")
        self.FLASK_PORT = int(os.getenv("FLASK_PORT", "3030"))

    def validate(self) -> None:
        """
        Fail fast on settings the relay cannot run with.

        Raises:
            ConfigError: USERNAME or PASSWORD is unset, or DEST_REPOSITORY has no
                namespace or registry part (e.g. "mirror" instead of "acme/mirror"),
                which the Docker client refuses to push with credentials
        """
        missing = [name for name in ("USERNAME", "PASSWORD") if not getattr(self, name)]
        if missing:
            raise ConfigError(f"Missing required environment variable(s): {', '.join(missing)}")
        if "/" not in self.DEST_REPOSITORY:
            raise ConfigError(
                f"Invalid DEST_REPOSITORY '{self.DEST_REPOSITORY}': expected <namespace>/<repository>"
            )

    def __repr__(self):
        """String representation for logging. The password is never included."""
        return (
            f"Config(USERNAME={self.USERNAME}, "
            f"DEST_REPOSITORY={self.DEST_REPOSITORY}, "
            f"PRUNE_UNTIL={self.PRUNE_UNTIL}, "
            f"DOCKER_HOST={self.DOCKER_HOST}, "
            f"LOG_LEVEL={self.LOG_LEVEL}, "
            f"FLASK_HOST={self.FLASK_HOST}, "
            f"FLASK_PORT={self.FLASK_PORT})"
        )


# Global config instance
config = Config()
