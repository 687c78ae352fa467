import os

from dishka import Provider, Scope, provide
from core.environment.config import Settings

DEFAULT_ENV_FILE = ".env"


class EnvironmentProvider(Provider):
    """
    Provider for the explorer settings and its network table.

    The env file is chosen by ``ENV_FILE`` when the container first asks
    for settings, not when the config module is imported.
    """

    component = "environment"
    scope = Scope.APP

    @provide
    def get_environment(self) -> Settings:
        """
        Load settings from the environment and the selected env file.

        Environment variables win over the file; a missing file is
        ignored.

        Returns
        -------
        Settings
            Application settings, including the supported networks
        """
        return Settings(_env_file=os.getenv("ENV_FILE", DEFAULT_ENV_FILE))
