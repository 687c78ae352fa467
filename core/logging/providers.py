import logging
import sys
from dishka import Provider, provide, Scope

LOGGER_NAME = "chain_explorer"


class LoggerProvider(Provider):
    """
    Provider for the explorer logger.

    Configures root logging once (stdout, INFO) and hands out the
    application logger.
    """
    component = "logger"

    @provide(scope=Scope.APP)
    def get_logger(self) -> logging.Logger:
        """
        Provide configured logger instance.

        Returns
        -------
        logging.Logger
            Logger writing to stdout
        """
        if not logging.getLogger().handlers:
            logging.basicConfig(
                level=logging.INFO,
                format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                handlers=[
                    logging.StreamHandler(sys.stdout)
                ]
            )

        return logging.getLogger(LOGGER_NAME)
