import uvicorn

from .api import create_app
from .config import Config, configure_logging


def main():
    config = Config.from_env()
    configure_logging(config.log_level)
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
