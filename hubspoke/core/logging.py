import logging

from .config import Settings


def configure_logging(settings: Settings) -> None:
    """Configure the root logger once, at the process entry point."""
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # litellm is chatty at INFO
    logging.getLogger("LiteLLM").setLevel(max(level, logging.WARNING))
