import logging


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the API process or a script."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
