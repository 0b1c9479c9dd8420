"""Root logger setup for the command line entry point"""
import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or 'INFO').upper(), logging.INFO),
        format=LOG_FORMAT
    )
