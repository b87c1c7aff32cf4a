from pathlib import Path
import sys

import pytest
from loguru import logger

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def silence_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield
