"""Configure pytest"""

import pytest
from _pytest.logging import LogCaptureFixture
from loguru import logger

from calculator_mcp.capabilities import build_registry
from calculator_mcp.dispatcher import Dispatcher
from calculator_mcp.registry import Registry
from calculator_mcp.schemagenerators import (
    BasicSchemaGenerator,
    CapabilitySchema,
    ParameterSchema,
)


@pytest.fixture
def caplog(caplog: LogCaptureFixture):
    """Override pytest's caplog fixture to work with loguru."""
    handler_id = logger.add(
        caplog.handler,
        format="{message}",
        level=0,
        filter=lambda record: record["level"].no >= caplog.handler.level,
        enqueue=False,  # Set to False since we're not using multiprocessing in tests
    )
    yield caplog
    logger.remove(handler_id)


@pytest.fixture(autouse=True)
def propagate_logs():
    """Fixture to handle --log-cli-level flag with loguru."""
    import logging

    class PropagateHandler(logging.Handler):
        def emit(self, record):
            if logging.getLogger(record.name).isEnabledFor(record.levelno):
                logging.getLogger(record.name).handle(record)

    logger.remove()
    logger.add(PropagateHandler(), format="{message}")
    yield


@pytest.fixture
def basic_schema():
    param1 = ParameterSchema(name="param1", param_type="string", required=True)
    return CapabilitySchema(
        name="test_function",
        description="A test function",
        parameters=(param1,),
        required=("param1",),
    )


@pytest.fixture
def basic_generator():
    return BasicSchemaGenerator()


@pytest.fixture
def empty_registry() -> Registry:
    return Registry()


@pytest.fixture
def calculator_registry() -> Registry:
    return build_registry()


@pytest.fixture
def dispatcher(calculator_registry) -> Dispatcher:
    return Dispatcher(calculator_registry, random_seed=1234)

