"""Shared fixtures for blockstage tests."""

import copy

import pytest

from blockstage import logging as stage_logging
from blockstage.program.blocks import BlockFactory
from blockstage.runtime.host import ManualFrameHost
from blockstage.session import StageSession
from blockstage.store import StageStore


@pytest.fixture(autouse=True)
def quiet_logging():
    """Silence log output for a test and restore the configuration after."""
    saved = copy.deepcopy(stage_logging._config)
    stage_logging.disable_logging()
    yield
    stage_logging._config.clear()
    stage_logging._config.update(saved)
    stage_logging.close_all_sinks()


@pytest.fixture
def factory():
    return BlockFactory(token="test")


@pytest.fixture
def store():
    return StageStore()


@pytest.fixture
def host():
    return ManualFrameHost()


@pytest.fixture
def session(host):
    session = StageSession(host=host)
    yield session
    session.close()
