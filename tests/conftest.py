import pytest
import pytest_asyncio

from ocr_analyzer.continuous import SessionConfig, SessionController

from helpers import FakeDepthSource, FakeStreamFactory


@pytest.fixture
def stream_factory():
    return FakeStreamFactory()


@pytest.fixture
def depth_source():
    return FakeDepthSource()


@pytest.fixture
def session_config():
    return SessionConfig(poll_interval_ms=20)


@pytest_asyncio.fixture
async def controller(session_config, depth_source, stream_factory):
    controller = SessionController(
        config=session_config,
        depth_source=depth_source,
        stream_factory=stream_factory,
    )
    yield controller
    await controller.aclose()
