from typing import Generator

import pytest

from stagehand import config
from stagehand.core import CharacterData, CharacterDatabase
from stagehand.controller import Controller
from stagehand.interface import Collaborators
from stagehand.interface import headless
from . import EventRecorder, MonitoringObserver, RecordingPresentation

# some logging to turn on if we like
#logging.getLogger("stagehand.controller").level = logging.DEBUG
#logging.getLogger("stagehand.interpreter").level = logging.DEBUG

@pytest.fixture(autouse=True)
def settings() -> Generator[None, None, None]:
    # tests may tweak config, start each one from the built-in config
    config.load_config()
    yield
    config.load_config()

@pytest.fixture
def presentation() -> RecordingPresentation:
    return RecordingPresentation()

@pytest.fixture
def headless_input() -> headless.HeadlessInput:
    return headless.HeadlessInput()

@pytest.fixture
def stats() -> headless.StatSheet:
    return headless.StatSheet()

@pytest.fixture
def characters() -> CharacterDatabase:
    return CharacterDatabase([
        CharacterData("mara", "Mara", expressions=["neutral", "angry"]),
        CharacterData("oskar", "Oskar"),
    ])

@pytest.fixture
def collaborators(presentation:RecordingPresentation, headless_input:headless.HeadlessInput, stats:headless.StatSheet, characters:CharacterDatabase) -> Collaborators:
    return Collaborators(
        presentation=presentation,
        input=headless_input,
        stats=stats,
        characters=characters,
    )

@pytest.fixture
def controller(collaborators:Collaborators) -> Controller:
    return Controller(collaborators)

@pytest.fixture
def recorder(controller:Controller) -> EventRecorder:
    return EventRecorder(controller.bus)

@pytest.fixture
def monitor(controller:Controller) -> MonitoringObserver:
    m = MonitoringObserver()
    controller.interpreter.observe(m)
    return m
